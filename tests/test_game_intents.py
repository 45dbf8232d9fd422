"""
Tests for the Match: intents, legality, snapshots and broadcasts.
"""

import pytest

from src.engine import EventType, Match, Phase, StackriftError, register_regions

from helpers import CARDS, Recorder, make_match, summon


def begin(match, phase=Phase.MAIN):
    """Start the match and advance p1's first turn to the given phase."""
    match.start()
    while match.turns.phase != phase:
        match.turns.advance()


@pytest.fixture
def sessions(match):
    recorders = {'p1': Recorder(), 'p2': Recorder()}
    for pid, recorder in recorders.items():
        match.bind_session(pid, recorder)
    return recorders


# =============================================================================
# Setup
# =============================================================================

class TestSetup:

    def test_set_deck_before_start(self, match, p1):
        assert match.handle_intent('p1', {'type': 'set_deck', 'cards': ['grunt', 'ogre']})
        assert p1.deck == ['grunt', 'ogre']

    @pytest.mark.parametrize('cards', [
        ['grunt', 'unknown'],
        ['grunt', 'broken'],
        'grunt',
    ])
    def test_set_deck_rejects_bad_decks(self, match, p1, cards):
        assert not match.handle_intent('p1', {'type': 'set_deck', 'cards': cards})
        assert p1.deck == []

    def test_set_deck_after_start_is_rejected(self, match):
        match.start()
        assert not match.handle_intent('p1', {'type': 'set_deck', 'cards': ['grunt']})

    def test_start_needs_enough_players(self):
        match = Match(cards=CARDS)
        match.add_player('p1')
        assert not match.start()
        assert not match.started

    def test_start_only_once(self, match):
        assert match.start()
        assert not match.start()

    def test_players_cannot_join_a_started_match(self, match):
        match.start()
        with pytest.raises(StackriftError):
            match.add_player('p3')

    def test_unknown_player_and_intent_type(self, match):
        match.start()
        assert not match.handle_intent('p9', {'type': 'end_phase'})
        assert not match.handle_intent('p1', {'type': 'concede'})

    def test_opening_hands(self):
        match = make_match(opening_hand_size=2)
        match.handle_intent('p1', {'type': 'set_deck', 'cards': ['grunt', 'ogre', 'leech']})
        match.start()

        p1 = match.get_player('p1')
        assert p1.hand == ['grunt', 'ogre']
        assert p1.deck == ['leech']


class TestMulligan:

    @pytest.fixture
    def dealt(self):
        match = make_match(opening_hand_size=3)
        match.handle_intent('p1', {'type': 'set_deck', 'cards': ['grunt', 'ogre', 'leech', 'warden', 'berserker']})
        match.start()
        return match

    def test_replaces_the_cards_not_kept(self, dealt):
        p1 = dealt.get_player('p1')

        assert dealt.handle_intent('p1', {'type': 'mulligan', 'keep': ['ogre']})

        assert p1.hand == ['ogre', 'warden', 'berserker']
        assert p1.deck == ['grunt', 'leech']

    def test_only_once(self, dealt):
        assert dealt.handle_intent('p1', {'type': 'mulligan', 'keep': []})
        assert not dealt.handle_intent('p1', {'type': 'mulligan', 'keep': []})

    def test_keep_must_be_in_hand(self, dealt):
        p1 = dealt.get_player('p1')
        assert not dealt.handle_intent('p1', {'type': 'mulligan', 'keep': ['ogre', 'ogre']})
        assert p1.hand == ['grunt', 'ogre', 'leech']

    def test_closed_after_the_first_phase(self, dealt):
        dealt.turns.advance()
        assert not dealt.handle_intent('p2', {'type': 'mulligan', 'keep': []})


# =============================================================================
# Playing cards
# =============================================================================

class TestPlayCard:

    def test_card_not_in_hand_changes_nothing(self, match, p1, sessions):
        begin(match)
        p1.deck.append('ogre')
        p1.current_mana = 5
        sessions['p1'].messages.clear()
        before = match.get_state_for_player('p1')

        assert not match.handle_intent('p1', {'type': 'play_card', 'cardId': 'ogre'})

        assert p1.hand == [] and p1.board == [] and p1.deck == ['ogre']
        assert match.get_state_for_player('p1') == before
        assert sessions['p1'].messages == []

    def test_unit_in_own_main_phase(self, match, p1, sessions):
        begin(match)
        p1.hand.append('ogre')
        p1.current_mana = 3
        plays = []
        match.bus.subscribe(EventType.PLAY_CARD, plays.append)

        assert match.handle_intent('p1', {'type': 'play_card', 'cardId': 'ogre'})

        assert p1.hand == []
        assert [u.card_id for u in p1.board] == ['ogre']
        assert p1.current_mana == 0
        assert plays[0].payload['card_id'] == 'ogre'
        assert sessions['p1'].messages[-1]['me']['board'][0]['cardId'] == 'ogre'
        assert sessions['p2'].messages[-1]['opponents'][0]['board'][0]['cardId'] == 'ogre'

    def test_not_enough_mana(self, match, p1):
        begin(match)
        p1.hand.append('ogre')
        assert not match.handle_intent('p1', {'type': 'play_card', 'cardId': 'ogre'})
        assert p1.hand == ['ogre']

    def test_units_need_the_main_phase(self, match, p1):
        match.start()
        p1.hand.append('sprout')
        assert not match.handle_intent('p1', {'type': 'play_card', 'cardId': 'sprout'})

    def test_units_need_the_active_player(self, match, p2):
        begin(match)
        p2.hand.append('sprout')
        assert not match.handle_intent('p2', {'type': 'play_card', 'cardId': 'sprout'})

    def test_slow_cards_wait_for_a_closed_window(self, match, p1):
        begin(match)
        p1.hand.extend(['hex', 'sprout'])
        p1.current_mana = 5

        assert match.handle_intent('p1', {'type': 'play_card', 'cardId': 'hex'})
        assert match.stack.priority.active
        assert not match.handle_intent('p1', {'type': 'play_card', 'cardId': 'sprout'})

    def test_fast_spell_from_the_inactive_player(self, match, p1, p2):
        begin(match)
        grunt = summon(match, 'p1', 'grunt')
        p2.hand.append('bolt')
        p2.current_mana = 1

        assert match.handle_intent('p2', {'type': 'play_card', 'cardId': 'bolt', 'targetId': grunt.id})

        assert p2.graveyard == ['bolt']
        assert len(match.stack.stack) == 1
        assert match.stack.priority.initiator == 'p2'

        assert match.handle_intent('p1', {'type': 'pass'})
        assert match.handle_intent('p2', {'type': 'pass'})

        assert p1.graveyard == ['grunt']
        assert not match.stack.priority.active

    def test_fast_spell_at_a_player(self, match, p1, p2):
        begin(match)
        p1.hand.append('bolt')
        p1.current_mana = 1

        match.handle_intent('p1', {'type': 'play_card', 'cardId': 'bolt', 'targetId': 'p2'})
        match.handle_intent('p1', {'type': 'pass'})
        match.handle_intent('p2', {'type': 'pass'})

        assert p2.life == 17

    def test_burst_spell_resolves_at_once(self, match, p1):
        begin(match)
        grunt = summon(match, 'p2', 'grunt')
        p1.hand.append('zap')

        assert match.handle_intent('p1', {'type': 'play_card', 'cardId': 'zap', 'targetId': grunt.id})

        assert grunt.health == 1
        assert not match.stack.priority.active
        assert match.stack.stack == []

    def test_scripted_spell_pushes_its_statements(self, match, p1):
        begin(match)
        p1.hand.append('hex')
        p1.current_mana = 1

        assert match.handle_intent('p1', {'type': 'play_card', 'cardId': 'hex'})

        assert p1.graveyard == ['hex']
        assert len(match.stack.stack) == 2

    def test_card_whose_script_fails_to_compile_stays_in_hand(self, match, p1):
        begin(match)
        p1.hand.append('broken')
        p1.current_mana = 1

        assert not match.handle_intent('p1', {'type': 'play_card', 'cardId': 'broken'})

        assert p1.hand == ['broken']
        assert p1.current_mana == 1

    def test_pass_without_window_is_rejected(self, match):
        begin(match)
        assert not match.handle_intent('p1', {'type': 'pass'})


class TestChampions:

    def test_evolves_after_enough_plays(self, match, p1):
        begin(match)
        p1.hand.extend(['hero', 'sprout', 'sprout'])
        p1.current_mana = 2

        match.handle_intent('p1', {'type': 'play_card', 'cardId': 'hero'})
        match.handle_intent('p1', {'type': 'play_card', 'cardId': 'sprout'})
        assert p1.board[0].card_id == 'hero'

        match.handle_intent('p1', {'type': 'play_card', 'cardId': 'sprout'})

        assert [u.card_id for u in p1.board] == ['hero_ascended', 'sprout', 'sprout']
        assert (p1.board[0].attack, p1.board[0].health) == (4, 4)

    def test_opponent_plays_do_not_count(self, match, p1, p2):
        begin(match)
        p1.hand.append('hero')
        p1.current_mana = 2
        match.handle_intent('p1', {'type': 'play_card', 'cardId': 'hero'})

        p2.hand.extend(['zap', 'zap'])
        match.handle_intent('p2', {'type': 'play_card', 'cardId': 'zap', 'targetId': 'p1'})
        match.handle_intent('p2', {'type': 'play_card', 'cardId': 'zap', 'targetId': 'p1'})

        assert p1.board[0].card_id == 'hero'


# =============================================================================
# Combat and phases
# =============================================================================

class TestAttack:

    def test_exchange_resolves_through_priority(self, match, p1, p2):
        begin(match, Phase.ATTACK_DECLARE)
        ogre = summon(match, 'p1', 'ogre')
        grunt = summon(match, 'p2', 'grunt')
        attacks = []
        match.bus.subscribe(EventType.ATTACK, attacks.append)

        assert match.handle_intent('p1', {'type': 'attack', 'attackerId': ogre.id, 'targetId': grunt.id})

        assert attacks[0].payload['attacker'] is ogre
        assert len(match.stack.stack) == 2

        match.handle_intent('p1', {'type': 'pass'})
        match.handle_intent('p2', {'type': 'pass'})

        assert ogre.health == 1
        assert p2.graveyard == ['grunt']

    def test_quick_attack_kills_before_retaliation(self, match, p1, p2):
        begin(match, Phase.ATTACK_DECLARE)
        duelist = summon(match, 'p1', 'duelist')
        ogre = summon(match, 'p2', 'ogre')

        assert match.handle_intent('p1', {'type': 'attack', 'attackerId': duelist.id, 'targetId': ogre.id})

        assert p2.graveyard == ['ogre']
        assert len(match.stack.stack) == 1

    @pytest.mark.parametrize('attacker_side, target_side', [('p2', 'p2'), ('p1', 'p1')])
    def test_attacker_and_target_must_be_on_the_right_boards(self, match, attacker_side, target_side):
        begin(match, Phase.ATTACK_DECLARE)
        attacker = summon(match, attacker_side, 'grunt')
        target = summon(match, target_side, 'ogre')

        assert not match.handle_intent('p1', {'type': 'attack', 'attackerId': attacker.id, 'targetId': target.id})
        assert match.stack.stack == []

    def test_attacks_need_the_attack_phase(self, match):
        begin(match)
        attacker = summon(match, 'p1', 'grunt')
        target = summon(match, 'p2', 'ogre')
        assert not match.handle_intent('p1', {'type': 'attack', 'attackerId': attacker.id, 'targetId': target.id})


class TestEndPhase:

    def test_active_player_advances(self, match):
        match.start()
        assert match.handle_intent('p1', {'type': 'end_phase'})
        assert match.turns.phase == Phase.DRAW

    def test_inactive_player_cannot_advance(self, match):
        match.start()
        assert not match.handle_intent('p2', {'type': 'end_phase'})
        assert match.turns.phase == Phase.START

    def test_open_window_blocks_advancing(self, match, p1):
        begin(match)
        p1.hand.append('hex')
        p1.current_mana = 1
        match.handle_intent('p1', {'type': 'play_card', 'cardId': 'hex'})

        assert not match.handle_intent('p1', {'type': 'end_phase'})
        assert match.turns.phase == Phase.MAIN


# =============================================================================
# Regions
# =============================================================================

SOLARIS = {
    'id': 'solaris',
    'passives': [
        {'event': 'OnTurnStart', 'action': 'GainAttackAllied', 'value': 1},
        {'event': 'OnEnterPlay', 'action': 'GrantKeywordOnEnter', 'keyword': 'Fury'},
    ],
}


class TestRegions:

    def test_registration_skips_unknown_entries(self, match):
        subscribed = register_regions(match, {'regions': [{
            'id': 'solaris',
            'passives': SOLARIS['passives'] + [
                {'event': 'OnSunrise', 'action': 'GainAttackAllied'},
                {'event': 'OnDraw', 'action': 'Explode'},
            ],
        }]})
        assert [event_type for event_type, _ in subscribed] == [EventType.TURN_START, EventType.ENTER_PLAY]

    def test_passives_apply_only_to_region_players(self, match, p1):
        match.register_regions([SOLARIS])
        p1.deck.extend(['grunt', 'sprout'])

        mine = summon(match, 'p1', 'ogre')
        theirs = summon(match, 'p2', 'ogre')

        assert mine.granted_keywords == {'fury'}
        assert theirs.granted_keywords == set()

    def test_turn_start_bonus(self, match, p1):
        match.register_regions([SOLARIS])
        p1.deck.extend(['grunt', 'sprout'])
        match.start()
        mine = summon(match, 'p1', 'ogre')
        theirs = summon(match, 'p2', 'ogre')

        # Through p2's turn into p1's next turn
        for _ in range(14):
            match.turns.advance()

        assert match.turns.active_player == 'p1'
        assert mine.attack == 4
        assert theirs.attack == 3

    def test_threshold_not_met(self, match, p1):
        match.register_regions([SOLARIS])
        p1.deck.append('grunt')
        unit = summon(match, 'p1', 'ogre')
        assert unit.granted_keywords == set()


# =============================================================================
# Snapshots
# =============================================================================

def test_snapshot_shape(match, p1):
    begin(match)
    p1.hand.append('bolt')
    summon(match, 'p1', 'grunt')
    summon(match, 'p2', 'ogre')

    state = match.get_state_for_player('p1')

    assert state['type'] == 'state'
    assert set(state['me']) == {
        'id', 'hand', 'board', 'graveyard', 'exile', 'banished', 'deckCount', 'life', 'currentMana', 'maxMana',
    }
    assert state['me']['hand'] == ['bolt']
    assert state['opponents'][0]['id'] == 'p2'
    assert 'hand' not in state['opponents'][0]
    assert state['opponents'][0]['board'][0]['cardId'] == 'ogre'
    assert state['turn'] == {'number': 1, 'phase': 'MAIN', 'currentPlayerId': 'p1'}
    assert state['priority'] == {'active': False, 'passes': {}}
    assert state['stackDepth'] == 0


def test_broadcast_survives_a_broken_session(match, sessions):
    class Broken:
        def send(self, state):
            raise ConnectionError("gone")

    match.bind_session('p1', Broken())
    match.start()

    assert sessions['p2'].messages[-1]['turn']['number'] == 1
