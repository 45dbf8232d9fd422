"""
Test helpers: a small card table and a two-player match factory.
"""

from src.engine import EngineConfig, Match


CARDS = [
    {'id': 'grunt', 'type': 'unit', 'cost': 1, 'stats': {'attack': 2, 'health': 2}, 'regions': ['solaris']},
    {'id': 'ogre', 'type': 'unit', 'cost': 3, 'stats': {'attack': 3, 'health': 3}},
    {'id': 'leech', 'type': 'unit', 'cost': 2, 'stats': {'attack': 4, 'health': 3}, 'keywords': ['lifesteal']},
    {'id': 'warden', 'type': 'unit', 'cost': 2, 'stats': {'attack': 2, 'health': 2}, 'keywords': ['barrier']},
    {'id': 'berserker', 'type': 'unit', 'cost': 2, 'stats': {'attack': 2, 'health': 2}, 'keywords': ['fury']},
    {'id': 'duelist', 'type': 'unit', 'cost': 2, 'stats': {'attack': 3, 'health': 2}, 'keywords': ['quickattack']},
    {'id': 'taunter', 'type': 'unit', 'cost': 2, 'stats': {'attack': 2, 'health': 2}, 'keywords': ['challenger']},
    {
        'id': 'phantom', 'type': 'unit', 'cost': 1, 'stats': {'attack': 1, 'health': 1},
        'replacement': [
            {'on': 'death', 'from': 'board', 'to': 'graveyard', 'instead': {'moveTo': 'exile'}},
        ],
    },
    {
        'id': 'martyr', 'type': 'unit', 'cost': 1, 'stats': {'attack': 1, 'health': 1},
        'keywords': ['lastbreath'],
        'lastbreathEffect': {'action': 'DealDamage', 'value': 1, 'target': {'type': 'player', 'playerId': 'opponent'}},
    },
    {
        'id': 'hero', 'type': 'unit', 'cost': 2, 'stats': {'attack': 2, 'health': 2},
        'champion': True, 'evolveTo': {'cardId': 'hero_ascended', 'condition': {'playCount': 2}},
    },
    {'id': 'hero_ascended', 'type': 'unit', 'cost': 2, 'stats': {'attack': 4, 'health': 4}},
    {'id': 'sprout', 'type': 'unit', 'cost': 0, 'stats': {'attack': 1, 'health': 1}, 'regions': ['solaris']},
    {
        'id': 'bolt', 'type': 'spell', 'cost': 1, 'speed': 'Fast',
        'effects': [{'action': 'DealDamage', 'value': 3, 'target': {'side': 'target'}}],
    },
    {
        'id': 'zap', 'type': 'spell', 'cost': 0, 'speed': 'Burst',
        'effects': [{'action': 'DealDamage', 'value': 1, 'target': {'side': 'target'}}],
    },
    {'id': 'hex', 'type': 'spell', 'cost': 1, 'speed': 'Slow', 'script': 'deal 2 to enemy.random; heal 1 to self'},
    {'id': 'broken', 'type': 'spell', 'cost': 1, 'script': 'deal two to enemy'},
]


def make_match(**config_overrides) -> Match:
    """Two players (p1, p2), deterministic RNG, no shuffling, no opening hand."""
    settings = {'shuffle_on_start': False, 'opening_hand_size': 0}
    settings.update(config_overrides)
    match = Match(cards=CARDS, config=EngineConfig(**settings), seed=7)
    match.add_player('p1')
    match.add_player('p2')
    return match


def summon(match: Match, player_id: str, card_id: str):
    """Put a fresh entity straight onto a board."""
    unit = match.zones.create_entity(player_id, card_id)
    match.zones.put_onto_board(unit)
    return unit


class Recorder:
    """Session handle that keeps every snapshot it receives."""

    def __init__(self):
        self.messages = []

    def send(self, state):
        self.messages.append(state)
