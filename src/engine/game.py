"""
Stackrift Match

One Match per game, owning every piece of mutable state:
players, zones, the stack, the priority window and the death queue.

Integrates all subsystems:
- Event Bus + keyword fan-out
- Zone Manager and Target Resolver
- Stack & Priority Engine
- Turn Manager (phases, mana ramp)
- Champion tracker and region passives
- Card script compiler

External code drives a match only through add_player / bind_session /
start / handle_intent and reads it through get_state_for_player.
"""

from typing import Any, Callable, Optional, Union
import logging
import random

from .types import (
    CardDefinition, CardType, Entity, EventResult, EventType, Player, Speed, ZoneType,
    StackriftError, new_id
)
from .config import EngineConfig
from .events import EventBus
from .targeting import TargetResolver
from .zones import ZoneManager
from .effects import EffectKind, action_from_descriptor, apply_effect, damage_action
from .keywords import make_fanout
from .priority import StackEngine
from .turn import Phase, TurnManager
from .champions import ChampionTracker
from .regions import register_regions
from .script import Program, ScriptParseError, execute, parse

logger = logging.getLogger(__name__)


CardTable = Union[dict, list]


def load_cards(cards: Optional[CardTable]) -> dict[str, CardDefinition]:
    """
    Build the definition table.

    Accepts {card_id: data}, a list of card dicts, or ready CardDefinitions.
    Raises CardDataError on the first bad entry.
    """
    if not cards:
        return {}
    entries = cards.values() if isinstance(cards, dict) else cards
    table = {}
    for entry in entries:
        card_def = entry if isinstance(entry, CardDefinition) else CardDefinition.from_dict(entry)
        table[card_def.id] = card_def
    return table


def entity_to_dict(unit: Entity) -> dict:
    return {
        'id': unit.id,
        'cardId': unit.card_id,
        'attack': unit.attack,
        'health': unit.health,
        'ownerId': unit.owner_id,
        'counters': unit.counters,
        'status': dict(unit.status),
        'grantedKeywords': sorted(unit.granted_keywords),
        'provokedBy': unit.provoked_by,
        'isToken': unit.is_token,
    }


class Match:
    """
    A single game.

    Intents are validated before any mutation; an illegal intent is logged
    and ignored, and nothing is broadcast for it.
    """

    def __init__(
        self,
        cards: Optional[CardTable] = None,
        config: Optional[EngineConfig] = None,
        seed: Optional[int] = None,
    ):
        self.id = new_id()
        self.config = config or EngineConfig()
        self.cards = load_cards(cards)
        self.rng = random.Random(seed)

        self.players: dict[str, Player] = {}
        self.player_order: list[str] = []
        self.started = False
        self._entity_counter = 0
        self._scripts: dict[str, Program] = {}

        # Subsystems
        self.bus = EventBus()
        self.zones = ZoneManager(self)
        self.targets = TargetResolver(self)
        self.stack = StackEngine(self)
        self.turns = TurnManager(self)
        self.champions = ChampionTracker(self)

        self.bus.install_fanout(make_fanout(self))

        self._intent_handlers: dict[str, Callable[[Player, dict], bool]] = {
            'set_deck': self._intent_set_deck,
            'mulligan': self._intent_mulligan,
            'pass': self._intent_pass,
            'play_card': self._intent_play_card,
            'attack': self._intent_attack,
            'end_phase': self._intent_end_phase,
        }

    # =========================================================================
    # Players and sessions
    # =========================================================================

    def add_player(self, player_id: Optional[str] = None) -> str:
        if self.started:
            raise StackriftError("Cannot add players to a started match")
        player = Player(id=player_id or new_id(), life=self.config.starting_life)
        self.players[player.id] = player
        self.player_order.append(player.id)
        logger.info("Match %s: added player %s", self.id, player.id)
        return player.id

    def bind_session(self, player_id: str, handle: Any) -> bool:
        """Attach a delivery handle (anything with send(dict)) to a player."""
        player = self.get_player(player_id)
        if not player:
            return False
        player.session = handle
        return True

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        return self.players.get(player_id)

    def opponents_of(self, player_id: str) -> list[Player]:
        return [self.players[pid] for pid in self.player_order if pid != player_id]

    def next_entity_id(self) -> str:
        self._entity_counter += 1
        return f"e{self._entity_counter}"

    def register_regions(self, regions) -> None:
        register_regions(self, regions)

    # =========================================================================
    # Setup
    # =========================================================================

    def ready(self) -> bool:
        return len(self.players) >= self.config.min_players

    def start(self) -> bool:
        """Deal opening hands and begin turn 1. Returns False if not possible."""
        if self.started or not self.ready():
            logger.info("Match %s: cannot start (started=%s, players=%d)",
                        self.id, self.started, len(self.players))
            return False

        self.started = True
        for pid in self.player_order:
            player = self.players[pid]
            if self.config.shuffle_on_start:
                self.rng.shuffle(player.deck)
            self.draw_cards(player, self.config.opening_hand_size)

        self.turns.start_game(self.player_order)
        logger.info("Match %s started with %d players", self.id, len(self.players))
        self.broadcast()
        return True

    def draw_cards(self, player: Player, count: int = 1) -> None:
        apply_effect(self, EffectKind.DRAW, {'player_id': player.id, 'value': count})

    def compile_script(self, card_def: CardDefinition) -> Optional[Program]:
        """Compile (once) and return the card's script. Raises ScriptParseError."""
        if not card_def.script:
            return None
        program = self._scripts.get(card_def.id)
        if program is None:
            program = parse(card_def.script)
            self._scripts[card_def.id] = program
        return program

    # =========================================================================
    # Intents
    # =========================================================================

    def handle_intent(self, player_id: str, intent: dict) -> bool:
        """
        Apply one player intent.

        Returns True if it was accepted. Accepted intents are followed by a
        broadcast to every bound session.
        """
        player = self.get_player(player_id)
        kind = intent.get('type') if isinstance(intent, dict) else None
        handler = self._intent_handlers.get(kind)
        if player is None or handler is None:
            return self._reject(player_id, kind, "unknown player or intent")

        accepted = handler(player, intent)
        if accepted:
            self.broadcast()
        return accepted

    def _reject(self, player_id: Optional[str], kind: Optional[str], reason: str) -> bool:
        logger.info("Rejected intent %s from %s: %s", kind, player_id, reason)
        return False

    def _window_open(self) -> bool:
        return self.stack.priority.active

    def _is_active(self, player: Player) -> bool:
        return self.turns.active_player == player.id

    # -------------------------------------------------------------------------

    def _intent_set_deck(self, player: Player, intent: dict) -> bool:
        if self.started:
            return self._reject(player.id, 'set_deck', "match already started")
        cards = intent.get('cards')
        if not isinstance(cards, list) or not all(isinstance(c, str) for c in cards):
            return self._reject(player.id, 'set_deck', "cards must be a list of card ids")

        for card_id in cards:
            card_def = self.cards.get(card_id)
            if card_def is None:
                return self._reject(player.id, 'set_deck', f"unknown card {card_id}")
            try:
                self.compile_script(card_def)
            except ScriptParseError as e:
                return self._reject(player.id, 'set_deck', f"card {card_id} script: {e}")

        player.deck[:] = cards
        logger.info("Player %s set a %d card deck", player.id, len(cards))
        return True

    def _intent_mulligan(self, player: Player, intent: dict) -> bool:
        state = self.turns.turn_state
        if not self.started or state.turn_number != 1 or state.advances > 0:
            return self._reject(player.id, 'mulligan', "only before the first phase of turn 1")
        if player.mulliganed:
            return self._reject(player.id, 'mulligan', "already mulliganed")

        keep = intent.get('keep') or []
        remaining = list(player.hand)
        for card_id in keep:
            if card_id not in remaining:
                return self._reject(player.id, 'mulligan', f"{card_id} is not in hand")
            remaining.remove(card_id)

        # remaining now holds the cards going back
        for card_id in remaining:
            player.hand.remove(card_id)
            player.deck.append(card_id)
        if self.config.shuffle_on_start:
            self.rng.shuffle(player.deck)
        self.draw_cards(player, len(remaining))
        player.mulliganed = True
        logger.info("Player %s mulliganed %d card(s)", player.id, len(remaining))
        return True

    def _intent_pass(self, player: Player, intent: dict) -> bool:
        if not self.stack.pass_priority(player.id):
            return self._reject(player.id, 'pass', "no open priority window")
        return True

    def _intent_play_card(self, player: Player, intent: dict) -> bool:
        if not self.started:
            return self._reject(player.id, 'play_card', "match not started")

        card_id = intent.get('cardId')
        target_id = intent.get('targetId')
        if card_id not in player.hand:
            return self._reject(player.id, 'play_card', f"{card_id} not in hand")
        card_def = self.cards.get(card_id)
        if card_def is None:
            return self._reject(player.id, 'play_card', f"no definition for {card_id}")
        if not self.turns.mana.can_pay(player, card_def.cost):
            return self._reject(player.id, 'play_card', "not enough mana")

        fast = card_def.type == CardType.SPELL and card_def.speed in (Speed.FAST, Speed.BURST)
        if not fast:
            if not self._is_active(player) or self.turns.phase != Phase.MAIN or self._window_open():
                return self._reject(player.id, 'play_card', "units and slow spells need your open main phase")

        try:
            program = self.compile_script(card_def)
        except ScriptParseError as e:
            return self._reject(player.id, 'play_card', f"script does not compile: {e}")

        self.turns.mana.pay(player, card_def.cost)
        logger.debug("Player %s plays %s", player.id, card_id)

        if card_def.type == CardType.UNIT:
            self._play_unit(player, card_def)
        else:
            self._play_spell(player, card_def, target_id)

        if program is not None:
            execute(self, program, player.id, card_def.speed, target_id)
        return True

    def _play_unit(self, player: Player, card_def: CardDefinition) -> None:
        unit = self.zones.move_between_zones(player.id, card_def.id, ZoneType.HAND, ZoneType.BOARD, as_entity=True)
        self.bus.publish(EventType.PLAY_CARD, {'player_id': player.id, 'card_id': card_def.id})
        # Existing champions count this play; a champion does not count its own summon
        self.champions.record_play(player.id)
        if isinstance(unit, Entity):
            self.champions.track(unit)

    def _play_spell(self, player: Player, card_def: CardDefinition, target_id: Optional[str]) -> None:
        self.zones.move_between_zones(player.id, card_def.id, ZoneType.HAND, ZoneType.GRAVEYARD)
        self.bus.publish(EventType.PLAY_CARD, {'player_id': player.id, 'card_id': card_def.id})
        for descriptor in card_def.effects:
            descriptor = self._bind_explicit_target(descriptor, target_id)
            self.stack.push(action_from_descriptor(self, descriptor, player.id, card_def.speed))
        self.champions.record_play(player.id)

    def _bind_explicit_target(self, descriptor: dict, target_id: Optional[str]) -> dict:
        target = descriptor.get('target')
        if not target_id or not isinstance(target, dict) or target.get('side') != 'target':
            return descriptor
        if self.get_player(target_id):
            bound = {'type': 'player', 'playerId': target_id}
        else:
            bound = {'type': 'entity', 'id': target_id}
        return {**descriptor, 'target': bound}

    def _intent_attack(self, player: Player, intent: dict) -> bool:
        if not self.started or not self._is_active(player):
            return self._reject(player.id, 'attack', "not your turn")
        if self.turns.phase != Phase.ATTACK_DECLARE or self._window_open():
            return self._reject(player.id, 'attack', "attacks need an open attack phase")

        attacker = self.zones.find_entity(intent.get('attackerId'))
        target = self.zones.find_entity(intent.get('targetId'))
        if attacker is None or attacker.owner_id != player.id:
            return self._reject(player.id, 'attack', "attacker not on your board")
        if target is None or target.owner_id == player.id:
            return self._reject(player.id, 'attack', "target not on an opposing board")

        result = self.bus.publish(EventType.ATTACK, {
            'attacker': attacker,
            'target': target,
            'player_id': player.id,
        })
        if result != EventResult.SUPPRESSED:
            self.stack.push(damage_action(attacker, target, Speed.SLOW))
            self.stack.push(damage_action(target, attacker, Speed.SLOW))
        return True

    def _intent_end_phase(self, player: Player, intent: dict) -> bool:
        if not self.started or not self._is_active(player):
            return self._reject(player.id, 'end_phase', "not your turn")
        if self._window_open():
            return self._reject(player.id, 'end_phase', "priority window is open")
        self.turns.advance()
        return True

    # =========================================================================
    # Snapshots
    # =========================================================================

    def get_state_for_player(self, player_id: str) -> dict:
        me = self.players[player_id]
        priority = self.stack.priority
        return {
            'type': 'state',
            'me': {
                'id': me.id,
                'hand': list(me.hand),
                'board': [entity_to_dict(u) for u in me.board],
                'graveyard': list(me.graveyard),
                'exile': list(me.exile),
                'banished': list(me.banished),
                'deckCount': len(me.deck),
                'life': me.life,
                'currentMana': me.current_mana,
                'maxMana': me.max_mana,
            },
            'opponents': [
                {
                    'id': opp.id,
                    'board': [entity_to_dict(u) for u in opp.board],
                    'graveyardCount': len(opp.graveyard),
                    'deckCount': len(opp.deck),
                }
                for opp in self.opponents_of(player_id)
            ],
            'turn': {
                'number': self.turns.turn_number,
                'phase': self.turns.phase.value,
                'currentPlayerId': self.turns.active_player,
            },
            'priority': {
                'active': priority.active,
                'passes': dict(priority.passes),
            },
            'stackDepth': len(self.stack.stack),
        }

    def broadcast(self) -> None:
        """Send every bound session its own snapshot."""
        for pid in self.player_order:
            session = self.players[pid].session
            if session is None:
                continue
            try:
                session.send(self.get_state_for_player(pid))
            except Exception:
                logger.exception("Failed to deliver state to %s", pid)
