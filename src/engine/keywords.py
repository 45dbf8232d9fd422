"""
Stackrift Keyword Triggers

Each keyword maps event types to handlers (match, unit, event). The fan-out
hook runs after the directly subscribed handlers of every publish and calls
the handlers of every keyword each board entity currently has. A handler
checks the payload to decide whether its unit is the relevant party.
Board ticks (poison, regen) run once per event for every board unit.
"""

from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING
import logging

from .types import Entity, Event, EventResult, EventType, Speed
from .effects import action_from_descriptor, damage_action

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


class Keyword(Enum):
    BARRIER = "barrier"
    LIFESTEAL = "lifesteal"
    FURY = "fury"
    POISON = "poison"
    REGEN = "regen"
    CHALLENGER = "challenger"
    QUICK_ATTACK = "quickattack"
    LAST_BREATH = "lastbreath"

    @classmethod
    def is_known(cls, name: str) -> bool:
        return name in cls._value2member_map_


KeywordHandler = Callable[['Match', Entity, Event], Optional[EventResult]]


def _is_unit(payload_entity, unit: Entity) -> bool:
    return isinstance(payload_entity, Entity) and payload_entity.id == unit.id


# =============================================================================
# Handlers
# =============================================================================

def barrier_on_enter(match: 'Match', unit: Entity, event: Event) -> None:
    if _is_unit(event.payload.get('entity'), unit):
        unit.status['barrier'] = True


def barrier_on_damage(match: 'Match', unit: Entity, event: Event) -> None:
    if not _is_unit(event.payload.get('target'), unit):
        return
    if unit.status.get('barrier'):
        unit.health += event.payload.get('amount', 0)
        unit.status['barrier'] = False
        logger.debug("Barrier on %s absorbed %d", unit.id, event.payload.get('amount', 0))


def lifesteal_on_damage(match: 'Match', unit: Entity, event: Event) -> None:
    if event.payload.get('source_id') != unit.id:
        return
    owner = match.get_player(unit.owner_id)
    if owner:
        owner.life += event.payload.get('amount', 0)


def fury_on_die(match: 'Match', unit: Entity, event: Event) -> None:
    if event.payload.get('killer') != unit.id or _is_unit(event.payload.get('entity'), unit):
        return
    unit.attack += 1
    unit.health += 1


def poison_tick(match: 'Match', unit: Entity, event: Event) -> None:
    if unit.counters <= 0:
        return
    unit.health -= unit.counters
    if unit.health <= 0:
        match.stack.mark_for_death(unit)


def regen_tick(match: 'Match', unit: Entity, event: Event) -> None:
    regen = unit.status.get('regen', 0)
    if regen > 0:
        unit.health += regen


def challenger_on_enter(match: 'Match', unit: Entity, event: Event) -> None:
    if not _is_unit(event.payload.get('entity'), unit):
        return
    for opponent in match.opponents_of(unit.owner_id):
        if opponent.board:
            opponent.board[0].provoked_by = unit.id
            return


def quick_attack_on_attack(match: 'Match', unit: Entity, event: Event) -> Optional[EventResult]:
    attacker = event.payload.get('attacker')
    defender = event.payload.get('target')
    if not _is_unit(attacker, unit) or not isinstance(defender, Entity):
        return None
    match.stack.push(damage_action(unit, defender, Speed.BURST))
    match.stack.push(damage_action(defender, unit, Speed.SLOW))
    return EventResult.SUPPRESSED


KEYWORD_HANDLERS: dict[Keyword, dict[EventType, KeywordHandler]] = {
    Keyword.BARRIER: {
        EventType.ENTER_PLAY: barrier_on_enter,
        EventType.DAMAGE_DEALT: barrier_on_damage,
    },
    Keyword.LIFESTEAL: {
        EventType.DAMAGE_DEALT: lifesteal_on_damage,
    },
    Keyword.FURY: {
        EventType.DIE: fury_on_die,
    },
    # Ticked for every board unit, see BOARD_TICKS
    Keyword.POISON: {},
    Keyword.REGEN: {},
    Keyword.CHALLENGER: {
        EventType.ENTER_PLAY: challenger_on_enter,
    },
    Keyword.QUICK_ATTACK: {
        EventType.ATTACK: quick_attack_on_attack,
    },
    # Run by death cleanup, see trigger_last_breath
    Keyword.LAST_BREATH: {},
}

# Poison and regen read unit state, not the keyword: they tick every board
# unit once per event, whoever carries the keyword.
BOARD_TICKS: dict[EventType, list[tuple[Keyword, KeywordHandler]]] = {
    EventType.TURN_START: [
        (Keyword.POISON, poison_tick),
        (Keyword.REGEN, regen_tick),
    ],
}

_missing = set(Keyword) - set(KEYWORD_HANDLERS)
if _missing:
    raise RuntimeError(f"Keywords without a handler table: {sorted(k.value for k in _missing)}")


# =============================================================================
# Fan-out
# =============================================================================

def effective_keywords(match: 'Match', unit: Entity) -> list[Keyword]:
    """Base keywords of the unit's card plus granted ones, unknown names skipped."""
    card_def = match.cards.get(unit.card_id)
    names = set(card_def.keywords) if card_def else set()
    names |= unit.granted_keywords
    return [Keyword(name) for name in sorted(names) if Keyword.is_known(name)]


def make_fanout(match: 'Match') -> Callable[[Event], EventResult]:
    """Build the keyword fan-out hook for a match's event bus."""

    def fanout(event: Event) -> EventResult:
        result = EventResult.UNHANDLED
        # Snapshot: handlers may add or remove units
        units = [unit for player in match.players.values() for unit in player.board]
        for unit in units:
            for keyword, tick in BOARD_TICKS.get(event.type, ()):
                try:
                    tick(match, unit, event)
                except Exception:
                    logger.exception("Keyword %s tick failed on %s", keyword.value, unit.id)
            for keyword in effective_keywords(match, unit):
                handler = KEYWORD_HANDLERS[keyword].get(event.type)
                if handler is None:
                    continue
                try:
                    outcome = handler(match, unit, event)
                except Exception:
                    logger.exception("Keyword %s failed on %s for %s", keyword.value, event.type.value, unit.id)
                    continue
                if outcome == EventResult.SUPPRESSED:
                    result = EventResult.SUPPRESSED
        return result

    return fanout


def trigger_last_breath(match: 'Match', unit: Entity) -> None:
    """Push the dying unit's last breath effect, if it has one."""
    if Keyword.LAST_BREATH not in effective_keywords(match, unit):
        return
    card_def = match.cards.get(unit.card_id)
    descriptor = card_def.last_breath if card_def else None
    if not descriptor:
        return
    speed = Speed(descriptor.get('speed', 'Slow'))
    params = {k: v for k, v in descriptor.items() if k != 'speed'}
    match.stack.push(action_from_descriptor(match, params, unit.owner_id, speed, source_id=unit.id))
    logger.debug("Last breath triggered for %s", unit.id)
