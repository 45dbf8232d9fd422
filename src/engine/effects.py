"""
Stackrift Effect Library

Every state change a card can cause is one EffectKind. Handlers take
(match, params) and never raise for a missing target or definition: the
effect simply does nothing, since it may run deep inside a trigger cascade.
"""

from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING
import logging

from .types import (
    Action, Entity, Player, Speed, ZoneType, EventType, EntityTarget
)
from .targeting import target_from_dict

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


class EffectKind(Enum):
    # Values are the action names used in card data
    DEAL_DAMAGE = "DealDamage"
    HEAL = "Heal"
    SUMMON = "Summon"
    CREATE_TOKEN = "CreateToken"
    DESTROY = "Destroy"
    BUFF = "Buff"
    DEBUFF = "Debuff"
    ADD_COUNTER = "AddCounter"
    REMOVE_COUNTER = "RemoveCounter"
    TRANSFORM = "Transform"
    CHAMPION_EVOLVE = "ChampionEvolve"
    DRAW = "Draw"
    MILL = "Mill"
    RECALL = "Recall"
    OBLITERATE = "Obliterate"
    RETURN_TO_HAND = "ReturnToHand"
    REVIVE = "Revive"
    REANIMATE = "Reanimate"
    MOVE_TO_ZONE = "MoveToZone"
    SHUFFLE_DECK = "ShuffleDeck"
    GAIN_ATTACK_ALLIED = "GainAttackAllied"
    GRANT_KEYWORD = "GrantKeyword"


EffectHandler = Callable[['Match', dict], None]


# =============================================================================
# Helpers
# =============================================================================

def _target(match: 'Match', params: dict):
    descriptor = params.get('target')
    if isinstance(descriptor, dict):
        descriptor = target_from_dict(descriptor, params.get('player_id'), match)
    return match.targets.resolve(descriptor)


def _target_entity(match: 'Match', params: dict) -> Optional[Entity]:
    target = _target(match, params)
    return target if isinstance(target, Entity) else None


def _player(match: 'Match', params: dict) -> Optional[Player]:
    return match.get_player(params.get('player_id'))


def _check_lethal(match: 'Match', unit: Entity, killer_id: Optional[str] = None) -> None:
    if unit.health <= 0:
        match.stack.mark_for_death(unit, killer_id)


# =============================================================================
# Combat and stats
# =============================================================================

def deal_damage(match: 'Match', params: dict) -> None:
    target = _target(match, params)
    if target is None:
        return
    amount = params.get('value', 0)

    if isinstance(target, Entity):
        source_id = params.get('source')
        source = match.zones.find_entity(source_id) if source_id else None
        target.health -= amount
        logger.debug("DealDamage %d -> %s (health %d)", amount, target.id, target.health)
        match.bus.publish(EventType.DAMAGE_DEALT, {
            'source': source,
            'source_id': source_id,
            'target': target,
            'amount': amount,
        })
        # Checked after the event so damage prevention can restore health first
        _check_lethal(match, target, source_id)
    else:
        target.life -= amount
        logger.debug("DealDamage %d -> player %s (life %d)", amount, target.id, target.life)


def heal(match: 'Match', params: dict) -> None:
    target = _target(match, params)
    if target is None:
        return
    amount = params.get('value', 0)
    if isinstance(target, Entity):
        target.health += amount
    else:
        target.life += amount
    match.bus.publish(EventType.HEAL, {'target': target, 'amount': amount})


def destroy(match: 'Match', params: dict) -> None:
    unit = _target_entity(match, params)
    if unit is None:
        return
    match.stack.mark_for_death(unit, params.get('source'))


def _modify_stats(match: 'Match', params: dict, sign: int) -> None:
    unit = _target_entity(match, params)
    if unit is None:
        return
    unit.attack += sign * params.get('attack', 0)
    unit.health += sign * params.get('health', 0)
    _check_lethal(match, unit)


def buff(match: 'Match', params: dict) -> None:
    _modify_stats(match, params, 1)


def debuff(match: 'Match', params: dict) -> None:
    _modify_stats(match, params, -1)


def add_counter(match: 'Match', params: dict) -> None:
    unit = _target_entity(match, params)
    if unit is None:
        return
    unit.counters += params.get('value', 1)


def remove_counter(match: 'Match', params: dict) -> None:
    unit = _target_entity(match, params)
    if unit is None:
        return
    unit.counters = max(0, unit.counters - params.get('value', 1))


def grant_keyword(match: 'Match', params: dict) -> None:
    unit = _target_entity(match, params)
    keyword = (params.get('keyword') or '').lower()
    if unit is None or not keyword:
        return
    unit.granted_keywords.add(keyword)


def gain_attack_allied(match: 'Match', params: dict) -> None:
    player = _player(match, params)
    if not player:
        return
    value = params.get('value', 0)
    for unit in player.board:
        unit.attack += value


# =============================================================================
# Entity creation and identity
# =============================================================================

def _summon(match: 'Match', params: dict, is_token: bool) -> None:
    player = _player(match, params)
    if not player:
        return
    unit = match.zones.create_entity(player.id, params.get('card_id'), is_token=is_token)
    if unit is None:
        return
    match.zones.put_onto_board(unit)
    logger.debug("Summoned %s as %s for %s", unit.card_id, unit.id, player.id)


def summon(match: 'Match', params: dict) -> None:
    _summon(match, params, is_token=False)


def create_token(match: 'Match', params: dict) -> None:
    _summon(match, params, is_token=True)


def transform(match: 'Match', params: dict) -> None:
    unit = _target_entity(match, params)
    card_def = match.cards.get(params.get('card_id'))
    if unit is None or card_def is None:
        return
    unit.card_id = card_def.id
    unit.attack = card_def.attack
    unit.health = card_def.health


def champion_evolve(match: 'Match', params: dict) -> None:
    unit = match.zones.find_entity(params.get('champion_entity_id'))
    card_def = match.cards.get(params.get('to_card_id'))
    if unit is None or card_def is None:
        return

    slot = match.zones.remove_entity(unit)
    match.champions.forget(unit.id)
    evolved = match.zones.create_entity(unit.owner_id, card_def.id)
    match.zones.put_onto_board(evolved, slot)
    match.bus.publish(EventType.EVOLVE, {'from': unit, 'entity': evolved, 'player_id': unit.owner_id})
    logger.info("Champion %s evolved into %s (%s)", unit.id, evolved.id, card_def.id)


# =============================================================================
# Deck
# =============================================================================

def _take_from_deck(match: 'Match', params: dict, to_zone: ZoneType, event_type: EventType) -> None:
    player = _player(match, params)
    if not player:
        return
    for _ in range(params.get('value', 1)):
        if not player.deck:
            break
        card_id = player.deck.pop(0)
        player.zones[to_zone].append(card_id)
        match.bus.publish(event_type, {'player_id': player.id, 'card_id': card_id})


def draw(match: 'Match', params: dict) -> None:
    _take_from_deck(match, params, ZoneType.HAND, EventType.DRAW)


def mill(match: 'Match', params: dict) -> None:
    _take_from_deck(match, params, ZoneType.GRAVEYARD, EventType.MILL)


def shuffle_deck(match: 'Match', params: dict) -> None:
    player = _player(match, params)
    if player:
        match.rng.shuffle(player.deck)


# =============================================================================
# Zone specializations
# =============================================================================

def _move_entity(match: 'Match', params: dict, to_zone: ZoneType) -> None:
    unit = _target_entity(match, params)
    if unit is None:
        return
    match.zones.move_between_zones(unit.owner_id, unit.id, ZoneType.BOARD, to_zone)


def recall(match: 'Match', params: dict) -> None:
    _move_entity(match, params, ZoneType.HAND)


def obliterate(match: 'Match', params: dict) -> None:
    _move_entity(match, params, ZoneType.BANISHED)


def return_to_hand(match: 'Match', params: dict) -> None:
    match.zones.move_between_zones(
        params.get('player_id'), params.get('card_id'), ZoneType.GRAVEYARD, ZoneType.HAND
    )


def revive(match: 'Match', params: dict) -> None:
    match.zones.move_between_zones(
        params.get('player_id'), params.get('card_id'), ZoneType.GRAVEYARD, ZoneType.BOARD,
        as_entity=True,
    )


def reanimate(match: 'Match', params: dict) -> None:
    unit = match.zones.move_between_zones(
        params.get('player_id'), params.get('card_id'), ZoneType.GRAVEYARD, ZoneType.BOARD,
        as_entity=True,
    )
    if isinstance(unit, Entity):
        unit.attack += params.get('attack', 0)
        unit.health += params.get('health', 0)
        _check_lethal(match, unit)


def move_to_zone(match: 'Match', params: dict) -> None:
    from_zone = params.get('from')
    to_zone = ZoneType(params.get('to'))
    match.zones.move_between_zones(
        params.get('player_id'),
        params.get('card_id') or params.get('entity_id'),
        ZoneType(from_zone) if from_zone else None,
        to_zone,
        # Only entities live on the board
        as_entity=params.get('as_entity', to_zone == ZoneType.BOARD),
    )


# =============================================================================
# Dispatch
# =============================================================================

EFFECT_HANDLERS: dict[EffectKind, EffectHandler] = {
    EffectKind.DEAL_DAMAGE: deal_damage,
    EffectKind.HEAL: heal,
    EffectKind.SUMMON: summon,
    EffectKind.CREATE_TOKEN: create_token,
    EffectKind.DESTROY: destroy,
    EffectKind.BUFF: buff,
    EffectKind.DEBUFF: debuff,
    EffectKind.ADD_COUNTER: add_counter,
    EffectKind.REMOVE_COUNTER: remove_counter,
    EffectKind.TRANSFORM: transform,
    EffectKind.CHAMPION_EVOLVE: champion_evolve,
    EffectKind.DRAW: draw,
    EffectKind.MILL: mill,
    EffectKind.RECALL: recall,
    EffectKind.OBLITERATE: obliterate,
    EffectKind.RETURN_TO_HAND: return_to_hand,
    EffectKind.REVIVE: revive,
    EffectKind.REANIMATE: reanimate,
    EffectKind.MOVE_TO_ZONE: move_to_zone,
    EffectKind.SHUFFLE_DECK: shuffle_deck,
    EffectKind.GAIN_ATTACK_ALLIED: gain_attack_allied,
    EffectKind.GRANT_KEYWORD: grant_keyword,
}

_missing = set(EffectKind) - set(EFFECT_HANDLERS)
if _missing:
    raise RuntimeError(f"Effects without a handler: {sorted(k.value for k in _missing)}")


def apply_effect(match: 'Match', kind: EffectKind, params: dict) -> None:
    EFFECT_HANDLERS[kind](match, params)


# =============================================================================
# Building actions from card data
# =============================================================================

_PARAM_ALIASES = {
    'playerId': 'player_id',
    'cardId': 'card_id',
    'entityId': 'entity_id',
    'championEntityId': 'champion_entity_id',
    'toCardId': 'to_card_id',
    'asEntity': 'as_entity',
}


def action_from_descriptor(
    match: 'Match',
    descriptor: dict,
    player_id: str,
    speed: Speed = Speed.SLOW,
    source_id: Optional[str] = None,
) -> Action:
    """
    Turn a card-data effect descriptor ({action, value, target, ...}) into an Action.

    Target data is converted to a descriptor from player_id's point of view.
    """
    params = {'player_id': player_id}
    for key, value in descriptor.items():
        if key == 'action':
            continue
        params[_PARAM_ALIASES.get(key, key)] = value

    target = params.get('target')
    if isinstance(target, dict):
        params['target'] = target_from_dict(target, player_id, match)
    if source_id:
        params['source'] = source_id

    return Action(
        effect=EffectKind(descriptor['action']),
        params=params,
        source_player_id=player_id,
        speed=speed,
    )


def damage_action(source: Entity, target: Entity, speed: Speed) -> Action:
    """One side of a combat exchange."""
    return Action(
        effect=EffectKind.DEAL_DAMAGE,
        params={
            'value': source.attack,
            'target': EntityTarget(target.id),
            'source': source.id,
            'player_id': source.owner_id,
        },
        source_player_id=source.owner_id,
        speed=speed,
    )
