"""
Region passives.

A region is plain data:
    {"id": "solaris", "passives": [
        {"event": "OnTurnStart", "action": "GainAttackAllied", "value": 1},
        {"event": "OnEnterPlay", "action": "GrantKeywordOnEnter", "keyword": "fury"}]}

Each passive becomes a direct subscriber on the match's event bus. It only
applies to players who have enough cards of the region in deck, hand and board.
"""

from typing import Callable, Optional, TYPE_CHECKING
import logging

from .types import Entity, Event, EventType, ZoneType

if TYPE_CHECKING:
    from .game import Match
    from .types import Player

logger = logging.getLogger(__name__)


REGION_ZONES = (ZoneType.DECK, ZoneType.HAND, ZoneType.BOARD)


def player_uses_region(match: 'Match', player: 'Player', region_id: str) -> bool:
    """True when the player holds at least region_threshold cards of the region."""
    count = 0
    for zone in REGION_ZONES:
        for item in player.zones[zone]:
            card_id = item.card_id if isinstance(item, Entity) else item
            card_def = match.cards.get(card_id)
            if card_def and region_id in card_def.regions:
                count += 1
                if count >= match.config.region_threshold:
                    return True
    return False


# =============================================================================
# Passive actions
# =============================================================================

def _gain_attack_allied(match: 'Match', region_id: str, passive: dict, player: 'Player', event: Event) -> None:
    value = passive.get('value', 0)
    for unit in player.board:
        unit.attack += value
    logger.debug("Region %s: +%d attack to %s units", region_id, value, player.id)


def _grant_keyword_on_enter(match: 'Match', region_id: str, passive: dict, player: 'Player', event: Event) -> None:
    unit = event.payload.get('entity')
    keyword = passive.get('keyword')
    if not isinstance(unit, Entity) or not keyword:
        return
    unit.granted_keywords.add(keyword.lower())
    logger.debug("Region %s: granted %s to %s", region_id, keyword, unit.id)


PASSIVE_ACTIONS = {
    'GainAttackAllied': _gain_attack_allied,
    'GrantKeywordOnEnter': _grant_keyword_on_enter,
}


def _event_player_id(event: Event) -> Optional[str]:
    payload = event.payload
    if payload.get('player_id'):
        return payload['player_id']
    for key in ('entity', 'source', 'target'):
        unit = payload.get(key)
        if isinstance(unit, Entity):
            return unit.owner_id
    return None


# =============================================================================
# Registration
# =============================================================================

def register_regions(match: 'Match', regions) -> list[tuple[EventType, Callable]]:
    """
    Subscribe every region passive on the match's bus.

    Accepts a list of regions or a dict with a 'regions' list. Returns the
    (event type, handler) pairs that were subscribed.
    """
    if isinstance(regions, dict):
        regions = regions.get('regions', [])

    subscribed = []
    for region in regions or []:
        region_id = region.get('id')
        for passive in region.get('passives', []):
            try:
                event_type = EventType(passive.get('event'))
            except ValueError:
                logger.warning("Region %s: unknown event %r", region_id, passive.get('event'))
                continue
            action = PASSIVE_ACTIONS.get(passive.get('action'))
            if action is None:
                logger.warning("Region %s: unknown passive action %r", region_id, passive.get('action'))
                continue

            handler = _make_handler(match, region_id, passive, action)
            match.bus.subscribe(event_type, handler)
            subscribed.append((event_type, handler))
        logger.info("Registered region %s", region_id)
    return subscribed


def _make_handler(match: 'Match', region_id: str, passive: dict, action) -> Callable[[Event], None]:
    def handler(event: Event) -> None:
        player = match.get_player(_event_player_id(event))
        if not player or not player_uses_region(match, player, region_id):
            return
        action(match, region_id, passive, player, event)
    return handler
