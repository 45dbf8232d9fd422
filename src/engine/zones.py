"""
Stackrift Zone Manager

Every zone transition goes through move_between_zones:
1. LOCATE - remove the item from its zone (with a fallback search)
2. REPLACE - apply the card's replacement rule before insertion
3. INSERT - place the item, instantiating an entity when it enters the board
4. ANNOUNCE - publish the move and the zone-specific events
"""

from typing import Optional, TYPE_CHECKING
import logging

from .types import (
    Entity, EventType, ZoneItem, ZoneType, ZONE_SEARCH_ORDER,
    CardDefinition, item_key
)

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


class ZoneManager:
    """Owns entity creation and all zone-to-zone movement for a match."""

    def __init__(self, match: 'Match'):
        self.match = match

    # -------------------------------------------------------------------------
    # Entities
    # -------------------------------------------------------------------------

    def create_entity(self, owner_id: str, card_id: str, is_token: bool = False) -> Optional[Entity]:
        """Instantiate a card definition. Does not place the entity anywhere."""
        card_def = self.match.cards.get(card_id)
        if not card_def:
            logger.debug("No card definition for %s", card_id)
            return None
        return Entity(
            id=self.match.next_entity_id(),
            card_id=card_id,
            attack=card_def.attack,
            health=card_def.health,
            owner_id=owner_id,
            is_token=is_token,
        )

    def put_onto_board(self, entity: Entity, index: Optional[int] = None) -> None:
        """Place a fresh entity on its owner's board and announce it."""
        owner = self.match.get_player(entity.owner_id)
        if index is None:
            owner.board.append(entity)
        else:
            owner.board.insert(index, entity)
        self.match.bus.publish(EventType.ENTER_PLAY, {'entity': entity, 'player_id': owner.id})

    def find_entity(self, entity_id: str) -> Optional[Entity]:
        for player in self.match.players.values():
            for unit in player.board:
                if unit.id == entity_id:
                    return unit
        return None

    def is_on_board(self, entity: Entity) -> bool:
        owner = self.match.get_player(entity.owner_id)
        return bool(owner) and any(unit is entity for unit in owner.board)

    def remove_entity(self, entity: Entity) -> Optional[int]:
        """Take an entity off the board without a zone transition. Returns its slot."""
        owner = self.match.get_player(entity.owner_id)
        if not owner:
            return None
        for index, unit in enumerate(owner.board):
            if unit is entity:
                del owner.board[index]
                return index
        return None

    # -------------------------------------------------------------------------
    # Replacement rules
    # -------------------------------------------------------------------------

    def check_replacement(self, item: ZoneItem, event: str,
                          from_zone: ZoneType, to_zone: ZoneType) -> ZoneType:
        """Return the destination after the item's replacement rules."""
        card_id = item.card_id if isinstance(item, Entity) else item
        card_def: Optional[CardDefinition] = self.match.cards.get(card_id)
        if not card_def:
            return to_zone

        for rule in card_def.replacements:
            if rule.matches(event, from_zone, to_zone):
                destination = rule.destination(to_zone)
                logger.debug("Replacement for %s: %s -> %s", item_key(item), to_zone.value, destination.value)
                return destination
        return to_zone

    # -------------------------------------------------------------------------
    # Movement
    # -------------------------------------------------------------------------

    def move_between_zones(
        self,
        owner_id: str,
        item_ref: str,
        from_zone: Optional[ZoneType],
        to_zone: ZoneType,
        as_entity: bool = False,
        event: Optional[str] = None,
    ) -> Optional[ZoneItem]:
        """
        Move a card (by card id) or an entity (by entity id) between zones of its owner.

        Returns what was inserted (a card id or a new entity), or None if the
        item could not be found.
        """
        player = self.match.get_player(owner_id)
        if not player:
            logger.info("move_between_zones: unknown owner %s", owner_id)
            return None

        slot, removed = None, None
        if from_zone is not None:
            slot, removed = self._remove_from(player.zones[from_zone], item_ref)
        if removed is None:
            for zone in ZONE_SEARCH_ORDER:
                slot, removed = self._remove_from(player.zones[zone], item_ref)
                if removed is not None:
                    from_zone = zone
                    break

        if removed is None:
            logger.info("move_between_zones: item not found owner=%s item=%s", owner_id, item_ref)
            return None

        kind = event or ('death' if from_zone == ZoneType.BOARD and to_zone == ZoneType.GRAVEYARD else 'move')
        to_zone = self.check_replacement(removed, kind, from_zone, to_zone)

        bus = self.match.bus

        # A raw card entering the board becomes an entity
        if to_zone == ZoneType.BOARD and isinstance(removed, str) and as_entity:
            unit = self.create_entity(owner_id, removed)
            if unit is None:
                # No definition to instantiate: park the card where it was
                player.zones[from_zone].insert(slot, removed)
                return None
            player.board.append(unit)
            bus.publish(EventType.MOVE, {
                'item': removed, 'card_id': removed, 'entity': unit,
                'from': from_zone, 'to': to_zone, 'owner_id': owner_id,
            })
            bus.publish(EventType.ENTER_PLAY, {'entity': unit, 'player_id': owner_id})
            return unit

        # Entities leaving the board are reduced to their card id
        stored = removed.card_id if isinstance(removed, Entity) else removed
        player.zones[to_zone].append(stored)
        logger.debug("Moved %s %s -> %s for %s", item_ref, from_zone.value, to_zone.value, owner_id)

        bus.publish(EventType.MOVE, {
            'item': removed, 'card_id': stored,
            'from': from_zone, 'to': to_zone, 'owner_id': owner_id,
        })
        if to_zone == ZoneType.GRAVEYARD:
            bus.publish(EventType.ENTER_GRAVEYARD, {'item': removed, 'card_id': stored, 'owner_id': owner_id})
        if to_zone == ZoneType.EXILE:
            bus.publish(EventType.ENTER_EXILE, {'item': removed, 'card_id': stored, 'owner_id': owner_id})
        if from_zone == ZoneType.BOARD and isinstance(removed, Entity):
            self.match.champions.forget(removed.id)
            bus.publish(EventType.LEAVE_PLAY, {'entity': removed, 'player_id': owner_id, 'to': to_zone})

        return stored

    @staticmethod
    def _remove_from(zone: list, item_ref: str) -> tuple[Optional[int], Optional[ZoneItem]]:
        for index, item in enumerate(zone):
            if item_key(item) == item_ref:
                return index, zone.pop(index)
        return None, None
