"""
Stackrift Targeting System

Maps target descriptors to a live player or board entity.
Abstract descriptors (side.selector) are resolved when the effect resolves,
so random picks only ever see units that are still on the board.
"""

from typing import Optional, Union, TYPE_CHECKING
import logging

from .types import (
    Player, Entity,
    PlayerTarget, EntityTarget, BoardSlotTarget, AbstractTarget, TargetDescriptor
)

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


SIDES = ('self', 'ally', 'enemy', 'target')
SELECTORS = ('single', 'random')


Resolved = Optional[Union[Player, Entity]]


class TargetResolver:
    """Resolves target descriptors against a match's live state."""

    def __init__(self, match: 'Match'):
        self.match = match

    def resolve(self, descriptor: Optional[TargetDescriptor]) -> Resolved:
        if descriptor is None:
            return None

        if isinstance(descriptor, PlayerTarget):
            return self.match.get_player(descriptor.player_id)

        if isinstance(descriptor, EntityTarget):
            return self.match.zones.find_entity(descriptor.entity_id)

        if isinstance(descriptor, BoardSlotTarget):
            player = self.match.get_player(descriptor.player_id)
            if not player or not 0 <= descriptor.index < len(player.board):
                return None
            return player.board[descriptor.index]

        if isinstance(descriptor, AbstractTarget):
            return self._resolve_abstract(descriptor)

        logger.debug("Unknown target descriptor %r", descriptor)
        return None

    def _resolve_abstract(self, descriptor: AbstractTarget) -> Resolved:
        perspective = self.match.get_player(descriptor.player_id)
        if not perspective:
            return None

        if descriptor.side == 'self':
            return perspective

        if descriptor.side == 'ally':
            if descriptor.selector == 'random':
                return self.pick_random(list(perspective.board))
            return perspective

        if descriptor.side == 'enemy':
            opponents = self.match.opponents_of(perspective.id)
            if not opponents:
                return None
            if descriptor.selector == 'random':
                candidates = [unit for opp in opponents for unit in opp.board]
                return self.pick_random(candidates)
            return opponents[0]

        # 'target' with no explicit id substituted
        return None

    def pick_random(self, candidates: list) -> Optional[Entity]:
        """Uniform pick from the live candidates; None when there are none."""
        if not candidates:
            return None
        return self.match.rng.choice(candidates)


def parse_target_path(path: str) -> tuple[str, str]:
    """Split a dotted target path like 'enemy.random' into (side, selector)."""
    side, _, selector = path.partition('.')
    return side, selector or 'single'


def target_from_dict(data: Optional[dict], perspective_id: str, match: 'Match') -> Optional[TargetDescriptor]:
    """
    Convert a card-data target descriptor.

    Accepted forms:
        {type: 'player', playerId}
        {type: 'entity', id}
        {type: 'board', playerId, index}
        {side, selector}
    playerId may be 'self' or 'opponent', relative to perspective_id.
    """
    if not data:
        return None

    def player_ref(ref: Optional[str]) -> Optional[str]:
        if ref in (None, 'self'):
            return perspective_id
        if ref == 'opponent':
            opponents = match.opponents_of(perspective_id)
            return opponents[0].id if opponents else None
        return ref

    kind = data.get('type')
    if kind == 'player':
        pid = player_ref(data.get('playerId'))
        return PlayerTarget(pid) if pid else None
    if kind == 'entity':
        entity_id = data.get('id') or data.get('entityId')
        return EntityTarget(entity_id) if entity_id else None
    if kind == 'board':
        pid = player_ref(data.get('playerId'))
        return BoardSlotTarget(pid, int(data.get('index', 0))) if pid else None
    if 'side' in data:
        return AbstractTarget(
            side=data['side'],
            selector=data.get('selector', 'single'),
            player_id=perspective_id,
        )

    logger.debug("Unrecognized target data %r", data)
    return None
