"""
Champion evolution tracking.

A champion on the board counts its owner's card plays. Once the count
reaches its card's evolution threshold a Burst ChampionEvolve is pushed.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING
import logging

from .types import Action, Entity, Speed
from .effects import EffectKind

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


@dataclass
class ChampionProgress:
    owner_id: str
    target_card_id: str
    needed: int
    play_count: int = 0


class ChampionTracker:
    """entity id -> evolution progress, for champions currently on a board."""

    def __init__(self, match: 'Match'):
        self.match = match
        self.tracked: dict[str, ChampionProgress] = {}

    def track(self, unit: Entity) -> bool:
        """Start counting plays for a unit if its card can evolve."""
        card_def = self.match.cards.get(unit.card_id)
        if not card_def or not card_def.champion or not card_def.evolution:
            return False
        self.tracked[unit.id] = ChampionProgress(
            owner_id=unit.owner_id,
            target_card_id=card_def.evolution.target_card_id,
            needed=card_def.evolution.play_count,
        )
        return True

    def forget(self, entity_id: str) -> None:
        self.tracked.pop(entity_id, None)

    def record_play(self, player_id: str) -> None:
        """Count one card play for every champion the player has in play."""
        ready = []
        for entity_id, progress in self.tracked.items():
            if progress.owner_id != player_id:
                continue
            progress.play_count += 1
            logger.debug("Champion %s play count %d/%d", entity_id, progress.play_count, progress.needed)
            if progress.play_count >= progress.needed:
                ready.append((entity_id, progress))

        for entity_id, progress in ready:
            del self.tracked[entity_id]
            self.match.stack.push(Action(
                effect=EffectKind.CHAMPION_EVOLVE,
                params={
                    'champion_entity_id': entity_id,
                    'to_card_id': progress.target_card_id,
                    'player_id': player_id,
                },
                source_player_id=player_id,
                speed=Speed.BURST,
            ))
