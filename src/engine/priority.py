"""
Stackrift Stack & Priority Engine

States:
- IDLE: stack empty, no open window
- PRIORITY_OPEN: a window is open, players respond or pass
- RESOLVING: everyone passed, the stack drains LIFO

Burst actions never touch the stack: they execute at once followed by death
cleanup. Cascades are queued (burst queue + stack) and drained by one loop.
"""

from collections import deque
from enum import Enum, auto
from typing import Optional, TYPE_CHECKING
import logging

from .types import Action, Entity, EventType, PriorityState, Speed, ZoneType
from .effects import apply_effect
from .keywords import trigger_last_breath

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


class StackState(Enum):
    IDLE = auto()
    PRIORITY_OPEN = auto()
    RESOLVING = auto()


class StackEngine:
    """Owns the stack, the priority window and the death queue of a match."""

    def __init__(self, match: 'Match'):
        self.match = match
        self.stack: list[Action] = []
        self.priority = PriorityState()

        # entity id -> (entity, killer id); first mark wins
        self.death_queue: dict[str, tuple[Entity, Optional[str]]] = {}

        self._burst_queue: deque[Action] = deque()
        self._deferred: list[Action] = []
        self._resolving = False
        self._draining_bursts = False
        self._in_cleanup = False
        self._resolutions = 0

    @property
    def state(self) -> StackState:
        if self._resolving:
            return StackState.RESOLVING
        if self.priority.active:
            return StackState.PRIORITY_OPEN
        return StackState.IDLE

    # -------------------------------------------------------------------------
    # Pushing
    # -------------------------------------------------------------------------

    def push(self, action: Action) -> None:
        """
        Add an action.

        Burst executes now (or next, when a drain is already running).
        Fast/Slow go on the stack and open or restart the priority window.
        """
        if self._in_cleanup:
            # Resolved after the cleanup pass completes
            self._deferred.append(action)
            return

        if action.speed == Speed.BURST:
            self._burst_queue.append(action)
            if not self._resolving and not self._draining_bursts:
                self._drain_bursts()
            return

        self.stack.append(action)
        logger.debug("Pushed %s (%s), depth %d", action.effect.value, action.speed.value, len(self.stack))
        if not self._resolving:
            self._open_window(action.source_player_id)

    def _open_window(self, initiator: Optional[str]) -> None:
        if not self.priority.active:
            self.priority.active = True
            self.priority.initiator = initiator
            logger.info("Priority window opened by %s", initiator)
        # A response restarts the consent round
        self.priority.passes = {pid: False for pid in self.match.player_order}
        self.match.bus.publish(EventType.PRIORITY_OPEN, {
            'initiator': self.priority.initiator,
            'depth': len(self.stack),
        })

    # -------------------------------------------------------------------------
    # Passing and resolution
    # -------------------------------------------------------------------------

    def pass_priority(self, player_id: str) -> bool:
        """Record a pass. Returns False if there was nothing to pass on."""
        if not self.priority.active or player_id not in self.priority.passes:
            return False

        self.priority.passes[player_id] = True
        self.match.bus.publish(EventType.PRIORITY_PASS, {'player_id': player_id})

        if all(self.priority.passes.values()):
            logger.info("All players passed, resolving %d action(s)", len(self.stack))
            self._resolve_stack()
        return True

    def _resolve_stack(self) -> None:
        self._resolving = True
        self._resolutions = 0
        try:
            while self._burst_queue or self.stack:
                if self._burst_queue:
                    action = self._burst_queue.popleft()
                else:
                    action = self.stack.pop()
                self._resolve(action)
        finally:
            self._resolving = False
        self.priority = PriorityState()

    def _drain_bursts(self) -> None:
        self._draining_bursts = True
        self._resolutions = 0
        try:
            while self._burst_queue:
                self._resolve(self._burst_queue.popleft())
        finally:
            self._draining_bursts = False

    def _resolve(self, action: Action) -> None:
        self._resolutions += 1
        limit = self.match.config.max_resolutions
        if self._resolutions > limit:
            raise RuntimeError(f"Stack resolution exceeded {limit} actions - possible infinite loop")

        logger.debug("Resolving %s %r", action.effect.value, action.params)
        try:
            apply_effect(self.match, action.effect, action.params)
        except Exception:
            logger.exception("Effect %s failed", action.effect.value)
        self.run_death_cleanup()

    # -------------------------------------------------------------------------
    # Death
    # -------------------------------------------------------------------------

    def mark_for_death(self, entity: Entity, killer_id: Optional[str] = None) -> None:
        """Queue an entity for the next cleanup pass. Repeat marks are ignored."""
        if entity.id not in self.death_queue:
            self.death_queue[entity.id] = (entity, killer_id)

    def run_death_cleanup(self) -> None:
        """
        Kill every queued entity still on the board.

        Per entity: OnDie, last breath, then board -> graveyard. Actions
        pushed meanwhile are held back and pushed once the pass is over.
        """
        if self._in_cleanup:
            return

        zones = self.match.zones
        self._in_cleanup = True
        try:
            while self.death_queue:
                batch = list(self.death_queue.values())
                self.death_queue.clear()
                for entity, killer_id in batch:
                    if not zones.is_on_board(entity):
                        continue
                    logger.debug("Processing death of %s (killer %s)", entity.id, killer_id)
                    self.match.bus.publish(EventType.DIE, {
                        'entity': entity,
                        'killer': killer_id,
                        'player_id': entity.owner_id,
                    })
                    try:
                        trigger_last_breath(self.match, entity)
                    except Exception:
                        logger.exception("Last breath failed for %s", entity.id)
                    zones.move_between_zones(entity.owner_id, entity.id, ZoneType.BOARD, ZoneType.GRAVEYARD)
        finally:
            self._in_cleanup = False

        deferred, self._deferred = self._deferred, []
        for action in deferred:
            self.push(action)
