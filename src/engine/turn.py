"""
Stackrift Turn Manager

Seven phases per turn, in a fixed cycle:
START -> DRAW -> MAIN -> ATTACK_DECLARE -> BLOCK_DECLARE -> DAMAGE_RESOLVE -> END

Leaving END starts the next player's turn. Entering DRAW ramps mana and
draws one card. Attacks are never automatic; they come in as intents.
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING
from enum import Enum
import logging

from .types import EventType, Player

if TYPE_CHECKING:
    from .game import Match

logger = logging.getLogger(__name__)


class Phase(Enum):
    START = "START"
    DRAW = "DRAW"
    MAIN = "MAIN"
    ATTACK_DECLARE = "ATTACK_DECLARE"
    BLOCK_DECLARE = "BLOCK_DECLARE"
    DAMAGE_RESOLVE = "DAMAGE_RESOLVE"
    END = "END"


PHASE_ORDER = list(Phase)


@dataclass
class TurnState:
    """Current state of the turn."""
    turn_number: int = 0
    active_player_id: Optional[str] = None
    phase: Phase = Phase.START
    # Phase advances so far; mulligans are only legal before the first
    advances: int = 0


class ManaRamp:
    """
    Crystal-style mana:
    - Gain 1 max mana per turn, up to the configured ceiling
    - Refill to max on the draw
    """

    def __init__(self, ceiling: int):
        self.ceiling = ceiling

    def ramp(self, player: Player) -> None:
        if player.max_mana < self.ceiling:
            player.max_mana += 1
        player.current_mana = player.max_mana

    def can_pay(self, player: Player, cost: int) -> bool:
        return player.current_mana >= cost

    def pay(self, player: Player, cost: int) -> bool:
        """
        Deduct a cost from the player's current mana.

        Returns:
            True if payment succeeded, False if insufficient mana
        """
        if not self.can_pay(player, cost):
            return False
        player.current_mana -= cost
        return True


class TurnManager:
    """Drives phase transitions for a match."""

    def __init__(self, match: 'Match'):
        self.match = match
        self.turn_state = TurnState()
        self.mana = ManaRamp(match.config.max_mana)
        self.turn_order: list[str] = []
        self.current_player_index = 0

    @property
    def turn_number(self) -> int:
        return self.turn_state.turn_number

    @property
    def active_player(self) -> Optional[str]:
        return self.turn_state.active_player_id

    @property
    def phase(self) -> Phase:
        return self.turn_state.phase

    def start_game(self, turn_order: list[str]) -> None:
        """Begin turn 1 in the START phase with the first player active."""
        self.turn_order = list(turn_order)
        self.current_player_index = 0
        self.turn_state = TurnState(
            turn_number=1,
            active_player_id=self.turn_order[0],
            phase=Phase.START,
        )
        logger.info("Turn 1 begins for %s", self.active_player)
        bus = self.match.bus
        bus.publish(EventType.GAME_START, {'turn_order': list(self.turn_order)})
        bus.publish(EventType.TURN_START, {'player_id': self.active_player, 'turn': 1})
        bus.publish(EventType.PHASE_START, {'phase': Phase.START.value, 'player_id': self.active_player})
        self.match.stack.run_death_cleanup()

    def advance(self) -> Phase:
        """Move to the next phase, wrapping into the next player's turn."""
        bus = self.match.bus
        state = self.turn_state

        bus.publish(EventType.PHASE_END, {'phase': state.phase.value, 'player_id': state.active_player_id})

        index = PHASE_ORDER.index(state.phase) + 1
        if index >= len(PHASE_ORDER):
            index = 0
            self.current_player_index = (self.current_player_index + 1) % len(self.turn_order)
            state.turn_number += 1
            state.active_player_id = self.turn_order[self.current_player_index]
            logger.info("Turn %d begins for %s", state.turn_number, state.active_player_id)
            bus.publish(EventType.TURN_START, {'player_id': state.active_player_id, 'turn': state.turn_number})

        state.phase = PHASE_ORDER[index]
        state.advances += 1
        logger.info("Phase %s (player %s)", state.phase.value, state.active_player_id)
        bus.publish(EventType.PHASE_START, {'phase': state.phase.value, 'player_id': state.active_player_id})

        if state.phase == Phase.DRAW:
            self._do_draw_step()
        elif state.phase == Phase.END:
            bus.publish(EventType.END_TURN, {'player_id': state.active_player_id, 'turn': state.turn_number})

        self.match.stack.run_death_cleanup()
        return state.phase

    def _do_draw_step(self) -> None:
        player = self.match.get_player(self.active_player)
        if not player:
            return
        self.mana.ramp(player)
        self.match.draw_cards(player, 1)
