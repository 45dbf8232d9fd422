"""
Match Session Management

Binds sockets to players of a Match, serializes access to it and relays
the snapshots the engine sends.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional, Callable, Any
import logging

from src.engine import Match, EngineConfig

from .models import GameStateResponse

logger = logging.getLogger(__name__)


class SessionHandle:
    """
    Delivery handle given to the engine.

    The engine calls send() synchronously; snapshots wait in the outbox
    until the session flushes them to the socket layer.
    """

    def __init__(self, player_id: str):
        self.player_id = player_id
        self.outbox: list[dict] = []

    def send(self, state: dict) -> None:
        self.outbox.append(state)

    def drain(self) -> list[dict]:
        pending, self.outbox = self.outbox, []
        return pending


@dataclass
class MatchSession:
    """
    Manages a single match.

    Provides:
    - Player socket tracking
    - One lock per match, so intents run one at a time
    - Snapshot relay to connected sockets
    """
    id: str
    match: Match

    player_sockets: dict[str, str] = field(default_factory=dict)  # player_id -> socket_id
    handles: dict[str, SessionHandle] = field(default_factory=dict)

    # Callback (player_id, state) -> awaitable, set by the socket layer
    on_state_change: Optional[Callable[[str, dict], Any]] = None

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @property
    def player_ids(self) -> list[str]:
        return list(self.match.player_order)

    async def add_player(self) -> str:
        """Add a player and bind its delivery handle."""
        async with self._lock:
            player_id = self.match.add_player()
            handle = SessionHandle(player_id)
            self.handles[player_id] = handle
            self.match.bind_session(player_id, handle)
            return player_id

    def connect_socket(self, player_id: str, socket_id: str) -> None:
        """Connect a player's socket."""
        self.player_sockets[player_id] = socket_id

    def disconnect_socket(self, socket_id: str) -> Optional[str]:
        """Disconnect a socket and return the player_id if found."""
        for pid, sid in list(self.player_sockets.items()):
            if sid == socket_id:
                del self.player_sockets[pid]
                return pid
        return None

    async def start(self) -> bool:
        async with self._lock:
            started = self.match.start()
        await self.flush()
        return started

    async def handle_intent(self, player_id: str, intent: dict) -> tuple[bool, str]:
        """Apply an intent under the match lock, then relay any snapshots."""
        async with self._lock:
            if self.match.get_player(player_id) is None:
                return False, "Unknown player"
            accepted = self.match.handle_intent(player_id, intent)
        await self.flush()
        if not accepted:
            return False, f"Intent {intent.get('type')} rejected"
        return True, "Intent accepted"

    async def flush(self) -> None:
        """Hand queued snapshots to the socket layer, oldest first."""
        for player_id, handle in self.handles.items():
            for state in handle.drain():
                if self.on_state_change is None:
                    continue
                try:
                    await self.on_state_change(player_id, state)
                except Exception:
                    logger.exception("State delivery to %s failed", player_id)

    def get_client_state(self, player_id: str) -> GameStateResponse:
        return GameStateResponse(**self.match.get_state_for_player(player_id))


class SessionManager:
    """
    Manages all active match sessions.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.sessions: dict[str, MatchSession] = {}
        self.config = config
        self._lock = asyncio.Lock()

    async def create_session(
        self,
        cards: Optional[list] = None,
        regions: Optional[list] = None,
        seed: Optional[int] = None,
    ) -> MatchSession:
        """Create a new match. Raises CardDataError for a bad card table."""
        async with self._lock:
            match = Match(cards=cards, config=self.config or EngineConfig.from_env(), seed=seed)
            if regions:
                match.register_regions(regions)

            session = MatchSession(id=match.id, match=match)
            self.sessions[session.id] = session
            logger.info("Created match %s with %d cards", session.id, len(match.cards))
            return session

    def get_session(self, session_id: str) -> Optional[MatchSession]:
        """Get a session by ID."""
        return self.sessions.get(session_id)

    async def remove_session(self, session_id: str) -> None:
        """Remove a session."""
        async with self._lock:
            if session_id in self.sessions:
                del self.sessions[session_id]

    def get_session_by_socket(self, socket_id: str) -> Optional[tuple[MatchSession, str]]:
        """Find a session by socket ID, returning (session, player_id)."""
        for session in self.sessions.values():
            for pid, sid in session.player_sockets.items():
                if sid == socket_id:
                    return session, pid
        return None


# Global session manager instance
session_manager = SessionManager()
