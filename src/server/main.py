"""
Stackrift API Server

FastAPI application with Socket.IO for real-time match updates.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
import socketio

from .routes import match_router
from .session import session_manager
from .models import WSJoinMatch, IntentRequest

logger = logging.getLogger(__name__)


# =============================================================================
# Socket.IO Setup
# =============================================================================

sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins='*',
    logger=False,
    engineio_logger=False
)


@sio.event
async def connect(sid, environ):
    """Greet a new socket with its sid."""
    logger.info("Client connected: %s", sid)
    await sio.emit('connected', {'sid': sid}, to=sid)


@sio.event
async def disconnect(sid):
    """Unbind the socket and tell the rest of the match."""
    logger.info("Client disconnected: %s", sid)

    result = session_manager.get_session_by_socket(sid)
    if result:
        session, player_id = result
        session.disconnect_socket(sid)

        # Others in the match
        for other_sid in session.player_sockets.values():
            await sio.emit('player_disconnected', {
                'player_id': player_id
            }, to=other_sid)


@sio.event
async def join_match(sid, data):
    """
    Bind this socket to a player of a match.

    Expected data: { match_id: string, player_id: string }
    """
    try:
        request = WSJoinMatch(**(data or {}))
    except ValidationError:
        await sio.emit('error', {'message': 'match_id and player_id required'}, to=sid)
        return

    session = session_manager.get_session(request.match_id)
    if not session:
        await sio.emit('error', {'message': 'Match not found'}, to=sid)
        return
    if session.match.get_player(request.player_id) is None:
        await sio.emit('error', {'message': 'Player not found'}, to=sid)
        return

    session.connect_socket(request.player_id, sid)
    await sio.enter_room(sid, f"match_{request.match_id}")

    async def on_state_change(pid, state):
        socket_id = session.player_sockets.get(pid)
        if socket_id:
            await sio.emit('game_state', state, to=socket_id)

    session.on_state_change = on_state_change

    # Send current game state
    state = session.get_client_state(request.player_id)
    await sio.emit('game_state', state.model_dump(), to=sid)

    await sio.emit('player_joined', {
        'player_id': request.player_id,
        'match_id': request.match_id
    }, room=f"match_{request.match_id}")


@sio.event
async def leave_match(sid, data):
    """
    Leave a match room.

    Expected data: { match_id: string }
    """
    match_id = (data or {}).get('match_id')
    if not match_id:
        return
    await sio.leave_room(sid, f"match_{match_id}")

    session = session_manager.get_session(match_id)
    if session:
        player_id = session.disconnect_socket(sid)
        if player_id:
            await sio.emit('player_left', {
                'player_id': player_id
            }, room=f"match_{match_id}")


@sio.event
async def intent(sid, data):
    """
    Handle a player intent via WebSocket.

    Expected data: { match_id: string, ...IntentRequest fields }
    Snapshots go out through the session's state callback.
    """
    data = dict(data or {})
    match_id = data.pop('match_id', None)
    if not match_id:
        await sio.emit('error', {'message': 'match_id required'}, to=sid)
        return

    session = session_manager.get_session(match_id)
    if not session:
        await sio.emit('error', {'message': 'Match not found'}, to=sid)
        return

    try:
        request = IntentRequest(**data)
    except ValidationError as e:
        await sio.emit('intent_error', {'accepted': False, 'message': str(e)}, to=sid)
        return

    accepted, message = await session.handle_intent(request.player_id, request.to_intent())
    if not accepted:
        await sio.emit('intent_error', {'accepted': False, 'message': message}, to=sid)


# =============================================================================
# FastAPI Application
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log server start and stop."""
    logger.info("Stackrift API Server starting...")
    yield
    logger.info("Stackrift API Server shutting down...")


app = FastAPI(
    title="Stackrift API",
    description="Card game rules engine with real-time updates",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(match_router, prefix="/api")


@app.get("/health")
async def health_check():
    """Liveness probe."""
    return {"status": "healthy", "service": "stackrift-api"}


@app.get("/")
async def root():
    """Service info and links."""
    return {
        "name": "Stackrift API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health"
    }


# Mount Socket.IO
socket_app = socketio.ASGIApp(sio, app)


def create_app():
    """ASGI entry point combining Socket.IO and FastAPI."""
    return socket_app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "src.server.main:socket_app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
