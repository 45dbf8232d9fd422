"""
Match Routes

Endpoints for creating, joining and driving matches.
"""

from fastapi import APIRouter, HTTPException
from typing import Optional

from src.engine import CardDataError

from ..session import session_manager, MatchSession
from ..models import (
    CreateMatchRequest, CreateMatchResponse, JoinMatchResponse,
    SetDeckRequest, IntentRequest, IntentResultResponse,
    GameStateResponse,
)

router = APIRouter(prefix="/match", tags=["match"])


def _get_session(match_id: str) -> MatchSession:
    session = session_manager.get_session(match_id)
    if not session:
        raise HTTPException(status_code=404, detail="Match not found")
    return session


@router.post("/create", response_model=CreateMatchResponse)
async def create_match(request: CreateMatchRequest) -> CreateMatchResponse:
    """
    Create a new match from a card table (and optional regions).

    Returns the match_id; players join separately.
    """
    try:
        session = await session_manager.create_session(
            cards=request.cards,
            regions=request.regions,
            seed=request.seed,
        )
    except CardDataError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CreateMatchResponse(match_id=session.id, card_count=len(session.match.cards))


@router.post("/{match_id}/join", response_model=JoinMatchResponse)
async def join_match(match_id: str) -> JoinMatchResponse:
    """Add a player to a match that has not started yet."""
    session = _get_session(match_id)
    if session.match.started:
        raise HTTPException(status_code=400, detail="Match already started")

    player_id = await session.add_player()
    return JoinMatchResponse(match_id=match_id, player_id=player_id, ready=session.match.ready())


@router.post("/{match_id}/deck", response_model=IntentResultResponse)
async def set_deck(match_id: str, request: SetDeckRequest) -> IntentResultResponse:
    """Set a player's deck. Shorthand for a set_deck intent."""
    session = _get_session(match_id)
    accepted, message = await session.handle_intent(
        request.player_id, {'type': 'set_deck', 'cards': list(request.cards)}
    )
    return IntentResultResponse(accepted=accepted, message=message)


@router.post("/{match_id}/start")
async def start_match(match_id: str) -> dict:
    """Deal opening hands and begin turn 1."""
    session = _get_session(match_id)
    if not await session.start():
        raise HTTPException(status_code=400, detail="Match cannot start")
    return {"status": "started", "match_id": match_id}


@router.get("/{match_id}/state", response_model=GameStateResponse)
async def get_state(match_id: str, player_id: Optional[str] = None) -> GameStateResponse:
    """Get the state snapshot as seen by player_id."""
    session = _get_session(match_id)
    if not player_id or session.match.get_player(player_id) is None:
        raise HTTPException(status_code=404, detail="Player not found")
    return session.get_client_state(player_id)


@router.post("/{match_id}/intent", response_model=IntentResultResponse)
async def submit_intent(match_id: str, request: IntentRequest) -> IntentResultResponse:
    """
    Submit a player intent.

    Rejected intents change nothing; the response says so.
    """
    session = _get_session(match_id)
    if session.match.get_player(request.player_id) is None:
        raise HTTPException(status_code=404, detail="Player not found")

    accepted, message = await session.handle_intent(request.player_id, request.to_intent())
    return IntentResultResponse(
        accepted=accepted,
        message=message,
        new_state=session.get_client_state(request.player_id),
    )


@router.delete("/{match_id}")
async def delete_match(match_id: str) -> dict:
    """
    Delete a match and clean up resources.
    """
    _get_session(match_id)
    await session_manager.remove_session(match_id)
    return {"status": "deleted", "match_id": match_id}
