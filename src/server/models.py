"""
Pydantic Models for the Stackrift API

Data transfer objects for the REST API and Socket.IO messages.
Snapshot models mirror the engine's state message field for field.
"""

from pydantic import BaseModel, Field
from typing import Optional, Any
from enum import Enum


# =============================================================================
# Enums
# =============================================================================

class IntentType(str, Enum):
    """Intents a player can send."""
    SET_DECK = "set_deck"
    MULLIGAN = "mulligan"
    PASS = "pass"
    PLAY_CARD = "play_card"
    ATTACK = "attack"
    END_PHASE = "end_phase"


# =============================================================================
# Request Models
# =============================================================================

class CreateMatchRequest(BaseModel):
    """Request to create a new match."""
    cards: list[dict[str, Any]] = Field(default_factory=list, description="Card table entries")
    regions: list[dict[str, Any]] = Field(default_factory=list, description="Region definitions")
    seed: Optional[int] = Field(default=None, description="RNG seed for reproducible matches")


class SetDeckRequest(BaseModel):
    """Request to set a player's deck before the match starts."""
    player_id: str
    cards: list[str]


class IntentRequest(BaseModel):
    """A player intent, sent over REST or Socket.IO."""
    player_id: str
    type: IntentType
    cards: list[str] = Field(default_factory=list, description="set_deck: card ids")
    keep: list[str] = Field(default_factory=list, description="mulligan: card ids to keep")
    card_id: Optional[str] = None
    target_id: Optional[str] = None
    attacker_id: Optional[str] = None

    def to_intent(self) -> dict:
        """Engine intent dict for this request."""
        intent: dict[str, Any] = {'type': self.type.value}
        if self.type == IntentType.SET_DECK:
            intent['cards'] = list(self.cards)
        elif self.type == IntentType.MULLIGAN:
            intent['keep'] = list(self.keep)
        elif self.type == IntentType.PLAY_CARD:
            intent['cardId'] = self.card_id
            if self.target_id:
                intent['targetId'] = self.target_id
        elif self.type == IntentType.ATTACK:
            intent['attackerId'] = self.attacker_id
            intent['targetId'] = self.target_id
        return intent


# =============================================================================
# Response Models
# =============================================================================

class CreateMatchResponse(BaseModel):
    """Response after creating a match."""
    match_id: str
    card_count: int
    status: str = "created"


class JoinMatchResponse(BaseModel):
    """Response after joining a match."""
    match_id: str
    player_id: str
    ready: bool


class EntityData(BaseModel):
    """A unit on a board."""
    id: str
    cardId: str
    attack: int
    health: int
    ownerId: str
    counters: int = 0
    status: dict[str, Any] = Field(default_factory=dict)
    grantedKeywords: list[str] = Field(default_factory=list)
    provokedBy: Optional[str] = None
    isToken: bool = False


class SelfData(BaseModel):
    """Everything a player may see about themselves."""
    id: str
    hand: list[str]
    board: list[EntityData]
    graveyard: list[str]
    exile: list[str]
    banished: list[str]
    deckCount: int
    life: int
    currentMana: int
    maxMana: int


class OpponentData(BaseModel):
    """What a player may see about an opponent."""
    id: str
    board: list[EntityData]
    graveyardCount: int
    deckCount: int


class TurnData(BaseModel):
    number: int
    phase: str
    currentPlayerId: Optional[str] = None


class PriorityData(BaseModel):
    active: bool
    passes: dict[str, bool] = Field(default_factory=dict)


class GameStateResponse(BaseModel):
    """Full state snapshot for one player."""
    type: str = "state"
    me: SelfData
    opponents: list[OpponentData]
    turn: TurnData
    priority: PriorityData
    stackDepth: int


class IntentResultResponse(BaseModel):
    """Result of an intent."""
    accepted: bool
    message: str = ""
    new_state: Optional[GameStateResponse] = None


# =============================================================================
# WebSocket Message Models
# =============================================================================

class WSJoinMatch(BaseModel):
    """Join match room message."""
    match_id: str
    player_id: str
