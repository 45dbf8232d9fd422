"""
Stackrift Core Types

State is mutated by effects. Every mutation is announced as an Event.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional, Union, TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from .effects import EffectKind


# =============================================================================
# Errors
# =============================================================================

class StackriftError(Exception):
    """Base class for engine errors."""


class CardDataError(StackriftError):
    """Card table entry that cannot be turned into a CardDefinition."""


# =============================================================================
# IDs
# =============================================================================

def new_id() -> str:
    return str(uuid4())[:8]


# =============================================================================
# Event Types
# =============================================================================

class EventType(Enum):
    # Values are the names card data and region files use.

    # Board lifecycle
    ENTER_PLAY = "OnEnterPlay"
    LEAVE_PLAY = "OnLeavePlay"
    DIE = "OnDie"
    EVOLVE = "OnEvolve"

    # Zones
    MOVE = "OnMove"
    ENTER_GRAVEYARD = "OnEnterGraveyard"
    ENTER_EXILE = "OnEnterExile"
    DRAW = "OnDraw"
    MILL = "OnMill"

    # Combat and stats
    ATTACK = "OnAttack"
    DAMAGE_DEALT = "OnDamageDealt"
    HEAL = "OnHeal"

    # Card actions
    PLAY_CARD = "OnPlayCard"

    # Turn structure
    TURN_START = "OnTurnStart"
    END_TURN = "OnEndTurn"
    PHASE_START = "OnPhaseStart"
    PHASE_END = "OnPhaseEnd"

    # Priority
    PRIORITY_OPEN = "OnPriorityOpen"
    PRIORITY_PASS = "OnPriorityPass"

    # Meta
    GAME_START = "OnGameStart"


class EventResult(Enum):
    UNHANDLED = auto()   # Default behavior proceeds
    SUPPRESSED = auto()  # A handler replaced the default behavior


@dataclass
class Event:
    type: EventType
    payload: dict = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    timestamp: int = 0


# =============================================================================
# Speeds and Zones
# =============================================================================

class Speed(Enum):
    BURST = "Burst"  # Resolves immediately, no window
    FAST = "Fast"
    SLOW = "Slow"


class ZoneType(Enum):
    DECK = "deck"
    HAND = "hand"
    BOARD = "board"
    GRAVEYARD = "graveyard"
    EXILE = "exile"
    BANISHED = "banished"
    LIMBO = "limbo"


# Search order when an item is not where a move said it would be
ZONE_SEARCH_ORDER = (
    ZoneType.HAND,
    ZoneType.DECK,
    ZoneType.BOARD,
    ZoneType.GRAVEYARD,
    ZoneType.EXILE,
    ZoneType.BANISHED,
    ZoneType.LIMBO,
)


class CardType(Enum):
    UNIT = "unit"
    SPELL = "spell"


# =============================================================================
# Board Entities
# =============================================================================

@dataclass
class Entity:
    """A card instantiated onto a board."""
    id: str
    card_id: str
    attack: int
    health: int
    owner_id: str
    counters: int = 0
    status: dict[str, Any] = field(default_factory=dict)
    granted_keywords: set[str] = field(default_factory=set)
    provoked_by: Optional[str] = None
    is_token: bool = False


ZoneItem = Union[str, Entity]


def item_key(item: ZoneItem) -> str:
    """Card id for raw cards, entity id for board entities."""
    return item.id if isinstance(item, Entity) else item


# =============================================================================
# Player
# =============================================================================

@dataclass
class Player:
    id: str
    life: int = 20
    current_mana: int = 0
    max_mana: int = 0
    zones: dict[ZoneType, list] = field(
        default_factory=lambda: {zone: [] for zone in ZoneType}
    )
    mulliganed: bool = False
    session: Any = None

    @property
    def deck(self) -> list[str]:
        return self.zones[ZoneType.DECK]

    @property
    def hand(self) -> list[str]:
        return self.zones[ZoneType.HAND]

    @property
    def board(self) -> list[Entity]:
        return self.zones[ZoneType.BOARD]

    @property
    def graveyard(self) -> list[str]:
        return self.zones[ZoneType.GRAVEYARD]

    @property
    def exile(self) -> list[str]:
        return self.zones[ZoneType.EXILE]

    @property
    def banished(self) -> list[str]:
        return self.zones[ZoneType.BANISHED]

    @property
    def limbo(self) -> list[str]:
        return self.zones[ZoneType.LIMBO]


# =============================================================================
# Card Definition (template for creating entities)
# =============================================================================

@dataclass(frozen=True)
class ReplacementRule:
    """Redirects a zone transition, e.g. death into exile instead of graveyard."""
    on: str                # 'death' | 'move'
    from_zone: ZoneType
    to_zone: ZoneType
    instead: dict

    def matches(self, event: str, from_zone: ZoneType, to_zone: ZoneType) -> bool:
        return self.on == event and self.from_zone == from_zone and self.to_zone == to_zone

    def destination(self, default: ZoneType) -> ZoneType:
        if self.instead.get('banish'):
            return ZoneType.BANISHED
        target = self.instead.get('moveTo') or self.instead.get('returnTo')
        return ZoneType(target) if target else default


@dataclass(frozen=True)
class EvolutionRule:
    target_card_id: str
    play_count: int


@dataclass(frozen=True)
class CardDefinition:
    """Immutable card data, consumed from an external card table."""
    id: str
    type: CardType
    cost: int = 0
    attack: int = 0
    health: int = 0
    keywords: frozenset = frozenset()
    regions: tuple = ()
    speed: Speed = Speed.SLOW
    effects: tuple = ()
    last_breath: Optional[dict] = None
    replacements: tuple = ()
    evolution: Optional[EvolutionRule] = None
    champion: bool = False
    script: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'CardDefinition':
        """
        Build a definition from card-table data.

        Accepts the card file layout: {id, type, cost, stats: {attack, health},
        keywords, regions, speed, effects, lastbreathEffect, replacement,
        champion, evolveTo: {cardId, condition: {playCount}}, script}.
        """
        # Deferred: effects and keywords import this module
        from .effects import EffectKind
        from .keywords import Keyword

        card_id = data.get('id')
        if not card_id:
            raise CardDataError(f"Card entry without id: {data!r}")

        try:
            card_type = CardType(data.get('type', 'unit'))
            speed = Speed(data.get('speed', 'Slow'))
        except ValueError as e:
            raise CardDataError(f"Card {card_id}: {e}") from e

        keywords = frozenset(k.lower() for k in data.get('keywords', []))
        for keyword in keywords:
            if not Keyword.is_known(keyword):
                raise CardDataError(f"Card {card_id}: unknown keyword '{keyword}'")

        descriptors = list(data.get('effects', []))
        if data.get('lastbreathEffect'):
            descriptors.append(data['lastbreathEffect'])
        for descriptor in descriptors:
            try:
                EffectKind(descriptor.get('action'))
            except ValueError as e:
                raise CardDataError(f"Card {card_id}: unknown effect {descriptor.get('action')!r}") from e

        if data.get('lastbreathEffect'):
            try:
                Speed(data['lastbreathEffect'].get('speed', 'Slow'))
            except ValueError as e:
                raise CardDataError(f"Card {card_id}: bad last breath speed {data['lastbreathEffect']['speed']!r}") from e

        replacements = []
        for rule in data.get('replacement', []):
            try:
                replacements.append(ReplacementRule(
                    on=rule['on'],
                    from_zone=ZoneType(rule['from']),
                    to_zone=ZoneType(rule['to']),
                    instead=dict(rule.get('instead') or {}),
                ))
            except (KeyError, ValueError) as e:
                raise CardDataError(f"Card {card_id}: bad replacement rule {rule!r}") from e

        evolution = None
        evolve_to = data.get('evolveTo')
        if evolve_to:
            condition = evolve_to.get('condition') or {}
            evolution = EvolutionRule(
                target_card_id=evolve_to['cardId'],
                play_count=int(condition.get('playCount', 1)),
            )

        stats = data.get('stats') or {}
        return cls(
            id=card_id,
            type=card_type,
            cost=int(data.get('cost', 0)),
            attack=int(stats.get('attack', 0)),
            health=int(stats.get('health', 0)),
            keywords=keywords,
            regions=tuple(data.get('regions', [])),
            speed=speed,
            effects=tuple(data.get('effects', [])),
            last_breath=data.get('lastbreathEffect'),
            replacements=tuple(replacements),
            evolution=evolution,
            champion=bool(data.get('champion', False)),
            script=data.get('script'),
        )


# =============================================================================
# Actions and Priority
# =============================================================================

@dataclass
class Action:
    """A pending effect invocation, alive only while on the stack."""
    effect: 'EffectKind'
    params: dict = field(default_factory=dict)
    source_player_id: Optional[str] = None
    speed: Speed = Speed.SLOW


@dataclass
class PriorityState:
    active: bool = False
    initiator: Optional[str] = None
    passes: dict[str, bool] = field(default_factory=dict)


# =============================================================================
# Target Descriptors
# =============================================================================

@dataclass(frozen=True)
class PlayerTarget:
    player_id: str


@dataclass(frozen=True)
class EntityTarget:
    entity_id: str


@dataclass(frozen=True)
class BoardSlotTarget:
    player_id: str
    index: int


@dataclass(frozen=True)
class AbstractTarget:
    """side.selector seen from player_id, e.g. enemy.random."""
    side: str          # self | ally | enemy | target
    selector: str = 'single'  # single | random
    player_id: Optional[str] = None


TargetDescriptor = Union[PlayerTarget, EntityTarget, BoardSlotTarget, AbstractTarget]
