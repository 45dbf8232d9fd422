"""
Stackrift Engine

Every mutation is an effect. Every effect is announced as an event.

Core systems:
- Event Bus: direct subscribers, then the keyword fan-out
- Zone Manager: zone transitions with replacement rules
- Effect Library: one handler per EffectKind
- Keyword Triggers: data-driven keyword behavior
- Stack & Priority Engine: speed tiers, LIFO resolution, death cleanup
- Turn Manager: seven-phase cycle and mana ramp
- Card Script Compiler: tokenizer, parser, interpreter
"""

from .types import (
    # Errors
    StackriftError, CardDataError,

    # IDs
    new_id,

    # Events
    Event, EventType, EventResult,

    # Cards and state
    Speed, ZoneType, CardType, Entity, Player,
    CardDefinition, ReplacementRule, EvolutionRule,
    Action, PriorityState,

    # Targets
    PlayerTarget, EntityTarget, BoardSlotTarget, AbstractTarget, TargetDescriptor,
)

from .config import EngineConfig, DEFAULT_CONFIG

from .events import EventBus, SubscriberCategory, CATEGORY_ORDER

from .targeting import TargetResolver, target_from_dict, parse_target_path

from .zones import ZoneManager

from .effects import EffectKind, EFFECT_HANDLERS, apply_effect, action_from_descriptor

from .keywords import Keyword, KEYWORD_HANDLERS, BOARD_TICKS, effective_keywords

from .priority import StackEngine, StackState

from .turn import Phase, PHASE_ORDER, TurnManager, ManaRamp

from .champions import ChampionTracker

from .regions import register_regions, player_uses_region

from .script import ScriptParseError, Program, parse, execute

from .game import Match, load_cards, entity_to_dict


__all__ = [
    # Errors
    'StackriftError', 'CardDataError', 'ScriptParseError',

    # Types
    'new_id', 'Event', 'EventType', 'EventResult',
    'Speed', 'ZoneType', 'CardType', 'Entity', 'Player',
    'CardDefinition', 'ReplacementRule', 'EvolutionRule',
    'Action', 'PriorityState',
    'PlayerTarget', 'EntityTarget', 'BoardSlotTarget', 'AbstractTarget', 'TargetDescriptor',

    # Config
    'EngineConfig', 'DEFAULT_CONFIG',

    # Systems
    'EventBus', 'SubscriberCategory', 'CATEGORY_ORDER',
    'TargetResolver', 'target_from_dict', 'parse_target_path',
    'ZoneManager',
    'EffectKind', 'EFFECT_HANDLERS', 'apply_effect', 'action_from_descriptor',
    'Keyword', 'KEYWORD_HANDLERS', 'BOARD_TICKS', 'effective_keywords',
    'StackEngine', 'StackState',
    'Phase', 'PHASE_ORDER', 'TurnManager', 'ManaRamp',
    'ChampionTracker',
    'register_regions', 'player_uses_region',

    # Scripts
    'Program', 'parse', 'execute',

    # Match
    'Match', 'load_cards', 'entity_to_dict',
]
