"""
Card script interpreter.

Walks a compiled Program and pushes one action per statement, in script
order, with the caster as the acting player. Abstract targets stay abstract
so random picks happen when each action resolves. Conditions read only the
whitelisted fields and never evaluate free text.
"""

from typing import Optional, Union, TYPE_CHECKING
import logging
import operator

from ..types import (
    Action, Entity, Player, Speed,
    AbstractTarget, EntityTarget, PlayerTarget, TargetDescriptor
)
from ..effects import EffectKind
from .nodes import (
    Program, ScriptTarget, Condition,
    DealNode, HealNode, DrawNode, DestroyNode, BuffNode, SummonNode, ConditionalNode,
)

if TYPE_CHECKING:
    from ..game import Match

logger = logging.getLogger(__name__)


COMPARISONS = {
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '<=': operator.le,
    '>': operator.gt,
    '>=': operator.ge,
}


class ScriptContext:
    """One execution of a script: who cast it, how fast, and at what."""

    def __init__(self, match: 'Match', caster_id: str, speed: Speed = Speed.SLOW,
                 explicit_target_id: Optional[str] = None):
        self.match = match
        self.caster_id = caster_id
        self.speed = speed
        self.explicit_target_id = explicit_target_id

    def opponent_id(self) -> Optional[str]:
        opponents = self.match.opponents_of(self.caster_id)
        return opponents[0].id if opponents else None

    def target(self, target: ScriptTarget) -> Optional[TargetDescriptor]:
        if target.side == 'target':
            target_id = self.explicit_target_id
            if not target_id:
                return AbstractTarget(side='target', selector=target.selector, player_id=self.caster_id)
            if self.match.get_player(target_id):
                return PlayerTarget(target_id)
            return EntityTarget(target_id)
        return AbstractTarget(side=target.side, selector=target.selector, player_id=self.caster_id)

    def push(self, effect: EffectKind, **params) -> None:
        params['player_id'] = params.get('player_id', self.caster_id)
        self.match.stack.push(Action(
            effect=effect,
            params=params,
            source_player_id=self.caster_id,
            speed=self.speed,
        ))


# =============================================================================
# Conditions
# =============================================================================

def _subject(ctx: ScriptContext, subject: str) -> Optional[Union[Player, Entity]]:
    match = ctx.match
    if subject == 'self':
        return match.get_player(ctx.caster_id)
    if subject == 'enemy':
        return match.get_player(ctx.opponent_id())
    if not ctx.explicit_target_id:
        return None
    return match.get_player(ctx.explicit_target_id) or match.zones.find_entity(ctx.explicit_target_id)


def _read_field(subject: Union[Player, Entity], name: str) -> Optional[int]:
    if isinstance(subject, Player):
        readers = {
            'life': lambda p: p.life,
            'mana': lambda p: p.current_mana,
            'max_mana': lambda p: p.max_mana,
            'hand': lambda p: len(p.hand),
            'deck': lambda p: len(p.deck),
            'board': lambda p: len(p.board),
        }
    else:
        readers = {
            'attack': lambda e: e.attack,
            'health': lambda e: e.health,
            'counters': lambda e: e.counters,
        }
    reader = readers.get(name)
    return reader(subject) if reader else None


def evaluate_condition(ctx: ScriptContext, condition: Condition) -> bool:
    """False when the subject is missing or lacks the field."""
    subject = _subject(ctx, condition.subject)
    if subject is None:
        return False
    value = _read_field(subject, condition.field)
    if value is None:
        return False
    return COMPARISONS[condition.op](value, condition.value)


# =============================================================================
# Statements
# =============================================================================

def _run_deal(ctx: ScriptContext, node: DealNode) -> None:
    ctx.push(EffectKind.DEAL_DAMAGE, value=node.value, target=ctx.target(node.target))


def _run_heal(ctx: ScriptContext, node: HealNode) -> None:
    ctx.push(EffectKind.HEAL, value=node.value, target=ctx.target(node.target))


def _run_draw(ctx: ScriptContext, node: DrawNode) -> None:
    ctx.push(EffectKind.DRAW, value=node.value)


def _run_destroy(ctx: ScriptContext, node: DestroyNode) -> None:
    ctx.push(EffectKind.DESTROY, target=ctx.target(node.target))


def _run_buff(ctx: ScriptContext, node: BuffNode) -> None:
    ctx.push(EffectKind.BUFF, target=ctx.target(node.target), attack=node.attack, health=node.health)


def _run_summon(ctx: ScriptContext, node: SummonNode) -> None:
    owner_id = ctx.caster_id if node.owner == 'self' else ctx.opponent_id()
    if owner_id is None:
        return
    ctx.push(EffectKind.SUMMON, player_id=owner_id, card_id=node.card_id)


def _run_conditional(ctx: ScriptContext, node: ConditionalNode) -> None:
    if evaluate_condition(ctx, node.condition):
        run_statements(ctx, node.body)
    else:
        logger.debug("Condition %s is false", node.condition.render_text())


STATEMENT_RUNNERS = {
    DealNode: _run_deal,
    HealNode: _run_heal,
    DrawNode: _run_draw,
    DestroyNode: _run_destroy,
    BuffNode: _run_buff,
    SummonNode: _run_summon,
    ConditionalNode: _run_conditional,
}


def run_statements(ctx: ScriptContext, statements) -> None:
    for node in statements:
        STATEMENT_RUNNERS[type(node)](ctx, node)


def execute(match: 'Match', program: Program, caster_id: str, speed: Speed = Speed.SLOW,
            explicit_target_id: Optional[str] = None) -> None:
    """Push the program's actions onto the match's stack."""
    ctx = ScriptContext(match, caster_id, speed, explicit_target_id)
    run_statements(ctx, program.statements)
