"""
Card script compiler.

    program = parse("deal 2 to enemy.random; heal 1 to self")
    execute(match, program, caster_id)
"""

from .tokenizer import Token, tokenize
from .nodes import (
    Program, ScriptTarget, Condition,
    DealNode, HealNode, DrawNode, DestroyNode, BuffNode, SummonNode, ConditionalNode,
)
from .parser import ScriptParseError, parse
from .interpreter import ScriptContext, evaluate_condition, execute

__all__ = [
    'Token', 'tokenize',
    'Program', 'ScriptTarget', 'Condition',
    'DealNode', 'HealNode', 'DrawNode', 'DestroyNode', 'BuffNode', 'SummonNode', 'ConditionalNode',
    'ScriptParseError', 'parse',
    'ScriptContext', 'evaluate_condition', 'execute',
]
