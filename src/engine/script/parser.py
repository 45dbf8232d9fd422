"""
Card script parser.

Statements:
    deal N to <target>
    heal N to <target>
    draw N
    destroy <target>
    buff <target> +A/+H
    summon "cardId" for <self|enemy>
    if <subject>.<field> <op> N then <statements> end

Statements are separated by ';' (optional). Any token outside this grammar
is an error; nothing is ever skipped.
"""

from typing import Optional
import re

from ..types import StackriftError
from .tokenizer import Token, tokenize
from .nodes import (
    Program, ScriptTarget, Condition,
    DealNode, HealNode, DrawNode, DestroyNode, BuffNode, SummonNode, ConditionalNode,
)


class ScriptParseError(StackriftError):
    """A card script that does not compile. Carries the offending token."""

    def __init__(self, message: str, token: Optional[str] = None, position: Optional[int] = None):
        if token is None:
            detail = f"{message} (at end of script)"
        else:
            detail = f"{message}: got {token!r} at position {position}"
        super().__init__(detail)
        self.token = token
        self.position = position


TARGET_SIDES = ('self', 'ally', 'enemy', 'target')
TARGET_SELECTORS = ('single', 'random')
SUMMON_OWNERS = ('self', 'enemy')

CONDITION_SUBJECTS = ('self', 'enemy', 'target')
PLAYER_FIELDS = ('life', 'mana', 'max_mana', 'hand', 'deck', 'board')
ENTITY_FIELDS = ('attack', 'health', 'counters')
CONDITION_OPS = ('==', '!=', '<', '<=', '>', '>=')

_INT_RE = re.compile(r'^\d+$')
_SIGNED_INT_RE = re.compile(r'^-?\d+$')
_BUFF_RE = re.compile(r'^([+-]\d+)/([+-]\d+)$')
_CARD_ID_RE = re.compile(r'^"([^"]+)"$')


class Parser:
    """Recursive descent over a token list."""

    def __init__(self, tokens: list[Token]):
        self.tokens = tokens
        self.index = 0

    # -------------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------------

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def next(self, expected: str) -> Token:
        token = self.peek()
        if token is None:
            raise ScriptParseError(f"Expected {expected}")
        self.index += 1
        return token

    def expect(self, word: str) -> Token:
        token = self.next(f"'{word}'")
        if token.text != word:
            raise ScriptParseError(f"Expected '{word}'", token.text, token.pos)
        return token

    def integer(self, pattern=_INT_RE) -> int:
        token = self.next("a number")
        if not pattern.match(token.text):
            raise ScriptParseError("Expected a number", token.text, token.pos)
        return int(token.text)

    # -------------------------------------------------------------------------
    # Grammar
    # -------------------------------------------------------------------------

    def parse_program(self) -> Program:
        statements = self.parse_statements(terminator=None)
        return Program(statements=tuple(statements))

    def parse_statements(self, terminator: Optional[str]) -> list:
        statements = []
        while True:
            token = self.peek()
            if token is None:
                if terminator is not None:
                    raise ScriptParseError(f"Expected '{terminator}'")
                return statements
            if token.text == terminator:
                return statements
            if token.text == ';':
                self.index += 1
                continue
            statements.append(self.parse_statement())

    def parse_statement(self):
        token = self.next("a statement")
        word = token.text

        if word == 'deal':
            value = self.integer()
            self.expect('to')
            return DealNode(value=value, target=self.parse_target())

        if word == 'heal':
            value = self.integer()
            self.expect('to')
            return HealNode(value=value, target=self.parse_target())

        if word == 'draw':
            return DrawNode(value=self.integer())

        if word == 'destroy':
            return DestroyNode(target=self.parse_target())

        if word == 'buff':
            target = self.parse_target()
            stats = self.next("a +A/+H buff")
            match = _BUFF_RE.match(stats.text)
            if not match:
                raise ScriptParseError("Expected a +A/+H buff", stats.text, stats.pos)
            return BuffNode(target=target, attack=int(match.group(1)), health=int(match.group(2)))

        if word == 'summon':
            card = self.next("a quoted card id")
            match = _CARD_ID_RE.match(card.text)
            if not match:
                raise ScriptParseError("Expected a quoted card id", card.text, card.pos)
            self.expect('for')
            owner = self.next("self or enemy")
            if owner.text not in SUMMON_OWNERS:
                raise ScriptParseError("Expected self or enemy", owner.text, owner.pos)
            return SummonNode(card_id=match.group(1), owner=owner.text)

        if word == 'if':
            condition = self.parse_condition()
            self.expect('then')
            body = self.parse_statements(terminator='end')
            self.expect('end')
            return ConditionalNode(condition=condition, body=tuple(body))

        raise ScriptParseError("Unknown statement", word, token.pos)

    def parse_target(self) -> ScriptTarget:
        token = self.next("a target")
        side, _, selector = token.text.partition('.')
        selector = selector or 'single'
        if side not in TARGET_SIDES or selector not in TARGET_SELECTORS:
            raise ScriptParseError("Expected a target like enemy.random", token.text, token.pos)
        return ScriptTarget(side=side, selector=selector)

    def parse_condition(self) -> Condition:
        token = self.next("a condition")
        subject, _, field_name = token.text.partition('.')
        if subject not in CONDITION_SUBJECTS:
            raise ScriptParseError("Expected self, enemy or target", token.text, token.pos)

        allowed = PLAYER_FIELDS + ENTITY_FIELDS if subject == 'target' else PLAYER_FIELDS
        if field_name not in allowed:
            raise ScriptParseError(f"Field not allowed for {subject}", token.text, token.pos)

        op = self.next("a comparison")
        if op.text not in CONDITION_OPS:
            raise ScriptParseError("Expected a comparison", op.text, op.pos)

        value = self.integer(_SIGNED_INT_RE)
        return Condition(subject=subject, field=field_name, op=op.text, value=value)


def parse(source: str) -> Program:
    """Compile script source. Raises ScriptParseError on the first bad token."""
    return Parser(tokenize(source)).parse_program()
