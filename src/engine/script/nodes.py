"""
Card script syntax tree.

Every node can render itself back to script text, so a compiled program
can be shown to players exactly as the engine understood it.
"""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class ScriptTarget:
    """Dotted target path, e.g. enemy.random."""
    side: str
    selector: str = 'single'

    def render_text(self) -> str:
        if self.selector == 'single':
            return self.side
        return f"{self.side}.{self.selector}"


@dataclass(frozen=True)
class Condition:
    """<subject>.<field> <op> <value>"""
    subject: str
    field: str
    op: str
    value: int

    def render_text(self) -> str:
        return f"{self.subject}.{self.field} {self.op} {self.value}"


@dataclass(frozen=True)
class DealNode:
    value: int
    target: ScriptTarget

    def render_text(self) -> str:
        return f"deal {self.value} to {self.target.render_text()}"


@dataclass(frozen=True)
class HealNode:
    value: int
    target: ScriptTarget

    def render_text(self) -> str:
        return f"heal {self.value} to {self.target.render_text()}"


@dataclass(frozen=True)
class DrawNode:
    value: int

    def render_text(self) -> str:
        return f"draw {self.value}"


@dataclass(frozen=True)
class DestroyNode:
    target: ScriptTarget

    def render_text(self) -> str:
        return f"destroy {self.target.render_text()}"


@dataclass(frozen=True)
class BuffNode:
    target: ScriptTarget
    attack: int
    health: int

    def render_text(self) -> str:
        return f"buff {self.target.render_text()} {self.attack:+d}/{self.health:+d}"


@dataclass(frozen=True)
class SummonNode:
    card_id: str
    owner: str  # self | enemy

    def render_text(self) -> str:
        return f'summon "{self.card_id}" for {self.owner}'


@dataclass(frozen=True)
class ConditionalNode:
    condition: Condition
    body: tuple = ()

    def render_text(self) -> str:
        inner = "; ".join(node.render_text() for node in self.body)
        return f"if {self.condition.render_text()} then {inner} end"


Node = Union[DealNode, HealNode, DrawNode, DestroyNode, BuffNode, SummonNode, ConditionalNode]


@dataclass(frozen=True)
class Program:
    statements: tuple = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.statements)

    def render_text(self) -> str:
        return "; ".join(node.render_text() for node in self.statements)
