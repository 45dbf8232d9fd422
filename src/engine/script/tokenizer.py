"""
Card script tokenizer.

Tokens are whitespace separated; ';' is always a token of its own.
"""

from dataclasses import dataclass
import re


_TOKEN_RE = re.compile(r';|[^\s;]+')


@dataclass(frozen=True)
class Token:
    text: str
    pos: int  # Character offset in the source


def tokenize(source: str) -> list[Token]:
    return [Token(m.group(0), m.start()) for m in _TOKEN_RE.finditer(source or '')]
