# livexpr/scanner.py
"""Read cursor shared by all grammar rules.

There is no token stream: each rule inspects and consumes characters
through the cursor directly. Character classes are ASCII only.
"""

from __future__ import annotations

import string
from typing import FrozenSet

DIGITS: FrozenSet[str] = frozenset(string.digits)
LETTERS: FrozenSet[str] = frozenset(string.ascii_letters)
WHITESPACE: FrozenSet[str] = frozenset(" \t\n\v\f\r")


class Cursor:
    """A read position over *text*."""

    __slots__ = ("text", "pos")

    def __init__(self, text: str, pos: int = 0) -> None:
        self.text = text
        self.pos = pos

    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    def peek(self) -> str:
        """Current character, or ``""`` at end of input."""
        if self.pos >= len(self.text):
            return ""
        return self.text[self.pos]

    def advance(self, n: int = 1) -> None:
        self.pos = min(self.pos + n, len(self.text))

    def startswith(self, prefix: str) -> bool:
        return self.text.startswith(prefix, self.pos)

    def take_while(self, charset: FrozenSet[str]) -> str:
        """Consume and return the longest run of characters in *charset*."""
        start = self.pos
        end = start
        while end < len(self.text) and self.text[end] in charset:
            end += 1
        self.pos = end
        return self.text[start:end]

    def skip_whitespace(self) -> None:
        self.take_while(WHITESPACE)

    def remaining(self) -> str:
        return self.text[self.pos:]

    def __repr__(self) -> str:
        return f"Cursor(pos={self.pos}, rest={self.remaining()!r})"
