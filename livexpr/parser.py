"""livexpr/parser.py – formula text → expression tree.

Design principles
-----------------
* **Hand-written recursive descent** over a shared :class:`Cursor`; there
  is no separate tokenizer.
* **Ordered choice** – an atom tries literal, function call, variable and
  parenthesised expression in that order and the first match wins.
* **Commit on consumption** – a rule that fails without consuming input
  lets the next alternative try; a rule that fails after consuming input
  fails the whole production.  So ``sin t`` is an error, not ``sin``
  falling back to a variable.
* **Iterative folding** – the left-recursive ``*``/``/`` and ``+``/``-``
  levels are loops that fold to the left.

Grammar
-------
::

    E0 -> digits | ("sin" | "cos") "(" E2 ")" | letters | "(" E2 ")"
    E1 -> E0 (("*" | "/") E0)*
    E2 -> E1 (("+" | "-") E1)*

Whitespace may follow any token.

Public API
----------
``parse(text: str) -> Expr``
    Parse a complete formula; raises :class:`~livexpr.errors.ParseError`.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional, Sequence, Tuple

from livexpr import ast_nodes as A
from livexpr.errors import TrailingInputError, UnexpectedInputError
from livexpr.scanner import DIGITS, LETTERS, Cursor

logger = logging.getLogger(__name__)

# Keyword order matters only for readability; the two never share a prefix.
FUNCTION_KEYWORDS: Tuple[Tuple[str, A.Func], ...] = (
    ("sin", A.Func.SIN),
    ("cos", A.Func.COS),
)

_TERM_OPERATORS = {"*": A.BinOp.MUL, "/": A.BinOp.DIV}
_EXPRESSION_OPERATORS = {"+": A.BinOp.ADD, "-": A.BinOp.SUB}


class Parser:
    """One-shot parser over a single input string.

    Every ``_parse_*`` rule returns the parsed node, or ``None`` if the
    rule did not match.  Whether a ``None`` is recoverable is decided by
    the caller from the cursor: if the cursor moved, the failure is final.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.cursor = Cursor(text)

    # ── Atoms (E0) ───────────────────────────────────────────────

    def _parse_literal(self) -> Optional[A.Literal]:
        start = self.cursor.pos
        digits = self.cursor.take_while(DIGITS)
        if not digits:
            return None
        value = 0
        for ch in digits:
            value = value * 10 + (ord(ch) - ord("0"))
        self.cursor.skip_whitespace()
        try:
            magnitude = float(value)
        except OverflowError:
            magnitude = math.inf
        return A.Literal(magnitude, offset=start)

    def _parse_function(self) -> Optional[A.FunctionCall]:
        start = self.cursor.pos
        for keyword, func in FUNCTION_KEYWORDS:
            if not self.cursor.startswith(keyword):
                continue
            self.cursor.advance(len(keyword))
            self.cursor.skip_whitespace()
            argument = self._parse_parens()
            if argument is None:
                return None
            return A.FunctionCall(func, argument, offset=start)
        return None

    def _parse_variable(self) -> Optional[A.Variable]:
        start = self.cursor.pos
        name = self.cursor.take_while(LETTERS)
        if not name:
            return None
        self.cursor.skip_whitespace()
        return A.Variable(name, offset=start)

    def _parse_parens(self) -> Optional[A.Expr]:
        if self.cursor.peek() != "(":
            return None
        self.cursor.advance()
        self.cursor.skip_whitespace()
        inner = self._parse_expression()
        if inner is None:
            return None
        if self.cursor.peek() != ")":
            return None
        self.cursor.advance()
        self.cursor.skip_whitespace()
        return inner

    def _parse_atom(self) -> Optional[A.Expr]:
        alternatives: Sequence[Callable[[], Optional[A.Expr]]] = (
            self._parse_literal,
            self._parse_function,
            self._parse_variable,
            self._parse_parens,
        )
        start = self.cursor.pos
        for alternative in alternatives:
            node = alternative()
            if node is not None:
                return node
            if self.cursor.pos != start:
                return None
        return None

    # ── Binary levels (E1, E2) ───────────────────────────────────

    def _fold_left(
        self,
        operand: Callable[[], Optional[A.Expr]],
        operators: dict,
    ) -> Optional[A.Expr]:
        lhs = operand()
        if lhs is None:
            return None
        self.cursor.skip_whitespace()

        while True:
            op = operators.get(self.cursor.peek())
            if op is None:
                return lhs
            self.cursor.advance()
            self.cursor.skip_whitespace()
            rhs = operand()
            if rhs is None:
                return None
            lhs = A.BinaryOp(op, lhs, rhs, offset=lhs.offset)

    def _parse_term(self) -> Optional[A.Expr]:
        return self._fold_left(self._parse_atom, _TERM_OPERATORS)

    def _parse_expression(self) -> Optional[A.Expr]:
        return self._fold_left(self._parse_term, _EXPRESSION_OPERATORS)

    # ── Entry point ──────────────────────────────────────────────

    def parse(self) -> A.Expr:
        self.cursor.skip_whitespace()
        try:
            expr = self._parse_expression()
        except RecursionError:
            raise UnexpectedInputError(self.text, self.cursor.pos).with_hint(
                "Parentheses are nested too deeply"
            ) from None
        if expr is None:
            logger.debug("No match at offset %d in %r", self.cursor.pos, self.text)
            raise UnexpectedInputError(self.text, self.cursor.pos)
        if not self.cursor.at_end():
            logger.debug("Trailing input at offset %d in %r", self.cursor.pos, self.text)
            raise TrailingInputError(self.text, self.cursor.pos)
        return expr


def parse(text: str) -> A.Expr:
    """Parse a complete formula.

    Parameters
    ----------
    text:
        The formula, e.g. ``"(1+sin(u*20+t))/2"``.

    Returns
    -------
    Expr
        The root of the expression tree.

    Raises
    ------
    ParseError
        ``UnexpectedInputError`` if no rule matched where parsing stopped,
        ``TrailingInputError`` if characters remain after the expression.
    """
    return Parser(text).parse()


__all__ = ["Parser", "parse", "FUNCTION_KEYWORDS"]
