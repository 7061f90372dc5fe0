# livexpr/ast_nodes.py
"""
livexpr Abstract Syntax Tree node definitions.

Every node records the 0-based character offset where it started in the
source text. Offsets are for diagnostics only and are excluded from
equality, so trees built by hand compare equal to parsed ones.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Union


# ── Enums ────────────────────────────────────────────────────────

class BinOp(Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"


class Func(Enum):
    SIN = "sin"
    COS = "cos"


# ── Expressions ──────────────────────────────────────────────────
#
# Operator chains can be thousands of levels deep, so equality and repr
# walk the tree with an explicit stack instead of the recursive methods
# ``dataclass`` would generate.

class _Node:
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, _Node):
            return NotImplemented
        return structurally_equal(self, other)  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return node_repr(self)  # type: ignore[arg-type]


@dataclass(eq=False, repr=False)
class Variable(_Node):
    name: str
    offset: int = field(default=0, compare=False)


@dataclass(eq=False, repr=False)
class Literal(_Node):
    value: float
    offset: int = field(default=0, compare=False)


@dataclass(eq=False, repr=False)
class BinaryOp(_Node):
    op: BinOp
    left: Expr
    right: Expr
    offset: int = field(default=0, compare=False)


@dataclass(eq=False, repr=False)
class FunctionCall(_Node):
    func: Func
    argument: Expr
    offset: int = field(default=0, compare=False)


Expr = Union[Variable, Literal, BinaryOp, FunctionCall]


# ── Structural walks ─────────────────────────────────────────────

def children(expr: Expr) -> tuple:
    """Direct children of *expr*, left to right."""
    if isinstance(expr, BinaryOp):
        return (expr.left, expr.right)
    if isinstance(expr, FunctionCall):
        return (expr.argument,)
    return ()


def postorder(expr: Expr) -> Iterator[Expr]:
    """Yield nodes children-first, left subtree before right subtree.

    Iterative, so deeply left-nested chains such as ``1+1+...+1`` do not
    hit the interpreter's recursion limit.
    """
    stack: list[tuple[Expr, bool]] = [(expr, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            yield node
            continue
        stack.append((node, True))
        for child in reversed(children(node)):
            stack.append((child, False))


def node_count(expr: Expr) -> int:
    """Number of nodes in the tree; equals the encoded word count."""
    return sum(1 for _ in postorder(expr))


def _label(expr: Expr) -> Any:
    if isinstance(expr, Variable):
        return expr.name
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, BinaryOp):
        return expr.op
    return expr.func


def structurally_equal(a: Expr, b: Expr) -> bool:
    """Compare two trees node by node, ignoring offsets."""
    pending = [(a, b)]
    while pending:
        x, y = pending.pop()
        if type(x) is not type(y) or _label(x) != _label(y):
            return False
        pending.extend(zip(children(x), children(y)))
    return True


def node_repr(expr: Expr) -> str:
    """``dataclass``-style repr of the whole tree, built bottom-up."""
    results: list[str] = []
    for node in postorder(expr):
        if isinstance(node, Variable):
            text = f"Variable(name={node.name!r}, offset={node.offset!r})"
        elif isinstance(node, Literal):
            text = f"Literal(value={node.value!r}, offset={node.offset!r})"
        elif isinstance(node, BinaryOp):
            right = results.pop()
            left = results.pop()
            text = (
                f"BinaryOp(op={node.op!r}, left={left}, right={right}, "
                f"offset={node.offset!r})"
            )
        else:
            argument = results.pop()
            text = (
                f"FunctionCall(func={node.func!r}, argument={argument}, "
                f"offset={node.offset!r})"
            )
        results.append(text)
    return results.pop()


# ── Visitor dispatch ─────────────────────────────────────────────
#
# Nodes are plain dataclasses joined by a Union rather than a class
# hierarchy with ``accept`` methods, so dispatch goes through a table.

_DISPATCH: dict[type, str] = {
    Variable: "visit_variable",
    Literal: "visit_literal",
    BinaryOp: "visit_binary_op",
    FunctionCall: "visit_function_call",
}


def dispatch(node: Expr, visitor: Any, *args: Any) -> Any:
    """Route *node* to the matching ``visit_*`` method of *visitor*."""
    method_name = _DISPATCH.get(type(node))
    if method_name is None:
        raise TypeError(f"Unknown expression node type: {type(node).__name__}")
    return getattr(visitor, method_name)(node, *args)


__all__ = [
    "BinOp",
    "Func",
    "Variable",
    "Literal",
    "BinaryOp",
    "FunctionCall",
    "Expr",
    "children",
    "postorder",
    "node_count",
    "structurally_equal",
    "node_repr",
    "dispatch",
]
