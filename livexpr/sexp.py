"""livexpr/sexp.py – expression tree ⇄ S-expression text.

A debugging and fixture format for trees::

    (add (lit 1.0) (mul (var "u") (lit 2.0)))
    (sin (var "t"))

Variable names are written as strings so that a name like ``t`` is never
confused with a symbol.  Loading validates every form and raises
:class:`~livexpr.errors.AstFormatError` on anything unexpected.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Tuple

import sexpdata
from sexpdata import Symbol

from livexpr import ast_nodes as A
from livexpr.errors import AstFormatError
from livexpr.visitor import FoldingVisitor

Sexp = Any  # Union[list, Symbol, str, int, float]

_BINOP_TAGS: Dict[A.BinOp, str] = {
    A.BinOp.ADD: "add",
    A.BinOp.SUB: "sub",
    A.BinOp.MUL: "mul",
    A.BinOp.DIV: "div",
}
_FUNC_TAGS: Dict[A.Func, str] = {A.Func.SIN: "sin", A.Func.COS: "cos"}


# ═══════════════════════════════════════════════════════════════════════
#  Dump
# ═══════════════════════════════════════════════════════════════════════
#
# Each node is rendered to text as soon as its children are, so chains
# of any length serialise without recursion.  ``sexpdata`` still formats
# the leaf atoms (string quoting, float repr).

class _SexpBuilder(FoldingVisitor):
    def visit_variable(self, node: A.Variable) -> str:
        return f"(var {sexpdata.dumps(node.name)})"

    def visit_literal(self, node: A.Literal) -> str:
        return f"(lit {sexpdata.dumps(float(node.value))})"

    def visit_binary_op(self, node: A.BinaryOp, left: str, right: str) -> str:
        return f"({_BINOP_TAGS[node.op]} {left} {right})"

    def visit_function_call(self, node: A.FunctionCall, argument: str) -> str:
        return f"({_FUNC_TAGS[node.func]} {argument})"


def to_sexp(expr: A.Expr) -> str:
    return _SexpBuilder().fold(expr)


# ═══════════════════════════════════════════════════════════════════════
#  Load
# ═══════════════════════════════════════════════════════════════════════

def _head(s: Sexp) -> str:
    if not isinstance(s, list) or not s:
        raise AstFormatError(f"Expected a (tag ...) form, got {s!r}")
    if not isinstance(s[0], Symbol):
        raise AstFormatError(f"Expected a symbol at the head of {s!r}")
    return str(s[0])


def _expect_arity(s: list, arity: int) -> None:
    if len(s) != arity + 1:
        raise AstFormatError(
            f"({_head(s)} ...) takes {arity} argument(s), got {len(s) - 1}"
        )


def _load_var(s: list) -> A.Expr:
    _expect_arity(s, 1)
    name = s[1]
    if isinstance(name, Symbol) or not isinstance(name, str):
        raise AstFormatError(f"Variable name must be a string, got {name!r}")
    if not name.isascii() or not name.isalpha():
        raise AstFormatError(f"Variable name must be alphabetic, got {name!r}")
    return A.Variable(name)


def _load_lit(s: list) -> A.Expr:
    _expect_arity(s, 1)
    value = s[1]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise AstFormatError(f"Literal value must be a number, got {value!r}")
    if value < 0:
        raise AstFormatError(f"Literal value must be non-negative, got {value!r}")
    return A.Literal(float(value))


_LEAVES: Dict[str, Callable[[list], A.Expr]] = {
    "var": _load_var,
    "lit": _load_lit,
}

# tag -> (arity, builder from the already loaded operands)
_BRANCHES: Dict[str, Tuple[int, Callable[[List[A.Expr]], A.Expr]]] = {}
for _op, _tag in _BINOP_TAGS.items():
    _BRANCHES[_tag] = (2, lambda xs, op=_op: A.BinaryOp(op, xs[0], xs[1]))
for _func, _tag in _FUNC_TAGS.items():
    _BRANCHES[_tag] = (1, lambda xs, func=_func: A.FunctionCall(func, xs[0]))


def _load(root: Sexp) -> A.Expr:
    results: List[A.Expr] = []
    stack: List[Tuple[Sexp, bool]] = [(root, False)]
    while stack:
        s, expanded = stack.pop()
        tag = _head(s)
        if expanded:
            arity, build = _BRANCHES[tag]
            operands = results[len(results) - arity:]
            del results[len(results) - arity:]
            results.append(build(operands))
            continue
        leaf = _LEAVES.get(tag)
        if leaf is not None:
            results.append(leaf(s))
            continue
        branch = _BRANCHES.get(tag)
        if branch is None:
            raise AstFormatError(f"Unknown form ({tag} ...)")
        _expect_arity(s, branch[0])
        stack.append((s, True))
        for child in reversed(s[1:]):
            stack.append((child, False))
    return results.pop()


def from_sexp(text: str) -> A.Expr:
    """Load a tree previously written by :func:`to_sexp`.

    ``sexpdata`` reads nested lists recursively, so dumps nested deeper
    than the interpreter's recursion limit are rejected.
    """
    # Keep t/nil as plain symbols; ``t`` must never turn into True.
    try:
        raw = sexpdata.loads(text, nil=None, true=None, false=None)
    except RecursionError:
        raise AstFormatError(
            "S-expression is nested too deeply to load"
        ) from None
    except Exception as exc:
        raise AstFormatError(f"S-expression syntax error: {exc}") from exc
    return _load(raw)


__all__: List[str] = ["to_sexp", "from_sexp"]
