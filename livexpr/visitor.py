#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
livexpr/visitor.py
==================

Visitor infrastructure for expression tree traversal.

Provides:
- ``ASTVisitor`` — abstract base with one ``visit_X`` per node type
- ``FoldingVisitor`` — bottom-up fold that hands each ``visit_X`` the
  already computed results of the node's children, without recursion
- ``InfixPrinter`` / ``to_infix`` — fully parenthesised debug rendering
"""

from __future__ import annotations

import abc
from typing import Any, List

from livexpr import ast_nodes as A

__all__ = [
    "ASTVisitor",
    "FoldingVisitor",
    "InfixPrinter",
    "to_infix",
]


class ASTVisitor(abc.ABC):
    """Abstract base class for expression visitors.

    Each ``visit_X`` method corresponds to an AST node type.  The default
    implementations call ``generic_visit``, which does nothing.  Subclasses
    override the methods they care about.
    """

    def visit(self, node: A.Expr, *args: Any) -> Any:
        """Dispatch to the appropriate visit method."""
        return A.dispatch(node, self, *args)

    def generic_visit(self, node: A.Expr, *args: Any) -> Any:
        """Called when no specific visitor method exists.

        Default: return None.  Override for catch-all behavior.
        """
        return None

    def visit_variable(self, node: A.Variable, *args: Any) -> Any:
        return self.generic_visit(node, *args)

    def visit_literal(self, node: A.Literal, *args: Any) -> Any:
        return self.generic_visit(node, *args)

    def visit_binary_op(self, node: A.BinaryOp, *args: Any) -> Any:
        return self.generic_visit(node, *args)

    def visit_function_call(self, node: A.FunctionCall, *args: Any) -> Any:
        return self.generic_visit(node, *args)


class FoldingVisitor(ASTVisitor):
    """Compute a value for every node from its children's values.

    ``visit_binary_op`` receives ``(node, left, right)`` and
    ``visit_function_call`` receives ``(node, argument)``, where the extra
    arguments are what the visitor returned for the children.
    """

    def fold(self, expr: A.Expr) -> Any:
        results: List[Any] = []
        for node in A.postorder(expr):
            arity = len(A.children(node))
            operands = results[len(results) - arity:] if arity else []
            if arity:
                del results[len(results) - arity:]
            results.append(self.visit(node, *operands))
        return results.pop()


class InfixPrinter(FoldingVisitor):
    """Render a tree as ``((1.000000+u)*sin(t))``."""

    def visit_variable(self, node: A.Variable) -> str:
        return node.name

    def visit_literal(self, node: A.Literal) -> str:
        return f"{node.value:f}"

    def visit_binary_op(self, node: A.BinaryOp, left: str, right: str) -> str:
        return f"({left}{node.op.value}{right})"

    def visit_function_call(self, node: A.FunctionCall, argument: str) -> str:
        return f"{node.func.value}({argument})"


def to_infix(expr: A.Expr) -> str:
    return InfixPrinter().fold(expr)
