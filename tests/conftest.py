# tests/conftest.py
"""
Shared formulas, tree builders and fakes for the livexpr test-suite.
"""

from __future__ import annotations

from typing import List

import pytest

from livexpr import ast_nodes as A
from livexpr.codegen import Program
from livexpr.errors import ProgramError
from livexpr.runtime import DEFAULT_EXPRESSION


# ═══════════════════════════════════════════════════════════════════════════
#  Formulas
# ═══════════════════════════════════════════════════════════════════════════

PRECEDENCE_SRC = "1+2*3"
WAVE_SRC = "(1+sin(u*20+t))/2"
DEFAULT_SRC = DEFAULT_EXPRESSION

VALID_FORMULAS = [
    "1",
    "t",
    "1+2*3",
    "1-2-3",
    "(1+2)*3",
    "sin(t)",
    "cos ( u * 3 )",
    WAVE_SRC,
    DEFAULT_SRC,
]


# ═══════════════════════════════════════════════════════════════════════════
#  Tree builders
# ═══════════════════════════════════════════════════════════════════════════

def lit(value: float) -> A.Literal:
    return A.Literal(float(value))


def var(name: str) -> A.Variable:
    return A.Variable(name)


def add(left: A.Expr, right: A.Expr) -> A.BinaryOp:
    return A.BinaryOp(A.BinOp.ADD, left, right)


def sub(left: A.Expr, right: A.Expr) -> A.BinaryOp:
    return A.BinaryOp(A.BinOp.SUB, left, right)


def mul(left: A.Expr, right: A.Expr) -> A.BinaryOp:
    return A.BinaryOp(A.BinOp.MUL, left, right)


def div(left: A.Expr, right: A.Expr) -> A.BinaryOp:
    return A.BinaryOp(A.BinOp.DIV, left, right)


def sin(argument: A.Expr) -> A.FunctionCall:
    return A.FunctionCall(A.Func.SIN, argument)


def cos(argument: A.Expr) -> A.FunctionCall:
    return A.FunctionCall(A.Func.COS, argument)


# ═══════════════════════════════════════════════════════════════════════════
#  Fakes
# ═══════════════════════════════════════════════════════════════════════════

class RecordingEvaluator:
    """Evaluator double that remembers every installed program."""

    def __init__(self, reject: bool = False) -> None:
        self.installs: List[Program] = []
        self.reject = reject

    def install_program(self, program: Program) -> None:
        if self.reject:
            raise ProgramError("rejected by test double")
        self.installs.append(program)


@pytest.fixture
def recorder() -> RecordingEvaluator:
    return RecordingEvaluator()
