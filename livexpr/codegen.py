#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
livexpr/codegen.py
==================

Instruction encoder for expression trees.

An expression is lowered to a flat postfix program of 64-bit words, one
word per tree node, in postorder.  The external evaluator executes the
words left to right with an operand stack.

Word layout
-----------
::

    variable   [ slot (32) | 0...01 ]      slot 0 = t, 1 = u, 2 = v
    literal    [ f32 bits (32) | 0 ]       IEEE-754 binary32, tag cleared
    operator   [ 0 (32) | opcode ]         4 add  5 sub  6 mul  7 div
                                           8 cos  9 sin

Binary operators consume the two nearest preceding results (left was
pushed first); functions consume one.  Operators carry no operands.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterator, List, Tuple, Union

from livexpr import ast_nodes as A
from livexpr.errors import (
    EncodeError,
    LiteralRangeError,
    ProgramError,
    UnknownVariableError,
)
from livexpr.parser import parse
from livexpr.visitor import ASTVisitor

logger = logging.getLogger(__name__)

__all__ = [
    "Opcode",
    "VARIABLE_SLOTS",
    "VARIABLE_TAG",
    "WORD_BYTES",
    "Program",
    "Encoder",
    "encode",
    "compile_expression",
    "variable_word",
    "literal_word",
    "decode_word",
    "disassemble",
]


class Opcode(IntEnum):
    ADD = 4
    SUB = 5
    MUL = 6
    DIV = 7
    COS = 8
    SIN = 9


VARIABLE_SLOTS: Dict[str, int] = {"t": 0, "u": 1, "v": 2}
VARIABLE_TAG = 1
WORD_BYTES = 8

_LOW_MASK = 0xFFFFFFFF
_OPCODE_VALUES = frozenset(int(op) for op in Opcode)

_BINOP_OPCODES: Dict[A.BinOp, Opcode] = {
    A.BinOp.ADD: Opcode.ADD,
    A.BinOp.SUB: Opcode.SUB,
    A.BinOp.MUL: Opcode.MUL,
    A.BinOp.DIV: Opcode.DIV,
}

_FUNC_OPCODES: Dict[A.Func, Opcode] = {
    A.Func.COS: Opcode.COS,
    A.Func.SIN: Opcode.SIN,
}


# ═══════════════════════════════════════════════════════════════════════════
# Program container
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Program:
    """An encoded instruction sequence, ready for an evaluator."""

    words: Tuple[int, ...]

    def __len__(self) -> int:
        return len(self.words)

    def __iter__(self) -> Iterator[int]:
        return iter(self.words)

    def to_bytes(self) -> bytes:
        """Little-endian ``uint64`` array, the layout evaluators upload."""
        return struct.pack(f"<{len(self.words)}Q", *self.words)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Program":
        if len(data) % WORD_BYTES:
            raise ProgramError(
                f"Program data is {len(data)} bytes, not a multiple of {WORD_BYTES}"
            )
        count = len(data) // WORD_BYTES
        return cls(struct.unpack(f"<{count}Q", data))


# ═══════════════════════════════════════════════════════════════════════════
# Cell construction / inspection
# ═══════════════════════════════════════════════════════════════════════════

def variable_word(slot: int) -> int:
    return (slot << 32) | VARIABLE_TAG


def literal_word(value: float) -> int:
    """Pack *value* as binary32 into the high half of a word.

    Raises ``OverflowError`` if the value does not fit.
    """
    (bits,) = struct.unpack("<I", struct.pack("<f", value))
    return bits << 32


def decode_word(word: int) -> Tuple[str, Union[int, float]]:
    """Classify *word* as ``("var", slot)``, ``("lit", value)`` or
    ``("op", Opcode)``.

    Raises ProgramError for a word that is none of these.
    """
    high, low = word >> 32, word & _LOW_MASK
    if low == VARIABLE_TAG:
        return ("var", high)
    if low == 0:
        (value,) = struct.unpack("<f", struct.pack("<I", high & _LOW_MASK))
        return ("lit", value)
    if high == 0 and low in _OPCODE_VALUES:
        return ("op", Opcode(low))
    raise ProgramError(f"Unrecognised instruction word {word:#018x}")


_SLOT_NAMES = {slot: name for name, slot in VARIABLE_SLOTS.items()}


def disassemble(program: Program) -> List[str]:
    """One mnemonic per word, e.g. ``["var u", "lit 20.0", "mul"]``."""
    lines: List[str] = []
    for word in program:
        kind, payload = decode_word(word)
        if kind == "var":
            lines.append(f"var {_SLOT_NAMES.get(payload, payload)}")
        elif kind == "lit":
            lines.append(f"lit {payload!r}")
        else:
            lines.append(payload.name.lower())
    return lines


# ═══════════════════════════════════════════════════════════════════════════
# Encoder
# ═══════════════════════════════════════════════════════════════════════════

class Encoder(ASTVisitor):
    """Emit one cell per node while walking the tree in postorder.

    The walk itself lives in :meth:`encode`; each ``visit_X`` only emits
    the cell for its own node, because the children were already emitted.
    """

    def __init__(self) -> None:
        self._words: List[int] = []

    def encode(self, expr: A.Expr) -> Program:
        self._words = []
        try:
            for node in A.postorder(expr):
                self.visit(node)
            program = Program(tuple(self._words))
        finally:
            self._words = []
        logger.debug("Encoded %d word(s)", len(program))
        return program

    def visit_variable(self, node: A.Variable) -> None:
        slot = VARIABLE_SLOTS.get(node.name)
        if slot is None:
            raise UnknownVariableError(
                node.name, offset=node.offset, known=sorted(VARIABLE_SLOTS)
            )
        self._words.append(variable_word(slot))

    def visit_literal(self, node: A.Literal) -> None:
        if math.isinf(node.value):
            raise LiteralRangeError(node.value, offset=node.offset)
        try:
            self._words.append(literal_word(node.value))
        except OverflowError:
            raise LiteralRangeError(node.value, offset=node.offset) from None

    def visit_binary_op(self, node: A.BinaryOp) -> None:
        self._words.append(int(_BINOP_OPCODES[node.op]))

    def visit_function_call(self, node: A.FunctionCall) -> None:
        self._words.append(int(_FUNC_OPCODES[node.func]))


def encode(expr: A.Expr) -> Program:
    """Lower *expr* to a program of exactly ``node_count(expr)`` words.

    Raises
    ------
    UnknownVariableError
        An identifier other than ``t``, ``u`` or ``v`` was used.
    LiteralRangeError
        A literal exceeds the binary32 range.
    """
    return Encoder().encode(expr)


def compile_expression(text: str) -> Program:
    """Parse and encode *text* in one step.

    Encode errors carry *text* as their source line so they render with
    a caret under the offending node, like parse errors.
    """
    expr = parse(text)
    try:
        return encode(expr)
    except EncodeError as exc:
        exc.error_message.with_source(text)
        raise
