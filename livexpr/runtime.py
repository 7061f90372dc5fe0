"""
livexpr/runtime.py
==================

Evaluator boundary for encoded programs.

The real consumer of a :class:`~livexpr.codegen.Program` is an external
engine (typically a GPU kernel evaluating the program once per pixel).
This module defines the contract that engine satisfies and ships a
reference implementation used by the CLI and the tests:

* ``Evaluator``      – protocol with the single ``install_program`` entry point
* ``StackEvaluator`` – postfix interpreter over the instruction words
* ``RuntimeConfig``  – configuration dataclass for the live session
* ``RenderLoop``     – headless stand-in for the external render loop
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from livexpr.codegen import Opcode, Program, decode_word
from livexpr.errors import LivexprErrorCodes, ProgramError

logger = logging.getLogger(__name__)

DEFAULT_EXPRESSION = (
    "(1+sin(u*20*3+t)*sin(t))/2 + (1+cos(v*20*3+t)*sin(t))/2"
)


# ===================================================================== #
#  Protocols                                                             #
# ===================================================================== #

@runtime_checkable
class Evaluator(Protocol):
    """Anything that can take ownership of a freshly compiled program."""

    def install_program(self, program: Program) -> None: ...


# ===================================================================== #
#  Arithmetic helpers                                                    #
# ===================================================================== #
#
# Python raises where a GPU quietly produces inf/nan; these keep the
# reference evaluator on IEEE semantics.

def _div(lhs: float, rhs: float) -> float:
    if rhs == 0.0:
        if lhs == 0.0 or math.isnan(lhs):
            return math.nan
        return math.copysign(math.inf, lhs) * math.copysign(1.0, rhs)
    return lhs / rhs


def _unary(fn: Callable[[float], float], x: float) -> float:
    if math.isinf(x) or math.isnan(x):
        return math.nan
    return fn(x)


_BINARY: dict = {
    Opcode.ADD: lambda a, b: a + b,
    Opcode.SUB: lambda a, b: a - b,
    Opcode.MUL: lambda a, b: a * b,
    Opcode.DIV: _div,
}

_UNARY: dict = {
    Opcode.COS: math.cos,
    Opcode.SIN: math.sin,
}


# ===================================================================== #
#  Reference evaluator                                                   #
# ===================================================================== #

Instruction = Tuple[str, object]


class StackEvaluator:
    """Postfix interpreter for encoded programs.

    Computes in double precision; a GPU evaluator works in binary32, so
    results agree to single-precision accuracy only.
    """

    def __init__(self) -> None:
        self._instructions: Optional[List[Instruction]] = None
        self.installed: Optional[Program] = None
        self.generation = 0

    @staticmethod
    def check(program: Program) -> List[Instruction]:
        """Decode *program* and verify its stack discipline.

        Raises ProgramError if a word is invalid, an operator lacks
        operands, or the program does not leave exactly one result.
        """
        instructions: List[Instruction] = []
        depth = 0
        for position, word in enumerate(program):
            try:
                kind, payload = decode_word(word)
            except ProgramError as exc:
                raise ProgramError(exc.error_message.message, position=position) from None
            if kind == "var":
                if payload not in (0, 1, 2):
                    raise ProgramError(
                        f"Variable slot {payload} out of range at word {position}",
                        position=position,
                    )
                depth += 1
            elif kind == "lit":
                depth += 1
            else:
                arity = 2 if payload in _BINARY else 1
                if depth < arity:
                    raise ProgramError(
                        f"{payload.name.lower()} at word {position} needs "
                        f"{arity} operand(s), stack has {depth}",
                        position=position,
                    )
                depth -= arity - 1
            instructions.append((kind, payload))
        if depth != 1:
            raise ProgramError(
                f"Program leaves {depth} value(s) on the stack, expected 1"
            )
        return instructions

    def install_program(self, program: Program) -> None:
        self._instructions = self.check(program)
        self.installed = program
        self.generation += 1
        logger.info(
            "Installed program #%d (%d word(s))", self.generation, len(program)
        )

    def evaluate(self, t: float, u: float, v: float) -> float:
        if self._instructions is None:
            raise ProgramError(
                "No program installed", code=LivexprErrorCodes.NO_PROGRAM
            )
        inputs = (t, u, v)
        stack: List[float] = []
        for kind, payload in self._instructions:
            if kind == "var":
                stack.append(inputs[payload])
            elif kind == "lit":
                stack.append(payload)
            elif payload in _BINARY:
                rhs = stack.pop()
                lhs = stack.pop()
                stack.append(_BINARY[payload](lhs, rhs))
            else:
                stack.append(_unary(_UNARY[payload], stack.pop()))
        return stack.pop()

    def sample(self, t: float, width: int, height: int) -> List[List[float]]:
        """Evaluate a ``height`` x ``width`` grid, ``u``/``v`` in ``[0, 1)``."""
        return [
            [self.evaluate(t, x / width, y / height) for x in range(width)]
            for y in range(height)
        ]


_SHADES = " .:-=+*#%@"


def render_ascii(grid: Sequence[Sequence[float]]) -> str:
    """Map values in ``[0, 1]`` to a character ramp; others are clamped."""
    rows = []
    top = len(_SHADES) - 1
    for row in grid:
        chars = []
        for value in row:
            if math.isnan(value):
                chars.append("?")
                continue
            level = min(max(value, 0.0), 1.0)
            chars.append(_SHADES[int(round(level * top))])
        rows.append("".join(chars))
    return "\n".join(rows)


# ===================================================================== #
#  Configuration                                                         #
# ===================================================================== #

@dataclass
class RuntimeConfig:
    """Tuning knobs for the live session."""
    max_fps: int = 60
    width: int = 48
    height: int = 16
    prompt: str = "> "
    default_expression: str = DEFAULT_EXPRESSION
    preview: bool = False

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_fps <= 0:
            warnings.append("max_fps must be positive")
        if self.width <= 0 or self.height <= 0:
            warnings.append("preview width and height must be positive")
        if not self.default_expression.strip():
            warnings.append("default_expression is empty")
        return warnings


# ===================================================================== #
#  Render loop                                                           #
# ===================================================================== #

class RenderLoop:
    """Calls *iteration(frame)* at most ``max_fps`` times per second on a
    background thread until :meth:`stop` is called.
    """

    def __init__(self, iteration: Callable[[int], None], max_fps: int = 60) -> None:
        if max_fps <= 0:
            raise ValueError("max_fps must be positive")
        self._iteration = iteration
        self._interval = 1.0 / max_fps
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.frames = 0

    def _run(self) -> None:
        logger.debug("Render loop started (interval %.4fs)", self._interval)
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self._iteration(self.frames)
            except Exception:
                logger.exception("Render iteration %d failed", self.frames)
            self.frames += 1
            remaining = self._interval - (time.monotonic() - started)
            if remaining > 0:
                self._stop.wait(remaining)
        logger.debug("Render loop stopped after %d frame(s)", self.frames)

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Render loop already started")
        self._thread = threading.Thread(
            target=self._run, name="livexpr-render", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
