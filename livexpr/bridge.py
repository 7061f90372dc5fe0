# livexpr/bridge.py
"""
Live-program hand-off between an input reader and a render loop.

Two threads share exactly one :class:`ProgramSlot`:

* the **producer** reads formulas line by line, compiles each one without
  holding any lock, and stages the result;
* the **consumer** runs once per render step, takes whatever is staged
  and installs it into the evaluator, again outside the lock.

The lock is held only for the swap itself, so the consumer never sees a
half-published program.  Staging overwrites: if two programs are staged
before the consumer polls, only the second is ever installed.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Optional, TextIO

from livexpr.codegen import Program, compile_expression
from livexpr.errors import LivexprError, ProgramError
from livexpr.runtime import Evaluator

logger = logging.getLogger(__name__)

__all__ = ["ProgramSlot", "ProgramProducer", "ProgramConsumer"]


class ProgramSlot:
    """Single-slot, overwrite-on-write mailbox for compiled programs."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._program: Optional[Program] = None

    def stage(self, program: Program) -> bool:
        """Publish *program*; returns True if it replaced an undrained one."""
        with self._lock:
            replaced = self._program is not None
            self._program = program
        if replaced:
            logger.debug("Discarded a staged program that was never installed")
        return replaced

    def take(self) -> Optional[Program]:
        """Remove and return the staged program, or ``None``."""
        with self._lock:
            program, self._program = self._program, None
        return program

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._program is not None


class ProgramProducer:
    """Compile formulas read from *stream* and stage them into *slot*.

    Failures are written to *diagnostics* and never stop the loop; the
    previously staged or installed program stays in effect.
    """

    def __init__(
        self,
        slot: ProgramSlot,
        stream: Optional[TextIO] = None,
        diagnostics: Optional[TextIO] = None,
        prompt: str = "",
        output: Optional[TextIO] = None,
    ) -> None:
        self.slot = slot
        self.stream = stream if stream is not None else sys.stdin
        self.diagnostics = diagnostics if diagnostics is not None else sys.stderr
        self.output = output if output is not None else sys.stdout
        self.prompt = prompt
        self.staged = 0
        self.failed = 0

    def feed_line(self, line: str) -> bool:
        """Compile one line and stage it; returns True on success."""
        text = line.rstrip("\r\n")
        try:
            program = compile_expression(text)
        except LivexprError as exc:
            self.failed += 1
            logger.warning("Rejected %r: %s [%s]", text, exc.error_message.message, exc.code)
            self.diagnostics.write(exc.render() + "\n")
            self.diagnostics.flush()
            return False
        self.slot.stage(program)
        self.staged += 1
        logger.debug("Staged %d word(s) for %r", len(program), text)
        return True

    def _show_prompt(self) -> None:
        if self.prompt:
            self.output.write(self.prompt)
            self.output.flush()

    def run(self) -> int:
        """Read until end of input; returns the number of staged programs.

        Undecodable bytes are replaced rather than raised, so a bad line
        becomes an ordinary parse failure and the loop keeps reading.
        """
        reconfigure = getattr(self.stream, "reconfigure", None)
        if reconfigure is not None:
            reconfigure(errors="replace")
        self._show_prompt()
        for line in iter(self.stream.readline, ""):
            self.feed_line(line)
            self._show_prompt()
        if self.prompt:
            self.output.write("\n")
            self.output.flush()
        logger.info(
            "Input closed: %d program(s) staged, %d rejected", self.staged, self.failed
        )
        return self.staged


class ProgramConsumer:
    """Install staged programs into *evaluator*, one poll per render step."""

    def __init__(self, slot: ProgramSlot, evaluator: Evaluator) -> None:
        self.slot = slot
        self.evaluator = evaluator
        self.installed = 0

    def poll(self) -> Optional[Program]:
        """Install the staged program, if any, and return it."""
        program = self.slot.take()
        if program is None:
            return None
        try:
            self.evaluator.install_program(program)
        except ProgramError as exc:
            logger.error("Evaluator rejected program: %s", exc.error_message.message)
            return None
        self.installed += 1
        return program
