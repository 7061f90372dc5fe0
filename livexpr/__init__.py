"""livexpr — live formula compiler for per-pixel evaluators.

This package turns short arithmetic formulas over the variables ``t``,
``u`` and ``v`` into flat postfix programs of 64-bit instruction words,
and hands freshly compiled programs to a running evaluator without
stopping it.

Submodules
----------
errors
    Exception hierarchy with structured ``LXP-XXXX`` codes,
    ``SourceSpan`` / ``ErrorMessage`` and the caret diagnostic.

scanner, parser
    Cursor over the input text and the recursive-descent parser
    producing the expression tree.

ast_nodes, visitor, sexp
    Tree node dataclasses, visitor infrastructure, infix rendering and
    the S-expression dump/load format.

codegen
    Encoder from tree to ``Program`` words, word decoding and
    disassembly.

runtime
    ``Evaluator`` contract, the reference ``StackEvaluator``,
    ``RuntimeConfig`` and the headless ``RenderLoop``.

bridge
    ``ProgramSlot`` single-slot hand-off plus the producer (input
    reader) and consumer (render step) around it.

main
    CLI entry-point with subcommands: ``parse``, ``compile``, ``eval``,
    ``live``.

Usage
-----
Command-line::

    python -m livexpr compile "sin(u*20+t)" --format asm
    python -m livexpr live --preview

Programmatic::

    from livexpr import compile_expression, StackEvaluator

    program = compile_expression("(1+sin(u*20+t))/2")
    evaluator = StackEvaluator()
    evaluator.install_program(program)
    evaluator.evaluate(0.0, 0.5, 0.5)
"""

from __future__ import annotations

__version__: str = "0.1.0"

from livexpr.codegen import Program, compile_expression, encode
from livexpr.errors import LivexprError, ParseError
from livexpr.parser import parse
from livexpr.runtime import StackEvaluator

__all__: list[str] = [
    "__version__",
    "Program",
    "compile_expression",
    "encode",
    "parse",
    "LivexprError",
    "ParseError",
    "StackEvaluator",
]
