#!/usr/bin/env python3
"""livexpr/main.py — CLI entry-point for the livexpr compiler.

Usage examples
--------------
    # Show the parse tree of a formula
    python -m livexpr parse "1+2*3" --format sexp

    # Encode a formula to instruction words
    python -m livexpr compile "sin(u*20+t)" --format asm
    python -m livexpr compile "sin(u*20+t)" --format bin -o wave.bin

    # Evaluate a formula with the reference evaluator at t=1, u=0.5, v=0.25
    python -m livexpr eval "(1+sin(u*20+t))/2" --at 1 0.5 0.25

    # Interactive session: type formulas, each valid one replaces the last
    python -m livexpr live --preview

Exit codes
----------
    0   Success.
    1   The expression failed to parse or encode.
    2   Infrastructure failure (bad output path, invalid option, etc.).

The module doubles as ``python -m livexpr`` via the companion
``livexpr/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import textwrap
import time
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, TextIO, Union

from livexpr import __version__
from livexpr.ast_nodes import node_count
from livexpr.bridge import ProgramConsumer, ProgramProducer, ProgramSlot
from livexpr.codegen import Program, compile_expression, disassemble
from livexpr.errors import LivexprError
from livexpr.parser import parse
from livexpr.runtime import RenderLoop, RuntimeConfig, StackEvaluator, render_ascii
from livexpr.sexp import to_sexp
from livexpr.visitor import to_infix

_log = logging.getLogger("livexpr")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``livexpr`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("livexpr")
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _open_output(dest: Optional[str], binary: bool = False) -> Union[TextIO, BinaryIO]:
    """Return a writable stream.

    *dest* ``None`` or ``"-"`` → stdout; otherwise open the path for
    writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout.buffer if binary else sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    if binary:
        return open(p, "wb")
    return open(p, "w", encoding="utf-8")


def _close_output(out: Union[TextIO, BinaryIO]) -> None:
    if out is not sys.stdout and out is not getattr(sys.stdout, "buffer", None):
        out.close()


def _report(exc: LivexprError) -> int:
    """Write the diagnostic for *exc* to stderr; returns EXIT_ERROR."""
    sys.stderr.write(exc.render() + "\n")
    _log.debug("%s: %s", exc.code, exc.error_message.message)
    return EXIT_ERROR


# ===========================================================================
# Sub-command implementations
# ===========================================================================

# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------

def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a formula and print its tree."""
    try:
        expr = parse(args.expression)
    except LivexprError as exc:
        return _report(exc)

    if args.format == "sexp":
        text = to_sexp(expr)
    elif args.format == "repr":
        text = repr(expr)
    else:
        text = to_infix(expr)
    sys.stdout.write(text + "\n")
    _log.info("Parsed %d node(s)", node_count(expr))
    return EXIT_OK


# ---------------------------------------------------------------------------
# compile
# ---------------------------------------------------------------------------

def _format_program(program: Program, fmt: str) -> str:
    if fmt == "json":
        return json.dumps({"length": len(program), "words": list(program.words)})
    if fmt == "asm":
        return "\n".join(disassemble(program))
    return "\n".join(f"{word:#018x}" for word in program)


def cmd_compile(args: argparse.Namespace) -> int:
    """Encode a formula to instruction words."""
    try:
        program = compile_expression(args.expression)
    except LivexprError as exc:
        return _report(exc)

    binary = args.format == "bin"
    try:
        out = _open_output(args.output, binary=binary)
    except OSError as exc:
        _log.error("Cannot open output %s: %s", args.output, exc)
        return EXIT_INFRA
    try:
        if binary:
            out.write(program.to_bytes())
        else:
            out.write(_format_program(program, args.format) + "\n")
    finally:
        _close_output(out)

    _log.info("Compiled %d word(s)", len(program))
    return EXIT_OK


# ---------------------------------------------------------------------------
# eval
# ---------------------------------------------------------------------------

def cmd_eval(args: argparse.Namespace) -> int:
    """Compile a formula and run it through the reference evaluator."""
    try:
        program = compile_expression(args.expression)
    except LivexprError as exc:
        return _report(exc)

    evaluator = StackEvaluator()
    evaluator.install_program(program)
    t, u, v = args.at
    sys.stdout.write(f"{evaluator.evaluate(t, u, v)!r}\n")
    return EXIT_OK


# ---------------------------------------------------------------------------
# live
# ---------------------------------------------------------------------------

def cmd_live(args: argparse.Namespace) -> int:
    """Interactive session: stdin formulas → staged programs → evaluator."""
    config = RuntimeConfig(
        max_fps=args.fps,
        width=args.width,
        height=args.height,
        preview=args.preview,
        prompt="" if args.no_prompt else RuntimeConfig.prompt,
    )
    warnings = config.validate()
    for w in warnings:
        _log.warning("RuntimeConfig: %s", w)
    if warnings:
        return EXIT_INFRA

    slot = ProgramSlot()
    evaluator = StackEvaluator()
    consumer = ProgramConsumer(slot, evaluator)

    try:
        slot.stage(compile_expression(config.default_expression))
    except LivexprError as exc:
        return _report(exc)
    consumer.poll()

    started = time.monotonic()

    def iteration(frame: int) -> None:
        program = consumer.poll()
        if program is not None and config.preview:
            grid = evaluator.sample(time.monotonic() - started, config.width, config.height)
            sys.stdout.write("\n" + render_ascii(grid) + "\n" + config.prompt)
            sys.stdout.flush()

    if args.input:
        try:
            stream = open(args.input, encoding="utf-8", errors="replace")
        except OSError as exc:
            _log.error("Cannot open input %s: %s", args.input, exc)
            return EXIT_INFRA
    else:
        stream = sys.stdin

    producer = ProgramProducer(
        slot, stream=stream, diagnostics=sys.stderr, prompt=config.prompt
    )
    loop = RenderLoop(iteration, max_fps=config.max_fps)
    loop.start()
    try:
        producer.run()
    finally:
        loop.stop()
        if stream is not sys.stdin:
            stream.close()
    iteration(loop.frames)

    _log.info(
        "Session finished: %d program(s) installed over %d frame(s)",
        consumer.installed,
        loop.frames,
    )
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="livexpr",
        description=(
            "livexpr — compile t/u/v formulas to postfix instruction words\n"
            "for a per-pixel evaluator."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              livexpr parse   "1+2*3" --format sexp
              livexpr compile "sin(u*20+t)" --format asm
              livexpr eval    "(1+sin(u*20+t))/2" --at 1 0.5 0.25
              livexpr live    --preview
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse a formula and print the tree.",
    )
    p_parse.add_argument("expression", metavar="EXPR", help="Formula text.")
    p_parse.add_argument(
        "-f", "--format",
        choices=["infix", "sexp", "repr"],
        default="infix",
        help="Tree output format (default: infix).",
    )
    p_parse.set_defaults(func=cmd_parse)

    # --- compile -----------------------------------------------------------
    p_compile = subparsers.add_parser(
        "compile",
        help="Encode a formula to instruction words.",
    )
    p_compile.add_argument("expression", metavar="EXPR", help="Formula text.")
    p_compile.add_argument(
        "-f", "--format",
        choices=["hex", "json", "asm", "bin"],
        default="hex",
        help="Program output format (default: hex).",
    )
    p_compile.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    p_compile.set_defaults(func=cmd_compile)

    # --- eval --------------------------------------------------------------
    p_eval = subparsers.add_parser(
        "eval",
        help="Evaluate a formula with the reference evaluator.",
    )
    p_eval.add_argument("expression", metavar="EXPR", help="Formula text.")
    p_eval.add_argument(
        "--at",
        nargs=3,
        type=float,
        default=[0.0, 0.0, 0.0],
        metavar=("T", "U", "V"),
        help="Values of t, u and v (default: 0 0 0).",
    )
    p_eval.set_defaults(func=cmd_eval)

    # --- live --------------------------------------------------------------
    p_live = subparsers.add_parser(
        "live",
        help="Read formulas interactively and hot-swap the running program.",
    )
    p_live.add_argument(
        "--fps",
        type=int,
        default=RuntimeConfig.max_fps,
        metavar="N",
        help=f"Render loop rate (default: {RuntimeConfig.max_fps}).",
    )
    p_live.add_argument(
        "--preview",
        action="store_true",
        help="Print an ASCII preview of each newly installed program.",
    )
    p_live.add_argument("--width", type=int, default=RuntimeConfig.width, metavar="N")
    p_live.add_argument("--height", type=int, default=RuntimeConfig.height, metavar="N")
    p_live.add_argument(
        "-i", "--input",
        default=None,
        metavar="FILE",
        help="Read formulas from FILE instead of stdin.",
    )
    p_live.add_argument(
        "--no-prompt",
        action="store_true",
        help="Do not print the '> ' prompt.",
    )
    p_live.set_defaults(func=cmd_live)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the livexpr CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except BrokenPipeError:
        # Piped into head and the like.
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return EXIT_OK
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
