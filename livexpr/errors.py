# livexpr/errors.py
"""
livexpr Error Types and Reporting Module

Error infrastructure for the livexpr compiler pipeline. Every failure the
parser, the encoder or the reference evaluator can produce is a subclass
of :class:`LivexprError` carrying a structured :class:`ErrorMessage`.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                    │
├─────────────────────────────────────────────────────────────────────────────┤
│  LivexprError (base)                                                        │
│  ├── ParseError            - Grammar failures                               │
│  │   ├── UnexpectedInputError  - No alternative matched                     │
│  │   └── TrailingInputError    - Prefix parsed, input remained              │
│  ├── EncodeError           - Instruction encoding failures                  │
│  │   ├── UnknownVariableError  - Identifier is not t, u or v                │
│  │   └── LiteralRangeError     - Literal does not fit in binary32           │
│  ├── ProgramError          - Malformed instruction stream                   │
│  └── AstFormatError        - Malformed S-expression tree dump               │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a unique code ``LXP-XXXX`` where XXXX falls in:
  - 1000-1999: Syntax errors
  - 4000-4999: Code generation errors
  - 5000-5999: Runtime errors
  - 9000-9999: Internal errors

Example Usage:
──────────────
    from livexpr.errors import ParseError
    from livexpr.parser import parse

    try:
        parse("1+2)")
    except ParseError as exc:
        print(exc.render())      # the caret diagnostic
        print(exc.to_json())     # structured form
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, List, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for livexpr errors."""

    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"


@unique
class ErrorPhase(Enum):
    """Compilation phase where the error occurred."""

    SYNTAX = "syntax"          # Parsing
    CODEGEN = "codegen"        # Instruction encoding
    RUNTIME = "runtime"        # Program installation / evaluation
    INTERNAL = "internal"      # Tree dumps and other internals


class ErrorCode:
    """
    Unique identifier for an error kind, e.g. ``LXP-1000``.

    Codes compare equal to their string form so tests and callers can
    write ``exc.code == "LXP-4000"``.
    """

    __slots__ = ("prefix", "number", "phase", "default_severity")

    def __init__(
        self,
        prefix: str,
        number: int,
        phase: ErrorPhase,
        default_severity: ErrorSeverity = ErrorSeverity.ERROR,
    ) -> None:
        self.prefix = prefix
        self.number = number
        self.phase = phase
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        """Get the full error code string."""
        return f"{self.prefix}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.phase.name})"

    def __hash__(self) -> int:
        return hash((self.prefix, self.number))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.prefix == other.prefix and self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


# ───────────────────────────────────────────────────────────────────────────────
# PREDEFINED ERROR CODES
# ───────────────────────────────────────────────────────────────────────────────

class LivexprErrorCodes:
    """Predefined error codes."""

    # SYNTAX ERRORS (1000-1999)
    UNEXPECTED_INPUT = ErrorCode("LXP", 1000, ErrorPhase.SYNTAX)
    TRAILING_INPUT = ErrorCode("LXP", 1001, ErrorPhase.SYNTAX)

    # CODE GENERATION ERRORS (4000-4999)
    UNKNOWN_VARIABLE = ErrorCode("LXP", 4000, ErrorPhase.CODEGEN)
    LITERAL_OUT_OF_RANGE = ErrorCode("LXP", 4001, ErrorPhase.CODEGEN)

    # RUNTIME ERRORS (5000-5999)
    MALFORMED_PROGRAM = ErrorCode("LXP", 5000, ErrorPhase.RUNTIME)
    NO_PROGRAM = ErrorCode("LXP", 5001, ErrorPhase.RUNTIME)

    # INTERNAL ERRORS (9000-9999)
    INTERNAL_ERROR = ErrorCode(
        "LXP", 9000, ErrorPhase.INTERNAL, ErrorSeverity.FATAL
    )
    MALFORMED_TREE_DUMP = ErrorCode("LXP", 9001, ErrorPhase.INTERNAL)


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATION TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceSpan:
    """
    A span of a single-line source expression.

    Columns are 1-based like compiler diagnostics; ``from_offset`` converts
    the parser's 0-based cursor offsets.
    """

    file: str = ""
    line: int = 0
    column: int = 0
    end_column: int = 0

    def __post_init__(self) -> None:
        if self.end_column == 0:
            object.__setattr__(self, "end_column", self.column)

    @classmethod
    def from_offset(
        cls, offset: int, length: int = 1, file: str = "<input>"
    ) -> "SourceSpan":
        """Build a span on line 1 starting at 0-based *offset*."""
        column = offset + 1
        return cls(
            file=file,
            line=1,
            column=column,
            end_column=column + max(1, length),
        )

    @property
    def offset(self) -> int:
        """0-based character offset of the span start."""
        return max(0, self.column - 1)

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"

        parts = []
        if self.file:
            parts.append(self.file)
        if self.line > 0:
            parts.append(str(self.line))
            if self.column > 0:
                parts.append(str(self.column))

        return ":".join(parts)


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR MESSAGE FORMATTING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class ErrorMessage:
    """
    A complete error message with all context.

    This is the internal representation of an error before it is printed
    or serialised.
    """

    code: ErrorCode
    message: str
    span: SourceSpan = field(default_factory=SourceSpan)
    severity: Optional[ErrorSeverity] = None  # None means use code's default
    hint: str = ""
    source_line: str = ""

    def __post_init__(self) -> None:
        if self.severity is None:
            self.severity = self.code.default_severity

    def with_hint(self, hint: str) -> "ErrorMessage":
        """Add a hint to this error message."""
        self.hint = hint
        return self

    def with_source(self, line: str) -> "ErrorMessage":
        """Add the source line for display."""
        self.source_line = line
        return self

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        severity = self.severity.value if self.severity else "error"
        lines = [f"{self.span}: {severity}: {self.message} [{self.code}]"]

        if self.source_line:
            lines.append(f"    {self.source_line}")
            if self.span.column > 0:
                caret_pos = self.span.column - 1
                caret_len = max(1, self.span.end_column - self.span.column)
                lines.append(f"    {' ' * caret_pos}{'^' * caret_len}")

        if self.hint:
            lines.append(f"hint: {self.hint}")

        return "\n".join(lines)

    def to_json(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "code": self.code.code,
            "message": self.message,
            "severity": self.severity.value if self.severity else "error",
            "location": {
                "file": self.span.file,
                "line": self.span.line,
                "column": self.span.column,
                "end_column": self.span.end_column,
            },
            "phase": self.code.phase.value,
            "hint": self.hint,
        }

    def __str__(self) -> str:
        return self.to_gcc_format()


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class LivexprError(Exception):
    """
    Base exception for all livexpr errors.

    Carries structured error information that can be pretty-printed or
    converted to JSON.
    """

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        severity: Optional[ErrorSeverity] = None,
        hint: str = "",
        source_line: str = "",
    ) -> None:
        super().__init__(message)
        self.error_message = ErrorMessage(
            code=code or LivexprErrorCodes.INTERNAL_ERROR,
            message=message,
            span=span or SourceSpan(),
            severity=severity,
            hint=hint,
            source_line=source_line,
        )

    @property
    def code(self) -> ErrorCode:
        return self.error_message.code

    @property
    def span(self) -> SourceSpan:
        return self.error_message.span

    @property
    def severity(self) -> ErrorSeverity:
        return self.error_message.severity or ErrorSeverity.ERROR

    @property
    def phase(self) -> ErrorPhase:
        return self.code.phase

    def with_hint(self, hint: str) -> "LivexprError":
        """Add a hint to this error."""
        self.error_message.with_hint(hint)
        return self

    def render(self) -> str:
        """Text written to the diagnostics stream."""
        return self.to_gcc_format()

    def to_gcc_format(self) -> str:
        """Format as a GCC-style error message."""
        return self.error_message.to_gcc_format()

    def to_json(self) -> Dict[str, Any]:
        return self.error_message.to_json()

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────────
# SYNTAX ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ParseError(LivexprError):
    """
    The input is not a complete expression.

    ``offset`` is where the cursor stopped, which is not necessarily where
    the mistake is: it is the position reached after the deepest
    successful match.
    """

    def __init__(
        self,
        message: str,
        text: str,
        offset: int,
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or LivexprErrorCodes.UNEXPECTED_INPUT,
            span=SourceSpan.from_offset(offset),
            source_line=text,
            **kwargs,
        )
        self.text = text
        self.offset = offset

    def render(self) -> str:
        """The classic three-line caret diagnostic."""
        return f"Parse error here:\n{self.text}\n{' ' * self.offset}^"


class UnexpectedInputError(ParseError):
    """No grammar alternative matched at the cursor."""

    def __init__(self, text: str, offset: int, **kwargs: Any) -> None:
        if offset >= len(text):
            found = "end of input"
        else:
            found = repr(text[offset])
        super().__init__(
            message=f"Unexpected {found}",
            text=text,
            offset=offset,
            code=LivexprErrorCodes.UNEXPECTED_INPUT,
            **kwargs,
        )


class TrailingInputError(ParseError):
    """An expression was parsed but characters remain after it."""

    def __init__(self, text: str, offset: int, **kwargs: Any) -> None:
        super().__init__(
            message=f"Unexpected trailing input {text[offset:]!r}",
            text=text,
            offset=offset,
            code=LivexprErrorCodes.TRAILING_INPUT,
            hint="Check for an unbalanced ')' or a missing operator",
            **kwargs,
        )


# ───────────────────────────────────────────────────────────────────────────────
# CODE GENERATION ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class EncodeError(LivexprError):
    """Error while lowering a tree to instruction words."""

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        span: Optional[SourceSpan] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or LivexprErrorCodes.UNKNOWN_VARIABLE,
            span=span,
            **kwargs,
        )


class UnknownVariableError(EncodeError):
    """An identifier accepted by the grammar is not a reserved variable."""

    def __init__(
        self,
        name: str,
        offset: int = 0,
        known: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=f"Unknown variable: {name}",
            code=LivexprErrorCodes.UNKNOWN_VARIABLE,
            span=SourceSpan.from_offset(offset, len(name)),
            **kwargs,
        )
        self.name = name
        if known:
            self.with_hint(f"Available variables: {', '.join(known)}")


class LiteralRangeError(EncodeError):
    """A literal is too large for a binary32 payload."""

    def __init__(self, value: float, offset: int = 0, **kwargs: Any) -> None:
        super().__init__(
            message=f"Literal {value:.0f} does not fit in a 32-bit float",
            code=LivexprErrorCodes.LITERAL_OUT_OF_RANGE,
            span=SourceSpan.from_offset(offset),
            **kwargs,
        )
        self.value = value


# ───────────────────────────────────────────────────────────────────────────────
# RUNTIME / INTERNAL ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class ProgramError(LivexprError):
    """An instruction stream cannot be installed or executed."""

    def __init__(
        self,
        message: str,
        position: int = -1,
        code: Optional[ErrorCode] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message=message,
            code=code or LivexprErrorCodes.MALFORMED_PROGRAM,
            **kwargs,
        )
        self.position = position


class AstFormatError(LivexprError):
    """An S-expression does not describe a valid expression tree."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(
            message=message,
            code=LivexprErrorCodes.MALFORMED_TREE_DUMP,
            **kwargs,
        )


__all__ = [
    "ErrorSeverity",
    "ErrorPhase",
    "ErrorCode",
    "LivexprErrorCodes",
    "SourceSpan",
    "ErrorMessage",
    "LivexprError",
    "ParseError",
    "UnexpectedInputError",
    "TrailingInputError",
    "EncodeError",
    "UnknownVariableError",
    "LiteralRangeError",
    "ProgramError",
    "AstFormatError",
]
