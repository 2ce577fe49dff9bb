# flowcomb/errors.py
"""
flowcomb Error Types and Reporting Module

Error handling infrastructure for the flowcomb compiler pipeline:
front-end parsing, annotation translation, function instrumentation and
code generation.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  FlowcombError (base)                                                       │
│  ├── ParseError                       - Malformed host input                │
│  ├── ConfigError                      - Bad compiler options                │
│  ├── TranslationError                 - Annotation translation failures     │
│  │   ├── UnsupportedAnnotationError   - Unrecognized annotation shape       │
│  │   ├── InvalidArrayArityError       - Array<...> without exactly 1 arg    │
│  │   ├── InvalidRefinementDefinitionError - Malformed $Refinement use       │
│  │   └── ReservedNameError            - Declaration named $Refinement       │
│  └── CodeGenError                     - Printer failures                    │
│                                                                             │
│  CompileError                         - File-positioned diagnostic that     │
│                                         aborts translation of one file      │
└─────────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
Each error has a unique code ``FLOW-NNNN``:
  - 1000-1999: Syntax errors (host input)
  - 2000-2999: Type translation errors
  - 3000-3999: Declaration errors
  - 4000-4999: Code generation errors
  - 5000-5999: Configuration errors

Example Usage:
──────────────
    from flowcomb.errors import CompileError, ErrorReporter

    reporter = ErrorReporter()
    for result in results:
        if result.error is not None:
            reporter.add(result.error)
    if reporter.has_errors():
        print(reporter.format_summary())
"""

from __future__ import annotations

import json
from enum import Enum, unique
from typing import Any, Dict, Iterator, List, Optional

from flowcomb.ast import NO_LOC, SourceLoc

PLUGIN_NAME = "flowcomb"


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorSeverity(Enum):
    """Severity levels for flowcomb diagnostics."""

    # Aborts translation of the enclosing file
    FATAL = "fatal"

    def is_error(self) -> bool:
        return self is ErrorSeverity.FATAL


@unique
class ErrorPhase(Enum):
    """Compilation phase where the error occurred."""

    SYNTAX = "syntax"
    TRANSLATION = "translation"
    DECLARATION = "declaration"
    CODEGEN = "codegen"
    CONFIG = "config"


class ErrorCode:
    """
    Structured error code ``FLOW-NNNN``.

    Codes compare equal to their string form so tests and callers can
    write ``err.code == "FLOW-2001"``.
    """

    __slots__ = ("number", "phase", "default_severity", "title")

    PREFIX = "FLOW"

    def __init__(
        self,
        number: int,
        phase: ErrorPhase,
        title: str,
        default_severity: ErrorSeverity = ErrorSeverity.FATAL,
    ) -> None:
        self.number = number
        self.phase = phase
        self.title = title
        self.default_severity = default_severity

    @property
    def code(self) -> str:
        return f"{self.PREFIX}-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.title!r})"

    def __hash__(self) -> int:
        return hash(self.number)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class ErrorCodes:
    """Predefined error codes."""

    # ═══════════════════════════════════════════════════════════════════════════
    # SYNTAX ERRORS (1000-1999)
    # ═══════════════════════════════════════════════════════════════════════════

    MALFORMED_SEXP = ErrorCode(1000, ErrorPhase.SYNTAX, "malformed s-expression")
    UNEXPECTED_FORM = ErrorCode(1001, ErrorPhase.SYNTAX, "unexpected form")

    # ═══════════════════════════════════════════════════════════════════════════
    # TRANSLATION ERRORS (2000-2999)
    # ═══════════════════════════════════════════════════════════════════════════

    UNSUPPORTED_ANNOTATION = ErrorCode(
        2001, ErrorPhase.TRANSLATION, "unsupported type annotation"
    )
    INVALID_ARRAY_ARITY = ErrorCode(
        2002, ErrorPhase.TRANSLATION, "invalid Array arity"
    )
    INVALID_REFINEMENT = ErrorCode(
        2003, ErrorPhase.TRANSLATION, "invalid refinement definition"
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # DECLARATION ERRORS (3000-3999)
    # ═══════════════════════════════════════════════════════════════════════════

    RESERVED_NAME = ErrorCode(3001, ErrorPhase.DECLARATION, "reserved name")

    # ═══════════════════════════════════════════════════════════════════════════
    # CODEGEN / CONFIG (4000-5999)
    # ═══════════════════════════════════════════════════════════════════════════

    UNPRINTABLE_NODE = ErrorCode(4001, ErrorPhase.CODEGEN, "unprintable node")
    BAD_OPTION = ErrorCode(5001, ErrorPhase.CONFIG, "bad compiler option")


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION HIERARCHY
# ═══════════════════════════════════════════════════════════════════════════════

class FlowcombError(Exception):
    """Base class of every error raised by the compiler."""

    code: ErrorCode = ErrorCodes.UNEXPECTED_FORM

    def __init__(self, message: str, loc: Optional[SourceLoc] = None) -> None:
        super().__init__(message)
        self.message = message
        self.loc = loc

    def __str__(self) -> str:
        if self.loc is not None and self.loc != NO_LOC:
            return f"{self.loc}: {self.message}"
        return self.message


class ParseError(FlowcombError):
    """Raised when the host input cannot be mapped to a valid tree."""

    code = ErrorCodes.UNEXPECTED_FORM


class ConfigError(FlowcombError):
    code = ErrorCodes.BAD_OPTION


class CodeGenError(FlowcombError):
    code = ErrorCodes.UNPRINTABLE_NODE


class TranslationError(FlowcombError):
    """Compile-time failure while translating one declaration."""


class UnsupportedAnnotationError(TranslationError):
    code = ErrorCodes.UNSUPPORTED_ANNOTATION


class InvalidArrayArityError(TranslationError):
    code = ErrorCodes.INVALID_ARRAY_ARITY


class InvalidRefinementDefinitionError(TranslationError):
    code = ErrorCodes.INVALID_REFINEMENT


class ReservedNameError(TranslationError):
    code = ErrorCodes.RESERVED_NAME


# ═══════════════════════════════════════════════════════════════════════════════
# FILE-POSITIONED DIAGNOSTIC
# ═══════════════════════════════════════════════════════════════════════════════

class CompileError(Exception):
    """
    A failure reported against one file.

    Carries the originating declaration's position, the error code of
    the underlying failure and a ``[flowcomb]``-prefixed message.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        loc: SourceLoc = NO_LOC,
        severity: ErrorSeverity = ErrorSeverity.FATAL,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.loc = loc
        self.severity = severity
        self.cause = cause

    def __repr__(self) -> str:
        return f"CompileError({self.message!r}, {self.code.code!r}, {self.loc!r})"

    @classmethod
    def wrap(cls, error: FlowcombError, loc: Optional[SourceLoc] = None) -> "CompileError":
        """Position *error* at the declaration *loc*, else at its own location."""
        where = loc if loc is not None and loc != NO_LOC else error.loc
        return cls(
            message=f"[{PLUGIN_NAME}] {error.message}",
            code=error.code,
            loc=where if where is not None else NO_LOC,
            severity=error.code.default_severity,
            cause=error,
        )

    @property
    def file(self) -> str:
        return self.loc.file

    def __str__(self) -> str:
        return f"{self.loc}: {self.severity.value}: {self.message} [{self.code}]"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file": self.loc.file,
            "line": self.loc.line,
            "column": self.loc.col,
            "severity": self.severity.value,
            "code": str(self.code),
            "message": self.message,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR REPORTER
# ═══════════════════════════════════════════════════════════════════════════════

class ErrorReporter:
    """Accumulates diagnostics across files for the CLI summary."""

    def __init__(self) -> None:
        self._diagnostics: List[CompileError] = []

    def add(self, diagnostic: CompileError) -> None:
        self._diagnostics.append(diagnostic)

    def __iter__(self) -> Iterator[CompileError]:
        return iter(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def has_errors(self) -> bool:
        return any(d.severity.is_error() for d in self._diagnostics)

    def error_count(self) -> int:
        return sum(1 for d in self._diagnostics if d.severity.is_error())

    def format_text(self) -> str:
        return "\n".join(str(d) for d in self._diagnostics)

    def format_json(self) -> str:
        return json.dumps([d.to_dict() for d in self._diagnostics], indent=2)

    def format_summary(self) -> str:
        return (
            f"--- {len(self._diagnostics)} diagnostic(s), "
            f"{self.error_count()} error(s) ---"
        )
