# tests/test_errors.py
"""
Tests for error codes, diagnostics and the reporter.
"""

import json

from flowcomb.ast import NO_LOC, SourceLoc
from flowcomb.errors import (
    CompileError,
    ErrorCodes,
    ErrorReporter,
    ErrorSeverity,
    InvalidArrayArityError,
    ParseError,
    TranslationError,
    UnsupportedAnnotationError,
)


class TestErrorCodes:

    def test_code_format(self):
        assert ErrorCodes.INVALID_ARRAY_ARITY.code == "FLOW-2002"
        assert str(ErrorCodes.RESERVED_NAME) == "FLOW-3001"

    def test_code_compares_with_string(self):
        assert ErrorCodes.UNSUPPORTED_ANNOTATION == "FLOW-2001"
        assert ErrorCodes.UNSUPPORTED_ANNOTATION != "FLOW-2002"

    def test_exception_codes(self):
        assert UnsupportedAnnotationError("x").code == ErrorCodes.UNSUPPORTED_ANNOTATION
        assert issubclass(InvalidArrayArityError, TranslationError)


class TestCompileError:

    def test_wrap_prefers_declaration_location(self):
        inner = SourceLoc("f.fc", 9, 9)
        decl = SourceLoc("f.fc", 2, 3)
        err = CompileError.wrap(UnsupportedAnnotationError("bad", inner), decl)
        assert err.loc == decl
        assert err.message == "[flowcomb] bad"
        assert err.severity is ErrorSeverity.FATAL

    def test_wrap_falls_back_to_own_location(self):
        own = SourceLoc("f.fc", 4, 1)
        err = CompileError.wrap(ParseError("oops", own))
        assert err.loc == own

    def test_wrap_without_any_location(self):
        assert CompileError.wrap(ParseError("oops")).loc == NO_LOC

    def test_str(self):
        err = CompileError.wrap(UnsupportedAnnotationError("bad"), SourceLoc("f.fc", 1, 2))
        assert str(err) == "f.fc:1:2: fatal: [flowcomb] bad [FLOW-2001]"


class TestErrorReporter:

    def _reporter(self):
        reporter = ErrorReporter()
        reporter.add(CompileError.wrap(UnsupportedAnnotationError("bad"), SourceLoc("a.fc", 1, 1)))
        reporter.add(CompileError.wrap(ParseError("oops"), SourceLoc("b.fc", 2, 1)))
        return reporter

    def test_counts(self):
        reporter = self._reporter()
        assert len(reporter) == 2
        assert reporter.has_errors()
        assert reporter.error_count() == 2

    def test_empty(self):
        reporter = ErrorReporter()
        assert not reporter.has_errors()
        assert reporter.format_summary() == "--- 0 diagnostic(s), 0 error(s) ---"

    def test_json(self):
        data = json.loads(self._reporter().format_json())
        assert [d["file"] for d in data] == ["a.fc", "b.fc"]
        assert data[1]["code"] == "FLOW-1001"
