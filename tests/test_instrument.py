# tests/test_instrument.py
"""
Tests for function instrumentation: argument checks and return wrapping.
"""

from flowcomb import ast as A
from flowcomb.codegen import JsPrinter, generate
from flowcomb.instrument import (
    RETURN_LABEL,
    bound_names,
    instrument_function,
    rebuild_value,
)
from flowcomb.parser import parse_program


def _fn(src):
    return parse_program(f"(program {src})").body[0]


def _instrumented(src, ctx):
    fn = _fn(src)
    signature, body = instrument_function(fn.signature, fn.body, ctx)
    out = generate(A.Program((A.FunctionDecl(fn.name, signature, body),)))
    return out.strip().split("\n")


class TestArgumentChecks:

    def test_one_check_per_typed_param(self, ctx):
        lines = _instrumented('(function f ((param x number) y (param z string)) (body (return "x")))', ctx)
        assert lines == [
            "function f(x, y, z) {",
            '    _assert(x, t.Number, "x");',
            '    _assert(z, t.String, "z");',
            "    return x;",
            "}",
        ]

    def test_optional_param_is_maybe(self, ctx):
        lines = _instrumented("(function f ((param? x number)) (body))", ctx)
        assert '    _assert(x, t.maybe(t.Number), "x");' in lines

    def test_default_param_checked_after_default(self, ctx):
        lines = _instrumented('(function f ((default (param x number) "1")) (body))', ctx)
        assert lines[0] == "function f(x = 1) {"
        assert lines[1] == '    _assert(x, t.Number, "x");'

    def test_destructured_param_uses_arguments(self, ctx):
        lines = _instrumented(
            "(function f ((pattern (obj a b) (object (prop a number) (prop b string)))) (body))",
            ctx,
        )
        assert lines[0] == "function f({a, b}) {"
        assert lines[1] == (
            '    _assert(arguments[0], t.interface({a: t.Number, b: t.String}), "arguments[0]");'
        )

    def test_destructured_default_param_uses_rebuilt_value(self, ctx):
        lines = _instrumented(
            '(function f (x (default (pattern (obj a) (object (prop a number))) "{}")) (body))',
            ctx,
        )
        assert lines[0] == "function f(x, {a} = {}) {"
        assert lines[1] == '    _assert({a}, t.interface({a: t.Number}), "arguments[1]");'

    def test_rest_param(self, ctx):
        lines = _instrumented("(function f ((rest xs (array number))) (body))", ctx)
        assert lines[0] == "function f(...xs) {"
        assert lines[1] == '    _assert(xs, t.list(t.Number), "xs");'

    def test_generic_param_checks_any(self, ctx):
        lines = _instrumented('(function id (generics T) ((param x T)) (body (return "x")))', ctx)
        assert lines[1] == '    _assert(x, t.Any, "x");'

    def test_untyped_function_unchanged(self, ctx):
        fn = _fn('(function f (x) (body (return "x")))')
        signature, body = instrument_function(fn.signature, fn.body, ctx)
        assert signature == fn.signature
        assert body == fn.body


class TestReturnWrapping:

    def test_wrapped_body(self, ctx):
        lines = _instrumented(
            '(function f ((param x number)) (returns string) (body (return "x.toString()")))', ctx
        )
        assert lines == [
            "function f(x) {",
            '    _assert(x, t.Number, "x");',
            "    const _ret = (function (x) { return x.toString(); }).call(this, x);",
            '    _assert(_ret, t.String, "return value");',
            "    return _ret;",
            "}",
        ]

    def test_side_effects_stay_in_wrapper(self, ctx):
        lines = _instrumented(
            '(function f () (returns number) (body (stmt "count++;") (return "count")))', ctx
        )
        assert lines[1] == "    const _ret = (function () {"
        assert lines[2] == "        count++;"
        assert lines[3] == "        return count;"
        assert lines[4] == "    }).call(this);"

    def test_temporary_avoids_param_names(self, ctx):
        lines = _instrumented('(function f (_ret) (returns number) (body (return "1")))', ctx)
        assert "const _ret2 = " in lines[1]

    def test_rest_is_forwarded_with_spread(self, ctx):
        lines = _instrumented(
            '(function f (a (rest xs)) (returns number) (body (return "xs.length")))', ctx
        )
        assert lines[1] == (
            "    const _ret = (function (a, ...xs) { return xs.length; }).call(this, a, ...xs);"
        )

    def test_return_label(self, ctx):
        assert RETURN_LABEL == "return value"


class TestArrowFunctions:

    def test_expression_body_normalized(self, ctx):
        arrow = parse_program(
            '(program (const f (arrow ((param x number)) (returns string) "x.toString()")))'
        ).body[0].init
        signature, body = instrument_function(arrow.signature, arrow.body, ctx, arrow=True)
        text = JsPrinter().expression(A.ArrowFunction(signature, body))
        assert text.split("\n") == [
            "(x) => {",
            '    _assert(x, t.Number, "x");',
            "    const _ret = (function (x) { return x.toString(); }).call(this, x);",
            '    _assert(_ret, t.String, "return value");',
            "    return _ret;",
            "}",
        ]

    def test_destructured_arrow_param_rebuilt(self, ctx):
        arrow = parse_program(
            "(program (const f (arrow ((pattern (arr a b) (tuple number number))) \"a + b\")))"
        ).body[0].init
        _, body = instrument_function(arrow.signature, arrow.body, ctx, arrow=True)
        text = JsPrinter().expression(A.ArrowFunction(arrow.signature, body))
        assert '_assert([a, b], t.tuple([t.Number, t.Number]), "arguments[0]");' in text


class TestPatterns:

    def test_bound_names(self):
        pattern = A.ObjectPattern(
            (A.PatternField("a", A.BindingIdent("a")),
             A.PatternField("b", A.ArrayPattern((A.BindingIdent("c"), None)))),
            rest="r",
        )
        assert bound_names(pattern) == ["a", "c", "r"]

    def test_rebuild_value(self):
        pattern = A.ArrayPattern(
            (A.BindingIdent("a"), None, A.DefaultPattern(A.BindingIdent("b"), A.Raw("1"))),
            rest="tail",
        )
        assert JsPrinter().expression(rebuild_value(pattern)) == "[a, undefined, b, ...tail]"
