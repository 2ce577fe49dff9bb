# tests/test_context.py
"""
Tests for library binding resolution and fresh-name allocation.
"""

import pytest

from flowcomb import ast as A
from flowcomb.codegen import render_expression
from flowcomb.context import TCOMB_LIBRARIES, TranslationContext
from flowcomb.parser import parse_program


def _context_for(src):
    ctx = TranslationContext("ctx.fc")
    for stmt in parse_program(f"(program {src})").body:
        ctx.register_library_form(stmt)
    return ctx


class TestLibraryBinding:

    def test_default_is_require(self):
        ctx = TranslationContext()
        assert render_expression(ctx.library()) == 'require("tcomb")'
        assert ctx.binding.origin == "default"

    def test_default_import(self):
        ctx = _context_for('(import "tcomb" (default t))')
        assert render_expression(ctx.library()) == "t"

    @pytest.mark.parametrize("package", sorted(TCOMB_LIBRARIES))
    def test_recognized_packages(self, package):
        ctx = _context_for(f'(import "{package}" (default lib))')
        assert render_expression(ctx.library()) == "lib"

    def test_named_t_import(self):
        ctx = _context_for('(import "tcomb-react" (named props) (named t tc))')
        assert render_expression(ctx.library()) == "tc"

    def test_unrelated_import_ignored(self):
        ctx = _context_for('(import "lodash" (default _))')
        assert ctx.binding is None

    def test_import_without_usable_specifier(self):
        ctx = _context_for('(import "tcomb-react" (named props))')
        assert ctx.binding is None

    def test_require_tcomb(self):
        ctx = _context_for('(const tc (require "tcomb"))')
        assert render_expression(ctx.library()) == "tc"

    def test_require_other_package_uses_t_member(self):
        ctx = _context_for('(const tr (require "tcomb-react"))')
        assert render_expression(ctx.library()) == "tr.t"

    def test_require_destructured(self):
        ctx = _context_for('(const (obj (t tc) props) (require "tcomb-react"))')
        assert render_expression(ctx.library()) == "tc"

    def test_first_form_wins(self):
        ctx = _context_for(
            '(const first (require "tcomb")) (import "tcomb" (default second))'
        )
        assert render_expression(ctx.library()) == "first"

    def test_reset_forgets_binding(self):
        ctx = _context_for('(import "tcomb" (default t))')
        ctx.reset("other.fc")
        assert ctx.binding is None
        assert ctx.filename == "other.fc"


class TestScopes:

    def test_nested_frames(self):
        ctx = TranslationContext()
        with ctx.enter_scope(["T"]):
            with ctx.enter_scope(["U"]):
                assert ctx.current_scope() == frozenset({"T", "U"})
            assert not ctx.is_type_parameter("U")
            assert ctx.is_type_parameter("T")
        assert ctx.current_scope() == frozenset()

    def test_frame_popped_on_error(self):
        ctx = TranslationContext()
        with pytest.raises(RuntimeError):
            with ctx.enter_scope(["T"]):
                raise RuntimeError("boom")
        assert not ctx.is_type_parameter("T")


class TestFreshNames:

    def test_assert_name_avoids_declared_names(self):
        ctx = TranslationContext()
        ctx.reserve_names(["_assert", "_assert2"])
        assert ctx.assert_name == "_assert3"
        assert ctx.assert_name == "_assert3"

    def test_fresh_names_are_reserved(self):
        ctx = TranslationContext()
        assert ctx.fresh_name("tmp") == "_tmp"
        assert ctx.fresh_name("tmp") == "_tmp2"

    def test_fresh_local_not_reserved(self):
        ctx = TranslationContext()
        assert ctx.fresh_local("ret") == "_ret"
        assert ctx.fresh_local("ret") == "_ret"
        assert ctx.fresh_local("ret", avoid=["_ret"]) == "_ret2"
