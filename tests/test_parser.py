# tests/test_parser.py
"""
Tests for the S-expression front-end: source text → host tree.
"""

import pytest

from flowcomb import ast as A
from flowcomb.errors import ErrorCodes, ParseError
from flowcomb.parser import parse_annotation, parse_program
from tests.conftest import (
    EMPTY_SRC, FULL_SRC, IMPORT_SRC, PERSON_SRC, REFINED_INTERFACE_SRC,
    TYPED_FUNCTION_SRC,
)


class TestParseProgram:

    def test_empty_program(self):
        prog = parse_program(EMPTY_SRC)
        assert isinstance(prog, A.Program)
        assert prog.body == ()

    def test_filename_recorded(self):
        prog = parse_program(EMPTY_SRC, filename="m.fc")
        assert prog.file == "m.fc"

    def test_comments_ignored(self):
        prog = parse_program(FULL_SRC)
        assert len(prog.body) == 6

    def test_missing_program_wrapper(self):
        with pytest.raises(ParseError):
            parse_program('(type A number)')

    def test_unknown_statement(self):
        with pytest.raises(ParseError, match="Unknown statement form"):
            parse_program("(program (frobnicate x))")

    def test_unbalanced_parens(self):
        with pytest.raises(ParseError) as info:
            parse_program("(program (type A number)")
        assert info.value.code == ErrorCodes.MALFORMED_SEXP


class TestParseImport:

    def test_default_import(self):
        decl = parse_program(IMPORT_SRC).body[0]
        assert isinstance(decl, A.ImportDecl)
        assert decl.source == "tcomb"
        assert decl.specifiers == (A.ImportSpecifier("default", "t"),)

    def test_named_import_with_alias(self):
        decl = parse_program('(program (import "tcomb-react" (named t tc) (named props)))').body[0]
        assert decl.specifiers[0] == A.ImportSpecifier("named", "tc", "t")
        assert decl.specifiers[1] == A.ImportSpecifier("named", "props", "props")

    def test_namespace_import(self):
        decl = parse_program('(program (import "tcomb" (namespace tc)))').body[0]
        assert decl.specifiers[0].kind == "namespace"


class TestParseDeclarations:

    def test_type_alias(self):
        alias = parse_program(PERSON_SRC).body[1]
        assert isinstance(alias, A.TypeAlias)
        assert alias.name == "Person"
        assert isinstance(alias.right, A.ObjectType)
        name, age = alias.right.properties
        assert (name.key, name.optional) == ("name", False)
        assert (age.key, age.optional) == ("age", True)
        assert age.value == A.PrimitiveType(A.PrimitiveKind.NUMBER)

    def test_generic_alias(self):
        alias = parse_program("(program (type Box (generics T) (object (prop v T))))").body[0]
        assert alias.type_params == ("T",)

    def test_interface_with_extends(self):
        iface = parse_program(REFINED_INTERFACE_SRC).body[1]
        assert isinstance(iface, A.InterfaceDecl)
        assert [str(e.id) for e in iface.extends] == ["Base", "$Refinement"]
        marker = iface.extends[1]
        assert isinstance(marker.type_args[0], A.TypeofType)
        assert str(marker.type_args[0].argument.id) == "isPositive"

    def test_function_signature(self):
        fn = parse_program(TYPED_FUNCTION_SRC).body[1]
        assert isinstance(fn, A.FunctionDecl)
        assert fn.name == "f"
        (param,) = fn.signature.params
        assert param.binding == A.BindingIdent("x")
        assert param.annotation == A.PrimitiveType(A.PrimitiveKind.NUMBER)
        assert fn.signature.return_type == A.PrimitiveType(A.PrimitiveKind.STRING)
        assert fn.body.body == (A.Return(A.Raw("x.toString()")),)

    def test_generic_function(self):
        fn = parse_program('(program (function id (generics T) ((param x T)) (returns T) (body (return "x"))))').body[0]
        assert fn.signature.type_params == ("T",)

    def test_const_requires_initializer(self):
        with pytest.raises(ParseError):
            parse_program("(program (const x))")

    def test_let_without_initializer(self):
        decl = parse_program("(program (let x))").body[0]
        assert decl.init is None

    def test_require_call(self):
        decl = parse_program('(program (const t (require "tcomb")))').body[0]
        assert A.is_require_call(decl.init)

    def test_export_wraps_declaration(self):
        decl = parse_program("(program (export (type A number)))").body[0]
        assert isinstance(decl, A.ExportDecl)
        assert isinstance(decl.declaration, A.TypeAlias)


class TestParseParams:

    def _params(self, params_src):
        fn = parse_program(f"(program (function f {params_src} (body)))").body[0]
        return fn.signature.params

    def test_bare_name(self):
        assert self._params("(x)") == (A.Param(A.BindingIdent("x")),)

    def test_optional(self):
        (p,) = self._params("((param? x number))")
        assert p.optional

    def test_default(self):
        (p,) = self._params('((default (param x number) "1"))')
        assert p.default == A.Raw("1")
        assert p.annotation is not None

    def test_rest(self):
        (p,) = self._params("((rest xs (array number)))")
        assert p.rest
        assert isinstance(p.annotation, A.ArrayType)

    def test_object_pattern(self):
        (p,) = self._params('((pattern (obj a (b c) (default d "0") (rest others))))')
        pattern = p.binding
        assert isinstance(pattern, A.ObjectPattern)
        assert pattern.fields[0].shorthand
        assert pattern.fields[1] == A.PatternField("b", A.BindingIdent("c"))
        assert pattern.fields[2].value == A.DefaultPattern(A.BindingIdent("d"), A.Raw("0"))
        assert pattern.rest == "others"

    def test_array_pattern_with_hole(self):
        (p,) = self._params("((pattern (arr a _ b)))")
        assert p.binding.elements == (A.BindingIdent("a"), None, A.BindingIdent("b"))

    def test_optional_needs_type(self):
        with pytest.raises(ParseError):
            self._params("((param? x))")


class TestParseAnnotations:

    @pytest.mark.parametrize("src, kind", [
        ("number", A.PrimitiveKind.NUMBER),
        ("string", A.PrimitiveKind.STRING),
        ("void", A.PrimitiveKind.VOID),
        ("mixed", A.PrimitiveKind.MIXED),
    ])
    def test_primitives(self, src, kind):
        assert parse_annotation(src) == A.PrimitiveType(kind)

    def test_literals(self):
        assert parse_annotation('"red"') == A.StringLiteralType("red")
        assert parse_annotation("5") == A.NumberLiteralType(5)
        assert parse_annotation("-1.5") == A.NumberLiteralType(-1.5)
        assert parse_annotation("true") == A.BooleanLiteralType(True)

    def test_dotted_reference(self):
        named = parse_annotation("models.Person")
        assert named.id.parts == ("models", "Person")
        assert named.type_args is None

    def test_generic_reference(self):
        named = parse_annotation("(Array number)")
        assert str(named.id) == "Array"
        assert named.type_args == (A.PrimitiveType(A.PrimitiveKind.NUMBER),)

    def test_empty_generic_reference(self):
        assert parse_annotation("(Array)").type_args == ()

    def test_indexer(self):
        obj = parse_annotation("(object (indexer key string number))")
        (indexer,) = obj.indexers
        assert indexer.id == "key"
        assert indexer.value == A.PrimitiveType(A.PrimitiveKind.NUMBER)

    def test_function_type(self):
        fn = parse_annotation("(fn (number string) boolean)")
        assert isinstance(fn, A.FunctionType)
        assert len(fn.params) == 2

    def test_unknown_object_member(self):
        with pytest.raises(ParseError):
            parse_annotation("(object (field a number))")


class TestSourcePositions:

    def test_declaration_location(self):
        prog = parse_program(PERSON_SRC, filename="p.fc")
        alias = prog.body[1]
        assert alias.loc == A.SourceLoc("p.fc", 3, 3)

    def test_strings_and_comments_do_not_shift_positions(self):
        src = '(program\n  ; (not a form\n  (const s "(((")\n  (type A number))'
        prog = parse_program(src)
        assert prog.body[1].loc.line == 4
        assert prog.body[1].loc.col == 3

    def test_parse_error_carries_location(self):
        with pytest.raises(ParseError) as info:
            parse_program("(program\n  (bogus))", filename="e.fc")
        assert info.value.loc == A.SourceLoc("e.fc", 2, 3)
