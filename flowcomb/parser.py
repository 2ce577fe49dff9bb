"""flowcomb/parser.py – S-expression → host tree parser.

Converts the output of ``sexpdata.loads`` (nested Python lists,
:class:`sexpdata.Symbol`, strings, ints, floats) into the frozen nodes of
:mod:`flowcomb.ast`.

Design principles
-----------------
* **Single-pass, recursive-descent** over the S-expression tree.
* **Head-symbol dispatch** – every list ``(tag ...)`` is dispatched on
  ``tag`` to a dedicated ``_parse_<tag>`` helper.
* **Fail-fast with location** – ``ParseError`` carries the ``SourceLoc``
  of the offending form.  ``sexpdata`` does not track positions, so the
  source text is pre-scanned for the position of every ``(``; lists are
  then matched to positions by pre-order rank.
* **No implicit coercions** – anything unexpected is an error.

Public API
----------
``parse_program(text, filename="<string>") -> flowcomb.ast.Program``
``parse_annotation(text) -> flowcomb.ast.TypeAnnotation``
``parse_file(path) -> flowcomb.ast.Program``

Surface syntax (overview)
-------------------------
::

    (program
      (import "tcomb" (default t))
      (type Person (object (prop name string) (prop? age number)))
      (interface Point (extends Base ($Refinement (typeof isPositive)))
        (object (prop x number) (prop y number)))
      (function sum ((param a number) (param b number)) (returns number)
        (body (return "a + b")))
      (const inc (arrow ((param x number)) (returns number) "x + 1")))

    ;; annotations
    number string boolean void null any mixed    primitives
    "literal" 5 -1.5                             literals
    Name Dotted.Name                             references
    (Array T) ($Refinement (typeof p))           generic references
    (array T) (maybe T) (tuple T...) (union T...) (intersection T...)
    (object (prop k T) (prop? k T) (indexer [id] K V))
    (fn (T...) R) (typeof ref)
"""

from __future__ import annotations

import logging
import pathlib
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import sexpdata
from sexpdata import Symbol

from flowcomb import ast as A
from flowcomb.errors import ErrorCodes, ParseError

_log = logging.getLogger("flowcomb.parser")

# Raw sexpdata output
Sexp = Any  # Union[list, Symbol, str, int, float]

_PRIMITIVES = {kind.value: kind for kind in A.PrimitiveKind}
_DECL_KINDS = ("const", "let", "var")


# ═══════════════════════════════════════════════════════════════════════
#  Source positions
# ═══════════════════════════════════════════════════════════════════════

def _open_paren_positions(text: str) -> List[Tuple[int, int]]:
    """(line, col) of every ``(`` outside string literals and comments."""
    positions: List[Tuple[int, int]] = []
    line, col = 1, 0
    in_string = escaped = in_comment = False
    for ch in text:
        col += 1
        if ch == "\n":
            line, col = line + 1, 0
            in_comment = False
            continue
        if in_comment:
            continue
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == ";":
            in_comment = True
        elif ch == "(":
            positions.append((line, col))
    return positions


class _Reader:
    """Per-parse state: file name and list → position table."""

    def __init__(self, text: str, filename: str) -> None:
        self.filename = filename
        self._positions = _open_paren_positions(text)
        self._locs: Dict[int, A.SourceLoc] = {}

    def index(self, raw: Sexp) -> None:
        rank = 0
        stack = [raw]
        while stack:
            node = stack.pop()
            if not isinstance(node, list):
                continue
            if rank < len(self._positions):
                line, col = self._positions[rank]
                self._locs[id(node)] = A.SourceLoc(self.filename, line, col)
            rank += 1
            stack.extend(reversed(node))

    def loc(self, s: Sexp) -> A.SourceLoc:
        return self._locs.get(id(s), A.SourceLoc(self.filename, 0, 0))

    def error(self, message: str, s: Sexp = None) -> ParseError:
        return ParseError(message, self.loc(s) if isinstance(s, list) else None)


# ═══════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════

def _is_symbol(s: Sexp) -> bool:
    return isinstance(s, Symbol)


def _is_string(s: Sexp) -> bool:
    return isinstance(s, str) and not isinstance(s, Symbol)


def _is_number(s: Sexp) -> bool:
    return isinstance(s, (int, float)) and not isinstance(s, bool)


def _sym_name(r: _Reader, s: Sexp) -> str:
    if _is_symbol(s):
        return str(s)
    raise r.error(f"Expected symbol, got {type(s).__name__}: {s!r}")


def _head(s: Sexp) -> Optional[str]:
    """Head symbol name of ``(tag ...)``, or ``None``."""
    if isinstance(s, list) and s and _is_symbol(s[0]):
        return str(s[0])
    return None


def _expect_list(r: _Reader, s: Sexp, *, min_len: int = 0, tag: Optional[str] = None) -> list:
    if not isinstance(s, list):
        raise r.error(
            f"Expected list{f' ({tag} ...)' if tag else ''}, got {type(s).__name__}: {s!r}"
        )
    if len(s) < min_len:
        raise r.error(
            f"Form too short: expected at least {min_len} elements, got {len(s)}", s
        )
    if tag is not None and _head(s) != tag:
        raise r.error(f"Expected ({tag} ...), got ({_head(s) or '?'} ...)", s)
    return s


def _as_string(r: _Reader, s: Sexp) -> str:
    if _is_string(s):
        return s
    raise r.error(f"Expected string literal, got {type(s).__name__}: {s!r}")


def _optional_form(items: list, pos: int, tag: str) -> Tuple[Optional[list], int]:
    """Consume ``(tag ...)`` at *pos* if present."""
    if pos < len(items) and _head(items[pos]) == tag:
        return items[pos], pos + 1
    return None, pos


def _generics(r: _Reader, form: Optional[list]) -> Tuple[str, ...]:
    if form is None:
        return ()
    return tuple(_sym_name(r, n) for n in form[1:])


# ═══════════════════════════════════════════════════════════════════════
#  Dispatch registry
# ═══════════════════════════════════════════════════════════════════════

_ANNOTATION_DISPATCH: Dict[str, Callable[[_Reader, list], A.TypeAnnotation]] = {}
_STATEMENT_DISPATCH: Dict[str, Callable[[_Reader, list], A.Stmt]] = {}
_EXPRESSION_DISPATCH: Dict[str, Callable[[_Reader, list], A.Expr]] = {}


def _register(table: dict, *tags: str):
    """Decorator: register a parser function under each of *tags*."""
    def deco(fn):
        for tag in tags:
            table[tag] = fn
        return fn
    return deco


# ═══════════════════════════════════════════════════════════════════════
#  Type annotations
# ═══════════════════════════════════════════════════════════════════════

def parse_type(r: _Reader, s: Sexp) -> A.TypeAnnotation:
    """Parse one annotation from a raw S-expression."""
    if _is_symbol(s):
        name = str(s)
        if name in _PRIMITIVES:
            return A.PrimitiveType(_PRIMITIVES[name])
        if name in ("true", "false"):
            return A.BooleanLiteralType(name == "true")
        return A.NamedType(_qualified(r, name))
    if _is_string(s):
        return A.StringLiteralType(s)
    if _is_number(s):
        return A.NumberLiteralType(s)
    if isinstance(s, list) and s:
        tag = _head(s)
        if tag is None:
            raise r.error(f"Expected annotation form (tag ...), got: {s!r}", s)
        parser = _ANNOTATION_DISPATCH.get(tag)
        if parser is not None:
            return parser(r, s)
        return _parse_generic_reference(r, s)
    raise r.error(f"Expected type annotation, got: {s!r}", s)


def _qualified(r: _Reader, name: str) -> A.QualifiedName:
    parts = tuple(name.split("."))
    if not all(parts):
        raise r.error(f"Malformed qualified name: {name!r}")
    return A.QualifiedName(parts)


def _parse_generic_reference(r: _Reader, s: list) -> A.NamedType:
    """``(Name T ...)`` → ``Name<T, ...>``; ``(Name)`` → ``Name<>``."""
    name = _qualified(r, _sym_name(r, s[0]))
    args = tuple(parse_type(r, a) for a in s[1:])
    return A.NamedType(name, args, r.loc(s))


def _parse_reference(r: _Reader, s: Sexp) -> A.NamedType:
    ann = parse_type(r, s)
    if not isinstance(ann, A.NamedType):
        raise r.error(f"Expected a type reference, got: {s!r}", s)
    return ann


@_register(_ANNOTATION_DISPATCH, "array")
def _parse_array(r: _Reader, s: list) -> A.ArrayType:
    _expect_list(r, s, min_len=2)
    return A.ArrayType(parse_type(r, s[1]), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "maybe")
def _parse_maybe(r: _Reader, s: list) -> A.NullableType:
    _expect_list(r, s, min_len=2)
    return A.NullableType(parse_type(r, s[1]), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "tuple")
def _parse_tuple(r: _Reader, s: list) -> A.TupleType:
    return A.TupleType(tuple(parse_type(r, t) for t in s[1:]), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "union")
def _parse_union(r: _Reader, s: list) -> A.UnionType:
    _expect_list(r, s, min_len=2)
    return A.UnionType(tuple(parse_type(r, t) for t in s[1:]), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "intersection")
def _parse_intersection(r: _Reader, s: list) -> A.IntersectionType:
    _expect_list(r, s, min_len=2)
    return A.IntersectionType(tuple(parse_type(r, t) for t in s[1:]), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "object")
def _parse_object(r: _Reader, s: list) -> A.ObjectType:
    props: List[A.ObjectProperty] = []
    indexers: List[A.ObjectIndexer] = []
    for member in s[1:]:
        tag = _head(member)
        if tag in ("prop", "prop?"):
            _expect_list(r, member, min_len=3)
            props.append(A.ObjectProperty(
                key=_sym_name(r, member[1]),
                value=parse_type(r, member[2]),
                optional=tag == "prop?",
                loc=r.loc(member),
            ))
        elif tag == "indexer":
            _expect_list(r, member, min_len=3)
            rest = member[1:]
            ident = None
            if len(rest) == 3:
                ident = _sym_name(r, rest[0])
                rest = rest[1:]
            if len(rest) != 2:
                raise r.error("Expected (indexer [id] key value)", member)
            indexers.append(A.ObjectIndexer(
                key=parse_type(r, rest[0]),
                value=parse_type(r, rest[1]),
                id=ident,
                loc=r.loc(member),
            ))
        else:
            raise r.error(f"Unknown object member form: {member!r}", member)
    return A.ObjectType(tuple(props), tuple(indexers), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "fn")
def _parse_fn(r: _Reader, s: list) -> A.FunctionType:
    _expect_list(r, s, min_len=3)
    params = tuple(
        A.FunctionTypeParam(parse_type(r, p)) for p in _expect_list(r, s[1])
    )
    return A.FunctionType(params, parse_type(r, s[2]), r.loc(s))


@_register(_ANNOTATION_DISPATCH, "typeof")
def _parse_typeof(r: _Reader, s: list) -> A.TypeofType:
    _expect_list(r, s, min_len=2)
    return A.TypeofType(_parse_reference(r, s[1]), r.loc(s))


# ═══════════════════════════════════════════════════════════════════════
#  Patterns and parameters
# ═══════════════════════════════════════════════════════════════════════

def parse_target(r: _Reader, s: Sexp) -> Union[A.BindingIdent, A.ObjectPattern, A.ArrayPattern]:
    """A binding target: identifier, ``(obj ...)`` or ``(arr ...)``."""
    if _is_symbol(s):
        return A.BindingIdent(str(s))
    tag = _head(s)
    if tag == "obj":
        return _parse_object_pattern(r, s)
    if tag == "arr":
        return _parse_array_pattern(r, s)
    raise r.error(f"Expected binding target, got: {s!r}", s)


def _parse_object_pattern(r: _Reader, s: list) -> A.ObjectPattern:
    fields: List[A.PatternField] = []
    rest: Optional[str] = None
    for item in s[1:]:
        if _head(item) == "rest":
            rest = _sym_name(r, _expect_list(r, item, min_len=2)[1])
        else:
            fields.append(_parse_pattern_field(r, item))
    return A.ObjectPattern(tuple(fields), rest)


def _parse_pattern_field(r: _Reader, s: Sexp) -> A.PatternField:
    if _is_symbol(s):
        return A.PatternField(str(s), A.BindingIdent(str(s)))
    lst = _expect_list(r, s, min_len=2)
    if _head(lst) == "default":
        _expect_list(r, lst, min_len=3)
        inner = _parse_pattern_field(r, lst[1])
        return A.PatternField(inner.key, A.DefaultPattern(inner.value, parse_expr(r, lst[2])))
    return A.PatternField(_sym_name(r, lst[0]), parse_target(r, lst[1]))


def _parse_array_pattern(r: _Reader, s: list) -> A.ArrayPattern:
    elements: List[Optional[A.Pattern]] = []
    rest: Optional[str] = None
    for item in s[1:]:
        if _head(item) == "rest":
            rest = _sym_name(r, _expect_list(r, item, min_len=2)[1])
        else:
            elements.append(_parse_array_element(r, item))
    return A.ArrayPattern(tuple(elements), rest)


def _parse_array_element(r: _Reader, s: Sexp) -> Optional[A.Pattern]:
    if _is_symbol(s) and str(s) == "_":
        return None
    if _head(s) == "default":
        lst = _expect_list(r, s, min_len=3)
        return A.DefaultPattern(parse_target(r, lst[1]), parse_expr(r, lst[2]))
    return parse_target(r, s)


def parse_param(r: _Reader, s: Sexp) -> A.Param:
    if _is_symbol(s):
        return A.Param(A.BindingIdent(str(s)))
    lst = _expect_list(r, s, min_len=2)
    tag = _head(lst)
    annotation = parse_type(r, lst[2]) if len(lst) > 2 and tag != "default" else None
    if tag == "param":
        return A.Param(A.BindingIdent(_sym_name(r, lst[1])), annotation)
    if tag == "param?":
        if annotation is None:
            raise r.error("Optional parameter needs a type: (param? name T)", lst)
        return A.Param(A.BindingIdent(_sym_name(r, lst[1])), annotation, optional=True)
    if tag == "pattern":
        return A.Param(parse_target(r, lst[1]), annotation)
    if tag == "rest":
        return A.Param(A.BindingIdent(_sym_name(r, lst[1])), annotation, rest=True)
    if tag == "default":
        _expect_list(r, lst, min_len=3)
        inner = parse_param(r, lst[1])
        return A.Param(
            inner.binding, inner.annotation, inner.optional, parse_expr(r, lst[2]), inner.rest
        )
    raise r.error(f"Unknown parameter form: ({tag or '?'} ...)", lst)


def _parse_signature_tail(r: _Reader, items: list, pos: int, form: list
                          ) -> Tuple[A.FunctionSignature, int]:
    """``[(generics ...)] (PARAM...) [(returns T)]`` starting at *pos*."""
    generics_form, pos = _optional_form(items, pos, "generics")
    if pos >= len(items):
        raise r.error("Missing parameter list", form)
    params = tuple(parse_param(r, p) for p in _expect_list(r, items[pos]))
    pos += 1
    returns_form, pos = _optional_form(items, pos, "returns")
    return_type = None
    if returns_form is not None:
        _expect_list(r, returns_form, min_len=2)
        return_type = parse_type(r, returns_form[1])
    return A.FunctionSignature(params, return_type, _generics(r, generics_form)), pos


def _parse_body(r: _Reader, s: Sexp) -> A.Block:
    lst = _expect_list(r, s, tag="body")
    return A.Block(tuple(parse_statement(r, st) for st in lst[1:]))


# ═══════════════════════════════════════════════════════════════════════
#  Expressions
# ═══════════════════════════════════════════════════════════════════════

def parse_expr(r: _Reader, s: Sexp) -> A.Expr:
    if _is_string(s):
        return A.Raw(s)
    if _is_symbol(s):
        return A.Identifier(str(s))
    if _is_number(s):
        return A.NumberLit(s)
    tag = _head(s)
    parser = _EXPRESSION_DISPATCH.get(tag) if tag is not None else None
    if parser is None:
        raise r.error(f"Unknown expression form: {s!r}", s)
    return parser(r, s)


@_register(_EXPRESSION_DISPATCH, "require")
def _parse_require(r: _Reader, s: list) -> A.Call:
    _expect_list(r, s, min_len=2)
    return A.Call(A.Identifier("require"), (A.StringLit(_as_string(r, s[1])),))


@_register(_EXPRESSION_DISPATCH, "function-expr")
def _parse_function_expr(r: _Reader, s: list) -> A.FunctionExpr:
    pos = 1
    name = None
    if pos < len(s) and _is_symbol(s[pos]):
        name = str(s[pos])
        pos += 1
    signature, pos = _parse_signature_tail(r, s, pos, s)
    if pos >= len(s):
        raise r.error("Missing (body ...)", s)
    return A.FunctionExpr(signature, _parse_body(r, s[pos]), name, r.loc(s))


@_register(_EXPRESSION_DISPATCH, "arrow")
def _parse_arrow(r: _Reader, s: list) -> A.ArrowFunction:
    signature, pos = _parse_signature_tail(r, s, 1, s)
    if pos >= len(s):
        raise r.error("Missing arrow function body", s)
    raw_body = s[pos]
    body: Union[A.Block, A.Expr]
    if _head(raw_body) == "body":
        body = _parse_body(r, raw_body)
    else:
        body = parse_expr(r, raw_body)
    return A.ArrowFunction(signature, body, r.loc(s))


# ═══════════════════════════════════════════════════════════════════════
#  Statements and declarations
# ═══════════════════════════════════════════════════════════════════════

def parse_statement(r: _Reader, s: Sexp) -> A.Stmt:
    tag = _head(s)
    parser = _STATEMENT_DISPATCH.get(tag) if tag is not None else None
    if parser is None:
        raise r.error(
            f"Unknown statement form: ({tag or '?'} ...). "
            f"Expected one of: {sorted(_STATEMENT_DISPATCH.keys())}",
            s,
        )
    return parser(r, s)


@_register(_STATEMENT_DISPATCH, "import")
def _parse_import(r: _Reader, s: list) -> A.ImportDecl:
    """``(import "src" (default L) (named I [L]) (namespace L) ...)``."""
    _expect_list(r, s, min_len=2)
    specifiers: List[A.ImportSpecifier] = []
    for spec in s[2:]:
        lst = _expect_list(r, spec, min_len=2)
        kind = _head(lst)
        if kind in ("default", "namespace"):
            specifiers.append(A.ImportSpecifier(kind, _sym_name(r, lst[1])))
        elif kind == "named":
            imported = _sym_name(r, lst[1])
            local = _sym_name(r, lst[2]) if len(lst) > 2 else imported
            specifiers.append(A.ImportSpecifier("named", local, imported))
        else:
            raise r.error(f"Unknown import specifier: {spec!r}", spec)
    return A.ImportDecl(_as_string(r, s[1]), tuple(specifiers), r.loc(s))


@_register(_STATEMENT_DISPATCH, "type")
def _parse_type_alias(r: _Reader, s: list) -> A.TypeAlias:
    """``(type Name [(generics T...)] T)``."""
    _expect_list(r, s, min_len=3)
    name = _sym_name(r, s[1])
    generics_form, pos = _optional_form(s, 2, "generics")
    if pos != len(s) - 1:
        raise r.error(f"Expected exactly one annotation in type alias {name}", s)
    return A.TypeAlias(name, parse_type(r, s[pos]), _generics(r, generics_form), r.loc(s))


@_register(_STATEMENT_DISPATCH, "interface")
def _parse_interface(r: _Reader, s: list) -> A.InterfaceDecl:
    """``(interface Name [(generics T...)] [(extends R...)] (object ...))``."""
    _expect_list(r, s, min_len=3)
    name = _sym_name(r, s[1])
    generics_form, pos = _optional_form(s, 2, "generics")
    extends_form, pos = _optional_form(s, pos, "extends")
    if pos != len(s) - 1:
        raise r.error(f"Expected an (object ...) body for interface {name}", s)
    body = _parse_object(r, _expect_list(r, s[pos], tag="object"))
    extends = tuple(_parse_reference(r, e) for e in (extends_form or [None])[1:])
    return A.InterfaceDecl(name, body, extends, _generics(r, generics_form), r.loc(s))


@_register(_STATEMENT_DISPATCH, "function")
def _parse_function(r: _Reader, s: list) -> A.FunctionDecl:
    """``(function name [(generics ...)] (PARAM...) [(returns T)] (body ...))``."""
    _expect_list(r, s, min_len=4)
    name = _sym_name(r, s[1])
    signature, pos = _parse_signature_tail(r, s, 2, s)
    if pos != len(s) - 1:
        raise r.error(f"Expected (body ...) as the last element of function {name}", s)
    return A.FunctionDecl(name, signature, _parse_body(r, s[pos]), r.loc(s))


@_register(_STATEMENT_DISPATCH, *_DECL_KINDS)
def _parse_var(r: _Reader, s: list) -> A.VarDecl:
    """``(const target expr)``; ``let``/``var`` may omit the initializer."""
    _expect_list(r, s, min_len=2)
    kind = _head(s)
    if kind == "const" and len(s) < 3:
        raise r.error("const declaration needs an initializer", s)
    init = parse_expr(r, s[2]) if len(s) > 2 else None
    return A.VarDecl(kind, parse_target(r, s[1]), init, r.loc(s))


@_register(_STATEMENT_DISPATCH, "export")
def _parse_export(r: _Reader, s: list) -> A.ExportDecl:
    _expect_list(r, s, min_len=2)
    return A.ExportDecl(parse_statement(r, s[1]), r.loc(s))


@_register(_STATEMENT_DISPATCH, "return")
def _parse_return(r: _Reader, s: list) -> A.Return:
    return A.Return(parse_expr(r, s[1]) if len(s) > 1 else None)


@_register(_STATEMENT_DISPATCH, "stmt")
def _parse_raw_statement(r: _Reader, s: list) -> A.RawStmt:
    _expect_list(r, s, min_len=2)
    return A.RawStmt(_as_string(r, s[1]))


# ═══════════════════════════════════════════════════════════════════════
#  Entry points
# ═══════════════════════════════════════════════════════════════════════

def _loads(text: str) -> Sexp:
    # Keep nil/t/true/false as plain symbols so that annotation keywords
    # reach the parser untouched.
    try:
        return sexpdata.loads(text, nil=None, true=None, false=None)
    except Exception as exc:
        error = ParseError(f"S-expression syntax error: {exc}")
        error.code = ErrorCodes.MALFORMED_SEXP
        raise error from exc


def parse_program(text: str, *, filename: str = "<string>") -> A.Program:
    """Parse a complete ``(program ...)`` source string.

    Raises
    ------
    ParseError
        If the input is malformed or contains unrecognized forms.
    """
    raw = _loads(text)
    r = _Reader(text, filename)
    r.index(raw)
    lst = _expect_list(r, raw, tag="program")
    body = tuple(parse_statement(r, item) for item in lst[1:])
    _log.debug("%s: parsed %d top-level form(s)", filename, len(body))
    return A.Program(body, filename)


def parse_annotation(text: str) -> A.TypeAnnotation:
    """Parse a standalone annotation, e.g. ``'(union "a" "b")'``."""
    raw = _loads(text)
    r = _Reader(text, "<annotation>")
    r.index(raw)
    return parse_type(r, raw)


def parse_file(path: Union[str, pathlib.Path]) -> A.Program:
    p = pathlib.Path(path)
    return parse_program(p.read_text(encoding="utf-8"), filename=str(p))
