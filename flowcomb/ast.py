"""flowcomb/ast.py – Host tree definitions.

The engine consumes (and produces) a single tree: the declarations,
statements and expressions of one source file together with the
structural type annotations attached to them.  The front-end
(:mod:`flowcomb.parser`) builds it, the translation passes rebuild it
with type declarations replaced by runtime definitions and functions
instrumented, and :mod:`flowcomb.codegen` prints it.

Design invariants
-----------------
* Every node is a frozen dataclass (immutable after construction).
* Children are held in tuples, never lists.
* Nodes that can be the subject of a diagnostic record a ``SourceLoc``;
  locations never take part in equality.
* Host expressions the engine never needs to look into are kept opaque
  as :class:`Raw` text.

Module layout
-------------
§1  Source location
§2  Type annotations
§3  Binding patterns and function signatures
§4  Expressions
§5  Statements and declarations
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

# ════════════════════════════════════════════════════════════════════════
# §1  Source location
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SourceLoc:
    """Points back to a position in a host source file."""

    file: str = "<unknown>"
    line: int = 0
    col: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.col}"


#: Sentinel for nodes synthesised by the compiler (no source position).
NO_LOC = SourceLoc()


def _loc_field():
    return field(default=NO_LOC, repr=False, compare=False)


# ════════════════════════════════════════════════════════════════════════
# §2  Type annotations
# ════════════════════════════════════════════════════════════════════════
#
# ``kind`` is the annotation's name in diagnostics ("Unsupported type
# annotation: <kind>").


class PrimitiveKind(Enum):
    """Primitive annotation keywords."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    VOID = "void"
    NULL = "null"
    ANY = "any"
    MIXED = "mixed"


@dataclass(frozen=True, slots=True)
class QualifiedName:
    """A possibly dotted reference name, e.g. ``React.Element``."""

    parts: Tuple[str, ...]

    @property
    def name(self) -> str:
        """The last segment."""
        return self.parts[-1]

    @property
    def is_simple(self) -> bool:
        return len(self.parts) == 1

    def __str__(self) -> str:
        return ".".join(self.parts)


@dataclass(frozen=True, slots=True)
class NamedType:
    """A nominal reference, optionally generic: ``Foo``, ``Array<T>``.

    ``type_args`` is ``None`` when the reference has no ``<...>`` at all
    and a (possibly empty) tuple otherwise.
    """

    kind: ClassVar[str] = "GenericTypeAnnotation"

    id: QualifiedName
    type_args: Optional[Tuple["TypeAnnotation", ...]] = None
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ArrayType:
    """Bracket array syntax ``T[]``."""

    kind: ClassVar[str] = "ArrayTypeAnnotation"

    element: "TypeAnnotation"
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class NullableType:
    """``?T``."""

    kind: ClassVar[str] = "NullableTypeAnnotation"

    inner: "TypeAnnotation"
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class TupleType:
    kind: ClassVar[str] = "TupleTypeAnnotation"

    types: Tuple["TypeAnnotation", ...]
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class UnionType:
    kind: ClassVar[str] = "UnionTypeAnnotation"

    types: Tuple["TypeAnnotation", ...]
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class IntersectionType:
    kind: ClassVar[str] = "IntersectionTypeAnnotation"

    types: Tuple["TypeAnnotation", ...]
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ObjectProperty:
    """``key: T`` or, when *optional*, ``key?: T``."""

    key: str
    value: "TypeAnnotation"
    optional: bool = False
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ObjectIndexer:
    """``[id: K]: V``."""

    key: "TypeAnnotation"
    value: "TypeAnnotation"
    id: Optional[str] = None
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ObjectType:
    """An object shape: declared properties plus indexers."""

    kind: ClassVar[str] = "ObjectTypeAnnotation"

    properties: Tuple[ObjectProperty, ...] = ()
    indexers: Tuple[ObjectIndexer, ...] = ()
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class FunctionTypeParam:
    annotation: "TypeAnnotation"
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class FunctionType:
    """``(a: A, b: B) => R`` used as a type."""

    kind: ClassVar[str] = "FunctionTypeAnnotation"

    params: Tuple[FunctionTypeParam, ...]
    return_type: "TypeAnnotation"
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class PrimitiveType:
    kind: ClassVar[str] = "PrimitiveTypeAnnotation"

    primitive: PrimitiveKind
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class StringLiteralType:
    kind: ClassVar[str] = "StringLiteralTypeAnnotation"

    value: str
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class NumberLiteralType:
    kind: ClassVar[str] = "NumericLiteralTypeAnnotation"

    value: Union[int, float]
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class BooleanLiteralType:
    kind: ClassVar[str] = "BooleanLiteralTypeAnnotation"

    value: bool
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class TypeofType:
    """``typeof x``; only meaningful as the argument of ``$Refinement``."""

    kind: ClassVar[str] = "TypeofTypeAnnotation"

    argument: NamedType
    loc: SourceLoc = _loc_field()


TypeAnnotation = Union[
    NamedType,
    ArrayType,
    NullableType,
    TupleType,
    UnionType,
    IntersectionType,
    ObjectType,
    FunctionType,
    PrimitiveType,
    StringLiteralType,
    NumberLiteralType,
    BooleanLiteralType,
    TypeofType,
]


# ════════════════════════════════════════════════════════════════════════
# §3  Binding patterns and function signatures
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class BindingIdent:
    """A plain identifier in binding position."""

    name: str


@dataclass(frozen=True, slots=True)
class DefaultPattern:
    """``target = default`` nested inside a destructuring pattern."""

    target: "Pattern"
    default: "Expr"


@dataclass(frozen=True, slots=True)
class PatternField:
    """``key: value`` inside an object pattern (shorthand when equal)."""

    key: str
    value: "Pattern"

    @property
    def shorthand(self) -> bool:
        return isinstance(self.value, BindingIdent) and self.value.name == self.key


@dataclass(frozen=True, slots=True)
class ObjectPattern:
    fields: Tuple[PatternField, ...] = ()
    rest: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ArrayPattern:
    """``[a, , b, ...rest]``; holes are ``None``."""

    elements: Tuple[Optional["Pattern"], ...] = ()
    rest: Optional[str] = None


Pattern = Union[BindingIdent, ObjectPattern, ArrayPattern, DefaultPattern]


@dataclass(frozen=True, slots=True)
class Param:
    """One formal parameter.

    ``binding`` is either an identifier or a destructuring pattern;
    ``default`` is the default-value expression when the parameter is
    defaulted; ``rest`` marks ``...name``.
    """

    binding: Union[BindingIdent, ObjectPattern, ArrayPattern]
    annotation: Optional[TypeAnnotation] = None
    optional: bool = False
    default: Optional["Expr"] = None
    rest: bool = False

    @property
    def is_destructured(self) -> bool:
        return not isinstance(self.binding, BindingIdent)


@dataclass(frozen=True, slots=True)
class FunctionSignature:
    """Parameters, declared return type and generic parameter names."""

    params: Tuple[Param, ...] = ()
    return_type: Optional[TypeAnnotation] = None
    type_params: Tuple[str, ...] = ()


# ════════════════════════════════════════════════════════════════════════
# §4  Expressions
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Raw:
    """Opaque host expression text, printed verbatim."""

    text: str


@dataclass(frozen=True, slots=True)
class Identifier:
    name: str


@dataclass(frozen=True, slots=True)
class ThisExpr:
    pass


@dataclass(frozen=True, slots=True)
class Member:
    """``object.prop``."""

    object: "Expr"
    prop: str


@dataclass(frozen=True, slots=True)
class Call:
    callee: "Expr"
    args: Tuple["Expr", ...] = ()


@dataclass(frozen=True, slots=True)
class StringLit:
    value: str


@dataclass(frozen=True, slots=True)
class NumberLit:
    value: Union[int, float]


@dataclass(frozen=True, slots=True)
class ArrayLit:
    elements: Tuple["Expr", ...] = ()


@dataclass(frozen=True, slots=True)
class ObjectLit:
    """``{key: value, ...rest}`` with entries in insertion order.

    An entry is a ``(key, value)`` pair or a :class:`Spread`.
    """

    entries: Tuple[Union[Tuple[str, "Expr"], "Spread"], ...] = ()


@dataclass(frozen=True, slots=True)
class Spread:
    argument: "Expr"


@dataclass(frozen=True, slots=True)
class Binary:
    op: str
    left: "Expr"
    right: "Expr"


@dataclass(frozen=True, slots=True)
class FunctionExpr:
    """``function name(params) { body }`` in expression position."""

    signature: FunctionSignature
    body: "Block"
    name: Optional[str] = None
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ArrowFunction:
    """``(params) => body``; *body* is a block or a bare expression."""

    signature: FunctionSignature
    body: Union["Block", "Expr"]
    loc: SourceLoc = _loc_field()

    @property
    def expression_bodied(self) -> bool:
        return not isinstance(self.body, Block)


Expr = Union[
    Raw,
    Identifier,
    ThisExpr,
    Member,
    Call,
    StringLit,
    NumberLit,
    ArrayLit,
    ObjectLit,
    Spread,
    Binary,
    FunctionExpr,
    ArrowFunction,
]


def member_chain(name: QualifiedName) -> Expr:
    """``A.B.C`` → ``Member(Member(Identifier(A), B), C)``."""
    expr: Expr = Identifier(name.parts[0])
    for part in name.parts[1:]:
        expr = Member(expr, part)
    return expr


# ════════════════════════════════════════════════════════════════════════
# §5  Statements and declarations
# ════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Block:
    body: Tuple["Stmt", ...] = ()


@dataclass(frozen=True, slots=True)
class Return:
    argument: Optional[Expr] = None


@dataclass(frozen=True, slots=True)
class ExprStmt:
    expression: Expr


@dataclass(frozen=True, slots=True)
class RawStmt:
    """Opaque host statement text (may span several lines)."""

    text: str


@dataclass(frozen=True, slots=True)
class VarDecl:
    """``const|let|var target = init``."""

    kind: str
    target: Union[BindingIdent, ObjectPattern, ArrayPattern]
    init: Optional[Expr] = None
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class FunctionDecl:
    name: str
    signature: FunctionSignature
    body: Block
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class TypeAlias:
    """``type Name<params> = right``."""

    name: str
    right: TypeAnnotation
    type_params: Tuple[str, ...] = ()
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class InterfaceDecl:
    """``interface Name<params> extends A, B { body }``."""

    name: str
    body: ObjectType
    extends: Tuple[NamedType, ...] = ()
    type_params: Tuple[str, ...] = ()
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ImportSpecifier:
    """``kind`` is ``"default"``, ``"named"`` or ``"namespace"``.

    ``imported`` is only meaningful for named specifiers.
    """

    kind: str
    local: str
    imported: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ImportDecl:
    source: str
    specifiers: Tuple[ImportSpecifier, ...] = ()
    loc: SourceLoc = _loc_field()


@dataclass(frozen=True, slots=True)
class ExportDecl:
    declaration: "Stmt"
    loc: SourceLoc = _loc_field()


Stmt = Union[
    Block,
    Return,
    ExprStmt,
    RawStmt,
    VarDecl,
    FunctionDecl,
    TypeAlias,
    InterfaceDecl,
    ImportDecl,
    ExportDecl,
]


@dataclass(frozen=True, slots=True)
class Program:
    """One compilation unit."""

    body: Tuple[Stmt, ...] = ()
    file: str = "<string>"


def is_require_call(expr: Optional[Expr]) -> bool:
    """True for ``require("<string>")``."""
    return (
        isinstance(expr, Call)
        and isinstance(expr.callee, Identifier)
        and expr.callee.name == "require"
        and len(expr.args) > 0
        and isinstance(expr.args[0], StringLit)
    )
