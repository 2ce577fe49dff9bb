"""flowcomb/combinators.py – the target combinator algebra.

Two halves:

* **Combinator nodes**: a frozen-dataclass tree mirroring tcomb's
  operations.  The Type Mapper produces these; tests inspect them.
* **CombinatorBuilder**: lowers a combinator tree to host call
  expressions against the file's library binding, one call per node,
  e.g. ``ListOf(Primitive("Number"), "Ids")`` →
  ``t.list(t.Number, "Ids")``.

The call names below are the wire-level contract with tcomb and must not
change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Type, Union

from flowcomb import ast as A

# tcomb primitive exports
NUMBER = "Number"
STRING = "String"
BOOLEAN = "Boolean"
NIL = "Nil"
ANY = "Any"
FUNCTION = "Function"


# ═══════════════════════════════════════════════════════════════════════════
# COMBINATOR NODES
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Reference:
    """A user type referenced by name (``Person``, ``models.Person``)."""

    expr: A.Expr


@dataclass(frozen=True)
class Primitive:
    """One of the tcomb irreducibles (``Number``, ``Nil``, ...)."""

    name: str


@dataclass(frozen=True)
class ListOf:
    element: "Combinator"
    name: Optional[str] = None


@dataclass(frozen=True)
class Maybe:
    inner: "Combinator"
    name: Optional[str] = None


@dataclass(frozen=True)
class TupleOf:
    items: Tuple["Combinator", ...]
    name: Optional[str] = None


@dataclass(frozen=True)
class UnionOf:
    members: Tuple["Combinator", ...]
    name: Optional[str] = None


@dataclass(frozen=True)
class EnumsOf:
    values: Tuple[str, ...]
    name: Optional[str] = None


@dataclass(frozen=True)
class DictOf:
    domain: "Combinator"
    codomain: "Combinator"
    name: Optional[str] = None


@dataclass(frozen=True)
class Refinement:
    base: "Combinator"
    predicate: A.Expr
    name: Optional[str] = None


@dataclass(frozen=True)
class Intersection:
    members: Tuple["Combinator", ...]
    name: Optional[str] = None


@dataclass(frozen=True)
class InterfaceType:
    """A structural record; *props* keeps declaration order."""

    props: Tuple[Tuple[str, "Combinator"], ...]
    name: Optional[str] = None


@dataclass(frozen=True)
class InterfaceExtend:
    mixins: Tuple["Combinator", ...]
    props: "Combinator"
    name: Optional[str] = None


@dataclass(frozen=True)
class LiteralRefinement:
    """A number type refined to exactly one value."""

    value: Union[int, float]
    name: Optional[str] = None


Combinator = Union[
    Reference,
    Primitive,
    ListOf,
    Maybe,
    TupleOf,
    UnionOf,
    EnumsOf,
    DictOf,
    Refinement,
    Intersection,
    InterfaceType,
    InterfaceExtend,
    LiteralRefinement,
]


def strict_equals_predicate(value: Union[int, float], param: str = "n") -> A.FunctionExpr:
    """``function (n) { return n === value; }``."""
    n = A.Identifier(param)
    return A.FunctionExpr(
        signature=A.FunctionSignature(params=(A.Param(A.BindingIdent(param)),)),
        body=A.Block((A.Return(A.Binary("===", n, A.NumberLit(value))),)),
    )


# ═══════════════════════════════════════════════════════════════════════════
# BUILDER
# ═══════════════════════════════════════════════════════════════════════════

_LOWERING: Dict[Type, Callable[["CombinatorBuilder", "Combinator"], A.Expr]] = {}


def _lowers(node_type: Type):
    """Decorator: register a lowering method for *node_type*."""
    def deco(fn):
        _LOWERING[node_type] = fn
        return fn
    return deco


class CombinatorBuilder:
    """Turns combinator nodes into call expressions on *library*."""

    def __init__(self, library: A.Expr) -> None:
        self.library = library

    def build(self, node: Combinator) -> A.Expr:
        lower = _LOWERING.get(type(node))
        if lower is None:
            raise TypeError(f"not a combinator: {node!r}")
        return lower(self, node)

    # -- helpers -------------------------------------------------------------

    def member(self, *path: str) -> A.Expr:
        expr = self.library
        for part in path:
            expr = A.Member(expr, part)
        return expr

    def call(self, path: Tuple[str, ...], args: Tuple[A.Expr, ...],
             name: Optional[str] = None) -> A.Expr:
        if name is not None:
            args = args + (A.StringLit(name),)
        return A.Call(self.member(*path), args)

    def _array(self, nodes) -> A.ArrayLit:
        return A.ArrayLit(tuple(self.build(n) for n in nodes))

    # -- one lowering per node ---------------------------------------------

    @_lowers(Reference)
    def _reference(self, node: Reference) -> A.Expr:
        return node.expr

    @_lowers(Primitive)
    def _primitive(self, node: Primitive) -> A.Expr:
        return self.member(node.name)

    @_lowers(ListOf)
    def _list(self, node: ListOf) -> A.Expr:
        return self.call(("list",), (self.build(node.element),), node.name)

    @_lowers(Maybe)
    def _maybe(self, node: Maybe) -> A.Expr:
        return self.call(("maybe",), (self.build(node.inner),), node.name)

    @_lowers(TupleOf)
    def _tuple(self, node: TupleOf) -> A.Expr:
        return self.call(("tuple",), (self._array(node.items),), node.name)

    @_lowers(UnionOf)
    def _union(self, node: UnionOf) -> A.Expr:
        return self.call(("union",), (self._array(node.members),), node.name)

    @_lowers(EnumsOf)
    def _enums(self, node: EnumsOf) -> A.Expr:
        values = A.ArrayLit(tuple(A.StringLit(v) for v in node.values))
        return self.call(("enums", "of"), (values,), node.name)

    @_lowers(DictOf)
    def _dict(self, node: DictOf) -> A.Expr:
        return self.call(
            ("dict",), (self.build(node.domain), self.build(node.codomain)), node.name
        )

    @_lowers(Refinement)
    def _refinement(self, node: Refinement) -> A.Expr:
        return self.call(("refinement",), (self.build(node.base), node.predicate), node.name)

    @_lowers(Intersection)
    def _intersection(self, node: Intersection) -> A.Expr:
        return self.call(("intersection",), (self._array(node.members),), node.name)

    @_lowers(InterfaceType)
    def _interface(self, node: InterfaceType) -> A.Expr:
        props = A.ObjectLit(tuple((key, self.build(value)) for key, value in node.props))
        return self.call(("interface",), (props,), node.name)

    @_lowers(InterfaceExtend)
    def _interface_extend(self, node: InterfaceExtend) -> A.Expr:
        parts = A.ArrayLit(
            tuple(self.build(m) for m in node.mixins) + (self.build(node.props),)
        )
        return self.call(("interface", "extend"), (parts,), node.name)

    @_lowers(LiteralRefinement)
    def _literal(self, node: LiteralRefinement) -> A.Expr:
        return self.call(
            ("refinement",),
            (self.member(NUMBER), strict_equals_predicate(node.value)),
            node.name,
        )
