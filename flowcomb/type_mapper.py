"""flowcomb/type_mapper.py – annotation tree → combinator tree.

Public API
----------
``map_type(annotation, ctx, name=None) -> Combinator``
    Translate an annotation used as a type.  A ``$Refinement`` marker in
    this position is an error.

``map_operand(annotation, ctx, name=None) -> Combinator | RefinementRequest``
    Translate an intersection operand or a supertype, where a
    ``$Refinement<typeof p>`` marker is legal and comes back as an
    explicit :class:`RefinementRequest`.

``object_props(obj, ctx) -> tuple``
    The ``(key, combinator)`` pairs of an object annotation's
    properties, optional ones wrapped in exactly one ``Maybe``.

Dispatch is a registry keyed by annotation class.  Every member of
:data:`flowcomb.ast.TypeAnnotation` must have a handler; this is
verified when the module is imported, so adding an annotation kind
without teaching the mapper about it fails immediately.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Type, Union

from flowcomb import ast as A
from flowcomb import combinators as C
from flowcomb.context import REFINEMENT_INTERFACE_NAME, TranslationContext
from flowcomb.errors import (
    InvalidArrayArityError,
    InvalidRefinementDefinitionError,
    UnsupportedAnnotationError,
)


@dataclass(frozen=True)
class RefinementRequest:
    """A ``$Refinement<typeof predicate>`` marker."""

    predicate: A.Expr
    loc: A.SourceLoc = A.NO_LOC


MappedOperand = Union[C.Combinator, RefinementRequest]

_Handler = Callable[[A.TypeAnnotation, TranslationContext, Optional[str]], MappedOperand]
_DISPATCH: Dict[Type, _Handler] = {}


def _register(annotation_type: Type):
    """Decorator: register the handler for *annotation_type*."""
    def deco(fn: _Handler) -> _Handler:
        _DISPATCH[annotation_type] = fn
        return fn
    return deco


# ═══════════════════════════════════════════════════════════════════════
#  Entry points
# ═══════════════════════════════════════════════════════════════════════

def map_operand(annotation: A.TypeAnnotation, ctx: TranslationContext,
                name: Optional[str] = None) -> MappedOperand:
    handler = _DISPATCH.get(type(annotation))
    if handler is None:
        kind = getattr(annotation, "kind", type(annotation).__name__)
        raise UnsupportedAnnotationError(f"Unsupported type annotation: {kind}")
    return handler(annotation, ctx, name)


def map_type(annotation: A.TypeAnnotation, ctx: TranslationContext,
             name: Optional[str] = None) -> C.Combinator:
    result = map_operand(annotation, ctx, name)
    if isinstance(result, RefinementRequest):
        raise InvalidRefinementDefinitionError(
            f"{REFINEMENT_INTERFACE_NAME} can only be used in an intersection "
            f"or in an interface extends clause",
            result.loc,
        )
    return result


def object_props(obj: A.ObjectType, ctx: TranslationContext) -> Tuple[Tuple[str, C.Combinator], ...]:
    props: List[Tuple[str, C.Combinator]] = []
    for prop in obj.properties:
        value = map_type(prop.value, ctx)
        if prop.optional:
            value = C.Maybe(value)
        props.append((prop.key, value))
    return tuple(props)


def refinement_predicate(ref: A.NamedType) -> A.Expr:
    """The predicate reference of ``$Refinement<typeof p>``.

    Raises :class:`InvalidRefinementDefinitionError` unless the marker
    has exactly one generic argument and that argument is a ``typeof``
    of a value reference.
    """
    args = ref.type_args or ()
    if len(args) != 1 or not isinstance(args[0], A.TypeofType):
        raise InvalidRefinementDefinitionError(
            "Invalid refinement definition, example: "
            "$Refinement<typeof predicate>",
            ref.loc,
        )
    return A.member_chain(args[0].argument.id)


def is_refinement_marker(ref: A.NamedType) -> bool:
    return ref.id.is_simple and ref.id.name == REFINEMENT_INTERFACE_NAME


def compose_refinements(base: C.Combinator, requests: List[RefinementRequest],
                        name: Optional[str] = None) -> C.Combinator:
    """Wrap *base* in one ``Refinement`` per request, left to right."""
    for request in requests:
        base = C.Refinement(base, request.predicate, name)
    return base


# ═══════════════════════════════════════════════════════════════════════
#  Handlers
# ═══════════════════════════════════════════════════════════════════════

@_register(A.NamedType)
def _named(ann: A.NamedType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    if ann.id.is_simple and ann.id.name == "Array":
        if ann.type_args is None or len(ann.type_args) != 1:
            raise InvalidArrayArityError(
                "Unsupported Array type annotation: incorrect number of "
                "type parameters (expected 1)",
                ann.loc,
            )
        return C.ListOf(map_type(ann.type_args[0], ctx), name)
    if ann.id.is_simple and ctx.is_type_parameter(ann.id.name):
        return C.Primitive(C.ANY)
    if is_refinement_marker(ann):
        return RefinementRequest(refinement_predicate(ann), ann.loc)
    return C.Reference(A.member_chain(ann.id))


@_register(A.ArrayType)
def _array(ann: A.ArrayType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    return C.ListOf(map_type(ann.element, ctx), name)


@_register(A.NullableType)
def _nullable(ann: A.NullableType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    return C.Maybe(map_type(ann.inner, ctx), name)


@_register(A.TupleType)
def _tuple(ann: A.TupleType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    return C.TupleOf(tuple(map_type(t, ctx) for t in ann.types), name)


@_register(A.UnionType)
def _union(ann: A.UnionType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    if all(isinstance(t, A.StringLiteralType) for t in ann.types):
        return C.EnumsOf(tuple(t.value for t in ann.types), name)
    return C.UnionOf(tuple(map_type(t, ctx) for t in ann.types), name)


@_register(A.ObjectType)
def _object(ann: A.ObjectType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    if len(ann.indexers) == 1:
        indexer = ann.indexers[0]
        return C.DictOf(map_type(indexer.key, ctx), map_type(indexer.value, ctx), name)
    if ann.indexers:
        raise UnsupportedAnnotationError(
            f"Unsupported object type annotation: {len(ann.indexers)} indexers "
            f"(expected at most 1)",
            ann.loc,
        )
    return C.InterfaceType(object_props(ann, ctx), name)


@_register(A.IntersectionType)
def _intersection(ann: A.IntersectionType, ctx: TranslationContext,
                  name: Optional[str]) -> MappedOperand:
    members: List[C.Combinator] = []
    refinements: List[RefinementRequest] = []
    for operand in ann.types:
        mapped = map_operand(operand, ctx)
        if isinstance(mapped, RefinementRequest):
            refinements.append(mapped)
        else:
            members.append(mapped)
    if not members:
        raise UnsupportedAnnotationError(
            "Unsupported intersection type annotation: at least one operand "
            f"must be a type other than {REFINEMENT_INTERFACE_NAME}",
            ann.loc,
        )
    base = C.Intersection(tuple(members), name) if len(members) > 1 else members[0]
    return compose_refinements(base, refinements, name)


@_register(A.FunctionType)
def _function(ann: A.FunctionType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    return C.Primitive(C.FUNCTION)


_PRIMITIVE_NAMES = {
    A.PrimitiveKind.NUMBER: C.NUMBER,
    A.PrimitiveKind.STRING: C.STRING,
    A.PrimitiveKind.BOOLEAN: C.BOOLEAN,
    A.PrimitiveKind.VOID: C.NIL,
    A.PrimitiveKind.NULL: C.NIL,
    A.PrimitiveKind.ANY: C.ANY,
    A.PrimitiveKind.MIXED: C.ANY,
}


@_register(A.PrimitiveType)
def _primitive(ann: A.PrimitiveType, ctx: TranslationContext, name: Optional[str]) -> MappedOperand:
    return C.Primitive(_PRIMITIVE_NAMES[ann.primitive])


@_register(A.StringLiteralType)
def _string_literal(ann: A.StringLiteralType, ctx: TranslationContext,
                    name: Optional[str]) -> MappedOperand:
    return C.EnumsOf((ann.value,), name)


@_register(A.NumberLiteralType)
def _number_literal(ann: A.NumberLiteralType, ctx: TranslationContext,
                    name: Optional[str]) -> MappedOperand:
    return C.LiteralRefinement(ann.value, name)


@_register(A.BooleanLiteralType)
@_register(A.TypeofType)
def _unsupported(ann: A.TypeAnnotation, ctx: TranslationContext,
                 name: Optional[str]) -> MappedOperand:
    raise UnsupportedAnnotationError(f"Unsupported type annotation: {ann.kind}", ann.loc)


def _check_exhaustive() -> None:
    missing = [t.__name__ for t in typing.get_args(A.TypeAnnotation) if t not in _DISPATCH]
    if missing:
        raise ImportError(f"type_mapper has no handler for: {', '.join(missing)}")


_check_exhaustive()
