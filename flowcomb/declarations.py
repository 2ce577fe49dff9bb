"""flowcomb/declarations.py – type aliases and interfaces → runtime definitions.

``type Name = T`` and ``interface Name {...}`` become
``const Name = <tcomb expression>;``.  Interfaces with supertypes
compile to ``interface.extend``: ordinary supertypes are mixins kept in
declaration order, ``$Refinement<typeof p>`` supertypes wrap the
interface's own properties in ``refinement(props, p)``.
"""

from __future__ import annotations

import logging
from typing import List, Union

from flowcomb import ast as A
from flowcomb import combinators as C
from flowcomb.context import REFINEMENT_INTERFACE_NAME, TranslationContext
from flowcomb.errors import ReservedNameError, UnsupportedAnnotationError
from flowcomb.type_mapper import (
    RefinementRequest,
    compose_refinements,
    is_refinement_marker,
    map_type,
    object_props,
    refinement_predicate,
)

_log = logging.getLogger("flowcomb.declarations")


def check_reserved_name(decl: Union[A.TypeAlias, A.InterfaceDecl]) -> None:
    if decl.name == REFINEMENT_INTERFACE_NAME:
        raise ReservedNameError(
            f"{REFINEMENT_INTERFACE_NAME} is a reserved interface name for flowcomb",
            decl.loc,
        )


def type_alias_combinator(decl: A.TypeAlias, ctx: TranslationContext) -> C.Combinator:
    check_reserved_name(decl)
    with ctx.enter_scope(decl.type_params):
        return map_type(decl.right, ctx, decl.name)


def interface_combinator(decl: A.InterfaceDecl, ctx: TranslationContext) -> C.Combinator:
    check_reserved_name(decl)
    with ctx.enter_scope(decl.type_params):
        if not decl.extends:
            return map_type(decl.body, ctx, decl.name)

        if decl.body.indexers:
            raise UnsupportedAnnotationError(
                f"Unsupported interface {decl.name}: indexers cannot be combined "
                f"with extends",
                decl.loc,
            )
        mixins: List[C.Combinator] = []
        refinements: List[RefinementRequest] = []
        for supertype in decl.extends:
            if is_refinement_marker(supertype):
                refinements.append(RefinementRequest(refinement_predicate(supertype), supertype.loc))
            else:
                mixins.append(C.Reference(A.member_chain(supertype.id)))
        props = compose_refinements(C.InterfaceType(object_props(decl.body, ctx)), refinements)
        return C.InterfaceExtend(tuple(mixins), props, decl.name)


def translate_declaration(decl: Union[A.TypeAlias, A.InterfaceDecl],
                          ctx: TranslationContext) -> A.VarDecl:
    """Bind the runtime definition of *decl* to its name."""
    if isinstance(decl, A.TypeAlias):
        combinator = type_alias_combinator(decl, ctx)
    else:
        combinator = interface_combinator(decl, ctx)
    _log.debug("%s: translated %s", decl.loc, decl.name)
    init = C.CombinatorBuilder(ctx.library()).build(combinator)
    return A.VarDecl("const", A.BindingIdent(decl.name), init, decl.loc)
