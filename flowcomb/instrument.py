"""flowcomb/instrument.py – argument and return-value assertions.

:func:`instrument_function` is a pure transform from one
``(signature, body)`` pair to another:

1. an expression body ``=> expr`` is normalised to ``{ return expr; }``;
2. when a return type is declared, the original block runs inside
   ``function (<params>) { ... }.call(this, <args>)``, its result is
   bound to a temporary, asserted against the return type under the
   label ``"return value"`` and returned;
3. one ``assert(binding, type, label)`` per typed parameter is put in
   front of the body, in parameter order.

Side effects of the original body therefore run exactly once and before
the return assertion, ``this`` is preserved, and defaults are applied
by the outer function before any check sees the value.
"""

from __future__ import annotations

import logging
from typing import List, Tuple, Union

from flowcomb import ast as A
from flowcomb import combinators as C
from flowcomb.context import TranslationContext
from flowcomb.type_mapper import map_type

_log = logging.getLogger("flowcomb.instrument")

RETURN_LABEL = "return value"

Binding = Union[A.BindingIdent, A.ObjectPattern, A.ArrayPattern]


# ═══════════════════════════════════════════════════════════════════════
#  Patterns
# ═══════════════════════════════════════════════════════════════════════

def bound_names(pattern: A.Pattern) -> List[str]:
    """Every identifier a binding pattern introduces, left to right."""
    if isinstance(pattern, A.BindingIdent):
        return [pattern.name]
    if isinstance(pattern, A.DefaultPattern):
        return bound_names(pattern.target)
    names: List[str] = []
    if isinstance(pattern, A.ObjectPattern):
        for fld in pattern.fields:
            names.extend(bound_names(fld.value))
    else:
        for element in pattern.elements:
            if element is not None:
                names.extend(bound_names(element))
    if pattern.rest is not None:
        names.append(pattern.rest)
    return names


def rebuild_value(pattern: A.Pattern) -> A.Expr:
    """An expression equal to the destructured value, built from its names.

    ``{a, b: {c}}`` → ``{a, b: {c}}`` as an object literal; inner
    defaults are dropped since the bound names already hold the
    defaulted values.
    """
    if isinstance(pattern, A.BindingIdent):
        return A.Identifier(pattern.name)
    if isinstance(pattern, A.DefaultPattern):
        return rebuild_value(pattern.target)
    if isinstance(pattern, A.ObjectPattern):
        entries = [(fld.key, rebuild_value(fld.value)) for fld in pattern.fields]
        if pattern.rest is not None:
            entries.append(A.Spread(A.Identifier(pattern.rest)))
        return A.ObjectLit(tuple(entries))
    elements = [
        A.Identifier("undefined") if e is None else rebuild_value(e)
        for e in pattern.elements
    ]
    if pattern.rest is not None:
        elements.append(A.Spread(A.Identifier(pattern.rest)))
    return A.ArrayLit(tuple(elements))


# ═══════════════════════════════════════════════════════════════════════
#  Steps
# ═══════════════════════════════════════════════════════════════════════

def normalize_body(body: Union[A.Block, A.Expr]) -> A.Block:
    if isinstance(body, A.Block):
        return body
    return A.Block((A.Return(body),))


def assertion(value: A.Expr, combinator: C.Combinator, label: str,
              ctx: TranslationContext) -> A.ExprStmt:
    type_expr = C.CombinatorBuilder(ctx.library()).build(combinator)
    return A.ExprStmt(A.Call(
        A.Identifier(ctx.assert_name),
        (value, type_expr, A.StringLit(label)),
    ))


def _check_subject(param: A.Param, index: int, arrow: bool) -> Tuple[A.Expr, str]:
    if not param.is_destructured:
        return A.Identifier(param.binding.name), param.binding.name
    label = f"arguments[{index}]"
    # Arrow functions have no own ``arguments``; defaulted patterns must
    # be checked after the default applied.
    if arrow or param.default is not None:
        return rebuild_value(param.binding), label
    return A.Raw(label), label


def argument_checks(signature: A.FunctionSignature, ctx: TranslationContext,
                    arrow: bool = False) -> Tuple[A.Stmt, ...]:
    checks: List[A.Stmt] = []
    for index, param in enumerate(signature.params):
        if param.annotation is None:
            continue
        combinator = map_type(param.annotation, ctx)
        if param.optional:
            combinator = C.Maybe(combinator)
        value, label = _check_subject(param, index, arrow)
        checks.append(assertion(value, combinator, label, ctx))
    return tuple(checks)


def _forwarding(signature: A.FunctionSignature) -> Tuple[Tuple[A.Param, ...], Tuple[A.Expr, ...]]:
    params: List[A.Param] = []
    args: List[A.Expr] = []
    for param in signature.params:
        params.append(A.Param(param.binding, rest=param.rest))
        if param.rest:
            args.append(A.Spread(rebuild_value(param.binding)))
        else:
            args.append(rebuild_value(param.binding))
    return tuple(params), tuple(args)


def wrap_return(signature: A.FunctionSignature, body: A.Block,
                ctx: TranslationContext) -> A.Block:
    params, args = _forwarding(signature)
    taken = [name for p in signature.params for name in bound_names(p.binding)]
    temp = ctx.fresh_local("ret", avoid=taken)
    inner = A.FunctionExpr(signature=A.FunctionSignature(params=params), body=body)
    call = A.Call(A.Member(inner, "call"), (A.ThisExpr(),) + args)
    checked = assertion(A.Identifier(temp), map_type(signature.return_type, ctx), RETURN_LABEL, ctx)
    return A.Block((
        A.VarDecl("const", A.BindingIdent(temp), call),
        checked,
        A.Return(A.Identifier(temp)),
    ))


def instrument_function(signature: A.FunctionSignature, body: Union[A.Block, A.Expr],
                        ctx: TranslationContext, *, arrow: bool = False
                        ) -> Tuple[A.FunctionSignature, A.Block]:
    """Return the instrumented ``(signature, block)`` pair."""
    with ctx.enter_scope(signature.type_params):
        block = normalize_body(body)
        if signature.return_type is not None:
            block = wrap_return(signature, block, ctx)
        checks = argument_checks(signature, ctx, arrow)
    if checks:
        block = A.Block(checks + block.body)
    _log.debug("%s: %d argument check(s), return %s", ctx.filename, len(checks),
               "checked" if signature.return_type is not None else "unchecked")
    return signature, block
