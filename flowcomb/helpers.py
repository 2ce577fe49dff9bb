"""flowcomb/helpers.py – the assertion helper injected into compiled files."""

from __future__ import annotations

from flowcomb import ast as A
from flowcomb.codegen import CodeEmitter, render_expression


def assert_helper(name: str, library: A.Expr) -> A.RawStmt:
    """The helper as a statement, bound to *name* and checking via *library*.

    Non-struct tcomb types are invoked directly with a path naming the
    checked value; struct types and plain constructors additionally get
    an ``instanceof`` check.
    """
    t = render_expression(library)
    out = CodeEmitter()
    with out.block(f"function {name}(x, type, name) {{"):
        with out.block("if (!type) {"):
            out.emit(f"type = {t}.Any;")
        with out.block(f"if ({t}.isType(type)) {{"):
            out.emit(f"type(x, [name + ': ' + {t}.getTypeName(type)]);")
            with out.block("if (type.meta.kind !== 'struct') {"):
                out.emit("return;")
        with out.block("if (!(x instanceof type)) {"):
            out.emit(
                f"{t}.fail('Invalid value ' + {t}.stringify(x) + ' supplied to ' + name"
                f" + ' (expected a ' + {t}.getTypeName(type) + ')');"
            )
    return A.RawStmt(out.get_code())
