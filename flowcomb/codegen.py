"""
flowcomb/codegen.py
===================

Printer for translated host trees.

By the time a :class:`flowcomb.ast.Program` reaches this module, every
type alias and interface has been replaced by a ``const`` binding and
every function carries its assertions; what is left is plain
JavaScript, which is printed here with all annotations stripped.

Layout rules
------------
* 4-space indentation, one statement per line.
* Strings are double-quoted (JSON escaping is valid JavaScript).
* Object literals use shorthand ``{a}`` when key and value agree.
* A function whose body prints as a single line is kept inline, so
  ``t.refinement(t.Number, function (n) { return n === 1; })`` stays on
  one line.
* A function expression used as a callee or member object is
  parenthesised: ``(function (x) { ... }).call(this, x)``.
"""

from __future__ import annotations

import json
import re
from io import StringIO
from typing import Any, Callable, Dict, List, Optional, Type

from flowcomb import ast as A
from flowcomb.errors import CodeGenError

__all__ = [
    "generate",
    "render_expression",
    "CodeEmitter",
    "JsPrinter",
]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")


# ═══════════════════════════════════════════════════════════════════════════
# CODE EMITTER
# ═══════════════════════════════════════════════════════════════════════════

class CodeEmitter:
    """Line-oriented output buffer with indentation management.

    Provides:
    - Automatic indentation tracking
    - Block context managers
    - Multi-line emission, each line re-indented
    """

    def __init__(self, indent_str: str = "    ") -> None:
        self._buffer = StringIO()
        self._indent_str = indent_str
        self._indent_level = 0

    def emit(self, code: str) -> None:
        """Emit *code* at the current indentation, one line per ``\\n``."""
        for line in code.split("\n"):
            if line.strip():
                self._buffer.write(self._indent_str * self._indent_level)
                self._buffer.write(line)
            self._buffer.write("\n")

    def indent(self) -> None:
        self._indent_level += 1

    def dedent(self) -> None:
        self._indent_level = max(0, self._indent_level - 1)

    def block(self, header: str, footer: str = "}") -> "CodeEmitter._BlockContext":
        """Context manager for brace-delimited blocks."""
        return self._BlockContext(self, header, footer)

    class _BlockContext:
        def __init__(self, emitter: "CodeEmitter", header: str, footer: str) -> None:
            self._emitter = emitter
            self._header = header
            self._footer = footer

        def __enter__(self) -> "CodeEmitter":
            self._emitter.emit(self._header)
            self._emitter.indent()
            return self._emitter

        def __exit__(self, *args: Any) -> None:
            self._emitter.dedent()
            self._emitter.emit(self._footer)

    def get_code(self) -> str:
        return self._buffer.getvalue()

    @staticmethod
    def escape_string(s: str) -> str:
        """Double-quoted JavaScript string literal."""
        return json.dumps(s)

    @staticmethod
    def property_key(key: str) -> str:
        return key if _IDENTIFIER_RE.match(key) else json.dumps(key)


# ═══════════════════════════════════════════════════════════════════════════
# PRINTER
# ═══════════════════════════════════════════════════════════════════════════

_EXPRESSIONS: Dict[Type, Callable[["JsPrinter", Any], str]] = {}
_STATEMENTS: Dict[Type, Callable[["JsPrinter", Any, CodeEmitter], None]] = {}


def _prints(table: dict, node_type: Type):
    def deco(fn):
        table[node_type] = fn
        return fn
    return deco


class JsPrinter:
    """Prints host expressions and statements."""

    def __init__(self, indent_str: str = "    ") -> None:
        self.indent_str = indent_str

    # -- entry points --------------------------------------------------------

    def expression(self, node: A.Expr) -> str:
        printer = _EXPRESSIONS.get(type(node))
        if printer is None:
            raise CodeGenError(f"Cannot print expression node {type(node).__name__}")
        return printer(self, node)

    def statement(self, node: A.Stmt, out: CodeEmitter) -> None:
        printer = _STATEMENTS.get(type(node))
        if printer is None:
            raise CodeGenError(
                f"Cannot print {type(node).__name__}: untranslated declaration",
                getattr(node, "loc", None),
            )
        printer(self, node, out)

    def statements(self, nodes, out: CodeEmitter) -> None:
        for node in nodes:
            self.statement(node, out)

    def program(self, program: A.Program) -> str:
        out = CodeEmitter(self.indent_str)
        self.statements(program.body, out)
        return out.get_code()

    # -- shared pieces -------------------------------------------------------

    def _block_lines(self, block: A.Block) -> List[str]:
        out = CodeEmitter(self.indent_str)
        self.statements(block.body, out)
        return out.get_code().rstrip("\n").split("\n") if block.body else []

    def _braced(self, header: str, block: A.Block) -> str:
        """``header {`` body ``}``, inline when the body is one line.

        Raw host statements never go inline; a trailing ``//`` comment
        would swallow the closing brace.
        """
        lines = self._block_lines(block)
        if not lines:
            return f"{header} {{}}"
        if len(lines) == 1 and not isinstance(block.body[0], A.RawStmt) \
                and "//" not in lines[0]:
            return f"{header} {{ {lines[0]} }}"
        body = "\n".join(self.indent_str + line if line else line for line in lines)
        return f"{header} {{\n{body}\n}}"

    def pattern(self, node: A.Pattern) -> str:
        if isinstance(node, A.BindingIdent):
            return node.name
        if isinstance(node, A.DefaultPattern):
            return f"{self.pattern(node.target)} = {self.expression(node.default)}"
        if isinstance(node, A.ObjectPattern):
            parts = [self._pattern_field(f) for f in node.fields]
            if node.rest is not None:
                parts.append(f"...{node.rest}")
            return "{" + ", ".join(parts) + "}"
        if isinstance(node, A.ArrayPattern):
            parts = ["" if e is None else self.pattern(e) for e in node.elements]
            if node.rest is not None:
                parts.append(f"...{node.rest}")
            return "[" + ", ".join(parts) + "]"
        raise CodeGenError(f"Cannot print pattern {type(node).__name__}")

    def _pattern_field(self, fld: A.PatternField) -> str:
        if fld.shorthand:
            return fld.key
        value = fld.value
        if (isinstance(value, A.DefaultPattern) and isinstance(value.target, A.BindingIdent)
                and value.target.name == fld.key):
            return f"{fld.key} = {self.expression(value.default)}"
        return f"{CodeEmitter.property_key(fld.key)}: {self.pattern(value)}"

    def param(self, node: A.Param) -> str:
        text = self.pattern(node.binding)
        if node.rest:
            return f"...{text}"
        if node.default is not None:
            return f"{text} = {self.expression(node.default)}"
        return text

    def params(self, signature: A.FunctionSignature) -> str:
        return ", ".join(self.param(p) for p in signature.params)

    def _operand(self, node: A.Expr) -> str:
        text = self.expression(node)
        if isinstance(node, (A.FunctionExpr, A.ArrowFunction, A.Binary)):
            return f"({text})"
        return text


# ── expressions ─────────────────────────────────────────────────────────────

@_prints(_EXPRESSIONS, A.Raw)
def _raw(p: JsPrinter, node: A.Raw) -> str:
    return node.text


@_prints(_EXPRESSIONS, A.Identifier)
def _identifier(p: JsPrinter, node: A.Identifier) -> str:
    return node.name


@_prints(_EXPRESSIONS, A.ThisExpr)
def _this(p: JsPrinter, node: A.ThisExpr) -> str:
    return "this"


@_prints(_EXPRESSIONS, A.Member)
def _member(p: JsPrinter, node: A.Member) -> str:
    return f"{p._operand(node.object)}.{node.prop}"


@_prints(_EXPRESSIONS, A.Call)
def _call(p: JsPrinter, node: A.Call) -> str:
    args = ", ".join(p.expression(a) for a in node.args)
    return f"{p._operand(node.callee)}({args})"


@_prints(_EXPRESSIONS, A.StringLit)
def _string(p: JsPrinter, node: A.StringLit) -> str:
    return CodeEmitter.escape_string(node.value)


@_prints(_EXPRESSIONS, A.NumberLit)
def _number(p: JsPrinter, node: A.NumberLit) -> str:
    return repr(node.value)


@_prints(_EXPRESSIONS, A.ArrayLit)
def _array(p: JsPrinter, node: A.ArrayLit) -> str:
    return "[" + ", ".join(p.expression(e) for e in node.elements) + "]"


@_prints(_EXPRESSIONS, A.ObjectLit)
def _object(p: JsPrinter, node: A.ObjectLit) -> str:
    parts = []
    for entry in node.entries:
        if isinstance(entry, A.Spread):
            parts.append(p.expression(entry))
            continue
        key, value = entry
        if isinstance(value, A.Identifier) and value.name == key:
            parts.append(key)
        else:
            parts.append(f"{CodeEmitter.property_key(key)}: {p.expression(value)}")
    return "{" + ", ".join(parts) + "}"


@_prints(_EXPRESSIONS, A.Spread)
def _spread(p: JsPrinter, node: A.Spread) -> str:
    return f"...{p.expression(node.argument)}"


@_prints(_EXPRESSIONS, A.Binary)
def _binary(p: JsPrinter, node: A.Binary) -> str:
    return f"{p.expression(node.left)} {node.op} {p.expression(node.right)}"


@_prints(_EXPRESSIONS, A.FunctionExpr)
def _function_expr(p: JsPrinter, node: A.FunctionExpr) -> str:
    header = f"function {node.name}" if node.name else "function "
    return p._braced(f"{header}({p.params(node.signature)})", node.body)


@_prints(_EXPRESSIONS, A.ArrowFunction)
def _arrow(p: JsPrinter, node: A.ArrowFunction) -> str:
    header = f"({p.params(node.signature)}) =>"
    if node.expression_bodied:
        return f"{header} {p.expression(node.body)}"
    return p._braced(header, node.body)


# ── statements ──────────────────────────────────────────────────────────────

@_prints(_STATEMENTS, A.Block)
def _block(p: JsPrinter, node: A.Block, out: CodeEmitter) -> None:
    with out.block("{"):
        p.statements(node.body, out)


@_prints(_STATEMENTS, A.Return)
def _return(p: JsPrinter, node: A.Return, out: CodeEmitter) -> None:
    if node.argument is None:
        out.emit("return;")
    else:
        out.emit(f"return {p.expression(node.argument)};")


@_prints(_STATEMENTS, A.ExprStmt)
def _expr_stmt(p: JsPrinter, node: A.ExprStmt, out: CodeEmitter) -> None:
    out.emit(f"{p.expression(node.expression)};")


@_prints(_STATEMENTS, A.RawStmt)
def _raw_stmt(p: JsPrinter, node: A.RawStmt, out: CodeEmitter) -> None:
    out.emit(node.text.strip("\n"))


@_prints(_STATEMENTS, A.VarDecl)
def _var(p: JsPrinter, node: A.VarDecl, out: CodeEmitter) -> None:
    target = p.pattern(node.target)
    if node.init is None:
        out.emit(f"{node.kind} {target};")
    else:
        out.emit(f"{node.kind} {target} = {p.expression(node.init)};")


@_prints(_STATEMENTS, A.FunctionDecl)
def _function_decl(p: JsPrinter, node: A.FunctionDecl, out: CodeEmitter) -> None:
    with out.block(f"function {node.name}({p.params(node.signature)}) {{"):
        p.statements(node.body.body, out)


@_prints(_STATEMENTS, A.ImportDecl)
def _import(p: JsPrinter, node: A.ImportDecl, out: CodeEmitter) -> None:
    source = CodeEmitter.escape_string(node.source)
    clauses: List[str] = []
    named: List[str] = []
    for spec in node.specifiers:
        if spec.kind == "default":
            clauses.append(spec.local)
        elif spec.kind == "namespace":
            clauses.append(f"* as {spec.local}")
        elif spec.imported in (None, spec.local):
            named.append(spec.local)
        else:
            named.append(f"{spec.imported} as {spec.local}")
    if named:
        clauses.append("{" + ", ".join(named) + "}")
    if not clauses:
        out.emit(f"import {source};")
    else:
        out.emit(f"import {', '.join(clauses)} from {source};")


@_prints(_STATEMENTS, A.ExportDecl)
def _export(p: JsPrinter, node: A.ExportDecl, out: CodeEmitter) -> None:
    inner = CodeEmitter(p.indent_str)
    p.statement(node.declaration, inner)
    out.emit("export " + inner.get_code().rstrip("\n"))


# ═══════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════

def render_expression(node: A.Expr, printer: Optional[JsPrinter] = None) -> str:
    return (printer or JsPrinter()).expression(node)


def generate(program: A.Program, *, indent: str = "    ") -> str:
    """Print a fully translated program.

    Raises
    ------
    CodeGenError
        If *program* still contains a type alias or interface.
    """
    return JsPrinter(indent).program(program)
