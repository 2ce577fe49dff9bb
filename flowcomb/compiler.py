"""flowcomb/compiler.py – per-file compilation driver.

Pipeline for one file::

    text ──parse──▶ Program ──translate──▶ Program' ──generate──▶ JavaScript

Translation walks the program top to bottom:

* type aliases and interfaces become ``const`` runtime definitions;
* functions (declarations, expressions, arrows, nested or exported) are
  instrumented with argument and return assertions unless
  ``skip_asserts`` is set;
* the assertion helper is put at the top of the file unless
  ``skip_helpers`` or ``skip_asserts`` is set.

Each top-level statement yields a :class:`DeclarationResult`; the first
failure aborts the file and is reported as a :class:`CompileError`
positioned at the innermost enclosing declaration.  Files never share
state.
"""

from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass, fields
from typing import Any, Iterable, List, Mapping, Optional, Union

from flowcomb import ast as A
from flowcomb.codegen import generate
from flowcomb.context import TranslationContext
from flowcomb.declarations import translate_declaration
from flowcomb.errors import CompileError, ConfigError, FlowcombError
from flowcomb.helpers import assert_helper
from flowcomb.instrument import bound_names, instrument_function
from flowcomb.parser import parse_program

_log = logging.getLogger("flowcomb.compiler")


# ═══════════════════════════════════════════════════════════════════════════
# OPTIONS AND RESULTS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CompilerOptions:
    """Compiler switches.

    Attributes
    ----------
    skip_helpers : bool
        Do not inject the assertion helper; checks still call it.
    skip_asserts : bool
        Do not instrument functions (and inject no helper).  Type
        aliases and interfaces are still translated.
    """

    skip_helpers: bool = False
    skip_asserts: bool = False

    _ALIASES = {"skipHelpers": "skip_helpers", "skipAsserts": "skip_asserts"}

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "CompilerOptions":
        """Build options from ``{"skipAsserts": true}``-style mappings."""
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in (mapping or {}).items():
            name = cls._ALIASES.get(key, key)
            if name not in known:
                raise ConfigError(f"Unknown compiler option: {key!r}")
            if not isinstance(value, bool):
                raise ConfigError(f"Option {key!r} must be a boolean, got {value!r}")
            values[name] = value
        return cls(**values)

    def merged(self, **overrides: Optional[bool]) -> "CompilerOptions":
        """Copy with every non-``None`` override applied."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return CompilerOptions(**values)

    @property
    def inject_helper(self) -> bool:
        return not (self.skip_helpers or self.skip_asserts)


@dataclass(frozen=True)
class DeclarationResult:
    """Outcome of translating one top-level statement."""

    node: Optional[A.Stmt] = None
    error: Optional[CompileError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CompileResult:
    """Outcome of compiling one file: output code or one diagnostic."""

    filename: str
    code: Optional[str] = None
    program: Optional[A.Program] = None
    error: Optional[CompileError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ═══════════════════════════════════════════════════════════════════════════
# NAME COLLECTION
# ═══════════════════════════════════════════════════════════════════════════

def declared_names(program: A.Program) -> List[str]:
    """Every identifier the file binds, at any depth."""
    names: List[str] = []

    def signature(sig: A.FunctionSignature) -> None:
        for param in sig.params:
            names.extend(bound_names(param.binding))

    def expr(node: Optional[A.Expr]) -> None:
        if isinstance(node, (A.FunctionExpr, A.ArrowFunction)):
            if isinstance(node, A.FunctionExpr) and node.name:
                names.append(node.name)
            signature(node.signature)
            if isinstance(node.body, A.Block):
                stmts(node.body.body)
            else:
                expr(node.body)
        elif isinstance(node, A.Call):
            expr(node.callee)
            for arg in node.args:
                expr(arg)

    def stmts(body: Iterable[A.Stmt]) -> None:
        for stmt in body:
            if isinstance(stmt, (A.TypeAlias, A.InterfaceDecl)):
                names.append(stmt.name)
            elif isinstance(stmt, A.FunctionDecl):
                names.append(stmt.name)
                signature(stmt.signature)
                stmts(stmt.body.body)
            elif isinstance(stmt, A.VarDecl):
                names.extend(bound_names(stmt.target))
                expr(stmt.init)
            elif isinstance(stmt, A.ImportDecl):
                names.extend(spec.local for spec in stmt.specifiers)
            elif isinstance(stmt, A.ExportDecl):
                stmts((stmt.declaration,))
            elif isinstance(stmt, A.Block):
                stmts(stmt.body)
            elif isinstance(stmt, (A.Return, A.ExprStmt)):
                expr(stmt.argument if isinstance(stmt, A.Return) else stmt.expression)

    stmts(program.body)
    return names


# ═══════════════════════════════════════════════════════════════════════════
# TRANSLATOR
# ═══════════════════════════════════════════════════════════════════════════

class ModuleTranslator:
    """Rewrites the statements of one file."""

    def __init__(self, ctx: TranslationContext, options: CompilerOptions) -> None:
        self.ctx = ctx
        self.options = options

    def prepare(self, program: A.Program) -> None:
        """Start a fresh compilation unit for *program*."""
        self.ctx.reset(program.file)
        self.ctx.reserve_names(declared_names(program))

    def translate_statement(self, stmt: A.Stmt) -> DeclarationResult:
        try:
            return DeclarationResult(node=self.statement(stmt, module_scope=True))
        except CompileError as exc:
            return DeclarationResult(error=exc)
        except FlowcombError as exc:
            return DeclarationResult(error=CompileError.wrap(exc, getattr(stmt, "loc", None)))

    # -- statements ----------------------------------------------------------

    def statement(self, stmt: A.Stmt, *, module_scope: bool = False) -> A.Stmt:
        """Translate *stmt*; a module-scope import or require may bind the library.

        Binding follows the walk, so translations above the first such
        form use the default reference.
        """
        if module_scope and isinstance(stmt, (A.ImportDecl, A.VarDecl)):
            self.ctx.register_library_form(stmt)
        if isinstance(stmt, (A.TypeAlias, A.InterfaceDecl)):
            return self._positioned(stmt.loc, translate_declaration, stmt, self.ctx)
        if isinstance(stmt, A.FunctionDecl):
            return self._positioned(stmt.loc, self._function_decl, stmt)
        if isinstance(stmt, A.VarDecl):
            if stmt.init is None:
                return stmt
            return A.VarDecl(stmt.kind, stmt.target, self.expression(stmt.init), stmt.loc)
        if isinstance(stmt, A.ExportDecl):
            return A.ExportDecl(self.statement(stmt.declaration, module_scope=module_scope), stmt.loc)
        if isinstance(stmt, A.Return) and stmt.argument is not None:
            return A.Return(self.expression(stmt.argument))
        if isinstance(stmt, A.ExprStmt):
            return A.ExprStmt(self.expression(stmt.expression))
        if isinstance(stmt, A.Block):
            return self.block(stmt)
        return stmt

    def block(self, block: A.Block) -> A.Block:
        return A.Block(tuple(self.statement(s) for s in block.body))

    def _function_decl(self, decl: A.FunctionDecl) -> A.FunctionDecl:
        signature, body = self._function(decl.signature, self.block(decl.body))
        return A.FunctionDecl(decl.name, signature, body, decl.loc)

    def _function(self, signature: A.FunctionSignature, body: Union[A.Block, A.Expr],
                  *, arrow: bool = False):
        if self.options.skip_asserts:
            return signature, body
        return instrument_function(signature, body, self.ctx, arrow=arrow)

    # -- expressions ---------------------------------------------------------

    def expression(self, expr: A.Expr) -> A.Expr:
        if isinstance(expr, A.FunctionExpr):
            return self._positioned(expr.loc, self._function_expr, expr)
        if isinstance(expr, A.ArrowFunction):
            return self._positioned(expr.loc, self._arrow, expr)
        if isinstance(expr, A.Call):
            return A.Call(self.expression(expr.callee),
                          tuple(self.expression(a) for a in expr.args))
        return expr

    def _function_expr(self, expr: A.FunctionExpr) -> A.FunctionExpr:
        signature, body = self._function(expr.signature, self.block(expr.body))
        return A.FunctionExpr(signature, body, expr.name, expr.loc)

    def _arrow(self, expr: A.ArrowFunction) -> A.ArrowFunction:
        if expr.expression_bodied:
            body = self.expression(expr.body)
        else:
            body = self.block(expr.body)
        signature, body = self._function(expr.signature, body, arrow=True)
        return A.ArrowFunction(signature, body, expr.loc)

    @staticmethod
    def _positioned(loc: A.SourceLoc, fn, *args):
        """Run *fn*, reporting failures at *loc* unless already positioned."""
        try:
            return fn(*args)
        except CompileError:
            raise
        except FlowcombError as exc:
            raise CompileError.wrap(exc, loc) from exc


# ═══════════════════════════════════════════════════════════════════════════
# PUBLIC API
# ═══════════════════════════════════════════════════════════════════════════

def translate_program(program: A.Program,
                      options: Optional[CompilerOptions] = None) -> CompileResult:
    """Translate a parsed program; no output text is produced."""
    options = options or CompilerOptions()
    ctx = TranslationContext(program.file)
    translator = ModuleTranslator(ctx, options)
    translator.prepare(program)

    body: List[A.Stmt] = []
    for stmt in program.body:
        result = translator.translate_statement(stmt)
        if not result.ok:
            _log.warning("%s: aborted: %s", program.file, result.error.message)
            return CompileResult(program.file, error=result.error)
        body.append(result.node)

    if options.inject_helper:
        body.insert(0, assert_helper(ctx.assert_name, ctx.library()))
    return CompileResult(program.file, program=A.Program(tuple(body), program.file))


def compile_program(program: A.Program,
                    options: Optional[CompilerOptions] = None) -> CompileResult:
    result = translate_program(program, options)
    if not result.ok:
        return result
    try:
        code = generate(result.program)
    except FlowcombError as exc:
        return CompileResult(program.file, error=CompileError.wrap(exc))
    return CompileResult(program.file, code=code, program=result.program)


def compile_source(text: str, *, filename: str = "<string>",
                   options: Optional[CompilerOptions] = None) -> CompileResult:
    """Compile one source text; parse failures are reported, not raised."""
    _log.info("compiling %s", filename)
    try:
        program = parse_program(text, filename=filename)
    except FlowcombError as exc:
        _log.warning("%s: aborted: %s", filename, exc.message)
        return CompileResult(filename, error=CompileError.wrap(exc, exc.loc or A.SourceLoc(filename)))
    result = compile_program(program, options)
    if result.ok:
        _log.info("compiled %s (%d declaration(s))", filename, len(program.body))
    return result


def compile_file(path: Union[str, pathlib.Path],
                 options: Optional[CompilerOptions] = None) -> CompileResult:
    p = pathlib.Path(path)
    return compile_source(p.read_text(encoding="utf-8"), filename=str(p), options=options)


def compile_files(paths: Iterable[Union[str, pathlib.Path]],
                  options: Optional[CompilerOptions] = None) -> List[CompileResult]:
    """Compile files independently; a failure in one never affects another."""
    return [compile_file(path, options) for path in paths]
