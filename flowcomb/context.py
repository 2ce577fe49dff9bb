"""flowcomb/context.py – per-file resolution state.

A :class:`TranslationContext` is created for every compilation unit and
passed explicitly to every translation call.  It owns:

* the **library binding**, the one expression that denotes tcomb in the
  emitted code.  It is resolved at most once per file: the first
  qualifying ``import`` or ``require`` form in source order wins, and if
  the file has none a ``require("tcomb")`` expression is synthesised the
  first time a translation asks for it;
* the **type-parameter scope stack**: generic parameter names of the
  declarations currently being translated;
* the set of names already taken in the file, used to hand out fresh
  identifiers for the assertion helper and return-value temporaries.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, List, Optional, Set

from flowcomb import ast as A

_log = logging.getLogger("flowcomb.context")

#: Package names whose import designates the validation library.
TCOMB_LIBRARIES: FrozenSet[str] = frozenset({
    "tcomb",
    "tcomb-validation",
    "tcomb-react",
    "tcomb-form",
    "redux-tcomb",
})

DEFAULT_LIBRARY = "tcomb"

#: Reserved pseudo-supertype used to attach predicates.
REFINEMENT_INTERFACE_NAME = "$Refinement"

#: Export name of the tcomb namespace in the non-core packages.
_TCOMB_EXPORT = "t"


@dataclass(frozen=True)
class LibraryBinding:
    """The resolved library reference and where it came from."""

    expression: A.Expr
    origin: str
    loc: A.SourceLoc = A.NO_LOC


def default_library_expression() -> A.Expr:
    return A.Call(A.Identifier("require"), (A.StringLit(DEFAULT_LIBRARY),))


def binding_from_import(node: A.ImportDecl) -> Optional[LibraryBinding]:
    """Binding designated by an ``import`` of a recognized package, if any."""
    if node.source not in TCOMB_LIBRARIES:
        return None
    for spec in node.specifiers:
        if spec.kind == "default" or (spec.kind == "named" and spec.imported == _TCOMB_EXPORT):
            return LibraryBinding(A.Identifier(spec.local), "import", node.loc)
    return None


def binding_from_require(node: A.VarDecl) -> Optional[LibraryBinding]:
    """Binding designated by ``<kind> <target> = require("<pkg>")``, if any.

    * ``const t = require("tcomb")`` → ``t``
    * ``const {t} = require("tcomb-react")`` → the local bound to ``t``
    * ``const tr = require("tcomb-react")`` → ``tr.t``
    """
    if not A.is_require_call(node.init):
        return None
    source = node.init.args[0].value
    if source not in TCOMB_LIBRARIES:
        return None
    target = node.target
    if isinstance(target, A.BindingIdent):
        if source == DEFAULT_LIBRARY:
            return LibraryBinding(A.Identifier(target.name), "require", node.loc)
        return LibraryBinding(
            A.Member(A.Identifier(target.name), _TCOMB_EXPORT), "require", node.loc
        )
    if isinstance(target, A.ObjectPattern):
        for fld in target.fields:
            value = fld.value
            if isinstance(value, A.DefaultPattern):
                value = value.target
            if fld.key == _TCOMB_EXPORT and isinstance(value, A.BindingIdent):
                return LibraryBinding(A.Identifier(value.name), "require", node.loc)
    return None


class TranslationContext:
    """Resolution state of one compilation unit."""

    def __init__(self, filename: str = "<string>") -> None:
        self.filename = filename
        self._binding: Optional[LibraryBinding] = None
        self._scopes: List[FrozenSet[str]] = []
        self._taken: Set[str] = set()
        self._assert_name: Optional[str] = None

    def reset(self, filename: Optional[str] = None) -> None:
        """Forget everything; mandatory between files."""
        if filename is not None:
            self.filename = filename
        self._binding = None
        self._scopes = []
        self._taken = set()
        self._assert_name = None

    # -- library binding ---------------------------------------------------

    @property
    def binding(self) -> Optional[LibraryBinding]:
        return self._binding

    def register_library_form(self, node: A.Stmt) -> bool:
        """Offer an import/require form; the first qualifying one wins.

        Returns ``True`` when *node* became the file's binding.
        """
        if self._binding is not None:
            return False
        if isinstance(node, A.ImportDecl):
            found = binding_from_import(node)
        elif isinstance(node, A.VarDecl):
            found = binding_from_require(node)
        else:
            found = None
        if found is None:
            return False
        self._binding = found
        _log.debug("%s: library bound via %s at %s", self.filename, found.origin, found.loc)
        return True

    def library(self) -> A.Expr:
        """Resolve-or-default the library reference."""
        if self._binding is None:
            self._binding = LibraryBinding(default_library_expression(), "default")
            _log.debug("%s: no tcomb import found, using require(%r)",
                       self.filename, DEFAULT_LIBRARY)
        return self._binding.expression

    # -- type-parameter scopes ---------------------------------------------

    @contextmanager
    def enter_scope(self, names: Iterable[str]) -> Iterator[FrozenSet[str]]:
        frame = frozenset(names)
        self._scopes.append(frame)
        try:
            yield frame
        finally:
            self._scopes.pop()

    def current_scope(self) -> FrozenSet[str]:
        """All generic names visible at this point (every open frame)."""
        visible: Set[str] = set()
        for frame in self._scopes:
            visible |= frame
        return frozenset(visible)

    def is_type_parameter(self, name: str) -> bool:
        return name in self.current_scope()

    # -- fresh identifiers -------------------------------------------------

    def reserve_names(self, names: Iterable[str]) -> None:
        self._taken.update(names)

    def fresh_name(self, base: str) -> str:
        """``_base``, then ``_base2``, ``_base3``, … skipping taken names."""
        candidate = self.fresh_local(base)
        self._taken.add(candidate)
        return candidate

    def fresh_local(self, base: str, avoid: Iterable[str] = ()) -> str:
        """Like :meth:`fresh_name` but for a function-local name.

        The name is not reserved file-wide, so sibling functions can
        reuse it.
        """
        blocked = self._taken | set(avoid)
        stem = "_" + base.lstrip("_")
        candidate = stem
        counter = 1
        while candidate in blocked:
            counter += 1
            candidate = f"{stem}{counter}"
        return candidate

    @property
    def assert_name(self) -> str:
        """Name of the injected assertion helper (allocated on first use)."""
        if self._assert_name is None:
            self._assert_name = self.fresh_name("assert")
        return self._assert_name
