# tests/conftest.py
"""
Shared source snippets and fixtures for the flowcomb test suite.
"""

import pytest

from flowcomb.context import TranslationContext
from flowcomb.parser import parse_annotation


# ── snippets ────────────────────────────────────────────────────────────────

EMPTY_SRC = "(program)"

IMPORT_SRC = '(program (import "tcomb" (default t)))'

PERSON_SRC = """\
(program
  (import "tcomb" (default t))
  (type Person (object (prop name string) (prop? age number))))
"""

INTERFACE_EXTENDS_SRC = """\
(program
  (import "tcomb" (default t))
  (interface A (extends B C) (object (prop a number))))
"""

REFINED_INTERFACE_SRC = """\
(program
  (import "tcomb" (default t))
  (interface Point (extends Base ($Refinement (typeof isPositive)))
    (object (prop x number) (prop y number))))
"""

TYPED_FUNCTION_SRC = """\
(program
  (import "tcomb" (default t))
  (function f ((param x number)) (returns string)
    (body (return "x.toString()"))))
"""

UNTYPED_RETURN_SRC = """\
(program
  (import "tcomb" (default t))
  (function f ((param x number))
    (body (return "x"))))
"""

ARROW_SRC = """\
(program
  (import "tcomb" (default t))
  (const f (arrow ((param x number)) (returns string) "x.toString()")))
"""

REQUIRE_SRC = """\
(program
  (const t (require "tcomb"))
  (type Id number))
"""

NO_IMPORT_SRC = """\
(program
  (type Ids (array number)))
"""

BAD_ARRAY_SRC = """\
(program
  (type Ok string)
  (type Bad Array))
"""

RESERVED_SRC = """\
(program
  (interface $Refinement (object)))
"""

FULL_SRC = """\
; a little of everything
(program
  (import "tcomb" (default t))
  (type Color (union "red" "green" "blue"))
  (type Scores (object (indexer name string number)))
  (export (interface User (object (prop name string) (prop color Color))))
  (function paint ((param user User) (param? color Color)) (returns User)
    (body
      (const next "Object.assign({}, user, {color})")
      (return "next")))
  (const double (arrow ((param n number)) "n * 2")))
"""


# ── fixtures ────────────────────────────────────────────────────────────────

@pytest.fixture
def ctx():
    """A fresh context with ``t`` bound as the library."""
    from flowcomb import ast as A

    context = TranslationContext("test.fc")
    context.register_library_form(
        A.ImportDecl("tcomb", (A.ImportSpecifier("default", "t"),))
    )
    return context


@pytest.fixture
def ann():
    """Shorthand for parsing a standalone annotation."""
    return parse_annotation
