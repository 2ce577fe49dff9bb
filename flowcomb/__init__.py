"""flowcomb — compile static type annotations into tcomb runtime checks.

Type aliases and interfaces become runtime type definitions built from
tcomb combinators; annotated functions get argument and return-value
assertions.

Submodules
----------
parser
    S-expression front-end (``sexpdata``) producing the host tree.

type_mapper, declarations
    Annotation → combinator translation; aliases and interfaces →
    ``const`` definitions.

instrument
    Argument checks and return-value wrapping for functions.

compiler
    Per-file driver: ``compile_source``, ``compile_file``,
    ``CompilerOptions``.

codegen
    JavaScript printer (``CodeEmitter``).

errors
    Exception hierarchy, ``FLOW-XXXX`` error codes, ``ErrorReporter``.

main
    CLI entry-point with subcommands: ``compile``, ``check``, ``parse``.

Usage
-----
Command-line::

    python -m flowcomb compile models.fc -o build/
    python -m flowcomb --help

Programmatic::

    from flowcomb.compiler import CompilerOptions, compile_source

    result = compile_source(text, options=CompilerOptions(skip_helpers=True))
    if result.ok:
        print(result.code)
"""

from __future__ import annotations

__version__: str = "0.1.0"
__all__: list[str] = [
    "__version__",
    "compiler",
    "errors",
    "parser",
]
