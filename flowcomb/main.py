#!/usr/bin/env python3
"""flowcomb/main.py — CLI entry-point for the flowcomb compiler.

Usage examples
--------------
    # Compile annotated sources, printing JavaScript to stdout
    python -m flowcomb compile models.fc

    # Compile several files into build/ (one <stem>.js per input)
    python -m flowcomb compile src/*.fc -o build/

    # Translate type declarations only, no function assertions
    python -m flowcomb compile models.fc --skip-asserts

    # Options from a JSON file: {"skipHelpers": true}
    python -m flowcomb compile models.fc --options flowcomb.json

    # Validate without writing anything
    python -m flowcomb check src/*.fc --format json

    # Parse a file and dump the host tree (debugging aid)
    python -m flowcomb parse models.fc

Exit codes
----------
    0   Success.
    1   One or more files failed to compile.
    2   Infrastructure failure (missing file, bad options file, etc.).

The module doubles as ``python -m flowcomb`` via the companion
``flowcomb/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from flowcomb import __version__
from flowcomb.compiler import CompileResult, CompilerOptions, compile_file
from flowcomb.errors import ConfigError, ErrorReporter, FlowcombError

_log = logging.getLogger("flowcomb")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the root ``flowcomb`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    root = logging.getLogger("flowcomb")
    root.setLevel(level)
    # main() may run repeatedly in one process; replace our old handler.
    for handler in list(root.handlers):
        if getattr(handler, "_flowcomb_cli", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    handler._flowcomb_cli = True
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _load_options(args: argparse.Namespace) -> CompilerOptions:
    """Options file first, then command-line flags on top."""
    options = CompilerOptions()
    if getattr(args, "options", None):
        path = _resolve_path(args.options, "options file")
        try:
            options = CompilerOptions.from_mapping(json.loads(path.read_text(encoding="utf-8")))
        except (ValueError, AttributeError, ConfigError) as exc:
            _log.error("Bad options file %s: %s", path, exc)
            raise SystemExit(EXIT_INFRA)
    return options.merged(
        skip_helpers=getattr(args, "skip_helpers", None),
        skip_asserts=getattr(args, "skip_asserts", None),
    )


def _emit_diagnostics(results: List[CompileResult], fmt: str, stream: TextIO) -> int:
    """Write failed results to *stream*; return the error count."""
    reporter = ErrorReporter()
    for result in results:
        if result.error is not None:
            reporter.add(result.error)
    if fmt == "json":
        stream.write(reporter.format_json() + "\n")
    elif len(reporter):
        stream.write(reporter.format_text() + "\n")
        stream.write(reporter.format_summary() + "\n")
    return reporter.error_count()


def _compile_all(args: argparse.Namespace) -> List[CompileResult]:
    options = _load_options(args)
    paths = [_resolve_path(raw, "source file") for raw in args.files]
    _log.info("compiling %d file(s) with %s", len(paths), options)
    return [compile_file(p, options) for p in paths]


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_compile(args: argparse.Namespace) -> int:
    """Compile each file; write output only for files that succeeded."""
    results = _compile_all(args)

    for result in results:
        if not result.ok:
            continue
        if args.output in (None, "-"):
            if len(results) > 1:
                sys.stdout.write(f"// {result.filename}\n")
            sys.stdout.write(result.code)
            continue
        out_dir = Path(args.output).expanduser().resolve()
        try:
            out_dir.mkdir(parents=True, exist_ok=True)
            target = out_dir / (Path(result.filename).stem + ".js")
            target.write_text(result.code, encoding="utf-8")
        except OSError as exc:
            _log.error("Cannot write output: %s", exc)
            return EXIT_INFRA
        _log.info("wrote %s", target)

    error_count = _emit_diagnostics(results, args.format, sys.stderr)
    return EXIT_ERROR if error_count > 0 else EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    """Compile each file, report diagnostics, write nothing."""
    results = _compile_all(args)
    error_count = _emit_diagnostics(results, args.format, sys.stdout)
    if error_count == 0 and args.format == "text":
        sys.stdout.write(f"{len(results)} file(s) OK\n")
    return EXIT_ERROR if error_count > 0 else EXIT_OK


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a source file and print one top-level form per line.

    Useful for debugging the front-end without translating anything.
    """
    from flowcomb.parser import parse_file

    src_path = _resolve_path(args.source_file, "source file")
    try:
        program = parse_file(src_path)
    except FlowcombError as exc:
        _log.error("Parse error: %s", exc)
        return EXIT_ERROR
    for stmt in program.body:
        sys.stdout.write(repr(stmt) + "\n")
    return EXIT_OK


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="flowcomb",
        description=(
            "flowcomb — compile type annotations into tcomb runtime checks."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              flowcomb compile models.fc
              flowcomb compile src/*.fc -o build/ --skip-helpers
              flowcomb check src/*.fc --format json
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_compile_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("files", nargs="+", metavar="FILE", help="Source file(s).")
        p.add_argument(
            "--skip-helpers",
            action="store_true",
            default=None,
            help="Do not inject the assertion helper.",
        )
        p.add_argument(
            "--skip-asserts",
            action="store_true",
            default=None,
            help="Do not instrument functions (type declarations only).",
        )
        p.add_argument(
            "--options",
            metavar="JSON",
            help="JSON file with compiler options (skipHelpers, skipAsserts).",
        )
        p.add_argument(
            "--format",
            choices=("text", "json"),
            default="text",
            help="Diagnostic output format (default: text).",
        )

    # --- compile -------------------------------------------------------------
    p_compile = subparsers.add_parser(
        "compile",
        help="Compile source files to JavaScript.",
        description="Compile source files to JavaScript with runtime checks.",
    )
    _add_compile_args(p_compile)
    p_compile.add_argument(
        "-o", "--output",
        metavar="DIR",
        default=None,
        help="Output directory, or '-' for stdout (default: stdout).",
    )
    p_compile.set_defaults(func=cmd_compile)

    # --- check ---------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Compile without writing output.",
        description="Report translation errors without writing output.",
    )
    _add_compile_args(p_check)
    p_check.set_defaults(func=cmd_check)

    # --- parse ---------------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse",
        help="Parse a source file and dump its forms.",
        description="Parse a source file and dump its forms (debugging aid).",
    )
    p_parse.add_argument("source_file", metavar="FILE", help="Source file.")
    p_parse.set_defaults(func=cmd_parse)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the flowcomb CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
