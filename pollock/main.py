#!/usr/bin/env python3
"""pollock/main.py - CLI entry-point for the pollock Erlang snippet tools.

Usage examples
--------------
    # Show the token stream of a file
    python -m pollock tokens mod.erl

    # Parse a module and dump its forms as S-expressions
    python -m pollock parse mod.erl --format sexp

    # Parse an expression snippet (terminated by '.') and re-print it
    python -m pollock parse -c 'X = f(Y), X + 1.' --expr --format source

    # Free variables of a snippet (no terminator needed)
    python -m pollock free-vars -c 'foo(Bar, Baz)'

    # Split module 'mod' (found on the search path) around handle/2
    python -m pollock split mod handle/2 --path src

Exit codes
----------
    0   Success.
    1   The input did not lex, parse or analyze.
    2   Infrastructure failure (unreadable file, unit not on the path).
    3   ``split``: the requested function does not exist.

The module doubles as ``python -m pollock`` via the companion
``pollock/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Optional, Sequence, TextIO

from pollock import __version__
from pollock.config import PollockConfig
from pollock.errors import AnalysisError, LexError, LoadError, ParseError

_log = logging.getLogger("pollock")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2
EXIT_NOT_FOUND: int = 3

_INPUT_ERRORS = (LexError, ParseError, AnalysisError)


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``pollock`` logger.

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

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("pollock")
    root.setLevel(level)
    # main() may run more than once per process; keep a single handler.
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _read_source(args: argparse.Namespace, config: PollockConfig) -> str:
    """Text from ``-c``, a file, or stdin (``-``)."""
    if args.code is not None:
        return args.code
    if args.source in (None, "-"):
        return sys.stdin.read()
    path = Path(args.source).expanduser()
    try:
        return path.read_text(encoding=config.encoding)
    except OSError as exc:
        _log.error("cannot read %s: %s", path, exc)
        raise SystemExit(EXIT_INFRA)


def _source_name(args: argparse.Namespace) -> str:
    if getattr(args, "unit", None) is not None:
        return args.unit
    if getattr(args, "code", None) is not None:
        return "<code>"
    source = getattr(args, "source", None)
    return "<stdin>" if source in (None, "-") else source


def _report(args: argparse.Namespace, exc: Exception, text: Optional[str] = None,
            start_line: int = 1) -> None:
    """Write a diagnostic for an input error to stderr."""
    from pollock.report import render_error

    color = not args.no_color and sys.stderr.isatty()
    sys.stderr.write(
        render_error(exc, text, _source_name(args), start_line, color=color)
    )


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream."""
    if dest is None or dest == "-":
        return sys.stdout
    return open(dest, "w", encoding="utf-8")


def _write(dest: Optional[str], text: str) -> None:
    out = _open_output(dest)
    try:
        out.write(text)
    finally:
        if out is not sys.stdout:
            out.close()


def _parse_signature(raw: str) -> tuple:
    """``name/arity`` → ``(name, arity)``."""
    name, sep, arity = raw.rpartition("/")
    if not sep or not name or not arity.isdigit():
        raise argparse.ArgumentTypeError(f"expected NAME/ARITY, got {raw!r}")
    return name, int(arity)


# ===========================================================================
# Sub-commands
# ===========================================================================

def cmd_tokens(args: argparse.Namespace) -> int:
    """Print one token per line: ``line kind text``."""
    from pollock.lexer import tokenize

    config = PollockConfig.from_args(args)
    text = _read_source(args, config)
    try:
        tokens, end_line = tokenize(text, config.start_line)
    except LexError as exc:
        _report(args, exc, text, config.start_line)
        return EXIT_ERROR
    lines = [f"{tok.line}\t{tok.kind.value}\t{tok.text}" for tok in tokens]
    _log.info("%d token(s), end line %d", len(tokens), end_line)
    _write(args.output, "".join(line + "\n" for line in lines))
    return EXIT_OK


def cmd_parse(args: argparse.Namespace) -> int:
    """Parse forms (or, with ``--expr``, an expression sequence) and print them."""
    from pollock.parser import parse_declaration_sequence, parse_expressions
    from pollock.printer import format_expression, format_forms
    from pollock.sexp import to_sexp

    config = PollockConfig.from_args(args)
    text = _read_source(args, config)
    try:
        if args.expr:
            tree = parse_expressions(text, config.start_line)
        else:
            tree = parse_declaration_sequence(text, config.start_line)
    except _INPUT_ERRORS as exc:
        _report(args, exc, text, config.start_line)
        return EXIT_ERROR

    if args.format == "sexp":
        rendered = to_sexp(tree) + "\n"
    elif args.format == "source":
        rendered = format_expression(tree) + "\n" if args.expr else format_forms(tree)
    else:
        items = (tree,) if args.expr else tree
        rendered = "".join(repr(item) + "\n" for item in items)
    _write(args.output, rendered)
    return EXIT_OK


def cmd_free_vars(args: argparse.Namespace) -> int:
    """Print the free variables of a snippet, sorted, one per line."""
    from pollock.analyzer import free_vars

    config = PollockConfig.from_args(args)
    text = _read_source(args, config)
    try:
        names = free_vars(text, config.start_line)
    except _INPUT_ERRORS as exc:
        _report(args, exc, text, config.start_line)
        return EXIT_ERROR
    _write(args.output, "".join(name + "\n" for name in sorted(names)))
    return EXIT_OK


def cmd_split(args: argparse.Namespace) -> int:
    """Load a unit and show the forms before, at and after a function."""
    from pollock.loader import DumpTreeLoader, SourceTreeLoader
    from pollock.printer import format_forms
    from pollock.splitter import split_at

    config = PollockConfig.from_args(args)
    for warning in config.validate():
        _log.warning("config: %s", warning)
    loader = DumpTreeLoader(config) if args.dumps else SourceTreeLoader(config)
    name, arity = args.function
    try:
        forms = loader.load_declarations(args.unit)
    except LoadError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except _INPUT_ERRORS as exc:
        _report(args, exc)
        return EXIT_ERROR

    result = split_at(forms, name, arity)
    if not result:
        _log.error("%s", result)
        return EXIT_NOT_FOUND

    sections = []
    for label, part in zip(("before", "matched", "after"), result):
        sections.append(f"%% {label}: {len(part)} form(s)\n{format_forms(part)}")
    _write(args.output, "".join(sections))
    return EXIT_OK


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    parser = argparse.ArgumentParser(
        prog="pollock",
        description="Erlang snippet lexer, parser and free-variable analyzer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              pollock tokens mod.erl
              pollock parse mod.erl --format sexp
              pollock free-vars -c 'foo(Bar, Baz)'
              pollock split mod handle/2 --path src
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
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Never colour diagnostics.",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_input_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "source",
            nargs="?",
            default=None,
            help='Erlang source file ("-" or omit for stdin).',
        )
        p.add_argument(
            "-c", "--code",
            default=None,
            metavar="TEXT",
            help="Use TEXT as the input instead of a file.",
        )
        p.add_argument(
            "--start-line",
            type=int,
            default=None,
            metavar="N",
            help="Line number of the first input line (default: 1).",
        )
        p.add_argument(
            "--encoding",
            default=None,
            help="Source file encoding (default: utf-8).",
        )

    def _add_output_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "-o", "--output",
            default=None,
            metavar="FILE",
            help='Output file ("-" or omit for stdout).',
        )

    # --- tokens ------------------------------------------------------------
    p_tokens = subparsers.add_parser("tokens", help="Print the token stream.")
    _add_input_args(p_tokens)
    _add_output_args(p_tokens)
    p_tokens.set_defaults(func=cmd_tokens)

    # --- parse -------------------------------------------------------------
    p_parse = subparsers.add_parser("parse", help="Parse and print syntax trees.")
    _add_input_args(p_parse)
    _add_output_args(p_parse)
    p_parse.add_argument(
        "--expr",
        action="store_true",
        help="Parse a terminated expression sequence instead of forms.",
    )
    p_parse.add_argument(
        "-f", "--format",
        choices=["sexp", "repr", "source"],
        default="repr",
        help="Output format (default: repr).",
    )
    p_parse.set_defaults(func=cmd_parse)

    # --- free-vars ---------------------------------------------------------
    p_free = subparsers.add_parser("free-vars", help="Print free variables of a snippet.")
    _add_input_args(p_free)
    _add_output_args(p_free)
    p_free.set_defaults(func=cmd_free_vars)

    # --- split -------------------------------------------------------------
    p_split = subparsers.add_parser(
        "split", help="Partition a unit's forms around NAME/ARITY.",
    )
    p_split.add_argument("unit", help="Compilation unit (module) name.")
    p_split.add_argument(
        "function",
        type=_parse_signature,
        metavar="NAME/ARITY",
        help="Function to split at.",
    )
    p_split.add_argument(
        "-p", "--path",
        action="append",
        default=None,
        metavar="DIR",
        help="Search directory (repeatable; default: current directory).",
    )
    p_split.add_argument(
        "--dumps",
        action="store_true",
        help="Load <unit>.forms S-expression dumps instead of <unit>.erl.",
    )
    p_split.add_argument(
        "--encoding",
        default=None,
        help="Unit file encoding (default: utf-8).",
    )
    _add_output_args(p_split)
    p_split.set_defaults(func=cmd_split)

    return parser


# ===========================================================================
# Main
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the pollock CLI.

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


if __name__ == "__main__":
    raise SystemExit(main())
