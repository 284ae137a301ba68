"""pollock/report.py – terminal rendering of pollock errors.

Produces a Rust-style block for the CLI::

    error[POL-1000]: syntax error before: b (expected ')')
      --> snippet.erl:1
       |
     1 | foo(a b).
       |

Colour comes from ``termcolor``; pass ``color=False`` for plain text.
"""

from __future__ import annotations

from typing import List, Optional

from termcolor import colored

from pollock.errors import PollockError

__all__ = ["render_error"]


def _paint(text: str, color: bool, fg: Optional[str] = None, bold: bool = True) -> str:
    if not color:
        return text
    # The caller has already decided; don't let termcolor re-check the tty.
    return colored(text, fg, attrs=["bold"] if bold else None, force_color=True)


def render_error(
    exc: PollockError,
    source: Optional[str] = None,
    filename: str = "<input>",
    start_line: int = 1,
    color: bool = True,
) -> str:
    """Format *exc* with its source line, if *source* covers it."""
    lines: List[str] = []

    header = _paint(f"error[{exc.code}]", color, "red")
    lines.append(f"{header}: {_paint(exc.message, color, 'white')}")

    location = filename if exc.line is None else f"{filename}:{exc.line}"
    lines.append(f"  {_paint('-->', color, 'blue')} {location}")

    if source is not None and exc.line is not None:
        source_lines = source.splitlines()
        index = exc.line - start_line
        if 0 <= index < len(source_lines):
            gutter_w = len(str(exc.line)) + 1
            pipe = _paint("|", color, "blue")
            blank = " " * gutter_w
            number = _paint(str(exc.line).rjust(gutter_w), color, "blue")
            lines.append(f" {blank} {pipe}")
            lines.append(f" {number} {pipe} {source_lines[index]}")
            lines.append(f" {blank} {pipe}")

    return "\n".join(lines) + "\n"
