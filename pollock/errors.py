# pollock/errors.py
"""
Error types for the pollock toolchain.

Error Hierarchy:
────────────────
    PollockError (base)
    ├── LexError        - Tokenization failures (malformed literals, stray characters)
    ├── ParseError      - Grammar violations (carries line + expected context)
    ├── AnalysisError   - Tree contains a node the analyzer cannot classify
    └── LoadError       - A compilation unit could not be located or read

Error Codes:
────────────
Each error carries a code following the pattern POL-XXXX:
  - 0001-0999: Lexical errors
  - 1000-1999: Syntax errors
  - 3000-3999: Analysis (scope/binding) errors
  - 5000-5999: Loader errors

Every error is raised to the immediate caller; nothing in the library
logs, retries or recovers.  The splitter's "no such function" outcome is
*not* an error and lives in :mod:`pollock.splitter` as a plain value.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "ErrorCode",
    "PollockError",
    "LexError",
    "ParseError",
    "AnalysisError",
    "LoadError",
]


class ErrorCode:
    """A stable ``POL-NNNN`` identifier for one class of failure."""

    __slots__ = ("number", "summary")

    def __init__(self, number: int, summary: str) -> None:
        self.number = number
        self.summary = summary

    @property
    def code(self) -> str:
        return f"POL-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.summary!r})"

    def __hash__(self) -> int:
        return hash(self.number)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


# Predefined codes -------------------------------------------------------

ILLEGAL_CHARACTER = ErrorCode(1, "illegal character")
UNTERMINATED_STRING = ErrorCode(2, "unterminated string")
UNTERMINATED_ATOM = ErrorCode(3, "unterminated quoted atom")
UNTERMINATED_CHAR = ErrorCode(4, "unterminated character literal")
MALFORMED_NUMBER = ErrorCode(5, "malformed number")

UNEXPECTED_TOKEN = ErrorCode(1000, "unexpected token")
UNEXPECTED_EOF = ErrorCode(1001, "unexpected end of input")
MISSING_TERMINATOR = ErrorCode(1002, "missing form terminator")
HEAD_MISMATCH = ErrorCode(1003, "function head mismatch")
NESTING_TOO_DEEP = ErrorCode(1004, "nesting too deep")

UNKNOWN_NODE = ErrorCode(3000, "unclassifiable syntax node")
TREE_TOO_DEEP = ErrorCode(3001, "syntax tree too deep")

UNIT_NOT_FOUND = ErrorCode(5000, "compilation unit not found")
UNREADABLE_UNIT = ErrorCode(5001, "compilation unit unreadable")


# ═══════════════════════════════════════════════════════════════════════
#  Exception classes
# ═══════════════════════════════════════════════════════════════════════

class PollockError(Exception):
    """Base exception for all pollock errors."""

    default_code: ErrorCode = UNEXPECTED_TOKEN

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        code: Optional[ErrorCode] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.code = code or self.default_code

    def __str__(self) -> str:
        if self.line is not None:
            return f"{self.line}: {self.message} [{self.code}]"
        return f"{self.message} [{self.code}]"


class LexError(PollockError):
    """Malformed lexical content; the whole input is rejected."""

    default_code = ILLEGAL_CHARACTER

    def __init__(
        self,
        line: int,
        reason: str,
        code: Optional[ErrorCode] = None,
    ) -> None:
        super().__init__(reason, line=line, code=code)
        self.reason = reason


class ParseError(PollockError):
    """Grammar violation.

    ``expected_context`` names what the parser was looking for (e.g.
    ``"expression"``, ``"'->'"``); ``raw_reason`` is the low-level cause,
    usually the offending token's spelling.
    """

    default_code = UNEXPECTED_TOKEN

    def __init__(
        self,
        line: int,
        expected_context: str,
        raw_reason: str,
        code: Optional[ErrorCode] = None,
    ) -> None:
        super().__init__(
            f"syntax error before: {raw_reason} (expected {expected_context})",
            line=line,
            code=code,
        )
        self.expected_context = expected_context
        self.raw_reason = raw_reason


class AnalysisError(PollockError):
    """The analyzer met a node kind it cannot classify, or a tree too deep
    to walk."""

    default_code = UNKNOWN_NODE

    def __init__(
        self,
        node_kind: str,
        line: Optional[int] = None,
        code: Optional[ErrorCode] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(
            reason or f"cannot analyze node of kind {node_kind}",
            line=line,
            code=code,
        )
        self.node_kind = node_kind


class LoadError(PollockError):
    """A compilation unit could not be found on the search path or read."""

    default_code = UNIT_NOT_FOUND

    def __init__(
        self,
        unit_id: str,
        reason: str,
        code: Optional[ErrorCode] = None,
    ) -> None:
        super().__init__(f"{unit_id}: {reason}", code=code)
        self.unit_id = unit_id
        self.reason = reason
