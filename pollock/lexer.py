"""pollock/lexer.py – Erlang source text → position-tagged tokens.

The lexical grammar is a Parsimonious PEG whose top rule matches a run of
tokens separated by whitespace and ``%`` comments.  A
:class:`parsimonious.nodes.NodeVisitor` then turns each matched leaf into
a :class:`Token` and computes its source line.

Public API
----------
``tokenize(text, start_line=1) -> (tokens, end_line)``
    Scan *text*.  ``end_line`` is the line the scanner stands on after
    consuming the whole input.

``render_tokens(tokens) -> str``
    Spell a token run back as source text (single-space separated).

Any text the grammar cannot consume raises :class:`~pollock.errors.LexError`;
there is no recovery.
"""

from __future__ import annotations

import bisect
import enum
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

from parsimonious.exceptions import ParseError as GrammarError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from pollock import errors

logger = logging.getLogger(__name__)

__all__ = [
    "TokenKind",
    "Token",
    "RESERVED_WORDS",
    "ERLANG_LEXICON",
    "tokenize",
    "render_tokens",
]


# ═══════════════════════════════════════════════════════════════════
#  Tokens
# ═══════════════════════════════════════════════════════════════════

class TokenKind(enum.Enum):
    """Lexical token categories."""
    ATOM = "atom"            # lower-case initial or 'quoted'; never a variable
    VAR = "var"              # upper-case or '_' initial
    INTEGER = "integer"
    FLOAT = "float"
    CHAR = "char"            # $c, value is the code point
    STRING = "string"
    RESERVED = "reserved"    # case, of, end, fun, ...
    SYMBOL = "symbol"        # operators and punctuation
    DOT = "dot"              # form terminator: '.' followed by blank/EOF


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical token.

    ``value`` is the decoded literal for atoms, variables, numbers,
    characters and strings, and the spelling itself for reserved words
    and symbols.
    """
    kind: TokenKind
    value: Any
    line: int
    text: str = field(default="", repr=False, compare=False)

    @classmethod
    def reserved(cls, word: str, line: int) -> "Token":
        return cls(TokenKind.RESERVED, word, line, word)

    @classmethod
    def dot(cls, line: int) -> "Token":
        return cls(TokenKind.DOT, ".", line, ".")

    def is_(self, spelling: str) -> bool:
        """True for a reserved word or symbol spelled *spelling*.

        The form terminator is never matched here; test ``kind`` instead.
        """
        return (
            self.kind in (TokenKind.RESERVED, TokenKind.SYMBOL)
            and self.value == spelling
        )


RESERVED_WORDS = frozenset({
    "after", "and", "andalso", "band", "begin", "bnot", "bor", "bsl",
    "bsr", "bxor", "case", "catch", "cond", "div", "else", "end", "fun",
    "if", "let", "maybe", "not", "of", "or", "orelse", "receive", "rem",
    "try", "when", "xor",
})


# ═══════════════════════════════════════════════════════════════════
#  Lexical grammar (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

ERLANG_LEXICON = Grammar(r'''
    tokens          = _ (token _)*
    token           = float / based_integer / integer / char / string
                    / quoted_atom / dot / symbol / name / variable

    float           = ~r"\d(?:_?\d)*\.\d(?:_?\d)*(?:[eE][+-]?\d+)?"
    based_integer   = ~r"\d+#[0-9a-zA-Z_]+"
    integer         = ~r"\d(?:_?\d)*"
    char            = ~r"\$(?:\\(?:\^.|x\{[0-9a-fA-F]+\}|x[0-9a-fA-F]{2}|[0-7]{1,3}|.)|[^\\])"s
    string          = ~r'"(?:[^"\\]|\\.)*"'s
    quoted_atom     = ~r"'(?:[^'\\]|\\.)*'"s

    dot             = ~r"\.(?=\s|%|$)"
    symbol          = ~r"\.\.\.|\.\.|=:=|=/=|<<|>>|<-|<=|=>|:=|\|\||\+\+|--|->|::|==|/=|=<|>=|[(){}\[\],;:|=+\-*/<>!#?.]"

    name            = ~r"[a-zß-öø-ÿ][a-zA-Z0-9_@ß-öø-ÿÀ-ÖØ-Þ]*"
    variable        = ~r"[A-Z_À-ÖØ-Þ][a-zA-Z0-9_@ß-öø-ÿÀ-ÖØ-Þ]*"

    _               = ~r"(?:\s|%[^\n]*)*"
''')


_SIMPLE_ESCAPES = {
    "b": "\b", "d": "\x7f", "e": "\x1b", "f": "\f", "n": "\n",
    "r": "\r", "s": " ", "t": "\t", "v": "\v",
}

_ESCAPE_RE = re.compile(
    r"\\(?:\^(.)|x\{([0-9a-fA-F]+)\}|x([0-9a-fA-F]{2})|([0-7]{1,3})|(.))",
    re.S,
)


def _unescape(body: str) -> str:
    """Decode Erlang escape sequences in a quoted literal's body."""
    def repl(m: re.Match) -> str:
        ctrl, xlong, xshort, octal, single = m.groups()
        if ctrl is not None:
            return chr(ord(ctrl) % 32)
        if xlong is not None:
            return chr(int(xlong, 16))
        if xshort is not None:
            return chr(int(xshort, 16))
        if octal is not None:
            return chr(int(octal, 8))
        return _SIMPLE_ESCAPES.get(single, single)
    return _ESCAPE_RE.sub(repl, body)


class _TokenBuilder(NodeVisitor):
    """Turns the Parsimonious parse tree into a flat token list."""

    grammar = ERLANG_LEXICON
    unwrapped_exceptions = (errors.LexError,)

    def __init__(self, text: str, start_line: int) -> None:
        self._newlines = [m.start() for m in re.finditer("\n", text)]
        self._start_line = start_line

    def line_at(self, pos: int) -> int:
        return self._start_line + bisect.bisect_left(self._newlines, pos)

    def _tok(self, kind: TokenKind, value: Any, node: Node) -> Token:
        return Token(kind, value, self.line_at(node.start), node.text)

    def generic_visit(self, node, visited_children):
        return visited_children

    def visit_tokens(self, node, visited_children):
        _, pairs = visited_children
        return [pair[0] for pair in pairs]

    def visit_token(self, node, visited_children):
        return visited_children[0]

    # --- literals ---------------------------------------------------

    def visit_float(self, node, _):
        value = float(node.text.replace("_", ""))
        if math.isinf(value):
            raise errors.LexError(
                self.line_at(node.start),
                f"float out of range {node.text}",
                errors.MALFORMED_NUMBER,
            )
        return self._tok(TokenKind.FLOAT, value, node)

    def visit_based_integer(self, node, _):
        base_text, digits = node.text.split("#", 1)
        base = int(base_text)
        if not 2 <= base <= 36:
            raise errors.LexError(
                self.line_at(node.start),
                f"illegal base {base} in {node.text}",
                errors.MALFORMED_NUMBER,
            )
        try:
            value = int(digits.replace("_", ""), base)
        except ValueError:
            raise errors.LexError(
                self.line_at(node.start),
                f"malformed integer {node.text}",
                errors.MALFORMED_NUMBER,
            )
        return self._tok(TokenKind.INTEGER, value, node)

    def visit_integer(self, node, _):
        return self._tok(TokenKind.INTEGER, int(node.text.replace("_", "")), node)

    def visit_char(self, node, _):
        return self._tok(TokenKind.CHAR, ord(_unescape(node.text[1:])), node)

    def visit_string(self, node, _):
        return self._tok(TokenKind.STRING, _unescape(node.text[1:-1]), node)

    def visit_quoted_atom(self, node, _):
        return self._tok(TokenKind.ATOM, _unescape(node.text[1:-1]), node)

    # --- names and punctuation ----------------------------------------

    def visit_dot(self, node, _):
        return self._tok(TokenKind.DOT, ".", node)

    def visit_symbol(self, node, _):
        return self._tok(TokenKind.SYMBOL, node.text, node)

    def visit_name(self, node, _):
        if node.text in RESERVED_WORDS:
            return self._tok(TokenKind.RESERVED, node.text, node)
        return self._tok(TokenKind.ATOM, node.text, node)

    def visit_variable(self, node, _):
        return self._tok(TokenKind.VAR, node.text, node)


def _lex_failure(text: str, pos: int, builder: _TokenBuilder) -> errors.LexError:
    """Classify the character the grammar stopped on."""
    line = builder.line_at(pos)
    ch = text[pos] if pos < len(text) else ""
    if ch == '"':
        return errors.LexError(line, "unterminated string", errors.UNTERMINATED_STRING)
    if ch == "'":
        return errors.LexError(line, "unterminated quoted atom", errors.UNTERMINATED_ATOM)
    if ch == "$":
        return errors.LexError(line, "unterminated character literal", errors.UNTERMINATED_CHAR)
    return errors.LexError(line, f"illegal character {ch!r}", errors.ILLEGAL_CHARACTER)


def tokenize(text: str, start_line: int = 1) -> Tuple[List[Token], int]:
    """Scan *text* into tokens.

    Returns
    -------
    (tokens, end_line)
        ``end_line`` is *start_line* plus the number of line breaks in
        *text*.

    Raises
    ------
    LexError
        On unterminated quoted text, malformed numbers or characters the
        grammar does not accept.
    """
    builder = _TokenBuilder(text, start_line)
    try:
        tree = ERLANG_LEXICON.parse(text)
    except GrammarError as exc:
        raise _lex_failure(text, exc.pos, builder) from None
    tokens = builder.visit(tree)
    end_line = start_line + len(builder._newlines)
    logger.debug("tokenized %d tokens, lines %d..%d", len(tokens), start_line, end_line)
    return tokens, end_line


def render_tokens(tokens: Sequence[Token]) -> str:
    """Spell *tokens* back as source text."""
    return " ".join(tok.text for tok in tokens)
