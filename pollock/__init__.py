"""pollock - analysis of Erlang source snippets.

Tokenizes and parses expression snippets and module forms, computes the
free variables of an expression, and partitions a module's forms around
one function.

Typical use::

    from pollock import free_vars, parse_forms, split_at

    free_vars("X = foo(Y), X + Z")          # frozenset({'Y', 'Z'})
    forms = parse_forms(open("mod.erl").read())
    split_at(forms, "handle", 2)
"""

__version__ = "0.1.0"

from pollock.errors import (  # noqa: E402
    AnalysisError,
    LexError,
    LoadError,
    ParseError,
    PollockError,
)
from pollock.lexer import Token, TokenKind, tokenize  # noqa: E402
from pollock.parser import (  # noqa: E402
    parse_declaration_sequence,
    parse_expression_sequence,
    parse_expressions,
    parse_forms,
)
from pollock.analyzer import free_variables, free_vars  # noqa: E402
from pollock.splitter import NotFound, Split, split_at, split_forms_at_function  # noqa: E402

__all__ = [
    "__version__",
    "PollockError",
    "LexError",
    "ParseError",
    "AnalysisError",
    "LoadError",
    "Token",
    "TokenKind",
    "tokenize",
    "parse_expression_sequence",
    "parse_expressions",
    "parse_declaration_sequence",
    "parse_forms",
    "free_variables",
    "free_vars",
    "Split",
    "NotFound",
    "split_at",
    "split_forms_at_function",
]
