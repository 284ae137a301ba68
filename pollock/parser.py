"""pollock/parser.py – Erlang tokens → expression blocks and forms.

Design principles
-----------------
* **Single-pass, recursive-descent** over the token list, one method per
  precedence level.
* **Fail-fast with location** – :class:`~pollock.errors.ParseError`
  carries the offending line, what the parser expected there, and the
  token it found instead.
* **All-or-nothing** – a declaration sequence either parses completely
  or the first failing form's error propagates; no partial result.

Public API
----------
``parse_expression_sequence(tokens) -> ast.Block``
    Parse ``E1, ..., En .`` (the token list must end with a terminator).

``parse_expressions(text, start_line=1) -> ast.Block``
    Tokenize and parse a terminated expression sequence.

``parse_declaration_sequence(text, start_line=1) -> tuple of forms``
    Tokenize, split on top-level terminators, parse each form.
    ``parse_forms`` is an alias.

Grammar (simplified)::

    form        → attribute | function
    attribute   → '-' atom ( '(' exprs? ')' | exprs )? '.'
    function    → clause (';' clause)* '.'        all clauses: same name/arity
    clause      → atom args guard? '->' exprs

    expr        → 'catch' expr | match
    match       → orelse ( ('=' | '!') match )?
    orelse      → andalso ('orelse' orelse)?
    andalso     → compare ('andalso' andalso)?
    compare     → listop (compop listop)?
    listop      → additive (('++' | '--') listop)?
    additive    → mult (addop mult)*
    mult        → prefix (multop prefix)*
    prefix      → prefixop prefix | postfix
    postfix     → primary (':' primary)? ( args | '#' record-or-map )*
    primary     → var | atom | number | char | string+ | '(' expr ')'
                | list | tuple | binary | '#' record-or-map
                | begin | case | if | receive | try | fun
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple, Union

from pollock import ast as A
from pollock import errors
from pollock.errors import ParseError
from pollock.lexer import Token, TokenKind, render_tokens, tokenize

logger = logging.getLogger(__name__)

__all__ = [
    "parse_expression_sequence",
    "parse_expressions",
    "parse_declaration_sequence",
    "parse_forms",
    "segment_forms",
]


_COMPARISON_OPS = ("==", "/=", "=<", "<", ">=", ">", "=:=", "=/=")
_LIST_OPS = ("++", "--")
_ADD_OPS = ("+", "-", "bor", "bxor", "bsl", "bsr", "or", "xor")
_MULT_OPS = ("/", "*", "div", "rem", "band", "and")
_PREFIX_OPS = ("+", "-", "bnot", "not")

_OPENERS = frozenset({"(", "[", "{", "<<"})
_CLOSERS = frozenset({")", "]", "}", ">>"})

#: Attributes whose bodies use type syntax; kept as raw token text.
_RAW_ATTRIBUTES = frozenset({"spec", "type", "opaque", "callback"})


class _Parser:
    """Recursive descent parser over one token run."""

    def __init__(self, tokens: Sequence[Token]) -> None:
        self._tokens = list(tokens)
        self._pos = 0

    # ── token helpers ───────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> Optional[Token]:
        i = self._pos + offset
        return self._tokens[i] if i < len(self._tokens) else None

    def _advance(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise self._error("more input")
        self._pos += 1
        return tok

    def _at(self, *spellings: str) -> bool:
        tok = self._peek()
        return tok is not None and any(tok.is_(s) for s in spellings)

    def _at_kind(self, kind: TokenKind, offset: int = 0) -> bool:
        tok = self._peek(offset)
        return tok is not None and tok.kind is kind

    def _expect(self, spelling: str) -> Token:
        if not self._at(spelling):
            raise self._error(f"'{spelling}'")
        return self._advance()

    def _expect_atom(self, context: str) -> str:
        if not self._at_kind(TokenKind.ATOM):
            raise self._error(context)
        return self._advance().value

    def _error(self, expected: str) -> ParseError:
        tok = self._peek()
        if tok is None:
            line = self._tokens[-1].line if self._tokens else 1
            return ParseError(line, expected, "end of input", errors.UNEXPECTED_EOF)
        return ParseError(tok.line, expected, tok.text or str(tok.value))

    def _expect_terminator(self) -> None:
        if not self._at_kind(TokenKind.DOT):
            raise self._error("'.'")
        self._advance()
        if self._peek() is not None:
            raise self._error("end of form")

    # ── entry points ────────────────────────────────────────────────

    def parse_terminated_exprs(self) -> Tuple[A.Expr, ...]:
        body = self._parse_exprs()
        self._expect_terminator()
        return body

    def parse_form(self) -> A.Form:
        tok = self._peek()
        if tok is not None and tok.is_("-"):
            form: A.Form = self._parse_attribute()
        elif tok is not None and tok.kind is TokenKind.ATOM:
            form = self._parse_function()
        else:
            raise self._error("attribute or function")
        self._expect_terminator()
        return form

    # ── forms ───────────────────────────────────────────────────────

    def _parse_attribute(self) -> A.Form:
        dash = self._expect("-")
        name = self._expect_atom("attribute name")
        body = self._tokens[self._pos:-1]
        if name in _RAW_ATTRIBUTES or any(t.is_("::") for t in body):
            if not body:
                raise self._error("attribute value")
            self._pos = len(self._tokens) - 1
            return A.TypeAttribute(name, render_tokens(body), dash.line)
        if self._at("("):
            args = self._parse_args()
        elif self._at_kind(TokenKind.DOT):
            args = ()
        else:
            args = self._parse_exprs()
        return A.Attribute(name, args, dash.line)

    def _parse_function(self) -> A.Function:
        first = self._peek()
        name = first.value
        clauses = [self._parse_function_clause(name)]
        arity = len(clauses[0].patterns)
        while self._at(";"):
            self._advance()
            clause = self._parse_function_clause(name)
            if len(clause.patterns) != arity:
                raise ParseError(
                    clause.line, f"clause of {name}/{arity}", "head mismatch",
                    errors.HEAD_MISMATCH,
                )
            clauses.append(clause)
        return A.Function(name, arity, tuple(clauses), first.line)

    def _parse_function_clause(self, name: str) -> A.Clause:
        tok = self._peek()
        if tok is None or tok.kind is not TokenKind.ATOM:
            raise self._error("function name")
        if tok.value != name:
            raise ParseError(
                tok.line, f"clause of {name}", tok.text, errors.HEAD_MISMATCH,
            )
        self._advance()
        args = self._parse_args()
        guards = self._parse_guard()
        self._expect("->")
        return A.Clause(args, guards, self._parse_exprs(), tok.line)

    # ── clauses and guards ──────────────────────────────────────────

    def _parse_guard(self) -> Tuple[Tuple[A.Expr, ...], ...]:
        if not self._at("when"):
            return ()
        self._advance()
        return self._parse_guard_sequence()

    def _parse_guard_sequence(self) -> Tuple[Tuple[A.Expr, ...], ...]:
        alternatives = [self._parse_exprs()]
        while self._at(";"):
            self._advance()
            alternatives.append(self._parse_exprs())
        return tuple(alternatives)

    def _parse_cr_clauses(self) -> Tuple[A.Clause, ...]:
        """Case/receive/try-of clauses: ``Pattern [when G] -> Body``."""
        clauses = [self._parse_cr_clause()]
        while self._at(";"):
            self._advance()
            clauses.append(self._parse_cr_clause())
        return tuple(clauses)

    def _parse_cr_clause(self) -> A.Clause:
        pattern = self._parse_expr()
        guards = self._parse_guard()
        self._expect("->")
        return A.Clause((pattern,), guards, self._parse_exprs(), pattern.line)

    def _parse_handler_clauses(self) -> Tuple[A.Clause, ...]:
        clauses = [self._parse_handler_clause()]
        while self._at(";"):
            self._advance()
            clauses.append(self._parse_handler_clause())
        return tuple(clauses)

    def _parse_handler_clause(self) -> A.Clause:
        """``[Class:]Reason[:Stacktrace] [when G] -> Body``."""
        head = self._parse_expr()
        if isinstance(head, A.Remote):
            patterns: List[A.Expr] = [head.module, head.function]
            if self._at(":"):
                self._advance()
                if not self._at_kind(TokenKind.VAR):
                    raise self._error("stacktrace variable")
                tok = self._advance()
                patterns.append(A.Var(tok.value, tok.line))
        else:
            patterns = [head]
        guards = self._parse_guard()
        self._expect("->")
        return A.Clause(tuple(patterns), guards, self._parse_exprs(), head.line)

    def _parse_fun_clauses(self, name: Optional[str]) -> Tuple[A.Clause, ...]:
        clauses = [self._parse_fun_clause(name)]
        while self._at(";"):
            self._advance()
            clauses.append(self._parse_fun_clause(name))
        return tuple(clauses)

    def _parse_fun_clause(self, name: Optional[str]) -> A.Clause:
        if name is not None:
            tok = self._peek()
            if tok is None or tok.kind is not TokenKind.VAR or tok.value != name:
                raise self._error(f"'{name}'")
            self._advance()
        line = self._peek().line if self._peek() is not None else 0
        args = self._parse_args()
        guards = self._parse_guard()
        self._expect("->")
        return A.Clause(args, guards, self._parse_exprs(), line)

    # ── expressions ─────────────────────────────────────────────────

    def _parse_exprs(self) -> Tuple[A.Expr, ...]:
        exprs = [self._parse_expr()]
        while self._at(","):
            self._advance()
            exprs.append(self._parse_expr())
        return tuple(exprs)

    def _parse_args(self) -> Tuple[A.Expr, ...]:
        self._expect("(")
        if self._at(")"):
            self._advance()
            return ()
        args = self._parse_exprs()
        self._expect(")")
        return args

    def _parse_expr(self) -> A.Expr:
        if self._at("catch"):
            tok = self._advance()
            return A.Catch(self._parse_expr(), tok.line)
        return self._parse_match()

    def _parse_match(self) -> A.Expr:
        left = self._parse_orelse()
        if self._at("="):
            self._advance()
            return A.Match(left, self._parse_match(), left.line)
        if self._at("!"):
            self._advance()
            return A.BinOp("!", left, self._parse_match(), left.line)
        return left

    def _parse_orelse(self) -> A.Expr:
        left = self._parse_andalso()
        if self._at("orelse"):
            self._advance()
            return A.BinOp("orelse", left, self._parse_orelse(), left.line)
        return left

    def _parse_andalso(self) -> A.Expr:
        left = self._parse_comparison()
        if self._at("andalso"):
            self._advance()
            return A.BinOp("andalso", left, self._parse_andalso(), left.line)
        return left

    def _parse_comparison(self) -> A.Expr:
        left = self._parse_list_op()
        if self._at(*_COMPARISON_OPS):
            op = self._advance().value
            return A.BinOp(op, left, self._parse_list_op(), left.line)
        return left

    def _parse_list_op(self) -> A.Expr:
        left = self._parse_additive()
        if self._at(*_LIST_OPS):
            op = self._advance().value
            return A.BinOp(op, left, self._parse_list_op(), left.line)
        return left

    def _parse_additive(self) -> A.Expr:
        left = self._parse_multiplicative()
        while self._at(*_ADD_OPS):
            op = self._advance().value
            left = A.BinOp(op, left, self._parse_multiplicative(), left.line)
        return left

    def _parse_multiplicative(self) -> A.Expr:
        left = self._parse_prefix()
        while self._at(*_MULT_OPS):
            op = self._advance().value
            left = A.BinOp(op, left, self._parse_prefix(), left.line)
        return left

    def _parse_prefix(self) -> A.Expr:
        if self._at(*_PREFIX_OPS):
            tok = self._advance()
            return A.UnaryOp(tok.value, self._parse_prefix(), tok.line)
        return self._parse_postfix()

    def _parse_postfix(self) -> A.Expr:
        expr = self._parse_primary()
        if self._at(":"):
            self._advance()
            expr = A.Remote(expr, self._parse_primary(), expr.line)
        while True:
            if self._at("("):
                expr = A.Call(expr, self._parse_args(), expr.line)
            elif self._at("#"):
                expr = self._parse_hash(expr)
            else:
                return expr

    def _parse_primary(self) -> A.Expr:
        tok = self._peek()
        if tok is None:
            raise self._error("expression")
        kind = tok.kind
        if kind is TokenKind.VAR:
            self._advance()
            return A.Var(tok.value, tok.line)
        if kind is TokenKind.ATOM:
            self._advance()
            return A.Atom(tok.value, tok.line)
        if kind is TokenKind.INTEGER:
            self._advance()
            return A.Integer(tok.value, tok.line)
        if kind is TokenKind.FLOAT:
            self._advance()
            return A.Float(tok.value, tok.line)
        if kind is TokenKind.CHAR:
            self._advance()
            return A.Char(tok.value, tok.line)
        if kind is TokenKind.STRING:
            parts = []
            while self._at_kind(TokenKind.STRING):
                parts.append(self._advance().value)
            return A.String("".join(parts), tok.line)
        if tok.is_("("):
            self._advance()
            expr = self._parse_expr()
            self._expect(")")
            return expr
        if tok.is_("["):
            return self._parse_list()
        if tok.is_("{"):
            self._advance()
            if self._at("}"):
                self._advance()
                return A.TupleExpr((), tok.line)
            elements = self._parse_exprs()
            self._expect("}")
            return A.TupleExpr(elements, tok.line)
        if tok.is_("<<"):
            return self._parse_binary()
        if tok.is_("#"):
            return self._parse_hash(None)
        if tok.is_("begin"):
            self._advance()
            body = self._parse_exprs()
            self._expect("end")
            return A.Block(body, tok.line)
        if tok.is_("case"):
            return self._parse_case()
        if tok.is_("if"):
            self._advance()
            clauses = [self._parse_if_clause()]
            while self._at(";"):
                self._advance()
                clauses.append(self._parse_if_clause())
            self._expect("end")
            return A.If(tuple(clauses), tok.line)
        if tok.is_("receive"):
            return self._parse_receive()
        if tok.is_("try"):
            return self._parse_try()
        if tok.is_("fun"):
            return self._parse_fun()
        raise self._error("expression")

    # ── compound data ───────────────────────────────────────────────

    def _parse_list(self) -> A.Expr:
        open_tok = self._expect("[")
        if self._at("]"):
            self._advance()
            return A.Nil(open_tok.line)
        first = self._parse_expr()
        if self._at("||"):
            self._advance()
            qualifiers = self._parse_qualifiers()
            self._expect("]")
            return A.ListComp(first, qualifiers, open_tok.line)
        elements = [first]
        while self._at(","):
            self._advance()
            elements.append(self._parse_expr())
        tail = None
        if self._at("|"):
            self._advance()
            tail = self._parse_expr()
        self._expect("]")
        return A.ListExpr(tuple(elements), tail, open_tok.line)

    def _parse_qualifiers(self) -> Tuple[A.Qualifier, ...]:
        qualifiers = [self._parse_qualifier()]
        while self._at(","):
            self._advance()
            qualifiers.append(self._parse_qualifier())
        return tuple(qualifiers)

    def _parse_qualifier(self) -> A.Qualifier:
        expr = self._parse_expr()
        if self._at("<-"):
            self._advance()
            return A.Generator(expr, self._parse_expr(), expr.line)
        if self._at("<="):
            self._advance()
            return A.BinGenerator(expr, self._parse_expr(), expr.line)
        return expr

    def _parse_binary(self) -> A.Expr:
        open_tok = self._expect("<<")
        if self._at(">>"):
            self._advance()
            return A.Binary((), open_tok.line)
        first = self._parse_bin_segment()
        if self._at("||"):
            if first.size is not None or first.types:
                raise self._error("'>>'")
            self._advance()
            qualifiers = self._parse_qualifiers()
            self._expect(">>")
            return A.BinComp(first.value, qualifiers, open_tok.line)
        segments = [first]
        while self._at(","):
            self._advance()
            segments.append(self._parse_bin_segment())
        self._expect(">>")
        return A.Binary(tuple(segments), open_tok.line)

    def _parse_bin_segment(self) -> A.BinSegment:
        if self._at(*_PREFIX_OPS):
            tok = self._advance()
            value: A.Expr = A.UnaryOp(tok.value, self._parse_primary(), tok.line)
        else:
            value = self._parse_primary()
        size = None
        if self._at(":"):
            self._advance()
            size = self._parse_primary()
        types: Tuple[Union[str, Tuple[str, int]], ...] = ()
        if self._at("/"):
            self._advance()
            specs = [self._parse_bin_type()]
            while self._at("-"):
                self._advance()
                specs.append(self._parse_bin_type())
            types = tuple(specs)
        return A.BinSegment(value, size, types, value.line)

    def _parse_bin_type(self) -> Union[str, Tuple[str, int]]:
        name = self._expect_atom("type specifier")
        if self._at(":"):
            self._advance()
            if not self._at_kind(TokenKind.INTEGER):
                raise self._error("integer")
            return (name, self._advance().value)
        return name

    def _parse_hash(self, base: Optional[A.Expr]) -> A.Expr:
        """Record or map syntax after ``#``; *base* is the updated value."""
        hash_tok = self._expect("#")
        line = base.line if base is not None else hash_tok.line
        if self._at("{"):
            return A.MapExpr(base, self._parse_map_fields(), line)
        name = self._expect_atom("record name")
        if self._at("."):
            self._advance()
            field_name = self._expect_atom("record field")
            if base is None:
                return A.RecordIndex(name, field_name, line)
            return A.RecordAccess(base, name, field_name, line)
        if self._at("{"):
            return A.RecordExpr(base, name, self._parse_record_fields(), line)
        raise self._error("'{' or '.'")

    def _parse_map_fields(self) -> Tuple[A.MapField, ...]:
        self._expect("{")
        fields: List[A.MapField] = []
        if not self._at("}"):
            fields.append(self._parse_map_field())
            while self._at(","):
                self._advance()
                fields.append(self._parse_map_field())
        self._expect("}")
        return tuple(fields)

    def _parse_map_field(self) -> A.MapField:
        key = self._parse_expr()
        if self._at("=>"):
            exact = False
        elif self._at(":="):
            exact = True
        else:
            raise self._error("'=>' or ':='")
        self._advance()
        return A.MapField(key, self._parse_expr(), exact, key.line)

    def _parse_record_fields(self) -> Tuple[A.RecordField, ...]:
        self._expect("{")
        fields: List[A.RecordField] = []
        if not self._at("}"):
            fields.append(self._parse_record_field())
            while self._at(","):
                self._advance()
                fields.append(self._parse_record_field())
        self._expect("}")
        return tuple(fields)

    def _parse_record_field(self) -> A.RecordField:
        tok = self._peek()
        if tok is not None and (
            tok.kind is TokenKind.ATOM
            or (tok.kind is TokenKind.VAR and tok.value == "_")
        ):
            self._advance()
        else:
            raise self._error("record field name")
        self._expect("=")
        return A.RecordField(tok.value, self._parse_expr(), tok.line)

    # ── block expressions ───────────────────────────────────────────

    def _parse_case(self) -> A.Case:
        case_tok = self._expect("case")
        expr = self._parse_expr()
        self._expect("of")
        clauses = self._parse_cr_clauses()
        self._expect("end")
        return A.Case(expr, clauses, case_tok.line)

    def _parse_if_clause(self) -> A.Clause:
        line = self._peek().line if self._peek() is not None else 0
        guards = self._parse_guard_sequence()
        self._expect("->")
        return A.Clause((), guards, self._parse_exprs(), line)

    def _parse_receive(self) -> A.Receive:
        receive_tok = self._expect("receive")
        clauses: Tuple[A.Clause, ...] = ()
        if not self._at("after"):
            clauses = self._parse_cr_clauses()
        timeout = None
        after: Tuple[A.Expr, ...] = ()
        if self._at("after"):
            self._advance()
            timeout = self._parse_expr()
            self._expect("->")
            after = self._parse_exprs()
        self._expect("end")
        return A.Receive(clauses, timeout, after, receive_tok.line)

    def _parse_try(self) -> A.Try:
        try_tok = self._expect("try")
        body = self._parse_exprs()
        clauses: Tuple[A.Clause, ...] = ()
        handlers: Tuple[A.Clause, ...] = ()
        after: Tuple[A.Expr, ...] = ()
        if self._at("of"):
            self._advance()
            clauses = self._parse_cr_clauses()
        if self._at("catch"):
            self._advance()
            handlers = self._parse_handler_clauses()
        if self._at("after"):
            self._advance()
            after = self._parse_exprs()
        if not handlers and not after:
            raise self._error("'catch' or 'after'")
        self._expect("end")
        return A.Try(body, clauses, handlers, after, try_tok.line)

    def _parse_fun(self) -> A.Expr:
        fun_tok = self._expect("fun")
        if self._at("("):
            clauses = self._parse_fun_clauses(None)
            self._expect("end")
            return A.Fun(clauses, None, fun_tok.line)
        if self._at_kind(TokenKind.VAR) and (
            self._peek(1) is not None and self._peek(1).is_("(")
        ):
            name = self._peek().value
            clauses = self._parse_fun_clauses(name)
            self._expect("end")
            return A.Fun(clauses, name, fun_tok.line)
        module: Optional[A.Expr] = None
        name_expr = self._parse_primary()
        if self._at(":"):
            self._advance()
            module = name_expr
            name_expr = self._parse_primary()
        self._expect("/")
        arity = self._parse_primary()
        return A.FunRef(module, name_expr, arity, fun_tok.line)


# ═══════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════

def _run(tokens: Sequence[Token], entry):
    """Run *entry* on a fresh parser, reporting stack exhaustion as a
    :class:`ParseError`."""
    parser = _Parser(tokens)
    try:
        return entry(parser)
    except RecursionError:
        tok = parser._peek() or (tokens[-1] if tokens else None)
        raise ParseError(
            tok.line if tok is not None else 1,
            "shallower nesting", "nesting too deep", errors.NESTING_TOO_DEEP,
        ) from None


def parse_expression_sequence(tokens: Sequence[Token]) -> A.Block:
    """Parse a terminated expression sequence into a :class:`~pollock.ast.Block`.

    Raises
    ------
    ParseError
        On any grammar violation, including a missing terminator, or when
        the input nests deeper than the interpreter stack allows.
    """
    body = _run(tokens, _Parser.parse_terminated_exprs)
    line = tokens[0].line if tokens else 1
    return A.Block(body, line)


def parse_expressions(text: str, start_line: int = 1) -> A.Block:
    """Tokenize and parse ``E1, ..., En .``."""
    tokens, _ = tokenize(text, start_line)
    return parse_expression_sequence(tokens)


def segment_forms(tokens: Sequence[Token]) -> List[List[Token]]:
    """Split *tokens* after each terminator at bracket depth zero.

    A terminator inside ``( [ { <<`` nesting stays in its segment, where
    the form grammar rejects it.
    """
    segments: List[List[Token]] = []
    current: List[Token] = []
    depth = 0
    for tok in tokens:
        current.append(tok)
        if tok.kind is TokenKind.SYMBOL:
            if tok.value in _OPENERS:
                depth += 1
            elif tok.value in _CLOSERS and depth > 0:
                depth -= 1
        elif tok.kind is TokenKind.DOT and depth == 0:
            segments.append(current)
            current = []
    if current:
        raise ParseError(
            current[-1].line, "'.'", "end of input", errors.MISSING_TERMINATOR,
        )
    return segments


def parse_declaration_sequence(text: str, start_line: int = 1) -> Tuple[A.Form, ...]:
    """Tokenize and parse *text* as a sequence of top-level forms.

    Raises
    ------
    LexError
        If *text* cannot be tokenized.
    ParseError
        If any form fails to parse; no partial sequence is returned.
    """
    tokens, _ = tokenize(text, start_line)
    forms = tuple(_run(segment, _Parser.parse_form) for segment in segment_forms(tokens))
    logger.debug("parsed %d form(s)", len(forms))
    return forms


parse_forms = parse_declaration_sequence
