# tests/test_lexer.py
"""
Tests for the lexer: source text → tokens.
"""

import pytest

from pollock import errors
from pollock.errors import LexError
from pollock.lexer import Token, TokenKind, render_tokens, tokenize


def kinds(text):
    return [tok.kind for tok in tokenize(text)[0]]


def values(text):
    return [tok.value for tok in tokenize(text)[0]]


class TestTokenizeBasics:

    def test_empty_input(self):
        assert tokenize("") == ([], 1)

    def test_function_clause(self):
        assert kinds("foo(X) -> ok.") == [
            TokenKind.ATOM, TokenKind.SYMBOL, TokenKind.VAR, TokenKind.SYMBOL,
            TokenKind.SYMBOL, TokenKind.ATOM, TokenKind.DOT,
        ]

    def test_reserved_words(self):
        toks, _ = tokenize("case X of _ -> ok end")
        assert toks[0] == Token(TokenKind.RESERVED, "case", 1)
        assert toks[2].kind is TokenKind.RESERVED
        assert toks[-1].is_("end")

    def test_underscore_is_variable(self):
        assert kinds("_ _Acc") == [TokenKind.VAR, TokenKind.VAR]

    def test_comments_are_skipped(self):
        assert values("a % comment . here\nb") == ["a", "b"]

    def test_multi_char_symbols(self):
        assert values("=:= =/= =< >= <- <= => := || ++ -- -> :: << >>") == [
            "=:=", "=/=", "=<", ">=", "<-", "<=", "=>", ":=", "||",
            "++", "--", "->", "::", "<<", ">>",
        ]


class TestLines:

    def test_token_lines(self):
        toks, _ = tokenize("a\n\nb")
        assert [t.line for t in toks] == [1, 3]

    def test_start_line_offset(self):
        toks, end_line = tokenize("a\nb\n", start_line=5)
        assert [t.line for t in toks] == [5, 6]
        assert end_line == 7

    def test_end_line_without_newlines(self):
        assert tokenize("x", start_line=3)[1] == 3

    def test_lines_non_decreasing(self):
        toks, _ = tokenize("f(X) ->\n  g(X,\n    Y).\n")
        lines = [t.line for t in toks]
        assert lines == sorted(lines)


class TestLiterals:

    def test_integers(self):
        assert values("42 1_000") == [42, 1000]

    def test_based_integers(self):
        assert values("16#ff 2#101 36#z") == [255, 5, 35]

    def test_floats(self):
        assert values("1.5 1.0e-3 1.5e3") == [1.5, 0.001, 1500.0]

    def test_chars(self):
        assert values("$a $\\n $\\s $\\\\") == [97, 10, 32, 92]

    def test_string_escapes(self):
        assert values(r'"a\tb\"c"') == ['a\tb"c']

    def test_octal_and_hex_escapes(self):
        assert values(r'"\101\x42\x{43}"') == ["ABC"]

    def test_quoted_atom(self):
        toks, _ = tokenize("'hello world'")
        assert toks[0].kind is TokenKind.ATOM
        assert toks[0].value == "hello world"
        assert toks[0].text == "'hello world'"

    def test_latin1_names(self):
        toks, _ = tokenize("école Ärger _ß")
        assert [t.kind for t in toks] == [TokenKind.ATOM, TokenKind.VAR, TokenKind.VAR]
        assert [t.value for t in toks] == ["école", "Ärger", "_ß"]

    def test_quoted_reserved_word_is_atom(self):
        toks, _ = tokenize("'case'")
        assert toks[0].kind is TokenKind.ATOM


class TestDot:

    def test_terminator_before_whitespace_or_eof(self):
        assert kinds("a. b.")[1] is TokenKind.DOT
        assert kinds("a.")[-1] is TokenKind.DOT

    def test_terminator_before_comment(self):
        assert kinds("a.% done")[-1] is TokenKind.DOT

    @pytest.mark.parametrize("text, symbol", [("0..255", ".."), ("f(...)", "...")])
    def test_range_symbols(self, text, symbol):
        toks, _ = tokenize(text)
        assert [t.value for t in toks if t.kind is TokenKind.SYMBOL and "." in t.value] == [symbol]
        assert TokenKind.DOT not in [t.kind for t in toks]

    def test_record_dot_is_symbol(self):
        toks, _ = tokenize("X#r.f.")
        assert toks[3] == Token(TokenKind.SYMBOL, ".", 1)
        assert toks[-1].kind is TokenKind.DOT

    def test_is_never_matches_terminator(self):
        assert not Token.dot(1).is_(".")


class TestLexErrors:

    def test_unterminated_string(self):
        with pytest.raises(LexError) as info:
            tokenize('foo("abc')
        assert info.value.code == errors.UNTERMINATED_STRING
        assert info.value.line == 1

    def test_unterminated_atom(self):
        with pytest.raises(LexError) as info:
            tokenize("a\n'abc")
        assert info.value.code == errors.UNTERMINATED_ATOM
        assert info.value.line == 2

    def test_unterminated_char(self):
        with pytest.raises(LexError) as info:
            tokenize("$")
        assert info.value.code == errors.UNTERMINATED_CHAR

    @pytest.mark.parametrize("text", ["37#1", "2#3", "1#0"])
    def test_malformed_based_integer(self, text):
        with pytest.raises(LexError) as info:
            tokenize(text)
        assert info.value.code == errors.MALFORMED_NUMBER

    def test_float_out_of_range(self):
        with pytest.raises(LexError) as info:
            tokenize("f() ->\n  1.0e400.")
        assert info.value.code == errors.MALFORMED_NUMBER
        assert info.value.line == 2

    def test_multiplication_sign_is_not_a_letter(self):
        with pytest.raises(LexError):
            tokenize("a×b")

    def test_illegal_character(self):
        with pytest.raises(LexError) as info:
            tokenize("a ` b")
        assert info.value.code == errors.ILLEGAL_CHARACTER
        assert "POL-0001" in str(info.value)


class TestRenderTokens:

    def test_render_joins_raw_text(self):
        toks, _ = tokenize("f('A', \"s\")")
        assert render_tokens(toks) == "f ( 'A' , \"s\" )"
