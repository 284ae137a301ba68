# tests/test_parser.py
"""
Tests for the parser: tokens → expression blocks and forms.
"""

import pytest

from pollock import ast as A
from pollock import errors
from pollock.errors import ParseError
from pollock.lexer import tokenize
from pollock.parser import (
    parse_declaration_sequence,
    parse_expression_sequence,
    parse_expressions,
    parse_forms,
)
from tests.conftest import MINIMAL_MOD, SAMPLE_MOD


def expr(text):
    """The single expression of a terminated snippet."""
    block = parse_expressions(text)
    assert len(block.body) == 1
    return block.body[0]


X, Y, Z = A.Var("X"), A.Var("Y"), A.Var("Z")


class TestExpressionSequences:

    def test_call_with_fun_argument(self):
        block = parse_expressions("foo(fun() -> ok end).")
        assert block == A.Block((
            A.Call(A.Atom("foo"), (
                A.Fun((A.Clause((), (), (A.Atom("ok"),)),)),
            )),
        ))

    def test_missing_terminator(self):
        with pytest.raises(ParseError) as info:
            parse_expressions("foo(fun() -> ok end)")
        assert info.value.code == errors.UNEXPECTED_EOF

    def test_sequence_of_expressions(self):
        block = parse_expressions("a, b, c.")
        assert block.body == (A.Atom("a"), A.Atom("b"), A.Atom("c"))

    def test_from_tokens(self):
        tokens, _ = tokenize("X + 1.", start_line=4)
        block = parse_expression_sequence(tokens)
        assert block.line == 4
        assert block.body == (A.BinOp("+", X, A.Integer(1)),)

    def test_trailing_tokens_after_terminator(self):
        with pytest.raises(ParseError):
            parse_expressions("a. b.")

    def test_error_carries_context(self):
        with pytest.raises(ParseError) as info:
            parse_expressions("foo(a b).")
        err = info.value
        assert err.line == 1
        assert err.raw_reason == "b"
        assert "')'" in err.expected_context

    def test_macros_are_rejected(self):
        with pytest.raises(ParseError):
            parse_expressions("?MODULE.")


class TestPrecedence:

    def test_multiplication_binds_tighter(self):
        assert expr("1 + 2 * 3.") == A.BinOp(
            "+", A.Integer(1), A.BinOp("*", A.Integer(2), A.Integer(3)))

    def test_additive_is_left_associative(self):
        assert expr("X - Y - Z.") == A.BinOp("-", A.BinOp("-", X, Y), Z)

    def test_list_ops_are_right_associative(self):
        assert expr("X ++ Y ++ Z.") == A.BinOp("++", X, A.BinOp("++", Y, Z))

    def test_match_is_right_associative(self):
        assert expr("X = Y = c.") == A.Match(X, A.Match(Y, A.Atom("c")))

    def test_send(self):
        assert expr("X ! hello.") == A.BinOp("!", X, A.Atom("hello"))

    def test_prefix_operators(self):
        assert expr("not X andalso Y.") == A.BinOp(
            "andalso", A.UnaryOp("not", X), Y)
        assert expr("-X * 2.") == A.BinOp("*", A.UnaryOp("-", X), A.Integer(2))

    def test_comparison_below_arithmetic(self):
        assert expr("X + 1 =:= Y.") == A.BinOp(
            "=:=", A.BinOp("+", X, A.Integer(1)), Y)

    def test_orelse_below_andalso(self):
        assert expr("X orelse Y andalso Z.") == A.BinOp(
            "orelse", X, A.BinOp("andalso", Y, Z))

    def test_parentheses(self):
        assert expr("(X + Y) * Z.") == A.BinOp("*", A.BinOp("+", X, Y), Z)

    def test_catch(self):
        assert expr("catch X = f().") == A.Catch(
            A.Match(X, A.Call(A.Atom("f"), ())))


class TestTerms:

    def test_adjacent_strings_merge(self):
        assert expr('"ab" "cd".') == A.String("abcd")

    def test_list_with_tail(self):
        assert expr("[1, 2 | T].") == A.ListExpr(
            (A.Integer(1), A.Integer(2)), A.Var("T"))

    def test_empty_list_and_tuple(self):
        assert expr("[].") == A.Nil()
        assert expr("{}.") == A.TupleExpr(())

    def test_remote_call(self):
        assert expr("lists:map(F, L).") == A.Call(
            A.Remote(A.Atom("lists"), A.Atom("map")), (A.Var("F"), A.Var("L")))

    def test_fun_references(self):
        assert expr("fun foo/1.") == A.FunRef(None, A.Atom("foo"), A.Integer(1))
        assert expr("fun lists:map/2.") == A.FunRef(
            A.Atom("lists"), A.Atom("map"), A.Integer(2))

    def test_named_fun(self):
        fun = expr("fun Fact(0) -> 1; Fact(N) -> N * Fact(N - 1) end.")
        assert fun.name == "Fact"
        assert len(fun.clauses) == 2

    def test_named_fun_clause_name_must_repeat(self):
        with pytest.raises(ParseError):
            parse_expressions("fun F(0) -> 1; G(N) -> N end.")


class TestRecordsAndMaps:

    def test_record_construction(self):
        assert expr("#rec{a = 1, _ = x}.") == A.RecordExpr(None, "rec", (
            A.RecordField("a", A.Integer(1)),
            A.RecordField("_", A.Atom("x")),
        ))

    def test_record_update_and_access(self):
        assert expr("R#rec{a = 1}.") == A.RecordExpr(
            A.Var("R"), "rec", (A.RecordField("a", A.Integer(1)),))
        assert expr("R#rec.field.") == A.RecordAccess(A.Var("R"), "rec", "field")

    def test_record_index(self):
        assert expr("#rec.a.") == A.RecordIndex("rec", "a")

    def test_map_update(self):
        assert expr("M#{a => 1, b := 2}.") == A.MapExpr(A.Var("M"), (
            A.MapField(A.Atom("a"), A.Integer(1), False),
            A.MapField(A.Atom("b"), A.Integer(2), True),
        ))

    def test_empty_map(self):
        assert expr("#{}.") == A.MapExpr(None, ())


class TestBinaries:

    def test_segments(self):
        assert expr("<<X:8/integer-unit:1, Rest/binary>>.") == A.Binary((
            A.BinSegment(X, A.Integer(8), ("integer", ("unit", 1))),
            A.BinSegment(A.Var("Rest"), None, ("binary",)),
        ))

    def test_empty_binary(self):
        assert expr("<<>>.") == A.Binary(())

    def test_negative_segment(self):
        segment = expr("<<-1:4>>.").segments[0]
        assert segment.value == A.UnaryOp("-", A.Integer(1))

    def test_binary_comprehension(self):
        assert expr("<< <<X>> || <<X>> <= B >>.") == A.BinComp(
            A.Binary((A.BinSegment(X),)),
            (A.BinGenerator(A.Binary((A.BinSegment(X),)), A.Var("B")),),
        )


class TestBlocks:

    def test_case(self):
        assert expr("case X of 1 -> a; _ -> b end.") == A.Case(X, (
            A.Clause((A.Integer(1),), (), (A.Atom("a"),)),
            A.Clause((A.Var("_"),), (), (A.Atom("b"),)),
        ))

    def test_guard_sequence(self):
        case = expr("case X of Y when Y > 0, Y < 9; Y =:= -1 -> ok end.")
        guards = case.clauses[0].guards
        assert len(guards) == 2
        assert len(guards[0]) == 2
        assert guards[1][0] == A.BinOp("=:=", Y, A.UnaryOp("-", A.Integer(1)))

    def test_if(self):
        node = expr("if X > 0 -> pos; true -> neg end.")
        assert isinstance(node, A.If)
        assert node.clauses[1] == A.Clause((), ((A.Atom("true"),),), (A.Atom("neg"),))

    def test_receive_with_only_after(self):
        assert expr("receive after 100 -> timeout end.") == A.Receive(
            (), A.Integer(100), (A.Atom("timeout"),))

    def test_try_handlers(self):
        node = expr("try f() catch throw:R -> R; C:R:S -> S; E -> E end.")
        assert [len(h.patterns) for h in node.handlers] == [2, 3, 1]
        assert node.handlers[0].patterns == (A.Atom("throw"), A.Var("R"))

    def test_try_requires_catch_or_after(self):
        with pytest.raises(ParseError):
            parse_expressions("try f() end.")

    def test_list_comprehension(self):
        assert expr("[X || X <- L, X > 1].") == A.ListComp(X, (
            A.Generator(X, A.Var("L")),
            A.BinOp(">", X, A.Integer(1)),
        ))

    def test_begin_end(self):
        assert expr("begin a, b end.") == A.Block((A.Atom("a"), A.Atom("b")))


class TestForms:

    def test_single_function(self):
        forms = parse_forms("foo() -> ok.")
        assert forms == (A.Function("foo", 0, (A.Clause((), (), (A.Atom("ok"),)),)),)

    def test_unterminated_form(self):
        with pytest.raises(ParseError) as info:
            parse_forms("foo(fun() -> ok end)")
        assert info.value.code == errors.MISSING_TERMINATOR

    def test_minimal_module(self):
        forms = parse_declaration_sequence(MINIMAL_MOD)
        assert forms[0] == A.Attribute("module", (A.Atom("minimal_mod"),))
        assert forms[1].signature == "min/0"
        assert forms[1].line == 3

    def test_head_name_mismatch(self):
        with pytest.raises(ParseError) as info:
            parse_forms("f(X) -> X; g(Y) -> Y.")
        assert info.value.code == errors.HEAD_MISMATCH

    def test_head_arity_mismatch(self):
        with pytest.raises(ParseError) as info:
            parse_forms("f(X) -> X; f(X, Y) -> Y.")
        assert info.value.code == errors.HEAD_MISMATCH

    def test_type_attributes_keep_raw_text(self):
        forms = parse_forms("-spec f(integer()) -> ok.\n-record(r, {a :: integer()}).")
        assert forms == (
            A.TypeAttribute("spec", "f ( integer ( ) ) -> ok"),
            A.TypeAttribute("record", "( r , { a :: integer ( ) } )"),
        )

    def test_plain_attributes(self):
        forms = parse_forms("-export([f/1]).\n-record(r, {a = 1, b}).\n-endif.")
        assert forms[0] == A.Attribute("export", (
            A.ListExpr((A.BinOp("/", A.Atom("f"), A.Integer(1)),)),))
        assert forms[1].args[1] == A.TupleExpr((
            A.Match(A.Atom("a"), A.Integer(1)), A.Atom("b")))
        assert forms[2] == A.Attribute("endif", ())

    def test_terminator_inside_brackets_is_an_error(self):
        with pytest.raises(ParseError):
            parse_forms("f() -> [a. b].")

    def test_all_or_nothing(self):
        with pytest.raises(ParseError):
            parse_forms("a() -> ok.\nb() -> .\nc() -> ok.")

    def test_sample_module(self):
        forms = parse_forms(SAMPLE_MOD)
        functions = [f.signature for f in forms if isinstance(f, A.Function)]
        assert functions == ["start/1", "loop/2", "classify/1"]
        assert len(forms) == 7


class TestNestingLimit:

    def test_deep_expression(self):
        depth = 3000
        with pytest.raises(ParseError) as info:
            parse_expressions("{" * depth + "a" + "}" * depth + ".")
        assert info.value.code == errors.NESTING_TOO_DEEP
        assert "POL-1004" in str(info.value)

    def test_deep_form(self):
        depth = 3000
        with pytest.raises(ParseError) as info:
            parse_forms("f() -> " + "(" * depth + "a" + ")" * depth + ".")
        assert info.value.code == errors.NESTING_TOO_DEEP
