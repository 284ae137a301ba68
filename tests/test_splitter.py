# tests/test_splitter.py
"""
Tests for splitting a form sequence around a function.
"""

from pollock import ast as A
from pollock.parser import parse_forms
from pollock.splitter import NotFound, Split, split_at, split_forms_at_function


class TestNotFound:

    def test_empty_sequence(self):
        result = split_at((), "foo", 1)
        assert result == NotFound("foo", 1)
        assert not result

    def test_unknown_name(self, minimal_forms):
        assert split_at(minimal_forms, "foo", 1) == NotFound("foo", 1)

    def test_wrong_arity(self, minimal_forms):
        assert split_at(minimal_forms, "min", 1) == NotFound("min", 1)

    def test_attributes_never_match(self):
        forms = parse_forms("-min(0).\n-spec min() -> ok.")
        assert not split_at(forms, "min", 0)

    def test_message(self):
        assert str(NotFound("foo", 2)) == "function foo/2 not found"


class TestSplit:

    def test_minimal_module(self, minimal_forms):
        result = split_at(minimal_forms, "min", 0)
        assert isinstance(result, Split)
        before, matched, after = result
        assert before == (minimal_forms[0],)
        assert matched == (minimal_forms[1],)
        assert after == ()
        assert result.function.signature == "min/0"

    def test_concatenation_is_the_input(self, sample_forms):
        before, matched, after = split_at(sample_forms, "loop", 2)
        assert before + matched + after == sample_forms
        assert len(before) == 5
        assert len(after) == 1

    def test_first_match_wins(self):
        forms = parse_forms("f() -> a.\nf() -> b.")
        result = split_at(forms, "f", 0)
        assert result.function.clauses[0].body == (A.Atom("a"),)
        assert result.after == (forms[1],)

    def test_accepts_lists(self, minimal_forms):
        assert split_at(list(minimal_forms), "min", 0).before == (minimal_forms[0],)

    def test_alias(self, minimal_forms):
        assert split_forms_at_function(minimal_forms, "min", 0) == split_at(
            minimal_forms, "min", 0)
