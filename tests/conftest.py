# tests/conftest.py
"""
Shared fixtures and Erlang sources for the pollock test-suite.
"""

from pathlib import Path

import pytest

from pollock.parser import parse_forms

DATA_DIR = Path(__file__).parent / "data"


# ═══════════════════════════════════════════════════════════════════════
#  Erlang sources
# ═══════════════════════════════════════════════════════════════════════

MINIMAL_MOD = "-module(minimal_mod).\n\nmin() -> ok.\n"

SAMPLE_MOD = """\
-module(sample).
-export([start/1, loop/2, classify/1]).
-record(state, {count = 0, name}).
-spec start(term()) -> pid().

%% Spawns the loop.
start(Name) ->
    spawn(fun() -> loop(#state{name = Name}, []) end).

loop(#state{count = C} = S, Acc) ->
    receive
        {add, X} when is_integer(X), X > 0 ->
            loop(S#state{count = C + X}, [X | Acc]);
        {get, From} ->
            From ! {count, S#state.count, lists:reverse(Acc)},
            loop(S, Acc);
        stop ->
            ok
    after 5000 ->
        timeout
    end.

classify(<<Len:8, Data:Len/binary, _/binary>>) ->
    {ok, Data};
classify(#{key := V} = M) ->
    try maps:get(other, M) of
        Other -> {V, Other}
    catch
        error:{badkey, _}:Stack -> {error, Stack};
        throw:Reason -> Reason
    after
        ok
    end;
classify(L) when is_list(L) ->
    [X * 2 || X <- L, X rem 2 =:= 0];
classify(_) ->
    case catch erlang:error(x) of
        {'EXIT', _} -> $a;
        _ -> 1.5e3
    end.
"""


# ═══════════════════════════════════════════════════════════════════════
#  Fixtures
# ═══════════════════════════════════════════════════════════════════════

@pytest.fixture
def minimal_forms():
    return parse_forms(MINIMAL_MOD)


@pytest.fixture
def sample_forms():
    return parse_forms(SAMPLE_MOD)


@pytest.fixture
def unit_dir(tmp_path):
    """A search directory holding ``minimal_mod.erl`` and ``sample.erl``."""
    (tmp_path / "minimal_mod.erl").write_text(MINIMAL_MOD, encoding="utf-8")
    (tmp_path / "sample.erl").write_text(SAMPLE_MOD, encoding="utf-8")
    return tmp_path
