# tests/test_loader.py
"""
Tests for the compilation-unit loaders and their configuration.
"""

import argparse
from pathlib import Path

import pytest

from pollock import errors
from pollock.config import PollockConfig
from pollock.errors import LoadError, ParseError
from pollock.loader import DumpTreeLoader, SourceTreeLoader, TreeLoader
from pollock.sexp import to_sexp
from tests.conftest import DATA_DIR


class TestPollockConfig:

    def test_defaults_are_valid(self):
        assert PollockConfig().validate() == []

    def test_validate_reports_problems(self, tmp_path):
        config = PollockConfig(
            start_line=0,
            search_path=(tmp_path / "missing",),
            dump_suffix="forms",
            encoding="no-such-codec",
        )
        warnings = config.validate()
        assert len(warnings) == 4

    def test_empty_search_path(self):
        assert PollockConfig(search_path=()).validate() == [
            "search_path is empty; no unit can be loaded",
        ]

    def test_from_args(self):
        args = argparse.Namespace(start_line=5, path=["a", "b"], encoding=None)
        config = PollockConfig.from_args(args)
        assert config.start_line == 5
        assert config.search_path == (Path("a"), Path("b"))
        assert config.encoding == "utf-8"

    def test_from_args_ignores_missing_attributes(self):
        assert PollockConfig.from_args(argparse.Namespace()) == PollockConfig()


class TestSourceTreeLoader:

    def test_protocol(self):
        assert isinstance(SourceTreeLoader(), TreeLoader)
        assert isinstance(DumpTreeLoader(), TreeLoader)

    def test_loads_bundled_unit(self, minimal_forms):
        loader = SourceTreeLoader(PollockConfig(search_path=(DATA_DIR,)))
        assert loader.load_declarations("minimal_mod") == minimal_forms

    def test_first_directory_wins(self, tmp_path, unit_dir):
        first = tmp_path / "first"
        first.mkdir()
        (first / "minimal_mod.erl").write_text("other() -> ok.\n", encoding="utf-8")
        loader = SourceTreeLoader(PollockConfig(search_path=(first, unit_dir)))
        forms = loader.load_declarations("minimal_mod")
        assert [f.name for f in forms] == ["other"]

    def test_missing_unit(self, unit_dir):
        loader = SourceTreeLoader(PollockConfig(search_path=(unit_dir,)))
        with pytest.raises(LoadError) as info:
            loader.load_declarations("absent")
        assert info.value.code == errors.UNIT_NOT_FOUND
        assert info.value.unit_id == "absent"

    def test_syntax_errors_propagate(self, tmp_path):
        (tmp_path / "broken.erl").write_text("f() -> .\n", encoding="utf-8")
        loader = SourceTreeLoader(PollockConfig(search_path=(tmp_path,)))
        with pytest.raises(ParseError):
            loader.load_declarations("broken")

    def test_undecodable_source(self, tmp_path):
        (tmp_path / "latin.erl").write_bytes(b"f() -> '\xe9'.\n")
        loader = SourceTreeLoader(PollockConfig(search_path=(tmp_path,)))
        with pytest.raises(LoadError) as info:
            loader.load_declarations("latin")
        assert info.value.code == errors.UNREADABLE_UNIT


class TestDumpTreeLoader:

    def test_loads_dump(self, tmp_path, sample_forms):
        (tmp_path / "sample.forms").write_text(to_sexp(sample_forms), encoding="utf-8")
        loader = DumpTreeLoader(PollockConfig(search_path=(tmp_path,)))
        assert loader.load_declarations("sample") == sample_forms

    def test_single_node_dump(self, tmp_path, minimal_forms):
        (tmp_path / "one.forms").write_text(to_sexp(minimal_forms[1]), encoding="utf-8")
        loader = DumpTreeLoader(PollockConfig(search_path=(tmp_path,)))
        assert loader.load_declarations("one") == (minimal_forms[1],)

    def test_ignores_source_files(self, unit_dir):
        loader = DumpTreeLoader(PollockConfig(search_path=(unit_dir,)))
        with pytest.raises(LoadError):
            loader.load_declarations("minimal_mod")

    def test_corrupt_dump(self, tmp_path):
        (tmp_path / "bad.forms").write_text("(Function 1 ", encoding="utf-8")
        loader = DumpTreeLoader(PollockConfig(search_path=(tmp_path,)))
        with pytest.raises(LoadError) as info:
            loader.load_declarations("bad")
        assert info.value.code == errors.UNREADABLE_UNIT
