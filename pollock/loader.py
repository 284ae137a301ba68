"""pollock/loader.py – locate a compilation unit and return its forms.

The analyzer itself never touches the file system; tools that need the
declarations of a whole module go through a :class:`TreeLoader`.

``SourceTreeLoader``
    Finds ``<unit>.erl`` on the search path and parses it.
``DumpTreeLoader``
    Finds ``<unit>.forms`` (written by :func:`pollock.sexp.to_sexp`) and
    decodes it.

Both search the directories of :attr:`PollockConfig.search_path` in
order; the first hit wins.  A unit found nowhere raises
:class:`~pollock.errors.LoadError`.  Loaded forms are returned as-is.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Protocol, Tuple, runtime_checkable

from pollock import ast as A
from pollock import errors
from pollock.config import PollockConfig
from pollock.errors import LoadError
from pollock.parser import parse_declaration_sequence
from pollock.sexp import from_sexp

logger = logging.getLogger(__name__)

__all__ = ["TreeLoader", "SourceTreeLoader", "DumpTreeLoader"]


@runtime_checkable
class TreeLoader(Protocol):
    """Anything that can produce the declarations of a compilation unit."""

    def load_declarations(self, unit_id: str) -> Tuple[A.Form, ...]:
        ...


class _FileTreeLoader:
    suffix_attr = "source_suffix"

    def __init__(self, config: Optional[PollockConfig] = None) -> None:
        self.config = config or PollockConfig()

    def locate(self, unit_id: str) -> Path:
        """First ``<unit_id><suffix>`` on the search path."""
        filename = unit_id + getattr(self.config, self.suffix_attr)
        for directory in self.config.search_path:
            candidate = Path(directory) / filename
            if candidate.is_file():
                return candidate
        raise LoadError(
            unit_id,
            f"{filename} not found in {len(self.config.search_path)} search director(ies)",
            errors.UNIT_NOT_FOUND,
        )

    def _read(self, unit_id: str) -> Tuple[Path, str]:
        path = self.locate(unit_id)
        try:
            text = path.read_text(encoding=self.config.encoding)
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadError(unit_id, str(exc), errors.UNREADABLE_UNIT) from exc
        logger.info("loading %s from %s", unit_id, path)
        return path, text


class SourceTreeLoader(_FileTreeLoader):
    """Parses Erlang source; lexical and syntax errors propagate unchanged."""

    suffix_attr = "source_suffix"

    def load_declarations(self, unit_id: str) -> Tuple[A.Form, ...]:
        _, text = self._read(unit_id)
        return parse_declaration_sequence(text)


class DumpTreeLoader(_FileTreeLoader):
    suffix_attr = "dump_suffix"

    def load_declarations(self, unit_id: str) -> Tuple[A.Form, ...]:
        path, text = self._read(unit_id)
        try:
            tree = from_sexp(text)
        except (ValueError, TypeError) as exc:
            raise LoadError(unit_id, f"{path}: {exc}", errors.UNREADABLE_UNIT) from exc
        if not isinstance(tree, tuple):
            tree = (tree,)
        return tree
