"""pollock/config.py – settings shared by the loaders and the CLI."""

from __future__ import annotations

import argparse
import codecs
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

__all__ = ["PollockConfig"]


@dataclass
class PollockConfig:
    """Tuning knobs for snippet parsing and compilation-unit loading."""
    start_line: int = 1
    search_path: Tuple[Path, ...] = field(default_factory=lambda: (Path("."),))
    source_suffix: str = ".erl"
    dump_suffix: str = ".forms"
    encoding: str = "utf-8"

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.start_line < 1:
            warnings.append("start_line must be positive")
        if not self.search_path:
            warnings.append("search_path is empty; no unit can be loaded")
        for directory in self.search_path:
            if not Path(directory).is_dir():
                warnings.append(f"search_path entry is not a directory: {directory}")
        for name in ("source_suffix", "dump_suffix"):
            if not getattr(self, name).startswith("."):
                warnings.append(f"{name} should start with '.'")
        try:
            codecs.lookup(self.encoding)
        except LookupError:
            warnings.append(f"unknown encoding: {self.encoding}")
        return warnings

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "PollockConfig":
        """Build a config from parsed CLI arguments, keeping defaults for
        anything the subcommand does not define."""
        config = cls()
        if getattr(args, "start_line", None) is not None:
            config.start_line = args.start_line
        if getattr(args, "path", None):
            config.search_path = tuple(Path(p) for p in args.path)
        if getattr(args, "encoding", None):
            config.encoding = args.encoding
        return config
