from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional


def read_text(path: Path, encoding: str = "utf-8") -> str:
    return path.read_text(encoding=encoding)


@dataclass(frozen=True)
class ParseOptions:
    """Settings for one parse invocation.

    indent_unit: spaces per nesting level; None takes it from the first
        indented statement of each file.
    base_dir: directory `load` paths are resolved against when the script
        being parsed has no path of its own.
    read_file: reads a script given its absolute path; swap it to parse from
        something other than the local filesystem.
    """

    indent_unit: Optional[int] = None
    base_dir: Optional[Path] = None
    read_file: Callable[[Path, str], str] = read_text
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        if self.indent_unit is not None and self.indent_unit < 1:
            raise ValueError(f"indent_unit must be positive, got {self.indent_unit}")
