"""
Block scanner for scenario scripts

Turns raw script text into a flat, ordered list of statement lines tagged with
their nesting depth. Comments and blank lines are dropped before indentation
is looked at, so a comment may sit at any indentation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import InconsistentIndent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanLine:
    """One statement: nesting depth, text without indentation, position"""

    depth: int
    text: str
    line: int
    column: int


class Scanner:
    """
    Indentation model:
    - The indentation unit is fixed (configured) or taken from the first
      indented statement
    - Every indent is a whole number of units
    - A statement is at most one level deeper than the one before it
    - Tabs are rejected
    """

    def __init__(self, source: str, indent_unit: Optional[int] = None):
        self.source = source
        self.indent_unit = indent_unit
        self.lines: List[ScanLine] = []
        self.prev_depth = 0

    def scan(self) -> List[ScanLine]:
        for lineno, raw in enumerate(self.source.splitlines(), start=1):
            stripped = raw.strip()

            # Blank lines and full-line comments
            if not stripped or stripped.startswith('#'):
                continue

            indent_str = raw[:len(raw) - len(raw.lstrip(' \t'))]
            depth = self.depth_of(indent_str, lineno)
            self.lines.append(ScanLine(depth, stripped, lineno, len(indent_str) + 1))
            self.prev_depth = depth

        logger.debug("scanned %d statements", len(self.lines))
        return self.lines

    def depth_of(self, indent_str: str, lineno: int) -> int:
        if '\t' in indent_str:
            raise InconsistentIndent("Tabs are not allowed in indentation", lineno, indent_str.index('\t') + 1)

        width = len(indent_str)
        if width == 0:
            return 0

        if self.indent_unit is None:
            self.indent_unit = width

        if width % self.indent_unit:
            raise InconsistentIndent(
                f"Indentation of {width} spaces is not a multiple of {self.indent_unit}",
                lineno, width + 1,
            )

        depth = width // self.indent_unit
        if depth > self.prev_depth + 1:
            raise InconsistentIndent(
                "Indentation is deeper than the enclosing block allows",
                lineno, width + 1,
            )
        return depth


def scan(source: str, indent_unit: Optional[int] = None) -> List[ScanLine]:
    """Convenience function to scan script text"""
    return Scanner(source, indent_unit=indent_unit).scan()
