"""
Error taxonomy for scenario scripts.

Every error is fatal to the enclosing parse. Errors carry the file path,
line and column where they were detected, plus the chain of ``load``
statements they travelled through.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Location:
    path: Optional[str]
    line: int
    column: int
    via: str = "loaded from"

    def __str__(self) -> str:
        return f"{self.path or '<string>'}:{self.line}:{self.column}"


class ScriptError(Exception):
    """Base class for every scenario script diagnostic."""

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        path: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.path = path
        self.frames: List[Location] = []

    def locate(self, path: Optional[str]) -> ScriptError:
        """Attach the file path if the error does not have one yet."""
        if self.path is None:
            self.path = path
        return self

    def add_frame(self, origin: Location) -> ScriptError:
        """Record the load or include statement the error travelled through."""
        self.frames.append(origin)
        return self

    def __str__(self) -> str:
        msg = self.message

        if self.line is not None:
            where = f"{self.path or '<string>'}:{self.line}"
            if self.column is not None:
                where += f":{self.column}"
            msg = f"{where}: {msg}"
        elif self.path is not None:
            msg = f"{self.path}: {msg}"

        for frame in self.frames:
            msg += f"\n  {frame.via} {frame}"

        return msg


# ---------- Lexical ----------

class LexError(ScriptError):
    """Lexical analysis error"""
    pass


class InconsistentIndent(LexError):
    pass


class UnterminatedString(LexError):
    pass


# ---------- Syntax ----------

class ParseError(ScriptError):
    """Parse error with position info"""
    pass


class UnexpectedToken(ParseError):
    pass


class UnbalancedParens(ParseError):
    pass


class MissingValue(ParseError):
    pass


class UnknownStatement(ParseError):
    def __init__(self, keyword: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(f"Unknown statement '{keyword}'", line, column)
        self.keyword = keyword


# ---------- References ----------

class ScriptReferenceError(ScriptError):
    pass


class UnknownGroup(ScriptReferenceError):
    def __init__(self, name: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(f"Unknown group '{name}'", line, column)
        self.name = name


class UnresolvedLoad(ScriptReferenceError):
    def __init__(
        self,
        target: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        reason: str = "file not found",
    ):
        super().__init__(f"Cannot load '{target}': {reason}", line, column)
        self.target = target
        self.reason = reason


# ---------- Cycles ----------

class CycleError(ScriptError):
    def __init__(self, message: str, chain: List[str], line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message, line, column)
        self.chain = chain


class IncludeCycle(CycleError):
    def __init__(self, chain: List[str], line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(f"Include cycle: {' -> '.join(chain)}", chain, line, column)


class LoadCycle(CycleError):
    def __init__(self, chain: List[str], line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(f"Load cycle: {' -> '.join(chain)}", chain, line, column)
