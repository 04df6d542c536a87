"""
Token Types for scenario script expressions

Shared between lexer and parser to avoid circular dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - mirrors expression grammar terminals"""

    # Literals
    NUMBER = auto()
    STRING = auto()
    IDENT = auto()
    TRUE = auto()
    FALSE = auto()

    # Comparison
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()

    # Concatenation
    TILDE = auto()  # ~

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    DOT = auto()
    COMMA = auto()
    AT = auto()  # current value inside chained calls

    # Special
    EOF = auto()


COMPARE_OPS = frozenset({TT.EQ, TT.NEQ, TT.LT, TT.LTE, TT.GT, TT.GTE})


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int = 0
    column: int = 0
    start: int = 0
    end: int = 0

    def __repr__(self):
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"
