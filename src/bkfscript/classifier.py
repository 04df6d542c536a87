"""
Statement classifier

Splits a scanned line into its keyword and argument and gives the argument
the form that keyword takes: a literal label, a quoted path, a name plus an
expression, or an expression.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from lark import Tree

from .errors import MissingValue, UnexpectedToken, UnknownStatement
from .lexer_rd import tokenize
from .parser_rd import parse_expression
from .scanner import ScanLine
from .token_types import TT

# Keywords whose argument is taken verbatim
LABEL_KEYWORDS = frozenset({"scenario", "group", "include"})
# NAME EXPR
BINDING_KEYWORDS = frozenset({"set", "param"})
# No argument at all
BARE_KEYWORDS = frozenset({"follow", "reload"})
# Optional argument, `true` when omitted
FLAG_KEYWORDS = frozenset({"follow_redirects", "json"})
STEP_KEYWORDS = frozenset({"visit", "click", "submit", "follow", "reload"})
EXPR_KEYWORDS = frozenset({
    "endpoint", "name", "auth", "header", "blackfire", "warmup", "samples",
    "method", "body", "wait", "expect", "visit", "click", "submit",
})

KEYWORDS = LABEL_KEYWORDS | BINDING_KEYWORDS | BARE_KEYWORDS | FLAG_KEYWORDS | EXPR_KEYWORDS | {"load"}

_STATEMENT_RE = re.compile(r'(?P<kw>\S+)(?:\s+(?P<arg>.*))?$')
_NAME_RE = re.compile(r'(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:\s+(?P<rest>.*))?$')


@dataclass
class Statement:
    keyword: str
    argument: str
    depth: int
    line: int
    column: int
    label: Optional[str] = None
    name: Optional[str] = None
    expr: Optional[Tree] = None

    @property
    def opens_block(self) -> bool:
        return self.keyword in ("scenario", "group") or self.keyword in STEP_KEYWORDS


def classify(scan_line: ScanLine) -> Statement:
    """Classify one scanned line, parsing its expression if it has one"""
    m = _STATEMENT_RE.match(scan_line.text)
    keyword = m.group('kw')
    argument = m.group('arg') or ''
    arg_column = scan_line.column + (m.start('arg') if m.group('arg') else len(scan_line.text))

    if keyword not in KEYWORDS:
        raise UnknownStatement(keyword, scan_line.line, scan_line.column)

    stmt = Statement(keyword, argument, scan_line.depth, scan_line.line, scan_line.column)

    def missing(what: str) -> MissingValue:
        return MissingValue(f"'{keyword}' requires {what}", scan_line.line, arg_column)

    if keyword in LABEL_KEYWORDS:
        if not argument and keyword != "scenario":
            raise missing("a name")
        stmt.label = argument
        return stmt

    if keyword == "load":
        if not argument:
            raise missing("a quoted path")
        stmt.label = _quoted_path(argument, scan_line.line, arg_column)
        return stmt

    if keyword in BARE_KEYWORDS:
        if argument:
            raise UnexpectedToken(f"'{keyword}' takes no argument", scan_line.line, arg_column)
        return stmt

    if keyword in BINDING_KEYWORDS:
        nm = _NAME_RE.match(argument)
        if not argument:
            raise missing("a name and a value")
        if nm is None:
            raise UnexpectedToken(f"'{keyword}' expects a name, got {argument.split()[0]!r}", scan_line.line, arg_column)
        if not nm.group('rest'):
            raise missing(f"a value for '{nm.group('name')}'")
        stmt.name = nm.group('name')
        stmt.expr = parse_expression(nm.group('rest'), scan_line.line, arg_column + nm.start('rest'))
        return stmt

    if keyword in FLAG_KEYWORDS and not argument:
        return stmt

    if not argument:
        raise missing("a value")

    stmt.expr = parse_expression(argument, scan_line.line, arg_column, allow_compare=(keyword == "expect"))
    return stmt


def _quoted_path(argument: str, line: int, column: int) -> str:
    tokens = tokenize(argument, line=line, column=column)
    if tokens[0].type != TT.STRING:
        raise UnexpectedToken("'load' expects a quoted path", line, column)
    if tokens[1].type != TT.EOF:
        extra = tokens[1]
        raise UnexpectedToken(f"Unexpected token {extra.value!r} after load path", extra.line, extra.column)
    return tokens[0].value[1:-1]
