from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import pytest

from bkfscript.errors import LexError, UnterminatedString
from bkfscript.lexer_rd import TT, tokenize


@dataclass(frozen=True)
class Case:
    """Unified lexer case payload."""

    name: str
    source: str
    expected: Optional[Tuple[Tuple[TT, object], ...]] = None
    expected_types: Optional[Tuple[TT, ...]] = None
    exc: Optional[type[Exception]] = None
    msg: Optional[str] = None
    err_line: Optional[int] = None
    err_col: Optional[int] = None
    column: int = 1


BASIC_TOKEN_CASES: List[Case] = [
    Case("number-int", "123", expected=((TT.NUMBER, "123"),)),
    Case("number-float", "3.14", expected=((TT.NUMBER, "3.14"),)),
    Case("number-negative", "-5", expected=((TT.NUMBER, "-5"),)),
    Case("ident-single", "env", expected=((TT.IDENT, "env"),)),
    Case("ident-snake", "latest_post_title", expected=((TT.IDENT, "latest_post_title"),)),
    Case("string-double", '"prod"', expected=((TT.STRING, '"prod"'),)),
    Case("string-single", "'http://toto.com'", expected=((TT.STRING, "'http://toto.com'"),)),
    Case("string-auto", "'auto'", expected=((TT.STRING, "'auto'"),)),
    Case("string-hash", '"#main .post"', expected=((TT.STRING, '"#main .post"'),)),
    Case("bool-true", "true", expected=((TT.TRUE, "true"),)),
    Case("bool-false", "false", expected=((TT.FALSE, "false"),)),
]

OPERATOR_CASES: List[Case] = [
    Case("eq", "==", expected_types=(TT.EQ,)),
    Case("neq", "!=", expected_types=(TT.NEQ,)),
    Case("lte", "<=", expected_types=(TT.LTE,)),
    Case("gte", ">=", expected_types=(TT.GTE,)),
    Case("lt", "<", expected_types=(TT.LT,)),
    Case("gt", ">", expected_types=(TT.GT,)),
    Case("tilde", "~", expected_types=(TT.TILDE,)),
    Case("dot", ".", expected_types=(TT.DOT,)),
    Case("comma", ",", expected_types=(TT.COMMA,)),
    Case("at", "@", expected_types=(TT.AT,)),
    Case("parens", "()", expected_types=(TT.LPAR, TT.RPAR)),
]

CONSTRUCT_CASES: List[Case] = [
    Case("call", "url('/blog/')", expected_types=(TT.IDENT, TT.LPAR, TT.STRING, TT.RPAR)),
    Case(
        "chain",
        'css(".post").first()',
        expected_types=(TT.IDENT, TT.LPAR, TT.STRING, TT.RPAR, TT.DOT, TT.IDENT, TT.LPAR, TT.RPAR),
    ),
    Case("concat", "a ~ ':' ~ b", expected_types=(TT.IDENT, TT.TILDE, TT.STRING, TT.TILDE, TT.IDENT)),
    Case("compare", "status_code() == 200", expected_types=(TT.IDENT, TT.LPAR, TT.RPAR, TT.EQ, TT.NUMBER)),
    Case("current", "keys(@)", expected_types=(TT.IDENT, TT.LPAR, TT.AT, TT.RPAR)),
]

STRING_ESCAPE_CASES: List[Case] = [
    Case("newline", r'"hello\nworld"', expected=((TT.STRING, r'"hello\nworld"'),)),
    Case("quote", r'"quote\"here"', expected=((TT.STRING, r'"quote\"here"'),)),
    Case("single-quote", r"'it\'s'", expected=((TT.STRING, r"'it\'s'"),)),
    Case("backslash", r'"backslash\\"', expected=((TT.STRING, r'"backslash\\"'),)),
    Case("other-quote", """'say "hi"'""", expected=((TT.STRING, """'say "hi"'"""),)),
]

LEX_ERROR_CASES: List[Case] = [
    Case(
        "unterminated-string",
        '"abc',
        exc=UnterminatedString,
        msg="Unterminated string",
        err_line=1,
        err_col=1,
    ),
    Case(
        "unterminated-escaped-quote",
        r'"abc\"',
        exc=UnterminatedString,
        msg="Unterminated string",
        err_col=1,
    ),
    # Error with col offset inside the statement
    Case(
        "unterminated-string-offset",
        'x ~ "abc',
        exc=UnterminatedString,
        msg="Unterminated string",
        err_col=9,
        column=5,
    ),
    Case(
        "unexpected-char",
        "a + b",
        exc=LexError,
        msg="Unexpected character '+'",
        err_col=3,
    ),
    Case(
        "lone-minus",
        "- 1",
        exc=LexError,
        msg="Unexpected character '-'",
        err_col=1,
    ),
    Case(
        "invalid-suffix",
        "123abc",
        exc=LexError,
        msg="Invalid number suffix",
        err_col=1,
    ),
]


def _non_eof_tokens(source: str) -> List[object]:
    return [token for token in tokenize(source) if token.type != TT.EOF]


@pytest.mark.parametrize("case", BASIC_TOKEN_CASES, ids=lambda case: case.name)
def test_basic_tokens(case: Case) -> None:
    tokens = _non_eof_tokens(case.source)

    assert case.expected is not None
    assert len(tokens) == len(case.expected)
    for token, (expected_type, expected_value) in zip(tokens, case.expected):
        assert token.type == expected_type
        assert token.value == expected_value


@pytest.mark.parametrize("case", OPERATOR_CASES, ids=lambda case: case.name)
def test_operators(case: Case) -> None:
    tokens = _non_eof_tokens(case.source)
    assert case.expected_types is not None
    assert [token.type for token in tokens] == list(case.expected_types)


@pytest.mark.parametrize("case", CONSTRUCT_CASES, ids=lambda case: case.name)
def test_constructs(case: Case) -> None:
    tokens = _non_eof_tokens(case.source)
    assert case.expected_types is not None
    assert [token.type for token in tokens] == list(case.expected_types)


@pytest.mark.parametrize("case", STRING_ESCAPE_CASES, ids=lambda case: case.name)
def test_string_escapes(case: Case) -> None:
    tokens = [token for token in tokenize(case.source) if token.type == TT.STRING]
    assert case.expected is not None
    assert len(tokens) == 1
    assert tokens[0].value == case.expected[0][1]


def test_position_tracking() -> None:
    tokens = tokenize("a ~ 'b'", line=3, column=10)

    assert [(t.line, t.column) for t in tokens] == [(3, 10), (3, 12), (3, 14), (3, 17)]
    assert [(t.start, t.end) for t in tokens] == [(0, 1), (2, 3), (4, 7), (7, 7)]
    assert tokens[-1].type == TT.EOF


def test_call_name_touches_paren() -> None:
    tokens = tokenize("fake ('x')")
    ident, lpar = tokens[0], tokens[1]
    assert ident.end != lpar.start


@pytest.mark.parametrize("case", LEX_ERROR_CASES, ids=lambda case: case.name)
def test_lex_errors(case: Case) -> None:
    assert case.exc is not None
    assert case.msg is not None
    with pytest.raises(case.exc) as exc_info:
        tokenize(case.source, column=case.column)

    err = exc_info.value
    assert case.msg in str(err)

    if case.err_line is not None:
        assert (
            err.line == case.err_line
        ), f"expected line {case.err_line}, got {err.line}"
    if case.err_col is not None:
        assert (
            err.column == case.err_col
        ), f"expected col {case.err_col}, got {err.column}"
