"""
Recursive Descent Parser for scenario script expressions

Structure:
- Lexer: Token stream from the argument text of one statement
- Parser: Recursive descent, one method per precedence level
- AST: lark Trees; every node's meta is a Span holding the verbatim source
  text so the external evaluator receives the expression exactly as written
"""

from typing import List, Optional

from lark import Token

from .errors import ParseError, ScriptError, UnbalancedParens, UnexpectedToken
from .lexer_rd import tokenize
from .token_types import COMPARE_OPS, TT, Tok
from .tree import ExprTree, Span

AUTO_LITERAL = "'auto'"

# ============================================================================
# Parser
# ============================================================================

class Parser:
    """
    Recursive descent parser for expressions.

    Expression precedence (lowest to highest):
    1. compare (==, !=, <, <=, >, >=), top level of `expect` only
    2. concat (~)
    3. postfix (.method(args), repeatable)
    4. primary (literals, identifiers, calls, parens)
    """

    def __init__(self, tokens: List[Tok], source: str, line: int = 1, column: int = 1, allow_compare: bool = False):
        self.tokens = tokens
        self.source = source
        self.line = line
        self.base_column = column
        self.allow_compare = allow_compare
        self.pos = 0
        self.current = tokens[0] if tokens else Tok(TT.EOF, None, line, column)
        self.last_end = 0

    # ========================================================================
    # Token Navigation
    # ========================================================================

    def peek(self, offset: int = 0) -> Tok:
        """Look ahead at token"""
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def advance(self) -> Tok:
        """Consume current token and move to next"""
        prev = self.current
        self.last_end = prev.end
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        self.current = self.tokens[self.pos]
        return prev

    def check(self, *types: TT) -> bool:
        """Check if current token matches any of the given types"""
        return self.current.type in types

    def match(self, *types: TT) -> bool:
        """Check and consume if current token matches"""
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, token_type: TT, message: Optional[str] = None) -> Tok:
        """Consume token of expected type or raise error"""
        if not self.check(token_type):
            msg = message or f"Expected {token_type.name}, got {self.current.type.name}"
            raise self.error(msg)
        return self.advance()

    def error(self, message: str, tok: Optional[Tok] = None) -> ParseError:
        tok = tok or self.current
        return UnexpectedToken(message, tok.line, tok.column)

    def unexpected(self) -> ParseError:
        """Pick the most specific error for the current token"""
        tok = self.current
        if tok.type in COMPARE_OPS:
            return ParseError(
                f"Comparison '{tok.value}' is only allowed at the top of an expect statement",
                tok.line, tok.column,
            )
        if tok.type == TT.RPAR:
            return UnbalancedParens("Unmatched ')'", tok.line, tok.column)
        if tok.type == TT.EOF:
            return UnexpectedToken("Unexpected end of expression", tok.line, tok.column)
        return UnexpectedToken(f"Unexpected token {tok.value!r}", tok.line, tok.column)

    # ========================================================================
    # Node construction
    # ========================================================================

    def span(self, start: int) -> Span:
        return Span(
            self.source[start:self.last_end],
            self.line,
            self.base_column + start,
            start,
            self.last_end,
        )

    def node(self, label: str, children: list, start: int) -> ExprTree:
        return ExprTree(label, children, meta=self.span(start))

    def token(self, tok: Tok, type_name: Optional[str] = None) -> Token:
        return Token(
            type_name or tok.type.name,
            tok.value,
            start_pos=tok.start,
            line=tok.line,
            column=tok.column,
            end_line=tok.line,
            end_column=tok.column + (tok.end - tok.start),
            end_pos=tok.end,
        )

    # ========================================================================
    # Top-Level Parsing
    # ========================================================================

    def parse(self) -> ExprTree:
        """Parse a whole argument, rejecting trailing tokens"""
        if self.check(TT.EOF):
            raise UnexpectedToken("Expected expression", self.current.line, self.current.column)

        if self.allow_compare:
            expr = self.parse_compare_expr()
        else:
            expr = self.parse_concat_expr()

        if not self.check(TT.EOF):
            raise self.unexpected()
        return expr

    # ========================================================================
    # Expressions
    # ========================================================================

    def parse_compare_expr(self) -> ExprTree:
        start = self.current.start
        left = self.parse_concat_expr()

        if not self.check(*COMPARE_OPS):
            return left

        op = self.advance()
        right = self.parse_concat_expr()

        if self.check(*COMPARE_OPS):
            raise UnexpectedToken("Comparisons cannot be chained", self.current.line, self.current.column)

        return self.node('compare', [left, self.token(op), right], start)

    def parse_concat_expr(self) -> ExprTree:
        start = self.current.start
        left = self.parse_postfix_expr()

        while self.match(TT.TILDE):
            right = self.parse_postfix_expr()
            left = self.node('concat', [left, right], start)

        return left

    def parse_postfix_expr(self) -> ExprTree:
        start = self.current.start
        base = self.parse_primary_expr()

        methods = []
        while self.match(TT.DOT):
            name_tok = self.expect(TT.IDENT, "Expected method name after '.'")
            lpar = self.expect(TT.LPAR, f"Expected '(' after method name '{name_tok.value}'")
            args = self.parse_arg_list(lpar, allow_current=True)
            methods.append(self.node('method', [self.token(name_tok), args], name_tok.start))

        # Only wrap in a chain if there are method calls
        if not methods:
            return base

        return self.node('chain', [base] + methods, start)

    def parse_primary_expr(self) -> ExprTree:
        """
        Parse primary expressions:
        - Literals (numbers, strings, true, false, 'auto')
        - Identifiers and function calls
        - Parenthesized expressions
        """
        start = self.current.start

        if self.check(TT.NUMBER):
            tok = self.advance()
            return self.node('number', [self.token(tok)], start)

        if self.check(TT.STRING):
            tok = self.advance()
            label = 'auto' if tok.value == AUTO_LITERAL else 'string'
            return self.node(label, [self.token(tok)], start)

        if self.check(TT.TRUE, TT.FALSE):
            tok = self.advance()
            return self.node('bool', [self.token(tok)], start)

        if self.check(TT.IDENT):
            tok = self.advance()
            # A call only when '(' follows the name directly
            if self.check(TT.LPAR) and self.current.start == tok.end:
                lpar = self.advance()
                args = self.parse_arg_list(lpar, allow_current=False)
                return self.node('call', [self.token(tok), args], start)
            return self.node('var', [self.token(tok)], start)

        if self.check(TT.LPAR):
            lpar = self.advance()
            expr = self.parse_concat_expr()
            if self.check(TT.EOF):
                raise UnbalancedParens("Unclosed '('", lpar.line, lpar.column)
            if not self.match(TT.RPAR):
                raise self.unexpected()
            # keep the parentheses in the verbatim text
            return ExprTree(expr.data, expr.children, meta=self.span(start))

        if self.check(TT.AT):
            raise UnexpectedToken(
                "'@' is only valid as an argument of a chained call",
                self.current.line, self.current.column,
            )

        raise self.unexpected()

    def parse_arg_list(self, lpar: Tok, allow_current: bool) -> ExprTree:
        """Parse comma separated arguments; the '(' is already consumed"""
        start = lpar.start
        args = []

        if self.match(TT.RPAR):
            return self.node('args', args, start)

        while True:
            if allow_current and self.check(TT.AT):
                at_start = self.current.start
                at = self.advance()
                args.append(self.node('current', [self.token(at)], at_start))
            else:
                args.append(self.parse_concat_expr())

            if self.match(TT.COMMA):
                continue
            if self.match(TT.RPAR):
                break
            if self.check(TT.EOF):
                raise UnbalancedParens("Unclosed '('", lpar.line, lpar.column)
            raise self.unexpected()

        return self.node('args', args, start)

# ============================================================================
# Entry points
# ============================================================================

def parse_expression(source: str, line: int = 1, column: int = 1, allow_compare: bool = False) -> ExprTree:
    """
    Parse the argument text of one statement into an expression tree.

    Args:
        source: Argument text, already stripped
        line: Script line of the statement
        column: Script column of the first character of ``source``
        allow_compare: Accept a comparison at the top (``expect`` statements)
    """
    tokens = tokenize(source, line=line, column=column)
    parser = Parser(tokens, source, line=line, column=column, allow_compare=allow_compare)
    return parser.parse()


if __name__ == '__main__':
    import sys

    try:
        tree = parse_expression(' '.join(sys.argv[1:]) or sys.stdin.read().strip(), allow_compare=True)
        print(tree.pretty())
    except ScriptError as e:
        print(f"Parse error: {e}", file=sys.stderr)
        sys.exit(1)
