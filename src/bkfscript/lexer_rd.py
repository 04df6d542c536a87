"""
Lexer for scenario script expressions

Tokenizes the argument text of a single statement into a stream of tokens.

Features:
- Single-pass tokenization
- Position tracking (line, column, offsets into the argument text)
- String literals kept verbatim, quotes and escape sequences included
"""

from typing import List

from .errors import LexError, UnterminatedString
from .token_types import TT, Tok

# ============================================================================
# Lexer Implementation
# ============================================================================

class Lexer:
    """
    Expression lexer.

    Statements are one physical line each, so the lexer never sees a newline
    and needs no indentation tracking. ``line`` and ``column`` give the
    position of the first character of the argument text in the script.
    """

    # Keyword mapping
    KEYWORDS = {
        'true': TT.TRUE,
        'false': TT.FALSE,
    }

    # Operator mapping: longest matches first to handle prefixes correctly
    OPERATORS = [
        # Two-character operators
        ('==', TT.EQ),
        ('!=', TT.NEQ),
        ('<=', TT.LTE),
        ('>=', TT.GTE),

        # Single-character operators
        ('<', TT.LT),
        ('>', TT.GT),
        ('~', TT.TILDE),
        ('(', TT.LPAR),
        (')', TT.RPAR),
        ('.', TT.DOT),
        (',', TT.COMMA),
        ('@', TT.AT),
    ]

    def __init__(self, source: str, line: int = 1, column: int = 1):
        self.source = source
        self.pos = 0
        self.line = line
        self.base_column = column
        self.tokens: List[Tok] = []
        self.token_start = 0

    @property
    def column(self) -> int:
        return self.base_column + self.pos

    # ========================================================================
    # Main Tokenization
    # ========================================================================

    def tokenize(self) -> List[Tok]:
        """Tokenize entire source, return token list"""
        while self.pos < len(self.source):
            self.scan_token()

        self.token_start = self.pos
        self.emit(TT.EOF, None)
        return self.tokens

    def scan_token(self):
        """Scan next token"""
        # Skip whitespace
        if self.skip_whitespace():
            return

        self.token_start = self.pos

        # String literals
        if self.peek() in ('"', "'"):
            self.scan_string()
            return

        # Numbers, including a directly attached minus sign
        if self.peek().isdigit() or (self.peek() == '-' and self.peek(1).isdigit()):
            self.scan_number()
            return

        # Identifiers and keywords
        if self.peek().isalpha() or self.peek() == '_':
            self.scan_identifier()
            return

        # Operators and punctuation
        self.scan_operator()

    # ========================================================================
    # Token Scanners
    # ========================================================================

    def scan_string(self):
        """Scan string literal: "..." or '...'"""
        start_column = self.column
        quote = self.advance()
        value = quote  # Keep opening quote

        while self.pos < len(self.source) and self.peek() != quote:
            if self.peek() == '\\':
                # Keep escape sequence as-is
                value += self.advance()
                if self.pos < len(self.source):
                    value += self.advance()
            else:
                value += self.advance()

        if self.pos >= len(self.source):
            raise UnterminatedString("Unterminated string", self.line, start_column)

        value += self.advance()  # Closing quote
        self.emit(TT.STRING, value)

    def scan_number(self):
        """Scan number literal"""
        start_column = self.column
        value = ''

        if self.peek() == '-':
            value += self.advance()

        # Integer part
        while self.peek().isdigit():
            value += self.advance()

        # Decimal part
        if self.peek() == '.' and self.peek(1).isdigit():
            value += self.advance()  # .
            while self.peek().isdigit():
                value += self.advance()

        if self.peek().isalpha() or self.peek() == '_':
            raise LexError("Invalid number suffix", self.line, start_column)

        # Keep as string, the evaluator decides the numeric type
        self.emit(TT.NUMBER, value)

    def scan_identifier(self):
        """Scan identifier or keyword"""
        value = ''

        while self.peek().isalnum() or self.peek() == '_':
            value += self.advance()

        # Check if keyword
        token_type = self.KEYWORDS.get(value, TT.IDENT)
        self.emit(token_type, value)

    def scan_operator(self):
        """Scan operators and punctuation"""
        for op_str, op_type in self.OPERATORS:
            if self.source.startswith(op_str, self.pos):
                self.advance(len(op_str))
                self.emit(op_type, op_str)
                return

        ch = self.peek()
        raise LexError(f"Unexpected character '{ch}'", self.line, self.column)

    # ========================================================================
    # Utilities
    # ========================================================================

    def peek(self, offset: int = 0) -> str:
        """Look ahead at character"""
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return '\0'

    def advance(self, n: int = 1) -> str:
        """Consume n characters and return them as a string"""
        if n < 0:
            raise ValueError(f"advance() requires n >= 0, got {n}")
        result = ''
        for _ in range(n):
            ch = self.source[self.pos] if self.pos < len(self.source) else '\0'
            result += ch
            self.pos += 1
        return result

    def skip_whitespace(self) -> bool:
        """Skip whitespace, return True if any skipped"""
        skipped = False
        while self.peek() in (' ', '\t'):
            self.advance()
            skipped = True
        return skipped

    def emit(self, token_type: TT, value):
        """Emit a token spanning token_start..pos"""
        tok = Tok(
            type=token_type,
            value=value,
            line=self.line,
            column=self.base_column + self.token_start,
            start=self.token_start,
            end=self.pos,
        )
        self.tokens.append(tok)


def tokenize(source: str, line: int = 1, column: int = 1) -> List[Tok]:
    """Convenience function to tokenize an expression"""
    lexer = Lexer(source, line=line, column=column)
    return lexer.tokenize()
