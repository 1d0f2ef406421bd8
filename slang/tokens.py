"""
S-Language Scanner
==================

Tokenization of single source lines.

A source line is scanned into an optional leading label (``[A1]``) and a
flat token sequence. Whitespace between tokens is not significant, so
``x1<-x1+1`` and ``x1 <- x1 + 1`` scan identically. Comments run from
``#`` to the end of the line.

Besides ordinary words, numerals and operators the scanner knows the three
macro template forms:

    {name}   - placeholder (capture slot in a pattern)
    $name    - automatic variable marker
    %name    - automatic label marker
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, List, Optional

from .errors import SyntaxError, SourceLocation


COMMENT_CHAR = '#'


class TokenType(Enum):
    """Token types for the S language."""

    # Operands
    IDENTIFIER = auto()     # x1, y, z3, A1, goto, nop, ...
    NUMBER = auto()         # 0, 1, 42

    # Macro template forms
    PLACEHOLDER = auto()    # {name}
    AUTO_VAR = auto()       # $name
    AUTO_LABEL = auto()     # %name

    # Operators
    ASSIGN = auto()         # <-
    NE = auto()             # !=
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /
    LT = auto()             # <
    GT = auto()             # >
    EQ = auto()             # =

    # Delimiters
    LBRACKET = auto()       # [
    RBRACKET = auto()       # ]


OPERAND_TYPES = (TokenType.IDENTIFIER, TokenType.NUMBER)

TWO_CHAR_OPS = {
    '<-': TokenType.ASSIGN,
    '!=': TokenType.NE,
}

SINGLE_CHAR_OPS = {
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '<': TokenType.LT,
    '>': TokenType.GT,
    '=': TokenType.EQ,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
}

SIGILS = {
    '$': TokenType.AUTO_VAR,
    '%': TokenType.AUTO_LABEL,
}


@dataclass(frozen=True)
class Token:
    """A lexical token.

    Equality ignores the column so that tokens produced by substitution
    compare equal to tokens scanned from text.
    """
    type: TokenType
    value: str
    column: int = field(default=0, compare=False)

    @property
    def is_operand(self) -> bool:
        return self.type in OPERAND_TYPES

    def __str__(self) -> str:
        if self.type == TokenType.PLACEHOLDER:
            return f"{{{self.value}}}"
        if self.type == TokenType.AUTO_VAR:
            return f"${self.value}"
        if self.type == TokenType.AUTO_LABEL:
            return f"%{self.value}"
        return self.value

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r})"


def _is_word_char(ch: str) -> bool:
    return ch == '_' or ch.isalnum()


class Lexer:
    """Tokenizer for one S-language line."""

    __slots__ = ('source', 'source_len', 'location', 'pos')

    def __init__(self, source: str, location: Optional[SourceLocation] = None):
        self.source = source
        self.source_len = len(source)
        self.location = location
        self.pos = 0

    def peek(self, offset: int = 0) -> str:
        """Peek at character at current position + offset."""
        idx = self.pos + offset
        if idx >= self.source_len:
            return '\0'
        return self.source[idx]

    def skip_whitespace(self):
        source = self.source
        pos = self.pos
        while pos < self.source_len and source[pos].isspace():
            pos += 1
        self.pos = pos

    def read_word(self) -> str:
        """Read a run of word characters and return it."""
        start = self.pos
        while self.pos < self.source_len and _is_word_char(self.source[self.pos]):
            self.pos += 1
        return self.source[start:self.pos]

    def error(self, message: str) -> SyntaxError:
        return SyntaxError(f"{message} (column {self.pos + 1})", self.location)

    def next_token(self) -> Optional[Token]:
        """Get the next token, or None at end of line."""
        self.skip_whitespace()

        ch = self.peek()
        start = self.pos + 1

        if ch == '\0' or ch == COMMENT_CHAR:
            self.pos = self.source_len
            return None

        if ch.isdigit():
            value = self.read_word()
            if not value.isdigit():
                raise self.error(f"Malformed numeral: {value!r}")
            return Token(TokenType.NUMBER, value, start)

        if _is_word_char(ch):
            return Token(TokenType.IDENTIFIER, self.read_word(), start)

        if ch in SIGILS:
            self.pos += 1
            name = self.read_word()
            if not name:
                raise self.error(f"Expected a name after {ch!r}")
            return Token(SIGILS[ch], name, start)

        if ch == '{':
            self.pos += 1
            name = self.read_word()
            if not name or self.peek() != '}':
                raise self.error("Malformed placeholder, expected {name}")
            self.pos += 1
            return Token(TokenType.PLACEHOLDER, name, start)

        two_char = ch + self.peek(1)
        if two_char in TWO_CHAR_OPS:
            self.pos += 2
            return Token(TWO_CHAR_OPS[two_char], two_char, start)

        if ch in SINGLE_CHAR_OPS:
            self.pos += 1
            return Token(SINGLE_CHAR_OPS[ch], ch, start)

        raise self.error(f"Unexpected character: {ch!r}")

    def tokenize(self) -> List[Token]:
        """Tokenize the entire line."""
        return list(self)

    def __iter__(self) -> Iterator[Token]:
        while True:
            tok = self.next_token()
            if tok is None:
                break
            yield tok


@dataclass
class ScannedLine:
    """A line split into its optional label token and instruction tokens."""
    label: Optional[Token]
    tokens: List[Token]
    location: Optional[SourceLocation] = None

    @property
    def is_empty(self) -> bool:
        return self.label is None and not self.tokens

    def text(self) -> str:
        """Render the tokens back as canonical source text."""
        body = " ".join(str(tok) for tok in self.tokens)
        if self.label is not None:
            return f"[{self.label}] {body}".rstrip()
        return body

    def __str__(self) -> str:
        return self.text()


def scan_line(source: str, location: Optional[SourceLocation] = None) -> ScannedLine:
    """Scan one raw source line into label and tokens."""
    tokens = Lexer(source, location).tokenize()
    label = None

    if tokens and tokens[0].type == TokenType.LBRACKET:
        if (len(tokens) < 3 or tokens[2].type != TokenType.RBRACKET
                or tokens[1].type not in (TokenType.IDENTIFIER,
                                          TokenType.AUTO_LABEL,
                                          TokenType.PLACEHOLDER)):
            raise SyntaxError("Malformed label, expected [NAME]", location)
        label = tokens[1]
        tokens = tokens[3:]

    for tok in tokens:
        if tok.type in (TokenType.LBRACKET, TokenType.RBRACKET):
            raise SyntaxError("Labels are only allowed at the start of a line", location)

    return ScannedLine(label, tokens, location)
