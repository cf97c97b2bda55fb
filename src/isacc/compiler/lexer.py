"""
Lexical Segmenter
=================

Splits raw source into statements and statements into tokens.

Statements
----------
The source is first normalised: comments are blanked out and line breaks
become spaces, so every character keeps its original offset. The text is
then cut right after every ';' and every '}'. Segments holding only
whitespace or a bare ';' are dropped. Brace blocks that span several
segments are stitched back together by the lowering engine, not here.

Tokens
------
- Identifiers and keywords: A, count, while, int
- Numbers: 42, 3.14, -1 (a leading '-' is part of the literal where a
  binary operator cannot appear, e.g. right after '=' or '(')
- Native operands already in target form: $t0, $zero, $sp
- Operators: + - * / (and % & | ^, which the engine rejects)
- Comparisons: == != < > <= >=
- Punctuation: = ( ) { } [ ] ; , :

Every token carries the absolute offset of its first character in the
normalised source, or -1 when the engine synthesised it.

Example Usage
-------------
>>> from isacc.compiler.lexer import tokenize
>>> tokenize("A = B + 1;")
[Token(IDENTIFIER, 'A', 0), Token(ASSIGN, '=', 2), Token(IDENTIFIER, 'B', 4),
 Token(OPERATOR, '+', 6), Token(NUMBER, '1', 8), Token(SEMICOLON, ';', 9)]
"""

import re
import string
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, NoReturn, Optional

from isacc.errors import PatternNotFoundError, SourceLocation


# =============================================================================
# Token Types and Reserved Words
# =============================================================================

class TokenType(Enum):
    """Token categories of the source language."""

    IDENTIFIER = auto()     # names and keywords
    NUMBER = auto()         # numeric literals
    NATIVE = auto()         # $-prefixed operands in target form
    OPERATOR = auto()       # arithmetic operator symbol
    ASSIGN = auto()         # =
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    GT = auto()             # >
    LE = auto()             # <=
    GE = auto()             # >=
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    LBRACE = auto()         # {
    RBRACE = auto()         # }
    LBRACKET = auto()       # [
    RBRACKET = auto()       # ]
    SEMICOLON = auto()      # ;
    COMMA = auto()          # ,
    COLON = auto()          # :


COMPARISONS = frozenset({
    TokenType.EQ, TokenType.NE, TokenType.LT,
    TokenType.GT, TokenType.LE, TokenType.GE,
})

# Words with a fixed meaning to the lowering engine
KEYWORDS = frozenset({
    "if", "else", "while", "switch", "case", "default", "break", "goto", "return",
})

# Primitive type names carry no code-generation meaning and are skipped
TYPE_NAMES = frozenset({
    "byte", "short", "int", "long", "float", "double", "boolean", "char", "void",
})

# Arithmetic operator symbols and the primitive operation each maps to
OPERATIONS: dict[str, str] = {
    "+": "add",
    "-": "sub",
    "*": "mul",
    "/": "div",
}

_TWO_CHAR = {
    "==": TokenType.EQ,
    "!=": TokenType.NE,
    "<=": TokenType.LE,
    ">=": TokenType.GE,
}

_ONE_CHAR = {
    "=": TokenType.ASSIGN,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ":": TokenType.COLON,
}

_OPERATOR_CHARS = "+-*/%&|^"

# Token types after which a '-' starts a negative literal
_SIGN_CONTEXT = frozenset({
    TokenType.ASSIGN, TokenType.OPERATOR, TokenType.LPAREN,
    TokenType.COMMA, TokenType.LBRACKET, *COMPARISONS,
})

_COMMENT = re.compile(r"//[^\n]*|/\*.*?\*/", re.DOTALL)


def is_keyword(word: str) -> bool:
    return word in KEYWORDS


def is_type_name(word: str) -> bool:
    return word in TYPE_NAMES


# =============================================================================
# Token and Segment Data Classes
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single classified lexical unit.

    Attributes:
        type: The TokenType classification
        value: The exact source text of the token
        offset: Absolute offset in the normalised source, -1 if synthesised
    """
    type: TokenType
    value: str
    offset: int = -1

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.offset})"

    @property
    def end(self) -> int:
        """Offset one past the last character, -1 if synthesised."""
        if self.offset < 0:
            return -1
        return self.offset + len(self.value)

    def is_word(self, *words: str) -> bool:
        """Return True if this is an identifier spelled as one of words."""
        return self.type is TokenType.IDENTIFIER and self.value in words


@dataclass(frozen=True)
class Segment:
    """One raw statement cut from the normalised source."""
    text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


# =============================================================================
# Statement Segmentation
# =============================================================================

def strip_comments(source: str) -> str:
    """Replace every comment with spaces of the same length."""
    return _COMMENT.sub(lambda m: re.sub(r"[^\n]", " ", m.group()), source)


def normalize(source: str) -> str:
    """Blank comments and collapse line breaks without moving any character."""
    return strip_comments(source).replace("\r", " ").replace("\n", " ")


def segment_statements(source: str) -> list[Segment]:
    """
    Split source text into statements at every ';' and '}'.

    Args:
        source: Raw source text

    Returns:
        Segments in source order, stripped of surrounding whitespace
    """
    text = normalize(source)
    segments: list[Segment] = []
    start = 0
    for index, char in enumerate(text):
        if char in ";}":
            _add_segment(segments, text, start, index + 1)
            start = index + 1
    _add_segment(segments, text, start, len(text))
    return segments


def _add_segment(segments: list[Segment], text: str, start: int, end: int) -> None:
    piece = text[start:end]
    stripped = piece.strip()
    if not stripped or stripped == ";":
        return
    lead = len(piece) - len(piece.lstrip())
    segments.append(Segment(stripped, start + lead))


# =============================================================================
# Tokenizer
# =============================================================================

class Lexer:
    """
    Tokenizes one statement.

    Usage:
        lexer = Lexer(segment.text, segment.offset)
        tokens = list(lexer.tokenize())

    Attributes:
        text: The statement text being tokenized
        offset: Absolute offset of text[0] in the normalised source
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    def __init__(
        self,
        text: str,
        offset: int = 0,
        filename: str = "<input>",
        source: Optional[str] = None,
    ):
        """
        Initialize the lexer.

        Args:
            text: The statement text to tokenize
            offset: Absolute offset of the text (for token offsets)
            filename: Name of the source file (for error messages)
            source: Full original source, used to locate errors
        """
        self.text = text
        self.offset = offset
        self.filename = filename
        self.source = source
        self._pos = 0
        self._previous: Optional[Token] = None

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the statement text.

        Raises:
            PatternNotFoundError: On a character that starts no token
        """
        while self._pos < len(self.text):
            char = self.text[self._pos]
            if char.isspace():
                self._pos += 1
                continue

            token = self._scan_token(char)
            self._previous = token
            yield token

    def _scan_token(self, char: str) -> Token:
        start = self._pos

        if char == "$":
            self._pos += 1
            self._consume(self.IDENT_CHARS)
            if self._pos == start + 1:
                self._fail("'$' must be followed by a register or address name", start)
            return self._make(TokenType.NATIVE, start)

        if char.isdigit() or (char == "." and self._peek(1).isdigit()):
            return self._scan_number(start)

        if char == "-" and self._peek(1).isdigit() and self._sign_allowed():
            self._pos += 1
            return self._scan_number(start)

        if char in self.IDENT_START:
            self._consume(self.IDENT_CHARS)
            return self._make(TokenType.IDENTIFIER, start)

        pair = self.text[start:start + 2]
        if pair in _TWO_CHAR:
            self._pos += 2
            return self._make(_TWO_CHAR[pair], start)

        if char in _ONE_CHAR:
            self._pos += 1
            return self._make(_ONE_CHAR[char], start)

        if char in _OPERATOR_CHARS:
            self._pos += 1
            return self._make(TokenType.OPERATOR, start)

        self._fail(f"invalid character {char!r}", start)

    def _scan_number(self, start: int) -> Token:
        self._consume(string.digits)
        if self._peek() == "." and self._peek(1).isdigit():
            self._pos += 1
            self._consume(string.digits)
        return self._make(TokenType.NUMBER, start)

    def _sign_allowed(self) -> bool:
        previous = self._previous
        if previous is None or previous.type in _SIGN_CONTEXT:
            return True
        return previous.is_word("return", "case")

    def _peek(self, ahead: int = 0) -> str:
        pos = self._pos + ahead
        return self.text[pos] if pos < len(self.text) else ""

    def _consume(self, allowed: str) -> None:
        while self._pos < len(self.text) and self.text[self._pos] in allowed:
            self._pos += 1

    def _make(self, token_type: TokenType, start: int) -> Token:
        return Token(token_type, self.text[start:self._pos], self.offset + start)

    def _fail(self, message: str, start: int) -> NoReturn:
        location = None
        source_line = None
        if self.source is not None:
            location = SourceLocation.from_offset(self.source, self.offset + start, self.filename)
            source_line = self.source.splitlines()[location.line - 1]
        raise PatternNotFoundError(message, location=location, source_line=source_line)


def tokenize(
    text: str,
    offset: int = 0,
    filename: str = "<input>",
    source: Optional[str] = None,
) -> list[Token]:
    """Convenience wrapper returning the tokens of text as a list."""
    return list(Lexer(text, offset, filename, source).tokenize())


# =============================================================================
# Token List Helpers
# =============================================================================

_CLOSERS = {
    TokenType.LPAREN: TokenType.RPAREN,
    TokenType.LBRACE: TokenType.RBRACE,
    TokenType.LBRACKET: TokenType.RBRACKET,
}


def find_matching(tokens: list[Token], index: int) -> int:
    """
    Find the bracket closing the one opened at tokens[index].

    Returns:
        Index of the matching closer, or -1 if it is missing
    """
    opener = tokens[index].type
    closer = _CLOSERS[opener]
    depth = 0
    for position in range(index, len(tokens)):
        token_type = tokens[position].type
        if token_type is opener:
            depth += 1
        elif token_type is closer:
            depth -= 1
            if depth == 0:
                return position
    return -1


def find_first(tokens: list[Token], token_type: TokenType, start: int = 0) -> int:
    """Index of the first token of token_type at or after start, or -1."""
    for position in range(start, len(tokens)):
        if tokens[position].type is token_type:
            return position
    return -1


def split_statements(tokens: list[Token]) -> list[list[Token]]:
    """
    Group the tokens of a block body into statements.

    A statement ends at a ';' outside any brace, or at the '}' that
    closes its outermost brace.
    """
    statements: list[list[Token]] = []
    current: list[Token] = []
    depth = 0
    for token in tokens:
        current.append(token)
        if token.type is TokenType.LBRACE:
            depth += 1
        elif token.type is TokenType.RBRACE:
            depth -= 1
            if depth == 0:
                statements.append(current)
                current = []
        elif token.type is TokenType.SEMICOLON and depth == 0:
            statements.append(current)
            current = []
    if current:
        statements.append(current)
    return statements


def split_arguments(tokens: list[Token]) -> list[list[Token]]:
    """Split tokens at commas outside brackets; empty input gives []."""
    if not tokens:
        return []
    groups: list[list[Token]] = [[]]
    depth = 0
    for token in tokens:
        if token.type in (TokenType.LPAREN, TokenType.LBRACKET):
            depth += 1
        elif token.type in (TokenType.RPAREN, TokenType.RBRACKET):
            depth -= 1
        if token.type is TokenType.COMMA and depth == 0:
            groups.append([])
        else:
            groups[-1].append(token)
    return groups
