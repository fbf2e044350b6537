"""
Lexer (Tokenizer)
=================

This module converts source text into a list of tokens for the parser.

Token Categories
----------------
- Keywords: return, if, else, while, for
- Identifiers: variable names (letters, digits, underscore; not starting
  with a digit)
- Numbers: decimal integer literals
- Operators: + - * / = == != < <= > >=
- Delimiters: ( ) { } ;

Two-character operators take priority over their one-character prefixes,
so ``a<=b`` lexes as ``a``, ``<=``, ``b``. Whitespace and C-style
comments (``//`` and ``/* */``) separate tokens and are discarded.

Integer literals must fit the 64-bit signed target width.

Example Usage
-------------
>>> from stackcc.compiler.lexer import Lexer
>>> for token in Lexer("a = 1;").tokenize():
...     print(token)
Token(IDENTIFIER, 'a', 1:1)
Token(ASSIGN, '=', 1:3)
Token(NUMBER, 1, 1:5)
Token(SEMICOLON, ';', 1:6)
Token(EOF, 1:7)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from stackcc.errors import SourceLocation
from stackcc.compiler.errors import LexError, InvalidCharacterError


# Largest value representable by the target's signed machine word
MAX_INTEGER = 2**63 - 1


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types of the source language."""

    # === Structural ===
    EOF = auto()            # End of input

    # === Identifiers and Literals ===
    IDENTIFIER = auto()     # Variable names
    NUMBER = auto()         # Decimal integer literals

    # === Keywords ===
    RETURN = auto()         # return
    IF = auto()             # if
    ELSE = auto()           # else
    WHILE = auto()          # while
    FOR = auto()            # for

    # === Arithmetic Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /

    # === Comparison Operators ===
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    LE = auto()             # <=
    GT = auto()             # >
    GE = auto()             # >=

    # === Assignment ===
    ASSIGN = auto()         # =

    # === Delimiters ===
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    LBRACE = auto()         # {
    RBRACE = auto()         # }
    SEMICOLON = auto()      # ;


KEYWORDS: dict[str, TokenType] = {
    "return": TokenType.RETURN,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
}

# Operators that may be followed by '=' to form a two-character operator
_COMPARISON_PREFIXES: dict[str, tuple[TokenType, Optional[TokenType]]] = {
    "=": (TokenType.EQ, TokenType.ASSIGN),
    "!": (TokenType.NE, None),
    "<": (TokenType.LE, TokenType.LT),
    ">": (TokenType.GE, TokenType.GT),
}

_SINGLE_TOKENS: dict[str, TokenType] = {
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ";": TokenType.SEMICOLON,
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from the source text.

    Attributes:
        type: The TokenType classification
        value: int for numbers, the matched text for everything else,
               None for EOF
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        offset: Character offset in source (0-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: str | int | None
    line: int
    column: int
    offset: int = 0
    filename: str = "<input>"

    def __repr__(self) -> str:
        if self.value is not None:
            if isinstance(self.value, int):
                return f"Token({self.type.name}, {self.value}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column, self.offset)

    @property
    def text(self) -> str:
        """Source text of the token, or a readable name for EOF."""
        if self.type == TokenType.EOF:
            return "end of input"
        return str(self.value)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes source text in a single forward pass.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source text being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source text.

        Yields:
            Token objects, always ending with an EOF token

        Raises:
            LexError: If a character or literal cannot be tokenized
        """
        while not self._at_end():
            self._skip_whitespace_and_comments()

            if self._at_end():
                break

            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None, self._line, self._column, self._pos)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at a character without consuming it ("" past the end)."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _match(self, expected: str) -> bool:
        """Consume the next character if it equals expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | None,
        start_line: int,
        start_column: int,
        start_offset: int,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line,
            column=start_column,
            offset=start_offset,
            filename=self.filename,
        )

    def _get_current_line(self) -> str:
        """Get the current line of source text for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in " \t\n\r\f\v":
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            if char == "/" and self._peek(1) == "*":
                self._skip_block_comment()
                continue

            break

    def _skip_block_comment(self) -> None:
        """
        Skip a block comment (/* ... */).

        Raises:
            LexError: If the comment is not terminated
        """
        location = SourceLocation(self.filename, self._line, self._column, self._pos)
        source_line = self._get_current_line()

        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise LexError(
            "unterminated block comment",
            location,
            hint="add closing */ to terminate the comment",
            source_line=source_line,
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start = (self._line, self._column, self._pos)
        char = self._peek()

        if char in self.IDENT_START:
            return self._scan_identifier(*start)

        if char in string.digits:
            return self._scan_number(*start)

        return self._scan_operator(*start)

    def _scan_identifier(self, start_line: int, start_column: int, start_offset: int) -> Token:
        """Scan an identifier, or a keyword if the name is reserved."""
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        name = "".join(chars)
        token_type = KEYWORDS.get(name, TokenType.IDENTIFIER)
        return self._make_token(token_type, name, start_line, start_column, start_offset)

    def _scan_number(self, start_line: int, start_column: int, start_offset: int) -> Token:
        """Scan a maximal run of decimal digits."""
        chars = []
        while self._peek() and self._peek() in string.digits:
            chars.append(self._advance())

        text = "".join(chars)
        value = int(text)
        if value > MAX_INTEGER:
            raise LexError(
                f"integer literal '{text}' out of range",
                SourceLocation(self.filename, start_line, start_column, start_offset),
                hint=f"the largest supported literal is {MAX_INTEGER}",
                source_line=self._get_current_line(),
                span=len(text),
            )

        return self._make_token(TokenType.NUMBER, value, start_line, start_column, start_offset)

    def _scan_operator(self, start_line: int, start_column: int, start_offset: int) -> Token:
        """Scan an operator or delimiter, preferring two-character forms."""
        location = SourceLocation(self.filename, start_line, start_column, start_offset)
        char = self._advance()

        if char in _COMPARISON_PREFIXES:
            with_equals, alone = _COMPARISON_PREFIXES[char]
            if self._match("="):
                return self._make_token(with_equals, char + "=", start_line, start_column, start_offset)
            if alone is not None:
                return self._make_token(alone, char, start_line, start_column, start_offset)
            raise InvalidCharacterError(
                char,
                location,
                self._get_current_line(),
                hint="did you mean '!='?",
            )

        if char in _SINGLE_TOKENS:
            return self._make_token(_SINGLE_TOKENS[char], char, start_line, start_column, start_offset)

        raise InvalidCharacterError(char, location, self._get_current_line())


# =============================================================================
# Convenience Functions
# =============================================================================

def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Tokenize source text into a list ending with an EOF token."""
    return list(Lexer(source, filename).tokenize())
