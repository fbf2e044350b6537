# =============================================================================
# test_lexer.py - Lexer Unit Tests
# =============================================================================
# Tests for the stackcc tokenizer.
#
# Test coverage includes:
#   - Numbers, identifiers and keywords
#   - One- and two-character operators
#   - Whitespace and comment handling
#   - Line/column tracking
#   - Error reporting for invalid input
# =============================================================================

import pytest

from stackcc.compiler.lexer import Lexer, Token, TokenType, tokenize, MAX_INTEGER
from stackcc.compiler.errors import LexError, InvalidCharacterError


# =============================================================================
# Helper Functions
# =============================================================================

def token_types(source: str) -> list[TokenType]:
    """Return the token types of source, without the trailing EOF."""
    tokens = tokenize(source)
    assert tokens[-1].type == TokenType.EOF
    return [t.type for t in tokens[:-1]]


# =============================================================================
# Basic Tokens
# =============================================================================

class TestBasicTokens:
    """Test recognition of individual tokens."""

    def test_empty_source(self):
        """Empty source should produce only EOF token."""
        tokens = tokenize("")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        """Whitespace-only source should produce only EOF token."""
        tokens = tokenize("  \t\r\n \n")
        assert [t.type for t in tokens] == [TokenType.EOF]

    def test_form_feed_and_vertical_tab_are_whitespace(self):
        tokens = tokenize("a\f=\v1;")
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER, TokenType.ASSIGN, TokenType.NUMBER,
            TokenType.SEMICOLON, TokenType.EOF,
        ]

    def test_number(self):
        tokens = tokenize("42")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == 42

    def test_number_with_leading_zeros(self):
        """Literals are decimal even with leading zeros."""
        assert tokenize("007")[0].value == 7

    def test_identifier(self):
        tokens = tokenize("foo_bar1")
        assert tokens[0].type == TokenType.IDENTIFIER
        assert tokens[0].value == "foo_bar1"

    def test_identifier_with_underscore_prefix(self):
        assert tokenize("_x")[0].type == TokenType.IDENTIFIER

    @pytest.mark.parametrize("word,expected", [
        ("return", TokenType.RETURN),
        ("if", TokenType.IF),
        ("else", TokenType.ELSE),
        ("while", TokenType.WHILE),
        ("for", TokenType.FOR),
    ])
    def test_keywords(self, word, expected):
        assert token_types(word) == [expected]

    def test_keyword_prefix_is_identifier(self):
        """Names that merely start with a keyword are identifiers."""
        assert token_types("returnx iffy format") == [TokenType.IDENTIFIER] * 3

    def test_digits_then_letters_split(self):
        """A digit run ends where the letters start."""
        tokens = tokenize("12ab")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == 12
        assert tokens[1].type == TokenType.IDENTIFIER
        assert tokens[1].value == "ab"


# =============================================================================
# Operators and Delimiters
# =============================================================================

class TestOperators:
    """Test operator and delimiter tokens."""

    def test_single_character_operators(self):
        assert token_types("+ - * / < > = ( ) { } ;") == [
            TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH,
            TokenType.LT, TokenType.GT, TokenType.ASSIGN,
            TokenType.LPAREN, TokenType.RPAREN,
            TokenType.LBRACE, TokenType.RBRACE, TokenType.SEMICOLON,
        ]

    def test_two_character_operators(self):
        assert token_types("== != <= >=") == [
            TokenType.EQ, TokenType.NE, TokenType.LE, TokenType.GE,
        ]

    def test_two_character_operator_preferred(self):
        """'a<=b' lexes as a, <=, b rather than a, <, =, b."""
        assert token_types("a<=b") == [
            TokenType.IDENTIFIER, TokenType.LE, TokenType.IDENTIFIER,
        ]

    def test_triple_equals(self):
        """'===' is '==' followed by '='."""
        assert token_types("===") == [TokenType.EQ, TokenType.ASSIGN]

    def test_separated_comparison_is_two_tokens(self):
        assert token_types("< =") == [TokenType.LT, TokenType.ASSIGN]

    def test_operator_values(self):
        tokens = tokenize("a != 1")
        assert tokens[1].value == "!="


# =============================================================================
# Comments
# =============================================================================

class TestComments:
    """Test that comments are skipped."""

    def test_line_comment(self):
        assert token_types("a // comment = 1;\nb") == [
            TokenType.IDENTIFIER, TokenType.IDENTIFIER,
        ]

    def test_block_comment(self):
        assert token_types("a /* x = 1;\n y */ b") == [
            TokenType.IDENTIFIER, TokenType.IDENTIFIER,
        ]

    def test_unterminated_block_comment(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("a = 1; /* never closed")
        assert "unterminated block comment" in str(exc_info.value)

    def test_slash_alone_is_division(self):
        assert token_types("a / b") == [
            TokenType.IDENTIFIER, TokenType.SLASH, TokenType.IDENTIFIER,
        ]


# =============================================================================
# Locations
# =============================================================================

class TestLocations:
    """Test line and column tracking."""

    def test_columns_on_one_line(self):
        tokens = tokenize("a = 1;")
        assert [(t.line, t.column) for t in tokens] == [
            (1, 1), (1, 3), (1, 5), (1, 6), (1, 7),
        ]

    def test_lines(self):
        tokens = tokenize("a;\n  b;")
        assert (tokens[2].line, tokens[2].column) == (2, 3)

    def test_offset(self):
        tokens = tokenize("a;\n  b;")
        assert tokens[2].offset == 5

    def test_filename_in_location(self):
        token = tokenize("x", "prog.c")[0]
        assert str(token.location) == "prog.c:1:1"

    def test_token_repr(self):
        tokens = list(Lexer("a = 1;").tokenize())
        assert repr(tokens[0]) == "Token(IDENTIFIER, 'a', 1:1)"
        assert repr(tokens[2]) == "Token(NUMBER, 1, 1:5)"
        assert repr(tokens[-1]) == "Token(EOF, 1:7)"

    def test_eof_text(self):
        assert tokenize("")[0].text == "end of input"

    def test_tokenize_is_lazy(self):
        """Lexer.tokenize yields tokens up to the first error."""
        tokens = Lexer("a = @").tokenize()
        assert next(tokens).type == TokenType.IDENTIFIER
        assert next(tokens).type == TokenType.ASSIGN
        with pytest.raises(InvalidCharacterError):
            next(tokens)


# =============================================================================
# Errors
# =============================================================================

class TestLexErrors:
    """Test error reporting for invalid input."""

    def test_invalid_character(self):
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("a = 1 @ 2;")
        error = exc_info.value
        assert error.char == "@"
        assert error.location.line == 1
        assert error.location.column == 7

    def test_invalid_character_message_format(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("a = 1 @ 2;", "prog.c")
        message = str(exc_info.value)
        assert message.startswith("prog.c:1:7: error: invalid character '@'")
        assert "a = 1 @ 2;" in message
        assert message.splitlines()[2] == " " * 10 + "^"

    def test_lone_bang(self):
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("!a")
        assert exc_info.value.hint == "did you mean '!='?"

    def test_non_ascii_digit_rejected(self):
        with pytest.raises(InvalidCharacterError):
            tokenize("x = ²;")

    def test_largest_literal(self):
        assert tokenize(str(MAX_INTEGER))[0].value == 2**63 - 1

    def test_literal_out_of_range(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("x = 9223372036854775808;")
        assert "out of range" in exc_info.value.message

    def test_error_on_second_line(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("a = 1;\nb = $;")
        assert exc_info.value.location.line == 2
        assert exc_info.value.source_line == "b = $;"

    def test_caret_underlines_whole_literal(self):
        with pytest.raises(LexError) as exc_info:
            tokenize("x = 9223372036854775808;")
        assert str(exc_info.value).splitlines()[2] == " " * 8 + "^" * 19

    def test_caret_keeps_tabs(self):
        """Tabs before the error column are copied so the caret lines up."""
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("\tx = 1 @;")
        assert str(exc_info.value).splitlines()[2] == "    \t" + " " * 6 + "^"
