"""Tests for the expression tokenizer.

Tests cover:
- Numbers, strings, booleans, identifiers and property paths
- Operator recognition (longest match first)
- Unary operator detection
- Error reporting with positions
"""

from decimal import Decimal

import pytest

from curly.errors import TemplateSyntaxError
from curly.expressions.lexer import Lexer, LexerError, TokenType


def token_types(source):
    return [t.type for t in Lexer(source).tokenize()[:-1]]


def token_values(source):
    return [t.value for t in Lexer(source).tokenize()[:-1]]


# =============================================================================
# Literals
# =============================================================================


class TestLiterals:
    """Tests for literal tokens."""

    def test_plain_number(self):
        token = Lexer("42").tokenize()[0]
        assert token.type == TokenType.NUMBER
        assert token.value == 42.0
        assert token.data_type == "number"

    def test_decimal_number(self):
        token = Lexer("1.5").tokenize()[0]
        assert token.value == Decimal("1.5")
        assert token.data_type == "decimal"

    def test_bigint_number(self):
        token = Lexer("12345678901234567890").tokenize()[0]
        assert token.value == 12345678901234567890
        assert token.data_type == "bigint"

    def test_negative_number_at_start(self):
        tokens = Lexer("-5").tokenize()
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == -5.0

    def test_negative_number_after_paren(self):
        assert token_types("(-5)") == [TokenType.LPAREN, TokenType.NUMBER, TokenType.RPAREN]

    def test_minus_after_identifier_is_binary(self):
        assert token_types("a-5") == [TokenType.IDENTIFIER, TokenType.OPERATOR, TokenType.NUMBER]
        assert token_values("a-5") == ["a", "-", 5.0]

    def test_double_quoted_string(self):
        token = Lexer('"hello"').tokenize()[0]
        assert token.type == TokenType.STRING
        assert token.value == "hello"

    def test_single_quoted_string(self):
        assert token_values("'hello'") == ["hello"]

    def test_escaped_quote(self):
        assert token_values(r'"a\"b"') == ['a"b']

    def test_escaped_backslash_before_quote(self):
        assert token_values(r'"a\\"') == ["a\\"]

    def test_escape_sequences(self):
        assert token_values(r'"A\x42\n"') == ["AB\n"]

    def test_unknown_escape_is_kept(self):
        assert token_values(r'"\q"') == ["\\q"]

    def test_booleans(self):
        tokens = Lexer("true false").tokenize()
        assert tokens[0].type == TokenType.BOOLEAN
        assert tokens[0].value is True
        assert tokens[1].value is False

    def test_unterminated_string(self):
        with pytest.raises(LexerError, match="Unterminated string literal"):
            Lexer('"abc').tokenize()


# =============================================================================
# Identifiers and Paths
# =============================================================================


class TestIdentifiers:
    """Tests for identifiers, methods and property paths."""

    def test_dotted_identifier(self):
        assert token_values("user.address.city") == ["user.address.city"]

    def test_numeric_path_segment(self):
        assert token_values("items.0") == ["items.0"]

    def test_method_name(self):
        assert token_types("upper (name)") == [
            TokenType.METHOD,
            TokenType.LPAREN,
            TokenType.IDENTIFIER,
            TokenType.RPAREN,
        ]

    def test_keyword_followed_by_paren_is_method(self):
        assert token_types("true()")[0] == TokenType.METHOD

    def test_property_after_bracket(self):
        assert token_types("a[0].b.c") == [
            TokenType.IDENTIFIER,
            TokenType.LBRACKET,
            TokenType.NUMBER,
            TokenType.RBRACKET,
            TokenType.PROPERTY,
        ]
        assert token_values("a[0].b.c")[-1] == "b.c"

    def test_leading_dot(self):
        with pytest.raises(LexerError, match="cannot start with dot"):
            Lexer(".a").tokenize()

    def test_dot_after_paren(self):
        with pytest.raises(LexerError, match="Unexpected character '.'"):
            Lexer("(a).b").tokenize()

    def test_consecutive_dots(self):
        with pytest.raises(LexerError, match="consecutive dots"):
            Lexer("a..b").tokenize()

    def test_trailing_dot(self):
        with pytest.raises(LexerError, match="cannot end with dot"):
            Lexer("a.").tokenize()

    def test_dot_without_property(self):
        with pytest.raises(LexerError, match="Dot must be followed by property name"):
            Lexer("a[0].").tokenize()


# =============================================================================
# Operators
# =============================================================================


class TestOperators:
    """Tests for operator tokens."""

    def test_longest_match(self):
        assert token_values("a >>> b >> c >= d ** e") == [
            "a", ">>>", "b", ">>", "c", ">=", "d", "**", "e",
        ]

    def test_logical_operators(self):
        assert token_values("a && b || c") == ["a", "&&", "b", "||", "c"]

    def test_unary_operators(self):
        assert token_types("!a") == [TokenType.UNARY_OPERATOR, TokenType.IDENTIFIER]
        assert token_types("~a") == [TokenType.UNARY_OPERATOR, TokenType.IDENTIFIER]
        assert token_types("-a") == [TokenType.UNARY_OPERATOR, TokenType.IDENTIFIER]

    def test_binary_then_unary_minus(self):
        assert token_types("a - -b") == [
            TokenType.IDENTIFIER,
            TokenType.OPERATOR,
            TokenType.UNARY_OPERATOR,
            TokenType.IDENTIFIER,
        ]

    def test_punctuation(self):
        assert token_types("f(a, [b])") == [
            TokenType.METHOD,
            TokenType.LPAREN,
            TokenType.IDENTIFIER,
            TokenType.COMMA,
            TokenType.LBRACKET,
            TokenType.IDENTIFIER,
            TokenType.RBRACKET,
            TokenType.RPAREN,
        ]


# =============================================================================
# Positions and Errors
# =============================================================================


class TestPositions:
    """Tests for reported positions."""

    def test_token_positions(self):
        tokens = Lexer("a + b").tokenize()
        assert [t.position for t in tokens] == [0, 2, 4, 5]

    def test_offset_is_added(self):
        assert Lexer("x", offset=10).tokenize()[0].position == 10

    def test_unexpected_character(self):
        with pytest.raises(LexerError) as exc_info:
            Lexer("a @ b").tokenize()
        assert exc_info.value.position == 2
        assert "'@'" in str(exc_info.value)

    def test_lexer_error_is_syntax_error(self):
        with pytest.raises(TemplateSyntaxError):
            Lexer("#").tokenize()
