"""Lexer/tokenizer for the curly expression language.

Converts an expression string into a stream of tokens for the parser.

Token types:
- Literals: NUMBER, STRING, BOOLEAN
- Names: IDENTIFIER (dotted variable path), METHOD (name followed by "("),
  PROPERTY (".name" directly after "]")
- Operators: OPERATOR (binary), UNARY_OPERATOR (! ~ and prefix - +)
- Punctuation: LPAREN, RPAREN, LBRACKET, RBRACKET, COMMA

A "-" directly in front of a digit is the sign of a numeric literal when the
preceding token cannot end an operand (start of input, an operator, an opening
bracket or a comma). Everywhere else it is the binary minus operator.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Iterator

from curly.errors import TemplateSyntaxError
from curly.expressions.numeric import parse_number


class TokenType(Enum):
    """Types of tokens in the expression language."""

    # Literals
    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()

    # Names
    IDENTIFIER = auto()
    METHOD = auto()
    PROPERTY = auto()

    # Operators
    OPERATOR = auto()
    UNARY_OPERATOR = auto()

    # Punctuation
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    LBRACKET = auto()    # [
    RBRACKET = auto()    # ]
    COMMA = auto()       # ,

    # End of input
    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A single token from the lexer.

    Attributes:
        type: The token type
        value: Decoded value (number, string content, name, operator symbol)
        position: Character position in the source string
        data_type: Literal classification for NUMBER/STRING/BOOLEAN tokens
    """

    type: TokenType
    value: Any
    position: int
    data_type: str | None = None

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, pos={self.position})"


class LexerError(TemplateSyntaxError):
    """Error during lexical analysis."""


# Binary operators, matched longest first
THREE_CHAR_OPERATORS = (">>>",)
TWO_CHAR_OPERATORS = ("**", "==", "!=", "<=", ">=", "&&", "||", "<<", ">>")
ONE_CHAR_OPERATORS = ("+", "-", "*", "/", "%", "<", ">", "&", "|", "^")

UNARY_OPERATORS = ("!", "~")

PUNCTUATION = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
}

# Tokens after which a "-" or "+" starts an operand instead of being binary
OPERAND_EXPECTED_AFTER = frozenset(
    {
        TokenType.OPERATOR,
        TokenType.UNARY_OPERATOR,
        TokenType.LPAREN,
        TokenType.LBRACKET,
        TokenType.COMMA,
    }
)

NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
IDENTIFIER_PATTERN = re.compile(r"[a-zA-Z_][a-zA-Z0-9_.]*")
IDENTIFIER_START = re.compile(r"[a-zA-Z_]")

ESCAPE_PATTERN = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|[\\'\"bfnrtv])")
SIMPLE_ESCAPES = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def _decode_escape(match: re.Match) -> str:
    sequence = match.group(1)
    if sequence[0] in "ux" and len(sequence) > 1:
        return chr(int(sequence[1:], 16))
    return SIMPLE_ESCAPES[sequence]


def unescape_string(body: str) -> str:
    """Decode escape sequences; unknown escapes are kept verbatim."""
    return ESCAPE_PATTERN.sub(_decode_escape, body)


class Lexer:
    """Tokenizer for the expression language.

    Usage:
        lexer = Lexer('price * 2 + -1')
        for token in lexer:
            print(token)

    Args:
        source: The expression text
        offset: Added to every reported position (location of the expression
            inside a larger template)
    """

    def __init__(self, source: str, offset: int = 0):
        self.source = source
        self.offset = offset
        self.position = 0
        self._previous: Token | None = None

    def __iter__(self) -> Iterator[Token]:
        """Iterate over all tokens in the source."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break

    def tokenize(self) -> list[Token]:
        """Tokenize the entire source and return list of tokens."""
        return list(self)

    def next_token(self) -> Token:
        """Get the next token from the source."""
        self._skip_whitespace()
        if self.position >= len(self.source):
            return self._emit(TokenType.EOF, None, self.position)

        char = self.source[self.position]
        start = self.position

        if char.isdigit():
            return self._read_number(start)

        if char in "-+" and self._expects_operand():
            if char == "-" and self._peek_char(1).isdigit():
                return self._read_number(start)
            self.position += 1
            return self._emit(TokenType.UNARY_OPERATOR, char, start)

        if char in "\"'":
            return self._read_string(start)

        if char == ".":
            return self._read_property(start)

        if IDENTIFIER_START.match(char):
            return self._read_identifier(start)

        for candidates in (THREE_CHAR_OPERATORS, TWO_CHAR_OPERATORS):
            for operator in candidates:
                if self.source.startswith(operator, start):
                    self.position += len(operator)
                    return self._emit(TokenType.OPERATOR, operator, start)

        if char in UNARY_OPERATORS:
            self.position += 1
            return self._emit(TokenType.UNARY_OPERATOR, char, start)

        if char in ONE_CHAR_OPERATORS:
            self.position += 1
            return self._emit(TokenType.OPERATOR, char, start)

        if char in PUNCTUATION:
            self.position += 1
            return self._emit(PUNCTUATION[char], char, start)

        raise LexerError(f"Unexpected character '{char}'", self.offset + start)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _emit(
        self, token_type: TokenType, value: Any, start: int, data_type: str | None = None
    ) -> Token:
        token = Token(token_type, value, self.offset + start, data_type)
        self._previous = token
        return token

    def _expects_operand(self) -> bool:
        return self._previous is None or self._previous.type in OPERAND_EXPECTED_AFTER

    def _peek_char(self, ahead: int) -> str:
        index = self.position + ahead
        return self.source[index] if index < len(self.source) else ""

    def _skip_whitespace(self) -> None:
        while self.position < len(self.source) and self.source[self.position].isspace():
            self.position += 1

    def _read_number(self, start: int) -> Token:
        sign = ""
        if self.source[self.position] == "-":
            sign = "-"
            self.position += 1
        match = NUMBER_PATTERN.match(self.source, self.position)
        text = sign + match.group()
        self.position = match.end()
        data_type, value = parse_number(text)
        return self._emit(TokenType.NUMBER, value, start, data_type)

    def _read_string(self, start: int) -> Token:
        quote = self.source[start]
        index = start + 1
        while True:
            index = self.source.find(quote, index)
            if index == -1:
                raise LexerError("Unterminated string literal", self.offset + start)
            backslashes = 0
            while self.source[index - 1 - backslashes] == "\\":
                backslashes += 1
            # An even run of backslashes escapes itself, not the quote
            if backslashes % 2 == 0:
                break
            index += 1
        body = self.source[start + 1:index]
        self.position = index + 1
        return self._emit(TokenType.STRING, unescape_string(body), start, "string")

    def _read_identifier(self, start: int) -> Token:
        match = IDENTIFIER_PATTERN.match(self.source, start)
        name = match.group()
        self._validate_path(name, start)
        self.position = match.end()

        lookahead = self.position
        while lookahead < len(self.source) and self.source[lookahead].isspace():
            lookahead += 1
        if lookahead < len(self.source) and self.source[lookahead] == "(":
            return self._emit(TokenType.METHOD, name, start)

        if name in ("true", "false"):
            return self._emit(TokenType.BOOLEAN, name == "true", start, "boolean")

        return self._emit(TokenType.IDENTIFIER, name, start)

    def _read_property(self, start: int) -> Token:
        if self._previous is None:
            raise LexerError("Expression cannot start with dot", self.offset + start)
        if self._previous.type != TokenType.RBRACKET:
            raise LexerError("Unexpected character '.'", self.offset + start)
        match = IDENTIFIER_PATTERN.match(self.source, start + 1)
        if match is None:
            raise LexerError("Dot must be followed by property name", self.offset + start)
        path = match.group()
        self._validate_path(path, start + 1)
        self.position = match.end()
        return self._emit(TokenType.PROPERTY, path, start)

    def _validate_path(self, path: str, start: int) -> None:
        if ".." in path:
            raise LexerError(
                f"Invalid property path '{path}': consecutive dots",
                self.offset + start + path.index(".."),
            )
        if path.endswith("."):
            raise LexerError(
                f"Invalid property path '{path}': cannot end with dot",
                self.offset + start + len(path) - 1,
            )
