"""Parser for the curly expression language.

Converts a stream of tokens into an expression tree using the shunting-yard
algorithm: operators wait on a stack until an operator of lower precedence (or
a closing bracket) forces them into the output queue, and the queue is then
folded bottom-up into a single tree.

Operator Precedence (lowest to highest):
1. ||
2. &&
3. |
4. ^
5. &
6. == !=
7. < <= > >=
8. << >> >>>
9. + -
10. * / %
11. ** (right-associative)
12. ! ~ - + (unary)
Postfix member access ``[...]`` binds tighter than everything.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Union

from curly.config import DEFAULT_CONFIG, EngineConfig
from curly.errors import TemplateSyntaxError
from curly.expressions.lexer import Lexer, Token, TokenType

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Expression tree
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Literal:
    """A literal value.

    ``data_type`` is one of string, number, boolean, bigint, decimal, array.
    Array literals hold a tuple of element nodes.
    """
    value: Any
    data_type: str


@dataclass(frozen=True)
class Variable:
    """A dotted variable path (e.g., user.name, items.0)."""
    name: str


@dataclass(frozen=True)
class BinaryOp:
    """Binary operation (e.g., a + b, x == y)."""
    operator: str
    left: "ExprNode"
    right: "ExprNode"


@dataclass(frozen=True)
class UnaryOp:
    """Unary operation (e.g., !x, ~y, -z)."""
    operator: str
    operand: "ExprNode"


@dataclass(frozen=True)
class MethodCall:
    """Method call (e.g., upper(name), join(items, ", "))."""
    name: str
    args: tuple["ExprNode", ...]


@dataclass(frozen=True)
class MemberAccess:
    """Bracket member access (e.g., items[0], data["key"])."""
    object: "ExprNode"
    property: "ExprNode"


ExprNode = Union[Literal, Variable, BinaryOp, UnaryOp, MethodCall, MemberAccess]

EXPRESSION_NODE_TYPES = (Literal, Variable, BinaryOp, UnaryOp, MethodCall, MemberAccess)


# -----------------------------------------------------------------------------
# Operator table
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class OperatorSpec:
    symbol: str
    precedence: int
    associativity: str  # "left" | "right"


def _operator_table(*levels: tuple[int, str, tuple[str, ...]]) -> MappingProxyType:
    table = {}
    for precedence, associativity, symbols in levels:
        for symbol in symbols:
            table[symbol] = OperatorSpec(symbol, precedence, associativity)
    return MappingProxyType(table)


OPERATORS = _operator_table(
    (1, "left", ("||",)),
    (2, "left", ("&&",)),
    (3, "left", ("|",)),
    (4, "left", ("^",)),
    (5, "left", ("&",)),
    (6, "left", ("==", "!=")),
    (7, "left", ("<", "<=", ">", ">=")),
    (8, "left", ("<<", ">>", ">>>")),
    (9, "left", ("+", "-")),
    (10, "left", ("*", "/", "%")),
    (11, "right", ("**",)),
)

UNARY_OPERATORS = _operator_table((12, "right", ("!", "~", "-", "+")))


# -----------------------------------------------------------------------------
# Parser
# -----------------------------------------------------------------------------


class ParseError(TemplateSyntaxError):
    """Error during parsing."""

    def __init__(self, message: str, token: Token | None = None, position: int | None = None):
        self.token = token
        if position is None and token is not None:
            position = token.position
        super().__init__(message, position)


@dataclass
class ArgumentFrame:
    """Bookkeeping for one open parenthesis or bracket.

    Attributes:
        kind: "group", "call", "array" or "member"
        opener: The opening token
        commas: Commas seen directly inside this level
        has_argument: Whether any operand appeared inside this level
        segment_empty: Whether the current comma-separated segment is still empty
    """

    kind: str
    opener: Token
    commas: int = 0
    has_argument: bool = False
    segment_empty: bool = True


@dataclass(frozen=True)
class _Reduce:
    """Output-queue instruction folding operands into a node."""

    kind: str  # "binary", "unary", "call", "array", "member"
    token: Token
    arity: int = 0


@dataclass
class ParseSession:
    """State for a single parse invocation."""

    tokens: list[Token]
    max_depth: int
    cursor: int = 0
    operators: list[Token] = field(default_factory=list)
    output: list[Any] = field(default_factory=list)
    frames: list[ArgumentFrame] = field(default_factory=list)
    previous: Token | None = None
    expect_operand: bool = True

    def mark_operand(self) -> None:
        if self.frames:
            frame = self.frames[-1]
            frame.has_argument = True
            frame.segment_empty = False


class Parser:
    """Shunting-yard parser for the expression language.

    Usage:
        parser = Parser('price * (1 + rate)')
        tree = parser.parse()
    """

    def __init__(self, source: str, config: EngineConfig | None = None, offset: int = 0):
        self.source = source
        self.config = config or DEFAULT_CONFIG
        self.offset = offset

    def parse(self) -> ExprNode:
        """Parse the expression and return the tree root."""
        tokens = Lexer(self.source, self.offset).tokenize()
        session = ParseSession(tokens=tokens, max_depth=self.config.max_expression_depth)

        for token in tokens:
            session.cursor += 1
            if token.type == TokenType.EOF:
                break
            self._consume(session, token)
            session.previous = token

        self._check_operand_follows(session)

        while session.operators:
            top = session.operators.pop()
            if top.type == TokenType.LPAREN:
                raise ParseError("Mismatched parenthesis: missing ')'", top)
            if top.type == TokenType.LBRACKET:
                raise ParseError("Mismatched bracket: missing ']'", top)
            session.output.append(self._operator_reduce(top))

        tree = self._fold(session)
        logger.debug("Parsed expression %r", self.source)
        return tree

    # -------------------------------------------------------------------------
    # Token handling
    # -------------------------------------------------------------------------

    def _consume(self, session: ParseSession, token: Token) -> None:
        token_type = token.type

        if token_type in (TokenType.NUMBER, TokenType.STRING, TokenType.BOOLEAN):
            self._expect_operand(session, token)
            session.mark_operand()
            session.output.append(Literal(token.value, token.data_type))
            session.expect_operand = False

        elif token_type == TokenType.IDENTIFIER:
            self._expect_operand(session, token)
            session.mark_operand()
            session.output.append(Variable(token.value))
            session.expect_operand = False

        elif token_type == TokenType.PROPERTY:
            if session.expect_operand:
                raise ParseError(f"Unexpected property '{token.value}'", token)
            for segment in token.value.split("."):
                session.output.append(Literal(segment, "string"))
                session.output.append(_Reduce("member", token))

        elif token_type in (TokenType.METHOD, TokenType.UNARY_OPERATOR):
            self._expect_operand(session, token)
            session.mark_operand()
            session.operators.append(token)

        elif token_type == TokenType.OPERATOR:
            if session.expect_operand:
                raise ParseError(
                    f"Invalid expression: missing operand for '{token.value}'", token
                )
            self._push_binary(session, token)
            session.expect_operand = True

        elif token_type == TokenType.LPAREN:
            previous = session.previous
            if previous is not None and previous.type == TokenType.METHOD:
                kind = "call"
            else:
                self._expect_operand(session, token)
                kind = "group"
                session.mark_operand()
            self._open(session, token, kind)
            session.expect_operand = True

        elif token_type == TokenType.LBRACKET:
            # "[" after a complete operand indexes it; anywhere else it opens an array
            if session.expect_operand:
                kind = "array"
                session.mark_operand()
            else:
                kind = "member"
            self._open(session, token, kind)
            session.expect_operand = True

        elif token_type in (TokenType.RPAREN, TokenType.RBRACKET):
            self._check_operand_follows(session)
            self._close(session, token)
            session.expect_operand = False

        elif token_type == TokenType.COMMA:
            self._check_operand_follows(session)
            self._comma(session, token)
            session.expect_operand = True

        else:
            raise ParseError(f"Unexpected token '{token.value}'", token)

    @staticmethod
    def _expect_operand(session: ParseSession, token: Token) -> None:
        if not session.expect_operand:
            raise ParseError("Invalid expression: unexpected operand", token)

    @staticmethod
    def _check_operand_follows(session: ParseSession) -> None:
        """Reject an operator left dangling before a closer, comma or the end."""
        previous = session.previous
        if previous is not None and previous.type in (
            TokenType.OPERATOR,
            TokenType.UNARY_OPERATOR,
        ):
            raise ParseError(
                f"Invalid expression: missing operand for '{previous.value}'", previous
            )

    def _push_binary(self, session: ParseSession, token: Token) -> None:
        spec = OPERATORS[token.value]
        while session.operators:
            top = session.operators[-1]
            if top.type == TokenType.OPERATOR:
                top_spec = OPERATORS[top.value]
            elif top.type == TokenType.UNARY_OPERATOR:
                top_spec = UNARY_OPERATORS[top.value]
            else:
                break
            if top_spec.precedence > spec.precedence or (
                top_spec.precedence == spec.precedence and spec.associativity == "left"
            ):
                session.output.append(self._operator_reduce(session.operators.pop()))
            else:
                break
        session.operators.append(token)

    def _open(self, session: ParseSession, token: Token, kind: str) -> None:
        session.operators.append(token)
        session.frames.append(ArgumentFrame(kind, token))
        if len(session.frames) > session.max_depth:
            raise ParseError(
                f"Expression nesting exceeds maximum depth of {session.max_depth}", token
            )

    def _pop_to_opener(self, session: ParseSession, token: Token) -> Token:
        while session.operators:
            top = session.operators[-1]
            if top.type in (TokenType.LPAREN, TokenType.LBRACKET):
                return session.operators.pop()
            session.output.append(self._operator_reduce(session.operators.pop()))
        if token.type == TokenType.RPAREN:
            raise ParseError("Mismatched parenthesis: unexpected ')'", token)
        if token.type == TokenType.RBRACKET:
            raise ParseError("Mismatched bracket: unexpected ']'", token)
        raise ParseError(f"Unexpected '{token.value}' outside of a call or array", token)

    def _close(self, session: ParseSession, token: Token) -> None:
        opener = self._pop_to_opener(session, token)
        frame = session.frames.pop()

        if token.type == TokenType.RPAREN and opener.type != TokenType.LPAREN:
            raise ParseError("Mismatched parenthesis: ')' cannot close '['", token)
        if token.type == TokenType.RBRACKET and opener.type != TokenType.LBRACKET:
            raise ParseError("Mismatched bracket: ']' cannot close '('", token)

        if frame.commas and frame.segment_empty:
            raise ParseError(f"Missing argument before '{token.value}'", token)

        arity = frame.commas + 1 if frame.has_argument else 0

        if frame.kind == "group":
            if not frame.has_argument:
                raise ParseError("Invalid expression: empty parentheses", opener)
        elif frame.kind == "call":
            method = session.operators.pop()
            session.output.append(_Reduce("call", method, arity))
        elif frame.kind == "array":
            session.output.append(_Reduce("array", opener, arity))
        else:
            if not frame.has_argument:
                raise ParseError("Empty brackets in member access", opener)
            session.output.append(_Reduce("member", opener))

    def _comma(self, session: ParseSession, token: Token) -> None:
        if not session.frames or session.frames[-1].kind not in ("call", "array"):
            raise ParseError("Unexpected ',' outside of a call or array", token)
        frame = session.frames[-1]
        if frame.segment_empty:
            raise ParseError("Missing argument before ','", token)
        while session.operators[-1].type not in (TokenType.LPAREN, TokenType.LBRACKET):
            session.output.append(self._operator_reduce(session.operators.pop()))
        frame.commas += 1
        frame.segment_empty = True

    @staticmethod
    def _operator_reduce(token: Token) -> _Reduce:
        if token.type == TokenType.UNARY_OPERATOR:
            return _Reduce("unary", token, 1)
        return _Reduce("binary", token, 2)

    # -------------------------------------------------------------------------
    # Folding the output queue
    # -------------------------------------------------------------------------

    def _fold(self, session: ParseSession) -> ExprNode:
        stack: list[tuple[ExprNode, int]] = []

        for item in session.output:
            if not isinstance(item, _Reduce):
                stack.append((item, 1))
                continue

            needed = 2 if item.kind in ("binary", "member") else item.arity
            if len(stack) < needed:
                raise ParseError(
                    f"Invalid expression: missing operand for '{item.token.value}'", item.token
                )
            operands = stack[len(stack) - needed:]
            del stack[len(stack) - needed:]
            nodes = [node for node, _ in operands]
            height = max((h for _, h in operands), default=0) + 1
            if height > session.max_depth:
                raise ParseError(
                    f"Expression nesting exceeds maximum depth of {session.max_depth}",
                    item.token,
                )

            if item.kind == "binary":
                node = BinaryOp(item.token.value, nodes[0], nodes[1])
            elif item.kind == "unary":
                node = UnaryOp(item.token.value, nodes[0])
            elif item.kind == "call":
                node = MethodCall(item.token.value, tuple(nodes))
            elif item.kind == "array":
                node = Literal(tuple(nodes), "array")
            else:
                node = MemberAccess(nodes[0], nodes[1])
            stack.append((node, height))

        if len(stack) != 1:
            if not stack:
                raise ParseError("Invalid expression: empty expression", position=self.offset)
            raise ParseError(
                f"Invalid expression: '{self.source.strip()}'", position=self.offset
            )
        return stack[0][0]


def parse(source: str, config: EngineConfig | None = None) -> ExprNode:
    """Convenience function to parse an expression string.

    Args:
        source: The expression string
        config: Optional engine limits

    Returns:
        The expression tree root
    """
    return Parser(source, config).parse()
