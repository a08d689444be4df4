"""Expression language for curly templates.

This module provides:
- NumericValue: Three-way numeric model (float, int, Decimal)
- Lexer: Tokenizes expression strings
- Parser: Produces expression trees with the shunting-yard algorithm
- Evaluator: Evaluates expression trees against a context
- MethodRegistry: Named callables reachable from expressions
"""

from curly.expressions.builtins import default_methods, register_builtins
from curly.expressions.evaluator import (
    EvaluationContext,
    Evaluator,
    evaluate,
    is_truthy,
    to_string,
)
from curly.expressions.lexer import Lexer, LexerError, Token, TokenType
from curly.expressions.methods import MethodCategory, MethodDefinition, MethodRegistry
from curly.expressions.numeric import (
    NumericKind,
    NumericValue,
    float_arithmetic,
    format_number,
    parse_number,
)
from curly.expressions.parser import (
    OPERATORS,
    BinaryOp,
    ExprNode,
    Literal,
    MemberAccess,
    MethodCall,
    OperatorSpec,
    ParseError,
    Parser,
    UnaryOp,
    Variable,
    parse,
)

__all__ = [
    # Builtins
    "default_methods",
    "register_builtins",
    # Evaluator
    "EvaluationContext",
    "Evaluator",
    "evaluate",
    "is_truthy",
    "to_string",
    # Lexer
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    # Methods
    "MethodCategory",
    "MethodDefinition",
    "MethodRegistry",
    # Numeric
    "NumericKind",
    "NumericValue",
    "float_arithmetic",
    "format_number",
    "parse_number",
    # Parser
    "OPERATORS",
    "BinaryOp",
    "ExprNode",
    "Literal",
    "MemberAccess",
    "MethodCall",
    "OperatorSpec",
    "ParseError",
    "Parser",
    "UnaryOp",
    "Variable",
    "parse",
]
