"""Evaluator for the curly expression language.

Walks an expression tree and computes its value against a data context and a
method registry. Missing data never raises: unknown paths, out-of-range
indices and absent methods resolve to the empty string, and operators coerce
mismatched operands the way a scripting host would. The only error surfaced at
evaluation time is a failure inside a caller-supplied method.
"""

import decimal
import json
import logging
import math
import operator
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable

from curly.config import DEFAULT_CONFIG, EngineConfig
from curly.errors import EvaluationError
from curly.expressions.numeric import (
    MAX_SAFE_INTEGER,
    NUMERIC_STRING,
    NumericValue,
    arithmetic,
    float_arithmetic,
    format_number,
)
from curly.expressions.parser import (
    BinaryOp,
    ExprNode,
    Literal,
    MemberAccess,
    MethodCall,
    UnaryOp,
    Variable,
    parse,
)

logger = logging.getLogger(__name__)

# Sentinel for "no such member"; distinct from a stored None
_MISSING = object()

COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

ARITHMETIC = frozenset({"+", "-", "*", "/", "%", "**"})
BITWISE = frozenset({"&", "|", "^", "<<", ">>", ">>>"})


@dataclass
class EvaluationContext:
    """Context for expression evaluation.

    Attributes:
        data: Variables visible to the expression (any mapping, arbitrarily nested)
        methods: Callables reachable through method-call syntax
        config: Engine settings (decimal precision)
        decimal_context: Trap-free decimal context; built from config when omitted
    """

    data: Mapping[str, Any] = field(default_factory=dict)
    methods: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    config: EngineConfig = DEFAULT_CONFIG
    decimal_context: decimal.Context | None = None

    def __post_init__(self) -> None:
        if self.decimal_context is None:
            self.decimal_context = self.config.decimal_context()

    def scoped(self, data: Mapping[str, Any]) -> "EvaluationContext":
        """Return a context over different data sharing methods and settings."""
        return replace(self, data=data)


class Evaluator:
    """Evaluates expression trees against a context.

    Usage:
        ctx = EvaluationContext(data={"price": Decimal("9.99"), "qty": 3})
        evaluator = Evaluator(ctx)
        result = evaluator.evaluate(parse("price * qty"))  # Decimal("29.97")
    """

    def __init__(self, context: EvaluationContext):
        self.context = context

    def evaluate(self, node: ExprNode) -> Any:
        """Evaluate an expression node and return the result."""
        method_name = f"_eval_{type(node).__name__.lower()}"
        method = getattr(self, method_name, None)

        if method is None:
            raise EvaluationError(f"Unknown node type: {type(node).__name__}")

        return method(node)

    # -------------------------------------------------------------------------
    # Node type evaluators
    # -------------------------------------------------------------------------

    def _eval_literal(self, node: Literal) -> Any:
        if node.data_type == "array":
            return [self.evaluate(element) for element in node.value]
        return node.value

    def _eval_variable(self, node: Variable) -> Any:
        value = resolve_path(self.context.data, node.name)
        return "" if value is _MISSING or value is None else value

    def _eval_memberaccess(self, node: MemberAccess) -> Any:
        obj = self.evaluate(node.object)
        key = self.evaluate(node.property)
        value = get_member(obj, key)
        if value is _MISSING and isinstance(key, str) and "." in key:
            value = resolve_path(obj, key)
        return "" if value is _MISSING or value is None else value

    def _eval_binaryop(self, node: BinaryOp) -> Any:
        op = node.operator

        # Logical operators short-circuit and yield an operand, not a bool
        if op == "||":
            left = self.evaluate(node.left)
            return left if is_truthy(left) else self.evaluate(node.right)
        if op == "&&":
            left = self.evaluate(node.left)
            return self.evaluate(node.right) if is_truthy(left) else left

        left = self.evaluate(node.left)
        right = self.evaluate(node.right)

        if op == "==":
            return self._equals(left, right)
        if op == "!=":
            return not self._equals(left, right)
        if op in COMPARISONS:
            return self._compare(op, left, right)
        if op in ARITHMETIC:
            return self._arithmetic(op, left, right)
        if op in BITWISE:
            return _bitwise(op, left, right)

        raise EvaluationError(f"Unknown operator: {op}")

    def _eval_unaryop(self, node: UnaryOp) -> Any:
        operand = self.evaluate(node.operand)
        op = node.operator

        if op == "!":
            return not is_truthy(operand)
        if op == "~":
            return float(~_to_int32(operand))
        if op == "-":
            if _is_exact(operand) or isinstance(operand, float):
                return -operand
            return -to_float(operand)
        if op == "+":
            if _is_exact(operand) or isinstance(operand, float):
                return operand
            return to_float(operand)

        raise EvaluationError(f"Unknown unary operator: {op}")

    def _eval_methodcall(self, node: MethodCall) -> Any:
        method = self.context.methods.get(node.name)
        if method is None or not callable(method):
            return ""

        args = [_method_argument(self.evaluate(arg)) for arg in node.args]

        try:
            result = method(*args)
        except Exception as e:
            logger.warning("Method %r raised %s: %s", node.name, type(e).__name__, e)
            raise EvaluationError(f"Error calling {node.name}: {e}") from e

        return "" if result is None else result

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def _equals(self, left: Any, right: Any) -> bool:
        if _is_exact(left) or _is_exact(right):
            left_num, right_num = _exact_operand(left), _exact_operand(right)
            if left_num is not None and right_num is not None:
                return left_num.compare(right_num) == 0

        # True == 1 holds in Python but never in templates
        if isinstance(left, bool) or isinstance(right, bool):
            return type(left) is type(right) and left == right

        return left == right

    def _compare(self, op: str, left: Any, right: Any) -> bool:
        if _is_exact(left) or _is_exact(right):
            left_num, right_num = _exact_operand(left), _exact_operand(right)
            if left_num is not None and right_num is not None:
                result = left_num.compare(right_num)
                return result is not None and COMPARISONS[op](result, 0)

        if isinstance(left, str) and isinstance(right, str):
            return COMPARISONS[op](left, right)

        # NaN makes every ordered comparison false
        return COMPARISONS[op](to_float(left), to_float(right))

    def _arithmetic(self, op: str, left: Any, right: Any) -> Any:
        if op == "+" and (isinstance(left, str) or isinstance(right, str)):
            return to_string(left) + to_string(right)

        context = self.context.decimal_context
        if _is_exact(left) or _is_exact(right):
            left_num, right_num = _exact_operand(left), _exact_operand(right)
            if left_num is not None and right_num is not None:
                return arithmetic(op, left_num, right_num, context)

        return float_arithmetic(op, to_float(left), to_float(right), context)


# -----------------------------------------------------------------------------
# Value helpers
# -----------------------------------------------------------------------------


def _is_exact(value: Any) -> bool:
    """True for arbitrary-precision values (int and Decimal, never bool)."""
    return isinstance(value, (int, Decimal)) and not isinstance(value, bool)


def _exact_operand(value: Any) -> NumericValue | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return NumericValue.of(value)
    if isinstance(value, str):
        try:
            return NumericValue.of(value)
        except ValueError:
            return None
    return None


def _method_argument(value: Any) -> Any:
    # Methods receive 2 rather than 2.0 for integral plain numbers in the safe range
    if isinstance(value, float) and value.is_integer() and abs(value) <= MAX_SAFE_INTEGER:
        return int(value)
    return value


def is_truthy(value: Any) -> bool:
    """Template truthiness.

    None, False, "", zero, NaN and empty collections are false.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, Decimal):
        return not (value.is_nan() or value.is_zero())
    if isinstance(value, float):
        return not (math.isnan(value) or value == 0)
    if isinstance(value, int):
        return value != 0
    if isinstance(value, (str, list, tuple, dict, Mapping)):
        return len(value) > 0
    return True


def to_float(value: Any) -> float:
    """Coerce a value to a double the way a scripting host does.

    None and "" become 0, numeric strings are parsed, everything else that is
    not a number becomes NaN.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        if NUMERIC_STRING.fullmatch(text):
            return float(text)
        if text in ("Infinity", "+Infinity", "-Infinity"):
            return -math.inf if text.startswith("-") else math.inf
        return math.nan
    if isinstance(value, (list, tuple)):
        return to_float(to_string(value))
    return math.nan


def _to_int32(value: Any) -> int:
    if _is_exact(value):
        if isinstance(value, Decimal) and not value.is_finite():
            return 0
        number = int(value)
    else:
        as_float = to_float(value)
        if not math.isfinite(as_float):
            return 0
        number = int(as_float)
    number &= 0xFFFFFFFF
    return number - 0x100000000 if number >= 0x80000000 else number


def _bitwise(op: str, left: Any, right: Any) -> float:
    a = _to_int32(left)
    b = _to_int32(right)
    if op == "&":
        result = a & b
    elif op == "|":
        result = a | b
    elif op == "^":
        result = a ^ b
    elif op == "<<":
        result = _to_int32(a << (b & 31))
    elif op == ">>":
        result = a >> (b & 31)
    else:
        result = (a & 0xFFFFFFFF) >> (b & 31)
    return float(result)


def to_string(value: Any) -> str:
    """Render a value for output.

    Numbers never use exponent notation for integers, booleans render as
    true/false, None as empty, lists comma-joined and mappings as JSON.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, int, float, Decimal)):
        return format_number(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_string(item) for item in value)
    if isinstance(value, Mapping):
        return to_json_text(value)
    return str(value)


def to_json_text(value: Any, indent: int | None = None) -> str:
    """Serialize a value as JSON; decimals keep their exact digits as strings."""
    return json.dumps(value, default=_json_default, ensure_ascii=False, indent=indent)


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return format_number(value)
    if isinstance(value, Mapping):
        return dict(value)
    return str(value)


# -----------------------------------------------------------------------------
# Data access
# -----------------------------------------------------------------------------


def _index(key: Any) -> int | None:
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float) and key.is_integer():
        return int(key)
    if isinstance(key, Decimal) and key.is_finite() and key == key.to_integral_value():
        return int(key)
    if isinstance(key, str) and key.isdigit():
        return int(key)
    return None


def get_member(obj: Any, key: Any) -> Any:
    """Read one member of a value; returns the _MISSING sentinel when absent."""
    if obj is None:
        return _MISSING

    if isinstance(obj, Mapping):
        candidates = [key]
        index = _index(key)
        if index is not None:
            candidates.extend([index, str(index)])
        for candidate in candidates:
            try:
                if candidate in obj:
                    return obj[candidate]
            except TypeError:
                continue
        return _MISSING

    if isinstance(obj, Sequence):
        index = _index(key)
        if index is None or not 0 <= index < len(obj):
            return _MISSING
        return obj[index]

    if isinstance(key, str) and key.isidentifier() and not key.startswith("_"):
        return getattr(obj, key, _MISSING)

    return _MISSING


def resolve_path(data: Any, path: str) -> Any:
    """Resolve a dotted path (e.g., "user.address.city", "items.0")."""
    current = data
    for segment in path.split("."):
        current = get_member(current, segment)
        if current is _MISSING:
            return _MISSING
    return current


# -----------------------------------------------------------------------------
# Convenience functions
# -----------------------------------------------------------------------------


def evaluate(
    expression: str,
    data: Mapping[str, Any] | None = None,
    methods: Mapping[str, Callable[..., Any]] | None = None,
    config: EngineConfig | None = None,
) -> Any:
    """Evaluate an expression string against data.

    Args:
        expression: The expression string to evaluate
        data: Variables available to the expression
        methods: Callables available through method-call syntax
        config: Optional engine settings

    Returns:
        The result of evaluating the expression

    Example:
        result = evaluate("a + b * 2", {"a": 1, "b": 3})
        # result = 7
    """
    config = config or DEFAULT_CONFIG
    tree = parse(expression, config)
    ctx = EvaluationContext(data=data or {}, methods=methods or {}, config=config)
    return Evaluator(ctx).evaluate(tree)
