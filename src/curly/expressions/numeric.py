"""Numeric value model for the curly expression language.

Three representations exist side by side:

- FLOAT: host double, used for plain literals and float data
- INTEGER: arbitrary-precision ``int``
- DECIMAL: arbitrary-precision ``decimal.Decimal``

Arithmetic between two NumericValues never falls back to a lossy double. When
either operand carries a fractional component, or either operand is a decimal,
the operation runs on decimals; otherwise it runs on integers. Division always
produces a decimal.

Plain double arithmetic (``float_arithmetic``) is attempted first for float
operands. When both operands are integral and an operand or the result leaves
the safe-integer range of a double, the same operation is recomputed on the
arbitrary-precision path.
"""

from __future__ import annotations

import decimal
import math
import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable

from curly.config import DEFAULT_CONFIG

# Largest integer a double represents exactly (2**53 - 1)
MAX_SAFE_INTEGER = 9007199254740991

# Integer literals longer than this (sign excluded) are read as arbitrary-precision ints
MAX_FLOAT_LITERAL_DIGITS = 15

# Integer powers whose result would need more bits than this use the decimal path
MAX_INTEGER_POWER_BITS = 1_000_000

# Plain decimal notation only; no "_" separators and no non-ASCII digits
NUMERIC_STRING = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")

Number = float | int | Decimal


class NumericKind(Enum):
    """Active representation of a NumericValue."""

    FLOAT = "float"
    INTEGER = "integer"
    DECIMAL = "decimal"


@dataclass(frozen=True)
class NumericValue:
    """A number held in exactly one of the three representations.

    Usage:
        a = NumericValue.of(Decimal("0.1"))
        b = NumericValue.of(Decimal("0.2"))
        a.add(b)  # Decimal("0.3")
    """

    kind: NumericKind
    value: Number

    @classmethod
    def of(cls, value: Number | str) -> NumericValue:
        """Wrap a float, int, Decimal or decimal-looking string.

        Raises:
            TypeError: For booleans and non-numeric types
            ValueError: For strings that are not numbers
        """
        if isinstance(value, bool):
            raise TypeError("booleans are not numeric values")
        if isinstance(value, Decimal):
            return cls(NumericKind.DECIMAL, value)
        if isinstance(value, int):
            return cls(NumericKind.INTEGER, value)
        if isinstance(value, float):
            return cls(NumericKind.FLOAT, value)
        if isinstance(value, str):
            return cls._from_string(value)
        raise TypeError(f"Cannot build a numeric value from {type(value).__name__}")

    @classmethod
    def _from_string(cls, text: str) -> NumericValue:
        text = text.strip()
        if not NUMERIC_STRING.fullmatch(text):
            raise ValueError(f"Not a number: {text!r}")
        if "." in text or "e" in text.lower():
            return cls(NumericKind.DECIMAL, Decimal(text))
        return cls(NumericKind.INTEGER, int(text))

    # -------------------------------------------------------------------------
    # Inspection and conversion
    # -------------------------------------------------------------------------

    @property
    def has_fraction(self) -> bool:
        """True when the value cannot be held exactly by an integer."""
        if self.kind is NumericKind.INTEGER:
            return False
        if self.kind is NumericKind.FLOAT:
            return not (math.isfinite(self.value) and self.value.is_integer())
        return not (self.value.is_finite() and self.value == self.value.to_integral_value())

    def to_decimal(self) -> Decimal:
        if self.kind is NumericKind.DECIMAL:
            return self.value
        if self.kind is NumericKind.INTEGER:
            return Decimal(self.value)
        if math.isfinite(self.value):
            # Shortest round-trip text, so 0.1 becomes Decimal("0.1")
            return Decimal(repr(self.value))
        return Decimal(self.value)

    def to_integer(self) -> int:
        """Return the integer part (truncates any fraction)."""
        if self.kind is NumericKind.INTEGER:
            return self.value
        return int(self.value)

    def _use_decimal(self, other: NumericValue) -> bool:
        return (
            self.kind is NumericKind.DECIMAL
            or other.kind is NumericKind.DECIMAL
            or self.has_fraction
            or other.has_fraction
        )

    # -------------------------------------------------------------------------
    # Arithmetic (total: never raises)
    # -------------------------------------------------------------------------

    def add(self, other: NumericValue, context: decimal.Context | None = None) -> int | Decimal:
        if self._use_decimal(other):
            return _ctx(context).add(self.to_decimal(), other.to_decimal())
        return self.to_integer() + other.to_integer()

    def subtract(
        self, other: NumericValue, context: decimal.Context | None = None
    ) -> int | Decimal:
        if self._use_decimal(other):
            return _ctx(context).subtract(self.to_decimal(), other.to_decimal())
        return self.to_integer() - other.to_integer()

    def multiply(
        self, other: NumericValue, context: decimal.Context | None = None
    ) -> int | Decimal:
        if self._use_decimal(other):
            return _ctx(context).multiply(self.to_decimal(), other.to_decimal())
        return self.to_integer() * other.to_integer()

    def divide(self, other: NumericValue, context: decimal.Context | None = None) -> Decimal:
        # Always exact decimal division, never truncating integer division
        return _ctx(context).divide(self.to_decimal(), other.to_decimal())

    def modulo(self, other: NumericValue, context: decimal.Context | None = None) -> int | Decimal:
        """Remainder with the sign of the dividend."""
        if self._use_decimal(other) or other.to_integer() == 0:
            return _ctx(context).remainder(self.to_decimal(), other.to_decimal())
        dividend = self.to_integer()
        remainder = abs(dividend) % abs(other.to_integer())
        return -remainder if dividend < 0 else remainder

    def power(self, other: NumericValue, context: decimal.Context | None = None) -> int | Decimal:
        if not self._use_decimal(other):
            base = self.to_integer()
            exponent = other.to_integer()
            if exponent >= 0 and (
                base in (-1, 0, 1) or base.bit_length() * exponent <= MAX_INTEGER_POWER_BITS
            ):
                return base**exponent
        return _ctx(context).power(self.to_decimal(), other.to_decimal())

    def compare(self, other: NumericValue) -> int | None:
        """Return -1, 0 or 1; None when either side is NaN."""
        if not self._use_decimal(other):
            left, right = self.to_integer(), other.to_integer()
            return (left > right) - (left < right)
        left, right = self.to_decimal(), other.to_decimal()
        if left.is_nan() or right.is_nan():
            return None
        return (left > right) - (left < right)

    def __str__(self) -> str:
        return format_number(self.value)


def _ctx(context: decimal.Context | None) -> decimal.Context:
    return context if context is not None else DEFAULT_CONFIG.decimal_context()


_OPERATIONS: dict[str, Callable[..., int | Decimal]] = {
    "+": NumericValue.add,
    "-": NumericValue.subtract,
    "*": NumericValue.multiply,
    "/": NumericValue.divide,
    "%": NumericValue.modulo,
    "**": NumericValue.power,
}

ARITHMETIC_OPERATORS = frozenset(_OPERATIONS)


def arithmetic(
    operator: str,
    left: NumericValue,
    right: NumericValue,
    context: decimal.Context | None = None,
) -> int | Decimal:
    """Apply an arithmetic operator on the arbitrary-precision path."""
    try:
        operation = _OPERATIONS[operator]
    except KeyError:
        raise ValueError(f"Unknown arithmetic operator: {operator}") from None
    return operation(left, right, context)


# -----------------------------------------------------------------------------
# Plain double path
# -----------------------------------------------------------------------------


def _is_integral(value: float) -> bool:
    return math.isfinite(value) and value.is_integer()


def _host_float_op(operator: str, left: float, right: float) -> float:
    """Double arithmetic with scripting-host results instead of exceptions."""
    if operator == "+":
        return left + right
    if operator == "-":
        return left - right
    if operator == "*":
        return left * right
    if operator == "/":
        if right == 0:
            if left == 0 or math.isnan(left):
                return math.nan
            return math.copysign(math.inf, left) * math.copysign(1.0, right)
        return left / right
    if operator == "%":
        if right == 0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
            return math.nan
        return math.fmod(left, right)
    if operator == "**":
        try:
            return math.pow(left, right)
        except OverflowError:
            if left < 0 and _is_integral(right) and int(right) % 2 == 1:
                return -math.inf
            return math.inf
        except ValueError:
            return math.nan
    raise ValueError(f"Unknown arithmetic operator: {operator}")


def float_arithmetic(
    operator: str,
    left: float,
    right: float,
    context: decimal.Context | None = None,
) -> Number:
    """Compute with doubles, promoting to exact arithmetic on unsafe magnitudes."""
    result = _host_float_op(operator, left, right)
    if not (_is_integral(left) and _is_integral(right)):
        return result
    unsafe = (
        abs(left) > MAX_SAFE_INTEGER
        or abs(right) > MAX_SAFE_INTEGER
        or not math.isfinite(result)
        or (_is_integral(result) and abs(result) > MAX_SAFE_INTEGER)
    )
    if not unsafe:
        return result
    return arithmetic(
        operator,
        NumericValue(NumericKind.INTEGER, int(left)),
        NumericValue(NumericKind.INTEGER, int(right)),
        context,
    )


# -----------------------------------------------------------------------------
# Literals and stringification
# -----------------------------------------------------------------------------


def parse_number(text: str) -> tuple[str, Number]:
    """Classify a numeric literal.

    Returns:
        ("decimal", Decimal) when the text has a point or an exponent,
        ("bigint", int) for integers with more than 15 digits,
        ("number", float) otherwise.
    """
    if "." in text or "e" in text.lower():
        return "decimal", Decimal(text)
    digits = text.lstrip("+-")
    if len(digits) > MAX_FLOAT_LITERAL_DIGITS:
        return "bigint", int(text)
    return "number", float(text)


_EXPONENT_PADDING = re.compile(r"e([+-])0*(\d)")


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return _EXPONENT_PADDING.sub(r"e\1\2", repr(value))


def _format_decimal(value: Decimal) -> str:
    if value.is_nan():
        return "NaN"
    if value.is_infinite():
        return "Infinity" if value > 0 else "-Infinity"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def format_number(value: Number | NumericValue) -> str:
    """Render a number without exponent notation for integers.

    Non-integral decimals keep every retained digit (trailing zeros trimmed).
    """
    if isinstance(value, NumericValue):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal):
        return _format_decimal(value)
    return _format_float(value)
