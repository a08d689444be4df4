"""Tests for the numeric value model.

Tests cover:
- Literal classification (number, bigint, decimal)
- Exact integer and decimal arithmetic
- Host double arithmetic and promotion past the safe-integer range
- Number formatting
"""

import math
from decimal import Decimal

import pytest

from curly.config import EngineConfig
from curly.expressions.numeric import (
    MAX_SAFE_INTEGER,
    NumericKind,
    NumericValue,
    arithmetic,
    float_arithmetic,
    format_number,
    parse_number,
)


# =============================================================================
# Literal Classification
# =============================================================================


class TestParseNumber:
    """Tests for numeric literal classification."""

    def test_short_integer_is_plain_number(self):
        assert parse_number("123") == ("number", 123.0)

    def test_fifteen_digits_stay_plain(self):
        data_type, value = parse_number("123456789012345")
        assert data_type == "number"
        assert isinstance(value, float)

    def test_sixteen_digits_become_bigint(self):
        assert parse_number("1234567890123456") == ("bigint", 1234567890123456)

    def test_sign_does_not_count_as_digit(self):
        assert parse_number("-123456789012345") == ("number", -123456789012345.0)
        assert parse_number("-1234567890123456") == ("bigint", -1234567890123456)

    def test_fraction_is_decimal(self):
        data_type, value = parse_number("0.1")
        assert data_type == "decimal"
        assert value == Decimal("0.1")

    def test_exponent_is_decimal(self):
        data_type, value = parse_number("1e5")
        assert data_type == "decimal"
        assert value == Decimal("100000")


# =============================================================================
# NumericValue
# =============================================================================


class TestNumericValue:
    """Tests for wrapping and exact arithmetic."""

    def test_of_picks_kind(self):
        assert NumericValue.of(1).kind is NumericKind.INTEGER
        assert NumericValue.of(1.5).kind is NumericKind.FLOAT
        assert NumericValue.of(Decimal("1.5")).kind is NumericKind.DECIMAL

    def test_of_string(self):
        assert NumericValue.of("12").kind is NumericKind.INTEGER
        assert NumericValue.of("1.5").kind is NumericKind.DECIMAL

    def test_of_rejects_bool(self):
        with pytest.raises(TypeError):
            NumericValue.of(True)

    def test_of_rejects_text(self):
        with pytest.raises(ValueError):
            NumericValue.of("abc")

    @pytest.mark.parametrize("text", ["1_000", "١٢", "Infinity", "0x10", ""])
    def test_of_rejects_non_decimal_spellings(self, text):
        with pytest.raises(ValueError, match="Not a number"):
            NumericValue.of(text)

    def test_of_string_forms(self):
        assert NumericValue.of(" -12 ").value == -12
        assert NumericValue.of(".5").value == Decimal("0.5")
        assert NumericValue.of("1e3").kind is NumericKind.DECIMAL

    def test_decimal_addition_is_exact(self):
        result = NumericValue.of(Decimal("0.1")).add(NumericValue.of(Decimal("0.2")))
        assert result == Decimal("0.3")

    def test_integer_multiplication_is_exact(self):
        result = NumericValue.of(10**12).multiply(NumericValue.of(10**12))
        assert result == 10**24
        assert format_number(result) == "1000000000000000000000000"

    def test_division_is_decimal(self):
        result = NumericValue.of(100).divide(NumericValue.of(3))
        assert isinstance(result, Decimal)
        assert format_number(result).startswith("33.333")

    def test_division_by_zero_does_not_raise(self):
        assert NumericValue.of(1).divide(NumericValue.of(0)).is_infinite()
        assert NumericValue.of(0).divide(NumericValue.of(0)).is_nan()

    def test_modulo_keeps_sign_of_dividend(self):
        assert NumericValue.of(-7).modulo(NumericValue.of(3)) == -1
        assert NumericValue.of(7).modulo(NumericValue.of(-3)) == 1

    def test_decimal_modulo(self):
        assert NumericValue.of(Decimal("7.5")).modulo(NumericValue.of(2)) == Decimal("1.5")

    def test_modulo_by_zero_is_nan(self):
        assert NumericValue.of(7).modulo(NumericValue.of(0)).is_nan()

    def test_integer_power(self):
        assert NumericValue.of(2).power(NumericValue.of(10)) == 1024

    def test_negative_exponent_uses_decimal(self):
        assert NumericValue.of(2).power(NumericValue.of(-1)) == Decimal("0.5")

    def test_huge_power_overflows_to_infinity(self):
        result = NumericValue.of(10).power(NumericValue.of(10**7))
        assert isinstance(result, Decimal)
        assert result.is_infinite()

    def test_compare_across_kinds(self):
        assert NumericValue.of(1.5).compare(NumericValue.of(Decimal("1.5"))) == 0
        assert NumericValue.of(2).compare(NumericValue.of(Decimal("1.5"))) == 1
        assert NumericValue.of(1).compare(NumericValue.of(2)) == -1

    def test_compare_with_nan(self):
        assert NumericValue.of(math.nan).compare(NumericValue.of(1)) is None

    def test_precision_follows_context(self):
        context = EngineConfig(decimal_precision=5).decimal_context()
        result = NumericValue.of(1).divide(NumericValue.of(3), context)
        assert result == Decimal("0.33333")

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            arithmetic("<<", NumericValue.of(1), NumericValue.of(2))


# =============================================================================
# Host Double Arithmetic
# =============================================================================


class TestFloatArithmetic:
    """Tests for double arithmetic and safe-integer promotion."""

    def test_small_values_stay_float(self):
        result = float_arithmetic("+", 1.0, 2.0)
        assert result == 3.0
        assert isinstance(result, float)

    def test_large_product_is_promoted(self):
        result = float_arithmetic("*", 1e12, 1e12)
        assert result == 10**24
        assert isinstance(result, int)

    def test_large_power_is_promoted(self):
        assert format_number(float_arithmetic("**", 10.0, 20.0)) == "100000000000000000000"

    def test_result_at_safe_limit_stays_float(self):
        result = float_arithmetic("+", float(MAX_SAFE_INTEGER - 1), 1.0)
        assert isinstance(result, float)

    def test_fractional_operands_stay_float(self):
        assert float_arithmetic("%", 7.5, 2.0) == 1.5
        assert float_arithmetic("-", -1.0, 2.0) == -3.0

    def test_division_by_zero(self):
        assert format_number(float_arithmetic("/", 1.0, 0.0)) == "Infinity"
        assert format_number(float_arithmetic("/", 0.0, 0.0)) == "NaN"

    def test_fractional_division_by_zero(self):
        assert float_arithmetic("/", -1.5, 0.0) == -math.inf

    def test_modulo_by_zero_is_nan(self):
        assert math.isnan(float_arithmetic("%", 1.5, 0.0))


# =============================================================================
# Formatting
# =============================================================================


class TestFormatNumber:
    """Tests for number stringification."""

    def test_integral_float_has_no_fraction(self):
        assert format_number(3.0) == "3"
        assert format_number(-0.0) == "0"

    def test_float_fraction(self):
        assert format_number(1.5) == "1.5"

    def test_float_exponent_form(self):
        assert format_number(1e21) == "1e+21"
        assert format_number(1e-7) == "1e-7"

    def test_decimal_trims_trailing_zeros(self):
        assert format_number(Decimal("1.500")) == "1.5"
        assert format_number(Decimal("11.0")) == "11"

    def test_decimal_never_uses_exponent(self):
        assert format_number(Decimal("1E+3")) == "1000"

    def test_decimal_negative_zero(self):
        assert format_number(Decimal("-0.0")) == "0"

    def test_special_values(self):
        assert format_number(math.nan) == "NaN"
        assert format_number(-math.inf) == "-Infinity"
        assert format_number(Decimal("Infinity")) == "Infinity"

    def test_booleans(self):
        assert format_number(True) == "true"
        assert format_number(False) == "false"

    def test_numeric_value(self):
        assert format_number(NumericValue.of(42)) == "42"
