"""Tests for the method registry and built-in methods.

Tests cover:
- Registration, decorator form and name validation
- Documentation export
- Built-in string, format, collection and math methods
"""

from decimal import Decimal

import pytest

from curly.expressions.builtins import default_methods, register_builtins
from curly.expressions.evaluator import evaluate, to_string
from curly.expressions.methods import MethodCategory, MethodDefinition, MethodRegistry


@pytest.fixture
def registry():
    return MethodRegistry()


@pytest.fixture
def builtins():
    return default_methods()


def call(expression, data=None):
    return evaluate(expression, data, default_methods())


# =============================================================================
# Registry
# =============================================================================


class TestMethodRegistry:
    """Tests for MethodRegistry."""

    def test_starts_empty(self, registry):
        assert len(registry) == 0
        assert "upper" not in registry

    def test_add_and_call(self, registry):
        registry.add("double", lambda x: x * 2)
        assert registry["double"](4) == 8
        assert list(registry) == ["double"]

    def test_decorator_uses_function_name(self, registry):
        @registry.method(category=MethodCategory.MATH)
        def triple(x):
            """Multiply by three."""
            return x * 3

        definition = registry.get_definition("triple")
        assert definition.category is MethodCategory.MATH
        assert definition.description == "Multiply by three."
        assert triple(2) == 6

    def test_decorator_with_explicit_name(self, registry):
        @registry.method("shout")
        def _shout(value):
            return f"{value}!"

        assert evaluate("shout('hi')", methods=registry) == "hi!"

    def test_register_replaces(self, registry):
        registry.add("f", lambda: 1)
        registry.add("f", lambda: 2)
        assert registry["f"]() == 2
        assert len(registry) == 1

    def test_dotted_name_is_allowed(self, registry):
        registry.add("str.upper", str.upper)
        assert evaluate("str.upper('a')", methods=registry) == "A"

    def test_invalid_names(self, registry):
        for name in ("", "1abc", "a-b", "a..b"):
            with pytest.raises(ValueError, match="Invalid method name"):
                registry.add(name, len)

    def test_not_callable(self, registry):
        with pytest.raises(ValueError, match="not callable"):
            registry.register(
                MethodDefinition("x", "", MethodCategory.CUSTOM, implementation="nope")
            )

    def test_remove_and_clear(self, registry):
        registry.add("a", len)
        registry.add("b", len)
        registry.remove("a")
        assert list(registry) == ["b"]
        registry.clear()
        assert len(registry) == 0

    def test_remove_unknown(self, registry):
        with pytest.raises(KeyError):
            registry.remove("missing")

    def test_unknown_definition(self, registry):
        with pytest.raises(ValueError, match="Unknown method: missing"):
            registry.get_definition("missing")

    def test_copy_is_independent(self, builtins):
        clone = builtins.copy()
        clone.remove("upper")
        assert "upper" in builtins
        assert "upper" not in clone

    def test_plain_dict_works_as_methods(self):
        assert evaluate("greet(name)", {"name": "Ada"}, {"greet": lambda n: "hi " + n}) == "hi Ada"


# =============================================================================
# Documentation
# =============================================================================


class TestDocumentation:
    """Tests for registry introspection."""

    def test_list_by_category(self, builtins):
        names = [d.name for d in builtins.list_by_category(MethodCategory.STRING)]
        assert names == ["lower", "upper", "capitalize", "trim", "trimStart", "trimEnd"]

    def test_export_documentation(self, builtins):
        docs = builtins.export_documentation()
        assert docs["methods"]["round"]["category"] == "math"
        assert docs["methods"]["join"]["examples"] == ['join(tags, ", ")']
        assert {d["name"] for d in docs["byCategory"]["collection"]} == {
            "len", "empty", "first", "last",
        }

    def test_register_builtins_into_existing(self, registry):
        registry.add("custom", len)
        register_builtins(registry)
        assert "custom" in registry
        assert "upper" in registry

    def test_definitions_order(self, builtins):
        assert builtins.definitions()[0].name == "lower"


# =============================================================================
# Built-in Methods
# =============================================================================


class TestStringMethods:
    """Tests for string built-ins."""

    def test_case(self):
        assert call("upper(name)", {"name": "ada"}) == "ADA"
        assert call("lower('ADA')") == "ada"
        assert call("capitalize('hello world')") == "Hello world"

    def test_trim(self):
        assert call("trim('  a  ')") == "a"
        assert call("trimStart('  a  ')") == "a  "
        assert call("trimEnd('  a  ')") == "  a"

    def test_numbers_are_stringified(self):
        assert call("upper(1.5)") == "1.5"


class TestFormatMethods:
    """Tests for format built-ins."""

    def test_format(self):
        assert call("format('{0} of {1}', 1, 3)") == "1 of 3"

    def test_format_keeps_unmatched_placeholders(self):
        assert call("format('{0} {1}', 'a')") == "a {1}"

    def test_join(self):
        assert call("join(items, ', ')", {"items": ["a", "b"]}) == "a, b"
        assert call("join(items)", {"items": [1, 2]}) == "1,2"

    def test_json(self):
        assert call("json(user)", {"user": {"name": "Ada", "score": Decimal("9.50")}}) == (
            '{"name": "Ada", "score": "9.5"}'
        )


class TestCollectionMethods:
    """Tests for collection built-ins."""

    def test_len(self):
        assert call("len('abc')") == 3
        assert call("len(items)", {"items": [1, 2]}) == 2
        assert call("len(5)") == 0

    def test_empty(self):
        assert call("empty('  ')") is True
        assert call("empty(items)", {"items": []}) is True
        assert call("empty(items)", {"items": [0]}) is False

    def test_first_and_last(self):
        data = {"items": ["a", "b", "c"]}
        assert call("first(items)", data) == "a"
        assert call("last(items)", data) == "c"

    def test_first_of_empty_renders_empty(self):
        assert call("first(items)", {"items": []}) == ""


class TestMathMethods:
    """Tests for math built-ins."""

    def test_abs(self):
        assert call("abs(-3)") == 3
        assert call("abs(a)", {"a": Decimal("-1.5")}) == Decimal("1.5")

    def test_min_max(self):
        assert call("min(3, 1, 2)") == 1
        assert call("max(prices)", {"prices": [Decimal("1.5"), 4, 2.5]}) == 4

    def test_min_max_skip_empty(self):
        assert call("min(a, 5)", {"a": ""}) == 5
        assert call("max(items)", {"items": []}) == ""

    def test_round_half_up(self):
        assert to_string(call("round(2.5)")) == "3"
        assert call("round(price, 2)", {"price": Decimal("1.005")}) == Decimal("1.01")

    def test_round_float(self):
        assert call("round(x, 2)", {"x": 2.675}) == 2.68

    def test_round_long_decimal(self):
        value = Decimal("12345678901234567890123456789")
        assert call("round(x, 2)", {"x": value}) == value
        assert call("round(x, 2)", {"x": Decimal("1234567890123456789012345678.905")}) == (
            Decimal("1234567890123456789012345678.91")
        )
        assert call("round(12345678901234567890123456789, -3)") == (
            12345678901234567890123457000
        )

    def test_round_large_float_keeps_float(self):
        result = call("round(x, 2)", {"x": 1e30})
        assert isinstance(result, float)
        assert to_string(result) == to_string(1e30)

    def test_round_negative_digits(self):
        assert call("round(1234, -2)") == 1200

    def test_round_integer(self):
        assert call("round(7)") == 7
