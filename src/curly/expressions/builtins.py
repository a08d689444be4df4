"""Built-in template methods.

Nothing is registered implicitly; call ``default_methods()`` (or
``register_builtins`` on an existing registry) and pass the result when
rendering.

Categories:
- String: lower, upper, capitalize, trim, trimStart, trimEnd
- Format: format, join, json
- Collection: len, empty, first, last
- Math: abs, min, max, round
"""

import math
import re
from collections.abc import Mapping
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Any

from curly.expressions.evaluator import to_float, to_json_text, to_string
from curly.expressions.methods import MethodCategory, MethodDefinition, MethodRegistry


def default_methods() -> MethodRegistry:
    """Return a new registry holding every built-in method."""
    registry = MethodRegistry()
    register_builtins(registry)
    return registry


def register_builtins(registry: MethodRegistry) -> MethodRegistry:
    """Register all built-in methods with a registry and return it."""
    _register_string_methods(registry)
    _register_format_methods(registry)
    _register_collection_methods(registry)
    _register_math_methods(registry)
    return registry


# -----------------------------------------------------------------------------
# String Methods
# -----------------------------------------------------------------------------


def _lower(value: Any) -> str:
    return to_string(value).lower()


def _upper(value: Any) -> str:
    return to_string(value).upper()


def _capitalize(value: Any) -> str:
    """Uppercase the first character, leaving the rest untouched."""
    text = to_string(value)
    return text[:1].upper() + text[1:]


def _trim(value: Any) -> str:
    return to_string(value).strip()


def _trim_start(value: Any) -> str:
    return to_string(value).lstrip()


def _trim_end(value: Any) -> str:
    return to_string(value).rstrip()


def _register_string_methods(registry: MethodRegistry) -> None:
    for name, implementation, description, example in (
        ("lower", _lower, "Convert to lowercase", "lower(name)"),
        ("upper", _upper, "Convert to uppercase", "upper(code)"),
        ("capitalize", _capitalize, "Uppercase the first character", "capitalize(title)"),
        ("trim", _trim, "Remove whitespace from both ends", "trim(input)"),
        ("trimStart", _trim_start, "Remove leading whitespace", "trimStart(line)"),
        ("trimEnd", _trim_end, "Remove trailing whitespace", "trimEnd(line)"),
    ):
        registry.register(
            MethodDefinition(
                name=name,
                description=description,
                category=MethodCategory.STRING,
                implementation=implementation,
                examples=[example],
            )
        )


# -----------------------------------------------------------------------------
# Format Methods
# -----------------------------------------------------------------------------

PLACEHOLDER_PATTERN = re.compile(r"\{(\d+)\}")


def _format(template: Any, *args: Any) -> str:
    """Replace {0}, {1}, ... with the rendered arguments.

    Placeholders without a matching argument are left as they are.
    """

    def substitute(match: re.Match) -> str:
        index = int(match.group(1))
        if index < len(args):
            return to_string(args[index])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(substitute, to_string(template))


def _join(items: Any, separator: Any = ",") -> str:
    if not isinstance(items, (list, tuple)):
        return to_string(items)
    return to_string(separator).join(to_string(item) for item in items)


def _json(value: Any, indent: int | None = None) -> str:
    return to_json_text(value, indent=indent)


def _register_format_methods(registry: MethodRegistry) -> None:
    registry.register(
        MethodDefinition(
            name="format",
            description="Substitute positional {n} placeholders",
            category=MethodCategory.FORMAT,
            implementation=_format,
            examples=['format("{0} of {1}", page, pages)'],
        )
    )
    registry.register(
        MethodDefinition(
            name="join",
            description="Join list items with a separator (default ',')",
            category=MethodCategory.FORMAT,
            implementation=_join,
            examples=['join(tags, ", ")'],
        )
    )
    registry.register(
        MethodDefinition(
            name="json",
            description="Serialize a value as JSON",
            category=MethodCategory.FORMAT,
            implementation=_json,
            examples=["json(user)", "json(config, 2)"],
        )
    )


# -----------------------------------------------------------------------------
# Collection Methods
# -----------------------------------------------------------------------------


def _len(value: Any) -> int:
    """Return length of string, list or mapping; 0 for anything else."""
    if isinstance(value, (str, list, tuple, Mapping)):
        return len(value)
    return 0


def _empty(value: Any) -> bool:
    """Return True for None, blank strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


def _first(value: Any) -> Any:
    if isinstance(value, (str, list, tuple)) and value:
        return value[0]
    return None


def _last(value: Any) -> Any:
    if isinstance(value, (str, list, tuple)) and value:
        return value[-1]
    return None


def _register_collection_methods(registry: MethodRegistry) -> None:
    for name, implementation, description, example in (
        ("len", _len, "Length of a string, list or mapping", "len(items) > 0"),
        ("empty", _empty, "True for blank strings and empty collections", "empty(notes)"),
        ("first", _first, "First element of a list or string", "first(items)"),
        ("last", _last, "Last element of a list or string", "last(items)"),
    ):
        registry.register(
            MethodDefinition(
                name=name,
                description=description,
                category=MethodCategory.COLLECTION,
                implementation=implementation,
                examples=[example],
            )
        )


# -----------------------------------------------------------------------------
# Math Methods
# -----------------------------------------------------------------------------


def _numeric(value: Any) -> int | float | Decimal:
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return value
    return to_float(value)


def _abs(value: Any) -> int | float | Decimal:
    return abs(_numeric(value))


def _flatten(args: tuple[Any, ...]) -> list[Any]:
    values: list[Any] = []
    for arg in args:
        if isinstance(arg, (list, tuple)):
            values.extend(arg)
        elif arg is not None and arg != "":
            values.append(arg)
    return [_numeric(v) for v in values]


def _min(*args: Any) -> Any:
    """Smallest of the arguments (lists are expanded), ignoring empty values."""
    values = _flatten(args)
    if not values:
        return None
    return min(values, key=to_float)


def _max(*args: Any) -> Any:
    """Largest of the arguments (lists are expanded), ignoring empty values."""
    values = _flatten(args)
    if not values:
        return None
    return max(values, key=to_float)


def _quantize(number: Decimal, digits: int) -> Decimal:
    # Precision covers every digit of the quantized result
    context = Context(prec=max(28, number.adjusted() + digits + 2), traps=[])
    rounded = number.quantize(Decimal(1).scaleb(-digits, context), ROUND_HALF_UP, context)
    return number if rounded.is_nan() else rounded


def _round(value: Any, digits: int = 0) -> int | float | Decimal:
    """Round half away from zero to the given number of decimal places."""
    number = _numeric(value)
    if isinstance(number, int):
        if digits >= 0:
            return number
        return int(_quantize(Decimal(number), digits))
    if isinstance(number, Decimal):
        if not number.is_finite():
            return number
        return _quantize(number, digits)
    if not math.isfinite(number):
        return number
    return float(_quantize(Decimal(repr(number)), digits))


def _register_math_methods(registry: MethodRegistry) -> None:
    for name, implementation, description, example in (
        ("abs", _abs, "Absolute value", "abs(balance)"),
        ("min", _min, "Smallest value", "min(a, b, c)"),
        ("max", _max, "Largest value", "max(prices)"),
        ("round", _round, "Round half away from zero", "round(price, 2)"),
    ):
        registry.register(
            MethodDefinition(
                name=name,
                description=description,
                category=MethodCategory.MATH,
                implementation=implementation,
                examples=[example],
            )
        )
