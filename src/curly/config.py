"""Engine configuration."""

from __future__ import annotations

import decimal
import os
from dataclasses import dataclass


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class EngineConfig:
    """Limits and numeric settings shared by the compiler and the evaluator.

    Attributes:
        max_nesting_depth: Deepest allowed nesting of if/for blocks
        max_expression_depth: Deepest allowed bracket nesting and expression tree height
        decimal_precision: Significant digits kept by decimal arithmetic
    """

    max_nesting_depth: int = 64
    max_expression_depth: int = 128
    decimal_precision: int = 28

    def __post_init__(self) -> None:
        for name in ("max_nesting_depth", "max_expression_depth", "decimal_precision"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_env(cls) -> EngineConfig:
        """Create config from environment variables.

        Reads CURLY_MAX_NESTING_DEPTH, CURLY_MAX_EXPRESSION_DEPTH and
        CURLY_DECIMAL_PRECISION; unset variables keep the defaults.
        """
        defaults = cls()
        return cls(
            max_nesting_depth=_int_from_env(
                "CURLY_MAX_NESTING_DEPTH", defaults.max_nesting_depth
            ),
            max_expression_depth=_int_from_env(
                "CURLY_MAX_EXPRESSION_DEPTH", defaults.max_expression_depth
            ),
            decimal_precision=_int_from_env(
                "CURLY_DECIMAL_PRECISION", defaults.decimal_precision
            ),
        )

    def decimal_context(self) -> decimal.Context:
        """Build a decimal context that never traps.

        Division by zero, overflow and invalid operations produce Infinity or
        NaN instead of raising. A fresh context is returned on every call.
        """
        return decimal.Context(prec=self.decimal_precision, traps=[])


DEFAULT_CONFIG = EngineConfig()
