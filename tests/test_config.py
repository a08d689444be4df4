"""Tests for engine configuration.

Tests cover:
- Defaults and validation
- Environment overrides
- Decimal context construction
"""

import dataclasses
from decimal import Decimal

import pytest

from curly.config import DEFAULT_CONFIG, EngineConfig

ENV_VARS = ("CURLY_MAX_NESTING_DEPTH", "CURLY_MAX_EXPRESSION_DEPTH", "CURLY_DECIMAL_PRECISION")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_defaults(self):
        assert DEFAULT_CONFIG.max_nesting_depth == 64
        assert DEFAULT_CONFIG.max_expression_depth == 128
        assert DEFAULT_CONFIG.decimal_precision == 28

    def test_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.max_nesting_depth = 1

    def test_rejects_non_positive_limits(self):
        with pytest.raises(ValueError, match="max_nesting_depth"):
            EngineConfig(max_nesting_depth=0)
        with pytest.raises(ValueError, match="decimal_precision"):
            EngineConfig(decimal_precision=-1)

    def test_decimal_context_does_not_trap(self):
        context = EngineConfig(decimal_precision=5).decimal_context()
        assert context.prec == 5
        assert context.divide(Decimal(1), Decimal(0)).is_infinite()
        assert context.divide(Decimal(0), Decimal(0)).is_nan()

    def test_decimal_context_is_fresh(self):
        assert DEFAULT_CONFIG.decimal_context() is not DEFAULT_CONFIG.decimal_context()


class TestFromEnv:
    """Tests for EngineConfig.from_env."""

    def test_defaults_without_env(self, clean_env):
        assert EngineConfig.from_env() == EngineConfig()

    def test_overrides(self, clean_env):
        clean_env.setenv("CURLY_MAX_NESTING_DEPTH", "5")
        clean_env.setenv("CURLY_DECIMAL_PRECISION", "50")
        config = EngineConfig.from_env()
        assert config.max_nesting_depth == 5
        assert config.max_expression_depth == 128
        assert config.decimal_precision == 50

    def test_blank_value_keeps_default(self, clean_env):
        clean_env.setenv("CURLY_MAX_EXPRESSION_DEPTH", "  ")
        assert EngineConfig.from_env().max_expression_depth == 128

    def test_invalid_value(self, clean_env):
        clean_env.setenv("CURLY_MAX_NESTING_DEPTH", "deep")
        with pytest.raises(ValueError, match="CURLY_MAX_NESTING_DEPTH must be an integer"):
            EngineConfig.from_env()

    def test_non_positive_value(self, clean_env):
        clean_env.setenv("CURLY_DECIMAL_PRECISION", "0")
        with pytest.raises(ValueError, match="must be positive"):
            EngineConfig.from_env()
