"""
Unit tests for config value validation.
"""

import pytest

from queuectl.constants import DEFAULT_BACKOFF_BASE, DEFAULT_MAX_RETRIES
from queuectl.errors import ConfigValidationError
from queuectl.queue.config_values import (
    coerce_backoff_base,
    coerce_max_retries,
    validate_config_value,
)


class TestValidateConfigValue:
    """Tests for validate_config_value."""

    @pytest.mark.parametrize(
        "value, expected", [(5, 5), ("4", 4), (0, 0), (2.0, 2), (2**31 - 1, 2**31 - 1)]
    )
    def test_max_retries_accepted(self, value, expected):
        assert validate_config_value("max_retries", value) == expected

    @pytest.mark.parametrize("value", [-1, "many", True, 2.5, None, 2**31, 2**63, float("inf")])
    def test_max_retries_rejected(self, value):
        with pytest.raises(ConfigValidationError):
            validate_config_value("max_retries", value)

    @pytest.mark.parametrize("value, expected", [(2, 2.0), ("3", 3.0), (1, 1.0), (1.5, 1.5)])
    def test_backoff_base_accepted(self, value, expected):
        assert validate_config_value("backoff_base", value) == expected

    @pytest.mark.parametrize(
        "value", [0, 0.5, -2, "fast", False, None, float("nan"), float("inf"), "inf", 10**400]
    )
    def test_backoff_base_rejected(self, value):
        with pytest.raises(ConfigValidationError):
            validate_config_value("backoff_base", value)

    def test_unknown_key_passes_through(self):
        value = {"nested": [1, 2, 3]}
        assert validate_config_value("dashboard_theme", value) is value


class TestCoercion:
    """Stored values that went bad fall back to defaults."""

    def test_coerce_valid_values(self):
        assert coerce_max_retries("7") == 7
        assert coerce_backoff_base(3) == 3.0

    def test_coerce_invalid_values(self):
        assert coerce_max_retries("lots") == DEFAULT_MAX_RETRIES
        assert coerce_backoff_base(0) == float(DEFAULT_BACKOFF_BASE)
        assert coerce_backoff_base(None) == float(DEFAULT_BACKOFF_BASE)
        assert coerce_max_retries(2**63) == DEFAULT_MAX_RETRIES
