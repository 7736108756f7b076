"""
Validation and coercion for config store values.

Keys other than the known policy keys are stored as given.
"""

import logging
import math
from typing import Any

from queuectl.constants import (
    CONFIG_BACKOFF_BASE,
    CONFIG_MAX_RETRIES,
    DEFAULT_BACKOFF_BASE,
    DEFAULT_MAX_RETRIES,
    MAX_COUNTER_VALUE,
)
from queuectl.errors import ConfigValidationError

logger = logging.getLogger(__name__)


def _as_max_retries(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not a retry count")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("retry count must be a whole number")
    number = int(value)
    if number < 0:
        raise ValueError("retry count must be >= 0")
    if number > MAX_COUNTER_VALUE:
        raise ValueError(f"retry count must be <= {MAX_COUNTER_VALUE}")
    return number


def _as_backoff_base(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("boolean is not a backoff base")
    number = float(value)
    if not number >= 1:
        raise ValueError("backoff base must be >= 1")
    if not math.isfinite(number):
        raise ValueError("backoff base must be finite")
    return number


_VALIDATORS = {
    CONFIG_MAX_RETRIES: _as_max_retries,
    CONFIG_BACKOFF_BASE: _as_backoff_base,
}


def validate_config_value(key: str, value: Any) -> Any:
    """
    Check a value before it is written to the config store.

    Args:
        key: Config key.
        value: Proposed value.

    Returns:
        The normalized value to store.

    Raises:
        ConfigValidationError: If a known key gets an unusable value.
    """
    validator = _VALIDATORS.get(key)
    if validator is None:
        return value
    try:
        return validator(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigValidationError(f"Invalid value for {key!r}: {value!r} ({e})") from e


def coerce_max_retries(value: Any) -> int:
    """Stored max_retries, or the default when the stored value is unusable."""
    try:
        return _as_max_retries(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(
            "Ignoring invalid stored config value",
            extra={"key": CONFIG_MAX_RETRIES, "value": repr(value)},
        )
        return DEFAULT_MAX_RETRIES


def coerce_backoff_base(value: Any) -> float:
    """Stored backoff_base, or the default when the stored value is unusable."""
    try:
        return _as_backoff_base(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(
            "Ignoring invalid stored config value",
            extra={"key": CONFIG_BACKOFF_BASE, "value": repr(value)},
        )
        return float(DEFAULT_BACKOFF_BASE)
