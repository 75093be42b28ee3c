"""Similarity threshold configuration.

The engine splits similarity scores into three zones: a definite hit at or
above ``high_threshold``, a definite miss below ``low_threshold``, and a gray
zone in between that may be settled by asking the provider's judge.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from promptcache.constants import (
    DEFAULT_GRAY_ZONE_VERIFICATION,
    DEFAULT_HIGH_THRESHOLD,
    DEFAULT_LOW_THRESHOLD,
)
from promptcache.exception.api_exceptions import InvalidConfigurationError

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"true", "1", "yes"}


def _parse_threshold(value: Any, default: float, name: str) -> float:
    """Parse a threshold in (0, 1], returning ``default`` for anything else."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default

    try:
        parsed = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparsable %s=%r, using %s", name, value, default)
        return default

    if not 0 < parsed <= 1.0:
        logger.warning("Ignoring out-of-range %s=%r, using %s", name, value, default)
        return default

    return parsed


def _parse_flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in _TRUE_VALUES


@dataclass(frozen=True)
class ThresholdConfig:
    """Immutable similarity policy for one engine instance.

    Attributes:
        high_threshold: Scores at or above this are definite hits
        low_threshold: Scores below this are definite misses
        gray_zone_verification: Ask the provider's judge for gray-zone scores
    """

    high_threshold: float = DEFAULT_HIGH_THRESHOLD
    low_threshold: float = DEFAULT_LOW_THRESHOLD
    gray_zone_verification: bool = DEFAULT_GRAY_ZONE_VERIFICATION

    def __post_init__(self) -> None:
        if not self.high_threshold > self.low_threshold:
            raise InvalidConfigurationError(
                f"high_threshold ({self.high_threshold}) must be greater than "
                f"low_threshold ({self.low_threshold})",
                field="high_threshold",
            )

    @classmethod
    def resolve(
        cls,
        high: Optional[Any] = None,
        low: Optional[Any] = None,
        gray_zone_verification: Optional[Any] = None,
    ) -> "ThresholdConfig":
        """Build a config from raw values, falling back to defaults.

        Unset or unparsable thresholds fall back to their own default. If the
        resulting pair violates high > low, both revert to the defaults.

        Args:
            high: Raw high threshold (str, float or None)
            low: Raw low threshold (str, float or None)
            gray_zone_verification: Raw flag ("true", "1", "yes" enable)

        Returns:
            A valid ThresholdConfig
        """
        high_value = _parse_threshold(high, DEFAULT_HIGH_THRESHOLD, "high_threshold")
        low_value = _parse_threshold(low, DEFAULT_LOW_THRESHOLD, "low_threshold")
        verify = _parse_flag(gray_zone_verification, DEFAULT_GRAY_ZONE_VERIFICATION)

        if high_value <= low_value:
            logger.warning(
                "Invalid threshold ordering high=%s <= low=%s, "
                "reverting both to defaults high=%s low=%s",
                high_value,
                low_value,
                DEFAULT_HIGH_THRESHOLD,
                DEFAULT_LOW_THRESHOLD,
            )
            high_value = DEFAULT_HIGH_THRESHOLD
            low_value = DEFAULT_LOW_THRESHOLD

        return cls(
            high_threshold=high_value,
            low_threshold=low_value,
            gray_zone_verification=verify,
        )
