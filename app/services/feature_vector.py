"""
MentorMatch - Feature vector extraction.

Turns a profile's open attribute map into a fixed-order numeric vector for
the key set carried by a matching request.  Vector length and key order come
from the request, never from the profile, so two profiles extracted under
the same request always produce vectors of equal length.

Per-kind encoding:
  number        -> (v - min) / (max - min) over the key's known range, clipped to [0, 1]
  bool          -> 1.0 / 0.0
  string array  -> min(len / 10, 1)
  string        -> 0.0
  missing/null  -> value chosen by ``MissingAttributePolicy``
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

import numpy as np
import structlog

from app.schemas.profile import (
    BoolValue,
    NullValue,
    NumberValue,
    Profile,
    StringArrayValue,
    StringValue,
)
from app.utils.errors import InvalidArgumentError

logger = structlog.get_logger("mentormatch.feature_vector")


class MissingAttributePolicy(str, Enum):
    """How an absent (or null) attribute is encoded.

    ``ZERO`` keeps the historical behaviour, which cannot tell "missing" from
    a genuine zero.  ``MIDPOINT`` places the unknown value mid-range and
    ``RAISE`` refuses to score incomplete profiles.
    """

    ZERO = "zero"
    MIDPOINT = "midpoint"
    RAISE = "raise"


class FeatureVectorExtractor:
    """Encode profiles as numeric vectors for a requested ordered key set."""

    # Known value ranges used for min/max normalisation.
    NUMERIC_RANGES: dict[str, tuple[float, float]] = {
        "age": (18.0, 80.0),
        "income": (0.0, 200000.0),
        "rating": (0.0, 5.0),
    }
    DEFAULT_RANGE: tuple[float, float] = (0.0, 100.0)
    ARRAY_SATURATION: int = 10

    def __init__(
        self,
        missing_policy: MissingAttributePolicy = MissingAttributePolicy.ZERO,
    ) -> None:
        self.missing_policy = MissingAttributePolicy(missing_policy)

    # ── Public API ────────────────────────────────────────────────────────

    def extract(self, profile: Profile, keys: Iterable[str]) -> np.ndarray:
        """Return ``profile`` encoded over ``keys`` (in the given order)."""
        return np.array(
            [self.encode(profile, key) for key in keys], dtype=float
        )

    def encode(self, profile: Profile, key: str) -> float:
        value = profile.attribute(key)

        if isinstance(value, NumberValue):
            return self.normalise(value.value, key)
        if isinstance(value, BoolValue):
            return 1.0 if value.value else 0.0
        if isinstance(value, StringArrayValue):
            return min(len(value.values) / self.ARRAY_SATURATION, 1.0)
        if isinstance(value, StringValue):
            return 0.0
        if isinstance(value, NullValue):
            return self._missing(profile.user_id, key)
        raise TypeError(f"Unhandled attribute kind: {type(value).__name__}")

    def normalise(self, value: float, key: str) -> float:
        low, high = self.NUMERIC_RANGES.get(key, self.DEFAULT_RANGE)
        scaled = (value - low) / (high - low)
        return float(min(1.0, max(0.0, scaled)))

    # ── Private helpers ───────────────────────────────────────────────────

    def _missing(self, user_id: str, key: str) -> float:
        if self.missing_policy is MissingAttributePolicy.RAISE:
            logger.warning("feature_vector_missing_attribute", user_id=user_id, key=key)
            raise InvalidArgumentError(
                f"Profile {user_id} has no value for attribute {key!r}"
            )
        if self.missing_policy is MissingAttributePolicy.MIDPOINT:
            return 0.5
        return 0.0
