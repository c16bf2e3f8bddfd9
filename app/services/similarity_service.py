"""
MentorMatch - Feature-vector similarity strategies.

Two interchangeable strategies score a (source, target) profile pair under a
matching request:

  cosine-similarity   s = dot(a, b) / (|a| |b|)        (0 if either |x| = 0)
  euclidean-distance  s = 1 / (1 + sqrt(sum((a_i - b_i)^2)))

Both then apply the average-weight adjustment ``min(1, s * sum(w) / len(w))``
(skipped when the weights sum to zero), clamp to [0, 1] and round score and
confidence to two decimals.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import structlog

from app.schemas.match import MatchingCriteria, MatchResult
from app.schemas.profile import NumberValue, Profile
from app.services.feature_vector import FeatureVectorExtractor
from app.utils.errors import InvalidArgumentError

logger = structlog.get_logger("mentormatch.similarity_service")


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


class SimilarityStrategy:
    """Shared scoring contract for the feature-vector strategies.

    Subclasses set ``name`` and ``SCORE_BANDS`` and implement
    ``_similarity``, ``_confidence`` and ``_metadata``.
    """

    name: str = ""

    # (exclusive lower bound, reason) checked in order; the last is the fallback.
    SCORE_BANDS: list[tuple[float, str]] = []

    def __init__(self, extractor: FeatureVectorExtractor | None = None) -> None:
        self.extractor = extractor or FeatureVectorExtractor()

    # ── Public API ────────────────────────────────────────────────────────

    def score(
        self,
        source: Profile,
        target: Profile,
        criteria: MatchingCriteria,
    ) -> MatchResult:
        """Score ``target`` against ``source`` over the request's preference keys."""
        keys = list(criteria.preferences.keys())
        source_vector = self.extractor.extract(source, keys)
        target_vector = self.extractor.extract(target, keys)

        similarity = self._similarity(source_vector, target_vector)
        weighted = _clamp(self.apply_weights(similarity, criteria.weights))
        confidence = _clamp(self._confidence(source_vector, target_vector))

        return MatchResult(
            target_id=target.user_id,
            score=round(weighted, 2),
            confidence=round(confidence, 2),
            reasons=self.generate_reasons(source, target, criteria, weighted),
            metadata=self._metadata(source_vector, target_vector, similarity),
        )

    @staticmethod
    def apply_weights(score: float, weights: dict[str, float]) -> float:
        total = sum(weights.values())
        if total == 0:
            return score
        return min(1.0, score * (total / len(weights)))

    def generate_reasons(
        self,
        source: Profile,
        target: Profile,
        criteria: MatchingCriteria,
        score: float,
    ) -> list[str]:
        for bound, reason in self.SCORE_BANDS[:-1]:
            if score > bound:
                return [reason]
        return [self.SCORE_BANDS[-1][1]]

    # ── Hooks ─────────────────────────────────────────────────────────────

    def _similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        raise NotImplementedError

    def _confidence(self, a: np.ndarray, b: np.ndarray) -> float:
        raise NotImplementedError

    def _metadata(self, a: np.ndarray, b: np.ndarray, similarity: float) -> dict[str, Any]:
        raise NotImplementedError

    @staticmethod
    def _check_lengths(a: np.ndarray, b: np.ndarray) -> None:
        if a.shape != b.shape:
            raise InvalidArgumentError(
                f"Vectors must have the same length ({len(a)} != {len(b)})"
            )


class CosineSimilarity(SimilarityStrategy):
    name = "cosine-similarity"

    SCORE_BANDS = [
        (0.8, "High compatibility across multiple attributes"),
        (0.6, "Good compatibility with some strong matches"),
        (0.4, "Moderate compatibility with potential for growth"),
        (0.0, "Limited compatibility based on current criteria"),
    ]

    STRONG_WEIGHT: float = 1.5
    CLOSE_VALUE_DELTA: float = 0.2

    def cosine(self, a: np.ndarray, b: np.ndarray) -> float:
        """Raw cosine in [-1, 1]; 0 when either vector has zero magnitude."""
        self._check_lengths(a, b)
        norm_a = float(np.linalg.norm(a))
        norm_b = float(np.linalg.norm(b))
        if norm_a == 0 or norm_b == 0:
            return 0.0
        return _clamp(float(np.dot(a, b)) / (norm_a * norm_b), -1.0, 1.0)

    def _similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        return self.cosine(a, b)

    def _confidence(self, a: np.ndarray, b: np.ndarray) -> float:
        # Share of populated coordinates across both vectors.
        if len(a) == 0:
            return 0.0
        populated = np.count_nonzero(a) + np.count_nonzero(b)
        return populated / (2 * len(a))

    def _metadata(self, a: np.ndarray, b: np.ndarray, similarity: float) -> dict[str, Any]:
        return {
            "algorithm": self.name,
            "rawSimilarity": similarity,
            "vectorLength": len(a),
        }

    def generate_reasons(
        self,
        source: Profile,
        target: Profile,
        criteria: MatchingCriteria,
        score: float,
    ) -> list[str]:
        reasons = super().generate_reasons(source, target, criteria, score)
        for key in criteria.preferences:
            weight = criteria.weights.get(key, 1.0)
            if weight > self.STRONG_WEIGHT and self._attributes_match(source, target, key):
                reasons.append(f"Strong match in {key}")
        return reasons

    def _attributes_match(self, source: Profile, target: Profile, key: str) -> bool:
        a = source.attribute(key)
        b = target.attribute(key)
        if isinstance(a, NumberValue) and isinstance(b, NumberValue):
            return abs(a.value - b.value) < self.CLOSE_VALUE_DELTA
        return a == b


class EuclideanDistance(SimilarityStrategy):
    name = "euclidean-distance"

    SCORE_BANDS = [
        (0.8, "Very close match across all measured attributes"),
        (0.6, "Good overall compatibility with minor differences"),
        (0.4, "Moderate compatibility with some notable differences"),
        (0.0, "Significant differences in key attributes"),
    ]

    MIN_CONFIDENCE: float = 0.1

    def distance(self, a: np.ndarray, b: np.ndarray) -> float:
        self._check_lengths(a, b)
        return float(np.linalg.norm(a - b))

    def _similarity(self, a: np.ndarray, b: np.ndarray) -> float:
        return 1.0 / (1.0 + self.distance(a, b))

    def _confidence(self, a: np.ndarray, b: np.ndarray) -> float:
        values = np.concatenate([a, b])
        if values.size == 0:
            return self.MIN_CONFIDENCE
        return max(self.MIN_CONFIDENCE, min(1.0, 1.0 - float(np.var(values))))

    def _metadata(self, a: np.ndarray, b: np.ndarray, similarity: float) -> dict[str, Any]:
        return {
            "algorithm": self.name,
            "rawDistance": self.distance(a, b),
            "similarity": similarity,
        }


def default_strategies(
    extractor: FeatureVectorExtractor | None = None,
) -> dict[str, SimilarityStrategy]:
    """Registry of the built-in strategies keyed by algorithm name."""
    extractor = extractor or FeatureVectorExtractor()
    strategies: list[SimilarityStrategy] = [
        CosineSimilarity(extractor),
        EuclideanDistance(extractor),
    ]
    return {s.name: s for s in strategies}
