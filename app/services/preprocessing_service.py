"""
MentorMatch - Preprocessing of collected records before matching.

Four configurable steps, applied in order when enabled:
  1. Outlier removal over the data type's numeric fields (iqr / zscore /
     isolation_forest mean-distance heuristic)
  2. Feature engineering (named transformations)
  3. Normalization (minmax / zscore / robust)
  4. Categorical encoding (label / onehot / target)

followed by a six-dimension data-quality assessment of the result.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any, Callable

import numpy as np
import structlog
from pydantic import ValidationError

from app.schemas.pipeline import (
    DataQualityMetrics,
    EncodingConfig,
    FeatureEngineeringConfig,
    NormalizationConfig,
    OutlierDetectionConfig,
    PreprocessingConfig,
)
from app.utils.errors import InvalidArgumentError

logger = structlog.get_logger("mentormatch.preprocessing_service")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _quartiles(values: list[float]) -> tuple[float, float]:
    # Index-based quartiles: sorted[floor(n * q)]
    ordered = sorted(values)
    n = len(ordered)
    return ordered[int(n * 0.25)], ordered[int(n * 0.75)]


class DataPreprocessingService:
    NUMERIC_FIELDS: dict[str, list[str]] = {
        "mentor_profile": ["experienceYears", "reputationScore"],
        "mentee_profile": ["experienceLevel"],
        "preference": ["weight"],
        "interaction": ["duration"],
        "feedback": ["rating"],
    }

    REQUIRED_FIELDS: dict[str, list[str]] = {
        "mentor_profile": ["name", "email", "skills", "experienceYears"],
        "mentee_profile": ["name", "email", "learningGoals", "experienceLevel"],
        "preference": ["mentorId", "menteeId", "preferenceType"],
        "interaction": ["mentorId", "menteeId", "sessionDate", "duration"],
        "feedback": ["mentorId", "menteeId", "rating"],
    }

    QUALITY_WEIGHTS: dict[str, float] = {
        "completeness": 0.25,
        "accuracy": 0.25,
        "consistency": 0.2,
        "timeliness": 0.1,
        "validity": 0.1,
        "uniqueness": 0.1,
    }

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._now = clock or (lambda: datetime.now(timezone.utc))

    # ── Public API ────────────────────────────────────────────────────────

    def preprocess_data(
        self,
        records: list[dict[str, Any]],
        config: PreprocessingConfig | dict[str, Any],
        data_type: str,
    ) -> dict[str, Any]:
        """Run the preprocessing pipeline over ``records``.

        Returns
        -------
        dict
            ``{"processed_data", "preprocessing_metrics", "quality_metrics"}``

        Raises
        ------
        InvalidArgumentError
            A configuration section is missing or names an unknown method.
        """
        cfg = self.validate_config(config)
        started = time.perf_counter()
        log = logger.bind(data_type=data_type)
        log.info("preprocessing_start", records=len(records))

        processed = [dict(r) for r in records]
        if cfg.outlier_detection.enabled:
            processed = self.remove_outliers(processed, cfg.outlier_detection, data_type)
            log.debug("preprocessing_outliers_removed", remaining=len(processed))
        if cfg.feature_engineering.enabled:
            processed = self.engineer_features(processed, cfg.feature_engineering)
        if cfg.normalization.enabled:
            processed = self.normalize(processed, cfg.normalization)
        if cfg.encoding.enabled:
            processed = self.encode(processed, cfg.encoding)

        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics = {
            "original_count": len(records),
            "processed_count": len(processed),
            "outliers_removed": len(records) - len(processed),
            "features_engineered": (
                len(cfg.feature_engineering.features) if cfg.feature_engineering.enabled else 0
            ),
            "processing_time_ms": elapsed_ms,
        }
        quality = self.assess_quality(processed, data_type)

        log.info(
            "preprocessing_complete",
            processed=len(processed),
            overall_quality=round(quality.overall_score, 3),
        )
        return {
            "processed_data": processed,
            "preprocessing_metrics": metrics,
            "quality_metrics": quality,
        }

    @staticmethod
    def validate_config(config: PreprocessingConfig | dict[str, Any]) -> PreprocessingConfig:
        if isinstance(config, PreprocessingConfig):
            return config
        if not isinstance(config, dict):
            raise InvalidArgumentError("Invalid preprocessing configuration.")
        try:
            return PreprocessingConfig.model_validate(config)
        except ValidationError as exc:
            logger.warning("preprocessing_config_rejected", errors=exc.error_count())
            raise InvalidArgumentError(f"Invalid preprocessing configuration: {exc}") from exc

    # ── Step 1: outliers ──────────────────────────────────────────────────

    def remove_outliers(
        self,
        records: list[dict[str, Any]],
        cfg: OutlierDetectionConfig,
        data_type: str,
    ) -> list[dict[str, Any]]:
        fields = self.NUMERIC_FIELDS.get(data_type, [])
        columns = {
            f: [r[f] for r in records if _is_number(r.get(f))] for f in fields
        }
        columns = {f: v for f, v in columns.items() if v}

        if cfg.method == "iqr":
            return [r for r in records if not self._iqr_outlier(r, columns, cfg.threshold)]
        if cfg.method == "zscore":
            return [r for r in records if not self._zscore_outlier(r, columns, cfg.threshold)]
        return [r for r in records if self._isolation_score(r, columns) <= cfg.threshold]

    @staticmethod
    def _iqr_outlier(record: dict[str, Any], columns: dict[str, list[float]], threshold: float) -> bool:
        for field, values in columns.items():
            value = record.get(field)
            if not _is_number(value):
                continue
            q1, q3 = _quartiles(values)
            iqr = q3 - q1
            if value < q1 - threshold * iqr or value > q3 + threshold * iqr:
                return True
        return False

    @staticmethod
    def _zscore_outlier(record: dict[str, Any], columns: dict[str, list[float]], threshold: float) -> bool:
        for field, values in columns.items():
            value = record.get(field)
            if not _is_number(value):
                continue
            std = float(np.std(values))
            if std == 0:
                continue
            if abs((value - float(np.mean(values))) / std) > threshold:
                return True
        return False

    @staticmethod
    def _isolation_score(record: dict[str, Any], columns: dict[str, list[float]]) -> float:
        scores = []
        for field, values in columns.items():
            value = record.get(field)
            if not _is_number(value):
                continue
            mean = float(np.mean(values))
            max_distance = max(abs(v - mean) for v in values)
            scores.append(abs(value - mean) / max_distance if max_distance else 0.0)
        return sum(scores) / len(scores) if scores else 0.0

    # ── Step 2: feature engineering ───────────────────────────────────────

    def engineer_features(
        self, records: list[dict[str, Any]], cfg: FeatureEngineeringConfig
    ) -> list[dict[str, Any]]:
        engineered = []
        for record in records:
            out = dict(record)
            for feature, transformation in cfg.transformations.items():
                out[feature] = self.apply_transformation(record, transformation)
            engineered.append(out)
        return engineered

    @staticmethod
    def apply_transformation(record: dict[str, Any], transformation: str) -> Any:
        if transformation == "skill_count":
            skills = record.get("skills")
            return len(skills) if isinstance(skills, list) else 0
        if transformation == "experience_level":
            years = record.get("experienceYears")
            if not years or not _is_number(years):
                return "unknown"
            if years < 2:
                return "beginner"
            if years < 5:
                return "intermediate"
            if years < 10:
                return "advanced"
            return "expert"
        if transformation == "name_length":
            return len(record.get("name") or "")
        if transformation == "email_domain":
            email = record.get("email")
            if not email:
                return "unknown"
            parts = str(email).split("@")
            return parts[1] if len(parts) > 1 else "unknown"
        if transformation == "has_bio":
            return 1 if record.get("bio") else 0
        if transformation == "rating_average":
            ratings = record.get("ratings")
            if not isinstance(ratings, list) or not ratings:
                return 0
            return sum((r or {}).get("rating") or 0 for r in ratings) / len(ratings)
        return record.get(transformation) or 0

    # ── Step 3: normalization ─────────────────────────────────────────────

    def normalize(
        self, records: list[dict[str, Any]], cfg: NormalizationConfig
    ) -> list[dict[str, Any]]:
        params: dict[str, dict[str, float]] = {}
        for field in cfg.fields:
            values = [r[field] for r in records if _is_number(r.get(field))]
            if not values:
                continue
            if cfg.method == "minmax":
                params[field] = {"min": min(values), "max": max(values)}
            elif cfg.method == "zscore":
                params[field] = {"mean": float(np.mean(values)), "std": float(np.std(values))}
            else:
                q1, q3 = _quartiles(values)
                params[field] = {"q1": q1, "iqr": q3 - q1}

        normalized = []
        for record in records:
            out = dict(record)
            for field, p in params.items():
                value = record.get(field)
                if _is_number(value):
                    out[field] = self._scale(value, p, cfg.method)
            normalized.append(out)
        return normalized

    @staticmethod
    def _scale(value: float, p: dict[str, float], method: str) -> float:
        if method == "minmax":
            span = p["max"] - p["min"]
            return 0.0 if span == 0 else (value - p["min"]) / span
        if method == "zscore":
            return 0.0 if p["std"] == 0 else (value - p["mean"]) / p["std"]
        return 0.0 if p["iqr"] == 0 else (value - p["q1"]) / p["iqr"]

    # ── Step 4: encoding ──────────────────────────────────────────────────

    def encode(self, records: list[dict[str, Any]], cfg: EncodingConfig) -> list[dict[str, Any]]:
        categories: dict[str, list[Any]] = {}
        for field in cfg.categorical_fields:
            seen: list[Any] = []
            for record in records:
                value = record.get(field)
                if value is not None and value not in seen:
                    seen.append(value)
            categories[field] = seen

        encoded = []
        for record in records:
            out = dict(record)
            for field, values in categories.items():
                value = record.get(field)
                if value is None:
                    continue
                if cfg.method == "onehot":
                    out[field] = [1 if v == value else 0 for v in values]
                else:
                    # target encoding has no target column here and falls back to labels
                    out[field] = values.index(value) if value in values else -1
            encoded.append(out)
        return encoded

    # ── Quality ───────────────────────────────────────────────────────────

    def assess_quality(self, records: list[dict[str, Any]], data_type: str) -> DataQualityMetrics:
        scores = {
            "completeness": self._completeness(records, data_type),
            "accuracy": self._accuracy(records, data_type),
            "consistency": self._consistency(records, data_type),
            "timeliness": self._timeliness(records),
            "validity": self._validity(records, data_type),
            "uniqueness": self._uniqueness(records),
        }
        overall = sum(scores[name] * weight for name, weight in self.QUALITY_WEIGHTS.items())
        return DataQualityMetrics(**scores, overall_score=overall)

    @staticmethod
    def _mean(values: list[float]) -> float:
        return sum(values) / len(values) if values else 0.0

    def _completeness(self, records: list[dict[str, Any]], data_type: str) -> float:
        required = self.REQUIRED_FIELDS.get(data_type, [])
        if not required:
            return self._mean([1.0 for _ in records])
        return self._mean(
            [
                sum(1 for f in required if record.get(f) not in (None, "")) / len(required)
                for record in records
            ]
        )

    def _accuracy(self, records: list[dict[str, Any]], data_type: str) -> float:
        scores = []
        for record in records:
            score = 1.0
            if data_type in ("mentor_profile", "mentee_profile"):
                email = record.get("email")
                if email and not _EMAIL_RE.match(str(email)):
                    score -= 0.3
                name = record.get("name")
                if name and len(str(name)) < 2:
                    score -= 0.2
            scores.append(max(0.0, score))
        return self._mean(scores)

    def _consistency(self, records: list[dict[str, Any]], data_type: str) -> float:
        scores = []
        for record in records:
            score = 1.0
            if data_type == "mentor_profile":
                years = record.get("experienceYears")
                if _is_number(years) and years > 50:
                    score -= 0.2
                if isinstance(record.get("skills"), list) and not record["skills"]:
                    score -= 0.3
            scores.append(max(0.0, score))
        return self._mean(scores)

    def _timeliness(self, records: list[dict[str, Any]]) -> float:
        now = self._now()
        scores = []
        for record in records:
            stamp = self._parse_timestamp(record.get("updatedAt") or record.get("createdAt"))
            if stamp is None:
                scores.append(0.8)
                continue
            age_days = (now - stamp).total_seconds() / 86400
            if age_days > 365:
                scores.append(0.5)
            elif age_days > 180:
                scores.append(0.7)
            elif age_days > 90:
                scores.append(0.8)
            else:
                scores.append(1.0)
        return self._mean(scores)

    def _validity(self, records: list[dict[str, Any]], data_type: str) -> float:
        scores = []
        for record in records:
            score = 1.0
            if data_type == "feedback":
                rating = record.get("rating")
                if rating and _is_number(rating) and not 1 <= rating <= 5:
                    score -= 0.5
            if data_type == "preference":
                weight = record.get("weight")
                if weight and _is_number(weight) and not 1 <= weight <= 10:
                    score -= 0.5
            scores.append(max(0.0, score))
        return self._mean(scores)

    @staticmethod
    def _uniqueness(records: list[dict[str, Any]]) -> float:
        if not records:
            return 0.0
        ids = {str(r.get("id") or r.get("userId")) for r in records}
        return len(ids) / len(records)

    @staticmethod
    def _parse_timestamp(value: Any) -> datetime | None:
        if isinstance(value, datetime):
            stamp = value
        elif isinstance(value, str):
            try:
                stamp = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        else:
            return None
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp
