"""
MentorMatch - Privacy-preserving anonymization of collected records.

Techniques run in a fixed order, each only when configured:

  1. k-anonymity       fields chunked in groups of k, numerics generalised to ranges of 10
  2. l-diversity       measured only, values untouched
  3. t-closeness       measured only, values untouched
  4. generalization    floor(v / g) * g
  5. suppression       "[SUPPRESSED]"
  6. microaggregation  round(v / s) * s
  7. noise addition    gaussian, ``magnitude`` as the standard deviation
  8. pseudonymization  "pseudo_" + 9 random characters

Privacy metrics are computed from the original and the anonymized maps.
Batch anonymization isolates failures per record: a failing record is marked
``error`` and the rest of the batch still completes.
"""

from __future__ import annotations

import hashlib
import json
import math
import random
import string
import time
from collections import Counter
from typing import Any

import numpy as np
import structlog
from pydantic import ValidationError

from app.config import get_settings
from app.schemas.pipeline import AnonymizationConfig, DataCollectionRecord, PrivacyMetrics
from app.utils.errors import InvalidArgumentError

logger = structlog.get_logger("mentormatch.anonymization_service")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fingerprint(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


class DataAnonymizationService:
    K_ANONYMITY_GRANULARITY: int = 10
    DEFAULT_GRANULARITY: int = 10
    DEFAULT_AGGREGATION_SIZE: int = 10
    SUPPRESSED: str = "[SUPPRESSED]"
    PSEUDONYM_ALPHABET: str = string.ascii_lowercase + string.digits
    PSEUDONYM_LENGTH: int = 9

    TECHNIQUE_NAMES: dict[str, str] = {
        "k_anonymity": "k-anonymity",
        "l_diversity": "l-diversity",
        "t_closeness": "t-closeness",
        "generalization": "generalization",
        "suppression": "suppression",
        "microaggregation": "microaggregation",
        "noise_addition": "noise-addition",
        "pseudonymization": "pseudonymization",
    }

    def __init__(self, seed: int | None = None) -> None:
        settings = get_settings()
        self.default_retention_days: int = settings.ANONYMIZATION_DEFAULT_RETENTION_DAYS
        self.max_retention_days: int = settings.ANONYMIZATION_MAX_RETENTION_DAYS
        self._rng = np.random.default_rng(seed)
        self._random = random.Random(seed)

    # ── Public API ────────────────────────────────────────────────────────

    def anonymize_data(
        self,
        data: dict[str, Any] | None,
        config: AnonymizationConfig | dict[str, Any],
        data_type: str,
    ) -> dict[str, Any]:
        """Anonymize one record.

        Parameters
        ----------
        data:
            Flat field -> value map.  An empty map is valid and yields an
            empty result.
        config:
            Technique selection and parameters.
        data_type:
            Record category, used for logging only.

        Returns
        -------
        dict
            ``{"anonymized_data", "privacy_metrics", "metadata"}``

        Raises
        ------
        InvalidArgumentError
            ``data`` is ``None`` or ``config`` is malformed.
        """
        if data is None:
            raise InvalidArgumentError("Data to anonymize must be a mapping, got None")
        cfg = self.validate_config(config)

        log = logger.bind(data_type=data_type)
        log.info("anonymization_start", fields=len(data))
        started = time.perf_counter()

        result = dict(data)
        if cfg.k_anonymity:
            result = self._apply_k_anonymity(result, cfg.k_anonymity)
        if cfg.l_diversity:
            log.debug("anonymization_l_diversity", l=cfg.l_diversity)
        if cfg.t_closeness:
            log.debug("anonymization_t_closeness", t=cfg.t_closeness)
        if cfg.generalization:
            result = self._apply_generalization(result, cfg.generalization)
        if cfg.suppression:
            result = self._apply_suppression(result, cfg.suppression)
        if cfg.microaggregation:
            result = self._apply_microaggregation(result, cfg.microaggregation)
        if cfg.noise_addition:
            result = self._apply_noise(result, cfg.noise_addition)
        if cfg.pseudonymization:
            result = self._apply_pseudonymization(result, cfg.pseudonymization)

        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics = self.calculate_privacy_metrics(data, result, cfg)
        metadata = {
            "processing_time_ms": elapsed_ms,
            "techniques_applied": self.applied_techniques(cfg),
            "original_record_count": len(data),
            "anonymized_record_count": len(result),
            "data_retention_days": cfg.data_retention_days or self.default_retention_days,
            "anonymization_level": cfg.anonymization_level or "medium",
        }

        log.info("anonymization_complete", processing_time_ms=round(elapsed_ms, 2))
        return {
            "anonymized_data": result,
            "privacy_metrics": metrics,
            "metadata": metadata,
        }

    def anonymize_batch(
        self,
        collections: list[DataCollectionRecord],
        config: AnonymizationConfig | dict[str, Any],
    ) -> dict[str, Any]:
        """Anonymize every record; failures are recorded per record."""
        cfg = self.validate_config(config)
        started = time.perf_counter()
        logger.info("anonymization_batch_start", records=len(collections))

        processed: list[DataCollectionRecord] = []
        successes: list[PrivacyMetrics] = []
        for collection in collections:
            try:
                outcome = self.anonymize_data(collection.raw_data, cfg, collection.data_type)
            except (InvalidArgumentError, TypeError, ValueError) as exc:
                logger.error(
                    "anonymization_record_failed",
                    collection_id=collection.id,
                    error=str(exc),
                )
                processed.append(
                    collection.model_copy(update={"status": "error", "error_message": str(exc)})
                )
                continue

            successes.append(outcome["privacy_metrics"])
            processed.append(
                collection.model_copy(
                    update={
                        "anonymized_data": outcome["anonymized_data"],
                        "status": "anonymized",
                        "error_message": None,
                        "privacy_metadata": {
                            "anonymization_level": cfg.anonymization_level or "medium",
                            "data_retention_days": cfg.data_retention_days or self.default_retention_days,
                            "consent_given": cfg.consent_given,
                            "data_categories": cfg.data_categories,
                        },
                        "processing_metadata": {
                            "processing_time_ms": outcome["metadata"]["processing_time_ms"],
                            "algorithm": "data-anonymization",
                            "version": "1.0.0",
                            "checksum": self.checksum(outcome["anonymized_data"]),
                        },
                    }
                )
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        metadata = {
            "processing_time_ms": elapsed_ms,
            "total_records": len(collections),
            "successful_records": sum(1 for c in processed if c.status == "anonymized"),
            "failed_records": sum(1 for c in processed if c.status == "error"),
            "techniques_applied": self.applied_techniques(cfg),
        }
        logger.info("anonymization_batch_complete", **metadata)
        return {
            "anonymized_collections": processed,
            "privacy_metrics": self.aggregate_metrics(successes),
            "metadata": metadata,
        }

    @staticmethod
    def validate_config(config: AnonymizationConfig | dict[str, Any]) -> AnonymizationConfig:
        if isinstance(config, AnonymizationConfig):
            return config
        try:
            return AnonymizationConfig.model_validate(config or {})
        except ValidationError as exc:
            raise InvalidArgumentError(f"Invalid anonymization configuration: {exc}") from exc

    def applied_techniques(self, cfg: AnonymizationConfig) -> list[str]:
        return [label for attr, label in self.TECHNIQUE_NAMES.items() if getattr(cfg, attr)]

    # ── Metrics ───────────────────────────────────────────────────────────

    def calculate_privacy_metrics(
        self,
        original: dict[str, Any],
        anonymized: dict[str, Any],
        cfg: AnonymizationConfig,
    ) -> PrivacyMetrics:
        return PrivacyMetrics(
            k_anonymity_level=self.k_anonymity_level(anonymized),
            l_diversity_level=self.l_diversity_level(anonymized),
            t_closeness_level=self.t_closeness_level(original, anonymized),
            information_loss=self.information_loss(original, anonymized),
            privacy_gain=self.privacy_gain(original, anonymized),
            anonymization_ratio=len(anonymized) / len(original) if original else 0.0,
            data_retention_compliance=(
                cfg.data_retention_days is not None
                and cfg.data_retention_days <= self.max_retention_days
            ),
            consent_compliance=cfg.consent_given is True,
        )

    @staticmethod
    def k_anonymity_level(data: dict[str, Any]) -> float:
        """Size of the smallest group of identical values."""
        if not data:
            return 0.0
        return float(min(Counter(_fingerprint(v) for v in data.values()).values()))

    @staticmethod
    def l_diversity_level(data: dict[str, Any]) -> float:
        """Number of distinct values."""
        return float(len({_fingerprint(v) for v in data.values()}))

    @staticmethod
    def t_closeness_level(original: dict[str, Any], anonymized: dict[str, Any]) -> float:
        """1 minus the total variation distance between value distributions."""
        if not original or not anonymized:
            return 0.0
        before = Counter(_fingerprint(v) for v in original.values())
        after = Counter(_fingerprint(v) for v in anonymized.values())
        n_before, n_after = len(original), len(anonymized)
        distance = 0.5 * sum(
            abs(before[v] / n_before - after[v] / n_after) for v in set(before) | set(after)
        )
        return 1.0 - distance

    @staticmethod
    def information_loss(original: dict[str, Any], anonymized: dict[str, Any]) -> float:
        """Mean per-field distortion in [0, 1]."""
        if not original:
            return 0.0
        total = 0.0
        for key, value in original.items():
            if key not in anonymized:
                total += 1.0
                continue
            new = anonymized[key]
            if _is_number(value) and _is_number(new):
                total += min(1.0, abs(value - new) / max(abs(value), 1.0))
            elif _fingerprint(value) != _fingerprint(new):
                total += 1.0
        return total / len(original)

    @staticmethod
    def privacy_gain(original: dict[str, Any], anonymized: dict[str, Any]) -> float:
        """Share of fields whose value changed."""
        if not original:
            return 0.0
        changed = sum(
            1
            for key, value in original.items()
            if key not in anonymized or _fingerprint(anonymized[key]) != _fingerprint(value)
        )
        return changed / len(original)

    @staticmethod
    def aggregate_metrics(metrics: list[PrivacyMetrics]) -> PrivacyMetrics:
        if not metrics:
            return PrivacyMetrics()

        def mean(attr: str) -> float:
            return sum(getattr(m, attr) for m in metrics) / len(metrics)

        return PrivacyMetrics(
            k_anonymity_level=min(m.k_anonymity_level for m in metrics),
            l_diversity_level=min(m.l_diversity_level for m in metrics),
            t_closeness_level=mean("t_closeness_level"),
            information_loss=mean("information_loss"),
            privacy_gain=mean("privacy_gain"),
            anonymization_ratio=mean("anonymization_ratio"),
            data_retention_compliance=all(m.data_retention_compliance for m in metrics),
            consent_compliance=all(m.consent_compliance for m in metrics),
        )

    @staticmethod
    def checksum(data: dict[str, Any]) -> str:
        return hashlib.sha256(_fingerprint(data).encode("utf-8")).hexdigest()[:16]

    # ── Techniques ────────────────────────────────────────────────────────

    def _apply_k_anonymity(self, data: dict[str, Any], k: int) -> dict[str, Any]:
        items = list(data.items())
        result: dict[str, Any] = {}
        for start in range(0, len(items), k):
            for key, value in items[start:start + k]:
                result[key] = self._generalise(value, self.K_ANONYMITY_GRANULARITY)
        return result

    def _apply_generalization(self, data: dict[str, Any], rules: dict[str, Any]) -> dict[str, Any]:
        result = dict(data)
        for field, rule in (rules.get("fields") or {}).items():
            if result.get(field):
                granularity = (rule or {}).get("granularity", self.DEFAULT_GRANULARITY)
                result[field] = self._generalise(result[field], granularity)
        return result

    def _apply_suppression(self, data: dict[str, Any], rules: dict[str, Any]) -> dict[str, Any]:
        result = dict(data)
        for field in rules.get("fields") or []:
            if result.get(field):
                result[field] = self.SUPPRESSED
        return result

    def _apply_microaggregation(self, data: dict[str, Any], rules: dict[str, Any]) -> dict[str, Any]:
        result = dict(data)
        for field, rule in (rules.get("fields") or {}).items():
            value = result.get(field)
            if value and _is_number(value):
                size = (rule or {}).get("aggregation_size", self.DEFAULT_AGGREGATION_SIZE)
                # round half up
                result[field] = math.floor(value / size + 0.5) * size
        return result

    def _apply_noise(self, data: dict[str, Any], rules: dict[str, Any]) -> dict[str, Any]:
        result = dict(data)
        for field, rule in (rules.get("fields") or {}).items():
            value = result.get(field)
            rule = rule or {}
            if value and _is_number(value) and rule.get("type") == "gaussian":
                result[field] = value + float(self._rng.normal(0.0, rule.get("magnitude", 1.0)))
        return result

    def _apply_pseudonymization(self, data: dict[str, Any], rules: dict[str, Any]) -> dict[str, Any]:
        result = dict(data)
        for field in rules.get("fields") or []:
            if result.get(field):
                suffix = "".join(
                    self._random.choice(self.PSEUDONYM_ALPHABET)
                    for _ in range(self.PSEUDONYM_LENGTH)
                )
                result[field] = f"pseudo_{suffix}"
        return result

    @staticmethod
    def _generalise(value: Any, granularity: float) -> Any:
        if _is_number(value) and granularity:
            return math.floor(value / granularity) * granularity
        return value
