"""Unit tests for DataAnonymizationService — techniques, metrics and batches."""
import pytest

from app.schemas.pipeline import DataCollectionRecord
from app.services.anonymization_service import DataAnonymizationService
from app.utils.errors import InvalidArgumentError


@pytest.fixture
def service():
    return DataAnonymizationService(seed=7)


@pytest.fixture
def record():
    return {"name": "Ada Lovelace", "email": "ada@example.com", "age": 37, "score": 42}


class TestAnonymizeData:
    """Tests for single-record anonymization."""

    def test_empty_mapping(self, service):
        outcome = service.anonymize_data({}, {}, "mentor_profile")
        assert outcome["anonymized_data"] == {}
        assert outcome["privacy_metrics"].anonymization_ratio == 0.0
        assert outcome["metadata"]["techniques_applied"] == []

    def test_none_rejected(self, service):
        with pytest.raises(InvalidArgumentError):
            service.anonymize_data(None, {}, "mentor_profile")

    def test_invalid_config_rejected(self, service, record):
        with pytest.raises(InvalidArgumentError):
            service.anonymize_data(record, {"k_anonymity": 0}, "mentor_profile")

    def test_input_not_mutated(self, service, record):
        original = dict(record)
        service.anonymize_data(record, {"suppression": {"fields": ["name"]}}, "mentor_profile")
        assert record == original

    def test_suppression(self, service, record):
        outcome = service.anonymize_data(
            record, {"suppression": {"fields": ["name", "missing"]}}, "mentor_profile"
        )
        data = outcome["anonymized_data"]
        assert data["name"] == "[SUPPRESSED]"
        assert "missing" not in data
        assert outcome["metadata"]["techniques_applied"] == ["suppression"]

    def test_pseudonymization(self, service, record):
        outcome = service.anonymize_data(
            record, {"pseudonymization": {"fields": ["email"]}}, "mentor_profile"
        )
        pseudonym = outcome["anonymized_data"]["email"]
        assert pseudonym.startswith("pseudo_")
        assert len(pseudonym) == 16

    def test_generalization(self, service, record):
        config = {"generalization": {"fields": {"age": {"granularity": 5}, "name": {}}}}
        data = service.anonymize_data(record, config, "mentor_profile")["anonymized_data"]
        assert data["age"] == 35
        assert data["name"] == "Ada Lovelace"

    def test_microaggregation_rounds_half_up(self, service):
        config = {"microaggregation": {"fields": {"a": {"aggregation_size": 10}, "b": {}}}}
        data = service.anonymize_data({"a": 35, "b": 34}, config, "interaction")["anonymized_data"]
        assert data == {"a": 40, "b": 30}

    def test_k_anonymity_generalises_numbers(self, service, record):
        data = service.anonymize_data(record, {"k_anonymity": 2}, "mentor_profile")["anonymized_data"]
        assert data["age"] == 30
        assert data["score"] == 40
        assert data["email"] == "ada@example.com"

    def test_seeded_noise_is_reproducible(self, record):
        config = {"noise_addition": {"fields": {"age": {"type": "gaussian", "magnitude": 2.0}}}}
        first = DataAnonymizationService(seed=1).anonymize_data(record, config, "mentor_profile")
        second = DataAnonymizationService(seed=1).anonymize_data(record, config, "mentor_profile")
        assert first["anonymized_data"]["age"] == second["anonymized_data"]["age"]
        assert first["anonymized_data"]["age"] != 37

    def test_noise_ignores_unknown_type(self, service, record):
        config = {"noise_addition": {"fields": {"age": {"type": "laplace"}}}}
        assert service.anonymize_data(record, config, "mentor_profile")["anonymized_data"]["age"] == 37


class TestPrivacyMetrics:
    """Tests for the privacy metrics."""

    def test_unchanged_record(self, service, record):
        metrics = service.anonymize_data(record, {}, "mentor_profile")["privacy_metrics"]
        assert metrics.privacy_gain == 0.0
        assert metrics.information_loss == 0.0
        assert metrics.t_closeness_level == pytest.approx(1.0)
        assert metrics.anonymization_ratio == 1.0

    def test_suppression_counts_as_gain(self, service, record):
        metrics = service.anonymize_data(
            record, {"suppression": {"fields": ["name", "email"]}}, "mentor_profile"
        )["privacy_metrics"]
        assert metrics.privacy_gain == 0.5
        assert metrics.information_loss == 0.5

    def test_group_levels(self):
        data = {"a": 1, "b": 1, "c": 2}
        assert DataAnonymizationService.k_anonymity_level(data) == 1.0
        assert DataAnonymizationService.l_diversity_level(data) == 2.0

    @pytest.mark.parametrize("days, compliant", [(30, True), (365, True), (400, False), (None, False)])
    def test_retention_compliance(self, service, record, days, compliant):
        metrics = service.anonymize_data(
            record, {"data_retention_days": days, "consent_given": True}, "mentor_profile"
        )["privacy_metrics"]
        assert metrics.data_retention_compliance is compliant
        assert metrics.consent_compliance


class TestBatch:
    """Tests for batch anonymization with per-record failures."""

    def test_failed_record_does_not_stop_batch(self, service, record):
        collections = [
            DataCollectionRecord(id="ok", data_type="mentor_profile", raw_data=record),
            DataCollectionRecord(id="broken", data_type="mentor_profile", raw_data=None),
        ]
        outcome = service.anonymize_batch(collections, {"suppression": {"fields": ["email"]}})

        meta = outcome["metadata"]
        assert meta["total_records"] == 2
        assert meta["successful_records"] == 1
        assert meta["failed_records"] == 1

        ok, broken = outcome["anonymized_collections"]
        assert ok.status == "anonymized"
        assert ok.anonymized_data["email"] == "[SUPPRESSED]"
        assert len(ok.processing_metadata["checksum"]) == 16
        assert broken.status == "error"
        assert broken.error_message

    def test_empty_batch(self, service):
        outcome = service.anonymize_batch([], {})
        assert outcome["anonymized_collections"] == []
        assert outcome["privacy_metrics"].k_anonymity_level == 0.0

    def test_checksum_is_stable(self):
        assert DataAnonymizationService.checksum({"b": 1, "a": 2}) == DataAnonymizationService.checksum(
            {"a": 2, "b": 1}
        )
