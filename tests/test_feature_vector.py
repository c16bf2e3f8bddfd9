"""Unit tests for FeatureVectorExtractor — per-kind encoding and missing values."""
import pytest

from app.schemas.profile import Profile, attribute_value, BoolValue, NullValue, NumberValue, StringArrayValue
from app.services.feature_vector import FeatureVectorExtractor, MissingAttributePolicy
from app.utils.errors import InvalidArgumentError


@pytest.fixture
def profile():
    return Profile(
        user_id="u1",
        attributes={
            "age": 49,
            "rating": 10,
            "score": 50,
            "remote": True,
            "languages": ["en", "fr", "de", "es", "it"],
            "city": "Leeds",
            "nothing": None,
        },
    )


class TestAttributeValues:
    """Tests for tagging raw attribute values."""

    def test_bool_is_not_a_number(self):
        """True is tagged as a bool even though bool subclasses int."""
        assert isinstance(attribute_value(True), BoolValue)

    def test_int_is_number(self):
        assert isinstance(attribute_value(3), NumberValue)

    def test_list_is_string_array(self):
        value = attribute_value([1, "a"])
        assert isinstance(value, StringArrayValue)
        assert value.values == ["1", "a"]

    def test_none_is_null(self):
        assert isinstance(attribute_value(None), NullValue)


class TestEncoding:
    """Tests for the fixed-order vector encoding."""

    def test_known_range_normalisation(self, profile):
        """age 49 over [18, 80] encodes to 0.5."""
        extractor = FeatureVectorExtractor()
        assert extractor.encode(profile, "age") == pytest.approx(0.5)

    def test_values_are_clipped(self, profile):
        """rating 10 over [0, 5] clips to 1.0."""
        assert FeatureVectorExtractor().encode(profile, "rating") == 1.0

    def test_default_range(self, profile):
        """Unknown numeric keys use [0, 100]."""
        assert FeatureVectorExtractor().encode(profile, "score") == pytest.approx(0.5)

    def test_other_kinds(self, profile):
        """bool -> 1, 5-item array -> 0.5, string -> 0."""
        extractor = FeatureVectorExtractor()
        assert extractor.encode(profile, "remote") == 1.0
        assert extractor.encode(profile, "languages") == pytest.approx(0.5)
        assert extractor.encode(profile, "city") == 0.0

    def test_vector_follows_key_order(self, profile):
        """Vector length and order come from the requested keys."""
        vector = FeatureVectorExtractor().extract(profile, ["remote", "city", "missing"])
        assert list(vector) == [1.0, 0.0, 0.0]


class TestMissingPolicy:
    """Tests for MissingAttributePolicy."""

    def test_zero_policy_default(self, profile):
        assert FeatureVectorExtractor().encode(profile, "absent") == 0.0

    def test_midpoint_policy(self, profile):
        extractor = FeatureVectorExtractor(MissingAttributePolicy.MIDPOINT)
        assert extractor.encode(profile, "nothing") == 0.5

    def test_raise_policy(self, profile):
        extractor = FeatureVectorExtractor("raise")
        with pytest.raises(InvalidArgumentError):
            extractor.encode(profile, "absent")
