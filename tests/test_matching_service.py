"""Unit tests for MatchingEngine — filtering, ranking, persistence and profiles."""
import pytest
from unittest.mock import patch, MagicMock

from app.schemas.match import MatchingCriteria, MatchingRequest
from app.schemas.profile import Profile
from app.services.matching_service import MatchingEngine
from app.utils.errors import NotFoundError, UnknownAlgorithmError


@pytest.fixture
def engine(profile_store, result_sink):
    with patch("app.services.matching_service.get_settings") as mock:
        settings = MagicMock()
        settings.MATCH_DEFAULT_THRESHOLD = 0.1
        settings.MATCH_DEFAULT_LIMIT = 50
        settings.MATCH_CANDIDATE_LIMIT = 100
        settings.MATCH_CANDIDATE_MULTIPLIER = 1
        mock.return_value = settings
        return MatchingEngine(profile_store, result_sink)


class TestFindMatches:
    """Tests for the find_matches pipeline."""

    @pytest.mark.asyncio
    async def test_results_sorted_and_persisted(self, engine, matching_request, result_sink):
        """Matches come back best first and every kept match is saved."""
        response = await engine.find_matches(matching_request)
        scores = [m.score for m in response.matches]
        assert scores == sorted(scores, reverse=True)
        assert response.total_processed == 3
        assert response.algorithm == "cosine-similarity"
        assert len(result_sink.results) == len(response.matches)
        saved = next(iter(result_sink.results.values()))
        assert saved.criteria["user_id"] == "mentee-1"

    @pytest.mark.asyncio
    async def test_limit_respected(self, engine, matching_request):
        """Never more than ``limit`` results."""
        request = matching_request.model_copy(update={"limit": 2})
        response = await engine.find_matches(request)
        assert len(response.matches) <= 2

    @pytest.mark.asyncio
    async def test_threshold_filters_low_scores(self, engine, matching_request):
        """A threshold of 1.0 keeps only perfect scores."""
        request = matching_request.model_copy(update={"threshold": 1.0})
        response = await engine.find_matches(request)
        assert all(m.score >= 1.0 for m in response.matches)

    @pytest.mark.asyncio
    async def test_exact_filter(self, engine, matching_request):
        """Exact-value filters drop non-matching candidates."""
        criteria = matching_request.criteria.model_copy(update={"filters": {"location": "London"}})
        request = matching_request.model_copy(update={"criteria": criteria})
        response = await engine.find_matches(request)
        assert [m.target_id for m in response.matches] == ["mentor-close"]

    @pytest.mark.asyncio
    async def test_range_filter(self, engine, matching_request):
        """Range filters keep only numeric values inside [min, max]."""
        criteria = matching_request.criteria.model_copy(
            update={"filters": {"age": {"min": 40, "max": 80}}}
        )
        request = matching_request.model_copy(update={"criteria": criteria})
        response = await engine.find_matches(request)
        assert {m.target_id for m in response.matches} <= {"mentor-mid", "mentor-far"}
        assert "mentor-close" not in {m.target_id for m in response.matches}

    @pytest.mark.asyncio
    async def test_euclidean_strategy(self, engine, matching_request):
        response = await engine.find_matches(matching_request, "euclidean-distance")
        assert response.algorithm == "euclidean-distance"
        assert response.matches[0].target_id == "mentor-close"

    @pytest.mark.asyncio
    async def test_unknown_algorithm(self, engine, matching_request, result_sink):
        """Unknown strategies fail before anything is persisted."""
        with pytest.raises(UnknownAlgorithmError, match="Algorithm nope not found"):
            await engine.find_matches(matching_request, "nope")
        assert result_sink.results == {}

    @pytest.mark.asyncio
    async def test_missing_source_profile(self, engine):
        request = MatchingRequest(criteria=MatchingCriteria(user_id="ghost"))
        with pytest.raises(NotFoundError):
            await engine.find_matches(request)


class TestFilters:
    """Tests for passes_filters on edge values."""

    def test_missing_attribute_fails_range(self):
        profile = Profile(user_id="p", attributes={})
        assert not MatchingEngine.passes_filters(profile, {"age": {"min": 0, "max": 99}})

    def test_membership_filter(self):
        profile = Profile(user_id="p", attributes={"lang": "fr"})
        assert MatchingEngine.passes_filters(profile, {"lang": ["en", "fr"]})
        assert not MatchingEngine.passes_filters(profile, {"lang": ["en"]})

    def test_null_never_equals(self):
        profile = Profile(user_id="p", attributes={"lang": None})
        assert not MatchingEngine.passes_filters(profile, {"lang": None})

    def test_set_filter_with_list_attribute(self):
        """An unhashable attribute is compared, not hashed, against a set filter."""
        profile = Profile(user_id="c", attributes={"skills": ["python"]})
        assert not MatchingEngine.passes_filters(profile, {"skills": {"python", "go"}})
        assert MatchingEngine.passes_filters(profile, {"skills": [["python"], ["go"]]})

    def test_set_filter_with_scalar_attribute(self):
        profile = Profile(user_id="c", attributes={"lang": "go"})
        assert MatchingEngine.passes_filters(profile, {"lang": frozenset({"python", "go"})})


class TestProfiles:
    """Tests for profile create/update and history."""

    @pytest.mark.asyncio
    async def test_create_profile_sets_unit_weights(self, engine):
        profile = await engine.create_profile("new", {"age": 20}, {"age": 25, "remote": True})
        assert profile.weights == {"age": 1.0, "remote": 1.0}
        assert profile.created_at is not None

    @pytest.mark.asyncio
    async def test_create_existing_keeps_weights(self, engine):
        """Re-creating replaces attributes/preferences but not weights."""
        await engine.update_profile("mentor-close", {"weights": {"age": 3.0}})
        profile = await engine.create_profile("mentor-close", {"age": 33}, {"age": 30})
        assert profile.attributes == {"age": 33}
        assert profile.weights == {"age": 3.0}

    @pytest.mark.asyncio
    async def test_update_missing_profile(self, engine):
        with pytest.raises(NotFoundError):
            await engine.update_profile("ghost", {"is_active": False})

    @pytest.mark.asyncio
    async def test_history_after_matching(self, engine, matching_request):
        response = await engine.find_matches(matching_request)
        history = await engine.get_matching_history("mentee-1")
        assert len(history) == len(response.matches)
