"""Unit tests for HybridRecommendationCombiner — blending, fallback and config."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from app.schemas.recommendation import HybridConfig, RecommendationRequest
from app.services.collaborative_filtering_service import CollaborativeFilteringEngine
from app.services.hybrid_recommendation_service import HybridRecommendationCombiner
from app.utils.cache import TTLCache
from app.utils.errors import InvalidArgumentError, NotFoundError


@pytest.fixture
def cf_engine(user_directory, history_store):
    return CollaborativeFilteringEngine(user_directory, history_store, cache=TTLCache(60))


@pytest.fixture
def combiner(user_directory, result_sink, cf_engine):
    return HybridRecommendationCombiner(user_directory, result_sink, cf_engine, config=HybridConfig())


@pytest.fixture
def failing_cf():
    engine = MagicMock()
    engine.generate_recommendations = AsyncMock(side_effect=RuntimeError("history unavailable"))
    return engine


def _request(**overrides):
    return RecommendationRequest(**{"user_id": "m1", "type": "mentee", **overrides})


class TestGenerate:
    """Tests for generate_hybrid_recommendations."""

    @pytest.mark.asyncio
    async def test_blended_ranking(self, combiner, result_sink):
        """e1 is found by both passes: 0.6 * 1.0 + 0.4 * 0.625."""
        response = await combiner.generate_hybrid_recommendations(_request())
        recs = response.recommendations
        scores = [r.hybrid_score for r in recs]
        assert scores == sorted(scores, reverse=True)
        assert recs[0].user_id == "e1"
        assert recs[0].hybrid_score == pytest.approx(0.85)
        assert recs[0].collaborative_filtering_score == 1.0
        assert recs[0].content_based_score == pytest.approx(0.625)
        assert "Content-based matching" in recs[0].reasons
        assert response.total_matches == len(recs)
        assert len(result_sink.recommendations) == len(recs)

    @pytest.mark.asyncio
    async def test_content_only_candidates(self, combiner):
        """Candidates only the content pass found carry confidence 0.5."""
        response = await combiner.generate_hybrid_recommendations(_request())
        m2 = next(r for r in response.recommendations if r.user_id == "m2")
        assert m2.confidence == 0.5
        assert m2.collaborative_filtering_score == 0.0
        assert m2.metadata["cf_algorithm"] == "none"

    @pytest.mark.asyncio
    async def test_limit_truncates(self, combiner):
        response = await combiner.generate_hybrid_recommendations(_request(limit=2))
        assert len(response.recommendations) == 2

    @pytest.mark.asyncio
    async def test_min_confidence_override(self, combiner):
        """A per-call floor above 0.5 drops every content-only candidate."""
        response = await combiner.generate_hybrid_recommendations(
            _request(), {"min_confidence": 0.55}
        )
        assert [r.user_id for r in response.recommendations] == ["e1", "e3"]
        assert combiner.get_config().min_confidence == 0.3

    @pytest.mark.asyncio
    async def test_unknown_requester(self, combiner):
        with pytest.raises(NotFoundError):
            await combiner.generate_hybrid_recommendations(_request(user_id="ghost"))


class TestFallback:
    """Tests for CF failure handling."""

    @pytest.mark.asyncio
    async def test_fallback_to_content(self, user_directory, result_sink, failing_cf):
        combiner = HybridRecommendationCombiner(
            user_directory, result_sink, failing_cf, config=HybridConfig()
        )
        response = await combiner.generate_hybrid_recommendations(_request())
        assert response.recommendations
        assert all(r.collaborative_filtering_score == 0.0 for r in response.recommendations)

    @pytest.mark.asyncio
    async def test_fallback_disabled_propagates(self, user_directory, result_sink, failing_cf):
        combiner = HybridRecommendationCombiner(
            user_directory, result_sink, failing_cf, config=HybridConfig(enable_fallback=False)
        )
        with pytest.raises(RuntimeError):
            await combiner.generate_hybrid_recommendations(_request())
        assert result_sink.recommendations == []


class TestConfig:
    """Tests for get_config / update_config."""

    def test_get_config_returns_copy(self, combiner):
        snapshot = combiner.get_config()
        snapshot.cf_weight = 0.1
        assert combiner.get_config().cf_weight == 0.6

    def test_update_applies_in_place(self, user_directory, result_sink, cf_engine):
        shared = HybridConfig()
        combiner = HybridRecommendationCombiner(user_directory, result_sink, cf_engine, config=shared)
        updated = combiner.update_config(cf_weight=0.7, enable_fallback=False)
        assert updated.cf_weight == 0.7
        assert shared.cf_weight == 0.7
        assert shared.cb_weight == 0.4
        assert not shared.enable_fallback

    def test_update_rejects_out_of_range(self, combiner):
        with pytest.raises(InvalidArgumentError):
            combiner.update_config(cf_weight=1.5)
        assert combiner.get_config().cf_weight == 0.6
