"""Unit tests for CollaborativeFilteringEngine — strategies, cache and stats."""
import pytest

from app.schemas.profile import UserRecord
from app.schemas.recommendation import FeedbackRecord, MentorshipMatchRecord
from app.services.collaborative_filtering_service import CollaborativeFilteringEngine
from app.utils.cache import TTLCache
from app.utils.errors import InvalidArgumentError


@pytest.fixture
def cf_engine(user_directory, history_store):
    return CollaborativeFilteringEngine(user_directory, history_store, cache=TTLCache(60))


class TestSimilarUsers:
    """Tests for find_similar_users."""

    @pytest.mark.asyncio
    async def test_same_role_neighbours(self, cf_engine):
        """m1 and m2 share skills, bio, availability and reputation."""
        similar = await cf_engine.find_similar_users("m1", "mentor")
        assert [s.user_id for s in similar] == ["m2"]
        assert similar[0].similarity == pytest.approx(0.85)
        assert similar[0].shared_preferences == pytest.approx(1.0)
        assert similar[0].common_matches == 0

    @pytest.mark.asyncio
    async def test_unknown_user(self, cf_engine):
        assert await cf_engine.find_similar_users("ghost", "mentor") == []

    @pytest.mark.asyncio
    async def test_threshold_and_order(self, cf_engine):
        """Mentees similar to e2 come back best first."""
        similar = await cf_engine.find_similar_users("e2", "mentee")
        assert [s.user_id for s in similar] == ["e1", "e3"]
        assert similar[0].similarity == pytest.approx(0.8)
        assert similar[1].similarity == pytest.approx(0.25)


class TestStrategies:
    """Tests for the three recommendation strategies."""

    @pytest.mark.asyncio
    async def test_user_based(self, cf_engine):
        """m2 is similar to m1 and succeeded with e1."""
        results = await cf_engine.generate_recommendations("m1", "mentor", algorithm="user-based")
        assert [r.target_user_id for r in results] == ["e1"]
        rec = results[0]
        assert rec.algorithm == "user-based"
        assert rec.score == 1.0
        assert rec.confidence == pytest.approx(0.88)
        assert rec.reasons[0] == "Similar to m2 (85% similarity)"
        assert rec.reasons[1] == "Successful historical match with high rating"

    @pytest.mark.asyncio
    async def test_user_based_for_mentee(self, cf_engine):
        """e2 is similar to e1 and was mentored by m1."""
        results = await cf_engine.generate_recommendations("e1", "mentee", algorithm="user-based")
        assert [r.target_user_id for r in results] == ["m1"]

    @pytest.mark.asyncio
    async def test_item_based(self, cf_engine):
        """m1 succeeded with e2, so mentees like e2 are recommended."""
        results = await cf_engine.generate_recommendations("m1", "mentor", algorithm="item-based")
        assert [r.target_user_id for r in results] == ["e1", "e3"]
        assert results[0].score == 1.0
        assert results[1].score == pytest.approx(0.53)
        assert all(r.algorithm == "item-based" for r in results)

    @pytest.mark.asyncio
    async def test_item_based_without_history(self, cf_engine):
        assert await cf_engine.generate_recommendations("e3", "mentee", algorithm="item-based") == []

    @pytest.mark.asyncio
    async def test_hybrid_merges_both(self, cf_engine):
        """e1 appears in both passes: 0.6 * 1.0 + 0.4 * 1.0."""
        results = await cf_engine.generate_recommendations("m1", "mentor")
        assert [r.target_user_id for r in results] == ["e1", "e3"]
        assert results[0].score == pytest.approx(1.0)
        assert results[1].score == pytest.approx(0.212)
        assert "User-based collaborative filtering" in results[0].reasons
        assert "Item-based collaborative filtering" in results[0].reasons
        assert all(r.algorithm == "hybrid" for r in results)

    @pytest.mark.asyncio
    async def test_limit(self, cf_engine):
        results = await cf_engine.generate_recommendations("m1", "mentor", limit=1)
        assert len(results) == 1

    @pytest.mark.asyncio
    async def test_unknown_algorithm(self, cf_engine):
        with pytest.raises(InvalidArgumentError):
            await cf_engine.generate_recommendations("m1", "mentor", algorithm="matrix-factorization")


class TestCacheAndStats:
    """Tests for the similar-user cache and aggregate stats."""

    @pytest.mark.asyncio
    async def test_cached_until_cleared(self, cf_engine, user_directory, directory_users):
        """A new user is invisible until the cache is cleared."""
        first = await cf_engine.find_similar_users("m1", "mentor")
        user_directory.add(directory_users[1].model_copy(update={"id": "m3"}))

        again = await cf_engine.find_similar_users("m1", "mentor")
        assert [s.user_id for s in again] == [s.user_id for s in first]

        assert cf_engine.clear_cache() >= 1
        refreshed = await cf_engine.find_similar_users("m1", "mentor")
        assert {s.user_id for s in refreshed} == {"m2", "m3"}

    @pytest.mark.asyncio
    async def test_clear_empty_cache(self, cf_engine):
        assert cf_engine.clear_cache() == 0

    @pytest.mark.asyncio
    async def test_algorithm_stats(self, cf_engine):
        await cf_engine.find_similar_users("m1", "mentor")
        stats = await cf_engine.get_algorithm_stats()
        assert stats.total_users == 5
        assert stats.total_matches == 2
        assert stats.total_feedback == 2
        assert stats.average_rating == 5.0
        assert stats.cache_size == 1


class TestFactors:
    """Tests for the individual similarity factors."""

    def test_skills_both_empty(self):
        assert CollaborativeFilteringEngine.skills_similarity([], []) == 1.0

    def test_skills_one_empty(self):
        assert CollaborativeFilteringEngine.skills_similarity(["a"], []) == 0.0

    def test_experience_zero_reputation(self):
        a = UserRecord(id="a", name="A", role="mentor")
        b = UserRecord(id="b", name="B", role="mentor")
        assert CollaborativeFilteringEngine.experience_similarity(a, b) == 1.0

    def test_text_similarity_is_token_jaccard(self):
        value = CollaborativeFilteringEngine.text_similarity("Love python", "love rust")
        assert value == pytest.approx(1 / 3)


class TestRepeatPairs:
    """Success is judged per match when the same pair met more than once."""

    @staticmethod
    def _rated(match_id, rating, mentor="m2", mentee="e1"):
        return MentorshipMatchRecord(
            id=match_id, mentor_id=mentor, mentee_id=mentee, status="completed",
            algorithm_score=0.6,
            feedback=[FeedbackRecord(id=f"fb-{match_id}", match_id=match_id, reviewer_id=mentee, rating=rating)],
        )

    @pytest.mark.asyncio
    async def test_later_poor_match_keeps_earlier_success(self, cf_engine, history_store):
        history_store.add(self._rated("match-3", 1))
        snapshot = await cf_engine.build_snapshot()
        successful = cf_engine._successful_matches("m2", "mentor", snapshot)
        assert [m.id for m in successful] == ["match-1"]

    @pytest.mark.asyncio
    async def test_later_success_after_poor_match(self, cf_engine, history_store):
        history_store.add(self._rated("match-3", 2, mentor="m1", mentee="e3"))
        history_store.add(self._rated("match-4", 5, mentor="m1", mentee="e3"))
        snapshot = await cf_engine.build_snapshot()
        successful = cf_engine._successful_matches("e3", "mentee", snapshot)
        assert [m.id for m in successful] == ["match-4"]

    @pytest.mark.asyncio
    async def test_user_based_survives_repeat_pair(self, cf_engine, history_store):
        """m2's later poor match with e1 does not hide the earlier success."""
        history_store.add(self._rated("match-3", 1))
        results = await cf_engine.generate_recommendations("m1", "mentor", algorithm="user-based")
        assert [r.target_user_id for r in results] == ["e1"]
