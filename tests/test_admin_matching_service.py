"""Unit tests for AdminMatchingService — manual matches and AI-match overrides."""
import asyncio

import pytest
import pytest_asyncio

from app.schemas.match import MatchResult
from app.services.admin_matching_service import AdminMatchingService
from app.utils.errors import ConflictError, InvalidArgumentError, NotFoundError


@pytest.fixture
def admin_service(profile_store, result_sink):
    return AdminMatchingService(profile_store, result_sink)


@pytest_asyncio.fixture
async def ai_result(result_sink):
    saved = await result_sink.save_match_results(
        source_user_id="mentee-1",
        algorithm="cosine-similarity",
        results=[MatchResult(target_id="mentor-close", score=0.91, confidence=0.8)],
    )
    return saved[0]


class TestManualMatchCrud:
    """Tests for create / update / delete / list."""

    @pytest.mark.asyncio
    async def test_create_manual_match(self, admin_service):
        record = await admin_service.create_manual_match(
            "mentee-1", "mentor-mid", 0.9, 0.8, "Strong cultural fit", "admin-1"
        )
        assert record.is_active
        assert record.original_match_id is None
        fetched = await admin_service.get_manual_match_by_id(record.id)
        assert fetched.reason == "Strong cultural fit"

    @pytest.mark.asyncio
    async def test_create_rejects_out_of_range_score(self, admin_service):
        with pytest.raises(InvalidArgumentError):
            await admin_service.create_manual_match("mentee-1", "mentor-mid", 1.2, 0.8, None, "admin-1")

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, admin_service):
        with pytest.raises(InvalidArgumentError):
            await admin_service.create_manual_match("mentee-1", "mentor-mid", 0.5, 0.5, None, "")

    @pytest.mark.asyncio
    async def test_create_unknown_profile(self, admin_service):
        with pytest.raises(NotFoundError, match="One or both user profiles not found"):
            await admin_service.create_manual_match("mentee-1", "ghost", 0.5, 0.5, None, "admin-1")

    @pytest.mark.asyncio
    async def test_update_mutable_fields(self, admin_service):
        record = await admin_service.create_manual_match(
            "mentee-1", "mentor-mid", 0.9, 0.8, None, "admin-1"
        )
        updated = await admin_service.update_manual_match(
            record.id, {"override_score": 0.5, "is_active": False}, "admin-2"
        )
        assert updated.override_score == 0.5
        assert not updated.is_active
        assert updated.admin_user_id == "admin-1"

    @pytest.mark.asyncio
    async def test_update_rejects_immutable_fields(self, admin_service):
        record = await admin_service.create_manual_match(
            "mentee-1", "mentor-mid", 0.9, 0.8, None, "admin-1"
        )
        with pytest.raises(InvalidArgumentError):
            await admin_service.update_manual_match(
                record.id, {"target_user_id": "mentor-far"}, "admin-1"
            )

    @pytest.mark.asyncio
    async def test_update_rejects_null_score(self, admin_service):
        """An explicit null for a required field is rejected and nothing is written."""
        record = await admin_service.create_manual_match(
            "mentee-1", "mentor-mid", 0.9, 0.8, "Keep", "admin-1"
        )
        with pytest.raises(InvalidArgumentError, match="override_score"):
            await admin_service.update_manual_match(
                record.id, {"override_score": None}, "admin-1"
            )
        fetched = await admin_service.get_manual_match_by_id(record.id)
        assert fetched.override_score == 0.9

    @pytest.mark.asyncio
    async def test_update_allows_clearing_reason(self, admin_service):
        record = await admin_service.create_manual_match(
            "mentee-1", "mentor-mid", 0.9, 0.8, "Temporary", "admin-1"
        )
        updated = await admin_service.update_manual_match(record.id, {"reason": None}, "admin-1")
        assert updated.reason is None

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, admin_service):
        with pytest.raises(NotFoundError):
            await admin_service.update_manual_match("nope", {"reason": "x"}, "admin-1")

    @pytest.mark.asyncio
    async def test_delete(self, admin_service):
        record = await admin_service.create_manual_match(
            "mentee-1", "mentor-mid", 0.9, 0.8, None, "admin-1"
        )
        await admin_service.delete_manual_match(record.id, "admin-1")
        with pytest.raises(NotFoundError):
            await admin_service.get_manual_match_by_id(record.id)
        with pytest.raises(NotFoundError):
            await admin_service.delete_manual_match(record.id, "admin-1")

    @pytest.mark.asyncio
    async def test_list_filters(self, admin_service):
        await admin_service.create_manual_match("mentee-1", "mentor-mid", 0.9, 0.8, None, "admin-1")
        await admin_service.create_manual_match("mentee-1", "mentor-far", 0.4, 0.8, None, "admin-2")
        mine = await admin_service.get_all_manual_matches(admin_user_id="admin-2")
        assert [m.target_user_id for m in mine] == ["mentor-far"]
        assert len(await admin_service.get_all_manual_matches()) == 2


class TestOverride:
    """Tests for overriding an algorithmic result."""

    @pytest.mark.asyncio
    async def test_override_links_both_records(self, admin_service, ai_result, result_sink):
        manual = await admin_service.override_ai_match(ai_result.id, 0.3, 0.9, "Bad fit", "admin-1")
        assert manual.original_match_id == ai_result.id
        assert manual.target_user_id == "mentor-close"

        stored = await result_sink.get_match_result(ai_result.id)
        assert stored.is_overridden
        assert stored.overridden_by_manual_match_id == manual.id

    @pytest.mark.asyncio
    async def test_second_override_conflicts(self, admin_service, ai_result):
        await admin_service.override_ai_match(ai_result.id, 0.3, 0.9, None, "admin-1")
        with pytest.raises(ConflictError):
            await admin_service.override_ai_match(ai_result.id, 0.2, 0.9, None, "admin-2")

    @pytest.mark.asyncio
    async def test_concurrent_overrides_single_winner(self, admin_service, ai_result, result_sink):
        """Of two racing overrides exactly one succeeds."""
        outcomes = await asyncio.gather(
            admin_service.override_ai_match(ai_result.id, 0.3, 0.9, None, "admin-1"),
            admin_service.override_ai_match(ai_result.id, 0.2, 0.9, None, "admin-2"),
            return_exceptions=True,
        )
        conflicts = [o for o in outcomes if isinstance(o, ConflictError)]
        assert len(conflicts) == 1
        assert len(result_sink.manual_matches) == 1

    @pytest.mark.asyncio
    async def test_lost_compare_and_swap(self, admin_service, ai_result, result_sink):
        """A result overridden between the check and the swap still conflicts."""
        async def lose(*args, **kwargs):
            return False

        result_sink.mark_overridden = lose
        with pytest.raises(ConflictError):
            await admin_service.override_ai_match(ai_result.id, 0.3, 0.9, None, "admin-1")
        assert result_sink.manual_matches == {}

    @pytest.mark.asyncio
    async def test_override_unknown_result(self, admin_service):
        with pytest.raises(NotFoundError):
            await admin_service.override_ai_match("missing", 0.3, 0.9, None, "admin-1")
