"""
MentorMatch - Collaborator interfaces consumed by the engine.

The engine never talks to the database directly.  Services receive objects
implementing these protocols at construction time: ``app.stores.sql`` backs
them with an ``AsyncSession`` and ``app.stores.memory`` keeps everything in
process for tests and offline use.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from app.schemas.match import (
    ManualMatchRecord,
    MatchingResultRecord,
    MatchResult,
)
from app.schemas.profile import Profile, UserRecord
from app.schemas.recommendation import (
    FeedbackRecord,
    HybridRecommendation,
    MentorshipMatchRecord,
)


class ProfileStore(Protocol):
    async def get_profile(self, user_id: str, active_only: bool = True) -> Profile | None: ...

    async def list_active_candidates(self, exclude_user_id: str, limit: int) -> list[Profile]:
        """Active profiles other than ``exclude_user_id``, most recently updated first."""
        ...

    async def upsert_profile(self, profile: Profile) -> Profile: ...


class UserDirectory(Protocol):
    async def get_user(self, user_id: str) -> UserRecord | None: ...

    async def list_users_by_role(
        self, role: str, exclude_user_id: str | None = None
    ) -> list[UserRecord]: ...

    async def list_active_users(self, exclude_user_id: str | None = None) -> list[UserRecord]: ...

    async def count_users(self) -> int: ...


class InteractionHistoryStore(Protocol):
    async def list_completed_matches(
        self, user_id: str | None = None, role: str | None = None
    ) -> list[MentorshipMatchRecord]:
        """Completed matches, optionally those where ``user_id`` plays ``role``.

        With ``user_id`` but no ``role`` the user may be on either side.
        """
        ...

    async def list_feedback(self, reviewer_ids: list[str] | None = None) -> list[FeedbackRecord]: ...

    async def count_matches(self) -> int: ...

    async def count_feedback(self) -> int: ...

    async def average_rating(self) -> float: ...


class ResultSink(Protocol):
    async def save_match_results(
        self,
        source_user_id: str,
        algorithm: str,
        results: list[MatchResult],
        criteria: dict[str, Any] | None = None,
    ) -> list[MatchingResultRecord]: ...

    async def get_match_result(self, result_id: str) -> MatchingResultRecord | None: ...

    async def mark_overridden(
        self, result_id: str, manual_match_id: str, overridden_at: datetime
    ) -> bool:
        """Compare-and-swap the override reference.

        Returns ``True`` only for the caller that moved the result from
        "not overridden" to "overridden".
        """
        ...

    async def list_match_history(self, user_id: str, limit: int = 50) -> list[MatchingResultRecord]: ...

    async def save_manual_override(self, record: ManualMatchRecord) -> ManualMatchRecord: ...

    async def get_manual_match(self, manual_match_id: str) -> ManualMatchRecord | None: ...

    async def list_manual_matches(
        self,
        admin_user_id: str | None = None,
        is_active: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ManualMatchRecord]: ...

    async def update_manual_match(
        self, manual_match_id: str, changes: dict[str, Any]
    ) -> ManualMatchRecord | None: ...

    async def delete_manual_match(self, manual_match_id: str) -> bool: ...

    async def save_recommendations(
        self,
        requester_id: str,
        recommendation_type: str,
        recommendations: list[HybridRecommendation],
    ) -> int: ...
