"""
MentorMatch - In-process store implementations.

Used by the test-suite and by offline tooling that has no database.  State
lives in plain dicts; the override compare-and-swap is guarded by a lock.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from app.schemas.match import (
    ManualMatchRecord,
    MatchingResultRecord,
    MatchResult,
    OverrideRef,
)
from app.schemas.profile import Profile, UserRecord
from app.schemas.recommendation import (
    FeedbackRecord,
    HybridRecommendation,
    MentorshipMatchRecord,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProfileStore:
    def __init__(self, profiles: list[Profile] | None = None) -> None:
        self._profiles: dict[str, Profile] = {}
        self._touched: dict[str, int] = {}
        self._seq = itertools.count()
        for profile in profiles or []:
            self._put(profile)

    def _put(self, profile: Profile) -> Profile:
        self._profiles[profile.user_id] = profile
        self._touched[profile.user_id] = next(self._seq)
        return profile

    async def get_profile(self, user_id: str, active_only: bool = True) -> Profile | None:
        profile = self._profiles.get(user_id)
        if profile is None or (active_only and not profile.is_active):
            return None
        return profile

    async def list_active_candidates(self, exclude_user_id: str, limit: int) -> list[Profile]:
        candidates = [
            p for uid, p in self._profiles.items()
            if p.is_active and uid != exclude_user_id
        ]
        candidates.sort(key=lambda p: self._touched[p.user_id], reverse=True)
        return candidates[:limit]

    async def upsert_profile(self, profile: Profile) -> Profile:
        now = _utcnow()
        existing = self._profiles.get(profile.user_id)
        created_at = existing.created_at if existing else (profile.created_at or now)
        stored = profile.model_copy(update={"created_at": created_at, "updated_at": now})
        return self._put(stored)


class InMemoryUserDirectory:
    def __init__(self, users: list[UserRecord] | None = None) -> None:
        self._users: dict[str, UserRecord] = {u.id: u for u in users or []}

    def add(self, user: UserRecord) -> None:
        self._users[user.id] = user

    async def get_user(self, user_id: str) -> UserRecord | None:
        return self._users.get(user_id)

    async def list_users_by_role(
        self, role: str, exclude_user_id: str | None = None
    ) -> list[UserRecord]:
        return [
            u for u in self._users.values()
            if u.role == role and u.is_active and u.id != exclude_user_id
        ]

    async def list_active_users(self, exclude_user_id: str | None = None) -> list[UserRecord]:
        return [
            u for u in self._users.values()
            if u.is_active and u.id != exclude_user_id
        ]

    async def count_users(self) -> int:
        return len(self._users)


class InMemoryInteractionHistory:
    def __init__(self, matches: list[MentorshipMatchRecord] | None = None) -> None:
        self._matches: list[MentorshipMatchRecord] = list(matches or [])

    def add(self, match: MentorshipMatchRecord) -> None:
        self._matches.append(match)

    async def list_completed_matches(
        self, user_id: str | None = None, role: str | None = None
    ) -> list[MentorshipMatchRecord]:
        completed = [m for m in self._matches if m.status == "completed"]
        if user_id is None:
            return completed
        if role == "mentor":
            return [m for m in completed if m.mentor_id == user_id]
        if role == "mentee":
            return [m for m in completed if m.mentee_id == user_id]
        return [m for m in completed if user_id in (m.mentor_id, m.mentee_id)]

    async def list_feedback(self, reviewer_ids: list[str] | None = None) -> list[FeedbackRecord]:
        wanted = set(reviewer_ids) if reviewer_ids is not None else None
        return [
            fb
            for m in self._matches
            for fb in m.feedback
            if wanted is None or fb.reviewer_id in wanted
        ]

    async def count_matches(self) -> int:
        return len(self._matches)

    async def count_feedback(self) -> int:
        return sum(len(m.feedback) for m in self._matches)

    async def average_rating(self) -> float:
        ratings = [fb.rating for m in self._matches for fb in m.feedback]
        return sum(ratings) / len(ratings) if ratings else 0.0


class InMemoryResultSink:
    _MANUAL_MATCH_FIELDS = {"override_score", "override_confidence", "reason", "is_active"}

    def __init__(self) -> None:
        self.results: dict[str, MatchingResultRecord] = {}
        self.manual_matches: dict[str, ManualMatchRecord] = {}
        self.recommendations: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    async def save_match_results(
        self,
        source_user_id: str,
        algorithm: str,
        results: list[MatchResult],
        criteria: dict[str, Any] | None = None,
    ) -> list[MatchingResultRecord]:
        now = _utcnow()
        saved = []
        for r in results:
            record = MatchingResultRecord(
                id=str(uuid.uuid4()),
                source_user_id=source_user_id,
                target_user_id=r.target_id,
                score=r.score,
                confidence=r.confidence,
                algorithm=algorithm,
                reasons=list(r.reasons),
                metadata=dict(r.metadata),
                criteria=criteria,
                created_at=now,
            )
            self.results[record.id] = record
            saved.append(record)
        return saved

    async def get_match_result(self, result_id: str) -> MatchingResultRecord | None:
        return self.results.get(result_id)

    async def mark_overridden(
        self, result_id: str, manual_match_id: str, overridden_at: datetime
    ) -> bool:
        with self._lock:
            record = self.results.get(result_id)
            if record is None or record.override is not None:
                return False
            self.results[result_id] = record.model_copy(
                update={
                    "override": OverrideRef(
                        manual_match_id=manual_match_id, overridden_at=overridden_at
                    )
                }
            )
            return True

    async def list_match_history(self, user_id: str, limit: int = 50) -> list[MatchingResultRecord]:
        rows = [r for r in self.results.values() if r.source_user_id == user_id]
        # dict order is insertion order, so reversing keeps newest first on ties
        rows.reverse()
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows[:limit]

    async def save_manual_override(self, record: ManualMatchRecord) -> ManualMatchRecord:
        stored = record.model_copy(update={"created_at": record.created_at or _utcnow()})
        self.manual_matches[stored.id] = stored
        return stored

    async def get_manual_match(self, manual_match_id: str) -> ManualMatchRecord | None:
        return self.manual_matches.get(manual_match_id)

    async def list_manual_matches(
        self,
        admin_user_id: str | None = None,
        is_active: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ManualMatchRecord]:
        rows = [
            m for m in reversed(list(self.manual_matches.values()))
            if (admin_user_id is None or m.admin_user_id == admin_user_id)
            and (is_active is None or m.is_active == is_active)
        ]
        return rows[offset:offset + limit]

    async def update_manual_match(
        self, manual_match_id: str, changes: dict[str, Any]
    ) -> ManualMatchRecord | None:
        record = self.manual_matches.get(manual_match_id)
        if record is None:
            return None
        update = {k: v for k, v in changes.items() if k in self._MANUAL_MATCH_FIELDS}
        update["updated_at"] = _utcnow()
        record = record.model_copy(update=update)
        self.manual_matches[manual_match_id] = record
        return record

    async def delete_manual_match(self, manual_match_id: str) -> bool:
        return self.manual_matches.pop(manual_match_id, None) is not None

    async def save_recommendations(
        self,
        requester_id: str,
        recommendation_type: str,
        recommendations: list[HybridRecommendation],
    ) -> int:
        for rec in recommendations:
            self.recommendations.append(
                {
                    "requester_id": requester_id,
                    "recommended_user_id": rec.user_id,
                    "type": recommendation_type,
                    "match_score": rec.hybrid_score,
                }
            )
        return len(recommendations)
