"""
MentorMatch - SQLAlchemy async store implementations.

Each store wraps one ``AsyncSession``; transaction boundaries belong to the
caller (``app.database.get_db`` commits or rolls back per request).  Rows are
converted to the pydantic records in ``app.schemas`` on the way out so that
services never hold ORM instances.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.match import ManualMatch, MatchingResult
from app.models.mentorship import Feedback, MentorshipMatch
from app.models.profile import MatchingProfile
from app.models.recommendation import Recommendation
from app.models.user import User
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

logger = structlog.get_logger("mentormatch.stores.sql")


def _as_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


# ── Row converters ───────────────────────────────────────────────────────────

def _profile_from_row(row: MatchingProfile) -> Profile:
    return Profile(
        user_id=row.user_id,
        attributes=row.attributes or {},
        preferences=row.preferences or {},
        weights=row.weights or {},
        filters=row.filters or {},
        metadata=row.profile_metadata or {},
        is_active=row.is_active,
        average_score=row.average_score or 0.0,
        match_count=row.match_count or 0,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _feedback_from_row(row: Feedback) -> FeedbackRecord:
    return FeedbackRecord(
        id=str(row.id),
        match_id=str(row.match_id),
        reviewer_id=row.reviewer_id,
        rating=row.rating,
        tags=row.tags or [],
        specific_feedback=row.specific_feedback,
    )


def _match_from_row(row: MentorshipMatch) -> MentorshipMatchRecord:
    return MentorshipMatchRecord(
        id=str(row.id),
        mentor_id=row.mentor_id,
        mentee_id=row.mentee_id,
        status=row.status,
        algorithm_score=row.algorithm_score,
        start_date=row.start_date,
        end_date=row.end_date,
        feedback=[_feedback_from_row(fb) for fb in row.feedback],
        created_at=row.created_at,
    )


def _result_from_row(row: MatchingResult) -> MatchingResultRecord:
    override = None
    if row.overridden_by_manual_match_id is not None:
        override = OverrideRef(
            manual_match_id=str(row.overridden_by_manual_match_id),
            overridden_at=row.overridden_at,
        )
    return MatchingResultRecord(
        id=str(row.id),
        source_user_id=row.source_user_id,
        target_user_id=row.target_user_id,
        score=row.score,
        confidence=row.confidence,
        algorithm=row.algorithm,
        reasons=row.reasons or [],
        metadata=row.result_metadata or {},
        criteria=row.criteria,
        override=override,
        created_at=row.created_at,
    )


def _manual_from_row(row: ManualMatch) -> ManualMatchRecord:
    return ManualMatchRecord(
        id=str(row.id),
        source_user_id=row.source_user_id,
        target_user_id=row.target_user_id,
        override_score=row.override_score,
        override_confidence=row.override_confidence,
        reason=row.reason,
        admin_user_id=row.admin_user_id,
        is_active=row.is_active,
        original_match_id=str(row.original_match_id) if row.original_match_id else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ── Stores ───────────────────────────────────────────────────────────────────

class SqlProfileStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _get_row(self, user_id: str) -> MatchingProfile | None:
        stmt = select(MatchingProfile).where(MatchingProfile.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_profile(self, user_id: str, active_only: bool = True) -> Profile | None:
        row = await self._get_row(user_id)
        if row is None or (active_only and not row.is_active):
            return None
        return _profile_from_row(row)

    async def list_active_candidates(self, exclude_user_id: str, limit: int) -> list[Profile]:
        stmt = (
            select(MatchingProfile)
            .where(
                MatchingProfile.is_active.is_(True),
                MatchingProfile.user_id != exclude_user_id,
            )
            .order_by(MatchingProfile.updated_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [_profile_from_row(row) for row in result.scalars().all()]

    async def upsert_profile(self, profile: Profile) -> Profile:
        row = await self._get_row(profile.user_id)
        if row is None:
            row = MatchingProfile(user_id=profile.user_id)
            self.session.add(row)
        row.attributes = profile.attributes
        row.preferences = profile.preferences
        row.weights = profile.weights
        row.filters = profile.filters
        row.profile_metadata = profile.metadata
        row.is_active = profile.is_active
        row.average_score = profile.average_score
        row.match_count = profile.match_count
        await self.session.flush()
        await self.session.refresh(row)
        logger.debug("profile_upserted", user_id=profile.user_id)
        return _profile_from_row(row)


class SqlUserDirectory:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_user(self, user_id: str) -> UserRecord | None:
        row = await self.session.get(User, user_id)
        return UserRecord.model_validate(row) if row is not None else None

    async def list_users_by_role(
        self, role: str, exclude_user_id: str | None = None
    ) -> list[UserRecord]:
        stmt = select(User).where(User.role == role, User.is_active.is_(True))
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        result = await self.session.execute(stmt)
        return [UserRecord.model_validate(row) for row in result.scalars().all()]

    async def list_active_users(self, exclude_user_id: str | None = None) -> list[UserRecord]:
        stmt = select(User).where(User.is_active.is_(True))
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        result = await self.session.execute(stmt)
        return [UserRecord.model_validate(row) for row in result.scalars().all()]

    async def count_users(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(User))
        return int(result.scalar_one())


class SqlInteractionHistoryStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_completed_matches(
        self, user_id: str | None = None, role: str | None = None
    ) -> list[MentorshipMatchRecord]:
        stmt = select(MentorshipMatch).where(MentorshipMatch.status == "completed")
        if user_id is not None:
            if role == "mentor":
                stmt = stmt.where(MentorshipMatch.mentor_id == user_id)
            elif role == "mentee":
                stmt = stmt.where(MentorshipMatch.mentee_id == user_id)
            else:
                stmt = stmt.where(
                    or_(
                        MentorshipMatch.mentor_id == user_id,
                        MentorshipMatch.mentee_id == user_id,
                    )
                )
        result = await self.session.execute(stmt)
        return [_match_from_row(row) for row in result.scalars().all()]

    async def list_feedback(self, reviewer_ids: list[str] | None = None) -> list[FeedbackRecord]:
        stmt = select(Feedback)
        if reviewer_ids is not None:
            stmt = stmt.where(Feedback.reviewer_id.in_(reviewer_ids))
        result = await self.session.execute(stmt)
        return [_feedback_from_row(row) for row in result.scalars().all()]

    async def count_matches(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(MentorshipMatch)
        )
        return int(result.scalar_one())

    async def count_feedback(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(Feedback))
        return int(result.scalar_one())

    async def average_rating(self) -> float:
        result = await self.session.execute(select(func.avg(Feedback.rating)))
        value = result.scalar_one_or_none()
        return float(value) if value is not None else 0.0


class SqlResultSink:
    _MANUAL_MATCH_FIELDS = {"override_score", "override_confidence", "reason", "is_active"}

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # ── Matching results ──────────────────────────────────────────────────

    async def save_match_results(
        self,
        source_user_id: str,
        algorithm: str,
        results: list[MatchResult],
        criteria: dict[str, Any] | None = None,
    ) -> list[MatchingResultRecord]:
        rows = [
            MatchingResult(
                source_user_id=source_user_id,
                target_user_id=r.target_id,
                score=r.score,
                confidence=r.confidence,
                algorithm=algorithm,
                reasons=list(r.reasons),
                result_metadata=dict(r.metadata),
                criteria=criteria,
            )
            for r in results
        ]
        self.session.add_all(rows)
        await self.session.flush()
        for row in rows:
            await self.session.refresh(row)
        logger.info(
            "match_results_stored",
            source_user_id=source_user_id,
            algorithm=algorithm,
            count=len(rows),
        )
        return [_result_from_row(row) for row in rows]

    async def get_match_result(self, result_id: str) -> MatchingResultRecord | None:
        key = _as_uuid(result_id)
        if key is None:
            return None
        row = await self.session.get(MatchingResult, key)
        return _result_from_row(row) if row is not None else None

    async def mark_overridden(
        self, result_id: str, manual_match_id: str, overridden_at: datetime
    ) -> bool:
        key = _as_uuid(result_id)
        if key is None:
            return False
        stmt = (
            update(MatchingResult)
            .where(
                MatchingResult.id == key,
                MatchingResult.overridden_by_manual_match_id.is_(None),
            )
            .values(
                overridden_by_manual_match_id=uuid.UUID(manual_match_id),
                overridden_at=overridden_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_match_history(self, user_id: str, limit: int = 50) -> list[MatchingResultRecord]:
        stmt = (
            select(MatchingResult)
            .where(MatchingResult.source_user_id == user_id)
            .order_by(MatchingResult.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [_result_from_row(row) for row in result.scalars().all()]

    # ── Manual matches ────────────────────────────────────────────────────

    async def save_manual_override(self, record: ManualMatchRecord) -> ManualMatchRecord:
        row = ManualMatch(
            id=uuid.UUID(record.id),
            source_user_id=record.source_user_id,
            target_user_id=record.target_user_id,
            override_score=record.override_score,
            override_confidence=record.override_confidence,
            reason=record.reason,
            admin_user_id=record.admin_user_id,
            is_active=record.is_active,
            original_match_id=(
                uuid.UUID(record.original_match_id) if record.original_match_id else None
            ),
        )
        self.session.add(row)
        await self.session.flush()
        await self.session.refresh(row)
        return _manual_from_row(row)

    async def _get_manual_row(self, manual_match_id: str) -> ManualMatch | None:
        key = _as_uuid(manual_match_id)
        if key is None:
            return None
        return await self.session.get(ManualMatch, key)

    async def get_manual_match(self, manual_match_id: str) -> ManualMatchRecord | None:
        row = await self._get_manual_row(manual_match_id)
        return _manual_from_row(row) if row is not None else None

    async def list_manual_matches(
        self,
        admin_user_id: str | None = None,
        is_active: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ManualMatchRecord]:
        stmt = select(ManualMatch)
        if admin_user_id is not None:
            stmt = stmt.where(ManualMatch.admin_user_id == admin_user_id)
        if is_active is not None:
            stmt = stmt.where(ManualMatch.is_active.is_(is_active))
        stmt = stmt.order_by(ManualMatch.created_at.desc()).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        return [_manual_from_row(row) for row in result.scalars().all()]

    async def update_manual_match(
        self, manual_match_id: str, changes: dict[str, Any]
    ) -> ManualMatchRecord | None:
        row = await self._get_manual_row(manual_match_id)
        if row is None:
            return None
        for field, value in changes.items():
            if field in self._MANUAL_MATCH_FIELDS:
                setattr(row, field, value)
        await self.session.flush()
        await self.session.refresh(row)
        return _manual_from_row(row)

    async def delete_manual_match(self, manual_match_id: str) -> bool:
        row = await self._get_manual_row(manual_match_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True

    # ── Recommendations ───────────────────────────────────────────────────

    async def save_recommendations(
        self,
        requester_id: str,
        recommendation_type: str,
        recommendations: list[HybridRecommendation],
    ) -> int:
        rows = [
            Recommendation(
                requester_id=requester_id,
                recommended_user_id=rec.user_id,
                type=recommendation_type,
                match_score=rec.hybrid_score,
                explanation={
                    "reasons": rec.reasons,
                    "confidence": rec.confidence,
                    "algorithm": rec.algorithm,
                },
                matching_factors={
                    "collaborative_filtering_score": rec.collaborative_filtering_score,
                    "content_based_score": rec.content_based_score,
                    "hybrid_score": rec.hybrid_score,
                    "metadata": rec.metadata,
                },
            )
            for rec in recommendations
        ]
        self.session.add_all(rows)
        await self.session.flush()
        return len(rows)
