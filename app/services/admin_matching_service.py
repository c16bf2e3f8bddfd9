"""
MentorMatch - Administrator manual matches and overrides.

Manual matches are admin-issued pairings.  ``override_ai_match`` supersedes
one algorithmic ``MatchingResult``: the override reference on the result is
set through a compare-and-swap in the result sink, so two concurrent
overrides of the same result cannot both succeed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

import structlog

from app.schemas.match import ManualMatchRecord, ManualMatchUpdate
from app.stores.base import ProfileStore, ResultSink
from app.utils.errors import ConflictError, InvalidArgumentError, NotFoundError

logger = structlog.get_logger("mentormatch.admin_matching_service")


class AdminMatchingService:
    IMMUTABLE_FIELDS: tuple[str, ...] = (
        "source_user_id",
        "target_user_id",
        "admin_user_id",
        "original_match_id",
    )
    NON_NULLABLE_FIELDS: tuple[str, ...] = ("override_score", "override_confidence", "is_active")

    def __init__(self, profile_store: ProfileStore, result_sink: ResultSink) -> None:
        self.profile_store = profile_store
        self.result_sink = result_sink

    # ── Public API ────────────────────────────────────────────────────────

    async def create_manual_match(
        self,
        source_user_id: str,
        target_user_id: str,
        override_score: float,
        override_confidence: float,
        reason: str | None,
        admin_user_id: str,
    ) -> ManualMatchRecord:
        """Create an admin pairing between two existing profiles."""
        if not source_user_id or not target_user_id or not admin_user_id:
            raise InvalidArgumentError(
                "Source user, target user, and admin user IDs are required."
            )
        self._validate_scores(override_score, override_confidence)

        source = await self.profile_store.get_profile(source_user_id, active_only=False)
        target = await self.profile_store.get_profile(target_user_id, active_only=False)
        if source is None or target is None:
            raise NotFoundError("One or both user profiles not found.")

        record = await self.result_sink.save_manual_override(
            ManualMatchRecord(
                id=str(uuid.uuid4()),
                source_user_id=source_user_id,
                target_user_id=target_user_id,
                override_score=override_score,
                override_confidence=override_confidence,
                reason=reason,
                admin_user_id=admin_user_id,
                is_active=True,
            )
        )
        logger.info(
            "manual_match_created",
            manual_match_id=record.id,
            source_user_id=source_user_id,
            target_user_id=target_user_id,
            admin_user_id=admin_user_id,
        )
        return record

    async def update_manual_match(
        self,
        manual_match_id: str,
        updates: ManualMatchUpdate | dict[str, Any],
        admin_user_id: str,
    ) -> ManualMatchRecord:
        if isinstance(updates, dict):
            updates = ManualMatchUpdate.model_validate(updates)
        changes = updates.model_dump(exclude_unset=True)

        existing = await self.result_sink.get_manual_match(manual_match_id)
        if existing is None:
            raise NotFoundError(f"Manual match with ID {manual_match_id} not found.")

        if any(changes.get(field) for field in self.IMMUTABLE_FIELDS):
            raise InvalidArgumentError(
                "Cannot change source, target, admin, or original match IDs directly."
            )
        nulled = [f for f in self.NON_NULLABLE_FIELDS if f in changes and changes[f] is None]
        if nulled:
            raise InvalidArgumentError(f"Fields cannot be null: {', '.join(nulled)}.")
        self._validate_scores(
            changes.get("override_score"), changes.get("override_confidence")
        )

        updated = await self.result_sink.update_manual_match(manual_match_id, changes)
        if updated is None:
            raise NotFoundError(f"Manual match with ID {manual_match_id} not found.")

        logger.info(
            "manual_match_updated",
            manual_match_id=manual_match_id,
            admin_user_id=admin_user_id,
            fields=sorted(k for k in changes if k not in self.IMMUTABLE_FIELDS),
        )
        return updated

    async def delete_manual_match(self, manual_match_id: str, admin_user_id: str) -> None:
        if not await self.result_sink.delete_manual_match(manual_match_id):
            raise NotFoundError(f"Manual match with ID {manual_match_id} not found.")
        logger.info(
            "manual_match_deleted",
            manual_match_id=manual_match_id,
            admin_user_id=admin_user_id,
        )

    async def get_all_manual_matches(
        self,
        admin_user_id: str | None = None,
        is_active: bool | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[ManualMatchRecord]:
        return await self.result_sink.list_manual_matches(
            admin_user_id=admin_user_id, is_active=is_active, limit=limit, offset=offset
        )

    async def get_manual_match_by_id(self, manual_match_id: str) -> ManualMatchRecord:
        record = await self.result_sink.get_manual_match(manual_match_id)
        if record is None:
            raise NotFoundError(f"Manual match with ID {manual_match_id} not found.")
        return record

    async def override_ai_match(
        self,
        original_match_id: str,
        override_score: float,
        override_confidence: float,
        reason: str | None,
        admin_user_id: str,
    ) -> ManualMatchRecord:
        """Supersede an algorithmic match result with an admin decision.

        Raises
        ------
        NotFoundError
            ``original_match_id`` does not exist.
        ConflictError
            The result is already overridden, including when a concurrent
            override wins the compare-and-swap first.
        """
        log = logger.bind(original_match_id=original_match_id, admin_user_id=admin_user_id)

        if not admin_user_id:
            raise InvalidArgumentError("Admin user ID is required.")
        self._validate_scores(override_score, override_confidence)

        original = await self.result_sink.get_match_result(original_match_id)
        if original is None:
            raise NotFoundError(f"Original AI match with ID {original_match_id} not found.")
        if original.override is not None:
            log.warning("override_rejected_already_overridden")
            raise ConflictError(f"AI match {original_match_id} is already overridden.")

        manual_match_id = str(uuid.uuid4())
        swapped = await self.result_sink.mark_overridden(
            original_match_id, manual_match_id, datetime.now(timezone.utc)
        )
        if not swapped:
            log.warning("override_rejected_lost_race")
            raise ConflictError(f"AI match {original_match_id} is already overridden.")

        record = await self.result_sink.save_manual_override(
            ManualMatchRecord(
                id=manual_match_id,
                source_user_id=original.source_user_id,
                target_user_id=original.target_user_id,
                override_score=override_score,
                override_confidence=override_confidence,
                reason=reason,
                admin_user_id=admin_user_id,
                is_active=True,
                original_match_id=original.id,
            )
        )
        log.info("ai_match_overridden", manual_match_id=manual_match_id, reason=reason)
        return record

    # ── Private helpers ───────────────────────────────────────────────────

    @staticmethod
    def _validate_scores(score: float | None, confidence: float | None) -> None:
        for value in (score, confidence):
            if value is not None and not 0.0 <= value <= 1.0:
                raise InvalidArgumentError("Score and confidence must be between 0 and 1.")
