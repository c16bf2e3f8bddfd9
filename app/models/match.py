"""
MentorMatch - Matching result and manual override models.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class MatchingResult(Base):
    __tablename__ = "matching_results"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    source_user_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )
    target_user_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    algorithm: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    reasons: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    result_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )
    criteria: Mapped[dict | None] = mapped_column(
        JSONB, nullable=True, comment="Request criteria snapshot"
    )
    overridden_by_manual_match_id: Mapped[uuid.UUID | None] = mapped_column(
        PgUUID(as_uuid=True),
        nullable=True,
        comment="Set exactly once by an admin override",
    )
    overridden_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True, nullable=False
    )

    @property
    def is_overridden(self) -> bool:
        return self.overridden_by_manual_match_id is not None

    def __repr__(self) -> str:
        return (
            f"<MatchingResult {self.source_user_id} -> {self.target_user_id} "
            f"score={self.score:.2f} algo={self.algorithm}>"
        )


class ManualMatch(Base):
    __tablename__ = "manual_matches"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    source_user_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )
    target_user_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )
    override_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    override_confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_user_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    original_match_id: Mapped[uuid.UUID | None] = mapped_column(
        PgUUID(as_uuid=True),
        nullable=True,
        unique=True,
        comment="MatchingResult superseded by this override",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True, nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return (
            f"<ManualMatch {self.source_user_id} <-> {self.target_user_id} "
            f"admin={self.admin_user_id}>"
        )
