"""
MentorMatch - Matching profile model.

Open attribute / preference maps are stored as JSONB; the engine reads them
through ``app.schemas.profile.Profile``.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class MatchingProfile(Base):
    __tablename__ = "matching_profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    attributes: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    preferences: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    weights: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, comment="preference key -> weight"
    )
    filters: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict,
        comment="attribute key -> value | {min,max} | list",
    )
    profile_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, nullable=False, default=dict
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", index=True, nullable=False
    )
    average_score: Mapped[float] = mapped_column(
        Float, default=0.0, server_default="0", nullable=False
    )
    match_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<MatchingProfile user={self.user_id} "
            f"keys={len(self.attributes or {})} active={self.is_active}>"
        )
