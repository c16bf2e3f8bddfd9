"""
MentorMatch - Historical mentorship matches and their feedback.

These rows feed the collaborative-filtering interaction matrix.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class MentorshipMatch(Base):
    __tablename__ = "mentorship_matches"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mentor_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    mentee_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), index=True, nullable=False,
        comment="pending / active / completed / cancelled",
    )
    algorithm_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    start_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # ── Relationships ──────────────────────────────────────────────
    feedback: Mapped[list["Feedback"]] = relationship(
        "Feedback", back_populates="match", lazy="selectin", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<MentorshipMatch {self.mentor_id} -> {self.mentee_id} "
            f"status={self.status!r}>"
        )


class Feedback(Base):
    __tablename__ = "feedback"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    match_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True),
        ForeignKey("mentorship_matches.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    reviewer_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False, comment="1-5")
    tags: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    specific_feedback: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    match: Mapped["MentorshipMatch"] = relationship(
        "MentorshipMatch", back_populates="feedback"
    )

    def __repr__(self) -> str:
        return f"<Feedback match={self.match_id} reviewer={self.reviewer_id} rating={self.rating}>"
