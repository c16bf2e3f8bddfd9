"""
MentorMatch - Persisted hybrid recommendations.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Recommendation(Base):
    __tablename__ = "recommendations"

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    requester_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    recommended_user_id: Mapped[str] = mapped_column(
        String(255), index=True, nullable=False
    )
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, comment="Role sought: mentor / mentee"
    )
    match_score: Mapped[float] = mapped_column(Float, nullable=False)
    explanation: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict, comment="reasons, confidence, algorithm"
    )
    matching_factors: Mapped[dict] = mapped_column(
        JSONB, nullable=False, default=dict,
        comment="CF score, content score, hybrid score, metadata",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<Recommendation {self.requester_id} -> {self.recommended_user_id} "
            f"score={self.match_score:.3f}>"
        )
