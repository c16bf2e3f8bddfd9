"""
MentorMatch - User directory model.

Holds the attributes collaborative filtering and content-based matching read
(skills, bio, availability, reputation, industry, experience, location).
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(255), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(
        String(16), index=True, nullable=False, comment="mentor / mentee"
    )
    skills: Mapped[list | None] = mapped_column(
        JSONB, nullable=True, comment="Array of skill names"
    )
    bio: Mapped[str | None] = mapped_column(String, nullable=True)
    availability: Mapped[str | None] = mapped_column(String, nullable=True)
    reputation_score: Mapped[float] = mapped_column(
        Float, default=0.0, server_default="0", nullable=False
    )
    industry: Mapped[str | None] = mapped_column(String, nullable=True)
    experience_years: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    is_available_for_mentoring: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    def __repr__(self) -> str:
        return f"<User {self.email!r} id={self.id} role={self.role}>"
