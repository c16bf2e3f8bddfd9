"""Initial schema — all 7 MentorMatch tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── 1. users ────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("email", sa.String, unique=True, index=True, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column(
            "role",
            sa.String(16),
            index=True,
            nullable=False,
            comment="mentor / mentee",
        ),
        sa.Column(
            "skills",
            postgresql.JSONB,
            nullable=True,
            comment="Array of skill names",
        ),
        sa.Column("bio", sa.String, nullable=True),
        sa.Column("availability", sa.String, nullable=True),
        sa.Column("reputation_score", sa.Float, server_default="0", nullable=False),
        sa.Column("industry", sa.String, nullable=True),
        sa.Column("experience_years", sa.Integer, server_default="0", nullable=False),
        sa.Column("location", sa.String, nullable=True),
        sa.Column(
            "is_available_for_mentoring",
            sa.Boolean,
            server_default="false",
            nullable=False,
        ),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 2. matching_profiles ────────────────────────────────────────
    op.create_table(
        "matching_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.String(255), unique=True, index=True, nullable=False),
        sa.Column("attributes", postgresql.JSONB, nullable=False),
        sa.Column("preferences", postgresql.JSONB, nullable=False),
        sa.Column(
            "weights",
            postgresql.JSONB,
            nullable=False,
            comment="preference key -> weight",
        ),
        sa.Column(
            "filters",
            postgresql.JSONB,
            nullable=False,
            comment="attribute key -> value | {min,max} | list",
        ),
        sa.Column("metadata", postgresql.JSONB, nullable=False),
        sa.Column(
            "is_active",
            sa.Boolean,
            server_default="true",
            index=True,
            nullable=False,
        ),
        sa.Column("average_score", sa.Float, server_default="0", nullable=False),
        sa.Column("match_count", sa.Integer, server_default="0", nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 3. matching_results ─────────────────────────────────────────
    op.create_table(
        "matching_results",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("source_user_id", sa.String(255), index=True, nullable=False),
        sa.Column("target_user_id", sa.String(255), index=True, nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column("confidence", sa.Float, nullable=False),
        sa.Column("algorithm", sa.String(100), index=True, nullable=False),
        sa.Column("reasons", postgresql.JSONB, nullable=False),
        sa.Column("metadata", postgresql.JSONB, nullable=False),
        sa.Column(
            "criteria",
            postgresql.JSONB,
            nullable=True,
            comment="Request criteria snapshot",
        ),
        sa.Column(
            "overridden_by_manual_match_id",
            postgresql.UUID(as_uuid=True),
            nullable=True,
            comment="Set exactly once by an admin override",
        ),
        sa.Column("overridden_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            index=True,
            nullable=False,
        ),
    )

    # ── 4. manual_matches ───────────────────────────────────────────
    op.create_table(
        "manual_matches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("source_user_id", sa.String(255), index=True, nullable=False),
        sa.Column("target_user_id", sa.String(255), index=True, nullable=False),
        sa.Column("override_score", sa.Float, nullable=True),
        sa.Column("override_confidence", sa.Float, nullable=True),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("admin_user_id", sa.String(255), index=True, nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column(
            "original_match_id",
            postgresql.UUID(as_uuid=True),
            unique=True,
            nullable=True,
            comment="MatchingResult superseded by this override",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            index=True,
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    # ── 5. mentorship_matches ───────────────────────────────────────
    op.create_table(
        "mentorship_matches",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "mentor_id",
            sa.String(255),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column(
            "mentee_id",
            sa.String(255),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.String(16),
            index=True,
            nullable=False,
            comment="pending / active / completed / cancelled",
        ),
        sa.Column("algorithm_score", sa.Float, nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 6. feedback ─────────────────────────────────────────────────
    op.create_table(
        "feedback",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "match_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("mentorship_matches.id", ondelete="CASCADE"),
            index=True,
            nullable=False,
        ),
        sa.Column("reviewer_id", sa.String(255), index=True, nullable=False),
        sa.Column("rating", sa.Integer, nullable=False, comment="1-5"),
        sa.Column("tags", postgresql.JSONB, nullable=True),
        sa.Column("specific_feedback", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )

    # ── 7. recommendations ──────────────────────────────────────────
    op.create_table(
        "recommendations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("requester_id", sa.String(255), index=True, nullable=False),
        sa.Column("recommended_user_id", sa.String(255), index=True, nullable=False),
        sa.Column(
            "type",
            sa.String(16),
            nullable=False,
            comment="Role sought: mentor / mentee",
        ),
        sa.Column("match_score", sa.Float, nullable=False),
        sa.Column(
            "explanation",
            postgresql.JSONB,
            nullable=False,
            comment="reasons, confidence, algorithm",
        ),
        sa.Column(
            "matching_factors",
            postgresql.JSONB,
            nullable=False,
            comment="CF score, content score, hybrid score, metadata",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )


def downgrade() -> None:
    # Drop in reverse order (children / dependents first).
    op.drop_table("recommendations")
    op.drop_table("feedback")
    op.drop_table("mentorship_matches")
    op.drop_table("manual_matches")
    op.drop_table("matching_results")
    op.drop_table("matching_profiles")
    op.drop_table("users")
