from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field


class MatchingCriteria(BaseModel):
    user_id: str
    preferences: dict[str, Any] = {}
    weights: dict[str, float] = {}
    filters: dict[str, Any] = {}


class MatchingRequest(BaseModel):
    criteria: MatchingCriteria
    limit: Optional[int] = Field(None, ge=1, le=500)
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0)


class MatchResult(BaseModel):
    target_id: str
    score: float
    confidence: float
    reasons: list[str] = []
    metadata: dict[str, Any] = {}


class MatchingResponse(BaseModel):
    matches: list[MatchResult]
    total_processed: int
    execution_time_ms: float
    algorithm: str


# ── Persisted results and overrides ─────────────────────────────────────────

class OverrideRef(BaseModel):
    manual_match_id: str
    overridden_at: datetime


class MatchingResultRecord(BaseModel):
    id: str
    source_user_id: str
    target_user_id: str
    score: float
    confidence: float
    algorithm: str
    reasons: list[str] = []
    metadata: dict[str, Any] = {}
    criteria: Optional[dict[str, Any]] = None
    override: Optional[OverrideRef] = None
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def is_overridden(self) -> bool:
        return self.override is not None

    @computed_field
    @property
    def overridden_by_manual_match_id(self) -> Optional[str]:
        return self.override.manual_match_id if self.override else None


class ManualMatchRecord(BaseModel):
    id: str
    source_user_id: str
    target_user_id: str
    override_score: float
    override_confidence: float
    reason: Optional[str] = None
    admin_user_id: str
    is_active: bool = True
    original_match_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ManualMatchCreate(BaseModel):
    source_user_id: str
    target_user_id: str
    override_score: float
    override_confidence: float
    reason: Optional[str] = None
    admin_user_id: str


class ManualMatchUpdate(BaseModel):
    override_score: Optional[float] = None
    override_confidence: Optional[float] = None
    reason: Optional[str] = None
    is_active: Optional[bool] = None
    # Immutable: accepted only so the service can reject them explicitly.
    source_user_id: Optional[str] = None
    target_user_id: Optional[str] = None
    admin_user_id: Optional[str] = None
    original_match_id: Optional[str] = None


class OverrideRequest(BaseModel):
    override_score: float
    override_confidence: float
    reason: Optional[str] = None
    admin_user_id: str
