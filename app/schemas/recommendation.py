from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["mentor", "mentee"]
CFAlgorithm = Literal["user-based", "item-based", "hybrid"]


# ── Interaction history ──────────────────────────────────────────────────────

class FeedbackRecord(BaseModel):
    id: str
    match_id: str
    reviewer_id: str
    rating: int = Field(ge=1, le=5)
    tags: list[str] = []
    specific_feedback: Optional[str] = None


class MentorshipMatchRecord(BaseModel):
    id: str
    mentor_id: str
    mentee_id: str
    status: str = "completed"
    algorithm_score: Optional[float] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    feedback: list[FeedbackRecord] = []
    created_at: Optional[datetime] = None


class InteractionRecord(BaseModel):
    average_rating: float
    feedback_count: int
    duration_days: float
    success: bool


# ── Collaborative filtering ──────────────────────────────────────────────────

class UserSimilarity(BaseModel):
    user_id: str
    similarity: float
    common_matches: int = 0
    shared_preferences: float = 0.0


class CFMetadata(BaseModel):
    similarity_score: float
    feedback_score: float
    preference_score: float
    historical_success: float


class CFRecommendation(BaseModel):
    target_user_id: str
    score: float
    confidence: float
    reasons: list[str]
    algorithm: CFAlgorithm
    metadata: CFMetadata


class AlgorithmStats(BaseModel):
    total_users: int
    total_matches: int
    total_feedback: int
    average_rating: float
    cache_size: int


# ── Hybrid recommendations ───────────────────────────────────────────────────

class RecommendationRequest(BaseModel):
    user_id: str
    type: Role = Field(description="Role being sought")
    limit: int = Field(10, ge=1, le=100)
    skills: Optional[list[str]] = None


class HybridConfig(BaseModel):
    cf_weight: float = Field(0.6, ge=0.0, le=1.0)
    cb_weight: float = Field(0.4, ge=0.0, le=1.0)
    min_confidence: float = Field(0.3, ge=0.0, le=1.0)
    enable_fallback: bool = True

    model_config = {"validate_assignment": True}


class HybridConfigUpdate(BaseModel):
    cf_weight: Optional[float] = Field(None, ge=0.0, le=1.0)
    cb_weight: Optional[float] = Field(None, ge=0.0, le=1.0)
    min_confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    enable_fallback: Optional[bool] = None


class ContentMatchFactors(BaseModel):
    skills_match: float
    industry_match: float
    experience_gap: float
    location_match: float
    availability_match: float


class ContentMatch(BaseModel):
    user_id: str
    name: str
    skills: list[str] = []
    score: float  # 0-100
    factors: ContentMatchFactors


class HybridRecommendation(BaseModel):
    user_id: str
    name: str
    skills: list[str] = []
    hybrid_score: float
    collaborative_filtering_score: float
    content_based_score: float
    confidence: float
    reasons: list[str]
    algorithm: Literal["hybrid"] = "hybrid"
    metadata: dict[str, Any] = {}


class HybridRecommendationResponse(BaseModel):
    recommendations: list[HybridRecommendation]
    total_matches: int
    search_criteria: RecommendationRequest
    generated_at: datetime
    execution_time_ms: float
