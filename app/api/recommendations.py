"""
MentorMatch - Recommendations API

Collaborative filtering, hybrid recommendations and the hybrid blend
configuration.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query

from app.api.deps import get_cf_engine, get_hybrid_combiner, http_error
from app.schemas.recommendation import (
    AlgorithmStats,
    CFAlgorithm,
    CFRecommendation,
    HybridConfig,
    HybridConfigUpdate,
    HybridRecommendationResponse,
    RecommendationRequest,
    Role,
    UserSimilarity,
)
from app.services.collaborative_filtering_service import CollaborativeFilteringEngine
from app.services.hybrid_recommendation_service import HybridRecommendationCombiner
from app.utils.errors import MentorMatchError

logger = structlog.get_logger("mentormatch.api.recommendations")

router = APIRouter()


@router.post(
    "/hybrid",
    response_model=HybridRecommendationResponse,
    summary="Blend collaborative and content-based recommendations",
)
async def hybrid_recommendations(
    request: RecommendationRequest,
    combiner: HybridRecommendationCombiner = Depends(get_hybrid_combiner),
) -> HybridRecommendationResponse:
    try:
        return await combiner.generate_hybrid_recommendations(request)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.get(
    "/collaborative/{user_id}",
    response_model=list[CFRecommendation],
    summary="Collaborative-filtering recommendations",
)
async def collaborative_recommendations(
    user_id: str,
    user_type: Role = Query(..., description="The requesting user's own role"),
    limit: int = Query(10, ge=1, le=100),
    algorithm: CFAlgorithm = Query("hybrid"),
    engine: CollaborativeFilteringEngine = Depends(get_cf_engine),
) -> list[CFRecommendation]:
    try:
        return await engine.generate_recommendations(
            user_id, user_type, limit=limit, algorithm=algorithm
        )
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.get(
    "/similar/{user_id}",
    response_model=list[UserSimilarity],
    summary="Users most similar to a user",
)
async def similar_users(
    user_id: str,
    user_type: Role = Query(...),
    limit: int = Query(10, ge=1, le=100),
    engine: CollaborativeFilteringEngine = Depends(get_cf_engine),
) -> list[UserSimilarity]:
    return await engine.find_similar_users(user_id, user_type, limit=limit)


@router.get("/stats", response_model=AlgorithmStats, summary="Interaction statistics")
async def algorithm_stats(
    engine: CollaborativeFilteringEngine = Depends(get_cf_engine),
) -> AlgorithmStats:
    return await engine.get_algorithm_stats()


@router.post("/cache/clear", summary="Drop every cached similarity list")
async def clear_cache(
    engine: CollaborativeFilteringEngine = Depends(get_cf_engine),
) -> dict:
    return {"cleared": engine.clear_cache()}


# ──────────────────────────────────────────────────────────────────────────────
# Hybrid blend configuration
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/config", response_model=HybridConfig, summary="Current hybrid blend")
async def get_config(
    combiner: HybridRecommendationCombiner = Depends(get_hybrid_combiner),
) -> HybridConfig:
    return combiner.get_config()


@router.put("/config", response_model=HybridConfig, summary="Update the hybrid blend")
async def update_config(
    body: HybridConfigUpdate,
    combiner: HybridRecommendationCombiner = Depends(get_hybrid_combiner),
) -> HybridConfig:
    try:
        return combiner.update_config(**body.model_dump(exclude_none=True))
    except MentorMatchError as exc:
        raise http_error(exc) from exc
