"""
MentorMatch - Matching API

Profile management, feature-vector matching and match history.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_matching_engine, http_error
from app.schemas.match import MatchingRequest, MatchingResponse, MatchingResultRecord
from app.schemas.profile import Profile, ProfileUpdate, ProfileUpsert
from app.services.matching_service import MatchingEngine
from app.utils.errors import MentorMatchError, NotFoundError

logger = structlog.get_logger("mentormatch.api.matching")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST /find — Score candidates for a source profile
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/find",
    response_model=MatchingResponse,
    summary="Find matches for a user",
)
async def find_matches(
    request: MatchingRequest,
    algorithm: str = Query("cosine-similarity", description="Similarity strategy name"),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> MatchingResponse:
    """Rank active candidates against the source profile.

    Unknown ``algorithm`` names and missing source profiles return 404.
    """
    try:
        return await engine.find_matches(request, algorithm_name=algorithm)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


# ──────────────────────────────────────────────────────────────────────────────
# Profiles
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/profiles",
    response_model=Profile,
    status_code=status.HTTP_201_CREATED,
    summary="Create or replace a matching profile",
)
async def create_profile(
    body: ProfileUpsert,
    engine: MatchingEngine = Depends(get_matching_engine),
) -> Profile:
    return await engine.create_profile(body.user_id, body.attributes, body.preferences)


@router.get("/profiles/{user_id}", response_model=Profile, summary="Get an active profile")
async def get_profile(
    user_id: str,
    engine: MatchingEngine = Depends(get_matching_engine),
) -> Profile:
    profile = await engine.get_profile(user_id)
    if profile is None:
        raise http_error(NotFoundError(f"Profile not found for user {user_id}"))
    return profile


@router.patch("/profiles/{user_id}", response_model=Profile, summary="Update a profile")
async def update_profile(
    user_id: str,
    body: ProfileUpdate,
    engine: MatchingEngine = Depends(get_matching_engine),
) -> Profile:
    try:
        return await engine.update_profile(user_id, body)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


# ──────────────────────────────────────────────────────────────────────────────
# GET /history/{user_id} — Persisted match results
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/history/{user_id}",
    response_model=list[MatchingResultRecord],
    summary="Matching history for a user",
)
async def get_matching_history(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> list[MatchingResultRecord]:
    history = await engine.get_matching_history(user_id, limit=limit)
    logger.debug("matching_history_served", user_id=user_id, count=len(history))
    return history
