"""
MentorMatch - Admin Manual Match API

Endpoints for administrator-curated pairings:
  - Creating, updating, deleting and listing manual matches
  - Overriding an algorithmic match result (at most once per result)
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_admin_service, http_error
from app.schemas.match import (
    ManualMatchCreate,
    ManualMatchRecord,
    ManualMatchUpdate,
    OverrideRequest,
)
from app.services.admin_matching_service import AdminMatchingService
from app.utils.errors import MentorMatchError

logger = structlog.get_logger("mentormatch.api.admin.manual_matches")

router = APIRouter()


@router.post(
    "",
    response_model=ManualMatchRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create a manual match",
)
async def create_manual_match(
    body: ManualMatchCreate,
    service: AdminMatchingService = Depends(get_admin_service),
) -> ManualMatchRecord:
    try:
        return await service.create_manual_match(
            body.source_user_id,
            body.target_user_id,
            body.override_score,
            body.override_confidence,
            body.reason,
            body.admin_user_id,
        )
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.get("", response_model=list[ManualMatchRecord], summary="List manual matches")
async def list_manual_matches(
    admin_user_id: Optional[str] = Query(None, description="Filter by creating admin"),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: AdminMatchingService = Depends(get_admin_service),
) -> list[ManualMatchRecord]:
    return await service.get_all_manual_matches(
        admin_user_id=admin_user_id, is_active=is_active, limit=limit, offset=offset
    )


@router.get("/{manual_match_id}", response_model=ManualMatchRecord, summary="Get a manual match")
async def get_manual_match(
    manual_match_id: str,
    service: AdminMatchingService = Depends(get_admin_service),
) -> ManualMatchRecord:
    try:
        return await service.get_manual_match_by_id(manual_match_id)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.patch(
    "/{manual_match_id}",
    response_model=ManualMatchRecord,
    summary="Update the mutable fields of a manual match",
)
async def update_manual_match(
    manual_match_id: str,
    body: ManualMatchUpdate,
    admin_user_id: str = Query(..., description="Admin performing the change"),
    service: AdminMatchingService = Depends(get_admin_service),
) -> ManualMatchRecord:
    try:
        return await service.update_manual_match(manual_match_id, body, admin_user_id)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


@router.delete(
    "/{manual_match_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a manual match",
)
async def delete_manual_match(
    manual_match_id: str,
    admin_user_id: str = Query(..., description="Admin performing the change"),
    service: AdminMatchingService = Depends(get_admin_service),
) -> None:
    try:
        await service.delete_manual_match(manual_match_id, admin_user_id)
    except MentorMatchError as exc:
        raise http_error(exc) from exc


# ──────────────────────────────────────────────────────────────────────────────
# POST /override/{match_result_id} — Supersede an algorithmic result
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/override/{match_result_id}",
    response_model=ManualMatchRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Override an AI match result",
)
async def override_ai_match(
    match_result_id: str,
    body: OverrideRequest,
    service: AdminMatchingService = Depends(get_admin_service),
) -> ManualMatchRecord:
    """Returns 409 when the result has already been overridden."""
    try:
        return await service.override_ai_match(
            match_result_id,
            body.override_score,
            body.override_confidence,
            body.reason,
            body.admin_user_id,
        )
    except MentorMatchError as exc:
        logger.info("override_request_rejected", match_result_id=match_result_id, error=str(exc))
        raise http_error(exc) from exc
