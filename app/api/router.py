"""
MentorMatch - Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import matching, pipeline, recommendations
from app.api.admin import manual_matches

router = APIRouter()

router.include_router(matching.router, prefix="/matching", tags=["Matching"])
router.include_router(recommendations.router, prefix="/recommendations", tags=["Recommendations"])
router.include_router(pipeline.router, prefix="/pipeline", tags=["Data Pipeline"])
router.include_router(
    manual_matches.router, prefix="/admin/manual-matches", tags=["Admin - Manual Matches"]
)
