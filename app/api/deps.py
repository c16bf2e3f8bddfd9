"""
MentorMatch - Shared API dependencies.

Stores are built per request on top of the request's ``AsyncSession``.
The CF similarity cache and the hybrid blend configuration are process-wide
so they survive across requests.
"""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.schemas.recommendation import HybridConfig
from app.services.admin_matching_service import AdminMatchingService
from app.services.collaborative_filtering_service import CollaborativeFilteringEngine
from app.services.hybrid_recommendation_service import (
    HybridRecommendationCombiner,
    default_hybrid_config,
)
from app.services.matching_service import MatchingEngine
from app.stores.sql import (
    SqlInteractionHistoryStore,
    SqlProfileStore,
    SqlResultSink,
    SqlUserDirectory,
)
from app.utils.cache import TTLCache
from app.utils.errors import ConflictError, InvalidArgumentError, MentorMatchError, NotFoundError

# ── Process-wide singletons ───────────────────────────────────────────────────

_cf_cache: TTLCache | None = None
_hybrid_config: HybridConfig | None = None


def get_cf_cache() -> TTLCache:
    global _cf_cache
    if _cf_cache is None:
        _cf_cache = TTLCache(get_settings().CF_CACHE_TTL_SECONDS)
    return _cf_cache


def get_hybrid_config() -> HybridConfig:
    global _hybrid_config
    if _hybrid_config is None:
        _hybrid_config = default_hybrid_config()
    return _hybrid_config


# ── Per-request services ──────────────────────────────────────────────────────

def get_matching_engine(db: AsyncSession = Depends(get_db)) -> MatchingEngine:
    return MatchingEngine(SqlProfileStore(db), SqlResultSink(db))


def get_admin_service(db: AsyncSession = Depends(get_db)) -> AdminMatchingService:
    return AdminMatchingService(SqlProfileStore(db), SqlResultSink(db))


def get_cf_engine(db: AsyncSession = Depends(get_db)) -> CollaborativeFilteringEngine:
    return CollaborativeFilteringEngine(
        SqlUserDirectory(db),
        SqlInteractionHistoryStore(db),
        cache=get_cf_cache(),
    )


def get_hybrid_combiner(
    db: AsyncSession = Depends(get_db),
    cf_engine: CollaborativeFilteringEngine = Depends(get_cf_engine),
) -> HybridRecommendationCombiner:
    return HybridRecommendationCombiner(
        SqlUserDirectory(db),
        SqlResultSink(db),
        cf_engine,
        config=get_hybrid_config(),
    )


# ── Error mapping ─────────────────────────────────────────────────────────────

def http_error(exc: MentorMatchError) -> HTTPException:
    """Translate a domain error into the matching ``HTTPException``."""
    if isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, InvalidArgumentError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))
