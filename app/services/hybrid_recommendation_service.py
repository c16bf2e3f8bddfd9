"""
MentorMatch - Hybrid recommendation combiner.

Blends collaborative-filtering output with the content-based pass:

  hybrid = cf_score * cf_weight + (content_score / 100) * cb_weight

Candidates found by both passes sum their contributions.  Content-only
candidates carry a default confidence of 0.5.  Results below
``min_confidence`` are dropped before sorting and truncation.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import ValidationError

from app.config import get_settings
from app.schemas.recommendation import (
    CFRecommendation,
    ContentMatch,
    HybridConfig,
    HybridRecommendation,
    HybridRecommendationResponse,
    RecommendationRequest,
)
from app.services.collaborative_filtering_service import (
    CollaborativeFilteringEngine,
    opposite_role,
)
from app.services.content_matching_service import ContentMatcher
from app.stores.base import ResultSink, UserDirectory
from app.utils.errors import InvalidArgumentError, NotFoundError

logger = structlog.get_logger("mentormatch.hybrid_recommendation_service")


def default_hybrid_config() -> HybridConfig:
    settings = get_settings()
    return HybridConfig(
        cf_weight=settings.HYBRID_CF_WEIGHT,
        cb_weight=settings.HYBRID_CB_WEIGHT,
        min_confidence=settings.HYBRID_MIN_CONFIDENCE,
        enable_fallback=settings.HYBRID_ENABLE_FALLBACK,
    )


class HybridRecommendationCombiner:
    """Merge CF and content-based candidates into one ranked list.

    The ``config`` object is held by reference so a process-wide instance can
    be shared across per-request combiners; ``update_config`` mutates it.
    """

    CONTENT_CONFIDENCE: float = 0.5
    CF_OVERSAMPLE: int = 2
    CONTENT_REASON: str = "Content-based matching"

    def __init__(
        self,
        user_directory: UserDirectory,
        result_sink: ResultSink,
        cf_engine: CollaborativeFilteringEngine,
        content_matcher: ContentMatcher | None = None,
        config: HybridConfig | None = None,
    ) -> None:
        self.user_directory = user_directory
        self.result_sink = result_sink
        self.cf_engine = cf_engine
        self.content_matcher = content_matcher or ContentMatcher(user_directory)
        self.config = config if config is not None else default_hybrid_config()

    # ── Public API ────────────────────────────────────────────────────────

    async def generate_hybrid_recommendations(
        self,
        request: RecommendationRequest,
        config: HybridConfig | dict[str, Any] | None = None,
    ) -> HybridRecommendationResponse:
        """Rank counterparts of role ``request.type`` for ``request.user_id``.

        Parameters
        ----------
        request:
            Requester id, the role being sought, a result limit and an
            optional skills filter for the content pass.
        config:
            Per-call overrides merged over the current configuration.

        Raises
        ------
        NotFoundError
            The requester is not in the user directory.
        """
        started = time.perf_counter()
        effective = self._merged_config(config)
        log = logger.bind(user_id=request.user_id, seeking=request.type)
        log.info("hybrid_recommendations_start", **effective.model_dump())

        requester = await self.user_directory.get_user(request.user_id)
        if requester is None:
            log.warning("hybrid_requester_not_found")
            raise NotFoundError(f"Requester {request.user_id} not found")

        cf_results = await self._collaborative_pass(request, effective)
        content_results = await self.content_matcher.recommend(requester, request)

        combined = await self.combine(cf_results, content_results, effective)
        combined = combined[: request.limit]

        await self.result_sink.save_recommendations(request.user_id, request.type, combined)

        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(
            "hybrid_recommendations_complete",
            cf_candidates=len(cf_results),
            content_candidates=len(content_results),
            returned=len(combined),
            execution_time_ms=round(elapsed_ms, 2),
        )
        return HybridRecommendationResponse(
            recommendations=combined,
            total_matches=len(combined),
            search_criteria=request,
            generated_at=datetime.now(timezone.utc),
            execution_time_ms=elapsed_ms,
        )

    async def combine(
        self,
        cf_results: list[CFRecommendation],
        content_results: list[ContentMatch],
        config: HybridConfig,
    ) -> list[HybridRecommendation]:
        combined: dict[str, HybridRecommendation] = {}

        for cf in cf_results:
            user = await self.user_directory.get_user(cf.target_user_id)
            if user is None:
                continue
            combined[cf.target_user_id] = HybridRecommendation(
                user_id=cf.target_user_id,
                name=user.name,
                skills=user.skills,
                hybrid_score=cf.score * config.cf_weight,
                collaborative_filtering_score=cf.score,
                content_based_score=0.0,
                confidence=cf.confidence,
                reasons=list(cf.reasons),
                metadata={"cf_algorithm": cf.algorithm, **cf.metadata.model_dump()},
            )

        for content in content_results:
            content_score = content.score / 100
            existing = combined.get(content.user_id)
            if existing is not None:
                existing.hybrid_score += content_score * config.cb_weight
                existing.content_based_score = content_score
                existing.confidence = max(existing.confidence, self.CONTENT_CONFIDENCE)
                existing.reasons.append(self.CONTENT_REASON)
            else:
                combined[content.user_id] = HybridRecommendation(
                    user_id=content.user_id,
                    name=content.name,
                    skills=content.skills,
                    hybrid_score=content_score * config.cb_weight,
                    collaborative_filtering_score=0.0,
                    content_based_score=content_score,
                    confidence=self.CONTENT_CONFIDENCE,
                    reasons=[self.CONTENT_REASON],
                    metadata={
                        "cf_algorithm": "none",
                        "similarity_score": 0.0,
                        "feedback_score": 0.0,
                        "preference_score": 0.0,
                        "historical_success": 0.0,
                    },
                )

        kept = [r for r in combined.values() if r.confidence >= config.min_confidence]
        kept.sort(key=lambda r: r.hybrid_score, reverse=True)
        return kept

    def get_config(self) -> HybridConfig:
        return self.config.model_copy()

    def update_config(self, **changes: Any) -> HybridConfig:
        """Apply validated changes to the shared configuration in place."""
        updated = self._merged_config(changes)
        for name, value in updated.model_dump().items():
            setattr(self.config, name, value)
        logger.info("hybrid_config_updated", **self.config.model_dump())
        return self.get_config()

    # ── Private helpers ───────────────────────────────────────────────────

    def _merged_config(self, overrides: HybridConfig | dict[str, Any] | None) -> HybridConfig:
        if overrides is None:
            return self.config.model_copy()
        if isinstance(overrides, HybridConfig):
            overrides = overrides.model_dump(exclude_unset=True)
        changes = {k: v for k, v in overrides.items() if v is not None}
        try:
            return HybridConfig.model_validate({**self.config.model_dump(), **changes})
        except ValidationError as exc:
            raise InvalidArgumentError(f"Invalid hybrid configuration: {exc}") from exc

    async def _collaborative_pass(
        self, request: RecommendationRequest, config: HybridConfig
    ) -> list[CFRecommendation]:
        try:
            return await self.cf_engine.generate_recommendations(
                request.user_id,
                opposite_role(request.type),
                limit=request.limit * self.CF_OVERSAMPLE,
                algorithm="hybrid",
            )
        except Exception as exc:
            if not config.enable_fallback:
                raise
            logger.warning(
                "hybrid_cf_fallback",
                user_id=request.user_id,
                error=str(exc),
            )
            return []
