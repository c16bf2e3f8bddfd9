"""
MentorMatch - Feature-vector matching engine.

Pipeline for ``find_matches``:
  1. Resolve the similarity strategy by name
  2. Load the (active) source profile
  3. Load active candidates, most recently updated first
  4. Drop candidates failing the request filters
  5. Score, threshold, sort descending, truncate
  6. Persist the kept results through the result sink

Profile upserts are thin pass-throughs to the profile store.
"""

from __future__ import annotations

import time
from typing import Any

import structlog

from app.config import get_settings
from app.schemas.match import (
    MatchingRequest,
    MatchingResponse,
    MatchingResultRecord,
    MatchResult,
)
from app.schemas.profile import NullValue, NumberValue, Profile, ProfileUpdate
from app.services.similarity_service import SimilarityStrategy, default_strategies
from app.stores.base import ProfileStore, ResultSink
from app.utils.errors import NotFoundError, UnknownAlgorithmError

logger = structlog.get_logger("mentormatch.matching_service")


class MatchingEngine:
    """Rank candidate profiles against a source profile.

    Dependencies are injected at construction so the engine can run against
    the SQL stores inside a request or the in-memory stores in tests.
    """

    DEFAULT_PROFILE_WEIGHT: float = 1.0

    def __init__(
        self,
        profile_store: ProfileStore,
        result_sink: ResultSink,
        strategies: dict[str, SimilarityStrategy] | None = None,
    ) -> None:
        self.profile_store = profile_store
        self.result_sink = result_sink
        self.strategies = strategies if strategies is not None else default_strategies()

        settings = get_settings()
        self.default_threshold: float = settings.MATCH_DEFAULT_THRESHOLD
        self.default_limit: int = settings.MATCH_DEFAULT_LIMIT
        self.candidate_limit: int = settings.MATCH_CANDIDATE_LIMIT
        self.candidate_multiplier: int = settings.MATCH_CANDIDATE_MULTIPLIER

    # ── Public API ────────────────────────────────────────────────────────

    async def find_matches(
        self,
        request: MatchingRequest,
        algorithm_name: str = "cosine-similarity",
    ) -> MatchingResponse:
        """Score active candidates against the request's source profile.

        Parameters
        ----------
        request:
            Criteria (source user, preference keys, weights, filters) plus an
            optional ``limit`` and ``threshold``.
        algorithm_name:
            Registered strategy name.

        Returns
        -------
        MatchingResponse
            Kept matches sorted by score (non-increasing), the number of
            candidates examined and the wall-clock time in milliseconds.

        Raises
        ------
        UnknownAlgorithmError
            No strategy is registered under ``algorithm_name``.
        NotFoundError
            The source profile does not exist or is inactive.
        """
        started = time.perf_counter()
        user_id = request.criteria.user_id
        log = logger.bind(user_id=user_id, algorithm=algorithm_name)
        log.info("find_matches_start")

        strategy = self.strategies.get(algorithm_name)
        if strategy is None:
            log.warning("find_matches_unknown_algorithm")
            raise UnknownAlgorithmError(algorithm_name)

        source = await self.profile_store.get_profile(user_id)
        if source is None:
            log.warning("find_matches_source_not_found")
            raise NotFoundError(f"Source profile not found for user {user_id}")

        candidates = await self.profile_store.list_active_candidates(
            exclude_user_id=user_id,
            limit=self._candidate_limit(request.limit),
        )

        threshold = self.default_threshold if request.threshold is None else request.threshold
        limit = request.limit or self.default_limit

        matches: list[MatchResult] = []
        for candidate in candidates:
            if not self.passes_filters(candidate, request.criteria.filters):
                continue
            result = strategy.score(source, candidate, request.criteria)
            if result.score >= threshold:
                matches.append(result)

        matches.sort(key=lambda m: m.score, reverse=True)
        matches = matches[:limit]

        await self.result_sink.save_match_results(
            source_user_id=user_id,
            algorithm=algorithm_name,
            results=matches,
            criteria=request.criteria.model_dump(),
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        log.info(
            "find_matches_complete",
            candidates=len(candidates),
            matches=len(matches),
            execution_time_ms=round(elapsed_ms, 2),
        )

        return MatchingResponse(
            matches=matches,
            total_processed=len(candidates),
            execution_time_ms=elapsed_ms,
            algorithm=algorithm_name,
        )

    @staticmethod
    def passes_filters(profile: Profile, filters: dict[str, Any]) -> bool:
        """True when ``profile`` satisfies every filter.

        A filter is a ``{"min", "max"}`` range (numeric attributes only), a
        list/set of allowed values, or an exact value.
        """
        for key, expected in filters.items():
            raw = profile.attributes.get(key)

            if isinstance(expected, dict) and "min" in expected and "max" in expected:
                value = profile.attribute(key)
                if not isinstance(value, NumberValue):
                    return False
                if value.value < expected["min"] or value.value > expected["max"]:
                    return False
            elif isinstance(expected, (list, tuple, set, frozenset)):
                # equality scan: raw may be an unhashable list or dict
                if not any(raw == allowed for allowed in expected):
                    return False
            elif isinstance(profile.attribute(key), NullValue) or raw != expected:
                return False
        return True

    async def create_profile(
        self,
        user_id: str,
        attributes: dict[str, Any],
        preferences: dict[str, Any],
    ) -> Profile:
        """Create a profile, or replace attributes/preferences of an existing one."""
        existing = await self.profile_store.get_profile(user_id, active_only=False)
        if existing is not None:
            profile = existing.model_copy(
                update={"attributes": attributes, "preferences": preferences}
            )
            logger.info("profile_updated", user_id=user_id)
        else:
            profile = Profile(
                user_id=user_id,
                attributes=attributes,
                preferences=preferences,
                weights={key: self.DEFAULT_PROFILE_WEIGHT for key in preferences},
            )
            logger.info("profile_created", user_id=user_id)
        return await self.profile_store.upsert_profile(profile)

    async def update_profile(self, user_id: str, updates: ProfileUpdate | dict[str, Any]) -> Profile:
        if isinstance(updates, dict):
            updates = ProfileUpdate.model_validate(updates)
        profile = await self.profile_store.get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"Profile not found for user {user_id}")

        changes = updates.model_dump(exclude_unset=True, exclude_none=True)
        merged = Profile.model_validate({**profile.model_dump(), **changes})
        logger.info("profile_updated", user_id=user_id, fields=sorted(changes))
        return await self.profile_store.upsert_profile(merged)

    async def get_profile(self, user_id: str) -> Profile | None:
        return await self.profile_store.get_profile(user_id)

    async def get_matching_history(self, user_id: str, limit: int = 50) -> list[MatchingResultRecord]:
        return await self.result_sink.list_match_history(user_id, limit=limit)

    # ── Private helpers ───────────────────────────────────────────────────

    def _candidate_limit(self, request_limit: int | None) -> int:
        if not request_limit:
            return self.candidate_limit
        return request_limit * self.candidate_multiplier
