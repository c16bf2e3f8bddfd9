"""
MentorMatch - Collaborative filtering over historical mentorship outcomes.

Every invocation rebuilds an interaction snapshot from the history store
(completed matches with their feedback, ratings per reviewer, match ids per
user) and then works purely in memory:

  user similarity = 0.40 * skills Jaccard
                  + 0.20 * reputation closeness
                  + 0.15 * bio token Jaccard
                  + 0.10 * availability agreement
                  + 0.15 * reviewer rating closeness

Three recommendation strategies sit on top:
  user-based   users similar to the subject -> their successful matches
  item-based   subject's successful matches -> users similar to the counterpart
  hybrid       user-based x 0.6 + item-based x 0.4, merged per candidate

Similar-user lists are cached per ``"{user_id}-{role}"`` for
``CF_CACHE_TTL_SECONDS``; the cache is only ever cleared wholesale.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field

import structlog

from app.config import get_settings
from app.schemas.profile import UserRecord
from app.schemas.recommendation import (
    AlgorithmStats,
    CFMetadata,
    CFRecommendation,
    InteractionRecord,
    MentorshipMatchRecord,
    UserSimilarity,
)
from app.stores.base import InteractionHistoryStore, UserDirectory
from app.utils.cache import TTLCache
from app.utils.errors import InvalidArgumentError

logger = structlog.get_logger("mentormatch.collaborative_filtering_service")

ALGORITHMS: tuple[str, ...] = ("user-based", "item-based", "hybrid")


def opposite_role(role: str) -> str:
    return "mentee" if role == "mentor" else "mentor"


@dataclass
class InteractionSnapshot:
    """History data prefetched once per recommendation call."""

    completed_matches: list[MentorshipMatchRecord]
    matrix: dict[str, dict[str, InteractionRecord]]
    ratings_by_reviewer: dict[str, list[int]]
    match_ids_by_user: dict[str, set[str]]
    success_by_match_id: dict[str, bool] = field(default_factory=dict)
    users_by_role: dict[str, list[UserRecord]] = field(default_factory=dict)


class CollaborativeFilteringEngine:
    """Recommend counterparts from the outcomes of similar users' matches."""

    # ── Similarity weights ────────────────────────────────────────────────
    SKILLS_WEIGHT: float = 0.4
    EXPERIENCE_WEIGHT: float = 0.2
    BIO_WEIGHT: float = 0.15
    AVAILABILITY_WEIGHT: float = 0.1
    INTERACTION_WEIGHT: float = 0.15

    # ── Interaction defaults ──────────────────────────────────────────────
    NEUTRAL_RATING: float = 3.0
    DEFAULT_DURATION_DAYS: float = 30.0
    SUCCESS_RATING: float = 4.0

    # ── Strategy constants ────────────────────────────────────────────────
    USER_BASED_NEIGHBOURS: int = 20
    ITEM_BASED_NEIGHBOURS: int = 10
    HYBRID_USER_WEIGHT: float = 0.6
    HYBRID_ITEM_WEIGHT: float = 0.4
    HIGH_SIMILARITY: float = 0.7

    def __init__(
        self,
        user_directory: UserDirectory,
        history_store: InteractionHistoryStore,
        cache: TTLCache | None = None,
    ) -> None:
        settings = get_settings()
        self.user_directory = user_directory
        self.history_store = history_store
        self.cache = cache if cache is not None else TTLCache(settings.CF_CACHE_TTL_SECONDS)
        self.min_similarity: float = settings.CF_MIN_SIMILARITY

    # ── Public API ────────────────────────────────────────────────────────

    async def generate_recommendations(
        self,
        user_id: str,
        user_type: str,
        limit: int = 10,
        algorithm: str = "hybrid",
    ) -> list[CFRecommendation]:
        """Recommend counterparts for ``user_id`` acting in role ``user_type``."""
        if algorithm not in ALGORITHMS:
            raise InvalidArgumentError(f"Unknown collaborative filtering algorithm {algorithm!r}")

        log = logger.bind(user_id=user_id, user_type=user_type, algorithm=algorithm)
        log.info("cf_recommendations_start", limit=limit)

        snapshot = await self.build_snapshot()

        if algorithm == "user-based":
            results = await self._user_based(user_id, user_type, limit, snapshot)
        elif algorithm == "item-based":
            results = await self._item_based(user_id, user_type, limit, snapshot)
        else:
            results = await self._hybrid(user_id, user_type, limit, snapshot)

        log.info("cf_recommendations_complete", count=len(results))
        return results

    async def find_similar_users(
        self,
        user_id: str,
        user_type: str,
        limit: int = 10,
        snapshot: InteractionSnapshot | None = None,
    ) -> list[UserSimilarity]:
        """Users of role ``user_type`` most similar to ``user_id``."""
        cache_key = f"{user_id}-{user_type}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("cf_cache_hit", key=cache_key)
            return cached[:limit]

        subject = await self.user_directory.get_user(user_id)
        if subject is None:
            return []

        if snapshot is None:
            snapshot = await self.build_snapshot()
        candidates = await self._users_of_role(user_type, snapshot)

        similarities = [
            sim
            for sim in (
                self.calculate_user_similarity(subject, c, snapshot)
                for c in candidates
                if c.id != user_id
            )
            if sim.similarity > self.min_similarity
        ]
        similarities.sort(key=lambda s: s.similarity, reverse=True)

        self.cache.set(cache_key, similarities)
        logger.debug("cf_cache_populated", key=cache_key, size=len(similarities))
        return similarities[:limit]

    def clear_cache(self) -> int:
        cleared = self.cache.clear()
        logger.info("cf_cache_cleared", entries=cleared)
        return cleared

    async def get_algorithm_stats(self) -> AlgorithmStats:
        return AlgorithmStats(
            total_users=await self.user_directory.count_users(),
            total_matches=await self.history_store.count_matches(),
            total_feedback=await self.history_store.count_feedback(),
            average_rating=await self.history_store.average_rating(),
            cache_size=len(self.cache),
        )

    # ── Snapshot ──────────────────────────────────────────────────────────

    async def build_snapshot(self) -> InteractionSnapshot:
        completed = await self.history_store.list_completed_matches()
        feedback = await self.history_store.list_feedback()

        matrix: dict[str, dict[str, InteractionRecord]] = defaultdict(dict)
        match_ids: dict[str, set[str]] = defaultdict(set)
        success: dict[str, bool] = {}
        for match in completed:
            record = self.interaction_for(match)
            success[match.id] = record.success
            matrix[match.mentor_id][match.mentee_id] = record
            matrix[match.mentee_id][match.mentor_id] = record
            match_ids[match.mentor_id].add(match.id)
            match_ids[match.mentee_id].add(match.id)

        ratings: dict[str, list[int]] = defaultdict(list)
        for fb in feedback:
            ratings[fb.reviewer_id].append(fb.rating)

        logger.debug(
            "cf_interaction_matrix_built",
            users=len(matrix),
            matches=len(completed),
        )
        return InteractionSnapshot(
            completed_matches=completed,
            matrix=dict(matrix),
            ratings_by_reviewer=dict(ratings),
            match_ids_by_user=dict(match_ids),
            success_by_match_id=success,
        )

    def interaction_for(self, match: MentorshipMatchRecord) -> InteractionRecord:
        if match.feedback:
            avg_rating = sum(fb.rating for fb in match.feedback) / len(match.feedback)
        else:
            avg_rating = self.NEUTRAL_RATING

        if match.start_date and match.end_date:
            duration = (match.end_date - match.start_date).total_seconds() / 86400
        else:
            duration = self.DEFAULT_DURATION_DAYS

        return InteractionRecord(
            average_rating=avg_rating,
            feedback_count=len(match.feedback),
            duration_days=duration,
            success=avg_rating >= self.SUCCESS_RATING,
        )

    # ── Similarity ────────────────────────────────────────────────────────

    def calculate_user_similarity(
        self,
        user: UserRecord,
        other: UserRecord,
        snapshot: InteractionSnapshot,
    ) -> UserSimilarity:
        bio_similarity = (
            self.text_similarity(user.bio, other.bio) if user.bio and other.bio else 0.0
        )
        similarity = (
            self.SKILLS_WEIGHT * self.skills_similarity(user.skills, other.skills)
            + self.EXPERIENCE_WEIGHT * self.experience_similarity(user, other)
            + self.BIO_WEIGHT * bio_similarity
            + self.AVAILABILITY_WEIGHT * self.availability_similarity(user, other)
            + self.INTERACTION_WEIGHT * self.interaction_similarity(user.id, other.id, snapshot)
        )

        common = snapshot.match_ids_by_user.get(user.id, set()) & snapshot.match_ids_by_user.get(
            other.id, set()
        )
        return UserSimilarity(
            user_id=other.id,
            similarity=similarity,
            common_matches=len(common),
            shared_preferences=self.shared_preferences(user, other),
        )

    @staticmethod
    def skills_similarity(skills_a: list[str], skills_b: list[str]) -> float:
        if not skills_a and not skills_b:
            return 1.0
        if not skills_a or not skills_b:
            return 0.0
        a, b = set(skills_a), set(skills_b)
        return len(a & b) / len(a | b)

    @staticmethod
    def experience_similarity(user: UserRecord, other: UserRecord) -> float:
        rep_a = user.reputation_score or 0.0
        rep_b = other.reputation_score or 0.0
        highest = max(rep_a, rep_b)
        if highest == 0:
            return 1.0
        return max(0.0, 1.0 - abs(rep_a - rep_b) / highest)

    @staticmethod
    def text_similarity(text_a: str | None, text_b: str | None) -> float:
        if not text_a or not text_b:
            return 0.0
        words_a = set(re.split(r"\s+", text_a.lower()))
        words_b = set(re.split(r"\s+", text_b.lower()))
        union = words_a | words_b
        return len(words_a & words_b) / len(union) if union else 0.0

    @staticmethod
    def availability_similarity(user: UserRecord, other: UserRecord) -> float:
        if not user.availability or not other.availability:
            return 0.5
        return 1.0 if user.availability.lower() == other.availability.lower() else 0.0

    @staticmethod
    def interaction_similarity(user_id: str, other_id: str, snapshot: InteractionSnapshot) -> float:
        ratings_a = snapshot.ratings_by_reviewer.get(user_id)
        ratings_b = snapshot.ratings_by_reviewer.get(other_id)
        if not ratings_a or not ratings_b:
            return 0.0
        avg_a = sum(ratings_a) / len(ratings_a)
        avg_b = sum(ratings_b) / len(ratings_b)
        return max(0.0, 1.0 - abs(avg_a - avg_b) / 5)

    def shared_preferences(self, user: UserRecord, other: UserRecord) -> float:
        shared = len([s for s in user.skills if s in other.skills])
        total = max(len(user.skills), len(other.skills))

        if user.bio and other.bio and self.text_similarity(user.bio, other.bio) > 0.3:
            shared += 1
        total += 1
        return shared / total

    # ── Strategies ────────────────────────────────────────────────────────

    async def _user_based(
        self,
        user_id: str,
        user_type: str,
        limit: int,
        snapshot: InteractionSnapshot,
    ) -> list[CFRecommendation]:
        similar_users = await self.find_similar_users(
            user_id, user_type, self.USER_BASED_NEIGHBOURS, snapshot
        )

        best: dict[str, CFRecommendation] = {}
        for neighbour in similar_users:
            for match in self._successful_matches(neighbour.user_id, user_type, snapshot):
                target_id = match.mentee_id if user_type == "mentor" else match.mentor_id
                if target_id == user_id:
                    continue

                score = min(
                    1.0,
                    neighbour.similarity
                    + 0.3 * (match.algorithm_score or 0.0)
                    + min(0.1 * neighbour.common_matches, 0.2)
                    + 0.2 * neighbour.shared_preferences,
                )
                existing = best.get(target_id)
                if existing is not None and score <= existing.score:
                    continue

                rating = "high" if neighbour.similarity > self.HIGH_SIMILARITY else "moderate"
                best[target_id] = self._recommendation(
                    target_id,
                    score,
                    neighbour,
                    match,
                    "user-based",
                    [
                        f"Similar to {neighbour.user_id} ({round(neighbour.similarity * 100)}% similarity)",
                        f"Successful historical match with {rating} rating",
                    ],
                )

        return self._ranked(best.values(), limit)

    async def _item_based(
        self,
        user_id: str,
        user_type: str,
        limit: int,
        snapshot: InteractionSnapshot,
    ) -> list[CFRecommendation]:
        own_matches = self._successful_matches(user_id, user_type, snapshot)
        if not own_matches:
            return []

        counterpart_role = opposite_role(user_type)
        best: dict[str, CFRecommendation] = {}
        for match in own_matches:
            counterpart_id = match.mentee_id if user_type == "mentor" else match.mentor_id
            neighbours = await self.find_similar_users(
                counterpart_id, counterpart_role, self.ITEM_BASED_NEIGHBOURS, snapshot
            )
            for neighbour in neighbours:
                if neighbour.user_id == user_id:
                    continue

                score = min(
                    1.0,
                    neighbour.similarity
                    + 0.4 * (match.algorithm_score or 0.0)
                    + 0.3 * neighbour.shared_preferences,
                )
                existing = best.get(neighbour.user_id)
                if existing is not None and score <= existing.score:
                    continue

                best[neighbour.user_id] = self._recommendation(
                    neighbour.user_id,
                    score,
                    neighbour,
                    match,
                    "item-based",
                    [
                        f"Similar to your successful match ({round(neighbour.similarity * 100)}% similarity)",
                        "Based on your positive experience with similar profile",
                    ],
                )

        return self._ranked(best.values(), limit)

    async def _hybrid(
        self,
        user_id: str,
        user_type: str,
        limit: int,
        snapshot: InteractionSnapshot,
    ) -> list[CFRecommendation]:
        user_based = await self._user_based(user_id, user_type, limit * 2, snapshot)
        item_based = await self._item_based(user_id, user_type, limit * 2, snapshot)

        combined: dict[str, CFRecommendation] = {}
        for result in user_based:
            combined[result.target_user_id] = result.model_copy(
                update={
                    "score": result.score * self.HYBRID_USER_WEIGHT,
                    "algorithm": "hybrid",
                    "reasons": [*result.reasons, "User-based collaborative filtering"],
                },
                deep=True,
            )

        for result in item_based:
            weighted = result.score * self.HYBRID_ITEM_WEIGHT
            existing = combined.get(result.target_user_id)
            if existing is not None:
                existing.score += weighted
                existing.reasons.append("Item-based collaborative filtering")
                existing.metadata.similarity_score = (
                    existing.metadata.similarity_score + result.metadata.similarity_score
                ) / 2
            else:
                combined[result.target_user_id] = result.model_copy(
                    update={
                        "score": weighted,
                        "algorithm": "hybrid",
                        "reasons": [*result.reasons, "Item-based collaborative filtering"],
                    },
                    deep=True,
                )

        return self._ranked(combined.values(), limit)

    # ── Private helpers ───────────────────────────────────────────────────

    async def _users_of_role(self, role: str, snapshot: InteractionSnapshot) -> list[UserRecord]:
        if role not in snapshot.users_by_role:
            snapshot.users_by_role[role] = await self.user_directory.list_users_by_role(role)
        return snapshot.users_by_role[role]

    def _successful_matches(
        self,
        user_id: str,
        role: str,
        snapshot: InteractionSnapshot,
    ) -> list[MentorshipMatchRecord]:
        return [
            m
            for m in snapshot.completed_matches
            if (m.mentor_id if role == "mentor" else m.mentee_id) == user_id
            and snapshot.success_by_match_id[m.id]
        ]

    def _recommendation(
        self,
        target_id: str,
        score: float,
        neighbour: UserSimilarity,
        match: MentorshipMatchRecord,
        algorithm: str,
        reasons: list[str],
    ) -> CFRecommendation:
        historical = self.historical_success(match)
        algorithm_score = match.algorithm_score or 0.0
        confidence = min(
            1.0, 0.4 * neighbour.similarity + 0.3 * algorithm_score + 0.3 * historical
        )
        return CFRecommendation(
            target_user_id=target_id,
            score=score,
            confidence=confidence,
            reasons=reasons,
            algorithm=algorithm,
            metadata=CFMetadata(
                similarity_score=neighbour.similarity,
                feedback_score=algorithm_score,
                preference_score=neighbour.shared_preferences,
                historical_success=historical,
            ),
        )

    @staticmethod
    def historical_success(match: MentorshipMatchRecord) -> float:
        if not match.feedback:
            return 0.5
        positive = sum(1 for fb in match.feedback if fb.rating >= 4)
        return positive / len(match.feedback)

    @staticmethod
    def _ranked(results, limit: int) -> list[CFRecommendation]:
        return sorted(results, key=lambda r: r.score, reverse=True)[:limit]
