"""
MentorMatch - Lightweight content-based scoring over directory users.

A per-record heuristic, independent of the feature-vector strategies:

  score = 100 * (0.30 * skills overlap
               + 0.20 * industry match
               + 0.25 * experience gap fit
               + 0.15 * location match
               + 0.10 * available for mentoring)
"""

from __future__ import annotations

import structlog

from app.schemas.profile import UserRecord
from app.schemas.recommendation import ContentMatch, ContentMatchFactors, RecommendationRequest
from app.stores.base import UserDirectory

logger = structlog.get_logger("mentormatch.content_matching_service")


class ContentMatcher:
    FACTOR_WEIGHTS: dict[str, float] = {
        "skills_match": 0.3,
        "industry_match": 0.2,
        "experience_gap": 0.25,
        "location_match": 0.15,
        "availability_match": 0.1,
    }

    # Mentees may sit up to this far above the requester's reputation.
    MENTEE_REPUTATION_SLACK: float = 2.0

    def __init__(self, user_directory: UserDirectory) -> None:
        self.user_directory = user_directory

    # ── Public API ────────────────────────────────────────────────────────

    async def recommend(
        self, requester: UserRecord, request: RecommendationRequest
    ) -> list[ContentMatch]:
        """Score every eligible candidate, best first."""
        candidates = await self.find_candidates(requester, request)
        matches = []
        for candidate in candidates:
            score, factors = self.calculate_match(requester, candidate, request.type)
            matches.append(
                ContentMatch(
                    user_id=candidate.id,
                    name=candidate.name,
                    skills=candidate.skills,
                    score=score,
                    factors=factors,
                )
            )
        matches.sort(key=lambda m: m.score, reverse=True)
        logger.debug(
            "content_matches_scored",
            requester_id=requester.id,
            candidates=len(candidates),
        )
        return matches

    async def find_candidates(
        self, requester: UserRecord, request: RecommendationRequest
    ) -> list[UserRecord]:
        users = await self.user_directory.list_active_users(exclude_user_id=requester.id)

        if request.type == "mentor":
            users = [u for u in users if u.reputation_score > requester.reputation_score]
        else:
            ceiling = requester.reputation_score + self.MENTEE_REPUTATION_SLACK
            users = [u for u in users if u.reputation_score < ceiling]

        if request.skills:
            wanted = set(request.skills)
            users = [u for u in users if wanted & set(u.skills)]
        return users

    def calculate_match(
        self, requester: UserRecord, candidate: UserRecord, seeking: str
    ) -> tuple[float, ContentMatchFactors]:
        factors = ContentMatchFactors(
            skills_match=self.skills_match(requester.skills, candidate.skills),
            industry_match=self.industry_match(requester.industry, candidate.industry),
            experience_gap=self.experience_gap(
                requester.experience_years, candidate.experience_years, seeking
            ),
            location_match=self.location_match(requester.location, candidate.location),
            availability_match=1.0 if candidate.is_available_for_mentoring else 0.0,
        )
        values = factors.model_dump()
        score = sum(values[name] * weight for name, weight in self.FACTOR_WEIGHTS.items()) * 100
        return score, factors

    # ── Factors ───────────────────────────────────────────────────────────

    @staticmethod
    def skills_match(requester_skills: list[str], candidate_skills: list[str]) -> float:
        if not requester_skills or not candidate_skills:
            return 0.0
        lowered = [c.lower() for c in candidate_skills]
        overlap = [
            skill
            for skill in requester_skills
            if any(c in skill.lower() or skill.lower() in c for c in lowered)
        ]
        return len(overlap) / max(len(requester_skills), len(candidate_skills))

    @staticmethod
    def industry_match(requester_industry: str | None, candidate_industry: str | None) -> float:
        if not requester_industry or not candidate_industry:
            return 0.0
        return 1.0 if requester_industry.lower() == candidate_industry.lower() else 0.3

    @staticmethod
    def experience_gap(requester_years: int, candidate_years: int, seeking: str) -> float:
        gap = (candidate_years or 0) - (requester_years or 0)
        if seeking == "mentor":
            if 3 <= gap <= 10:
                return 1.0
            if 1 <= gap < 3:
                return 0.7
            if gap > 10:
                return 0.5
            return 0.2
        if -8 <= gap <= -1:
            return 1.0
        if gap > -1:
            return 0.3
        return 0.5

    @staticmethod
    def location_match(requester_location: str | None, candidate_location: str | None) -> float:
        if not requester_location or not candidate_location:
            return 0.5
        if requester_location.lower() == candidate_location.lower():
            return 1.0

        requester_parts = [p.strip() for p in requester_location.lower().split(",")]
        candidate_parts = [p.strip() for p in candidate_location.lower().split(",")]
        if requester_parts[0] == candidate_parts[0]:
            return 0.8
        if (
            len(requester_parts) > 1
            and len(candidate_parts) > 1
            and requester_parts[1] == candidate_parts[1]
        ):
            return 0.6
        return 0.3
