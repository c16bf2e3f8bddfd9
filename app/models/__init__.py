"""
MentorMatch - ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.user import User
from app.models.profile import MatchingProfile
from app.models.match import ManualMatch, MatchingResult
from app.models.mentorship import Feedback, MentorshipMatch
from app.models.recommendation import Recommendation

__all__ = [
    "User",
    "MatchingProfile",
    "MatchingResult",
    "ManualMatch",
    "MentorshipMatch",
    "Feedback",
    "Recommendation",
]
