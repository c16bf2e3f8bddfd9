"""
MentorMatch - Domain error taxonomy.

Services raise these before any side effect; the API layer maps them onto
HTTP status codes.  Nothing here is retried automatically.
"""

from __future__ import annotations


class MentorMatchError(Exception):
    """Base class for all engine errors."""


class NotFoundError(MentorMatchError):
    """A referenced profile, user, match result or manual match is absent."""


class UnknownAlgorithmError(NotFoundError):
    """The requested similarity strategy is not registered."""

    def __init__(self, algorithm: str) -> None:
        super().__init__(f"Algorithm {algorithm} not found")
        self.algorithm = algorithm


class InvalidArgumentError(MentorMatchError):
    """Input rejected before any mutation (ranges, ids, config sections)."""


class ConflictError(MentorMatchError):
    """The requested state transition has already happened."""
