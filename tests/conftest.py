"""Shared pytest fixtures for MentorMatch tests."""
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.match import MatchingCriteria, MatchingRequest
from app.schemas.profile import Profile, UserRecord
from app.schemas.recommendation import FeedbackRecord, MentorshipMatchRecord
from app.stores.memory import (
    InMemoryInteractionHistory,
    InMemoryProfileStore,
    InMemoryResultSink,
    InMemoryUserDirectory,
)


# ── Feature-vector matching ──────────────────────────────────────────────────

@pytest.fixture
def source_profile():
    return Profile(
        user_id="mentee-1",
        attributes={"age": 30, "experience": 5, "remote": True, "skills": ["python", "sql"]},
        preferences={"age": 30, "experience": 10, "remote": True},
        weights={"age": 1.0, "experience": 1.0, "remote": 1.0},
    )


@pytest.fixture
def candidate_profiles():
    """Three mentors: near-identical, somewhat different, very different."""
    return [
        Profile(
            user_id="mentor-close",
            attributes={"age": 32, "experience": 6, "remote": True, "location": "London"},
        ),
        Profile(
            user_id="mentor-mid",
            attributes={"age": 45, "experience": 20, "remote": True, "location": "Paris"},
        ),
        Profile(
            user_id="mentor-far",
            attributes={"age": 75, "experience": 90, "remote": False, "location": "Lima"},
        ),
    ]


@pytest.fixture
def profile_store(source_profile, candidate_profiles):
    return InMemoryProfileStore([source_profile, *candidate_profiles])


@pytest.fixture
def result_sink():
    return InMemoryResultSink()


@pytest.fixture
def matching_request():
    return MatchingRequest(
        criteria=MatchingCriteria(
            user_id="mentee-1",
            preferences={"age": 30, "experience": 10, "remote": True},
            weights={"age": 1.0, "experience": 1.0, "remote": 1.0},
        ),
        limit=10,
        threshold=0.0,
    )


# ── Directory users and mentorship history ──────────────────────────────────

@pytest.fixture
def directory_users():
    return [
        UserRecord(
            id="m1", name="Ada Mentor", email="ada@example.com", role="mentor",
            skills=["python", "ml"], bio="I love teaching python",
            availability="weekends", reputation_score=8.0, industry="Tech",
            experience_years=12, location="London, UK", is_available_for_mentoring=True,
        ),
        UserRecord(
            id="m2", name="Grace Mentor", email="grace@example.com", role="mentor",
            skills=["python", "ml"], bio="I love teaching python",
            availability="weekends", reputation_score=8.0, industry="Tech",
            experience_years=10, location="London, UK", is_available_for_mentoring=True,
        ),
        UserRecord(
            id="e1", name="Eve Mentee", email="eve@example.com", role="mentee",
            skills=["python"], reputation_score=2.0, industry="Tech",
            experience_years=2, location="London, UK",
        ),
        UserRecord(
            id="e2", name="Bob Mentee", email="bob@example.com", role="mentee",
            skills=["python"], reputation_score=2.0, industry="Tech",
            experience_years=3, location="Leeds, UK",
        ),
        UserRecord(
            id="e3", name="Cal Mentee", email="cal@example.com", role="mentee",
            skills=["cooking"], reputation_score=2.0, industry="Food",
            experience_years=1, location="Lima, Peru",
        ),
    ]


@pytest.fixture
def completed_matches():
    """m2 mentored e1 and m1 mentored e2, both rated 5 by the mentee."""
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return [
        MentorshipMatchRecord(
            id="match-1", mentor_id="m2", mentee_id="e1", status="completed",
            algorithm_score=0.8, start_date=start, end_date=start + timedelta(days=90),
            feedback=[FeedbackRecord(id="fb-1", match_id="match-1", reviewer_id="e1", rating=5)],
        ),
        MentorshipMatchRecord(
            id="match-2", mentor_id="m1", mentee_id="e2", status="completed",
            algorithm_score=0.7, start_date=start, end_date=start + timedelta(days=60),
            feedback=[FeedbackRecord(id="fb-2", match_id="match-2", reviewer_id="e2", rating=5)],
        ),
    ]


@pytest.fixture
def user_directory(directory_users):
    return InMemoryUserDirectory(directory_users)


@pytest.fixture
def history_store(completed_matches):
    return InMemoryInteractionHistory(completed_matches)
