"""
MentorMatch - Synthetic record sets for the matcher benchmark.

Targets are built from the source set:
  * exact duplicates (``duplicate_rate`` of the source size, ids + 10000)
  * near-duplicates (30% of the source size, age / salary perturbed)
  * fresh random filler up to the source size (ids + 20000)
"""

from __future__ import annotations

import random
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

Complexity = Literal["low", "medium", "high"]

FIRST_NAMES = ["John", "Jane", "Bob", "Alice", "Charlie", "Diana", "Eve", "Frank", "Grace", "Henry"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis", "Rodriguez", "Martinez"]
DOMAINS = ["gmail.com", "yahoo.com", "hotmail.com", "outlook.com", "company.com"]
DEPARTMENTS = ["Engineering", "Marketing", "Sales", "HR", "Finance", "Operations", "Legal"]
LANGUAGES = ["en", "es", "fr", "de"]

DUPLICATE_ID_OFFSET = 10000
FILLER_ID_OFFSET = 20000
NEAR_DUPLICATE_RATE = 0.3


@dataclass(frozen=True)
class DataProfile:
    size: int
    complexity: Complexity
    duplicate_rate: float
    noise_level: float


DEFAULT_PROFILES: tuple[DataProfile, ...] = (
    DataProfile(100, "low", 0.2, 0.1),
    DataProfile(500, "low", 0.2, 0.1),
    DataProfile(1000, "medium", 0.3, 0.15),
    DataProfile(2000, "medium", 0.3, 0.15),
    DataProfile(5000, "high", 0.4, 0.2),
)


class DataGenerator:
    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    def generate_test_data(self, profile: DataProfile) -> tuple[list[dict], list[dict]]:
        """Return ``(source, target)`` record lists for ``profile``."""
        source = self.generate_dataset(profile.size, profile)
        target = self.generate_related_dataset(source, profile)
        return source, target

    def generate_dataset(self, size: int, profile: DataProfile) -> list[dict[str, Any]]:
        rng = self._random
        records = []
        for i in range(size):
            first, last = rng.choice(FIRST_NAMES), rng.choice(LAST_NAMES)
            record = {
                "id": i + 1,
                "name": f"{first} {last}",
                "email": f"{first.lower()}.{last.lower()}@{rng.choice(DOMAINS)}",
                "age": rng.randint(20, 69),
                "department": rng.choice(DEPARTMENTS),
                "salary": rng.randint(30000, 129999),
                "metadata": self.complex_metadata() if profile.complexity == "high" else {},
            }
            if rng.random() < profile.noise_level:
                record["name"] = self.add_noise(record["name"])
                record["email"] = self.add_noise(record["email"])
            records.append(record)
        return records

    def generate_related_dataset(
        self, source: list[dict[str, Any]], profile: DataProfile
    ) -> list[dict[str, Any]]:
        rng = self._random
        target: list[dict[str, Any]] = []
        if not source:
            return target

        for _ in range(int(len(source) * profile.duplicate_rate)):
            original = rng.choice(source)
            target.append({**original, "id": len(target) + DUPLICATE_ID_OFFSET})

        for _ in range(int(len(source) * NEAR_DUPLICATE_RATE)):
            similar = {**rng.choice(source), "id": len(target) + DUPLICATE_ID_OFFSET}
            if rng.random() < 0.5:
                similar["age"] += rng.randint(-1, 1)
            if rng.random() < 0.3:
                similar["salary"] += rng.randint(-5000, 4999)
            target.append(similar)

        remaining = len(source) - len(target)
        if remaining > 0:
            filler = self.generate_dataset(remaining, profile)
            target.extend({**r, "id": r["id"] + FILLER_ID_OFFSET} for r in filler)
        return target

    def add_noise(self, text: str) -> str:
        """One character substituted, deleted or inserted."""
        if not text:
            return text
        rng = self._random
        index = rng.randrange(len(text))
        if rng.random() < 0.5:
            return text[:index] + chr(ord(text[index]) + 1) + text[index + 1:]
        if rng.random() < 0.5:
            return text[:index] + text[index + 1:]
        return text[:index] + rng.choice(string.ascii_lowercase) + text[index:]

    def complex_metadata(self) -> dict[str, Any]:
        rng = self._random
        now = datetime.now(timezone.utc)
        return {
            "preferences": {
                "theme": "dark" if rng.random() > 0.5 else "light",
                "notifications": rng.random() > 0.3,
                "language": rng.choice(LANGUAGES),
            },
            "history": [
                {
                    "action": f"action_{i}",
                    "timestamp": (now - timedelta(days=rng.random() * 30)).isoformat(),
                    "metadata": {"key": f"value_{i}"},
                }
                for i in range(5)
            ],
            "tags": [
                f"tag_{i}_{''.join(rng.choices(string.ascii_lowercase + string.digits, k=5))}"
                for i in range(rng.randint(1, 5))
            ],
        }


def profiles_for_sizes(sizes: list[int]) -> list[DataProfile]:
    """Ladder entries for ``sizes``; sizes off the ladder get medium settings."""
    ladder = {p.size: p for p in DEFAULT_PROFILES}
    return [ladder.get(size) or DataProfile(size, "medium", 0.3, 0.15) for size in sizes]
