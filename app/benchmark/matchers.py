"""
MentorMatch - Approximate duplicate-record matchers for the benchmark harness.

Three strategies with the same contract, trading recall for speed:

  Naive   every source/target pair, Levenshtein similarity of the lowercased
          JSON encodings
  Hash    targets bucketed by a blocking key; only same-key pairs compared
  Bloom   a set-backed filter over target blocking keys; flagged sources are
          verified against the targets

Every matcher keeps pairs scoring above ``SCORE_THRESHOLD``, sorted by score
descending.
"""

from __future__ import annotations

import json
import math
import time
import tracemalloc
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from rapidfuzz.distance import Levenshtein

Record = dict[str, Any]


@dataclass
class MatchPair:
    source: Record
    target: Record
    score: float


@dataclass
class MatcherOutput:
    matches: list[MatchPair] = field(default_factory=list)
    execution_time_ms: float = 0.0
    memory_delta_bytes: int = 0


def blocking_key(record: Any) -> str:
    """``"{name}_{email}_{id}"`` lowercased; empty parts for missing fields."""
    if isinstance(record, dict):
        parts = [record.get("name"), record.get("email"), record.get("id")]
        return "_".join("" if not p else str(p) for p in parts).lower()
    return str(record).lower()


def string_similarity(a: str, b: str) -> float:
    """1 - levenshtein(a, b) / max(len(a), len(b)); two empty strings score 1."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


class BaseMatcher(ABC):
    name: str = ""
    SCORE_THRESHOLD: float = 0.7

    def match(self, source: list[Record], target: list[Record]) -> MatcherOutput:
        """Run the strategy and report wall time and traced heap delta."""
        tracing = tracemalloc.is_tracing()
        if not tracing:
            tracemalloc.start()
        start_memory, _ = tracemalloc.get_traced_memory()
        started = time.perf_counter()

        pairs = self.find_pairs(source, target)
        pairs.sort(key=lambda p: p.score, reverse=True)

        elapsed_ms = (time.perf_counter() - started) * 1000
        end_memory, _ = tracemalloc.get_traced_memory()
        if not tracing:
            tracemalloc.stop()

        return MatcherOutput(
            matches=pairs,
            execution_time_ms=elapsed_ms,
            memory_delta_bytes=end_memory - start_memory,
        )

    @abstractmethod
    def find_pairs(self, source: list[Record], target: list[Record]) -> list[MatchPair]:
        ...


class NaiveMatcher(BaseMatcher):
    name = "Naive O(n²) Matcher"

    def find_pairs(self, source: list[Record], target: list[Record]) -> list[MatchPair]:
        encoded_targets = [(t, self.encode(t)) for t in target]
        pairs = []
        for s in source:
            encoded = self.encode(s)
            for t, encoded_target in encoded_targets:
                score = string_similarity(encoded, encoded_target)
                if score > self.SCORE_THRESHOLD:
                    pairs.append(MatchPair(s, t, score))
        return pairs

    @staticmethod
    def encode(record: Any) -> str:
        return json.dumps(record, ensure_ascii=False, default=str).lower()


class HashMatcher(BaseMatcher):
    name = "Hash-based Matcher"
    FIELD_SIMILARITY_FLOOR: float = 0.8

    def find_pairs(self, source: list[Record], target: list[Record]) -> list[MatchPair]:
        buckets: dict[str, list[Record]] = defaultdict(list)
        for t in target:
            buckets[blocking_key(t)].append(t)

        pairs = []
        for s in source:
            for t in buckets.get(blocking_key(s), []):
                score = self.field_similarity(s, t)
                if score > self.SCORE_THRESHOLD:
                    pairs.append(MatchPair(s, t, score))
        return pairs

    @classmethod
    def field_similarity(cls, a: Any, b: Any) -> float:
        """Per-field agreement over the union of keys.

        Equal values count 1; differing strings count their Levenshtein
        similarity when it exceeds ``FIELD_SIMILARITY_FLOOR``.
        """
        if not isinstance(a, dict) or not isinstance(b, dict):
            return 1.0 if a == b else 0.0
        keys = set(a) | set(b)
        if not keys:
            return 1.0
        total = 0.0
        for key in keys:
            left, right = a.get(key), b.get(key)
            if key in a and key in b and left == right:
                total += 1.0
            elif isinstance(left, str) and isinstance(right, str):
                similarity = string_similarity(left, right)
                if similarity > cls.FIELD_SIMILARITY_FLOOR:
                    total += similarity
        return total / len(keys)


class BloomFilterMatcher(BaseMatcher):
    """Set-backed Bloom filter over target blocking keys.

    With ``bucketed=False`` (the default) every flagged source is verified
    against all targets, so the filter only prunes sources that cannot match
    exactly.  ``bucketed=True`` restricts verification to targets sharing the
    source's blocking key.
    """

    name = "Bloom Filter Matcher"
    MAX_HASH_FUNCTIONS: int = 5
    SLOTS_PER_ELEMENT: int = 10

    def __init__(self, expected_elements: int = 10000, bucketed: bool = False) -> None:
        self.expected_elements = expected_elements
        self.bucketed = bucketed
        self.slot_space = expected_elements * self.SLOTS_PER_ELEMENT
        # ceil((n / n) * ln 2)
        self.hash_count = min(math.ceil(math.log(2)), self.MAX_HASH_FUNCTIONS)
        self._filter: set[int] = set()

    def find_pairs(self, source: list[Record], target: list[Record]) -> list[MatchPair]:
        self.build(target)
        buckets: dict[str, list[Record]] = defaultdict(list)
        if self.bucketed:
            for t in target:
                buckets[blocking_key(t)].append(t)

        pairs = []
        for s in source:
            key = blocking_key(s)
            if not self.might_contain(key):
                continue
            candidates = buckets.get(key, []) if self.bucketed else target
            for t in candidates:
                other = blocking_key(t)
                score = 1.0 if key == other else string_similarity(key, other)
                if score > self.SCORE_THRESHOLD:
                    pairs.append(MatchPair(s, t, score))
        return pairs

    def build(self, target: list[Record]) -> None:
        self._filter.clear()
        for t in target:
            key = blocking_key(t)
            self._filter.update(self.slots(key))

    def might_contain(self, key: str) -> bool:
        return all(slot in self._filter for slot in self.slots(key))

    def slots(self, key: str) -> list[int]:
        result = []
        for i in range(self.hash_count):
            seed = i + 1
            value = 0
            for ch in key:
                value = (value * seed + ord(ch)) % self.slot_space
            result.append(value)
        return result


def default_matchers(expected_elements: int = 10000) -> list[BaseMatcher]:
    return [NaiveMatcher(), HashMatcher(), BloomFilterMatcher(expected_elements)]
