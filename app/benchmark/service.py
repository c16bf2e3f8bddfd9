"""
MentorMatch - Comparative benchmark of the approximate matchers.

Each data profile is generated once and every matcher runs against the same
source/target pair.  Runs are sequential with a configurable pause between
them so one run's garbage does not skew the next one's numbers.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Iterable, Optional

import structlog

from app.benchmark.data_generator import DEFAULT_PROFILES, DataGenerator, DataProfile
from app.benchmark.matchers import BaseMatcher, MatchPair, default_matchers
from app.benchmark.performance import PerformanceMonitor
from app.config import get_settings
from app.schemas.benchmark import (
    AlgorithmBenchmarkStats,
    BenchmarkReport,
    BenchmarkResult,
    BenchmarkSummary,
    BestPerformers,
)

logger = structlog.get_logger("mentormatch.benchmark")


class ApproximateMatchBenchmark:
    COUNT_WEIGHT: float = 0.6
    QUALITY_WEIGHT: float = 0.4

    def __init__(
        self,
        matchers: Optional[list[BaseMatcher]] = None,
        generator: Optional[DataGenerator] = None,
        monitor: Optional[PerformanceMonitor] = None,
        run_delay_seconds: Optional[float] = None,
    ) -> None:
        settings = get_settings()
        self.matchers = matchers if matchers is not None else default_matchers(
            settings.BENCHMARK_BLOOM_EXPECTED_ELEMENTS
        )
        self.generator = generator or DataGenerator()
        self.monitor = monitor or PerformanceMonitor()
        self.run_delay_seconds = (
            settings.BENCHMARK_RUN_DELAY_SECONDS if run_delay_seconds is None else run_delay_seconds
        )

    # ── Public API ────────────────────────────────────────────────────────

    async def run_comprehensive_benchmark(
        self, profiles: Iterable[DataProfile] = DEFAULT_PROFILES
    ) -> BenchmarkReport:
        """Run every matcher over every profile and summarise the results."""
        profiles = list(profiles)
        logger.info("benchmark_start", profiles=len(profiles), matchers=len(self.matchers))
        system_info = self.monitor.system_resources()

        results: list[BenchmarkResult] = []
        for profile in profiles:
            log = logger.bind(size=profile.size, complexity=profile.complexity)
            log.info("benchmark_profile_start")
            source, target = self.generator.generate_test_data(profile)

            for matcher in self.matchers:
                result = self.benchmark_matcher(matcher, source, target, profile)
                log.info(
                    "benchmark_run_complete",
                    algorithm=matcher.name,
                    execution_time_ms=round(result.execution_time_ms, 2),
                    accuracy=round(result.accuracy, 2),
                )
                results.append(result)
                if self.run_delay_seconds > 0:
                    await asyncio.sleep(self.run_delay_seconds)

        summary = self.generate_summary(results)
        logger.info("benchmark_complete", runs=len(results))
        return BenchmarkReport(results=results, summary=summary, system_info=system_info)

    def benchmark_matcher(
        self,
        matcher: BaseMatcher,
        source: list[dict],
        target: list[dict],
        profile: DataProfile,
    ) -> BenchmarkResult:
        measurement = self.monitor.measure(lambda: matcher.match(source, target))
        matches = measurement.result.matches

        seconds = measurement.execution_time_ms / 1000
        throughput = (len(source) + len(target)) / seconds if seconds > 0 else 0.0

        return BenchmarkResult(
            algorithm_name=matcher.name,
            data_size=profile.size,
            execution_time_ms=measurement.execution_time_ms,
            memory_usage_bytes=measurement.memory_usage_bytes,
            cpu_usage_percent=measurement.cpu_usage_percent,
            accuracy=self.calculate_accuracy(matches, len(source), profile.duplicate_rate),
            throughput=throughput,
        )

    @classmethod
    def calculate_accuracy(
        cls, matches: list[MatchPair], source_size: int, duplicate_rate: float
    ) -> float:
        """Percentage blending match count against expectation and mean score.

        With no expected matches the count component is 1.
        """
        expected = int(source_size * duplicate_rate)
        count_accuracy = min(len(matches) / expected, 1.0) if expected else 1.0
        quality = sum(m.score for m in matches) / max(len(matches), 1)
        return (count_accuracy * cls.COUNT_WEIGHT + quality * cls.QUALITY_WEIGHT) * 100

    def generate_summary(self, results: list[BenchmarkResult]) -> BenchmarkSummary:
        if not results:
            return BenchmarkSummary()

        groups: dict[str, list[BenchmarkResult]] = defaultdict(list)
        for result in results:
            groups[result.algorithm_name].append(result)

        stats = {
            name: AlgorithmBenchmarkStats(
                avg_execution_time_ms=_average(r.execution_time_ms for r in runs),
                avg_memory_usage_bytes=_average(r.memory_usage_bytes for r in runs),
                avg_cpu_usage_percent=_average(r.cpu_usage_percent for r in runs),
                avg_accuracy=_average(r.accuracy for r in runs),
                avg_throughput=_average(r.throughput for r in runs),
                scalability=self.calculate_scalability(runs),
            )
            for name, runs in groups.items()
        }

        best = BestPerformers(
            fastest=min(results, key=lambda r: r.execution_time_ms),
            most_memory_efficient=min(results, key=lambda r: r.memory_usage_bytes),
            most_accurate=max(results, key=lambda r: r.accuracy),
            highest_throughput=max(results, key=lambda r: r.throughput),
        )
        return BenchmarkSummary(
            algorithm_stats=stats,
            best_performers=best,
            recommendations=self.generate_recommendations(stats),
        )

    @staticmethod
    def calculate_scalability(runs: list[BenchmarkResult]) -> float:
        """(time growth) / (size growth) between the smallest and largest run."""
        if len(runs) < 2:
            return 0.0
        ordered = sorted(runs, key=lambda r: r.data_size)
        first, last = ordered[0], ordered[-1]
        if first.data_size == 0 or first.execution_time_ms == 0:
            return 0.0
        size_ratio = last.data_size / first.data_size
        time_ratio = last.execution_time_ms / first.execution_time_ms
        return time_ratio / size_ratio

    @staticmethod
    def generate_recommendations(stats: dict[str, AlgorithmBenchmarkStats]) -> list[str]:
        if not stats:
            return []
        items = list(stats.items())
        fastest = min(items, key=lambda kv: kv[1].avg_execution_time_ms)
        leanest = min(items, key=lambda kv: kv[1].avg_memory_usage_bytes)
        accurate = max(items, key=lambda kv: kv[1].avg_accuracy)
        scaling = min(items, key=lambda kv: kv[1].scalability)
        return [
            f"For speed: Use {fastest[0]} (avg: {fastest[1].avg_execution_time_ms:.2f}ms)",
            f"For memory efficiency: Use {leanest[0]} "
            f"(avg: {leanest[1].avg_memory_usage_bytes / 1024 / 1024:.2f}MB)",
            f"For accuracy: Use {accurate[0]} (avg: {accurate[1].avg_accuracy:.2f}%)",
            f"For large datasets: Use {scaling[0]} "
            f"(scalability factor: {scaling[1].scalability:.2f})",
        ]


def _average(values: Iterable[float]) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0
