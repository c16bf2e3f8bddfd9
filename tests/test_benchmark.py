"""Unit tests for the approximate-matcher benchmark harness."""
from datetime import datetime, timezone

import pytest

from app.benchmark.data_generator import DataGenerator, DataProfile, profiles_for_sizes
from app.benchmark.matchers import (
    BloomFilterMatcher,
    HashMatcher,
    MatchPair,
    NaiveMatcher,
    blocking_key,
    default_matchers,
    string_similarity,
)
from app.benchmark.performance import Measurement
from app.benchmark.reporting import change_indicator, compare_reports, to_csv, to_html
from app.benchmark.service import ApproximateMatchBenchmark
from app.schemas.benchmark import (
    AlgorithmBenchmarkStats,
    BenchmarkReport,
    BenchmarkResult,
    BenchmarkSummary,
)

MB = 1024 * 1024


class FakeMonitor:
    """Deterministic stand-in for PerformanceMonitor."""

    def measure(self, operation):
        return Measurement(
            result=operation(),
            execution_time_ms=10.0,
            memory_usage_bytes=2048,
            cpu_usage_percent=5.0,
        )

    @staticmethod
    def system_resources():
        return {"total_memory": 8 * 1024 ** 3, "free_memory": 4 * 1024 ** 3, "cpu_count": 4}


@pytest.fixture
def person():
    return {"id": 1, "name": "Jane Smith", "email": "jane.smith@gmail.com", "age": 40, "salary": 50000}


def _stats(time_ms, memory, accuracy, scalability):
    return AlgorithmBenchmarkStats(
        avg_execution_time_ms=time_ms,
        avg_memory_usage_bytes=memory,
        avg_cpu_usage_percent=1.0,
        avg_accuracy=accuracy,
        avg_throughput=100.0,
        scalability=scalability,
    )


def _result(name="Naive O(n²) Matcher", size=100, time_ms=10.0, accuracy=50.0):
    return BenchmarkResult(
        algorithm_name=name,
        data_size=size,
        execution_time_ms=time_ms,
        memory_usage_bytes=MB,
        cpu_usage_percent=1.0,
        accuracy=accuracy,
        throughput=100.0,
    )


class TestMatchers:
    """Tests for the three matcher strategies."""

    @pytest.mark.parametrize("matcher", default_matchers(100), ids=lambda m: m.name)
    def test_exact_duplicate_scores_one(self, matcher, person):
        output = matcher.match([person], [dict(person)])
        assert len(output.matches) == 1
        assert output.matches[0].score == 1.0
        assert output.execution_time_ms >= 0

    @pytest.mark.parametrize("matcher", default_matchers(20), ids=lambda m: m.name)
    def test_matchers_agree_on_known_duplicate(self, matcher):
        """Every strategy finds the one unmodified copy in a 20-record set."""
        generator = DataGenerator(seed=7)
        profile = DataProfile(20, "low", 0.0, 0.0)
        source = generator.generate_dataset(20, profile)
        target = [{**r, "id": r["id"] + 20000} for r in generator.generate_dataset(19, profile)]
        duplicate = dict(source[7])
        target.insert(5, duplicate)

        output = matcher.match(source, target)

        exact = [p for p in output.matches if p.score == 1.0]
        assert len(exact) == 1
        assert exact[0].source is source[7]
        assert exact[0].target is duplicate
        assert output.matches[0] is exact[0]

    def test_naive_tolerates_one_character_change(self, person):
        output = NaiveMatcher().match([person], [{**person, "name": "Jane Smyth"}])
        assert output.matches and output.matches[0].score > 0.7

    def test_hash_requires_same_blocking_key(self, person):
        output = HashMatcher().match([person], [{**person, "id": 10001}])
        assert output.matches == []

    def test_results_sorted_descending(self, person):
        near = {**person, "age": 41}
        output = NaiveMatcher().match([person], [near, dict(person)])
        scores = [m.score for m in output.matches]
        assert scores == sorted(scores, reverse=True)
        assert scores[0] == 1.0

    def test_bloom_skips_absent_keys(self, person):
        matcher = BloomFilterMatcher(expected_elements=100)
        matcher.build([person])
        assert matcher.might_contain(blocking_key(person))
        assert matcher.hash_count == 1

    def test_bloom_bucketed_mode(self, person):
        output = BloomFilterMatcher(100, bucketed=True).match([person], [dict(person)])
        assert [m.score for m in output.matches] == [1.0]

    def test_blocking_key(self, person):
        assert blocking_key(person) == "jane smith_jane.smith@gmail.com_1"
        assert blocking_key({"name": "A"}) == "a__"

    def test_string_similarity(self):
        assert string_similarity("", "") == 1.0
        assert string_similarity("abcd", "abce") == 0.75

    def test_field_similarity_floor(self):
        """Strings below the 0.8 similarity floor contribute nothing."""
        a = {"name": "abcd", "city": "x"}
        b = {"name": "abce", "city": "x"}
        assert HashMatcher.field_similarity(a, b) == 0.5


class TestDataGenerator:
    """Tests for the synthetic data generator."""

    def test_target_matches_source_size(self):
        profile = DataProfile(50, "low", 0.2, 0.1)
        source, target = DataGenerator(seed=3).generate_test_data(profile)
        assert len(source) == 50
        assert len(target) == 50
        assert target[0]["id"] == 10000
        assert target[-1]["id"] > 20000

    def test_seeded_runs_repeat(self):
        profile = DataProfile(30, "low", 0.2, 0.1)
        assert DataGenerator(seed=9).generate_test_data(profile) == DataGenerator(seed=9).generate_test_data(profile)

    def test_high_complexity_adds_metadata(self):
        records = DataGenerator(seed=1).generate_dataset(3, DataProfile(3, "high", 0.4, 0.0))
        assert all(r["metadata"]["history"] for r in records)

    def test_add_noise_changes_text(self):
        assert DataGenerator(seed=2).add_noise("jane") != "jane"

    def test_profiles_for_sizes(self):
        profiles = profiles_for_sizes([100, 250])
        assert profiles[0].complexity == "low"
        assert profiles[1] == DataProfile(250, "medium", 0.3, 0.15)


class TestScoring:
    """Tests for accuracy, scalability and recommendations."""

    def test_accuracy_full_marks(self, person):
        matches = [MatchPair(person, person, 1.0), MatchPair(person, person, 1.0)]
        assert ApproximateMatchBenchmark.calculate_accuracy(matches, 10, 0.2) == pytest.approx(100.0)

    def test_accuracy_no_matches(self):
        assert ApproximateMatchBenchmark.calculate_accuracy([], 10, 0.2) == 0.0

    def test_accuracy_nothing_expected(self):
        assert ApproximateMatchBenchmark.calculate_accuracy([], 10, 0.0) == pytest.approx(60.0)

    def test_scalability(self):
        runs = [_result(size=200, time_ms=40.0), _result(size=100, time_ms=10.0)]
        assert ApproximateMatchBenchmark.calculate_scalability(runs) == pytest.approx(2.0)

    def test_scalability_degenerate(self):
        assert ApproximateMatchBenchmark.calculate_scalability([_result()]) == 0.0
        runs = [_result(size=100, time_ms=0.0), _result(size=200, time_ms=5.0)]
        assert ApproximateMatchBenchmark.calculate_scalability(runs) == 0.0

    def test_recommendations(self):
        stats = {
            "A": _stats(10.0, 2 * MB, 80.0, 1.5),
            "B": _stats(20.0, MB, 90.0, 0.5),
        }
        assert ApproximateMatchBenchmark.generate_recommendations(stats) == [
            "For speed: Use A (avg: 10.00ms)",
            "For memory efficiency: Use B (avg: 1.00MB)",
            "For accuracy: Use B (avg: 90.00%)",
            "For large datasets: Use B (scalability factor: 0.50)",
        ]


class TestRun:
    """End-to-end run over a tiny profile."""

    @pytest.mark.asyncio
    async def test_comprehensive_run(self):
        benchmark = ApproximateMatchBenchmark(
            matchers=default_matchers(100),
            generator=DataGenerator(seed=5),
            monitor=FakeMonitor(),
            run_delay_seconds=0,
        )
        report = await benchmark.run_comprehensive_benchmark([DataProfile(20, "low", 0.2, 0.1)])

        assert len(report.results) == 3
        assert {r.data_size for r in report.results} == {20}
        assert all(r.throughput == pytest.approx(4000.0) for r in report.results)
        assert set(report.summary.algorithm_stats) == {m.name for m in benchmark.matchers}
        assert len(report.summary.recommendations) == 4
        assert report.system_info["cpu_count"] == 4

    @pytest.mark.asyncio
    async def test_empty_run(self):
        benchmark = ApproximateMatchBenchmark(monitor=FakeMonitor(), run_delay_seconds=0)
        report = await benchmark.run_comprehensive_benchmark([])
        assert report.results == []
        assert report.summary.recommendations == []


class TestReporting:
    """Tests for CSV/HTML rendering and report comparison."""

    def test_csv(self):
        lines = to_csv([_result()]).splitlines()
        assert lines[0] == (
            "algorithm_name,data_size,execution_time_ms,memory_usage_bytes,"
            "cpu_usage_percent,accuracy,throughput"
        )
        assert len(lines) == 2
        assert to_csv([]) == ""

    def test_html_escapes_names(self):
        report = BenchmarkReport(results=[_result(name="<x>")], summary=BenchmarkSummary())
        page = to_html(report, generated_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert "&lt;x&gt;" in page
        assert "Generated on: 2026-01-01T00:00:00+00:00" in page

    @pytest.mark.parametrize(
        "old, new, higher_is_better, expected",
        [
            (100, 112.5, True, "better +12.5%"),
            (100, 97, True, "worse -3.0%"),
            (100, 90, False, "better -10.0%"),
            (0, 5, True, "n/a"),
        ],
    )
    def test_change_indicator(self, old, new, higher_is_better, expected):
        assert change_indicator(old, new, higher_is_better) == expected

    def test_compare_reports(self):
        def report(accuracy):
            stats = {"A": _stats(10.0, MB, accuracy, 1.0)}
            return BenchmarkReport(results=[], summary=BenchmarkSummary(algorithm_stats=stats))

        lines = compare_reports(report(50.0), report(60.0))
        assert lines[0] == "A:"
        assert "  Accuracy: 50.00% -> 60.00% (better +20.0%)" in lines
