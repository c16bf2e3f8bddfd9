#!/usr/bin/env python3
"""
MentorMatch - Approximate matcher benchmark CLI

Subcommands:

  run      Run the benchmark suite and save the report.
  compare  Compare the summaries of two saved JSON reports.

Usage examples
--------------
  # Full default ladder, JSON report
  python scripts/benchmark_cli.py run

  # Two small sizes, HTML report, no pause between runs
  python scripts/benchmark_cli.py run --sizes 100,500 --format html --delay 0

  # Compare two saved runs
  python scripts/benchmark_cli.py compare before.json after.json
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

# Ensure the project root is importable
sys.path.insert(0, ".")

from app.benchmark.data_generator import DEFAULT_PROFILES, DataGenerator, profiles_for_sizes
from app.benchmark.reporting import MB, compare_reports, to_csv, to_html
from app.benchmark.service import ApproximateMatchBenchmark
from app.schemas.benchmark import BenchmarkReport


# ──────────────────────────────────────────────────────────────────────────────
# Subcommand: run
# ──────────────────────────────────────────────────────────────────────────────

def output_path(output: str, fmt: str) -> Path:
    path = Path(output)
    if fmt != "json" and path.suffix == ".json":
        path = path.with_suffix(f".{fmt}")
    return path


def render(report: BenchmarkReport, fmt: str) -> str:
    if fmt == "csv":
        return to_csv(report.results)
    if fmt == "html":
        return to_html(report)
    return report.model_dump_json(indent=2)


async def cmd_run(args: argparse.Namespace) -> None:
    """Run the suite, print a summary and write the report."""
    profiles = profiles_for_sizes(args.sizes) if args.sizes else list(DEFAULT_PROFILES)
    benchmark = ApproximateMatchBenchmark(
        generator=DataGenerator(seed=args.seed),
        run_delay_seconds=args.delay,
    )

    print(f"\n{'=' * 60}")
    print("  Matching Algorithm Benchmark")
    print(f"{'=' * 60}")
    print(f"  Sizes: {', '.join(str(p.size) for p in profiles)}")

    report = await benchmark.run_comprehensive_benchmark(profiles)

    for algorithm, stats in report.summary.algorithm_stats.items():
        print(f"\n  {algorithm}:")
        print(f"    Avg Execution Time: {stats.avg_execution_time_ms:.2f}ms")
        print(f"    Avg Memory Usage:   {stats.avg_memory_usage_bytes / MB:.2f}MB")
        print(f"    Avg Accuracy:       {stats.avg_accuracy:.2f}%")
        print(f"    Avg Throughput:     {stats.avg_throughput:.2f} records/sec")
        print(f"    Scalability Factor: {stats.scalability:.2f}")

    print("\n  Recommendations:")
    for recommendation in report.summary.recommendations:
        print(f"    - {recommendation}")

    path = output_path(args.output, args.format)
    path.write_text(render(report, args.format), encoding="utf-8")
    print(f"\n  Results saved to: {path}")
    print(f"{'=' * 60}\n")


# ──────────────────────────────────────────────────────────────────────────────
# Subcommand: compare
# ──────────────────────────────────────────────────────────────────────────────

def cmd_compare(args: argparse.Namespace) -> None:
    first = BenchmarkReport.model_validate_json(Path(args.file1).read_text(encoding="utf-8"))
    second = BenchmarkReport.model_validate_json(Path(args.file2).read_text(encoding="utf-8"))

    print("Benchmark Comparison Report")
    print("=" * 50)
    print(f"\n{args.file1} vs {args.file2}\n")
    for line in compare_reports(first, second):
        print(line)


# ──────────────────────────────────────────────────────────────────────────────
# CLI entry point
# ──────────────────────────────────────────────────────────────────────────────

def parse_sizes(value: str) -> list[int]:
    try:
        sizes = [int(part) for part in value.split(",") if part.strip()]
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid size list: {value}") from exc
    if not sizes or any(size <= 0 for size in sizes):
        raise argparse.ArgumentTypeError(f"Sizes must be positive integers: {value}")
    return sizes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="MentorMatch benchmark of the approximate duplicate matchers.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # ── run ───────────────────────────────────────────────────────────
    run_parser = subparsers.add_parser("run", help="Run the benchmark suite.")
    run_parser.add_argument(
        "--output", "-o",
        default="benchmark-results.json",
        help="Output file (default: benchmark-results.json).",
    )
    run_parser.add_argument(
        "--format", "-f",
        choices=["json", "csv", "html"],
        default="json",
        help="Report format (default: json).",
    )
    run_parser.add_argument(
        "--sizes",
        type=parse_sizes,
        default=None,
        help="Comma-separated data sizes (default: 100,500,1000,2000,5000).",
    )
    run_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the synthetic data generator.",
    )
    run_parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds to pause between runs (default: BENCHMARK_RUN_DELAY_SECONDS).",
    )

    # ── compare ───────────────────────────────────────────────────────
    compare_parser = subparsers.add_parser("compare", help="Compare two JSON reports.")
    compare_parser.add_argument("file1", help="Baseline report.")
    compare_parser.add_argument("file2", help="Candidate report.")
    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.command == "run":
        asyncio.run(cmd_run(args))
    elif args.command == "compare":
        try:
            cmd_compare(args)
        except (OSError, ValueError) as exc:
            print(f"Comparison failed: {exc}")
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
