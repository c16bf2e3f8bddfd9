"""
MentorMatch - Rendering and comparison of benchmark reports.
"""

from __future__ import annotations

import csv
import html
import io
from datetime import datetime, timezone

from app.schemas.benchmark import BenchmarkReport, BenchmarkResult

MB = 1024 * 1024
GB = MB * 1024


def to_csv(results: list[BenchmarkResult]) -> str:
    if not results:
        return ""
    buffer = io.StringIO()
    headers = list(BenchmarkResult.model_fields)
    writer = csv.DictWriter(buffer, fieldnames=headers, lineterminator="\n")
    writer.writeheader()
    for result in results:
        writer.writerow(result.model_dump())
    return buffer.getvalue()


def to_html(report: BenchmarkReport, generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    info = report.system_info
    rows = "\n".join(
        "<tr>"
        f"<td>{html.escape(r.algorithm_name)}</td>"
        f"<td>{r.data_size}</td>"
        f"<td>{r.execution_time_ms:.2f}</td>"
        f"<td>{r.memory_usage_bytes / MB:.2f}</td>"
        f"<td>{r.cpu_usage_percent:.2f}</td>"
        f"<td>{r.accuracy:.2f}</td>"
        f"<td>{r.throughput:.2f}</td>"
        "</tr>"
        for r in report.results
    )
    recommendations = "\n".join(
        f"<li>{html.escape(rec)}</li>" for rec in report.summary.recommendations
    )
    return f"""<!DOCTYPE html>
<html>
<head>
<title>Matching Algorithm Benchmark Report</title>
<style>
body {{ font-family: Arial, sans-serif; margin: 20px; }}
table {{ width: 100%; border-collapse: collapse; }}
th, td {{ border: 1px solid #ddd; padding: 8px; text-align: left; }}
th {{ background-color: #f2f2f2; }}
</style>
</head>
<body>
<h1>Matching Algorithm Benchmark Report</h1>
<p>Generated on: {generated_at.isoformat()}</p>
<h2>System Information</h2>
<ul>
<li>Total Memory: {info.get("total_memory", 0) / GB:.2f} GB</li>
<li>Free Memory: {info.get("free_memory", 0) / GB:.2f} GB</li>
<li>CPU Cores: {info.get("cpu_count", 0)}</li>
</ul>
<h2>Performance Results</h2>
<table>
<thead>
<tr><th>Algorithm</th><th>Data Size</th><th>Execution Time (ms)</th><th>Memory Usage (MB)</th><th>CPU Usage (%)</th><th>Accuracy (%)</th><th>Throughput (rec/sec)</th></tr>
</thead>
<tbody>
{rows}
</tbody>
</table>
<h2>Recommendations</h2>
<ul>
{recommendations}
</ul>
</body>
</html>
"""


def change_indicator(old: float, new: float, higher_is_better: bool) -> str:
    """``"better +12.5%"`` / ``"worse -3.0%"``; ``"n/a"`` when ``old`` is 0."""
    if old == 0:
        return "n/a"
    change = (new - old) / old * 100
    improved = change > 0 if higher_is_better else change < 0
    sign = "+" if change > 0 else ""
    return f"{'better' if improved else 'worse'} {sign}{change:.1f}%"


def compare_reports(first: BenchmarkReport, second: BenchmarkReport) -> list[str]:
    """Line-per-metric comparison for algorithms present in both reports."""
    lines = []
    before_stats = first.summary.algorithm_stats
    after_stats = second.summary.algorithm_stats
    for algorithm in before_stats:
        if algorithm not in after_stats:
            continue
        before, after = before_stats[algorithm], after_stats[algorithm]
        lines.extend(
            [
                f"{algorithm}:",
                f"  Execution Time: {before.avg_execution_time_ms:.2f}ms -> "
                f"{after.avg_execution_time_ms:.2f}ms "
                f"({change_indicator(before.avg_execution_time_ms, after.avg_execution_time_ms, False)})",
                f"  Memory Usage: {before.avg_memory_usage_bytes / MB:.2f}MB -> "
                f"{after.avg_memory_usage_bytes / MB:.2f}MB "
                f"({change_indicator(before.avg_memory_usage_bytes, after.avg_memory_usage_bytes, False)})",
                f"  Accuracy: {before.avg_accuracy:.2f}% -> {after.avg_accuracy:.2f}% "
                f"({change_indicator(before.avg_accuracy, after.avg_accuracy, True)})",
                f"  Throughput: {before.avg_throughput:.2f} -> {after.avg_throughput:.2f} rec/sec "
                f"({change_indicator(before.avg_throughput, after.avg_throughput, True)})",
                "",
            ]
        )
    return lines
