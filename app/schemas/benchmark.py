from typing import Any, Optional

from pydantic import BaseModel


class BenchmarkResult(BaseModel):
    algorithm_name: str
    data_size: int
    execution_time_ms: float
    memory_usage_bytes: int
    cpu_usage_percent: float
    accuracy: float              # percentage
    throughput: float            # records per second


class AlgorithmBenchmarkStats(BaseModel):
    avg_execution_time_ms: float
    avg_memory_usage_bytes: float
    avg_cpu_usage_percent: float
    avg_accuracy: float
    avg_throughput: float
    scalability: float           # lower is closer to linear


class BestPerformers(BaseModel):
    fastest: Optional[BenchmarkResult] = None
    most_memory_efficient: Optional[BenchmarkResult] = None
    most_accurate: Optional[BenchmarkResult] = None
    highest_throughput: Optional[BenchmarkResult] = None


class BenchmarkSummary(BaseModel):
    algorithm_stats: dict[str, AlgorithmBenchmarkStats] = {}
    best_performers: BestPerformers = BestPerformers()
    recommendations: list[str] = []


class BenchmarkReport(BaseModel):
    results: list[BenchmarkResult]
    summary: BenchmarkSummary
    system_info: dict[str, Any] = {}
