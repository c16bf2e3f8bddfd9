"""
MentorMatch - Process resource sampling for benchmark runs.
"""

from __future__ import annotations

import os
import time
import tracemalloc
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

import psutil

T = TypeVar("T")


@dataclass
class Measurement:
    result: Any
    execution_time_ms: float
    memory_usage_bytes: int
    cpu_usage_percent: float


class PerformanceMonitor:
    """Wall time, traced heap delta and process CPU percent around a call."""

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process or psutil.Process(os.getpid())

    def measure(self, operation: Callable[[], T]) -> Measurement:
        tracing = tracemalloc.is_tracing()
        if not tracing:
            tracemalloc.start()
        start_memory, _ = tracemalloc.get_traced_memory()
        # primes the counter; the next call reports usage since this one
        self._process.cpu_percent(interval=None)
        started = time.perf_counter()

        result = operation()

        elapsed_ms = (time.perf_counter() - started) * 1000
        cpu = self._process.cpu_percent(interval=None)
        end_memory, _ = tracemalloc.get_traced_memory()
        if not tracing:
            tracemalloc.stop()

        return Measurement(
            result=result,
            execution_time_ms=elapsed_ms,
            memory_usage_bytes=end_memory - start_memory,
            cpu_usage_percent=max(cpu, 0.0),
        )

    @staticmethod
    def system_resources() -> dict[str, Any]:
        memory = psutil.virtual_memory()
        return {
            "total_memory": memory.total,
            "free_memory": memory.available,
            "cpu_count": psutil.cpu_count() or 0,
            "load_average": list(os.getloadavg()) if hasattr(os, "getloadavg") else [],
        }
