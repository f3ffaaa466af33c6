"""
Benchmark Framework for iambench

Runs a benchmark for a fixed number of iterations and summarizes the
per-iteration latencies. Unlike the measurement loop, which runs until it
is interrupted, every benchmark here ends with a result.

Timings are nanoseconds throughout; results print in the layout of
``go test -bench``.
"""

import gc
import statistics
import time
import tracemalloc
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List

from iambench.monitoring.logging import get_logger
from iambench.monitoring.metrics import format_duration, percentiles

logger = get_logger(__name__)


@dataclass
class BenchmarkResult:
    """Latency summary of one benchmark."""
    name: str
    iterations: int
    total_ns: int
    min_ns: int
    max_ns: int
    mean_ns: float
    median_ns: float
    p90_ns: float
    p99_ns: float
    stddev_ns: float
    memory_peak_mb: float = 0.0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def ns_per_op(self) -> float:
        return self.mean_ns

    @property
    def ops_per_second(self) -> float:
        if self.total_ns <= 0:
            return 0.0
        return self.iterations * 1e9 / self.total_ns

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "iterations": self.iterations,
            "ns_per_op": round(self.ns_per_op),
            "ops_per_second": round(self.ops_per_second, 2),
            "started_at": self.started_at.isoformat(),
        }
        for key in ("total_ns", "min_ns", "max_ns", "median_ns", "p90_ns", "p99_ns", "stddev_ns"):
            data[key] = round(getattr(self, key))
        if self.memory_peak_mb:
            data["memory_peak_mb"] = round(self.memory_peak_mb, 2)
        if self.metadata:
            data["metadata"] = self.metadata
        return data


class Benchmark(ABC):
    """A unit of work measured one iteration at a time."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def setup(self) -> None:
        """Prepare state; not measured."""
        pass

    @abstractmethod
    def teardown(self) -> None:
        pass

    @abstractmethod
    def run_iteration(self) -> None:
        """Run once; raising aborts the benchmark."""
        pass

    def warmup(self, iterations: int = 10) -> None:
        for _ in range(iterations):
            self.run_iteration()


def run_benchmark(
    benchmark: Benchmark,
    iterations: int = 1000,
    warmup_iterations: int = 10,
    track_memory: bool = False,
) -> BenchmarkResult:
    """
    Run ``benchmark`` and summarize its iteration latencies.

    Setup and warmup are not measured. The first exception from any
    iteration aborts the run and propagates once teardown has run.

    Args:
        benchmark: Benchmark to run
        iterations: Measured iterations, at least 1
        warmup_iterations: Unmeasured iterations run first
        track_memory: Record peak traced memory while measuring

    Returns:
        BenchmarkResult in nanoseconds
    """
    if iterations < 1:
        raise ValueError("iterations must be >= 1")

    samples: List[int] = []
    memory_peak = 0.0

    benchmark.setup()
    try:
        benchmark.warmup(warmup_iterations)
        gc.collect()

        if track_memory:
            tracemalloc.start()
        begin = time.perf_counter_ns()
        try:
            for _ in range(iterations):
                started = time.perf_counter_ns()
                benchmark.run_iteration()
                samples.append(time.perf_counter_ns() - started)
        finally:
            if track_memory:
                memory_peak = tracemalloc.get_traced_memory()[1] / (1024 * 1024)
                tracemalloc.stop()
        total = time.perf_counter_ns() - begin
    finally:
        benchmark.teardown()

    p90, p99 = percentiles(samples, (0.9, 0.99))
    return BenchmarkResult(
        name=benchmark.name,
        iterations=iterations,
        total_ns=total,
        min_ns=min(samples),
        max_ns=max(samples),
        mean_ns=statistics.fmean(samples),
        median_ns=statistics.median(samples),
        p90_ns=p90,
        p99_ns=p99,
        stddev_ns=statistics.pstdev(samples),
        memory_peak_mb=memory_peak,
    )


class BenchmarkSuite:
    """Benchmarks run one after another with the same iteration counts."""

    def __init__(self, name: str = "iambench"):
        self.name = name
        self._benchmarks: List[Benchmark] = []

    def add(self, benchmark: Benchmark) -> None:
        self._benchmarks.append(benchmark)

    @property
    def benchmarks(self) -> List[Benchmark]:
        return list(self._benchmarks)

    def run_all(self, iterations: int = 100, warmup_iterations: int = 10) -> List[BenchmarkResult]:
        results = []
        for benchmark in self._benchmarks:
            logger.info("benchmark_started", suite=self.name, benchmark=benchmark.name)
            result = run_benchmark(
                benchmark, iterations=iterations, warmup_iterations=warmup_iterations
            )
            logger.info(
                "benchmark_finished",
                benchmark=result.name,
                ns_per_op=round(result.ns_per_op),
            )
            results.append(result)
        return results


def format_results(results: List[BenchmarkResult]) -> str:
    """
    Render results one per line, ``go test -bench`` style::

        StoreScan/30         100     41250 ns/op     p90 45.1µs     p99 60.2µs
    """
    if not results:
        return "No results"

    name_width = max(len(r.name) for r in results)
    count_width = max(len(str(r.iterations)) for r in results)
    ns_width = max(len(f"{r.ns_per_op:.0f}") for r in results)

    lines = []
    for r in results:
        lines.append(
            f"{r.name:<{name_width}}  {r.iterations:>{count_width}}  "
            f"{r.ns_per_op:>{ns_width}.0f} ns/op  "
            f"p90 {format_duration(r.p90_ns):<12} p99 {format_duration(r.p99_ns)}"
        )
    return "\n".join(lines)
