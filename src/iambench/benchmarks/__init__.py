"""
Fixed-size Benchmarks for iambench

Provides:
- Benchmark framework with timing and statistics
- Store scan, partial evaluation and exact evaluation scenarios
"""

from iambench.benchmarks.framework import (
    BenchmarkResult,
    BenchmarkSuite,
    Benchmark,
    run_benchmark,
    format_results,
)
from iambench.benchmarks.scenarios import (
    DEFAULT_SIZES,
    EvalBenchmark,
    PartialEvalBenchmark,
    StoreScanBenchmark,
    build_suite,
    run_suite,
)

__all__ = [
    "BenchmarkResult",
    "BenchmarkSuite",
    "Benchmark",
    "run_benchmark",
    "format_results",
    "DEFAULT_SIZES",
    "EvalBenchmark",
    "PartialEvalBenchmark",
    "StoreScanBenchmark",
    "build_suite",
    "run_suite",
]
