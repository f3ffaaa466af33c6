"""
Benchmark Scenarios for iambench

Fixed-size benchmarks over the generated ACP corpus:
- Store scan: a trivial query touching every resource of every ACP
- Partial evaluation: the specialization pass alone
- Exact evaluation: the deny probe against a partially evaluated query
"""

from typing import List, Optional, Sequence

from iambench.acp import create_exact_acps
from iambench.benchmarks.framework import Benchmark, BenchmarkResult, BenchmarkSuite
from iambench.engine import CompileOptions, InMemoryStore, PolicyEngine, PreparedQuery
from iambench.errors import EvaluationError, UnexpectedDecisionError
from iambench.loop import check_decision
from iambench.policies import EXACT_PROFILE, MODULE_NAME, SCAN_POLICY, SCAN_QUERY

DEFAULT_SIZES = (30, 300, 3000)
RESOURCES_PER_ACP = 8


class StoreScanBenchmark(Benchmark):
    """Evaluate a query that iterates every ACP resource in the store."""

    def __init__(self, engine: PolicyEngine, amount: int):
        self._engine = engine
        self._amount = amount
        self._prepared: Optional[PreparedQuery] = None

    @property
    def name(self) -> str:
        return f"StoreScan/{self._amount}"

    def setup(self) -> None:
        store = InMemoryStore.from_object(create_exact_acps(self._amount))
        self._prepared = self._engine.compile(MODULE_NAME, SCAN_POLICY, SCAN_QUERY, store)

    def teardown(self) -> None:
        self._prepared = None

    def run_iteration(self) -> None:
        results = self._prepared.evaluate()
        if not results:
            raise EvaluationError("Undefined result")


class PartialEvalBenchmark(Benchmark):
    """Run the partial evaluation pass of the exact module."""

    def __init__(self, engine: PolicyEngine, amount: int):
        self._engine = engine
        self._amount = amount
        self._store: Optional[InMemoryStore] = None

    @property
    def name(self) -> str:
        return f"PartialEvalExact/{self._amount}"

    def setup(self) -> None:
        self._store = InMemoryStore.from_object(create_exact_acps(self._amount))

    def teardown(self) -> None:
        self._store = None

    def run_iteration(self) -> None:
        result = self._engine.partial(
            MODULE_NAME,
            EXACT_PROFILE.module,
            f"{EXACT_PROFILE.query} = true",
            self._store,
            CompileOptions(disable_inlining=EXACT_PROFILE.disable_inlining),
        )

        expected = self._amount * RESOURCES_PER_ACP
        if len(result.queries) != 1:
            raise UnexpectedDecisionError("Expected exactly one query")
        if len(result.support) != 1:
            raise UnexpectedDecisionError("Expected exactly one support module")
        if len(result.support[0].rules) != expected:
            raise UnexpectedDecisionError(f"Expected exactly {expected} support rules")


class EvalBenchmark(Benchmark):
    """Evaluate the exact deny probe against a partially evaluated query."""

    def __init__(self, engine: PolicyEngine, amount: int, partial: bool = True):
        self._engine = engine
        self._amount = amount
        self._partial = partial
        self._prepared: Optional[PreparedQuery] = None
        self._input = EXACT_PROFILE.probe.to_dict()

    @property
    def name(self) -> str:
        return f"EvalExact/{self._amount}"

    def setup(self) -> None:
        store = InMemoryStore.from_object(EXACT_PROFILE.build_document(self._amount))
        self._prepared = self._engine.compile(
            MODULE_NAME,
            EXACT_PROFILE.module,
            EXACT_PROFILE.query,
            store,
            CompileOptions(
                disable_inlining=EXACT_PROFILE.disable_inlining,
                partial=self._partial,
            ),
        )

    def teardown(self) -> None:
        self._prepared = None

    def run_iteration(self) -> None:
        check_decision(self._prepared.evaluate(self._input), EXACT_PROFILE.expected)


def build_suite(
    engine: PolicyEngine,
    sizes: Sequence[int] = DEFAULT_SIZES,
    partial: bool = True,
) -> BenchmarkSuite:
    """
    Assemble the scenarios for each corpus size.

    Partial evaluation scenarios are only added when ``partial`` is set;
    engines without partial evaluation should pass ``partial=False``.
    """
    suite = BenchmarkSuite(name=f"iambench ({engine.name})")
    for amount in sizes:
        suite.add(StoreScanBenchmark(engine, amount))
    if partial:
        for amount in sizes:
            suite.add(PartialEvalBenchmark(engine, amount))
    for amount in sizes:
        suite.add(EvalBenchmark(engine, amount, partial=partial))
    return suite


def run_suite(
    engine: PolicyEngine,
    sizes: Sequence[int] = DEFAULT_SIZES,
    iterations: int = 100,
    warmup_iterations: int = 10,
    partial: bool = True,
) -> List[BenchmarkResult]:
    """Build and run the suite, returning its results."""
    suite = build_suite(engine, sizes, partial=partial)
    return suite.run_all(iterations=iterations, warmup_iterations=warmup_iterations)


__all__ = [
    "DEFAULT_SIZES",
    "EvalBenchmark",
    "PartialEvalBenchmark",
    "StoreScanBenchmark",
    "build_suite",
    "run_suite",
]
