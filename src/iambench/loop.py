"""
Measurement loop.

Evaluates one prepared query against one fixed request for as long as the
process runs, checking every decision and reporting latency percentiles at
a fixed interval. The loop owns its histogram: each report reads it and
clears it, so every row covers only the last interval.
"""

import time
from typing import Any, Callable, Dict, Iterable, Optional

from iambench.acp import RequestInput
from iambench.engine import PreparedQuery, ResultSet
from iambench.errors import EngineError, EvaluationError, UnexpectedDecisionError
from iambench.monitoring.logging import get_logger
from iambench.monitoring.metrics import Histogram, format_duration

logger = get_logger(__name__)

REPORT_KEYS = ("mean", "90%", "99%", "99.9%")
COLUMN_WIDTH = 20


def format_row(cells: Iterable[Any]) -> str:
    """Left-align cells into fixed-width report columns."""
    return " ".join(f"{str(cell):<{COLUMN_WIDTH}}" for cell in cells).rstrip()


def decision_name(decision: bool) -> str:
    return "allow" if decision else "deny"


def check_decision(results: ResultSet, expected: bool) -> None:
    """
    Ensure ``results`` is a single boolean decision equal to ``expected``.

    Raises:
        UnexpectedDecisionError: on any other shape or value
    """
    if len(results) != 1 or not results[0].expressions:
        raise UnexpectedDecisionError(
            f"Expected {decision_name(expected)} but got {results!r}", results
        )
    value = results[0].expressions[0].value
    if not isinstance(value, bool) or value != expected:
        raise UnexpectedDecisionError(
            f"Expected {decision_name(expected)} but got {results!r}", results
        )


class MeasurementLoop:
    """Evaluate, check, record; report and clear every ``report_interval`` seconds."""

    def __init__(
        self,
        prepared: PreparedQuery,
        request: RequestInput,
        expected: bool,
        histogram: Optional[Histogram] = None,
        report_interval: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        timer_ns: Callable[[], int] = time.perf_counter_ns,
    ):
        self.prepared = prepared
        self.request = request
        self.expected = expected
        self.histogram = histogram if histogram is not None else Histogram("eval_ns")
        self.report_interval = report_interval
        self._clock = clock
        self._timer_ns = timer_ns
        self._input = request.to_dict()
        self._last_report: Optional[float] = None
        self.reports = 0
        self.last_summary: Optional[Dict[str, Any]] = None

    @property
    def state(self) -> str:
        """``warm`` right after a report, ``accumulating`` once samples arrive."""
        return "warm" if self.histogram.count == 0 else "accumulating"

    def start(self) -> None:
        """Reset the report clock and print the table header."""
        self._last_report = self._clock()
        logger.info("Running evaluation...")
        logger.info(format_row(REPORT_KEYS))

    def report(self) -> Dict[str, Any]:
        """Read and clear the histogram, then print one table row."""
        summary = self.histogram.value()
        self.histogram.clear()
        self.reports += 1
        self.last_summary = summary
        logger.info(format_row(format_duration(summary[key]) for key in REPORT_KEYS))
        return summary

    def step(self) -> int:
        """
        Run one iteration and return its latency in nanoseconds.

        Raises:
            EvaluationError: if the engine fails
            UnexpectedDecisionError: if the decision is not the expected one
        """
        if self._last_report is None:
            self.start()

        now = self._clock()
        if now - self._last_report > self.report_interval:
            self._last_report = now
            self.report()

        started = self._timer_ns()
        try:
            results = self.prepared.evaluate(self._input)
        except EngineError as e:
            raise EvaluationError(str(e)) from e
        check_decision(results, self.expected)
        elapsed = self._timer_ns() - started

        self.histogram.update(elapsed)
        return elapsed

    def run(self, max_iterations: int = 0) -> int:
        """
        Loop until interrupted, a fatal error, or ``max_iterations`` (0 = forever).

        Returns the number of iterations completed.
        """
        self.start()
        iterations = 0
        while not max_iterations or iterations < max_iterations:
            self.step()
            iterations += 1
        return iterations
