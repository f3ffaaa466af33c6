"""
Tests for the measurement loop.

The loop is driven with a fake clock and a scripted nanosecond timer so
reporting boundaries and recorded latencies are deterministic.
"""

import pytest

from iambench.engine import ExpressionValue, PreparedQuery, Result
from iambench.errors import EngineError, EvaluationError, UnexpectedDecisionError
from iambench.loop import COLUMN_WIDTH, MeasurementLoop, check_decision, format_row


class ScriptedTimer:
    """Nanosecond timer yielding the scripted latency for each start/stop pair."""

    def __init__(self, latencies_ns):
        self._latencies = list(latencies_ns)
        self._now = 0
        self._running = False

    def __call__(self) -> int:
        if self._running:
            self._now += self._latencies.pop(0) if self._latencies else 0
        self._running = not self._running
        return self._now


class StubPrepared(PreparedQuery):
    """Prepared query returning a fixed decision."""

    def __init__(self, value=False, error=None, results=None):
        self._value = value
        self._error = error
        self._results = results
        self.inputs = []

    @property
    def query(self) -> str:
        return "data.stub.allow"

    def evaluate(self, input_document=None):
        self.inputs.append(input_document)
        if self._error is not None:
            raise self._error
        if self._results is not None:
            return self._results
        return [Result(expressions=[ExpressionValue(value=self._value, text=self.query)])]


def _decision(value):
    return [Result(expressions=[ExpressionValue(value=value)])]


class TestCheckDecision:
    """Tests for check_decision."""

    def test_matching_decision(self):
        check_decision(_decision(False), False)
        check_decision(_decision(True), True)

    def test_wrong_decision(self):
        with pytest.raises(UnexpectedDecisionError, match="Expected deny"):
            check_decision(_decision(True), False)

    def test_undefined_result(self):
        with pytest.raises(UnexpectedDecisionError) as exc_info:
            check_decision([], False)
        assert exc_info.value.results == []

    def test_multiple_results(self):
        with pytest.raises(UnexpectedDecisionError):
            check_decision(_decision(False) + _decision(False), False)

    def test_non_boolean_value(self):
        with pytest.raises(UnexpectedDecisionError):
            check_decision(_decision("false"), False)
        with pytest.raises(UnexpectedDecisionError):
            check_decision(_decision(0), False)

    def test_no_expressions(self):
        with pytest.raises(UnexpectedDecisionError):
            check_decision([Result(expressions=[])], False)


class TestFormatRow:
    """Tests for report rows."""

    def test_fixed_width_columns(self):
        row = format_row(["mean", "90%"])
        assert row == "mean".ljust(COLUMN_WIDTH) + " " + "90%"

    def test_trailing_whitespace_is_stripped(self):
        assert not format_row(["a", "b", "c"]).endswith(" ")


class TestMeasurementLoop:
    """Tests for MeasurementLoop."""

    def test_run_stops_after_max_iterations(self, exact_profile, fake_clock):
        prepared = StubPrepared(False)
        loop = MeasurementLoop(prepared, exact_profile.probe, False, clock=fake_clock)

        assert loop.run(max_iterations=25) == 25
        assert loop.histogram.count == 25
        assert loop.reports == 0

    def test_evaluates_the_probe_input(self, exact_profile, fake_clock):
        prepared = StubPrepared(False)
        loop = MeasurementLoop(prepared, exact_profile.probe, False, clock=fake_clock)
        loop.run(max_iterations=2)
        assert prepared.inputs == [exact_profile.probe.to_dict()] * 2

    def test_records_measured_latency(self, exact_profile, fake_clock):
        loop = MeasurementLoop(
            StubPrepared(False), exact_profile.probe, False,
            clock=fake_clock, timer_ns=ScriptedTimer([100, 200, 300]),
        )
        loop.start()
        assert [loop.step() for _ in range(3)] == [100, 200, 300]
        assert loop.histogram.value()["mean"] == pytest.approx(200)

    def test_reports_after_interval(self, exact_profile, fake_clock):
        """A report covers exactly the samples since the previous one."""
        loop = MeasurementLoop(
            StubPrepared(False), exact_profile.probe, False,
            report_interval=5.0, clock=fake_clock, timer_ns=ScriptedTimer([100, 200, 300, 400]),
        )
        loop.start()
        loop.step()
        loop.step()
        fake_clock.advance(5.0)
        loop.step()
        assert loop.reports == 0

        fake_clock.advance(0.5)
        loop.step()
        assert loop.reports == 1
        assert loop.last_summary["count"] == 3
        assert loop.last_summary["mean"] == pytest.approx(200)
        assert loop.histogram.count == 1

        fake_clock.advance(5.1)
        loop.step()
        assert loop.reports == 2
        assert loop.last_summary["count"] == 1
        assert loop.last_summary["max"] == 400

    def test_state_transitions(self, exact_profile, fake_clock):
        loop = MeasurementLoop(StubPrepared(False), exact_profile.probe, False, clock=fake_clock)
        loop.start()
        assert loop.state == "warm"
        loop.step()
        assert loop.state == "accumulating"
        loop.report()
        assert loop.state == "warm"

    def test_report_on_empty_histogram(self, exact_profile, fake_clock):
        loop = MeasurementLoop(StubPrepared(False), exact_profile.probe, False, clock=fake_clock)
        summary = loop.report()
        assert summary["count"] == 0
        assert summary["mean"] is None

    def test_unexpected_decision_is_fatal(self, exact_profile, fake_clock):
        loop = MeasurementLoop(StubPrepared(True), exact_profile.probe, False, clock=fake_clock)
        with pytest.raises(UnexpectedDecisionError):
            loop.run(max_iterations=10)
        assert loop.histogram.count == 0

    def test_undefined_result_is_fatal(self, exact_profile, fake_clock):
        loop = MeasurementLoop(StubPrepared(results=[]), exact_profile.probe, False, clock=fake_clock)
        with pytest.raises(UnexpectedDecisionError):
            loop.step()

    def test_engine_error_is_fatal(self, exact_profile, fake_clock):
        prepared = StubPrepared(error=EngineError("eval_conflict_error"))
        loop = MeasurementLoop(prepared, exact_profile.probe, False, clock=fake_clock)
        with pytest.raises(EvaluationError, match="eval_conflict_error"):
            loop.run()

    def test_reference_engine_deny_probe(self, reference_engine, prepare, glob_profile, fake_clock):
        prepared = prepare(reference_engine, "glob", 20)
        loop = MeasurementLoop(prepared, glob_profile.probe, glob_profile.expected, clock=fake_clock)
        assert loop.run(max_iterations=50) == 50
