"""
Tests for metrics collection and duration formatting.
"""

import math
import random

import pytest

from iambench.monitoring.metrics import (
    PERCENTILE_KEYS,
    Counter,
    Histogram,
    Metrics,
    Timer,
    format_duration,
    percentiles,
)


class TestCounter:
    """Tests for Counter."""

    def test_counter_increment(self):
        """Test counter increments."""
        counter = Counter("test_counter", "Test counter")
        counter.inc()
        counter.inc(5)
        assert counter.value() == 6

    def test_counter_rejects_negative(self):
        """Counters only go up."""
        counter = Counter("test_counter")
        with pytest.raises(ValueError):
            counter.inc(-1)


class TestTimer:
    """Tests for Timer."""

    def test_timer_accumulates(self):
        """Each start/stop pair adds to the elapsed total."""
        timer = Timer("timer_test_ns")
        timer.start()
        first = timer.stop()
        timer.start()
        second = timer.stop()
        assert first >= 0
        assert second >= 0
        assert timer.value() == first + second

    def test_stop_without_start(self):
        timer = Timer("timer_test_ns")
        with pytest.raises(RuntimeError):
            timer.stop()


class TestPercentiles:
    """Tests for the percentile rule."""

    def test_known_values(self):
        """Interpolates at p * (n + 1)."""
        values = list(range(1, 101))
        p50, p90, p99 = percentiles(values, (0.5, 0.9, 0.99))
        assert p50 == pytest.approx(50.5)
        assert p90 == pytest.approx(90.9)
        assert p99 == pytest.approx(99.99)

    def test_clamps_to_extremes(self):
        values = [10, 20, 30]
        low, high = percentiles(values, (0.01, 0.9999))
        assert low == 10
        assert high == 30

    def test_empty_values(self):
        assert all(math.isnan(v) for v in percentiles([], (0.5, 0.9)))

    def test_order_does_not_matter(self):
        values = list(range(1, 51))
        shuffled = values[:]
        random.Random(7).shuffle(shuffled)
        assert percentiles(values, (0.9,)) == percentiles(shuffled, (0.9,))


class TestHistogram:
    """Tests for Histogram."""

    def test_histogram_summary(self):
        """Test histogram statistics over 1..1000."""
        histogram = Histogram("eval_ns")
        for v in range(1, 1001):
            histogram.update(v)

        summary = histogram.value()
        assert summary["count"] == 1000
        assert summary["min"] == 1
        assert summary["max"] == 1000
        assert summary["mean"] == pytest.approx(500.5)
        assert summary["stddev"] == pytest.approx(math.sqrt((1000 ** 2 - 1) / 12))
        assert summary["median"] == pytest.approx(500.5)
        assert summary["90%"] == pytest.approx(900.9)
        assert summary["99%"] == pytest.approx(990.99)
        assert summary["99.9%"] == pytest.approx(999.999)
        assert summary["99.99%"] == 1000

    def test_percentiles_are_monotonic(self):
        histogram = Histogram("eval_ns", rng=random.Random(1))
        rng = random.Random(2)
        for _ in range(5000):
            histogram.update(rng.expovariate(1 / 1000))

        summary = histogram.value()
        ordered = [summary[key] for key in PERCENTILE_KEYS]
        assert ordered == sorted(ordered)
        assert summary["min"] <= ordered[0]
        assert ordered[-1] <= summary["max"]

    def test_reservoir_is_bounded(self):
        """Count stays exact once the reservoir is full."""
        histogram = Histogram("eval_ns", reservoir_size=16, rng=random.Random(3))
        for v in range(1000):
            histogram.update(v)
        assert histogram.count == 1000
        assert len(histogram._sample) == 16
        assert histogram.value()["max"] == 999

    def test_empty_histogram(self):
        """Every statistic is None while empty."""
        summary = Histogram("eval_ns").value()
        assert summary["count"] == 0
        for key in ("min", "max", "mean", "stddev") + PERCENTILE_KEYS:
            assert summary[key] is None

    def test_clear(self):
        histogram = Histogram("eval_ns")
        histogram.update(5)
        histogram.clear()
        assert histogram.count == 0
        assert histogram.value()["mean"] is None

    def test_invalid_reservoir_size(self):
        with pytest.raises(ValueError):
            Histogram("eval_ns", reservoir_size=0)


class TestMetricsRegistry:
    """Tests for the Metrics registry."""

    def test_metrics_created_on_first_use(self):
        metrics = Metrics()
        metrics.counter("counter_support_rules").inc(8)
        assert metrics.counter("counter_support_rules").value() == 8
        assert list(metrics.to_dict()) == ["counter_support_rules"]

    def test_timed_records_timer(self):
        metrics = Metrics()
        with metrics.timed("timer_prepare_ns"):
            pass
        assert "timer_prepare_ns" in metrics.to_dict()
        assert metrics.to_dict()["timer_prepare_ns"] >= 0

    def test_timed_stops_on_error(self):
        metrics = Metrics()
        with pytest.raises(KeyError):
            with metrics.timed("timer_prepare_ns"):
                raise KeyError("boom")
        # Stopped timers can be started again.
        with metrics.timed("timer_prepare_ns"):
            pass

    def test_type_conflict(self):
        metrics = Metrics()
        metrics.counter("x")
        with pytest.raises(TypeError):
            metrics.timer("x")

    def test_to_dict_sorted_by_name(self):
        metrics = Metrics()
        metrics.counter("b").inc(2)
        with metrics.timed("a"):
            pass
        exported = metrics.to_dict()
        assert list(exported) == ["a", "b"]
        assert exported["b"] == 2
        assert exported["a"] >= 0


class TestFormatDuration:
    """Tests for duration rendering."""

    @pytest.mark.parametrize("ns,expected", [
        (0, "0s"),
        (512, "512ns"),
        (1_000, "1µs"),
        (1_500, "1.5µs"),
        (1_234_567, "1.234567ms"),
        (2_000_000, "2ms"),
        (1_500_000_000, "1.5s"),
        (60_000_000_000, "1m0s"),
        (90_000_000_000, "1m30s"),
        (61_500_000_000, "1m1.5s"),
        (3_600_000_000_000, "1h0m0s"),
        (3_723_000_000_000, "1h2m3s"),
        (-90_000_000_000, "-1m30s"),
        (12_345.9, "12.345µs"),
        (-1_500, "-1.5µs"),
    ])
    def test_format_duration(self, ns, expected):
        assert format_duration(ns) == expected

    def test_missing_value(self):
        assert format_duration(None) == "n/a"
        assert format_duration(math.nan) == "n/a"
