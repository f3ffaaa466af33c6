"""
Metrics Collection for iambench

Provides the measurements the harness reports:
- Counters (monotonically increasing values)
- Timers (elapsed nanoseconds for one-off phases such as preparation)
- Histograms (latency distributions with percentile summaries)

Values are nanoseconds unless a metric name says otherwise. Nothing here is
shared between threads; the owner of a metric is its only writer.
"""

import math
import random
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence


class Counter:
    """A counter metric that only increases."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._value = 0

    def inc(self, value: int = 1) -> None:
        """Increment the counter."""
        if value < 0:
            raise ValueError("Counter can only be incremented")
        self._value += value

    def value(self) -> int:
        return self._value


class Timer:
    """Accumulated wall-clock time of a phase, in nanoseconds."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._elapsed_ns = 0
        self._started_ns: Optional[int] = None

    def start(self) -> None:
        self._started_ns = time.perf_counter_ns()

    def stop(self) -> int:
        """Stop the timer and return the nanoseconds since ``start``."""
        if self._started_ns is None:
            raise RuntimeError(f"Timer {self.name} was not started")
        delta = time.perf_counter_ns() - self._started_ns
        self._elapsed_ns += delta
        self._started_ns = None
        return delta

    def value(self) -> int:
        return self._elapsed_ns


PERCENTILES = (0.5, 0.75, 0.9, 0.95, 0.99, 0.999, 0.9999)
PERCENTILE_KEYS = ("median", "75%", "90%", "95%", "99%", "99.9%", "99.99%")


def percentiles(values: Sequence[float], ps: Sequence[float]) -> List[float]:
    """
    Compute percentiles of ``values`` with the ``p * (n + 1)`` rule.

    Positions below the first sample clamp to the minimum, positions past
    the last sample clamp to the maximum, anything in between is linearly
    interpolated between its two neighbours.
    """
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return [math.nan for _ in ps]

    result = []
    for p in ps:
        pos = p * (n + 1)
        if pos < 1.0:
            result.append(float(ordered[0]))
        elif pos >= n:
            result.append(float(ordered[-1]))
        else:
            lower = ordered[int(pos) - 1]
            upper = ordered[int(pos)]
            result.append(lower + (pos - math.floor(pos)) * (upper - lower))
    return result


class Histogram:
    """
    A histogram metric for measuring latency distributions.

    Count, sum, min and max are exact over every observation. Percentiles
    come from a uniform reservoir sample of at most ``reservoir_size``
    values, so they are exact until the reservoir fills up and estimates
    afterwards.
    """

    DEFAULT_RESERVOIR_SIZE = 1028

    def __init__(
        self,
        name: str,
        description: str = "",
        reservoir_size: int = DEFAULT_RESERVOIR_SIZE,
        rng: Optional[random.Random] = None,
    ):
        if reservoir_size <= 0:
            raise ValueError("reservoir_size must be positive")
        self.name = name
        self.description = description
        self.reservoir_size = reservoir_size
        self._rng = rng or random.Random()
        self._sample: List[float] = []
        self._count = 0
        self._sum = 0.0
        self._min = math.inf
        self._max = -math.inf

    @property
    def count(self) -> int:
        return self._count

    def update(self, value: float) -> None:
        """Record a value in the histogram."""
        self._count += 1
        self._sum += value
        self._min = min(self._min, value)
        self._max = max(self._max, value)

        if len(self._sample) < self.reservoir_size:
            self._sample.append(value)
        else:
            slot = self._rng.randrange(self._count)
            if slot < self.reservoir_size:
                self._sample[slot] = value

    def clear(self) -> None:
        """Drop every observation."""
        self._sample = []
        self._count = 0
        self._sum = 0.0
        self._min = math.inf
        self._max = -math.inf

    def value(self) -> Dict[str, Any]:
        """
        Summarize the distribution.

        Returns a mapping with ``count``, ``min``, ``max``, ``mean``,
        ``stddev`` and the percentile keys (``median``, ``75%``, ``90%``,
        ``95%``, ``99%``, ``99.9%``, ``99.99%``). Every statistic is None
        while the histogram is empty.
        """
        summary: Dict[str, Any] = {"count": self._count}
        if self._count == 0:
            for key in ("min", "max", "mean", "stddev") + PERCENTILE_KEYS:
                summary[key] = None
            return summary

        mean = self._sum / self._count
        variance = sum((v - mean) ** 2 for v in self._sample) / len(self._sample)

        summary["min"] = self._min
        summary["max"] = self._max
        summary["mean"] = mean
        summary["stddev"] = math.sqrt(variance)
        for key, pct in zip(PERCENTILE_KEYS, percentiles(self._sample, PERCENTILES)):
            summary[key] = pct
        return summary


class Metrics:
    """Registry of named metrics, created on first use."""

    def __init__(self):
        self._metrics: Dict[str, Any] = {}

    def _get_or_create(self, name: str, factory) -> Any:
        metric = self._metrics.get(name)
        if metric is None:
            metric = factory(name)
            self._metrics[name] = metric
        elif not isinstance(metric, factory):
            raise TypeError(f"Metric {name} is a {type(metric).__name__}")
        return metric

    def counter(self, name: str) -> Counter:
        return self._get_or_create(name, Counter)

    def timer(self, name: str) -> Timer:
        return self._get_or_create(name, Timer)

    @contextmanager
    def timed(self, name: str) -> Iterator[Timer]:
        """Time the enclosed block into the named timer."""
        timer = self.timer(name)
        timer.start()
        try:
            yield timer
        finally:
            timer.stop()

    def to_dict(self) -> Dict[str, Any]:
        """Export metrics as a dictionary keyed by metric name."""
        return {name: self._metrics[name].value() for name in sorted(self._metrics)}


def format_duration(ns: Optional[float]) -> str:
    """
    Render nanoseconds the way Go prints a ``time.Duration``.

    >>> format_duration(1234567)
    '1.234567ms'
    >>> format_duration(512)
    '512ns'
    >>> format_duration(90_000_000_000)
    '1m30s'
    """
    if ns is None or (isinstance(ns, float) and math.isnan(ns)):
        return "n/a"

    total = int(ns)
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)

    if total < 1_000:
        return f"{sign}{total}ns"
    if total < 1_000_000:
        unit, scale = "µs", 1_000
    elif total < 1_000_000_000:
        unit, scale = "ms", 1_000_000
    else:
        unit, scale = "s", 1_000_000_000

    whole, frac = divmod(total, scale)
    digits = len(str(scale)) - 1
    frac_str = f"{frac:0{digits}d}".rstrip("0")
    seconds = f"{whole % 60}.{frac_str}" if frac_str else str(whole % 60)
    if unit != "s" or whole < 60:
        return f"{sign}{whole}.{frac_str}{unit}" if frac_str else f"{sign}{whole}{unit}"

    # Minutes are always shown past one minute, hours only when non-zero.
    hours, minutes = divmod(whole // 60, 60)
    prefix = f"{hours}h" if hours else ""
    return f"{sign}{prefix}{minutes}m{seconds}s"
