"""
Monitoring for iambench

Provides:
- Metrics collection (counters, timers, latency histograms)
- Go-style duration formatting for report rows
- Structured logging configuration
"""

from iambench.monitoring.metrics import (
    Counter,
    Histogram,
    Metrics,
    Timer,
    format_duration,
    percentiles,
)
from iambench.monitoring.logging import configure_logging, get_logger

__all__ = [
    "Counter",
    "Histogram",
    "Metrics",
    "Timer",
    "format_duration",
    "percentiles",
    "configure_logging",
    "get_logger",
]
