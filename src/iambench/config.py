"""
iambench Configuration

Run settings for the measurement harness. Defaults come from ``IAMBENCH_*``
environment variables; CLI flags override them.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List

from iambench.acp import Flavor
from iambench.engine import ENGINES
from iambench.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_AMOUNT = 30000
DEFAULT_REPORT_INTERVAL = 5.0


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class BenchConfig:
    """Configuration for one benchmark run."""

    # Policy corpus
    flavor: str = field(default_factory=lambda: os.getenv("IAMBENCH_FLAVOR", Flavor.EXACT.value))
    amount: int = field(default_factory=lambda: int(os.getenv("IAMBENCH_AMOUNT", str(DEFAULT_AMOUNT))))

    # Engine
    engine: str = field(default_factory=lambda: os.getenv("IAMBENCH_ENGINE", "regorus"))
    instrument: bool = field(default_factory=lambda: _env_bool("IAMBENCH_INSTRUMENT"))
    partial: bool = field(default_factory=lambda: _env_bool("IAMBENCH_PARTIAL"))

    # Measurement
    report_interval: float = field(
        default_factory=lambda: float(os.getenv("IAMBENCH_REPORT_INTERVAL", str(DEFAULT_REPORT_INTERVAL)))
    )
    max_iterations: int = field(default_factory=lambda: int(os.getenv("IAMBENCH_MAX_ITERATIONS", "0")))

    def validate(self) -> List[str]:
        """Validate configuration and return list of warnings."""
        warnings = []

        if self.flavor not in {f.value for f in Flavor}:
            raise ConfigurationError(
                f"Invalid flavor {self.flavor!r} (options: {', '.join(f.value for f in Flavor)})"
            )
        if self.engine not in ENGINES:
            raise ConfigurationError(
                f"Unknown engine {self.engine!r} (options: {', '.join(ENGINES)})"
            )
        if self.amount < 0:
            raise ConfigurationError(f"amount must be >= 0, got {self.amount}")
        if self.report_interval <= 0:
            raise ConfigurationError(
                f"report_interval must be positive, got {self.report_interval}"
            )
        if self.max_iterations < 0:
            raise ConfigurationError(
                f"max_iterations must be >= 0, got {self.max_iterations}"
            )

        if self.amount == 0:
            warnings.append("amount is 0: every decision will be deny")
        if self.partial and self.engine == "regorus":
            warnings.append("regorus does not implement partial evaluation")
        if self.instrument:
            warnings.append("instrumentation adds overhead to every evaluation")

        for warning in warnings:
            logger.warning(warning)
        return warnings
