"""
Test Configuration and Fixtures

Provides:
- Engines (the reference engine; regorus when it is installed)
- Small ACP corpora and prepared queries for both flavors
- A fake clock for driving the measurement loop deterministically
"""

import logging
import sys
from pathlib import Path

import pytest
import structlog

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from iambench.acp import Flavor  # noqa: E402
from iambench.driver import PrepareParams, prepare_query  # noqa: E402
from iambench.engine.reference import ReferenceEngine  # noqa: E402
from iambench.policies import get_profile  # noqa: E402


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a test's captured streams."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()


@pytest.fixture
def reference_engine() -> ReferenceEngine:
    return ReferenceEngine()


@pytest.fixture
def regorus_engine():
    pytest.importorskip("regorus")
    from iambench.engine.regorus import RegorusEngine
    return RegorusEngine()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def exact_profile():
    return get_profile(Flavor.EXACT.value)


@pytest.fixture
def glob_profile():
    return get_profile(Flavor.GLOB.value)


@pytest.fixture
def prepare():
    """Prepare a flavor on an engine: prepare(engine, flavor, amount, partial=False)."""
    def _prepare(engine, flavor: str, amount: int, partial: bool = False, instrument: bool = False):
        profile = get_profile(flavor)
        return prepare_query(
            engine,
            PrepareParams.for_profile(profile, amount),
            instrument=instrument,
            partial=partial,
        )
    return _prepare
