"""
Evaluation driver.

Builds the data store, hands module, query and store to the engine and
returns a prepared query the measurement loop can evaluate repeatedly.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence

from iambench.engine import CompileOptions, InMemoryStore, PolicyEngine, PreparedQuery
from iambench.errors import EngineError, PreparationError
from iambench.monitoring.logging import get_logger
from iambench.monitoring.metrics import Metrics
from iambench.policies import MODULE_NAME, FlavorProfile

logger = get_logger(__name__)


@dataclass
class PrepareParams:
    """What to prepare: a store factory, the query and the policy module."""
    get_store: Callable[[], Dict[str, Any]]
    query: str
    policy: str
    disable_inlining: Sequence[str] = field(default_factory=tuple)
    module_name: str = MODULE_NAME

    @classmethod
    def for_profile(cls, profile: FlavorProfile, amount: int) -> "PrepareParams":
        return cls(
            get_store=lambda: profile.build_document(amount),
            query=profile.query,
            policy=profile.module,
            disable_inlining=profile.disable_inlining,
        )


def prepare_query(
    engine: PolicyEngine,
    params: PrepareParams,
    instrument: bool = False,
    partial: bool = False,
    metrics: Optional[Metrics] = None,
) -> PreparedQuery:
    """
    Prepare ``params.query`` for repeated evaluation.

    Args:
        engine: Engine to compile with
        params: Store factory, query and module
        instrument: Ask the engine for detailed instrumentation
        partial: Run the partial evaluation pass while preparing
        metrics: Receives the preparation timers and counters

    Returns:
        The prepared query

    Raises:
        PreparationError: if the store cannot be built or the engine fails
    """
    if partial:
        logger.info("Running partial evaluation...")
    else:
        logger.info("Preparing query...")

    metrics = metrics if metrics is not None else Metrics()

    try:
        with metrics.timed("timer_store_build_ns"):
            store = InMemoryStore.from_object(params.get_store())
    except (ValueError, TypeError) as e:
        raise PreparationError(f"Could not build the data store: {e}") from e

    options = CompileOptions(
        instrument=instrument,
        disable_inlining=tuple(params.disable_inlining),
        partial=partial,
        metrics=metrics,
    )

    try:
        with metrics.timed("timer_prepare_ns"):
            prepared = engine.compile(
                params.module_name, params.policy, params.query, store, options
            )
    except EngineError as e:
        raise PreparationError(str(e)) from e

    label = "Partial evaluation metrics:" if partial else "Preparation metrics:"
    logger.info(f"{label} {json.dumps(metrics.to_dict(), indent=2)}")
    return prepared
