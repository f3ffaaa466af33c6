"""
Rego engine adapter backed by regorus.

regorus compiles modules lazily on the first query, so ``compile`` issues
one evaluation without input to surface parse and type errors while the
query is being prepared instead of inside the measurement loop.
"""

import json
from typing import Any, Mapping, Optional

import regorus

from iambench.engine.base import (
    CompileOptions,
    ExpressionValue,
    InMemoryStore,
    PolicyEngine,
    PreparedQuery,
    Result,
    ResultSet,
)
from iambench.errors import EngineError, PartialEvaluationUnsupported
from iambench.monitoring.logging import get_logger
from iambench.monitoring.metrics import Metrics

logger = get_logger(__name__)


def _to_result_set(raw: Mapping[str, Any]) -> ResultSet:
    results: ResultSet = []
    for entry in raw.get("result", []) or []:
        expressions = [
            ExpressionValue(value=expr.get("value"), text=expr.get("text", ""))
            for expr in entry.get("expressions", []) or []
        ]
        results.append(Result(expressions=expressions, bindings=dict(entry.get("bindings") or {})))
    return results


class RegorusPreparedQuery(PreparedQuery):
    """A regorus engine loaded with module and data, bound to one query."""

    def __init__(self, engine: Any, query: str):
        self._engine = engine
        self._query = query

    @property
    def query(self) -> str:
        return self._query

    def evaluate(self, input_document: Optional[Mapping[str, Any]] = None) -> ResultSet:
        try:
            self._engine.set_input_json(json.dumps(input_document or {}))
            raw = self._engine.eval_query(self._query)
        except Exception as e:
            raise EngineError(f"regorus evaluation failed: {e}") from e
        if isinstance(raw, str):
            raw = json.loads(raw)
        return _to_result_set(raw)


class RegorusEngine(PolicyEngine):
    """Evaluates Rego with the regorus interpreter."""

    name = "regorus"

    def compile(
        self,
        module_name: str,
        module_text: str,
        query: str,
        store: InMemoryStore,
        options: Optional[CompileOptions] = None,
    ) -> PreparedQuery:
        options = options or CompileOptions()
        metrics = options.metrics if options.metrics is not None else Metrics()

        if options.partial:
            raise PartialEvaluationUnsupported(
                "regorus does not implement partial evaluation; "
                "rerun without --partial or with --engine reference"
            )
        if options.disable_inlining:
            logger.debug(
                "inlining_exclusions_ignored",
                engine=self.name,
                rules=list(options.disable_inlining),
            )

        engine = regorus.Engine()
        try:
            with metrics.timed("timer_rego_module_parse_ns"):
                engine.add_policy(module_name, module_text)
            with metrics.timed("timer_rego_data_load_ns"):
                engine.add_data_json(json.dumps(store.document))
            if options.instrument:
                engine.set_enable_coverage(True)
            with metrics.timed("timer_rego_query_compile_ns"):
                engine.eval_query(query)
        except Exception as e:
            raise EngineError(f"regorus could not prepare {query!r}: {e}") from e

        logger.debug("compiled_query", engine=self.name, module=module_name, query=query)
        return RegorusPreparedQuery(engine, query)


__all__ = ["RegorusEngine", "RegorusPreparedQuery"]
