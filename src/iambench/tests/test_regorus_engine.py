"""
Tests for the regorus adapter.

Skipped when the regorus bindings are not installed.
"""

import pytest

pytest.importorskip("regorus")

from iambench.acp import EXACT_SUBJECT, RequestInput  # noqa: E402
from iambench.engine import CompileOptions, InMemoryStore  # noqa: E402
from iambench.errors import EngineError, PartialEvaluationUnsupported  # noqa: E402
from iambench.monitoring.metrics import Metrics  # noqa: E402
from iambench.policies import EXACT_PROFILE, MODULE_NAME  # noqa: E402


def _compile(engine, amount, **options):
    store = InMemoryStore.from_object(EXACT_PROFILE.build_document(amount))
    return engine.compile(
        MODULE_NAME, EXACT_PROFILE.module, EXACT_PROFILE.query, store, CompileOptions(**options)
    )


class TestRegorusEngine:
    """Tests for RegorusEngine."""

    def test_probe_is_denied(self, regorus_engine):
        prepared = _compile(regorus_engine, 10)
        results = prepared.evaluate(EXACT_PROFILE.probe.to_dict())
        assert len(results) == 1
        assert results[0].expressions[0].value is False

    def test_matching_request_is_allowed(self, regorus_engine):
        prepared = _compile(regorus_engine, 10)
        request = RequestInput(
            subject=EXACT_SUBJECT,
            action="check",
            resource="tenant:acmecorp:foo3:resource-1111-2222-3333-4444",
        )
        results = prepared.evaluate(request.to_dict())
        assert results[0].expressions[0].value is True

    def test_prepared_query_is_reusable(self, regorus_engine):
        prepared = _compile(regorus_engine, 3)
        for _ in range(5):
            assert prepared.evaluate(EXACT_PROFILE.probe.to_dict())[0].expressions[0].value is False

    def test_preparation_metrics(self, regorus_engine):
        metrics = Metrics()
        _compile(regorus_engine, 3, metrics=metrics)
        assert {
            "timer_rego_module_parse_ns",
            "timer_rego_data_load_ns",
            "timer_rego_query_compile_ns",
        } <= set(metrics.to_dict())

    def test_partial_is_unsupported(self, regorus_engine):
        with pytest.raises(PartialEvaluationUnsupported):
            _compile(regorus_engine, 3, partial=True)

    def test_partial_pass_is_unsupported(self, regorus_engine):
        store = InMemoryStore.from_object(EXACT_PROFILE.build_document(1))
        with pytest.raises(PartialEvaluationUnsupported):
            regorus_engine.partial(MODULE_NAME, EXACT_PROFILE.module, EXACT_PROFILE.query, store)

    def test_invalid_module(self, regorus_engine):
        store = InMemoryStore.from_object({})
        with pytest.raises(EngineError):
            regorus_engine.compile(MODULE_NAME, "package broken\n\nallow if {", "data.broken.allow", store)
