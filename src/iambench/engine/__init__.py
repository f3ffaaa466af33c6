"""
Policy engines for iambench

Provides:
- The engine capability (PolicyEngine, PreparedQuery, CompileOptions)
- An in-memory document store
- The regorus adapter and the pure-Python reference engine
"""

from iambench.engine.base import (
    CompileOptions,
    ExpressionValue,
    InMemoryStore,
    PartialResult,
    PolicyEngine,
    PreparedQuery,
    Result,
    ResultSet,
    SupportModule,
    SupportRule,
)
from iambench.errors import ConfigurationError

ENGINES = ("regorus", "reference")


def get_engine(name: str) -> PolicyEngine:
    """Create the engine registered under ``name``."""
    if name == "reference":
        from iambench.engine.reference import ReferenceEngine
        return ReferenceEngine()
    if name == "regorus":
        try:
            from iambench.engine.regorus import RegorusEngine
        except ImportError as e:
            raise ConfigurationError(
                f"The regorus engine is unavailable ({e}); install it with: pip install regorus"
            ) from e
        return RegorusEngine()
    raise ConfigurationError(
        f"Unknown engine {name!r} (options: {', '.join(ENGINES)})"
    )


__all__ = [
    "CompileOptions",
    "ENGINES",
    "ExpressionValue",
    "InMemoryStore",
    "PartialResult",
    "PolicyEngine",
    "PreparedQuery",
    "Result",
    "ResultSet",
    "SupportModule",
    "SupportRule",
    "get_engine",
]
