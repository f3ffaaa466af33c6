"""
Error types for iambench.

Every failure in the harness is fatal: the CLI catches IamBenchError,
logs it and exits non-zero.
"""

from typing import Any, List, Optional


class IamBenchError(Exception):
    """Base class for all harness errors."""
    pass


class ConfigurationError(IamBenchError):
    """Raised when the run configuration is invalid."""
    pass


class EngineError(IamBenchError):
    """Raised by a policy engine adapter when the engine reports a failure."""
    pass


class PartialEvaluationUnsupported(EngineError):
    """Raised when partial evaluation is requested from an engine without it."""
    pass


class PreparationError(IamBenchError):
    """Raised when the store, module or query cannot be prepared."""
    pass


class EvaluationError(IamBenchError):
    """Raised when evaluating a prepared query fails."""
    pass


class UnexpectedDecisionError(IamBenchError):
    """Raised when a decision does not match the expected outcome."""

    def __init__(self, message: str, results: Optional[List[Any]] = None):
        super().__init__(message)
        self.results = results or []
