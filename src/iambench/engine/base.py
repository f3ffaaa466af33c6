"""
Policy engine capability.

The harness never evaluates policies itself. It talks to an engine through
two operations:

- ``PolicyEngine.compile(...)`` turns a module, a query and a data store
  into a ``PreparedQuery``
- ``PreparedQuery.evaluate(input)`` produces a result set

Engines that support it also expose ``PolicyEngine.partial(...)``, the
partial evaluation pass on its own.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from iambench.errors import EngineError, PartialEvaluationUnsupported
from iambench.monitoring.metrics import Metrics


class InMemoryStore:
    """A read-only document store built from a nested mapping."""

    def __init__(self, document: Mapping[str, Any]):
        self._document = copy.deepcopy(dict(document))

    @classmethod
    def from_object(cls, document: Mapping[str, Any]) -> "InMemoryStore":
        return cls(document)

    @property
    def document(self) -> Dict[str, Any]:
        return self._document

    def read(self, path: Sequence[str], default: Any = None) -> Any:
        """Read the value at ``path`` (e.g. ``["store", "ory", "exact"]``)."""
        node: Any = self._document
        for segment in path:
            if isinstance(node, Mapping) and segment in node:
                node = node[segment]
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                node = node[int(segment)]
            else:
                return default
        return node


@dataclass
class CompileOptions:
    """Options applied when compiling a query."""
    instrument: bool = False
    disable_inlining: Tuple[str, ...] = ()
    partial: bool = False
    metrics: Optional[Metrics] = None


@dataclass(frozen=True)
class ExpressionValue:
    """The value of one query expression."""
    value: Any
    text: str = ""


@dataclass(frozen=True)
class Result:
    """One result of a query evaluation."""
    expressions: List[ExpressionValue]
    bindings: Dict[str, Any] = field(default_factory=dict)


ResultSet = List[Result]


@dataclass
class SupportRule:
    """A residual rule kept out of inlining by the partial evaluation pass."""
    name: str
    acp_id: str
    effect: str
    actions: Tuple[str, ...]
    subjects: Tuple[str, ...]
    resource: str
    # Resolved role members, compared to the request subject literally.
    members: Tuple[str, ...] = ()


@dataclass
class SupportModule:
    """Residual rules of one package produced by partial evaluation."""
    package: str
    rules: List[SupportRule] = field(default_factory=list)


@dataclass
class PartialResult:
    """Output of the partial evaluation pass."""
    queries: List[str]
    support: List[SupportModule]


class PreparedQuery(ABC):
    """A compiled query that can be evaluated repeatedly."""

    @property
    @abstractmethod
    def query(self) -> str:
        """The query text this was prepared from."""
        pass

    @abstractmethod
    def evaluate(self, input_document: Optional[Mapping[str, Any]] = None) -> ResultSet:
        """Evaluate against ``input_document``; raises EngineError on failure."""
        pass


class PolicyEngine(ABC):
    """Base class for policy engine adapters."""

    name: str = "abstract"

    @abstractmethod
    def compile(
        self,
        module_name: str,
        module_text: str,
        query: str,
        store: InMemoryStore,
        options: Optional[CompileOptions] = None,
    ) -> PreparedQuery:
        """Compile ``query`` against ``module_text`` and ``store``."""
        pass

    def partial(
        self,
        module_name: str,
        module_text: str,
        query: str,
        store: InMemoryStore,
        options: Optional[CompileOptions] = None,
    ) -> PartialResult:
        """Run only the partial evaluation pass."""
        raise PartialEvaluationUnsupported(
            f"The {self.name} engine does not support partial evaluation"
        )


__all__ = [
    "CompileOptions",
    "EngineError",
    "ExpressionValue",
    "InMemoryStore",
    "PartialEvaluationUnsupported",
    "PartialResult",
    "PolicyEngine",
    "PreparedQuery",
    "Result",
    "ResultSet",
    "SupportModule",
    "SupportRule",
]
