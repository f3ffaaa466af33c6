"""
Reference policy engine.

A pure-Python evaluator for the modules bundled with iambench. It does not
parse Rego: it reads the module's ``package`` and ``import data... as store``
lines and evaluates the decision program registered for that package
directly against the store. It exists so the generator, the driver and the
measurement loop can be exercised without a native Rego interpreter, and so
decisions from the real engine can be cross-checked.

Partial evaluation is modelled the way the Rego engines do it: the store is
static, so every ACP resource pattern becomes one residual support rule with
role membership already resolved, and only the comparisons against the
request are left for evaluation time.
"""

import fnmatch
import re
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

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
from iambench.errors import EngineError
from iambench.monitoring.logging import get_logger
from iambench.monitoring.metrics import Metrics

logger = get_logger(__name__)

_PACKAGE_RE = re.compile(r"^package\s+([\w.]+)\s*$", re.MULTILINE)
_STORE_IMPORT_RE = re.compile(r"^import\s+data\.([\w.]+)\s+as\s+store\s*$", re.MULTILINE)
_QUERY_RE = re.compile(r"^data\.([\w.]+)\.(\w+)(\s*=\s*true)?$")


def glob_match(pattern: str, delimiters: Sequence[str], value: Optional[str]) -> bool:
    """
    Match ``value`` against ``pattern`` segment by segment.

    Both strings are split on ``delimiters`` (``["."]`` when empty); they
    match when they have the same number of segments and every segment
    matches its pattern segment, so ``*`` never crosses a delimiter.

    Only the single-segment wildcards ``*``, ``?`` and ``[...]`` are
    supported. The ``**`` super-wildcard and ``{a,b}`` alternation of
    Rego's ``glob.match`` are not.
    """
    if not isinstance(value, str):
        return False
    if not delimiters:
        delimiters = ["."]

    splitter = "|".join(re.escape(d) for d in delimiters)
    pattern_parts = re.split(splitter, pattern)
    value_parts = re.split(splitter, value)
    if len(pattern_parts) != len(value_parts):
        return False
    return all(
        fnmatch.fnmatchcase(part, pat) for part, pat in zip(value_parts, pattern_parts)
    )


def _equals(pattern: str, value: Optional[str]) -> bool:
    return pattern == value


def _colon_glob(pattern: str, value: Optional[str]) -> bool:
    return glob_match(pattern, [":"], value)


@dataclass(frozen=True)
class _Request:
    subject: Optional[str]
    action: Optional[str]
    resource: Optional[str]

    @classmethod
    def from_input(cls, document: Optional[Mapping[str, Any]]) -> "_Request":
        document = document or {}
        return cls(
            subject=document.get("subject"),
            action=document.get("action"),
            resource=document.get("resource"),
        )


class AcpProgram:
    """
    Decision program of the ``ory.*`` modules.

    ``allow`` holds when some matching ACP allows and none denies; the
    ``any_allow``/``any_deny`` rules are undefined when false.
    """

    RULES = ("allow", "any_allow", "any_deny")
    DEFAULTS = {"allow": False}

    def __init__(self, match: Callable[[str, Optional[str]], bool], policies: List[Dict[str, Any]],
                 roles: List[Dict[str, Any]]):
        self._match = match
        self._policies = policies
        self._roles = roles
        self._support: Optional[List[SupportRule]] = None
        self._by_resource: Optional[Dict[str, List[SupportRule]]] = None

    @property
    def exact(self) -> bool:
        return self._match is _equals

    def _role_members(self, subject_pattern: str) -> Tuple[str, ...]:
        members: List[str] = []
        for role in self._roles:
            if self._match(subject_pattern, role.get("id")):
                members.extend(role.get("members", []))
        return tuple(members)

    def _subject_matches(self, acp: Dict[str, Any], subject: Optional[str]) -> bool:
        for pattern in acp.get("subjects", []):
            if self._match(pattern, subject):
                return True
            if subject is not None and subject in self._role_members(pattern):
                return True
        return False

    def _scan_effects(self, request: _Request) -> set:
        effects = set()
        for acp in self._policies:
            if not any(self._match(a, request.action) for a in acp.get("actions", [])):
                continue
            if not self._subject_matches(acp, request.subject):
                continue
            if not any(self._match(r, request.resource) for r in acp.get("resources", [])):
                continue
            # The condition predicate never fails.
            effects.add(acp.get("effect"))
        return effects

    def specialize(self, package: str) -> List[SupportRule]:
        """Residualize the effect predicates into one rule per ACP resource."""
        rules: List[SupportRule] = []
        for acp in self._policies:
            members: List[str] = []
            for pattern in acp.get("subjects", []):
                members.extend(self._role_members(pattern))
            effect = acp.get("effect")
            name = "any_allow" if effect == "allow" else "any_deny"
            for resource in acp.get("resources", []):
                rules.append(SupportRule(
                    name=name,
                    acp_id=str(acp.get("id")),
                    effect=effect,
                    actions=tuple(acp.get("actions", [])),
                    subjects=tuple(acp.get("subjects", [])),
                    resource=resource,
                    members=tuple(members),
                ))

        self._support = rules
        if self.exact:
            index: Dict[str, List[SupportRule]] = {}
            for rule in rules:
                index.setdefault(rule.resource, []).append(rule)
            self._by_resource = index
        logger.debug("specialized_program", package=package, support_rules=len(rules))
        return rules

    def _residual_effects(self, request: _Request) -> set:
        if self._by_resource is not None:
            candidates = self._by_resource.get(request.resource, [])
        else:
            candidates = [r for r in self._support if self._match(r.resource, request.resource)]

        effects = set()
        for rule in candidates:
            if not any(self._match(a, request.action) for a in rule.actions):
                continue
            if request.subject not in rule.members and not any(
                self._match(s, request.subject) for s in rule.subjects
            ):
                continue
            effects.add(rule.effect)
        return effects

    def evaluate(self, rule: str, document: Optional[Mapping[str, Any]]) -> Optional[bool]:
        request = _Request.from_input(document)
        if self._support is not None:
            effects = self._residual_effects(request)
        else:
            effects = self._scan_effects(request)

        values = {
            "any_allow": "allow" in effects,
            "any_deny": "deny" in effects,
        }
        values["allow"] = values["any_allow"] and not values["any_deny"]

        value = values[rule]
        if not value and rule not in self.DEFAULTS:
            return None
        return value


class ScanProgram:
    """Decision program of the store scan module: defined when any resource exists."""

    RULES = ("allow",)

    def __init__(self, policies: List[Dict[str, Any]]):
        self._policies = policies

    def specialize(self, package: str) -> List[SupportRule]:
        return []

    def evaluate(self, rule: str, document: Optional[Mapping[str, Any]]) -> Optional[bool]:
        for acp in self._policies:
            for _ in acp.get("resources", []):
                return True
        return None


def _acp_program(match):
    def build(store_doc: Dict[str, Any]):
        return AcpProgram(match, list(store_doc.get("policies") or []), list(store_doc.get("roles") or []))
    return build


PROGRAMS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    "ory.exact": _acp_program(_equals),
    "ory.glob": _acp_program(_colon_glob),
}


class ReferencePreparedQuery(PreparedQuery):
    """Prepared query of the reference engine."""

    def __init__(self, query: str, rule: str, program: Any, equals_true: bool):
        self._query = query
        self._rule = rule
        self._program = program
        self._equals_true = equals_true

    @property
    def query(self) -> str:
        return self._query

    def evaluate(self, input_document: Optional[Mapping[str, Any]] = None) -> ResultSet:
        value = self._program.evaluate(self._rule, input_document)
        if value is None:
            return []
        if self._equals_true:
            if value is not True:
                return []
            return [Result(expressions=[ExpressionValue(value=True, text=self._query)])]
        return [Result(expressions=[ExpressionValue(value=value, text=self._query)])]


class ReferenceEngine(PolicyEngine):
    """Pure-Python engine for the bundled ACP and store scan modules."""

    name = "reference"

    def _load(self, module_text: str, query: str, store: InMemoryStore,
              metrics: Metrics, instrument: bool) -> Tuple[str, str, Any, bool]:
        with metrics.timed("timer_module_parse_ns") if instrument else nullcontext():
            package_match = _PACKAGE_RE.search(module_text)
            if package_match is None:
                raise EngineError("Module has no package declaration")
            package = package_match.group(1)

            query_match = _QUERY_RE.match(query.strip())
            if query_match is None:
                raise EngineError(f"Unsupported query: {query!r}")
            query_package, rule, equals_true = query_match.groups()
            if query_package != package:
                raise EngineError(
                    f"Query {query!r} does not refer to package {package!r}"
                )

        with metrics.timed("timer_store_read_ns") if instrument else nullcontext():
            if package == "iambench.scan":
                policies = store.read(["store", "ory", "exact", "policies"], default=[])
                program: Any = ScanProgram(list(policies or []))
            else:
                build = PROGRAMS.get(package)
                if build is None:
                    raise EngineError(f"No reference program for package {package!r}")
                import_match = _STORE_IMPORT_RE.search(module_text)
                if import_match is None:
                    raise EngineError(f"Module {package!r} does not import a data store")
                store_doc = store.read(import_match.group(1).split("."), default={})
                program = build(store_doc or {})

        if rule not in program.RULES:
            raise EngineError(f"Rule {rule!r} is not defined in package {package!r}")
        return package, rule, program, bool(equals_true)

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

        with metrics.timed("timer_reference_compile_ns"):
            package, rule, program, equals_true = self._load(
                module_text, query, store, metrics, options.instrument
            )
            if options.partial:
                with metrics.timed("timer_partial_eval_ns"):
                    support = program.specialize(package)
                metrics.counter("counter_support_rules").inc(len(support))

        logger.debug(
            "compiled_query",
            engine=self.name,
            module=module_name,
            query=query,
            partial=options.partial,
            disable_inlining=list(options.disable_inlining),
        )
        return ReferencePreparedQuery(query, rule, program, equals_true)

    def partial(
        self,
        module_name: str,
        module_text: str,
        query: str,
        store: InMemoryStore,
        options: Optional[CompileOptions] = None,
    ) -> PartialResult:
        options = options or CompileOptions()
        metrics = options.metrics if options.metrics is not None else Metrics()

        package, rule, program, _ = self._load(
            module_text, query, store, metrics, options.instrument
        )
        with metrics.timed("timer_partial_eval_ns"):
            rules = program.specialize(package)

        residual_package = f"partial.{package}"
        return PartialResult(
            queries=[f"data.{residual_package}.{rule} = true"],
            support=[SupportModule(package=residual_package, rules=rules)],
        )
