"""
Access Control Policy (ACP) generation.

Builds the synthetic policy corpus the benchmark evaluates against. Two
flavors exist:

- exact: literal subjects and resources, matched by string equality
- glob: the tenant, user and resource-id segments are replaced by ``*`` and
  matched with a colon-delimited glob

Generation is deterministic: the same amount and flavor always produce the
same document.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Flavor(str, Enum):
    """Matching discipline used by a policy set."""
    EXACT = "exact"
    GLOB = "glob"


class Effect(str, Enum):
    """Effect of an ACP."""
    ALLOW = "allow"
    DENY = "deny"


RESOURCE_LABELS = ("thing", "foo", "bar", "baz", "boo", "bam", "bag", "bad")

EXACT_SUBJECT = "tenant:acmecorp:user:user.name@domain.com"
EXACT_RESOURCE_SUFFIX = "resource-1111-2222-3333-4444"
GLOB_SUBJECT = "tenant:*:user:*"
CHECK_ACTION = "check"


@dataclass(frozen=True)
class AccessPolicy:
    """A single access control policy record."""
    id: str
    subjects: List[str]
    resources: List[str]
    actions: List[str]
    effect: Effect = Effect.ALLOW
    description: str = ""
    conditions: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "subjects": list(self.subjects),
            "resources": list(self.resources),
            "actions": list(self.actions),
            "effect": self.effect.value,
            "conditions": dict(self.conditions),
        }


@dataclass(frozen=True)
class RequestInput:
    """A single access decision request."""
    subject: str
    action: str
    resource: str
    context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource": self.resource,
            "action": self.action,
            "subject": self.subject,
            "context": dict(self.context) if self.context is not None else None,
        }


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise ValueError(f"amount must be >= 0, got {amount}")


def exact_policy(index: int) -> AccessPolicy:
    """Build the exact-flavor ACP for ``index``."""
    acp_id = str(index)
    return AccessPolicy(
        id=acp_id,
        subjects=[EXACT_SUBJECT],
        resources=[
            f"tenant:acmecorp:{label}{acp_id}:{EXACT_RESOURCE_SUFFIX}"
            for label in RESOURCE_LABELS
        ],
        actions=[CHECK_ACTION],
        effect=Effect.ALLOW,
    )


def glob_policy(index: int) -> AccessPolicy:
    """Build the glob-flavor ACP for ``index``."""
    acp_id = str(index)
    return AccessPolicy(
        id=acp_id,
        subjects=[GLOB_SUBJECT],
        resources=[f"tenant:*:{label}{acp_id}:*" for label in RESOURCE_LABELS],
        actions=[CHECK_ACTION],
        effect=Effect.ALLOW,
    )


def generate_policies(flavor: Flavor, amount: int) -> List[AccessPolicy]:
    """Generate ``amount`` ACPs of the given flavor with ids "0".."amount-1"."""
    _check_amount(amount)
    build = exact_policy if Flavor(flavor) == Flavor.EXACT else glob_policy
    return [build(i) for i in range(amount)]


def build_document(flavor: Flavor, policies: List[AccessPolicy]) -> Dict[str, Any]:
    """
    Wrap ACPs into the data document the policy modules read.

    The policies land under ``data.store.ory.<flavor>``, next to an empty
    ``roles`` list.
    """
    return {
        "store": {
            "ory": {
                Flavor(flavor).value: {
                    "policies": [policy.to_dict() for policy in policies],
                    "roles": [],
                },
            },
        },
    }


def create_exact_acps(amount: int) -> Dict[str, Any]:
    """Data document with ``amount`` exact-flavor ACPs."""
    return build_document(Flavor.EXACT, generate_policies(Flavor.EXACT, amount))


def create_glob_acps(amount: int) -> Dict[str, Any]:
    """Data document with ``amount`` glob-flavor ACPs."""
    return build_document(Flavor.GLOB, generate_policies(Flavor.GLOB, amount))


def create_acps(flavor: Flavor, amount: int) -> Dict[str, Any]:
    if Flavor(flavor) == Flavor.EXACT:
        return create_exact_acps(amount)
    return create_glob_acps(amount)
