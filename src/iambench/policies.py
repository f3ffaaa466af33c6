"""
Rego policy modules and per-flavor benchmark profiles.

Each flavor bundles the module text, the query to prepare, the rules kept
out of inlining during partial evaluation, the probe request the measurement
loop evaluates and the decision that probe must produce.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Tuple

from iambench.acp import (
    CHECK_ACTION,
    EXACT_SUBJECT,
    Flavor,
    RequestInput,
    create_exact_acps,
    create_glob_acps,
)
from iambench.errors import ConfigurationError


EXACT_POLICY = """package ory.exact

import rego.v1

import data.store.ory.exact as store

default allow := false

allow if {
	any_allow
	not any_deny
}

any_allow if {
	some match in effect_matches
	match[1] == "allow"
}

any_deny if {
	some match in effect_matches
	match[1] == "deny"
}

effect_matches contains [acp_id, effect] if {
	some acp_id
	effect := store.policies[acp_id].effect
	action_matches[acp_id]
	subject_matches[acp_id]
	resource_matches[acp_id]
	condition_matches[acp_id]
}

action_matches contains acp_id if {
	some acp_id
	store.policies[acp_id].actions[_] == input.action
}

resource_matches contains acp_id if {
	some acp_id
	store.policies[acp_id].resources[_] == input.resource
}

subject_matches contains acp_id if {
	some acp_id
	store.policies[acp_id].subjects[_] == input.subject
}

subject_matches contains acp_id if {
	some acp_id, role_id
	store.policies[acp_id].subjects[_] == store.roles[role_id].id
	store.roles[role_id].members[_] == input.subject
}

condition_matches contains acp_id if {
	some acp_id
	store.policies[acp_id] = _
	not any_conditions_fail[acp_id]
}

any_conditions_fail contains acp_id if {
	some acp_id, key
	store.policies[acp_id].conditions[key]
	false
}
"""


GLOB_POLICY = """package ory.glob

import rego.v1

import data.store.ory.glob as store

default allow := false

allow if {
	any_allow
	not any_deny
}

any_allow if {
	some match in effect_matches
	match[1] == "allow"
}

any_deny if {
	some match in effect_matches
	match[1] == "deny"
}

effect_matches contains [acp_id, effect] if {
	some acp_id
	effect := store.policies[acp_id].effect
	action_matches[acp_id]
	subject_matches[acp_id]
	resource_matches[acp_id]
}

action_matches contains acp_id if {
	some acp_id
	matchfn(store.policies[acp_id].actions[_], input.action)
}

resource_matches contains acp_id if {
	some acp_id
	matchfn(store.policies[acp_id].resources[_], input.resource)
}

subject_matches contains acp_id if {
	some acp_id
	matchfn(store.policies[acp_id].subjects[_], input.subject)
}

subject_matches contains acp_id if {
	some acp_id, role_id
	store.roles[role_id].members[_] == input.subject
	matchfn(store.policies[acp_id].subjects[_], store.roles[role_id].id)
}

condition_matches contains acp_id if {
	some acp_id
	store.policies[acp_id] = _
	not any_conditions_fail[acp_id]
}

any_conditions_fail contains acp_id if {
	some acp_id, key
	store.policies[acp_id].conditions[key]
	false
}

matchfn(pattern, value) if {
	glob.match(pattern, [":"], value)
}
"""


# Touches every resource of every ACP; used by the store scan benchmark.
SCAN_POLICY = """package iambench.scan

import rego.v1

allow if {
	data.store.ory.exact.policies[_].resources[_] = _
}
"""

SCAN_QUERY = "data.iambench.scan.allow"

MODULE_NAME = "test.rego"


@dataclass(frozen=True)
class FlavorProfile:
    """Everything needed to prepare and drive one flavor."""
    flavor: Flavor
    package: str
    module: str
    build_document: Callable[[int], Dict[str, Any]]
    probe: RequestInput
    expected: bool

    @property
    def query(self) -> str:
        return f"data.{self.package}.allow"

    @property
    def disable_inlining(self) -> Tuple[str, ...]:
        return (
            f"data.{self.package}.any_allow",
            f"data.{self.package}.any_deny",
        )


EXACT_PROFILE = FlavorProfile(
    flavor=Flavor.EXACT,
    package="ory.exact",
    module=EXACT_POLICY,
    build_document=create_exact_acps,
    probe=RequestInput(
        subject=EXACT_SUBJECT,
        action=CHECK_ACTION,
        resource="tenant:acmecorp:thing0:resource-dead-beef-feed-face",
    ),
    expected=False,
)

# The probe's label segment is "thing-deadbeef", which no "thing<i>" pattern
# matches, so the decision stays deny for any amount.
GLOB_PROFILE = FlavorProfile(
    flavor=Flavor.GLOB,
    package="ory.glob",
    module=GLOB_POLICY,
    build_document=create_glob_acps,
    probe=RequestInput(
        subject=EXACT_SUBJECT,
        action=CHECK_ACTION,
        resource="tenant:acmecorp:thing-deadbeef:resource-dead-beef-feed-face",
    ),
    expected=False,
)

PROFILES: Dict[Flavor, FlavorProfile] = {
    Flavor.EXACT: EXACT_PROFILE,
    Flavor.GLOB: GLOB_PROFILE,
}


def get_profile(flavor: str) -> FlavorProfile:
    """Look up the profile for a flavor name."""
    try:
        return PROFILES[Flavor(flavor)]
    except ValueError:
        raise ConfigurationError(
            f"Invalid flavor {flavor!r} (options: {', '.join(f.value for f in Flavor)})"
        ) from None
