"""Centralized role x company access policies for API resources.

Every company-scoped check goes through `decide()`, which reads the
declarative POLICIES table. The engine is a pure predicate: UTILITY grants
are resolved through the `has_grant` callable supplied by the caller and are
re-evaluated on every decision.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable
from uuid import UUID

from app.core.errors import ForbiddenError
from app.db.enums import Role
from app.schemas.auth import Actor


class ResourceKind(str, Enum):
    """Company-scoped resource kinds (plus identity management)."""

    COMPANY = "company"
    ROSTER = "roster"
    TIMESHEET = "timesheet"
    EXPENSE = "expense"
    INVOICE = "invoice"
    TICKET = "ticket"
    USER = "user"


class AccessRule(str, Enum):
    """How a role is checked against a resource's company."""

    DENY = "deny"
    ALLOW = "allow"
    OWN_COMPANY = "own_company"
    GRANTED = "granted"


# Canonical denial reasons
REASON_NO_ROLE = "User has no assigned role. Contact your administrator."
REASON_ADMIN_COMPANY_DATA = "Access denied. ADMIN role can only manage users, not company data."
REASON_ADMIN_FINANCIAL = "Access denied. ADMIN role cannot access invoices or expenses."
REASON_COMPANY_REQUIRED = "Company assignment required. Contact your administrator."
REASON_OTHER_COMPANY = "Access denied. You can only access your own company's data."
REASON_NO_GRANT = "Access denied. You cannot access this company's data."
REASON_UNASSIGNED = "Access denied. This resource is not assigned to a company."
REASON_USER_MANAGEMENT = "Access denied. User management requires the ADMIN role."
REASON_DENIED = "Access denied."

GrantLookup = Callable[[UUID, UUID], bool]


@dataclass(frozen=True)
class ResourcePolicy:
    """Per-role rule for a resource kind.

    `allow_unassigned` lists roles (beyond ALLOW rules) that may touch a
    resource with no company yet, e.g. the dispatch pool of unassigned
    tickets.
    """

    rules: dict[Role, AccessRule]
    deny_reasons: dict[Role, str] = field(default_factory=dict)
    allow_unassigned: frozenset[Role] = frozenset()


_COMPANY_SCOPED = {
    Role.ADMIN: AccessRule.DENY,
    Role.MANAGER: AccessRule.ALLOW,
    Role.CONTRACTOR: AccessRule.OWN_COMPANY,
    Role.UTILITY: AccessRule.GRANTED,
}


POLICIES: dict[ResourceKind, ResourcePolicy] = {
    ResourceKind.COMPANY: ResourcePolicy(
        rules=dict(_COMPANY_SCOPED),
        deny_reasons={Role.ADMIN: REASON_ADMIN_COMPANY_DATA},
    ),
    ResourceKind.ROSTER: ResourcePolicy(
        rules=dict(_COMPANY_SCOPED),
        deny_reasons={Role.ADMIN: REASON_ADMIN_COMPANY_DATA},
    ),
    ResourceKind.TIMESHEET: ResourcePolicy(
        rules=dict(_COMPANY_SCOPED),
        deny_reasons={Role.ADMIN: REASON_ADMIN_COMPANY_DATA},
    ),
    ResourceKind.EXPENSE: ResourcePolicy(
        rules=dict(_COMPANY_SCOPED),
        deny_reasons={Role.ADMIN: REASON_ADMIN_FINANCIAL},
    ),
    ResourceKind.INVOICE: ResourcePolicy(
        rules=dict(_COMPANY_SCOPED),
        deny_reasons={Role.ADMIN: REASON_ADMIN_FINANCIAL},
    ),
    ResourceKind.TICKET: ResourcePolicy(
        rules=dict(_COMPANY_SCOPED),
        deny_reasons={Role.ADMIN: REASON_ADMIN_COMPANY_DATA},
        allow_unassigned=frozenset({Role.UTILITY}),
    ),
    ResourceKind.USER: ResourcePolicy(
        rules={
            Role.ADMIN: AccessRule.ALLOW,
            Role.MANAGER: AccessRule.DENY,
            Role.CONTRACTOR: AccessRule.DENY,
            Role.UTILITY: AccessRule.DENY,
        },
        deny_reasons={
            Role.MANAGER: REASON_USER_MANAGEMENT,
            Role.CONTRACTOR: REASON_USER_MANAGEMENT,
            Role.UTILITY: REASON_USER_MANAGEMENT,
        },
    ),
}


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a policy check. Denials always carry a reason."""

    allowed: bool
    reason: str | None = None

    def raise_if_denied(self) -> None:
        if not self.allowed:
            raise ForbiddenError(self.reason or REASON_DENIED)


ALLOW = AccessDecision(allowed=True)


def _deny(reason: str) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason)


def get_policy(resource_kind: ResourceKind) -> ResourcePolicy:
    """Fetch a resource policy or raise KeyError."""
    return POLICIES[resource_kind]


def rule_for(actor: Actor, resource_kind: ResourceKind) -> AccessRule:
    """Rule applied to this actor's role for a resource kind (DENY if unlisted)."""
    return get_policy(resource_kind).rules.get(actor.role, AccessRule.DENY)


def decide(
    actor: Actor,
    resource_kind: ResourceKind,
    resource_company_id: UUID | None,
    *,
    has_grant: GrantLookup | None = None,
) -> AccessDecision:
    """
    Decide whether `actor` may access a `resource_kind` owned by
    `resource_company_id`.

    Rules:
    - ADMIN: denied for company data, allowed for user management
    - MANAGER: allowed for every company
    - CONTRACTOR: own company only; requires a company assignment
    - UTILITY: companies granted via `has_grant(actor.id, company_id)`

    `resource_company_id` is None for resources not yet bound to a company
    (unassigned tickets); only ALLOW rules and the policy's
    `allow_unassigned` roles pass.
    """
    policy = get_policy(resource_kind)
    rule = policy.rules.get(actor.role, AccessRule.DENY)

    if rule == AccessRule.DENY:
        return _deny(policy.deny_reasons.get(actor.role, REASON_DENIED))
    if rule == AccessRule.ALLOW:
        return ALLOW

    if rule == AccessRule.OWN_COMPANY and actor.company_id is None:
        return _deny(REASON_COMPANY_REQUIRED)

    if resource_company_id is None:
        if actor.role in policy.allow_unassigned:
            return ALLOW
        return _deny(REASON_UNASSIGNED)

    if rule == AccessRule.OWN_COMPANY:
        if actor.company_id != resource_company_id:
            return _deny(REASON_OTHER_COMPANY)
        return ALLOW

    # AccessRule.GRANTED: fail closed without a lookup
    if has_grant is None or not has_grant(actor.id, resource_company_id):
        return _deny(REASON_NO_GRANT)
    return ALLOW


def decide_role(actor: Actor, allowed_roles: Iterable[Role]) -> AccessDecision:
    """Role-only check for privileges that are not company-scoped (e.g. dispatch)."""
    allowed = list(allowed_roles)
    if actor.role in allowed:
        return ALLOW
    required = " or ".join(sorted(role.value for role in allowed))
    return _deny(f"Access denied. Required role: {required}")
