"""Company access control - wires the policy engine to grant lookups.

Use `check_company_access` for single-resource checks (raises) and
`can_access_company` for filtering.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError
from app.core.policies import (
    REASON_COMPANY_REQUIRED,
    REASON_DENIED,
    AccessDecision,
    AccessRule,
    ResourceKind,
    decide,
    get_policy,
    rule_for,
)
from app.schemas.auth import Actor


def company_access_decision(
    db: Session,
    actor: Actor,
    resource_kind: ResourceKind,
    company_id: UUID | None,
) -> AccessDecision:
    """Evaluate the policy table for one resource, resolving UTILITY grants from the DB."""
    from app.services import grant_service

    return decide(
        actor,
        resource_kind,
        company_id,
        has_grant=grant_service.grant_lookup(db),
    )


def check_company_access(
    db: Session,
    actor: Actor,
    resource_kind: ResourceKind,
    company_id: UUID | None,
) -> None:
    """
    Raise ForbiddenError (with the policy's reason) unless the actor may
    access a resource owned by `company_id`.
    """
    company_access_decision(db, actor, resource_kind, company_id).raise_if_denied()


def can_access_company(
    db: Session,
    actor: Actor,
    resource_kind: ResourceKind,
    company_id: UUID | None,
) -> bool:
    """Non-raising version of check_company_access for filtering."""
    return company_access_decision(db, actor, resource_kind, company_id).allowed


def visible_company_ids(
    db: Session,
    actor: Actor,
    resource_kind: ResourceKind,
) -> list[UUID] | None:
    """
    Company ids whose `resource_kind` data the actor may list.

    Returns None when the actor's rule is unrestricted (ALLOW).

    Raises:
        ForbiddenError: the role is denied this kind outright, or a
            CONTRACTOR has no company
    """
    from app.services import grant_service

    policy = get_policy(resource_kind)
    rule = rule_for(actor, resource_kind)
    if rule == AccessRule.DENY:
        raise ForbiddenError(policy.deny_reasons.get(actor.role, REASON_DENIED))
    if rule == AccessRule.ALLOW:
        return None
    if rule == AccessRule.OWN_COMPANY:
        if actor.company_id is None:
            raise ForbiddenError(REASON_COMPANY_REQUIRED)
        return [actor.company_id]
    return grant_service.granted_company_ids(db, actor.id)
