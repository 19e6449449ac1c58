"""Tests for the role x company authorization policy engine."""

import uuid

import pytest

from app.core.errors import ForbiddenError
from app.core.policies import (
    POLICIES,
    REASON_ADMIN_COMPANY_DATA,
    REASON_ADMIN_FINANCIAL,
    REASON_COMPANY_REQUIRED,
    REASON_NO_GRANT,
    REASON_OTHER_COMPANY,
    REASON_UNASSIGNED,
    REASON_USER_MANAGEMENT,
    AccessRule,
    ResourceKind,
    decide,
    decide_role,
)
from app.db.enums import Role
from app.schemas.auth import Actor

COMPANY_A = uuid.uuid4()
COMPANY_B = uuid.uuid4()

COMPANY_SCOPED_KINDS = [
    ResourceKind.COMPANY,
    ResourceKind.ROSTER,
    ResourceKind.TIMESHEET,
    ResourceKind.EXPENSE,
    ResourceKind.INVOICE,
    ResourceKind.TICKET,
]


def _actor(role: Role, company_id=None) -> Actor:
    return Actor(id=uuid.uuid4(), role=role, company_id=company_id)


def _no_grants(user_id, company_id) -> bool:
    return False


def test_every_kind_has_a_rule_for_every_role():
    for kind in ResourceKind:
        policy = POLICIES[kind]
        assert set(policy.rules) == set(Role)


@pytest.mark.parametrize("kind", COMPANY_SCOPED_KINDS)
def test_manager_allowed_for_any_company(kind):
    decision = decide(_actor(Role.MANAGER), kind, COMPANY_A)
    assert decision.allowed
    assert decision.reason is None


@pytest.mark.parametrize("kind", [ResourceKind.COMPANY, ResourceKind.ROSTER, ResourceKind.TICKET])
def test_admin_denied_company_data(kind):
    decision = decide(_actor(Role.ADMIN), kind, COMPANY_A)
    assert not decision.allowed
    assert decision.reason == REASON_ADMIN_COMPANY_DATA


@pytest.mark.parametrize("kind", [ResourceKind.EXPENSE, ResourceKind.INVOICE])
def test_admin_financial_denial_has_own_reason(kind):
    decision = decide(_actor(Role.ADMIN), kind, COMPANY_A)
    assert not decision.allowed
    assert decision.reason == REASON_ADMIN_FINANCIAL


def test_contractor_own_company_only():
    contractor = _actor(Role.CONTRACTOR, COMPANY_A)

    assert decide(contractor, ResourceKind.TICKET, COMPANY_A).allowed

    denied = decide(contractor, ResourceKind.TICKET, COMPANY_B)
    assert not denied.allowed
    assert denied.reason == REASON_OTHER_COMPANY


def test_contractor_without_company_needs_assignment():
    decision = decide(_actor(Role.CONTRACTOR), ResourceKind.ROSTER, COMPANY_A)
    assert not decision.allowed
    assert decision.reason == REASON_COMPANY_REQUIRED


def test_utility_requires_grant():
    utility = _actor(Role.UTILITY)
    granted = {(utility.id, COMPANY_A)}

    def has_grant(user_id, company_id):
        return (user_id, company_id) in granted

    assert decide(utility, ResourceKind.TICKET, COMPANY_A, has_grant=has_grant).allowed

    denied = decide(utility, ResourceKind.TICKET, COMPANY_B, has_grant=has_grant)
    assert not denied.allowed
    assert denied.reason == REASON_NO_GRANT


def test_utility_fails_closed_without_lookup():
    decision = decide(_actor(Role.UTILITY), ResourceKind.TIMESHEET, COMPANY_A)
    assert not decision.allowed
    assert decision.reason == REASON_NO_GRANT


def test_grant_is_evaluated_on_every_decision():
    utility = _actor(Role.UTILITY)
    grants: set = set()

    def has_grant(user_id, company_id):
        return (user_id, company_id) in grants

    assert not decide(utility, ResourceKind.COMPANY, COMPANY_A, has_grant=has_grant).allowed
    grants.add((utility.id, COMPANY_A))
    assert decide(utility, ResourceKind.COMPANY, COMPANY_A, has_grant=has_grant).allowed


def test_unassigned_ticket_dispatch_pool():
    assert decide(_actor(Role.MANAGER), ResourceKind.TICKET, None).allowed
    assert decide(_actor(Role.UTILITY), ResourceKind.TICKET, None, has_grant=_no_grants).allowed

    contractor = decide(_actor(Role.CONTRACTOR, COMPANY_A), ResourceKind.TICKET, None)
    assert not contractor.allowed
    assert contractor.reason == REASON_UNASSIGNED


def test_unassigned_roster_denied_for_utility():
    decision = decide(_actor(Role.UTILITY), ResourceKind.ROSTER, None, has_grant=_no_grants)
    assert not decision.allowed
    assert decision.reason == REASON_UNASSIGNED


def test_user_management_is_admin_only():
    assert decide(_actor(Role.ADMIN), ResourceKind.USER, None).allowed
    for role in (Role.MANAGER, Role.CONTRACTOR, Role.UTILITY):
        decision = decide(_actor(role, COMPANY_A), ResourceKind.USER, None)
        assert not decision.allowed
        assert decision.reason == REASON_USER_MANAGEMENT


def test_raise_if_denied_carries_reason():
    decision = decide(_actor(Role.CONTRACTOR, COMPANY_A), ResourceKind.TICKET, COMPANY_B)
    with pytest.raises(ForbiddenError) as exc_info:
        decision.raise_if_denied()
    assert exc_info.value.reason == REASON_OTHER_COMPANY


def test_decide_role_lists_required_roles():
    decision = decide_role(_actor(Role.CONTRACTOR, COMPANY_A), [Role.UTILITY, Role.MANAGER])
    assert not decision.allowed
    assert decision.reason == "Access denied. Required role: MANAGER or UTILITY"
    assert decide_role(_actor(Role.UTILITY), [Role.UTILITY, Role.MANAGER]).allowed


def test_default_rules_match_table():
    policy = POLICIES[ResourceKind.INVOICE]
    assert policy.rules[Role.ADMIN] == AccessRule.DENY
    assert policy.rules[Role.MANAGER] == AccessRule.ALLOW
    assert policy.rules[Role.CONTRACTOR] == AccessRule.OWN_COMPANY
    assert policy.rules[Role.UTILITY] == AccessRule.GRANTED
