"""Tests for the ticket state machine, assignment workflow, and work segments."""

from datetime import datetime, timezone

import pytest

from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InputValidationError,
    InvalidTransitionError,
    NotFoundError,
)
from app.core.policies import REASON_OTHER_COMPANY
from app.db.enums import AssignmentStatus, Role, TicketStatus
from app.db.models import Ticket, TicketAssignment, TicketStatusEvent, TicketWorkSegment
from app.db.session import SessionLocal
from app.schemas.auth import Actor
from app.services import assignment_service, ticket_status_service


def _events(db, ticket):
    return (
        db.query(TicketStatusEvent)
        .filter(TicketStatusEvent.ticket_id == ticket.id)
        .order_by(TicketStatusEvent.changed_at)
        .all()
    )


def _segments(db, ticket):
    return db.query(TicketWorkSegment).filter(TicketWorkSegment.ticket_id == ticket.id).all()


def _active_assignments(db, ticket):
    return (
        db.query(TicketAssignment)
        .filter(TicketAssignment.ticket_id == ticket.id, TicketAssignment.is_active.is_(True))
        .all()
    )


def _dispatch_and_accept(db, ticket, manager, contractor, company, crew):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company.id, crew_id=crew.id
    )
    assignment_service.respond(db, actor=contractor, assignment_id=assignment.id, action="accept")
    return assignment


def _move(db, ticket, actor, *statuses):
    for status in statuses:
        ticket_status_service.transition(db, actor=actor, ticket_id=ticket.id, status=status)


# =============================================================================
# Creation
# =============================================================================

def test_create_ticket_records_initial_event(db, ticket, issue_type):
    assert ticket.status == TicketStatus.CREATED.value
    assert ticket.company_id is None
    assert ticket.priority == issue_type.default_priority
    assert ticket.closed_at is None

    events = _events(db, ticket)
    assert len(events) == 1
    assert events[0].old_status is None
    assert events[0].new_status == TicketStatus.CREATED.value


# =============================================================================
# Round trip
# =============================================================================

def test_round_trip_produces_six_events_and_one_segment(
    db, ticket, manager, contractor_a, company_a, crew_a1
):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)

    _move(db, ticket, contractor_a, "ON_SITE")
    segments = _segments(db, ticket)
    assert len(segments) == 1
    assert segments[0].ended_at is None
    assert segments[0].crew_id == crew_a1.id

    _move(db, ticket, contractor_a, "WORKING")
    assert len(_segments(db, ticket)) == 1
    assert _segments(db, ticket)[0].ended_at is None

    _move(db, ticket, contractor_a, "COMPLETED")
    segments = _segments(db, ticket)
    assert len(segments) == 1
    assert segments[0].ended_at is not None

    _move(db, ticket, manager, "CLOSED")
    db.refresh(ticket)
    assert ticket.status == TicketStatus.CLOSED.value
    assert ticket.closed_at is not None

    events = _events(db, ticket)
    assert [(e.old_status, e.new_status) for e in events] == [
        (None, "CREATED"),
        ("ASSIGNED", "ACCEPTED"),
        ("ACCEPTED", "ON_SITE"),
        ("ON_SITE", "WORKING"),
        ("WORKING", "COMPLETED"),
        ("COMPLETED", "CLOSED"),
    ]
    assert len(_segments(db, ticket)) == 1


def test_note_is_persisted_on_status_event(db, ticket, manager, contractor_a, company_a, crew_a1):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    ticket_status_service.transition(
        db, actor=contractor_a, ticket_id=ticket.id, status="ENROUTE", note="Rolling from yard"
    )
    assert _events(db, ticket)[-1].note == "Rolling from yard"


# =============================================================================
# State machine totality
# =============================================================================

def test_invalid_transition_leaves_ticket_unchanged(db, ticket, manager):
    version_before = ticket.version
    with pytest.raises(InvalidTransitionError):
        ticket_status_service.transition(db, actor=manager, ticket_id=ticket.id, status="WORKING")

    db.refresh(ticket)
    assert ticket.status == TicketStatus.CREATED.value
    assert ticket.version == version_before
    assert len(_events(db, ticket)) == 1
    assert _segments(db, ticket) == []


def test_terminal_ticket_rejects_every_transition(db, ticket, manager):
    _move(db, ticket, manager, "CANCELLED")
    for status in TicketStatus:
        with pytest.raises(InvalidTransitionError):
            ticket_status_service.transition(db, actor=manager, ticket_id=ticket.id, status=status)
    assert len(_events(db, ticket)) == 2


def test_unknown_status_is_validation_error(db, ticket, manager):
    with pytest.raises(InputValidationError):
        ticket_status_service.transition(db, actor=manager, ticket_id=ticket.id, status="DONE")


def test_missing_ticket_is_not_found(db, manager):
    import uuid

    with pytest.raises(NotFoundError):
        ticket_status_service.transition(db, actor=manager, ticket_id=uuid.uuid4(), status="CANCELLED")


# =============================================================================
# closed_at
# =============================================================================

def test_closed_at_set_only_on_terminal(db, ticket, manager, contractor_a, company_a, crew_a1):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    for status in ("ENROUTE", "ON_SITE", "BLOCKED"):
        _move(db, ticket, contractor_a, status)
        db.refresh(ticket)
        assert ticket.closed_at is None

    _move(db, ticket, manager, "CLOSED")
    db.refresh(ticket)
    assert ticket.closed_at is not None


def test_cancel_while_working_closes_segment(db, ticket, manager, contractor_a, company_a, crew_a1):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    _move(db, ticket, contractor_a, "WORKING")
    assert _segments(db, ticket)[0].ended_at is None

    _move(db, ticket, manager, "CANCELLED")
    db.refresh(ticket)
    assert ticket.closed_at is not None
    assert _segments(db, ticket)[0].ended_at is not None


def test_blocked_then_resumed_opens_second_segment(
    db, ticket, manager, contractor_a, company_a, crew_a1
):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    _move(db, ticket, contractor_a, "WORKING", "BLOCKED", "WORKING")

    segments = _segments(db, ticket)
    assert len(segments) == 2
    assert sum(1 for s in segments if s.ended_at is None) == 1


# =============================================================================
# Assignment
# =============================================================================

def test_assign_sets_assigned_without_status_event(db, ticket, manager, company_a, crew_a1):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id,
        note="Closest crew",
    )
    db.refresh(ticket)
    assert ticket.status == TicketStatus.ASSIGNED.value
    assert ticket.company_id == company_a.id
    assert assignment.status == AssignmentStatus.PENDING_ACCEPT.value
    assert assignment.is_active
    assert len(_events(db, ticket)) == 1


def test_reassign_keeps_single_active_assignment(
    db, ticket, manager, company_a, company_b, crew_a1, crew_b1
):
    first = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    second = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_b.id, crew_id=crew_b1.id
    )

    db.refresh(first)
    assert first.status == AssignmentStatus.REASSIGNED.value
    assert not first.is_active
    assert [a.id for a in _active_assignments(db, ticket)] == [second.id]
    db.refresh(ticket)
    assert ticket.company_id == company_b.id


def test_reassign_while_working_closes_previous_crew_segment(
    db, ticket, manager, contractor_a, company_a, crew_a1, crew_a2
):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    _move(db, ticket, contractor_a, "ON_SITE")

    assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a2.id
    )
    segments = _segments(db, ticket)
    assert len(segments) == 1
    assert segments[0].crew_id == crew_a1.id
    assert segments[0].ended_at is not None


def test_assign_requires_dispatch_role(db, ticket, contractor_a, company_a, crew_a1):
    with pytest.raises(ForbiddenError):
        assignment_service.assign_ticket(
            db, actor=contractor_a, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
        )


def test_assign_crew_must_belong_to_company(db, ticket, manager, company_a, crew_b1):
    with pytest.raises(InputValidationError):
        assignment_service.assign_ticket(
            db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_b1.id
        )
    db.refresh(ticket)
    assert ticket.status == TicketStatus.CREATED.value


def test_assign_completed_ticket_is_invalid(
    db, ticket, manager, contractor_a, company_a, crew_a1, crew_a2
):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    _move(db, ticket, contractor_a, "WORKING", "COMPLETED")

    with pytest.raises(InvalidTransitionError):
        assignment_service.assign_ticket(
            db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a2.id
        )


# =============================================================================
# Responses
# =============================================================================

def test_other_company_cannot_respond(db, ticket, manager, contractor_b, company_a, crew_a1):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    with pytest.raises(ForbiddenError) as exc_info:
        assignment_service.respond(db, actor=contractor_b, assignment_id=assignment.id, action="accept")
    assert exc_info.value.reason == REASON_OTHER_COMPANY

    db.refresh(assignment)
    assert assignment.status == AssignmentStatus.PENDING_ACCEPT.value


def test_double_response_is_conflict(db, ticket, manager, contractor_a, company_a, crew_a1):
    assignment = _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    with pytest.raises(ConflictError):
        assignment_service.respond(db, actor=contractor_a, assignment_id=assignment.id, action="reject")


def test_reject_then_reassign(db, ticket, manager, contractor_a, company_a, company_b, crew_a1, crew_b1):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    assignment_service.respond(
        db, actor=contractor_a, assignment_id=assignment.id, action="reject", note="No crew available"
    )

    db.refresh(assignment)
    db.refresh(ticket)
    assert assignment.status == AssignmentStatus.REJECTED.value
    assert not assignment.is_active
    assert assignment.responded_at is not None
    assert assignment.response_note == "No crew available"
    assert ticket.status == TicketStatus.ASSIGNED.value
    assert _active_assignments(db, ticket) == []

    rejection = _events(db, ticket)[-1]
    assert rejection.old_status == rejection.new_status == TicketStatus.ASSIGNED.value
    assert "No crew available" in rejection.note

    replacement = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_b.id, crew_id=crew_b1.id
    )
    assert [a.id for a in _active_assignments(db, ticket)] == [replacement.id]
    db.refresh(assignment)
    assert assignment.status == AssignmentStatus.REJECTED.value


def test_unknown_action_is_validation_error(db, ticket, manager, contractor_a, company_a, crew_a1):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    with pytest.raises(InputValidationError):
        assignment_service.respond(db, actor=contractor_a, assignment_id=assignment.id, action="maybe")


# =============================================================================
# Cross-company access
# =============================================================================

def test_contractor_cannot_move_other_company_ticket(
    db, ticket, manager, contractor_a, contractor_b, company_a, crew_a1
):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    with pytest.raises(ForbiddenError) as exc_info:
        ticket_status_service.transition(db, actor=contractor_b, ticket_id=ticket.id, status="ENROUTE")
    assert exc_info.value.reason == REASON_OTHER_COMPANY
    db.refresh(ticket)
    assert ticket.status == TicketStatus.ACCEPTED.value


def test_only_contractors_respond(db, ticket, manager, admin_user, company_a, crew_a1):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    for role in (Role.ADMIN, Role.MANAGER, Role.UTILITY):
        # Same company as the assignment, wrong role
        actor = Actor(id=admin_user.id, role=role, company_id=company_a.id)
        with pytest.raises(ForbiddenError):
            assignment_service.respond(db, actor=actor, assignment_id=assignment.id, action="accept")

    db.refresh(assignment)
    assert assignment.status == AssignmentStatus.PENDING_ACCEPT.value
    assert assignment.is_active


def test_respond_locks_ticket_before_assignment(
    db, ticket, manager, contractor_a, company_a, crew_a1, monkeypatch
):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    calls = []
    lock_ticket = assignment_service.lock_ticket
    lock_assignment = assignment_service._lock_assignment

    def tracking_lock_ticket(db, ticket_id):
        calls.append("ticket")
        return lock_ticket(db, ticket_id)

    def tracking_lock_assignment(db, assignment_id):
        calls.append("assignment")
        return lock_assignment(db, assignment_id)

    monkeypatch.setattr(assignment_service, "lock_ticket", tracking_lock_ticket)
    monkeypatch.setattr(assignment_service, "_lock_assignment", tracking_lock_assignment)

    assignment_service.respond(db, actor=contractor_a, assignment_id=assignment.id, action="accept")
    assert calls == ["ticket", "assignment"]


def test_reject_after_cancel_is_conflict(db, ticket, manager, contractor_a, company_a, crew_a1):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    _move(db, ticket, manager, "CANCELLED")
    events_before = len(_events(db, ticket))

    with pytest.raises(ConflictError):
        assignment_service.respond(db, actor=contractor_a, assignment_id=assignment.id, action="reject")

    db.refresh(ticket)
    assert ticket.status == TicketStatus.CANCELLED.value
    assert len(_events(db, ticket)) == events_before


# =============================================================================
# Storage-level concurrency guards
# =============================================================================

def test_stale_ticket_version_is_conflict(db, ticket, manager):
    other = SessionLocal()
    try:
        stale = other.get(Ticket, ticket.id)
        ticket_status_service.transition(db, actor=manager, ticket_id=ticket.id, status="CANCELLED")

        stale.title = "Edited from a stale read"
        with pytest.raises(ConflictError):
            ticket_status_service.commit_or_conflict(other)
    finally:
        other.close()

    db.refresh(ticket)
    assert ticket.status == TicketStatus.CANCELLED.value
    assert ticket.title == "Primary down on Elm St"


def test_second_active_assignment_is_conflict(db, ticket, manager, company_a, crew_a1, crew_a2):
    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    other = SessionLocal()
    try:
        other.add(
            TicketAssignment(
                ticket_id=ticket.id,
                company_id=company_a.id,
                crew_id=crew_a2.id,
                assigned_by_user_id=manager.id,
                is_active=True,
            )
        )
        with pytest.raises(ConflictError):
            ticket_status_service.commit_or_conflict(other)
    finally:
        other.close()

    assert [a.id for a in _active_assignments(db, ticket)] == [assignment.id]


def test_second_open_segment_is_conflict(db, ticket, manager, contractor_a, company_a, crew_a1):
    _dispatch_and_accept(db, ticket, manager, contractor_a, company_a, crew_a1)
    _move(db, ticket, contractor_a, "WORKING")

    other = SessionLocal()
    try:
        other.add(
            TicketWorkSegment(
                ticket_id=ticket.id,
                crew_id=crew_a1.id,
                company_id=company_a.id,
                session_id=ticket.session_id,
                started_at=datetime.now(timezone.utc),
                created_by_user_id=contractor_a.id,
            )
        )
        with pytest.raises(ConflictError):
            ticket_status_service.commit_or_conflict(other)
    finally:
        other.close()

    segments = _segments(db, ticket)
    assert len(segments) == 1
    assert segments[0].ended_at is None
