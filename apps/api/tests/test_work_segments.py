"""Tests for the work segment tracker."""

from app.db.enums import AuditAction, WorkPhase
from app.db.models import TicketWorkSegment
from app.services import assignment_service, ticket_events, work_segment_service


def _open(db, ticket, crew, company, actor):
    return work_segment_service.open_if_needed(
        db,
        ticket_id=ticket.id,
        crew_id=crew.id,
        company_id=company.id,
        session_id=ticket.session_id,
        actor=actor,
    )


def test_open_if_needed_is_idempotent(db, ticket, manager, company_a, crew_a1):
    first = _open(db, ticket, crew_a1, company_a, manager)
    second = _open(db, ticket, crew_a1, company_a, manager)
    db.commit()

    assert first.action == AuditAction.CREATE
    assert second is None
    assert db.query(TicketWorkSegment).count() == 1


def test_open_segments_are_per_crew(db, ticket, manager, company_a, crew_a1, crew_a2):
    _open(db, ticket, crew_a1, company_a, manager)
    _open(db, ticket, crew_a2, company_a, manager)
    db.commit()

    assert len(work_segment_service.list_segments(db, ticket.id)) == 2


def test_close_if_open_is_noop_without_open_segment(db, ticket, crew_a1):
    assert work_segment_service.close_if_open(db, ticket_id=ticket.id, crew_id=crew_a1.id) is None


def test_close_then_reopen_creates_new_segment(db, ticket, manager, company_a, crew_a1):
    first = _open(db, ticket, crew_a1, company_a, manager)
    closed = work_segment_service.close_if_open(db, ticket_id=ticket.id, crew_id=crew_a1.id)
    assert closed.segment.id == first.segment.id
    assert closed.action == AuditAction.UPDATE
    assert closed.before["ended_at"] is None
    assert closed.segment.ended_at is not None

    second = _open(db, ticket, crew_a1, company_a, manager)
    db.commit()
    assert second.segment.id != first.segment.id


def test_work_phase_event_skipped_without_assignment(ticket):
    from datetime import datetime, timezone

    event = ticket_events.work_phase_event(
        ticket, None, WorkPhase.ENTERED_WORKING, datetime.now(timezone.utc)
    )
    assert event is None


def test_work_phase_event_uses_assignment_crew(db, ticket, manager, company_a, crew_a1):
    from datetime import datetime, timezone

    assignment = assignment_service.assign_ticket(
        db, actor=manager, ticket_id=ticket.id, company_id=company_a.id, crew_id=crew_a1.id
    )
    event = ticket_events.work_phase_event(
        ticket, assignment, WorkPhase.ENTERED_WORKING, datetime.now(timezone.utc)
    )
    assert event.crew_id == crew_a1.id
    assert event.company_id == company_a.id

    change = ticket_events.handle_work_phase_changed(db=db, event=event, actor=manager)
    db.commit()
    assert change.segment.crew_id == crew_a1.id
    assert work_segment_service.get_open_segment(db, ticket.id, crew_a1.id) is not None
