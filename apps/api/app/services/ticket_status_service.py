"""Ticket lifecycle state machine - validates and applies status transitions.

Every transition runs in one transaction: ticket status, closed_at, the
StatusEvent row and any work-segment change commit together or not at all.
Audit entries are written after the commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core import ticket_states
from app.core.company_access import check_company_access
from app.core.errors import ConflictError, InputValidationError, NotFoundError
from app.core.policies import ResourceKind
from app.core.structured_logging import build_log_context
from app.db.enums import AuditAction, AuditEntity, TicketStatus
from app.db.models import Ticket, TicketAssignment, TicketStatusEvent
from app.schemas.auth import Actor
from app.services import audit_service, ticket_events
from app.services.work_segment_service import SegmentChange

logger = logging.getLogger(__name__)

CONCURRENT_UPDATE_DETAIL = "Ticket was modified concurrently. Reload and retry."


@dataclass(frozen=True)
class AppliedTransition:
    """Rows written by one transition, for auditing after commit."""

    event: TicketStatusEvent
    segment_change: SegmentChange | None = None

    def audit_records(self) -> list[audit_service.AuditRecord]:
        records = [
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET_STATUS_EVENT,
                entity_id=self.event.id,
                action=AuditAction.CREATE,
                after=audit_service.snapshot(self.event),
            )
        ]
        if self.segment_change is not None:
            records.append(self.segment_change.audit_record())
        return records


def parse_status(value: TicketStatus | str) -> TicketStatus:
    try:
        return TicketStatus(value)
    except ValueError as exc:
        raise InputValidationError(f"Invalid ticket status: {value}") from exc


def lock_ticket(db: Session, ticket_id: UUID) -> Ticket | None:
    """Load a ticket with a row lock (FOR UPDATE) for the current transaction."""
    return (
        db.query(Ticket)
        .filter(Ticket.id == ticket_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_active_assignment(db: Session, ticket_id: UUID) -> TicketAssignment | None:
    return (
        db.query(TicketAssignment)
        .filter(
            TicketAssignment.ticket_id == ticket_id,
            TicketAssignment.is_active.is_(True),
        )
        .first()
    )


def commit_or_conflict(db: Session) -> None:
    """Commit; report optimistic-lock and uniqueness races as ConflictError."""
    try:
        db.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.rollback()
        raise ConflictError(CONCURRENT_UPDATE_DETAIL) from exc


def record_status_event(
    db: Session,
    *,
    ticket: Ticket,
    old_status: str | None,
    new_status: str,
    actor: Actor,
    note: str | None,
    changed_at: datetime,
) -> TicketStatusEvent:
    event = TicketStatusEvent(
        ticket_id=ticket.id,
        old_status=old_status,
        new_status=new_status,
        changed_by_user_id=actor.id,
        changed_at=changed_at,
        note=note,
    )
    db.add(event)
    return event


def apply_transition(
    db: Session,
    *,
    ticket: Ticket,
    new_status: TicketStatus,
    actor: Actor,
    note: str | None = None,
) -> AppliedTransition:
    """
    Validate and apply one transition inside the caller's transaction.

    Does not commit. Raises InvalidTransitionError before mutating anything.
    """
    old_status = TicketStatus(ticket.status)
    ticket_states.validate_transition(old_status, new_status)

    now = datetime.now(timezone.utc)
    segment_change = None
    phase = ticket_states.work_phase_change(old_status, new_status)
    if phase is not None:
        phase_event = ticket_events.work_phase_event(
            ticket, get_active_assignment(db, ticket.id), phase, now
        )
        if phase_event is not None:
            segment_change = ticket_events.handle_work_phase_changed(
                db=db, event=phase_event, actor=actor
            )

    ticket.status = new_status.value
    if ticket_states.is_terminal(new_status):
        ticket.closed_at = now

    event = record_status_event(
        db,
        ticket=ticket,
        old_status=old_status.value,
        new_status=new_status.value,
        actor=actor,
        note=note,
        changed_at=now,
    )
    return AppliedTransition(event=event, segment_change=segment_change)


def transition(
    db: Session,
    *,
    actor: Actor,
    ticket_id: UUID,
    status: TicketStatus | str,
    note: str | None = None,
) -> Ticket:
    """
    Move a ticket to `status`.

    Raises:
        InputValidationError: unknown status value
        NotFoundError: ticket missing
        ForbiddenError: actor may not access the ticket
        InvalidTransitionError: no such edge in the transition table
        ConflictError: concurrent modification
    """
    new_status = parse_status(status)
    ticket = lock_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    check_company_access(db, actor, ResourceKind.TICKET, ticket.company_id)

    before = audit_service.snapshot(ticket)
    applied = apply_transition(db, ticket=ticket, new_status=new_status, actor=actor, note=note)
    commit_or_conflict(db)
    db.refresh(ticket)

    logger.info(
        "ticket_status_changed",
        extra=build_log_context(
            actor_id=str(actor.id),
            company_id=str(ticket.company_id) if ticket.company_id else None,
            ticket_id=str(ticket.id),
        ),
    )
    audit_service.record_many(
        db,
        actor,
        [
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET,
                entity_id=ticket.id,
                action=AuditAction.STATUS_CHANGE,
                before=before,
                after={**audit_service.snapshot(ticket), "note": note},
            ),
            *applied.audit_records(),
        ],
    )
    return ticket
