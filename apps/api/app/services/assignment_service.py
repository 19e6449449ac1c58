"""Assignment manager - dispatching tickets to (company, crew) and crew responses.

A ticket has at most one active assignment. Assigning supersedes the
current one (REASSIGNED, inactive); a rejection deactivates it and leaves
the ticket in ASSIGNED for re-dispatch.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from app.core import ticket_states
from app.core.company_access import check_company_access
from app.core.errors import (
    ConflictError,
    ForbiddenError,
    InputValidationError,
    InvalidTransitionError,
    NotFoundError,
)
from app.core.policies import (
    REASON_COMPANY_REQUIRED,
    REASON_OTHER_COMPANY,
    ResourceKind,
    decide_role,
)
from app.core.structured_logging import build_log_context
from app.db.enums import (
    ROLES_CAN_DISPATCH,
    AssignmentAction,
    AssignmentStatus,
    AuditAction,
    AuditEntity,
    Role,
    TicketStatus,
)
from app.db.models import Company, Crew, TicketAssignment
from app.schemas.auth import Actor
from app.services import audit_service, work_segment_service
from app.services.ticket_status_service import (
    AppliedTransition,
    apply_transition,
    commit_or_conflict,
    lock_ticket,
    record_status_event,
)

logger = logging.getLogger(__name__)

REJECTION_NOTE = "Assignment rejected"


def _lock_assignment(db: Session, assignment_id: UUID) -> TicketAssignment | None:
    return (
        db.query(TicketAssignment)
        .filter(TicketAssignment.id == assignment_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def _parse_action(action: AssignmentAction | str) -> AssignmentAction:
    try:
        return AssignmentAction(action)
    except ValueError as exc:
        raise InputValidationError(f"Invalid assignment action: {action}") from exc


def get_assignment(db: Session, assignment_id: UUID) -> TicketAssignment:
    assignment = db.get(TicketAssignment, assignment_id)
    if not assignment:
        raise NotFoundError("Assignment not found")
    return assignment


def list_assignments(db: Session, ticket_id: UUID) -> list[TicketAssignment]:
    return (
        db.query(TicketAssignment)
        .filter(TicketAssignment.ticket_id == ticket_id)
        .order_by(TicketAssignment.assigned_at)
        .all()
    )


def assign_ticket(
    db: Session,
    *,
    actor: Actor,
    ticket_id: UUID,
    company_id: UUID,
    crew_id: UUID,
    note: str | None = None,
) -> TicketAssignment:
    """
    Dispatch a ticket to a company's crew.

    Sets the ticket to ASSIGNED and binds it to `company_id` directly
    (dispatch override, no StatusEvent). Reassigning a ticket that is
    being worked closes the superseded crew's open segment.

    Raises:
        NotFoundError: ticket or company missing
        ForbiddenError: actor cannot dispatch, or cannot access the ticket
            or the target company
        InputValidationError: crew missing or not on the company's roster
        InvalidTransitionError: ticket is COMPLETED, CLOSED or CANCELLED
        ConflictError: concurrent assignment
    """
    ticket = lock_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    if not db.get(Company, company_id):
        raise NotFoundError("Company not found")

    decide_role(actor, ROLES_CAN_DISPATCH).raise_if_denied()
    check_company_access(db, actor, ResourceKind.TICKET, ticket.company_id)
    check_company_access(db, actor, ResourceKind.TICKET, company_id)

    crew = db.get(Crew, crew_id)
    if not crew or crew.company_id != company_id:
        raise InputValidationError("Crew does not belong to the selected company")
    if not crew.is_active:
        raise InputValidationError("Crew is inactive")

    old_status = TicketStatus(ticket.status)
    if old_status in ticket_states.NON_DISPATCHABLE_STATUSES:
        raise InvalidTransitionError(old_status.value, TicketStatus.ASSIGNED.value)

    ticket_before = audit_service.snapshot(ticket)
    audit_records: list[audit_service.AuditRecord] = []
    segment_change = None
    now = datetime.now(timezone.utc)

    previous = (
        db.query(TicketAssignment)
        .filter(
            TicketAssignment.ticket_id == ticket.id,
            TicketAssignment.is_active.is_(True),
        )
        .with_for_update()
        .first()
    )
    if previous:
        previous_before = audit_service.snapshot(previous)
        if ticket_states.is_working(old_status):
            segment_change = work_segment_service.close_if_open(
                db, ticket_id=ticket.id, crew_id=previous.crew_id, ended_at=now
            )
        previous.status = AssignmentStatus.REASSIGNED.value
        previous.is_active = False
        # Deactivate before inserting the new row (one-active unique index)
        db.flush()
        audit_records.append(
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET_ASSIGNMENT,
                entity_id=previous.id,
                action=AuditAction.REASSIGN,
                before=previous_before,
                after=audit_service.snapshot(previous),
            )
        )

    assignment = TicketAssignment(
        ticket_id=ticket.id,
        company_id=company_id,
        crew_id=crew_id,
        status=AssignmentStatus.PENDING_ACCEPT.value,
        assigned_by_user_id=actor.id,
        assigned_at=now,
        is_active=True,
    )
    db.add(assignment)
    ticket.status = TicketStatus.ASSIGNED.value
    ticket.company_id = company_id
    commit_or_conflict(db)
    db.refresh(ticket)
    db.refresh(assignment)

    logger.info(
        "ticket_assigned",
        extra=build_log_context(
            actor_id=str(actor.id),
            company_id=str(company_id),
            ticket_id=str(ticket.id),
        ),
    )
    audit_records.extend(
        [
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET_ASSIGNMENT,
                entity_id=assignment.id,
                action=AuditAction.ASSIGN,
                after={**audit_service.snapshot(assignment), "note": note},
            ),
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET,
                entity_id=ticket.id,
                action=AuditAction.ASSIGN,
                before=ticket_before,
                after=audit_service.snapshot(ticket),
            ),
        ]
    )
    if segment_change is not None:
        audit_records.append(segment_change.audit_record())
    audit_service.record_many(db, actor, audit_records)
    return assignment


def respond(
    db: Session,
    *,
    actor: Actor,
    assignment_id: UUID,
    action: AssignmentAction | str,
    note: str | None = None,
) -> TicketAssignment:
    """
    Accept or reject a pending assignment on behalf of the assigned company.

    accept: assignment ACCEPTED; ticket ASSIGNED -> ACCEPTED via the state
    machine. reject: assignment REJECTED and inactive; a StatusEvent
    records the rejection and the ticket status is unchanged.

    Raises:
        NotFoundError: assignment missing
        InputValidationError: unknown action
        ForbiddenError: actor is not a CONTRACTOR of the assigned company
        ConflictError: assignment is no longer PENDING_ACCEPT, or the
            ticket is already closed or cancelled
        InvalidTransitionError: (accept) ticket is not in ASSIGNED
    """
    assignment = get_assignment(db, assignment_id)
    parsed = _parse_action(action)

    decide_role(actor, [Role.CONTRACTOR]).raise_if_denied()
    if actor.company_id is None:
        raise ForbiddenError(REASON_COMPANY_REQUIRED)
    if actor.company_id != assignment.company_id:
        raise ForbiddenError(REASON_OTHER_COMPANY)

    # Ticket first, then assignment: the same order assign_ticket locks in
    ticket = lock_ticket(db, assignment.ticket_id)
    assignment = _lock_assignment(db, assignment_id)
    if assignment.status != AssignmentStatus.PENDING_ACCEPT.value:
        raise ConflictError(f"Assignment is already {assignment.status}")
    if ticket_states.is_terminal(ticket.status):
        raise ConflictError(f"Ticket is already {ticket.status}")

    if parsed == AssignmentAction.ACCEPT:
        # Validate before touching the assignment so a refusal mutates nothing
        ticket_states.validate_transition(ticket.status, TicketStatus.ACCEPTED)

    assignment_before = audit_service.snapshot(assignment)
    ticket_before = audit_service.snapshot(ticket)
    now = datetime.now(timezone.utc)

    assignment.responded_at = now
    assignment.response_note = note
    if parsed == AssignmentAction.ACCEPT:
        assignment.status = AssignmentStatus.ACCEPTED.value
        applied = apply_transition(
            db, ticket=ticket, new_status=TicketStatus.ACCEPTED, actor=actor, note=note
        )
        audit_action = AuditAction.ACCEPT
    else:
        assignment.status = AssignmentStatus.REJECTED.value
        assignment.is_active = False
        event = record_status_event(
            db,
            ticket=ticket,
            old_status=ticket.status,
            new_status=ticket.status,
            actor=actor,
            note=f"{REJECTION_NOTE}: {note}" if note else REJECTION_NOTE,
            changed_at=now,
        )
        applied = AppliedTransition(event=event)
        audit_action = AuditAction.REJECT

    commit_or_conflict(db)
    db.refresh(assignment)

    logger.info(
        "assignment_responded",
        extra=build_log_context(
            actor_id=str(actor.id),
            company_id=str(assignment.company_id),
            ticket_id=str(assignment.ticket_id),
        ),
    )
    records = [
        audit_service.AuditRecord(
            entity=AuditEntity.TICKET_ASSIGNMENT,
            entity_id=assignment.id,
            action=audit_action,
            before=assignment_before,
            after=audit_service.snapshot(assignment),
        ),
        *applied.audit_records(),
    ]
    if parsed == AssignmentAction.ACCEPT:
        records.append(
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET,
                entity_id=ticket.id,
                action=AuditAction.STATUS_CHANGE,
                before=ticket_before,
                after=audit_service.snapshot(ticket),
            )
        )
    audit_service.record_many(db, actor, records)
    return assignment

