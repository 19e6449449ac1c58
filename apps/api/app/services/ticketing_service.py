"""Ticket intake, visibility, and history."""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from app.core import ticket_states
from app.core.company_access import check_company_access, visible_company_ids
from app.core.errors import ConflictError, InputValidationError, NotFoundError
from app.core.policies import ResourceKind, decide_role, get_policy
from app.core.structured_logging import build_log_context
from app.db.enums import (
    DEFAULT_TICKET_PRIORITY,
    ROLES_CAN_DISPATCH,
    AuditAction,
    AuditEntity,
    TicketPriority,
)
from app.db.models import (
    StormSession,
    Ticket,
    TicketAssignment,
    TicketStatusEvent,
    TicketWorkSegment,
)
from app.schemas.auth import Actor
from app.services import (
    assignment_service,
    audit_service,
    issue_type_service,
    ticket_status_service,
    work_segment_service,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 200

EDITABLE_FIELDS = (
    "title",
    "description",
    "external_ref",
    "address_text",
    "lat",
    "lon",
    "feeder",
    "circuit",
    "priority",
)


@dataclass
class TicketListPage:
    """List page result with cursor."""

    items: list[Ticket]
    next_cursor: str | None


@dataclass
class TicketDetail:
    """Ticket with its active assignment and history."""

    ticket: Ticket
    active_assignment: TicketAssignment | None
    status_events: list[TicketStatusEvent]
    work_segments: list[TicketWorkSegment]


def _encode_cursor(*, created_at: datetime, row_id: UUID) -> str:
    payload = {"created_at": created_at.isoformat(), "id": str(row_id)}
    return base64.urlsafe_b64encode(json.dumps(payload).encode("utf-8")).decode("utf-8")


def _decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    try:
        decoded = base64.urlsafe_b64decode(cursor.encode("utf-8")).decode("utf-8")
        payload = json.loads(decoded)
        created_at = datetime.fromisoformat(payload["created_at"])
        row_id = UUID(payload["id"])
        return created_at, row_id
    except Exception as exc:
        raise InputValidationError("Invalid cursor") from exc


def _parse_priority(value: TicketPriority | str) -> TicketPriority:
    try:
        return TicketPriority(value)
    except ValueError as exc:
        raise InputValidationError(f"Invalid priority: {value}") from exc


def get_ticket(db: Session, *, actor: Actor, ticket_id: UUID) -> Ticket:
    """Load a ticket the actor may access (NotFound before Forbidden)."""
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    check_company_access(db, actor, ResourceKind.TICKET, ticket.company_id)
    return ticket


def create_ticket(
    db: Session,
    *,
    actor: Actor,
    session_id: UUID,
    issue_type_id: UUID,
    priority: TicketPriority | str | None = None,
    title: str | None = None,
    description: str | None = None,
    external_ref: str | None = None,
    address_text: str | None = None,
    lat: float | None = None,
    lon: float | None = None,
    feeder: str | None = None,
    circuit: str | None = None,
    note: str | None = None,
) -> Ticket:
    """
    File a new, unassigned ticket in CREATED with its first StatusEvent.

    Priority falls back to the issue type's default, then P2.
    """
    storm_session = db.get(StormSession, session_id)
    if not storm_session:
        raise NotFoundError("Storm session not found")
    decide_role(actor, ROLES_CAN_DISPATCH).raise_if_denied()
    check_company_access(db, actor, ResourceKind.TICKET, None)

    if not storm_session.is_active:
        raise InputValidationError("Storm session is closed")
    issue_type = issue_type_service.get_active_issue_type(db, issue_type_id)
    if not issue_type:
        raise InputValidationError("Unknown or inactive issue type")

    if priority is not None:
        resolved_priority = _parse_priority(priority)
    else:
        resolved_priority = _parse_priority(issue_type.default_priority or DEFAULT_TICKET_PRIORITY)

    now = datetime.now(timezone.utc)
    ticket = Ticket(
        session_id=session_id,
        issue_type_id=issue_type.id,
        priority=resolved_priority.value,
        status=ticket_states.INITIAL_STATUS.value,
        title=title,
        description=description,
        external_ref=external_ref,
        address_text=address_text,
        lat=lat,
        lon=lon,
        feeder=feeder,
        circuit=circuit,
        created_by_user_id=actor.id,
        created_at=now,
        updated_at=now,
    )
    db.add(ticket)
    db.flush()
    event = ticket_status_service.record_status_event(
        db,
        ticket=ticket,
        old_status=None,
        new_status=ticket.status,
        actor=actor,
        note=note,
        changed_at=now,
    )
    db.commit()
    db.refresh(ticket)

    logger.info(
        "ticket_created",
        extra=build_log_context(actor_id=str(actor.id), ticket_id=str(ticket.id)),
    )
    audit_service.record_many(
        db,
        actor,
        [
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET,
                entity_id=ticket.id,
                action=AuditAction.CREATE,
                after=audit_service.snapshot(ticket),
            ),
            audit_service.AuditRecord(
                entity=AuditEntity.TICKET_STATUS_EVENT,
                entity_id=event.id,
                action=AuditAction.CREATE,
                after=audit_service.snapshot(event),
            ),
        ],
    )
    return ticket


def update_ticket(
    db: Session,
    *,
    actor: Actor,
    ticket_id: UUID,
    updates: dict,
) -> Ticket:
    """
    Edit descriptive fields. Status and company change only through the
    state machine and dispatch.
    """
    ticket = ticket_status_service.lock_ticket(db, ticket_id)
    if not ticket:
        raise NotFoundError("Ticket not found")
    decide_role(actor, ROLES_CAN_DISPATCH).raise_if_denied()
    check_company_access(db, actor, ResourceKind.TICKET, ticket.company_id)

    if ticket_states.is_terminal(ticket.status):
        raise ConflictError(f"Ticket is {ticket.status} and can no longer be edited")

    before = audit_service.snapshot(ticket)
    changed = False
    for field in EDITABLE_FIELDS:
        if field not in updates:
            continue
        value = updates[field]
        if field == "priority":
            if value is None:
                continue
            value = _parse_priority(value).value
        if getattr(ticket, field) != value:
            setattr(ticket, field, value)
            changed = True

    if not changed:
        return ticket

    ticket_status_service.commit_or_conflict(db)
    db.refresh(ticket)
    audit_service.record(
        db,
        actor,
        AuditEntity.TICKET,
        ticket.id,
        AuditAction.UPDATE,
        before=before,
        after=audit_service.snapshot(ticket),
    )
    return ticket


def list_tickets(
    db: Session,
    *,
    actor: Actor,
    session_id: UUID | None = None,
    company_id: UUID | None = None,
    status_filter: str | None = None,
    limit: int = DEFAULT_PAGE_LIMIT,
    cursor: str | None = None,
) -> TicketListPage:
    """
    List tickets visible to the actor, newest first, with cursor pagination.

    CONTRACTOR sees their own company's tickets; UTILITY sees granted
    companies plus the unassigned dispatch pool; MANAGER sees everything.
    """
    visible = visible_company_ids(db, actor, ResourceKind.TICKET)
    page_limit = max(1, min(limit, MAX_PAGE_LIMIT))

    query = db.query(Ticket)
    if visible is not None:
        scope = [Ticket.company_id.in_(visible)] if visible else []
        if actor.role in get_policy(ResourceKind.TICKET).allow_unassigned:
            scope.append(Ticket.company_id.is_(None))
        if not scope:
            return TicketListPage(items=[], next_cursor=None)
        query = query.filter(or_(*scope))

    if session_id:
        query = query.filter(Ticket.session_id == session_id)
    if company_id:
        query = query.filter(Ticket.company_id == company_id)
    if status_filter:
        query = query.filter(
            Ticket.status == ticket_status_service.parse_status(status_filter).value
        )

    if cursor:
        cursor_created_at, cursor_id = _decode_cursor(cursor)
        query = query.filter(
            or_(
                Ticket.created_at < cursor_created_at,
                and_(Ticket.created_at == cursor_created_at, Ticket.id < cursor_id),
            )
        )

    rows = (
        query.order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .limit(page_limit + 1)
        .all()
    )
    has_more = len(rows) > page_limit
    items = rows[:page_limit]

    next_cursor = None
    if has_more and items:
        last = items[-1]
        next_cursor = _encode_cursor(created_at=last.created_at, row_id=last.id)

    return TicketListPage(items=items, next_cursor=next_cursor)


def _status_events(db: Session, ticket_id: UUID) -> list[TicketStatusEvent]:
    return (
        db.query(TicketStatusEvent)
        .filter(TicketStatusEvent.ticket_id == ticket_id)
        .order_by(TicketStatusEvent.changed_at)
        .all()
    )


def list_status_events(db: Session, *, actor: Actor, ticket_id: UUID) -> list[TicketStatusEvent]:
    ticket = get_ticket(db, actor=actor, ticket_id=ticket_id)
    return _status_events(db, ticket.id)


def list_ticket_assignments(
    db: Session, *, actor: Actor, ticket_id: UUID
) -> list[TicketAssignment]:
    ticket = get_ticket(db, actor=actor, ticket_id=ticket_id)
    return assignment_service.list_assignments(db, ticket.id)


def list_work_segments(db: Session, *, actor: Actor, ticket_id: UUID) -> list[TicketWorkSegment]:
    ticket = get_ticket(db, actor=actor, ticket_id=ticket_id)
    return work_segment_service.list_segments(db, ticket.id)


def get_ticket_detail(db: Session, *, actor: Actor, ticket_id: UUID) -> TicketDetail:
    ticket = get_ticket(db, actor=actor, ticket_id=ticket_id)
    return TicketDetail(
        ticket=ticket,
        active_assignment=ticket_status_service.get_active_assignment(db, ticket.id),
        status_events=_status_events(db, ticket.id),
        work_segments=work_segment_service.list_segments(db, ticket.id),
    )
