"""Ticket intake, dispatch, and lifecycle APIs."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_current_actor, get_db, require_csrf_header
from app.schemas.auth import Actor
from app.schemas.ticketing import (
    AssignmentRead,
    StatusEventRead,
    TicketAssignRequest,
    TicketCreateRequest,
    TicketDetailResponse,
    TicketListResponse,
    TicketPatchRequest,
    TicketRead,
    TicketStatusRequest,
    WorkSegmentRead,
)
from app.services import assignment_service, ticket_status_service, ticketing_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("", response_model=TicketListResponse)
def list_tickets(
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    cursor: str | None = None,
    session_id: UUID | None = None,
    company_id: UUID | None = None,
    status: str | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketListResponse:
    """List tickets visible to the caller with cursor pagination."""
    page = ticketing_service.list_tickets(
        db,
        actor=actor,
        session_id=session_id,
        company_id=company_id,
        status_filter=status,
        limit=limit,
        cursor=cursor,
    )
    return TicketListResponse(
        items=[TicketRead.model_validate(ticket) for ticket in page.items],
        next_cursor=page.next_cursor,
    )


@router.post(
    "",
    response_model=TicketRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_ticket(
    data: TicketCreateRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketRead:
    ticket = ticketing_service.create_ticket(db, actor=actor, **data.model_dump())
    return TicketRead.model_validate(ticket)


@router.get("/{ticket_id}", response_model=TicketDetailResponse)
def get_ticket(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketDetailResponse:
    """Ticket detail with active assignment, status history, and work segments."""
    detail = ticketing_service.get_ticket_detail(db, actor=actor, ticket_id=ticket_id)
    return TicketDetailResponse(
        ticket=TicketRead.model_validate(detail.ticket),
        active_assignment=AssignmentRead.model_validate(detail.active_assignment)
        if detail.active_assignment
        else None,
        status_events=[StatusEventRead.model_validate(e) for e in detail.status_events],
        work_segments=[WorkSegmentRead.model_validate(s) for s in detail.work_segments],
    )


@router.patch(
    "/{ticket_id}",
    response_model=TicketRead,
    dependencies=[Depends(require_csrf_header)],
)
def patch_ticket(
    ticket_id: UUID,
    data: TicketPatchRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketRead:
    """Update descriptive fields."""
    ticket = ticketing_service.update_ticket(
        db,
        actor=actor,
        ticket_id=ticket_id,
        updates=data.model_dump(exclude_unset=True),
    )
    return TicketRead.model_validate(ticket)


@router.post(
    "/{ticket_id}/assign",
    response_model=AssignmentRead,
    dependencies=[Depends(require_csrf_header)],
)
def assign_ticket(
    ticket_id: UUID,
    data: TicketAssignRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> AssignmentRead:
    """Dispatch the ticket to a company's crew (MANAGER/UTILITY)."""
    assignment = assignment_service.assign_ticket(
        db,
        actor=actor,
        ticket_id=ticket_id,
        company_id=data.company_id,
        crew_id=data.crew_id,
        note=data.note,
    )
    return AssignmentRead.model_validate(assignment)


@router.post(
    "/{ticket_id}/status",
    response_model=TicketRead,
    dependencies=[Depends(require_csrf_header)],
)
def set_ticket_status(
    ticket_id: UUID,
    data: TicketStatusRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> TicketRead:
    ticket = ticket_status_service.transition(
        db,
        actor=actor,
        ticket_id=ticket_id,
        status=data.status,
        note=data.note,
    )
    return TicketRead.model_validate(ticket)


@router.get("/{ticket_id}/events", response_model=list[StatusEventRead])
def list_ticket_events(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[StatusEventRead]:
    events = ticketing_service.list_status_events(db, actor=actor, ticket_id=ticket_id)
    return [StatusEventRead.model_validate(e) for e in events]


@router.get("/{ticket_id}/assignments", response_model=list[AssignmentRead])
def list_ticket_assignments(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[AssignmentRead]:
    assignments = ticketing_service.list_ticket_assignments(db, actor=actor, ticket_id=ticket_id)
    return [AssignmentRead.model_validate(a) for a in assignments]


@router.get("/{ticket_id}/work-segments", response_model=list[WorkSegmentRead])
def list_ticket_work_segments(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[WorkSegmentRead]:
    segments = ticketing_service.list_work_segments(db, actor=actor, ticket_id=ticket_id)
    return [WorkSegmentRead.model_validate(s) for s in segments]
