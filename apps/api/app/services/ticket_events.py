"""Ticket domain events for side effects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.enums import WorkPhase
from app.db.models import Ticket, TicketAssignment
from app.schemas.auth import Actor

if TYPE_CHECKING:
    from app.services.work_segment_service import SegmentChange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkPhaseChanged:
    """A ticket entered or left the working class of statuses."""

    ticket_id: UUID
    session_id: UUID
    company_id: UUID
    crew_id: UUID
    phase: WorkPhase
    occurred_at: datetime


def work_phase_event(
    ticket: Ticket,
    assignment: TicketAssignment | None,
    phase: WorkPhase | None,
    occurred_at: datetime,
) -> WorkPhaseChanged | None:
    """Build the event for a transition, or None when there is nothing to track."""
    if phase is None or assignment is None:
        return None
    return WorkPhaseChanged(
        ticket_id=ticket.id,
        session_id=ticket.session_id,
        company_id=assignment.company_id,
        crew_id=assignment.crew_id,
        phase=phase,
        occurred_at=occurred_at,
    )


def handle_work_phase_changed(
    *, db: Session, event: WorkPhaseChanged, actor: Actor
) -> SegmentChange | None:
    """Dispatch work-phase side effects (segment open/close) in the caller's transaction."""
    from app.services import work_segment_service

    if event.phase == WorkPhase.ENTERED_WORKING:
        return work_segment_service.open_if_needed(
            db,
            ticket_id=event.ticket_id,
            crew_id=event.crew_id,
            company_id=event.company_id,
            session_id=event.session_id,
            actor=actor,
            started_at=event.occurred_at,
        )
    if event.phase == WorkPhase.LEFT_WORKING:
        return work_segment_service.close_if_open(
            db,
            ticket_id=event.ticket_id,
            crew_id=event.crew_id,
            ended_at=event.occurred_at,
        )
    logger.warning("unknown_work_phase", extra={"phase": str(event.phase)})
    return None
