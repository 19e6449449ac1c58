"""Work segment tracker - crew time-on-task intervals.

Segments are opened and closed only in response to work-phase events from
the ticket state machine (see ticket_events). Both operations join the
caller's transaction: they flush, never commit. Each returns the change it
made so the caller can audit it after its own commit.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.enums import AuditAction, AuditEntity
from app.db.models import TicketWorkSegment
from app.schemas.auth import Actor
from app.services import audit_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentChange:
    """A segment opened (CREATE) or closed (UPDATE) in the current transaction."""

    segment: TicketWorkSegment
    action: AuditAction
    before: dict[str, Any] | None = None

    def audit_record(self) -> audit_service.AuditRecord:
        return audit_service.AuditRecord(
            entity=AuditEntity.TICKET_WORK_SEGMENT,
            entity_id=self.segment.id,
            action=self.action,
            before=self.before,
            after=audit_service.snapshot(self.segment),
        )


def get_open_segment(db: Session, ticket_id: UUID, crew_id: UUID) -> TicketWorkSegment | None:
    return (
        db.query(TicketWorkSegment)
        .filter(
            TicketWorkSegment.ticket_id == ticket_id,
            TicketWorkSegment.crew_id == crew_id,
            TicketWorkSegment.ended_at.is_(None),
        )
        .first()
    )


def open_if_needed(
    db: Session,
    *,
    ticket_id: UUID,
    crew_id: UUID,
    company_id: UUID,
    session_id: UUID,
    actor: Actor,
    started_at: datetime | None = None,
) -> SegmentChange | None:
    """Open a segment for (ticket, crew). Returns None if one is already open."""
    if get_open_segment(db, ticket_id, crew_id):
        return None

    segment = TicketWorkSegment(
        ticket_id=ticket_id,
        crew_id=crew_id,
        company_id=company_id,
        session_id=session_id,
        started_at=started_at or datetime.now(timezone.utc),
        created_by_user_id=actor.id,
    )
    db.add(segment)
    db.flush()
    logger.debug("work_segment_opened", extra={"ticket_id": str(ticket_id)})
    return SegmentChange(segment=segment, action=AuditAction.CREATE)


def close_if_open(
    db: Session,
    *,
    ticket_id: UUID,
    crew_id: UUID,
    ended_at: datetime | None = None,
) -> SegmentChange | None:
    """Close the open segment for (ticket, crew). No-op if none is open."""
    segment = get_open_segment(db, ticket_id, crew_id)
    if not segment:
        return None
    before = audit_service.snapshot(segment)
    segment.ended_at = ended_at or datetime.now(timezone.utc)
    db.flush()
    logger.debug("work_segment_closed", extra={"ticket_id": str(ticket_id)})
    return SegmentChange(segment=segment, action=AuditAction.UPDATE, before=before)


def list_segments(db: Session, ticket_id: UUID) -> list[TicketWorkSegment]:
    return (
        db.query(TicketWorkSegment)
        .filter(TicketWorkSegment.ticket_id == ticket_id)
        .order_by(TicketWorkSegment.started_at)
        .all()
    )
