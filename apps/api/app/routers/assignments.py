"""Crew responses to ticket assignments."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_current_actor, get_db, require_csrf_header
from app.schemas.auth import Actor
from app.schemas.ticketing import AssignmentRead, AssignmentRespondRequest
from app.services import assignment_service

router = APIRouter(prefix="/ticket-assignments", tags=["Assignments"])


@router.post(
    "/{assignment_id}/respond",
    response_model=AssignmentRead,
    dependencies=[Depends(require_csrf_header)],
)
def respond_to_assignment(
    assignment_id: UUID,
    data: AssignmentRespondRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> AssignmentRead:
    """Accept or reject a pending assignment (assigned company only)."""
    assignment = assignment_service.respond(
        db,
        actor=actor,
        assignment_id=assignment_id,
        action=data.action,
        note=data.note,
    )
    return AssignmentRead.model_validate(assignment)
