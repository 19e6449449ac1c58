"""Storm sessions: the storm response events tickets are filed under."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.errors import InputValidationError, NotFoundError
from app.core.policies import decide_role
from app.db.enums import ROLES_CAN_MANAGE_SESSIONS, AuditAction, AuditEntity
from app.db.models import StormSession
from app.schemas.auth import Actor
from app.services import audit_service


def get_session(db: Session, session_id: UUID) -> StormSession:
    storm_session = db.get(StormSession, session_id)
    if not storm_session:
        raise NotFoundError("Storm session not found")
    return storm_session


def list_sessions(db: Session, *, active_only: bool = False) -> list[StormSession]:
    query = db.query(StormSession)
    if active_only:
        query = query.filter(StormSession.is_active.is_(True))
    return query.order_by(StormSession.created_at.desc()).all()


def create_session(db: Session, *, actor: Actor, name: str) -> StormSession:
    """Open a storm session (ADMIN or MANAGER)."""
    decide_role(actor, ROLES_CAN_MANAGE_SESSIONS).raise_if_denied()

    name = (name or "").strip()
    if not name:
        raise InputValidationError("Name is required")

    storm_session = StormSession(name=name, created_by_user_id=actor.id)
    db.add(storm_session)
    db.commit()
    db.refresh(storm_session)

    audit_service.record(
        db,
        actor,
        AuditEntity.STORM_SESSION,
        storm_session.id,
        AuditAction.CREATE,
        after=audit_service.snapshot(storm_session),
    )
    return storm_session
