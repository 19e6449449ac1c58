"""Audit router - API endpoints for viewing audit logs."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.db.enums import Role
from app.schemas.audit import AuditLogRead
from app.schemas.auth import Actor
from app.services import audit_service

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get("", response_model=list[AuditLogRead])
def list_audit_logs(
    entity: str | None = Query(None, description="Filter by entity (table name)"),
    entity_id: str | None = Query(None, description="Filter by entity id"),
    actor_user_id: UUID | None = Query(None, description="Filter by actor"),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_roles([Role.MANAGER])),
) -> list[AuditLogRead]:
    """List audit entries newest first (MANAGER)."""
    entries = audit_service.list_entries(
        db,
        entity=entity,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        limit=limit,
    )
    return [AuditLogRead.model_validate(e) for e in entries]
