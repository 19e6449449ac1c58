"""Audit recorder - append-only trail of every mutation.

Entries are written after the primary transaction commits. Writing is
best-effort: a failure is logged and swallowed so it can never fail or roll
back the operation being audited.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from app.core.structured_logging import build_log_context
from app.db.enums import AuditAction, AuditEntity
from app.db.models import AuditLog
from app.schemas.auth import Actor

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 500


@dataclass(frozen=True)
class AuditRecord:
    """One pending audit entry collected during a unit of work."""

    entity: AuditEntity
    entity_id: UUID | str
    action: AuditAction
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None


def _json_value(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


def snapshot(obj: Any) -> dict[str, Any]:
    """JSON-safe column snapshot of an ORM instance (take it before mutating)."""
    mapper = inspect(obj).mapper
    return {attr.key: _json_value(getattr(obj, attr.key)) for attr in mapper.column_attrs}


def record(
    db: Session,
    actor: Actor | None,
    entity: AuditEntity,
    entity_id: UUID | str,
    action: AuditAction,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
) -> bool:
    """Append a single audit entry. Returns False if the write failed."""
    return record_many(
        db,
        actor,
        [AuditRecord(entity=entity, entity_id=entity_id, action=action, before=before, after=after)],
    )


def record_many(db: Session, actor: Actor | None, records: list[AuditRecord]) -> bool:
    """
    Append audit entries in their own commit.

    Must be called after the audited transaction has committed; on failure
    only the audit rows are rolled back.
    """
    if not records:
        return True

    actor_user_id = actor.id if actor else None
    try:
        for item in records:
            db.add(
                AuditLog(
                    actor_user_id=actor_user_id,
                    entity=item.entity.value,
                    entity_id=str(item.entity_id),
                    action=item.action.value,
                    before_json=item.before,
                    after_json=item.after,
                )
            )
        db.commit()
    except Exception:
        db.rollback()
        logger.warning(
            "audit_write_failed",
            exc_info=True,
            extra=build_log_context(
                actor_id=str(actor_user_id) if actor_user_id else None,
            ),
        )
        return False
    return True


def list_entries(
    db: Session,
    *,
    entity: str | None = None,
    entity_id: str | None = None,
    actor_user_id: UUID | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
) -> list[AuditLog]:
    """Audit entries newest first, optionally filtered."""
    query = db.query(AuditLog)
    if entity:
        query = query.filter(AuditLog.entity == entity)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if actor_user_id:
        query = query.filter(AuditLog.actor_user_id == actor_user_id)
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    return query.order_by(AuditLog.created_at.desc()).limit(limit).all()
