"""Issue type reference data."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InputValidationError
from app.core.policies import decide_role
from app.db.enums import DEFAULT_TICKET_PRIORITY, AuditAction, AuditEntity, Role, TicketPriority
from app.db.models import IssueType
from app.schemas.auth import Actor
from app.services import audit_service


def list_issue_types(db: Session, *, include_inactive: bool = False) -> list[IssueType]:
    query = db.query(IssueType)
    if not include_inactive:
        query = query.filter(IssueType.is_active.is_(True))
    return query.order_by(IssueType.name).all()


def get_active_issue_type(db: Session, issue_type_id: UUID) -> IssueType | None:
    """Issue type usable for new tickets, or None."""
    issue_type = db.get(IssueType, issue_type_id)
    if not issue_type or not issue_type.is_active:
        return None
    return issue_type


def create_issue_type(
    db: Session,
    *,
    actor: Actor | None,
    name: str,
    code: str,
    default_priority: TicketPriority | str = DEFAULT_TICKET_PRIORITY,
) -> IssueType:
    """
    Create an issue type.

    `actor` is None for bootstrap (CLI) use; otherwise MANAGER only.
    """
    if actor is not None:
        decide_role(actor, [Role.MANAGER]).raise_if_denied()

    name = (name or "").strip()
    code = (code or "").strip().upper()
    if not name or not code:
        raise InputValidationError("Issue type name and code are required")
    try:
        priority = TicketPriority(default_priority)
    except ValueError as exc:
        raise InputValidationError(f"Invalid priority: {default_priority}") from exc

    if db.query(IssueType).filter(IssueType.code == code).first():
        raise ConflictError(f"Issue type code '{code}' already exists")

    issue_type = IssueType(name=name, code=code, default_priority=priority.value)
    db.add(issue_type)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(f"Issue type code '{code}' already exists") from exc
    db.refresh(issue_type)

    audit_service.record(
        db,
        actor,
        AuditEntity.ISSUE_TYPE,
        issue_type.id,
        AuditAction.CREATE,
        after=audit_service.snapshot(issue_type),
    )
    return issue_type
