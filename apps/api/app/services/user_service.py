"""User management - identity, role, and company binding (ADMIN only)."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InputValidationError, NotFoundError
from app.core.policies import ResourceKind, decide
from app.db.enums import AuditAction, AuditEntity, Role
from app.db.models import Company, User
from app.schemas.auth import Actor
from app.services import audit_service


def _require_user_admin(actor: Actor | None) -> None:
    # actor is None only for CLI bootstrap
    if actor is not None:
        decide(actor, ResourceKind.USER, None).raise_if_denied()


def _normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def _validate_binding(db: Session, role: Role | None, company_id: UUID | None) -> None:
    if company_id is not None and not db.get(Company, company_id):
        raise InputValidationError("Company not found")
    if role == Role.CONTRACTOR and company_id is None:
        raise InputValidationError("CONTRACTOR users require a company")
    if role is not None and role != Role.CONTRACTOR and company_id is not None:
        raise InputValidationError("Only CONTRACTOR users can belong to a company")


def _parse_role(role: Role | str | None) -> Role | None:
    if role is None:
        return None
    try:
        return Role(role)
    except ValueError as exc:
        raise InputValidationError(f"Invalid role: {role}") from exc


def get_user(db: Session, *, actor: Actor, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    _require_user_admin(actor)
    return user


def list_users(
    db: Session,
    *,
    actor: Actor,
    role: Role | None = None,
    company_id: UUID | None = None,
) -> list[User]:
    _require_user_admin(actor)
    query = db.query(User)
    if role:
        query = query.filter(User.role == role.value)
    if company_id:
        query = query.filter(User.company_id == company_id)
    return query.order_by(User.email).all()


def create_user(
    db: Session,
    *,
    actor: Actor | None,
    email: str,
    role: Role | str | None = None,
    company_id: UUID | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    user_id: UUID | None = None,
) -> User:
    """
    Register a user.

    `user_id` lets the caller pin the identity provider's subject id.
    """
    _require_user_admin(actor)

    email = _normalize_email(email)
    if not email:
        raise InputValidationError("Email is required")
    parsed_role = _parse_role(role)
    _validate_binding(db, parsed_role, company_id)

    if db.query(User).filter(User.email == email).first():
        raise ConflictError("A user with this email already exists")

    user = User(
        email=email,
        role=parsed_role.value if parsed_role else None,
        company_id=company_id,
        first_name=first_name,
        last_name=last_name,
    )
    if user_id is not None:
        user.id = user_id
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("A user with this email already exists") from exc
    db.refresh(user)

    audit_service.record(
        db,
        actor,
        AuditEntity.USER,
        user.id,
        AuditAction.CREATE,
        after=audit_service.snapshot(user),
    )
    return user


def update_user(
    db: Session,
    *,
    actor: Actor,
    user_id: UUID,
    updates: dict,
) -> User:
    """
    Apply a partial update (role, company_id, is_active, names).

    Changing role/company or deactivating bumps token_version so existing
    sessions are revoked.
    """
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    _require_user_admin(actor)

    before = audit_service.snapshot(user)

    role = _parse_role(updates["role"]) if "role" in updates else _parse_role(user.role)
    company_id = updates["company_id"] if "company_id" in updates else user.company_id
    _validate_binding(db, role, company_id)

    revoke_sessions = False
    if "role" in updates and (role.value if role else None) != user.role:
        user.role = role.value if role else None
        revoke_sessions = True
    if "company_id" in updates and company_id != user.company_id:
        user.company_id = company_id
        revoke_sessions = True
    if "is_active" in updates and updates["is_active"] is not None:
        if user.is_active and not updates["is_active"]:
            revoke_sessions = True
        user.is_active = bool(updates["is_active"])
    for field in ("first_name", "last_name"):
        if field in updates:
            setattr(user, field, updates[field])

    if revoke_sessions:
        user.token_version += 1

    db.commit()
    db.refresh(user)

    audit_service.record(
        db,
        actor,
        AuditEntity.USER,
        user.id,
        AuditAction.UPDATE,
        before=before,
        after=audit_service.snapshot(user),
    )
    return user
