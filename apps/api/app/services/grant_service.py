"""UTILITY company access grants (user_company_access)."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InputValidationError, NotFoundError
from app.core.policies import decide_role
from app.db.enums import AuditAction, AuditEntity, Role
from app.db.models import Company, User, UserCompanyAccess
from app.schemas.auth import Actor
from app.services import audit_service


def has_company_access(db: Session, user_id: UUID, company_id: UUID) -> bool:
    """Check if a UTILITY user has been granted access to a company."""
    grant_id = db.execute(
        select(UserCompanyAccess.id).where(
            UserCompanyAccess.user_id == user_id,
            UserCompanyAccess.company_id == company_id,
        )
    ).scalar_one_or_none()
    return grant_id is not None


def granted_company_ids(db: Session, user_id: UUID) -> list[UUID]:
    """All company ids a user has been granted."""
    return list(
        db.execute(
            select(UserCompanyAccess.company_id).where(UserCompanyAccess.user_id == user_id)
        ).scalars()
    )


def grant_lookup(db: Session):
    """Bind a session into the `has_grant` callable the policy engine expects."""

    def _has_grant(user_id: UUID, company_id: UUID) -> bool:
        return has_company_access(db, user_id, company_id)

    return _has_grant


def list_grants(db: Session, *, actor: Actor, company_id: UUID) -> list[UserCompanyAccess]:
    """List UTILITY users granted access to a company (MANAGER only)."""
    if not db.get(Company, company_id):
        raise NotFoundError("Company not found")
    decide_role(actor, [Role.MANAGER]).raise_if_denied()
    return (
        db.query(UserCompanyAccess)
        .filter(UserCompanyAccess.company_id == company_id)
        .order_by(UserCompanyAccess.granted_at)
        .all()
    )


def grant_company_access(
    db: Session,
    *,
    actor: Actor | None,
    company_id: UUID,
    user_id: UUID,
) -> UserCompanyAccess:
    """
    Give a UTILITY user access to a company's data.

    Raises:
        NotFoundError: company or user missing
        ForbiddenError: actor is not a MANAGER
        InputValidationError: target user is not a UTILITY user
        ConflictError: grant already exists
    """
    if not db.get(Company, company_id):
        raise NotFoundError("Company not found")
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    # actor is None only for CLI bootstrap
    if actor is not None:
        decide_role(actor, [Role.MANAGER]).raise_if_denied()

    if user.role != Role.UTILITY.value:
        raise InputValidationError("Company grants apply to UTILITY users only")
    if has_company_access(db, user_id, company_id):
        raise ConflictError("User already has access to this company")

    grant = UserCompanyAccess(
        user_id=user_id,
        company_id=company_id,
        granted_by_user_id=actor.id if actor else None,
    )
    db.add(grant)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User already has access to this company") from exc
    db.refresh(grant)

    audit_service.record(
        db,
        actor,
        AuditEntity.USER_COMPANY_ACCESS,
        grant.id,
        AuditAction.GRANT,
        after=audit_service.snapshot(grant),
    )
    return grant


def revoke_company_access(
    db: Session,
    *,
    actor: Actor,
    company_id: UUID,
    user_id: UUID,
) -> None:
    """Remove a UTILITY user's access to a company."""
    grant = (
        db.query(UserCompanyAccess)
        .filter(
            UserCompanyAccess.company_id == company_id,
            UserCompanyAccess.user_id == user_id,
        )
        .first()
    )
    if not grant:
        raise NotFoundError("Grant not found")
    decide_role(actor, [Role.MANAGER]).raise_if_denied()

    before = audit_service.snapshot(grant)
    grant_id = grant.id
    db.delete(grant)
    db.commit()

    audit_service.record(
        db,
        actor,
        AuditEntity.USER_COMPANY_ACCESS,
        grant_id,
        AuditAction.REVOKE,
        before=before,
    )
