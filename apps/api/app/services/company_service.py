"""Company and crew roster service."""

from uuid import UUID

from sqlalchemy.orm import Session

from app.core.company_access import check_company_access, visible_company_ids
from app.core.errors import InputValidationError, NotFoundError
from app.core.policies import ResourceKind, decide_role
from app.db.enums import AuditAction, AuditEntity, Role
from app.db.models import Company, Crew
from app.schemas.auth import Actor
from app.services import audit_service


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise InputValidationError("Name is required")
    return name


def get_company(db: Session, *, actor: Actor, company_id: UUID) -> Company:
    """Get a company the actor may see."""
    company = db.get(Company, company_id)
    if not company:
        raise NotFoundError("Company not found")
    check_company_access(db, actor, ResourceKind.COMPANY, company.id)
    return company


def list_companies(db: Session, *, actor: Actor, include_inactive: bool = False) -> list[Company]:
    """List companies visible to the actor (ADMIN and ungranted users get none)."""
    query = db.query(Company)
    visible = visible_company_ids(db, actor, ResourceKind.COMPANY)
    if visible is not None:
        if not visible:
            return []
        query = query.filter(Company.id.in_(visible))
    if not include_inactive:
        query = query.filter(Company.is_active.is_(True))
    return query.order_by(Company.name).all()


def create_company(db: Session, *, actor: Actor | None, name: str) -> Company:
    """Create a contracting company (MANAGER only; actor is None for CLI bootstrap)."""
    if actor is not None:
        decide_role(actor, [Role.MANAGER]).raise_if_denied()

    company = Company(name=_clean_name(name))
    db.add(company)
    db.commit()
    db.refresh(company)

    audit_service.record(
        db,
        actor,
        AuditEntity.COMPANY,
        company.id,
        AuditAction.CREATE,
        after=audit_service.snapshot(company),
    )
    return company


def list_crews(
    db: Session,
    *,
    actor: Actor,
    company_id: UUID,
    include_inactive: bool = False,
) -> list[Crew]:
    """List a company's crews (roster access)."""
    if not db.get(Company, company_id):
        raise NotFoundError("Company not found")
    check_company_access(db, actor, ResourceKind.ROSTER, company_id)

    query = db.query(Crew).filter(Crew.company_id == company_id)
    if not include_inactive:
        query = query.filter(Crew.is_active.is_(True))
    return query.order_by(Crew.name).all()


def create_crew(
    db: Session,
    *,
    actor: Actor,
    company_id: UUID,
    name: str,
    crew_lead: str | None = None,
) -> Crew:
    """
    Add a crew to a company's roster.

    MANAGER for any company; CONTRACTOR for their own company.
    """
    if not db.get(Company, company_id):
        raise NotFoundError("Company not found")
    decide_role(actor, [Role.MANAGER, Role.CONTRACTOR]).raise_if_denied()
    check_company_access(db, actor, ResourceKind.ROSTER, company_id)

    crew = Crew(company_id=company_id, name=_clean_name(name), crew_lead=crew_lead)
    db.add(crew)
    db.commit()
    db.refresh(crew)

    audit_service.record(
        db,
        actor,
        AuditEntity.CREW,
        crew.id,
        AuditAction.CREATE,
        after=audit_service.snapshot(crew),
    )
    return crew
