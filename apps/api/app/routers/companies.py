"""Companies, crew rosters, and UTILITY company grants."""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from app.core.deps import get_current_actor, get_db, require_csrf_header
from app.schemas.auth import Actor
from app.schemas.company import (
    CompanyCreate,
    CompanyRead,
    CrewCreate,
    CrewRead,
    GrantCreate,
    GrantRead,
)
from app.services import company_service, grant_service

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.get("", response_model=list[CompanyRead])
def list_companies(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[CompanyRead]:
    companies = company_service.list_companies(db, actor=actor, include_inactive=include_inactive)
    return [CompanyRead.model_validate(c) for c in companies]


@router.post(
    "",
    response_model=CompanyRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_company(
    data: CompanyCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> CompanyRead:
    company = company_service.create_company(db, actor=actor, name=data.name)
    return CompanyRead.model_validate(company)


@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> CompanyRead:
    company = company_service.get_company(db, actor=actor, company_id=company_id)
    return CompanyRead.model_validate(company)


# ============================================================================
# Crews
# ============================================================================

@router.get("/{company_id}/crews", response_model=list[CrewRead])
def list_crews(
    company_id: UUID,
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[CrewRead]:
    crews = company_service.list_crews(
        db, actor=actor, company_id=company_id, include_inactive=include_inactive
    )
    return [CrewRead.model_validate(c) for c in crews]


@router.post(
    "/{company_id}/crews",
    response_model=CrewRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_crew(
    company_id: UUID,
    data: CrewCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> CrewRead:
    crew = company_service.create_crew(
        db, actor=actor, company_id=company_id, name=data.name, crew_lead=data.crew_lead
    )
    return CrewRead.model_validate(crew)


# ============================================================================
# UTILITY grants
# ============================================================================

@router.get("/{company_id}/grants", response_model=list[GrantRead])
def list_grants(
    company_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[GrantRead]:
    grants = grant_service.list_grants(db, actor=actor, company_id=company_id)
    return [GrantRead.model_validate(g) for g in grants]


@router.post(
    "/{company_id}/grants",
    response_model=GrantRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def grant_access(
    company_id: UUID,
    data: GrantCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> GrantRead:
    """Give a UTILITY user access to this company's data (MANAGER)."""
    grant = grant_service.grant_company_access(
        db, actor=actor, company_id=company_id, user_id=data.user_id
    )
    return GrantRead.model_validate(grant)


@router.delete(
    "/{company_id}/grants/{user_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def revoke_access(
    company_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> Response:
    grant_service.revoke_company_access(db, actor=actor, company_id=company_id, user_id=user_id)
    return Response(status_code=204)
