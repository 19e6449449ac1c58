"""Reference data: issue types and storm sessions."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_current_actor, get_db, require_csrf_header
from app.schemas.auth import Actor
from app.schemas.reference import (
    IssueTypeCreate,
    IssueTypeRead,
    StormSessionCreate,
    StormSessionRead,
)
from app.services import issue_type_service, storm_session_service

router = APIRouter(tags=["Reference"])


@router.get("/issue-types", response_model=list[IssueTypeRead])
def list_issue_types(
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[IssueTypeRead]:
    issue_types = issue_type_service.list_issue_types(db, include_inactive=include_inactive)
    return [IssueTypeRead.model_validate(i) for i in issue_types]


@router.post(
    "/issue-types",
    response_model=IssueTypeRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_issue_type(
    data: IssueTypeCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> IssueTypeRead:
    issue_type = issue_type_service.create_issue_type(
        db,
        actor=actor,
        name=data.name,
        code=data.code,
        default_priority=data.default_priority,
    )
    return IssueTypeRead.model_validate(issue_type)


@router.get("/storm-sessions", response_model=list[StormSessionRead])
def list_storm_sessions(
    active_only: bool = False,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[StormSessionRead]:
    sessions = storm_session_service.list_sessions(db, active_only=active_only)
    return [StormSessionRead.model_validate(s) for s in sessions]


@router.post(
    "/storm-sessions",
    response_model=StormSessionRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_storm_session(
    data: StormSessionCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> StormSessionRead:
    """Open a storm session (ADMIN or MANAGER)."""
    storm_session = storm_session_service.create_session(db, actor=actor, name=data.name)
    return StormSessionRead.model_validate(storm_session)
