"""User management (ADMIN)."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_current_actor, get_db, require_csrf_header
from app.db.enums import Role
from app.schemas.auth import Actor
from app.schemas.user import UserCreate, UserRead, UserUpdate
from app.services import user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", response_model=list[UserRead])
def list_users(
    role: Role | None = None,
    company_id: UUID | None = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> list[UserRead]:
    users = user_service.list_users(db, actor=actor, role=role, company_id=company_id)
    return [UserRead.model_validate(u) for u in users]


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_user(
    data: UserCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> UserRead:
    user = user_service.create_user(
        db,
        actor=actor,
        email=data.email,
        role=data.role,
        company_id=data.company_id,
        first_name=data.first_name,
        last_name=data.last_name,
    )
    return UserRead.model_validate(user)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> UserRead:
    return UserRead.model_validate(user_service.get_user(db, actor=actor, user_id=user_id))


@router.patch(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> UserRead:
    """Change role, company binding, or active flag. Revokes existing sessions."""
    user = user_service.update_user(
        db,
        actor=actor,
        user_id=user_id,
        updates=data.model_dump(exclude_unset=True),
    )
    return UserRead.model_validate(user)
