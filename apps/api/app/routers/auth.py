"""Authentication router - current session identity and logout."""

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import COOKIE_NAME, get_current_user, get_db, require_csrf_header
from app.schemas.auth import MeResponse
from app.services import actor_service

router = APIRouter()


@router.get("/me", response_model=MeResponse)
def me(request: Request, db: Session = Depends(get_db)) -> MeResponse:
    """Return the authenticated user with their resolved role and company."""
    user = get_current_user(request, db)
    actor = actor_service.actor_from_user(user)
    return MeResponse(
        user_id=user.id,
        email=user.email,
        display_name=user.display_name,
        role=actor.role,
        company_id=actor.company_id,
    )


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response) -> dict:
    """Clear the session cookie."""
    response.delete_cookie(
        COOKIE_NAME,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )
    return {"status": "logged_out"}
