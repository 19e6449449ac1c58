"""FastAPI dependencies for authentication, actor resolution, and database access."""

from typing import Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.session import SessionLocal
from app.schemas.auth import Actor, TokenPayload


# Cookie and header names
COOKIE_NAME = "storm_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Get authenticated user from session cookie.

    Validates:
    - Session cookie exists
    - JWT is valid and not expired
    - User exists and is active
    - Token version matches (for revocation support)

    Raises:
        HTTPException 401: Authentication failed
    """
    # Import here to avoid circular imports
    from app.db.models import User

    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = TokenPayload.model_validate(decode_session_token(token))
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.get(User, payload.sub)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if user.token_version != payload.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_actor(
    request: Request,
    db: Session = Depends(get_db),
) -> Actor:
    """
    Resolve the Actor for this request.

    This is the PRIMARY auth dependency. The returned Actor is passed
    explicitly into every service call.

    Raises:
        HTTPException 401: Not authenticated
        ForbiddenError: User has no role assigned yet
    """
    from app.services import actor_service

    user = get_current_user(request, db)
    return actor_service.actor_from_user(user)


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-only authorization.

    Company-scoped checks happen in the service layer (they need the
    resource's company); this guards role-only endpoints.

    Usage:
        @router.get("/audit", dependencies=[Depends(require_roles([Role.MANAGER]))])
    """
    from app.core.policies import decide_role

    def dependency(request: Request, db: Session = Depends(get_db)) -> Actor:
        actor = get_current_actor(request, db)
        decide_role(actor, allowed_roles).raise_if_denied()
        return actor
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )
