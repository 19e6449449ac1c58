"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    token_version: int


class Actor(BaseModel):
    """
    Resolved identity for one request: who is acting, in which role, for
    which company.

    Immutable and passed explicitly to every service call; never stored on
    shared state. UTILITY company grants are not part of the actor, they are
    looked up on each authorization decision.
    """
    model_config = ConfigDict(frozen=True)

    id: UUID
    role: Role
    company_id: UUID | None = None


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    user_id: UUID
    email: str | None
    display_name: str
    role: Role
    company_id: UUID | None = None
