"""User-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr

from app.db.enums import Role


class UserCreate(BaseModel):
    """Request schema for registering a user (ADMIN)."""

    email: EmailStr
    role: Role | None = None
    company_id: UUID | None = None
    first_name: str | None = None
    last_name: str | None = None


class UserRead(BaseModel):
    """Response schema for reading a user."""

    id: UUID
    email: str | None
    display_name: str
    first_name: str | None = None
    last_name: str | None = None
    role: Role | None = None
    company_id: UUID | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    """Request schema for updating a user's role, company, or status."""

    role: Role | None = None
    company_id: UUID | None = None
    is_active: bool | None = None
    first_name: str | None = None
    last_name: str | None = None
