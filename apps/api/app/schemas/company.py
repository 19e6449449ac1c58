"""Company, crew, and grant schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class CompanyRead(BaseModel):
    id: UUID
    name: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CrewCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    crew_lead: str | None = Field(default=None, max_length=255)


class CrewRead(BaseModel):
    id: UUID
    company_id: UUID
    name: str
    crew_lead: str | None = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class GrantCreate(BaseModel):
    user_id: UUID


class GrantRead(BaseModel):
    id: UUID
    user_id: UUID
    company_id: UUID
    granted_by_user_id: UUID | None = None
    granted_at: datetime

    model_config = {"from_attributes": True}
