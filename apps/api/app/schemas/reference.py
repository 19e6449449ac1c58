"""Issue type and storm session schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import DEFAULT_TICKET_PRIORITY, TicketPriority


class IssueTypeCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    code: str = Field(min_length=1, max_length=50)
    default_priority: TicketPriority = DEFAULT_TICKET_PRIORITY


class IssueTypeRead(BaseModel):
    id: UUID
    name: str
    code: str
    default_priority: TicketPriority
    is_active: bool

    model_config = {"from_attributes": True}


class StormSessionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class StormSessionRead(BaseModel):
    id: UUID
    name: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
