"""Pydantic schemas for ticket, assignment, and work segment APIs."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.db.enums import AssignmentAction, TicketPriority, TicketStatus


class TicketCreateRequest(BaseModel):
    """Create an unassigned ticket in a storm session."""

    session_id: UUID
    issue_type_id: UUID
    priority: TicketPriority | None = None
    title: str | None = Field(default=None, max_length=500)
    description: str | None = None
    external_ref: str | None = Field(default=None, max_length=255)
    address_text: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)
    feeder: str | None = None
    circuit: str | None = None
    note: str | None = None


class TicketPatchRequest(BaseModel):
    """Edit descriptive ticket fields (only provided fields change)."""

    priority: TicketPriority | None = None
    title: str | None = Field(default=None, max_length=500)
    description: str | None = None
    external_ref: str | None = Field(default=None, max_length=255)
    address_text: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)
    feeder: str | None = None
    circuit: str | None = None


class TicketAssignRequest(BaseModel):
    company_id: UUID
    crew_id: UUID
    note: str | None = None


class TicketStatusRequest(BaseModel):
    # Plain string so unknown values surface as the service's validation error
    status: str
    note: str | None = None


class AssignmentRespondRequest(BaseModel):
    action: AssignmentAction
    note: str | None = None


class TicketRead(BaseModel):
    id: UUID
    session_id: UUID
    company_id: UUID | None = None
    issue_type_id: UUID
    priority: TicketPriority
    status: TicketStatus
    title: str | None = None
    description: str | None = None
    external_ref: str | None = None
    address_text: str | None = None
    lat: float | None = None
    lon: float | None = None
    feeder: str | None = None
    circuit: str | None = None
    created_by_user_id: UUID
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    version: int

    model_config = {"from_attributes": True}


class TicketListResponse(BaseModel):
    """Ticket list response with cursor pagination."""

    items: list[TicketRead]
    next_cursor: str | None = None


class AssignmentRead(BaseModel):
    id: UUID
    ticket_id: UUID
    company_id: UUID
    crew_id: UUID
    status: str
    assigned_by_user_id: UUID
    assigned_at: datetime
    responded_at: datetime | None = None
    response_note: str | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class StatusEventRead(BaseModel):
    id: UUID
    ticket_id: UUID
    old_status: str | None = None
    new_status: str
    changed_by_user_id: UUID
    changed_at: datetime
    note: str | None = None

    model_config = {"from_attributes": True}


class WorkSegmentRead(BaseModel):
    id: UUID
    ticket_id: UUID
    session_id: UUID
    company_id: UUID
    crew_id: UUID
    started_at: datetime
    ended_at: datetime | None = None
    created_by_user_id: UUID

    model_config = {"from_attributes": True}


class TicketDetailResponse(BaseModel):
    """Ticket with active assignment, status history, and work segments."""

    ticket: TicketRead
    active_assignment: AssignmentRead | None = None
    status_events: list[StatusEventRead] = Field(default_factory=list)
    work_segments: list[WorkSegmentRead] = Field(default_factory=list)
