"""Pydantic schemas for API request/response models."""

from app.schemas.auth import Actor, MeResponse, TokenPayload
from app.schemas.audit import AuditLogRead
from app.schemas.company import CompanyCreate, CompanyRead, CrewCreate, CrewRead, GrantCreate, GrantRead
from app.schemas.reference import IssueTypeCreate, IssueTypeRead, StormSessionCreate, StormSessionRead
from app.schemas.ticketing import (
    AssignmentRead,
    AssignmentRespondRequest,
    StatusEventRead,
    TicketAssignRequest,
    TicketCreateRequest,
    TicketDetailResponse,
    TicketListResponse,
    TicketPatchRequest,
    TicketRead,
    TicketStatusRequest,
    WorkSegmentRead,
)
from app.schemas.user import UserCreate, UserRead, UserUpdate

__all__ = [
    "Actor",
    "MeResponse",
    "TokenPayload",
    "AuditLogRead",
    "CompanyCreate",
    "CompanyRead",
    "CrewCreate",
    "CrewRead",
    "GrantCreate",
    "GrantRead",
    "IssueTypeCreate",
    "IssueTypeRead",
    "StormSessionCreate",
    "StormSessionRead",
    "AssignmentRead",
    "AssignmentRespondRequest",
    "StatusEventRead",
    "TicketAssignRequest",
    "TicketCreateRequest",
    "TicketDetailResponse",
    "TicketListResponse",
    "TicketPatchRequest",
    "TicketRead",
    "TicketStatusRequest",
    "WorkSegmentRead",
    "UserCreate",
    "UserRead",
    "UserUpdate",
]
