"""Enum definitions for application constants."""

from app.db.enums.audit import AuditAction, AuditEntity
from app.db.enums.auth import ROLES_CAN_DISPATCH, ROLES_CAN_MANAGE_SESSIONS, Role
from app.db.enums.ticketing import (
    DEFAULT_TICKET_PRIORITY,
    AssignmentAction,
    AssignmentStatus,
    TicketPriority,
    TicketStatus,
    WorkPhase,
)

__all__ = [
    "AuditAction",
    "AuditEntity",
    "AssignmentAction",
    "AssignmentStatus",
    "DEFAULT_TICKET_PRIORITY",
    "ROLES_CAN_DISPATCH",
    "ROLES_CAN_MANAGE_SESSIONS",
    "Role",
    "TicketPriority",
    "TicketStatus",
    "WorkPhase",
]
