"""Audit trail enums."""

from enum import Enum


class AuditAction(str, Enum):
    """Audit actions (stored in a 20-char column)."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_CHANGE = "STATUS_CHANGE"
    ASSIGN = "ASSIGN"
    REASSIGN = "REASSIGN"
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    GRANT = "GRANT"
    REVOKE = "REVOKE"


class AuditEntity(str, Enum):
    """Audited entity kinds (table names)."""

    TICKET = "tickets"
    TICKET_ASSIGNMENT = "ticket_assignments"
    TICKET_STATUS_EVENT = "ticket_status_events"
    TICKET_WORK_SEGMENT = "ticket_work_segments"
    COMPANY = "companies"
    CREW = "crews"
    USER = "users"
    USER_COMPANY_ACCESS = "user_company_access"
    ISSUE_TYPE = "issue_types"
    STORM_SESSION = "storm_sessions"
