"""Ticket lifecycle and crew assignment enums."""

from enum import Enum


class TicketStatus(str, Enum):
    """Ticket lifecycle status."""

    CREATED = "CREATED"
    ASSIGNED = "ASSIGNED"
    ACCEPTED = "ACCEPTED"
    ENROUTE = "ENROUTE"
    ON_SITE = "ON_SITE"
    WORKING = "WORKING"
    BLOCKED = "BLOCKED"
    COMPLETED = "COMPLETED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class TicketPriority(str, Enum):
    """Ticket priority level (P1 = critical)."""

    P1 = "P1"
    P2 = "P2"
    P3 = "P3"
    P4 = "P4"


DEFAULT_TICKET_PRIORITY = TicketPriority.P2


class AssignmentStatus(str, Enum):
    """Crew assignment response status."""

    PENDING_ACCEPT = "PENDING_ACCEPT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    REASSIGNED = "REASSIGNED"


class AssignmentAction(str, Enum):
    """Contractor response to a pending assignment."""

    ACCEPT = "accept"
    REJECT = "reject"


class WorkPhase(str, Enum):
    """Work-phase change emitted by a status transition."""

    ENTERED_WORKING = "entered_working"
    LEFT_WORKING = "left_working"
