"""Ticket lifecycle rules: allowed transitions and status classes."""

from app.core.errors import InvalidTransitionError
from app.db.enums import TicketStatus, WorkPhase

S = TicketStatus

TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    S.CREATED: frozenset({S.ASSIGNED, S.CANCELLED}),
    S.ASSIGNED: frozenset({S.ACCEPTED, S.CANCELLED}),
    S.ACCEPTED: frozenset({S.ENROUTE, S.ON_SITE, S.WORKING, S.CANCELLED}),
    S.ENROUTE: frozenset({S.ON_SITE, S.WORKING, S.BLOCKED, S.CANCELLED}),
    S.ON_SITE: frozenset({S.WORKING, S.COMPLETED, S.BLOCKED, S.CANCELLED}),
    S.WORKING: frozenset({S.COMPLETED, S.BLOCKED, S.CANCELLED}),
    S.BLOCKED: frozenset({S.WORKING, S.CANCELLED, S.CLOSED}),
    S.COMPLETED: frozenset({S.CLOSED}),
    S.CLOSED: frozenset(),
    S.CANCELLED: frozenset(),
}

INITIAL_STATUS = S.CREATED

# Crew time is tracked while the ticket is in one of these
WORKING_STATUSES = frozenset({S.ON_SITE, S.WORKING})

# No outgoing transitions; closed_at is set on entry
TERMINAL_STATUSES = frozenset({S.CLOSED, S.CANCELLED})

# Dispatch (assign/reassign) is refused once work is done
NON_DISPATCHABLE_STATUSES = frozenset({S.COMPLETED}) | TERMINAL_STATUSES


def allowed_targets(status: TicketStatus | str) -> frozenset[TicketStatus]:
    """Statuses reachable from `status` in one transition."""
    return TICKET_TRANSITIONS.get(TicketStatus(status), frozenset())


def can_transition(from_status: TicketStatus | str, to_status: TicketStatus | str) -> bool:
    return TicketStatus(to_status) in allowed_targets(from_status)


def validate_transition(from_status: TicketStatus | str, to_status: TicketStatus | str) -> None:
    """Raise InvalidTransitionError if the table has no such edge."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(TicketStatus(from_status).value, TicketStatus(to_status).value)


def is_terminal(status: TicketStatus | str) -> bool:
    return TicketStatus(status) in TERMINAL_STATUSES


def is_working(status: TicketStatus | str) -> bool:
    return TicketStatus(status) in WORKING_STATUSES


def work_phase_change(
    from_status: TicketStatus | str,
    to_status: TicketStatus | str,
) -> WorkPhase | None:
    """
    Classify a status change for time tracking.

    ON_SITE -> WORKING stays inside the working class and yields None.
    """
    was_working = is_working(from_status)
    now_working = is_working(to_status)
    if now_working and not was_working:
        return WorkPhase.ENTERED_WORKING
    if was_working and not now_working:
        return WorkPhase.LEFT_WORKING
    return None
