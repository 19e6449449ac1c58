"""Service layer modules."""

# Import service modules (not individual functions) for cleaner access
from app.services import audit_service
from app.services import actor_service
from app.services import grant_service
from app.services import company_service
from app.services import issue_type_service
from app.services import storm_session_service
from app.services import user_service
from app.services import work_segment_service
from app.services import ticket_events
from app.services import ticket_status_service
from app.services import assignment_service
from app.services import ticketing_service

__all__ = [
    "audit_service",
    "actor_service",
    "grant_service",
    "company_service",
    "issue_type_service",
    "storm_session_service",
    "user_service",
    "work_segment_service",
    "ticket_events",
    "ticket_status_service",
    "assignment_service",
    "ticketing_service",
]
