"""Structured logging helpers (PII-safe)."""

from typing import Any


def build_log_context(
    *,
    actor_id: str | None = None,
    company_id: str | None = None,
    ticket_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a PII-safe log context dict (IDs only, never names or emails)."""
    context: dict[str, Any] = {}
    if actor_id:
        context["actor_id"] = actor_id
    if company_id:
        context["company_id"] = company_id
    if ticket_id:
        context["ticket_id"] = ticket_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
