"""Tests for structured logging helpers."""

from app.core.structured_logging import build_log_context


def test_build_log_context_includes_only_provided_fields():
    context = build_log_context(
        actor_id="user-1",
        company_id="company-1",
        ticket_id="ticket-1",
        request_id="req-1",
        route="/tickets",
        method="GET",
    )

    assert context == {
        "actor_id": "user-1",
        "company_id": "company-1",
        "ticket_id": "ticket-1",
        "request_id": "req-1",
        "route": "/tickets",
        "method": "GET",
    }


def test_build_log_context_ignores_empty_fields():
    context = build_log_context(
        actor_id="",
        company_id=None,
        request_id="req-1",
    )

    assert context == {"request_id": "req-1"}
