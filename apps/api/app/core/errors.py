"""Typed service errors.

Services raise these; the API layer maps them to HTTP responses in one
exception handler (see app.main).
"""


class StormServiceError(Exception):
    """Base exception for service-layer errors."""

    status_code = 400
    code = "error"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class NotFoundError(StormServiceError):
    """Referenced ticket, assignment, company or other entity does not exist."""

    status_code = 404
    code = "not_found"


class ForbiddenError(StormServiceError):
    """Authorization denied. `reason` is one of the policy engine's strings."""

    status_code = 403
    code = "forbidden"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class InvalidTransitionError(StormServiceError):
    """Requested ticket status is not reachable from the current status."""

    status_code = 409
    code = "invalid_transition"

    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot transition ticket from {from_status} to {to_status}")


class ConflictError(StormServiceError):
    """Concurrent or duplicate mutation (double response, racing assign)."""

    status_code = 409
    code = "conflict"


class InputValidationError(StormServiceError):
    """Malformed input: missing field, unknown enum value, bad reference."""

    status_code = 422
    code = "validation_error"
