"""Custom exception hierarchy for servicebay."""

from __future__ import annotations


class ServiceBayError(Exception):
    """Base exception for all servicebay errors."""

    status_code = 500

    def __init__(self, message: str = "Internal server error") -> None:
        self.message = message
        super().__init__(message)


class ValidationError(ServiceBayError):
    """Missing or malformed input; carries per-field details."""

    status_code = 422

    def __init__(self, message: str, *, errors: dict[str, str] | None = None) -> None:
        self.errors = dict(errors or {})
        super().__init__(message)

    @classmethod
    def for_fields(cls, errors: dict[str, str]) -> "ValidationError":
        return cls("Validation failed: " + ", ".join(sorted(errors)), errors=errors)


class InvalidTransition(ValidationError):
    """A status change out of a terminal state."""

    status_code = 409

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(
            f"Cannot change status from '{current}' to '{requested}'",
            errors={"status": f"'{current}' is a final status"},
        )


class NotFound(ServiceBayError):
    """Unknown id, or a resource the caller may not see."""

    status_code = 404


class Unauthorized(ServiceBayError):
    """Missing or invalid credential."""

    status_code = 401


class Forbidden(ServiceBayError):
    """Authenticated, but not allowed to perform the operation."""

    status_code = 403


class Conflict(ServiceBayError):
    """A uniqueness rule would be broken."""

    status_code = 409


class InvalidCredentials(ServiceBayError):
    """Login with an unknown email or a wrong password."""

    status_code = 400
