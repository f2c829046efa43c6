"""
Domain error hierarchy.

Services raise these exceptions and never build HTTP responses
themselves.  ``main.create_app`` registers a single handler that
renders any ``HomefixError`` as ``{"message": ..., "code": ...}`` with
the status code carried by the exception class, so every endpoint
maps errors the same way.
"""

from typing import Optional


class HomefixError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationError(HomefixError):
    """Malformed or missing input, or a schema constraint violation."""

    status_code = 400
    code = "validation_error"


class InvalidState(HomefixError):
    """The entity is not in a state that permits the operation."""

    status_code = 400
    code = "invalid_state"


class InvalidTransition(HomefixError):
    """A booking status change that the lifecycle table does not allow."""

    status_code = 400
    code = "invalid_transition"


class Unauthenticated(HomefixError):
    status_code = 401
    code = "not_authenticated"


class Forbidden(HomefixError):
    """The caller lacks the required relationship to the entity."""

    status_code = 403
    code = "forbidden"


class NotFound(HomefixError):
    status_code = 404
    code = "not_found"


class Conflict(HomefixError):
    """A unique field (email, phone number) is already taken."""

    status_code = 409
    code = "conflict"


class UpstreamError(HomefixError):
    """The payment gateway rejected the request or could not be reached.

    ``code`` carries the gateway's own reason (``card_declined``,
    ``amount_too_small``...) so clients can react to the specific
    failure.
    """

    status_code = 502
    code = "upstream_error"


class InternalError(HomefixError):
    status_code = 500
    code = "internal_error"
