"""Error taxonomy for the booking and payment flow.

Domain code raises these; the app factory renders them as
{"success": false, "message": ...} with the matching HTTP status.
"""

from __future__ import annotations


class TripdeskError(Exception):
    """Base class for errors that map to a client-facing HTTP status."""

    status_code = 500
    public_message: str | None = None

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def client_message(self) -> str:
        """Message safe to return to the caller."""
        return self.public_message or self.message


class ValidationError(TripdeskError):
    """Client-supplied data is missing or malformed."""

    status_code = 400

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        self.fields = fields or []
        super().__init__(message)


class NotFoundError(TripdeskError):
    status_code = 404


class ConflictError(TripdeskError):
    status_code = 409


class SignatureMismatchError(TripdeskError):
    """Payment callback authenticity check failed.

    The client message never says which part of the signature was wrong.
    """

    status_code = 400
    public_message = "Payment verification failed: invalid signature"


class GatewayError(TripdeskError):
    """Payment provider unreachable or returned an unexpected shape."""

    status_code = 502


class ConfigurationError(TripdeskError):
    """Secrets or credentials are missing."""

    status_code = 500
    public_message = "Server payment configuration error"


class InternalError(TripdeskError):
    status_code = 500
    public_message = "Internal server error"


class AuthenticationError(TripdeskError):
    status_code = 401


class PermissionDeniedError(TripdeskError):
    status_code = 403
