from typing import Optional


class HouseholdError(Exception):
    """Base error rendered as ``{"success": false, "error": message}``."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(HouseholdError):
    status_code = 404
    default_message = "Not found"


class ValidationError(HouseholdError):
    status_code = 400
    default_message = "Invalid request"


class RecurrenceError(ValidationError):
    default_message = "Unrecognized recurrence"


class UpstreamError(HouseholdError):
    status_code = 502
    default_message = "Upstream service failed"


class ServiceNotConfiguredError(UpstreamError):
    status_code = 503
    default_message = "AI service is not configured"


class AuthenticationError(HouseholdError):
    status_code = 401
    default_message = "Authentication required"
