"""Failure taxonomy shared by services and the HTTP layer.

Each error carries the HTTP status it maps to and a short message that is
safe to show to clients. Provider and database details never go in the
message; they are written to the generation log instead.
"""


class TaskforgeError(Exception):
    """Base class for all expected failures."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TaskforgeError):
    """Missing or empty required input."""
    status_code = 400
    default_message = "Missing required fields"


class Conflict(TaskforgeError):
    """Input collides with existing data (e.g. duplicate email)."""
    status_code = 400
    default_message = "Resource already exists"


class Unauthorized(TaskforgeError):
    """Missing or invalid session."""
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(TaskforgeError):
    """Authenticated, but not the owner of the resource."""
    status_code = 403
    default_message = "Forbidden"


class NotFound(TaskforgeError):
    """Resource absent, or not owned by the requester."""
    status_code = 404
    default_message = "Not found"


class GenerationFailed(TaskforgeError):
    """The text-generation call failed or returned nothing."""
    status_code = 500
    default_message = "Failed to generate tasks"


class ParseError(TaskforgeError):
    """No usable JSON array could be extracted from model output."""
    status_code = 500
    default_message = "Failed to parse task generation response"


class PersistenceError(TaskforgeError):
    """Any store read or write failure."""
    status_code = 500
    default_message = "Database operation failed"
