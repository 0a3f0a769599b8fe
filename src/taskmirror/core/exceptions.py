"""
Error kinds raised by the store and the sync engine.

Every error carries a human-readable message and the HTTP status class
the API layer maps it to. Nothing here is retried automatically.
"""


class TaskMirrorError(Exception):
    """Base class for all taskmirror errors."""

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TaskMirrorError):
    """Missing required field, malformed filter, or invalid reference id."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class ConflictError(TaskMirrorError):
    """A user with the same email (case-insensitive) already exists."""

    status_code = 409
    error_code = "CONFLICT"


class NotFoundError(TaskMirrorError):
    """Unknown user or task id on a by-id operation."""

    status_code = 404
    error_code = "NOT_FOUND"


class StorageError(TaskMirrorError):
    """The underlying document store failed."""

    status_code = 500
    error_code = "DATABASE_ERROR"
