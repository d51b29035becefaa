"""Domain errors raised by the grading workflow.

Each error carries the HTTP status it maps to and a message that is safe to
show to the caller. ``gradeflow.core.error_handlers`` turns them into the
``{"success": false, "error": ...}`` envelope.
"""

from fastapi import status


class AppError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request could not be completed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidIdentifierError(AppError):
    """Malformed or placeholder identifier, rejected before any store access."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "This link is invalid."

    def __init__(self, label: str = "id", value: object = None):
        self.label = label
        self.value = value
        super().__init__(self.default_message)


class ValidationError(AppError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Invalid input."

    def __init__(self, message: str | None = None, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidStateError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "This operation is not allowed in the submission's current state."


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found."


class UnauthorizedError(AppError):
    # never says which resource exists or who owns it
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied."

    def __init__(self, reason: str | None = None):
        self.reason = reason
        super().__init__(self.default_message)


class ConcurrentOperationError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Another change to this submission is in progress. Reload and try again."


GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."
