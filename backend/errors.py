"""
Typed application errors.

Services and permission checks raise these; the handlers registered in
main.py turn them into JSON responses. Nothing here formats responses or
logs on its own.
"""

from fastapi import status


class AppError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad Request"


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not Found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InternalServerError(AppError):
    pass


def is_duplicate_error(error: Exception) -> bool:
    """
    Check whether a database error is a unique constraint violation.

    Works for both SQLite ("UNIQUE constraint failed") and PostgreSQL
    ("duplicate key value violates unique constraint").
    """
    message = str(getattr(error, "orig", error)).lower()
    return "unique constraint" in message or "duplicate key" in message
