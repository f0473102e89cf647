"""
Application error taxonomy.

Services raise these; `main.py` turns them into JSON responses.
Every failure is terminal for the call that raised it.
"""
from fastapi import status


class MemoriaError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(MemoriaError):
    """Referenced user, album or photo does not exist (or is not visible)."""

    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(MemoriaError):
    """Caller is not the owner of the resource."""

    code = "UNAUTHORIZED"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidInputError(MemoriaError):
    """Input passed the schema but breaks a business rule."""

    code = "VALIDATION_FAILED"
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(MemoriaError):
    """A unique value (e.g. username) is already taken."""

    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
