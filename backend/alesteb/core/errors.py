"""
Application error taxonomy.

Handlers raise these instead of ``HTTPException`` so that every failure
reaches the client as ``{"status": "error", "code": ..., "message": ...}``
and the exception handlers in ``alesteb.main`` can log them uniformly.
"""

from typing import Any, Optional

from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"status": "error", "code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: Any = None):
        super().__init__(f"{resource} not found", details)


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Not authenticated"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Access denied"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Record already exists"


class DatabaseError(AppError):
    status_code = 500
    code = "DATABASE_ERROR"
    default_message = "Database error"


class ExternalServiceError(AppError):
    status_code = 503
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: str = "External service error"):
        self.service = service
        super().__init__(f"{service}: {message}")


# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
INVALID_TEXT_REPRESENTATION = "22P02"


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def translate_db_error(exc: SQLAlchemyError) -> AppError:
    """Map a driver error to the taxonomy without leaking driver codes"""
    state = _sqlstate(exc)
    text = str(getattr(exc, "orig", exc))

    if state == UNIQUE_VIOLATION or "UNIQUE constraint" in text:
        return ConflictError()
    if state == FOREIGN_KEY_VIOLATION or "FOREIGN KEY constraint" in text:
        return ValidationError("Invalid reference")
    if state == NOT_NULL_VIOLATION or "NOT NULL constraint" in text:
        return ValidationError("Missing required field")
    if state == INVALID_TEXT_REPRESENTATION or isinstance(exc, DataError):
        return ValidationError("Invalid data format")
    if isinstance(exc, IntegrityError):
        return ValidationError("Constraint violation")
    return DatabaseError()
