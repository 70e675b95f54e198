"""
Error Taxonomy and Safe Messages

Every error that reaches a user is rendered as ``{"error": message}`` where
``message`` is one of a fixed set of sentences. Raw database or upstream
text is logged, never returned.

Classes:
    AppError and its subclasses carry an HTTP status and a safe message.

Functions:
    classify_error: Bucket any exception into an ErrorKind
    safe_error_message: Map any exception to a user-facing sentence
"""

from enum import Enum
from typing import Optional

import httpx
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError


class ErrorKind(str, Enum):
    """Coarse error categories used for user-facing messages."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    CHECK_VIOLATION = "check_violation"
    FOREIGN_KEY = "foreign_key"
    DUPLICATE = "duplicate"
    NOT_NULL = "not_null"
    DATABASE = "database"
    CONNECTIVITY = "connectivity"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"


SAFE_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.PERMISSION: "You do not have permission to perform this action.",
    ErrorKind.CHECK_VIOLATION: "Invalid data provided. Please check your input.",
    ErrorKind.FOREIGN_KEY: "Referenced item does not exist or cannot be removed.",
    ErrorKind.DUPLICATE: "This item already exists.",
    ErrorKind.NOT_NULL: "Required field is missing. Please check your input.",
    ErrorKind.DATABASE: "Database operation failed. Please try again.",
    ErrorKind.CONNECTIVITY: "Connection error. Please check your internet and try again.",
    ErrorKind.AUTHENTICATION: "Please sign in to continue.",
    ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorKind.NOT_FOUND: "The requested item was not found.",
    ErrorKind.VALIDATION: "Invalid data provided. Please check your input.",
    ErrorKind.UNKNOWN: "An error occurred. Please try again.",
}


# =============================================================================
# APPLICATION ERRORS
# =============================================================================

class AppError(Exception):
    """
    Base class for errors whose message is safe to show to users.

    Attributes:
        status_code: HTTP status the error maps to
        message: User-facing text
    """
    status_code: int = 500
    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: Optional[str] = None):
        self.message = message or SAFE_MESSAGES[self.kind]
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    kind = ErrorKind.VALIDATION


class AuthenticationRequired(AppError):
    status_code = 401
    kind = ErrorKind.AUTHENTICATION


class PermissionDenied(AppError):
    status_code = 403
    kind = ErrorKind.PERMISSION


class NotFound(AppError):
    status_code = 404
    kind = ErrorKind.NOT_FOUND


class Conflict(AppError):
    status_code = 409
    kind = ErrorKind.DUPLICATE


class RateLimited(AppError):
    status_code = 429
    kind = ErrorKind.RATE_LIMITED


class PersistenceFailure(AppError):
    status_code = 500
    kind = ErrorKind.DATABASE


class UpstreamError(AppError):
    """An external service (AI gateway, storage) failed."""
    status_code = 502

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


# =============================================================================
# CLASSIFICATION
# =============================================================================

def _error_text(error: BaseException) -> str:
    if isinstance(error, DBAPIError) and error.orig is not None:
        return str(error.orig)
    return str(error)


def classify_error(error: Optional[BaseException]) -> ErrorKind:
    """
    Bucket an exception into an ErrorKind.

    Typed exceptions are checked first; the message text is inspected only
    for backend errors that do not expose a structured code.
    """
    if error is None:
        return ErrorKind.UNKNOWN
    if isinstance(error, AppError):
        return error.kind
    if isinstance(error, (httpx.TransportError, ConnectionError, TimeoutError)):
        return ErrorKind.CONNECTIVITY

    text = _error_text(error)
    lowered = text.lower()

    if "row-level security" in lowered or "RLS" in text or "permission denied" in lowered:
        return ErrorKind.PERMISSION
    if "check constraint" in lowered:
        return ErrorKind.CHECK_VIOLATION
    if "foreign key" in lowered:
        return ErrorKind.FOREIGN_KEY
    if "duplicate key" in lowered or "unique constraint" in lowered or "already exists" in lowered:
        return ErrorKind.DUPLICATE
    if "not-null" in lowered or "not null" in lowered or "null value" in lowered:
        return ErrorKind.NOT_NULL

    if isinstance(error, OperationalError) and getattr(error, "connection_invalidated", False):
        return ErrorKind.CONNECTIVITY
    if "network" in lowered or "failed to fetch" in lowered or "timeout" in lowered \
            or "connection refused" in lowered:
        return ErrorKind.CONNECTIVITY
    if "not authenticated" in lowered or "jwt" in lowered:
        return ErrorKind.AUTHENTICATION
    if isinstance(error, (IntegrityError, SQLAlchemyError)) or "postgres" in lowered \
            or "pgrst" in lowered:
        return ErrorKind.DATABASE

    return ErrorKind.UNKNOWN


def safe_error_message(error: Optional[BaseException]) -> str:
    """Return a user-facing sentence that never leaks backend details."""
    if isinstance(error, AppError):
        return error.message
    return SAFE_MESSAGES[classify_error(error)]


def status_for_kind(kind: ErrorKind) -> int:
    """HTTP status used when a non-AppError of this kind escapes a handler."""
    return {
        ErrorKind.PERMISSION: 403,
        ErrorKind.AUTHENTICATION: 401,
        ErrorKind.DUPLICATE: 409,
        ErrorKind.CHECK_VIOLATION: 400,
        ErrorKind.NOT_NULL: 400,
        ErrorKind.FOREIGN_KEY: 409,
        ErrorKind.CONNECTIVITY: 503,
    }.get(kind, 500)
