"""
Error taxonomy for fleet_db.

    FleetDBError
        NotInitializedError      – query issued before the provider is acquired
        DatabaseConnectionError  – backend unreachable / probe failed / config missing
        TranslationError         – reserved for malformed neutral queries
        SchemaCheckError         – the table existence lookup itself failed
        TransactionFailure       – a statement inside the reset transaction failed

Native driver errors (sqlite3.Error, psycopg2.Error) are never wrapped by the
query facade. Only the reset orchestrator wraps, and always chains the
original error with ``raise ... from``.

describe_failure() maps an exception to the payload handed to
administrative callers; it is the only place user-facing wording lives.
"""

from __future__ import annotations

import traceback
from typing import Any, Dict, Optional


class FleetDBError(Exception):
    """Base class for all fleet_db errors."""


class NotInitializedError(FleetDBError):
    """A query/execute call happened before the connection was acquired."""


class DatabaseConnectionError(FleetDBError, ConnectionError):
    """Backend unreachable, liveness probe failed or configuration missing."""


class TranslationError(FleetDBError):
    """
    Reserved for malformed neutral queries.

    Placeholder/parameter mismatches currently surface as native execution
    errors at call time.
    """


class SchemaCheckError(FleetDBError):
    """The catalog query used to test table existence failed."""

    def __init__(self, table: str, message: str):
        super().__init__(message)
        self.table = table


class TransactionFailure(FleetDBError):
    """
    A statement inside the reset transaction failed.

    The transaction has already been rolled back when this is raised. The
    original exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, message: str, *, table: Optional[str] = None,
                 cause: Optional[BaseException] = None):
        super().__init__(message)
        self.table = table
        self.cause = cause
        self.code = error_code(cause) if cause is not None else None


# ----------------------------------------------------------------------
# Boundary mapping
# ----------------------------------------------------------------------

_KNOWN_CODES = {
    "22007": (
        "Invalid date format",
        "A date value had an invalid format. The transaction was rolled back.",
    ),
    "42P18": (
        "SQL parameter error",
        "A SQL parameter could not be typed. The transaction was rolled back.",
    ),
    "23503": (
        "Foreign key violation",
        "Rows are still referenced by another table. The transaction was rolled back.",
    ),
}

_GENERIC = (
    "Failed to reset data",
    "An error occurred while resetting operational data. "
    "The transaction was rolled back.",
)


def error_code(exc: Optional[BaseException]) -> Optional[str]:
    """
    Return the native error code of an exception or of its causes.

    psycopg2 exposes ``pgcode`` (SQLSTATE), sqlite3 exposes
    ``sqlite_errorname`` (Python 3.11+).
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))
        for attr in ("pgcode", "sqlite_errorname", "code"):
            value = getattr(exc, attr, None)
            if isinstance(value, str) and value:
                return value
        exc = exc.__cause__ or exc.__context__
    return None


def describe_failure(exc: BaseException, *, production: bool) -> Dict[str, Any]:
    """
    Build the payload an administrative caller receives for a failure.

    Production mode returns only a generic error/message pair. Otherwise the
    message, native error code and formatted traceback are included.
    """
    code = error_code(exc)
    title, message = _KNOWN_CODES.get(code or "", _GENERIC)

    if isinstance(exc, DatabaseConnectionError):
        title, message = "Database unavailable", "The database could not be reached."
    elif isinstance(exc, NotInitializedError):
        title, message = "Database not initialized", "The database connection is not ready."

    payload: Dict[str, Any] = {"error": title, "message": message}

    if not production:
        payload["detail"] = str(exc)
        payload["code"] = code
        payload["traceback"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )

    return payload


__all__ = [
    "FleetDBError",
    "NotInitializedError",
    "DatabaseConnectionError",
    "TranslationError",
    "SchemaCheckError",
    "TransactionFailure",
    "error_code",
    "describe_failure",
]
