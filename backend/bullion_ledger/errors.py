"""
Typed errors raised by the ledger services.

Every public service operation either fully applies or raises one of these.
Routes translate them to JSON bodies using ``status_code`` and ``code``.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError


class LedgerError(Exception):
    """Base class for all ledger domain errors."""

    status_code = 500
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LedgerError):
    """400-level input problem, detected before any write."""

    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(LedgerError):
    """404-level: transaction, party, stock item or inventory absent."""

    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(LedgerError):
    """409-level: duplicate voucher number or transaction id."""

    status_code = 409
    default_code = "CONFLICT"


class InvariantViolationError(LedgerError):
    """Business invariant would be broken by the requested change."""

    status_code = 422
    default_code = "INVARIANT_VIOLATION"


class PersistenceError(LedgerError):
    """Storage unavailable or failed mid-unit. Message never carries driver internals."""

    status_code = 503
    default_code = "DATABASE_ERROR"


def translate_db_error(exc: Exception) -> LedgerError:
    if isinstance(exc, LedgerError):
        return exc
    if isinstance(exc, IntegrityError):
        return ConflictError("Duplicate record detected", "DUPLICATE_TRANSACTION")
    if isinstance(exc, SQLAlchemyError):
        return PersistenceError("Database error occurred")
    return LedgerError("Internal server error occurred")
