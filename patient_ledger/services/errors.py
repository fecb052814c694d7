"""Ledger error taxonomy.

Every error carries a machine-readable ``code`` and the HTTP status the API
layer answers with, so callers always receive kind + message.
"""


class LedgerError(Exception):
    """Base ledger error."""

    code = "ledger_error"
    http_status = 400

    def __init__(self, message: str):
        """Initialize error."""
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Bad input: non-positive amount, malformed date, missing field."""

    code = "validation_error"
    http_status = 422


class NotFoundError(LedgerError):
    """Unknown patient or ledger entity."""

    code = "not_found"
    http_status = 404


class ConflictError(LedgerError):
    """Concurrent modification could not be resolved."""

    code = "conflict"
    http_status = 409


class StorageError(LedgerError):
    """Transaction or storage failure; nothing was committed."""

    code = "storage_error"
    http_status = 500


class DeadlineExceededError(LedgerError):
    """Batch operation ran past its deadline or was cancelled."""

    code = "deadline_exceeded"
    http_status = 504


__all__ = [
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
    "DeadlineExceededError",
]
