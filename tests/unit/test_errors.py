"""Unit tests for the ledger error taxonomy and its API rendering."""

import pytest

from patient_ledger.api.errors import error_response
from patient_ledger.services.errors import (
    ConflictError,
    DeadlineExceededError,
    LedgerError,
    NotFoundError,
    StorageError,
    ValidationError,
)


@pytest.mark.parametrize(
    "error_class, code, status",
    [
        (ValidationError, "validation_error", 422),
        (NotFoundError, "not_found", 404),
        (ConflictError, "conflict", 409),
        (StorageError, "storage_error", 500),
        (DeadlineExceededError, "deadline_exceeded", 504),
    ],
)
def test_error_kinds(error_class, code, status):
    """Each error kind carries its code and HTTP status."""
    error = error_class("boom")
    assert isinstance(error, LedgerError)
    assert error.code == code
    assert error.http_status == status
    assert error.message == "boom"
    assert str(error) == "boom"


def test_error_response_shape():
    body = error_response(NotFoundError("Patient 9 not found"))
    assert body == {"error": {"code": "not_found", "message": "Patient 9 not found"}}
