"""API error handling and response helpers."""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from patient_ledger.services.errors import LedgerError, ValidationError

logger = logging.getLogger(__name__)


def error_response(error: LedgerError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Render a LedgerError as its HTTP status plus the standard error body."""
    if exc.http_status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request-body and query validation failures like ValidationError."""
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    )
    error = ValidationError(problems or "Invalid request")
    return JSONResponse(
        status_code=ValidationError.http_status,
        content=error_response(error),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the ledger error handlers on an application."""
    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)


__all__ = ["error_response", "register_error_handlers"]
