# booking_engine/core/exceptions.py
"""
Scheduling error taxonomy.

Raised by the service layer and rendered by the handlers registered in
main.py. Every error carries a stable machine-readable ``code`` next to the
human-readable message; localization is left to the client.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""
    status_code = 500
    default_code = "SCHEDULING_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(SchedulingError):
    """Malformed input: missing fields, non-positive duration, out-of-range rating."""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(SchedulingError):
    """Unknown business, service, reservation, waitlist entry or review."""
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(SchedulingError):
    """Slot no longer available, or the record is in the wrong state."""
    status_code = 409
    default_code = "CONFLICT"


class ForbiddenError(SchedulingError):
    """Actor lacks permission for the requested operation."""
    status_code = 403
    default_code = "FORBIDDEN"


class StoreError(SchedulingError):
    """Underlying persistence failure."""
    status_code = 503
    default_code = "STORE_ERROR"


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}", extra={"correlation_id": correlation_id})
    else:
        logger.info(f"Rejected request with {exc.code}: {exc.message}", extra={"correlation_id": correlation_id})

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
