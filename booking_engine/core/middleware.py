# booking_engine/core/middleware.py
"""Request correlation and access logging"""
import uuid
import time
import logging
from starlette.requests import Request

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


async def correlation_id_middleware(request: Request, call_next):
    """Add correlation ID to all requests for tracing"""
    correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
    request.state.correlation_id = correlation_id

    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = correlation_id
    return response


async def request_logging_middleware(request: Request, call_next):
    """Log every request with its outcome and duration. Must run inside correlation_id_middleware."""
    start_time = time.perf_counter()
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    actor = request.headers.get("X-Actor-Id", "anonymous")

    logger.debug(
        f"Request started: {request.method} {request.url.path}",
        extra={"correlation_id": correlation_id, "actor_id": actor}
    )

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    level = logging.WARNING if response.status_code >= 500 else logging.INFO
    logger.log(
        level,
        f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms}ms",
        extra={
            "correlation_id": correlation_id,
            "actor_id": actor,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        }
    )

    return response
