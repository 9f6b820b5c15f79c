"""Request logging middleware."""

import time
import uuid

from fastapi import Request

from src.utils.logger import get_logger, set_request_id

log = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def logging_middleware(request: Request, call_next):
    """Bind a request id, log the request outcome and echo the id back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        log.exception(
            "request failed",
            method=request.method,
            path=request.url.path,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        raise

    duration_ms = round((time.perf_counter() - start) * 1000, 1)
    if not request.url.path.endswith("/health"):
        log.info(
            "request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
    response.headers[REQUEST_ID_HEADER] = request_id
    return response
