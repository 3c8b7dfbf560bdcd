"""Request logging middleware."""
import logging
import time

from fastapi import Request

logger = logging.getLogger(__name__)


async def log_requests(request: Request, call_next):
    """Log method, URI, status and duration of every request."""
    start_time = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start_time) * 1000

    logger.info(f"{request.method} {request.url} {response.status_code} ({duration_ms:.0f} ms)")
    return response
