"""
Request logging middleware
"""
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from logging_config import get_logger, set_request_id

logger = get_logger("gateway.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request. Headers are never logged, so API keys stay out of the logs."""

    async def dispatch(self, request: Request, call_next):
        request_id = set_request_id(request.headers.get("X-Request-ID"))
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "Request failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        logger.info(
            "Request handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response
