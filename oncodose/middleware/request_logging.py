"""
Request Logging Middleware
One access log record per request, carrying the structured-logging fields.
"""
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from oncodose.utils.logging import get_logger

logger = get_logger("oncodose.access")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log method, route, status and latency for every request.

    Reuses an incoming X-Request-ID or generates one, and echoes it on the
    response. Request bodies (patient data) are never logged.
    """

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request failed",
                extra={
                    "req_id": req_id,
                    "route": request.url.path,
                    "method": request.method,
                    "status": 500,
                    "latency_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            raise

        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {latency_ms}ms",
            extra={
                "req_id": req_id,
                "route": request.url.path,
                "method": request.method,
                "status": response.status_code,
                "latency_ms": latency_ms,
            },
        )
        response.headers[REQUEST_ID_HEADER] = req_id
        return response
