"""Logging middleware for request tracking and structured logging."""

import json
import logging
import sys
import time
import uuid
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

# Configure structured logging
logging.basicConfig(
    level=logging.INFO,
    format='%(message)s',  # We'll format as JSON ourselves
    stream=sys.stdout
)

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs one JSON line per request.

    Logs include:
    - Request ID
    - HTTP method and path
    - Status code and processing time
    - Client IP
    - Paper generation outcome (generation method, whether the bank fallback ran)

    Never logs API keys (including X-Gemini-Api-Key) or request/response bodies.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Process request and log structured information."""
        request_id = getattr(request.state, "request_id", None) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        log_data: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "user_ip": request.client.host if request.client else "unknown",
        }

        try:
            response = await call_next(request)
        except Exception as e:
            processing_time_ms = (time.time() - start_time) * 1000
            error_log = {
                **log_data,
                "status_code": 500,
                "processing_time_ms": round(processing_time_ms, 2),
                "error": str(e),
                "error_type": type(e).__name__,
                "message": f"Request failed: {request.method} {request.url.path}",
            }
            logger.error(json.dumps(error_log), exc_info=True)
            raise

        processing_time_ms = (time.time() - start_time) * 1000

        log_data.update({
            "status_code": response.status_code,
            "processing_time_ms": round(processing_time_ms, 2),
        })

        if "X-Generation-Method" in response.headers:
            log_data["generation_method"] = response.headers["X-Generation-Method"]
        if "X-Fallback-Used" in response.headers:
            log_data["fallback_used"] = response.headers["X-Fallback-Used"] == "true"

        logger.info(json.dumps(log_data))

        response.headers["X-Request-ID"] = request_id

        return response


def get_request_id(request: Request) -> str:
    """Get the request ID from the request state ("unknown" if unset)."""
    return getattr(request.state, "request_id", "unknown")
