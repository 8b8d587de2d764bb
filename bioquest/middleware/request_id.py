"""Request ID middleware.

Reuses a client-supplied X-Request-ID when it looks sane, otherwise assigns a
fresh UUID, and echoes it in the response header.
"""

import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

MAX_REQUEST_ID_LENGTH = 128


def _incoming_request_id(request: Request) -> str | None:
    value = (request.headers.get("X-Request-ID") or "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH or not value.isprintable():
        return None
    return value


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Sets request.state.request_id and the X-Request-ID response header."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = _incoming_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id
        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
