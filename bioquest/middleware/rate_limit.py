"""Rate limiting with slowapi.

AI paper generation is the expensive route (it fans out into several Gemini
calls), so it gets the tightest limit.
"""

import json
from typing import Any

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address


def get_client_ip(request: Request) -> str:
    """
    Get the client IP address from the request.

    X-Forwarded-For is only honoured when the direct peer is one of the
    configured trusted proxies.
    """
    from bioquest.config import get_settings

    direct_ip: str = get_remote_address(request)

    settings = get_settings()
    if not settings.trusted_proxies:
        return direct_ip

    trusted_proxy_list = [
        ip.strip() for ip in settings.trusted_proxies.split(",")
        if ip.strip()
    ]

    if direct_ip in trusted_proxy_list:
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

    return direct_ip


# In-memory storage, keyed by client IP
limiter = Limiter(key_func=get_client_ip, default_limits=["200/minute"])


RATE_LIMITS = {
    "generate": "10/minute",   # POST /api/papers/generate - may call Gemini many times
    "solve": "60/minute",      # POST /api/distribution/solve - CPU only
    "papers": "100/minute",    # archive and draft reads/writes
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """
    Return 429 with Retry-After, X-RateLimit-Limit and X-RateLimit-Remaining.
    """
    retry_after = getattr(exc, "retry_after", 60)

    error_body = {
        "detail": "Rate limit exceeded",
        "message": f"Too many requests. Please retry after {retry_after} seconds.",
        "retry_after": retry_after,
    }

    response = Response(
        content=json.dumps(error_body),
        status_code=429,
        media_type="application/json",
    )

    response.headers["Retry-After"] = str(retry_after)
    response.headers["X-RateLimit-Remaining"] = "0"

    if hasattr(exc, "detail") and exc.detail:
        response.headers["X-RateLimit-Limit"] = exc.detail

    return response


def get_limiter() -> Any:
    """Return the module-level limiter used by route decorators."""
    return limiter
