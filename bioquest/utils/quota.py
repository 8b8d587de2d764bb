"""Detect quota / rate-limit failures from the AI service.

Errors reach us in several shapes: google-genai ``APIError`` instances
(``code`` and ``status`` attributes), HTTP client errors (``status_code``
or ``response.status_code``), objects carrying a decoded ``error`` payload,
and plain exceptions whose message embeds the JSON error body. Detection
is best effort; an unrecognized shape is reported as not-quota.
"""

import json
import logging
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

QUOTA_STATUS_CODE = 429
QUOTA_STATUS = "RESOURCE_EXHAUSTED"


def _payload_is_quota(payload: Any) -> bool:
    """Check a decoded ``{"error": {"code": 429, "status": ...}}`` body."""
    if not isinstance(payload, Mapping):
        return False
    error = payload.get("error", payload)
    if not isinstance(error, Mapping):
        return False
    if error.get("status") == QUOTA_STATUS:
        return True
    code = error.get("code")
    return code == QUOTA_STATUS_CODE or code == str(QUOTA_STATUS_CODE)


def _extract_status_code(exception: BaseException) -> Optional[int]:
    """Extract an HTTP status code from common exception attributes."""
    for attr in ("code", "status_code"):
        value = getattr(exception, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value

    response = getattr(exception, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value

    return None


def _embedded_json(message: str) -> Optional[Any]:
    """Decode the JSON object starting at the first ``{`` in ``message``."""
    start = message.find("{")
    if start == -1:
        return None
    try:
        payload, _ = json.JSONDecoder().raw_decode(message[start:])
    except ValueError:
        return None
    return payload


def is_quota_error(exception: BaseException) -> bool:
    """Return True when ``exception`` signals an exceeded quota or rate limit.

    Args:
        exception: Failure raised by the AI generation call

    Returns:
        True for quota/rate-limit failures, False otherwise
    """
    if getattr(exception, "status", None) == QUOTA_STATUS:
        return True

    if _extract_status_code(exception) == QUOTA_STATUS_CODE:
        return True

    if _payload_is_quota(getattr(exception, "error", None)):
        return True

    if _payload_is_quota(getattr(exception, "details", None)):
        return True

    message = str(exception)
    if str(QUOTA_STATUS_CODE) in message:
        payload = _embedded_json(message)
        if payload is not None and _payload_is_quota(payload):
            return True
        logger.debug(f"Message mentions {QUOTA_STATUS_CODE} but carries no quota payload")

    return False
