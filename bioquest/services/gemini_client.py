"""Gemini API client initialization.

Uses the google-genai SDK. A caller-supplied key takes precedence over
the service's fallback key from settings.
"""

from typing import Optional

from google import genai

from bioquest.config import get_settings


def get_gemini_client(api_key: Optional[str] = None) -> genai.Client:
    """Initialize and return a Gemini API client.

    Args:
        api_key: The caller's own key; falls back to GEMINI_API_KEY

    Returns:
        genai.Client: Initialized Gemini client ready for API calls.

    Raises:
        ValueError: If neither a caller key nor GEMINI_API_KEY is available.
    """
    key = (api_key or "").strip() or get_settings().gemini_api_key
    if not key:
        raise ValueError(
            "API Key is not configured. Provide your own Gemini key or set "
            "GEMINI_API_KEY to use AI features."
        )
    return genai.Client(api_key=key)
