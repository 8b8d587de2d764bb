"""
Shared Supabase client for question bank, paper archive and preferences.

The service role key is used when configured so server-side code can filter
rows by ``user_id`` itself; otherwise the anon key applies and row-level
security decides what is visible.
"""

import threading
from typing import Optional

from supabase import Client, create_client

from bioquest.config import get_settings

_client: Optional[Client] = None
_lock = threading.Lock()


def get_supabase_client() -> Client:
    """
    Return the process-wide Supabase client, creating it on first use.

    Raises:
        ValueError: If the client cannot be created from the configured URL/key
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is None:
            settings = get_settings()
            key = settings.supabase_service_role_key or settings.supabase_key
            try:
                _client = create_client(settings.supabase_url, key)
            except Exception as e:
                raise ValueError(f"Failed to create Supabase client: {str(e)}") from e
        return _client


def reset_supabase_client() -> None:
    """Drop the cached client (settings changed, or between tests)."""
    global _client
    with _lock:
        _client = None
