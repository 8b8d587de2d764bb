"""Shared FastAPI dependencies."""

import asyncio
import logging

from fastapi import Header, HTTPException, status
from supabase import Client

from bioquest.db.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)


def get_db() -> Client:
    return get_supabase_client()


async def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    """Resolve the caller's Supabase user id from a bearer access token."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
        )
    token = authorization[7:].strip()

    client = get_supabase_client()
    try:
        response = await asyncio.to_thread(lambda: client.auth.get_user(token))
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from e

    user = getattr(response, "user", None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return str(user.id)
