"""CRUD for the ``papers`` archive table."""

import asyncio
from typing import Any, Dict, List, Optional

from supabase import Client

from bioquest.models.question import Paper

TABLE = "papers"


def _paper_to_record(paper: Paper, user_id: str) -> Dict[str, Any]:
    record = paper.model_dump(mode="json", by_alias=True)
    record["user_id"] = user_id
    return record


async def create_paper(client: Client, paper: Paper, user_id: str) -> Paper:
    """Insert a paper. Returns the stored row as a Paper."""
    record = _paper_to_record(paper, user_id)
    response = await asyncio.to_thread(
        lambda: client.table(TABLE).insert(record).execute()
    )
    if not response.data or len(response.data) == 0:
        raise RuntimeError("Insert paper returned no data")
    return Paper.model_validate(response.data[0])


async def get_paper(client: Client, user_id: str, paper_id: str) -> Optional[Paper]:
    """Get one of the user's papers by id."""
    response = await asyncio.to_thread(
        lambda: client.table(TABLE)
        .select("*")
        .eq("id", paper_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    if response.data and len(response.data) > 0:
        return Paper.model_validate(response.data[0])
    return None


async def list_papers(
    client: Client,
    user_id: str,
    class_level: Optional[int] = None,
    year: Optional[int] = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[List[Paper], int]:
    """List the user's papers, newest first. Returns (items, total)."""
    query = client.table(TABLE).select("*", count="exact").eq("user_id", user_id)
    if class_level is not None:
        query = query.eq("class", class_level)
    if year is not None:
        query = query.eq("year", year)
    response = await asyncio.to_thread(
        lambda: query.order("created_at", desc=True)
        .range(offset, offset + limit - 1)
        .execute()
    )
    total = response.count if getattr(response, "count", None) is not None else 0
    return [Paper.model_validate(row) for row in (response.data or [])], total


async def delete_paper(client: Client, user_id: str, paper_id: str) -> bool:
    """Delete a paper. Returns True when a row was removed."""
    response = await asyncio.to_thread(
        lambda: client.table(TABLE)
        .delete()
        .eq("id", paper_id)
        .eq("user_id", user_id)
        .execute()
    )
    return bool(response.data)
