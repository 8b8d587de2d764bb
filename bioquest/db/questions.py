"""Database functions for the question bank.

Reads the caller's questions and keeps each question's ``used_in`` history
in step with the paper archive.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from bioquest.models.question import Paper, Question, UsedIn

logger = logging.getLogger(__name__)

TABLE = "questions"


def _row_to_question(row: Dict[str, Any]) -> Question:
    return Question.model_validate(row)


async def list_questions(
    client: Client,
    user_id: str,
    class_level: Optional[int] = None,
) -> List[Question]:
    """Return the user's questions, newest first.

    Args:
        client: Supabase client instance
        user_id: Owner of the question bank
        class_level: Only questions for this class when given

    Returns:
        List[Question]: Parsed question records
    """
    query = client.table(TABLE).select("*").eq("user_id", user_id)
    if class_level is not None:
        query = query.eq("class", class_level)
    response = await asyncio.to_thread(
        lambda: query.order("created_at", desc=True).execute()
    )
    return [_row_to_question(row) for row in (response.data or [])]


async def _update_used_in(
    client: Client,
    user_id: str,
    question_id: str,
    used_in: List[UsedIn],
) -> None:
    payload = [u.model_dump(mode="json") for u in used_in]
    await asyncio.to_thread(
        lambda: client.table(TABLE)
        .update({"used_in": payload})
        .eq("id", question_id)
        .eq("user_id", user_id)
        .execute()
    )


async def mark_questions_used(client: Client, user_id: str, paper: Paper) -> int:
    """Record ``paper`` in the usage history of each of its bank questions.

    The stored rows are the source of truth: only the user's own questions
    are touched, and the paper is appended to their stored history. Ids in
    the paper that are not in the user's bank (including generated ``gen-``
    ids) are skipped.

    Returns:
        int: Number of questions updated
    """
    paper_ids = {q.id for q in paper.questions if not q.id.startswith("gen-")}
    if not paper_ids:
        return 0

    stored = [q for q in await list_questions(client, user_id) if q.id in paper_ids]
    updated = 0
    for question in stored:
        if any(u.paper_id == paper.id for u in question.used_in):
            continue
        used_in = [
            *question.used_in,
            UsedIn(year=paper.year, semester=paper.semester, paper_id=paper.id),
        ]
        await _update_used_in(client, user_id, question.id, used_in)
        updated += 1

    skipped = len(paper_ids) - len(stored)
    if skipped:
        logger.warning(f"Paper {paper.id}: {skipped} question ids not in the user's bank")
    return updated


async def release_questions(client: Client, user_id: str, paper_id: str) -> int:
    """Remove ``paper_id`` from the usage history of the user's questions.

    Returns:
        int: Number of questions updated
    """
    questions = await list_questions(client, user_id)
    updated = 0
    for question in questions:
        remaining = [u for u in question.used_in if u.paper_id != paper_id]
        if len(remaining) != len(question.used_in):
            await _update_used_in(client, user_id, question.id, remaining)
            updated += 1
    logger.info(f"Released {updated} questions from paper {paper_id}")
    return updated
