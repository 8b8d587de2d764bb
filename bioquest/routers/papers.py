"""Paper archive and generator draft API."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from supabase import Client

from bioquest.db.papers import create_paper, delete_paper, get_paper, list_papers
from bioquest.db.questions import mark_questions_used, release_questions
from bioquest.middleware.rate_limit import RATE_LIMITS, get_limiter
from bioquest.models.generation import GeneratorDraft, SettingsAction, SettingsState
from bioquest.models.question import Paper
from bioquest.routers.deps import get_current_user_id, get_db
from bioquest.services.draft_store import DraftStore, SupabaseKeyValueStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["papers"])

limiter = get_limiter()


@router.get("/papers", response_model=None)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def list_papers_endpoint(
    request: Request,
    class_level: int | None = Query(None, alias="class"),
    year: int | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> dict:
    """List archived papers, newest first."""
    items, total = await list_papers(
        db, user_id, class_level=class_level, year=year, limit=limit, offset=offset
    )
    return {
        "items": [p.model_dump(mode="json", by_alias=True) for p in items],
        "total": total,
        "limit": limit,
        "offset": offset,
    }


@router.post("/papers", status_code=status.HTTP_201_CREATED, response_model=None)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def archive_paper_endpoint(
    request: Request,
    paper: Paper,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> dict:
    """Save a generated paper and record it in each bank question's usage history."""
    saved = await create_paper(db, paper, user_id)
    updated = await mark_questions_used(db, user_id, saved)
    logger.info(f"Archived paper {saved.id} ({updated} bank questions marked used)")
    return {
        "paper": saved.model_dump(mode="json", by_alias=True),
        "questions_marked_used": updated,
    }


@router.delete("/papers/{paper_id}", response_model=None)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def delete_paper_endpoint(
    request: Request,
    paper_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> dict:
    """Delete an archived paper and free its questions for reuse."""
    existing = await get_paper(db, user_id, paper_id)
    if existing is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Paper not found")
    await delete_paper(db, user_id, paper_id)
    released = await release_questions(db, user_id, paper_id)
    return {"deleted": paper_id, "questions_released": released}


@router.get("/drafts/generator", response_model=None)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def get_draft_endpoint(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> dict:
    """Return the saved generator draft (or null) and the syllabus-only preference."""
    drafts = DraftStore(SupabaseKeyValueStore(db, user_id))
    draft = await drafts.load_draft()
    return {
        "draft": draft.model_dump(mode="json") if draft else None,
        "syllabus_only": await drafts.load_syllabus_only(),
    }


@router.put("/drafts/generator", response_model=None)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def save_draft_endpoint(
    request: Request,
    draft: GeneratorDraft,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> dict:
    """Save the generator draft and the syllabus-only preference.

    The draft's settings become the newest undo/redo snapshot.
    """
    drafts = DraftStore(SupabaseKeyValueStore(db, user_id))
    history = await drafts.load_settings_history()
    history.push(draft.settings)
    await drafts.save_settings_history(history)
    await drafts.save_draft(draft)
    await drafts.save_syllabus_only(draft.settings.syllabus_only)
    return {"saved": True}


@router.delete("/drafts/generator", response_model=None)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def clear_draft_endpoint(
    request: Request,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> dict:
    """Remove the saved generator draft and its settings history."""
    drafts = DraftStore(SupabaseKeyValueStore(db, user_id))
    await drafts.clear_draft()
    await drafts.clear_settings_history()
    return {"cleared": True}


@router.post("/drafts/generator/settings", response_model=SettingsState)
@limiter.limit(RATE_LIMITS["papers"])  # type: ignore[untyped-decorator]
async def apply_settings_action_endpoint(
    request: Request,
    body: SettingsAction,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
) -> SettingsState:
    """
    Apply a settings transition, or step through the settings history.

    Actions:
        toggle_question_type: Add or remove question_type; adding a type that
            needs an answer key switches answer generation on
        clear_ai: Reset chapter, keywords, types, difficulty and answers
        undo / redo: Move through earlier snapshots

    The resulting settings are written back into the saved draft.
    """
    drafts = DraftStore(SupabaseKeyValueStore(db, user_id))
    history = await drafts.load_settings_history()

    if body.action == "toggle_question_type" and body.question_type is not None:
        history.push(history.state.with_question_type_toggled(body.question_type))
    elif body.action == "clear_ai":
        history.push(history.state.with_ai_settings_cleared())
    elif body.action == "undo":
        history.undo()
    elif body.action == "redo":
        history.redo()

    draft = await drafts.load_draft() or GeneratorDraft()
    await drafts.save_draft(draft.model_copy(update={"settings": history.state}))
    await drafts.save_settings_history(history)

    return SettingsState(
        settings=history.state,
        can_undo=history.can_undo,
        can_redo=history.can_redo,
    )
