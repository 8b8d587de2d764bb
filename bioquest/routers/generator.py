"""Paper generation API: distribution solving and paper assembly."""

import logging
import random
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from supabase import Client

from bioquest.config import get_settings
from bioquest.db.questions import list_questions
from bioquest.middleware.logging import get_request_id
from bioquest.middleware.rate_limit import RATE_LIMITS, get_limiter
from bioquest.models.generation import (
    GeneratedQuestion,
    GenerationRequest,
    PaperGenerationRequest,
    PaperGenerationResult,
    SolveRequest,
    SolveResponse,
)
from bioquest.models.question import Question
from bioquest.routers.deps import get_current_user_id, get_db
from bioquest.services.distribution_solver import solve_distribution
from bioquest.services.errors import (
    ExternalGenerationFailedError,
    InfeasibleDistributionError,
    InsufficientPoolError,
    InvariantViolationError,
    MalformedInputError,
    PaperGenerationError,
    QuotaFallbackFailedError,
)
from bioquest.services.gemini_client import get_gemini_client
from bioquest.services.paper_generator import generate_paper
from bioquest.services.question_generator import generate_questions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["generator"])

limiter = get_limiter()


def _http_error(e: PaperGenerationError) -> HTTPException:
    """Map a generation failure to an HTTP error with a structured detail."""
    if isinstance(e, MalformedInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, InfeasibleDistributionError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "message": str(e),
                "target": e.target,
                "allowed_marks": e.allowed_marks,
            },
        )
    if isinstance(e, InsufficientPoolError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(e),
                "shortfalls": [asdict(s) for s in e.shortfalls],
            },
        )
    if isinstance(e, QuotaFallbackFailedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "message": str(e),
                "shortfalls": [asdict(s) for s in e.fallback_error.shortfalls],
            },
        )
    if isinstance(e, ExternalGenerationFailedError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    if isinstance(e, InvariantViolationError):
        logger.error(f"Invariant violation during paper generation: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Paper generation failed. Check your settings.",
    )


@router.post("/distribution/solve", response_model=SolveResponse)
@limiter.limit(RATE_LIMITS["solve"])  # type: ignore[untyped-decorator]
async def solve_distribution_endpoint(request: Request, body: SolveRequest) -> SolveResponse:
    """Find a random distribution of allowed marks that sums to total_marks."""
    rng = random.Random(body.seed) if body.seed is not None else None
    try:
        distribution = solve_distribution(body.total_marks, body.allowed_marks, rng=rng)
    except PaperGenerationError as e:
        raise _http_error(e) from e
    return SolveResponse(
        distribution=distribution,
        total_marks=body.total_marks,
        question_count=sum(r.count for r in distribution),
    )


@router.post("/papers/generate", response_model=PaperGenerationResult)
@limiter.limit(RATE_LIMITS["generate"])  # type: ignore[untyped-decorator]
async def generate_paper_endpoint(
    request: Request,
    response: Response,
    body: PaperGenerationRequest,
    user_id: str = Depends(get_current_user_id),
    db: Client = Depends(get_db),
    x_gemini_api_key: Optional[str] = Header(default=None),
) -> PaperGenerationResult:
    """
    Assemble a paper from the caller's bank, or with AI when use_ai is set.

    A quota failure from the AI service falls back to the bank; the returned
    notices tell the caller what happened.

    Status Codes:
        200: Paper assembled (method is bank, ai or fallback)
        400: Malformed distribution, marks or missing chapters
        409: Not enough questions in the bank
        422: Total marks unreachable with the allowed marks
        429: AI quota exceeded and the bank fallback failed
        502: AI generation failed
        503: No Gemini API key available
    """
    settings = get_settings()
    bank = await list_questions(db, user_id, class_level=body.class_level)

    request_fn = None
    if body.use_ai:
        try:
            gemini = get_gemini_client(x_gemini_api_key)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e

        async def _generate(criteria: GenerationRequest, pool: list[Question]) -> list[GeneratedQuestion]:
            return await generate_questions(criteria, pool, client=gemini)

        request_fn = _generate

    try:
        result = await generate_paper(
            body,
            bank,
            request_fn,
            request_delay=settings.ai_request_delay_seconds,
        )
    except PaperGenerationError as e:
        logger.warning(f"[{get_request_id(request)}] Paper generation failed: {e}")
        raise _http_error(e) from e

    result.paper.user_id = user_id
    response.headers["X-Generation-Method"] = result.method
    response.headers["X-Fallback-Used"] = "true" if result.method == "fallback" else "false"
    return result
