"""Paper generation pipeline.

Resolves the distribution, then either samples from the question bank or
drives AI generation. A quota failure from the AI service triggers one
automatic fallback to bank sampling; any other AI failure is surfaced
as-is.
"""

import asyncio
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from bioquest.models.generation import (
    GenerationNotice,
    MarkRequirement,
    PaperGenerationRequest,
    PaperGenerationResult,
)
from bioquest.models.question import Paper, Question, QuestionSource
from bioquest.services.bank_sampler import filter_pool, sample_from_bank
from bioquest.services.distribution_solver import resolve_distribution
from bioquest.services.errors import (
    ExternalGenerationFailedError,
    GenerationCancelledError,
    InsufficientPoolError,
    MalformedInputError,
    QuotaFallbackFailedError,
)
from bioquest.services.generation_orchestrator import (
    DEFAULT_REQUEST_DELAY_SECONDS,
    AIGenerationOptions,
    GenerationOrchestrator,
    RequestFn,
    SleepFn,
)
from bioquest.utils.quota import is_quota_error

logger = logging.getLogger(__name__)

QUOTA_NOTICE = GenerationNotice(
    level="error",
    code="api_quota_exceeded",
    message="AI service quota exceeded. Please try again later or use your own API key.",
)
FALLBACK_NOTICE = GenerationNotice(
    level="success",
    code="fallback_to_bank",
    message="Falling back to generating the paper from your question bank.",
)
FALLBACK_SUCCESS_NOTICE = GenerationNotice(
    level="success",
    code="fallback_success",
    message="Paper generated from your question bank instead.",
)


def build_paper(
    request: PaperGenerationRequest,
    questions: List[Question],
    source: QuestionSource,
) -> Paper:
    """Wrap selected questions in a new, unsaved paper."""
    title = (request.title or "").strip() or f"Class {request.class_level} Paper - {request.year}"
    return Paper(
        id=str(uuid.uuid4()),
        title=title,
        year=request.year,
        class_level=request.class_level,
        semester=request.semester,
        source=source,
        questions=questions,
        created_at=datetime.now(timezone.utc),
    )


async def generate_paper(
    request: PaperGenerationRequest,
    questions: Sequence[Question],
    generate_fn: Optional[RequestFn] = None,
    *,
    rng: Optional[random.Random] = None,
    sleep: SleepFn = asyncio.sleep,
    request_delay: float = DEFAULT_REQUEST_DELAY_SECONDS,
    cancel_event: Optional[asyncio.Event] = None,
) -> PaperGenerationResult:
    """Assemble a paper from the bank or with AI.

    Args:
        request: Paper metadata and generator settings
        questions: The caller's whole question bank
        generate_fn: AI request function (required when ``request.use_ai``)
        rng: Random source for the solver, sampler and topic draws; the quota
            fallback samples from a stream derived from it
        sleep: Async sleep used for throttling
        request_delay: Seconds between AI requests
        cancel_event: Cooperative cancellation for the AI path

    Returns:
        PaperGenerationResult with the paper, distribution and notices

    Raises:
        MalformedInputError: Bad distribution, marks or missing topics
        InfeasibleDistributionError: Total marks cannot be reached
        InsufficientPoolError: Bank sampling failed (non-AI path)
        QuotaFallbackFailedError: Quota exceeded and the bank could not cover
        ExternalGenerationFailedError: AI failed for a non-quota reason
        GenerationCancelledError: ``cancel_event`` was set
    """
    rng = rng or random.Random()
    settings = request.settings
    distribution: List[MarkRequirement] = resolve_distribution(settings, rng=rng)
    pool = filter_pool(questions, request.class_level, request.avoid_previous)

    if not request.use_ai:
        selected = sample_from_bank(pool, distribution, request.avoid_previous, rng=rng)
        return PaperGenerationResult(
            paper=build_paper(request, selected, QuestionSource.MANUAL),
            distribution=distribution,
            method="bank",
        )

    if generate_fn is None:
        raise MalformedInputError("AI generation requested without a generation function")

    topics = settings.topics
    if not topics:
        raise MalformedInputError("Please provide at least one chapter for AI generation.")

    # Own stream for the fallback so its picks do not depend on how many
    # topic draws the orchestrator made before a quota error
    fallback_rng = random.Random(rng.getrandbits(64))

    orchestrator = GenerationOrchestrator(
        generate_fn,
        topics,
        AIGenerationOptions(
            class_level=request.class_level,
            difficulty=settings.ai_difficulty,
            keywords=settings.ai_keywords,
            generate_answers=settings.ai_generate_answers,
            syllabus_only=settings.syllabus_only,
            language=request.language,
            year=request.year,
            semester=request.semester,
        ),
        rng=rng,
        sleep=sleep,
        request_delay=request_delay,
    )

    try:
        generated = await orchestrator.run(
            distribution,
            settings.ai_question_types,
            existing_pool=pool,
            cancel_event=cancel_event,
        )
    except GenerationCancelledError:
        raise
    except Exception as e:
        if not is_quota_error(e):
            logger.error(f"AI paper generation failed: {e}")
            raise ExternalGenerationFailedError(e) from e

        logger.warning(f"AI quota exceeded, falling back to question bank: {e}")
        try:
            selected = sample_from_bank(
                pool, distribution, request.avoid_previous, rng=fallback_rng
            )
        except InsufficientPoolError as fallback_error:
            raise QuotaFallbackFailedError(e, fallback_error) from e

        return PaperGenerationResult(
            paper=build_paper(request, selected, QuestionSource.MANUAL),
            distribution=distribution,
            method="fallback",
            notices=[QUOTA_NOTICE, FALLBACK_NOTICE, FALLBACK_SUCCESS_NOTICE],
        )

    return PaperGenerationResult(
        paper=build_paper(request, generated, QuestionSource.GENERATED),
        distribution=distribution,
        method="ai",
    )
