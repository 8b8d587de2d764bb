"""Drive AI question generation across a mark distribution.

Each requirement group is split across the selected question types and one
request is issued per non-empty share, strictly one at a time. Requests
after the first productive one are throttled by a fixed delay to stay within
the AI service's rate limits. Questions produced earlier in the run are fed
back as an exclusion list so later requests avoid repeating them.

The first failing request aborts the whole run; the caller decides whether
to fall back to the question bank.
"""

import asyncio
import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from bioquest.models.generation import (
    GeneratedQuestion,
    GenerationRequest,
    MarkRequirement,
    QuestionType,
)
from bioquest.models.question import Difficulty, Question, QuestionSource, Semester
from bioquest.services.errors import GenerationCancelledError, MalformedInputError

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_DELAY_SECONDS = 1.5

RequestFn = Callable[[GenerationRequest, List[Question]], Awaitable[List[GeneratedQuestion]]]
SleepFn = Callable[[float], Awaitable[None]]


class AIGenerationOptions(BaseModel):
    """Per-run settings copied onto every request and generated question."""

    class_level: int
    difficulty: Difficulty = Difficulty.MODERATE
    keywords: str = ""
    generate_answers: bool = False
    syllabus_only: bool = True
    language: Literal["en", "bn", "hi"] = "en"
    year: int = Field(default_factory=lambda: datetime.now(timezone.utc).year)
    semester: Semester = Semester.FIRST

    @property
    def tags(self) -> List[str]:
        return [k.strip() for k in self.keywords.split(",") if k.strip()]


def partition_count(
    count: int,
    categories: Sequence[QuestionType],
) -> List[tuple[int, QuestionType]]:
    """Split ``count`` as evenly as possible across ``categories``.

    The remainder goes one unit at a time to the leading categories; zero
    shares are dropped. No categories means Short Answer. Seven questions
    over three types gives shares of 3, 2 and 2.
    """
    if not categories:
        categories = [QuestionType.SHORT_ANSWER]
    if len(categories) == 1:
        return [(count, categories[0])] if count > 0 else []

    base, remainder = divmod(count, len(categories))
    shares = []
    for i, category in enumerate(categories):
        share = base + (1 if i < remainder else 0)
        if share > 0:
            shares.append((share, category))
    return shares


class GenerationOrchestrator:
    """Sequential, throttled AI generation for one distribution."""

    def __init__(
        self,
        request_fn: RequestFn,
        topics: Sequence[str],
        options: AIGenerationOptions,
        rng: Optional[random.Random] = None,
        sleep: SleepFn = asyncio.sleep,
        request_delay: float = DEFAULT_REQUEST_DELAY_SECONDS,
    ):
        if not topics:
            raise MalformedInputError("Provide at least one chapter for AI generation")
        self.request_fn = request_fn
        self.topics = list(topics)
        self.options = options
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.request_delay = request_delay

    def _to_question(self, generated: GeneratedQuestion, request: GenerationRequest) -> Question:
        return Question(
            id=f"gen-{datetime.now(timezone.utc).isoformat()}-{uuid.uuid4().hex[:8]}",
            class_level=self.options.class_level,
            chapter=request.chapter,
            text=generated.text,
            answer=generated.answer,
            image_data_url=generated.image_data_url,
            marks=request.marks,
            difficulty=self.options.difficulty,
            used_in=[],
            source=QuestionSource.GENERATED,
            year=self.options.year,
            semester=self.options.semester,
            tags=self.options.tags,
        )

    async def run(
        self,
        distribution: Sequence[MarkRequirement],
        categories: Sequence[QuestionType],
        existing_pool: Optional[Sequence[Question]] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[Question]:
        """Generate questions for every requirement group.

        Args:
            distribution: Requirement groups, processed in order
            categories: Selected question types
            existing_pool: Questions the generator should not repeat
            cancel_event: Checked before each request

        Returns:
            Generated questions in request order

        Raises:
            GenerationCancelledError: ``cancel_event`` was set
            Exception: Whatever the request function raised, unchanged
        """
        pool = list(existing_pool or [])
        produced: List[Question] = []

        for requirement in distribution:
            for sub_count, category in partition_count(requirement.count, categories):
                if cancel_event is not None and cancel_event.is_set():
                    raise GenerationCancelledError("AI generation cancelled")

                if produced:
                    await self.sleep(self.request_delay)

                chapter = self.rng.choice(self.topics)
                request = GenerationRequest(
                    class_level=self.options.class_level,
                    chapter=chapter,
                    marks=requirement.marks,
                    difficulty=self.options.difficulty,
                    count=sub_count,
                    question_type=category,
                    keywords=self.options.keywords or None,
                    generate_answer=self.options.generate_answers,
                    syllabus_only=self.options.syllabus_only,
                    language=self.options.language,
                )
                logger.info(
                    f"Requesting {sub_count} x {requirement.marks}-mark "
                    f"'{category.value}' questions on '{chapter}'"
                )

                batch = await self.request_fn(request, list(pool))
                questions = [self._to_question(g, request) for g in batch]
                produced.extend(questions)
                pool.extend(questions)

        return produced


async def orchestrate_ai_generation(
    distribution: Sequence[MarkRequirement],
    categories: Sequence[QuestionType],
    request_fn: RequestFn,
    topics: Sequence[str],
    options: AIGenerationOptions,
    existing_pool: Optional[Sequence[Question]] = None,
    rng: Optional[random.Random] = None,
    sleep: SleepFn = asyncio.sleep,
    request_delay: float = DEFAULT_REQUEST_DELAY_SECONDS,
    cancel_event: Optional[asyncio.Event] = None,
) -> List[Question]:
    """Functional wrapper around :class:`GenerationOrchestrator`."""
    orchestrator = GenerationOrchestrator(
        request_fn,
        topics,
        options,
        rng=rng,
        sleep=sleep,
        request_delay=request_delay,
    )
    return await orchestrator.run(
        distribution,
        categories,
        existing_pool=existing_pool,
        cancel_event=cancel_event,
    )
