"""Pydantic models for paper generation.

Covers the mark distribution, the unit of work sent to the AI question
generator, the validated shape of its results, generator settings and the
outcome reported back to callers.
"""

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bioquest.constants import (
    DEFAULT_ALLOWED_MARKS,
    DEFAULT_MARK_DISTRIBUTION,
    DEFAULT_TOTAL_MARKS,
    MAX_TOTAL_MARKS,
)
from bioquest.models.question import Difficulty, Paper, Semester


class QuestionType(str, Enum):
    SHORT_ANSWER = "Short Answer"
    MULTIPLE_CHOICE = "Multiple Choice"
    FILL_IN_THE_BLANKS = "Fill in the Blanks"
    TRUE_FALSE = "True/False"
    IMAGE_BASED = "Image-based"


# Question types whose questions are meaningless without an answer key
ANSWER_REQUIRED_TYPES = frozenset({
    QuestionType.MULTIPLE_CHOICE,
    QuestionType.FILL_IN_THE_BLANKS,
    QuestionType.TRUE_FALSE,
})


class GenerationMode(str, Enum):
    DISTRIBUTION = "distribution"
    TOTAL_MARKS = "total_marks"


class MarkRequirement(BaseModel):
    """Produce ``count`` questions worth ``marks`` each."""
    model_config = ConfigDict(frozen=True)

    count: int = Field(gt=0)
    marks: int = Field(gt=0)

    def as_pair(self) -> tuple[int, int]:
        return (self.count, self.marks)


class GenerationRequest(BaseModel):
    """One external generation call."""
    model_config = ConfigDict(frozen=True)

    class_level: int
    chapter: str
    marks: int = Field(gt=0)
    difficulty: Difficulty
    count: int = Field(gt=0)
    question_type: QuestionType = QuestionType.SHORT_ANSWER
    keywords: Optional[str] = None
    generate_answer: bool = False
    syllabus_only: bool = True
    language: Literal["en", "bn", "hi"] = "en"

    @property
    def answer_required(self) -> bool:
        return self.generate_answer or self.question_type in ANSWER_REQUIRED_TYPES


class GeneratedQuestion(BaseModel):
    """A question produced by the AI generator, validated at ingestion."""

    text: str
    answer: Optional[str] = None
    image_data_url: Optional[str] = None

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Generated question text must not be empty")
        return v.strip()


class GeneratorSettings(BaseModel):
    """User-editable generator settings (the undo/redo unit)."""
    model_config = ConfigDict(frozen=True)

    mark_distribution: str = DEFAULT_MARK_DISTRIBUTION
    ai_chapter: str = ""
    ai_difficulty: Difficulty = Difficulty.MODERATE
    ai_keywords: str = ""
    ai_question_types: List[QuestionType] = Field(default_factory=list)
    ai_generate_answers: bool = False
    syllabus_only: bool = True
    generation_mode: GenerationMode = GenerationMode.DISTRIBUTION
    total_marks: int = Field(default=DEFAULT_TOTAL_MARKS, gt=0, le=MAX_TOTAL_MARKS)
    allowed_marks: str = DEFAULT_ALLOWED_MARKS

    @field_validator("ai_question_types", mode="before")
    @classmethod
    def coerce_question_types(cls, v: object) -> object:
        # Older drafts stored a single question type string
        if isinstance(v, str):
            return [v] if v else []
        if v is None:
            return []
        return v

    @property
    def topics(self) -> List[str]:
        return [c.strip() for c in self.ai_chapter.split(",") if c.strip()]

    def with_question_type_toggled(self, question_type: QuestionType) -> "GeneratorSettings":
        """Return settings with ``question_type`` added or removed.

        Adding a type that needs an answer key switches answer generation on.
        """
        if question_type in self.ai_question_types:
            types = [t for t in self.ai_question_types if t != question_type]
            return self.model_copy(update={"ai_question_types": types})

        updates: dict = {"ai_question_types": [*self.ai_question_types, question_type]}
        if question_type in ANSWER_REQUIRED_TYPES:
            updates["ai_generate_answers"] = True
        return self.model_copy(update=updates)

    def with_ai_settings_cleared(self) -> "GeneratorSettings":
        return self.model_copy(update={
            "ai_chapter": "",
            "ai_keywords": "",
            "ai_question_types": [],
            "ai_difficulty": Difficulty.MODERATE,
            "ai_generate_answers": False,
        })


class PaperGenerationRequest(BaseModel):
    """Everything needed to assemble one paper."""

    title: Optional[str] = None
    year: int
    class_level: int
    semester: Semester = Semester.FIRST
    avoid_previous: bool = True
    use_ai: bool = False
    language: Literal["en", "bn", "hi"] = "en"
    settings: GeneratorSettings = Field(default_factory=GeneratorSettings)


class GeneratorDraft(BaseModel):
    """Persisted state of the generator form."""

    title: str = ""
    year: Optional[int] = None
    class_level: int = 10
    semester: Semester = Semester.FIRST
    avoid_previous: bool = True
    settings: GeneratorSettings = Field(default_factory=GeneratorSettings)


class SettingsAction(BaseModel):
    """Request body for POST /api/drafts/generator/settings."""

    action: Literal["toggle_question_type", "clear_ai", "undo", "redo"]
    question_type: Optional[QuestionType] = None

    @model_validator(mode="after")
    def require_question_type(self) -> "SettingsAction":
        if self.action == "toggle_question_type" and self.question_type is None:
            raise ValueError("question_type is required for toggle_question_type")
        return self


class SettingsState(BaseModel):
    settings: GeneratorSettings
    can_undo: bool
    can_redo: bool


NoticeCode = Literal["api_quota_exceeded", "fallback_to_bank", "fallback_success"]


class GenerationNotice(BaseModel):
    """A user-facing message produced while generating a paper."""

    level: Literal["success", "error"]
    code: NoticeCode
    message: str


class PaperGenerationResult(BaseModel):
    """Outcome of a successful paper generation."""

    paper: Paper
    distribution: List[MarkRequirement]
    method: Literal["bank", "ai", "fallback"]
    notices: List[GenerationNotice] = Field(default_factory=list)


class SolveRequest(BaseModel):
    """Request body for POST /api/distribution/solve."""

    total_marks: int = Field(
        ..., gt=0, le=MAX_TOTAL_MARKS, description="Target total marks of the paper"
    )
    allowed_marks: List[int] = Field(..., description="Permitted per-question mark values")
    seed: Optional[int] = Field(default=None, description="Seed for a reproducible result")


class SolveResponse(BaseModel):
    distribution: List[MarkRequirement]
    total_marks: int
    question_count: int
