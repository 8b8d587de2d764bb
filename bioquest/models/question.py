"""Pydantic models for question bank records and archived papers.

Rows come from the Supabase ``questions`` and ``papers`` tables. The
``class`` column is exposed as ``class_level`` because ``class`` is a
reserved word in Python; ``used_in`` also accepts the camel-case
``usedIn`` spelling of older exports.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Difficulty(str, Enum):
    EASY = "Easy"
    MODERATE = "Moderate"
    HARD = "Hard"


class Semester(str, Enum):
    FIRST = "1"
    SECOND = "2"
    THIRD = "3"


class QuestionSource(str, Enum):
    MANUAL = "Manual"
    UPLOAD = "Upload"
    SCAN = "Scan"
    GENERATED = "Generated"


class UsedIn(BaseModel):
    """One finalized paper a question has appeared in."""
    model_config = ConfigDict(populate_by_name=True)

    year: int
    semester: Semester
    paper_id: str = Field(validation_alias=AliasChoices("paper_id", "paperId"))


class Question(BaseModel):
    """A question bank record."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: Optional[str] = None
    class_level: int = Field(
        validation_alias=AliasChoices("class_level", "class"),
        serialization_alias="class",
    )
    chapter: str = ""
    text: str
    answer: Optional[str] = None
    marks: int = Field(gt=0)
    difficulty: Difficulty = Difficulty.MODERATE
    used_in: List[UsedIn] = Field(
        default_factory=list,
        validation_alias=AliasChoices("used_in", "usedIn"),
    )
    source: QuestionSource = QuestionSource.MANUAL
    year: int
    semester: Semester = Semester.FIRST
    tags: List[str] = Field(default_factory=list)
    image_data_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("image_data_url", "imageDataURL"),
    )

    @property
    def is_unused(self) -> bool:
        """True when the question has never been used in a finalized paper."""
        return len(self.used_in) == 0


class Paper(BaseModel):
    """An assembled exam paper."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: Optional[str] = None
    title: str
    year: int
    class_level: int = Field(
        validation_alias=AliasChoices("class_level", "class"),
        serialization_alias="class",
    )
    semester: Semester
    source: QuestionSource
    questions: List[Question] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_marks(self) -> int:
        return sum(q.marks for q in self.questions)
