"""Exceptions raised while assembling papers.

Every failure carries enough structure (mark values, counts, the
underlying external error) for callers to render a precise message.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional


class PaperGenerationError(Exception):
    """Base class for paper generation failures."""


class MalformedInputError(PaperGenerationError, ValueError):
    """Inputs are structurally invalid and must be fixed before retrying."""


class InfeasibleDistributionError(PaperGenerationError):
    """No combination of the allowed marks adds up to the target."""

    def __init__(self, target: int, allowed_marks: Iterable[int]):
        self.target = target
        self.allowed_marks = sorted(set(allowed_marks))
        super().__init__(
            f"Cannot reach {target} marks using only "
            f"{', '.join(str(m) for m in self.allowed_marks)}"
        )


@dataclass(frozen=True)
class MarkShortfall:
    marks: int
    required: int
    available: int

    def describe(self) -> str:
        return f"need {self.required} for {self.marks} marks (found {self.available})"


class InsufficientPoolError(PaperGenerationError):
    """The question pool cannot satisfy one or more mark values."""

    def __init__(self, shortfalls: List[MarkShortfall]):
        self.shortfalls = list(shortfalls)
        detail = "; ".join(s.describe() for s in self.shortfalls)
        super().__init__(f"Not enough questions in bank: {detail}.")


class ExternalQuotaExceededError(PaperGenerationError):
    """The AI service rejected a request for exceeding its quota."""

    def __init__(self, cause: BaseException, message: Optional[str] = None):
        self.cause = cause
        super().__init__(message or f"AI service quota exceeded: {cause}")


class QuotaFallbackFailedError(ExternalQuotaExceededError):
    """Quota was exceeded and sampling from the bank could not stand in."""

    def __init__(self, cause: BaseException, fallback_error: InsufficientPoolError):
        self.fallback_error = fallback_error
        super().__init__(
            cause,
            f"AI service quota exceeded and the bank fallback failed: {fallback_error}",
        )


class ExternalGenerationFailedError(PaperGenerationError):
    """The AI service failed for a reason other than quota."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__)


class InvariantViolationError(PaperGenerationError, RuntimeError):
    """Internal defect: a state the algorithm guarantees cannot occur."""


class GenerationCancelledError(PaperGenerationError):
    """The caller cancelled an in-flight generation run."""


class GeneratedContentError(PaperGenerationError, ValueError):
    """An AI result did not have the fields the request asked for."""
