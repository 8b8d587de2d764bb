"""Mark distribution solver.

Turns a paper's mark budget into a distribution: a list of
``(count, marks)`` requirements. Two entry points:

1. Explicit mode parses a distribution string such as ``"5x1, 5x2, 2x5"``.
2. Total-marks mode searches for a random multiset of allowed mark values
   that adds up exactly to the target (unbounded subset sum).

The search builds a reachability table once and then walks it backwards,
picking uniformly among every locally feasible mark at each step. Every
such pick keeps the remainder reachable, so the walk always completes and
successive calls yield varied papers.
"""

import logging
import random
import re
from typing import Iterable, List, Optional, Sequence

from bioquest.constants import MAX_TOTAL_MARKS
from bioquest.models.generation import GenerationMode, GeneratorSettings, MarkRequirement
from bioquest.services.errors import (
    InfeasibleDistributionError,
    InvariantViolationError,
    MalformedInputError,
)

logger = logging.getLogger(__name__)

_ENTRY_PATTERN = re.compile(r"^\s*(\d+)\s*[xX]\s*(\d+)\s*$")


def _reachability(target: int, marks: Sequence[int]) -> List[bool]:
    """dp[s] is True when some multiset of ``marks`` sums to s."""
    dp = [False] * (target + 1)
    dp[0] = True
    for s in range(1, target + 1):
        for m in marks:
            if m <= s and dp[s - m]:
                dp[s] = True
                break
    return dp


def _validate_inputs(target: int, allowed_marks: Iterable[int]) -> List[int]:
    if isinstance(target, bool) or not isinstance(target, int) or target <= 0:
        raise MalformedInputError(f"Total marks must be a positive integer (got {target!r})")
    if target > MAX_TOTAL_MARKS:
        raise MalformedInputError(f"Total marks must be at most {MAX_TOTAL_MARKS} (got {target})")

    unique: List[int] = []
    for m in allowed_marks:
        if isinstance(m, bool) or not isinstance(m, int) or m <= 0:
            raise MalformedInputError(f"Allowed marks must be positive integers (got {m!r})")
        if m not in unique:
            unique.append(m)

    if not unique:
        raise MalformedInputError("At least one allowed mark value is required")
    return unique


def solve_distribution(
    target: int,
    allowed_marks: Iterable[int],
    rng: Optional[random.Random] = None,
) -> List[MarkRequirement]:
    """Find a random distribution of allowed marks summing to ``target``.

    Args:
        target: Total marks the paper must add up to
        allowed_marks: Permitted per-question mark values
        rng: Random source; pass a seeded ``random.Random`` for reproducibility

    Returns:
        Requirements grouped by mark value, in the order each value was first chosen

    Raises:
        MalformedInputError: Target not in 1..MAX_TOTAL_MARKS, empty or non-positive marks
        InfeasibleDistributionError: No combination reaches ``target``
        InvariantViolationError: Reconstruction got stuck (a defect)
    """
    marks = _validate_inputs(target, allowed_marks)
    rng = rng or random.Random()

    dp = _reachability(target, marks)
    if not dp[target]:
        raise InfeasibleDistributionError(target, marks)

    counts: dict[int, int] = {}
    remaining = target
    while remaining > 0:
        candidates = [m for m in marks if m <= remaining and dp[remaining - m]]
        if not candidates:
            logger.error(
                f"Distribution reconstruction stuck at remaining={remaining} "
                f"(target={target}, marks={marks})"
            )
            raise InvariantViolationError(
                f"No feasible mark value for remaining total {remaining}"
            )
        choice = rng.choice(candidates)
        counts[choice] = counts.get(choice, 0) + 1
        remaining -= choice

    distribution = [MarkRequirement(count=c, marks=m) for m, c in counts.items()]
    if distribution_total(distribution) != target:
        raise InvariantViolationError(
            f"Distribution sums to {distribution_total(distribution)}, expected {target}"
        )
    return distribution


def parse_mark_distribution(text: str) -> List[MarkRequirement]:
    """Parse an explicit distribution such as ``"5x1, 5x2, 2x5"``.

    Each entry is ``<count>x<marks>``.

    Raises:
        MalformedInputError: Empty input or any entry that does not parse
    """
    if not text or not text.strip():
        raise MalformedInputError("Mark distribution is empty")

    distribution: List[MarkRequirement] = []
    for entry in text.split(","):
        match = _ENTRY_PATTERN.match(entry)
        if not match:
            raise MalformedInputError(f"Invalid mark distribution entry: {entry.strip()!r}")
        count, marks = int(match.group(1)), int(match.group(2))
        if count <= 0 or marks <= 0:
            raise MalformedInputError(
                f"Count and marks must be positive in entry {entry.strip()!r}"
            )
        distribution.append(MarkRequirement(count=count, marks=marks))
    return distribution


def parse_allowed_marks(text: str) -> List[int]:
    """Parse ``"1, 2, 3, 5"`` into unique mark values, first-seen order."""
    values: List[int] = []
    for part in text.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            value = int(part)
        except ValueError:
            raise MalformedInputError(f"Invalid allowed mark value: {part!r}") from None
        if value <= 0:
            raise MalformedInputError(f"Allowed marks must be positive (got {value})")
        if value not in values:
            values.append(value)
    if not values:
        raise MalformedInputError("At least one allowed mark value is required")
    return values


def distribution_total(distribution: Iterable[MarkRequirement]) -> int:
    return sum(r.count * r.marks for r in distribution)


def resolve_distribution(
    settings: GeneratorSettings,
    rng: Optional[random.Random] = None,
) -> List[MarkRequirement]:
    """Build the distribution for the configured generation mode."""
    if settings.generation_mode == GenerationMode.DISTRIBUTION:
        return parse_mark_distribution(settings.mark_distribution)
    return solve_distribution(
        settings.total_marks,
        parse_allowed_marks(settings.allowed_marks),
        rng=rng,
    )
