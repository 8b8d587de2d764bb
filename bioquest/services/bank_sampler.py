"""Assemble papers by sampling questions from the bank."""

import logging
import random
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from bioquest.models.generation import MarkRequirement
from bioquest.models.question import Question
from bioquest.services.errors import InsufficientPoolError, MarkShortfall

logger = logging.getLogger(__name__)


def filter_pool(
    questions: Iterable[Question],
    class_level: int,
    avoid_reuse: bool,
) -> List[Question]:
    """Questions for ``class_level``, optionally only never-used ones."""
    return [
        q for q in questions
        if q.class_level == class_level and (q.is_unused or not avoid_reuse)
    ]


def pool_availability(pool: Iterable[Question], avoid_reuse: bool = False) -> Dict[int, int]:
    """Count of selectable questions per mark value."""
    counts = Counter(q.marks for q in pool if q.is_unused or not avoid_reuse)
    return dict(sorted(counts.items()))


def _find_shortfalls(
    pool: Sequence[Question],
    distribution: Sequence[MarkRequirement],
) -> List[MarkShortfall]:
    required: Dict[int, int] = {}
    for req in distribution:
        required[req.marks] = required.get(req.marks, 0) + req.count

    available = Counter(q.marks for q in pool)
    return [
        MarkShortfall(marks=marks, required=count, available=available.get(marks, 0))
        for marks, count in required.items()
        if available.get(marks, 0) < count
    ]


def sample_from_bank(
    pool: Iterable[Question],
    distribution: Sequence[MarkRequirement],
    avoid_reuse: bool,
    rng: Optional[random.Random] = None,
) -> List[Question]:
    """Pick questions matching ``distribution`` from ``pool``.

    Requirements for the same mark value are pooled before checking
    availability, and every shortfall is reported at once. Questions are
    drawn uniformly without replacement; a question picked for one group is
    never reused by a later one.

    Args:
        pool: Candidate questions (already filtered by class)
        distribution: Requirements, processed in order
        avoid_reuse: Skip questions that already appear in a finalized paper
        rng: Random source

    Returns:
        Selected questions, grouped in distribution order

    Raises:
        InsufficientPoolError: One or more mark values are under-supplied
    """
    rng = rng or random.Random()
    working = [q for q in pool if q.is_unused or not avoid_reuse]

    shortfalls = _find_shortfalls(working, distribution)
    if shortfalls:
        raise InsufficientPoolError(shortfalls)

    selected: List[Question] = []
    for req in distribution:
        suitable = [q for q in working if q.marks == req.marks]
        picked = rng.sample(suitable, req.count)
        picked_ids = {id(q) for q in picked}
        working = [q for q in working if id(q) not in picked_ids]
        selected.extend(picked)

    logger.info(
        f"Sampled {len(selected)} questions from bank for "
        f"{len(distribution)} requirement groups"
    )
    return selected
