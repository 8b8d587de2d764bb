"""Tests for the mark distribution solver."""

import random
from collections import Counter

import pytest

from pydantic import ValidationError

from bioquest.constants import MAX_TOTAL_MARKS
from bioquest.models.generation import GenerationMode, GeneratorSettings, MarkRequirement
from bioquest.services.distribution_solver import (
    distribution_total,
    parse_allowed_marks,
    parse_mark_distribution,
    resolve_distribution,
    solve_distribution,
)
from bioquest.services.errors import InfeasibleDistributionError, MalformedInputError


def _reachable(target, marks):
    """Independent check: breadth-first search over partial sums."""
    seen = {0}
    frontier = [0]
    while frontier:
        s = frontier.pop()
        for m in marks:
            nxt = s + m
            if nxt <= target and nxt not in seen:
                seen.add(nxt)
                frontier.append(nxt)
    return target in seen


class TestSolveDistribution:
    """Tests for solve_distribution."""

    @pytest.mark.parametrize("target,marks", [
        (25, [1, 2, 3, 5]),
        (7, [2, 5]),
        (10, [5]),
        (1, [1]),
        (40, [3, 7]),
        (100, [2, 3, 5]),
    ])
    def test_distribution_sums_to_target(self, target, marks, rng):
        """Test that every returned distribution adds up exactly to the target."""
        distribution = solve_distribution(target, marks, rng=rng)

        assert distribution_total(distribution) == target
        assert all(r.marks in marks for r in distribution)
        assert all(r.count > 0 for r in distribution)

    def test_each_mark_value_appears_once(self, rng):
        """Test that counts are grouped by mark value."""
        distribution = solve_distribution(60, [1, 2, 3], rng=rng)

        values = [r.marks for r in distribution]
        assert len(values) == len(set(values))

    def test_seven_from_two_and_five(self, rng):
        """Test that 7 marks from {2, 5} is one 2 and one 5."""
        distribution = solve_distribution(7, [2, 5], rng=rng)

        assert {r.marks: r.count for r in distribution} == {2: 1, 5: 1}

    def test_three_from_two_is_infeasible(self):
        """Test that 3 marks cannot be built from 2-mark questions."""
        with pytest.raises(InfeasibleDistributionError) as exc_info:
            solve_distribution(3, [2])

        assert exc_info.value.target == 3
        assert exc_info.value.allowed_marks == [2]
        assert "Cannot reach 3 marks" in str(exc_info.value)

    @pytest.mark.parametrize("target", range(1, 30))
    def test_solver_agrees_with_independent_reachability(self, target):
        """Test completeness: the solver fails only when no combination exists."""
        marks = [4, 6, 9]
        if _reachable(target, marks):
            distribution = solve_distribution(target, marks, rng=random.Random(target))
            assert distribution_total(distribution) == target
        else:
            with pytest.raises(InfeasibleDistributionError):
                solve_distribution(target, marks)

    def test_results_vary_across_calls(self):
        """Test that repeated unseeded calls produce more than one distribution."""
        seen = set()
        for _ in range(100):
            distribution = solve_distribution(25, [1, 2, 3, 5])
            seen.add(tuple(sorted(r.as_pair() for r in distribution)))

        assert len(seen) > 1

    def test_seeded_rng_is_reproducible(self):
        """Test that the same seed yields the same distribution."""
        first = solve_distribution(25, [1, 2, 3, 5], rng=random.Random(42))
        second = solve_distribution(25, [1, 2, 3, 5], rng=random.Random(42))

        assert first == second

    def test_duplicate_allowed_marks_are_ignored(self, rng):
        """Test that repeated mark values behave like a single value."""
        distribution = solve_distribution(6, [3, 3, 3], rng=rng)

        assert distribution == [MarkRequirement(count=2, marks=3)]

    @pytest.mark.parametrize("target", [0, -5])
    def test_non_positive_target_rejected(self, target):
        """Test that the target must be positive."""
        with pytest.raises(MalformedInputError):
            solve_distribution(target, [1, 2])

    def test_target_above_cap_rejected(self):
        """Test that an oversized target is refused before any table is built."""
        with pytest.raises(MalformedInputError, match="at most"):
            solve_distribution(10**13, [7])

    def test_target_at_cap_is_solved(self, rng):
        distribution = solve_distribution(MAX_TOTAL_MARKS, [1, 2, 3, 5], rng=rng)

        assert distribution_total(distribution) == MAX_TOTAL_MARKS

    @pytest.mark.parametrize("marks", [[], [0], [2, -1], [True]])
    def test_invalid_allowed_marks_rejected(self, marks):
        """Test that allowed marks must be a non-empty list of positive integers."""
        with pytest.raises(MalformedInputError):
            solve_distribution(10, marks)

    def test_malformed_input_is_value_error(self):
        """Test that MalformedInputError can be caught as ValueError."""
        with pytest.raises(ValueError):
            solve_distribution(10, [])


class TestParseMarkDistribution:
    """Tests for parse_mark_distribution."""

    def test_default_distribution(self):
        """Test parsing the default "5x1, 5x2, 2x5" distribution."""
        distribution = parse_mark_distribution("5x1, 5x2, 2x5")

        assert [r.as_pair() for r in distribution] == [(5, 1), (5, 2), (2, 5)]
        assert distribution_total(distribution) == 25

    def test_whitespace_and_uppercase_x(self):
        """Test that spacing and an uppercase X are accepted."""
        distribution = parse_mark_distribution(" 3 X 2 ,1x10 ")

        assert [r.as_pair() for r in distribution] == [(3, 2), (1, 10)]

    def test_repeated_mark_values_are_kept_separate(self):
        """Test that entries with the same marks stay as separate groups."""
        distribution = parse_mark_distribution("2x5, 1x5")

        assert [r.as_pair() for r in distribution] == [(2, 5), (1, 5)]

    @pytest.mark.parametrize("text", ["", "   ", "5x", "x5", "five x one", "5x1,,2x2", "0x5", "5x0"])
    def test_malformed_entries_rejected(self, text):
        """Test that malformed or non-positive entries raise MalformedInputError."""
        with pytest.raises(MalformedInputError):
            parse_mark_distribution(text)


class TestParseAllowedMarks:
    """Tests for parse_allowed_marks."""

    def test_parses_and_dedupes_in_order(self):
        """Test first-seen order with duplicates removed."""
        assert parse_allowed_marks("5, 1, 5, 2") == [5, 1, 2]

    def test_ignores_empty_entries(self):
        """Test that stray commas are ignored."""
        assert parse_allowed_marks("1,,2,") == [1, 2]

    @pytest.mark.parametrize("text", ["", "a, b", "1, -2", "0"])
    def test_invalid_values_rejected(self, text):
        """Test that non-numeric, non-positive or empty input is rejected."""
        with pytest.raises(MalformedInputError):
            parse_allowed_marks(text)


class TestResolveDistribution:
    """Tests for resolve_distribution."""

    def test_distribution_mode_parses_string(self):
        """Test that distribution mode uses the explicit string."""
        settings = GeneratorSettings(mark_distribution="2x5, 1x10")

        distribution = resolve_distribution(settings)

        assert [r.as_pair() for r in distribution] == [(2, 5), (1, 10)]

    def test_total_marks_mode_solves(self, rng):
        """Test that total-marks mode solves from the allowed marks."""
        settings = GeneratorSettings(
            generation_mode=GenerationMode.TOTAL_MARKS,
            total_marks=20,
            allowed_marks="2, 5",
        )

        distribution = resolve_distribution(settings, rng=rng)

        assert distribution_total(distribution) == 20
        assert set(Counter(r.marks for r in distribution)) <= {2, 5}

    def test_total_marks_mode_infeasible(self):
        """Test that an unreachable total in total-marks mode is reported."""
        settings = GeneratorSettings(
            generation_mode=GenerationMode.TOTAL_MARKS,
            total_marks=3,
            allowed_marks="2",
        )

        with pytest.raises(InfeasibleDistributionError):
            resolve_distribution(settings)

    @pytest.mark.parametrize("total", [0, MAX_TOTAL_MARKS + 1])
    def test_settings_reject_out_of_range_total(self, total):
        """Test that settings only accept totals in 1..MAX_TOTAL_MARKS."""
        with pytest.raises(ValidationError):
            GeneratorSettings(generation_mode=GenerationMode.TOTAL_MARKS, total_marks=total)
