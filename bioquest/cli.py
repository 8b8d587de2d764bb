"""
Command-line interface for the BioQuest paper generator.

Usage:
    python -m bioquest solve --total 25 --allowed "1,2,3,5" [--seed 7]
    python -m bioquest sample --bank bank.json --class 10 --distribution "5x1, 2x5"
    python -m bioquest sample --bank bank.json --class 10 --total 20 --allowed "1,2,5"
"""

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

from bioquest.constants import CLASSES
from bioquest.models.generation import MarkRequirement
from bioquest.models.question import Question
from bioquest.services.bank_sampler import filter_pool, pool_availability, sample_from_bank
from bioquest.services.distribution_solver import (
    parse_allowed_marks,
    parse_mark_distribution,
    solve_distribution,
)
from bioquest.services.errors import InsufficientPoolError, PaperGenerationError

_QUESTION_LIST = TypeAdapter(List[Question])


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="bioquest",
        description="BioQuest CLI - Solve mark distributions and sample papers offline"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    solve_parser = subparsers.add_parser(
        "solve",
        help="Find a random distribution of allowed marks for a total"
    )
    solve_parser.add_argument(
        "--total",
        "-t",
        type=int,
        required=True,
        help="Target total marks"
    )
    solve_parser.add_argument(
        "--allowed",
        "-a",
        type=str,
        default="1, 2, 3, 5",
        help='Allowed mark values, comma separated (default: "1, 2, 3, 5")'
    )
    solve_parser.add_argument(
        "--seed",
        "-s",
        type=int,
        default=None,
        help="Random seed for a reproducible result"
    )

    sample_parser = subparsers.add_parser(
        "sample",
        help="Assemble a paper from a question bank JSON export"
    )
    sample_parser.add_argument(
        "--bank",
        "-b",
        type=str,
        required=True,
        help="Path to a JSON array of questions"
    )
    sample_parser.add_argument(
        "--class",
        "-c",
        dest="class_level",
        type=int,
        required=True,
        choices=CLASSES,
        help="Class (grade) to draw questions for"
    )
    mode = sample_parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--distribution",
        "-d",
        type=str,
        help='Explicit distribution, e.g. "5x1, 5x2, 2x5"'
    )
    mode.add_argument(
        "--total",
        "-t",
        type=int,
        help="Target total marks (solved with --allowed)"
    )
    sample_parser.add_argument(
        "--allowed",
        "-a",
        type=str,
        default="1, 2, 3, 5",
        help="Allowed mark values for --total"
    )
    sample_parser.add_argument(
        "--allow-reuse",
        action="store_true",
        help="Include questions that already appear in a saved paper"
    )
    sample_parser.add_argument(
        "--seed",
        "-s",
        type=int,
        default=None,
        help="Random seed for a reproducible result"
    )

    return parser


def _format_distribution(distribution: List[MarkRequirement]) -> str:
    return ", ".join(f"{r.count}x{r.marks}" for r in distribution)


def solve_command(args: argparse.Namespace) -> int:
    """
    Execute the solve command.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    rng = random.Random(args.seed) if args.seed is not None else None
    try:
        distribution = solve_distribution(args.total, parse_allowed_marks(args.allowed), rng=rng)
    except PaperGenerationError as e:
        print(f"Error: {e}")
        return 1

    print(f"Distribution: {_format_distribution(distribution)}")
    print(f"Questions: {sum(r.count for r in distribution)}")
    print(f"Total marks: {args.total}")
    return 0


def _load_bank(path: str) -> Optional[List[Question]]:
    bank_path = Path(path)
    if not bank_path.is_file():
        print(f"Error: Bank file not found: {path}")
        return None
    try:
        return _QUESTION_LIST.validate_json(bank_path.read_bytes())
    except ValidationError as e:
        print(f"Error: Invalid question bank {path}: {e.error_count()} validation error(s)")
        return None


def sample_command(args: argparse.Namespace) -> int:
    """
    Execute the sample command.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    bank = _load_bank(args.bank)
    if bank is None:
        return 1

    rng = random.Random(args.seed) if args.seed is not None else None
    avoid_reuse = not args.allow_reuse
    pool = filter_pool(bank, args.class_level, avoid_reuse)

    try:
        if args.distribution:
            distribution = parse_mark_distribution(args.distribution)
        else:
            distribution = solve_distribution(
                args.total, parse_allowed_marks(args.allowed), rng=rng
            )
        selected = sample_from_bank(pool, distribution, avoid_reuse, rng=rng)
    except InsufficientPoolError as e:
        print(str(e))
        available = pool_availability(pool)
        print("Available: " + (", ".join(f"{n}x{m}" for m, n in available.items()) or "none"))
        return 1
    except PaperGenerationError as e:
        print(f"Error: {e}")
        return 1

    print(f"Distribution: {_format_distribution(distribution)}")
    print(json.dumps(
        [q.model_dump(mode="json", by_alias=True) for q in selected],
        indent=2,
        ensure_ascii=False,
    ))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    load_dotenv()

    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 1

    # Route to command handler
    if args.command == "solve":
        return solve_command(args)
    elif args.command == "sample":
        return sample_command(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
