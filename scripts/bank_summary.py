#!/usr/bin/env python3
"""
Question bank summary - per-class availability of questions by mark value.

Shows how many questions each class has for every mark value, both in total
and unused (never placed in a finalized paper). Useful before generating a
paper with "avoid previously used questions" switched on.

Usage:
    python scripts/bank_summary.py --user-id <uuid>
    python scripts/bank_summary.py --user-id <uuid> --class 10 --distribution "5x1, 5x2, 2x5"
"""

import argparse
import asyncio
import os
import sys
from collections import defaultdict
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from bioquest.db.questions import list_questions
from bioquest.db.supabase_client import get_supabase_client
from bioquest.services.bank_sampler import pool_availability
from bioquest.services.distribution_solver import parse_mark_distribution


async def main() -> int:
    parser = argparse.ArgumentParser(description="Summarize question bank availability")
    parser.add_argument("--user-id", required=True, help="Owner of the question bank")
    parser.add_argument("--class", dest="class_level", type=int, default=None,
                        help="Only this class")
    parser.add_argument("--distribution", type=str, default=None,
                        help='Check a distribution against unused questions, e.g. "5x1, 2x5"')
    args = parser.parse_args()

    client = get_supabase_client()
    questions = await list_questions(client, args.user_id, class_level=args.class_level)

    by_class = defaultdict(list)
    for q in questions:
        by_class[q.class_level].append(q)

    print("=" * 60)
    print(f"QUESTION BANK SUMMARY ({len(questions)} questions)")
    print("=" * 60)

    for class_level in sorted(by_class):
        pool = by_class[class_level]
        total = pool_availability(pool)
        unused = pool_availability(pool, avoid_reuse=True)
        print(f"\nClass {class_level}: {len(pool)} questions")
        print(f"  {'Marks':>5}  {'Total':>6}  {'Unused':>6}")
        for marks, count in total.items():
            print(f"  {marks:>5}  {count:>6}  {unused.get(marks, 0):>6}")

    if args.distribution and args.class_level is not None:
        unused = pool_availability(by_class.get(args.class_level, []), avoid_reuse=True)
        print(f"\nDistribution check for class {args.class_level}: {args.distribution}")
        required = defaultdict(int)
        for req in parse_mark_distribution(args.distribution):
            required[req.marks] += req.count
        ok = True
        for marks, count in required.items():
            have = unused.get(marks, 0)
            flag = "OK" if have >= count else "SHORT"
            ok = ok and have >= count
            print(f"  {count}x{marks}: {have} unused available [{flag}]")
        return 0 if ok else 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
