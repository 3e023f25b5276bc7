#!/usr/bin/env python3
"""Seed the MSISDN pool with Philippine mobile numbers.

Numbers are generated as 09XXXXXXXXX (network prefix + 7 digits), or read
one per line from a file. Numbers already in the pool are skipped.

Usage:
    PYTHONPATH=. python scripts/seed_msisdn.py               # 100 random numbers
    PYTHONPATH=. python scripts/seed_msisdn.py --count 500
    PYTHONPATH=. python scripts/seed_msisdn.py --file numbers.txt
"""

import argparse
import os
import secrets
import sys

# Must set up path before smartify imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from smartify.database import SessionLocal  # noqa: E402
from smartify.logging_config import setup_logging  # noqa: E402
from smartify.services.number_service import seed_numbers  # noqa: E402

# Major PH network prefixes (the 9XX after the leading 0)
PREFIXES = [
    "917", "918", "919", "920", "921", "922", "923", "924", "925", "926",
    "927", "928", "929", "939", "945", "953", "954", "955", "956", "965",
    "966", "967", "975", "976", "977", "978", "979", "985", "986", "987",
    "988", "989", "995", "996", "997", "998", "999",
]


def generate_numbers(count: int) -> list[str]:
    """count distinct random numbers in 09XXXXXXXXX form."""
    numbers: set[str] = set()
    while len(numbers) < count:
        prefix = secrets.choice(PREFIXES)
        suffix = 1_000_000 + secrets.randbelow(9_000_000)
        numbers.add(f"0{prefix}{suffix}")
    return sorted(numbers)


def read_numbers(path: str) -> list[str]:
    with open(path, encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed available phone numbers")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--count", type=int, default=100, help="how many random numbers to generate")
    group.add_argument("--file", help="read numbers from this file, one per line")
    args = parser.parse_args(argv)

    setup_logging()
    numbers = read_numbers(args.file) if args.file else generate_numbers(args.count)

    db = SessionLocal()
    try:
        added = seed_numbers(db, numbers)
    finally:
        db.close()

    print(f"Added {added} of {len(numbers)} number(s) to the pool")
    return 0


if __name__ == "__main__":
    sys.exit(main())
