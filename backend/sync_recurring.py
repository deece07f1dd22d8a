#!/usr/bin/env python3
import argparse
import logging
from datetime import date
from typing import Optional

from config import LOG_LEVEL
from database import load_daybook, save_daybook
from recurring_sync import sync_for_date


def parse_date(value: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date format: {value}. Use YYYY-MM-DD.")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate recurring task instances for a date.")
    parser.add_argument(
        "--date",
        type=parse_date,
        default=None,
        help="Date to generate tasks for (default: today).",
    )
    parser.add_argument(
        "--user",
        default=None,
        help="Only sync recurring tasks of this user id (default: all users).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s [%(name)s] %(message)s")

    day = args.date or date.today().isoformat()
    book = load_daybook(args.user)
    generated = sync_for_date(book, day, args.user)
    save_daybook(book)

    print(f"Syncing recurring tasks for {day}")
    for task in generated:
        print(f"  + {task.title} (user {task.user_id})")
    print(f"Generated {len(generated)} task(s).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
