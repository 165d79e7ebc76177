"""
Generation du calendrier bi-semaines / Bi-week calendar generation.

Usage:
    python -m scripts.generate_calendar 2025
    python -m scripts.generate_calendar 2025 --start 2024-12-30 --overwrite

Idempotent : les créneaux existants sont ignores sauf avec --overwrite.
Idempotent: existing slots are skipped unless --overwrite is given.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import date

# Rendre le package billboards importable / Make billboards package importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from billboards.database import async_session, init_db
from billboards.exceptions import EngineError
from billboards.services.calendar_generator import CalendarGenerator


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate a year's bi-week calendar")
    parser.add_argument("year", type=int)
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="first slot start (YYYY-MM-DD)")
    parser.add_argument("--overwrite", action="store_true", help="update existing slots")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)
    await init_db()
    async with async_session() as session:
        try:
            summary = await CalendarGenerator(session).generate_calendar(args.year, args.start, args.overwrite)
        except EngineError as exc:
            print(f"ERREUR: {exc.message}")
            return 1
    print(f"[OK] {summary.message}")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(main()))
