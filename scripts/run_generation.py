#!/usr/bin/env python3
"""Run the task generation job once from the command line.

Usage:
    uv run python -m scripts.run_generation
    uv run python -m scripts.run_generation --date 2024-03-15
    uv run python -m scripts.run_generation --init-db
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, date, datetime

from src.core.db_client import close_connection, init_db
from src.services.generation_service import run_generation


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def main(run_date: date | None, *, create_schema: bool) -> int:
    """Run one generation pass and print its summary. Returns the exit code."""
    if create_schema:
        await init_db()

    now = datetime.now(UTC)
    try:
        log = await run_generation(today=run_date or now.date(), now=now)
    finally:
        await close_connection()

    print(json.dumps(log.to_response(), indent=2))  # noqa: T201
    return 1 if log.errors else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate today's task instances")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="Run date (YYYY-MM-DD)")
    parser.add_argument("--init-db", action="store_true", help="Create tables before running")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.date, create_schema=args.init_db)))
