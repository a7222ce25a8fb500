"""Recompute monthly snapshots for a user."""

from __future__ import annotations

import argparse
import asyncio
import logging

from wealthtrack.config import get_settings
from wealthtrack.core.logging import setup_logging
from wealthtrack.core.periods import YearMonth
from wealthtrack.db.init import init_database
from wealthtrack.db.session import get_engine, get_session_factory
from wealthtrack.services.analytics import calculate_snapshots
from wealthtrack.services.backfill import BackfillJobRegistry, JobStatus
from wealthtrack.services.pricing import default_price_source

logger = logging.getLogger("scripts.recompute_snapshots")


async def _run(user_id: int, year_month: str | None, backfill: bool) -> int:
    await init_database(get_engine())
    if backfill:
        registry = BackfillJobRegistry(get_session_factory())
        await registry.start(user_id)
        await registry.wait(user_id)
        job = await registry.status(user_id)
        print(f"Backfill {job.status.value}: {job.processed}/{job.total} months for user {user_id}")
        if job.error:
            print(f"Error: {job.error}")
        return 0 if job.status == JobStatus.COMPLETED else 1

    settings = get_settings()
    month = YearMonth.parse(year_month) if year_month else None
    async with get_session_factory()() as session:
        processed = await calculate_snapshots(session, user_id, month, default_price_source(), settings=settings)
    print(f"Computed {processed} snapshots for user {user_id}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Recompute monthly investment snapshots for a user")
    parser.add_argument("--user-id", type=int, required=True)
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--month", help="Month to recompute as YYYY-MM; defaults to the current month")
    group.add_argument("--backfill", action="store_true", help="Recompute every month since the first transaction")
    args = parser.parse_args()
    setup_logging(get_settings().log_level)
    raise SystemExit(asyncio.run(_run(args.user_id, args.month, args.backfill)))


if __name__ == "__main__":
    main()
