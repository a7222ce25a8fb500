"""Historical backfill job state machine."""

from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from factories import add_investment, add_transaction, sqlite_sessions

from wealthtrack.config import get_settings
from wealthtrack.core.periods import YearMonth, add_months, month_range, today
from wealthtrack.models import InvestmentType, TransactionKind
from wealthtrack.services.backfill import BackfillJobRegistry, JobStatus
from wealthtrack.services.errors import JobConflictError
from wealthtrack.services.net_worth import get_net_worth_history


class GatedPriceSource:
    """Blocks every lookup until the test opens the gate."""

    def __init__(self):
        self.gate = asyncio.Event()
        self.waiting = asyncio.Event()

    async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
        self.waiting.set()
        await self.gate.wait()
        return Decimal("100")


class FailingPriceSource:
    """Answers ``healthy_calls`` lookups, then fails every later one."""

    def __init__(self, healthy_calls: int = 0):
        self.healthy_calls = healthy_calls
        self.calls = 0

    async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
        self.calls += 1
        if self.calls > self.healthy_calls:
            raise RuntimeError("pricing backend unavailable")
        return Decimal("1200")


def _start_of_history() -> date:
    return add_months(today(get_settings().timezone).replace(day=1), -2)


async def _seed_shares(sessions) -> None:
    opened = _start_of_history()
    async with sessions() as session:
        shares = await add_investment(
            session, investment_type=InvestmentType.SHARES, opened_on=opened, symbol="INFY"
        )
        await add_transaction(session, shares, TransactionKind.BUY, opened, 10_000, units="10", unit_price_minor="1000")
        await session.commit()


async def test_backfill_snapshots_every_month_since_first_transaction(tmp_path: Path):
    async with sqlite_sessions(tmp_path) as sessions:
        await _seed_shares(sessions)
        registry = BackfillJobRegistry(sessions, price_source_factory=lambda: None)

        started = await registry.start(1)
        assert started.status == JobStatus.RUNNING
        await registry.wait(1)

        job = await registry.status(1)
        assert job.status == JobStatus.COMPLETED
        assert job.total == 3
        assert job.processed == 3
        assert job.finished_at is not None

        # a finished job is reported once, then the user is idle again
        assert (await registry.status(1)).status == JobStatus.IDLE

        async with sessions() as session:
            history = await get_net_worth_history(session, 1)
        expected = month_range(YearMonth.of(_start_of_history()), YearMonth.of(today(get_settings().timezone)))
        assert [row.year_month for row in history] == [str(month) for month in expected]


async def test_second_start_conflicts_and_leaves_running_job_untouched(tmp_path: Path):
    async with sqlite_sessions(tmp_path) as sessions:
        await _seed_shares(sessions)
        prices = GatedPriceSource()
        registry = BackfillJobRegistry(sessions, price_source_factory=lambda: prices)

        await registry.start(1)
        await asyncio.wait_for(prices.waiting.wait(), timeout=5)
        before = await registry.status(1)

        with pytest.raises(JobConflictError):
            await registry.start(1)
        with pytest.raises(JobConflictError):
            await registry.clear(1)

        during = await registry.status(1)
        assert during.status == JobStatus.RUNNING
        assert during.started_at == before.started_at
        assert during.processed == before.processed

        prices.gate.set()
        await registry.wait(1)
        assert (await registry.status(1)).status == JobStatus.COMPLETED


async def test_failure_in_first_month_reports_error(tmp_path: Path):
    async with sqlite_sessions(tmp_path) as sessions:
        await _seed_shares(sessions)
        registry = BackfillJobRegistry(sessions, price_source_factory=FailingPriceSource)

        await registry.start(1)
        await registry.wait(1)
        job = await registry.status(1)

    assert job.status == JobStatus.FAILED
    assert job.processed == 0
    assert job.total == 3
    assert "pricing backend unavailable" in job.error


async def test_failure_keeps_months_already_processed(tmp_path: Path):
    async with sqlite_sessions(tmp_path) as sessions:
        await _seed_shares(sessions)
        registry = BackfillJobRegistry(sessions, price_source_factory=lambda: FailingPriceSource(healthy_calls=1))

        await registry.start(1)
        await registry.wait(1)
        job = await registry.status(1)
        async with sessions() as session:
            history = await get_net_worth_history(session, 1)

    assert job.status == JobStatus.FAILED
    assert job.processed == 1
    assert job.total == 3
    assert "pricing backend unavailable" in job.error
    assert [row.year_month for row in history] == [str(YearMonth.of(_start_of_history()))]
    assert history[0].total_minor == 12_000


async def test_user_without_activity_completes_with_no_months(tmp_path: Path):
    async with sqlite_sessions(tmp_path) as sessions:
        registry = BackfillJobRegistry(sessions, price_source_factory=lambda: None)
        await registry.start(42)
        await registry.wait(42)
        job = await registry.status(42)
        cleared = await registry.clear(42)

    assert job.status == JobStatus.COMPLETED
    assert job.total == 0
    assert cleared.status == JobStatus.IDLE
