"""Historical snapshot backfill.

One ``SnapshotJob`` per user moves ``idle -> running -> completed | failed``.
The registry's lock guards every read and transition, so starting a job is a
check-and-set: a second start while one is running raises
``JobConflictError`` and leaves the running job untouched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from wealthtrack.config import AppSettings, get_settings
from wealthtrack.core.periods import YearMonth, current_year_month, month_range
from wealthtrack.core.telemetry import months_processed_counter, tracer
from wealthtrack.db.session import get_session_factory
from wealthtrack.services.errors import JobConflictError
from wealthtrack.services.ledger import earliest_activity_date
from wealthtrack.services.net_worth import aggregate_net_worth
from wealthtrack.services.pricing import PriceSource, default_price_source
from wealthtrack.services.snapshots import build_snapshots

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


@dataclass
class SnapshotJob:
    user_id: int
    status: JobStatus = JobStatus.IDLE
    processed: int = 0
    total: int = 0
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class BackfillJobRegistry:
    """Owns the backfill state of every user in this process."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        price_source_factory: Callable[[], PriceSource] | None = None,
        settings: AppSettings | None = None,
    ):
        self._session_factory = session_factory
        self._price_source_factory = price_source_factory or default_price_source
        self._settings = settings
        self._jobs: dict[int, SnapshotJob] = {}
        self._tasks: dict[int, asyncio.Task[None]] = {}
        self._lock = asyncio.Lock()

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or get_session_factory()

    @property
    def settings(self) -> AppSettings:
        return self._settings or get_settings()

    async def start(self, user_id: int) -> SnapshotJob:
        """Mark the user's job running and schedule it; returns a copy of the job."""

        async with self._lock:
            existing = self._jobs.get(user_id)
            if existing is not None and existing.status == JobStatus.RUNNING:
                raise JobConflictError(user_id)
            job = SnapshotJob(user_id=user_id, status=JobStatus.RUNNING, started_at=datetime.now(timezone.utc))
            self._jobs[user_id] = job
            self._tasks[user_id] = asyncio.create_task(self._run(job), name=f"snapshot-backfill-{user_id}")
            logger.info("Started snapshot backfill for user %s", user_id)
            return replace(job)

    async def status(self, user_id: int) -> SnapshotJob:
        """Return a copy of the job; a finished job is reset to idle once read."""

        async with self._lock:
            job = self._jobs.get(user_id)
            if job is None:
                return SnapshotJob(user_id=user_id)
            view = replace(job)
            if job.status in TERMINAL_STATUSES:
                self._jobs.pop(user_id, None)
                self._tasks.pop(user_id, None)
            return view

    async def clear(self, user_id: int) -> SnapshotJob:
        async with self._lock:
            job = self._jobs.get(user_id)
            if job is not None and job.status == JobStatus.RUNNING:
                raise JobConflictError(user_id)
            self._jobs.pop(user_id, None)
            self._tasks.pop(user_id, None)
            return SnapshotJob(user_id=user_id)

    async def wait(self, user_id: int) -> None:
        """Block until the user's scheduled job finishes."""

        task = self._tasks.get(user_id)
        if task is not None:
            await asyncio.shield(task)

    async def _run(self, job: SnapshotJob) -> None:
        user_id = job.user_id
        settings = self.settings
        factory = self.session_factory
        price_source = self._price_source_factory()
        with tracer.start_as_current_span("snapshots.backfill", attributes={"wealthtrack.user_id": user_id}):
            try:
                async with factory() as session:
                    first_day = await earliest_activity_date(session, user_id)
                end = current_year_month(settings.timezone)
                months = month_range(YearMonth.of(first_day), end) if first_day else []
                async with self._lock:
                    job.total = len(months)

                for year_month in months:
                    async with factory() as session:
                        await build_snapshots(session, user_id, year_month, price_source, settings=settings)
                        await aggregate_net_worth(session, user_id, year_month)
                    async with self._lock:
                        job.processed += 1
                    months_processed_counter.add(1)
            except Exception as exc:
                logger.exception("Snapshot backfill failed for user %s after %s months", user_id, job.processed)
                async with self._lock:
                    job.status = JobStatus.FAILED
                    job.error = str(exc) or exc.__class__.__name__
                    job.finished_at = datetime.now(timezone.utc)
                return

        async with self._lock:
            job.status = JobStatus.COMPLETED
            job.finished_at = datetime.now(timezone.utc)
        logger.info("Snapshot backfill for user %s completed: %s months", user_id, job.processed)


__all__ = ["BackfillJobRegistry", "JobStatus", "SnapshotJob", "TERMINAL_STATUSES"]
