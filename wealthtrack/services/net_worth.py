"""Net worth aggregation over monthly investment snapshots."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.core.periods import YearMonth
from wealthtrack.db.upsert import upsert
from wealthtrack.models import InvestmentSnapshot, InvestmentType, NetWorthSnapshot
from wealthtrack.services.valuation import is_liability

logger = logging.getLogger(__name__)


def summarise(rows: list[InvestmentSnapshot]) -> dict[str, Any]:
    """Totals and per-type breakdown for one month's snapshot rows.

    A loan's principal is reported in its breakdown entry but not in the
    invested total.
    """

    breakdown: dict[str, dict[str, int]] = {}
    assets = liabilities = invested = 0
    for row in rows:
        if row.value_minor < 0:
            liabilities += -row.value_minor
        else:
            assets += row.value_minor
        if not is_liability(InvestmentType(row.investment_type)):
            invested += row.invested_minor or 0
        entry = breakdown.setdefault(row.investment_type, {"value_minor": 0, "invested_minor": 0, "count": 0})
        entry["value_minor"] += row.value_minor
        entry["invested_minor"] += row.invested_minor or 0
        entry["count"] += 1
    return {
        "total_minor": assets - liabilities,
        "total_assets_minor": assets,
        "total_liabilities_minor": liabilities,
        "total_invested_minor": invested,
        "breakdown": breakdown,
    }


async def aggregate_net_worth(session: AsyncSession, user_id: int, year_month: YearMonth) -> NetWorthSnapshot:
    """Upsert the month's net-worth row from its investment snapshots.

    Reads only snapshot rows, so it must run after ``build_snapshots`` for
    the same month.
    """

    key = str(year_month)
    rows = list(
        (
            await session.execute(
                select(InvestmentSnapshot).where(
                    InvestmentSnapshot.user_id == user_id,
                    InvestmentSnapshot.year_month == key,
                )
            )
        )
        .scalars()
        .all()
    )
    totals = summarise(rows)
    values = {"user_id": user_id, "year_month": key, "computed_at": datetime.now(timezone.utc), **totals}
    try:
        await session.execute(
            upsert(
                session,
                NetWorthSnapshot,
                values,
                index_elements=["user_id", "year_month"],
                update_fields=[
                    "total_minor",
                    "total_assets_minor",
                    "total_liabilities_minor",
                    "total_invested_minor",
                    "breakdown",
                    "computed_at",
                ],
            )
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    snapshot = (
        await session.execute(
            select(NetWorthSnapshot)
            .where(NetWorthSnapshot.user_id == user_id, NetWorthSnapshot.year_month == key)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    logger.debug("Net worth for user %s month %s: %s", user_id, key, snapshot.total_minor)
    return snapshot


async def get_net_worth_history(session: AsyncSession, user_id: int) -> list[NetWorthSnapshot]:
    stmt = (
        select(NetWorthSnapshot)
        .where(NetWorthSnapshot.user_id == user_id)
        .order_by(NetWorthSnapshot.year_month.asc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def get_type_history(
    session: AsyncSession, user_id: int, investment_type: InvestmentType
) -> list[dict[str, Any]]:
    """Monthly value and invested subtotals of one investment type, oldest first."""

    history: list[dict[str, Any]] = []
    for snapshot in await get_net_worth_history(session, user_id):
        entry = (snapshot.breakdown or {}).get(investment_type.value)
        if not entry:
            continue
        history.append(
            {
                "year_month": snapshot.year_month,
                "value_minor": int(entry.get("value_minor", 0)),
                "invested_minor": int(entry.get("invested_minor", 0)),
                "count": int(entry.get("count", 0)),
            }
        )
    return history


__all__ = ["aggregate_net_worth", "get_net_worth_history", "get_type_history", "summarise"]
