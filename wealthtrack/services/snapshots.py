"""Monthly investment snapshots.

``build_snapshots`` values every eligible investment of a user at the last
day of a month and upserts one ``investment_snapshot`` row per investment.
Liabilities are stored negative so a month's rows sum to net worth.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.config import AppSettings, get_settings
from wealthtrack.core.periods import YearMonth
from wealthtrack.core.telemetry import investments_valued_counter, tracer
from wealthtrack.db.upsert import upsert
from wealthtrack.models import Investment, InvestmentSnapshot, NetWorthSnapshot
from wealthtrack.services.ledger import (
    InvestmentInput,
    latest_overrides,
    list_investments,
    transactions_by_investment,
)
from wealthtrack.services.pricing import PriceSource
from wealthtrack.services.valuation import cost_basis, is_liability, price_symbol, value_investment

logger = logging.getLogger(__name__)


def is_eligible(investment: InvestmentInput, as_of: date) -> bool:
    """Open on ``as_of`` and not closed before it."""

    if investment.opened_on > as_of:
        return False
    return investment.closed_on is None or investment.closed_on >= as_of


async def resolve_price(
    price_source: PriceSource | None,
    investment: InvestmentInput,
    as_of: date,
    settings: AppSettings,
) -> Decimal | None:
    if price_source is None:
        return None
    symbol = price_symbol(investment, settings.gold_spot_symbol)
    if not symbol:
        return None
    return await price_source.get_price(symbol, as_of)


async def build_snapshots(
    session: AsyncSession,
    user_id: int,
    year_month: YearMonth,
    price_source: PriceSource | None = None,
    *,
    settings: AppSettings | None = None,
) -> int:
    """Value and upsert every eligible investment for one month.

    All writes for the month are committed together. Returns the number of
    investments processed.
    """

    settings = settings or get_settings()
    as_of = year_month.last_day
    key = str(year_month)

    with tracer.start_as_current_span(
        "snapshots.build", attributes={"wealthtrack.user_id": user_id, "wealthtrack.year_month": key}
    ):
        investments = [inv for inv in await list_investments(session, user_id) if is_eligible(inv, as_of)]
        ids = [inv.id for inv in investments]
        history = await transactions_by_investment(session, ids, on_or_before=as_of)
        overrides = await latest_overrides(session, ids, as_of)
        computed_at = datetime.now(timezone.utc)

        try:
            for investment in investments:
                transactions = history.get(investment.id, [])
                price = await resolve_price(price_source, investment, as_of, settings)
                value = value_investment(
                    investment, transactions, as_of, price, override=overrides.get(investment.id)
                )
                liability = is_liability(investment.type)
                values = {
                    "user_id": user_id,
                    "investment_id": investment.id,
                    "year_month": key,
                    "investment_type": investment.type.value,
                    "value_minor": -value if liability else value,
                    "invested_minor": cost_basis(investment, transactions, as_of),
                    "computed_at": computed_at,
                }
                await session.execute(
                    upsert(
                        session,
                        InvestmentSnapshot,
                        values,
                        index_elements=["user_id", "investment_id", "year_month"],
                        update_fields=["investment_type", "value_minor", "invested_minor", "computed_at"],
                    )
                )

            stale = delete(InvestmentSnapshot).where(
                InvestmentSnapshot.user_id == user_id,
                InvestmentSnapshot.year_month == key,
            )
            if ids:
                stale = stale.where(InvestmentSnapshot.investment_id.not_in(ids))
            await session.execute(stale)
            await session.commit()
        except Exception:
            await session.rollback()
            logger.exception("Snapshot build failed for user %s month %s", user_id, key)
            raise

    investments_valued_counter.add(len(investments), {"year_month": key})
    logger.info("Built %s investment snapshots for user %s month %s", len(investments), user_id, key)
    return len(investments)


async def list_snapshots(session: AsyncSession, user_id: int) -> list[NetWorthSnapshot]:
    """Monthly net-worth rows for the user, most recent first."""

    stmt = (
        select(NetWorthSnapshot)
        .where(NetWorthSnapshot.user_id == user_id)
        .order_by(NetWorthSnapshot.year_month.desc())
    )
    return list((await session.execute(stmt)).scalars().all())


async def snapshot_detail(
    session: AsyncSession, user_id: int, year_month: YearMonth
) -> list[tuple[InvestmentSnapshot, str | None]]:
    """Investment rows for one month alongside each investment's name."""

    stmt = (
        select(InvestmentSnapshot, Investment.name)
        .outerjoin(Investment, Investment.id == InvestmentSnapshot.investment_id)
        .where(
            InvestmentSnapshot.user_id == user_id,
            InvestmentSnapshot.year_month == str(year_month),
        )
        .order_by(InvestmentSnapshot.investment_type, Investment.name, InvestmentSnapshot.investment_id)
    )
    return [(row[0], row[1]) for row in (await session.execute(stmt)).all()]


async def clear_snapshots(session: AsyncSession) -> tuple[int, int]:
    """Delete every investment and net-worth snapshot row.

    Returns the number of (investment, net worth) rows removed.
    """

    investment_rows = (await session.execute(select(func.count()).select_from(InvestmentSnapshot))).scalar_one()
    net_worth_rows = (await session.execute(select(func.count()).select_from(NetWorthSnapshot))).scalar_one()
    try:
        await session.execute(delete(InvestmentSnapshot))
        await session.execute(delete(NetWorthSnapshot))
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    logger.info("Cleared %s investment snapshots and %s net worth snapshots", investment_rows, net_worth_rows)
    return investment_rows, net_worth_rows


__all__ = [
    "build_snapshots",
    "clear_snapshots",
    "is_eligible",
    "list_snapshots",
    "resolve_price",
    "snapshot_detail",
]
