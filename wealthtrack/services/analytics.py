"""Engine operations exposed to the HTTP layer and the CLI.

These functions orchestrate the ledger reader, the pure calculators and the
snapshot writers for one user and one unit of work.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.config import AppSettings, get_settings
from wealthtrack.core.periods import YearMonth, current_year_month, today
from wealthtrack.models import InvestmentStatus, InvestmentType
from wealthtrack.services.capital_gains import GainsSummary, HoldingThresholds, calculate_gains, estimate_tax
from wealthtrack.services.errors import ValidationError
from wealthtrack.services.ledger import (
    InvestmentInput,
    TransactionInput,
    latest_overrides,
    list_investments,
    transactions_by_investment,
)
from wealthtrack.services.net_worth import aggregate_net_worth
from wealthtrack.services.pricing import PriceSource
from wealthtrack.services.snapshots import build_snapshots, resolve_price
from wealthtrack.services.valuation import capital_flows, cost_basis, is_liability, value_investment
from wealthtrack.services.xirr import XirrResult, solve_xirr

logger = logging.getLogger(__name__)

DEPOSIT_TYPES = frozenset({InvestmentType.FIXED_DEPOSIT, InvestmentType.RECURRING_DEPOSIT})
# Neither a gain nor a return is reported for these.
NO_RETURN_TYPES = frozenset({InvestmentType.LOAN, InvestmentType.EXPECTED_EXPENSE})


@dataclass(frozen=True)
class InvestmentSummary:
    """Current invested amount, value and return of one investment."""

    investment_id: int
    name: str
    investment_type: InvestmentType
    invested_minor: int
    current_minor: int
    gain_minor: int = 0
    gain_percent: float = 0.0
    xirr: XirrResult | None = None


@dataclass(frozen=True)
class DashboardStats:
    total_invested_minor: int
    total_current_minor: int
    total_gain_minor: int
    total_gain_percent: float
    total_debt_minor: int
    net_worth_minor: int
    investment_count: int


@dataclass
class TypeTotals:
    investment_type: InvestmentType
    invested_minor: int = 0
    current_minor: int = 0
    count: int = 0


def _gain_percent(gain: int, invested: int) -> float:
    return gain / invested * 100 if invested > 0 else 0.0


def parse_investment_type(value: str) -> InvestmentType:
    try:
        return InvestmentType(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown investment type {value!r}") from exc


async def calculate_snapshots(
    session: AsyncSession,
    user_id: int,
    year_month: YearMonth | None = None,
    price_source: PriceSource | None = None,
    *,
    settings: AppSettings | None = None,
) -> int:
    """Build one month's snapshots and then its net-worth row."""

    settings = settings or get_settings()
    year_month = year_month or current_year_month(settings.timezone)
    processed = await build_snapshots(session, user_id, year_month, price_source, settings=settings)
    await aggregate_net_worth(session, user_id, year_month)
    return processed


def _is_finished_deposit(investment: InvestmentInput, as_of: date) -> bool:
    if investment.type not in DEPOSIT_TYPES:
        return False
    if investment.status == InvestmentStatus.CLOSED:
        return True
    if investment.closed_on is not None and investment.closed_on <= as_of:
        return True
    return investment.maturity_date is not None and investment.maturity_date <= as_of


def investor_cashflows(
    investment: InvestmentInput,
    transactions: list[TransactionInput],
    as_of: date,
) -> list[tuple[date, int]]:
    """Cash flows from the investor's side, synthesised from parameters when unrecorded."""

    flows = [(tx.date, tx.investor_flow) for tx in transactions if tx.investor_flow]
    if flows:
        return flows
    if investment.type == InvestmentType.LOAN:
        if investment.principal_minor and investment.opened_on <= as_of:
            return [(investment.opened_on, investment.principal_minor)]
        return []
    return [(day, -amount) for day, amount in capital_flows(investment, transactions, as_of)]


async def calculate_type_xirr(
    session: AsyncSession,
    user_id: int,
    investment_type: InvestmentType,
    price_source: PriceSource | None = None,
    *,
    settings: AppSettings | None = None,
    as_of: date | None = None,
) -> XirrResult:
    """Aggregate XIRR across every investment of one type.

    Matured or closed deposits are left out. Each remaining non-loan
    investment contributes its current value as a final inflow on ``as_of``.
    """

    settings = settings or get_settings()
    as_of = as_of or today(settings.timezone)
    investments = [
        inv
        for inv in await list_investments(session, user_id, investment_type=investment_type)
        if inv.opened_on <= as_of and not _is_finished_deposit(inv, as_of)
    ]
    ids = [inv.id for inv in investments]
    history = await transactions_by_investment(session, ids, on_or_before=as_of)
    overrides = await latest_overrides(session, ids, as_of)

    cashflows: list[tuple[date, int]] = []
    for investment in investments:
        transactions = history.get(investment.id, [])
        cashflows.extend(investor_cashflows(investment, transactions, as_of))
        if investment.type == InvestmentType.LOAN:
            continue
        price = await resolve_price(price_source, investment, as_of, settings)
        current = value_investment(investment, transactions, as_of, price, override=overrides.get(investment.id))
        if current:
            cashflows.append((as_of, current))

    result = solve_xirr(cashflows)
    logger.info(
        "XIRR for user %s type %s over %s flows: rate=%s failure=%s",
        user_id,
        investment_type.value,
        len(cashflows),
        result.rate,
        result.failure.value if result.failure else None,
    )
    return result


def summarise_investment(
    investment: InvestmentInput,
    transactions: list[TransactionInput],
    as_of: date,
    price: Decimal | None = None,
    *,
    override: int | None = None,
) -> InvestmentSummary:
    """Invested amount, current value, gain and XIRR of one investment.

    Loans and expected expenses report no gain and no XIRR. The XIRR of other
    types is only attempted while the investment still holds value.
    """

    invested = cost_basis(investment, transactions, as_of)
    current = value_investment(investment, transactions, as_of, price, override=override)
    if investment.type in NO_RETURN_TYPES:
        return InvestmentSummary(investment.id, investment.name, investment.type, invested, current)

    gain = current - invested
    xirr = None
    if current > 0:
        xirr = solve_xirr(investor_cashflows(investment, transactions, as_of) + [(as_of, current)])
    return InvestmentSummary(
        investment_id=investment.id,
        name=investment.name,
        investment_type=investment.type,
        invested_minor=invested,
        current_minor=current,
        gain_minor=gain,
        gain_percent=_gain_percent(gain, invested),
        xirr=xirr,
    )


async def investment_summaries(
    session: AsyncSession,
    user_id: int,
    price_source: PriceSource | None = None,
    *,
    settings: AppSettings | None = None,
    as_of: date | None = None,
) -> list[InvestmentSummary]:
    settings = settings or get_settings()
    as_of = as_of or today(settings.timezone)
    investments = [inv for inv in await list_investments(session, user_id) if inv.opened_on <= as_of]
    ids = [inv.id for inv in investments]
    history = await transactions_by_investment(session, ids, on_or_before=as_of)
    overrides = await latest_overrides(session, ids, as_of)

    summaries = []
    for investment in investments:
        price = await resolve_price(price_source, investment, as_of, settings)
        summaries.append(
            summarise_investment(
                investment, history.get(investment.id, []), as_of, price, override=overrides.get(investment.id)
            )
        )
    return summaries


def dashboard_stats(summaries: list[InvestmentSummary]) -> DashboardStats:
    """Portfolio totals; loans count as debt and stay out of invested and current."""

    invested = current = debt = 0
    for summary in summaries:
        if is_liability(summary.investment_type):
            debt += summary.current_minor
        else:
            invested += summary.invested_minor
            current += summary.current_minor
    return DashboardStats(
        total_invested_minor=invested,
        total_current_minor=current,
        total_gain_minor=current - invested,
        total_gain_percent=_gain_percent(current - invested, invested),
        total_debt_minor=debt,
        net_worth_minor=current - debt,
        investment_count=len(summaries),
    )


def investment_breakdown(summaries: list[InvestmentSummary]) -> list[TypeTotals]:
    """Current invested and value subtotals per investment type."""

    totals: dict[InvestmentType, TypeTotals] = {}
    for summary in summaries:
        entry = totals.setdefault(summary.investment_type, TypeTotals(summary.investment_type))
        entry.invested_minor += summary.invested_minor
        entry.current_minor += summary.current_minor
        entry.count += 1
    return list(totals.values())


async def calculate_capital_gains(
    session: AsyncSession,
    user_id: int,
    fy_start: date,
    fy_end: date,
    *,
    settings: AppSettings | None = None,
    include_tax: bool = True,
) -> GainsSummary:
    if fy_start > fy_end:
        raise ValidationError(f"Range start {fy_start} is after range end {fy_end}")
    settings = settings or get_settings()
    investments = await list_investments(session, user_id)
    types = {inv.id: inv.type for inv in investments}
    history = await transactions_by_investment(session, list(types), on_or_before=fy_end)
    transactions = [tx for rows in history.values() for tx in rows]

    summary = calculate_gains(transactions, fy_start, fy_end, types, HoldingThresholds.from_settings(settings))
    if include_tax:
        summary.tax = estimate_tax(summary, settings)
    return summary


__all__ = [
    "calculate_snapshots",
    "calculate_type_xirr",
    "calculate_capital_gains",
    "dashboard_stats",
    "investment_breakdown",
    "investment_summaries",
    "summarise_investment",
    "DashboardStats",
    "InvestmentSummary",
    "TypeTotals",
    "investor_cashflows",
    "parse_investment_type",
]
