"""Read-only access to the investment ledger.

Rows are normalised into plain dataclasses so the pure calculators never
touch ORM objects or sessions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.models import (
    Investment,
    InvestmentStatus,
    InvestmentTransaction,
    InvestmentType,
    TransactionKind,
    ValueOverride,
)

CAPITAL_IN = frozenset(
    {TransactionKind.BUY, TransactionKind.DEPOSIT, TransactionKind.CONTRIBUTION, TransactionKind.PREMIUM}
)
CAPITAL_OUT = frozenset({TransactionKind.SELL, TransactionKind.WITHDRAWAL, TransactionKind.MATURITY})
INCOME = frozenset({TransactionKind.DIVIDEND, TransactionKind.INTEREST})
UNIT_EVENTS = frozenset({TransactionKind.BONUS, TransactionKind.SPLIT})


@dataclass(frozen=True)
class InvestmentInput:
    """Normalized investment input for valuation."""

    id: int
    user_id: int
    type: InvestmentType
    opened_on: date
    name: str = ""
    symbol: str | None = None
    closed_on: date | None = None
    status: InvestmentStatus = InvestmentStatus.ACTIVE
    interest_rate: Decimal | None = None
    compounding: str | None = None
    maturity_date: date | None = None
    principal_minor: int | None = None
    installment_minor: int | None = None
    units: Decimal | None = None
    purity: str | None = None
    appreciation_rate: Decimal | None = None
    valuation_mode: str | None = None


@dataclass(frozen=True)
class TransactionInput:
    """Normalized ledger transaction."""

    id: int
    investment_id: int
    kind: TransactionKind
    date: date
    amount_minor: int
    units: Decimal | None = None
    unit_price_minor: Decimal | None = None
    fees_minor: int = 0

    @property
    def magnitude(self) -> int:
        return abs(self.amount_minor)

    @property
    def capital_flow(self) -> int:
        """Signed principal movement: money into the investment is positive."""

        if self.kind in CAPITAL_IN:
            return self.magnitude
        if self.kind in CAPITAL_OUT:
            return -self.magnitude
        return 0

    @property
    def investor_flow(self) -> int:
        """Signed cash flow from the investor's point of view."""

        if self.kind in CAPITAL_IN:
            return -self.magnitude
        if self.kind in CAPITAL_OUT or self.kind in INCOME:
            return self.magnitude
        return 0


def to_investment_input(row: Investment) -> InvestmentInput:
    return InvestmentInput(
        id=row.id,
        user_id=row.user_id,
        type=InvestmentType(row.investment_type),
        opened_on=row.opened_on,
        name=row.name,
        symbol=row.symbol,
        closed_on=row.closed_on,
        status=InvestmentStatus(row.status) if row.status else InvestmentStatus.ACTIVE,
        interest_rate=_decimal_or_none(row.interest_rate),
        compounding=row.compounding,
        maturity_date=row.maturity_date,
        principal_minor=row.principal_minor,
        installment_minor=row.installment_minor,
        units=_decimal_or_none(row.units),
        purity=row.purity,
        appreciation_rate=_decimal_or_none(row.appreciation_rate),
        valuation_mode=row.valuation_mode,
    )


def to_transaction_input(row: InvestmentTransaction) -> TransactionInput:
    return TransactionInput(
        id=row.id,
        investment_id=row.investment_id,
        kind=TransactionKind(row.kind),
        date=row.date,
        amount_minor=int(row.amount_minor),
        units=_decimal_or_none(row.units),
        unit_price_minor=_decimal_or_none(row.unit_price_minor),
        fees_minor=int(row.fees_minor or 0),
    )


def _decimal_or_none(value: object) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


async def list_investments(
    session: AsyncSession,
    user_id: int,
    *,
    investment_type: InvestmentType | None = None,
) -> list[InvestmentInput]:
    stmt = select(Investment).where(Investment.user_id == user_id)
    if investment_type is not None:
        stmt = stmt.where(Investment.investment_type == investment_type)
    rows = (await session.execute(stmt.order_by(Investment.id))).scalars().all()
    return [to_investment_input(row) for row in rows]


async def transactions_by_investment(
    session: AsyncSession,
    investment_ids: Sequence[int],
    *,
    on_or_before: date | None = None,
) -> dict[int, list[TransactionInput]]:
    """Return each investment's transactions in (date, id) order."""

    grouped: dict[int, list[TransactionInput]] = {inv_id: [] for inv_id in investment_ids}
    if not investment_ids:
        return grouped
    stmt = select(InvestmentTransaction).where(InvestmentTransaction.investment_id.in_(list(investment_ids)))
    if on_or_before is not None:
        stmt = stmt.where(InvestmentTransaction.date <= on_or_before)
    stmt = stmt.order_by(InvestmentTransaction.date, InvestmentTransaction.id)
    for row in (await session.execute(stmt)).scalars().all():
        grouped.setdefault(row.investment_id, []).append(to_transaction_input(row))
    return grouped


async def latest_overrides(
    session: AsyncSession,
    investment_ids: Sequence[int],
    on_or_before: date,
) -> dict[int, int]:
    """Return the most recent override value per investment as of a date."""

    if not investment_ids:
        return {}
    stmt = (
        select(ValueOverride)
        .where(
            ValueOverride.investment_id.in_(list(investment_ids)),
            ValueOverride.override_date <= on_or_before,
        )
        .order_by(ValueOverride.investment_id, ValueOverride.override_date, ValueOverride.id)
    )
    latest: dict[int, int] = {}
    for row in (await session.execute(stmt)).scalars().all():
        latest[row.investment_id] = int(row.value_minor)
    return latest


async def earliest_activity_date(session: AsyncSession, user_id: int) -> date | None:
    """Earliest transaction date across the user's investments, else earliest opening date."""

    first_tx = (
        await session.execute(
            select(func.min(InvestmentTransaction.date))
            .join(Investment, Investment.id == InvestmentTransaction.investment_id)
            .where(Investment.user_id == user_id)
        )
    ).scalar()
    if first_tx is not None:
        return first_tx
    return (
        await session.execute(select(func.min(Investment.opened_on)).where(Investment.user_id == user_id))
    ).scalar()


__all__ = [
    "CAPITAL_IN",
    "CAPITAL_OUT",
    "INCOME",
    "UNIT_EVENTS",
    "InvestmentInput",
    "TransactionInput",
    "to_investment_input",
    "to_transaction_input",
    "list_investments",
    "transactions_by_investment",
    "latest_overrides",
    "earliest_activity_date",
]
