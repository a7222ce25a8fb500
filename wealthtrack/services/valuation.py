"""Point-in-time valuation of a single investment.

Every function here is pure: it receives the investment, its ledger history
and an as-of date (plus an optional market price resolved by the caller) and
returns an integer amount in minor currency units. Intermediate arithmetic is
done in ``Decimal`` and rounded half-up exactly once.

One valuator exists per ``InvestmentType`` and ``VALUATORS`` maps every enum
member to it; ``value_investment`` is the only dispatch point.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import Callable, Iterable, Mapping, Sequence

from wealthtrack.core.periods import iter_monthly
from wealthtrack.models import InvestmentType, TransactionKind
from wealthtrack.services.ledger import UNIT_EVENTS, InvestmentInput, TransactionInput

getcontext().prec = 28

DAYS_PER_YEAR = Decimal("365.25")
ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

COMPOUNDING_PERIODS: Mapping[str, int] = {
    "monthly": 12,
    "quarterly": 4,
    "half_yearly": 2,
    "yearly": 1,
}
DEFAULT_COMPOUNDING = "quarterly"

PURITY_FACTORS: Mapping[str, Decimal] = {
    "24K": ONE,
    "22K": Decimal(22) / Decimal(24),
    "18K": Decimal(18) / Decimal(24),
}

MARKET_TYPES = frozenset(
    {
        InvestmentType.EQUITY_FUND,
        InvestmentType.HYBRID_FUND,
        InvestmentType.DEBT_FUND,
        InvestmentType.SHARES,
    }
)
LIABILITY_TYPES = frozenset({InvestmentType.LOAN})

UNIT_CREDIT_KINDS = frozenset({TransactionKind.BUY, TransactionKind.CONTRIBUTION}) | UNIT_EVENTS
UNIT_DEBIT_KINDS = frozenset({TransactionKind.SELL, TransactionKind.WITHDRAWAL})
LOAN_REPAYMENT_KINDS = frozenset({TransactionKind.DEPOSIT, TransactionKind.CONTRIBUTION})

APPRECIATION = "appreciation"
BALANCE = "balance"
DEFAULT_VALUATION_MODES: Mapping[InvestmentType, str] = {
    InvestmentType.FIXED_ASSET: APPRECIATION,
    InvestmentType.PENSION: APPRECIATION,
    InvestmentType.SAVINGS_ACCOUNT: BALANCE,
    InvestmentType.EXPECTED_EXPENSE: BALANCE,
}

Valuator = Callable[[InvestmentInput, Sequence[TransactionInput], date, "Decimal | None"], int]


def to_minor(amount: Decimal) -> int:
    """Round a decimal amount of minor units half-up to an integer."""

    return int(amount.quantize(ONE, rounding=ROUND_HALF_UP))


def is_liability(investment_type: InvestmentType) -> bool:
    return investment_type in LIABILITY_TYPES


def price_symbol(investment: InvestmentInput, gold_symbol: str) -> str | None:
    """Symbol whose spot price the valuator for this investment consumes, if any."""

    if investment.type == InvestmentType.GOLD:
        return gold_symbol
    if investment.type in MARKET_TYPES:
        return investment.symbol
    return None


def _up_to(transactions: Iterable[TransactionInput], as_of: date) -> list[TransactionInput]:
    return [tx for tx in transactions if tx.date <= as_of]


def units_held(transactions: Iterable[TransactionInput], as_of: date) -> Decimal:
    """Running unit balance of buy/sell/split/bonus activity up to ``as_of``."""

    held = ZERO
    for tx in _up_to(transactions, as_of):
        if tx.units is None:
            continue
        if tx.kind in UNIT_CREDIT_KINDS:
            held += abs(tx.units)
        elif tx.kind in UNIT_DEBIT_KINDS:
            held -= abs(tx.units)
    return held


def _has_units(transactions: Iterable[TransactionInput]) -> bool:
    return any(tx.units is not None and tx.kind in UNIT_CREDIT_KINDS for tx in transactions)


def last_transaction_price(transactions: Iterable[TransactionInput], as_of: date) -> Decimal | None:
    latest: TransactionInput | None = None
    for tx in _up_to(transactions, as_of):
        if tx.unit_price_minor is None or tx.unit_price_minor <= 0:
            continue
        if latest is None or (tx.date, tx.id) >= (latest.date, latest.id):
            latest = tx
    return latest.unit_price_minor if latest else None


def _periods_per_year(compounding: str | None) -> int:
    return COMPOUNDING_PERIODS.get(compounding or DEFAULT_COMPOUNDING, COMPOUNDING_PERIODS[DEFAULT_COMPOUNDING])


def compound(amount: int, annual_rate_pct: Decimal, periods_per_year: int, start: date, end: date) -> Decimal:
    """A = P * (1 + r/n)^(n*t) with t measured in years of 365.25 days."""

    days = (end - start).days
    if days <= 0 or not annual_rate_pct:
        return Decimal(amount)
    years = Decimal(days) / DAYS_PER_YEAR
    n = Decimal(periods_per_year)
    growth = (ONE + annual_rate_pct / HUNDRED / n) ** (n * years)
    return Decimal(amount) * growth


def _installments(investment: InvestmentInput, end: date) -> list[tuple[date, int]]:
    if not investment.installment_minor:
        return []
    return [(day, investment.installment_minor) for day in iter_monthly(investment.opened_on, end)]


def capital_flows(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
) -> list[tuple[date, int]]:
    """Dated net contributions, synthesised from parameters when the ledger has none."""

    flows = [(tx.date, tx.capital_flow) for tx in _up_to(transactions, as_of) if tx.capital_flow]
    if flows:
        return flows
    if investment.type == InvestmentType.RECURRING_DEPOSIT:
        return _installments(investment, _deposit_horizon(investment, as_of))
    if investment.principal_minor and investment.opened_on <= as_of:
        return [(investment.opened_on, investment.principal_minor)]
    return []


def _deposit_horizon(investment: InvestmentInput, as_of: date) -> date:
    if investment.maturity_date and investment.maturity_date < as_of:
        return investment.maturity_date
    return as_of


def _loan_principal(investment: InvestmentInput, transactions: Sequence[TransactionInput]) -> int:
    if investment.principal_minor:
        return investment.principal_minor
    return sum(tx.magnitude for tx in transactions if tx.kind == TransactionKind.WITHDRAWAL)


def cost_basis(investment: InvestmentInput, transactions: Sequence[TransactionInput], as_of: date) -> int:
    """Net amount invested as of ``as_of`` (principal for loans)."""

    history = _up_to(transactions, as_of)
    if investment.type == InvestmentType.LOAN:
        return _loan_principal(investment, history)
    return max(0, sum(amount for _, amount in capital_flows(investment, history, as_of)))


def _value_deposit(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None,
) -> int:
    horizon = _deposit_horizon(investment, as_of)
    rate = investment.interest_rate or ZERO
    periods = _periods_per_year(investment.compounding)
    total = sum(
        (compound(amount, rate, periods, day, horizon) for day, amount in capital_flows(investment, transactions, as_of)),
        ZERO,
    )
    return max(0, to_minor(total))


def _value_market(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None,
) -> int:
    if not _has_units(transactions):
        return cost_basis(investment, transactions, as_of)
    held = units_held(transactions, as_of)
    if held <= 0:
        return 0
    unit_price = price if price is not None else last_transaction_price(transactions, as_of)
    if unit_price is None:
        return cost_basis(investment, transactions, as_of)
    return to_minor(held * unit_price)


def _value_gold(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None,
) -> int:
    if _has_units(transactions):
        grams = units_held(transactions, as_of)
    else:
        grams = investment.units or ZERO
    if grams <= 0:
        return 0 if _has_units(transactions) else cost_basis(investment, transactions, as_of)
    if price is not None:
        factor = PURITY_FACTORS.get((investment.purity or "24K").upper(), ONE)
        return to_minor(grams * price * factor)
    paid = last_transaction_price(transactions, as_of)
    if paid is not None:
        return to_minor(grams * paid)
    return cost_basis(investment, transactions, as_of)


def _amortised_balance(investment: InvestmentInput, as_of: date) -> int:
    """Outstanding balance after the EMIs due between opening and ``as_of``."""

    emi = Decimal(investment.installment_minor or 0)
    monthly_rate = (investment.interest_rate or ZERO) / HUNDRED / Decimal(12)
    balance = Decimal(investment.principal_minor or 0)
    payments = sum(1 for _ in iter_monthly(investment.opened_on, as_of)) - 1
    for _ in range(max(0, payments)):
        if balance <= 0:
            break
        interest = Decimal(to_minor(balance * monthly_rate))
        balance -= emi - interest
    return max(0, to_minor(balance))


def _value_loan(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None,
) -> int:
    repayments = [tx for tx in transactions if tx.kind in LOAN_REPAYMENT_KINDS]
    if not repayments and investment.installment_minor and investment.principal_minor:
        return _amortised_balance(investment, as_of)
    principal = _loan_principal(investment, transactions)
    return max(0, principal - sum(tx.magnitude for tx in repayments))


def _value_by_mode(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None,
) -> int:
    mode = investment.valuation_mode or DEFAULT_VALUATION_MODES.get(investment.type, BALANCE)
    flows = capital_flows(investment, transactions, as_of)
    if mode == APPRECIATION:
        rate = investment.appreciation_rate if investment.appreciation_rate is not None else investment.interest_rate
        total = sum((compound(amount, rate or ZERO, 1, day, as_of) for day, amount in flows), ZERO)
        return max(0, to_minor(total))
    return max(0, sum(amount for _, amount in flows))


def _value_expected_expense(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None,
) -> int:
    if as_of < investment.opened_on:
        return 0
    if investment.maturity_date is not None and as_of > investment.maturity_date:
        return 0
    return _value_by_mode(investment, transactions, as_of, price)


VALUATORS: Mapping[InvestmentType, Valuator] = {
    InvestmentType.FIXED_DEPOSIT: _value_deposit,
    InvestmentType.RECURRING_DEPOSIT: _value_deposit,
    InvestmentType.EQUITY_FUND: _value_market,
    InvestmentType.HYBRID_FUND: _value_market,
    InvestmentType.DEBT_FUND: _value_market,
    InvestmentType.SHARES: _value_market,
    InvestmentType.GOLD: _value_gold,
    InvestmentType.LOAN: _value_loan,
    InvestmentType.FIXED_ASSET: _value_by_mode,
    InvestmentType.PENSION: _value_by_mode,
    InvestmentType.SAVINGS_ACCOUNT: _value_by_mode,
    InvestmentType.EXPECTED_EXPENSE: _value_expected_expense,
}


def value_investment(
    investment: InvestmentInput,
    transactions: Sequence[TransactionInput],
    as_of: date,
    price: Decimal | None = None,
    *,
    override: int | None = None,
) -> int:
    """Value ``investment`` as of ``as_of`` in minor units.

    ``price`` is the spot price per unit (per gram of 24K for gold) in minor
    units, when the pricing collaborator had one. ``override`` is a manually
    recorded value that wins over any computation. Loans and other
    liabilities are returned as a non-negative outstanding amount.
    """

    if override is not None:
        return override
    valuator = VALUATORS[investment.type]
    return valuator(investment, _up_to(transactions, as_of), as_of, price)


__all__ = [
    "VALUATORS",
    "MARKET_TYPES",
    "LIABILITY_TYPES",
    "PURITY_FACTORS",
    "compound",
    "capital_flows",
    "cost_basis",
    "is_liability",
    "last_transaction_price",
    "price_symbol",
    "to_minor",
    "units_held",
    "value_investment",
]
