"""Realised capital gains by FIFO lot matching.

Lots are opened by unit-bearing purchases (and bonus allotments), rescaled by
splits and consumed oldest first by sales. Only sales dated inside the
requested fiscal range produce gain records; earlier sales still consume
lots so the queue is in the right state when the range starts.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, getcontext
from enum import Enum
from typing import Iterable, Mapping

from wealthtrack.config import AppSettings, get_settings
from wealthtrack.models import InvestmentType, TransactionKind
from wealthtrack.services.errors import OversellError, ValidationError
from wealthtrack.services.ledger import TransactionInput
from wealthtrack.services.valuation import MARKET_TYPES, to_minor

getcontext().prec = 28

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
LOT_OPENING_KINDS = frozenset({TransactionKind.BUY, TransactionKind.CONTRIBUTION})
EQUITY_TAX_TYPES = frozenset({InvestmentType.EQUITY_FUND, InvestmentType.SHARES})


class GainTerm(str, Enum):
    SHORT = "short"
    LONG = "long"


@dataclass
class TaxLot:
    investment_id: int
    acquired_on: date
    quantity: Decimal
    remaining: Decimal
    cost_per_unit: Decimal


@dataclass(frozen=True)
class HoldingThresholds:
    """Holding period, in days, beyond which a gain is long-term."""

    equity_days: int = 365
    other_days: int = 1095

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> "HoldingThresholds":
        settings = settings or get_settings()
        return cls(equity_days=settings.equity_long_term_days, other_days=settings.other_long_term_days)

    def for_type(self, investment_type: InvestmentType) -> int:
        return self.equity_days if investment_type in MARKET_TYPES else self.other_days


@dataclass(frozen=True)
class GainRecord:
    investment_id: int
    investment_type: InvestmentType
    sell_date: date
    acquired_on: date
    units: Decimal
    proceeds_minor: int
    cost_minor: int
    gain_minor: int
    holding_days: int
    term: GainTerm


@dataclass
class TaxEstimate:
    equity_stcg_tax_minor: int = 0
    equity_ltcg_exemption_minor: int = 0
    equity_ltcg_tax_minor: int = 0
    other_stcg_tax_minor: int = 0
    other_ltcg_tax_minor: int = 0

    @property
    def total_tax_minor(self) -> int:
        return (
            self.equity_stcg_tax_minor
            + self.equity_ltcg_tax_minor
            + self.other_stcg_tax_minor
            + self.other_ltcg_tax_minor
        )


@dataclass
class GainsSummary:
    fy_start: date
    fy_end: date
    short_term_minor: int = 0
    long_term_minor: int = 0
    by_type: dict[InvestmentType, dict[GainTerm, int]] = field(default_factory=dict)
    records: list[GainRecord] = field(default_factory=list)
    open_lots: dict[int, list[TaxLot]] = field(default_factory=dict)
    tax: TaxEstimate | None = None

    @property
    def total_minor(self) -> int:
        return self.short_term_minor + self.long_term_minor

    def add(self, record: GainRecord) -> None:
        self.records.append(record)
        if record.term == GainTerm.LONG:
            self.long_term_minor += record.gain_minor
        else:
            self.short_term_minor += record.gain_minor
        per_type = self.by_type.setdefault(record.investment_type, {GainTerm.SHORT: 0, GainTerm.LONG: 0})
        per_type[record.term] += record.gain_minor


def _sell_units(tx: TransactionInput) -> Decimal | None:
    if tx.units is not None:
        return abs(tx.units)
    if tx.unit_price_minor:
        return Decimal(tx.magnitude) / tx.unit_price_minor
    return None


def _apply_split(lots: Iterable[TaxLot], added_units: Decimal) -> None:
    open_lots = [lot for lot in lots if lot.remaining > 0]
    held = sum((lot.remaining for lot in open_lots), ZERO)
    if held <= 0:
        return
    factor = (held + added_units) / held
    for lot in open_lots:
        lot.quantity *= factor
        lot.remaining *= factor
        lot.cost_per_unit /= factor


def _match_sale(
    queue: deque[TaxLot],
    tx: TransactionInput,
    units: Decimal,
) -> list[tuple[TaxLot, Decimal]]:
    """Consume ``units`` from the front of ``queue``; return (lot, quantity) portions."""

    available = sum((lot.remaining for lot in queue), ZERO)
    if units > available:
        raise OversellError(tx.investment_id, tx.date, units, available)
    portions: list[tuple[TaxLot, Decimal]] = []
    remaining = units
    while remaining > 0 and queue:
        lot = queue[0]
        take = min(lot.remaining, remaining)
        lot.remaining -= take
        remaining -= take
        portions.append((lot, take))
        if lot.remaining <= 0:
            queue.popleft()
    return portions


def calculate_gains(
    transactions: Iterable[TransactionInput],
    fy_start: date,
    fy_end: date,
    investment_types: Mapping[int, InvestmentType],
    thresholds: HoldingThresholds | None = None,
) -> GainsSummary:
    """Match sales against FIFO lots and summarise realised gains for a range.

    Raises ``OversellError`` when any sale on or before ``fy_end`` needs more
    units than the open lots hold; no partial summary is returned.
    """

    if fy_start > fy_end:
        raise ValidationError(f"Range start {fy_start} is after range end {fy_end}")
    thresholds = thresholds or HoldingThresholds.from_settings()

    summary = GainsSummary(fy_start=fy_start, fy_end=fy_end)
    queues: dict[int, deque[TaxLot]] = {}

    ordered = sorted(
        (tx for tx in transactions if tx.date <= fy_end and tx.investment_id in investment_types),
        key=lambda tx: (tx.date, tx.id),
    )
    for tx in ordered:
        queue = queues.setdefault(tx.investment_id, deque())
        if tx.kind in LOT_OPENING_KINDS and tx.units:
            quantity = abs(tx.units)
            cost = Decimal(tx.magnitude + abs(tx.fees_minor))
            queue.append(
                TaxLot(
                    investment_id=tx.investment_id,
                    acquired_on=tx.date,
                    quantity=quantity,
                    remaining=quantity,
                    cost_per_unit=cost / quantity,
                )
            )
        elif tx.kind == TransactionKind.BONUS and tx.units:
            quantity = abs(tx.units)
            queue.append(TaxLot(tx.investment_id, tx.date, quantity, quantity, ZERO))
        elif tx.kind == TransactionKind.SPLIT and tx.units:
            _apply_split(queue, abs(tx.units))
        elif tx.kind == TransactionKind.SELL or (tx.kind == TransactionKind.WITHDRAWAL and tx.units):
            units = _sell_units(tx)
            if not units:
                logger.warning("Sell transaction %s carries no units; skipped for gains", tx.id)
                continue
            portions = _match_sale(queue, tx, units)
            if tx.date >= fy_start:
                _record_sale(summary, tx, units, portions, investment_types[tx.investment_id], thresholds)

    summary.open_lots = {inv_id: list(queue) for inv_id, queue in queues.items() if queue}
    return summary


def _record_sale(
    summary: GainsSummary,
    tx: TransactionInput,
    units: Decimal,
    portions: list[tuple[TaxLot, Decimal]],
    investment_type: InvestmentType,
    thresholds: HoldingThresholds,
) -> None:
    proceeds = tx.magnitude - abs(tx.fees_minor)
    allocated = 0
    threshold = thresholds.for_type(investment_type)
    for index, (lot, quantity) in enumerate(portions):
        if index == len(portions) - 1:
            share = proceeds - allocated
        else:
            share = to_minor(Decimal(proceeds) * quantity / units)
        allocated += share
        cost = to_minor(quantity * lot.cost_per_unit)
        holding_days = (tx.date - lot.acquired_on).days
        summary.add(
            GainRecord(
                investment_id=tx.investment_id,
                investment_type=investment_type,
                sell_date=tx.date,
                acquired_on=lot.acquired_on,
                units=quantity,
                proceeds_minor=share,
                cost_minor=cost,
                gain_minor=share - cost,
                holding_days=holding_days,
                term=GainTerm.LONG if holding_days > threshold else GainTerm.SHORT,
            )
        )


def estimate_tax(summary: GainsSummary, settings: AppSettings | None = None) -> TaxEstimate:
    """Indicative tax on the summary's gains; losses are not carried forward."""

    settings = settings or get_settings()
    equity = {GainTerm.SHORT: 0, GainTerm.LONG: 0}
    other = {GainTerm.SHORT: 0, GainTerm.LONG: 0}
    for investment_type, terms in summary.by_type.items():
        bucket = equity if investment_type in EQUITY_TAX_TYPES else other
        for term, amount in terms.items():
            bucket[term] += amount

    exemption = min(max(0, equity[GainTerm.LONG]), settings.equity_ltcg_exemption_minor)
    taxable_equity_ltcg = max(0, equity[GainTerm.LONG] - exemption)
    return TaxEstimate(
        equity_stcg_tax_minor=to_minor(max(0, equity[GainTerm.SHORT]) * settings.equity_stcg_rate),
        equity_ltcg_exemption_minor=exemption,
        equity_ltcg_tax_minor=to_minor(taxable_equity_ltcg * settings.equity_ltcg_rate),
        other_stcg_tax_minor=to_minor(max(0, other[GainTerm.SHORT]) * settings.other_stcg_rate),
        other_ltcg_tax_minor=to_minor(max(0, other[GainTerm.LONG]) * settings.other_ltcg_rate),
    )


__all__ = [
    "GainTerm",
    "TaxLot",
    "HoldingThresholds",
    "GainRecord",
    "TaxEstimate",
    "GainsSummary",
    "calculate_gains",
    "estimate_tax",
]
