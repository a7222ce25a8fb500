"""Ledger tables: investments, their transactions and manual value overrides.

The ledger is owned by the transaction-entry side of the application. The
engine maps these tables to read investments and their history; it never
writes to them.
"""

from __future__ import annotations

import enum
import datetime as dt
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wealthtrack.db.base import Base


class InvestmentType(str, enum.Enum):
    FIXED_DEPOSIT = "fixed_deposit"
    RECURRING_DEPOSIT = "recurring_deposit"
    EQUITY_FUND = "equity_fund"
    HYBRID_FUND = "hybrid_fund"
    DEBT_FUND = "debt_fund"
    SHARES = "shares"
    GOLD = "gold"
    LOAN = "loan"
    FIXED_ASSET = "fixed_asset"
    PENSION = "pension"
    SAVINGS_ACCOUNT = "savings_account"
    EXPECTED_EXPENSE = "expected_expense"


class TransactionKind(str, enum.Enum):
    BUY = "buy"
    SELL = "sell"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DIVIDEND = "dividend"
    INTEREST = "interest"
    CONTRIBUTION = "contribution"
    PREMIUM = "premium"
    BONUS = "bonus"
    SPLIT = "split"
    MATURITY = "maturity"


class InvestmentStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Investment(Base):
    __tablename__ = "investment"
    __table_args__ = (
        Index("ix_investment_user_type", "user_id", "investment_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    name: Mapped[str] = mapped_column(String(128))
    investment_type: Mapped[InvestmentType] = mapped_column(
        Enum(InvestmentType, name="investment_type", native_enum=False, values_callable=lambda e: [m.value for m in e])
    )
    symbol: Mapped[str | None] = mapped_column(String(32), nullable=True)
    opened_on: Mapped[date] = mapped_column(Date)
    closed_on: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[InvestmentStatus] = mapped_column(
        Enum(InvestmentStatus, name="investment_status", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=InvestmentStatus.ACTIVE,
    )

    interest_rate: Mapped[Decimal | None] = mapped_column(Numeric(9, 4), nullable=True)
    compounding: Mapped[str | None] = mapped_column(String(16), nullable=True)
    maturity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    principal_minor: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    installment_minor: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    units: Mapped[Decimal | None] = mapped_column(Numeric(20, 6), nullable=True)
    purity: Mapped[str | None] = mapped_column(String(8), nullable=True)
    appreciation_rate: Mapped[Decimal | None] = mapped_column(Numeric(9, 4), nullable=True)
    valuation_mode: Mapped[str | None] = mapped_column(String(16), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)

    transactions: Mapped[list["InvestmentTransaction"]] = relationship(
        back_populates="investment", cascade="all, delete-orphan"
    )
    overrides: Mapped[list["ValueOverride"]] = relationship(
        back_populates="investment", cascade="all, delete-orphan"
    )


class InvestmentTransaction(Base):
    __tablename__ = "investment_transaction"
    __table_args__ = (
        Index("ix_investment_transaction_investment_date", "investment_id", "date"),
        Index("ix_investment_transaction_user_date", "user_id", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    investment_id: Mapped[int] = mapped_column(ForeignKey("investment.id", ondelete="CASCADE"))
    user_id: Mapped[int] = mapped_column(Integer)
    kind: Mapped[TransactionKind] = mapped_column(
        Enum(TransactionKind, name="transaction_kind", native_enum=False, values_callable=lambda e: [m.value for m in e])
    )
    date: Mapped[dt.date] = mapped_column(Date)
    amount_minor: Mapped[int] = mapped_column(BigInteger)
    units: Mapped[Decimal | None] = mapped_column(Numeric(20, 6), nullable=True)
    unit_price_minor: Mapped[Decimal | None] = mapped_column(Numeric(20, 4), nullable=True)
    fees_minor: Mapped[int] = mapped_column(BigInteger, default=0)
    notes: Mapped[str | None] = mapped_column(String(255), nullable=True)

    investment: Mapped[Investment] = relationship(back_populates="transactions")


class ValueOverride(Base):
    __tablename__ = "investment_value_override"
    __table_args__ = (
        Index("ix_value_override_investment_date", "investment_id", "override_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    investment_id: Mapped[int] = mapped_column(ForeignKey("investment.id", ondelete="CASCADE"))
    override_date: Mapped[date] = mapped_column(Date)
    value_minor: Mapped[int] = mapped_column(BigInteger)
    reason: Mapped[str | None] = mapped_column(String(255), nullable=True)

    investment: Mapped[Investment] = relationship(back_populates="overrides")


__all__ = [
    "Investment",
    "InvestmentTransaction",
    "ValueOverride",
    "InvestmentType",
    "TransactionKind",
    "InvestmentStatus",
]
