"""Monthly investment and net-worth snapshot models."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wealthtrack.db.base import Base


class InvestmentSnapshot(Base):
    __tablename__ = "investment_snapshot"
    __table_args__ = (
        UniqueConstraint("user_id", "investment_id", "year_month", name="uq_investment_snapshot_key"),
        Index("ix_investment_snapshot_user_month", "user_id", "year_month"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer)
    investment_id: Mapped[int] = mapped_column(Integer)
    year_month: Mapped[str] = mapped_column(String(7))
    investment_type: Mapped[str] = mapped_column(String(32))
    value_minor: Mapped[int] = mapped_column(BigInteger)
    invested_minor: Mapped[int] = mapped_column(BigInteger, default=0)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


class NetWorthSnapshot(Base):
    __tablename__ = "net_worth_snapshot"
    __table_args__ = (
        UniqueConstraint("user_id", "year_month", name="uq_net_worth_snapshot_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    year_month: Mapped[str] = mapped_column(String(7))
    total_minor: Mapped[int] = mapped_column(BigInteger)
    total_assets_minor: Mapped[int] = mapped_column(BigInteger, default=0)
    total_liabilities_minor: Mapped[int] = mapped_column(BigInteger, default=0)
    total_invested_minor: Mapped[int] = mapped_column(BigInteger, default=0)
    breakdown: Mapped[dict] = mapped_column(JSON, default=dict)
    computed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)


__all__ = ["InvestmentSnapshot", "NetWorthSnapshot"]
