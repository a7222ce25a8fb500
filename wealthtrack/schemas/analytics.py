"""Pydantic schemas for return analytics."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TypeXirrSchema(BaseModel):
    investment_type: str = Field(..., examples=["equity_fund"])
    xirr: float | None = Field(default=None, description="Annualised rate as a fraction; null on failure")
    xirr_percent: float | None = None
    failure: str | None = Field(default=None, examples=["undefined_rate"])
    method: str | None = None
    iterations: int = 0


class TypeHistoryPointSchema(BaseModel):
    year_month: str
    value_minor: int
    invested_minor: int
    count: int


class XirrSchema(BaseModel):
    xirr: float | None = None
    xirr_percent: float | None = None
    failure: str | None = None


class InvestmentSummarySchema(BaseModel):
    investment_id: int
    name: str
    investment_type: str
    invested_minor: int
    current_minor: int
    gain_minor: int
    gain_percent: float
    xirr: XirrSchema | None = None


class DashboardSchema(BaseModel):
    total_invested_minor: int
    total_current_minor: int
    total_gain_minor: int
    total_gain_percent: float
    total_debt_minor: int
    net_worth_minor: int
    investment_count: int

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "total_invested_minor": 600000,
                "total_current_minor": 720000,
                "total_gain_minor": 120000,
                "total_gain_percent": 20.0,
                "total_debt_minor": 250000,
                "net_worth_minor": 470000,
                "investment_count": 3,
            }
        }


class TypeTotalsSchema(BaseModel):
    investment_type: str
    invested_minor: int
    current_minor: int
    count: int
