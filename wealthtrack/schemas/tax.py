"""Pydantic schemas for capital gains."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field


class CapitalGainsRequest(BaseModel):
    fy_start: date = Field(..., examples=["2024-04-01"])
    fy_end: date = Field(..., examples=["2025-03-31"])


class GainRecordSchema(BaseModel):
    investment_id: int
    investment_type: str
    sell_date: date
    acquired_on: date
    units: str
    proceeds_minor: int
    cost_minor: int
    gain_minor: int
    holding_days: int
    term: str


class TermTotalsSchema(BaseModel):
    short_term_minor: int = 0
    long_term_minor: int = 0


class TaxEstimateSchema(BaseModel):
    equity_stcg_tax_minor: int
    equity_ltcg_exemption_minor: int
    equity_ltcg_tax_minor: int
    other_stcg_tax_minor: int
    other_ltcg_tax_minor: int
    total_tax_minor: int


class CapitalGainsSummarySchema(BaseModel):
    fy_start: date
    fy_end: date
    short_term_minor: int
    long_term_minor: int
    total_minor: int
    by_type: dict[str, TermTotalsSchema] = Field(default_factory=dict)
    records: list[GainRecordSchema] = Field(default_factory=list)
    tax: TaxEstimateSchema | None = None
