"""Pydantic schemas for snapshots, net worth and backfill jobs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CalculateSnapshotsRequest(BaseModel):
    year_month: str | None = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}$",
        description="Month to snapshot; defaults to the current month",
        examples=["2024-03"],
    )


class CalculateSnapshotsResponse(BaseModel):
    year_month: str
    snapshots_calculated: int


class TypeBreakdownSchema(BaseModel):
    value_minor: int = 0
    invested_minor: int = 0
    count: int = 0


class NetWorthSnapshotSchema(BaseModel):
    year_month: str
    total_minor: int
    total_assets_minor: int
    total_liabilities_minor: int
    total_invested_minor: int
    breakdown: dict[str, TypeBreakdownSchema] = Field(default_factory=dict)
    computed_at: datetime | None = None

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "year_month": "2024-03",
                "total_minor": 1250000000,
                "total_assets_minor": 1750000000,
                "total_liabilities_minor": 500000000,
                "total_invested_minor": 1400000000,
                "breakdown": {
                    "fixed_deposit": {"value_minor": 1750000000, "invested_minor": 1400000000, "count": 2},
                    "loan": {"value_minor": -500000000, "invested_minor": 0, "count": 1},
                },
            }
        }


class InvestmentSnapshotSchema(BaseModel):
    investment_id: int
    investment_name: str | None = None
    investment_type: str
    value_minor: int
    invested_minor: int
    gain_minor: int


class SnapshotDetailSchema(BaseModel):
    year_month: str
    net_worth: NetWorthSnapshotSchema | None = None
    investments: list[InvestmentSnapshotSchema] = Field(default_factory=list)


class SnapshotJobSchema(BaseModel):
    user_id: int
    status: str = Field(..., examples=["running"])
    processed: int = 0
    total: int = 0
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None


class ClearSnapshotsResponse(BaseModel):
    investment_snapshots_deleted: int
    net_worth_snapshots_deleted: int
