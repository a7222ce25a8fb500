"""Pydantic schemas for API responses."""

from .analytics import (
    DashboardSchema,
    InvestmentSummarySchema,
    TypeHistoryPointSchema,
    TypeTotalsSchema,
    TypeXirrSchema,
    XirrSchema,
)
from .snapshots import (
    CalculateSnapshotsRequest,
    CalculateSnapshotsResponse,
    ClearSnapshotsResponse,
    InvestmentSnapshotSchema,
    NetWorthSnapshotSchema,
    SnapshotDetailSchema,
    SnapshotJobSchema,
    TypeBreakdownSchema,
)
from .tax import (
    CapitalGainsRequest,
    CapitalGainsSummarySchema,
    GainRecordSchema,
    TaxEstimateSchema,
    TermTotalsSchema,
)

__all__ = [
    "TypeXirrSchema",
    "TypeHistoryPointSchema",
    "DashboardSchema",
    "InvestmentSummarySchema",
    "TypeTotalsSchema",
    "XirrSchema",
    "CalculateSnapshotsRequest",
    "CalculateSnapshotsResponse",
    "ClearSnapshotsResponse",
    "InvestmentSnapshotSchema",
    "NetWorthSnapshotSchema",
    "SnapshotDetailSchema",
    "SnapshotJobSchema",
    "TypeBreakdownSchema",
    "CapitalGainsRequest",
    "CapitalGainsSummarySchema",
    "GainRecordSchema",
    "TaxEstimateSchema",
    "TermTotalsSchema",
]
