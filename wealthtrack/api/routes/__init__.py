"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .analytics import router as analytics_router
from .snapshots import router as snapshots_router
from .tax import router as tax_router

api_router = APIRouter()
api_router.include_router(snapshots_router, prefix="/snapshots", tags=["snapshots"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["analytics"])
api_router.include_router(tax_router, prefix="/tax", tags=["tax"])

__all__ = ["api_router"]
