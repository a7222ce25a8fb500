"""Return analytics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.api.dependencies import RequestContext, get_db_session, get_price_source, get_request_context
from wealthtrack.models import InvestmentType
from wealthtrack.schemas import (
    DashboardSchema,
    InvestmentSummarySchema,
    TypeHistoryPointSchema,
    TypeTotalsSchema,
    TypeXirrSchema,
    XirrSchema,
)
from wealthtrack.services import analytics as analytics_service
from wealthtrack.services import net_worth as net_worth_service
from wealthtrack.services.errors import ValidationError
from wealthtrack.services.pricing import PriceSource
from wealthtrack.services.xirr import XirrResult

router = APIRouter()


def _investment_type(value: str) -> InvestmentType:
    try:
        return analytics_service.parse_investment_type(value)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _percent(rate: float | None) -> float | None:
    return round(rate * 100, 4) if rate is not None else None


def _xirr_schema(result: XirrResult | None) -> XirrSchema | None:
    if result is None:
        return None
    return XirrSchema(
        xirr=result.rate,
        xirr_percent=_percent(result.rate),
        failure=result.failure.value if result.failure else None,
    )


@router.get("/dashboard", response_model=DashboardSchema)
async def get_dashboard(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    price_source: PriceSource = Depends(get_price_source),
) -> DashboardSchema:
    summaries = await analytics_service.investment_summaries(session, context.user_id, price_source)
    stats = analytics_service.dashboard_stats(summaries)
    return DashboardSchema.model_validate(stats)


@router.get("/breakdown", response_model=list[TypeTotalsSchema])
async def get_breakdown(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    price_source: PriceSource = Depends(get_price_source),
) -> list[TypeTotalsSchema]:
    summaries = await analytics_service.investment_summaries(session, context.user_id, price_source)
    return [
        TypeTotalsSchema(
            investment_type=totals.investment_type.value,
            invested_minor=totals.invested_minor,
            current_minor=totals.current_minor,
            count=totals.count,
        )
        for totals in analytics_service.investment_breakdown(summaries)
    ]


@router.get("/investments", response_model=list[InvestmentSummarySchema])
async def get_investments(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    price_source: PriceSource = Depends(get_price_source),
) -> list[InvestmentSummarySchema]:
    summaries = await analytics_service.investment_summaries(session, context.user_id, price_source)
    return [
        InvestmentSummarySchema(
            investment_id=summary.investment_id,
            name=summary.name,
            investment_type=summary.investment_type.value,
            invested_minor=summary.invested_minor,
            current_minor=summary.current_minor,
            gain_minor=summary.gain_minor,
            gain_percent=round(summary.gain_percent, 4),
            xirr=_xirr_schema(summary.xirr),
        )
        for summary in summaries
    ]


@router.get("/type-xirr/{investment_type}", response_model=TypeXirrSchema)
async def get_type_xirr(
    investment_type: str,
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    price_source: PriceSource = Depends(get_price_source),
) -> TypeXirrSchema:
    kind = _investment_type(investment_type)
    result = await analytics_service.calculate_type_xirr(session, context.user_id, kind, price_source)
    return TypeXirrSchema(
        investment_type=kind.value,
        xirr=result.rate,
        xirr_percent=_percent(result.rate),
        failure=result.failure.value if result.failure else None,
        method=result.method,
        iterations=result.iterations,
    )


@router.get("/type-history/{investment_type}", response_model=list[TypeHistoryPointSchema])
async def get_type_history(
    investment_type: str,
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> list[TypeHistoryPointSchema]:
    kind = _investment_type(investment_type)
    history = await net_worth_service.get_type_history(session, context.user_id, kind)
    return [TypeHistoryPointSchema(**point) for point in history]


__all__ = ["router"]
