"""Capital gains endpoints."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.api.dependencies import RequestContext, get_db_session, get_request_context
from wealthtrack.config import get_settings
from wealthtrack.core.periods import fiscal_year_bounds, today
from wealthtrack.schemas import (
    CapitalGainsRequest,
    CapitalGainsSummarySchema,
    GainRecordSchema,
    TaxEstimateSchema,
    TermTotalsSchema,
)
from wealthtrack.services import analytics as analytics_service
from wealthtrack.services.capital_gains import GainsSummary, GainTerm
from wealthtrack.services.errors import OversellError, ValidationError

router = APIRouter()


def _serialize_summary(summary: GainsSummary) -> CapitalGainsSummarySchema:
    tax = None
    if summary.tax is not None:
        tax = TaxEstimateSchema(
            equity_stcg_tax_minor=summary.tax.equity_stcg_tax_minor,
            equity_ltcg_exemption_minor=summary.tax.equity_ltcg_exemption_minor,
            equity_ltcg_tax_minor=summary.tax.equity_ltcg_tax_minor,
            other_stcg_tax_minor=summary.tax.other_stcg_tax_minor,
            other_ltcg_tax_minor=summary.tax.other_ltcg_tax_minor,
            total_tax_minor=summary.tax.total_tax_minor,
        )
    return CapitalGainsSummarySchema(
        fy_start=summary.fy_start,
        fy_end=summary.fy_end,
        short_term_minor=summary.short_term_minor,
        long_term_minor=summary.long_term_minor,
        total_minor=summary.total_minor,
        by_type={
            investment_type.value: TermTotalsSchema(
                short_term_minor=terms[GainTerm.SHORT],
                long_term_minor=terms[GainTerm.LONG],
            )
            for investment_type, terms in summary.by_type.items()
        },
        records=[
            GainRecordSchema(
                investment_id=record.investment_id,
                investment_type=record.investment_type.value,
                sell_date=record.sell_date,
                acquired_on=record.acquired_on,
                units=format(record.units.normalize(), "f"),
                proceeds_minor=record.proceeds_minor,
                cost_minor=record.cost_minor,
                gain_minor=record.gain_minor,
                holding_days=record.holding_days,
                term=record.term.value,
            )
            for record in summary.records
        ],
        tax=tax,
    )


async def _gains_response(
    session: AsyncSession, user_id: int, fy_start: date, fy_end: date
) -> CapitalGainsSummarySchema:
    try:
        summary = await analytics_service.calculate_capital_gains(session, user_id, fy_start, fy_end)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except OversellError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.to_detail()) from exc
    return _serialize_summary(summary)


@router.post("/calculate", response_model=CapitalGainsSummarySchema)
async def calculate_capital_gains(
    payload: CapitalGainsRequest,
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> CapitalGainsSummarySchema:
    return await _gains_response(session, context.user_id, payload.fy_start, payload.fy_end)


@router.get("/gains", response_model=CapitalGainsSummarySchema)
async def get_current_year_gains(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> CapitalGainsSummarySchema:
    settings = get_settings()
    fy_start, fy_end = fiscal_year_bounds(today(settings.timezone), settings.fiscal_year_start_month)
    return await _gains_response(session, context.user_id, fy_start, fy_end)


__all__ = ["router"]
