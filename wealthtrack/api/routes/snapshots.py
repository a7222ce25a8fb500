"""Monthly snapshot, net worth and backfill endpoints."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.api.dependencies import (
    RequestContext,
    get_backfill_registry,
    get_db_session,
    get_price_source,
    get_request_context,
)
from wealthtrack.config import get_settings
from wealthtrack.core.periods import YearMonth, current_year_month
from wealthtrack.models import NetWorthSnapshot
from wealthtrack.schemas import (
    CalculateSnapshotsRequest,
    CalculateSnapshotsResponse,
    ClearSnapshotsResponse,
    InvestmentSnapshotSchema,
    NetWorthSnapshotSchema,
    SnapshotDetailSchema,
    SnapshotJobSchema,
)
from wealthtrack.services import analytics as analytics_service
from wealthtrack.services import net_worth as net_worth_service
from wealthtrack.services import snapshots as snapshot_service
from wealthtrack.services.backfill import BackfillJobRegistry, SnapshotJob
from wealthtrack.services.errors import JobConflictError, ValidationError
from wealthtrack.services.pricing import PriceSource

router = APIRouter()


def _parse_year_month(value: str) -> YearMonth:
    try:
        return YearMonth.parse(value)
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _serialize_job(job: SnapshotJob) -> SnapshotJobSchema:
    payload = asdict(job)
    payload["status"] = job.status.value
    return SnapshotJobSchema(**payload)


def _serialize_net_worth(row: NetWorthSnapshot) -> NetWorthSnapshotSchema:
    return NetWorthSnapshotSchema.model_validate(row)


@router.post("/calculate", response_model=CalculateSnapshotsResponse)
async def calculate_snapshots(
    payload: CalculateSnapshotsRequest | None = Body(default=None),
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
    price_source: PriceSource = Depends(get_price_source),
) -> CalculateSnapshotsResponse:
    settings = get_settings()
    if payload is not None and payload.year_month:
        year_month = _parse_year_month(payload.year_month)
    else:
        year_month = current_year_month(settings.timezone)
    processed = await analytics_service.calculate_snapshots(
        session, context.user_id, year_month, price_source, settings=settings
    )
    return CalculateSnapshotsResponse(year_month=str(year_month), snapshots_calculated=processed)


@router.get("/net-worth", response_model=list[NetWorthSnapshotSchema])
async def get_net_worth_history(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> list[NetWorthSnapshotSchema]:
    rows = await net_worth_service.get_net_worth_history(session, context.user_id)
    return [_serialize_net_worth(row) for row in rows]


@router.post(
    "/generate-historical",
    response_model=SnapshotJobSchema,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_historical_backfill(
    context: RequestContext = Depends(get_request_context),
    registry: BackfillJobRegistry = Depends(get_backfill_registry),
) -> SnapshotJobSchema:
    try:
        job = await registry.start(context.user_id)
    except JobConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"reason": "already_running", "message": str(exc)},
        ) from exc
    return _serialize_job(job)


@router.get("/job-status", response_model=SnapshotJobSchema)
async def get_job_status(
    context: RequestContext = Depends(get_request_context),
    registry: BackfillJobRegistry = Depends(get_backfill_registry),
) -> SnapshotJobSchema:
    return _serialize_job(await registry.status(context.user_id))


@router.delete("/job-status", response_model=SnapshotJobSchema)
async def clear_job_status(
    context: RequestContext = Depends(get_request_context),
    registry: BackfillJobRegistry = Depends(get_backfill_registry),
) -> SnapshotJobSchema:
    try:
        job = await registry.clear(context.user_id)
    except JobConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"reason": "already_running", "message": str(exc)},
        ) from exc
    return _serialize_job(job)


@router.post("/clear", response_model=ClearSnapshotsResponse)
async def clear_snapshots(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> ClearSnapshotsResponse:
    investment_rows, net_worth_rows = await snapshot_service.clear_snapshots(session)
    return ClearSnapshotsResponse(
        investment_snapshots_deleted=investment_rows,
        net_worth_snapshots_deleted=net_worth_rows,
    )


@router.get("/list", response_model=list[NetWorthSnapshotSchema])
async def list_snapshots(
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> list[NetWorthSnapshotSchema]:
    rows = await snapshot_service.list_snapshots(session, context.user_id)
    return [_serialize_net_worth(row) for row in rows]


@router.get("/detail/{year_month}", response_model=SnapshotDetailSchema)
async def get_snapshot_detail(
    year_month: str,
    session: AsyncSession = Depends(get_db_session),
    context: RequestContext = Depends(get_request_context),
) -> SnapshotDetailSchema:
    key = _parse_year_month(year_month)
    rows = await snapshot_service.snapshot_detail(session, context.user_id, key)
    history = await net_worth_service.get_net_worth_history(session, context.user_id)
    net_worth = next((row for row in history if row.year_month == str(key)), None)
    return SnapshotDetailSchema(
        year_month=str(key),
        net_worth=_serialize_net_worth(net_worth) if net_worth else None,
        investments=[
            InvestmentSnapshotSchema(
                investment_id=snapshot.investment_id,
                investment_name=name,
                investment_type=snapshot.investment_type,
                value_minor=snapshot.value_minor,
                invested_minor=snapshot.invested_minor,
                gain_minor=snapshot.value_minor - snapshot.invested_minor if snapshot.value_minor >= 0 else 0,
            )
            for snapshot, name in rows
        ],
    )


__all__ = ["router"]
