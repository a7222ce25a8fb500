import asyncio
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from pathlib import Path

from httpx import ASGITransport, AsyncClient

from factories import add_investment, add_transaction, sqlite_sessions

from wealthtrack.api.dependencies import get_backfill_registry, get_db_session, get_price_source
from wealthtrack.main import app
from wealthtrack.models import InvestmentType, TransactionKind
from wealthtrack.services.backfill import BackfillJobRegistry
from wealthtrack.services.pricing import InMemoryPriceSource

USER = {"X-User-Id": "1"}


def _client(tmp_path: Path, seed=None):
    @asynccontextmanager
    async def _manager():
        async with sqlite_sessions(tmp_path) as sessions:
            if seed is not None:
                async with sessions() as session:
                    await seed(session)
                    await session.commit()

            async def _session_override():
                async with sessions() as session:
                    yield session

            registry = BackfillJobRegistry(sessions, price_source_factory=lambda: None)
            app.dependency_overrides[get_db_session] = _session_override
            app.dependency_overrides[get_backfill_registry] = lambda: registry
            app.dependency_overrides[get_price_source] = lambda: InMemoryPriceSource(
                {"NIFTY": {date(2024, 1, 1): Decimal("12000")}}
            )
            try:
                transport = ASGITransport(app=app)
                async with AsyncClient(transport=transport, base_url="http://test") as client:
                    yield client, registry
            finally:
                app.dependency_overrides.clear()

    return _manager


async def _seed_portfolio(session):
    savings = await add_investment(session, investment_type=InvestmentType.SAVINGS_ACCOUNT, opened_on=date(2024, 1, 1))
    await add_transaction(session, savings, TransactionKind.DEPOSIT, date(2024, 1, 2), 200_000)
    fund = await add_investment(
        session, investment_type=InvestmentType.EQUITY_FUND, opened_on=date(2024, 1, 1), symbol="NIFTY"
    )
    await add_transaction(
        session, fund, TransactionKind.BUY, date(2024, 1, 3), 100_000, units="10", unit_price_minor="10000"
    )
    await add_transaction(
        session, fund, TransactionKind.SELL, date(2024, 2, 3), 180_000, units="15", unit_price_minor="12000"
    )


def test_health(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path)() as (api_client, _):
            response = await api_client.get("/health")
            assert response.status_code == 200
            assert response.json()["status"] == "ok"

    asyncio.run(_scenario())


def test_requests_without_user_are_rejected(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path)() as (api_client, _):
            response = await api_client.get("/snapshots/net-worth")
            assert response.status_code == 401

    asyncio.run(_scenario())


def test_calculate_snapshots_then_read_net_worth(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path, _seed_portfolio)() as (api_client, _):
            calculated = await api_client.post("/snapshots/calculate", json={"year_month": "2024-01"}, headers=USER)
            assert calculated.status_code == 200
            assert calculated.json() == {"year_month": "2024-01", "snapshots_calculated": 2}

            history = await api_client.get("/snapshots/net-worth", headers=USER)
            assert history.status_code == 200
            rows = history.json()
            assert len(rows) == 1
            assert rows[0]["total_minor"] == 200_000 + 120_000
            assert rows[0]["breakdown"]["equity_fund"]["value_minor"] == 120_000

            detail = await api_client.get("/snapshots/detail/2024-01", headers=USER)
            assert detail.status_code == 200
            assert {item["investment_type"] for item in detail.json()["investments"]} == {
                "savings_account",
                "equity_fund",
            }

            listed = await api_client.get("/snapshots/list", headers=USER)
            assert [row["year_month"] for row in listed.json()] == ["2024-01"]

            history_for_type = await api_client.get("/analytics/type-history/equity_fund", headers=USER)
            assert history_for_type.json() == [
                {"year_month": "2024-01", "value_minor": 120_000, "invested_minor": 100_000, "count": 1}
            ]

            cleared = await api_client.post("/snapshots/clear", headers=USER)
            assert cleared.json() == {"investment_snapshots_deleted": 2, "net_worth_snapshots_deleted": 1}

    asyncio.run(_scenario())


def test_malformed_year_month_is_a_bad_request(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path)() as (api_client, _):
            response = await api_client.get("/snapshots/detail/2024-13", headers=USER)
            assert response.status_code == 400

    asyncio.run(_scenario())


def test_historical_backfill_reports_status_once(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path)() as (api_client, registry):
            started = await api_client.post("/snapshots/generate-historical", headers=USER)
            assert started.status_code == 202
            assert started.json()["status"] == "running"
            await registry.wait(1)

            finished = await api_client.get("/snapshots/job-status", headers=USER)
            assert finished.json()["status"] == "completed"
            idle = await api_client.get("/snapshots/job-status", headers=USER)
            assert idle.json()["status"] == "idle"

            cleared = await api_client.delete("/snapshots/job-status", headers=USER)
            assert cleared.status_code == 200

    asyncio.run(_scenario())


def test_type_xirr_and_unknown_type(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path)() as (api_client, _):
            empty = await api_client.get("/analytics/type-xirr/gold", headers=USER)
            assert empty.status_code == 200
            assert empty.json()["xirr"] is None
            assert empty.json()["failure"] == "undefined_rate"

            unknown = await api_client.get("/analytics/type-xirr/crypto", headers=USER)
            assert unknown.status_code == 400

    asyncio.run(_scenario())


def test_capital_gains_errors_are_structured(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path, _seed_portfolio)() as (api_client, _):
            inverted = await api_client.post(
                "/tax/calculate", json={"fy_start": "2025-03-31", "fy_end": "2024-04-01"}, headers=USER
            )
            assert inverted.status_code == 400

            oversold = await api_client.post(
                "/tax/calculate", json={"fy_start": "2023-04-01", "fy_end": "2024-03-31"}, headers=USER
            )
            assert oversold.status_code == 422
            detail = oversold.json()["detail"]
            assert detail["reason"] == "oversell"
            assert detail["requested_units"] == "15"
            assert detail["available_units"] == "10"

    asyncio.run(_scenario())


async def _seed_savings_and_loan(session):
    savings = await add_investment(session, investment_type=InvestmentType.SAVINGS_ACCOUNT, opened_on=date(2024, 1, 1))
    await add_transaction(session, savings, TransactionKind.DEPOSIT, date(2024, 1, 2), 200_000)
    await add_investment(
        session, investment_type=InvestmentType.LOAN, opened_on=date(2024, 1, 1), principal_minor=100_000
    )


def test_dashboard_breakdown_and_investment_returns(tmp_path: Path):
    async def _scenario():
        async with _client(tmp_path, _seed_savings_and_loan)() as (api_client, _):
            dashboard = await api_client.get("/analytics/dashboard", headers=USER)
            assert dashboard.status_code == 200
            assert dashboard.json() == {
                "total_invested_minor": 200_000,
                "total_current_minor": 200_000,
                "total_gain_minor": 0,
                "total_gain_percent": 0.0,
                "total_debt_minor": 100_000,
                "net_worth_minor": 100_000,
                "investment_count": 2,
            }

            breakdown = await api_client.get("/analytics/breakdown", headers=USER)
            assert breakdown.status_code == 200
            by_type = {entry["investment_type"]: entry for entry in breakdown.json()}
            assert by_type["savings_account"]["current_minor"] == 200_000
            assert by_type["loan"]["invested_minor"] == 100_000
            assert by_type["loan"]["count"] == 1

            investments = await api_client.get("/analytics/investments", headers=USER)
            assert investments.status_code == 200
            loan = next(item for item in investments.json() if item["investment_type"] == "loan")
            assert loan["gain_minor"] == 0
            assert loan["xirr"] is None

    asyncio.run(_scenario())
