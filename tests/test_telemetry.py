from fastapi import FastAPI

from wealthtrack.config import AppSettings
from wealthtrack.core import telemetry


def test_disabled_telemetry_installs_nothing(monkeypatch):
    monkeypatch.setattr(telemetry, "_TELEMETRY_INITIALISED", False)
    app = FastAPI()

    telemetry.setup_telemetry(app, AppSettings(telemetry_enabled=False))

    assert telemetry._TELEMETRY_INITIALISED is False
    assert not app.user_middleware


def test_snapshot_counters_accept_increments_without_sdk():
    telemetry.months_processed_counter.add(1)
    telemetry.investments_valued_counter.add(2, {"year_month": "2024-03"})
