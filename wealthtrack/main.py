"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.baggage import get_baggage

from wealthtrack.api.routes import api_router
from wealthtrack.config import get_settings
from wealthtrack.core.logging import setup_logging
from wealthtrack.core.telemetry import setup_telemetry
from wealthtrack.db.init import init_database
from wealthtrack.db.session import get_engine

logger = logging.getLogger(__name__)

settings = get_settings()
app = FastAPI(title=settings.app_name, version="0.1.0")
setup_logging(settings.log_level)
setup_telemetry(app, settings, engine=get_engine())


@app.on_event("startup")
async def startup() -> None:
    """Initialise the database schema when the service boots."""

    await init_database(get_engine())
    logger.info("Valuation engine configuration", extra={"settings": settings.dict_for_logging()})


@app.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    """Return service readiness metadata."""

    return {
        "status": "ok",
        "timestamp": datetime.now().isoformat(),
        "timezone": settings.timezone,
    }


def configure_app() -> FastAPI:
    """Attach routes."""

    app.include_router(api_router)
    return app


configure_app()


# Attach end-user attributes from W3C Baggage to the active server span
@app.middleware("http")
async def _attach_user_baggage(request, call_next):  # type: ignore[no-redef]
    span = trace.get_current_span()
    user_id = request.headers.get("x-user-id")
    if user_id:
        span.set_attribute("enduser.id", user_id)
    else:
        baggage_user = get_baggage("enduser.id")
        if baggage_user:
            span.set_attribute("enduser.id", str(baggage_user))
    return await call_next(request)


__all__ = ["app", "configure_app"]
