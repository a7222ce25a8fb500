"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from wealthtrack.db.session import get_db
from wealthtrack.services.backfill import BackfillJobRegistry
from wealthtrack.services.pricing import PriceSource, default_price_source


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_db():  # pragma: no cover - FastAPI dependency wrapper
        yield session


@dataclass
class RequestContext:
    user_id: int


def get_request_context(x_user_id: str | None = Header(default=None)) -> RequestContext:
    """Identify the caller from the ``X-User-Id`` header set by the session layer."""

    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user context")
    try:
        return RequestContext(user_id=int(x_user_id))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid user id") from exc


def get_price_source() -> PriceSource:
    return default_price_source()


@lru_cache(maxsize=1)
def get_backfill_registry() -> BackfillJobRegistry:
    return BackfillJobRegistry()


__all__ = [
    "RequestContext",
    "get_backfill_registry",
    "get_db_session",
    "get_price_source",
    "get_request_context",
]
