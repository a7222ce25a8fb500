"""Error taxonomy for the valuation and analytics engine."""

from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal


class WealthEngineError(Exception):
    """Base exception for the engine."""


class ValidationError(WealthEngineError, ValueError):
    """Input rejected before any computation starts."""


class ComputationFailure(WealthEngineError):
    """Expected outcome of valid but degenerate input."""

    reason: str = "computation_failed"

    def to_detail(self) -> dict[str, object]:
        return {"reason": self.reason, "message": str(self)}


class XirrFailure(str, enum.Enum):
    UNDEFINED_RATE = "undefined_rate"
    NO_CONVERGENT_RATE = "no_convergent_rate"


class XirrError(ComputationFailure):
    def __init__(self, failure: XirrFailure):
        self.failure = failure
        self.reason = failure.value
        super().__init__(f"XIRR could not be computed: {failure.value}")


class OversellError(ComputationFailure):
    """A sale consumed more units than the open lots hold."""

    reason = "oversell"

    def __init__(self, investment_id: int, sell_date: date, requested: Decimal, available: Decimal):
        self.investment_id = investment_id
        self.sell_date = sell_date
        self.requested = requested
        self.available = available
        super().__init__(
            f"Investment {investment_id} sells {requested} units on {sell_date.isoformat()} "
            f"but only {available} are held"
        )

    def to_detail(self) -> dict[str, object]:
        detail = super().to_detail()
        detail.update(
            {
                "investment_id": self.investment_id,
                "sell_date": self.sell_date.isoformat(),
                "requested_units": _plain(self.requested),
                "available_units": _plain(self.available),
            }
        )
        return detail


def _plain(value: Decimal) -> str:
    return format(value.normalize(), "f")


class JobConflictError(WealthEngineError):
    """A backfill is already running for the user."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"A snapshot backfill is already running for user {user_id}")


__all__ = [
    "WealthEngineError",
    "ValidationError",
    "ComputationFailure",
    "XirrFailure",
    "XirrError",
    "OversellError",
    "JobConflictError",
]
