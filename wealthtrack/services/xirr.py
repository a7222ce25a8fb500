"""Annualised internal rate of return for irregular cash flows."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Callable, Sequence

from wealthtrack.config import get_settings
from wealthtrack.services.errors import XirrError, XirrFailure

logger = logging.getLogger(__name__)

DAYS_IN_YEAR = 365.0
DERIVATIVE_EPSILON = 1e-12
BISECTION_STEPS = 200


@dataclass(frozen=True)
class XirrResult:
    rate: float | None
    failure: XirrFailure | None = None
    method: str | None = None
    iterations: int = 0

    @property
    def ok(self) -> bool:
        return self.failure is None


def _normalise(cashflows: Sequence[tuple[date, int]]) -> tuple[list[float], list[float]]:
    """Year offsets from the first flow and amounts scaled to a unit maximum."""

    ordered = sorted(cashflows, key=lambda flow: flow[0])
    start = ordered[0][0]
    scale = max(abs(amount) for _, amount in ordered)
    years = [(day - start).days / DAYS_IN_YEAR for day, _ in ordered]
    amounts = [amount / scale for _, amount in ordered]
    return years, amounts


def _npv(rate: float, years: Sequence[float], amounts: Sequence[float]) -> float:
    base = 1.0 + rate
    return sum(amount / base**t for t, amount in zip(years, amounts))


def _npv_derivative(rate: float, years: Sequence[float], amounts: Sequence[float]) -> float:
    base = 1.0 + rate
    return sum(-t * amount / base ** (t + 1.0) for t, amount in zip(years, amounts))


def _newton(
    years: Sequence[float],
    amounts: Sequence[float],
    *,
    guess: float,
    max_iterations: int,
    tolerance: float,
    lower: float,
) -> tuple[float | None, int]:
    rate = guess
    for iteration in range(1, max_iterations + 1):
        try:
            value = _npv(rate, years, amounts)
            slope = _npv_derivative(rate, years, amounts)
        except (OverflowError, ZeroDivisionError):
            return None, iteration
        if not math.isfinite(value) or not math.isfinite(slope):
            return None, iteration
        if abs(value) < tolerance:
            return rate, iteration
        if abs(slope) < DERIVATIVE_EPSILON:
            return None, iteration
        rate = rate - value / slope
        if not math.isfinite(rate) or rate <= lower:
            return None, iteration
    return None, max_iterations


def _bisection(
    years: Sequence[float],
    amounts: Sequence[float],
    *,
    lower: float,
    upper: float,
    tolerance: float,
) -> tuple[float | None, int]:
    npv: Callable[[float], float] = lambda r: _npv(r, years, amounts)
    try:
        low_value = npv(lower)
        high_value = npv(upper)
    except (OverflowError, ZeroDivisionError):
        return None, 0
    if low_value == 0:
        return lower, 0
    if high_value == 0:
        return upper, 0
    if (low_value > 0) == (high_value > 0):
        return None, 0
    low, high = lower, upper
    for step in range(1, BISECTION_STEPS + 1):
        mid = (low + high) / 2.0
        mid_value = npv(mid)
        if abs(mid_value) < tolerance or (high - low) / 2.0 < tolerance:
            return mid, step
        if (mid_value > 0) == (low_value > 0):
            low, low_value = mid, mid_value
        else:
            high = mid
    return (low + high) / 2.0, BISECTION_STEPS


def solve_xirr(
    cashflows: Sequence[tuple[date, int]],
    *,
    guess: float | None = None,
    max_iterations: int | None = None,
    tolerance: float | None = None,
) -> XirrResult:
    """Solve ``sum(cf / (1 + r) ** (days / 365)) == 0`` for ``r``.

    Cash flows are ``(date, amount_minor)`` pairs from the investor's point
    of view: money paid in is negative, money received is positive. Newton's
    method is tried first; when it cannot make progress the root is searched
    by bisection. A failure never comes back as a zero rate.
    """

    flows = [(day, int(amount)) for day, amount in cashflows if amount]
    if len(flows) < 2 or not any(a < 0 for _, a in flows) or not any(a > 0 for _, a in flows):
        return XirrResult(rate=None, failure=XirrFailure.UNDEFINED_RATE)

    settings = get_settings()
    guess = settings.xirr_initial_guess if guess is None else guess
    max_iterations = max_iterations or settings.xirr_max_iterations
    tolerance = tolerance or settings.xirr_tolerance
    lower, upper = settings.xirr_lower_bound, settings.xirr_upper_bound

    years, amounts = _normalise(flows)
    rate, iterations = _newton(
        years, amounts, guess=guess, max_iterations=max_iterations, tolerance=tolerance, lower=lower
    )
    if rate is not None:
        return XirrResult(rate=rate, method="newton", iterations=iterations)

    logger.debug("Newton iteration did not converge after %s steps; bisecting", iterations)
    rate, steps = _bisection(years, amounts, lower=lower, upper=upper, tolerance=tolerance)
    if rate is None:
        return XirrResult(
            rate=None, failure=XirrFailure.NO_CONVERGENT_RATE, method="bisection", iterations=iterations + steps
        )
    return XirrResult(rate=rate, method="bisection", iterations=iterations + steps)


def xirr_or_raise(cashflows: Sequence[tuple[date, int]]) -> float:
    result = solve_xirr(cashflows)
    if result.failure is not None:
        raise XirrError(result.failure)
    assert result.rate is not None
    return result.rate


__all__ = ["XirrResult", "solve_xirr", "xirr_or_raise"]
