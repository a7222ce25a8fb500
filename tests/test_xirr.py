from __future__ import annotations

from datetime import date, timedelta

import pytest

from wealthtrack.services.errors import XirrError, XirrFailure
from wealthtrack.services.xirr import solve_xirr, xirr_or_raise

START = date(2023, 1, 1)


def test_one_year_ten_percent():
    result = solve_xirr([(START, -1000), (START + timedelta(days=365), 1100)])
    assert result.failure is None
    assert result.method == "newton"
    assert result.rate == pytest.approx(0.10, abs=1e-6)


def test_negative_return():
    result = solve_xirr([(START, -1000), (START + timedelta(days=365), 900)])
    assert result.rate == pytest.approx(-0.10, abs=1e-6)


def test_flow_order_does_not_matter():
    flows = [
        (START + timedelta(days=730), 1300),
        (START, -1000),
        (START + timedelta(days=200), -100),
    ]
    forward = solve_xirr(sorted(flows))
    shuffled = solve_xirr(flows)
    assert forward.rate == pytest.approx(shuffled.rate)


def test_large_minor_amounts_converge():
    flows = [
        (START, -50_000_000_00),
        (START + timedelta(days=400), -25_000_000_00),
        (START + timedelta(days=1000), 95_000_000_00),
    ]
    result = solve_xirr(flows)
    assert result.ok
    assert 0.05 < result.rate < 0.15


@pytest.mark.parametrize(
    "flows",
    [
        [],
        [(START, -100)],
        [(START, -100), (START + timedelta(days=30), -50)],
        [(START, 100), (START + timedelta(days=30), 50)],
    ],
)
def test_flows_without_both_signs_are_undefined(flows):
    result = solve_xirr(flows)
    assert result.rate is None
    assert result.failure == XirrFailure.UNDEFINED_RATE


def test_no_root_reports_failure_instead_of_zero():
    flows = [
        (START, -100),
        (START + timedelta(days=365), 50),
        (START + timedelta(days=730), -100),
    ]
    result = solve_xirr(flows)
    assert result.rate is None
    assert result.failure == XirrFailure.NO_CONVERGENT_RATE


def test_converges_from_a_poor_initial_guess():
    result = solve_xirr([(START, -1000), (START + timedelta(days=365), 1100)], guess=-0.9989)
    assert result.rate == pytest.approx(0.10, abs=1e-6)


def test_xirr_or_raise():
    assert xirr_or_raise([(START, -1000), (START + timedelta(days=365), 1100)]) == pytest.approx(0.10, abs=1e-6)
    with pytest.raises(XirrError) as excinfo:
        xirr_or_raise([(START, -100)])
    assert excinfo.value.failure == XirrFailure.UNDEFINED_RATE
