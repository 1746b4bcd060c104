"""Kinked interest rate curve tests"""
from dataclasses import dataclass
from decimal import Decimal

import numpy as np
import pytest
from hypothesis import given, settings, strategies as st

from lending_model.src.constants import PRECISION, BPS_SCALE, YEAR_IN_SECONDS
from lending_model.src.errors import InvalidInputError
from lending_model.src.libraries.fixed_point_math import annualize_rate
from lending_model.src.state.rate_params import RateCurveParams, RateParamsRegistry
from lending_model.src.instructions.interest_rate_curve import (
    InterestRateCurve,
    get_borrow_rate,
    get_supply_rate,
    get_utilization_rate,
    to_per_second,
)

# Deployment curve: 2% base, 8% slope1, 250% slope2, 80% optimal
PARAMS = RateCurveParams(
    base_rate=PRECISION * 2 // 100,
    slope1=PRECISION * 8 // 100,
    slope2=PRECISION * 250 // 100,
    kink=PRECISION * 80 // 100,
    reserve_factor=PRECISION * 10 // 100,
)

@dataclass
class CurveCase:
    """Expected borrow rate at a utilization, both in basis points"""
    description: str
    utilization_bps: int
    expected_rate_bps: int

CURVE_CASES = [
    CurveCase("Empty market", 0, 200),
    CurveCase("Half of optimal", 4000, 600),
    CurveCase("At optimal", 8000, 1000),
    CurveCase("10% above optimal", 9000, 13500),
    CurveCase("Fully utilized", 10000, 26000),
]

def bps(value: int) -> int:
    return value * PRECISION // BPS_SCALE

def borrow_rate_float(params: RateCurveParams, utilization: float) -> float:
    """Float reference of the same curve"""
    base = params.base_rate / PRECISION
    slope1 = params.slope1 / PRECISION
    slope2 = params.slope2 / PRECISION
    kink = params.kink / PRECISION
    if utilization < kink:
        return base + slope1 * utilization / kink
    return base + slope1 + slope2 * (utilization - kink) / (1 - kink)

# utilization

def test_utilization_rate():
    assert get_utilization_rate(0, 0) == 0
    assert get_utilization_rate(0, 500) == 0
    assert get_utilization_rate(1000, 500) == PRECISION // 2
    assert get_utilization_rate(1000, 1000) == PRECISION

def test_utilization_not_clamped():
    assert get_utilization_rate(1000, 1500) == PRECISION * 3 // 2

# borrow rate

@pytest.mark.parametrize("case", CURVE_CASES, ids=lambda c: c.description)
def test_borrow_rate_table(case):
    assert get_borrow_rate(PARAMS, bps(case.utilization_bps)) == bps(case.expected_rate_bps)

def test_borrow_rate_at_kink():
    params = RateCurveParams(
        base_rate=PRECISION * 2 // 100,
        slope1=PRECISION * 8 // 100,
        slope2=PRECISION * 25 // 10,
        kink=PRECISION * 8 // 10,
    )
    assert get_borrow_rate(params, params.kink) == params.base_rate + params.slope1
    assert get_borrow_rate(params, params.kink) == PRECISION // 10

def test_borrow_rate_continuous_at_kink():
    slope_bound = Decimal(PARAMS.slope1) / PARAMS.kink + Decimal(PARAMS.slope2) / (PRECISION - PARAMS.kink)
    previous_gap = None
    for epsilon in [10**15, 10**12, 10**9, 10**6, 10**3, 1]:
        below = get_borrow_rate(PARAMS, PARAMS.kink - epsilon)
        above = get_borrow_rate(PARAMS, PARAMS.kink + epsilon)
        gap = above - below
        assert 0 <= gap <= slope_bound * epsilon + 2
        if previous_gap is not None:
            assert gap <= previous_gap
        previous_gap = gap

def test_borrow_rate_monotonic():
    utilizations = [bps(u) for u in range(0, 10001, 250)]
    rates = [get_borrow_rate(PARAMS, u) for u in utilizations]
    assert rates == sorted(rates)

def test_borrow_rate_against_float_reference():
    for u in np.linspace(0, 1, 101):
        fixed = get_borrow_rate(PARAMS, int(Decimal(str(u)) * PRECISION)) / PRECISION
        assert abs(fixed - borrow_rate_float(PARAMS, float(u))) < 1e-12

def test_borrow_rate_negative_utilization():
    with pytest.raises(InvalidInputError):
        get_borrow_rate(PARAMS, -1)

# supply rate

def test_supply_rate_formula():
    utilization = bps(5000)
    borrow_rate = get_borrow_rate(PARAMS, utilization)
    supply_rate = get_supply_rate(PARAMS, utilization, borrow_rate, bps(1000))
    assert supply_rate == borrow_rate * 5 // 10 * 9 // 10

def test_supply_rate_without_reserve():
    utilization = bps(5000)
    borrow_rate = get_borrow_rate(PARAMS, utilization)
    assert get_supply_rate(PARAMS, utilization, borrow_rate, 0) == borrow_rate // 2

def test_supply_rate_defaults_to_params_reserve_factor():
    utilization = bps(5000)
    borrow_rate = get_borrow_rate(PARAMS, utilization)
    assert get_supply_rate(PARAMS, utilization, borrow_rate) == get_supply_rate(
        PARAMS, utilization, borrow_rate, PARAMS.reserve_factor)
    assert get_supply_rate(PARAMS, utilization, borrow_rate) < get_supply_rate(PARAMS, utilization, borrow_rate, 0)

def test_supply_rate_zero_utilization():
    assert get_supply_rate(PARAMS, 0, get_borrow_rate(PARAMS, 0), 0) == 0

def test_supply_rate_invalid_reserve_factor():
    with pytest.raises(InvalidInputError):
        get_supply_rate(PARAMS, PRECISION, PRECISION, PRECISION + 1)

@settings(max_examples=300, deadline=None)
@given(
    utilization=st.integers(min_value=0, max_value=PRECISION),
    reserve_factor=st.integers(min_value=0, max_value=PRECISION),
)
def test_supply_rate_never_exceeds_borrow_rate(utilization, reserve_factor):
    borrow_rate = get_borrow_rate(PARAMS, utilization)
    assert get_supply_rate(PARAMS, utilization, borrow_rate, reserve_factor) <= borrow_rate

def test_to_per_second_compounds_to_annual_rate():
    annual = PRECISION // 10
    per_second = to_per_second(annual)
    # compounding per second needs less than the linear share
    assert 0 < per_second < annual // YEAR_IN_SECONDS
    assert abs(annualize_rate(per_second, YEAR_IN_SECONDS) - annual) <= annual // 10**6
    assert to_per_second(0) == 0

# params and registry

def test_params_from_bps():
    assert RateCurveParams.from_bps(200, 800, 25000, 8000, 1000) == PARAMS

@pytest.mark.parametrize("kwargs", [
    {"kink": 0},
    {"kink": PRECISION},
    {"base_rate": PRECISION * 3 // 2},
    {"slope1": -1},
    {"reserve_factor": PRECISION + 1},
])
def test_params_validation(kwargs):
    with pytest.raises(InvalidInputError):
        RateCurveParams(**kwargs)

def test_registry_custom_params():
    registry = RateParamsRegistry(PARAMS)
    custom = RateCurveParams.from_bps(0, 400, 6000, 9000)

    assert not registry.has_custom_params("USDC")
    assert registry.get_params("USDC") == PARAMS

    registry.set_interest_rate_params("USDC", custom)
    assert registry.has_custom_params("USDC")
    assert registry.get_params("USDC") == custom
    assert registry.get_params("WETH") == PARAMS

    assert registry.remove_custom_params("USDC")
    assert not registry.remove_custom_params("USDC")
    assert registry.get_params("USDC") == PARAMS

def test_registry_update_default():
    registry = RateParamsRegistry()
    registry.set_interest_rate_params("USDC", PARAMS)
    new_default = RateCurveParams.from_bps(300, 900, 20000, 7500)
    registry.update_default_params(new_default)
    assert registry.default_params == new_default
    assert registry.get_params("WETH") == new_default
    assert registry.get_params("USDC") == PARAMS

def test_registry_rejects_empty_asset():
    with pytest.raises(InvalidInputError):
        RateParamsRegistry().set_interest_rate_params("", PARAMS)

# calculate_rates

def test_calculate_rates_from_totals():
    curve = InterestRateCurve(RateParamsRegistry(PARAMS))
    borrow_apy, supply_apy = curve.calculate_rates("USDC", total_supply=1000, total_borrow=800)
    assert borrow_apy == bps(1000)
    assert supply_apy == bps(1000) * 8 // 10 * 9 // 10

def test_calculate_rates_explicit_utilization():
    curve = InterestRateCurve(RateParamsRegistry(PARAMS))
    assert curve.calculate_rates("USDC", bps(4000)) == (
        bps(600),
        get_supply_rate(PARAMS, bps(4000), bps(600)),
    )

def test_calculate_rates_uses_custom_params():
    registry = RateParamsRegistry(PARAMS)
    registry.set_interest_rate_params("WETH", RateCurveParams.from_bps(0, 400, 6000, 9000))
    curve = InterestRateCurve(registry)
    weth_borrow, _ = curve.calculate_rates("WETH", bps(9000))
    usdc_borrow, _ = curve.calculate_rates("USDC", bps(9000))
    assert weth_borrow == bps(400)
    assert usdc_borrow == bps(13500)

def test_calculate_rates_empty_market():
    curve = InterestRateCurve(RateParamsRegistry(PARAMS))
    assert curve.calculate_rates("USDC") == (PARAMS.base_rate, 0)

def test_calculate_rates_per_second():
    curve = InterestRateCurve(RateParamsRegistry(PARAMS))
    borrow, supply = curve.calculate_rates_per_second("USDC", bps(8000))
    assert borrow == to_per_second(bps(1000))
    assert abs(annualize_rate(borrow, YEAR_IN_SECONDS) - bps(1000)) <= bps(1000) // 10**6
    assert 0 < supply < borrow
