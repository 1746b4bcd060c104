"""Utilization based interest rate curve (kinked two slope model)"""
from typing import Optional, Tuple
from ..state.rate_params import RateCurveParams, RateParamsRegistry
from ..libraries.fixed_point_math import checked_add, deannualize_rate, mul_div, mul_wad
from ..errors import InvalidInputError
from ..constants import PRECISION, YEAR_IN_SECONDS

def get_utilization_rate(total_supply: int, total_borrow: int) -> int:
    """total_borrow / total_supply in fixed point; an empty market is 0%"""
    if total_supply == 0:
        return 0
    return mul_div(total_borrow, PRECISION, total_supply)

def get_borrow_rate(params: RateCurveParams, utilization: int) -> int:
    """Annual borrow rate for a utilization.

    Below the kink: base + slope1 * u / kink
    At or above:    base + slope1 + slope2 * (u - kink) / (1 - kink)
    Both branches give base + slope1 at u == kink.
    """
    if utilization < 0:
        raise InvalidInputError("Negative utilization")
    if utilization < params.kink:
        return checked_add(params.base_rate, mul_div(params.slope1, utilization, params.kink))

    excess = mul_div(params.slope2, utilization - params.kink, PRECISION - params.kink)
    return checked_add(checked_add(params.base_rate, params.slope1), excess)

def get_supply_rate(
    params: RateCurveParams,
    utilization: int,
    borrow_rate: int,
    reserve_factor: Optional[int] = None,
) -> int:
    """borrow_rate * utilization * (1 - reserve_factor)

    reserve_factor defaults to the one carried by params.
    """
    if reserve_factor is None:
        reserve_factor = params.reserve_factor
    if not 0 <= reserve_factor <= PRECISION:
        raise InvalidInputError(f"Invalid reserve factor {reserve_factor}")
    gross = mul_wad(borrow_rate, utilization)
    return mul_wad(gross, PRECISION - reserve_factor)

def to_per_second(annual_rate: int) -> int:
    """Per second rate that compounds back to annual_rate over a year"""
    return deannualize_rate(annual_rate, YEAR_IN_SECONDS)

class InterestRateCurve:
    """Rate calculator reading per-asset params from a registry"""

    def __init__(self, registry: Optional[RateParamsRegistry] = None):
        self.registry = registry or RateParamsRegistry()

    def calculate_rates(
        self,
        asset: str,
        utilization: Optional[int] = None,
        total_supply: int = 0,
        total_borrow: int = 0,
    ) -> Tuple[int, int]:
        """Annual (borrow, supply) rates for an asset.

        utilization is derived from the totals when not given.
        """
        if utilization is None:
            utilization = get_utilization_rate(total_supply, total_borrow)
        params = self.registry.get_params(asset)
        borrow_rate = get_borrow_rate(params, utilization)
        supply_rate = get_supply_rate(params, utilization, borrow_rate)
        return borrow_rate, supply_rate

    def calculate_rates_per_second(
        self,
        asset: str,
        utilization: Optional[int] = None,
        total_supply: int = 0,
        total_borrow: int = 0,
    ) -> Tuple[int, int]:
        borrow_rate, supply_rate = self.calculate_rates(asset, utilization, total_supply, total_borrow)
        return to_per_second(borrow_rate), to_per_second(supply_rate)
