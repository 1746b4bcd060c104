"""Population statistics on fixed point series, used for portfolio risk reporting"""
from typing import List, Sequence
from ..errors import DivisionByZeroError, InvalidInputError
from ..constants import PRECISION
from .fixed_point_math import (
    checked_add,
    checked_mul,
    clamp,
    percentage_change,
    signed_div,
    sqrt,
)

def _require_non_empty(values: Sequence[int], name: str = "values") -> None:
    if len(values) == 0:
        raise InvalidInputError(f"Empty {name}")

def _require_same_length(a: Sequence[int], b: Sequence[int]) -> None:
    _require_non_empty(a)
    if len(a) != len(b):
        raise InvalidInputError(f"Array length mismatch: {len(a)} != {len(b)}")

def mean(values: Sequence[int]) -> int:
    """Arithmetic mean, truncated toward zero"""
    _require_non_empty(values)
    return signed_div(sum(values), len(values))

def weighted_average(values: Sequence[int], weights: Sequence[int]) -> int:
    """sum(v * w) / sum(w)"""
    _require_same_length(values, weights)
    weighted_sum = 0
    total_weight = 0
    for value, weight in zip(values, weights):
        if value < 0 or weight < 0:
            raise InvalidInputError("Negative value or weight")
        weighted_sum = checked_add(weighted_sum, checked_mul(value, weight))
        total_weight = checked_add(total_weight, weight)
    if total_weight == 0:
        raise DivisionByZeroError("Total weight is zero")
    return weighted_sum // total_weight

def moving_average(values: Sequence[int], window_size: int) -> List[int]:
    """Simple moving average; returns len(values) - window_size + 1 points"""
    if window_size <= 0 or window_size > len(values):
        raise InvalidInputError(f"Invalid window size {window_size} for {len(values)} values")
    window_sum = sum(values[:window_size])
    averages = [signed_div(window_sum, window_size)]
    for i in range(window_size, len(values)):
        window_sum += values[i] - values[i - window_size]
        averages.append(signed_div(window_sum, window_size))
    return averages

def standard_deviation(values: Sequence[int]) -> int:
    """Population standard deviation.

    Squared deviations of fixed point values are scaled by PRECISION^2, so
    the integer square root of their mean is already in fixed point.
    """
    avg = mean(values)
    squared_deviations = sum((value - avg) ** 2 for value in values)
    return sqrt(squared_deviations // len(values))

def sharpe_ratio(returns: Sequence[int], risk_free_rate: int) -> int:
    """(mean(returns) - risk_free_rate) / stddev(returns), signed fixed point"""
    deviation = standard_deviation(returns)
    if deviation == 0:
        raise DivisionByZeroError("Zero volatility")
    return signed_div((mean(returns) - risk_free_rate) * PRECISION, deviation)

def correlation(x: Sequence[int], y: Sequence[int]) -> int:
    """Pearson correlation in [-PRECISION, PRECISION]"""
    _require_same_length(x, y)
    mean_x = mean(x)
    mean_y = mean(y)

    covariance = 0
    variance_x = 0
    variance_y = 0
    for xi, yi in zip(x, y):
        dx = xi - mean_x
        dy = yi - mean_y
        covariance += dx * dy
        variance_x += dx * dx
        variance_y += dy * dy

    denominator = sqrt(variance_x * variance_y)
    if denominator == 0:
        raise DivisionByZeroError("Constant series has no correlation")
    # rounding in sqrt can push |r| a hair past 1
    return clamp(signed_div(covariance * PRECISION, denominator), -PRECISION, PRECISION)

def calculate_var(returns: Sequence[int], confidence_level: int) -> int:
    """Historical value at risk.

    Sorts the signed returns ascending, picks the (100 - confidence)%
    percentile and reports the loss there as a non-negative magnitude
    (0 when that percentile is not a loss). confidence_level is a plain
    percentage in [0, 100).
    """
    _require_non_empty(returns, "returns")
    if confidence_level < 0 or confidence_level >= 100:
        raise InvalidInputError(f"Confidence level {confidence_level} must be below 100")

    ordered = sorted(returns)
    index = (100 - confidence_level) * len(ordered) // 100
    index = min(index, len(ordered) - 1)
    percentile = ordered[index]
    return -percentile if percentile < 0 else 0

def price_volatility(prices: Sequence[int]) -> int:
    """Standard deviation of period over period returns of a price series"""
    if len(prices) < 2:
        raise InvalidInputError("Need at least two prices for volatility")
    returns = [percentage_change(prices[i - 1], prices[i]) for i in range(1, len(prices))]
    return standard_deviation(returns)
