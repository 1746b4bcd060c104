"""Fixed point arithmetic on 18 decimal unsigned values.

Every value is an ``int`` scaled by PRECISION (1e18). Python integers never
wrap, so products are computed exactly and only the final result is checked
against the uint256 range. Anything that would not fit raises
ArithmeticOverflowError instead of being truncated.
"""
from typing import Tuple
from ..errors import (
    ArithmeticOverflowError,
    DivisionByZeroError,
    InvalidInputError,
)
from ..constants import (
    PRECISION,
    BPS_SCALE,
    MAX_UINT256,
    LN_2,
    E,
    LN_TAYLOR_TERMS,
    EXP_TAYLOR_TERMS,
    MAX_EXP_INPUT,
    MAX_FACTORIAL_INPUT,
)

def _require_uint(*values: int) -> None:
    for value in values:
        if value < 0:
            raise InvalidInputError(f"Negative value {value} for unsigned operand")

def _check_range(result: int) -> int:
    if result > MAX_UINT256:
        raise ArithmeticOverflowError("Result exceeds u256::MAX")
    return result

def signed_div(a: int, b: int) -> int:
    """Integer division truncating toward zero"""
    if b == 0:
        raise DivisionByZeroError("Division by zero")
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient

def checked_add(a: int, b: int) -> int:
    """Add with overflow checking"""
    return _check_range(a + b)

def checked_sub(a: int, b: int) -> int:
    """Subtract with underflow checking"""
    if b > a:
        raise ArithmeticOverflowError("Arithmetic underflow in subtraction")
    return a - b

def checked_mul(a: int, b: int) -> int:
    """Multiply with overflow checking"""
    return _check_range(a * b)

def mul_div(a: int, b: int, c: int) -> int:
    """Compute floor(a * b / c) without intermediate overflow.

    The product is held at full width (Python ints are arbitrary precision),
    which plays the role of the 512 bit mul-mod reduction: only the quotient
    has to fit in 256 bits.
    """
    if c == 0:
        raise DivisionByZeroError("mul_div by zero")
    _require_uint(a, b, c)
    if a == 0 or b == 0:
        return 0
    return _check_range(a * b // c)

def mul_wad(a: int, b: int) -> int:
    return mul_div(a, b, PRECISION)

def div_wad(a: int, b: int) -> int:
    return mul_div(a, PRECISION, b)

def sqrt(x: int) -> int:
    """Floor integer square root using Newton's method.

    Starts from (x + 1) / 2 and iterates z = (x / z + z) / 2 until the
    estimate stops decreasing.
    """
    _require_uint(x)
    if x == 0:
        return 0
    z = (x + 1) // 2
    y = x
    while z < y:
        y = z
        z = (x // z + z) // 2
    return y

def sqrt_wad(x: int) -> int:
    """Square root of a fixed point value, result in fixed point"""
    return sqrt(checked_mul(x, PRECISION))

def pow_int(base: int, exponent: int) -> int:
    """Raise a fixed point base to a plain integer exponent.

    ``exponent`` is an unscaled count of multiplications (e.g. compounding
    periods). Uses exponentiation by squaring, so pow_int(PRECISION, n) is
    exactly PRECISION and pow_int(base, 0) is PRECISION for any base.
    """
    _require_uint(base, exponent)
    result = PRECISION
    while exponent > 0:
        if exponent & 1:
            result = mul_wad(result, base)
        exponent >>= 1
        if exponent:
            base = mul_wad(base, base)
    return result

def ln(x: int) -> int:
    """Natural logarithm of a fixed point value (signed result).

    x is brought into [1, 2) by repeated halving (or doubling for x < 1);
    ln(y) is then expanded with LN_TAYLOR_TERMS terms of
    ln(y) = 2 * (z + z^3/3 + z^5/5 + ...), z = (y - 1) / (y + 1),
    and the result is reconstructed as power * ln(2) + ln(y).
    """
    if x <= 0:
        raise InvalidInputError("ln undefined for non-positive input")

    power = 0
    while x >= 2 * PRECISION:
        x //= 2
        power += 1
    while x < PRECISION:
        x *= 2
        power -= 1

    z = (x - PRECISION) * PRECISION // (x + PRECISION)
    z_squared = z * z // PRECISION
    term = z
    series = 0
    for k in range(LN_TAYLOR_TERMS):
        series += term // (2 * k + 1)
        term = term * z_squared // PRECISION

    return power * LN_2 + 2 * series

def exp(x: int) -> int:
    """e^x for a signed fixed point exponent.

    The integer part goes through pow_int(E, n); the fractional part uses
    EXP_TAYLOR_TERMS terms of the Taylor series. Negative exponents are
    computed as 1 / e^-x and round down to 0 once below 1e-18.
    """
    if x < 0:
        if -x > MAX_EXP_INPUT:
            return 0
        return div_wad(PRECISION, exp(-x))
    if x > MAX_EXP_INPUT:
        raise ArithmeticOverflowError("exp input too large")

    integer_part, fraction = split_wad(x)

    # first term: 1
    term = PRECISION
    series = PRECISION
    for i in range(1, EXP_TAYLOR_TERMS):
        # term_i = term_(i-1) * f / i
        term = term * fraction // (PRECISION * i)
        series += term

    return mul_wad(pow_int(E, integer_part), series)

def pow_wad(base: int, exponent: int) -> int:
    """Raise a fixed point base to a fixed point exponent: e^(exponent * ln(base))"""
    _require_uint(base, exponent)
    if exponent == 0:
        return PRECISION
    if base == 0:
        return 0
    return exp(signed_div(ln(base) * exponent, PRECISION))

def factorial(n: int) -> int:
    """n! as a plain integer"""
    if n < 0:
        raise InvalidInputError("factorial of a negative number")
    if n > MAX_FACTORIAL_INPUT:
        raise ArithmeticOverflowError(f"{n}! exceeds u256::MAX")
    result = 1
    for i in range(2, n + 1):
        result *= i
    return result

def compound_interest(principal: int, rate_per_period: int, periods: int) -> int:
    """principal * (1 + rate)^periods"""
    growth = pow_int(checked_add(PRECISION, rate_per_period), periods)
    return mul_wad(principal, growth)

def percentage_change(old_value: int, new_value: int) -> int:
    """Signed relative change (new - old) / old, as a fixed point fraction"""
    if old_value == 0:
        raise DivisionByZeroError("percentage change from zero")
    return signed_div((new_value - old_value) * PRECISION, old_value)

def minimum(a: int, b: int) -> int:
    return a if a < b else b

def maximum(a: int, b: int) -> int:
    return a if a > b else b

def clamp(value: int, lower: int, upper: int) -> int:
    if lower > upper:
        raise InvalidInputError("clamp lower bound above upper bound")
    return minimum(maximum(value, lower), upper)

def abs_diff(a: int, b: int) -> int:
    return a - b if a > b else b - a

def approx_equal(a: int, b: int, tolerance: int) -> bool:
    return abs_diff(a, b) <= tolerance

def lerp(a: int, b: int, t: int) -> int:
    """Linear interpolation a + (b - a) * t, t in [0, PRECISION]"""
    if t < 0 or t > PRECISION:
        raise InvalidInputError("interpolation factor outside [0, 1]")
    if b >= a:
        return a + mul_wad(b - a, t)
    return a - mul_wad(a - b, t)

def bps_to_decimal(bps: int) -> int:
    return mul_div(bps, PRECISION, BPS_SCALE)

def decimal_to_bps(value: int) -> int:
    return mul_div(value, BPS_SCALE, PRECISION)

def annualize_rate(period_rate: int, periods_per_year: int) -> int:
    """(1 + period_rate)^periods_per_year - 1"""
    if periods_per_year == 0:
        raise DivisionByZeroError("zero periods per year")
    return pow_int(checked_add(PRECISION, period_rate), periods_per_year) - PRECISION

def deannualize_rate(annual_rate: int, periods_per_year: int) -> int:
    """(1 + annual_rate)^(1 / periods_per_year) - 1"""
    if periods_per_year == 0:
        raise DivisionByZeroError("zero periods per year")
    if annual_rate == 0:
        return 0
    root = pow_wad(checked_add(PRECISION, annual_rate), PRECISION // periods_per_year)
    # ln/exp truncation can land a hair under 1.0 for tiny rates
    return root - PRECISION if root > PRECISION else 0

def split_wad(x: int) -> Tuple[int, int]:
    """Split a fixed point value into (integer part, fractional part)"""
    _require_uint(x)
    return x // PRECISION, x % PRECISION
