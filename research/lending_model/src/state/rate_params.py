"""Interest rate curve parameters and the per-asset parameter table"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional
from ..errors import InvalidInputError
from ..constants import (
    BPS_SCALE,
    PRECISION,
    DEFAULT_BASE_RATE,
    DEFAULT_SLOPE1,
    DEFAULT_SLOPE2,
    DEFAULT_KINK,
    DEFAULT_RESERVE_FACTOR,
    MIN_KINK,
    MAX_KINK,
    MAX_BASE_RATE,
)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class RateCurveParams:
    """Kinked two slope curve, all values scaled by PRECISION"""
    base_rate: int = DEFAULT_BASE_RATE
    slope1: int = DEFAULT_SLOPE1  # added across [0, kink]
    slope2: int = DEFAULT_SLOPE2  # added across [kink, 1]
    kink: int = DEFAULT_KINK  # optimal utilization
    reserve_factor: int = DEFAULT_RESERVE_FACTOR

    def __post_init__(self):
        if not MIN_KINK <= self.kink <= MAX_KINK:
            raise InvalidInputError(f"Invalid optimal utilization {self.kink}")
        if not 0 <= self.base_rate <= MAX_BASE_RATE:
            raise InvalidInputError(f"Invalid base rate {self.base_rate}")
        if self.slope1 < 0 or self.slope2 < 0:
            raise InvalidInputError("Slopes must be non-negative")
        if not 0 <= self.reserve_factor <= PRECISION:
            raise InvalidInputError(f"Invalid reserve factor {self.reserve_factor}")

    @classmethod
    def from_bps(
        cls,
        base_rate: int,
        slope1: int,
        slope2: int,
        optimal_utilization: int,
        reserve_factor: int = 0,
    ) -> "RateCurveParams":
        """Build params from basis point values (10000 = 100%)"""
        scale = PRECISION // BPS_SCALE
        return cls(
            base_rate=base_rate * scale,
            slope1=slope1 * scale,
            slope2=slope2 * scale,
            kink=optimal_utilization * scale,
            reserve_factor=reserve_factor * scale,
        )

class RateParamsRegistry:
    """Default curve plus per-asset overrides.

    Reads are lock free against an immutable snapshot; writes rebuild the
    table under a single lock and swap it in.
    """

    def __init__(self, default_params: Optional[RateCurveParams] = None):
        self._default = default_params or RateCurveParams()
        self._custom: Dict[str, RateCurveParams] = {}
        self._lock = threading.Lock()

    @property
    def default_params(self) -> RateCurveParams:
        return self._default

    def get_params(self, asset: str) -> RateCurveParams:
        return self._custom.get(asset, self._default)

    def has_custom_params(self, asset: str) -> bool:
        return asset in self._custom

    def set_interest_rate_params(self, asset: str, params: RateCurveParams) -> None:
        if not asset:
            raise InvalidInputError("Empty asset identifier")
        with self._lock:
            updated = dict(self._custom)
            updated[asset] = params
            self._custom = updated
        logger.info("Custom rate params set for %s: %s", asset, params)

    def remove_custom_params(self, asset: str) -> bool:
        """Drop an asset's override; returns False if it had none"""
        with self._lock:
            if asset not in self._custom:
                return False
            updated = dict(self._custom)
            del updated[asset]
            self._custom = updated
        logger.info("Custom rate params removed for %s", asset)
        return True

    def update_default_params(self, params: RateCurveParams) -> None:
        with self._lock:
            previous = self._default
            self._default = params
        logger.info("Default rate params updated: %s -> %s", previous, params)
