"""Engine configuration"""
from dataclasses import dataclass, field
from typing import Optional
from .rate_params import RateCurveParams
from .price_reading import StalenessPolicy
from ..constants import (
    DEFAULT_BATCH_WORKERS,
    DEFAULT_MAX_PRICE_AGE,
    DEFAULT_ORACLE_TIMEOUT,
    FAST_FINALITY_MAX_PRICE_AGE,
    NATIVE_PRICE_KEY,
)

@dataclass
class EngineConfig:
    """Everything an engine instance is built from, injected at construction"""
    default_rate_params: RateCurveParams = field(default_factory=RateCurveParams)
    max_price_age: int = DEFAULT_MAX_PRICE_AGE
    fast_max_price_age: int = FAST_FINALITY_MAX_PRICE_AGE
    oracle_timeout: Optional[float] = DEFAULT_ORACLE_TIMEOUT  # None blocks on the oracle
    batch_workers: int = DEFAULT_BATCH_WORKERS
    native_price_key: str = NATIVE_PRICE_KEY

    @property
    def staleness(self) -> StalenessPolicy:
        return StalenessPolicy(self.max_price_age)

    @property
    def fast_staleness(self) -> StalenessPolicy:
        return StalenessPolicy(self.fast_max_price_age)
