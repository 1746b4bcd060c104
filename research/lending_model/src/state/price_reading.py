"""Price reading and staleness policy value types"""
from dataclasses import dataclass
from typing import NamedTuple
from ..errors import InvalidInputError
from ..constants import DEFAULT_MAX_PRICE_AGE, FAST_FINALITY_MAX_PRICE_AGE

class PriceReading(NamedTuple):
    """One oracle observation, rescaled to 18 decimals"""
    value: int  # FixedPoint price
    timestamp: int  # unix seconds reported by the oracle
    key: str  # e.g. "BTC/USD"

@dataclass(frozen=True)
class StalenessPolicy:
    """Maximum accepted age of a price, passed per call"""
    max_age: int  # seconds

    def __post_init__(self):
        if self.max_age < 0:
            raise InvalidInputError(f"max_age must be non-negative: {self.max_age}")

    def is_fresh(self, age: int) -> bool:
        return age <= self.max_age

DEFAULT_STALENESS = StalenessPolicy(DEFAULT_MAX_PRICE_AGE)
FAST_FINALITY_STALENESS = StalenessPolicy(FAST_FINALITY_MAX_PRICE_AGE)
