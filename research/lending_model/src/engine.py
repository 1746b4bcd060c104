"""Wiring of the price feed and the rate curve for one asset universe"""
import logging
from typing import Callable, Optional, Tuple
from .oracle_source import OracleSource
from .state.engine_config import EngineConfig
from .state.rate_params import RateParamsRegistry
from .instructions.interest_rate_curve import InterestRateCurve
from .instructions.oracle_price_feed import OraclePriceFeed

logger = logging.getLogger(__name__)

class LendingEngine:
    """Numeric engine consumed by pool, liquidation and risk logic.

    Instances share nothing: each owns its parameter table and price feed.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        oracle: Optional[OracleSource] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.config = config or EngineConfig()
        self.rate_params = RateParamsRegistry(self.config.default_rate_params)
        self.curve = InterestRateCurve(self.rate_params)
        self.price_feed = OraclePriceFeed(
            oracle=oracle,
            clock=clock,
            timeout=self.config.oracle_timeout,
            max_workers=self.config.batch_workers,
            staleness=self.config.staleness,
            fast_staleness=self.config.fast_staleness,
        )
        logger.debug("LendingEngine created with %s", self.config)

    def asset_rates(self, asset: str, total_supply: int, total_borrow: int) -> Tuple[int, int]:
        """Annual (borrow, supply) rates from market totals"""
        return self.curve.calculate_rates(asset, total_supply=total_supply, total_borrow=total_borrow)

    def native_price(self) -> int:
        return self.price_feed.get_fresh_price(self.config.native_price_key)

    def close(self) -> None:
        self.price_feed.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
