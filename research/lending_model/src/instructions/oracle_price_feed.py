"""Oracle price reading: rescaling, freshness validation and batching.

The oracle collaborator speaks the DIA contract: get_value(key) returns a
price with 8 decimals and the unix timestamp of the last update. Prices leave
this module with 18 decimals. Nothing is cached here; every call reads the
oracle again.

Staleness is reported two ways on purpose. get_price_if_not_older_than and
the batch variants return a freshness flag (a stale price reads as 0), while
get_fresh_price and validate_oracle_response raise PriceTooOldError.
"""
import logging
import queue
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar
from ..oracle_source import OracleSource
from ..state.price_reading import (
    DEFAULT_STALENESS,
    FAST_FINALITY_STALENESS,
    PriceReading,
    StalenessPolicy,
)
from ..libraries.fixed_point_math import abs_diff, mul_div, percentage_change
from ..errors import (
    ArithmeticOverflowError,
    InvalidInputError,
    InvalidKeyError,
    InvalidOracleError,
    InvalidPriceError,
    OracleError,
    OracleUnavailableError,
    PriceNotFoundError,
    PriceTooOldError,
    ZeroPriceError,
)
from ..constants import (
    DEFAULT_BATCH_WORKERS,
    DEFAULT_MAX_PRICE_AGE,
    MAX_UINT128,
    MAX_UINT256,
    MAX_VALID_PRICE,
    ORACLE_DECIMALS,
    PRECISION,
    PRICE_DECIMALS,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

def _resolve_now(now: Optional[int]) -> int:
    return int(time.time()) if now is None else now

def _price_age(timestamp: int, now: int) -> int:
    if timestamp > now:
        raise InvalidPriceError(f"Oracle timestamp {timestamp} is in the future (now={now})")
    return now - timestamp

class OracleCallRunner:
    """Runs oracle reads against a deadline on a fixed set of daemon workers.

    A read that overruns its deadline keeps its worker busy until the oracle
    returns. Reads queued behind busy workers time out the same way, so the
    number of threads never exceeds ``workers`` however many calls hang.
    Workers are daemon threads and never hold up interpreter exit.
    """

    def __init__(self, workers: int = DEFAULT_BATCH_WORKERS):
        if workers < 1:
            raise InvalidInputError(f"workers must be positive: {workers}")
        self.workers = workers
        self.threads: List[threading.Thread] = []
        self._queue: "queue.Queue[Optional[Tuple[Future, OracleSource, str]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def thread_count(self) -> int:
        return len(self.threads)

    def _start_workers(self) -> None:
        with self._lock:
            if self._closed:
                raise OracleUnavailableError("Oracle call runner is closed")
            while len(self.threads) < self.workers:
                thread = threading.Thread(
                    target=self._work,
                    name=f"oracle-call-{len(self.threads)}",
                    daemon=True,
                )
                thread.start()
                self.threads.append(thread)

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            future, oracle, key = item
            # skipped when the caller already gave up on it
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(oracle.get_value(key))
            except Exception as e:
                future.set_exception(e)

    def call(self, oracle: OracleSource, key: str, timeout: Optional[float]) -> Tuple[int, int]:
        self._start_workers()
        future: Future = Future()
        self._queue.put((future, oracle, key))
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            logger.warning("Oracle read for %s exceeded %ss", key, timeout)
            raise OracleUnavailableError(f"Oracle timed out after {timeout}s reading {key}") from e

    def close(self) -> None:
        """Stop the workers without waiting on reads that are still hung"""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for _ in self.threads:
                self._queue.put(None)

# Shared by the module level functions when they are given a timeout
_default_runner = OracleCallRunner()

class _DeadlineOracle:
    """OracleSource adapter routing every read through a runner"""

    def __init__(self, oracle: OracleSource, timeout: float, runner: OracleCallRunner):
        self.oracle = oracle
        self.timeout = timeout
        self.runner = runner

    def get_value(self, key: str) -> Tuple[int, int]:
        return self.runner.call(self.oracle, key, self.timeout)

def _call_oracle(
    oracle: OracleSource,
    key: str,
    timeout: Optional[float],
) -> Tuple[int, int]:
    if timeout is None:
        return oracle.get_value(key)
    return _default_runner.call(oracle, key, timeout)

def _map_ordered(fetch: Callable[[str], T], keys: Sequence[str], executor: Optional[Executor]) -> List[T]:
    # Executor.map yields in submission order whatever the completion order
    if executor is None:
        return [fetch(key) for key in keys]
    return list(executor.map(fetch, keys))

def convert_dia_price(raw_price: int, target_decimals: int) -> int:
    """Rescale an 8 decimal oracle price to target_decimals"""
    if raw_price < 0 or target_decimals < 0:
        raise InvalidInputError("Negative price or decimals")
    if target_decimals >= ORACLE_DECIMALS:
        scaled = raw_price * 10 ** (target_decimals - ORACLE_DECIMALS)
        if scaled > MAX_UINT256:
            raise ArithmeticOverflowError("Rescaled price exceeds u256::MAX")
        return scaled
    return raw_price // 10 ** (ORACLE_DECIMALS - target_decimals)

def calculate_price_change(old_price: int, new_price: int) -> int:
    """Signed relative change between two prices, as a fixed point fraction"""
    return percentage_change(old_price, new_price)

def check_price_deviation(reference_price: int, candidate_price: int, max_deviation: int) -> bool:
    """True when candidate is within max_deviation (fixed point fraction) of reference"""
    deviation = mul_div(abs_diff(reference_price, candidate_price), PRECISION, reference_price)
    return deviation <= max_deviation

def get_price(
    oracle: Optional[OracleSource],
    key: str,
    timeout: Optional[float] = None,
) -> Tuple[int, int]:
    """Read one price from the oracle.

    Returns:
        Tuple[price, timestamp] - price rescaled to 18 decimals
    """
    if oracle is None:
        raise InvalidOracleError("Oracle not configured")
    if not key:
        raise InvalidKeyError("Empty price key")

    try:
        raw_price, timestamp = _call_oracle(oracle, key, timeout)
    except OracleError:
        raise
    except Exception as e:
        logger.warning("Oracle call failed for %s: %s", key, e)
        raise OracleUnavailableError(f"Oracle call failed for {key}") from e

    if not (0 <= raw_price <= MAX_UINT128 and 0 <= timestamp <= MAX_UINT128):
        raise InvalidPriceError(f"Malformed oracle response for {key}: ({raw_price}, {timestamp})")
    if raw_price == 0 and timestamp == 0:
        raise PriceNotFoundError(f"No price published for {key}")
    if raw_price == 0:
        raise ZeroPriceError(f"Zero price for {key}")

    return convert_dia_price(raw_price, PRICE_DECIMALS), timestamp

def get_price_reading(
    oracle: Optional[OracleSource],
    key: str,
    timeout: Optional[float] = None,
) -> PriceReading:
    price, timestamp = get_price(oracle, key, timeout)
    return PriceReading(price, timestamp, key)

def get_price_age(
    oracle: Optional[OracleSource],
    key: str,
    now: Optional[int] = None,
    timeout: Optional[float] = None,
) -> int:
    _, timestamp = get_price(oracle, key, timeout)
    return _price_age(timestamp, _resolve_now(now))

def get_price_if_not_older_than(
    oracle: Optional[OracleSource],
    key: str,
    max_age: int,
    now: Optional[int] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, bool]:
    """Read a price and report whether it is at most max_age seconds old.

    A stale price is not an error here: the result is (0, False) and the
    caller decides what to fall back to.
    """
    price, timestamp = get_price(oracle, key, timeout)
    age = _price_age(timestamp, _resolve_now(now))
    if age <= max_age:
        return price, True
    logger.debug("Price for %s is %ss old (max %ss)", key, age, max_age)
    return 0, False

def get_fresh_price(
    oracle: Optional[OracleSource],
    key: str,
    now: Optional[int] = None,
    max_age: int = DEFAULT_MAX_PRICE_AGE,
    timeout: Optional[float] = None,
) -> int:
    """Read a price that must be fresh; stale data raises PriceTooOldError"""
    price, in_time = get_price_if_not_older_than(oracle, key, max_age, now, timeout)
    if not in_time:
        raise PriceTooOldError(f"Price for {key} older than {max_age}s")
    return price

def is_price_fresh(
    oracle: Optional[OracleSource],
    key: str,
    max_age: int = DEFAULT_MAX_PRICE_AGE,
    now: Optional[int] = None,
    timeout: Optional[float] = None,
) -> bool:
    _, in_time = get_price_if_not_older_than(oracle, key, max_age, now, timeout)
    return in_time

def get_batch_prices(
    oracle: Optional[OracleSource],
    keys: Sequence[str],
    executor: Optional[Executor] = None,
    timeout: Optional[float] = None,
) -> Tuple[List[int], List[int]]:
    """Read several prices; any failing key fails the whole batch.

    Results line up with ``keys`` even when fetched concurrently.
    """
    if not keys:
        raise InvalidInputError("Empty batch")
    readings = _map_ordered(lambda key: get_price(oracle, key, timeout), keys, executor)
    prices = [price for price, _ in readings]
    timestamps = [timestamp for _, timestamp in readings]
    return prices, timestamps

def get_batch_prices_partial(
    oracle: Optional[OracleSource],
    keys: Sequence[str],
    executor: Optional[Executor] = None,
    timeout: Optional[float] = None,
) -> Tuple[List[int], List[int], List[bool]]:
    """Like get_batch_prices, but a failing key yields (0, 0, False) in place"""
    if not keys:
        raise InvalidInputError("Empty batch")

    def fetch(key: str) -> Tuple[int, int, bool]:
        try:
            price, timestamp = get_price(oracle, key, timeout)
        except InvalidOracleError:
            raise
        except OracleError as e:
            logger.warning("Batch read failed for %s: %s", key, e)
            return 0, 0, False
        return price, timestamp, True

    results = _map_ordered(fetch, keys, executor)
    return (
        [price for price, _, _ in results],
        [timestamp for _, timestamp, _ in results],
        [ok for _, _, ok in results],
    )

def get_batch_fresh_prices(
    oracle: Optional[OracleSource],
    keys: Sequence[str],
    max_age: int,
    now: Optional[int] = None,
    executor: Optional[Executor] = None,
    timeout: Optional[float] = None,
) -> Tuple[List[int], bool]:
    """Read several prices with the boolean staleness check.

    Stale entries stay in the list as 0; all_fresh is the AND of every flag.
    """
    if not keys:
        raise InvalidInputError("Empty batch")
    now = _resolve_now(now)
    results = _map_ordered(
        lambda key: get_price_if_not_older_than(oracle, key, max_age, now, timeout),
        keys,
        executor,
    )
    return [price for price, _ in results], all(in_time for _, in_time in results)

def validate_oracle_response(
    price: int,
    timestamp: int,
    max_age: int = DEFAULT_MAX_PRICE_AGE,
    now: Optional[int] = None,
) -> bool:
    """Check an 18 decimal price/timestamp pair, raising on the first problem"""
    if price == 0:
        raise ZeroPriceError("Zero price")
    if price < 0 or price > MAX_VALID_PRICE:
        raise InvalidPriceError(f"Price {price} outside sane range")
    age = _price_age(timestamp, _resolve_now(now))
    if age > max_age:
        raise PriceTooOldError(f"Price is {age}s old (max {max_age}s)")
    return True

class OraclePriceFeed:
    """Price feed bound to one oracle.

    The oracle handle is set once (constructor or configure) and cleared with
    reset. A worker pool is kept for batch reads when max_workers > 1. With a
    timeout, reads go through the feed's own OracleCallRunner, which is
    separate from the batch pool so batch workers never wait on themselves.
    """

    def __init__(
        self,
        oracle: Optional[OracleSource] = None,
        clock: Optional[Callable[[], int]] = None,
        timeout: Optional[float] = None,
        max_workers: int = DEFAULT_BATCH_WORKERS,
        staleness: StalenessPolicy = DEFAULT_STALENESS,
        fast_staleness: StalenessPolicy = FAST_FINALITY_STALENESS,
    ):
        self._oracle: Optional[OracleSource] = None
        self._lock = threading.Lock()
        self._clock = clock or (lambda: int(time.time()))
        self.timeout = timeout
        self.staleness = staleness
        self.fast_staleness = fast_staleness
        self._executor: Optional[ThreadPoolExecutor] = None
        if max_workers > 1:
            self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="oracle-batch")
        self._runner: Optional[OracleCallRunner] = None
        if timeout is not None:
            self._runner = OracleCallRunner(max(max_workers, 1))
        if oracle is not None:
            self.configure(oracle)

    @property
    def oracle(self) -> Optional[OracleSource]:
        return self._oracle

    def configure(self, oracle: OracleSource) -> None:
        if oracle is None:
            raise InvalidOracleError("Oracle handle is None")
        with self._lock:
            if self._oracle is not None:
                raise InvalidOracleError("Oracle already configured")
            self._oracle = oracle
        logger.info("Oracle configured: %s", type(oracle).__name__)

    def reset(self) -> None:
        with self._lock:
            self._oracle = None
        logger.info("Oracle handle cleared")

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if self._runner is not None:
            self._runner.close()

    def _source(self) -> Optional[OracleSource]:
        oracle = self._oracle
        if oracle is None or self._runner is None:
            return oracle
        return _DeadlineOracle(oracle, self.timeout, self._runner)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def now(self) -> int:
        return self._clock()

    def get_price(self, key: str) -> Tuple[int, int]:
        return get_price(self._source(), key)

    def get_price_reading(self, key: str) -> PriceReading:
        return get_price_reading(self._source(), key)

    def get_price_if_not_older_than(self, key: str, max_age: int) -> Tuple[int, bool]:
        return get_price_if_not_older_than(self._source(), key, max_age, self.now())

    def get_fresh_price(self, key: str) -> int:
        return get_fresh_price(self._source(), key, self.now(), self.staleness.max_age)

    def get_fast_price(self, key: str) -> int:
        """Fresh price under the tight fast finality window"""
        return get_fresh_price(self._source(), key, self.now(), self.fast_staleness.max_age)

    def get_price_age(self, key: str) -> int:
        return get_price_age(self._source(), key, self.now())

    def is_price_fresh(self, key: str, max_age: Optional[int] = None) -> bool:
        if max_age is None:
            max_age = self.staleness.max_age
        return is_price_fresh(self._source(), key, max_age, self.now())

    def get_batch_prices(self, keys: Sequence[str]) -> Tuple[List[int], List[int]]:
        return get_batch_prices(self._source(), keys, self._executor)

    def get_batch_prices_partial(self, keys: Sequence[str]) -> Tuple[List[int], List[int], List[bool]]:
        return get_batch_prices_partial(self._source(), keys, self._executor)

    def get_batch_fresh_prices(self, keys: Sequence[str], max_age: Optional[int] = None) -> Tuple[List[int], bool]:
        if max_age is None:
            max_age = self.staleness.max_age
        return get_batch_fresh_prices(self._source(), keys, max_age, self.now(), self._executor)

    def validate_oracle_response(self, price: int, timestamp: int, max_age: Optional[int] = None) -> bool:
        if max_age is None:
            max_age = self.staleness.max_age
        return validate_oracle_response(price, timestamp, max_age, self.now())
