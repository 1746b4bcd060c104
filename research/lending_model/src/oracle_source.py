"""External price source contract and an in-memory DIA style oracle"""
import threading
from typing import Dict, Protocol, Tuple

class OracleSource(Protocol):
    """Anything exposing the DIA key/value contract.

    get_value returns (price scaled by 1e8, unix timestamp); a key that was
    never published reads as (0, 0).
    """
    def get_value(self, key: str) -> Tuple[int, int]:
        ...

class MockDIAOracle:
    """Key/value oracle held in memory, used by tests and simulations"""

    def __init__(self):
        self._values: Dict[str, Tuple[int, int]] = {}
        self._lock = threading.Lock()

    def set_value(self, key: str, price: int, timestamp: int) -> None:
        with self._lock:
            self._values[key] = (price, timestamp)

    def get_value(self, key: str) -> Tuple[int, int]:
        with self._lock:
            return self._values.get(key, (0, 0))
