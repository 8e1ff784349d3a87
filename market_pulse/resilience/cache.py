# market_pulse/resilience/cache.py
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from market_pulse.config import CacheConfig
from market_pulse.resilience.audit import ApiAuditLog

logger = logging.getLogger(__name__)


class TTLClass(Enum):
    INTRADAY = "intraday"
    DAILY = "daily"
    HISTORICAL = "historical"
    NEWS = "news"
    ANALYSIS = "analysis"
    SEARCH = "search"
    EXTENDED = "extended"


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float
    ttl_class: TTLClass


class CacheStore:
    """Memory-resident cache with one retention period per TTL class.

    Expired entries are evicted when they are read; there is no sweeper.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        audit: ApiAuditLog | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        config = config or CacheConfig()
        self.ttls: dict[TTLClass, float] = {
            ttl_class: getattr(config, f"{ttl_class.value}_minutes") * 60 for ttl_class in TTLClass
        }
        self.audit = audit
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def ttl(self, ttl_class: TTLClass) -> float:
        return self.ttls[ttl_class]

    def get(self, key: str, ttl_class: TTLClass = TTLClass.DAILY) -> Any | None:
        started = self._clock()
        entry = self._entries.get(key)

        if entry is not None and started - entry.stored_at < self.ttl(ttl_class):
            self._emit(key, "hit", started)
            logger.debug(f"Cache hit for {key}")
            return entry.value

        if entry is not None:
            del self._entries[key]

        self._emit(key, "miss", started)
        return None

    def set(self, key: str, value: Any, ttl_class: TTLClass = TTLClass.DAILY) -> None:
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl_class=ttl_class,
        )
        logger.debug(f"Cached {key} for {self.ttl(ttl_class):.0f}s ({ttl_class.value})")

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _emit(self, key: str, status: str, started: float) -> None:
        if self.audit:
            self.audit.record("cache", key, status, (self._clock() - started) * 1000)
