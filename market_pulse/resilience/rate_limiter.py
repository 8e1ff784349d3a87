# market_pulse/resilience/rate_limiter.py
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from market_pulse.config import RateLimitConfig
from market_pulse.resilience.audit import ApiAuditLog

logger = logging.getLogger(__name__)


@dataclass
class RateWindow:
    source: str
    window_start: int  # floor(now / window_seconds)
    count: int = 0
    backoff_until: float | None = None


class RateLimiter:
    """Per-source fixed-window call counter with escalating backoff.

    try_acquire has no suspension point, so check-then-increment cannot
    interleave on one event loop. Callers on OS threads must serialize it.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        audit: ApiAuditLog | None = None,
        clock: Callable[[], float] = time.time,
    ):
        config = config or RateLimitConfig()
        self.window_seconds = config.window_seconds
        self.backoff_base = config.backoff_base_seconds
        self.backoff_cap = config.backoff_cap_seconds
        self.audit = audit
        self._clock = clock
        self._windows: dict[str, RateWindow] = {}

    def window(self, source: str) -> RateWindow | None:
        return self._windows.get(source)

    def in_backoff(self, source: str) -> bool:
        window = self._windows.get(source)
        return bool(window and window.backoff_until and self._clock() < window.backoff_until)

    def try_acquire(self, source: str, max_per_window: int) -> bool:
        now = self._clock()
        bucket = int(now // self.window_seconds)
        window = self._windows.get(source)

        if window is not None and window.backoff_until is not None:
            if now < window.backoff_until:
                logger.warning(f"{source} in backoff for another {window.backoff_until - now:.0f}s")
                self._deny(source, "Backoff period active")
                return False
            window.backoff_until = None

        if window is None:
            window = RateWindow(source=source, window_start=bucket)
            self._windows[source] = window
        elif window.window_start != bucket:
            # new window: counter resets, an unexpired backoff was handled above
            window.window_start = bucket
            window.count = 0

        if window.count >= max_per_window:
            backoff = min(self.backoff_base * 2 ** (window.count - max_per_window), self.backoff_cap)
            window.count += 1
            window.backoff_until = now + backoff
            logger.warning(f"Rate limit exceeded for {source}, backing off for {backoff:.0f}s")
            self._deny(source, f"Backoff: {backoff:.0f}s")
            return False

        window.count += 1
        return True

    def _deny(self, source: str, reason: str) -> None:
        if self.audit:
            self.audit.record(source, "rate-limit", "error", 0.0, rate_limit_ok=False, error=reason)
