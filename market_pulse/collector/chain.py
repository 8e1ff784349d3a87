# market_pulse/collector/chain.py
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from market_pulse.client.http import ProviderError, RateLimited
from market_pulse.client.models import AnalystRating, NewsItem, PriceSeries, Quote
from market_pulse.collector.base import Capability, MarketDataProvider
from market_pulse.resilience.audit import ApiAuditLog
from market_pulse.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ChainResult(Generic[T]):
    """What the chain resolved and which provider answered (None: nothing found)"""

    value: T
    source: str | None = None
    attempted: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.source is not None


class SourceChain:
    """Tries providers in order until one returns usable data.

    Every provider except an ungated one (max_calls None) must pass the rate
    limiter first. Provider errors never escape; they are logged, audited and
    the next provider is tried.
    """

    def __init__(
        self,
        providers: list[MarketDataProvider],
        rate_limiter: RateLimiter,
        audit: ApiAuditLog | None = None,
    ):
        self.providers = providers
        self.rate_limiter = rate_limiter
        self.audit = audit

    async def init(self) -> None:
        for provider in self.providers:
            await provider.init()

    async def close(self) -> None:
        for provider in self.providers:
            try:
                await provider.close()
            except Exception as e:
                logger.error(f"Failed to close provider {provider.name}: {e}")

    async def resolve(self, query: str) -> ChainResult[list[Quote]]:
        """Search every source for assets matching query"""
        return await self._run(
            Capability.SEARCH,
            "search",
            lambda p: p.search(query),
            lambda quotes: [q for q in quotes if q.usable],
            [],
        )

    async def resolve_quote(self, symbol: str) -> ChainResult[Quote | None]:
        return await self._run(
            Capability.QUOTE,
            "quote",
            lambda p: p.quote(symbol),
            lambda quote: quote if quote is not None and quote.usable else None,
            None,
        )

    async def resolve_history(self, symbol: str, interval: str) -> ChainResult[PriceSeries]:
        return await self._run(
            Capability.HISTORY,
            "history",
            lambda p: p.history(symbol, interval),
            lambda series: series if len(series) > 0 else None,
            PriceSeries(symbol=symbol.upper()),
        )

    async def resolve_news(self, symbol: str) -> ChainResult[list[NewsItem]]:
        return await self._run(
            Capability.NEWS, "news", lambda p: p.news(symbol), lambda items: items, []
        )

    async def resolve_ratings(self, symbol: str) -> ChainResult[list[AnalystRating]]:
        return await self._run(
            Capability.RATINGS, "ratings", lambda p: p.ratings(symbol), lambda items: items, []
        )

    async def _run(
        self,
        capability: Capability,
        endpoint: str,
        call: Callable[[MarketDataProvider], Awaitable[Any]],
        usable: Callable[[Any], Any],
        empty: T,
    ) -> ChainResult[T]:
        attempted: list[str] = []
        for provider in self.providers:
            if not provider.supports(capability):
                continue

            if provider.max_calls is not None and not self.rate_limiter.try_acquire(
                provider.name, provider.max_calls
            ):
                logger.info(f"Skipping {provider.name} for {endpoint}: rate limited")
                continue

            attempted.append(provider.name)
            started = time.monotonic()
            try:
                raw = await call(provider)
            except RateLimited as e:
                logger.warning(f"{provider.name} throttled {endpoint}: {e.message}")
                self._record(provider.name, endpoint, "error", started, False, e.message)
                continue
            except ProviderError as e:
                logger.warning(f"{provider.name} failed {endpoint}: {e.message}")
                self._record(provider.name, endpoint, "error", started, True, e.message)
                continue
            except Exception as e:
                logger.error(f"Unexpected error from {provider.name} on {endpoint}: {e}")
                self._record(provider.name, endpoint, "error", started, True, str(e))
                continue

            result = usable(raw)
            if result:
                self._record(provider.name, endpoint, "hit", started)
                return ChainResult(value=result, source=provider.name, attempted=attempted)

            self._record(provider.name, endpoint, "miss", started)

        logger.info(f"No source resolved {endpoint} (tried: {', '.join(attempted) or 'none'})")
        return ChainResult(value=empty, attempted=attempted)

    def _record(
        self,
        source: str,
        endpoint: str,
        status: str,
        started: float,
        rate_limit_ok: bool = True,
        error: str | None = None,
    ) -> None:
        if self.audit:
            latency_ms = (time.monotonic() - started) * 1000
            self.audit.record(source, endpoint, status, latency_ms, rate_limit_ok, error)
