# market_pulse/service.py
import asyncio
import logging

from market_pulse.aggregator.sentiment import tag_sentiment
from market_pulse.client.models import EnhancedQuote, MarketMovers, NewsItem, PriceSeries, Quote
from market_pulse.collector.chain import SourceChain
from market_pulse.collector.static import SEED_ASSETS, StaticFallback
from market_pulse.resilience.cache import CacheStore, TTLClass
from market_pulse.resilience.debouncer import DebounceSuperseded, Debouncer
from market_pulse.resilience.deduplicator import Deduplicator

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10
MOVERS_PER_SIDE = 5
MOVER_STOCKS = ["AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "TSLA", "META", "JPM"]
MOVER_CRYPTO = ["BTC", "ETH", "SOL", "XRP"]


class MarketDataService:
    """Cached, deduplicated access to the source chain.

    Searches are additionally debounced under one shared key, so a burst of
    different queries runs only the last one. Identical concurrent calls
    share one execution: deduplication wraps the debounced call.
    """

    def __init__(
        self,
        chain: SourceChain,
        cache: CacheStore,
        debouncer: Debouncer,
        deduplicator: Deduplicator,
        search_delay: float = 0.5,
        fallback: StaticFallback | None = None,
    ):
        self.chain = chain
        self.cache = cache
        self.debouncer = debouncer
        self.deduplicator = deduplicator
        self.search_delay = search_delay
        self.fallback = fallback or StaticFallback()
        self._latest_search: str | None = None

    async def search_assets(self, query: str) -> list[Quote]:
        normalized = query.strip().upper()
        if not normalized:
            return []

        key = f"search_{normalized}"
        cached = self.cache.get(key, TTLClass.SEARCH)
        if cached is not None:
            return cached

        self._latest_search = normalized
        while True:
            try:
                return await self.deduplicator.run(
                    key,
                    lambda: self.debouncer.schedule("search", self.search_delay, lambda: self._search(normalized)),
                )
            except DebounceSuperseded:
                # a caller may have joined an execution that a different query superseded
                if self._latest_search != normalized:
                    logger.debug(f"Search for {normalized} superseded by a newer query")
                    return []

    async def _search(self, query: str) -> list[Quote]:
        result = await self.chain.resolve(query)
        quotes = result.value[:MAX_SEARCH_RESULTS]
        if quotes:
            self.cache.set(f"search_{query}", quotes, TTLClass.SEARCH)
        logger.info(f"Search {query}: {len(quotes)} results from {result.source or 'nowhere'}")
        return quotes

    async def get_asset_details(self, symbol: str) -> Quote | None:
        symbol = symbol.strip().upper()
        key = f"asset_{symbol}"
        cached = self.cache.get(key, TTLClass.INTRADAY)
        if cached is not None:
            return cached
        return await self.deduplicator.run(key, lambda: self._fetch_details(symbol, key))

    async def _fetch_details(self, symbol: str, key: str) -> Quote | None:
        result = await self.chain.resolve_quote(symbol)
        if result.value is not None:
            self.cache.set(key, result.value, TTLClass.INTRADAY)
        return result.value

    async def get_price_history(self, symbol: str, interval: str = "1M") -> PriceSeries:
        symbol = symbol.strip().upper()
        key = f"history_{symbol}_{interval}"
        cached = self.cache.get(key, TTLClass.HISTORICAL)
        if cached is not None:
            return cached
        return await self.deduplicator.run(key, lambda: self._fetch_history(symbol, interval, key))

    async def _fetch_history(self, symbol: str, interval: str, key: str) -> PriceSeries:
        result = await self.chain.resolve_history(symbol, interval)
        if len(result.value) > 0:
            self.cache.set(key, result.value, TTLClass.HISTORICAL)
        return result.value

    async def get_asset_news(self, symbol: str) -> list[NewsItem]:
        symbol = symbol.strip().upper()
        key = f"news_{symbol}"
        cached = self.cache.get(key, TTLClass.NEWS)
        if cached is not None:
            return cached
        return await self.deduplicator.run(key, lambda: self._fetch_news(symbol, key))

    async def _fetch_news(self, symbol: str, key: str) -> list[NewsItem]:
        result = await self.chain.resolve_news(symbol)
        news = tag_sentiment(result.value)
        if news:
            self.cache.set(key, news, TTLClass.NEWS)
        return news

    async def get_enhanced_asset_data(self, symbol: str) -> EnhancedQuote | None:
        symbol = symbol.strip().upper()
        key = f"enhanced_{symbol}"
        cached = self.cache.get(key, TTLClass.ANALYSIS)
        if cached is not None:
            return cached
        return await self.deduplicator.run(key, lambda: self._fetch_enhanced(symbol, key))

    async def _fetch_enhanced(self, symbol: str, key: str) -> EnhancedQuote | None:
        quote, news, ratings = await asyncio.gather(
            self.get_asset_details(symbol),
            self.get_asset_news(symbol),
            self.chain.resolve_ratings(symbol),
        )
        if quote is None:
            return None

        enhanced = EnhancedQuote(quote=quote, news=news, analyst_ratings=ratings.value)
        self.cache.set(key, enhanced, TTLClass.ANALYSIS)
        return enhanced

    async def get_market_movers(self) -> MarketMovers:
        cached = self.cache.get("market_movers", TTLClass.DAILY)
        if cached is not None:
            return cached
        return await self.deduplicator.run("market_movers", self._fetch_movers)

    async def _fetch_movers(self) -> MarketMovers:
        details = await asyncio.gather(*(self.get_asset_details(s) for s in MOVER_STOCKS + MOVER_CRYPTO))
        quotes = [q for q in details if q is not None]

        gainers = sorted((q for q in quotes if q.change_percent > 0), key=lambda q: -q.change_percent)
        losers = sorted((q for q in quotes if q.change_percent < 0), key=lambda q: q.change_percent)

        # thin markets or exhausted sources: top up from the seed table
        if len(gainers) < MOVERS_PER_SIDE or len(losers) < MOVERS_PER_SIDE:
            seen = {q.symbol for q in quotes}
            for asset in SEED_ASSETS:
                if asset.symbol in seen:
                    continue
                quote = self.fallback.price_quote(asset)
                if quote.change_percent > 0 and len(gainers) < MOVERS_PER_SIDE:
                    gainers.append(quote)
                elif quote.change_percent < 0 and len(losers) < MOVERS_PER_SIDE:
                    losers.append(quote)
            gainers.sort(key=lambda q: -q.change_percent)
            losers.sort(key=lambda q: q.change_percent)

        movers = MarketMovers(gainers=gainers[:MOVERS_PER_SIDE], losers=losers[:MOVERS_PER_SIDE])
        self.cache.set("market_movers", movers, TTLClass.DAILY)
        return movers
