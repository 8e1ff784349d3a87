# tests/collector/test_chain.py
from market_pulse.client.http import RateLimited, UpstreamUnavailable
from market_pulse.client.models import AssetType, NewsItem, PricePoint, PriceSeries, Quote
from market_pulse.collector.base import Capability, MarketDataProvider
from market_pulse.collector.chain import SourceChain
from market_pulse.collector.static import StaticFallback
from market_pulse.resilience.audit import ApiAuditLog
from market_pulse.resilience.rate_limiter import RateLimiter


def make_quote(symbol: str = "IBM", price: float = 180.0) -> Quote:
    return Quote(symbol=symbol, name=symbol, price=price, change=1.0, change_percent=0.5, type=AssetType.STOCK)


class FakeProvider(MarketDataProvider):
    capabilities = frozenset({Capability.SEARCH, Capability.QUOTE, Capability.HISTORY, Capability.NEWS})

    def __init__(self, name: str, result=None, error: Exception | None = None, max_calls: int | None = 3):
        self.name = name
        self.result = result
        self.error = error
        self.max_calls = max_calls
        self.calls = 0

    async def _answer(self):
        self.calls += 1
        if self.error:
            raise self.error
        return self.result

    async def quote(self, symbol: str):
        return await self._answer()

    async def search(self, query: str):
        return await self._answer() or []

    async def history(self, symbol: str, interval: str):
        return await self._answer() or PriceSeries(symbol=symbol)

    async def news(self, symbol: str):
        return await self._answer() or []


class NewsOnly(MarketDataProvider):
    name = "news_only"
    capabilities = frozenset({Capability.NEWS})

    def __init__(self):
        self.quote_called = False

    async def quote(self, symbol: str):
        self.quote_called = True
        return make_quote()


async def test_first_usable_result_wins():
    first = FakeProvider("primary", make_quote(price=181.0))
    second = FakeProvider("secondary", make_quote(price=999.0))
    chain = SourceChain([first, second], RateLimiter())

    result = await chain.resolve_quote("IBM")

    assert result.found
    assert result.source == "primary"
    assert result.value is not None and result.value.price == 181.0
    assert second.calls == 0


async def test_errors_fall_through_to_next_provider():
    audit = ApiAuditLog()
    failing = FakeProvider("primary", error=UpstreamUnavailable("primary", "HTTP 503"))
    crashing = FakeProvider("secondary", error=KeyError("c"))
    working = FakeProvider("tertiary", make_quote())
    chain = SourceChain([failing, crashing, working], RateLimiter(), audit)

    result = await chain.resolve_quote("IBM")

    assert result.source == "tertiary"
    assert result.attempted == ["primary", "secondary", "tertiary"]
    assert [r.api_name for r in audit.errors()] == ["primary", "secondary"]
    assert audit.summary()["tertiary"]["hit"] == 1


async def test_unusable_values_are_misses():
    zero = FakeProvider("zero", make_quote(price=0.0))
    good = FakeProvider("good", make_quote(price=10.0))
    chain = SourceChain([zero, good], RateLimiter())

    result = await chain.resolve_quote("IBM")

    assert result.source == "good"


async def test_rate_limited_provider_is_skipped_without_calling():
    limiter = RateLimiter()
    provider = FakeProvider("limited", make_quote(), max_calls=1)
    chain = SourceChain([provider, StaticFallback()], limiter)

    assert (await chain.resolve_quote("IBM")).source == "limited"
    result = await chain.resolve_quote("IBM")

    assert result.source == "fallback"
    assert provider.calls == 1
    assert result.attempted == ["fallback"]


async def test_ibm_resolves_from_fallback_when_apis_exhausted():
    audit = ApiAuditLog()
    throttled = FakeProvider("alphavantage", error=RateLimited("alphavantage", "5 calls per minute"))
    down = FakeProvider("finnhub", error=UpstreamUnavailable("finnhub", "timeout"))
    chain = SourceChain([throttled, down, StaticFallback()], RateLimiter(), audit)

    result = await chain.resolve_quote("IBM")

    assert result.source == "fallback"
    assert result.value is not None
    assert result.value.symbol == "IBM"
    assert result.value.price > 0
    throttle_record = audit.errors("alphavantage")[0]
    assert throttle_record.rate_limit_ok is False


async def test_capability_filtering():
    news_only = NewsOnly()
    chain = SourceChain([news_only, FakeProvider("quotes", make_quote())], RateLimiter())

    result = await chain.resolve_quote("IBM")

    assert result.source == "quotes"
    assert not news_only.quote_called


async def test_nothing_found_returns_empty_value():
    chain = SourceChain([FakeProvider("empty", None)], RateLimiter())

    quote = await chain.resolve_quote("ZZZZ")
    search = await chain.resolve("zzzz")
    history = await chain.resolve_history("ZZZZ", "1M")

    assert not quote.found and quote.value is None
    assert search.value == [] and search.source is None
    assert len(history.value) == 0
    assert history.value.symbol == "ZZZZ"


async def test_resolve_search_drops_unusable_quotes():
    provider = FakeProvider("search", [make_quote("A", 0.0), make_quote("B", 5.0)])
    chain = SourceChain([provider], RateLimiter())

    result = await chain.resolve("x")

    assert [q.symbol for q in result.value] == ["B"]


async def test_resolve_history_and_news():
    series = PriceSeries(symbol="IBM", points=[PricePoint(timestamp=1, price=1.0)])
    news = [NewsItem(title="IBM up", url="", source="wire", published_at="")]
    hist = FakeProvider("hist", series, max_calls=None)
    hist.capabilities = frozenset({Capability.HISTORY})
    chain = SourceChain([hist, FakeProvider("news", news, max_calls=None)], RateLimiter())

    history = await chain.resolve_history("IBM", "1M")
    headlines = await chain.resolve_news("IBM")

    assert history.source == "hist"
    assert history.value.prices == [1.0]
    assert headlines.source == "news"
    assert headlines.value == news


async def test_init_and_close_reach_every_provider():
    class Tracking(FakeProvider):
        async def init(self):
            self.opened = True

        async def close(self):
            raise RuntimeError("already closed")

    a, b = Tracking("a"), Tracking("b")
    chain = SourceChain([a, b], RateLimiter())

    await chain.init()
    assert a.opened and b.opened
    # close errors are logged, not raised
    await chain.close()


async def test_no_capable_provider():
    chain = SourceChain([StaticFallback()], RateLimiter())

    news = await chain.resolve_news("IBM")
    ratings = await chain.resolve_ratings("IBM")

    assert news.value == [] and news.attempted == []
    assert ratings.value == [] and ratings.attempted == []
