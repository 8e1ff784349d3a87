# market_pulse/collector/providers.py
import logging
from dataclasses import replace
from typing import Any

from market_pulse.client.alphavantage import AlphaVantageClient
from market_pulse.client.exchange import ExchangeClient
from market_pulse.client.finnhub import FinnhubClient
from market_pulse.client.http import ProviderError
from market_pulse.client.models import (
    AnalystRating,
    AssetType,
    NewsItem,
    PriceSeries,
    Quote,
)
from market_pulse.client.newsapi import NewsApiClient
from market_pulse.client.yahoo import YahooScraper
from market_pulse.collector.base import CRYPTO_SYMBOLS, Capability, MarketDataProvider, is_crypto_symbol

logger = logging.getLogger(__name__)

# quotes fetched per search, each costs an upstream call
SEARCH_QUOTE_LIMIT = 4


def _enrich(quote: Quote, details: dict[str, Any]) -> Quote:
    updates = {k: v for k, v in details.items() if v is not None and getattr(quote, k) is None}
    if details.get("name") and quote.name == quote.symbol:
        updates["name"] = details["name"]
    return replace(quote, **updates) if updates else quote


class AlphaVantageProvider(MarketDataProvider):
    """Primary stock source"""

    name = "alphavantage"
    capabilities = frozenset({Capability.SEARCH, Capability.QUOTE, Capability.HISTORY})

    def __init__(self, client: AlphaVantageClient, max_calls: int = 3):
        self.client = client
        self.max_calls = max_calls

    async def init(self) -> None:
        await self.client.init()

    async def close(self) -> None:
        await self.client.close()

    async def search(self, query: str) -> list[Quote]:
        matches = await self.client.search_symbols(query)
        quotes = []
        for match in matches[:SEARCH_QUOTE_LIMIT]:
            quote = await self.client.get_quote(match.symbol, match.name)
            if quote is not None:
                quotes.append(replace(quote, exchange=match.region))
        return quotes

    async def quote(self, symbol: str) -> Quote | None:
        if is_crypto_symbol(symbol):
            return None
        quote = await self.client.get_quote(symbol)
        if quote is None:
            return None
        try:
            overview = await self.client.get_overview(symbol)
        except ProviderError as e:
            logger.info(f"Alpha Vantage overview unavailable for {symbol}: {e}")
            return quote
        return _enrich(quote, overview)

    async def history(self, symbol: str, interval: str) -> PriceSeries:
        if is_crypto_symbol(symbol):
            return PriceSeries(symbol=symbol)
        return await self.client.get_history(symbol, intraday=interval == "1D")


class FinnhubProvider(MarketDataProvider):
    """Secondary stock source and crypto symbol search"""

    name = "finnhub"
    capabilities = frozenset(
        {Capability.SEARCH, Capability.QUOTE, Capability.HISTORY, Capability.NEWS, Capability.RATINGS}
    )

    def __init__(self, client: FinnhubClient, max_calls: int = 3):
        self.client = client
        self.max_calls = max_calls

    async def init(self) -> None:
        await self.client.init()

    async def close(self) -> None:
        await self.client.close()

    async def search(self, query: str) -> list[Quote]:
        matches = await self.client.search_crypto(query)
        quotes = []
        for match in matches[:SEARCH_QUOTE_LIMIT]:
            quote = await self.client.get_quote(match.symbol, match.name, AssetType.CRYPTO)
            if quote is not None:
                symbol = match.symbol.replace("BINANCE:", "")
                quotes.append(replace(quote, symbol=symbol))
        return quotes

    async def quote(self, symbol: str) -> Quote | None:
        if is_crypto_symbol(symbol):
            base = symbol.upper().replace("USDT", "")
            quote = await self.client.get_quote(
                f"BINANCE:{base}USDT", CRYPTO_SYMBOLS.get(base, base), AssetType.CRYPTO
            )
            return replace(quote, symbol=base) if quote else None

        quote = await self.client.get_quote(symbol)
        if quote is None:
            return None
        try:
            profile = await self.client.get_profile(symbol)
        except ProviderError as e:
            logger.info(f"Finnhub profile unavailable for {symbol}: {e}")
            return quote
        return _enrich(quote, profile)

    async def history(self, symbol: str, interval: str) -> PriceSeries:
        if is_crypto_symbol(symbol):
            return PriceSeries(symbol=symbol)
        return await self.client.get_candles(symbol, interval)

    async def news(self, symbol: str) -> list[NewsItem]:
        if is_crypto_symbol(symbol):
            return []
        return await self.client.get_company_news(symbol)

    async def ratings(self, symbol: str) -> list[AnalystRating]:
        if is_crypto_symbol(symbol):
            return []
        return await self.client.get_recommendations(symbol)


class ExchangeProvider(MarketDataProvider):
    """Crypto spot market via ccxt"""

    name = "exchange"
    capabilities = frozenset({Capability.SEARCH, Capability.QUOTE, Capability.HISTORY})

    def __init__(self, client: ExchangeClient, max_calls: int = 10):
        self.client = client
        self.max_calls = max_calls

    async def init(self) -> None:
        await self.client.init()

    async def close(self) -> None:
        await self.client.close()

    async def search(self, query: str) -> list[Quote]:
        matches = await self.client.search(query)
        quotes = []
        for match in matches[:SEARCH_QUOTE_LIMIT]:
            quote = await self.client.get_quote(match.symbol, CRYPTO_SYMBOLS.get(match.symbol))
            if quote is not None:
                quotes.append(quote)
        return quotes

    async def quote(self, symbol: str) -> Quote | None:
        if not is_crypto_symbol(symbol):
            return None
        base = self.client.market_symbol(symbol).split("/")[0]
        return await self.client.get_quote(base, CRYPTO_SYMBOLS.get(base))

    async def history(self, symbol: str, interval: str) -> PriceSeries:
        if not is_crypto_symbol(symbol):
            return PriceSeries(symbol=symbol)
        return await self.client.get_history(symbol, interval)


class NewsApiProvider(MarketDataProvider):
    name = "newsapi"
    capabilities = frozenset({Capability.NEWS})

    def __init__(self, client: NewsApiClient, max_calls: int = 2):
        self.client = client
        self.max_calls = max_calls

    async def init(self) -> None:
        await self.client.init()

    async def close(self) -> None:
        await self.client.close()

    async def news(self, symbol: str) -> list[NewsItem]:
        upper = symbol.upper()
        query = f"{CRYPTO_SYMBOLS[upper]} OR {upper}" if upper in CRYPTO_SYMBOLS else upper
        return await self.client.everything(query)


class YahooProvider(MarketDataProvider):
    """HTML scrape of Yahoo Finance, used when the APIs are exhausted"""

    name = "yahoo"
    capabilities = frozenset({Capability.SEARCH, Capability.QUOTE, Capability.NEWS})

    def __init__(self, client: YahooScraper, max_calls: int = 5):
        self.client = client
        self.max_calls = max_calls

    async def init(self) -> None:
        await self.client.init()

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def page_symbol(symbol: str) -> str:
        upper = symbol.upper()
        if is_crypto_symbol(upper) and "-" not in upper:
            return f"{upper.replace('USDT', '')}-USD"
        return upper

    async def search(self, query: str) -> list[Quote]:
        matches = await self.client.lookup(query)
        quotes = []
        for match in matches[:SEARCH_QUOTE_LIMIT]:
            quote = await self.client.quote(match.symbol, match.type)
            if quote is not None:
                quotes.append(replace(quote, name=match.name))
        return quotes

    async def quote(self, symbol: str) -> Quote | None:
        asset_type = AssetType.CRYPTO if is_crypto_symbol(symbol) else AssetType.STOCK
        quote = await self.client.quote(self.page_symbol(symbol), asset_type)
        if quote is None:
            return None
        return replace(quote, symbol=symbol.upper())

    async def news(self, symbol: str) -> list[NewsItem]:
        return await self.client.headlines(self.page_symbol(symbol))
