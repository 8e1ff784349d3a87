# market_pulse/collector/base.py
from abc import ABC
from enum import Enum

from market_pulse.client.models import AnalystRating, NewsItem, PriceSeries, Quote

CRYPTO_SYMBOLS: dict[str, str] = {
    "BTC": "Bitcoin",
    "ETH": "Ethereum",
    "ADA": "Cardano",
    "SOL": "Solana",
    "DOT": "Polkadot",
    "AVAX": "Avalanche",
    "MATIC": "Polygon",
    "LINK": "Chainlink",
    "XRP": "Ripple",
    "LTC": "Litecoin",
    "SHIB": "Shiba Inu",
    "XMR": "Monero",
    "DOGE": "Dogecoin",
    "USDT": "Tether",
    "USDC": "USD Coin",
    "BNB": "Binance Coin",
    "ATOM": "Cosmos",
    "ALGO": "Algorand",
    "NEAR": "NEAR Protocol",
    "FTM": "Fantom",
}


def is_crypto_symbol(symbol: str) -> bool:
    upper = symbol.upper()
    return upper in CRYPTO_SYMBOLS or "USDT" in upper or upper.endswith("USD")


class Capability(Enum):
    SEARCH = "search"
    QUOTE = "quote"
    HISTORY = "history"
    NEWS = "news"
    RATINGS = "ratings"


class MarketDataProvider(ABC):
    """One source in the fallback chain.

    Subclasses declare what they can answer in ``capabilities`` and override
    the matching coroutines. Failures are raised as ProviderError; an empty
    or None result means the source has nothing for the query.
    """

    name: str = "provider"
    capabilities: frozenset[Capability] = frozenset()
    # None: not gated by the rate limiter
    max_calls: int | None = 3

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    async def init(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def search(self, query: str) -> list[Quote]:
        return []

    async def quote(self, symbol: str) -> Quote | None:
        return None

    async def history(self, symbol: str, interval: str) -> PriceSeries:
        return PriceSeries(symbol=symbol)

    async def news(self, symbol: str) -> list[NewsItem]:
        return []

    async def ratings(self, symbol: str) -> list[AnalystRating]:
        return []
