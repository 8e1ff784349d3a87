# market_pulse/collector/static.py
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass

from market_pulse.client.models import AssetType, PricePoint, PriceSeries, Quote
from market_pulse.collector.base import CRYPTO_SYMBOLS, Capability, MarketDataProvider

logger = logging.getLogger(__name__)

# synthetic prices stay stable within one bucket
PRICE_BUCKET_SECONDS = 300
MAX_MATCHES = 8
HISTORY_POINTS = 31
DAY_MS = 86_400_000


@dataclass(frozen=True)
class SeedAsset:
    symbol: str
    name: str
    type: AssetType
    base_price: float
    sector: str
    previous_close: float | None = None
    open: float | None = None
    beta: float | None = None
    eps: float | None = None
    pe: float | None = None
    volume: float | None = None


STOCK = AssetType.STOCK
CRYPTO = AssetType.CRYPTO

SEED_ASSETS: list[SeedAsset] = [
    SeedAsset("AAPL", "Apple Inc.", STOCK, 175, "Technology", 174.50, 175.20, 1.25, 6.15, 28.5),
    SeedAsset("GOOGL", "Alphabet Inc.", STOCK, 142, "Technology", 141.80, 142.10, 1.05, 5.80, 24.5),
    SeedAsset("TSLA", "Tesla, Inc.", STOCK, 248, "Automotive", 247.50, 249.00, 2.15, 3.20, 77.5),
    SeedAsset("NVDA", "NVIDIA Corporation", STOCK, 178, "Technology", 177.20, 178.50, 1.65, 2.48, 71.8),
    SeedAsset("MSFT", "Microsoft Corporation", STOCK, 420, "Technology", 419.50, 420.30, 0.95, 11.05, 38.0),
    SeedAsset(
        "IBM", "International Business Machines Corp.", STOCK, 145, "Technology", 144.50, 145.20, 0.85, 6.63, 21.9
    ),
    SeedAsset("JNJ", "Johnson & Johnson", STOCK, 162, "Healthcare", 161.50, 162.30, 0.65, 6.20, 26.1),
    SeedAsset("PG", "Procter & Gamble Co.", STOCK, 155, "Consumer Goods", 154.80, 155.40, 0.55, 5.15, 30.1),
    SeedAsset("WMT", "Walmart Inc.", STOCK, 165, "Retail", 164.70, 165.10, 0.45, 6.29, 26.2),
    SeedAsset("JPM", "JPMorgan Chase & Co.", STOCK, 155, "Financial", 154.50, 155.30, 1.15, 15.36, 10.1),
    SeedAsset("BAC", "Bank of America Corp.", STOCK, 32, "Financial", 31.80, 32.10, 1.25, 3.19, 10.0),
    SeedAsset("BTC", "Bitcoin", CRYPTO, 65000, "Cryptocurrency", 64800, 65200, volume=25_000_000_000),
    SeedAsset("ETH", "Ethereum", CRYPTO, 3200, "Cryptocurrency", 3180, 3220, volume=12_000_000_000),
    SeedAsset("SHIB", "Shiba Inu", CRYPTO, 0.000015, "Cryptocurrency", 0.0000148, 0.0000152, volume=500_000_000),
    SeedAsset("XMR", "Monero", CRYPTO, 145, "Cryptocurrency", 144.20, 145.80, volume=85_000_000),
    # price-only entries
    SeedAsset("META", "Meta Platforms Inc.", STOCK, 485, "Technology"),
    SeedAsset("AMZN", "Amazon.com Inc.", STOCK, 155, "E-commerce"),
    SeedAsset("V", "Visa Inc.", STOCK, 280, "Finance"),
    SeedAsset("MA", "Mastercard Incorporated", STOCK, 410, "Finance"),
    SeedAsset("KO", "The Coca-Cola Company", STOCK, 60, "Consumer Goods"),
    SeedAsset("PEP", "PepsiCo Inc.", STOCK, 185, "Consumer Goods"),
    SeedAsset("LLY", "Eli Lilly and Company", STOCK, 920, "Healthcare"),
    SeedAsset("UNH", "UnitedHealth Group Incorporated", STOCK, 520, "Healthcare"),
    SeedAsset("PFE", "Pfizer Inc.", STOCK, 35, "Healthcare"),
    SeedAsset("HD", "The Home Depot Inc.", STOCK, 320, "Retail"),
    SeedAsset("MCD", "McDonald's Corporation", STOCK, 295, "Consumer Services"),
    SeedAsset("NKE", "NIKE Inc.", STOCK, 105, "Consumer Goods"),
    SeedAsset("XOM", "Exxon Mobil Corporation", STOCK, 110, "Energy"),
    SeedAsset("CVX", "Chevron Corporation", STOCK, 160, "Energy"),
    SeedAsset("GE", "General Electric Company", STOCK, 165, "Industrial"),
    SeedAsset("DIS", "The Walt Disney Company", STOCK, 95, "Media"),
    SeedAsset("AMD", "Advanced Micro Devices Inc.", STOCK, 180, "Technology"),
    SeedAsset("INTC", "Intel Corporation", STOCK, 40, "Technology"),
    SeedAsset("SOL", "Solana", CRYPTO, 150, "Cryptocurrency"),
    SeedAsset("ADA", "Cardano", CRYPTO, 0.45, "Cryptocurrency"),
    SeedAsset("XRP", "Ripple", CRYPTO, 0.58, "Cryptocurrency"),
    SeedAsset("LTC", "Litecoin", CRYPTO, 85, "Cryptocurrency"),
    SeedAsset("DOGE", "Dogecoin", CRYPTO, 0.15, "Cryptocurrency"),
]

SEED_INDEX: dict[str, SeedAsset] = {asset.symbol: asset for asset in SEED_ASSETS}


def _round_price(value: float) -> float:
    return round(value, 2) if abs(value) >= 1 else round(value, 10)


class StaticFallback(MarketDataProvider):
    """In-memory seed table with synthetic pricing; never gated, never fails.

    Prices vary by up to 3% around the seed, seeded per symbol and
    five-minute bucket so repeated reads in a bucket agree.
    """

    name = "fallback"
    capabilities = frozenset({Capability.SEARCH, Capability.QUOTE, Capability.HISTORY})
    max_calls = None

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def _rng(self, symbol: str, salt: str = "") -> random.Random:
        bucket = int(self._clock() // PRICE_BUCKET_SECONDS)
        return random.Random(f"{symbol}:{bucket}{salt}")

    def lookup(self, symbol: str) -> SeedAsset | None:
        upper = symbol.upper()
        asset = SEED_INDEX.get(upper)
        if asset is None and upper.endswith("USDT"):
            asset = SEED_INDEX.get(upper[:-4])
        return asset

    def price_quote(self, asset: SeedAsset) -> Quote:
        rng = self._rng(asset.symbol)
        price = asset.base_price * (1 + (rng.random() - 0.5) * 0.06)
        change_percent = (rng.random() - 0.5) * 6
        change = price * change_percent / 100
        volume = asset.volume or float(rng.randint(1_000_000, 51_000_000))

        return Quote(
            symbol=asset.symbol,
            name=asset.name,
            price=_round_price(price),
            change=_round_price(change),
            change_percent=round(change_percent, 2),
            type=asset.type,
            volume=volume,
            sector=asset.sector,
            previous_close=asset.previous_close,
            open=asset.open,
            beta=asset.beta,
            eps=asset.eps,
            pe=asset.pe,
            day_high=price * 1.02,
            day_low=price * 0.98,
            week52_high=price * (1 + rng.random() * 0.3),
            week52_low=price * (1 - rng.random() * 0.25),
            captured_at=int(self._clock() * 1000),
        )

    async def search(self, query: str) -> list[Quote]:
        needle = query.strip().lower()
        if not needle:
            return []
        matches = [
            asset
            for asset in SEED_ASSETS
            if needle in asset.symbol.lower() or needle in asset.name.lower()
        ]
        return [self.price_quote(asset) for asset in matches[:MAX_MATCHES]]

    async def quote(self, symbol: str) -> Quote | None:
        asset = self.lookup(symbol)
        if asset is None:
            if symbol.upper() in CRYPTO_SYMBOLS:
                logger.debug(f"{symbol} is a known crypto without a seed price")
            return None
        return self.price_quote(asset)

    async def history(self, symbol: str, interval: str) -> PriceSeries:
        asset = self.lookup(symbol)
        if asset is None:
            return PriceSeries(symbol=symbol.upper())

        current = self.price_quote(asset).price
        rng = self._rng(asset.symbol, ":history")
        now = int(self._clock() * 1000)
        points = [
            PricePoint(
                timestamp=now - i * DAY_MS,
                # +/-5% around the current synthetic price, anchored on today
                price=current if i == 0 else current * (1 + (rng.random() - 0.5) * 0.1),
                volume=float(rng.randint(1_000_000, 51_000_000)),
            )
            for i in range(HISTORY_POINTS - 1, -1, -1)
        ]
        return PriceSeries(symbol=asset.symbol, points=points)
