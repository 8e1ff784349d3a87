"""Market data models shared by providers, the source chain and the services"""

import time
from dataclasses import dataclass, field
from enum import Enum


class AssetType(Enum):
    STOCK = "STOCK"
    CRYPTO = "CRYPTO"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Quote:
    """Point-in-time asset snapshot"""

    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    type: AssetType
    volume: float | None = None
    market_cap: float | None = None
    captured_at: int = field(default_factory=now_ms)
    exchange: str | None = None
    sector: str | None = None
    industry: str | None = None
    pe: float | None = None
    eps: float | None = None
    beta: float | None = None
    previous_close: float | None = None
    open: float | None = None
    day_high: float | None = None
    day_low: float | None = None
    week52_high: float | None = None
    week52_low: float | None = None

    def __post_init__(self) -> None:
        if self.price < 0:
            raise ValueError(f"Negative price for {self.symbol}: {self.price}")
        # change and change_percent must agree in sign; trust the absolute change
        if self.change * self.change_percent < 0:
            previous = self.price - self.change
            self.change_percent = self.change / previous * 100 if previous > 0 else 0.0
        elif self.change == 0 and self.change_percent != 0 and self.change_percent > -100:
            # unparsable upstream change
            self.change = self.price - self.price / (1 + self.change_percent / 100)

    @property
    def usable(self) -> bool:
        return self.price > 0


@dataclass
class SymbolMatch:
    symbol: str
    name: str
    region: str | None = None
    type: AssetType = AssetType.STOCK


@dataclass
class PricePoint:
    timestamp: int  # ms
    price: float
    volume: float | None = None


@dataclass
class PriceSeries:
    """Ordered price history for one symbol, timestamps strictly increasing"""

    symbol: str
    points: list[PricePoint] = field(default_factory=list)

    def __post_init__(self) -> None:
        ordered: list[PricePoint] = []
        for point in sorted(self.points, key=lambda p: p.timestamp):
            if ordered and ordered[-1].timestamp == point.timestamp:
                ordered[-1] = point
                continue
            ordered.append(point)
        self.points = ordered

    @property
    def prices(self) -> list[float]:
        return [p.price for p in self.points]

    @property
    def volumes(self) -> list[float]:
        return [p.volume for p in self.points if p.volume is not None]

    def __len__(self) -> int:
        return len(self.points)


@dataclass
class NewsItem:
    title: str
    url: str
    source: str
    published_at: str
    sentiment: str | None = None  # positive / negative / neutral


@dataclass
class AnalystRating:
    rating: str
    recommendation: str  # BUY / SELL / HOLD
    target_price: float | None = None


@dataclass
class EnhancedQuote:
    quote: Quote
    news: list[NewsItem] = field(default_factory=list)
    analyst_ratings: list[AnalystRating] = field(default_factory=list)


@dataclass
class MarketMovers:
    gainers: list[Quote]
    losers: list[Quote]
    last_updated: int = field(default_factory=now_ms)
