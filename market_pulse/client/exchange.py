# market_pulse/client/exchange.py
import logging
from typing import Any

import ccxt.async_support as ccxt

from market_pulse.client.http import RateLimited, UpstreamUnavailable
from market_pulse.client.models import AssetType, PricePoint, PriceSeries, Quote, SymbolMatch, now_ms

logger = logging.getLogger(__name__)

# interval -> (ohlcv timeframe, candle count)
OHLCV_WINDOWS: dict[str, tuple[str, int]] = {
    "1D": ("1h", 24),
    "1W": ("4h", 42),
    "1M": ("1d", 30),
    "3M": ("1d", 90),
    "1Y": ("1w", 52),
}


class ExchangeClient:
    """Spot crypto quotes and candles from a ccxt exchange"""

    name = "exchange"

    def __init__(self, exchange_id: str = "binance", quote_currency: str = "USDT"):
        self.exchange_id = exchange_id
        self.quote_currency = quote_currency
        self.exchange: ccxt.Exchange | None = None

    async def init(self) -> None:
        exchange_class = getattr(ccxt, self.exchange_id)
        self.exchange = exchange_class({"enableRateLimit": True})

    async def close(self) -> None:
        if self.exchange:
            await self.exchange.close()
            self.exchange = None

    def market_symbol(self, symbol: str) -> str:
        base = symbol.upper().split("/")[0]
        for suffix in (self.quote_currency, "USD"):
            if base.endswith(suffix) and base != suffix:
                base = base[: -len(suffix)]
                break
        return f"{base}/{self.quote_currency}"

    async def _call(self, method: str, *args: Any) -> Any:
        assert self.exchange is not None
        try:
            return await getattr(self.exchange, method)(*args)
        except ccxt.RateLimitExceeded as e:
            raise RateLimited(self.name, str(e)) from e
        except ccxt.BadSymbol:
            return None
        except ccxt.BaseError as e:
            raise UpstreamUnavailable(self.name, f"{type(e).__name__}: {e}") from e

    async def search(self, query: str) -> list[SymbolMatch]:
        assert self.exchange is not None
        markets: dict[str, Any] | None = await self._call("load_markets")
        if not markets:
            return []

        needle = query.upper()
        matches = []
        for market in markets.values():
            if market.get("quote") != self.quote_currency or not market.get("spot", True):
                continue
            base = market.get("base", "")
            if needle in base:
                matches.append(SymbolMatch(symbol=base, name=base, type=AssetType.CRYPTO))
        # exact base first
        matches.sort(key=lambda m: (m.symbol != needle, len(m.symbol)))
        return matches

    async def get_quote(self, symbol: str, name: str | None = None) -> Quote | None:
        ticker: dict[str, Any] | None = await self._call("fetch_ticker", self.market_symbol(symbol))
        if not ticker or not ticker.get("last"):
            return None

        base = symbol.upper().split("/")[0]
        return Quote(
            symbol=base,
            name=name or base,
            price=float(ticker["last"]),
            change=float(ticker.get("change") or 0.0),
            change_percent=float(ticker.get("percentage") or 0.0),
            type=AssetType.CRYPTO,
            volume=ticker.get("quoteVolume"),
            exchange=self.exchange_id,
            open=ticker.get("open"),
            day_high=ticker.get("high"),
            day_low=ticker.get("low"),
            previous_close=ticker.get("previousClose"),
            captured_at=int(ticker.get("timestamp") or now_ms()),
        )

    async def get_history(self, symbol: str, interval: str = "1M") -> PriceSeries:
        timeframe, limit = OHLCV_WINDOWS.get(interval, OHLCV_WINDOWS["1M"])
        candles: list[list[float]] | None = await self._call(
            "fetch_ohlcv", self.market_symbol(symbol), timeframe, None, limit
        )
        points = [
            PricePoint(timestamp=int(c[0]), price=float(c[4]), volume=float(c[5]))
            for c in candles or []
        ]
        return PriceSeries(symbol=symbol.upper().split("/")[0], points=points)
