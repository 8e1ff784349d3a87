"""Finnhub API client"""

import time
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from market_pulse.client.http import ApiClient, UpstreamUnavailable, parse_float
from market_pulse.client.models import (
    AnalystRating,
    AssetType,
    NewsItem,
    PricePoint,
    PriceSeries,
    Quote,
    SymbolMatch,
)

# interval -> (candle resolution, lookback seconds)
CANDLE_WINDOWS: dict[str, tuple[str, int]] = {
    "1D": ("60", 86400),
    "1W": ("D", 7 * 86400),
    "1M": ("D", 30 * 86400),
    "3M": ("D", 90 * 86400),
    "1Y": ("W", 365 * 86400),
}


@dataclass
class FinnhubClient(ApiClient):
    name: str = "finnhub"
    base_url: str = "https://finnhub.io/api/v1"
    api_key: str = ""

    async def _get(self, endpoint: str, **params: Any) -> Any:
        return await self._request("GET", endpoint, {**params, "token": self.api_key})

    async def search_crypto(self, query: str, exchange: str = "BINANCE") -> list[SymbolMatch]:
        data = await self._get("/crypto/symbol", exchange=exchange)
        if not isinstance(data, list):
            raise UpstreamUnavailable(self.name, "Unexpected crypto symbol payload")

        needle = query.upper()
        matches = []
        for item in data:
            symbol = item.get("symbol", "")
            description = item.get("description", "")
            if needle in symbol.upper() or needle in description.upper():
                matches.append(
                    SymbolMatch(symbol=symbol, name=description or symbol, type=AssetType.CRYPTO)
                )
        return matches

    async def get_quote(
        self, symbol: str, name: str | None = None, asset_type: AssetType = AssetType.STOCK
    ) -> Quote | None:
        data = await self._get("/quote", symbol=symbol)
        price = parse_float(data.get("c")) if isinstance(data, dict) else None
        # finnhub answers unknown symbols with an all-zero quote
        if not price:
            return None

        return Quote(
            symbol=symbol.upper(),
            name=name or symbol.upper(),
            price=price,
            change=parse_float(data.get("d")) or 0.0,
            change_percent=parse_float(data.get("dp")) or 0.0,
            type=asset_type,
            volume=parse_float(data.get("v")),
            open=parse_float(data.get("o")),
            day_high=parse_float(data.get("h")),
            day_low=parse_float(data.get("l")),
            previous_close=parse_float(data.get("pc")),
        )

    async def get_profile(self, symbol: str) -> dict[str, Any]:
        data = await self._get("/stock/profile2", symbol=symbol)
        if not isinstance(data, dict) or not data:
            return {}
        market_cap = parse_float(data.get("marketCapitalization"))
        return {
            "name": data.get("name"),
            # reported in millions
            "market_cap": market_cap * 1_000_000 if market_cap else None,
            "exchange": data.get("exchange"),
            "industry": data.get("finnhubIndustry"),
        }

    async def get_candles(self, symbol: str, interval: str = "1M") -> PriceSeries:
        resolution, lookback = CANDLE_WINDOWS.get(interval, CANDLE_WINDOWS["1M"])
        now = int(time.time())
        data = await self._get(
            "/stock/candle", symbol=symbol, resolution=resolution, **{"from": now - lookback, "to": now}
        )
        if not isinstance(data, dict) or data.get("s") != "ok":
            return PriceSeries(symbol=symbol.upper())

        volumes = data.get("v") or [None] * len(data.get("t", []))
        points = [
            PricePoint(timestamp=int(t) * 1000, price=float(c), volume=v)
            for t, c, v in zip(data.get("t", []), data.get("c", []), volumes)
        ]
        return PriceSeries(symbol=symbol.upper(), points=points)

    async def get_company_news(self, symbol: str, days: int = 7) -> list[NewsItem]:
        today = datetime.now(UTC).date()
        data = await self._get(
            "/company-news",
            symbol=symbol,
            **{"from": (today - timedelta(days=days)).isoformat(), "to": today.isoformat()},
        )
        if not isinstance(data, list):
            return []
        return [
            NewsItem(
                title=item["headline"],
                url=item.get("url", ""),
                source=item.get("source", "Finnhub"),
                published_at=datetime.fromtimestamp(item.get("datetime", 0), UTC).isoformat(),
            )
            for item in data[:10]
            if item.get("headline")
        ]

    async def get_recommendations(self, symbol: str) -> list[AnalystRating]:
        data = await self._get("/stock/recommendation", symbol=symbol)
        if not isinstance(data, list) or not data:
            return []

        latest = data[0]
        buys = latest.get("strongBuy", 0) + latest.get("buy", 0)
        sells = latest.get("strongSell", 0) + latest.get("sell", 0)
        holds = latest.get("hold", 0)
        if buys > max(sells, holds):
            recommendation = "BUY"
        elif sells > max(buys, holds):
            recommendation = "SELL"
        else:
            recommendation = "HOLD"

        return [
            AnalystRating(
                rating=f"{buys} buy / {holds} hold / {sells} sell ({latest.get('period', 'latest')})",
                recommendation=recommendation,
            )
        ]
