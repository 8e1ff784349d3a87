"""Alpha Vantage API client"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from market_pulse.client.http import ApiClient, RateLimited, UpstreamUnavailable, parse_float
from market_pulse.client.models import AssetType, PricePoint, PriceSeries, Quote, SymbolMatch


@dataclass
class AlphaVantageClient(ApiClient):
    name: str = "alphavantage"
    base_url: str = "https://www.alphavantage.co"
    api_key: str = "demo"

    async def _query(self, function: str, **params: Any) -> dict[str, Any]:
        data = await self._request(
            "GET", "/query", {"function": function, "apikey": self.api_key, **params}
        )
        if not isinstance(data, dict):
            raise UpstreamUnavailable(self.name, f"Unexpected {function} payload")
        # throttling is reported in-band with HTTP 200
        if "Note" in data or "Information" in data:
            raise RateLimited(self.name, str(data.get("Note") or data.get("Information")))
        if "Error Message" in data:
            raise UpstreamUnavailable(self.name, str(data["Error Message"]))
        return data

    async def search_symbols(self, keywords: str) -> list[SymbolMatch]:
        data = await self._query("SYMBOL_SEARCH", keywords=keywords)
        return [
            SymbolMatch(
                symbol=m["1. symbol"],
                name=m.get("2. name", m["1. symbol"]),
                region=m.get("4. region"),
                type=AssetType.STOCK,
            )
            for m in data.get("bestMatches", [])
            if m.get("1. symbol")
        ]

    async def get_quote(self, symbol: str, name: str | None = None) -> Quote | None:
        data = await self._query("GLOBAL_QUOTE", symbol=symbol)
        raw = data.get("Global Quote") or {}
        price = parse_float(raw.get("05. price"))
        if price is None:
            return None

        return Quote(
            symbol=symbol.upper(),
            name=name or symbol.upper(),
            price=price,
            change=parse_float(raw.get("09. change")) or 0.0,
            change_percent=parse_float(raw.get("10. change percent")) or 0.0,
            type=AssetType.STOCK,
            volume=parse_float(raw.get("06. volume")),
            previous_close=parse_float(raw.get("08. previous close")),
            open=parse_float(raw.get("02. open")),
            day_high=parse_float(raw.get("03. high")),
            day_low=parse_float(raw.get("04. low")),
        )

    async def get_overview(self, symbol: str) -> dict[str, Any]:
        """Company fundamentals, normalized to Quote field names"""
        data = await self._query("OVERVIEW", symbol=symbol)
        if not data.get("Symbol"):
            return {}
        return {
            "name": data.get("Name"),
            "market_cap": parse_float(data.get("MarketCapitalization")),
            "exchange": data.get("Exchange"),
            "sector": data.get("Sector"),
            "industry": data.get("Industry"),
            "pe": parse_float(data.get("PERatio")),
            "eps": parse_float(data.get("EPS")),
            "beta": parse_float(data.get("Beta")),
            "week52_high": parse_float(data.get("52WeekHigh")),
            "week52_low": parse_float(data.get("52WeekLow")),
        }

    async def get_history(self, symbol: str, intraday: bool) -> PriceSeries:
        if intraday:
            data = await self._query("TIME_SERIES_INTRADAY", symbol=symbol, interval="60min")
            series = data.get("Time Series (60min)", {})
        else:
            data = await self._query("TIME_SERIES_DAILY", symbol=symbol)
            series = data.get("Time Series (Daily)", {})

        points = []
        for stamp, values in series.items():
            price = parse_float(values.get("4. close"))
            if price is None:
                continue
            points.append(
                PricePoint(
                    timestamp=_parse_stamp(stamp),
                    price=price,
                    volume=parse_float(values.get("5. volume")),
                )
            )
        return PriceSeries(symbol=symbol.upper(), points=points)


def _parse_stamp(stamp: str) -> int:
    fmt = "%Y-%m-%d %H:%M:%S" if " " in stamp else "%Y-%m-%d"
    return int(datetime.strptime(stamp, fmt).replace(tzinfo=UTC).timestamp() * 1000)
