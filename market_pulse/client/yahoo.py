"""Yahoo Finance page scraper.

No API key; quotes, lookups and headlines are parsed out of the public HTML
pages. Markup changes upstream show up as empty results, not errors.
"""

import logging
from dataclasses import dataclass

from bs4 import BeautifulSoup

from market_pulse.client.http import ApiClient, parse_float
from market_pulse.client.models import AssetType, NewsItem, Quote, SymbolMatch, now_ms

logger = logging.getLogger(__name__)


@dataclass
class YahooScraper(ApiClient):
    name: str = "yahoo"
    base_url: str = "https://finance.yahoo.com"

    async def _page(self, endpoint: str, params: dict[str, str] | None = None) -> BeautifulSoup:
        text = await self._request("GET", endpoint, params, as_text=True)
        return BeautifulSoup(text, "html.parser")

    async def lookup(self, query: str) -> list[SymbolMatch]:
        soup = await self._page("/lookup", {"s": query})
        matches = []
        for row in soup.select(".lookup-table tbody tr"):
            cells = [td.get_text(strip=True) for td in row.find_all("td")]
            if len(cells) < 2 or not cells[0]:
                continue
            kind = cells[2] if len(cells) > 2 else ""
            matches.append(
                SymbolMatch(
                    symbol=cells[0],
                    name=cells[1] or cells[0],
                    type=AssetType.CRYPTO if "Cryptocurrency" in kind else AssetType.STOCK,
                )
            )
        return matches

    async def quote(self, symbol: str, asset_type: AssetType = AssetType.STOCK) -> Quote | None:
        soup = await self._page(f"/quote/{symbol}")

        def field_value(name: str) -> float | None:
            node = soup.select_one(f'[data-symbol="{symbol}"][data-field="{name}"]')
            if node is None:
                return None
            return parse_float(node.get("value") or node.get_text(strip=True))

        price = field_value("regularMarketPrice")
        if not price:
            logger.debug(f"No price found on Yahoo page for {symbol}")
            return None

        change = field_value("regularMarketChange") or 0.0
        percent = field_value("regularMarketChangePercent")
        if percent is None:
            previous = price - change
            percent = change / previous * 100 if previous > 0 else 0.0

        heading = soup.find("h1")
        name = heading.get_text(strip=True) if heading else symbol
        return Quote(
            symbol=symbol.upper(),
            name=name,
            price=price,
            change=change,
            change_percent=percent,
            type=asset_type,
            volume=field_value("regularMarketVolume"),
            captured_at=now_ms(),
        )

    async def headlines(self, symbol: str, limit: int = 10) -> list[NewsItem]:
        soup = await self._page(f"/quote/{symbol}/news")
        items = []
        for link in soup.select("article h3 a")[:limit]:
            title = link.get_text(strip=True)
            if not title:
                continue
            href = link.get("href", "")
            if href.startswith("/"):
                href = f"{self.base_url}{href}"
            items.append(NewsItem(title=title, url=href, source="Yahoo Finance", published_at=""))
        return items
