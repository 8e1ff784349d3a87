"""NewsAPI client"""

from dataclasses import dataclass

from market_pulse.client.http import ApiClient, UpstreamUnavailable
from market_pulse.client.models import NewsItem


@dataclass
class NewsApiClient(ApiClient):
    name: str = "newsapi"
    base_url: str = "https://newsapi.org/v2"
    api_key: str = ""

    async def everything(self, query: str, page_size: int = 10) -> list[NewsItem]:
        data = await self._request(
            "GET",
            "/everything",
            {
                "q": query,
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": page_size,
                "apiKey": self.api_key,
            },
        )
        if not isinstance(data, dict) or data.get("status") == "error":
            message = data.get("message", "error") if isinstance(data, dict) else "bad payload"
            raise UpstreamUnavailable(self.name, message)

        return [
            NewsItem(
                title=article["title"],
                url=article.get("url", ""),
                source=(article.get("source") or {}).get("name", "NewsAPI"),
                published_at=article.get("publishedAt", ""),
            )
            for article in data.get("articles", [])
            if article.get("title")
        ]
