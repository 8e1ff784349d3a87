"""Shared aiohttp plumbing for the upstream market data APIs"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class ProviderError(Exception):
    """Failure of a single upstream source"""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


class UpstreamUnavailable(ProviderError):
    """Network or HTTP failure"""

    def __init__(self, source: str, message: str, status: int | None = None):
        self.status = status
        super().__init__(source, message)


class RateLimited(ProviderError):
    """The upstream itself refused the call for quota reasons"""


@dataclass
class ApiClient:
    """Base HTTP client: owns a session, retries transient failures"""

    name: str = "api"
    base_url: str = ""
    timeout_seconds: float = 8
    retries: int = 2
    retry_base_delay: float = 0.8
    _session: aiohttp.ClientSession | None = field(default=None, repr=False)

    async def init(self) -> None:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                headers={"User-Agent": USER_AGENT},
            )

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "ApiClient":
        await self.init()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        as_text: bool = False,
    ) -> Any:
        """Send a request, retrying transport errors with 1.5x backoff"""
        attempts = max(1, self.retries)
        for attempt in range(attempts):
            try:
                return await self._send(method, endpoint, params, payload, headers, as_text)
            except RateLimited:
                raise
            except UpstreamUnavailable as e:
                # client errors will not improve on retry
                if e.status is not None and 400 <= e.status < 500:
                    raise
                if attempt == attempts - 1:
                    raise
                delay = self.retry_base_delay * 1.5**attempt + random.random() * 0.5
                logger.info(f"{self.name} retry {attempt + 1} after {delay:.2f}s: {e.message}")
                await asyncio.sleep(delay)
        raise UpstreamUnavailable(self.name, "Max retries exceeded")

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None,
        payload: dict[str, Any] | None,
        headers: dict[str, str] | None,
        as_text: bool,
    ) -> Any:
        if self._session is None:
            raise RuntimeError("Session not initialized. Use 'async with' context.")

        url = endpoint if endpoint.startswith("http") else f"{self.base_url}{endpoint}"

        try:
            if method == "GET":
                response = await self._session.get(url, params=params, headers=headers)
            else:
                response = await self._session.post(url, params=params, json=payload, headers=headers)

            if response.status == 429:
                raise RateLimited(self.name, "HTTP 429 Too Many Requests")

            if response.status != 200:
                error_text = await response.text()
                try:
                    error_data = json.loads(error_text)
                    message = str(error_data.get("error") or error_data.get("message") or error_text)
                except (json.JSONDecodeError, AttributeError):
                    message = error_text
                raise UpstreamUnavailable(
                    self.name, f"HTTP {response.status}: {message[:200]}", response.status
                )

            if as_text:
                return await response.text()
            return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailable(self.name, f"{type(e).__name__}: {e}") from e


def parse_float(value: Any) -> float | None:
    """Lenient numeric parsing for upstream payloads ("1,234.5", "0.5%", "None")"""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "").rstrip("%")
    if not text or text in {"None", "-", "N/A"}:
        return None
    try:
        return float(text)
    except ValueError:
        return None
