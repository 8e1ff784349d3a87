import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from market_pulse.client.http import (
    ApiClient,
    RateLimited,
    UpstreamUnavailable,
    parse_float,
)


def make_response(status: int = 200, json_data=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)
    return response


def test_parse_float():
    assert parse_float("1,234.5") == 1234.5
    assert parse_float("0.5%") == 0.5
    assert parse_float(" -2.1 ") == -2.1
    assert parse_float(7) == 7.0
    assert parse_float("None") is None
    assert parse_float("-") is None
    assert parse_float("N/A") is None
    assert parse_float("") is None
    assert parse_float(None) is None
    assert parse_float("abc") is None


@pytest.mark.asyncio
async def test_request_get():
    client = ApiClient(name="test", base_url="https://api.example.com")

    mock_session = MagicMock()
    mock_session.get = AsyncMock(return_value=make_response(json_data={"c": 150.0}))
    client._session = mock_session

    result = await client._request("GET", "/quote", {"symbol": "AAPL"})

    assert result == {"c": 150.0}
    mock_session.get.assert_called_once_with(
        "https://api.example.com/quote", params={"symbol": "AAPL"}, headers=None
    )


@pytest.mark.asyncio
async def test_request_post_sends_json_payload():
    client = ApiClient(name="test", base_url="https://api.example.com")

    mock_session = MagicMock()
    mock_session.post = AsyncMock(return_value=make_response(json_data={"ok": True}))
    client._session = mock_session

    await client._request("POST", "https://other.example.com/v1", payload={"a": 1}, headers={"X": "y"})

    mock_session.post.assert_called_once_with(
        "https://other.example.com/v1", params=None, json={"a": 1}, headers={"X": "y"}
    )


@pytest.mark.asyncio
async def test_request_as_text():
    client = ApiClient(name="test")
    mock_session = MagicMock()
    mock_session.get = AsyncMock(return_value=make_response(text="<html></html>"))
    client._session = mock_session

    assert await client._request("GET", "https://example.com", as_text=True) == "<html></html>"


@pytest.mark.asyncio
async def test_request_handles_client_error_without_retry():
    client = ApiClient(name="test", retries=3)

    mock_session = MagicMock()
    mock_session.get = AsyncMock(
        return_value=make_response(400, text='{"error": "Invalid symbol"}')
    )
    client._session = mock_session

    with pytest.raises(UpstreamUnavailable, match="Invalid symbol") as exc_info:
        await client._request("GET", "/quote")

    assert exc_info.value.status == 400
    assert exc_info.value.source == "test"
    assert mock_session.get.call_count == 1


@pytest.mark.asyncio
async def test_request_429_is_rate_limited():
    client = ApiClient(name="test", retries=3)

    mock_session = MagicMock()
    mock_session.get = AsyncMock(return_value=make_response(429, text="slow down"))
    client._session = mock_session

    with pytest.raises(RateLimited):
        await client._request("GET", "/quote")
    assert mock_session.get.call_count == 1


@pytest.mark.asyncio
async def test_request_retries_server_errors():
    client = ApiClient(name="test", retries=2)

    mock_session = MagicMock()
    mock_session.get = AsyncMock(
        side_effect=[
            make_response(503, text="unavailable"),
            make_response(json_data={"ok": True}),
        ]
    )
    client._session = mock_session

    with patch("market_pulse.client.http.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        result = await client._request("GET", "/quote")

    assert result == {"ok": True}
    assert mock_session.get.call_count == 2
    mock_sleep.assert_awaited_once()


@pytest.mark.asyncio
async def test_request_gives_up_after_retries():
    client = ApiClient(name="test", retries=2)

    mock_session = MagicMock()
    mock_session.get = AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))
    client._session = mock_session

    with patch("market_pulse.client.http.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(UpstreamUnavailable, match="refused"):
            await client._request("GET", "/quote")

    assert mock_session.get.call_count == 2


@pytest.mark.asyncio
async def test_timeout_becomes_upstream_unavailable():
    client = ApiClient(name="test", retries=1)

    mock_session = MagicMock()
    mock_session.get = AsyncMock(side_effect=asyncio.TimeoutError())
    client._session = mock_session

    with pytest.raises(UpstreamUnavailable):
        await client._request("GET", "/quote")


@pytest.mark.asyncio
async def test_request_without_session_fails():
    client = ApiClient()
    with pytest.raises(RuntimeError, match="Session not initialized"):
        await client._request("GET", "/quote")


@pytest.mark.asyncio
async def test_context_manager_opens_and_closes_session():
    async with ApiClient() as client:
        assert client._session is not None
        session = client._session
    assert client._session is None
    assert session.closed
