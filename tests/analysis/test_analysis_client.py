# tests/analysis/test_analysis_client.py
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_pulse.analysis.client import AnalysisClient, AnalysisResult, extract_content
from market_pulse.resilience.audit import ApiAuditLog

MESSAGES = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def make_client(status: int = 200, payload=None, text: str = "", audit: ApiAuditLog | None = None) -> AnalysisClient:
    client = AnalysisClient(api_key="sk-test", retries=1, audit=audit)

    mock_response = MagicMock()
    mock_response.status = status
    mock_response.json = AsyncMock(return_value=payload)
    mock_response.text = AsyncMock(return_value=text)

    mock_session = MagicMock()
    mock_session.post = AsyncMock(return_value=mock_response)
    client._session = mock_session
    return client


def test_analysis_result_normalizes_wire_payload():
    result = AnalysisResult.model_validate(
        {
            "recommendation": " buy ",
            "confidence": 77.6,
            "priceTarget": 210.5,
            "timeHorizon": "long",
            "keyPoints": ["a", "b"],
            "marketSentiment": "bullish",
            "technicalSignals": {"rsi": "Neutral"},
        }
    )

    assert result.recommendation == "BUY"
    assert result.confidence == 78
    assert result.price_target == 210.5
    assert result.time_horizon == "LONG"
    assert result.key_points == ["a", "b"]
    assert result.market_sentiment == "BULLISH"
    assert not result.fallback


def test_analysis_result_rejects_unknown_recommendation():
    with pytest.raises(ValueError):
        AnalysisResult.model_validate({"recommendation": "STRONG BUY", "confidence": 80})


def test_conservative_result_is_hold():
    result = AnalysisResult.conservative(62, "not configured")

    assert result.recommendation == "HOLD"
    assert result.confidence == 62
    assert result.fallback
    assert "not configured" in result.analysis


def test_extract_content():
    assert extract_content(completion("{}")) == "{}"
    assert extract_content({"choices": []}) == ""
    assert extract_content(None) == ""


async def test_analyze_success():
    audit = ApiAuditLog()
    body = {"recommendation": "SELL", "confidence": 82, "analysis": "Overbought", "risks": ["x"]}
    client = make_client(payload=completion(json.dumps(body)), audit=audit)

    result = await client.analyze(MESSAGES, 70)

    assert result.recommendation == "SELL"
    assert result.confidence == 82
    assert not result.fallback

    call = client._session.post.call_args
    assert call.args[0] == "https://api.openai.com/v1/chat/completions"
    assert call.kwargs["headers"] == {"Authorization": "Bearer sk-test"}
    assert call.kwargs["json"]["messages"] == MESSAGES
    assert call.kwargs["json"]["response_format"] == {"type": "json_object"}
    assert audit.summary()["analysis"]["hit"] == 1


async def test_analyze_without_key_is_conservative():
    client = AnalysisClient(api_key=None)

    result = await client.analyze(MESSAGES, 65)

    assert result.recommendation == "HOLD"
    assert result.confidence == 65
    assert result.fallback


async def test_analyze_disabled_is_conservative():
    client = make_client(payload=completion("{}"))
    client.enabled = False

    result = await client.analyze(MESSAGES, 65)

    assert result.fallback
    client._session.post.assert_not_called()


async def test_analyze_http_failure_is_conservative():
    audit = ApiAuditLog()
    client = make_client(status=500, text='{"error": "overloaded"}', audit=audit)

    result = await client.analyze(MESSAGES, 58)

    assert result.recommendation == "HOLD"
    assert result.confidence == 58
    assert "request failed" in result.analysis
    assert audit.errors("analysis")[0].error is not None


@pytest.mark.parametrize(
    "content",
    [
        "I think you should buy",
        json.dumps({"recommendation": "MAYBE", "confidence": 80}),
        json.dumps({"recommendation": "BUY", "confidence": 180}),
        json.dumps(["BUY"]),
    ],
)
async def test_analyze_invalid_payload_is_conservative(content: str):
    client = make_client(payload=completion(content))

    result = await client.analyze(MESSAGES, 60)

    assert result.recommendation == "HOLD"
    assert result.fallback
    assert "invalid response" in result.analysis
