"""Generative analysis over an OpenAI-compatible chat completions endpoint"""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from market_pulse.client.http import ApiClient, ProviderError
from market_pulse.resilience.audit import ApiAuditLog

logger = logging.getLogger(__name__)


class AnalysisResult(BaseModel):
    """Validated analysis payload; wire names are camelCase"""

    model_config = ConfigDict(populate_by_name=True)

    recommendation: Literal["BUY", "SELL", "HOLD"]
    confidence: int = Field(ge=0, le=100)
    price_target: float | None = Field(default=None, alias="priceTarget")
    time_horizon: Literal["SHORT", "MEDIUM", "LONG"] = Field(default="MEDIUM", alias="timeHorizon")
    analysis: str = ""
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")
    risks: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    market_sentiment: Literal["BULLISH", "BEARISH", "NEUTRAL"] = Field(
        default="NEUTRAL", alias="marketSentiment"
    )
    technical_signals: dict[str, Any] = Field(default_factory=dict, alias="technicalSignals")
    # set when the payload could not be obtained or validated
    fallback: bool = False

    @field_validator("recommendation", "time_horizon", "market_sentiment", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.strip().upper() if isinstance(value, str) else value

    @field_validator("confidence", mode="before")
    @classmethod
    def _round_confidence(cls, value: Any) -> Any:
        return round(value) if isinstance(value, float) else value

    @classmethod
    def conservative(cls, confidence: int, reason: str) -> "AnalysisResult":
        return cls(
            recommendation="HOLD",
            confidence=confidence,
            analysis=f"Automated analysis unavailable ({reason}); holding until data improves.",
            risks=["Analysis service unavailable"],
            fallback=True,
        )


def extract_content(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices")
    if isinstance(choices, list) and choices:
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return message["content"]
    return ""


@dataclass
class AnalysisClient(ApiClient):
    name: str = "analysis"
    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key: str | None = None
    model: str = "gpt-4.1-mini"
    max_tokens: int = 4000
    enabled: bool = True
    audit: ApiAuditLog | None = field(default=None, repr=False)

    async def analyze(self, messages: list[dict[str, str]], base_confidence: int) -> AnalysisResult:
        """Ask for an analysis; any failure yields a conservative HOLD"""
        if not self.enabled or not self.api_key:
            return AnalysisResult.conservative(base_confidence, "not configured")

        started = time.monotonic()
        try:
            payload = await self._request(
                "POST",
                self.api_url,
                payload={
                    "model": self.model,
                    "messages": messages,
                    "response_format": {"type": "json_object"},
                    "max_tokens": self.max_tokens,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except ProviderError as e:
            logger.error(f"Analysis request failed: {e.message}")
            self._record("error", started, e.message)
            return AnalysisResult.conservative(base_confidence, "request failed")

        content = extract_content(payload)
        try:
            result = AnalysisResult.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Discarding malformed analysis payload: {e}")
            self._record("error", started, f"invalid payload: {type(e).__name__}")
            return AnalysisResult.conservative(base_confidence, "invalid response")

        self._record("hit", started)
        return result

    def _record(self, status: str, started: float, error: str | None = None) -> None:
        if self.audit:
            self.audit.record(
                self.name, "chat/completions", status, (time.monotonic() - started) * 1000, True, error
            )
