# market_pulse/analysis/prompt.py
from market_pulse.aggregator.indicators import IndicatorSet
from market_pulse.aggregator.sentiment import SentimentSummary
from market_pulse.client.models import EnhancedQuote
from market_pulse.storage.models import AutomationSettings

SYSTEM_PROMPT = (
    "You are a professional financial analyst. You combine quantitative market data, "
    "technical indicators and news flow into a single investment recommendation. "
    "You always answer with a single JSON object and nothing else."
)

TRIGGER_CONTEXT = {
    "MANUAL": "The user requested this analysis directly.",
    "SCHEDULED": "This is a scheduled periodic review.",
    "PRICE_ALERT": "A price alert fired for this asset; weigh recent price action heavily.",
    "NEWS_TRIGGER": "Fresh news arrived for this asset; weigh news sentiment heavily.",
}


def _fmt(value: float | None, prefix: str = "") -> str:
    return f"{prefix}{value:,.2f}" if value is not None else "N/A"


def rsi_label(rsi: float) -> str:
    if rsi > 70:
        return "Overbought"
    if rsi < 30:
        return "Oversold"
    return "Neutral"


def build_messages(
    data: EnhancedQuote,
    indicators: IndicatorSet,
    sentiment: SentimentSummary,
    confidence: int,
    trigger: str = "MANUAL",
    settings: AutomationSettings | None = None,
) -> list[dict[str, str]]:
    quote = data.quote
    automation = ""
    if settings is not None:
        automation = f"""
USER AUTOMATION SETTINGS:
- Risk Tolerance: {settings.risk_tolerance}
- Buy Threshold: {settings.buy_confidence_threshold}%
- Sell Threshold: {settings.sell_confidence_threshold}%
- Stop Loss: {settings.stop_loss_percent}%
- Take Profit: {settings.take_profit_percent}%
- Trading Mode: {settings.trading_mode}
"""
    market_cap = f"${quote.market_cap / 1e9:.1f}B" if quote.market_cap else "N/A"
    headlines = "; ".join(item.title for item in data.news[:3]) or "None"
    ratings = (
        "\n".join(
            f"- {r.rating}: {r.recommendation} (Target: {_fmt(r.target_price, '$')})"
            for r in data.analyst_ratings
        )
        or "N/A"
    )

    user_prompt = f"""Analyze {quote.name} ({quote.symbol}) for an investment decision.
{TRIGGER_CONTEXT.get(trigger, TRIGGER_CONTEXT["MANUAL"])}

CURRENT METRICS:
- Price: {_fmt(quote.price, "$")}
- Change: {quote.change:.2f} ({quote.change_percent:.2f}%)
- Volume: {_fmt(quote.volume)}
- Market Cap: {market_cap}
- Type: {quote.type.value}
- Exchange: {quote.exchange or "N/A"}
- Sector: {quote.sector or "N/A"}
- P/E Ratio: {_fmt(quote.pe)}
- 52-Week High: {_fmt(quote.week52_high, "$")}
- 52-Week Low: {_fmt(quote.week52_low, "$")}

TECHNICAL ANALYSIS:
- RSI: {indicators.rsi:.2f} ({rsi_label(indicators.rsi)})
- MACD: {indicators.macd:.4f}
- Moving Average (20): {_fmt(indicators.ma20, "$")}
- Moving Average (50): {_fmt(indicators.ma50, "$")}
- Price vs MA20: {indicators.price_vs_ma20:.2f}%
- Bollinger Bands: {_fmt(indicators.bollinger_lower, "$")} - {_fmt(indicators.bollinger_upper, "$")}
- Volatility: {indicators.volatility:.2f}%
- Volume: {indicators.volume_class.value}

NEWS SENTIMENT:
- Overall: {sentiment.overall} (impact {sentiment.impact})
- Positive articles: {sentiment.positive}
- Negative articles: {sentiment.negative}
- Recent headlines: {headlines}

ANALYST RATINGS:
{ratings}
{automation}
BASE CONFIDENCE SCORE: {confidence}%

Respond with raw JSON only, using these keys:
{{
  "recommendation": "BUY|SELL|HOLD",
  "confidence": integer 0-100 (start from the base score, adjust for analysis quality),
  "priceTarget": number,
  "timeHorizon": "SHORT|MEDIUM|LONG",
  "analysis": "200-300 word analysis using the data above",
  "keyPoints": ["point", "point", "point"],
  "risks": ["risk", "risk"],
  "opportunities": ["opportunity", "opportunity"],
  "marketSentiment": "BULLISH|BEARISH|NEUTRAL",
  "technicalSignals": {{"rsi": "{rsi_label(indicators.rsi)}", "trend": "...", "support": number, "resistance": number}}
}}"""

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]
