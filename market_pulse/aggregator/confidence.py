# market_pulse/aggregator/confidence.py
from market_pulse.aggregator.indicators import IndicatorSet
from market_pulse.aggregator.sentiment import SentimentSummary
from market_pulse.client.models import Quote

BASE_SCORE = 60
MIN_SCORE = 45
MAX_SCORE = 85


def score_confidence(
    quote: Quote,
    indicators: IndicatorSet,
    sentiment: SentimentSummary | None = None,
) -> int:
    """Data-quality and market-condition score, hard-clamped to [45, 85]"""
    score = BASE_SCORE

    # data completeness, at most +20
    score += 5 if quote.volume else 0
    score += 5 if quote.market_cap else 0
    score += 5 if quote.pe else 0
    score += 5 if quote.sector else 0

    # news coverage, at most +13
    if sentiment is not None and sentiment.total > 0:
        score += min(sentiment.total * 2, 10)
        if sentiment.directional:
            score += 3

    if 30 < indicators.rsi < 70:
        score += 5
    if indicators.ma20 and abs(quote.price - indicators.ma20) / indicators.ma20 < 0.1:
        score += 3

    if indicators.volatility < 20:
        score += 5
    elif indicators.volatility > 40:
        score -= 5

    return max(MIN_SCORE, min(MAX_SCORE, int(round(score))))
