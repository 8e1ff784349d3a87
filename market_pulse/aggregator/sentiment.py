# market_pulse/aggregator/sentiment.py
from dataclasses import dataclass, replace

from market_pulse.client.models import NewsItem

POSITIVE_WORDS = ("bull", "gain", "rise", "up", "profit", "strong", "buy", "growth")
NEGATIVE_WORDS = ("bear", "loss", "fall", "down", "drop", "weak", "sell", "decline")


@dataclass
class SentimentSummary:
    overall: str  # POSITIVE / NEGATIVE / NEUTRAL
    positive: int
    negative: int
    neutral: int
    impact: str  # HIGH / MEDIUM / LOW
    recent_developments: str

    @property
    def total(self) -> int:
        return self.positive + self.negative + self.neutral

    @property
    def directional(self) -> bool:
        return self.overall != "NEUTRAL"


def classify_headline(title: str) -> str:
    text = title.lower()
    positive = sum(1 for word in POSITIVE_WORDS if word in text)
    negative = sum(1 for word in NEGATIVE_WORDS if word in text)
    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def tag_sentiment(news: list[NewsItem]) -> list[NewsItem]:
    """Fill in sentiment for items the source did not classify"""
    return [item if item.sentiment else replace(item, sentiment=classify_headline(item.title)) for item in news]


def summarize_sentiment(news: list[NewsItem]) -> SentimentSummary:
    labels = [item.sentiment or classify_headline(item.title) for item in news]
    positive = labels.count("positive")
    negative = labels.count("negative")
    neutral = len(labels) - positive - negative

    if positive > negative:
        overall = "POSITIVE"
    elif negative > positive:
        overall = "NEGATIVE"
    else:
        overall = "NEUTRAL"

    if len(news) > 5:
        impact = "HIGH"
    elif len(news) > 2:
        impact = "MEDIUM"
    else:
        impact = "LOW"

    recent = "; ".join(item.title for item in news[:2]) or "No recent news"
    return SentimentSummary(
        overall=overall,
        positive=positive,
        negative=negative,
        neutral=neutral,
        impact=impact,
        recent_developments=recent,
    )
