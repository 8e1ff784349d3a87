# tests/aggregator/test_confidence.py
import itertools

from market_pulse.aggregator.confidence import score_confidence
from market_pulse.aggregator.indicators import IndicatorSet, VolumeClass
from market_pulse.aggregator.sentiment import SentimentSummary
from market_pulse.client.models import AssetType, Quote


def make_quote(**fields) -> Quote:
    defaults = {"symbol": "AAPL", "name": "Apple", "price": 100.0, "change": 1.0, "change_percent": 1.0}
    defaults.update(fields)
    return Quote(type=AssetType.STOCK, **defaults)


def make_indicators(rsi: float = 50.0, ma20: float = 100.0, volatility: float = 25.0) -> IndicatorSet:
    return IndicatorSet(
        rsi=rsi,
        macd=0.0,
        ma20=ma20,
        ma50=ma20,
        bollinger_upper=ma20 * 1.02,
        bollinger_lower=ma20 * 0.98,
        volatility=volatility,
        volume_class=VolumeClass.NORMAL,
        price_vs_ma20=0.0,
        sufficient_history=True,
    )


def make_sentiment(positive: int, negative: int = 0, neutral: int = 0) -> SentimentSummary:
    overall = "POSITIVE" if positive > negative else "NEGATIVE" if negative > positive else "NEUTRAL"
    return SentimentSummary(
        overall=overall,
        positive=positive,
        negative=negative,
        neutral=neutral,
        impact="HIGH",
        recent_developments="",
    )


def test_all_bonuses_clamped_to_85():
    quote = make_quote(volume=1e6, market_cap=2e12, pe=28.0, sector="Technology")

    score = score_confidence(quote, make_indicators(volatility=10.0), make_sentiment(8))

    assert score == 85


def test_all_penalties_stay_in_range():
    quote = make_quote()

    score = score_confidence(quote, make_indicators(rsi=90.0, ma20=50.0, volatility=80.0), None)

    assert score == 55
    assert 45 <= score <= 85


def test_individual_contributions():
    base = score_confidence(make_quote(), make_indicators(rsi=80.0, ma20=50.0, volatility=30.0))
    assert base == 60

    assert score_confidence(make_quote(volume=1.0), make_indicators(rsi=80.0, ma20=50.0, volatility=30.0)) == 65
    assert score_confidence(make_quote(), make_indicators(rsi=50.0, ma20=50.0, volatility=30.0)) == 65
    assert score_confidence(make_quote(), make_indicators(rsi=80.0, ma20=95.0, volatility=30.0)) == 63
    assert score_confidence(make_quote(), make_indicators(rsi=80.0, ma20=50.0, volatility=19.9)) == 65


def test_news_bonus_capped_and_directional():
    indicators = make_indicators(rsi=80.0, ma20=50.0, volatility=30.0)

    # 2 items, neutral: +4
    assert score_confidence(make_quote(), indicators, make_sentiment(1, 1)) == 64
    # 12 items, positive: +10 capped, +3 directional
    assert score_confidence(make_quote(), indicators, make_sentiment(12)) == 73
    # no news: nothing
    assert score_confidence(make_quote(), indicators, make_sentiment(0)) == 60


def test_score_always_within_bounds():
    quotes = [make_quote(), make_quote(volume=1.0, market_cap=1.0, pe=1.0, sector="x")]
    indicator_sets = [
        make_indicators(rsi, ma20, vol)
        for rsi, ma20, vol in itertools.product([0.0, 50.0, 100.0], [0.0, 100.0, 1000.0], [0.0, 30.0, 500.0])
    ]
    sentiments = [None, make_sentiment(0), make_sentiment(20), make_sentiment(3, 3)]

    for quote, indicators, sentiment in itertools.product(quotes, indicator_sets, sentiments):
        assert 45 <= score_confidence(quote, indicators, sentiment) <= 85
