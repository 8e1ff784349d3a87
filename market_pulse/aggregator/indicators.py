# market_pulse/aggregator/indicators.py
import math
from dataclasses import dataclass
from enum import Enum

from market_pulse.client.models import PriceSeries

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
VOLATILITY_MIN_SAMPLES = 20
VOLATILITY_DEFAULT = 15.0
VOLUME_WINDOW = 10
TRADING_DAYS = 252


class VolumeClass(Enum):
    HIGH = "HIGH"
    NORMAL = "NORMAL"
    LOW = "LOW"


@dataclass
class IndicatorSet:
    rsi: float
    macd: float
    ma20: float
    ma50: float
    bollinger_upper: float
    bollinger_lower: float
    volatility: float
    volume_class: VolumeClass
    price_vs_ma20: float
    sufficient_history: bool


def rsi(prices: list[float], period: int = RSI_PERIOD) -> float:
    """Simple-average RSI over the last period+1 prices; 50 below that"""
    if len(prices) < period + 1:
        return 50.0

    window = prices[-(period + 1):]
    gains = 0.0
    losses = 0.0
    for previous, current in zip(window, window[1:]):
        delta = current - previous
        if delta > 0:
            gains += delta
        else:
            losses -= delta

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100 - 100 / (1 + rs)


def ema(values: list[float], period: int) -> float:
    if not values:
        return 0.0
    k = 2 / (period + 1)
    result = values[0]
    for value in values[1:]:
        result = value * k + result * (1 - k)
    return result


def macd(prices: list[float]) -> float:
    if len(prices) < MACD_SLOW:
        return 0.0
    return ema(prices, MACD_FAST) - ema(prices, MACD_SLOW)


def moving_average(prices: list[float], window: int) -> float:
    if not prices:
        return 0.0
    if len(prices) < window:
        return prices[-1]
    return sum(prices[-window:]) / window


def bollinger_bands(prices: list[float], window: int = 20, width: float = 2.0) -> tuple[float, float]:
    """(upper, lower); +/-2% of the latest price when history is short"""
    if not prices:
        return 0.0, 0.0
    if len(prices) < window:
        return prices[-1] * 1.02, prices[-1] * 0.98

    recent = prices[-window:]
    mean = sum(recent) / window
    sigma = math.sqrt(sum((p - mean) ** 2 for p in recent) / window)
    return mean + width * sigma, mean - width * sigma


def volatility(prices: list[float]) -> float:
    """Annualized standard deviation of log returns, in percent"""
    if len(prices) < VOLATILITY_MIN_SAMPLES:
        return VOLATILITY_DEFAULT

    returns = [math.log(b / a) for a, b in zip(prices, prices[1:]) if a > 0 and b > 0]
    if len(returns) < 2:
        return VOLATILITY_DEFAULT
    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    return math.sqrt(variance) * math.sqrt(TRADING_DAYS) * 100


def classify_volume(volumes: list[float], window: int = VOLUME_WINDOW) -> VolumeClass:
    """Latest volume against the mean of the last window volumes"""
    if len(volumes) < window:
        return VolumeClass.NORMAL

    average = sum(volumes[-window:]) / window
    if average <= 0:
        return VolumeClass.NORMAL

    latest = volumes[-1]
    if latest > average * 1.5:
        return VolumeClass.HIGH
    if latest < average * 0.5:
        return VolumeClass.LOW
    return VolumeClass.NORMAL


def compute_indicators(series: PriceSeries, current_price: float | None = None) -> IndicatorSet:
    prices = series.prices
    price = current_price if current_price is not None else (prices[-1] if prices else 0.0)
    if not prices and price:
        prices = [price]

    ma20 = moving_average(prices, 20)
    upper, lower = bollinger_bands(prices)
    price_vs_ma20 = (price - ma20) / ma20 * 100 if ma20 else 0.0

    return IndicatorSet(
        rsi=rsi(prices),
        macd=macd(prices),
        ma20=ma20,
        ma50=moving_average(prices, 50),
        bollinger_upper=upper,
        bollinger_lower=lower,
        volatility=volatility(prices),
        volume_class=classify_volume(series.volumes),
        price_vs_ma20=round(price_vs_ma20, 2),
        sufficient_history=len(prices) >= 20,
    )
