# market_pulse/config.py
from pathlib import Path

import yaml
from pydantic import BaseModel


class CacheConfig(BaseModel):
    intraday_minutes: float = 3
    daily_minutes: float = 10
    historical_minutes: float = 45
    news_minutes: float = 8
    analysis_minutes: float = 20
    search_minutes: float = 5
    extended_minutes: float = 120


class RateLimitConfig(BaseModel):
    window_seconds: float = 60
    backoff_base_seconds: float = 30
    backoff_cap_seconds: float = 300


class DebounceConfig(BaseModel):
    search_seconds: float = 0.5


class ProviderConfig(BaseModel):
    enabled: bool = True
    api_key: str | None = None
    base_url: str | None = None
    max_calls: int = 3
    timeout_seconds: float = 8
    retries: int = 2


class ExchangeProviderConfig(ProviderConfig):
    exchange_id: str = "binance"
    quote_currency: str = "USDT"
    max_calls: int = 10


class NewsProviderConfig(ProviderConfig):
    max_calls: int = 2


class ScraperProviderConfig(ProviderConfig):
    max_calls: int = 5


class ProvidersConfig(BaseModel):
    alphavantage: ProviderConfig = ProviderConfig()
    finnhub: ProviderConfig = ProviderConfig()
    newsapi: NewsProviderConfig = NewsProviderConfig()
    exchange: ExchangeProviderConfig = ExchangeProviderConfig()
    scraper: ScraperProviderConfig = ScraperProviderConfig()


class AnalysisConfig(BaseModel):
    enabled: bool = True
    api_url: str = "https://api.openai.com/v1/chat/completions"
    api_key: str | None = None
    model: str = "gpt-4.1-mini"
    timeout_seconds: float = 30
    max_tokens: int = 4000


class DatabaseConfig(BaseModel):
    path: str = "data/market_pulse.db"


class TelegramConfig(BaseModel):
    bot_token: str
    chat_id: str


class AutomationDefaultsConfig(BaseModel):
    buy_confidence_threshold: int = 75
    sell_confidence_threshold: int = 80
    max_trade_amount_auto: float = 500
    max_trades_per_day: int = 5
    stop_loss_percent: float = 5.0
    take_profit_percent: float = 10.0
    require_manual_confirm: bool = True
    trading_mode: str = "PAPER"
    risk_tolerance: str = "MEDIUM"


class Config(BaseModel):
    cache: CacheConfig = CacheConfig()
    rate_limit: RateLimitConfig = RateLimitConfig()
    debounce: DebounceConfig = DebounceConfig()
    providers: ProvidersConfig = ProvidersConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    database: DatabaseConfig = DatabaseConfig()
    telegram: TelegramConfig | None = None
    automation: AutomationDefaultsConfig = AutomationDefaultsConfig()


def load_config(path: Path) -> Config:
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    return Config(**data)
