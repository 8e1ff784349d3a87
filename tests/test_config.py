# tests/test_config.py
from pathlib import Path

import pytest
from pydantic import ValidationError

from market_pulse.config import Config, load_config


def test_load_config_from_yaml(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("""
cache:
  intraday_minutes: 1
  search_minutes: 2

rate_limit:
  window_seconds: 30
  backoff_base_seconds: 10

providers:
  alphavantage:
    api_key: "av_key"
    max_calls: 5
  exchange:
    exchange_id: kraken
    quote_currency: USD
  newsapi:
    api_key: "news_key"

telegram:
  bot_token: "test_token"
  chat_id: "test_chat"

database:
  path: "data/test.db"

automation:
  buy_confidence_threshold: 70
  trading_mode: PAPER
""")

    config = load_config(config_file)

    assert config.cache.intraday_minutes == 1
    assert config.cache.search_minutes == 2
    assert config.cache.historical_minutes == 45
    assert config.rate_limit.window_seconds == 30
    assert config.rate_limit.backoff_base_seconds == 10
    assert config.rate_limit.backoff_cap_seconds == 300
    assert config.providers.alphavantage.api_key == "av_key"
    assert config.providers.alphavantage.max_calls == 5
    assert config.providers.finnhub.max_calls == 3
    assert config.providers.exchange.exchange_id == "kraken"
    assert config.providers.exchange.quote_currency == "USD"
    assert config.providers.exchange.max_calls == 10
    assert config.providers.newsapi.api_key == "news_key"
    assert config.providers.newsapi.max_calls == 2
    assert config.telegram is not None
    assert config.telegram.bot_token == "test_token"
    assert config.database.path == "data/test.db"
    assert config.automation.buy_confidence_threshold == 70
    assert config.automation.sell_confidence_threshold == 80


def test_empty_config_uses_defaults(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("")

    config = load_config(config_file)

    assert config == Config()
    assert config.telegram is None
    assert config.cache.extended_minutes == 120
    assert config.debounce.search_seconds == 0.5
    assert config.providers.newsapi.max_calls == 2
    assert config.providers.scraper.max_calls == 5
    assert config.analysis.max_tokens == 4000


def test_invalid_config_rejected(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("""
telegram:
  chat_id: "missing token"
""")

    with pytest.raises(ValidationError):
        load_config(config_file)
