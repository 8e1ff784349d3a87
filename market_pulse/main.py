# market_pulse/main.py
import argparse
import asyncio
import logging
import signal
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from market_pulse.analysis.client import AnalysisClient
from market_pulse.automation import TRIGGERS, AutomationEngine
from market_pulse.client.alphavantage import AlphaVantageClient
from market_pulse.client.exchange import ExchangeClient
from market_pulse.client.finnhub import FinnhubClient
from market_pulse.client.newsapi import NewsApiClient
from market_pulse.client.yahoo import YahooScraper
from market_pulse.collector.base import MarketDataProvider
from market_pulse.collector.chain import SourceChain
from market_pulse.collector.providers import (
    AlphaVantageProvider,
    ExchangeProvider,
    FinnhubProvider,
    NewsApiProvider,
    YahooProvider,
)
from market_pulse.collector.static import StaticFallback
from market_pulse.config import Config, ProviderConfig, load_config
from market_pulse.notifier.formatter import format_analysis, format_movers, format_quote
from market_pulse.notifier.telegram import TelegramNotifier
from market_pulse.resilience.audit import ApiAuditLog
from market_pulse.resilience.cache import CacheStore
from market_pulse.resilience.debouncer import Debouncer
from market_pulse.resilience.deduplicator import Deduplicator
from market_pulse.resilience.rate_limiter import RateLimiter
from market_pulse.service import MarketDataService
from market_pulse.storage.database import Database

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _client_kwargs(config: ProviderConfig) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"timeout_seconds": config.timeout_seconds, "retries": config.retries}
    if config.base_url:
        kwargs["base_url"] = config.base_url
    return kwargs


def build_providers(config: Config, fallback: StaticFallback) -> list[MarketDataProvider]:
    """Chain order: primary stock API, secondary API, crypto exchange, scrape, seed table"""
    providers_config = config.providers
    providers: list[MarketDataProvider] = []

    av = providers_config.alphavantage
    if av.enabled and av.api_key:
        providers.append(
            AlphaVantageProvider(
                AlphaVantageClient(api_key=av.api_key, **_client_kwargs(av)), max_calls=av.max_calls
            )
        )

    fh = providers_config.finnhub
    if fh.enabled and fh.api_key:
        providers.append(
            FinnhubProvider(FinnhubClient(api_key=fh.api_key, **_client_kwargs(fh)), max_calls=fh.max_calls)
        )

    ex = providers_config.exchange
    if ex.enabled:
        providers.append(
            ExchangeProvider(ExchangeClient(ex.exchange_id, ex.quote_currency), max_calls=ex.max_calls)
        )

    news = providers_config.newsapi
    if news.enabled and news.api_key:
        providers.append(
            NewsApiProvider(
                NewsApiClient(api_key=news.api_key, **_client_kwargs(news)), max_calls=news.max_calls
            )
        )

    scraper = providers_config.scraper
    if scraper.enabled:
        providers.append(YahooProvider(YahooScraper(**_client_kwargs(scraper)), max_calls=scraper.max_calls))

    providers.append(fallback)
    return providers


class MarketPulse:
    def __init__(self, config: Config):
        self.config = config
        self.audit = ApiAuditLog()
        self.cache = CacheStore(config.cache, self.audit)
        self.rate_limiter = RateLimiter(config.rate_limit, self.audit)
        self.fallback = StaticFallback()
        self.chain = SourceChain(build_providers(config, self.fallback), self.rate_limiter, self.audit)
        self.service = MarketDataService(
            self.chain,
            self.cache,
            Debouncer(),
            Deduplicator(),
            search_delay=config.debounce.search_seconds,
            fallback=self.fallback,
        )
        self.db = Database(config.database.path, config.automation.model_dump())
        self.analyst = AnalysisClient(
            api_url=config.analysis.api_url,
            api_key=config.analysis.api_key,
            model=config.analysis.model,
            max_tokens=config.analysis.max_tokens,
            enabled=config.analysis.enabled,
            timeout_seconds=config.analysis.timeout_seconds,
            audit=self.audit,
        )
        self.notifier: TelegramNotifier | None = None
        if config.telegram:
            self.notifier = TelegramNotifier(config.telegram.bot_token, config.telegram.chat_id)
        self.engine = AutomationEngine(self.service, self.db, self.analyst, self.notifier)

    async def init(self) -> None:
        Path(self.config.database.path).parent.mkdir(parents=True, exist_ok=True)
        await self.db.init()
        await self.chain.init()
        await self.analyst.init()

    async def close(self) -> None:
        await self.chain.close()
        await self.analyst.close()
        await self.db.close()

    async def __aenter__(self) -> "MarketPulse":
        await self.init()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def quote_text(self, symbol: str) -> str:
        quote = await self.service.get_asset_details(symbol)
        if quote is None:
            return f"{symbol}: not found"
        return format_quote(quote)

    async def analyze_text(self, symbol: str, user_id: str = "telegram", trigger: str = "MANUAL") -> str:
        result = await self.engine.generate_automated_analysis(symbol, user_id, trigger)
        if result is None:
            return f"{symbol}: not found"
        return format_analysis(symbol, result.analysis, result.evaluation)

    async def movers_text(self) -> str:
        return format_movers(await self.service.get_market_movers())

    async def run_bot(self) -> None:
        if self.notifier is None:
            raise SystemExit("telegram is not configured")

        self.notifier.on_quote = self.quote_text
        self.notifier.on_analyze = self.analyze_text
        self.notifier.on_movers = self.movers_text
        await self.notifier.start_polling()
        logger.info("Market Pulse bot started")

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)
        await stop_event.wait()

        await self.notifier.stop_polling()
        logger.info("Market Pulse bot stopped")


def parse_args(args: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Market data, indicators and automated analysis")
    parser.add_argument("--config", type=Path, default=Path("config.yaml"), help="YAML config file")
    parser.add_argument("--audit-dir", type=Path, default=None, help="write the API audit report here")
    sub = parser.add_subparsers(dest="command", required=True)

    search = sub.add_parser("search", help="search assets")
    search.add_argument("query")

    quote = sub.add_parser("quote", help="asset details")
    quote.add_argument("symbol")

    history = sub.add_parser("history", help="price history and indicators")
    history.add_argument("symbol")
    history.add_argument("--interval", default="1M", choices=["1D", "1W", "1M", "3M", "1Y"])

    news = sub.add_parser("news", help="recent news with sentiment")
    news.add_argument("symbol")

    sub.add_parser("movers", help="top gainers and losers")

    analyze = sub.add_parser("analyze", help="run an automated analysis")
    analyze.add_argument("symbol")
    analyze.add_argument("--user", default="default")
    analyze.add_argument("--trigger", default="MANUAL", choices=TRIGGERS)

    settings = sub.add_parser("settings", help="show or update automation settings")
    settings.add_argument("--user", default="default")
    settings.add_argument("--set", action="append", default=[], metavar="KEY=VALUE")

    sub.add_parser("bot", help="run the Telegram bot")
    return parser.parse_args(args)


async def run_command(app: MarketPulse, args: argparse.Namespace) -> None:
    from market_pulse.aggregator.indicators import compute_indicators

    if args.command == "search":
        for quote in await app.service.search_assets(args.query):
            print(f"{quote.symbol:<8} {quote.name:<40} {quote.price:>14,.4f} {quote.change_percent:+.2f}%")
    elif args.command == "quote":
        print(await app.quote_text(args.symbol))
    elif args.command == "history":
        series = await app.service.get_price_history(args.symbol, args.interval)
        for point in series.points:
            print(f"{point.timestamp} {point.price:,.4f}")
        indicators = compute_indicators(series)
        print(
            f"RSI {indicators.rsi:.1f} | MACD {indicators.macd:.4f} | MA20 {indicators.ma20:,.2f} | "
            f"vol {indicators.volatility:.1f}% | volume {indicators.volume_class.value}"
        )
    elif args.command == "news":
        for item in await app.service.get_asset_news(args.symbol):
            print(f"[{item.sentiment}] {item.title} ({item.source})")
    elif args.command == "movers":
        print(await app.movers_text())
    elif args.command == "analyze":
        print(await app.analyze_text(args.symbol, args.user, args.trigger))
    elif args.command == "settings":
        changes = dict(item.split("=", 1) for item in args.set)
        try:
            if changes:
                current = await app.db.update_automation_settings(args.user, **changes)
            else:
                current = await app.db.get_automation_settings(args.user)
        except ValidationError as e:
            raise SystemExit(f"Invalid settings: {e}") from e
        for key, value in current.model_dump().items():
            print(f"{key}: {value}")
    elif args.command == "bot":
        await app.run_bot()


async def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    config = load_config(args.config) if args.config.exists() else Config()
    async with MarketPulse(config) as app:
        try:
            await run_command(app, args)
        finally:
            if args.audit_dir:
                path = app.audit.dump(args.audit_dir)
                if path:
                    logger.info(f"Audit report written to {path}")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
