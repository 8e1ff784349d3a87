# market_pulse/automation.py
import asyncio
import logging
from dataclasses import dataclass

from market_pulse.aggregator.confidence import score_confidence
from market_pulse.aggregator.indicators import IndicatorSet, compute_indicators
from market_pulse.aggregator.sentiment import SentimentSummary, summarize_sentiment
from market_pulse.alert.executor import TradeExecutor
from market_pulse.alert.risk import RiskManager, RiskOrder
from market_pulse.alert.signal import Evaluation, EvaluationInProgress, SignalEvaluator
from market_pulse.analysis.client import AnalysisClient, AnalysisResult
from market_pulse.analysis.prompt import build_messages
from market_pulse.notifier.formatter import format_signal
from market_pulse.notifier.telegram import TelegramNotifier
from market_pulse.service import MarketDataService
from market_pulse.storage.database import TradeLedger
from market_pulse.storage.models import ActivityRecord, TradeRecord

logger = logging.getLogger(__name__)

TRIGGERS = ("MANUAL", "SCHEDULED", "PRICE_ALERT", "NEWS_TRIGGER")


@dataclass
class AutomatedAnalysis:
    symbol: str
    analysis: AnalysisResult
    base_confidence: int
    indicators: IndicatorSet
    sentiment: SentimentSummary
    evaluation: Evaluation
    trade: TradeRecord | None = None
    risk_order: RiskOrder | None = None

    @property
    def automation_triggered(self) -> bool:
        return self.evaluation.signal is not None


class AutomationEngine:
    """Analysis pipeline that may turn a recommendation into a paper trade"""

    def __init__(
        self,
        service: MarketDataService,
        ledger: TradeLedger,
        analyst: AnalysisClient,
        notifier: TelegramNotifier | None = None,
    ):
        self.service = service
        self.ledger = ledger
        self.analyst = analyst
        self.notifier = notifier
        self.evaluator = SignalEvaluator(ledger)
        self.risk = RiskManager(ledger)
        self.executor = TradeExecutor(ledger)
        self._running: set[str] = set()

    async def generate_automated_analysis(
        self, symbol: str, user_id: str, trigger: str = "MANUAL"
    ) -> AutomatedAnalysis | None:
        """Run one analysis; None when the symbol resolves nowhere"""
        if trigger not in TRIGGERS:
            raise ValueError(f"Unknown analysis trigger: {trigger}")

        symbol = symbol.strip().upper()
        key = f"{symbol}-{user_id}"
        if key in self._running:
            raise EvaluationInProgress(user_id, symbol)

        self._running.add(key)
        try:
            return await self._run(symbol, user_id, trigger)
        finally:
            self._running.discard(key)

    async def _run(self, symbol: str, user_id: str, trigger: str) -> AutomatedAnalysis | None:
        settings = await self.ledger.get_automation_settings(user_id)
        enhanced, history = await asyncio.gather(
            self.service.get_enhanced_asset_data(symbol),
            self.service.get_price_history(symbol, "1W"),
        )
        if enhanced is None:
            logger.warning(f"No market data for {symbol}, skipping analysis")
            return None

        quote = enhanced.quote
        indicators = compute_indicators(history, quote.price)
        sentiment = summarize_sentiment(enhanced.news)
        confidence = score_confidence(quote, indicators, sentiment)

        messages = build_messages(enhanced, indicators, sentiment, confidence, trigger, settings)
        analysis = await self.analyst.analyze(messages, confidence)

        evaluation = await self.evaluator.evaluate(
            settings,
            symbol,
            analysis.recommendation,
            analysis.confidence,
            quote.price,
            analysis.price_target,
        )
        result = AutomatedAnalysis(
            symbol=symbol,
            analysis=analysis,
            base_confidence=confidence,
            indicators=indicators,
            sentiment=sentiment,
            evaluation=evaluation,
        )

        signal = evaluation.signal
        if signal is not None and not settings.require_manual_confirm:
            try:
                result.trade = await self.executor.execute(signal, settings)
                result.risk_order = await self.risk.apply(signal, settings)
            except Exception as e:
                logger.error(f"Automation failed for {symbol}: {e}")
                await self.ledger.record_activity(
                    ActivityRecord(
                        id=None,
                        user_id=user_id,
                        activity_type="AUTOMATION_ERROR",
                        description=f"Automation error for {symbol}: {e}",
                        metadata={"symbol": symbol, "error": str(e)},
                    )
                )

        await self.ledger.record_activity(
            ActivityRecord(
                id=None,
                user_id=user_id,
                activity_type="ANALYSIS_GENERATED",
                description=f"AI analysis generated for {symbol}",
                metadata={
                    "symbol": symbol,
                    "trigger": trigger,
                    "confidence": analysis.confidence,
                    "recommendation": analysis.recommendation,
                    "automationTriggered": result.automation_triggered,
                },
            )
        )

        if signal is not None and self.notifier:
            try:
                await self.notifier.send_message(format_signal(signal, result.risk_order))
            except Exception as e:
                logger.error(f"Failed to send signal notification: {e}")

        return result
