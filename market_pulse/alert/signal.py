# market_pulse/alert/signal.py
import logging
from dataclasses import dataclass
from enum import Enum

from market_pulse.storage.database import TradeLedger
from market_pulse.storage.models import AutomationSettings

logger = logging.getLogger(__name__)


class Recommendation(Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class EvaluationState(Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    SIGNALLED = "signalled"
    SUPPRESSED = "suppressed"


class SuppressReason(Enum):
    HOLD = "hold"
    BELOW_THRESHOLD = "below_threshold"
    DAILY_LIMIT = "daily_limit"


class EvaluationInProgress(Exception):
    """An evaluation for the same user and symbol has not finished yet"""

    def __init__(self, user_id: str, symbol: str):
        self.user_id = user_id
        self.symbol = symbol
        super().__init__(f"Analysis already in progress for {symbol} (user {user_id})")


@dataclass
class AutomationSignal:
    symbol: str
    action: Recommendation  # BUY or SELL only
    confidence: int
    current_price: float
    user_id: str
    recommendation: Recommendation
    target_price: float | None = None


@dataclass
class Evaluation:
    user_id: str
    symbol: str
    state: EvaluationState
    signal: AutomationSignal | None = None
    reason: SuppressReason | None = None
    trades_today: int | None = None


class SignalEvaluator:
    """Gates recommendations into automation signals.

    A signal needs BUY/SELL, confidence at or above the user's threshold for
    that side, and fewer trades today than the user's daily limit.
    """

    def __init__(self, ledger: TradeLedger):
        self.ledger = ledger
        self._states: dict[tuple[str, str], EvaluationState] = {}

    def state(self, user_id: str, symbol: str) -> EvaluationState:
        return self._states.get((user_id, symbol.upper()), EvaluationState.IDLE)

    async def evaluate(
        self,
        settings: AutomationSettings,
        symbol: str,
        recommendation: Recommendation | str,
        confidence: int,
        current_price: float,
        target_price: float | None = None,
    ) -> Evaluation:
        key = (settings.user_id, symbol.upper())
        if self._states.get(key) == EvaluationState.EVALUATING:
            raise EvaluationInProgress(settings.user_id, symbol)

        self._states[key] = EvaluationState.EVALUATING
        try:
            evaluation = await self._evaluate(
                settings, symbol.upper(), Recommendation(recommendation), confidence, current_price, target_price
            )
        except BaseException:
            self._states[key] = EvaluationState.IDLE
            raise

        self._states[key] = evaluation.state
        return evaluation

    async def _evaluate(
        self,
        settings: AutomationSettings,
        symbol: str,
        recommendation: Recommendation,
        confidence: int,
        current_price: float,
        target_price: float | None,
    ) -> Evaluation:
        user_id = settings.user_id

        if recommendation == Recommendation.HOLD:
            return self._suppress(user_id, symbol, SuppressReason.HOLD)

        threshold = (
            settings.buy_confidence_threshold
            if recommendation == Recommendation.BUY
            else settings.sell_confidence_threshold
        )
        if confidence < threshold:
            logger.info(f"{symbol} {recommendation.value} at {confidence} below threshold {threshold}")
            return self._suppress(user_id, symbol, SuppressReason.BELOW_THRESHOLD)

        trades_today = await self.ledger.count_trades_today(user_id)
        if trades_today >= settings.max_trades_per_day:
            logger.info(
                f"Daily trade limit reached for {user_id}: {trades_today}/{settings.max_trades_per_day}"
            )
            return self._suppress(user_id, symbol, SuppressReason.DAILY_LIMIT, trades_today)

        signal = AutomationSignal(
            symbol=symbol,
            action=recommendation,
            confidence=confidence,
            current_price=current_price,
            user_id=user_id,
            recommendation=recommendation,
            target_price=target_price,
        )
        logger.info(f"Automation signal: {recommendation.value} {symbol} at {confidence}% for {user_id}")
        return Evaluation(
            user_id=user_id,
            symbol=symbol,
            state=EvaluationState.SIGNALLED,
            signal=signal,
            trades_today=trades_today,
        )

    def _suppress(
        self,
        user_id: str,
        symbol: str,
        reason: SuppressReason,
        trades_today: int | None = None,
    ) -> Evaluation:
        return Evaluation(
            user_id=user_id,
            symbol=symbol,
            state=EvaluationState.SUPPRESSED,
            reason=reason,
            trades_today=trades_today,
        )
