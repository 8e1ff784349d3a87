# market_pulse/alert/executor.py
import logging

from market_pulse.alert.signal import AutomationSignal
from market_pulse.storage.database import TradeLedger
from market_pulse.storage.models import ActivityRecord, AutomationSettings, TradeRecord

logger = logging.getLogger(__name__)

RISK_MULTIPLIERS = {"LOW": 0.5, "MEDIUM": 1.0, "HIGH": 1.5}


class LiveTradingUnavailable(Exception):
    """Only paper trading is wired to an execution path"""


def position_size(max_amount: float, confidence: float, risk_tolerance: str) -> float:
    # start from 10% of the cap, scale by confidence and appetite
    base = max_amount * 0.1
    multiplier = RISK_MULTIPLIERS.get(risk_tolerance, 1.0)
    return min(max_amount, base * confidence / 100 * multiplier)


class TradeExecutor:
    def __init__(self, ledger: TradeLedger):
        self.ledger = ledger

    async def execute(self, signal: AutomationSignal, settings: AutomationSettings) -> TradeRecord:
        amount = position_size(settings.max_trade_amount_auto, signal.confidence, settings.risk_tolerance)
        if settings.trading_mode != "PAPER":
            raise LiveTradingUnavailable("Live trading not implemented yet")
        return await self._paper_trade(signal, amount)

    async def _paper_trade(self, signal: AutomationSignal, amount: float) -> TradeRecord:
        quantity = amount / signal.current_price if signal.current_price > 0 else 0.0
        trade = TradeRecord(
            id=None,
            user_id=signal.user_id,
            symbol=signal.symbol,
            trade_type=signal.action.value,
            quantity=quantity,
            price=signal.current_price,
            total_amount=amount,
            status="COMPLETED",
            is_simulated=True,
        )
        trade.id = await self.ledger.create_trade(trade)

        await self.ledger.record_activity(
            ActivityRecord(
                id=None,
                user_id=signal.user_id,
                activity_type="AUTO_TRADE_EXECUTED",
                description=f"Automated {signal.action.value} trade executed for {signal.symbol}",
                metadata={
                    "symbol": signal.symbol,
                    "action": signal.action.value,
                    "amount": amount,
                    "quantity": quantity,
                    "price": signal.current_price,
                    "confidence": signal.confidence,
                },
            )
        )
        logger.info(f"Paper {signal.action.value} {quantity:.6f} {signal.symbol} (${amount:.2f})")
        return trade
