# market_pulse/alert/risk.py
import logging
from dataclasses import dataclass

from market_pulse.alert.signal import AutomationSignal, Recommendation
from market_pulse.storage.database import TradeLedger
from market_pulse.storage.models import AlertRecord, AutomationSettings

logger = logging.getLogger(__name__)


@dataclass
class RiskOrder:
    direction: Recommendation
    stop_loss_price: float
    take_profit_price: float

    @property
    def trigger_price_low(self) -> float:
        return min(self.stop_loss_price, self.take_profit_price)

    @property
    def trigger_price_high(self) -> float:
        return max(self.stop_loss_price, self.take_profit_price)


class RiskManager:
    """Turns a signal into stop-loss and take-profit alerts; never trades"""

    def __init__(self, ledger: TradeLedger):
        self.ledger = ledger

    @staticmethod
    def compute(signal: AutomationSignal, settings: AutomationSettings) -> RiskOrder:
        price = signal.current_price
        stop_loss = settings.stop_loss_percent / 100
        take_profit = settings.take_profit_percent / 100

        if signal.action == Recommendation.BUY:
            return RiskOrder(
                direction=signal.action,
                stop_loss_price=price * (1 - stop_loss),
                take_profit_price=price * (1 + take_profit),
            )
        return RiskOrder(
            direction=signal.action,
            stop_loss_price=price * (1 + stop_loss),
            take_profit_price=price * (1 - take_profit),
        )

    async def apply(self, signal: AutomationSignal, settings: AutomationSettings) -> RiskOrder:
        order = self.compute(signal, settings)
        is_buy = signal.action == Recommendation.BUY

        await self.ledger.create_alert(
            AlertRecord(
                id=None,
                user_id=signal.user_id,
                symbol=signal.symbol,
                alert_type="PRICE_BELOW" if is_buy else "PRICE_ABOVE",
                target_price=order.stop_loss_price,
                condition="STOP_LOSS",
                message=f"Stop-loss triggered for {signal.symbol}",
            )
        )
        await self.ledger.create_alert(
            AlertRecord(
                id=None,
                user_id=signal.user_id,
                symbol=signal.symbol,
                alert_type="PRICE_ABOVE" if is_buy else "PRICE_BELOW",
                target_price=order.take_profit_price,
                condition="TAKE_PROFIT",
                message=f"Take-profit triggered for {signal.symbol}",
            )
        )

        logger.info(
            f"Risk orders for {signal.symbol}: stop {order.stop_loss_price:.4f}, "
            f"take {order.take_profit_price:.4f}"
        )
        return order
