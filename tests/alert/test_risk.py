# tests/alert/test_risk.py
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_pulse.alert.risk import RiskManager
from market_pulse.alert.signal import AutomationSignal, Recommendation
from market_pulse.storage.models import AutomationSettings


def make_signal(action: Recommendation, price: float = 100.0) -> AutomationSignal:
    return AutomationSignal(
        symbol="AAPL",
        action=action,
        confidence=80,
        current_price=price,
        user_id="alice",
        recommendation=action,
    )


def test_buy_risk_prices():
    settings = AutomationSettings(user_id="alice", stop_loss_percent=5, take_profit_percent=10)

    order = RiskManager.compute(make_signal(Recommendation.BUY), settings)

    assert order.stop_loss_price == pytest.approx(95.0)
    assert order.take_profit_price == pytest.approx(110.0)
    assert order.trigger_price_low == pytest.approx(95.0)
    assert order.trigger_price_high == pytest.approx(110.0)


def test_sell_risk_prices_are_inverted():
    settings = AutomationSettings(user_id="alice", stop_loss_percent=5, take_profit_percent=10)

    order = RiskManager.compute(make_signal(Recommendation.SELL), settings)

    assert order.stop_loss_price == pytest.approx(105.0)
    assert order.take_profit_price == pytest.approx(90.0)
    assert order.trigger_price_low == pytest.approx(90.0)


def test_risk_prices_not_rounded():
    settings = AutomationSettings(user_id="alice", stop_loss_percent=3.3, take_profit_percent=7.7)

    order = RiskManager.compute(make_signal(Recommendation.BUY, price=0.000015), settings)

    assert order.stop_loss_price == pytest.approx(0.000015 * 0.967)
    assert order.take_profit_price == pytest.approx(0.000015 * 1.077)


async def test_apply_creates_stop_and_take_alerts():
    ledger = MagicMock()
    ledger.create_alert = AsyncMock(side_effect=[1, 2])
    manager = RiskManager(ledger)

    order = await manager.apply(make_signal(Recommendation.BUY), AutomationSettings(user_id="alice"))

    stop, take = (c.args[0] for c in ledger.create_alert.call_args_list)
    assert stop.condition == "STOP_LOSS"
    assert stop.alert_type == "PRICE_BELOW"
    assert stop.target_price == pytest.approx(95.0)
    assert stop.message == "Stop-loss triggered for AAPL"
    assert take.condition == "TAKE_PROFIT"
    assert take.alert_type == "PRICE_ABOVE"
    assert take.target_price == pytest.approx(110.0)
    assert take.user_id == "alice"
    assert order.stop_loss_price == stop.target_price


async def test_apply_sell_flips_alert_directions():
    ledger = MagicMock()
    ledger.create_alert = AsyncMock(return_value=1)
    manager = RiskManager(ledger)

    await manager.apply(make_signal(Recommendation.SELL), AutomationSettings(user_id="alice"))

    stop, take = (c.args[0] for c in ledger.create_alert.call_args_list)
    assert stop.alert_type == "PRICE_ABOVE"
    assert take.alert_type == "PRICE_BELOW"
