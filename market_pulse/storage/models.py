# market_pulse/storage/models.py
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

TradingMode = Literal["PAPER", "LIVE"]
RiskTolerance = Literal["LOW", "MEDIUM", "HIGH"]


class AutomationSettings(BaseModel):
    """Per-user automation limits; validated before anything is stored"""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    user_id: str
    buy_confidence_threshold: int = Field(default=75, ge=0, le=100)
    sell_confidence_threshold: int = Field(default=80, ge=0, le=100)
    max_trade_amount_auto: float = Field(default=500, ge=0)
    max_trades_per_day: int = Field(default=5, ge=0, le=100)
    stop_loss_percent: float = Field(default=5.0, ge=0, le=50)
    take_profit_percent: float = Field(default=10.0, ge=0, le=100)
    require_manual_confirm: bool = True
    trading_mode: TradingMode = "PAPER"
    risk_tolerance: RiskTolerance = "MEDIUM"


@dataclass
class TradeRecord:
    id: int | None
    user_id: str
    symbol: str
    trade_type: str  # BUY / SELL
    quantity: float
    price: float
    total_amount: float
    status: str = "COMPLETED"
    is_simulated: bool = True
    fees: float = 0.0
    executed_at: int | None = None  # ms


@dataclass
class AlertRecord:
    id: int | None
    user_id: str
    symbol: str
    alert_type: str  # PRICE_ABOVE / PRICE_BELOW
    target_price: float
    condition: str  # STOP_LOSS / TAKE_PROFIT
    message: str
    is_active: bool = True
    created_at: int | None = None


@dataclass
class ActivityRecord:
    id: int | None
    user_id: str
    activity_type: str
    description: str
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: int | None = None
