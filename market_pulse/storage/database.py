# market_pulse/storage/database.py
import json
import time
from datetime import UTC, datetime
from typing import Any, Protocol

import aiosqlite

from .models import ActivityRecord, AlertRecord, AutomationSettings, TradeRecord

SETTINGS_COLUMNS = (
    "user_id",
    "buy_confidence_threshold",
    "sell_confidence_threshold",
    "max_trade_amount_auto",
    "max_trades_per_day",
    "stop_loss_percent",
    "take_profit_percent",
    "require_manual_confirm",
    "trading_mode",
    "risk_tolerance",
)


class TradeLedger(Protocol):
    """Persistence used by the automation core"""

    async def get_automation_settings(self, user_id: str) -> AutomationSettings: ...

    async def count_trades_today(self, user_id: str) -> int: ...

    async def create_trade(self, trade: TradeRecord) -> int: ...

    async def create_alert(self, alert: AlertRecord) -> int: ...

    async def record_activity(self, activity: ActivityRecord) -> int: ...


def start_of_day_ms(now_ms: int | None = None) -> int:
    now = datetime.fromtimestamp((now_ms or int(time.time() * 1000)) / 1000, UTC)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


class Database:
    def __init__(self, path: str, default_settings: dict[str, Any] | None = None):
        self.path = path
        self.default_settings = default_settings or {}
        self.conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        self.conn = await aiosqlite.connect(self.path)
        await self._create_tables()

    async def close(self) -> None:
        if self.conn:
            await self.conn.close()
            self.conn = None

    async def _create_tables(self) -> None:
        assert self.conn is not None
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS automation_settings (
                user_id TEXT PRIMARY KEY,
                buy_confidence_threshold INTEGER NOT NULL,
                sell_confidence_threshold INTEGER NOT NULL,
                max_trade_amount_auto REAL NOT NULL,
                max_trades_per_day INTEGER NOT NULL,
                stop_loss_percent REAL NOT NULL,
                take_profit_percent REAL NOT NULL,
                require_manual_confirm INTEGER NOT NULL,
                trading_mode TEXT NOT NULL,
                risk_tolerance TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS trades (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                symbol TEXT NOT NULL,
                trade_type TEXT NOT NULL,
                quantity REAL NOT NULL,
                price REAL NOT NULL,
                total_amount REAL NOT NULL,
                status TEXT NOT NULL,
                is_simulated INTEGER NOT NULL,
                fees REAL NOT NULL DEFAULT 0,
                executed_at INTEGER NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_trades_user_time ON trades(user_id, executed_at);

            CREATE TABLE IF NOT EXISTS alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                symbol TEXT NOT NULL,
                alert_type TEXT NOT NULL,
                target_price REAL NOT NULL,
                condition TEXT NOT NULL,
                message TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at INTEGER NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_alerts_user ON alerts(user_id, is_active);

            CREATE TABLE IF NOT EXISTS activities (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                activity_type TEXT NOT NULL,
                description TEXT NOT NULL,
                metadata TEXT NOT NULL,
                created_at INTEGER NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_activities_user_time ON activities(user_id, created_at);
        """)
        await self.conn.commit()

    async def get_automation_settings(self, user_id: str) -> AutomationSettings:
        """Stored settings, or the configured defaults for an unknown user"""
        assert self.conn is not None
        cursor = await self.conn.execute(
            f"SELECT {', '.join(SETTINGS_COLUMNS)} FROM automation_settings WHERE user_id = ?",
            (user_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return AutomationSettings(**{**self.default_settings, "user_id": user_id})
        return AutomationSettings(**dict(zip(SETTINGS_COLUMNS, row)))

    async def save_automation_settings(self, settings: AutomationSettings) -> None:
        assert self.conn is not None
        values = settings.model_dump()
        placeholders = ", ".join("?" for _ in SETTINGS_COLUMNS)
        await self.conn.execute(
            f"INSERT OR REPLACE INTO automation_settings ({', '.join(SETTINGS_COLUMNS)}) "
            f"VALUES ({placeholders})",
            tuple(values[column] for column in SETTINGS_COLUMNS),
        )
        await self.conn.commit()

    async def update_automation_settings(self, user_id: str, **changes: Any) -> AutomationSettings:
        """Merge changes into the current settings; raises ValidationError before writing"""
        current = await self.get_automation_settings(user_id)
        updated = AutomationSettings.model_validate({**current.model_dump(), **changes, "user_id": user_id})
        await self.save_automation_settings(updated)
        return updated

    async def count_trades_today(self, user_id: str) -> int:
        assert self.conn is not None
        cursor = await self.conn.execute(
            "SELECT COUNT(*) FROM trades WHERE user_id = ? AND executed_at >= ?",
            (user_id, start_of_day_ms()),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def create_trade(self, trade: TradeRecord) -> int:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """INSERT INTO trades (user_id, symbol, trade_type, quantity, price, total_amount,
                                   status, is_simulated, fees, executed_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                trade.user_id,
                trade.symbol,
                trade.trade_type,
                trade.quantity,
                trade.price,
                trade.total_amount,
                trade.status,
                int(trade.is_simulated),
                trade.fees,
                trade.executed_at or int(time.time() * 1000),
            ),
        )
        await self.conn.commit()
        return cursor.lastrowid or 0

    async def get_trades(self, user_id: str, limit: int = 50) -> list[TradeRecord]:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """SELECT id, user_id, symbol, trade_type, quantity, price, total_amount,
                      status, is_simulated, fees, executed_at
               FROM trades WHERE user_id = ?
               ORDER BY executed_at DESC LIMIT ?""",
            (user_id, limit),
        )
        rows = await cursor.fetchall()
        return [
            TradeRecord(*row[:8], is_simulated=bool(row[8]), fees=row[9], executed_at=row[10])
            for row in rows
        ]

    async def create_alert(self, alert: AlertRecord) -> int:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """INSERT INTO alerts (user_id, symbol, alert_type, target_price, condition,
                                   message, is_active, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                alert.user_id,
                alert.symbol,
                alert.alert_type,
                alert.target_price,
                alert.condition,
                alert.message,
                int(alert.is_active),
                alert.created_at or int(time.time() * 1000),
            ),
        )
        await self.conn.commit()
        return cursor.lastrowid or 0

    async def get_active_alerts(self, user_id: str, symbol: str | None = None) -> list[AlertRecord]:
        assert self.conn is not None
        query = """SELECT id, user_id, symbol, alert_type, target_price, condition, message,
                          is_active, created_at
                   FROM alerts WHERE user_id = ? AND is_active = 1"""
        params: list[str] = [user_id]
        if symbol is not None:
            query += " AND symbol = ?"
            params.append(symbol)
        cursor = await self.conn.execute(query + " ORDER BY id", params)
        rows = await cursor.fetchall()
        return [
            AlertRecord(*row[:7], is_active=bool(row[7]), created_at=row[8]) for row in rows
        ]

    async def deactivate_alert(self, alert_id: int) -> None:
        assert self.conn is not None
        await self.conn.execute("UPDATE alerts SET is_active = 0 WHERE id = ?", (alert_id,))
        await self.conn.commit()

    async def record_activity(self, activity: ActivityRecord) -> int:
        assert self.conn is not None
        cursor = await self.conn.execute(
            """INSERT INTO activities (user_id, activity_type, description, metadata, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                activity.user_id,
                activity.activity_type,
                activity.description,
                json.dumps(activity.metadata, default=str),
                activity.created_at or int(time.time() * 1000),
            ),
        )
        await self.conn.commit()
        return cursor.lastrowid or 0

    async def get_activities(
        self, user_id: str, activity_type: str | None = None, limit: int = 50
    ) -> list[ActivityRecord]:
        assert self.conn is not None
        query = """SELECT id, user_id, activity_type, description, metadata, created_at
                   FROM activities WHERE user_id = ?"""
        params: list[str | int] = [user_id]
        if activity_type is not None:
            query += " AND activity_type = ?"
            params.append(activity_type)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        cursor = await self.conn.execute(query, params)
        rows = await cursor.fetchall()
        return [
            ActivityRecord(
                id=row[0],
                user_id=row[1],
                activity_type=row[2],
                description=row[3],
                metadata=json.loads(row[4]),
                created_at=row[5],
            )
            for row in rows
        ]
