# market_pulse/notifier/telegram.py
import logging
import re
from collections.abc import Callable, Coroutine
from typing import Any

from telegram import Bot, BotCommand, Update
from telegram.ext import Application, CommandHandler, ContextTypes

logger = logging.getLogger(__name__)

HELP_MESSAGE = """
📖 <b>Market Pulse</b>

/quote AAPL - latest quote
/analyze BTC - run an automated analysis
/movers - top gainers and losers
/help - this message
"""

BOT_COMMANDS = [
    BotCommand("quote", "Latest quote"),
    BotCommand("analyze", "Automated analysis"),
    BotCommand("movers", "Market movers"),
    BotCommand("help", "Help"),
]


class TelegramNotifier:
    def __init__(self, bot_token: str, chat_id: str):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.bot = Bot(token=bot_token)
        self.app: Application | None = None  # type: ignore[type-arg]

        self.on_quote: Callable[[str], Coroutine[Any, Any, str]] | None = None
        self.on_analyze: Callable[[str], Coroutine[Any, Any, str]] | None = None
        self.on_movers: Callable[[], Coroutine[Any, Any, str]] | None = None

    async def send_message(self, text: str) -> None:
        await self.bot.send_message(
            chat_id=self.chat_id,
            text=text,
            parse_mode="HTML",
        )

    @staticmethod
    def _parse_symbol(text: str) -> str | None:
        match = re.match(r"/\w+\s+([A-Za-z0-9.\-]{1,15})\s*$", text.strip())
        return match.group(1).upper() if match else None

    async def _reply_for_symbol(
        self,
        update: Update,
        handler: Callable[[str], Coroutine[Any, Any, str]] | None,
        usage: str,
    ) -> None:
        if not update.message or not update.message.text:
            return

        symbol = self._parse_symbol(update.message.text)
        if not symbol:
            await update.message.reply_text(f"Usage: {usage}")
            return

        if handler is None:
            await update.message.reply_text("Not available")
            return
        text = await handler(symbol)
        await update.message.reply_text(text, parse_mode="HTML")

    async def _handle_quote(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply_for_symbol(update, self.on_quote, "/quote AAPL")

    async def _handle_analyze(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        await self._reply_for_symbol(update, self.on_analyze, "/analyze AAPL")

    async def _handle_movers(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return
        if self.on_movers:
            await update.message.reply_text(await self.on_movers(), parse_mode="HTML")
        else:
            await update.message.reply_text("Not available")

    async def _handle_help(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return
        await update.message.reply_text(HELP_MESSAGE, parse_mode="HTML")

    def setup_handlers(self, app: Application) -> None:  # type: ignore[type-arg]
        app.add_handler(CommandHandler("start", self._handle_help))
        app.add_handler(CommandHandler("help", self._handle_help))
        app.add_handler(CommandHandler("quote", self._handle_quote))
        app.add_handler(CommandHandler("analyze", self._handle_analyze))
        app.add_handler(CommandHandler("movers", self._handle_movers))

    async def start_polling(self) -> None:
        self.app = Application.builder().token(self.bot_token).build()
        self.setup_handlers(self.app)
        await self.app.initialize()
        await self.app.start()
        await self.bot.set_my_commands(BOT_COMMANDS)

        if self.app.updater:
            await self.app.updater.start_polling()

    async def stop_polling(self) -> None:
        if self.app:
            if self.app.updater:
                await self.app.updater.stop()
            await self.app.stop()
            await self.app.shutdown()
