# market_pulse/notifier/formatter.py
from datetime import UTC, datetime

from market_pulse.alert.risk import RiskOrder
from market_pulse.alert.signal import AutomationSignal, Evaluation
from market_pulse.analysis.client import AnalysisResult
from market_pulse.client.models import MarketMovers, Quote


def _format_usd(value: float) -> str:
    if abs(value) >= 1_000_000_000_000:
        return f"${value / 1_000_000_000_000:.2f}T"
    elif abs(value) >= 1_000_000_000:
        return f"${value / 1_000_000_000:.1f}B"
    elif abs(value) >= 1_000_000:
        return f"${value / 1_000_000:.1f}M"
    elif abs(value) >= 1 or value == 0:
        return f"${value:,.2f}"
    else:
        return f"${value:.8f}".rstrip("0")


def _arrow(change: float) -> str:
    return "🟢" if change >= 0 else "🔴"


def format_quote(quote: Quote, source: str | None = None) -> str:
    lines = [
        f"<b>{quote.symbol}</b> {quote.name}",
        f"{_arrow(quote.change)} {_format_usd(quote.price)} ({quote.change_percent:+.2f}%)",
    ]
    if quote.volume:
        lines.append(f"Volume: {_format_usd(quote.volume).lstrip('$')}")
    if quote.market_cap:
        lines.append(f"Market cap: {_format_usd(quote.market_cap)}")
    if quote.sector:
        lines.append(f"Sector: {quote.sector}")
    if source:
        lines.append(f"<i>source: {source}</i>")
    return "\n".join(lines)


def format_movers(movers: MarketMovers) -> str:
    updated = datetime.fromtimestamp(movers.last_updated / 1000, UTC).strftime("%Y-%m-%d %H:%M UTC")
    lines = [f"📊 <b>Market Movers</b> | {updated}", "", "<b>Gainers</b>"]
    lines += [f"🟢 {q.symbol} {_format_usd(q.price)} {q.change_percent:+.2f}%" for q in movers.gainers]
    lines += ["", "<b>Losers</b>"]
    lines += [f"🔴 {q.symbol} {_format_usd(q.price)} {q.change_percent:+.2f}%" for q in movers.losers]
    return "\n".join(lines)


def format_analysis(symbol: str, result: AnalysisResult, evaluation: Evaluation | None = None) -> str:
    lines = [
        f"🤖 <b>{symbol}</b> {result.recommendation} ({result.confidence}%)",
        f"Horizon: {result.time_horizon} | Sentiment: {result.market_sentiment}",
    ]
    if result.price_target:
        lines.append(f"Target: {_format_usd(result.price_target)}")
    if result.key_points:
        lines.append("")
        lines += [f"• {point}" for point in result.key_points[:3]]
    if result.fallback:
        lines.append("<i>analysis service unavailable, conservative default</i>")
    if evaluation is not None:
        status = evaluation.state.value
        if evaluation.reason is not None:
            status += f" ({evaluation.reason.value})"
        lines.append(f"Automation: {status}")
    return "\n".join(lines)


def format_signal(signal: AutomationSignal, order: RiskOrder | None = None) -> str:
    emoji = "🟢" if signal.action.value == "BUY" else "🔴"
    lines = [
        f"{emoji} <b>Automation signal: {signal.action.value} {signal.symbol}</b>",
        f"Price: {_format_usd(signal.current_price)} | Confidence: {signal.confidence}%",
    ]
    if signal.target_price:
        lines.append(f"Target: {_format_usd(signal.target_price)}")
    if order is not None:
        lines.append(f"Stop-loss: {_format_usd(order.stop_loss_price)}")
        lines.append(f"Take-profit: {_format_usd(order.take_profit_price)}")
    return "\n".join(lines)
