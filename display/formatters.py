"""Message formatting for decisions and news sentiment.

The builders return lightly marked-up text (``*bold*`` headings and
`` `code` `` values) so the same body works for chat notifications and,
after ``cli.output.strip_markdown``, for the terminal.
"""
from __future__ import annotations

from typing import Optional

from ai.types import DecisionResponse
from ai.validation import normalize_action
from news.models import SentimentSummary

_OPEN_ACTIONS = {"open_long", "open_short", "increase_long", "increase_short"}
_EXIT_ACTIONS = {"close", "exit", "reduce"}


def _action_emoji(action: str) -> str:
    normalized = normalize_action(action)
    if normalized in _OPEN_ACTIONS:
        return "🟢" if normalized.endswith("long") else "🔴"
    if normalized in _EXIT_ACTIONS:
        return "🔚"
    return "⏸️"


def build_decision_message(decision: DecisionResponse, *, symbol: Optional[str] = None) -> str:
    """Render a validated decision.

    Args:
        decision: Decision returned by a provider (confidence on the 0-100 scale).
        symbol: Optional trading symbol to show in the header.

    Returns:
        Multi-line message; adjustment lines are only shown when set.
    """
    action = decision.action or "unspecified"
    emoji = _action_emoji(action)
    header = f"{emoji} *DECISION* {emoji}"
    if symbol:
        header = f"{emoji} *DECISION {symbol}* {emoji}"

    lines = [
        header,
        "━━━━━━━━━━━━━━━━━━━",
        f"*Action:* `{action}`",
        f"*Confidence:* `{decision.confidence:.0f}%`",
    ]

    adj = decision.adjustments
    adjustment_lines = []
    if adj.size_multiplier:
        adjustment_lines.append(f"• Size multiplier: `{adj.size_multiplier:.2f}x`")
    if adj.target_leverage:
        adjustment_lines.append(f"• Target leverage: `{adj.target_leverage:.0f}x`")
    if adj.stop_loss_percent:
        adjustment_lines.append(f"• Stop loss: `{adj.stop_loss_percent:.2f}%`")
    if adj.take_profit_percent:
        adjustment_lines.append(f"• Take profit: `{adj.take_profit_percent:.2f}%`")
    if adj.trailing_stop_percent:
        adjustment_lines.append(f"• Trailing stop: `{adj.trailing_stop_percent:.2f}%`")
    if adj.stop_loss_percent > 0 and adj.take_profit_percent > 0:
        rr = adj.take_profit_percent / adj.stop_loss_percent
        adjustment_lines.append(f"• R/R Ratio: `{rr:.2f}`")
    if adjustment_lines:
        lines.extend(["", "⚙️ *Adjustments*", *adjustment_lines])

    if decision.risk_notes:
        lines.extend(["", "⚠️ *Risk Notes*"])
        lines.extend(f"• {note}" for note in decision.risk_notes)

    if decision.reason:
        lines.extend(["", "💭 *Reasoning*", f"_{decision.reason}_"])

    lines.append("━━━━━━━━━━━━━━━━━━━")
    return "\n".join(lines)


def build_sentiment_message(summary: SentimentSummary) -> str:
    """Render a news sentiment summary."""
    lines = [
        "📰 *NEWS SENTIMENT*",
        f"*Sentiment:* `{summary.sentiment or 'neutral'}` (score `{summary.score:.2f}`)",
    ]
    if summary.highlights:
        lines.extend(["", "*Highlights*"])
        lines.extend(f"• {item}" for item in summary.highlights)
    if summary.risk_factors:
        lines.extend(["", "*Risk Factors*"])
        lines.extend(f"• {item}" for item in summary.risk_factors)
    return "\n".join(lines)
