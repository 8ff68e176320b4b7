"""LLM prompt building for trading decisions.

This module renders the two prompts sent with every decision request:

* the system prompt, which carries policy: the optimisation objective, the
  Sharpe-ratio driven reflection tier, hard risk constraints and the exact
  output schema;
* the user prompt, which carries the live context: account, positions, news,
  learning snippets, candidates, market data, performance and the active risk
  limits.

Everything here is a pure function of its inputs. Nothing reads the clock or
the network, so identical requests render byte-identical prompts.
"""
from __future__ import annotations

import json
import math
from enum import Enum
from typing import Any, Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from ai.types import DecisionRequest, PerformanceStats, PositionSnapshot, RiskLimits
from ai.validation import VALID_ACTIONS
from news.models import Article
from utils.text import format_holding_duration, pluralize

HALT_SHARPE_CEILING = -0.5
CAUTION_SHARPE_CEILING = 0.0
STEADY_SHARPE_CEILING = 0.7

HALT_COOLDOWN_CYCLES = 6
CAUTION_MIN_CONFIDENCE = 80
ENTRY_MIN_CONFIDENCE = 75
DEFAULT_MAX_LEVERAGE = 5


class PerformanceTier(str, Enum):
    """How permissive the prompt is, selected by the current Sharpe ratio."""

    HALT = "halt"
    CAUTION = "caution"
    STEADY = "steady"
    EXPAND = "expand"


def performance_tier(sharpe_ratio: float) -> PerformanceTier:
    """Select the reflection tier for ``sharpe_ratio``.

    Bounds are inclusive below and exclusive above, checked from the most
    punitive tier down, so exactly -0.5 is CAUTION, 0 is STEADY and 0.7 is
    EXPAND. An undefined (NaN) ratio is treated as HALT.
    """
    if math.isnan(sharpe_ratio) or sharpe_ratio < HALT_SHARPE_CEILING:
        return PerformanceTier.HALT
    if sharpe_ratio < CAUTION_SHARPE_CEILING:
        return PerformanceTier.CAUTION
    if sharpe_ratio < STEADY_SHARPE_CEILING:
        return PerformanceTier.STEADY
    return PerformanceTier.EXPAND


_TIER_DIRECTIVES: Dict[PerformanceTier, List[str]] = {
    PerformanceTier.HALT: [
        "**Sharpe ratio < -0.5** (sustained losses) -> tier HALT:",
        f"  -> STOP trading: stay flat for at least {HALT_COOLDOWN_CYCLES} evaluation cycles.",
        "  -> NO new entries: only close, exit, reduce, hold or wait are acceptable.",
        "  -> Root-cause analysis before trading again:",
        "     * Trade frequency too high? (more than 2 trades per hour is overtrading)",
        "     * Holding time too short? (exits under 30 minutes are premature)",
        f"     * Signal quality too weak? (confidence below {ENTRY_MIN_CONFIDENCE})",
        "     * One-sided bias? (only going long is a mistake)",
    ],
    PerformanceTier.CAUTION: [
        "**Sharpe ratio -0.5 to 0** (mild losses) -> tier CAUTION:",
        f"  -> Strict risk control: only enter with confidence >= {CAUTION_MIN_CONFIDENCE}.",
        "  -> At most ONE new position per hour.",
        "  -> Reduce risk: smaller size and tighter stop-losses.",
    ],
    PerformanceTier.STEADY: [
        "**Sharpe ratio 0 to 0.7** (steady profit) -> tier STEADY:",
        "  -> Keep the current approach; no restrictions beyond the hard constraints.",
        "  -> Incremental tuning only: look for small improvements.",
    ],
    PerformanceTier.EXPAND: [
        "**Sharpe ratio >= 0.7** (excellent) -> tier EXPAND:",
        "  -> Modestly larger position sizing is permitted within the hard constraints.",
        "  -> Replicate the patterns behind recent successful trades.",
    ],
}


def tier_directives(tier: PerformanceTier) -> List[str]:
    """Return the directive lines for ``tier``."""
    return list(_TIER_DIRECTIVES[tier])


def _fmt(value: Any, digits: int = 2) -> str:
    if value is None:
        return "N/A"
    try:
        if pd.isna(value):
            return "N/A"
    except TypeError:
        pass
    try:
        return f"{float(value):.{digits}f}"
    except (TypeError, ValueError):
        return "N/A"


def _fmt_signed(value: Any, digits: int = 2) -> str:
    text = _fmt(value, digits)
    if text == "N/A" or text.startswith("-"):
        return text
    return f"+{text}"


def build_reflection_prompt(
    performance: PerformanceStats,
    positions: Sequence[PositionSnapshot],
) -> str:
    """Render the Sharpe-ratio driven reflection section of the system prompt."""
    tier = performance_tier(performance.sharpe_ratio)

    lines: List[str] = ["## Sharpe-ratio reflection framework", ""]
    lines.append(f"Current Sharpe ratio: {_fmt(performance.sharpe_ratio, 2)} (tier: {tier.value.upper()})")
    lines.append("")
    lines.extend(_TIER_DIRECTIVES[tier])
    lines.append("")

    lines.append("## Reflection metrics")
    lines.append("")
    lines.append("**Trade frequency**:")
    lines.append("- Good traders: 2-4 trades per day = 0.1-0.2 trades per hour")
    lines.append("- Overtrading: more than 2 trades per hour is a serious problem")
    lines.append("- Best rhythm: hold a new position for at least 30-60 minutes")
    lines.append("If you find yourself trading every cycle, your entry bar is too low.")
    lines.append("")
    lines.append("**Entry standards (strict)**:")
    lines.append(f"- Confidence >= {ENTRY_MIN_CONFIDENCE} (100 = absolute certainty)")
    lines.append("- Multi-dimensional confirmation (price + indicators + volume + OI + trend)")
    lines.append("- Risk/reward of at least 1:3")
    lines.append("- Never decide on a single indicator")
    lines.append("")
    lines.append("**Avoid low-quality signals**:")
    lines.append("- Single-dimension signals")
    lines.append("- Contradictions (price rising on shrinking volume)")
    lines.append("- Sideways chop")
    lines.append("")

    held = [pos for pos in positions if pos.holding_minutes > 0]
    if held:
        lines.append("## Current holding analysis")
        for pos in held:
            lines.append(
                f"- {pos.symbol} {pos.side.upper()}: held {format_holding_duration(pos.holding_minutes)}, "
                f"PnL {_fmt_signed(pos.unrealized_pct, 2)}%"
            )
        lines.append("")

    lines.append("## Reflection procedure")
    lines.append("1. **Review the Sharpe ratio**: is the current approach working? Does it need adjusting?")
    lines.append("2. **Review positions**: has the trend changed? Take profit or cut the loss?")
    lines.append("3. **Look for new opportunities**: is there a strong long or short signal?")
    lines.append("4. **Output the decision**: chain-of-thought analysis followed by the JSON object")
    lines.append("")
    return "\n".join(lines)


def _constraint_lines(request: DecisionRequest) -> List[str]:
    context = request.context
    limits: RiskLimits = context.risk_limits

    btc_eth_leverage = context.btc_eth_leverage
    if btc_eth_leverage <= 0:
        btc_eth_leverage = int(limits.max_leverage)
    if btc_eth_leverage <= 0:
        btc_eth_leverage = DEFAULT_MAX_LEVERAGE
    altcoin_leverage = context.altcoin_leverage
    if altcoin_leverage <= 0:
        altcoin_leverage = btc_eth_leverage

    lines = [
        "- Every decision MUST be a complete JSON object with all fields present.",
        "- Risk parameters are mandatory:",
        f"  * BTC/ETH: max leverage {btc_eth_leverage}x, notional cap "
        f"{_fmt(limits.btc_eth_notional_multiple, 1)} x account equity.",
        f"  * Altcoins: max leverage {altcoin_leverage}x, notional cap "
        f"{_fmt(limits.alt_notional_multiple, 1)} x account equity.",
    ]
    if limits.max_position_notional_usd > 0:
        lines.append(
            f"  * A single position's notional must not exceed {_fmt(limits.max_position_notional_usd, 2)} USDT."
        )
    if limits.max_concurrent_positions > 0:
        lines.append(f"  * Max concurrent positions: {limits.max_concurrent_positions}.")
    if limits.min_risk_reward_ratio > 0:
        lines.append(
            f"  * takeProfitPercent / stopLossPercent must be >= {_fmt(limits.min_risk_reward_ratio, 1)}."
        )
    equity = request.account_equity
    if equity > 0:
        lines.append(
            f"- Account equity is about {_fmt(equity, 2)} USDT; prefer 8-10 USDT of margin per new position."
        )
    return lines


_DECISION_SCHEMA_EXAMPLE = {
    "action": "wait",
    "confidence": 0,
    "reason": "Why this action",
    "adjustments": {
        "sizeMultiplier": 1.0,
        "targetLeverage": 3,
        "stopLossPercent": 1.0,
        "takeProfitPercent": 3.0,
        "trailingStopPercent": 0.0,
    },
    "riskNotes": ["Key risk to monitor"],
}


def build_system_prompt(request: DecisionRequest) -> str:
    """Render the system prompt encoding objective, policy and hard limits."""
    context = request.context

    lines: List[str] = [
        "You are a professional crypto trading AI trading perpetual futures autonomously.",
        "",
        "# OBJECTIVE",
        "",
        "**Maximise the long-run Sharpe ratio** and keep the equity curve stable. "
        "Raw profit is not the goal; risk-adjusted return is.",
        "",
    ]
    lines.append(build_reflection_prompt(context.performance, context.positions))

    lines.append("# HARD CONSTRAINTS")
    lines.append("")
    lines.extend(_constraint_lines(request))
    lines.append("")

    lines.append("# REQUIRED OUTPUT")
    lines.append("")
    lines.append("Think step by step first, then end with exactly one JSON object of this shape:")
    lines.append("```json")
    lines.append(json.dumps(_DECISION_SCHEMA_EXAMPLE, indent=2))
    lines.append("```")
    lines.append(f"- action: one of {', '.join(VALID_ACTIONS)}.")
    lines.append("- confidence: a number from 0 to 100 (100 = absolute certainty).")
    lines.append(
        "- adjustments: sizeMultiplier, targetLeverage, stopLossPercent, takeProfitPercent "
        "and trailingStopPercent are all numbers; percentages are relative to the entry price."
    )
    lines.append("- riskNotes: a list of strings.")
    lines.append('If there is no signal, return action "wait" and explain why.')
    return "\n".join(lines) + "\n"


def _format_news_summary(sentiment: str, score: float) -> str:
    if score == 0:
        return sentiment
    return f"{sentiment} ({score:.2f})"


def _market_table(request: DecisionRequest) -> str:
    rows = []
    for symbol in sorted(request.context.market_data):
        snapshot = request.context.market_data[symbol]
        rows.append(
            {
                "Symbol": symbol,
                "Price": _fmt(snapshot.current_price, 4),
                "1h%": _fmt_signed(snapshot.price_change_1h, 2),
                "4h%": _fmt_signed(snapshot.price_change_4h, 2),
                "EMA20": _fmt(snapshot.ema20, 2),
                "MACD": _fmt(snapshot.macd, 4),
                "RSI7": _fmt(snapshot.rsi7, 2),
                "RSI14": _fmt(snapshot.rsi14, 2),
                "Funding": _fmt(snapshot.funding_rate, 5),
                "OI": _fmt(snapshot.open_interest, 2),
            }
        )
    return pd.DataFrame(rows).to_string(index=False)


def build_user_prompt(request: DecisionRequest) -> str:
    """Render the user prompt carrying the live trading context."""
    context = request.context
    account = context.account

    lines: List[str] = []
    lines.append(
        f"**Time**: {context.current_time or 'N/A'} | "
        f"**Runtime**: {pluralize(context.runtime_minutes, 'minute')} | "
        f"**Cycle**: #{context.call_count}"
    )
    lines.append("")
    lines.append(
        f"**Account**: equity {_fmt(account.total_equity, 2)} | "
        f"available {_fmt(account.available, 2)} | "
        f"unrealized PnL {_fmt_signed(account.unrealized_pnl, 2)} | "
        f"margin usage {_fmt(account.margin_usage, 2)}% | "
        f"open positions {len(context.positions)}"
    )
    lines.append("")
    lines.append(
        f"**Symbol**: {request.symbol} ({request.exchange.upper()}) | "
        f"price {_fmt(request.current_price, 2)} | "
        f"strategy signal {request.strategy_signal or 'none'}"
    )
    lines.append("")

    lines.append("## Positions")
    if context.positions:
        for idx, pos in enumerate(context.positions, start=1):
            liquidation = _fmt(pos.liquidation_price, 4) if pos.liquidation_price > 0 else "--"
            holding = ""
            if pos.holding_minutes > 0:
                holding = f" | held {format_holding_duration(pos.holding_minutes)}"
            lines.append(
                f"{idx}. {pos.symbol} {pos.side.upper()} | "
                f"entry {_fmt(pos.entry_price, 4)} mark {_fmt(pos.mark_price, 4)} | "
                f"PnL {_fmt_signed(pos.unrealized_pct, 2)}% | "
                f"leverage {_fmt(pos.leverage, 1)}x | "
                f"margin {_fmt(pos.margin_used, 2)} | "
                f"liquidation {liquidation}{holding}"
            )
            lines.append(
                f"   - quantity {_fmt(pos.quantity, 4)} | unrealized PnL {_fmt_signed(pos.unrealized_pnl, 2)}"
            )
    else:
        lines.append("- No open positions")
    lines.append("")

    sentiment = request.news_sentiment
    if not sentiment.is_empty:
        lines.append("## News sentiment")
        lines.append(f"- Summary: {_format_news_summary(sentiment.sentiment, sentiment.score)}")
        for highlight in sentiment.highlights:
            lines.append(f"- {highlight}")
        lines.append("")

    if request.learning_snippets:
        lines.append("## Learning snippets")
        for snippet in request.learning_snippets:
            lines.append(f"- {snippet}")
        lines.append("")

    if context.candidate_coins:
        lines.append("## Candidate coins")
        for coin in context.candidate_coins:
            lines.append(f"- {coin.symbol} weight {_fmt(coin.weight, 2)} reason: {coin.reason}")
        lines.append("")

    if context.market_data:
        lines.append("## Market data")
        lines.append(_market_table(request))
        lines.append("")

    performance = context.performance
    if performance.total_trades > 0:
        lines.append("## Performance")
        lines.append(f"- Trades: {performance.total_trades}")
        lines.append(f"- Win rate: {_fmt(performance.win_rate * 100, 2)}%")
        lines.append(f"- Sharpe ratio: {_fmt(performance.sharpe_ratio, 2)}")
        lines.append(f"- Profit factor: {_fmt(performance.profit_factor, 2)}")
        lines.append("")

    lines.append("## Risk limits")
    lines.append("```json")
    lines.append(json.dumps(context.risk_limits.to_dict()))
    lines.append("```")
    return "\n".join(lines) + "\n"


def build_prompts(request: DecisionRequest) -> Tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` for ``request``."""
    return build_system_prompt(request), build_user_prompt(request)


NEWS_SYSTEM_PROMPT = (
    "You are a senior crypto market analyst who distils sentiment and risk from news."
)

NEWS_INSTRUCTIONS = (
    "Analyse the crypto news below and answer with JSON "
    '{"sentiment": string, "score": number(0-1), "highlights": [string], "riskFactors": [string]}.'
)


def build_news_prompts(articles: Iterable[Article]) -> Tuple[str, str]:
    """Return ``(system_prompt, user_prompt)`` for the sentiment path."""
    payload = {
        "task": "crypto_news_sentiment",
        "instructions": NEWS_INSTRUCTIONS,
        "articles": [article.to_dict() for article in articles],
    }
    body = json.dumps(payload, ensure_ascii=False)
    user_prompt = f"Process the following context:\n```json\n{body}\n```"
    return NEWS_SYSTEM_PROMPT, user_prompt
