"""Value types flowing through the AI decision pipeline.

The scheduler builds a fresh ``DecisionRequest`` per evaluation cycle; the
provider turns it into a ``DecisionResponse``. Every type here is immutable
and purely structural: upstream data is carried as-is (negative quantities
included) so that parsing and validation can reason about it uniformly.

``from_dict`` accepts the camelCase keys used in JSON payloads and falls back
to defaults for missing keys; ``to_dict`` produces the same camelCase shape in
declaration order so that serialised output is stable between runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from news.models import SentimentSummary

# Only the most recent learning snippets are forwarded to the model.
MAX_LEARNING_SNIPPETS = 5


def _float(data: Mapping[str, Any], key: str, default: float = 0.0) -> float:
    value = data.get(key)
    if value is None:
        return default
    return float(value)


def _int(data: Mapping[str, Any], key: str, default: int = 0) -> int:
    value = data.get(key)
    if value is None:
        return default
    return int(value)


def _str(data: Mapping[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    if value is None:
        return default
    return str(value)


@dataclass(frozen=True, slots=True)
class AccountSnapshot:
    """账户快照：净值、可用余额、未实现盈亏与保证金占用。"""

    total_equity: float = 0.0
    available: float = 0.0
    unrealized_pnl: float = 0.0
    daily_realized: float = 0.0
    max_drawdown: float = 0.0
    margin_usage: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "AccountSnapshot":
        data = data or {}
        return cls(
            total_equity=_float(data, "totalEquity"),
            available=_float(data, "available"),
            unrealized_pnl=_float(data, "unrealizedPnl"),
            daily_realized=_float(data, "dailyRealized"),
            max_drawdown=_float(data, "maxDrawdown"),
            margin_usage=_float(data, "marginUsage"),
        )


@dataclass(frozen=True, slots=True)
class PositionSnapshot:
    """单个持仓的压缩视图。

    Attributes:
        holding_minutes: 持仓时长（分钟），0 表示未知。
        liquidation_price: 强平价，0 表示交易所未提供。
    """

    symbol: str
    side: str = ""
    quantity: float = 0.0
    entry_price: float = 0.0
    mark_price: float = 0.0
    leverage: float = 0.0
    unrealized_pnl: float = 0.0
    unrealized_pct: float = 0.0
    margin_used: float = 0.0
    holding_minutes: int = 0
    liquidation_price: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PositionSnapshot":
        return cls(
            symbol=_str(data, "symbol"),
            side=_str(data, "side"),
            quantity=_float(data, "quantity"),
            entry_price=_float(data, "entryPrice"),
            mark_price=_float(data, "markPrice"),
            leverage=_float(data, "leverage"),
            unrealized_pnl=_float(data, "unrealizedPnl"),
            unrealized_pct=_float(data, "unrealizedPct"),
            margin_used=_float(data, "marginUsed"),
            holding_minutes=_int(data, "holdingMinutes"),
            liquidation_price=_float(data, "liquidationPrice"),
        )


@dataclass(frozen=True, slots=True)
class CandidateCoin:
    symbol: str
    weight: float = 0.0
    reason: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CandidateCoin":
        return cls(
            symbol=_str(data, "symbol"),
            weight=_float(data, "weight"),
            reason=_str(data, "reason"),
        )


@dataclass(frozen=True, slots=True)
class MarketSnapshot:
    """Indicator values for one symbol, computed upstream by the strategy layer."""

    symbol: str
    current_price: float = 0.0
    price_change_1h: float = 0.0
    price_change_4h: float = 0.0
    ema20: float = 0.0
    macd: float = 0.0
    macd_signal: float = 0.0
    rsi7: float = 0.0
    rsi14: float = 0.0
    funding_rate: float = 0.0
    open_interest: float = 0.0
    volume_24h: float = 0.0
    data_interval: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketSnapshot":
        return cls(
            symbol=_str(data, "symbol"),
            current_price=_float(data, "currentPrice"),
            price_change_1h=_float(data, "priceChange1h"),
            price_change_4h=_float(data, "priceChange4h"),
            ema20=_float(data, "ema20"),
            macd=_float(data, "macd"),
            macd_signal=_float(data, "macdSignal"),
            rsi7=_float(data, "rsi7"),
            rsi14=_float(data, "rsi14"),
            funding_rate=_float(data, "fundingRate"),
            open_interest=_float(data, "openInterest"),
            volume_24h=_float(data, "volume24h"),
            data_interval=_str(data, "dataInterval"),
        )


@dataclass(frozen=True, slots=True)
class PerformanceStats:
    """Historical performance; ``win_rate`` is a 0-1 fraction."""

    sharpe_ratio: float = 0.0
    win_rate: float = 0.0
    total_trades: int = 0
    profit_factor: float = 0.0

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PerformanceStats":
        data = data or {}
        return cls(
            sharpe_ratio=_float(data, "sharpeRatio"),
            win_rate=_float(data, "winRate"),
            total_trades=_int(data, "totalTrades"),
            profit_factor=_float(data, "profitFactor"),
        )


@dataclass(frozen=True, slots=True)
class RiskLimits:
    """Hard risk boundaries supplied by configuration.

    A zero value means the limit is unset; it never means "no limit allowed".
    """

    max_daily_loss_percent: float = 0.0
    max_position_notional_usd: float = 0.0
    max_concurrent_positions: int = 0
    max_leverage: float = 0.0
    btc_eth_notional_multiple: float = 0.0
    alt_notional_multiple: float = 0.0
    min_risk_reward_ratio: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "maxDailyLossPercent": self.max_daily_loss_percent,
            "maxPositionNotionalUsd": self.max_position_notional_usd,
            "maxConcurrentPositions": self.max_concurrent_positions,
            "maxLeverage": self.max_leverage,
            "btcEthNotionalMultiple": self.btc_eth_notional_multiple,
            "altNotionalMultiple": self.alt_notional_multiple,
            "minRiskRewardRatio": self.min_risk_reward_ratio,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "RiskLimits":
        data = data or {}
        return cls(
            max_daily_loss_percent=_float(data, "maxDailyLossPercent"),
            max_position_notional_usd=_float(data, "maxPositionNotionalUsd"),
            max_concurrent_positions=_int(data, "maxConcurrentPositions"),
            max_leverage=_float(data, "maxLeverage"),
            btc_eth_notional_multiple=_float(data, "btcEthNotionalMultiple"),
            alt_notional_multiple=_float(data, "altNotionalMultiple"),
            min_risk_reward_ratio=_float(data, "minRiskRewardRatio"),
        )


@dataclass(frozen=True, slots=True)
class DecisionContext:
    """Account, market and performance state for one evaluation cycle.

    ``current_time`` is supplied by the caller (never read from the clock) so
    prompts rendered from the same context are byte-identical.
    """

    current_time: str = ""
    runtime_minutes: int = 0
    call_count: int = 0
    account: AccountSnapshot = field(default_factory=AccountSnapshot)
    positions: Tuple[PositionSnapshot, ...] = ()
    candidate_coins: Tuple[CandidateCoin, ...] = ()
    market_data: Mapping[str, MarketSnapshot] = field(default_factory=dict)
    performance: PerformanceStats = field(default_factory=PerformanceStats)
    risk_limits: RiskLimits = field(default_factory=RiskLimits)
    btc_eth_leverage: int = 0
    altcoin_leverage: int = 0
    initial_equity: float = 0.0
    pnl_percent: float = 0.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", tuple(self.positions))
        object.__setattr__(self, "candidate_coins", tuple(self.candidate_coins))
        object.__setattr__(self, "market_data", dict(self.market_data))

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "DecisionContext":
        data = data or {}
        market_raw = data.get("marketData") or {}
        market_data = {
            symbol: MarketSnapshot.from_dict({"symbol": symbol, **(snapshot or {})})
            for symbol, snapshot in market_raw.items()
        }
        return cls(
            current_time=_str(data, "currentTime"),
            runtime_minutes=_int(data, "runtimeMinutes"),
            call_count=_int(data, "callCount"),
            account=AccountSnapshot.from_dict(data.get("account")),
            positions=tuple(PositionSnapshot.from_dict(p) for p in data.get("positions") or []),
            candidate_coins=tuple(
                CandidateCoin.from_dict(c) for c in data.get("candidateCoins") or []
            ),
            market_data=market_data,
            performance=PerformanceStats.from_dict(data.get("performance")),
            risk_limits=RiskLimits.from_dict(data.get("riskLimits")),
            btc_eth_leverage=_int(data, "btcEthLeverage"),
            altcoin_leverage=_int(data, "altcoinLeverage"),
            initial_equity=_float(data, "initialEquity"),
            pnl_percent=_float(data, "pnlPercent"),
        )


@dataclass(frozen=True, slots=True)
class DecisionRequest:
    """交易决策请求：在 DecisionContext 之上附加交易对与信号信息。

    Attributes:
        symbol: 交易对，例如 "BTCUSDT"。
        exchange: 交易所名称，例如 "binance"。
        current_price: 当前价格。
        strategy_signal: 上游组合策略给出的信号字符串。
        news_sentiment: 新闻情绪摘要。
        learning_snippets: 历史学习片段，只保留最近 MAX_LEARNING_SNIPPETS 条。
        context: 账户、持仓、行情与风控上下文。
        trader_name: 交易者名称，仅用于日志。
        account_balance: 当 context 中没有净值时使用的账户余额。
    """

    symbol: str
    exchange: str = ""
    current_price: float = 0.0
    strategy_signal: str = ""
    news_sentiment: SentimentSummary = field(default_factory=SentimentSummary)
    learning_snippets: Tuple[str, ...] = ()
    context: DecisionContext = field(default_factory=DecisionContext)
    trader_name: str = ""
    account_balance: float = 0.0

    def __post_init__(self) -> None:
        snippets = tuple(str(s) for s in self.learning_snippets)
        object.__setattr__(self, "learning_snippets", snippets[-MAX_LEARNING_SNIPPETS:])

    @property
    def risk_limits(self) -> RiskLimits:
        return self.context.risk_limits

    @property
    def account_equity(self) -> float:
        """Equity to size against: context equity when known, else the balance."""
        if self.context.account.total_equity > 0:
            return self.context.account.total_equity
        return self.account_balance

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecisionRequest":
        return cls(
            symbol=_str(data, "symbol"),
            exchange=_str(data, "exchange"),
            current_price=_float(data, "currentPrice"),
            strategy_signal=_str(data, "strategySignal"),
            news_sentiment=SentimentSummary.from_dict(data.get("newsSentiment")),
            learning_snippets=tuple(data.get("learningSnippets") or ()),
            context=DecisionContext.from_dict(data.get("context")),
            trader_name=_str(data, "traderName"),
            account_balance=_float(data, "accountBalance"),
        )


@dataclass(frozen=True, slots=True)
class AdjustmentPlan:
    """Position and protection tweaks suggested by the model."""

    size_multiplier: float = 0.0
    target_leverage: float = 0.0
    stop_loss_percent: float = 0.0
    take_profit_percent: float = 0.0
    trailing_stop_percent: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "sizeMultiplier": self.size_multiplier,
            "targetLeverage": self.target_leverage,
            "stopLossPercent": self.stop_loss_percent,
            "takeProfitPercent": self.take_profit_percent,
            "trailingStopPercent": self.trailing_stop_percent,
        }


@dataclass(frozen=True, slots=True)
class DecisionResponse:
    """A structured decision recovered from model output.

    ``raw_content`` is the text the structured fields were parsed from and
    ``cot_trace`` the free-text reasoning the model wrote before its JSON;
    both are kept for audit only.
    """

    action: str = ""
    confidence: float = 0.0
    reason: str = ""
    adjustments: AdjustmentPlan = field(default_factory=AdjustmentPlan)
    risk_notes: Tuple[str, ...] = ()
    raw_content: str = ""
    cot_trace: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "risk_notes", tuple(self.risk_notes))

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the schema fields (audit artifacts excluded)."""
        return {
            "action": self.action,
            "confidence": self.confidence,
            "reason": self.reason,
            "adjustments": self.adjustments.to_dict(),
            "riskNotes": list(self.risk_notes),
        }
