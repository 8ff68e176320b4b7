"""Tests for ai/types.py and news/models.py value types."""
from datetime import datetime, timezone

from ai.types import (
    MAX_LEARNING_SNIPPETS,
    AccountSnapshot,
    AdjustmentPlan,
    DecisionContext,
    DecisionRequest,
    DecisionResponse,
    RiskLimits,
)
from news.models import Article, SentimentSummary


REQUEST_PAYLOAD = {
    "symbol": "ETHUSDT",
    "exchange": "binance",
    "currentPrice": 3000.5,
    "strategySignal": "macd_bull",
    "newsSentiment": {"sentiment": "bullish", "score": 0.4, "riskFactors": ["unlock"]},
    "learningSnippets": ["a", "b", "c", "d", "e", "f"],
    "traderName": "eth-1",
    "accountBalance": 900,
    "context": {
        "currentTime": "2024-05-01 08:00:00",
        "runtimeMinutes": 30,
        "callCount": 3,
        "account": {"totalEquity": 1000, "available": 600},
        "positions": [
            {"symbol": "ETHUSDT", "side": "short", "quantity": -0.5, "holdingMinutes": 15,
             "liquidationPrice": 3500},
        ],
        "candidateCoins": [{"symbol": "SOLUSDT", "weight": 0.3, "reason": "volume"}],
        "marketData": {"ETHUSDT": {"currentPrice": 3000.5, "rsi14": 48}},
        "performance": {"sharpeRatio": -0.2, "winRate": 0.4, "totalTrades": 12},
        "riskLimits": {"maxLeverage": 5, "minRiskRewardRatio": 3, "maxConcurrentPositions": 2},
        "btcEthLeverage": 5,
    },
}


class TestDecisionRequest:
    """Tests for DecisionRequest.from_dict and derived properties."""

    def test_from_dict(self):
        request = DecisionRequest.from_dict(REQUEST_PAYLOAD)

        assert request.symbol == "ETHUSDT"
        assert request.current_price == 3000.5
        assert request.news_sentiment.risk_factors == ("unlock",)
        assert request.context.positions[0].quantity == -0.5
        assert request.context.positions[0].liquidation_price == 3500
        assert request.context.market_data["ETHUSDT"].symbol == "ETHUSDT"
        assert request.context.performance.total_trades == 12
        assert request.risk_limits.max_leverage == 5
        assert request.risk_limits.max_concurrent_positions == 2

    def test_learning_snippets_capped(self):
        request = DecisionRequest.from_dict(REQUEST_PAYLOAD)

        assert len(request.learning_snippets) == MAX_LEARNING_SNIPPETS
        assert request.learning_snippets == ("b", "c", "d", "e", "f")

    def test_account_equity(self):
        request = DecisionRequest.from_dict(REQUEST_PAYLOAD)
        assert request.account_equity == 1000

        fallback = DecisionRequest(
            symbol="ETHUSDT",
            account_balance=900,
            context=DecisionContext(account=AccountSnapshot()),
        )
        assert fallback.account_equity == 900

    def test_minimal_payload(self):
        request = DecisionRequest.from_dict({"symbol": "BTCUSDT"})

        assert request.context.positions == ()
        assert request.risk_limits == RiskLimits()
        assert request.news_sentiment.is_empty


class TestRiskLimits:
    """Tests for RiskLimits serialisation."""

    def test_to_dict_order(self):
        keys = list(RiskLimits().to_dict())
        assert keys == [
            "maxDailyLossPercent",
            "maxPositionNotionalUsd",
            "maxConcurrentPositions",
            "maxLeverage",
            "btcEthNotionalMultiple",
            "altNotionalMultiple",
            "minRiskRewardRatio",
        ]

    def test_round_trip(self):
        limits = RiskLimits(max_daily_loss_percent=5, max_leverage=3, min_risk_reward_ratio=2)
        assert RiskLimits.from_dict(limits.to_dict()) == limits


class TestDecisionResponse:
    """Tests for DecisionResponse serialisation."""

    def test_audit_fields_excluded(self):
        decision = DecisionResponse(
            action="hold",
            adjustments=AdjustmentPlan(target_leverage=2),
            risk_notes=["x"],
            raw_content="{...}",
            cot_trace="thinking",
        )
        payload = decision.to_dict()

        assert set(payload) == {"action", "confidence", "reason", "adjustments", "riskNotes"}
        assert payload["riskNotes"] == ["x"]
        assert payload["adjustments"]["targetLeverage"] == 2
        assert decision.risk_notes == ("x",)


class TestNewsModels:
    """Tests for Article and SentimentSummary."""

    def test_article_timestamp(self):
        article = Article.from_dict({"title": "t", "publishedAt": "2024-05-01T10:00:00Z"})

        assert article.published_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
        assert article.to_dict()["publishedAt"] == "2024-05-01T10:00:00+00:00"

    def test_article_bad_timestamp(self):
        assert Article.from_dict({"title": "t", "publishedAt": "yesterday"}).published_at is None

    def test_sentiment_is_empty(self):
        assert SentimentSummary().is_empty
        assert SentimentSummary(sentiment="neutral").is_empty
        assert not SentimentSummary(sentiment="neutral", score=0.3).is_empty
        assert not SentimentSummary(sentiment="bearish").is_empty

    def test_sentiment_from_dict(self):
        summary = SentimentSummary.from_dict({"sentiment": "bearish", "score": "n/a", "highlights": "one"})

        assert summary.score == 0.0
        assert summary.highlights == ("one",)
        assert SentimentSummary.from_dict(None) == SentimentSummary()
