"""Tests for ai/providers package."""
from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from ai.errors import ConfigurationError, DecisionValidationError, ResponseParseError
from ai.providers import ChatCompletionProvider, Provider, create_provider, normalize_confidence
from ai.providers import deepseek, openrouter, qwen
from ai.types import DecisionContext, DecisionRequest, RiskLimits
from bot_config import ProviderSettings
from news.models import Article


API_KEY = "sk-provider-123456"


def _completion(content):
    response = MagicMock()
    response.status_code = 200
    response.text = ""
    response.json.return_value = {"choices": [{"message": {"role": "assistant", "content": content}}]}
    return response


def _request(max_leverage=5, min_rr=3):
    return DecisionRequest(
        symbol="BTCUSDT",
        exchange="binance",
        current_price=60000,
        context=DecisionContext(
            risk_limits=RiskLimits(max_leverage=max_leverage, min_risk_reward_ratio=min_rr)
        ),
    )


def _decision_json(**overrides):
    payload = {
        "action": "open_long",
        "confidence": 85,
        "reason": "breakout with rising OI",
        "adjustments": {
            "sizeMultiplier": 1.0,
            "targetLeverage": 3,
            "stopLossPercent": 1.0,
            "takeProfitPercent": 3.0,
            "trailingStopPercent": 0.0,
        },
        "riskNotes": ["funding elevated"],
    }
    payload.update(overrides)
    return json.dumps(payload)


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def provider(session):
    settings = ProviderSettings(name="deepseek", base_url="https://api.example.com", api_key=API_KEY)
    return ChatCompletionProvider(settings, session=session, sleep=lambda _: None)


class TestAnalyzeNews:
    """Tests for the sentiment path."""

    def test_empty_articles_neutral_without_call(self, session):
        settings = ProviderSettings(name="deepseek", base_url="https://api.example.com")
        provider = ChatCompletionProvider(settings, session=session)

        summary = provider.analyze_news([])

        assert summary.sentiment == "neutral"
        session.post.assert_not_called()

    def test_summary_parsed(self, provider, session):
        session.post.return_value = _completion(
            '```json\n{"sentiment": "bullish", "score": 0.8, "highlights": ["ETF"], "riskFactors": []}\n```'
        )

        summary = provider.analyze_news([Article(title="ETF approved")])

        assert summary.sentiment == "bullish"
        assert summary.score == 0.8
        assert summary.highlights == ("ETF",)
        user_prompt = session.post.call_args.kwargs["json"]["messages"][1]["content"]
        assert "ETF approved" in user_prompt

    def test_missing_key(self, session):
        settings = ProviderSettings(name="qwen", base_url="https://api.example.com")
        provider = ChatCompletionProvider(settings, session=session)

        with pytest.raises(ConfigurationError):
            provider.analyze_news([Article(title="x")])
        session.post.assert_not_called()


class TestGenerateDecision:
    """Tests for the decision path."""

    def test_end_to_end(self, provider, session):
        raw = "Momentum is strong.\n```json\n" + _decision_json() + "\n```"
        session.post.return_value = _completion(raw)

        decision = provider.generate_decision(_request())

        assert decision.action == "open_long"
        assert decision.confidence == 85
        assert decision.adjustments.target_leverage == 3
        assert decision.risk_notes == ("funding elevated",)
        assert decision.cot_trace == "Momentum is strong."
        assert decision.raw_content == _decision_json()

        messages = session.post.call_args.kwargs["json"]["messages"]
        assert "# OBJECTIVE" in messages[0]["content"]
        assert "**Symbol**: BTCUSDT" in messages[1]["content"]

    def test_fractional_confidence_scaled(self, provider, session):
        session.post.return_value = _completion(_decision_json(confidence=0.5))
        assert provider.generate_decision(_request()).confidence == 50.0

    def test_leverage_violation_rejected(self, provider, session):
        adjustments = {"targetLeverage": 10, "stopLossPercent": 1, "takeProfitPercent": 3}
        session.post.return_value = _completion(_decision_json(adjustments=adjustments))

        with pytest.raises(DecisionValidationError, match="exceeds limit"):
            provider.generate_decision(_request())

    def test_risk_reward_violation_rejected(self, provider, session):
        adjustments = {"targetLeverage": 2, "stopLossPercent": 1, "takeProfitPercent": 2}
        session.post.return_value = _completion(_decision_json(adjustments=adjustments))

        with pytest.raises(DecisionValidationError, match="risk/reward"):
            provider.generate_decision(_request())

    def test_unparseable_output(self, provider, session):
        session.post.return_value = _completion("I am not sure.")

        with pytest.raises(ResponseParseError):
            provider.generate_decision(_request())

    def test_missing_key(self, session):
        settings = ProviderSettings(name="deepseek", base_url="https://api.example.com")
        provider = ChatCompletionProvider(settings, session=session)

        with pytest.raises(ConfigurationError):
            provider.generate_decision(_request())
        session.post.assert_not_called()

    def test_set_api_key(self, session):
        settings = ProviderSettings(name="deepseek", base_url="https://api.example.com")
        provider = ChatCompletionProvider(settings, session=session)
        session.post.return_value = _completion(_decision_json())

        provider.set_api_key("sk-fresh-key-42")
        provider.generate_decision(_request())

        headers = session.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sk-fresh-key-42"


class TestNormalizeConfidence:
    """Tests for normalize_confidence."""

    @pytest.mark.parametrize(
        "value,expected",
        [(0.5, 50.0), (1.0, 100.0), (0.0, 0.0), (85.0, 85.0), (-0.5, -0.5)],
    )
    def test_scale(self, value, expected):
        assert normalize_confidence(value) == expected


class TestFactory:
    """Tests for create_provider."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for prefix in ("DEEPSEEK", "QWEN", "OPENROUTER"):
            for suffix in ("API_KEY", "BASE_URL", "MODEL", "TEMPERATURE", "TOP_P", "MAX_TOKENS", "TIMEOUT"):
                monkeypatch.delenv(f"{prefix}_{suffix}", raising=False)
        monkeypatch.delenv("LLM_MAX_ATTEMPTS", raising=False)
        monkeypatch.delenv("LLM_RETRY_BASE_DELAY", raising=False)

    def test_satisfies_protocol(self):
        assert isinstance(create_provider("deepseek"), Provider)

    def test_defaults(self):
        provider = create_provider("qwen")

        assert provider.settings.model == "qwen-turbo"
        assert provider.settings.timeout == 60.0
        assert provider.settings.endpoint == (
            "https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions"
        )
        assert not provider.credentials.is_set

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("OPENROUTER_API_KEY", API_KEY)
        monkeypatch.setenv("OPENROUTER_MODEL", "deepseek/deepseek-r1")

        provider = create_provider("OpenRouter")

        assert provider.name == "openrouter"
        assert provider.credentials.get() == API_KEY
        assert provider.settings.model == "deepseek/deepseek-r1"
        assert "HTTP-Referer" in provider.settings.extra_headers

    def test_explicit_settings(self):
        settings = ProviderSettings(name="deepseek", base_url="http://localhost:8080", api_key=API_KEY)
        provider = create_provider("deepseek", settings=settings)
        assert provider.settings is settings

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="unknown provider"):
            create_provider("gpt-local")

    def test_default_settings_not_shared(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", API_KEY)
        create_provider("deepseek")

        assert deepseek.DEFAULT_SETTINGS.api_key == ""
        assert qwen.DEFAULT_SETTINGS.api_key == ""
        assert openrouter.DEFAULT_SETTINGS.max_tokens == 4000
