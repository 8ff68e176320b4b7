"""Tests for bot_config.py environment loaders."""
import logging

import pytest

import bot_config
from bot_config import (
    DEFAULT_RISK_LIMITS,
    ProviderSettings,
    emit_early_env_warnings,
    load_active_provider_name,
    load_provider_settings_from_env,
    load_risk_limits_from_env,
)


_ENV_VARS = [
    "LLM_PROVIDER",
    "LLM_MAX_ATTEMPTS",
    "LLM_RETRY_BASE_DELAY",
    "DEEPSEEK_API_KEY",
    "DEEPSEEK_BASE_URL",
    "DEEPSEEK_MODEL",
    "DEEPSEEK_TEMPERATURE",
    "DEEPSEEK_TOP_P",
    "DEEPSEEK_MAX_TOKENS",
    "DEEPSEEK_TIMEOUT",
    "RISK_MAX_DAILY_LOSS_PERCENT",
    "RISK_MAX_POSITION_NOTIONAL_USD",
    "RISK_MAX_CONCURRENT_POSITIONS",
    "RISK_MAX_LEVERAGE",
    "RISK_BTC_ETH_NOTIONAL_MULTIPLE",
    "RISK_ALT_NOTIONAL_MULTIPLE",
    "RISK_MIN_RISK_REWARD_RATIO",
]

DEFAULTS = ProviderSettings(
    name="deepseek",
    base_url="https://api.deepseek.com",
    model="deepseek-chat",
    extra_headers={"X-Test": "1"},
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(bot_config, "EARLY_ENV_WARNINGS", [])


class TestProviderSettings:
    """Tests for load_provider_settings_from_env."""

    def test_defaults_kept(self):
        settings = load_provider_settings_from_env("deepseek", DEFAULTS)

        assert settings == DEFAULTS
        assert settings is not DEFAULTS
        assert settings.endpoint == "https://api.deepseek.com/v1/chat/completions"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_API_KEY", "  sk-env-123456  ")
        monkeypatch.setenv("DEEPSEEK_BASE_URL", "https://proxy.example.com/")
        monkeypatch.setenv("DEEPSEEK_MODEL", "deepseek-reasoner")
        monkeypatch.setenv("DEEPSEEK_TEMPERATURE", "0.2")
        monkeypatch.setenv("DEEPSEEK_TOP_P", "0.95")
        monkeypatch.setenv("DEEPSEEK_MAX_TOKENS", "4096")
        monkeypatch.setenv("DEEPSEEK_TIMEOUT", "30")
        monkeypatch.setenv("LLM_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("LLM_RETRY_BASE_DELAY", "1.5")

        settings = load_provider_settings_from_env("deepseek", DEFAULTS)

        assert settings.api_key == "sk-env-123456"
        assert settings.endpoint == "https://proxy.example.com/v1/chat/completions"
        assert settings.model == "deepseek-reasoner"
        assert settings.temperature == 0.2
        assert settings.top_p == 0.95
        assert settings.max_tokens == 4096
        assert settings.timeout == 30.0
        assert settings.max_attempts == 5
        assert settings.base_delay == 1.5
        assert settings.extra_headers == {"X-Test": "1"}

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("DEEPSEEK_TEMPERATURE", "hot")
        monkeypatch.setenv("LLM_MAX_ATTEMPTS", "0")
        monkeypatch.setenv("DEEPSEEK_TIMEOUT", "-1")

        settings = load_provider_settings_from_env("deepseek", DEFAULTS)

        assert settings.temperature == DEFAULTS.temperature
        assert settings.max_attempts == DEFAULTS.max_attempts
        assert settings.timeout == DEFAULTS.timeout
        assert len(bot_config.EARLY_ENV_WARNINGS) == 3


class TestRiskLimits:
    """Tests for load_risk_limits_from_env."""

    def test_defaults(self):
        assert load_risk_limits_from_env() == DEFAULT_RISK_LIMITS

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("RISK_MAX_LEVERAGE", "10")
        monkeypatch.setenv("RISK_MAX_CONCURRENT_POSITIONS", "3")
        monkeypatch.setenv("RISK_MIN_RISK_REWARD_RATIO", "2.5")
        monkeypatch.setenv("RISK_MAX_POSITION_NOTIONAL_USD", "250")

        limits = load_risk_limits_from_env()

        assert limits.max_leverage == 10.0
        assert limits.max_concurrent_positions == 3
        assert limits.min_risk_reward_ratio == 2.5
        assert limits.max_position_notional_usd == 250.0
        assert limits.max_daily_loss_percent == DEFAULT_RISK_LIMITS.max_daily_loss_percent

    def test_negative_leverage_rejected(self, monkeypatch):
        monkeypatch.setenv("RISK_MAX_LEVERAGE", "-3")

        limits = load_risk_limits_from_env()

        assert limits.max_leverage == DEFAULT_RISK_LIMITS.max_leverage
        assert bot_config.EARLY_ENV_WARNINGS


class TestActiveProvider:
    """Tests for load_active_provider_name."""

    def test_default(self):
        assert load_active_provider_name() == "deepseek"

    def test_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", " Qwen ")
        assert load_active_provider_name() == "qwen"

    def test_unsupported_falls_back(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "gpt-local")

        assert load_active_provider_name() == "deepseek"
        assert "Unsupported LLM_PROVIDER" in bot_config.EARLY_ENV_WARNINGS[0]


class TestEarlyWarnings:
    """Tests for emit_early_env_warnings."""

    def test_emitted_and_cleared(self, monkeypatch, caplog):
        monkeypatch.setenv("LLM_PROVIDER", "gpt-local")
        load_active_provider_name()

        with caplog.at_level(logging.WARNING):
            emit_early_env_warnings()

        assert any("gpt-local" in record.getMessage() for record in caplog.records)
        assert bot_config.EARLY_ENV_WARNINGS == []
