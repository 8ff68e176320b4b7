from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from ai.types import RiskLimits


EARLY_ENV_WARNINGS: List[str] = []

SUPPORTED_PROVIDER_NAMES: Tuple[str, ...] = ("deepseek", "qwen", "openrouter")
DEFAULT_PROVIDER_NAME = "deepseek"

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY = 2.0


def _parse_float_env(value: Optional[str], *, default: float) -> float:
    """Convert environment string to float with fallback and logging."""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        EARLY_ENV_WARNINGS.append(
            f"Invalid float environment value '{value}'; using default {default:.2f}"
        )
        return default


def _parse_int_env(value: Optional[str], *, default: int) -> int:
    """Convert environment string to int with fallback and logging."""
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        EARLY_ENV_WARNINGS.append(
            f"Invalid int environment value '{value}'; using default {default}"
        )
        return default


def _parse_str_env(value: Optional[str], *, default: str) -> str:
    if value is None:
        return default
    stripped = value.strip()
    return stripped or default


def emit_early_env_warnings() -> None:
    """Log and clear any configuration warnings collected during import time."""
    global EARLY_ENV_WARNINGS
    for msg in EARLY_ENV_WARNINGS:
        logging.warning(msg)
    EARLY_ENV_WARNINGS = []


@dataclass
class ProviderSettings:
    """Connection and sampling settings for one chat-completion backend."""

    name: str
    base_url: str
    completion_path: str = "/v1/chat/completions"
    model: str = ""
    temperature: float = 0.5
    top_p: float = 0.9
    max_tokens: int = 2000
    timeout: float = 120.0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_RETRY_BASE_DELAY
    extra_headers: Dict[str, str] = field(default_factory=dict)
    api_key: str = ""

    @property
    def endpoint(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.completion_path.lstrip("/")


def load_provider_settings_from_env(name: str, defaults: ProviderSettings) -> ProviderSettings:
    """Overlay ``<NAME>_*`` environment variables on a provider's defaults.

    Shared retry knobs come from ``LLM_MAX_ATTEMPTS`` and
    ``LLM_RETRY_BASE_DELAY``. Non-positive attempt counts, timeouts and
    delays are rejected with a warning.
    """
    prefix = name.strip().upper()

    max_attempts = _parse_int_env(
        os.getenv("LLM_MAX_ATTEMPTS"),
        default=defaults.max_attempts,
    )
    if max_attempts < 1:
        EARLY_ENV_WARNINGS.append(
            f"LLM_MAX_ATTEMPTS must be >= 1; using default {defaults.max_attempts}"
        )
        max_attempts = defaults.max_attempts

    base_delay = _parse_float_env(
        os.getenv("LLM_RETRY_BASE_DELAY"),
        default=defaults.base_delay,
    )
    if base_delay < 0:
        EARLY_ENV_WARNINGS.append(
            f"LLM_RETRY_BASE_DELAY must not be negative; using default {defaults.base_delay:.2f}"
        )
        base_delay = defaults.base_delay

    timeout = _parse_float_env(
        os.getenv(f"{prefix}_TIMEOUT"),
        default=defaults.timeout,
    )
    if timeout <= 0:
        EARLY_ENV_WARNINGS.append(
            f"{prefix}_TIMEOUT must be positive; using default {defaults.timeout:.2f}"
        )
        timeout = defaults.timeout

    return replace(
        defaults,
        api_key=_parse_str_env(os.getenv(f"{prefix}_API_KEY"), default=defaults.api_key),
        base_url=_parse_str_env(os.getenv(f"{prefix}_BASE_URL"), default=defaults.base_url),
        model=_parse_str_env(os.getenv(f"{prefix}_MODEL"), default=defaults.model),
        temperature=_parse_float_env(
            os.getenv(f"{prefix}_TEMPERATURE"),
            default=defaults.temperature,
        ),
        top_p=_parse_float_env(
            os.getenv(f"{prefix}_TOP_P"),
            default=defaults.top_p,
        ),
        max_tokens=_parse_int_env(
            os.getenv(f"{prefix}_MAX_TOKENS"),
            default=defaults.max_tokens,
        ),
        timeout=timeout,
        max_attempts=max_attempts,
        base_delay=base_delay,
        extra_headers=dict(defaults.extra_headers),
    )


DEFAULT_RISK_LIMITS = RiskLimits(
    max_daily_loss_percent=5.0,
    max_position_notional_usd=0.0,
    max_concurrent_positions=1,
    max_leverage=5.0,
    btc_eth_notional_multiple=10.0,
    alt_notional_multiple=1.5,
    min_risk_reward_ratio=3.0,
)


def load_risk_limits_from_env(defaults: RiskLimits = DEFAULT_RISK_LIMITS) -> RiskLimits:
    max_daily_loss_percent = _parse_float_env(
        os.getenv("RISK_MAX_DAILY_LOSS_PERCENT"),
        default=defaults.max_daily_loss_percent,
    )
    max_position_notional_usd = _parse_float_env(
        os.getenv("RISK_MAX_POSITION_NOTIONAL_USD"),
        default=defaults.max_position_notional_usd,
    )
    max_concurrent_positions = _parse_int_env(
        os.getenv("RISK_MAX_CONCURRENT_POSITIONS"),
        default=defaults.max_concurrent_positions,
    )
    max_leverage = _parse_float_env(
        os.getenv("RISK_MAX_LEVERAGE"),
        default=defaults.max_leverage,
    )
    btc_eth_notional_multiple = _parse_float_env(
        os.getenv("RISK_BTC_ETH_NOTIONAL_MULTIPLE"),
        default=defaults.btc_eth_notional_multiple,
    )
    alt_notional_multiple = _parse_float_env(
        os.getenv("RISK_ALT_NOTIONAL_MULTIPLE"),
        default=defaults.alt_notional_multiple,
    )
    min_risk_reward_ratio = _parse_float_env(
        os.getenv("RISK_MIN_RISK_REWARD_RATIO"),
        default=defaults.min_risk_reward_ratio,
    )

    if max_leverage < 0:
        EARLY_ENV_WARNINGS.append(
            f"RISK_MAX_LEVERAGE must not be negative; using default {defaults.max_leverage:.2f}"
        )
        max_leverage = defaults.max_leverage
    if min_risk_reward_ratio < 0:
        EARLY_ENV_WARNINGS.append(
            "RISK_MIN_RISK_REWARD_RATIO must not be negative; "
            f"using default {defaults.min_risk_reward_ratio:.2f}"
        )
        min_risk_reward_ratio = defaults.min_risk_reward_ratio

    return RiskLimits(
        max_daily_loss_percent=max_daily_loss_percent,
        max_position_notional_usd=max_position_notional_usd,
        max_concurrent_positions=max_concurrent_positions,
        max_leverage=max_leverage,
        btc_eth_notional_multiple=btc_eth_notional_multiple,
        alt_notional_multiple=alt_notional_multiple,
        min_risk_reward_ratio=min_risk_reward_ratio,
    )


def load_active_provider_name() -> str:
    """Resolve the LLM backend from ``LLM_PROVIDER``."""
    raw = os.getenv("LLM_PROVIDER")
    if not raw or not raw.strip():
        return DEFAULT_PROVIDER_NAME
    value = raw.strip().lower()
    if value not in SUPPORTED_PROVIDER_NAMES:
        EARLY_ENV_WARNINGS.append(
            f"Unsupported LLM_PROVIDER '{raw}'; using '{DEFAULT_PROVIDER_NAME}'."
        )
        return DEFAULT_PROVIDER_NAME
    return value
