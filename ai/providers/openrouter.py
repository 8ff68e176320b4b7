"""OpenRouter backend."""
from __future__ import annotations

from bot_config import ProviderSettings

DEFAULT_SETTINGS = ProviderSettings(
    name="openrouter",
    base_url="https://openrouter.ai/api",
    completion_path="/v1/chat/completions",
    model="deepseek/deepseek-chat-v3.1",
    temperature=0.5,
    top_p=0.9,
    max_tokens=4000,
    timeout=90.0,
    extra_headers={
        "HTTP-Referer": "https://github.com/crypto-trading-bot",
        "X-Title": "AI Decision Pipeline",
    },
)
