"""DeepSeek chat-completion backend."""
from __future__ import annotations

from bot_config import ProviderSettings

DEFAULT_SETTINGS = ProviderSettings(
    name="deepseek",
    base_url="https://api.deepseek.com",
    completion_path="/v1/chat/completions",
    model="deepseek-chat",
    temperature=0.5,
    top_p=0.9,
    max_tokens=2000,
    timeout=120.0,
)
