"""Provider construction by name."""
from __future__ import annotations

from typing import Any, Dict, Optional

from ai.errors import ConfigurationError
from ai.providers import deepseek, openrouter, qwen
from ai.providers.base import ChatCompletionProvider
from bot_config import ProviderSettings, load_provider_settings_from_env

SUPPORTED_PROVIDERS: Dict[str, ProviderSettings] = {
    "deepseek": deepseek.DEFAULT_SETTINGS,
    "qwen": qwen.DEFAULT_SETTINGS,
    "openrouter": openrouter.DEFAULT_SETTINGS,
}


def create_provider(
    name: str,
    settings: Optional[ProviderSettings] = None,
    **kwargs: Any,
) -> ChatCompletionProvider:
    """Build a provider by backend name.

    When ``settings`` is omitted they are loaded from the environment on top
    of the backend's defaults. Extra keyword arguments (``session``,
    ``sleep``, ...) are handed to the provider.

    Raises:
        ConfigurationError: for an unknown backend name.
    """
    key = (name or "").strip().lower()
    defaults = SUPPORTED_PROVIDERS.get(key)
    if defaults is None:
        supported = ", ".join(sorted(SUPPORTED_PROVIDERS))
        raise ConfigurationError(f"unknown provider '{name}' (supported: {supported})")
    if settings is None:
        settings = load_provider_settings_from_env(key, defaults)
    return ChatCompletionProvider(settings, **kwargs)
