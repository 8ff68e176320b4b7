"""LLM backends producing news sentiment and trading decisions."""
from ai.providers.base import ChatCompletionProvider, Provider, normalize_confidence
from ai.providers.factory import SUPPORTED_PROVIDERS, create_provider

__all__ = [
    "ChatCompletionProvider",
    "Provider",
    "normalize_confidence",
    "SUPPORTED_PROVIDERS",
    "create_provider",
]
