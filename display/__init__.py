"""Display layer for console output and message formatting."""
from display.formatters import (
    build_decision_message,
    build_sentiment_message,
)

__all__ = [
    "build_decision_message",
    "build_sentiment_message",
]
