"""Utility functions for the decision pipeline."""
from utils.text import format_holding_duration, mask_secret, pluralize, truncate_text

__all__ = [
    "format_holding_duration",
    "mask_secret",
    "pluralize",
    "truncate_text",
]
