"""Text processing utilities.

This module provides the small string helpers shared by prompt rendering,
response parsing and logging: unit pluralisation, bounded excerpts and
secret masking.
"""
from __future__ import annotations


def pluralize(count: int, unit: str) -> str:
    """Render ``count`` with ``unit`` in singular or plural form.

    Args:
        count: Quantity to render.
        unit: Singular unit name, e.g. "hour".

    Returns:
        "1 hour", "2 hours", "0 minutes".
    """
    suffix = "" if abs(count) == 1 else "s"
    return f"{count} {unit}{suffix}"


def format_holding_duration(minutes: int) -> str:
    """Format a holding duration given in minutes.

    Durations under an hour render as minutes only; longer ones as hours plus
    the remaining minutes, dropping a zero remainder.

    Args:
        minutes: Holding duration in whole minutes.

    Returns:
        "45 minutes", "1 hour 5 minutes", "2 hours".
    """
    if minutes < 60:
        return pluralize(minutes, "minute")
    hours, remainder = divmod(minutes, 60)
    text = pluralize(hours, "hour")
    if remainder:
        text = f"{text} {pluralize(remainder, 'minute')}"
    return text


def truncate_text(text: str, limit: int) -> str:
    """Bound ``text`` to ``limit`` characters, marking the cut with an ellipsis."""
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit] + "..."


def mask_secret(value: str) -> str:
    """Mask a credential for logging.

    Keys shorter than 8 characters are hidden entirely.
    """
    if len(value) < 8:
        return ""
    return f"{value[:4]}***{value[-3:]}"
