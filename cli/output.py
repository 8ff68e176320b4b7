"""
Output formatting utilities for CLI.

Converts the lightly marked-up messages from ``display.formatters`` to
terminal-friendly text.
"""
from __future__ import annotations

import re
import sys

from colorama import Fore, Style


def strip_markdown(text: str) -> str:
    """Convert marked-up message text to plain terminal text.

    This function:
    - Removes escape backslashes (\\-, \\_, \\., etc.)
    - Converts *bold* to plain text
    - Converts _italic_ to plain text
    - Keeps `code` backticks for visibility

    Args:
        text: Formatted message text.

    Returns:
        Plain text suitable for terminal output.
    """
    if not text:
        return ""

    result = re.sub(r'\\([_*\[\]()~`>#+=|{}.!-])', r'\1', text)
    result = re.sub(r'\*([^*\n]+)\*', r'\1', result)
    result = re.sub(r'(?m)^_(.+)_$', r'\1', result)
    return result


def print_result(message: str, success: bool = True) -> None:
    """Print command result to terminal.

    Args:
        message: Formatted message from a display builder.
        success: Whether the command succeeded (affects exit behavior).
    """
    print(strip_markdown(message))

    if not success:
        sys.exit(1)


def print_error(message: str) -> None:
    """Print error message in red to stderr and exit with code 1.

    Args:
        message: Error message to display.
    """
    print(f"{Fore.RED}错误: {message}{Style.RESET_ALL}", file=sys.stderr)
    sys.exit(1)
