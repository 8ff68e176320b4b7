"""Qwen backend via DashScope's OpenAI-compatible mode.

DashScope sometimes leaves ``message.content`` empty and puts the answer in a
top-level ``output_text`` field; the shared transport falls back to it.
"""
from __future__ import annotations

from bot_config import ProviderSettings

DEFAULT_SETTINGS = ProviderSettings(
    name="qwen",
    base_url="https://dashscope.aliyuncs.com",
    completion_path="/compatible-mode/v1/chat/completions",
    model="qwen-turbo",
    temperature=0.4,
    top_p=0.8,
    max_tokens=2000,
    timeout=60.0,
)
