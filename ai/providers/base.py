"""LLM provider interface and the shared chat-completion implementation.

Every backend speaks the same OpenAI-compatible chat-completion dialect, so a
single ``ChatCompletionProvider`` carries the whole decision flow; concrete
backends only contribute their ``ProviderSettings``.
"""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

import requests

from ai.cancellation import CancellationToken
from ai.credentials import CredentialHolder
from ai.errors import ConfigurationError, DecisionValidationError, ResponseParseError
from ai.parser import parse_decision_response, parse_sentiment_summary
from ai.prompt import build_news_prompts, build_prompts
from ai.transport import ChatCompletionClient
from ai.types import DecisionRequest, DecisionResponse
from ai.validation import validate_decision
from bot_config import ProviderSettings
from news.models import Article, SentimentSummary
from utils.text import truncate_text

_TITLE_PREVIEW_LIMIT = 200
_LOG_PAYLOAD_LIMIT = 2000


@runtime_checkable
class Provider(Protocol):
    """统一的 LLM 决策接口。

    上层调度器只依赖这两个能力，不关心具体后端（DeepSeek / Qwen / OpenRouter）。
    """

    def analyze_news(
        self,
        articles: Sequence[Article],
        cancel: Optional[CancellationToken] = None,
    ) -> SentimentSummary:
        """把一组新闻归纳为情绪摘要；空列表直接返回 neutral。"""
        ...

    def generate_decision(
        self,
        request: DecisionRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> DecisionResponse:
        """生成一次经过风控校验的交易决策。"""
        ...


def normalize_confidence(confidence: float) -> float:
    """Express confidence on the 0-100 scale.

    Models occasionally answer with a fraction; values in (0, 1] are scaled
    up, everything else passes through untouched. The boundary is inclusive,
    so a literal ``1`` is read as the fraction 1.0 and becomes 100.
    """
    if 0 < confidence <= 1:
        return confidence * 100
    return confidence


class ChatCompletionProvider:
    """Decision provider backed by an OpenAI-compatible chat-completion API."""

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        session: Optional[requests.Session] = None,
        client: Optional[ChatCompletionClient] = None,
        **client_kwargs: Any,
    ) -> None:
        self.settings = settings
        self.credentials = CredentialHolder(settings.api_key)
        if client is None:
            client = ChatCompletionClient(settings, self.credentials, session=session, **client_kwargs)
        self._client = client

    @property
    def name(self) -> str:
        return self.settings.name

    def set_api_key(self, api_key: str) -> None:
        """Rotate the API key; requests already in flight keep the old one."""
        self.credentials.set(api_key)

    def _ensure_credentials(self) -> None:
        if not self.credentials.is_set:
            raise ConfigurationError(f"{self.name} API key is not configured")

    def analyze_news(
        self,
        articles: Sequence[Article],
        cancel: Optional[CancellationToken] = None,
    ) -> SentimentSummary:
        if not articles:
            return SentimentSummary(sentiment="neutral")
        self._ensure_credentials()

        system_prompt, user_prompt = build_news_prompts(articles)
        titles = truncate_text(" | ".join(a.title for a in articles), _TITLE_PREVIEW_LIMIT)
        logging.info("news.request provider=%s count=%d titles=%s", self.name, len(articles), titles)

        try:
            result = self._client.complete(system_prompt, user_prompt, cancel=cancel)
        except Exception as exc:
            logging.error("news.error provider=%s: %s", self.name, exc)
            raise

        try:
            summary = parse_sentiment_summary(result.content)
        except ResponseParseError as exc:
            logging.error(
                "news.parse.error provider=%s: %s content=%s",
                self.name,
                exc,
                truncate_text(result.content, _LOG_PAYLOAD_LIMIT),
            )
            raise

        logging.info(
            "news.response provider=%s payload=%s",
            self.name,
            json.dumps(summary.to_dict(), ensure_ascii=False),
        )
        return summary

    def generate_decision(
        self,
        request: DecisionRequest,
        cancel: Optional[CancellationToken] = None,
    ) -> DecisionResponse:
        self._ensure_credentials()

        system_prompt, user_prompt = build_prompts(request)
        logging.info(
            "decision.prompt provider=%s symbol=%s system=%d chars user=%d chars",
            self.name,
            request.symbol,
            len(system_prompt),
            len(user_prompt),
        )

        try:
            result = self._client.complete(system_prompt, user_prompt, cancel=cancel)
        except Exception as exc:
            logging.error("decision.error provider=%s symbol=%s: %s", self.name, request.symbol, exc)
            raise

        try:
            decision = parse_decision_response(result.content)
        except ResponseParseError as exc:
            logging.error(
                "decision.parse.error provider=%s symbol=%s: %s content=%s",
                self.name,
                request.symbol,
                exc,
                truncate_text(result.content, _LOG_PAYLOAD_LIMIT),
            )
            raise

        decision = replace(decision, confidence=normalize_confidence(decision.confidence))

        try:
            validate_decision(decision, request.risk_limits)
        except DecisionValidationError as exc:
            logging.error(
                "decision.validate.error provider=%s symbol=%s: %s",
                self.name,
                request.symbol,
                exc,
            )
            raise

        logging.info(
            "decision.response provider=%s symbol=%s attempts=%d payload=%s",
            self.name,
            request.symbol,
            result.attempts,
            json.dumps(decision.to_dict(), ensure_ascii=False),
        )
        return decision
