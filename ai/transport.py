"""Chat-completion transport with bounded retry.

``ChatCompletionClient`` performs the HTTP exchange with an OpenAI-compatible
backend. Transient network failures are retried with a linearly increasing
backoff (``base_delay``, ``2 * base_delay``, ...); everything else surfaces on
the first failure. Both the backoff sleep and the in-flight request honour an
optional ``CancellationToken``.
"""
from __future__ import annotations

import functools
import logging
import socket
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import requests
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from ai.cancellation import CancellationToken
from ai.credentials import CredentialHolder
from ai.errors import (
    ConfigurationError,
    DecisionCancelledError,
    DecisionValidationError,
    HTTPStatusError,
    ProviderBusinessError,
    ResponseParseError,
    RetryExhaustedError,
    TransportError,
)
from utils.text import mask_secret, truncate_text

if TYPE_CHECKING:
    from bot_config import ProviderSettings

# Fallback text markers for errors that carry no structured network type.
RETRYABLE_MESSAGE_MARKERS: Tuple[str, ...] = (
    "connection",
    "network",
    "timeout",
    "reset",
    "refused",
)

_NEVER_RETRY = (
    ConfigurationError,
    ProviderBusinessError,
    ResponseParseError,
    DecisionValidationError,
    DecisionCancelledError,
    HTTPStatusError,
)

_NETWORK_ERRORS = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    socket.timeout,
    socket.gaierror,
    TimeoutError,
    ConnectionError,
)

_CANCEL_POLL_INTERVAL = 0.05
_BODY_LOG_LIMIT = 500


@dataclass(frozen=True, slots=True)
class RetryRecord:
    """One failed attempt that was followed by a backoff sleep."""

    attempt: int
    delay: float
    error: str


@dataclass(frozen=True, slots=True)
class CompletionResult:
    content: str
    attempts: int
    retries: Tuple[RetryRecord, ...] = ()


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_retryable_error(
    exc: Optional[BaseException],
    markers: Sequence[str] = RETRYABLE_MESSAGE_MARKERS,
) -> bool:
    """Classify ``exc`` as transient (worth another attempt) or not.

    Pipeline errors other than unflagged transport errors are final. For the
    rest, the cause chain is searched for timeouts, DNS failures and
    connection errors; the message markers are consulted last.
    """
    if exc is None:
        return False
    if isinstance(exc, _NEVER_RETRY):
        return False
    if isinstance(exc, TransportError) and exc.retryable is not None:
        return exc.retryable

    chain = list(_exception_chain(exc))
    if any(isinstance(link, _NETWORK_ERRORS) for link in chain):
        return True

    text = " ".join(str(link) for link in chain).lower()
    return any(marker.lower() in text for marker in markers if marker)


def _extract_content(data: Any, provider: str) -> str:
    if not isinstance(data, dict):
        raise ProviderBusinessError(f"{provider} returned an unexpected payload type")

    error = data.get("error")
    if error:
        if isinstance(error, dict):
            message = error.get("message") or str(error)
        else:
            message = str(error)
        raise ProviderBusinessError(f"{provider} API error: {message}")

    choices = data.get("choices")
    if not choices:
        raise ProviderBusinessError(f"{provider} returned no choices")
    if not isinstance(choices, list):
        raise ProviderBusinessError(f"{provider} returned malformed choices: {type(choices).__name__}")

    first = choices[0]
    if not isinstance(first, dict):
        raise ProviderBusinessError(f"{provider} returned a malformed choice: {type(first).__name__}")
    message = first.get("message")
    if message is None:
        message = {}
    if not isinstance(message, dict):
        raise ProviderBusinessError(f"{provider} returned a malformed message: {type(message).__name__}")

    content = message.get("content")
    content = "" if content is None else str(content)
    if not content.strip():
        output_text = data.get("output_text")
        if isinstance(output_text, str) and output_text.strip():
            content = output_text
    if not content.strip():
        raise ProviderBusinessError(f"{provider} returned empty content")
    return content


class ChatCompletionClient:
    """HTTP client for one chat-completion backend."""

    def __init__(
        self,
        settings: "ProviderSettings",
        credentials: CredentialHolder,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        retry_markers: Sequence[str] = RETRYABLE_MESSAGE_MARKERS,
    ) -> None:
        self.settings = settings
        self.credentials = credentials
        self._session = session if session is not None else requests.Session()
        self._sleep = sleep
        self._retry_markers = tuple(retry_markers)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        cancel: Optional[CancellationToken] = None,
    ) -> CompletionResult:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return self._complete_messages(messages, cancel)

    def call_with_messages(
        self,
        messages: List[Dict[str, str]],
        cancel: Optional[CancellationToken] = None,
    ) -> str:
        return self._complete_messages(messages, cancel).content

    def _require_api_key(self) -> str:
        api_key = self.credentials.get()
        if not api_key:
            raise ConfigurationError(f"{self.settings.name} API key is not configured")
        return api_key

    def _complete_messages(
        self,
        messages: List[Dict[str, str]],
        cancel: Optional[CancellationToken],
    ) -> CompletionResult:
        self._require_api_key()
        if cancel is not None:
            cancel.raise_if_cancelled()

        settings = self.settings
        retries: List[RetryRecord] = []

        def backoff(delay: float) -> None:
            if cancel is None:
                self._sleep(delay)
            elif cancel.wait(delay):
                raise DecisionCancelledError("cancelled during retry backoff")

        def record(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome else None
            delay = state.next_action.sleep if state.next_action else 0.0
            retries.append(RetryRecord(state.attempt_number, delay, str(error)))
            logging.warning(
                "retry.attempt provider=%s attempt=%d/%d delay=%.1fs error=%s",
                settings.name,
                state.attempt_number,
                settings.max_attempts,
                delay,
                error,
            )

        retrying = Retrying(
            stop=stop_after_attempt(max(1, settings.max_attempts)),
            wait=wait_incrementing(start=settings.base_delay, increment=settings.base_delay),
            retry=retry_if_exception(
                lambda exc: is_retryable_error(exc, self._retry_markers)
            ),
            sleep=backoff,
            before_sleep=record,
        )

        try:
            content = retrying(self._send_completion, messages, cancel)
        except RetryError as exc:
            last_attempt = exc.last_attempt
            last_error = last_attempt.exception()
            logging.error(
                "http.error provider=%s gave up after %d attempts: %s",
                settings.name,
                last_attempt.attempt_number,
                last_error,
            )
            raise RetryExhaustedError(last_attempt.attempt_number, last_error) from last_error

        return CompletionResult(
            content=content,
            attempts=len(retries) + 1,
            retries=tuple(retries),
        )

    def _post(
        self,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
        cancel: Optional[CancellationToken],
    ) -> requests.Response:
        call = functools.partial(
            self._session.post,
            url,
            headers=headers,
            json=payload,
            timeout=self.settings.timeout,
        )
        if cancel is None:
            return call()

        # The abandoned request ends on its own at the per-call timeout.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.settings.name}-http")
        try:
            future = executor.submit(call)
            while True:
                done, _ = wait([future], timeout=_CANCEL_POLL_INTERVAL)
                if done:
                    return future.result()
                if cancel.cancelled:
                    future.cancel()
                    raise DecisionCancelledError("cancelled while waiting for completion response")
        finally:
            executor.shutdown(wait=False)

    def _send_completion(
        self,
        messages: List[Dict[str, str]],
        cancel: Optional[CancellationToken] = None,
    ) -> str:
        if cancel is not None:
            cancel.raise_if_cancelled()
        api_key = self._require_api_key()
        settings = self.settings

        payload = {
            "model": settings.model,
            "messages": messages,
            "temperature": settings.temperature,
            "top_p": settings.top_p,
            "max_tokens": settings.max_tokens,
        }
        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        headers.update(settings.extra_headers)

        logging.debug(
            "http.request provider=%s url=%s model=%s key=%s",
            settings.name,
            settings.endpoint,
            settings.model,
            mask_secret(api_key) or "<hidden>",
        )
        started = time.monotonic()
        try:
            response = self._post(settings.endpoint, headers, payload, cancel)
        except (requests.exceptions.RequestException, OSError) as exc:
            logging.warning("http.error provider=%s error=%s", settings.name, exc)
            raise TransportError(f"{settings.name} request failed: {exc}") from exc

        logging.info(
            "http.response provider=%s status=%d elapsed=%.2fs",
            settings.name,
            response.status_code,
            time.monotonic() - started,
        )
        if response.status_code >= 400:
            body = truncate_text(response.text or "", _BODY_LOG_LIMIT)
            logging.warning(
                "http.error provider=%s status=%d body=%s",
                settings.name,
                response.status_code,
                body,
            )
            raise HTTPStatusError(response.status_code, body)

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError(f"decode completion: {exc}", retryable=False) from exc

        return _extract_content(data, settings.name)
