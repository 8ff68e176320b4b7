"""LLM response parsing.

This module recovers structured objects from free-form model output. Models
routinely wrap their JSON in a fenced code block, think out loud before it and
append commentary after it; the helpers here tolerate all three while still
refusing anything that does not yield a well-formed object.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ai.errors import ResponseParseError
from ai.types import AdjustmentPlan, DecisionResponse
from news.models import SentimentSummary
from utils.text import truncate_text

FENCE = "```"

# Bound on how much offending text is echoed back in parse errors.
MAX_ERROR_ECHO = 500

_LANGUAGE_TAG_RE = re.compile(r"^[A-Za-z0-9_+.\-]+$")
_TRAILING_FENCE_RE = re.compile(r"`{3}[A-Za-z0-9_+.\-]*\s*$")

_ADJUSTMENT_FIELDS = (
    ("sizeMultiplier", "size_multiplier"),
    ("targetLeverage", "target_leverage"),
    ("stopLossPercent", "stop_loss_percent"),
    ("takeProfitPercent", "take_profit_percent"),
    ("trailingStopPercent", "trailing_stop_percent"),
)


def strip_json_fences(text: str) -> str:
    """Remove a surrounding fenced code block from ``text``.

    The opening fence may be followed by a language tag line (``json``,
    ``JSON``, ...). Text that does not start with a fence is returned
    unchanged, which makes the function idempotent.

    Args:
        text: Raw model output.

    Returns:
        The fenced body, trimmed, or ``text`` itself when it is not fenced.
    """
    trimmed = text.strip()
    if not trimmed.startswith(FENCE):
        return text

    body = trimmed[len(FENCE):]
    first_line, newline, rest = body.partition("\n")
    if _LANGUAGE_TAG_RE.match(first_line.strip()):
        body = rest if newline else ""
    body = body.strip()
    if body.endswith(FENCE):
        body = body[: -len(FENCE)]
    return body.strip()


def extract_cot_trace(raw: str) -> str:
    """Return the reasoning a model wrote before its JSON object.

    Everything ahead of the first ``{`` in the fence-stripped text is kept,
    minus any residual fence marker (e.g. a ````json`` line that opened the
    JSON block). Returns an empty string when the text starts with ``{`` or
    contains no object at all.
    """
    trimmed = strip_json_fences(raw).strip()
    idx = trimmed.find("{")
    if idx <= 0:
        return ""
    trace = trimmed[:idx].strip()
    trace = _TRAILING_FENCE_RE.sub("", trace)
    return trace.strip("`").strip()


def _candidates(content: str) -> Iterator[Tuple[str, bool]]:
    yield content, False
    start = content.find("{")
    end = content.rfind("}")
    if start != -1 and end > start:
        snippet = content[start : end + 1]
        if snippet != content:
            yield snippet, True


def _stringify_note(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, bool):
        return "true" if item else "false"
    if item is None:
        return "null"
    if isinstance(item, float) and item.is_integer():
        return str(int(item))
    if isinstance(item, (dict, list)):
        return json.dumps(item, ensure_ascii=False)
    return str(item)


def coerce_risk_notes(value: Any, field_name: str = "riskNotes") -> List[str]:
    """Normalise a list-of-notes field (``riskNotes`` by default) to strings.

    * missing / null -> ``[]``
    * list of strings -> unchanged
    * single string -> one-element list (blank strings are dropped)
    * list of mixed scalars -> each element stringified

    Raises:
        ResponseParseError: for any other shape (numbers, objects, ...).
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        if all(isinstance(item, str) for item in value):
            return list(value)
        return [_stringify_note(item) for item in value]
    raise ResponseParseError(
        f"{field_name} has unsupported type {type(value).__name__}",
        truncate_text(json.dumps(value, ensure_ascii=False), MAX_ERROR_ECHO),
    )


def _coerce_number(value: Any, field_name: str) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ResponseParseError(f"{field_name} must be a number, got boolean")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().rstrip("%"))
        except ValueError:
            pass
    raise ResponseParseError(f"{field_name} must be a number, got {value!r}")


def _coerce_text(value: Any, field_name: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ResponseParseError(f"{field_name} must be a string, got {type(value).__name__}")


def decode_json_object(content: str) -> Tuple[Dict[str, Any], str]:
    """Decode the JSON object embedded in ``content``.

    The whole text is tried first, then the substring between the first ``{``
    and the last ``}`` to tolerate commentary around the object.

    Returns:
        Tuple of (decoded object, text that was decoded).

    Raises:
        ResponseParseError: when neither attempt yields a JSON object.
    """
    last_error: Optional[Exception] = None
    for candidate, recovered in _candidates(content):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        if not isinstance(payload, dict):
            last_error = ValueError(f"expected a JSON object, got {type(payload).__name__}")
            continue
        if recovered:
            logging.warning(
                "Recovered JSON object from model output (%d surrounding chars dropped)",
                len(content) - len(candidate),
            )
        return payload, candidate

    excerpt = truncate_text(content, MAX_ERROR_ECHO)
    raise ResponseParseError(f"unable to parse model output ({last_error}): {excerpt}", excerpt)


def _decision_from_payload(payload: Dict[str, Any]) -> DecisionResponse:
    adjustments_raw = payload.get("adjustments")
    if adjustments_raw is None:
        adjustments_raw = {}
    if not isinstance(adjustments_raw, dict):
        raise ResponseParseError(
            f"adjustments must be an object, got {type(adjustments_raw).__name__}"
        )
    adjustments = AdjustmentPlan(
        **{
            attr: _coerce_number(adjustments_raw.get(key), key)
            for key, attr in _ADJUSTMENT_FIELDS
        }
    )
    return DecisionResponse(
        action=_coerce_text(payload.get("action"), "action"),
        confidence=_coerce_number(payload.get("confidence"), "confidence"),
        reason=_coerce_text(payload.get("reason"), "reason"),
        adjustments=adjustments,
        risk_notes=tuple(coerce_risk_notes(payload.get("riskNotes"))),
    )


def parse_decision_response(raw: str) -> DecisionResponse:
    """Recover a ``DecisionResponse`` from raw model output.

    Args:
        raw: The unmodified assistant message content.

    Returns:
        A decision whose ``raw_content`` is the text its fields were parsed
        from and whose ``cot_trace`` is the reasoning preamble (possibly empty).

    Raises:
        ResponseParseError: when the output is empty, contains no decodable
            object, or the object violates the decision schema.
    """
    content = strip_json_fences(raw).strip()
    if not content:
        raise ResponseParseError("model returned no content")

    last_error: Optional[ResponseParseError] = None
    for candidate, _ in _candidates(content):
        try:
            payload, used = decode_json_object(candidate)
            decision = _decision_from_payload(payload)
        except ResponseParseError as exc:
            last_error = exc
            continue
        return replace(decision, raw_content=used, cot_trace=extract_cot_trace(raw))

    excerpt = truncate_text(content, MAX_ERROR_ECHO)
    message = str(last_error) if last_error else "unable to parse model output"
    if excerpt not in message:
        message = f"{message}: {excerpt}"
    raise ResponseParseError(message, excerpt)


def parse_sentiment_summary(raw: str) -> SentimentSummary:
    """Recover a ``SentimentSummary`` from raw model output.

    A blank sentiment label is reported as ``neutral``.
    """
    content = strip_json_fences(raw).strip()
    if not content:
        raise ResponseParseError("model returned no content")
    payload, _ = decode_json_object(content)
    payload = dict(payload)
    for key in ("highlights", "riskFactors"):
        payload[key] = coerce_risk_notes(payload.get(key), key)
    summary = SentimentSummary.from_dict(payload)
    if not summary.sentiment.strip():
        summary = replace(summary, sentiment="neutral")
    return summary
