"""News value types consumed by the sentiment path.

Fetching articles is the news layer's job; this module only describes the
articles handed to a provider and the summary it hands back.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


def _as_str_tuple(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(item) for item in value)


@dataclass(frozen=True, slots=True)
class Article:
    """A single news item passed to ``Provider.analyze_news``."""

    title: str = ""
    summary: str = ""
    url: str = ""
    source: str = ""
    published_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "source": self.source,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Article":
        published_raw = data.get("publishedAt")
        published_at: Optional[datetime] = None
        if isinstance(published_raw, datetime):
            published_at = published_raw
        elif isinstance(published_raw, str) and published_raw:
            try:
                published_at = datetime.fromisoformat(published_raw.replace("Z", "+00:00"))
            except ValueError:
                published_at = None
        return cls(
            title=str(data.get("title") or ""),
            summary=str(data.get("summary") or ""),
            url=str(data.get("url") or ""),
            source=str(data.get("source") or ""),
            published_at=published_at,
        )


@dataclass(frozen=True, slots=True)
class SentimentSummary:
    """Aggregated news sentiment.

    Attributes:
        sentiment: Free-form label, usually ``bullish``/``bearish``/``neutral``.
        score: Strength of the sentiment in the 0-1 range; 0 means unknown.
        highlights: Short headlines worth surfacing to the decision prompt.
        risk_factors: Risks the analyst flagged.
    """

    sentiment: str = ""
    score: float = 0.0
    highlights: Tuple[str, ...] = ()
    risk_factors: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "highlights", _as_str_tuple(self.highlights))
        object.__setattr__(self, "risk_factors", _as_str_tuple(self.risk_factors))

    @property
    def is_empty(self) -> bool:
        """True when there is nothing worth telling the model."""
        label = self.sentiment.strip().lower()
        if not label:
            return True
        return label == "neutral" and self.score == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentiment": self.sentiment,
            "score": self.score,
            "highlights": list(self.highlights),
            "riskFactors": list(self.risk_factors),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SentimentSummary":
        if not data:
            return cls()
        score = data.get("score")
        try:
            score_value = float(score) if score is not None else 0.0
        except (TypeError, ValueError):
            score_value = 0.0
        return cls(
            sentiment=str(data.get("sentiment") or ""),
            score=score_value,
            highlights=_as_str_tuple(data.get("highlights")),
            risk_factors=_as_str_tuple(data.get("riskFactors")),
        )
