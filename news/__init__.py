"""News types shared between the news layer and the AI providers."""
from news.models import Article, SentimentSummary

__all__ = [
    "Article",
    "SentimentSummary",
]
