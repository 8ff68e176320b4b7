"""AI decision layer: prompt construction, LLM invocation, parsing and validation.

Backends live in ``ai.providers``; import them from there.
"""
from ai.cancellation import CancellationToken
from ai.credentials import CredentialHolder
from ai.errors import (
    ConfigurationError,
    DecisionCancelledError,
    DecisionError,
    DecisionValidationError,
    HTTPStatusError,
    ProviderBusinessError,
    ResponseParseError,
    RetryExhaustedError,
    TransportError,
)
from ai.parser import parse_decision_response, parse_sentiment_summary, strip_json_fences
from ai.prompt import PerformanceTier, build_news_prompts, build_prompts, performance_tier
from ai.transport import ChatCompletionClient, CompletionResult, RetryRecord, is_retryable_error
from ai.types import (
    AdjustmentPlan,
    DecisionContext,
    DecisionRequest,
    DecisionResponse,
    RiskLimits,
)
from ai.validation import VALID_ACTIONS, validate_decision

__all__ = [
    # Cancellation / credentials
    "CancellationToken",
    "CredentialHolder",
    # Errors
    "ConfigurationError",
    "DecisionCancelledError",
    "DecisionError",
    "DecisionValidationError",
    "HTTPStatusError",
    "ProviderBusinessError",
    "ResponseParseError",
    "RetryExhaustedError",
    "TransportError",
    # Parsing
    "parse_decision_response",
    "parse_sentiment_summary",
    "strip_json_fences",
    # Prompts
    "PerformanceTier",
    "build_news_prompts",
    "build_prompts",
    "performance_tier",
    # Transport
    "ChatCompletionClient",
    "CompletionResult",
    "RetryRecord",
    "is_retryable_error",
    # Types
    "AdjustmentPlan",
    "DecisionContext",
    "DecisionRequest",
    "DecisionResponse",
    "RiskLimits",
    # Validation
    "VALID_ACTIONS",
    "validate_decision",
]
