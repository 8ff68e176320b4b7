"""Decision validation against hard risk limits.

This is the last gate before a decision reaches the execution layer. A
violation rejects the whole decision; nothing is clamped or auto-corrected.
"""
from __future__ import annotations

import logging
from typing import FrozenSet, Tuple

from ai.errors import DecisionValidationError
from ai.types import DecisionResponse, RiskLimits

VALID_ACTIONS: Tuple[str, ...] = (
    "open_long",
    "open_short",
    "increase_long",
    "increase_short",
    "close",
    "exit",
    "reduce",
    "hold",
    "wait",
)

_VALID_ACTION_SET: FrozenSet[str] = frozenset(VALID_ACTIONS)

# Absorbs float rounding in take-profit / stop-loss ratios.
RISK_REWARD_TOLERANCE = 1e-9


def normalize_action(action: str) -> str:
    """Canonical form used for comparison: lower case, ``-`` read as ``_``."""
    return action.strip().lower().replace("-", "_")


def validate_decision(decision: DecisionResponse, limits: RiskLimits) -> None:
    """Raise ``DecisionValidationError`` if ``decision`` breaks a hard limit.

    Checks, in order:
        * ``action`` is empty (unspecified) or one of ``VALID_ACTIONS``;
        * ``targetLeverage`` is non-negative and within ``max_leverage`` when set;
        * ``takeProfitPercent / stopLossPercent`` meets ``min_risk_reward_ratio``
          when both percentages and the limit are positive.
    """
    action = normalize_action(decision.action)
    if action and action not in _VALID_ACTION_SET:
        raise DecisionValidationError(f"unknown action: {decision.action!r}")

    adjustments = decision.adjustments
    target_leverage = adjustments.target_leverage
    if not target_leverage >= 0:
        raise DecisionValidationError(
            f"targetLeverage must not be negative (got {target_leverage})"
        )
    if limits.max_leverage > 0 and target_leverage > limits.max_leverage:
        raise DecisionValidationError(
            f"targetLeverage {target_leverage:.2f} exceeds limit {limits.max_leverage:.2f}"
        )

    stop_loss = adjustments.stop_loss_percent
    take_profit = adjustments.take_profit_percent
    if stop_loss > 0 and take_profit > 0 and limits.min_risk_reward_ratio > 0:
        ratio = take_profit / stop_loss
        if ratio + RISK_REWARD_TOLERANCE < limits.min_risk_reward_ratio:
            raise DecisionValidationError(
                f"risk/reward {ratio:.2f} below required {limits.min_risk_reward_ratio:.2f}"
            )

    logging.debug(
        "decision.validate.ok action=%s leverage=%.2f",
        action or "<unspecified>",
        target_leverage,
    )
