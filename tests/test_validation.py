"""Tests for ai/validation.py module."""
import pytest

from ai.errors import DecisionValidationError
from ai.types import AdjustmentPlan, DecisionResponse, RiskLimits
from ai.validation import VALID_ACTIONS, normalize_action, validate_decision


def _decision(action="open_long", **adjustments):
    return DecisionResponse(action=action, confidence=80, adjustments=AdjustmentPlan(**adjustments))


@pytest.fixture
def limits():
    return RiskLimits(max_leverage=5, min_risk_reward_ratio=3)


class TestNormalizeAction:
    """Tests for normalize_action function."""

    def test_lower_and_underscore(self):
        assert normalize_action(" Open-Long ") == "open_long"

    def test_already_canonical(self):
        assert normalize_action("wait") == "wait"


class TestActions:
    """Action vocabulary checks."""

    @pytest.mark.parametrize("action", VALID_ACTIONS)
    def test_valid_actions_accepted(self, action, limits):
        validate_decision(_decision(action), limits)

    def test_case_and_dash_insensitive(self, limits):
        validate_decision(_decision("INCREASE-SHORT"), limits)

    def test_empty_action_tolerated(self, limits):
        validate_decision(_decision(""), limits)

    def test_unknown_action_rejected(self, limits):
        with pytest.raises(DecisionValidationError, match="unknown action"):
            validate_decision(_decision("buy_everything"), limits)


class TestLeverage:
    """Leverage checks."""

    def test_leverage_above_limit_rejected(self, limits):
        with pytest.raises(DecisionValidationError, match="exceeds limit"):
            validate_decision(_decision(target_leverage=10), limits)

    def test_leverage_at_limit_accepted(self, limits):
        validate_decision(_decision(target_leverage=5), limits)

    def test_negative_leverage_rejected(self, limits):
        with pytest.raises(DecisionValidationError, match="negative"):
            validate_decision(_decision(target_leverage=-1), limits)

    def test_nan_leverage_rejected(self, limits):
        with pytest.raises(DecisionValidationError):
            validate_decision(_decision(target_leverage=float("nan")), limits)

    def test_unset_limit_means_no_cap(self):
        validate_decision(_decision(target_leverage=50), RiskLimits())


class TestRiskReward:
    """Take-profit / stop-loss ratio checks."""

    def test_ratio_below_minimum_rejected(self, limits):
        with pytest.raises(DecisionValidationError, match="risk/reward 2.00 below required 3.00"):
            validate_decision(_decision(stop_loss_percent=1, take_profit_percent=2), limits)

    def test_ratio_at_minimum_accepted(self, limits):
        validate_decision(_decision(stop_loss_percent=1, take_profit_percent=3), limits)

    def test_float_rounding_tolerated(self, limits):
        validate_decision(_decision(stop_loss_percent=0.1, take_profit_percent=0.3), limits)

    def test_skipped_without_stop_loss(self, limits):
        validate_decision(_decision(stop_loss_percent=0, take_profit_percent=1), limits)

    def test_skipped_without_minimum(self):
        validate_decision(
            _decision(stop_loss_percent=2, take_profit_percent=1),
            RiskLimits(max_leverage=5),
        )

    def test_decision_not_modified(self, limits):
        decision = _decision(target_leverage=10)
        with pytest.raises(DecisionValidationError):
            validate_decision(decision, limits)
        assert decision.adjustments.target_leverage == 10
