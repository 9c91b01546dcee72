"""
Tests for transfer policy evaluation and the SDK pre-flight validator.
"""
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from agentos_sdk.models import Policy
from agentos_sdk.policy import (
    REASON_EXCEEDS_DAILY_CAP, REASON_EXCEEDS_MAX_AMOUNT, REASON_RECIPIENT_NOT_ALLOWED,
    REASON_TOKEN_NOT_ALLOWED, PolicyValidator, evaluate_transfer,
)
from conftest import OTHER_TOKEN, RECIPIENT_A, RECIPIENT_B, RECIPIENT_C, TOKEN, make_policy


def test_over_max_amount_rejected():
    decision = evaluate_transfer(make_policy(), 0, RECIPIENT_C, 150, TOKEN)
    assert not decision.allowed
    assert decision.reason == REASON_EXCEEDS_MAX_AMOUNT


def test_over_threshold_needs_approval():
    decision = evaluate_transfer(make_policy(), 0, RECIPIENT_C, 60, TOKEN)
    assert decision.allowed
    assert decision.needs_approval is True


def test_at_threshold_auto_path():
    decision = evaluate_transfer(make_policy(), 0, RECIPIENT_C, 50, TOKEN)
    assert decision.allowed
    assert decision.needs_approval is False


def test_requires_approval_overrides_threshold():
    decision = evaluate_transfer(make_policy(requires_approval=True), 0, RECIPIENT_C, 1, TOKEN)
    assert decision.allowed
    assert decision.needs_approval is True


def test_daily_cap():
    policy = make_policy(daily_cap=100)
    rejected = evaluate_transfer(policy, 80, RECIPIENT_C, 30, TOKEN)
    assert rejected.reason == REASON_EXCEEDS_DAILY_CAP
    assert evaluate_transfer(policy, 50, RECIPIENT_C, 30, TOKEN).allowed
    # Exactly at the cap is still allowed
    assert evaluate_transfer(policy, 70, RECIPIENT_C, 30, TOKEN).allowed


def test_zero_daily_cap_means_unlimited():
    assert evaluate_transfer(make_policy(daily_cap=0), 10**30, RECIPIENT_C, 100, TOKEN).allowed


def test_allowed_targets():
    policy = make_policy(allowed_targets=[RECIPIENT_A, RECIPIENT_B])
    assert evaluate_transfer(policy, 0, RECIPIENT_C, 10, TOKEN).reason == REASON_RECIPIENT_NOT_ALLOWED
    assert evaluate_transfer(policy, 0, RECIPIENT_A, 10, TOKEN).allowed


def test_allow_lists_are_case_insensitive():
    policy = make_policy(allowed_targets=[RECIPIENT_A.upper().replace("0X", "0x")])
    assert evaluate_transfer(policy, 0, RECIPIENT_A, 10, TOKEN.upper().replace("0X", "0x")).allowed


def test_token_must_be_allowed():
    decision = evaluate_transfer(make_policy(), 0, RECIPIENT_C, 10, OTHER_TOKEN)
    assert decision.reason == REASON_TOKEN_NOT_ALLOWED


def test_empty_token_list_rejects_every_token():
    decision = evaluate_transfer(make_policy(allowed_tokens=[]), 0, RECIPIENT_C, 10, TOKEN)
    assert decision.reason == REASON_TOKEN_NOT_ALLOWED


def test_check_order_first_failure_wins():
    policy = make_policy(daily_cap=10, allowed_targets=[RECIPIENT_A], allowed_tokens=[OTHER_TOKEN])
    # Breaks every rule; max amount is reported
    assert evaluate_transfer(policy, 100, RECIPIENT_C, 150, TOKEN).reason == REASON_EXCEEDS_MAX_AMOUNT
    assert evaluate_transfer(policy, 100, RECIPIENT_C, 50, TOKEN).reason == REASON_RECIPIENT_NOT_ALLOWED
    assert evaluate_transfer(policy, 100, RECIPIENT_A, 50, TOKEN).reason == REASON_TOKEN_NOT_ALLOWED
    assert evaluate_transfer(policy, 100, RECIPIENT_A, 50, OTHER_TOKEN).reason == REASON_EXCEEDS_DAILY_CAP


def test_amount_never_clamped():
    decision = evaluate_transfer(make_policy(), 0, RECIPIENT_C, 101, TOKEN)
    assert not decision.allowed
    assert not decision.needs_approval


def test_negative_amount():
    with pytest.raises(ValueError):
        evaluate_transfer(make_policy(), 0, RECIPIENT_C, -1, TOKEN)


def test_policy_rejects_malformed_allow_list():
    with pytest.raises(ValidationError):
        make_policy(allowed_tokens=["0x123"])


def test_policy_accepts_camel_case():
    policy = Policy.model_validate({
        "maxAmount": 5,
        "dailyCap": 10,
        "requiresApproval": True,
        "approvalThreshold": 1,
        "allowedTargets": [],
        "allowedTokens": [TOKEN],
    })
    assert policy.max_amount == 5
    assert policy.requires_approval


class TestPolicyValidator:

    def test_reads_daily_spend_only_with_cap(self, mock_wallet):
        validator = PolicyValidator(mock_wallet)
        validator.simulate_transfer(RECIPIENT_C, 10, TOKEN)
        mock_wallet.get_daily_spent.assert_not_called()

        mock_wallet.get_policy.return_value = make_policy(daily_cap=100)
        mock_wallet.get_daily_spent.return_value = 95
        decision = validator.simulate_transfer(RECIPIENT_C, 10, TOKEN)
        assert decision.reason == REASON_EXCEEDS_DAILY_CAP
        mock_wallet.get_daily_spent.assert_called_once_with()

    def test_explicit_policy_skips_read(self):
        wallet = MagicMock()
        decision = PolicyValidator(wallet).simulate_transfer(RECIPIENT_C, 60, TOKEN, policy=make_policy())
        wallet.get_policy.assert_not_called()
        assert decision.needs_approval

    def test_validate_tuple(self, mock_wallet):
        validator = PolicyValidator(mock_wallet)
        assert validator.validate(RECIPIENT_C, 10, TOKEN) == (True, "")
        assert validator.validate(RECIPIENT_C, 1000, TOKEN) == (False, REASON_EXCEEDS_MAX_AMOUNT)

    def test_get_policy(self, mock_wallet):
        assert PolicyValidator(mock_wallet).get_policy().max_amount == 100
