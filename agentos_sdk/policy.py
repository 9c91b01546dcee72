"""
Transfer policy evaluation.

``evaluate_transfer`` is a pure function shared by the SDK pre-flight and
the Agent API. Neither is a security boundary: the wallet contract applies
the same rules on-chain and is the final arbiter. Daily spend in
particular can change between an advisory check and execution, so a
contract-side rejection after a passing pre-flight is a normal outcome.
"""
import logging
from typing import Optional, Tuple

from .models import Policy, PolicyDecision
from .utils import normalize_address

logger = logging.getLogger(__name__)

REASON_EXCEEDS_MAX_AMOUNT = "exceeds max amount"
REASON_RECIPIENT_NOT_ALLOWED = "recipient not allowed"
REASON_TOKEN_NOT_ALLOWED = "token not allowed"
REASON_EXCEEDS_DAILY_CAP = "exceeds daily cap"


def evaluate_transfer(policy: Policy, daily_spent_today: int, to: str, amount: int, token: str) -> PolicyDecision:
    """
    Evaluate a proposed transfer against a wallet policy.

    Checks run in a fixed order and the first failure wins:
    max amount, recipient allow-list, token allow-list, daily cap.
    A daily cap of zero means no daily limit.

    Returns:
        A decision; when allowed, ``needs_approval`` is set if the policy
        requires approval globally or the amount is above the threshold
    """
    if amount < 0:
        raise ValueError("amount must be non-negative")

    if amount > policy.max_amount:
        return PolicyDecision(allowed=False, reason=REASON_EXCEEDS_MAX_AMOUNT)

    if policy.allowed_targets and normalize_address(to) not in policy.allowed_targets:
        return PolicyDecision(allowed=False, reason=REASON_RECIPIENT_NOT_ALLOWED)

    if normalize_address(token) not in policy.allowed_tokens:
        return PolicyDecision(allowed=False, reason=REASON_TOKEN_NOT_ALLOWED)

    if policy.daily_cap > 0 and daily_spent_today + amount > policy.daily_cap:
        return PolicyDecision(allowed=False, reason=REASON_EXCEEDS_DAILY_CAP)

    needs_approval = policy.requires_approval or amount > policy.approval_threshold
    return PolicyDecision(allowed=True, needs_approval=needs_approval)


class PolicyValidator:
    """
    Client-side guardrails for one wallet.

    Reads the live policy and daily spend from the contract and runs
    ``evaluate_transfer`` on them.
    """

    def __init__(self, wallet):
        """
        Args:
            wallet: WalletContract (or anything with get_policy/get_daily_spent)
        """
        self.wallet = wallet

    def get_policy(self) -> Policy:
        return self.wallet.get_policy()

    def simulate_transfer(self, to: str, amount: int, token: str, policy: Optional[Policy] = None) -> PolicyDecision:
        """
        Pre-flight a transfer against the current on-chain state.

        Daily spend is only read when the policy has a daily cap.
        """
        if policy is None:
            policy = self.get_policy()
        spent = self.wallet.get_daily_spent() if policy.daily_cap > 0 else 0
        decision = evaluate_transfer(policy, spent, to, amount, token)
        if not decision.allowed:
            logger.debug(f"Pre-flight rejected transfer of {amount} to {to}: {decision.reason}")
        return decision

    def validate(self, to: str, amount: int, token: str) -> Tuple[bool, str]:
        """
        Check a transfer against the current on-chain state.

        Returns (is_allowed, reason) where reason explains why if not allowed.
        """
        decision = self.simulate_transfer(to, amount, token)
        return decision.allowed, decision.reason or ""
