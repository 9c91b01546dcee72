"""
Transfer proposal lifecycle.

    Pending --approve--> Approved --execute--> Executed
       |                    |
       +------reject--------+-----> Rejected

Executed and Rejected are terminal. Approve and reject belong to the
wallet's human; execute belongs to the agent.
"""
import logging
import time
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from web3 import Web3
from web3.exceptions import Web3Exception

from .auth.authorization import Role, authorize
from .exceptions import InvalidTransitionError, PolicyViolation
from .models import Proposal, ProposalStatus
from .policy import PolicyValidator
from .utils import compute_context_hash

logger = logging.getLogger(__name__)

# Failures to read wallet state; anything else is a real error
PREFLIGHT_READ_ERRORS = (Web3Exception, requests.RequestException, OSError, ValidationError)


class ProposalAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    EXECUTE = "execute"


# action -> (statuses it may start from, resulting status, role that may take it)
_TRANSITIONS = {
    ProposalAction.APPROVE: ({ProposalStatus.PENDING}, ProposalStatus.APPROVED, Role.HUMAN),
    ProposalAction.REJECT: ({ProposalStatus.PENDING, ProposalStatus.APPROVED}, ProposalStatus.REJECTED, Role.HUMAN),
    ProposalAction.EXECUTE: ({ProposalStatus.APPROVED}, ProposalStatus.EXECUTED, Role.AGENT),
}

_CONTRACT_FUNCTIONS = {
    ProposalAction.APPROVE: "approveTransfer",
    ProposalAction.REJECT: "rejectTransfer",
    ProposalAction.EXECUTE: "executeTransfer",
}

INITIAL_STATUS = ProposalStatus.PENDING


def next_status(current: ProposalStatus, action: ProposalAction) -> ProposalStatus:
    """
    Resulting status of taking ``action`` from ``current``.

    Raises:
        InvalidTransitionError: If the lifecycle does not allow it
    """
    sources, target, _ = _TRANSITIONS[action]
    if current not in sources:
        raise InvalidTransitionError(
            f"cannot {action.value} a proposal that is {current.name.lower()}",
            details={"status": current.name, "action": action.value},
        )
    return target


def can_transition(current: ProposalStatus, target: ProposalStatus) -> bool:
    return any(
        current in sources and target == result
        for sources, result, _ in _TRANSITIONS.values()
    )


def required_role(action: ProposalAction) -> Role:
    return _TRANSITIONS[action][2]


def apply_action(proposal: Proposal, action: ProposalAction) -> Proposal:
    """Return a copy of ``proposal`` moved along ``action``."""
    return proposal.model_copy(update={"status": next_status(proposal.status, action)})


class SubmittedProposal(BaseModel):
    """The server signed and submitted the transaction itself."""
    mode: Literal["submitted"] = "submitted"
    proposal_id: str = Field(..., alias="proposalId")
    tx_hash: str = Field(..., alias="txHash")
    needs_approval: Optional[bool] = Field(None, alias="needsApproval")

    model_config = ConfigDict(populate_by_name=True)


class PreparedCall(BaseModel):
    """Unsigned call data for a client wallet to sign and submit."""
    mode: Literal["prepared"] = "prepared"
    contract_address: str = Field(..., alias="contractAddress")
    calldata: str
    function_name: str = Field(..., alias="functionName")
    args: Dict[str, Any]
    context_hash: Optional[str] = Field(None, alias="contextHash")
    needs_approval: Optional[bool] = Field(None, alias="needsApproval")

    model_config = ConfigDict(populate_by_name=True)


ProposalResult = Union[SubmittedProposal, PreparedCall]


class ProposalService:
    """
    Creates and advances proposals on one wallet.

    When the wallet has a signer configured, proposals are signed and
    submitted by this process ("submitted" mode). Otherwise call data is
    returned for a client wallet to submit ("prepared" mode).
    """

    def __init__(self, wallet, preflight: bool = True, logger: Optional[logging.Logger] = None):
        """
        Args:
            wallet: WalletContract for the governed wallet
            preflight: Run the advisory policy check before proposing
            logger: Optional logger instance
        """
        self.wallet = wallet
        self.preflight = preflight
        self.logger = logger or logging.getLogger(__name__)
        self.validator = PolicyValidator(wallet)

    @property
    def server_signed(self) -> bool:
        return self.wallet.signer is not None

    def propose(
        self,
        to: str,
        amount: int,
        token: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> ProposalResult:
        """
        Propose a transfer from the wallet.

        Raises:
            PolicyViolation: If the advisory pre-flight rejects the transfer
            TransactionError: If a server-signed submission fails
            ValueError: If the amount is negative or the context cannot be hashed
        """
        if amount < 0:
            raise ValueError("amount must be non-negative")
        context_hash = compute_context_hash(context)
        needs_approval = self._preflight(to, amount, token)

        to_address = Web3.to_checksum_address(to)
        token_address = Web3.to_checksum_address(token)
        args = [to_address, amount, token_address, Web3.to_bytes(hexstr=context_hash)]

        if self.server_signed:
            receipt = self.wallet.submit("proposeTransfer", args)
            proposal_id = self.wallet.proposal_counter()
            self.logger.info(f"Proposal {proposal_id} submitted on {self.wallet.address}: {receipt.tx_hash}")
            return SubmittedProposal(
                proposal_id=str(proposal_id),
                tx_hash=receipt.tx_hash,
                needs_approval=needs_approval,
            )

        return PreparedCall(
            contract_address=self.wallet.address,
            calldata=self.wallet.encode_call("proposeTransfer", args),
            function_name="proposeTransfer",
            args={"to": to_address, "amount": str(amount), "token": token_address, "contextHash": context_hash},
            context_hash=context_hash,
            needs_approval=needs_approval,
        )

    def _preflight(self, to: str, amount: int, token: str) -> Optional[bool]:
        if not self.preflight:
            return None
        try:
            decision = self.validator.simulate_transfer(to, amount, token)
        except PREFLIGHT_READ_ERRORS as e:
            # Advisory only; the contract enforces the policy regardless
            self.logger.warning(f"Policy pre-flight skipped, could not read wallet state: {e}")
            return None
        if not decision.allowed:
            raise PolicyViolation(decision.reason)
        return decision.needs_approval

    def prepare_action(self, proposal_id: int, action: ProposalAction, identity: str) -> ProposalResult:
        """
        Authorize ``identity`` for ``action`` and produce the call that performs it.

        Approve and reject are always prepared for the human's own wallet to
        sign; the server key never stands in for the human. Execute is
        submitted when the server holds the agent key.

        Raises:
            ForbiddenError: If identity lacks the role the action needs
            InvalidTransitionError: If the proposal's status does not allow it
        """
        roles = self.wallet.get_roles()
        authorize(identity, roles, required_role(action), f"{action.value} transfer")

        proposal = self.wallet.get_proposal(proposal_id)
        next_status(proposal.status, action)

        function_name = _CONTRACT_FUNCTIONS[action]
        if action is ProposalAction.EXECUTE and self.server_signed:
            receipt = self.wallet.submit(function_name, [proposal_id])
            return SubmittedProposal(proposal_id=str(proposal_id), tx_hash=receipt.tx_hash)

        return PreparedCall(
            contract_address=self.wallet.address,
            calldata=self.wallet.encode_call(function_name, [proposal_id]),
            function_name=function_name,
            args={"proposalId": str(proposal_id)},
        )

    def approve(self, proposal_id: int, identity: str) -> ProposalResult:
        return self.prepare_action(proposal_id, ProposalAction.APPROVE, identity)

    def reject(self, proposal_id: int, identity: str) -> ProposalResult:
        return self.prepare_action(proposal_id, ProposalAction.REJECT, identity)

    def execute(self, proposal_id: int, identity: str) -> ProposalResult:
        return self.prepare_action(proposal_id, ProposalAction.EXECUTE, identity)

    def wait_for_proposal(
        self,
        proposal_id: int,
        target_status: Optional[ProposalStatus] = None,
        timeout: float = 60.0,
        poll_interval: float = 1.0,
    ) -> Proposal:
        """
        Poll until the proposal reaches ``target_status`` or a terminal status.

        Raises:
            TimeoutError: If neither happens within ``timeout`` seconds
        """
        deadline = time.monotonic() + timeout
        while True:
            proposal = self.wallet.get_proposal(proposal_id)
            if target_status is None or proposal.status == target_status or proposal.status.is_terminal:
                return proposal
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Timeout waiting for proposal {proposal_id}")
            time.sleep(poll_interval)
