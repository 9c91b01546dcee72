"""
Data models for the AgentOS SDK.
"""
from enum import IntEnum
from typing import Dict, Any, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils import is_valid_address, normalize_address


class ProposalStatus(IntEnum):
    """On-chain proposal status, numbered as the wallet contract numbers them."""
    PENDING = 0
    APPROVED = 1
    REJECTED = 2
    EXECUTED = 3

    @property
    def is_terminal(self) -> bool:
        return self in (ProposalStatus.REJECTED, ProposalStatus.EXECUTED)


class Policy(BaseModel):
    """Spending policy of a governed wallet, as read from the contract."""
    max_amount: int = Field(..., ge=0, alias="maxAmount")
    daily_cap: int = Field(0, ge=0, alias="dailyCap")
    requires_approval: bool = Field(False, alias="requiresApproval")
    approval_threshold: int = Field(0, ge=0, alias="approvalThreshold")
    allowed_targets: List[str] = Field(default_factory=list, alias="allowedTargets")
    allowed_tokens: List[str] = Field(..., alias="allowedTokens")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("allowed_targets", "allowed_tokens")
    @classmethod
    def _lowercase_addresses(cls, value: List[str]) -> List[str]:
        for addr in value:
            if not is_valid_address(addr):
                raise ValueError(f"invalid address in allow-list: {addr}")
        return [normalize_address(addr) for addr in value]


class PolicyDecision(BaseModel):
    """Outcome of evaluating a proposed transfer against a policy."""
    allowed: bool
    needs_approval: bool = False
    reason: Optional[str] = None


class Proposal(BaseModel):
    """A transfer proposal held by the wallet contract."""
    id: int
    to: str
    amount: int
    token: str
    context_hash: str = Field(..., alias="contextHash")
    proposed_at: int = Field(..., alias="proposedAt")
    status: ProposalStatus

    model_config = ConfigDict(populate_by_name=True)


class AgentRecord(BaseModel):
    """Agent registry row. Owned by the external record store."""
    id: str
    name: str
    owner_address: str
    created_at: str


class AgentWallet(BaseModel):
    """A governed wallet linked to an agent."""
    id: str
    agent_id: str
    wallet_address: str
    chain_id: int
    label: str = ""
    created_at: str


class AuditEvent(BaseModel):
    """Append-only audit log entry."""
    id: str
    agent_id: str
    type: str
    payload: Optional[Dict[str, Any]] = None
    created_at: str


class Invoice(BaseModel):
    """Invoice issued against one of an agent's linked wallets."""
    id: str
    agent_id: str
    to_wallet_address: str
    amount: str
    token_address: Optional[str] = None
    chain_id: int
    memo: Optional[str] = None
    status: str = "issued"
    created_at: str


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)
