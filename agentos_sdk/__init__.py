"""
AgentOS SDK - policy-governed wallets for AI agents.
"""
from .version import __version__
from .client import AgentOSClient
from .chain import WalletContract, create_web3
from .config import AgentOSSettings
from .models import (
    Policy, PolicyDecision, Proposal, ProposalStatus, TxReceipt,
    AgentRecord, AgentWallet, AuditEvent, Invoice,
)
from .policy import PolicyValidator, evaluate_transfer
from .proposals import ProposalAction, ProposalService, PreparedCall, SubmittedProposal
from .auth import AgentAuthenticator, ReplayGuard, SignedRequest, sign_request
from .store import InMemoryRecordStore
from .utils import compute_context_hash
from .exceptions import (
    AgentOSError, AgentOSAPIError, AuthError, AuthFailure, ForbiddenError,
    PolicyViolation, InvalidTransitionError, TransactionError, ConfigError,
)

__all__ = [
    "__version__",
    "AgentOSClient",
    "WalletContract",
    "create_web3",
    "AgentOSSettings",
    "Policy",
    "PolicyDecision",
    "Proposal",
    "ProposalStatus",
    "TxReceipt",
    "AgentRecord",
    "AgentWallet",
    "AuditEvent",
    "Invoice",
    "PolicyValidator",
    "evaluate_transfer",
    "ProposalAction",
    "ProposalService",
    "PreparedCall",
    "SubmittedProposal",
    "AgentAuthenticator",
    "ReplayGuard",
    "SignedRequest",
    "sign_request",
    "InMemoryRecordStore",
    "compute_context_hash",
    "AgentOSError",
    "AgentOSAPIError",
    "AuthError",
    "AuthFailure",
    "ForbiddenError",
    "PolicyViolation",
    "InvalidTransitionError",
    "TransactionError",
    "ConfigError",
]
