"""
WalletContract - access to an on-chain AgentWallet.

The core only needs two things from the chain: read policy/state, and
submit a signed transaction. Both live here so the rest of the SDK can be
tested without a node.
"""
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence

from eth_account import Account
from eth_account.signers.base import BaseAccount
from web3 import Web3
from web3.exceptions import Web3Exception
from web3.types import TxReceipt as Web3TxReceipt

from .auth.authorization import WalletRoles
from .exceptions import TransactionError
from .models import Policy, Proposal, ProposalStatus, TxReceipt
from .utils import epoch_day

logger = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 300000
RECEIPT_TIMEOUT_SECONDS = 120

# ABI subset of the AgentWallet contract used by the SDK
AGENT_WALLET_ABI: List[Dict[str, Any]] = [
    {
        "inputs": [],
        "name": "getPolicy",
        "outputs": [
            {"internalType": "uint256", "name": "maxAmount", "type": "uint256"},
            {"internalType": "uint256", "name": "dailyCap", "type": "uint256"},
            {"internalType": "bool", "name": "requiresApproval", "type": "bool"},
            {"internalType": "uint256", "name": "approvalThreshold", "type": "uint256"},
            {"internalType": "uint32", "name": "targetCount", "type": "uint32"},
            {"internalType": "uint32", "name": "tokenCount", "type": "uint32"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getAllowedTargets",
        "outputs": [{"internalType": "address[]", "name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "getAllowedTokens",
        "outputs": [{"internalType": "address[]", "name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "day", "type": "uint256"}],
        "name": "getDailySpent",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "proposalCounter",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "getProposal",
        "outputs": [
            {"internalType": "uint256", "name": "id", "type": "uint256"},
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "bytes32", "name": "contextHash", "type": "bytes32"},
            {"internalType": "uint256", "name": "proposedAt", "type": "uint256"},
            {"internalType": "uint8", "name": "status", "type": "uint8"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "agent",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "human",
        "outputs": [{"internalType": "address", "name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "bytes32", "name": "contextHash", "type": "bytes32"},
        ],
        "name": "proposeTransfer",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "approveTransfer",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "rejectTransfer",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "proposalId", "type": "uint256"}],
        "name": "executeTransfer",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def validate_rpc_url(rpc_url: str) -> None:
    """
    Require https for anything that is not a local node.

    Raises:
        ValueError: If a remote URL does not use https
    """
    parsed = urllib.parse.urlparse(rpc_url)
    host = parsed.hostname or ""
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")


def create_web3(rpc_url: str) -> Web3:
    """Create the Web3 instance shared by every wallet for this process."""
    validate_rpc_url(rpc_url)
    return Web3(Web3.HTTPProvider(rpc_url))


class WalletContract:
    """
    Reads and writes one AgentWallet contract.

    The Web3 instance is injected so one client is shared per process.
    """

    def __init__(
        self,
        w3: Web3,
        wallet_address: str,
        signer: Optional[BaseAccount] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            w3: Connected Web3 instance
            wallet_address: AgentWallet contract address
            signer: Account used for submitted transactions (optional)
            logger: Optional logger instance
        """
        self.w3 = w3
        self.address = Web3.to_checksum_address(wallet_address)
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)
        self.contract = w3.eth.contract(address=self.address, abi=AGENT_WALLET_ABI)

    @classmethod
    def with_private_key(cls, w3: Web3, wallet_address: str, private_key: str) -> "WalletContract":
        return cls(w3, wallet_address, signer=Account.from_key(private_key))

    # Reads

    def get_policy(self) -> Policy:
        """Read the wallet's full policy, including both allow-lists."""
        max_amount, daily_cap, requires_approval, approval_threshold, _, _ = (
            self.contract.functions.getPolicy().call()
        )
        return Policy(
            max_amount=max_amount,
            daily_cap=daily_cap,
            requires_approval=requires_approval,
            approval_threshold=approval_threshold,
            allowed_targets=list(self.contract.functions.getAllowedTargets().call()),
            allowed_tokens=list(self.contract.functions.getAllowedTokens().call()),
        )

    def get_daily_spent(self, day: Optional[int] = None) -> int:
        """Amount already spent in the given epoch-day bucket (default today)."""
        if day is None:
            day = epoch_day()
        return self.contract.functions.getDailySpent(day).call()

    def proposal_counter(self) -> int:
        return self.contract.functions.proposalCounter().call()

    def get_proposal(self, proposal_id: int) -> Proposal:
        pid, to, amount, token, context_hash, proposed_at, status = (
            self.contract.functions.getProposal(proposal_id).call()
        )
        return Proposal(
            id=pid,
            to=to.lower(),
            amount=amount,
            token=token.lower(),
            context_hash=Web3.to_hex(context_hash),
            proposed_at=proposed_at,
            status=ProposalStatus(status),
        )

    def get_roles(self) -> WalletRoles:
        return WalletRoles(
            wallet_address=self.address.lower(),
            agent=self.contract.functions.agent().call(),
            human=self.contract.functions.human().call(),
        )

    # Writes

    def encode_call(self, function_name: str, args: Sequence[Any]) -> str:
        """ABI-encode a call for a client wallet to sign and submit."""
        return self.contract.encode_abi(function_name, args=list(args))

    def submit(self, function_name: str, args: Sequence[Any], gas: Optional[int] = None) -> TxReceipt:
        """
        Sign a contract call with the configured signer, send it and wait for the receipt.

        Raises:
            TransactionError: If signing, sending or mining fails
            ValueError: If no signer is configured
        """
        if self.signer is None:
            raise ValueError("No signer configured for submitted transactions")

        fn = getattr(self.contract.functions, function_name)(*args)
        from_address = self.signer.address

        try:
            nonce = self.w3.eth.get_transaction_count(from_address)

            if gas is None:
                try:
                    # Add 10% buffer to gas estimate
                    gas = int(fn.estimate_gas({"from": from_address}) * 1.1)
                    self.logger.debug(f"Estimated gas: {gas}")
                except Exception as e:
                    gas = DEFAULT_GAS_LIMIT
                    self.logger.warning(f"Gas estimation failed, using default: {gas}. Error: {e}")

            tx = fn.build_transaction({
                "from": from_address,
                "nonce": nonce,
                "gas": gas,
                "gasPrice": self.w3.eth.gas_price,
            })
        except Web3Exception as e:
            self.logger.error(f"Failed to build {function_name} transaction: {e}")
            raise TransactionError(f"Failed to build transaction: {e}")

        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise TransactionError(f"Failed to sign transaction: {e}")

        try:
            tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
            self.logger.info(f"{function_name} transaction sent: {Web3.to_hex(tx_hash)}")
            receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=RECEIPT_TIMEOUT_SECONDS)
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise TransactionError(f"Failed to send transaction: {e}")

        result = self._convert_receipt(receipt)
        if result.status != 1:
            raise TransactionError(f"{function_name} transaction reverted: {result.tx_hash}")
        return result

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxReceipt:
        """
        Convert Web3 receipt to our TxReceipt model
        """
        receipt_dict = dict(web3_receipt)

        # Convert bytes to hex strings
        for key, value in list(receipt_dict.items()):
            if isinstance(value, bytes):
                receipt_dict[key] = Web3.to_hex(value)

        receipt_dict["logs"] = [dict(log) for log in receipt_dict.get("logs", [])]
        return TxReceipt.model_validate(receipt_dict)
