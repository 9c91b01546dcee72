"""
Per-process components and request dependencies for the Agent API.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from eth_account import Account
from fastapi import Depends, Request
from starlette.concurrency import run_in_threadpool
from web3 import Web3

from ..auth import AgentAuthenticator, SignedRequest
from ..chain import WalletContract
from ..config import AgentOSSettings
from ..exceptions import AgentNotFoundError, ConfigError, WalletNotLinkedError
from ..models import AgentRecord, AgentWallet
from ..proposals import ProposalService
from ..store import RecordStore, is_linked_wallet

logger = logging.getLogger(__name__)


@dataclass
class AgentAPIContext:
    """Everything a route needs, built once by ``create_app``."""
    settings: AgentOSSettings
    authenticator: AgentAuthenticator
    records: RecordStore
    w3: Optional[Web3] = None
    wallet_factory: Optional[Callable[..., WalletContract]] = None

    def wallet(self, wallet_address: str, server_signed: bool = True) -> WalletContract:
        """
        WalletContract for ``wallet_address``.

        The server key is attached only when ``server_signed`` and a key is
        configured; a malformed key is a ConfigError, not a silent fallback.
        """
        signer = None
        if server_signed and self.settings.server_signer_enabled:
            signer = Account.from_key(self.settings.require_server_signer_key())
        if self.wallet_factory is not None:
            return self.wallet_factory(wallet_address, signer=signer)
        if self.w3 is None:
            raise ConfigError("no chain connection configured")
        return WalletContract(self.w3, wallet_address, signer=signer)

    def proposals(self, wallet_address: str, server_signed: bool = True) -> ProposalService:
        return ProposalService(self.wallet(wallet_address, server_signed=server_signed))

    def require_agent(self, address: str) -> AgentRecord:
        agent = self.records.get_agent_by_owner_address(address)
        if agent is None:
            raise AgentNotFoundError("agent not registered for this address")
        return agent

    def require_linked_wallet(self, agent: AgentRecord, wallet_address: str, field: str) -> List[AgentWallet]:
        wallets = self.records.list_linked_wallets(agent.id)
        if not is_linked_wallet(wallets, wallet_address):
            raise WalletNotLinkedError(f"{field} must be a linked wallet for this agent")
        return wallets


@dataclass(frozen=True)
class AuthenticatedRequest:
    """Signer address and the exact body bytes that were signed."""
    address: str
    body: bytes


def get_context(request: Request) -> AgentAPIContext:
    return request.app.state.agentos


async def authenticated_agent(
    request: Request,
    context: AgentAPIContext = Depends(get_context),
) -> AuthenticatedRequest:
    """
    Authenticate the request before any handler logic runs.

    Raises:
        AuthError: Rendered as 401 by the error handlers
    """
    body = await request.body()
    signed = SignedRequest.from_headers(request.headers, request.method, request.url.path, body)
    # The replay store may do network I/O
    address = await run_in_threadpool(context.authenticator.authenticate, signed)
    return AuthenticatedRequest(address=address, body=body)
