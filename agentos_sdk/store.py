"""
Record store for agents, linked wallets, audit events and invoices.

The Agent API does not own this data; it talks to whatever backend holds
it through the narrow ``RecordStore`` interface. ``InMemoryRecordStore``
serves development and tests.
"""
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from .models import AgentRecord, AgentWallet, AuditEvent, Invoice
from .utils import normalize_address

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore(Protocol):
    """Backend interface. Implementations raise StoreUnavailableError on connectivity errors."""

    def get_agent_by_owner_address(self, owner_address: str) -> Optional[AgentRecord]:
        ...

    def list_linked_wallets(self, agent_id: str) -> List[AgentWallet]:
        ...

    def append_audit(self, agent_id: str, event_type: str, payload: Dict[str, Any]) -> AuditEvent:
        ...

    def create_invoice(
        self,
        agent_id: str,
        to_wallet_address: str,
        amount: str,
        chain_id: int,
        token_address: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> Invoice:
        ...


def is_linked_wallet(wallets: List[AgentWallet], wallet_address: str) -> bool:
    """Case-insensitive membership of ``wallet_address`` in ``wallets``."""
    normalized = normalize_address(wallet_address)
    if not normalized:
        return False
    return any(w.wallet_address.lower() == normalized for w in wallets)


class InMemoryRecordStore:
    """Thread-safe, process-local RecordStore."""

    def __init__(self):
        self._agents: Dict[str, AgentRecord] = {}
        self._wallets: List[AgentWallet] = []
        self._audit: List[AuditEvent] = []
        self._invoices: Dict[str, Invoice] = {}
        self._lock = threading.RLock()

    # Agent methods

    def add_agent(self, name: str, owner_address: str) -> AgentRecord:
        """Register an agent. The stored address keeps the caller's letter case."""
        if not normalize_address(owner_address):
            raise ValueError(f"invalid owner address: {owner_address}")
        agent = AgentRecord(id=str(uuid.uuid4()), name=name, owner_address=owner_address, created_at=_now_iso())
        with self._lock:
            self._agents[agent.id] = agent
        return agent

    def get_agent_by_owner_address(self, owner_address: str) -> Optional[AgentRecord]:
        normalized = normalize_address(owner_address)
        if not normalized:
            return None
        with self._lock:
            for agent in self._agents.values():
                if agent.owner_address.lower() == normalized:
                    return agent
        return None

    # Wallet methods

    def link_wallet(self, agent_id: str, wallet_address: str, chain_id: int, label: str = "") -> AgentWallet:
        if not normalize_address(wallet_address):
            raise ValueError(f"invalid wallet address: {wallet_address}")
        wallet = AgentWallet(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            wallet_address=wallet_address,
            chain_id=chain_id,
            label=label,
            created_at=_now_iso(),
        )
        with self._lock:
            self._wallets.append(wallet)
        return wallet

    def list_linked_wallets(self, agent_id: str) -> List[AgentWallet]:
        """Linked wallets of an agent, oldest first."""
        with self._lock:
            return [w for w in self._wallets if w.agent_id == agent_id]

    # Audit methods

    def append_audit(self, agent_id: str, event_type: str, payload: Dict[str, Any]) -> AuditEvent:
        event = AuditEvent(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            type=event_type,
            payload=payload,
            created_at=_now_iso(),
        )
        with self._lock:
            self._audit.append(event)
        logger.debug(f"Audit event {event.type} recorded for agent {agent_id}")
        return event

    def list_audit(self, agent_id: str) -> List[AuditEvent]:
        with self._lock:
            return [e for e in self._audit if e.agent_id == agent_id]

    # Invoice methods

    def create_invoice(
        self,
        agent_id: str,
        to_wallet_address: str,
        amount: str,
        chain_id: int,
        token_address: Optional[str] = None,
        memo: Optional[str] = None,
    ) -> Invoice:
        invoice = Invoice(
            id=str(uuid.uuid4()),
            agent_id=agent_id,
            to_wallet_address=to_wallet_address,
            amount=amount,
            token_address=token_address,
            chain_id=chain_id,
            memo=memo,
            created_at=_now_iso(),
        )
        with self._lock:
            self._invoices[invoice.id] = invoice
        return invoice

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        with self._lock:
            return self._invoices.get(invoice_id)
