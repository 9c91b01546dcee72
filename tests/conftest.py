"""
Pytest fixtures for the AgentOS SDK tests.
"""
import json
import time
from unittest.mock import MagicMock

import pytest
from eth_account import Account
from fastapi.testclient import TestClient
from web3 import Web3

from agentos_sdk.api import create_app
from agentos_sdk.auth import AgentAuthenticator, InMemoryReplayStore, ReplayGuard, sign_request
from agentos_sdk.auth.authorization import WalletRoles
from agentos_sdk.chain import WalletContract
from agentos_sdk.config import AgentOSSettings
from agentos_sdk.models import Policy, Proposal, ProposalStatus, TxReceipt
from agentos_sdk.store import InMemoryRecordStore

# Constants for testing
AGENT_KEY = "0x0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef"
HUMAN_KEY = "0x1111111111111111111111111111111111111111111111111111111111111111"
OTHER_KEY = "0x2222222222222222222222222222222222222222222222222222222222222222"
SERVER_KEY = "0x3333333333333333333333333333333333333333333333333333333333333333"

WALLET_ADDRESS = "0x1234567890123456789012345678901234567890"
RECIPIENT_A = "0xaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa"
RECIPIENT_B = "0xbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbbb"
RECIPIENT_C = "0xcccccccccccccccccccccccccccccccccccccccc"
TOKEN = "0xdddddddddddddddddddddddddddddddddddddddd"
OTHER_TOKEN = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

FIXED_NOW_MS = 1_700_000_000_000
TX_HASH = "0x" + "ab" * 32
CALLDATA = "0xdeadbeef"


@pytest.fixture(autouse=True)
def _fast_sleep(monkeypatch):
    """Make time.sleep instantaneous so polling doesn't slow the suite down"""
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "AGENTOS_REPLAY_REQUIRED", "AGENTOS_SERVER_SIGNER_PRIVATE_KEY", "AGENTOS_RPC_URL",
        "AGENTOS_CHAIN_ID", "AGENTOS_REPLAY_STORE", "AGENTOS_REDIS_URL",
        "AGENTOS_TIMESTAMP_TOLERANCE_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def agent_account():
    return Account.from_key(AGENT_KEY)


@pytest.fixture
def human_account():
    return Account.from_key(HUMAN_KEY)


@pytest.fixture
def other_account():
    return Account.from_key(OTHER_KEY)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW_MS


@pytest.fixture
def replay_store():
    return InMemoryReplayStore(ttl_seconds=600)


@pytest.fixture
def authenticator(replay_store, fixed_clock):
    return AgentAuthenticator(ReplayGuard(replay_store, strict=True), clock=fixed_clock)


def make_policy(**overrides) -> Policy:
    """Policy used across the tests: maxAmount 100, threshold 50, one token."""
    values = {
        "max_amount": 100,
        "daily_cap": 0,
        "requires_approval": False,
        "approval_threshold": 50,
        "allowed_targets": [],
        "allowed_tokens": [TOKEN],
    }
    values.update(overrides)
    return Policy(**values)


def make_proposal(status=ProposalStatus.PENDING, proposal_id=7) -> Proposal:
    return Proposal(
        id=proposal_id,
        to=RECIPIENT_A,
        amount=60,
        token=TOKEN,
        context_hash="0x" + "00" * 32,
        proposed_at=FIXED_NOW_MS // 1000,
        status=status,
    )


def make_receipt(status=1) -> TxReceipt:
    return TxReceipt(
        tx_hash=TX_HASH,
        block_number=12345,
        block_hash="0x" + "cd" * 32,
        status=status,
        gas_used=85000,
        from_address=Account.from_key(SERVER_KEY).address,
        to_address=Web3.to_checksum_address(WALLET_ADDRESS),
    )


@pytest.fixture
def mock_wallet(agent_account, human_account):
    """WalletContract stand-in with a permissive policy and a pending proposal #7"""
    wallet = MagicMock(spec=WalletContract)
    wallet.address = Web3.to_checksum_address(WALLET_ADDRESS)
    wallet.signer = None
    wallet.get_policy.return_value = make_policy()
    wallet.get_daily_spent.return_value = 0
    wallet.proposal_counter.return_value = 7
    wallet.get_proposal.return_value = make_proposal()
    wallet.get_roles.return_value = WalletRoles(
        wallet_address=WALLET_ADDRESS,
        agent=agent_account.address,
        human=human_account.address,
    )
    wallet.encode_call.return_value = CALLDATA
    wallet.submit.return_value = make_receipt()
    return wallet


@pytest.fixture
def record_store(agent_account):
    store = InMemoryRecordStore()
    agent = store.add_agent("Lexa", agent_account.address)
    store.link_wallet(agent.id, WALLET_ADDRESS, chain_id=31337, label="ops")
    return store


@pytest.fixture
def settings():
    return AgentOSSettings()


@pytest.fixture
def app(settings, record_store, authenticator, mock_wallet):
    def wallet_factory(wallet_address, signer=None):
        mock_wallet.signer = signer
        return mock_wallet

    return create_app(
        settings=settings,
        record_store=record_store,
        authenticator=authenticator,
        wallet_factory=wallet_factory,
    )


@pytest.fixture
def api(app):
    return TestClient(app)


@pytest.fixture
def signed_call(api, agent_account):
    """Send a request signed at FIXED_NOW_MS; returns the response."""
    def _call(method, path, body=None, account=None, timestamp=FIXED_NOW_MS, headers=None):
        body_text = json.dumps(body) if body is not None else ""
        all_headers = sign_request(account or agent_account, path, body_text, timestamp=timestamp)
        if body_text:
            all_headers["Content-Type"] = "application/json"
        all_headers.update(headers or {})
        return api.request(method, path, content=body_text.encode("utf-8") if body_text else None, headers=all_headers)

    return _call
