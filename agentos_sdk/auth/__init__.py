"""
Signed-request authentication for the Agent API.
"""
from .canonical import (
    build_canonical_message, parse_canonical_message, build_replay_key, sign_request,
    normalize_path, AUTH_HEADERS, CANONICAL_MESSAGE_TEMPLATE, REPLAY_KEY_FORMAT,
    HEADER_ADDRESS, HEADER_SIGNATURE, HEADER_TIMESTAMP,
)
from .verifier import verify_signature, recover_signer
from .replay import (
    ReplayGuard, ReplayOutcome, ReplayStore, InMemoryReplayStore, RedisReplayStore,
    create_replay_store,
)
from .authenticator import AgentAuthenticator, SignedRequest, DEFAULT_TIMESTAMP_TOLERANCE_SECONDS
from .authorization import Role, WalletRoles, authorize, has_role

__all__ = [
    "build_canonical_message", "parse_canonical_message", "build_replay_key", "sign_request",
    "normalize_path", "AUTH_HEADERS", "CANONICAL_MESSAGE_TEMPLATE", "REPLAY_KEY_FORMAT",
    "HEADER_ADDRESS", "HEADER_SIGNATURE", "HEADER_TIMESTAMP",
    "verify_signature", "recover_signer",
    "ReplayGuard", "ReplayOutcome", "ReplayStore", "InMemoryReplayStore", "RedisReplayStore",
    "create_replay_store",
    "AgentAuthenticator", "SignedRequest", "DEFAULT_TIMESTAMP_TOLERANCE_SECONDS",
    "Role", "WalletRoles", "authorize", "has_role",
]
