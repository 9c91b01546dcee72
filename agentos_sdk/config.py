"""
Environment-level configuration for the Agent API.

Values are read once at start-up and passed explicitly to the components
that need them.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .auth.authenticator import DEFAULT_TIMESTAMP_TOLERANCE_SECONDS
from .auth.replay import REPLAY_STORE_MEMORY
from .exceptions import ConfigError
from .utils import PRIVATE_KEY_RE

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "http://127.0.0.1:8545"
DEFAULT_CHAIN_ID = 31337
REPLAY_TTL_SKEW_MARGIN_SECONDS = 60

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def is_replay_required() -> bool:
    """
    Whether replay-store errors fail authentication (fail-closed).

    AGENTOS_REPLAY_REQUIRED=0/false opts into fail-open; anything else,
    including unset, is strict.
    """
    value = os.environ.get("AGENTOS_REPLAY_REQUIRED", "").strip().lower()
    if value in _FALSE_VALUES:
        return False
    if value and value not in _TRUE_VALUES:
        logger.warning(f"Unknown AGENTOS_REPLAY_REQUIRED value: {value}, defaulting to strict")
    return True


def get_server_signer_private_key() -> Optional[str]:
    """Server signing key, or None. Never log the return value."""
    raw = os.environ.get("AGENTOS_SERVER_SIGNER_PRIVATE_KEY", "").strip()
    return raw or None


@dataclass
class AgentOSSettings:
    """Settings for one Agent API process."""
    replay_strict: bool = True
    server_signer_private_key: Optional[str] = field(default=None, repr=False)
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    replay_store: str = REPLAY_STORE_MEMORY
    redis_url: Optional[str] = field(default=None, repr=False)
    timestamp_tolerance_seconds: int = DEFAULT_TIMESTAMP_TOLERANCE_SECONDS

    @classmethod
    def from_env(cls) -> "AgentOSSettings":
        """
        Build settings from AGENTOS_* environment variables.

        Raises:
            ConfigError: If a numeric variable is not a number
        """
        try:
            chain_id = int(os.environ.get("AGENTOS_CHAIN_ID", DEFAULT_CHAIN_ID))
            tolerance = int(os.environ.get(
                "AGENTOS_TIMESTAMP_TOLERANCE_SECONDS", DEFAULT_TIMESTAMP_TOLERANCE_SECONDS
            ))
        except ValueError as e:
            raise ConfigError(f"invalid numeric setting: {e}")

        return cls(
            replay_strict=is_replay_required(),
            server_signer_private_key=get_server_signer_private_key(),
            rpc_url=os.environ.get("AGENTOS_RPC_URL", DEFAULT_RPC_URL).strip(),
            chain_id=chain_id,
            replay_store=os.environ.get("AGENTOS_REPLAY_STORE", REPLAY_STORE_MEMORY).strip().lower(),
            redis_url=os.environ.get("AGENTOS_REDIS_URL") or None,
            timestamp_tolerance_seconds=tolerance,
        )

    @property
    def server_signer_enabled(self) -> bool:
        return bool(self.server_signer_private_key)

    def require_server_signer_key(self) -> str:
        """
        Return the configured server key after checking its format.

        Raises:
            ConfigError: If the key is present but malformed
        """
        key = self.server_signer_private_key or ""
        if not PRIVATE_KEY_RE.match(key):
            raise ConfigError("invalid AGENTOS_SERVER_SIGNER_PRIVATE_KEY")
        return key

    @property
    def replay_ttl_seconds(self) -> int:
        # Accepted for up to two windows after insert; the margin covers skew between hosts sharing a store
        return 2 * self.timestamp_tolerance_seconds + REPLAY_TTL_SKEW_MARGIN_SECONDS
