"""
Canonical message codec for signed Agent API requests.

Client and server must produce the exact same string byte-for-byte, so
everything here is deterministic and free of I/O.
"""
from typing import Dict, Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.base import BaseAccount
from web3 import Web3

from ..utils import sha256_hex, now_ms

MESSAGE_PREFIX = "AgentOS Agent API"
CANONICAL_MESSAGE_TEMPLATE = (
    "AgentOS Agent API\naddress=<address>\ntimestamp=<timestamp>\npath=<pathname>\nbodySha256=<sha256>"
)
REPLAY_KEY_FORMAT = "address:timestamp:method:path:bodySha256"

HEADER_ADDRESS = "x-agent-address"
HEADER_SIGNATURE = "x-agent-signature"
HEADER_TIMESTAMP = "x-agent-timestamp"
AUTH_HEADERS = [HEADER_ADDRESS, HEADER_SIGNATURE, HEADER_TIMESTAMP]

_FIELDS = ("address", "timestamp", "path", "bodySha256")


def normalize_path(path: str) -> str:
    """Ensure a leading slash. Trailing slashes are left to the router."""
    return path if path.startswith("/") else f"/{path}"


def build_canonical_message(address: str, timestamp: Union[str, int], path: str, body_sha256: str) -> str:
    """
    Build the string an agent signs for one request.

    Args:
        address: Address exactly as sent in the x-agent-address header
        timestamp: Millisecond timestamp exactly as sent in x-agent-timestamp
        path: Request pathname
        body_sha256: Hex SHA-256 of the raw request body ('' for no body)

    Returns:
        The canonical message
    """
    return (
        f"{MESSAGE_PREFIX}\n"
        f"address={address}\n"
        f"timestamp={timestamp}\n"
        f"path={normalize_path(path)}\n"
        f"bodySha256={body_sha256}"
    )


def parse_canonical_message(message: str) -> Dict[str, str]:
    """
    Split a canonical message back into its fields.

    Raises:
        ValueError: If the message does not follow the canonical layout
    """
    lines = message.split("\n")
    if len(lines) != len(_FIELDS) + 1 or lines[0] != MESSAGE_PREFIX:
        raise ValueError("Not an AgentOS canonical message")

    fields = {}
    for name, line in zip(_FIELDS, lines[1:]):
        prefix = f"{name}="
        if not line.startswith(prefix):
            raise ValueError(f"Expected field '{name}' in canonical message, got: {line[:40]}")
        fields[name] = line[len(prefix):]
    return fields


def build_replay_key(address: str, timestamp: Union[str, int], method: str, path: str, body_sha256: str) -> str:
    """
    Build the one-time-use key stored by the replay guard.

    The HTTP method is part of the key so a GET and a POST with otherwise
    identical fields never collide.
    """
    return ":".join([
        address.lower(),
        str(timestamp),
        method.upper(),
        normalize_path(path),
        body_sha256.lower(),
    ])


def sign_request(
    account: Union[BaseAccount, str],
    path: str,
    body: Union[str, bytes] = "",
    timestamp: Optional[int] = None,
) -> Dict[str, str]:
    """
    Produce the authentication headers for one Agent API request.

    Args:
        account: eth_account account or hex private key of the agent
        path: Request pathname, as the server will see it
        body: Exact body that will be sent ('' for no body)
        timestamp: Millisecond timestamp (defaults to now)

    Returns:
        Dictionary of x-agent-* headers
    """
    if isinstance(account, str):
        account = Account.from_key(account)
    if timestamp is None:
        timestamp = now_ms()

    message = build_canonical_message(account.address, timestamp, path, sha256_hex(body))
    signed = account.sign_message(encode_defunct(text=message))

    return {
        HEADER_ADDRESS: account.address,
        HEADER_SIGNATURE: Web3.to_hex(signed.signature),
        HEADER_TIMESTAMP: str(timestamp),
    }
