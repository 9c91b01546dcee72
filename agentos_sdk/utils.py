"""
Utility functions for the AgentOS SDK.
"""
import hashlib
import json
import re
import time
from typing import Any, Dict, Optional, Union

from web3 import Web3

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
PRIVATE_KEY_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

MS_PER_DAY = 86_400_000

# sha256 of the empty body, used for GET requests
EMPTY_BODY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def sha256_hex(data: Union[str, bytes]) -> str:
    """
    Calculate SHA-256 hash and return hex string

    Args:
        data: String or bytes to hash

    Returns:
        Lowercase hex-encoded SHA-256 hash
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def is_valid_address(address: Optional[str]) -> bool:
    """Check for a 0x-prefixed, 20-byte hex address (any letter case)."""
    return bool(address) and ADDRESS_RE.match(address) is not None


def normalize_address(address: Optional[str]) -> str:
    """
    Normalize an address for equality checks.

    Returns:
        The lowercased address, or an empty string if the input is not
        a well-formed address
    """
    value = (address or "").strip()
    if not is_valid_address(value):
        return ""
    return value.lower()


def canonical_json(data: Dict[str, Any]) -> str:
    """
    Serialize a dict to a canonical JSON string.

    Keys are sorted and no insignificant whitespace is emitted, so two
    parties holding the same object produce byte-identical output.
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected a dict, got {type(data).__name__}")
    try:
        text = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        text.encode("utf-8")
    except TypeError as e:
        raise ValueError(f"Context is not JSON-serializable: {e}")
    except UnicodeEncodeError:
        # Lone surrogates survive json.dumps but have no UTF-8 form
        raise ValueError("Context is not valid UTF-8 text")
    return text


def compute_context_hash(context: Optional[Dict[str, Any]] = None) -> str:
    """
    Hash an opaque proposal context blob.

    ``None`` and ``{}`` hash identically.

    Returns:
        0x-prefixed keccak256 of the canonical JSON form
    """
    return Web3.to_hex(Web3.keccak(text=canonical_json(context or {})))


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def epoch_day(timestamp_ms: Optional[int] = None) -> int:
    """Day bucket used by the wallet contract for daily-spend accounting."""
    if timestamp_ms is None:
        timestamp_ms = now_ms()
    return timestamp_ms // MS_PER_DAY
