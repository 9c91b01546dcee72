"""
Per-request authentication for the Agent API.

No session or token is issued: every request carries its own signature
and is checked independently.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, Union

from ..exceptions import AuthError, AuthFailure
from ..utils import is_valid_address, sha256_hex, now_ms
from .canonical import (
    HEADER_ADDRESS, HEADER_SIGNATURE, HEADER_TIMESTAMP,
    build_canonical_message, build_replay_key,
)
from .replay import ReplayGuard, ReplayOutcome
from .verifier import verify_signature

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_TOLERANCE_SECONDS = 300


@dataclass(frozen=True)
class SignedRequest:
    """Everything the authenticator needs from one inbound request."""
    address: str
    signature: str
    timestamp: str
    method: str
    path: str
    body: bytes = b""

    @classmethod
    def from_headers(
        cls,
        headers: Mapping[str, str],
        method: str,
        path: str,
        body: Union[bytes, str] = b"",
    ) -> "SignedRequest":
        """Build a request from a header mapping (names matched case-insensitively)."""
        lowered = {k.lower(): v for k, v in headers.items()}
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            address=(lowered.get(HEADER_ADDRESS) or "").strip(),
            signature=(lowered.get(HEADER_SIGNATURE) or "").strip(),
            timestamp=(lowered.get(HEADER_TIMESTAMP) or "").strip(),
            method=method,
            path=path,
            body=body,
        )

    @property
    def body_sha256(self) -> str:
        return sha256_hex(self.body)


class AgentAuthenticator:
    """
    Admits or refuses signed requests.

    Gates run in a fixed order and the first failure wins: credentials
    present, address well-formed, timestamp inside the window, signature
    valid, key not replayed.
    """

    def __init__(
        self,
        replay_guard: ReplayGuard,
        tolerance_seconds: int = DEFAULT_TIMESTAMP_TOLERANCE_SECONDS,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            replay_guard: Guard consuming one-time request keys
            tolerance_seconds: Allowed clock skew in either direction
            clock: Returns the current time in milliseconds (for tests)
        """
        self.replay_guard = replay_guard
        self.tolerance_seconds = tolerance_seconds
        self.clock = clock or now_ms

    @property
    def tolerance_ms(self) -> int:
        return self.tolerance_seconds * 1000

    def authenticate(self, request: SignedRequest) -> str:
        """
        Authenticate one request.

        Returns:
            The lowercased signer address

        Raises:
            AuthError: With the reason of the first gate that failed
        """
        if not request.address or not request.signature or not request.timestamp:
            raise AuthError(
                AuthFailure.MISSING_CREDENTIALS,
                f"missing {HEADER_ADDRESS}, {HEADER_SIGNATURE}, or {HEADER_TIMESTAMP}",
            )

        if not is_valid_address(request.address):
            raise AuthError(AuthFailure.INVALID_ADDRESS, f"invalid {HEADER_ADDRESS}")

        try:
            timestamp_ms = int(request.timestamp)
        except ValueError:
            raise AuthError(AuthFailure.TIMESTAMP_OUT_OF_WINDOW, f"invalid {HEADER_TIMESTAMP}")
        if abs(self.clock() - timestamp_ms) > self.tolerance_ms:
            raise AuthError(AuthFailure.TIMESTAMP_OUT_OF_WINDOW, "timestamp out of window")

        body_sha256 = request.body_sha256
        message = build_canonical_message(request.address, request.timestamp, request.path, body_sha256)
        if not verify_signature(request.address, message, request.signature):
            raise AuthError(AuthFailure.SIGNATURE_INVALID, "signature verification failed")

        key = build_replay_key(request.address, request.timestamp, request.method, request.path, body_sha256)
        outcome = self.replay_guard.try_consume(key)
        if outcome is ReplayOutcome.DUPLICATE:
            logger.info(f"Replayed request refused for {request.address.lower()} {request.method.upper()} {request.path}")
            raise AuthError(AuthFailure.REPLAY, "replay")
        if outcome is ReplayOutcome.UNAVAILABLE and self.replay_guard.strict:
            raise AuthError(AuthFailure.REPLAY_CHECK_UNAVAILABLE, "replay check unavailable")

        return request.address.lower()
