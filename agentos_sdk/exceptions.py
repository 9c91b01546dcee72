"""
Exceptions for the AgentOS SDK.

Every error that can cross the Agent API boundary carries a stable,
machine-readable ``code`` and a human-readable ``message``.
"""
from enum import Enum
from typing import Any, Optional


class AuthFailure(str, Enum):
    """
    Reasons an inbound signed request is refused by the authenticator.

    All of these map to an unauthorized outcome at the API boundary.
    """
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_ADDRESS = "invalid_address"
    TIMESTAMP_OUT_OF_WINDOW = "timestamp_out_of_window"
    SIGNATURE_INVALID = "signature_invalid"
    REPLAY = "replay"
    REPLAY_CHECK_UNAVAILABLE = "replay_check_unavailable"


class ErrorCode(str, Enum):
    """Envelope error codes returned by the Agent API."""
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    POLICY_VIOLATION = "POLICY_VIOLATION"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    AGENT_NOT_FOUND = "AGENT_NOT_FOUND"
    WALLET_NOT_LINKED = "WALLET_NOT_LINKED"
    CONFIG_ERROR = "CONFIG_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TRANSACTION_ERROR = "TRANSACTION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AgentOSError(Exception):
    """Base exception for all AgentOS errors."""

    code: str = ErrorCode.INTERNAL_ERROR.value
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class AuthError(AgentOSError):
    """Raised when a signed request fails authentication."""

    code = ErrorCode.UNAUTHORIZED.value
    status_code = 401

    def __init__(self, reason: AuthFailure, message: Optional[str] = None):
        self.reason = AuthFailure(reason)
        super().__init__(message or self.reason.value, details={"reason": self.reason.value})


class ForbiddenError(AgentOSError):
    """Raised when an authenticated signer does not hold the role an action needs."""

    code = ErrorCode.FORBIDDEN.value
    status_code = 403


class RequestValidationError(AgentOSError):
    """Raised when a request body is malformed."""

    code = ErrorCode.VALIDATION_ERROR.value
    status_code = 400


class PolicyViolation(AgentOSError):
    """Raised when a proposed transfer breaks the wallet policy."""

    code = ErrorCode.POLICY_VIOLATION.value
    status_code = 400

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class InvalidTransitionError(AgentOSError):
    """Raised when a proposal is moved along an edge the lifecycle does not allow."""

    code = ErrorCode.INVALID_TRANSITION.value
    status_code = 409


class AgentNotFoundError(AgentOSError):
    """Raised when no agent record exists for an authenticated address."""

    code = ErrorCode.AGENT_NOT_FOUND.value
    status_code = 404


class WalletNotLinkedError(AgentOSError):
    """Raised when a wallet is not linked to the authenticated agent."""

    code = ErrorCode.WALLET_NOT_LINKED.value
    status_code = 400


class ConfigError(AgentOSError):
    """Raised for invalid server configuration."""

    code = ErrorCode.CONFIG_ERROR.value
    status_code = 500


class StoreUnavailableError(AgentOSError):
    """Raised when a backing store cannot be reached (not a uniqueness conflict)."""

    code = ErrorCode.SERVICE_UNAVAILABLE.value
    status_code = 500


class TransactionError(AgentOSError):
    """Raised when building, signing or sending a transaction fails."""

    code = ErrorCode.TRANSACTION_ERROR.value
    status_code = 500


class AgentOSAPIError(AgentOSError):
    """Raised by the HTTP client when the Agent API answers with an error envelope."""

    def __init__(self, message: str, code: str = "HTTP_ERROR", status_code: int = 0, details: Optional[Any] = None):
        super().__init__(message, details)
        self.code = code
        self.status_code = status_code
