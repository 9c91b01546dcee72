"""
AgentOSClient - signed HTTP client for the Agent API.
"""
import json
import logging
import urllib.parse
from typing import Any, Dict, Optional

import requests
from eth_account import Account
from eth_account.signers.base import BaseAccount
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .auth.canonical import HEADER_SIGNATURE, sign_request
from .exceptions import AgentOSAPIError
from .utils import PRIVATE_KEY_RE

API_BASE_PATH = "/api/agent"


class AgentOSClient:
    """
    Client for the ``/api/agent/*`` endpoints.

    Every request is signed with the agent's key. Responses are unwrapped
    from the ``{ok, data}`` envelope; error envelopes raise AgentOSAPIError.
    """

    def __init__(
        self,
        base_url: str,
        private_key: Optional[str] = None,
        account: Optional[BaseAccount] = None,
        retry_count: int = 3,
        timeout: int = 30,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the AgentOSClient

        Args:
            base_url: Deployment origin (e.g., "https://agentos.example.com")
            private_key: Agent's hex private key (optional if account provided)
            account: eth_account account (optional if private_key provided)
            retry_count: Number of connection retries
            timeout: Timeout for HTTP requests in seconds
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If neither private_key nor account is provided
            ValueError: If base_url doesn't use https (unless it's localhost/127.0.0.1)
        """
        if account is None:
            if not private_key:
                raise ValueError("Either private_key or account must be provided")
            if not PRIVATE_KEY_RE.match(private_key):
                raise ValueError("private_key must be 0x-prefixed 32-byte hex")
            account = Account.from_key(private_key)

        parsed = urllib.parse.urlparse(base_url)
        is_local = (parsed.hostname or "") in ("localhost", "127.0.0.1")
        if parsed.scheme != "https" and not is_local:
            raise ValueError(f"base_url must use https:// for security (got: {parsed.scheme}://)")

        self.base_url = base_url.rstrip("/")
        self.account = account
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        # Signed requests are single-use; only retry when nothing reached the server
        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            connect=retry_count,
            read=0,
            status=0,
            other=0,
            backoff_factor=0.5,
            raise_on_status=False,
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))

    @property
    def address(self) -> str:
        return self.account.address

    @staticmethod
    def _api_path(path: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        return path if path.startswith(API_BASE_PATH) else f"{API_BASE_PATH}{path}"

    def request(self, path: str, method: str = "GET", body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send a signed request to an Agent API path.

        Args:
            path: Path with or without the /api/agent prefix
            method: "GET" or "POST"
            body: JSON body for POST requests

        Returns:
            The ``data`` member of a successful envelope

        Raises:
            AgentOSAPIError: On transport failure, a non-2xx status or ``ok: false``
        """
        method = method.upper()
        api_path = self._api_path(path)
        # Signed and sent byte-for-byte
        body_text = json.dumps(body) if method == "POST" and body is not None else ""

        headers = sign_request(self.account, api_path, body_text)
        if body_text:
            headers["Content-Type"] = "application/json"

        safe_headers = dict(headers)
        safe_headers[HEADER_SIGNATURE] = f"[REDACTED - {len(headers[HEADER_SIGNATURE])} chars]"
        self.logger.debug(f"{method} {api_path} headers={safe_headers}")

        try:
            response = self.session.request(
                method,
                f"{self.base_url}{api_path}",
                data=body_text.encode("utf-8") if body_text else None,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            self.logger.error(f"Agent API request failed: {e}")
            raise AgentOSAPIError(f"Agent API request failed: {str(e)}")

        try:
            payload = response.json()
        except ValueError:
            payload = None

        error = payload.get("error") if isinstance(payload, dict) else None
        if not response.ok or (isinstance(payload, dict) and payload.get("ok") is False):
            if not isinstance(error, dict):
                error = {"code": "HTTP_ERROR", "message": response.reason or f"HTTP {response.status_code}"}
            self.logger.warning(f"{method} {api_path} failed: {response.status_code} {error.get('code')}")
            raise AgentOSAPIError(
                error.get("message") or error.get("code") or "API error",
                code=error.get("code") or "HTTP_ERROR",
                status_code=response.status_code,
                details=error.get("details"),
            )

        if not isinstance(payload, dict):
            raise AgentOSAPIError("Invalid JSON response from Agent API", status_code=response.status_code)
        return payload.get("data")

    def health(self) -> Dict[str, Any]:
        """GET /api/agent/health (no authentication needed, signed anyway)."""
        return self.request("/health", "GET")

    def handshake(self) -> Dict[str, Any]:
        """GET /api/agent/handshake - echo address and auth scheme."""
        return self.request("/handshake", "GET")

    def get_me(self) -> Dict[str, Any]:
        """GET /api/agent/me - agent identity and linked wallets."""
        return self.request("/me", "GET")

    def post_audit(self, event_type: str, message: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"event_type": event_type, "message": message}
        if metadata is not None:
            body["metadata"] = metadata
        return self.request("/audit", "POST", body)

    def post_invoices(
        self,
        to_wallet_address: str,
        chain_id: int,
        amount: str,
        token_address: Optional[str] = None,
        memo: Optional[str] = None,
        agent_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """POST /api/agent/invoices - returns ``{invoice, pay_url}``."""
        body: Dict[str, Any] = {
            "to_wallet_address": to_wallet_address,
            "chain_id": chain_id,
            "amount": str(amount),
        }
        if token_address is not None:
            body["token_address"] = token_address
        if memo is not None:
            body["memo"] = memo
        if agent_id is not None:
            body["agent_id"] = agent_id
        return self.request("/invoices", "POST", body)

    def post_transfers_propose(
        self,
        wallet_address: str,
        to: str,
        token: str,
        amount: int,
        context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        POST /api/agent/transfers/propose

        Returns:
            ``{mode: "submitted", proposalId, txHash}`` or
            ``{mode: "prepared", contractAddress, calldata, functionName, args, contextHash}``
        """
        body: Dict[str, Any] = {
            "wallet_address": wallet_address,
            "to": to,
            "token": token,
            "amount": str(amount),
        }
        if context is not None:
            body["context"] = context
        return self.request("/transfers/propose", "POST", body)
