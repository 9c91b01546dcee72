"""
Request bodies accepted by the Agent API.

Bodies are parsed after authentication from the exact bytes that were
signed, so they are validated here rather than by FastAPI's body binding.
"""
import json
from typing import Any, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..exceptions import RequestValidationError
from ..utils import canonical_json

ADDRESS_PATTERN = r"^0x[a-fA-F0-9]{40}$"
UINT_PATTERN = r"^[0-9]+$"
UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"

BodyT = TypeVar("BodyT", bound=BaseModel)


class AuditRequest(BaseModel):
    event_type: str = Field(..., min_length=1)
    message: str
    metadata: Optional[Dict[str, Any]] = None


class InvoiceRequest(BaseModel):
    agent_id: Optional[str] = Field(None, pattern=UUID_PATTERN)
    to_wallet_address: str = Field(..., pattern=ADDRESS_PATTERN)
    chain_id: int
    token_address: Optional[str] = None
    amount: str = Field(..., min_length=1)
    memo: Optional[str] = None


class ProposeTransferRequest(BaseModel):
    wallet_address: str = Field(..., pattern=ADDRESS_PATTERN)
    to: str = Field(..., pattern=ADDRESS_PATTERN)
    token: str = Field(..., pattern=ADDRESS_PATTERN)
    # Decimal string so values above 2**53 survive JSON clients
    amount: str = Field(..., pattern=UINT_PATTERN)
    context: Optional[Dict[str, Any]] = None

    @field_validator("context")
    @classmethod
    def context_must_be_hashable(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if value is not None:
            canonical_json(value)
        return value


class ProposalActionRequest(BaseModel):
    wallet_address: str = Field(..., pattern=ADDRESS_PATTERN)


def parse_body(body: bytes, model: Type[BodyT]) -> BodyT:
    """
    Decode a raw JSON body into ``model``. An empty body is treated as ``{}``.

    Raises:
        RequestValidationError: If the body is not JSON or does not match
    """
    try:
        data = json.loads(body) if body else {}
    except ValueError:
        raise RequestValidationError("invalid JSON body")

    if not isinstance(data, dict):
        raise RequestValidationError("invalid body", details=[{"msg": "expected a JSON object"}])

    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RequestValidationError(
            "invalid body",
            details=e.errors(include_url=False, include_context=False, include_input=False),
        )
