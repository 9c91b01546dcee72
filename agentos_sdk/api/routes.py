"""
Agent API routes, mounted under ``/api/agent``.

Every route except ``/health`` authenticates the signed request first and
parses the body from the signed bytes afterwards.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Path, Request

from ..auth import AUTH_HEADERS, CANONICAL_MESSAGE_TEMPLATE, REPLAY_KEY_FORMAT, HEADER_ADDRESS
from ..exceptions import ForbiddenError
from ..proposals import ProposalAction
from ..version import __version__
from .dependencies import AgentAPIContext, AuthenticatedRequest, authenticated_agent, get_context
from .responses import ok
from .schemas import (
    AuditRequest, InvoiceRequest, ProposalActionRequest, ProposeTransferRequest, parse_body,
)

logger = logging.getLogger(__name__)

API_BASE_PATH = "/api/agent"
API_NAME = "AgentOS Agent API"

router = APIRouter(tags=["agent"])


def _first_header_value(value: str) -> str:
    return value.split(",")[0].strip()


def public_origin(request: Request) -> str:
    """
    Public origin of the deployment, preferring x-forwarded-* from a proxy.

    A forwarded host without a recognised proto is assumed to be https.
    """
    proto = _first_header_value(request.headers.get("x-forwarded-proto", ""))
    host = _first_header_value(request.headers.get("x-forwarded-host", ""))
    if host:
        scheme = proto if proto in ("http", "https") else "https"
        return f"{scheme}://{host}"
    return f"{request.url.scheme}://{request.url.netloc}"


@router.get("/health")
def health(context: AgentAPIContext = Depends(get_context)):
    """Readiness check. No authentication."""
    data = {
        "name": API_NAME,
        "version": __version__,
        "now": datetime.now(timezone.utc).isoformat(),
        "serverSignerEnabled": context.settings.server_signer_enabled,
        "replayStrict": context.authenticator.replay_guard.strict,
    }
    return ok(data, headers={"Cache-Control": "no-store"})


@router.get("/handshake")
def handshake(
    request: Request,
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    """Echo the caller's address and describe the authentication scheme."""
    guard = context.authenticator.replay_guard
    return ok({
        "agentAddress": request.headers.get(HEADER_ADDRESS) or auth.address,
        "auth": {
            "basePath": API_BASE_PATH,
            "headers": AUTH_HEADERS,
            "canonicalMessageTemplate": CANONICAL_MESSAGE_TEMPLATE,
            "timestampSkewSeconds": context.authenticator.tolerance_seconds,
            "replayProtection": {
                "enabled": guard.enabled,
                "strict": guard.strict,
                "keyFormat": REPLAY_KEY_FORMAT,
            },
        },
    })


@router.get("/me")
def me(
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    agent = context.require_agent(auth.address)
    wallets = context.records.list_linked_wallets(agent.id)
    return ok({
        "agent": agent.model_dump(),
        "wallets": [w.model_dump(include={"id", "wallet_address", "chain_id", "label"}) for w in wallets],
    })


@router.post("/audit")
def post_audit(
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    body = parse_body(auth.body, AuditRequest)
    agent = context.require_agent(auth.address)

    payload = {"message": body.message}
    if body.metadata:
        payload["metadata"] = body.metadata
    event = context.records.append_audit(agent.id, body.event_type, payload)
    return ok({"id": event.id})


@router.post("/invoices")
def post_invoices(
    request: Request,
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    body = parse_body(auth.body, InvoiceRequest)
    agent = context.require_agent(auth.address)
    if body.agent_id and body.agent_id != agent.id:
        raise ForbiddenError("agent_id does not match authenticated agent")
    context.require_linked_wallet(agent, body.to_wallet_address, "to_wallet_address")

    invoice = context.records.create_invoice(
        agent_id=agent.id,
        to_wallet_address=body.to_wallet_address,
        amount=body.amount,
        chain_id=body.chain_id,
        token_address=body.token_address,
        memo=body.memo,
    )
    logger.info(f"Invoice {invoice.id} issued for agent {agent.id}")
    return ok({
        "invoice": invoice.model_dump(),
        "pay_url": f"{public_origin(request)}/pay/{invoice.id}",
    })


@router.post("/transfers/propose")
def propose_transfer(
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    """
    Create a governed-wallet proposal.

    With a server signing key the proposal is submitted on-chain
    (mode "submitted"); otherwise call data is returned (mode "prepared").
    """
    body = parse_body(auth.body, ProposeTransferRequest)
    agent = context.require_agent(auth.address)
    context.require_linked_wallet(agent, body.wallet_address, "wallet_address")

    service = context.proposals(body.wallet_address)
    result = service.propose(body.to, int(body.amount), body.token, body.context)
    data = result.model_dump(by_alias=True, exclude_none=True)
    # null when the pre-flight could not run
    data["needsApproval"] = result.needs_approval
    return ok(data)


def _proposal_action(action: ProposalAction, proposal_id: int, auth: AuthenticatedRequest, context: AgentAPIContext):
    body = parse_body(auth.body, ProposalActionRequest)
    # The human signs approve/reject with their own wallet
    service = context.proposals(body.wallet_address, server_signed=False)
    result = service.prepare_action(proposal_id, action, auth.address)
    logger.info(f"Prepared {action.value} of proposal {proposal_id} on {body.wallet_address}")
    return ok(result.model_dump(by_alias=True, exclude_none=True))


@router.post("/transfers/{proposal_id}/approve")
def approve_transfer(
    proposal_id: int = Path(..., ge=0),
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    return _proposal_action(ProposalAction.APPROVE, proposal_id, auth, context)


@router.post("/transfers/{proposal_id}/reject")
def reject_transfer(
    proposal_id: int = Path(..., ge=0),
    auth: AuthenticatedRequest = Depends(authenticated_agent),
    context: AgentAPIContext = Depends(get_context),
):
    return _proposal_action(ProposalAction.REJECT, proposal_id, auth, context)
