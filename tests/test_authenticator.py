"""
Tests for the AgentAuthenticator gates.
"""
from unittest.mock import MagicMock

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from agentos_sdk.auth import (
    AgentAuthenticator, InMemoryReplayStore, ReplayGuard, SignedRequest, sign_request,
)
from agentos_sdk.exceptions import AuthError, AuthFailure, StoreUnavailableError
from conftest import AGENT_KEY, FIXED_NOW_MS

PATH = "/api/agent/transfers/propose"
BODY = b'{"amount": "60"}'


def _request(account, method="POST", path=PATH, body=BODY, timestamp=FIXED_NOW_MS, **overrides):
    headers = sign_request(account, path, body, timestamp=timestamp)
    request = SignedRequest.from_headers(headers, method, path, body)
    if overrides:
        values = {**request.__dict__, **overrides}
        request = SignedRequest(**values)
    return request


def _reason(authenticator, request):
    with pytest.raises(AuthError) as exc_info:
        authenticator.authenticate(request)
    return exc_info.value.reason


def test_valid_request_returns_lowercase_signer(authenticator, agent_account):
    assert authenticator.authenticate(_request(agent_account)) == agent_account.address.lower()


def test_from_headers_is_case_insensitive(agent_account):
    headers = sign_request(agent_account, PATH, BODY, timestamp=FIXED_NOW_MS)
    shouted = {k.upper(): f" {v} " for k, v in headers.items()}
    request = SignedRequest.from_headers(shouted, "POST", PATH, BODY.decode())
    assert request.address == agent_account.address
    assert request.body == BODY


@pytest.mark.parametrize("field", ["address", "signature", "timestamp"])
def test_missing_credentials(authenticator, agent_account, field):
    request = _request(agent_account, **{field: ""})
    assert _reason(authenticator, request) is AuthFailure.MISSING_CREDENTIALS


@pytest.mark.parametrize("address", ["0x123", "not-an-address", "0x" + "g" * 40])
def test_invalid_address(authenticator, agent_account, address):
    assert _reason(authenticator, _request(agent_account, address=address)) is AuthFailure.INVALID_ADDRESS


def test_unparseable_timestamp(authenticator, agent_account):
    request = _request(agent_account, timestamp="yesterday")
    assert _reason(authenticator, request) is AuthFailure.TIMESTAMP_OUT_OF_WINDOW


@pytest.mark.parametrize("offset_ms", [-300_001, 300_001, -86_400_000, 86_400_000])
def test_timestamp_out_of_window(authenticator, agent_account, offset_ms):
    # Correctly signed, still refused
    request = _request(agent_account, timestamp=FIXED_NOW_MS + offset_ms)
    assert _reason(authenticator, request) is AuthFailure.TIMESTAMP_OUT_OF_WINDOW


@pytest.mark.parametrize("offset_ms", [-300_000, 0, 300_000])
def test_timestamp_window_is_inclusive(authenticator, agent_account, offset_ms):
    assert authenticator.authenticate(_request(agent_account, timestamp=FIXED_NOW_MS + offset_ms))


def test_signature_by_other_key(authenticator, agent_account, other_account):
    forged = _request(other_account, address=agent_account.address)
    assert _reason(authenticator, forged) is AuthFailure.SIGNATURE_INVALID


def test_signature_bound_to_path(authenticator, agent_account):
    request = _request(agent_account, path="/api/agent/audit")
    moved = SignedRequest(**{**request.__dict__, "path": "/api/agent/invoices"})
    assert _reason(authenticator, moved) is AuthFailure.SIGNATURE_INVALID


def test_replay_refused(authenticator, agent_account):
    request = _request(agent_account)
    authenticator.authenticate(request)
    assert _reason(authenticator, request) is AuthFailure.REPLAY


def test_resigned_with_new_timestamp_succeeds(authenticator, agent_account):
    authenticator.authenticate(_request(agent_account))
    assert authenticator.authenticate(_request(agent_account, timestamp=FIXED_NOW_MS + 1))


def test_same_fields_different_method_are_distinct(authenticator, agent_account):
    authenticator.authenticate(_request(agent_account, method="GET", body=b""))
    assert authenticator.authenticate(_request(agent_account, method="POST", body=b""))


def test_replay_checked_after_signature(fixed_clock, agent_account, other_account):
    guard = MagicMock()
    authenticator = AgentAuthenticator(guard, clock=fixed_clock)
    forged = _request(other_account, address=agent_account.address)

    with pytest.raises(AuthError):
        authenticator.authenticate(forged)
    guard.try_consume.assert_not_called()


def _broken_store():
    store = MagicMock()
    store.insert_if_absent.side_effect = StoreUnavailableError("down")
    return store


def test_store_outage_strict(fixed_clock, agent_account):
    authenticator = AgentAuthenticator(ReplayGuard(_broken_store(), strict=True), clock=fixed_clock)
    assert _reason(authenticator, _request(agent_account)) is AuthFailure.REPLAY_CHECK_UNAVAILABLE


def test_store_outage_lenient(fixed_clock, agent_account):
    authenticator = AgentAuthenticator(ReplayGuard(_broken_store(), strict=False), clock=fixed_clock)
    assert authenticator.authenticate(_request(agent_account)) == agent_account.address.lower()


def test_auth_error_carries_reason_details(authenticator, agent_account):
    with pytest.raises(AuthError) as exc_info:
        authenticator.authenticate(_request(agent_account, signature=""))
    assert exc_info.value.status_code == 401
    assert exc_info.value.code == "UNAUTHORIZED"
    assert exc_info.value.details == {"reason": "missing_credentials"}


@settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(body=st.binary(min_size=1, max_size=128), index=st.integers(min_value=0), flip=st.integers(1, 255))
def test_any_body_tamper_invalidates_signature(fixed_clock, agent_account, body, index, flip):
    authenticator = AgentAuthenticator(ReplayGuard(InMemoryReplayStore(ttl_seconds=600)), clock=fixed_clock)
    request = _request(agent_account, body=body)

    position = index % len(body)
    tampered = bytearray(body)
    tampered[position] ^= flip
    tampered_request = SignedRequest(**{**request.__dict__, "body": bytes(tampered)})

    assert tampered_request.body_sha256 != request.body_sha256
    assert _reason(authenticator, tampered_request) is AuthFailure.SIGNATURE_INVALID


@settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(offset_ms=st.integers(min_value=-300_000, max_value=300_000))
def test_signed_requests_inside_window_authenticate(fixed_clock, offset_ms):
    authenticator = AgentAuthenticator(ReplayGuard(InMemoryReplayStore(ttl_seconds=600)), clock=fixed_clock)
    headers = sign_request(AGENT_KEY, "/api/agent/me", "", timestamp=FIXED_NOW_MS + offset_ms)
    request = SignedRequest.from_headers(headers, "GET", "/api/agent/me")
    assert authenticator.authenticate(request) == headers["x-agent-address"].lower()
