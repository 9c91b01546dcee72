"""
Tests for EIP-191 signature verification.
"""
from eth_account.messages import encode_defunct
from web3 import Web3

from agentos_sdk.auth.verifier import recover_signer, verify_signature

MESSAGE = "AgentOS Agent API\naddress=x\ntimestamp=1\npath=/\nbodySha256=0"


def _sign(account, message=MESSAGE):
    return Web3.to_hex(account.sign_message(encode_defunct(text=message)).signature)


def test_recover_signer_returns_lowercase(agent_account):
    assert recover_signer(MESSAGE, _sign(agent_account)) == agent_account.address.lower()


def test_verify_signature_is_case_insensitive(agent_account):
    signature = _sign(agent_account)
    assert verify_signature(agent_account.address, MESSAGE, signature)
    assert verify_signature(agent_account.address.lower(), MESSAGE, signature)
    assert verify_signature("0x" + agent_account.address[2:].upper(), MESSAGE, signature)


def test_verify_signature_wrong_signer(agent_account, other_account):
    assert not verify_signature(other_account.address, MESSAGE, _sign(agent_account))


def test_verify_signature_other_message(agent_account):
    signature = _sign(agent_account, MESSAGE + "x")
    assert not verify_signature(agent_account.address, MESSAGE, signature)


def test_malformed_signatures_do_not_raise(agent_account):
    for signature in ("", "0x", "0x1234", "not-hex", "0x" + "zz" * 65):
        assert recover_signer(MESSAGE, signature) is None
        assert verify_signature(agent_account.address, MESSAGE, signature) is False
