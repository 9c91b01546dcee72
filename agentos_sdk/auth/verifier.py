"""
Signature verification for signed Agent API requests.

Signatures are EIP-191 personal messages (``personal_sign``), the same
scheme ``sign_request`` and browser wallets use. Raw-hash signatures will
not verify.
"""
import logging
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct

from ..utils import normalize_address

logger = logging.getLogger(__name__)


def recover_signer(message: str, signature: str) -> Optional[str]:
    """
    Recover the lowercased signer address of a personal message.

    Returns:
        The signer address, or None if the signature is malformed
    """
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        logger.debug(f"Signature recovery failed: {type(e).__name__}")
        return None
    return recovered.lower()


def verify_signature(claimed_address: str, message: str, signature: str) -> bool:
    """
    Check that ``signature`` over ``message`` was made by ``claimed_address``.

    Never raises; malformed input simply fails verification.
    """
    claimed = normalize_address(claimed_address)
    if not claimed or not signature:
        return False
    recovered = recover_signer(message, signature)
    return recovered is not None and recovered == claimed
