"""
Signature utilities for EIP-191 personal_sign messages.
"""

from typing import Tuple

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_hex

from eduverify.core.logging import get_logger

logger = get_logger(__name__)


def validate_signature_format(signature: str) -> bool:
    """Validate signature format: 0x + 130 hex chars (r, s, v)."""
    if not isinstance(signature, str) or not signature.startswith("0x"):
        return False
    if len(signature) != 132:
        return False
    try:
        int(signature[2:], 16)
    except ValueError:
        return False
    return True


def recover_personal_sign_address(message: str, signature: str) -> str:
    """
    Recover the signer of a personal_sign message.

    Matches ethers.verifyMessage(message, signature): the message is prefixed
    with "\\x19Ethereum Signed Message:\\n<len>" before hashing.

    Returns:
        Lower-case recovered address

    Raises:
        ValueError: If the signature is malformed or recovery fails
    """
    if not validate_signature_format(signature):
        raise ValueError("Invalid signature format")

    signable = encode_defunct(text=message)
    try:
        recovered = Account.recover_message(signable, signature=signature)
    except Exception as e:
        # eth-keys raises several unrelated types for bad r/s/v values
        raise ValueError(f"Signature recovery failed: {e}") from e

    return recovered.lower()


def sign_message_with_private_key(message: str, private_key: str) -> Tuple[str, str]:
    """
    Sign a text message with personal_sign semantics.

    Returns:
        (signature_hex, signer_address)
    """
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    signer_address = Account.from_key(private_key).address
    return to_hex(signed.signature), signer_address
