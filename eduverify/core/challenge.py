"""
Wallet challenge constants shared by the client package and the server.

The sign-in message must be byte-identical on both sides; changing it requires
a simultaneous client and server deployment but invalidates no stored state.
"""

import re

from eduverify.core.config import settings

WALLET_SIGN_MESSAGE = "EduVerify login: Sign this message to verify wallet ownership"

FRIENDLY_VERIFY_ERROR = (
    "Wallet verification failed. Please reconnect your wallet and try again."
)

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_valid_address(address) -> bool:
    """Check an address against the ``0x`` + 40 hex chars grammar."""
    return isinstance(address, str) and ADDRESS_PATTERN.fullmatch(address) is not None


def normalize_address(address: str) -> str:
    """Return the canonical lower-case form of a wallet address."""
    return address.lower()


def addresses_match(left: str, right: str) -> bool:
    """Case-insensitive address comparison."""
    return normalize_address(left) == normalize_address(right)


def derive_identity_email(address: str, domain: str = None) -> str:
    """Deterministic identity-provider email for a wallet address."""
    return f"{normalize_address(address)}@{domain or settings.WALLET_EMAIL_DOMAIN}"
