"""
Wallet signing for the sign-in challenge.
"""

from typing import List, Optional, Protocol

from eth_account import Account

from eduverify.core.challenge import WALLET_SIGN_MESSAGE, addresses_match
from eduverify.core.exceptions import AuthenticationFailedError, WalletUnavailableError
from eduverify.core.logging import get_logger
from eduverify.domain.models.identity import SignedChallenge
from eduverify.infrastructure.blockchain.signature_utils import (
    sign_message_with_private_key,
)

logger = get_logger(__name__)


class WalletProvider(Protocol):
    """Injected wallet signer (browser extension bridge, hardware wallet, key file)."""

    async def request_accounts(self) -> List[str]:
        ...

    async def personal_sign(self, message: str, address: str) -> str:
        ...


class LocalAccountWallet:
    """Wallet backed by a local private key."""

    def __init__(self, private_key: str):
        self._private_key = private_key
        self.address = Account.from_key(private_key).address

    async def request_accounts(self) -> List[str]:
        return [self.address]

    async def personal_sign(self, message: str, address: str) -> str:
        if not addresses_match(address, self.address):
            raise AuthenticationFailedError(details={"reason": "unknown_account"})
        signature, _ = sign_message_with_private_key(message, self._private_key)
        return signature


async def sign_challenge(
    wallet: Optional[WalletProvider], connected_address: str
) -> SignedChallenge:
    """
    Sign the fixed sign-in message with the wallet's active account.

    Args:
        wallet: Wallet signer, None when no wallet is installed
        connected_address: Address the app considers connected

    Returns:
        SignedChallenge: Active address, message and signature

    Raises:
        WalletUnavailableError: No wallet is present
        AuthenticationFailedError: No active account, or it is not the connected one
    """
    if wallet is None:
        raise WalletUnavailableError()

    accounts = await wallet.request_accounts()
    active = accounts[0] if accounts else None
    if not active:
        logger.warning("Wallet returned no accounts")
        raise AuthenticationFailedError(details={"reason": "no_accounts"})

    if not connected_address or not addresses_match(active, connected_address):
        logger.warning(
            "Active wallet account differs from connected address",
            active=active.lower(),
            connected=(connected_address or "").lower(),
        )
        raise AuthenticationFailedError(details={"reason": "account_mismatch"})

    signature = await wallet.personal_sign(WALLET_SIGN_MESSAGE, active)
    return SignedChallenge(address=active, message=WALLET_SIGN_MESSAGE, signature=signature)
