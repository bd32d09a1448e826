"""
Wallet sign-in flow for clients.

Signs the challenge, submits it for verification, and redeems the returned
one-time credential. Users only ever see the friendly verification message.
"""

from typing import Optional

import httpx

from eduverify.api.dto.wallet_auth_dto import VerifyResponseDTO, WalletUserDTO
from eduverify.client.session import IdentityProviderSession
from eduverify.client.wallet import WalletProvider, sign_challenge
from eduverify.core.config import settings
from eduverify.core.exceptions import (
    AuthenticationFailedError,
    EduVerifyException,
    WalletUnavailableError,
)
from eduverify.core.logging import get_logger, log_wallet_operation
from eduverify.domain.models.identity import SignedChallenge

logger = get_logger(__name__)


class WalletAuthClient:
    """Client for the wallet verification endpoint."""

    def __init__(
        self,
        session: IdentityProviderSession,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.API_TIMEOUT
        self.transport = transport

    async def verify_signature(self, challenge: SignedChallenge) -> VerifyResponseDTO:
        """
        Submit a signed challenge for verification.

        Raises:
            AuthenticationFailedError: Any non-success response or transport error
        """
        payload = {
            "wallet_address": challenge.address,
            "signature": challenge.signature,
            "message": challenge.message,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post("/api/v1/wallet-auth/verify", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Verification request failed: {e}")
            raise AuthenticationFailedError(details={"cause": str(e)})

        if not response.is_success:
            log_wallet_operation(
                "verify_request",
                challenge.address.lower(),
                status="rejected",
                status_code=response.status_code,
            )
            raise AuthenticationFailedError(details={"status_code": response.status_code})

        try:
            return VerifyResponseDTO.model_validate(response.json())
        except ValueError as e:
            raise AuthenticationFailedError(details={"cause": str(e)})

    async def authenticate_with_wallet(
        self, wallet: Optional[WalletProvider], connected_address: str
    ) -> WalletUserDTO:
        """
        Run the complete sign-in flow: sign, verify, redeem.

        Returns:
            WalletUserDTO: The identity now holding the session

        Raises:
            WalletUnavailableError: No wallet is installed
            AuthenticationFailedError: Every other failure
        """
        try:
            challenge = await sign_challenge(wallet, connected_address)
            result = await self.verify_signature(challenge)
            await self.session.redeem_magic_link(result.token_hash)
        except (WalletUnavailableError, AuthenticationFailedError):
            raise
        except EduVerifyException as e:
            logger.warning(
                "Wallet sign-in failed", error_code=e.error_code, details=e.details
            )
            raise AuthenticationFailedError(details={"cause": e.error_code})
        except Exception as e:
            logger.warning(f"Wallet sign-in failed: {e}")
            raise AuthenticationFailedError(details={"cause": type(e).__name__})

        log_wallet_operation("sign_in", result.user.wallet_address, identity_id=result.user.id)
        return result.user
