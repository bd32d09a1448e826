"""
Wallet Verification Service.

Validates a submitted (address, signature, message) triple, recovers the
signer, and hands off to identity resolution and session bootstrap. Every
rejection surfaces the same friendly message; the real reason is only logged.
"""

from typing import Optional

from eduverify.api.dto.wallet_auth_dto import (
    ChallengeResponseDTO,
    VerifyRequestDTO,
    VerifyResponseDTO,
    WalletUserDTO,
)
from eduverify.api.services.identity_service import IdentityService, identity_service
from eduverify.api.services.session_service import SessionService, session_service
from eduverify.core.challenge import (
    WALLET_SIGN_MESSAGE,
    is_valid_address,
    normalize_address,
)
from eduverify.core.exceptions import (
    InvalidWalletAddressError,
    VerificationFailedError,
)
from eduverify.core.logging import get_logger, log_wallet_operation
from eduverify.infrastructure.blockchain.signature_utils import (
    recover_personal_sign_address,
)

logger = get_logger(__name__)


class WalletAuthService:
    """Stateless handler for wallet sign-in requests."""

    def __init__(
        self,
        identities: Optional[IdentityService] = None,
        sessions: Optional[SessionService] = None,
    ):
        self.identities = identities or identity_service
        self.sessions = sessions or session_service

    def get_challenge(self, wallet_address: Optional[str]) -> ChallengeResponseDTO:
        """Return the fixed sign-in message for a well-formed address."""
        if not is_valid_address(wallet_address):
            raise InvalidWalletAddressError("Invalid wallet address")
        return ChallengeResponseDTO(message=WALLET_SIGN_MESSAGE)

    def recover_verified_address(self, request: VerifyRequestDTO) -> str:
        """
        Check the signed challenge and return the normalized signer address.

        Raises:
            InvalidWalletAddressError: Missing fields or malformed address
            VerificationFailedError: Message drift, bad signature or signer mismatch
        """
        address = request.wallet_address
        if not address or not request.signature or not request.message or not is_valid_address(address):
            log_wallet_operation(
                "verify", address, status="rejected", reason="malformed_request"
            )
            raise InvalidWalletAddressError(details={"reason": "malformed_request"})

        normalized = normalize_address(address)

        if request.message != WALLET_SIGN_MESSAGE:
            log_wallet_operation(
                "verify", normalized, status="rejected", reason="message_mismatch"
            )
            raise VerificationFailedError({"reason": "message_mismatch"})

        try:
            recovered = recover_personal_sign_address(request.message, request.signature)
        except ValueError as e:
            log_wallet_operation(
                "verify", normalized, status="rejected", reason="recovery_failed", cause=str(e)
            )
            raise VerificationFailedError({"reason": "recovery_failed"})

        if recovered != normalized:
            log_wallet_operation(
                "verify",
                normalized,
                status="rejected",
                reason="address_mismatch",
                recovered=recovered,
            )
            raise VerificationFailedError({"reason": "address_mismatch"})

        log_wallet_operation("verify", normalized)
        return normalized

    async def verify(self, request: VerifyRequestDTO) -> VerifyResponseDTO:
        """
        Verify a signed challenge and bootstrap a session for its wallet.

        Returns:
            VerifyResponseDTO with the identity and a one-time credential
        """
        address = self.recover_verified_address(request)

        identity = await self.identities.resolve_or_create_identity(address)
        credential = await self.sessions.issue_session_credential(identity)

        return VerifyResponseDTO(
            success=True,
            user=WalletUserDTO(
                id=identity.id,
                email=identity.email,
                wallet_address=address,
            ),
            token_hash=credential.token_hash,
            verification_url=credential.verification_url,
        )


# Global service instance
wallet_auth_service = WalletAuthService()
