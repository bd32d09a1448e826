"""
Wallet Authentication Router.
Exchanges a wallet signature for a one-time session credential.
"""

from fastapi import APIRouter, Depends

from eduverify.api.dto.wallet_auth_dto import (
    ChallengeRequestDTO,
    ChallengeResponseDTO,
    ErrorResponseDTO,
    VerifyRequestDTO,
    VerifyResponseDTO,
)
from eduverify.api.services.wallet_auth_service import (
    WalletAuthService,
    wallet_auth_service,
)
from eduverify.core.logging import get_logger

logger = get_logger(__name__)

# Create router
router = APIRouter()


def get_wallet_auth_service() -> WalletAuthService:
    return wallet_auth_service


@router.post(
    "/nonce",
    response_model=ChallengeResponseDTO,
    responses={400: {"model": ErrorResponseDTO}},
)
@router.post(
    "/message",
    response_model=ChallengeResponseDTO,
    responses={400: {"model": ErrorResponseDTO}},
)
async def get_sign_message(
    request: ChallengeRequestDTO,
    service: WalletAuthService = Depends(get_wallet_auth_service),
) -> ChallengeResponseDTO:
    """
    Return the message the wallet must sign.

    Served on both `/nonce` and `/message`. No nonce is issued; the message is fixed.
    """
    return service.get_challenge(request.wallet_address)


@router.post(
    "/verify",
    response_model=VerifyResponseDTO,
    responses={
        400: {"model": ErrorResponseDTO},
        401: {"model": ErrorResponseDTO},
        500: {"model": ErrorResponseDTO},
    },
)
async def verify_wallet(
    request: VerifyRequestDTO,
    service: WalletAuthService = Depends(get_wallet_auth_service),
) -> VerifyResponseDTO:
    """
    Verify a signed challenge and issue a one-time session credential.

    - Recovers the signer of the fixed sign-in message
    - Resolves or provisions the wallet's identity and profile
    - Returns a token hash for the client to redeem with the identity provider
    """
    response = await service.verify(request)
    logger.info(f"Wallet verified for identity {response.user.id}")
    return response
