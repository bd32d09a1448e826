"""
Profile Router.
Profile, role and onboarding endpoints for the signed-in identity.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from eduverify.api.deps.auth_guard import AuthenticatedUser, get_current_user
from eduverify.api.dto.wallet_auth_dto import (
    ErrorResponseDTO,
    OnboardingRequestDTO,
    ProfileResponseDTO,
    RolesResponseDTO,
)
from eduverify.api.services.profile_service import ProfileService, profile_service
from eduverify.core.logging import get_logger

logger = get_logger(__name__)

# Create router
router = APIRouter()


def get_profile_service() -> ProfileService:
    return profile_service


@router.get(
    "/me/profile",
    response_model=ProfileResponseDTO,
    response_model_by_alias=False,
    responses={401: {"model": ErrorResponseDTO}},
)
async def get_my_profile(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponseDTO:
    """
    Get the profile of the signed-in identity. `data` is null when none exists.
    """
    profile = await service.get_profile(current_user.identity_id)
    return ProfileResponseDTO(success=True, data=profile)


@router.get(
    "/me/roles",
    response_model=RolesResponseDTO,
    responses={401: {"model": ErrorResponseDTO}},
)
async def get_my_roles(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> RolesResponseDTO:
    """
    Get the role assignments of the signed-in identity.
    """
    roles = await service.get_roles(current_user.identity_id)
    return RolesResponseDTO(success=True, data=roles)


@router.post(
    "/me/onboarding/complete",
    response_model=ProfileResponseDTO,
    response_model_by_alias=False,
    responses={
        401: {"model": ErrorResponseDTO},
        403: {"model": ErrorResponseDTO},
        404: {"model": ErrorResponseDTO},
    },
)
async def complete_my_onboarding(
    request: Optional[OnboardingRequestDTO] = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponseDTO:
    """
    Record the chosen role and profile details and mark the profile onboarded.

    Without a body the user onboards as a student. A profile that is already
    onboarded is returned unchanged.
    """
    request = request or OnboardingRequestDTO()
    profile = await service.complete_onboarding(
        current_user.identity_id,
        role=request.role,
        display_name=request.display_name,
        institution=request.institution,
    )
    return ProfileResponseDTO(success=True, data=profile)
