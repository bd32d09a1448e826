"""
DTOs (Data Transfer Objects) for wallet authentication endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from eduverify.domain.models.profile import DEFAULT_ROLE, ProfileModel, UserRole


# Request DTOs
class ChallengeRequestDTO(BaseModel):
    """Request DTO for fetching the sign-in message."""

    wallet_address: Optional[str] = Field(None, description="Wallet address about to sign")


class VerifyRequestDTO(BaseModel):
    """Request DTO for verifying a signed challenge.

    Fields are optional here so missing values are reported as 400 with the
    friendly message instead of a schema error.
    """

    wallet_address: Optional[str] = Field(None, description="Signing wallet address")
    signature: Optional[str] = Field(None, description="Hex personal_sign signature")
    message: Optional[str] = Field(None, description="Message that was signed")


class OnboardingRequestDTO(BaseModel):
    """Request DTO for completing onboarding with the chosen role."""

    role: UserRole = Field(default=DEFAULT_ROLE, description="Role picked by the user")
    display_name: Optional[str] = Field(None, max_length=100, description="Display name")
    institution: Optional[str] = Field(None, max_length=200, description="Institution or organization")


# Response DTOs
class ChallengeResponseDTO(BaseModel):
    """Response DTO carrying the fixed sign-in message."""

    message: str = Field(..., description="Message to sign")


class WalletUserDTO(BaseModel):
    """Identity summary returned after verification."""

    id: str = Field(..., description="Identity id")
    email: str = Field(..., description="Identity email")
    wallet_address: str = Field(..., description="Lower-case wallet address")


class VerifyResponseDTO(BaseModel):
    """Response DTO for a successful verification."""

    success: bool = Field(default=True, description="Verification success status")
    user: WalletUserDTO = Field(..., description="Resolved identity")
    token_hash: str = Field(..., description="One-time credential to redeem")
    verification_url: str = Field(..., description="Provider action link")


class ErrorResponseDTO(BaseModel):
    """Error body for every failed request."""

    error: str = Field(..., description="User-facing error message")


class ProfileResponseDTO(BaseModel):
    """Response DTO for the current user's profile."""

    success: bool = Field(..., description="Request success status")
    data: Optional[ProfileModel] = Field(None, description="Profile, null if absent")


class RolesResponseDTO(BaseModel):
    """Response DTO for the current user's role assignments."""

    success: bool = Field(..., description="Request success status")
    data: List[UserRole] = Field(default_factory=list, description="Assigned roles")
