"""
Identity, challenge and session models.
Identities and sessions are owned by the identity provider; these are read views.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SignedChallenge(BaseModel):
    """A wallet signature over the fixed sign-in message. Never persisted."""

    address: str = Field(..., description="Signing wallet address")
    message: str = Field(..., description="Signed message")
    signature: str = Field(..., description="Hex personal_sign signature")


class Identity(BaseModel):
    """Identity provider account bound to one wallet."""

    id: str = Field(..., description="Identity provider user id")
    email: str = Field(..., description="Derived identity email")
    wallet_address: Optional[str] = Field(
        None, description="Wallet address from provider user metadata"
    )

    @classmethod
    def from_provider_user(cls, user: Dict[str, Any]) -> "Identity":
        """Build from a provider user payload."""
        metadata = user.get("user_metadata") or {}
        wallet_address = metadata.get("wallet_address")
        return cls(
            id=user["id"],
            email=user.get("email") or "",
            wallet_address=wallet_address.lower() if wallet_address else None,
        )


class SessionCredential(BaseModel):
    """One-time redeemable credential for establishing a session."""

    token_hash: str = Field(..., description="Hashed one-time token")
    verification_url: str = Field(..., description="Provider action link")


class Session(BaseModel):
    """Live provider session returned by credential redemption."""

    access_token: str = Field(..., description="Bearer access token")
    refresh_token: Optional[str] = Field(None, description="Refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: Optional[int] = Field(None, description="Seconds until expiry")
    user: Identity = Field(..., description="Session owner")
