"""
MongoDB models for profiles and role assignments.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import BaseModel, Field, field_validator


class UserRole(str, Enum):
    """Closed set of application roles."""

    STUDENT = "student"
    ISSUER = "issuer"
    VERIFIER = "verifier"
    ADMIN = "admin"


DEFAULT_ROLE = UserRole.STUDENT

# Roles a user may pick for themselves during onboarding
SELF_SERVICE_ROLES = (UserRole.STUDENT, UserRole.VERIFIER)


class ProfileModel(BaseModel):
    """MongoDB model for a wallet-bound profile."""

    identity_id: Optional[str] = Field(
        None, description="Identity provider user id (null until linked)"
    )
    wallet_address: str = Field(..., description="Lower-case wallet address")
    role: UserRole = Field(default=DEFAULT_ROLE, description="Primary role")
    display_name: Optional[str] = Field(None, description="Display name")
    institution: Optional[str] = Field(None, description="Institution name")
    onboarded: bool = Field(default=False, description="Onboarding completed")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last update timestamp",
    )

    id: Optional[str] = Field(None, alias="_id", description="MongoDB document ID")

    @field_validator("id", mode="before")
    @classmethod
    def convert_objectid_to_str(cls, v):
        """Convert MongoDB ObjectId to string."""
        if isinstance(v, ObjectId):
            return str(v)
        return v

    @field_validator("wallet_address")
    @classmethod
    def lower_wallet_address(cls, v):
        """Wallet addresses are stored case-normalized."""
        return v.lower()

    class Config:
        populate_by_name = True


class ProfileCreateModel(BaseModel):
    """Model for inserting a profile on first wallet sign-in."""

    identity_id: str = Field(..., description="Identity provider user id")
    wallet_address: str = Field(..., description="Lower-case wallet address")
    role: UserRole = Field(default=DEFAULT_ROLE, description="Primary role")
    onboarded: bool = Field(default=False, description="Onboarding completed")
