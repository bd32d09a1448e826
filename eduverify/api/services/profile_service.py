"""
Profile Service.
Reads the signed-in identity's profile and roles and records onboarding.
"""

from typing import List, Optional

from eduverify.core.exceptions import ProfileNotFoundError, RoleNotSelectableError
from eduverify.core.logging import LoggerMixin, log_identity_operation
from eduverify.domain.models.profile import (
    DEFAULT_ROLE,
    SELF_SERVICE_ROLES,
    ProfileModel,
    UserRole,
)
from eduverify.domain.repositories.profile_repository import (
    ProfileRepository,
    profile_repository,
)
from eduverify.domain.repositories.role_repository import (
    RoleRepository,
    role_repository,
)


class ProfileService(LoggerMixin):
    """Service for the current identity's profile state."""

    def __init__(
        self,
        profiles: Optional[ProfileRepository] = None,
        roles: Optional[RoleRepository] = None,
    ):
        self.profiles = profiles or profile_repository
        self.roles = roles or role_repository

    async def get_profile(self, identity_id: str) -> Optional[ProfileModel]:
        return await self.profiles.get_by_identity(identity_id)

    async def get_roles(self, identity_id: str) -> List[UserRole]:
        return await self.roles.list_roles(identity_id)

    async def complete_onboarding(
        self,
        identity_id: str,
        role: UserRole = DEFAULT_ROLE,
        display_name: Optional[str] = None,
        institution: Optional[str] = None,
    ) -> ProfileModel:
        """
        Record the chosen role and profile details and mark the profile onboarded.

        The choices are stored once. Repeating the call returns the profile as
        it is, and the role granted is always the one the profile ended up with.

        Raises:
            RoleNotSelectableError: The role cannot be self-assigned
            ProfileNotFoundError: The identity has no profile
        """
        if role not in SELF_SERVICE_ROLES:
            raise RoleNotSelectableError(UserRole(role).value)

        profile = await self.profiles.get_by_identity(identity_id)
        if profile is None:
            raise ProfileNotFoundError(identity_id)
        if profile.onboarded:
            self.logger.debug(f"Profile for identity {identity_id} already onboarded")
            return profile

        updated = await self.profiles.mark_onboarded(
            identity_id,
            role=role,
            display_name=display_name,
            institution=institution,
        )
        if updated is None:
            raise ProfileNotFoundError(identity_id)

        # A concurrent completion may have won the write; grant what was stored
        await self.roles.ensure_role(identity_id, updated.role)

        log_identity_operation(
            "complete_onboarding",
            identity_id=identity_id,
            wallet_address=updated.wallet_address,
            role=updated.role.value,
        )
        return updated


# Global service instance
profile_service = ProfileService()
