"""
Identity Resolution & Provisioning.

Finds or creates exactly one provider identity and one profile per wallet.
Concurrent first sign-ins for the same wallet are serialized by the provider's
unique email and the store's unique wallet_address index; the losing request
converges on the winner's identity instead of failing.
"""

from typing import Optional

from eduverify.core.challenge import derive_identity_email, normalize_address
from eduverify.core.exceptions import (
    DuplicateProfileError,
    EduVerifyException,
    IdentityAlreadyExistsError,
    ProvisioningFailedError,
)
from eduverify.core.logging import get_logger, log_identity_operation
from eduverify.domain.models.identity import Identity
from eduverify.domain.models.profile import (
    DEFAULT_ROLE,
    ProfileCreateModel,
    ProfileModel,
)
from eduverify.domain.repositories.profile_repository import (
    ProfileRepository,
    profile_repository,
)
from eduverify.domain.repositories.role_repository import (
    RoleRepository,
    role_repository,
)
from eduverify.infrastructure.identity.provider_client import (
    IdentityProviderClient,
    identity_provider_client,
)

logger = get_logger(__name__)


class IdentityService:
    """Service resolving wallet addresses to provider identities."""

    def __init__(
        self,
        profiles: Optional[ProfileRepository] = None,
        roles: Optional[RoleRepository] = None,
        provider: Optional[IdentityProviderClient] = None,
    ):
        self.profiles = profiles or profile_repository
        self.roles = roles or role_repository
        self.provider = provider or identity_provider_client

    async def resolve_or_create_identity(self, wallet_address: str) -> Identity:
        """
        Resolve the identity bound to a verified wallet, creating it on first sign-in.

        Args:
            wallet_address: Verified wallet address

        Returns:
            Identity: The single identity bound to this wallet

        Raises:
            ProvisioningFailedError: Storage or provider failure other than a lost race
        """
        address = normalize_address(wallet_address)

        try:
            profile = await self.profiles.get_by_wallet(address)
            if profile and profile.identity_id:
                return await self._load_linked(profile)

            return await self._provision(address, profile)

        except ProvisioningFailedError:
            raise
        except EduVerifyException as e:
            logger.error(
                "Identity provisioning failed",
                wallet_address=address,
                error_code=e.error_code,
                cause=e.message,
                details=e.details,
            )
            raise ProvisioningFailedError(details={"cause": e.error_code})

    async def _load_linked(self, profile: ProfileModel) -> Identity:
        identity = await self.provider.get_user_by_id(profile.identity_id)
        log_identity_operation(
            "resolve", identity_id=identity.id, wallet_address=profile.wallet_address
        )
        return self._bind_wallet(identity, profile.wallet_address)

    async def _provision(
        self, address: str, profile: Optional[ProfileModel]
    ) -> Identity:
        identity = await self._create_or_find_identity(address)

        if profile is not None:
            linked = await self.profiles.link_identity(address, identity.id)
            if not linked:
                # Another request linked the profile first.
                return await self._reresolve(address)
            log_identity_operation(
                "link", identity_id=identity.id, wallet_address=address
            )
        else:
            try:
                await self.profiles.create_profile(
                    ProfileCreateModel(
                        identity_id=identity.id,
                        wallet_address=address,
                        role=DEFAULT_ROLE,
                        onboarded=False,
                    )
                )
            except DuplicateProfileError:
                logger.info(
                    "Concurrent first sign-in detected, re-resolving",
                    wallet_address=address,
                )
                return await self._reresolve(address)
            log_identity_operation(
                "create_profile", identity_id=identity.id, wallet_address=address
            )

        if await self.roles.ensure_role(identity.id, DEFAULT_ROLE):
            log_identity_operation(
                "assign_role",
                identity_id=identity.id,
                wallet_address=address,
                role=DEFAULT_ROLE.value,
            )

        return self._bind_wallet(identity, address)

    async def _create_or_find_identity(self, address: str) -> Identity:
        email = derive_identity_email(address)
        try:
            identity = await self.provider.create_user(email, address)
            log_identity_operation(
                "create", identity_id=identity.id, wallet_address=address
            )
            return identity
        except IdentityAlreadyExistsError:
            identity = await self.provider.get_user_by_email(email)
            if identity is None:
                raise ProvisioningFailedError(
                    details={"cause": "identity exists but cannot be found", "email": email}
                )
            log_identity_operation(
                "adopt", identity_id=identity.id, wallet_address=address
            )
            return identity

    async def _reresolve(self, address: str) -> Identity:
        profile = await self.profiles.get_by_wallet(address)
        if not profile or not profile.identity_id:
            raise ProvisioningFailedError(
                details={"cause": "profile not linked after conflict", "wallet_address": address}
            )
        return await self._load_linked(profile)

    @staticmethod
    def _bind_wallet(identity: Identity, address: str) -> Identity:
        if identity.wallet_address == address:
            return identity
        return identity.model_copy(update={"wallet_address": address})


# Global service instance
identity_service = IdentityService()
