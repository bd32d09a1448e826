"""
Session authentication guard for FastAPI.
Resolves a bearer session token to the signed-in identity, with Redis caching.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from eduverify.core.config import settings
from eduverify.core.exceptions import InvalidTokenError
from eduverify.core.logging import get_logger
from eduverify.infrastructure.cache import CacheService, cache_service
from eduverify.infrastructure.identity.provider_client import (
    IdentityProviderClient,
    identity_provider_client,
)

logger = get_logger(__name__)

# Security scheme for the provider session token
security = HTTPBearer(auto_error=False)


class AuthenticatedUser:
    """Authenticated user data structure."""

    def __init__(self, identity_id: str, email: str, wallet_address: Optional[str] = None):
        self.identity_id = identity_id
        self.email = email
        self.wallet_address = wallet_address

    def to_cache(self) -> dict:
        return {
            "identity_id": self.identity_id,
            "email": self.email,
            "wallet_address": self.wallet_address,
        }


class AuthGuard:
    """Session guard validating access tokens against the identity provider."""

    def __init__(
        self,
        provider: Optional[IdentityProviderClient] = None,
        cache: Optional[CacheService] = None,
    ):
        self.provider = provider or identity_provider_client
        self.cache = cache or cache_service

    async def authenticate(self, access_token: Optional[str]) -> AuthenticatedUser:
        """
        Resolve an access token to the signed-in identity.

        Raises:
            InvalidTokenError: Missing, invalid or expired token
        """
        if not access_token:
            raise InvalidTokenError({"reason": "missing_token"})

        cache_key = self.cache.secret_key("access_token", access_token)
        cached = await self.cache.get(cache_key)
        if isinstance(cached, dict) and cached.get("identity_id"):
            return AuthenticatedUser(**cached)

        identity = await self.provider.get_user(access_token)
        user = AuthenticatedUser(
            identity_id=identity.id,
            email=identity.email,
            wallet_address=identity.wallet_address,
        )

        await self.cache.set(
            cache_key, user.to_cache(), expire=settings.ACCESS_TOKEN_CACHE_TTL
        )
        logger.debug(f"Session token resolved for identity {user.identity_id}")
        return user


# Global guard instance
auth_guard = AuthGuard()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthenticatedUser:
    """
    FastAPI dependency to get the current signed-in identity.

    Raises:
        InvalidTokenError: If authentication fails
    """
    token = credentials.credentials if credentials else None
    return await auth_guard.authenticate(token)
