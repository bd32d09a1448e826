"""
Client-side holder for the identity provider session.
Redeems one-time credentials and notifies listeners when the session changes.
"""

from typing import Awaitable, Callable, List, Optional

from eduverify.core.logging import get_logger, log_session_operation
from eduverify.domain.models.identity import Session
from eduverify.infrastructure.identity.provider_client import (
    IdentityProviderClient,
    identity_provider_client,
)

logger = get_logger(__name__)

# Listener receives (event, session); session is None once signed out
AuthStateListener = Callable[[str, Optional[Session]], Awaitable[None]]


class IdentityProviderSession:
    """Live provider session for one client."""

    def __init__(
        self,
        provider: Optional[IdentityProviderClient] = None,
        session: Optional[Session] = None,
    ):
        self.provider = provider or identity_provider_client
        self._session: Optional[Session] = session
        self._listeners: List[AuthStateListener] = []

    async def get_session(self) -> Optional[Session]:
        """Return the stored session, if any."""
        return self._session

    def on_auth_state_change(self, listener: AuthStateListener) -> Callable[[], None]:
        """
        Register a session-change listener.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, event: str) -> None:
        for listener in list(self._listeners):
            await listener(event, self._session)

    async def redeem_magic_link(self, token_hash: str) -> Session:
        """
        Exchange a one-time credential for a session and notify listeners.

        Raises:
            InvalidTokenError: The credential is unknown, used or expired
            IdentityProviderError: The provider call failed
        """
        session = await self.provider.redeem_magic_link(token_hash)
        self._session = session
        log_session_operation("redeem", identity_id=session.user.id)
        await self._notify("SIGNED_IN")
        return session

    async def sign_out(self) -> None:
        """Revoke the session at the provider. Local state is cleared regardless."""
        session = self._session
        try:
            if session is not None:
                await self.provider.sign_out(session.access_token)
        finally:
            self._session = None
            if session is not None:
                log_session_operation("sign_out", identity_id=session.user.id)
            await self._notify("SIGNED_OUT")

    async def get_authenticated_wallet(self) -> Optional[str]:
        """Wallet address from the signed-in user's metadata, or None."""
        if self._session is None:
            return None
        identity = await self.provider.get_user(self._session.access_token)
        return identity.wallet_address
