"""
Client authentication and onboarding state.

``AuthCoordinator`` owns the signed-in identity, its profile and its roles,
reacts to provider session changes, and publishes immutable snapshots to
observers. Every session change or sign-out starts a new epoch; results of a
fetch started in an older epoch are dropped.
"""

import asyncio
from enum import Enum
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from eduverify.client.auth_client import WalletAuthClient
from eduverify.client.profile_source import ApiProfileSource
from eduverify.client.session import IdentityProviderSession
from eduverify.client.wallet import WalletProvider
from eduverify.core.exceptions import (
    AuthenticationFailedError,
    EduVerifyException,
    ProfileFetchFailedError,
    RoleNotSelectableError,
    WalletUnavailableError,
)
from eduverify.core.logging import get_logger
from eduverify.domain.models.identity import Identity, Session
from eduverify.domain.models.profile import (
    DEFAULT_ROLE,
    SELF_SERVICE_ROLES,
    ProfileModel,
    UserRole,
)

logger = get_logger(__name__)


class AuthStatus(str, Enum):
    """Coarse authentication state."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    SIGNED_OUT = "signed_out"


class AuthSnapshot(BaseModel):
    """Immutable view of the client auth state handed to observers."""

    model_config = ConfigDict(frozen=True)

    status: AuthStatus = AuthStatus.UNAUTHENTICATED
    user: Optional[Identity] = None
    profile: Optional[ProfileModel] = None
    roles: Tuple[UserRole, ...] = ()
    profile_loaded: bool = False
    is_loading: bool = True
    is_authenticating: bool = False
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.status == AuthStatus.AUTHENTICATED and self.user is not None

    @property
    def primary_role(self) -> Optional[UserRole]:
        return self.roles[0] if self.roles else None


def needs_onboarding(snapshot: AuthSnapshot) -> bool:
    """True when a signed-in user has no profile or has not finished onboarding."""
    if not snapshot.is_authenticated:
        return False
    return snapshot.profile is None or not snapshot.profile.onboarded


SnapshotObserver = Callable[[AuthSnapshot], None]


class AuthCoordinator:
    """Explicit-lifecycle owner of the client auth state."""

    def __init__(
        self,
        session: IdentityProviderSession,
        profiles: ApiProfileSource,
        auth_client: Optional[WalletAuthClient] = None,
    ):
        self.session = session
        self.profiles = profiles
        self.auth_client = auth_client or WalletAuthClient(session)
        self._snapshot = AuthSnapshot()
        self._current_session: Optional[Session] = None
        self._observers: List[SnapshotObserver] = []
        self._unsubscribe_session: Optional[Callable[[], None]] = None
        self._epoch = 0
        self._alive = False
        self._signing_out = False

    @property
    def snapshot(self) -> AuthSnapshot:
        return self._snapshot

    # Lifecycle

    async def init(self) -> None:
        """Subscribe to session changes and restore any stored session."""
        self._alive = True
        self._unsubscribe_session = self.session.on_auth_state_change(
            self.on_session_change
        )
        try:
            restored = await self.session.get_session()
        except EduVerifyException as e:
            logger.error("Session restore failed", error_code=e.error_code)
            restored = None
        await self.on_session_change("INITIAL_SESSION", restored)

    def teardown(self) -> None:
        """Stop reacting to session changes. In-flight results are dropped."""
        self._alive = False
        self._epoch += 1
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        self._observers.clear()

    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """
        Register an observer; it is called with every new snapshot.

        Returns:
            Callable that removes the observer
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self, **changes) -> None:
        self._snapshot = self._snapshot.model_copy(update=changes)
        for observer in list(self._observers):
            observer(self._snapshot)

    def _is_current(self, epoch: int) -> bool:
        return self._alive and epoch == self._epoch

    # Session handling

    async def on_session_change(self, event: str, session: Optional[Session]) -> None:
        """Apply a provider session change and, when signed in, load profile data."""
        if not self._alive or self._signing_out:
            return

        self._epoch += 1
        epoch = self._epoch
        self._current_session = session

        if session is None:
            self._publish(
                status=AuthStatus.UNAUTHENTICATED,
                user=None,
                profile=None,
                roles=(),
                profile_loaded=False,
                is_loading=False,
            )
            return

        self._publish(
            status=AuthStatus.AUTHENTICATED,
            user=session.user,
            profile_loaded=False,
            error=None,
        )

        profile, roles, error = await self._load_profile_data(session.access_token)
        if not self._is_current(epoch):
            logger.debug(f"Dropping profile data from stale session epoch {epoch}")
            return

        self._publish(
            profile=profile,
            roles=tuple(roles),
            profile_loaded=True,
            is_loading=False,
            error=error,
        )

    async def _load_profile_data(
        self, access_token: str
    ) -> Tuple[Optional[ProfileModel], List[UserRole], Optional[str]]:
        """Fetch profile and roles concurrently. A failed fetch reads as empty."""
        profile_result, roles_result = await asyncio.gather(
            self.profiles.fetch_profile(access_token),
            self.profiles.fetch_roles(access_token),
            return_exceptions=True,
        )

        error = None
        for result in (profile_result, roles_result):
            if isinstance(result, EduVerifyException):
                logger.error(
                    "Profile data fetch failed",
                    error_code=result.error_code,
                    details=result.details,
                )
                error = ProfileFetchFailedError().message
            elif isinstance(result, Exception):
                logger.error(
                    "Profile data fetch failed",
                    error_type=type(result).__name__,
                    exc_info=result,
                )
                error = ProfileFetchFailedError().message
            elif isinstance(result, BaseException):
                # Cancellation and interpreter exits are not fetch failures
                raise result

        profile = None if isinstance(profile_result, BaseException) else profile_result
        roles = [] if isinstance(roles_result, BaseException) else roles_result
        return profile, roles, error

    # Queries

    def has_role(self, role: UserRole) -> bool:
        return role in self._snapshot.roles

    def needs_onboarding(self) -> bool:
        return needs_onboarding(self._snapshot)

    # Commands

    async def refresh_profile(self) -> None:
        """Reload profile and roles for the current session."""
        session = self._current_session
        if session is None:
            self._publish(profile=None, roles=())
            return

        epoch = self._epoch
        profile, roles, error = await self._load_profile_data(session.access_token)
        if not self._is_current(epoch):
            return
        self._publish(profile=profile, roles=tuple(roles), profile_loaded=True, error=error)

    async def complete_onboarding(
        self,
        role: UserRole = DEFAULT_ROLE,
        display_name: Optional[str] = None,
        institution: Optional[str] = None,
    ) -> None:
        """
        Record the chosen role and profile details and mark the signed-in
        user's profile onboarded. A no-op when already done.

        Raises:
            AuthenticationFailedError: Nobody is signed in
            RoleNotSelectableError: The role cannot be self-assigned
            ProfileNotFoundError: The user has no profile
            ProfileFetchFailedError: The server call failed
        """
        session = self._current_session
        if session is None or not self._snapshot.is_authenticated:
            raise AuthenticationFailedError("No authenticated user")
        if role not in SELF_SERVICE_ROLES:
            raise RoleNotSelectableError(UserRole(role).value)

        profile = self._snapshot.profile
        if profile is not None and profile.onboarded:
            return

        epoch = self._epoch
        updated = await self.profiles.mark_onboarded(
            session.access_token,
            role=role,
            display_name=display_name,
            institution=institution,
        )
        if not self._is_current(epoch):
            return

        roles = self._snapshot.roles
        if updated.role not in roles:
            roles = roles + (updated.role,)
        self._publish(profile=updated, roles=roles)

    async def authenticate_wallet(
        self, wallet: Optional[WalletProvider], connected_address: Optional[str]
    ) -> None:
        """
        Sign in with a wallet. The resulting session arrives through the
        session-change listener, which loads profile data.

        Raises:
            WalletUnavailableError: No wallet, or none connected
            AuthenticationFailedError: Any sign-in step failed
        """
        if not connected_address:
            raise WalletUnavailableError("Wallet not connected")

        if not self._snapshot.is_authenticated:
            self._publish(status=AuthStatus.AUTHENTICATING)
        self._publish(is_authenticating=True, error=None)

        try:
            await self.auth_client.authenticate_with_wallet(wallet, connected_address)
        except EduVerifyException as e:
            self._publish(error=e.message)
            raise
        finally:
            if self._snapshot.status == AuthStatus.AUTHENTICATING:
                self._publish(status=AuthStatus.UNAUTHENTICATED)
            self._publish(is_authenticating=False)

    async def sign_out(self) -> None:
        """Sign out at the provider and clear local state even if that fails."""
        self._epoch += 1
        self._current_session = None
        self._signing_out = True
        try:
            await self.session.sign_out()
        except EduVerifyException as e:
            logger.warning(
                "Provider sign-out failed; clearing local state",
                error_code=e.error_code,
                details=e.details,
            )
        finally:
            self._signing_out = False
            cleared = dict(
                user=None,
                profile=None,
                roles=(),
                profile_loaded=False,
                is_loading=False,
                is_authenticating=False,
                error=None,
            )
            self._publish(status=AuthStatus.SIGNED_OUT, **cleared)
            self._publish(status=AuthStatus.UNAUTHENTICATED, **cleared)
