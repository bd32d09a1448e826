"""
Client package.
Wallet signing, session handling, auth state and route guarding for EduVerify front ends.
"""

from .wallet import LocalAccountWallet, WalletProvider, sign_challenge
from .session import IdentityProviderSession
from .profile_source import ApiProfileSource
from .auth_client import WalletAuthClient
from .state import AuthCoordinator, AuthSnapshot, AuthStatus, needs_onboarding
from .routing import (
    DASHBOARD_PATHS,
    RouteAction,
    RouteDecision,
    authorize_route,
    dashboard_path,
)

__all__ = [
    "LocalAccountWallet",
    "WalletProvider",
    "sign_challenge",
    "IdentityProviderSession",
    "ApiProfileSource",
    "WalletAuthClient",
    "AuthCoordinator",
    "AuthSnapshot",
    "AuthStatus",
    "needs_onboarding",
    "DASHBOARD_PATHS",
    "RouteAction",
    "RouteDecision",
    "authorize_route",
    "dashboard_path",
]
