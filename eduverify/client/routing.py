"""
Route guard for role-gated client pages.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict

from eduverify.client.state import AuthSnapshot, needs_onboarding
from eduverify.domain.models.profile import DEFAULT_ROLE, UserRole

SIGN_IN_PATH = "/auth/sign-in"
ONBOARDING_PREFIX = "/onboarding"
ONBOARDING_PATH = "/onboarding/select-role"

DASHBOARD_PATHS: Dict[UserRole, str] = {
    UserRole.STUDENT: "/dashboard/student",
    UserRole.ISSUER: "/dashboard/issuer",
    UserRole.VERIFIER: "/dashboard/verifier",
    UserRole.ADMIN: "/dashboard/admin",
}


class RouteAction(str, Enum):
    """What the client should do with a navigation."""

    ALLOW = "allow"
    WAIT = "wait"
    SIGN_IN = "sign_in"
    ONBOARDING = "onboarding"
    DASHBOARD = "dashboard"


class RouteDecision(BaseModel):
    """Guard outcome; ``redirect_to`` is set for every redirecting action."""

    model_config = ConfigDict(frozen=True)

    action: RouteAction
    redirect_to: Optional[str] = None


def dashboard_path(role: Optional[UserRole]) -> str:
    """Dashboard for a role; users without roles land on the default one."""
    return DASHBOARD_PATHS[role or DEFAULT_ROLE]


def authorize_route(
    snapshot: AuthSnapshot,
    path: str,
    required_role: Optional[UserRole] = None,
    require_auth: bool = True,
) -> RouteDecision:
    """
    Decide whether the current user may open ``path``.

    Order: wait for loading, require sign-in, force onboarding, keep onboarded
    users out of onboarding pages, then check the required role.
    """
    authenticated = snapshot.is_authenticated

    if snapshot.is_loading or (authenticated and not snapshot.profile_loaded):
        return RouteDecision(action=RouteAction.WAIT)

    if require_auth and not authenticated:
        return RouteDecision(action=RouteAction.SIGN_IN, redirect_to=SIGN_IN_PATH)

    if not authenticated:
        return RouteDecision(action=RouteAction.ALLOW)

    on_onboarding_page = path.startswith(ONBOARDING_PREFIX)

    if needs_onboarding(snapshot):
        if on_onboarding_page:
            return RouteDecision(action=RouteAction.ALLOW)
        return RouteDecision(action=RouteAction.ONBOARDING, redirect_to=ONBOARDING_PATH)

    if on_onboarding_page:
        return RouteDecision(
            action=RouteAction.DASHBOARD, redirect_to=dashboard_path(snapshot.primary_role)
        )

    if required_role is not None and required_role not in snapshot.roles:
        return RouteDecision(
            action=RouteAction.DASHBOARD, redirect_to=dashboard_path(snapshot.primary_role)
        )

    return RouteDecision(action=RouteAction.ALLOW)
