import pytest

from eduverify.client import (
    DASHBOARD_PATHS,
    AuthSnapshot,
    AuthStatus,
    RouteAction,
    authorize_route,
    dashboard_path,
)
from eduverify.domain.models.identity import Identity
from eduverify.domain.models.profile import ProfileModel, UserRole

WALLET = "0x" + "ab" * 20
USER = Identity(id="user-1", email=f"{WALLET}@wallet.eduverify.local", wallet_address=WALLET)


def _signed_in(onboarded=True, roles=(UserRole.STUDENT,), profile_loaded=True, profile=True):
    return AuthSnapshot(
        status=AuthStatus.AUTHENTICATED,
        user=USER,
        profile=ProfileModel(identity_id="user-1", wallet_address=WALLET, onboarded=onboarded)
        if profile
        else None,
        roles=tuple(roles),
        profile_loaded=profile_loaded,
        is_loading=False,
    )


SIGNED_OUT = AuthSnapshot(status=AuthStatus.UNAUTHENTICATED, is_loading=False)


def test_every_role_has_a_dashboard():
    assert set(DASHBOARD_PATHS) == set(UserRole)
    assert dashboard_path(UserRole.ISSUER) == "/dashboard/issuer"
    assert dashboard_path(None) == "/dashboard/student"


def test_waits_while_loading():
    decision = authorize_route(AuthSnapshot(), "/dashboard/student")
    assert decision.action == RouteAction.WAIT


def test_waits_until_profile_loaded():
    decision = authorize_route(_signed_in(profile_loaded=False), "/dashboard/student")
    assert decision.action == RouteAction.WAIT


def test_signed_out_user_is_sent_to_sign_in():
    decision = authorize_route(SIGNED_OUT, "/dashboard/student")
    assert decision.action == RouteAction.SIGN_IN
    assert decision.redirect_to == "/auth/sign-in"


def test_public_route_allows_signed_out_user():
    decision = authorize_route(SIGNED_OUT, "/verify", require_auth=False)
    assert decision.action == RouteAction.ALLOW


@pytest.mark.parametrize("profile", [True, False])
def test_user_needing_onboarding_is_sent_to_role_selection(profile):
    decision = authorize_route(_signed_in(onboarded=False, profile=profile), "/dashboard/student")
    assert decision.action == RouteAction.ONBOARDING
    assert decision.redirect_to == "/onboarding/select-role"


def test_user_needing_onboarding_may_open_onboarding_pages():
    decision = authorize_route(_signed_in(onboarded=False), "/onboarding/student")
    assert decision.action == RouteAction.ALLOW


def test_onboarded_user_is_kept_out_of_onboarding():
    decision = authorize_route(_signed_in(roles=[UserRole.VERIFIER]), "/onboarding/select-role")
    assert decision.action == RouteAction.DASHBOARD
    assert decision.redirect_to == "/dashboard/verifier"


def test_missing_role_redirects_to_primary_dashboard():
    decision = authorize_route(
        _signed_in(roles=[UserRole.STUDENT]), "/issuer/issue", required_role=UserRole.ISSUER
    )
    assert decision.action == RouteAction.DASHBOARD
    assert decision.redirect_to == "/dashboard/student"


def test_held_role_is_allowed():
    decision = authorize_route(
        _signed_in(roles=[UserRole.STUDENT, UserRole.ADMIN]),
        "/admin/users",
        required_role=UserRole.ADMIN,
    )
    assert decision.action == RouteAction.ALLOW
