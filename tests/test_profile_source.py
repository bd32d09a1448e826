import json

import httpx
import pytest

from eduverify.client import ApiProfileSource
from eduverify.core.exceptions import ProfileFetchFailedError, ProfileNotFoundError
from eduverify.domain.models.profile import UserRole

pytestmark = pytest.mark.anyio

WALLET = "0x" + "12" * 20
PROFILE = {
    "identity_id": "user-1",
    "wallet_address": WALLET,
    "role": "verifier",
    "display_name": "Ada",
    "institution": "Acme Hiring",
    "onboarded": True,
}


def _source(handler) -> ApiProfileSource:
    return ApiProfileSource(base_url="http://api.test", transport=httpx.MockTransport(handler))


async def test_mark_onboarded_sends_role_and_details():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True, "data": PROFILE})

    profile = await _source(handler).mark_onboarded(
        "access-1", role=UserRole.VERIFIER, display_name="Ada", institution="Acme Hiring"
    )

    assert seen["path"] == "/api/v1/auth/me/onboarding/complete"
    assert seen["auth"] == "Bearer access-1"
    assert seen["body"] == {
        "role": "verifier",
        "display_name": "Ada",
        "institution": "Acme Hiring",
    }
    assert profile.role == UserRole.VERIFIER
    assert profile.onboarded is True


@pytest.mark.parametrize(
    "body",
    [
        {"success": True, "data": {"wallet_address": WALLET, "role": "registrar"}},
        {"success": True, "data": "not a profile"},
        ["unexpected", "list"],
    ],
)
async def test_fetch_profile_wraps_malformed_bodies(body):
    source = _source(lambda request: httpx.Response(200, json=body))

    with pytest.raises(ProfileFetchFailedError):
        await source.fetch_profile("access-1")


async def test_fetch_profile_without_data_is_none():
    source = _source(lambda request: httpx.Response(200, json={"success": True, "data": None}))

    assert await source.fetch_profile("access-1") is None


async def test_fetch_roles_skips_unknown_and_rejects_non_list():
    good = _source(
        lambda request: httpx.Response(200, json={"success": True, "data": ["student", "dean"]})
    )
    bad = _source(lambda request: httpx.Response(200, json={"success": True, "data": "student"}))

    assert await good.fetch_roles("access-1") == [UserRole.STUDENT]
    with pytest.raises(ProfileFetchFailedError):
        await bad.fetch_roles("access-1")


async def test_mark_onboarded_maps_missing_profile():
    missing = _source(lambda request: httpx.Response(404, json={"error": "Profile not found"}))
    empty = _source(lambda request: httpx.Response(200, json={"success": True, "data": None}))

    with pytest.raises(ProfileNotFoundError):
        await missing.mark_onboarded("access-1")
    with pytest.raises(ProfileFetchFailedError):
        await empty.mark_onboarded("access-1")
