"""
Profile and role data for the signed-in client, loaded from the auth API.
"""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from eduverify.core.config import settings
from eduverify.core.exceptions import ProfileFetchFailedError, ProfileNotFoundError
from eduverify.core.logging import get_logger
from eduverify.domain.models.profile import DEFAULT_ROLE, ProfileModel, UserRole

logger = get_logger(__name__)

PROFILE_PATH = "/api/v1/auth/me/profile"
ROLES_PATH = "/api/v1/auth/me/roles"
ONBOARDING_PATH = "/api/v1/auth/me/onboarding/complete"


class ApiProfileSource:
    """Calls the profile endpoints with the session access token."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.API_TIMEOUT
        self.transport = transport

    async def _call(
        self,
        method: str,
        path: str,
        access_token: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.request(
                    method,
                    path,
                    headers={"Authorization": f"Bearer {access_token}"},
                    json=json,
                )
        except httpx.HTTPError as e:
            logger.error(f"Profile request {method} {path} failed: {e}")
            raise ProfileFetchFailedError(details={"path": path, "cause": str(e)})

        if response.status_code == 404:
            raise ProfileNotFoundError("current user", {"path": path})
        if not response.is_success:
            logger.error(f"Profile request {method} {path} returned {response.status_code}")
            raise ProfileFetchFailedError(
                details={"path": path, "status_code": response.status_code}
            )

        try:
            body = response.json()
        except ValueError:
            raise ProfileFetchFailedError(details={"path": path, "reason": "malformed_body"})

        if not isinstance(body, dict):
            raise ProfileFetchFailedError(details={"path": path, "reason": "malformed_body"})
        return body

    @staticmethod
    def _parse_profile(data: Any, path: str) -> ProfileModel:
        try:
            return ProfileModel.model_validate(data)
        except ValidationError as e:
            logger.error(f"Profile from {path} failed validation: {e.error_count()} errors")
            raise ProfileFetchFailedError(details={"path": path, "reason": "invalid_profile"})

    async def fetch_profile(self, access_token: str) -> Optional[ProfileModel]:
        body = await self._call("GET", PROFILE_PATH, access_token)
        data = body.get("data")
        return self._parse_profile(data, PROFILE_PATH) if data else None

    async def fetch_roles(self, access_token: str) -> List[UserRole]:
        body = await self._call("GET", ROLES_PATH, access_token)
        values = body.get("data") or []
        if not isinstance(values, list):
            raise ProfileFetchFailedError(details={"path": ROLES_PATH, "reason": "malformed_body"})

        roles = []
        for value in values:
            try:
                roles.append(UserRole(value))
            except ValueError:
                logger.warning(f"Ignoring unknown role: {value}")
        return roles

    async def mark_onboarded(
        self,
        access_token: str,
        role: UserRole = DEFAULT_ROLE,
        display_name: Optional[str] = None,
        institution: Optional[str] = None,
    ) -> ProfileModel:
        """
        Record onboarding completion and the chosen role on the server.

        Raises:
            ProfileNotFoundError: The identity has no profile
            ProfileFetchFailedError: The request failed or returned no profile
        """
        payload = {
            "role": UserRole(role).value,
            "display_name": display_name,
            "institution": institution,
        }
        body = await self._call("POST", ONBOARDING_PATH, access_token, json=payload)
        data = body.get("data")
        if not data:
            raise ProfileFetchFailedError(details={"path": ONBOARDING_PATH, "reason": "missing_profile"})
        return self._parse_profile(data, ONBOARDING_PATH)
