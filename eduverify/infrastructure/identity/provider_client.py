"""
HTTP client for the identity provider (GoTrue-compatible auth server).

Admin calls use the service-role key; session calls (redeem, current user,
logout) use the anon key plus the caller's access token.
"""

from typing import Any, Dict, Optional

import httpx

from eduverify.core.config import settings
from eduverify.core.exceptions import (
    IdentityAlreadyExistsError,
    IdentityProviderError,
    InvalidTokenError,
)
from eduverify.core.logging import get_logger
from eduverify.domain.models.identity import Identity, Session, SessionCredential

logger = get_logger(__name__)

_EMAIL_EXISTS_CODES = {"email_exists", "user_already_exists"}


class IdentityProviderClient:
    """Thin async wrapper over the identity provider's admin and session endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        anon_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = settings.get_identity_provider_config()
        self.base_url = (base_url or config["base_url"]).rstrip("/")
        self.service_key = service_key or config["service_key"]
        self.anon_key = anon_key or config["anon_key"]
        self.timeout = timeout or config["timeout"]
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        )

    def _admin_headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
            "User-Agent": "EduVerify-Auth/1.0",
        }

    def _session_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Content-Type": "application/json",
            "User-Agent": "EduVerify-Auth/1.0",
        }

    async def _request(
        self,
        method: str,
        path: str,
        headers: Dict[str, str],
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.request(
                    method, path, headers=headers, json=json, params=params
                )
        except httpx.TimeoutException as e:
            logger.error(f"Identity provider timeout on {method} {path}")
            raise IdentityProviderError(
                "Identity provider timeout", {"path": path, "cause": str(e)}
            )
        except httpx.HTTPError as e:
            logger.error(f"Identity provider connection error on {method} {path}: {e}")
            raise IdentityProviderError(
                "Identity provider unavailable", {"path": path, "cause": str(e)}
            )

    @staticmethod
    def _json(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            raise IdentityProviderError(
                "Malformed identity provider response",
                {"status_code": response.status_code, "body": response.text[:200]},
            )
        if not isinstance(data, dict):
            raise IdentityProviderError(
                "Malformed identity provider response",
                {"status_code": response.status_code},
            )
        return data

    def _raise_for_status(self, response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        logger.error(
            f"Identity provider {operation} failed with status "
            f"{response.status_code}: {response.text[:200]}"
        )
        raise IdentityProviderError(
            f"Identity provider {operation} failed",
            {"status_code": response.status_code, "body": response.text[:200]},
        )

    @staticmethod
    def _is_email_conflict(response: httpx.Response) -> bool:
        if response.status_code not in (409, 422):
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        if not isinstance(body, dict):
            return False
        if body.get("error_code") in _EMAIL_EXISTS_CODES:
            return True
        message = str(body.get("msg") or body.get("message") or "").lower()
        return "already" in message and "registered" in message

    # Admin operations

    async def create_user(self, email: str, wallet_address: str) -> Identity:
        """
        Create a pre-confirmed identity carrying the wallet address as metadata.

        Raises:
            IdentityAlreadyExistsError: The email is already registered
        """
        response = await self._request(
            "POST",
            "/auth/v1/admin/users",
            headers=self._admin_headers(),
            json={
                "email": email,
                "email_confirm": True,
                "user_metadata": {"wallet_address": wallet_address},
            },
        )
        if self._is_email_conflict(response):
            raise IdentityAlreadyExistsError(email)
        self._raise_for_status(response, "create_user")

        return Identity.from_provider_user(self._json(response))

    async def get_user_by_id(self, identity_id: str) -> Identity:
        """Fetch an identity by provider user id."""
        response = await self._request(
            "GET",
            f"/auth/v1/admin/users/{identity_id}",
            headers=self._admin_headers(),
        )
        self._raise_for_status(response, "get_user_by_id")

        return Identity.from_provider_user(self._json(response))

    async def get_user_by_email(self, email: str) -> Optional[Identity]:
        """Find an identity by exact email, or None."""
        response = await self._request(
            "GET",
            "/auth/v1/admin/users",
            headers=self._admin_headers(),
            params={"filter": email, "page": 1, "per_page": 50},
        )
        self._raise_for_status(response, "get_user_by_email")

        users = self._json(response).get("users") or []
        for user in users:
            if (user.get("email") or "").lower() == email.lower():
                return Identity.from_provider_user(user)
        return None

    async def generate_magic_link(self, email: str) -> SessionCredential:
        """Generate a single-use magic-link credential for an identity's email."""
        response = await self._request(
            "POST",
            "/auth/v1/admin/generate_link",
            headers=self._admin_headers(),
            json={"type": "magiclink", "email": email},
        )
        self._raise_for_status(response, "generate_link")

        data = self._json(response)
        properties = data.get("properties") or data
        token_hash = properties.get("hashed_token")
        action_link = properties.get("action_link")
        if not token_hash or not action_link:
            raise IdentityProviderError(
                "Identity provider returned no link credential",
                {"keys": sorted(properties.keys())},
            )

        return SessionCredential(token_hash=token_hash, verification_url=action_link)

    # Session operations

    async def redeem_magic_link(self, token_hash: str) -> Session:
        """
        Exchange a magic-link token hash for a live session.

        Raises:
            InvalidTokenError: The token is unknown, used or expired
        """
        response = await self._request(
            "POST",
            "/auth/v1/verify",
            headers=self._session_headers(),
            json={"type": "magiclink", "token_hash": token_hash},
        )
        if response.status_code in (400, 401, 403, 404, 422):
            raise InvalidTokenError({"status_code": response.status_code})
        self._raise_for_status(response, "verify")

        data = self._json(response)
        if not data.get("access_token") or not data.get("user"):
            raise IdentityProviderError("Identity provider returned no session")

        return Session(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "bearer",
            expires_in=data.get("expires_in"),
            user=Identity.from_provider_user(data["user"]),
        )

    async def get_user(self, access_token: str) -> Identity:
        """
        Resolve the identity behind a session access token.

        Raises:
            InvalidTokenError: The token is invalid or expired
        """
        response = await self._request(
            "GET",
            "/auth/v1/user",
            headers=self._session_headers(access_token),
        )
        if response.status_code in (401, 403):
            raise InvalidTokenError({"status_code": response.status_code})
        self._raise_for_status(response, "get_user")

        return Identity.from_provider_user(self._json(response))

    async def sign_out(self, access_token: str) -> None:
        """Revoke a session. An already-invalid token counts as signed out."""
        response = await self._request(
            "POST",
            "/auth/v1/logout",
            headers=self._session_headers(access_token),
        )
        if response.status_code in (401, 403, 404):
            return
        self._raise_for_status(response, "logout")


# Global client instance
identity_provider_client = IdentityProviderClient()
