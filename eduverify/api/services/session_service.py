"""
Session Bootstrap.
Issues one-time credentials that the client redeems for a provider session.
"""

from typing import Optional

from eduverify.core.exceptions import EduVerifyException, SessionCredentialError
from eduverify.core.logging import get_logger, log_session_operation
from eduverify.domain.models.identity import Identity, SessionCredential
from eduverify.infrastructure.identity.provider_client import (
    IdentityProviderClient,
    identity_provider_client,
)

logger = get_logger(__name__)


class SessionService:
    """Service issuing single-use session credentials."""

    def __init__(self, provider: Optional[IdentityProviderClient] = None):
        self.provider = provider or identity_provider_client

    async def issue_session_credential(self, identity: Identity) -> SessionCredential:
        """
        Request a magic-link credential tied to the identity's email.
        The credential is returned to the caller and never redeemed here.

        Raises:
            SessionCredentialError: The provider could not issue a credential
        """
        try:
            credential = await self.provider.generate_magic_link(identity.email)
        except EduVerifyException as e:
            logger.error(
                "Failed to generate session credential",
                identity_id=identity.id,
                cause=e.message,
                details=e.details,
            )
            log_session_operation(
                "issue_credential", identity_id=identity.id, status="failed"
            )
            raise SessionCredentialError({"cause": e.error_code})

        log_session_operation("issue_credential", identity_id=identity.id)
        return credential


# Global service instance
session_service = SessionService()
