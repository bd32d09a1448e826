"""
Custom exceptions for the EduVerify authentication service.
Provides structured error handling for wallet sign-in and identity provisioning.
"""

from typing import Any, Dict, Optional

from fastapi import status

from eduverify.core.challenge import FRIENDLY_VERIFY_ERROR


class EduVerifyException(Exception):
    """
    Base exception for the EduVerify service.

    ``message`` is safe to show to end users. ``details`` holds the internal
    cause and is only ever logged.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "EDUVERIFY_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# Wallet & signature
class WalletUnavailableError(EduVerifyException):
    """Raised when no wallet signer is present on the client."""

    def __init__(self, message: str = "No wallet extension is available", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "WALLET_UNAVAILABLE", details)


class AuthenticationFailedError(EduVerifyException):
    """Raised when a user-facing sign-in step fails."""

    def __init__(self, message: str = FRIENDLY_VERIFY_ERROR, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AUTH_ERROR", details)


class InvalidWalletAddressError(EduVerifyException):
    """Raised when a submitted wallet address or payload is malformed."""

    def __init__(self, message: str = FRIENDLY_VERIFY_ERROR, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVALID_WALLET_ADDRESS", details)


class VerificationFailedError(EduVerifyException):
    """Raised when a signed challenge is rejected. Always carries the friendly message."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(FRIENDLY_VERIFY_ERROR, "SIGNATURE_ERROR", details)


# Identity provisioning
class ProvisioningFailedError(EduVerifyException):
    """Raised when identity or profile creation fails."""

    def __init__(self, message: str = "Failed to verify wallet", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROVISIONING_FAILED", details)


class SessionCredentialError(EduVerifyException):
    """Raised when a one-time session credential cannot be issued."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__("Failed to create session", "SESSION_CREDENTIAL_FAILED", details)


class IdentityProviderError(EduVerifyException):
    """Raised when the identity provider call fails."""

    def __init__(self, message: str = "Identity provider request failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "IDENTITY_PROVIDER_ERROR", details)


class IdentityAlreadyExistsError(EduVerifyException):
    """Raised when the provider already holds an identity for an email."""

    def __init__(self, email: str, details: Optional[Dict[str, Any]] = None):
        message = f"Identity already exists: {email}"
        super().__init__(message, "IDENTITY_EXISTS", details)


# Profiles
class DuplicateProfileError(EduVerifyException):
    """Raised when a profile insert hits a uniqueness constraint."""

    def __init__(self, wallet_address: str, details: Optional[Dict[str, Any]] = None):
        message = f"Profile already exists for wallet: {wallet_address}"
        super().__init__(message, "PROFILE_EXISTS", details)


class ProfileNotFoundError(EduVerifyException):
    """Raised when no profile is bound to an identity."""

    def __init__(self, identity_id: str, details: Optional[Dict[str, Any]] = None):
        message = f"Profile not found for identity: {identity_id}"
        super().__init__(message, "PROFILE_NOT_FOUND", details)


class RoleNotSelectableError(EduVerifyException):
    """Raised when onboarding asks for a role users cannot grant themselves."""

    def __init__(self, role: str, details: Optional[Dict[str, Any]] = None):
        message = f"Role cannot be selected during onboarding: {role}"
        super().__init__(message, "ROLE_NOT_SELECTABLE", details)


class ProfileFetchFailedError(EduVerifyException):
    """Raised on the client when profile or role data cannot be loaded."""

    def __init__(self, message: str = "Failed to load profile", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "PROFILE_FETCH_FAILED", details)


# Database Operations
class DatabaseError(EduVerifyException):
    """Raised when database operations fail."""

    def __init__(self, message: str = "Database operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "DATABASE_ERROR", details)


# Token Management
class InvalidTokenError(EduVerifyException):
    """Raised when a session access token is missing, invalid or expired."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__("Invalid or expired session", "INVALID_TOKEN", details)


def get_exception_status_code(exc: EduVerifyException) -> int:
    """
    Get the appropriate HTTP status code for an EduVerifyException.

    Args:
        exc: EduVerifyException instance

    Returns:
        int: HTTP status code
    """
    status_mapping = {
        # Wallet & signature
        "AUTH_ERROR": status.HTTP_401_UNAUTHORIZED,
        "INVALID_WALLET_ADDRESS": status.HTTP_400_BAD_REQUEST,
        "SIGNATURE_ERROR": status.HTTP_401_UNAUTHORIZED,

        # Identity provisioning
        "PROVISIONING_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "SESSION_CREDENTIAL_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
        "IDENTITY_PROVIDER_ERROR": status.HTTP_502_BAD_GATEWAY,
        "IDENTITY_EXISTS": status.HTTP_409_CONFLICT,

        # Profiles
        "PROFILE_EXISTS": status.HTTP_409_CONFLICT,
        "PROFILE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
        "ROLE_NOT_SELECTABLE": status.HTTP_403_FORBIDDEN,

        # Database Operations
        "DATABASE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,

        # Token Management
        "INVALID_TOKEN": status.HTTP_401_UNAUTHORIZED,
    }

    return status_mapping.get(exc.error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
