"""
Configuration management for the EduVerify authentication service.
Handles environment variables and application settings for wallet-based sign-in.
"""

from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "EduVerify Auth"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]
    ALLOWED_HOSTS: List[str] = [
        "localhost",
        "127.0.0.1",
    ]

    # Database - MongoDB (profiles, user_roles)
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "eduverify"
    MONGO_USER: Optional[str] = None
    MONGO_PASSWORD: Optional[str] = None

    # Redis for access-token lookups
    REDIS_URI: str = "redis://localhost:6379"
    REDIS_DB: int = 0
    ACCESS_TOKEN_CACHE_TTL: int = 60  # seconds

    # Identity provider (GoTrue-compatible auth server)
    IDENTITY_PROVIDER_URL: str = "http://localhost:9999"
    IDENTITY_PROVIDER_SERVICE_KEY: str = "your-service-role-key"
    IDENTITY_PROVIDER_ANON_KEY: str = "your-anon-key"
    IDENTITY_PROVIDER_TIMEOUT: float = 10.0

    # Client package: where the auth API is served
    API_BASE_URL: str = "http://localhost:8000"
    API_TIMEOUT: float = 10.0

    # Wallet identities
    WALLET_EMAIL_DOMAIN: str = "wallet.eduverify.local"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    def get_effective_cors_origins(self) -> List[str]:
        """
        Get effective CORS origins based on environment.
        Local dev servers are always allowed outside production.
        """
        origins = list(self.ALLOWED_ORIGINS)
        if self.ENVIRONMENT == "production":
            return origins

        for port in (3000, 5173, 8080):
            origin = f"http://localhost:{port}"
            if origin not in origins:
                origins.append(origin)

        return origins

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            return [host.strip() for host in v.split(",") if host.strip()]
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of {allowed_envs}")
        return v

    @field_validator("WALLET_EMAIL_DOMAIN")
    @classmethod
    def validate_wallet_email_domain(cls, v):
        """Wallet identities are keyed by email, so the domain must be bare."""
        v = v.strip().lower()
        if not v or "@" in v:
            raise ValueError("WALLET_EMAIL_DOMAIN must be a bare domain name")
        return v

    def get_identity_provider_config(self) -> Dict[str, Any]:
        """Get identity provider connection settings."""
        return {
            "base_url": self.IDENTITY_PROVIDER_URL.rstrip("/"),
            "service_key": self.IDENTITY_PROVIDER_SERVICE_KEY,
            "anon_key": self.IDENTITY_PROVIDER_ANON_KEY,
            "timeout": self.IDENTITY_PROVIDER_TIMEOUT,
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create global settings instance
settings = Settings()


def get_mongodb_url() -> str:
    """
    Get MongoDB connection URL with authentication if credentials are provided.

    Returns:
        str: MongoDB connection URL
    """
    if settings.MONGO_USER and settings.MONGO_PASSWORD:
        base_url = settings.MONGO_URI.replace("mongodb://", "")
        if "@" not in base_url:
            return f"mongodb://{settings.MONGO_USER}:{settings.MONGO_PASSWORD}@{base_url}"

    return settings.MONGO_URI


def get_mongodb_database_name() -> str:
    """Get MongoDB database name."""
    return settings.MONGO_DB_NAME


def is_production() -> bool:
    """Check if running in production environment."""
    return settings.ENVIRONMENT == "production"


def is_development() -> bool:
    """Check if running in development environment."""
    return settings.ENVIRONMENT == "development"
