"""
Configuration settings for the impatient-review admin API.

Loads environment variables from .env file and provides typed configuration.
"""

from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    ENVIRONMENT: Literal["development", "production", "test"] = Field(
        default="development", description="Deployment environment"
    )

    # API Configuration
    API_PREFIX: str = "/api"
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins",
    )

    # Database Configuration
    DATABASE_URL: str = Field(
        default="sqlite:///./data/impatient_review.db", description="SQLAlchemy database URL"
    )
    DATABASE_ECHO: bool = Field(
        default=False, description="Echo SQL queries (for debugging)"
    )

    # Password hashing
    BCRYPT_WORK_FACTOR: int = Field(
        default=12, ge=4, le=31, description="bcrypt cost factor (log2 rounds)"
    )

    # Session Configuration
    SESSION_BACKEND: Literal["database", "memory"] = Field(
        default="database", description="Where server-side sessions are kept"
    )
    SESSION_MAX_AGE_DAYS: int = Field(
        default=7, gt=0, description="Session cookie and store lifetime in days"
    )
    SESSION_SAME_SITE: Literal["lax", "strict", "none"] = Field(
        default="lax",
        description="SameSite flag for the session cookie ('none' for cross-site frontends)",
    )

    # WebAuthn relying party
    WEBAUTHN_RP_NAME: str = Field(default="Impatient Review", description="Relying party name")
    WEBAUTHN_RP_ID: str = Field(default="localhost", description="Relying party id (domain)")
    WEBAUTHN_ORIGIN: str = Field(
        default="http://localhost:5173", description="Expected origin of WebAuthn responses"
    )
    WEBAUTHN_TIMEOUT_MS: int = Field(
        default=60000, gt=0, description="Ceremony timeout handed to the client"
    )

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = Field(
        default=True, description="Enable per-client rate limits on credential endpoints"
    )

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def session_cookie_name(self) -> str:
        # __Host- prefixed cookies are only accepted over https with path=/ and no domain
        return "__Host-ir_session" if self.is_production else "ir_session"

    @property
    def session_max_age_seconds(self) -> int:
        return self.SESSION_MAX_AGE_DAYS * 24 * 60 * 60

    @property
    def challenge_max_age_seconds(self) -> int:
        # Sessions holding only a pending challenge live as long as the ceremony
        return (self.WEBAUTHN_TIMEOUT_MS + 999) // 1000


# Global settings instance
settings = Settings()
