"""
Configuration module for the Portal authentication service.

This module uses Pydantic Settings to load and validate environment variables
for session token signing, the user database, the federated login providers
and CORS settings.

Environment variables are loaded from .env file or system environment.
Provider secrets are read once into a Settings instance and handed to the
application factory; nothing else in the package reads the environment.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Session token signing, database access, OAuth provider credentials and
    sign-in page locations are all defined here.
    """

    # =========================================================================
    # Session Token Configuration
    # =========================================================================

    AUTH_SECRET: str = Field(
        ...,
        description="Secret key for signing session tokens (must be cryptographically secure)",
        min_length=32,
    )

    SESSION_JWT_ALGORITHM: str = Field(
        default="HS256",
        description="JWT signing algorithm (HS256, HS384, or HS512 recommended)",
    )

    USE_RS256_JWT: bool = Field(
        default=False,
        description="Sign session tokens with RS256 instead of the shared secret",
    )

    JWT_PRIVATE_KEY: Optional[str] = Field(
        None,
        description="PEM private key used when USE_RS256_JWT is enabled",
    )

    JWT_PUBLIC_KEY: Optional[str] = Field(
        None,
        description="PEM public key used when USE_RS256_JWT is enabled",
    )

    SESSION_JWT_ISSUER: str = Field(
        default="portal",
        description="Issuer claim stamped on every session token",
    )

    SESSION_MAX_AGE_SECONDS: int = Field(
        default=30 * 24 * 60 * 60,
        description="Session lifetime in seconds, renewed on every session read",
        ge=300,  # Min 5 minutes
        le=90 * 24 * 60 * 60,  # Max 90 days
    )

    SESSION_COOKIE_NAME: str = Field(
        default="session-token",
        description="Name of the cookie carrying the session token",
        min_length=1,
    )

    SESSION_COOKIE_SECURE: bool = Field(
        default=False,
        description="Only send the session cookie over HTTPS",
    )

    # =========================================================================
    # Database Configuration
    # =========================================================================

    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./portal.db",
        description="SQLAlchemy async database URL",
        min_length=1,
    )

    DATABASE_ECHO: bool = Field(
        default=False,
        description="Log every SQL statement",
    )

    BCRYPT_ROUNDS: int = Field(
        default=12,
        description="bcrypt work factor for newly hashed passwords",
        ge=4,
        le=16,
    )

    # =========================================================================
    # Federated Login Providers
    # =========================================================================

    GOOGLE_CLIENT_ID: Optional[str] = Field(None, description="Google OAuth client ID")
    GOOGLE_CLIENT_SECRET: Optional[str] = Field(None, description="Google OAuth client secret")

    GITHUB_CLIENT_ID: Optional[str] = Field(None, description="GitHub OAuth client ID")
    GITHUB_CLIENT_SECRET: Optional[str] = Field(None, description="GitHub OAuth client secret")

    APPLE_CLIENT_ID: Optional[str] = Field(None, description="Sign in with Apple service ID")
    APPLE_CLIENT_SECRET: Optional[str] = Field(None, description="Sign in with Apple client secret JWT")

    # =========================================================================
    # Sign-in Pages
    # =========================================================================

    SIGN_IN_PAGE: str = Field(
        default="/sign-in",
        description="Path of the page rendering the sign-in form",
    )

    ERROR_PAGE: str = Field(
        default="/sign-in",
        description="Path users are redirected to when sign-in fails",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the server",
    )

    PORT: int = Field(
        default=3000,
        description="Port to bind the server",
        ge=1,
        le=65535,
    )

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra env vars not defined here
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def allowed_origins_list(self) -> List[str]:
        """
        Parse and return ALLOWED_ORIGINS as a list.

        Returns:
            List of allowed origin URLs, or empty list if not configured.
        """
        if not self.ALLOWED_ORIGINS:
            return []

        origins = [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]
        return origins

    @property
    def jwt_algorithm(self) -> str:
        """Algorithm actually used to sign session tokens."""
        return "RS256" if self.USE_RS256_JWT else self.SESSION_JWT_ALGORITHM

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("SESSION_JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        """
        Validate JWT algorithm is one of the supported HMAC algorithms.

        Args:
            v: JWT algorithm string

        Returns:
            Validated algorithm string

        Raises:
            ValueError: If algorithm is not supported
        """
        allowed_algorithms = ["HS256", "HS384", "HS512"]

        if v not in allowed_algorithms:
            raise ValueError(
                f"JWT algorithm must be one of {allowed_algorithms}, got: {v}"
            )

        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

        if v.upper() not in levels:
            raise ValueError(f"LOG_LEVEL must be one of {levels}, got: {v}")

        return v.upper()

    @field_validator("SIGN_IN_PAGE", "ERROR_PAGE")
    @classmethod
    def validate_page_path(cls, v: str) -> str:
        """
        Sign-in pages are local paths, never absolute URLs.

        Raises:
            ValueError: If the value does not start with a single slash
        """
        if not v.startswith("/") or v.startswith("//"):
            raise ValueError(
                f"Invalid page path: '{v}'. Expected a local path such as '/sign-in'"
            )

        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.

    Example:
        >>> from portal.app.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.SESSION_COOKIE_NAME)
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate critical configuration settings and return a status report.

    This is called during application startup so misconfigured providers
    show up in the logs instead of as failed sign-ins.

    Returns:
        Dictionary with validation status and any warnings.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    errors = []
    warnings = []

    # Check signing keys
    if settings.USE_RS256_JWT:
        if not settings.JWT_PRIVATE_KEY:
            errors.append("USE_RS256_JWT is enabled but JWT_PRIVATE_KEY is not set")
        if not settings.JWT_PUBLIC_KEY:
            errors.append("USE_RS256_JWT is enabled but JWT_PUBLIC_KEY is not set")

    # Check OAuth provider pairs
    for provider in ("GOOGLE", "GITHUB", "APPLE"):
        client_id = getattr(settings, f"{provider}_CLIENT_ID")
        client_secret = getattr(settings, f"{provider}_CLIENT_SECRET")
        if bool(client_id) != bool(client_secret):
            warnings.append(
                f"{provider}_CLIENT_ID and {provider}_CLIENT_SECRET must both be set; "
                f"{provider.title()} sign-in is disabled"
            )

    # Check cookie and database
    if not settings.SESSION_COOKIE_SECURE:
        warnings.append("SESSION_COOKIE_SECURE is disabled (session cookie sent over plain HTTP)")

    if settings.is_sqlite:
        warnings.append("DATABASE_URL points to SQLite (not suitable for multiple workers)")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "session_max_age_seconds": settings.SESSION_MAX_AGE_SECONDS,
        "jwt_algorithm": settings.jwt_algorithm,
    }
