"""
Configuration module for the Oryn Auth Gateway.

This module uses Pydantic Settings to load and validate environment variables
for GitHub OAuth, signed session cookies, outbound provider calls, and CORS.

Environment variables are loaded from .env file or system environment.
Secrets (GITHUB_CLIENT_SECRET, SESSION_SECRET) have no built-in fallback and
must be injected at deployment time.
"""

from functools import lru_cache
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All configuration for the GitHub OAuth App, session signing, cookie
    policy, and server binding is defined here.
    """

    # =========================================================================
    # GitHub OAuth App Configuration
    # =========================================================================

    GITHUB_CLIENT_ID: str = Field(
        ...,
        description="GitHub OAuth App client ID",
        min_length=1,
    )

    GITHUB_CLIENT_SECRET: SecretStr = Field(
        ...,
        description="GitHub OAuth App client secret (deployment-time secret)",
    )

    GITHUB_REDIRECT_URI: str = Field(
        ...,
        description="Callback URL registered with the GitHub OAuth App "
                    "(e.g., https://oryn.example.com/api/auth/callback)",
        min_length=1,
    )

    GITHUB_SCOPE: str = Field(
        default="read:user",
        description="Space-separated scopes requested at authorization time",
    )

    GITHUB_AUTHORIZE_URL: str = Field(
        default="https://github.com/login/oauth/authorize",
        description="GitHub authorization endpoint",
    )

    GITHUB_TOKEN_URL: str = Field(
        default="https://github.com/login/oauth/access_token",
        description="GitHub code-for-token exchange endpoint",
    )

    GITHUB_API_URL: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )

    GITHUB_USER_AGENT: str = Field(
        default="Oryn-Server",
        description="User-Agent sent on outbound GitHub requests",
    )

    PROVIDER_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Timeout for each outbound call to GitHub",
        ge=1.0,
        le=30.0,
    )

    # =========================================================================
    # Session Token Configuration
    # =========================================================================

    SESSION_SECRET: SecretStr = Field(
        ...,
        description="Secret key for signing session tokens (must be cryptographically secure)",
    )

    SESSION_JWT_ALGORITHM: str = Field(
        default="HS256",
        description="Session token signing algorithm (HS256, HS384, or HS512)",
    )

    SESSION_JWT_ISSUER: str = Field(
        default="oryn-gateway",
        description="Issuer claim stamped into and required from session tokens",
    )

    SESSION_MAX_AGE_SECONDS: int = Field(
        default=86400,
        description="Session cookie and token lifetime in seconds",
        ge=300,
        le=86400,  # Max 24 hours
    )

    SESSION_CLOCK_SKEW_SECONDS: int = Field(
        default=30,
        description="Leeway applied to iat/exp checks for clock drift between workers",
        ge=0,
        le=300,
    )

    SESSION_REVOCATION_ENABLED: bool = Field(
        default=False,
        description="Keep a per-process list of logged-out session ids",
    )

    DEFAULT_ROLE: str = Field(
        default="operator",
        description="Role label assigned to every authenticated user",
        min_length=1,
    )

    # =========================================================================
    # Cookie Configuration
    # =========================================================================

    SESSION_COOKIE_NAME: str = Field(default="session")

    STATE_COOKIE_NAME: str = Field(default="oauth_state")

    STATE_MAX_AGE_SECONDS: int = Field(
        default=300,
        description="Lifetime of the CSRF state cookie in seconds",
        ge=300,  # Min 5 minutes
        le=600,  # Max 10 minutes
    )

    COOKIE_SECURE: bool = Field(
        default=True,
        description="Mark cookies Secure (disable only for local http development)",
    )

    # =========================================================================
    # Front-end Redirect Targets
    # =========================================================================

    DASHBOARD_URL: str = Field(
        default="/#/dashboard",
        description="Where the browser lands after a successful login",
    )

    LOGIN_URL: str = Field(
        default="/#/login",
        description="Login view that receives ?error=<code> on failure",
    )

    # =========================================================================
    # Gateway Server Configuration
    # =========================================================================

    GATEWAY_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the gateway server",
    )

    GATEWAY_PORT: int = Field(
        default=8080,
        description="Port to bind the gateway server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(default="INFO")

    # =========================================================================
    # CORS Configuration
    # =========================================================================

    ALLOWED_ORIGINS: Optional[str] = Field(
        None,
        description="Comma-separated list of allowed CORS origins (leave empty for no CORS)",
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
    def github_user_url(self) -> str:
        """URL of the "current user" profile endpoint."""
        return f"{self.GITHUB_API_URL.rstrip('/')}/user"

    @property
    def callback_deadline_seconds(self) -> float:
        """Overall deadline for the two sequential provider calls."""
        return self.PROVIDER_TIMEOUT_SECONDS * 2

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("GITHUB_REDIRECT_URI")
    @classmethod
    def validate_redirect_uri(cls, v: str) -> str:
        """
        Validate that the redirect URI is an absolute http(s) URL.

        The value is sent to GitHub verbatim, so it is not normalised.

        Raises:
            ValueError: If the URI has no scheme/host or uses another scheme
        """
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"Invalid redirect URI: '{v}'. "
                "Expected an absolute URL such as https://host/api/auth/callback"
            )
        return v

    @field_validator("GITHUB_CLIENT_SECRET")
    @classmethod
    def validate_client_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("GITHUB_CLIENT_SECRET must not be empty")
        return v

    @field_validator("SESSION_SECRET")
    @classmethod
    def validate_session_secret(cls, v: SecretStr) -> SecretStr:
        """
        Require a session signing secret of at least 32 characters.
        """
        if len(v.get_secret_value()) < 32:
            raise ValueError("SESSION_SECRET is too short (minimum 32 characters)")
        return v

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
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid LOG_LEVEL: {v}")
        return level


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle. The cache is thread-safe.

    Returns:
        Settings instance with all configuration loaded and validated.

    Raises:
        ValidationError: If required environment variables are missing
                        or invalid.

    Example:
        >>> from oryn_gateway.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.GITHUB_CLIENT_ID)
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Validate deployment-sensitive settings and return a status report.

    This is called during application startup; errors are logged, not raised,
    because field-level validation has already rejected unusable values.

    Returns:
        Dictionary with validation status and any warnings.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> if not status["valid"]:
        ...     print(status["errors"])
    """
    errors = []
    warnings = []

    if settings.SESSION_SECRET.get_secret_value() == settings.GITHUB_CLIENT_SECRET.get_secret_value():
        errors.append("SESSION_SECRET must differ from GITHUB_CLIENT_SECRET")

    if not settings.COOKIE_SECURE:
        warnings.append("COOKIE_SECURE is disabled (cookies will be sent over plain http)")

    if urlparse(settings.GITHUB_REDIRECT_URI).scheme != "https":
        warnings.append("GITHUB_REDIRECT_URI is not https")

    if settings.SESSION_REVOCATION_ENABLED:
        warnings.append(
            "SESSION_REVOCATION_ENABLED keeps revocations in process memory; "
            "they are not shared between workers"
        )

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
        "session_max_age_seconds": settings.SESSION_MAX_AGE_SECONDS,
        "state_max_age_seconds": settings.STATE_MAX_AGE_SECONDS,
    }
