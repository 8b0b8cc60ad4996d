"""
Configuration management for Visitor Calendar Sync.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    app_url: str = Field(
        default="http://localhost:8000",
        description="Public base URL of the application (used for OAuth redirects)"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./visitor_calendar.db",
        description="Database connection URL"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )

    # Calendar sync behaviour
    calendar_timezone: str = Field(
        default="UTC",
        description="IANA timezone used when writing event times to providers"
    )
    calendar_http_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for outbound calls to calendar providers"
    )
    calendar_api_max_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempts per vendor call on transient errors (1 disables retry)"
    )

    # Google OAuth Configuration
    google_client_id: str = Field(
        default="",
        description="Google OAuth 2.0 client ID"
    )
    google_client_secret: str = Field(
        default="",
        description="Google OAuth 2.0 client secret"
    )
    google_redirect_uri: str = Field(
        default="",
        description="Google OAuth redirect URI (defaults to APP_URL/calendar/google/callback)"
    )

    # Outlook (Microsoft identity platform) Configuration
    outlook_client_id: str = Field(
        default="",
        description="Azure AD application (client) ID"
    )
    outlook_client_secret: str = Field(
        default="",
        description="Azure AD client secret"
    )
    outlook_redirect_uri: str = Field(
        default="",
        description="Outlook OAuth redirect URI (defaults to APP_URL/calendar/outlook/callback)"
    )
    outlook_authority: str = Field(
        default="https://login.microsoftonline.com/common",
        description="Microsoft identity authority"
    )
    outlook_refresh_expired_tokens: bool = Field(
        default=True,
        description="Refresh expired Outlook tokens instead of requiring reconnection"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def uses_postgresql(self) -> bool:
        """Check if PostgreSQL is the configured database."""
        return "postgresql" in self.database_url.lower()

    @property
    def uses_google_oauth(self) -> bool:
        """Check if Google OAuth is configured."""
        return bool(self.google_client_id and self.google_client_secret)

    @property
    def uses_outlook_oauth(self) -> bool:
        """Check if Outlook OAuth is configured."""
        return bool(self.outlook_client_id and self.outlook_client_secret)

    @property
    def google_redirect_uri_resolved(self) -> str:
        """Google redirect URI, falling back to the app callback route."""
        return self.google_redirect_uri or f"{self.app_url.rstrip('/')}/calendar/google/callback"

    @property
    def outlook_redirect_uri_resolved(self) -> str:
        """Outlook redirect URI, falling back to the app callback route."""
        return self.outlook_redirect_uri or f"{self.app_url.rstrip('/')}/calendar/outlook/callback"

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.uses_postgresql:
            errors.append(
                "Production requires PostgreSQL. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        if not self.uses_google_oauth and not self.uses_outlook_oauth:
            errors.append(
                "At least one calendar provider must be configured "
                "(GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET or OUTLOOK_CLIENT_ID/OUTLOOK_CLIENT_SECRET)."
            )

        if self.app_url.startswith("http://localhost"):
            errors.append("APP_URL must be set to the public URL in production.")

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    This function is cached to ensure we only load settings once.
    Use this function throughout the application to access settings.

    Returns:
        Settings instance loaded from environment

    Example:
        >>> from src.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.google_redirect_uri_resolved)
    """
    return Settings()
