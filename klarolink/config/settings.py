"""
Application Settings.

Centralized configuration using Pydantic Settings with environment variable loading.

Database selection:
    When both SUPABASE_URL and SUPABASE_KEY are set the PostgreSQL (Supabase)
    adapter is used, otherwise the in-memory mock store is used.

Production Mode:
    When app_env="production", additional validations apply:
    - jwt_secret must not be the development default
    - debug must be False
    - cors_allowed_origins cannot be ["*"]
    - database_fallback_to_mock must be False
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase (PostgreSQL)
    # -------------------------------------------------------------------------
    supabase_url: Optional[str] = Field(
        default=None, description="Supabase project URL"
    )
    supabase_key: Optional[SecretStr] = Field(
        default=None, description="Supabase anon or service key"
    )
    database_fallback_to_mock: bool = Field(
        default=False,
        description="Serve mock data when a database query fails instead of raising",
    )

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------
    jwt_secret: SecretStr = Field(
        default=SecretStr(DEFAULT_JWT_SECRET),
        description="Secret used to sign access tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_expiry_days: int = Field(
        default=7, ge=1, description="Access token lifetime in days"
    )
    bcrypt_rounds: int = Field(
        default=12, ge=4, le=31, description="bcrypt cost factor for password hashes"
    )

    # -------------------------------------------------------------------------
    # Anthropic (AI Insights)
    # -------------------------------------------------------------------------
    anthropic_api_key: Optional[SecretStr] = Field(
        default=None, description="Anthropic API key for AI feedback insights"
    )
    ai_insights_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Model used to summarise feedback",
    )
    ai_insights_cache_ttl_seconds: int = Field(
        default=600,
        ge=0,
        description="How long generated insights are reused for unchanged feedback",
    )
    ai_insights_max_submissions: int = Field(
        default=200,
        ge=1,
        description="Most recent submissions sent to the model",
    )

    # -------------------------------------------------------------------------
    # Feedback Pages
    # -------------------------------------------------------------------------
    default_background_color: str = Field(
        default="#6366f1",
        description="Background colour assigned to newly registered businesses",
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------
    app_env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    api_host: str = Field(default="0.0.0.0", description="Bind address for uvicorn")
    api_port: int = Field(default=8000, description="Bind port for uvicorn")

    # -------------------------------------------------------------------------
    # CORS Settings
    # -------------------------------------------------------------------------
    cors_allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"],
        description="Allowed CORS origins. Use ['*'] for development only.",
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials in CORS requests",
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def use_supabase(self) -> bool:
        """Whether the PostgreSQL adapter is configured."""
        return bool(self.supabase_url and self.supabase_key)

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that production settings are secure."""
        if self.app_env == "production":
            errors = []

            if self.jwt_secret.get_secret_value() == DEFAULT_JWT_SECRET:
                errors.append("jwt_secret must be changed in production")

            if self.debug:
                errors.append("debug must be False in production")

            if "*" in self.cors_allowed_origins:
                errors.append("cors_allowed_origins cannot contain '*' in production")

            # Mock data must never stand in for a real outage
            if self.database_fallback_to_mock:
                errors.append("database_fallback_to_mock must be False in production")

            if errors:
                raise ValueError(
                    f"Production configuration errors: {'; '.join(errors)}"
                )

        return self


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload settings if needed.
    """
    return Settings()
