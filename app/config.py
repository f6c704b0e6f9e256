"""
Application Configuration - Pydantic Settings for type-safe config.

FAIL FAST - Critical config is validated at startup.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration - NO DEFAULT for production safety
    database_url: str = ""
    database_read_url: str | None = None  # Optional read replica for public listings
    database_pool_size: int = 10
    database_max_overflow: int = 10
    database_pool_timeout: int = 30
    database_pool_recycle: int = 3600
    run_migrations_on_startup: bool = False

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "SalesBoard API"
    api_version: str = "0.1.0"
    api_description: str = "Brand sale submissions, moderation and public listings"
    cors_allow_origins: str = "*"  # Comma-separated

    # Sessions - HS256 JWT issued by /auth/login
    session_jwt_secret: str = ""  # generate with: openssl rand -hex 32
    session_expire_seconds: int = 3600

    # API tokens - optional pepper for HMAC digests
    api_token_pepper: str = ""

    # Workflow policies
    max_active_sales_per_brand: int = 3
    brand_name_unique: bool = True
    editor_mutations_pending_only: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Observability - Tracing
    tracing_enabled: bool = False
    otlp_endpoint: str = "http://otel-collector:4317"
    otlp_insecure: bool = True
    service_name: str = "salesboard-api"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate critical configuration at startup.

        The app MUST NOT start if critical config is missing.
        """
        errors: list[str] = []

        if not self.database_url:
            errors.append("DATABASE_URL is required but empty or missing")
        elif not self.database_url.startswith(("postgresql", "postgres")):
            errors.append(
                f"DATABASE_URL must be a PostgreSQL URL, got: {self.database_url[:20]}..."
            )

        if len(self.session_jwt_secret) < 32:
            errors.append("SESSION_JWT_SECRET is required and must be at least 32 characters")

        if self.max_active_sales_per_brand < 1:
            errors.append("MAX_ACTIVE_SALES_PER_BRAND must be at least 1")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "CRITICAL CONFIGURATION ERROR - APPLICATION CANNOT START",
                    "=" * 60,
                    *[f"  ✗ {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self

    @property
    def read_database_url(self) -> str:
        """Get read database URL (fallback to primary if no replica)."""
        return self.database_read_url or self.database_url

    @property
    def allowed_origins(self) -> list[str]:
        """CORS origins as a list."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


# Global settings instance - validates at import time
settings = Settings()
