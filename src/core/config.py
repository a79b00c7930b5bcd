"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Courtside API")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/courtside",
        description="PostgreSQL connection URL with asyncpg driver",
    )

    # Identity provider
    identity_provider_url: str = Field(
        default="",
        description="Identity provider base URL used to locate the JWKS document",
    )

    # JWT Authentication
    jwt_secret_key: str = Field(
        default="CHANGE-ME-IN-PRODUCTION",
        description="Secret key for JWT signing (used for HS256 session tokens and tests)",
    )
    jwt_algorithm: str = Field(default="HS256")
    jwt_expire_minutes: int = Field(default=60 * 24 * 30)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def jwks_url(self) -> str:
        """JWKS endpoint for ES256 token verification."""
        if self.identity_provider_url:
            return f"{self.identity_provider_url.rstrip('/')}/auth/v1/.well-known/jwks.json"
        return ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def async_database_url(self) -> str:
        """Ensure the database URL uses the asyncpg driver scheme.

        Hosting providers usually supply a plain ``postgresql://`` URL.
        SQLAlchemy's async engine requires ``postgresql+asyncpg://``.
        """
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url

    # Transactions
    transaction_max_attempts: int = Field(
        default=3,
        description="How many times a conflicting transaction is retried before giving up",
    )
    transaction_retry_backoff_seconds: float = Field(default=0.05)

    # Invites
    invite_expiry_days: int = Field(default=7)
    invite_base_url: str = Field(
        default="https://golf-padel-app.vercel.app",
        description="Public base URL used to build invite links",
    )

    # Reservations
    default_duration_minutes: int = Field(default=90)
    history_default_limit: int = Field(default=200)
    history_max_limit: int = Field(default=500)

    # Audit log
    audit_default_limit: int = Field(default=30)
    audit_max_limit: int = Field(default=100)
    audit_background: bool = Field(
        default=True,
        description="Write audit events on a background task instead of awaiting them",
    )

    # Reconciliation
    reconciliation_batch_size: int = Field(default=400)

    # Rate Limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable/disable rate limiting (disable for tests)",
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed origins",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
