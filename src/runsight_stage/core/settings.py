"""Application settings and configuration.

This module defines all configuration options for the RunSight Stage service.
Settings are loaded from environment variables with sensible defaults and are
fixed for the lifetime of the process.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="RunSight Stage", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(default="change-me-in-production", alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./runsight.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Lenient admission policy applied to every route
    rate_limit_requests_per_second: float = Field(
        default=100.0, alias="RATE_LIMIT_REQUESTS_PER_SECOND"
    )
    rate_limit_burst: int = Field(default=200, alias="RATE_LIMIT_BURST")

    # Strict admission policy for sensitive routes (pairing, auth)
    strict_rate_limit_per_minute: float = Field(
        default=20.0, alias="STRICT_RATE_LIMIT_PER_MINUTE"
    )
    strict_rate_limit_burst: int = Field(default=2, alias="STRICT_RATE_LIMIT_BURST")
    pairing_verify_rate_limit_per_minute: float = Field(
        default=5.0, alias="PAIRING_VERIFY_RATE_LIMIT_PER_MINUTE"
    )

    # Idle bucket eviction
    rate_limit_sweep_interval_seconds: float = Field(
        default=300.0, alias="RATE_LIMIT_SWEEP_INTERVAL_SECONDS"
    )

    # Only trust X-Forwarded-For when running behind a reverse proxy.
    trust_proxy_headers: bool = Field(default=True, alias="TRUST_PROXY_HEADERS")

    # Configuration handed to devices after pairing
    device_upload_interval_seconds: int = Field(
        default=300, alias="DEVICE_UPLOAD_INTERVAL_SECONDS"
    )
    device_batch_size: int = Field(default=10, alias="DEVICE_BATCH_SIZE")
    device_compression_enabled: bool = Field(
        default=True, alias="DEVICE_COMPRESSION_ENABLED"
    )

    # CORS configuration
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=False, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()
