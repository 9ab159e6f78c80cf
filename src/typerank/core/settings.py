"""Application settings and configuration.

This module defines all configuration options for the TypeRank service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="TypeRank", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./typerank.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Ledger gateway integration
    ledger_enabled: bool = Field(default=False, alias="LEDGER_ENABLED")
    ledger_config_path: str | None = Field(default=None, alias="LEDGER_CONFIG_PATH")
    ledger_shared_secret: str | None = Field(default=None, alias="LEDGER_SHARED_SECRET")
    ledger_audience: str = Field(default="typerank-ledger", alias="LEDGER_JWT_AUD")
    ledger_token_ttl_seconds: int = Field(default=300, alias="LEDGER_TOKEN_TTL_SECONDS")
    ledger_http_timeout_seconds: float = Field(
        default=10.0,
        alias="LEDGER_HTTP_TIMEOUT_SECONDS",
    )
    ledger_health_interval_seconds: float = Field(
        default=15.0,
        alias="LEDGER_HEALTH_INTERVAL_SECONDS",
    )
    ledger_live_poll_interval_seconds: float = Field(
        default=4.0,
        alias="LEDGER_LIVE_POLL_INTERVAL_SECONDS",
    )
    ledger_breaker_failure_threshold: int = Field(default=5, alias="LEDGER_BREAKER_FAILURE_THRESHOLD")
    ledger_breaker_cooldown_seconds: float = Field(default=30.0, alias="LEDGER_BREAKER_COOLDOWN_SECONDS")

    # Leaderboard ingestion
    ingest_chunk_size: int = Field(default=2000, alias="INGEST_CHUNK_SIZE")
    ingest_lookback_blocks: int = Field(default=2000, alias="INGEST_LOOKBACK_BLOCKS")
    ingest_interval_seconds: float = Field(default=60.0, alias="INGEST_INTERVAL_SECONDS")
    ingest_backoff_max_seconds: float = Field(default=300.0, alias="INGEST_BACKOFF_MAX_SECONDS")

    # Result and achievement signing (hex-encoded Ed25519 seed)
    signer_private_key: str | None = Field(default=None, alias="SIGNER_PRIVATE_KEY")

    # Leaderboard pagination
    leaderboard_default_limit: int = Field(default=20, alias="LEADERBOARD_DEFAULT_LIMIT")
    leaderboard_max_limit: int = Field(default=100, alias="LEADERBOARD_MAX_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
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
