"""ArcRevoke Configuration - environment-driven settings."""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "ArcRevoke"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    log_format: str = "dev"

    # Database
    database_url: str = "sqlite+aiosqlite:///./arcrevoke.db"
    db_pool_size: int = 10
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800
    auto_create_tables: bool = True

    # HTTP API
    cors_origins: str = "http://localhost:5173,http://localhost:8000"
    enable_metrics: bool = False

    # Chain access (the chain id itself is fixed in core.network)
    rpc_url: str = "https://rpc.testnet.arc.network"
    explorer_api_url: str = "https://testnet.arcscan.app/api"
    wallet_rpc_url: str = "http://127.0.0.1:1248"
    backend_url: str = "http://localhost:8000"
    http_timeout: float = 30.0

    # Periodic refresh (seconds)
    token_refresh_interval: float = 30.0
    stats_refresh_interval: float = 10.0

    # Extra symbol -> USD unit price entries, e.g. PRICE_OVERRIDES='{"WETH": "3100"}'
    price_overrides: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("dev", "structured"):
            raise ValueError("log_format must be 'dev' or 'structured'")
        return v

    @field_validator("token_refresh_interval", "stats_refresh_interval", "http_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
