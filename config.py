from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Settings shared by the CLI and the HTTP service."""

    # Application settings
    app_name: str = "Ledger Engine"
    app_version: str = "1.0.0"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Business logic settings
    # Reject dispute/resolve/chargeback events whose client didn't make the deposit
    enforce_dispute_owner: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ServerSettings(Settings):
    """HTTP-only settings, never read by the CLI."""

    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # HTTP limits
    rate_limit_per_minute: int = 30
    max_upload_size: int = 10 * 1024 * 1024  # 10MB


class CliSettings(Settings):
    log_level: str = "WARNING"  # stdout carries the report, keep stderr quiet


class TestingSettings(Settings):
    log_level: str = "WARNING"  # Reduce noise in tests


@lru_cache()
def get_server_settings() -> ServerSettings:
    """Get cached settings instance for the HTTP service."""
    return ServerSettings()
