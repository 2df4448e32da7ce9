"""
COW Movement Analytics
Centralized Configuration Management

Pydantic settings with environment variable support for the snapshot source,
the ingestion cache, JSON output and logging.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SourceSettings(BaseSettings):
    """Spreadsheet export source configuration"""

    model_config = SettingsConfigDict(env_prefix="COW_SOURCE_")

    csv_url: Optional[str] = Field(default=None, description="Published CSV export URL")
    csv_path: Optional[str] = Field(default=None, description="Local CSV snapshot path (overrides csv_url)")
    fetch_timeout_seconds: float = Field(default=20.0, description="HTTP fetch timeout in seconds")
    user_agent: str = Field(default="Mozilla/5.0", description="User-Agent sent with fetch requests")
    encoding: str = Field(default="utf-8", description="Payload text encoding")

    @property
    def source_id(self) -> Optional[str]:
        """Identity of the configured snapshot source - path wins over URL"""
        return self.csv_path or self.csv_url


class CacheSettings(BaseSettings):
    """Ingestion result cache configuration"""

    model_config = SettingsConfigDict(env_prefix="COW_CACHE_")

    ttl_seconds: int = Field(default=300, description="Snapshot cache time-to-live in seconds")
    namespace: str = Field(default="snapshot", description="Cache key namespace")
    enabled: bool = Field(default=True, description="Enable snapshot caching")


class OutputSettings(BaseSettings):
    """Serialized output configuration"""

    model_config = SettingsConfigDict(env_prefix="COW_OUTPUT_")

    json_dir: str = Field(default="./public/data", description="Directory for exported JSON documents")
    indent: Optional[int] = Field(default=2, description="JSON indentation (None for compact)")


class MonitoringSettings(BaseSettings):
    """Logging configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="text", alias="LOG_FORMAT", description="Log format: json or text")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="cow-analytics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    source: SourceSettings = Field(default_factory=SourceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
