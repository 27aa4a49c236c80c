"""Application settings loaded from environment."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed settings for the aggregation engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Reporting API
    reporting_api_base_url: str = Field(
        default="http://localhost:8000/api",
        alias="REPORTING_API_BASE_URL",
    )
    reporting_api_timeout_seconds: int = Field(default=10, alias="REPORTING_API_TIMEOUT_SECONDS")
    reporting_api_max_retries: int = Field(default=3, alias="REPORTING_API_MAX_RETRIES")

    # Reverse lookup (Nominatim)
    geocoder_base_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        alias="GEOCODER_BASE_URL",
    )
    geocoder_user_agent: str = Field(
        default="PotholeDashboard/1.0 (contact@example.com)",
        alias="GEOCODER_USER_AGENT",
    )
    geocoder_timeout_seconds: int = Field(default=10, alias="GEOCODER_TIMEOUT_SECONDS")
    enrichment_delay_ms: int = Field(default=250, alias="ENRICHMENT_DELAY_MS")

    # Persistent caches
    cache_backend: Literal["file", "postgres", "memory"] = Field(
        default="file", alias="CACHE_BACKEND"
    )
    cache_path: str = Field(default=".rae_cache.json", alias="CACHE_PATH")

    # Database (postgres cache backend)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pghost: Optional[str] = Field(default=None, alias="PGHOST")
    pgport: int = Field(default=5432, alias="PGPORT")
    pguser: Optional[str] = Field(default=None, alias="PGUSER")
    pgpassword: Optional[str] = Field(default=None, alias="PGPASSWORD")
    pgdatabase: Optional[str] = Field(default=None, alias="PGDATABASE")

    # Runtime
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    run_env: str = Field(default="local", alias="RUN_ENV")

    @property
    def enrichment_delay_seconds(self) -> float:
        return max(self.enrichment_delay_ms, 0) / 1000.0

    def get_database_url(self) -> str:
        """Return a usable database URL or raise."""
        if self.database_url:
            return self.database_url

        if all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase]):
            return (
                "postgresql://"
                f"{self.pguser}:{self.pgpassword}@{self.pghost}:{self.pgport}/"
                f"{self.pgdatabase}"
            )

        raise ValueError("DATABASE_URL or PG* env vars must be set")
