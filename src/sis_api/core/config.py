"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sis_api.lib.exporter import MAX_PAGE_ROWS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="PostgreSQL async connection string",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # JWT
    jwt_secret_key: str = Field(min_length=32, description="Secret key for verifying JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )
    log_json: bool = Field(
        default=False,
        description="Write serialized JSON log records instead of formatted lines",
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins, or '*' for all origins",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    # S3-Compatible Object Storage
    storage_endpoint_url: str | None = Field(
        default=None,
        description="S3-compatible endpoint URL (R2, MinIO); AWS default when unset",
    )
    storage_access_key_id: str | None = Field(
        default=None,
        description="Object storage access key",
    )
    storage_secret_access_key: str | None = Field(
        default=None,
        description="Object storage secret key",
    )
    storage_region: str = Field(
        default="auto",
        description="Object storage region name",
    )
    export_bucket: str = Field(
        default="exports",
        description="Bucket holding generated export documents",
    )

    # Export pipeline
    export_signed_url_ttl: int = Field(
        default=3600,
        description="Lifetime of signed download URLs in seconds",
        gt=0,
    )
    export_processor_url: str | None = Field(
        default=None,
        description="URL of a remote export processor; exports are processed in-process when unset",
    )
    export_trigger_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for invoking a remote export processor",
        gt=0,
    )
    export_pdf_max_rows: int = Field(
        default=10,
        description="Maximum number of rows written to page-oriented documents",
        gt=0,
        le=MAX_PAGE_ROWS,
    )
    export_stale_after_minutes: int = Field(
        default=60,
        description="Minutes after which a processing export is considered stuck",
        gt=0,
    )

    @field_validator("export_processor_url")
    @classmethod
    def validate_export_processor_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            msg = "Invalid export_processor_url: must be an http(s) URL"
            raise ValueError(msg)
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
