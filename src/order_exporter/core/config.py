"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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
        description="SQLAlchemy async connection string (postgresql+asyncpg or sqlite+aiosqlite)",
    )

    # Export worker
    export_dir: str = Field(
        default="./uploads/exports",
        description="Directory for generated CSV files (must not be web-executable)",
    )
    export_batch_size: int = Field(
        default=500,
        description="Records fetched from the data source per batch",
        gt=0,
    )
    export_jobs_per_tick: int = Field(
        default=5,
        description="Maximum pending jobs pulled per export worker tick",
        gt=0,
    )
    export_tick_budget_seconds: float = Field(
        default=45.0,
        description="Wall-clock budget for one export worker tick",
        gt=0,
    )
    export_tick_interval: int = Field(
        default=300,
        description="Seconds between export worker ticks when running the in-process loop",
        ge=10,
    )

    # Schedule worker
    schedule_tick_interval: int = Field(
        default=3600,
        description="Seconds between schedule worker ticks when running the in-process loop",
        ge=10,
    )
    timezone: str = Field(
        default="UTC",
        description="IANA timezone used for recurrence midnights and reporting periods",
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            msg = f"Unknown timezone: {v}"
            raise ValueError(msg) from exc
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Return the configured timezone as a ZoneInfo."""
        return ZoneInfo(self.timezone)

    worker_loop_enabled: bool = Field(
        default=False,
        description="Run the export and schedule loops inside the API process",
    )

    # Downloads and retention
    download_base_url: str = Field(
        default="http://localhost:8000/api/v1/exports",
        description="Base URL used to build download links in notifications",
    )
    download_expiry_days: int = Field(
        default=7,
        description="Days a completed export stays downloadable",
        gt=0,
    )
    job_retention_days: int = Field(
        default=30,
        description="Days completed jobs are kept before cleanup deletes them",
        gt=0,
    )

    # Data source
    consent_meta_key: str = Field(
        default="_additional_terms",
        description="Order meta key holding the structured terms/consent blob",
    )
    consent_keywords: str = Field(
        default="consent,marketing",
        description="Comma-separated label fragments identifying the marketing consent entry",
    )

    @property
    def consent_keyword_list(self) -> list[str]:
        """Parse consent keywords into a lowercase list."""
        if not self.consent_keywords.strip():
            return []
        return [k.strip().lower() for k in self.consent_keywords.split(",") if k.strip()]

    # Notifications
    site_name: str = Field(
        default="Shop",
        description="Site name used in notification subjects",
    )
    smtp_host: str | None = Field(
        default=None,
        description="SMTP server host (notifications are only logged when unset)",
    )
    smtp_port: int = Field(
        default=587,
        description="SMTP server port",
        gt=0,
    )
    smtp_username: str | None = Field(default=None, description="SMTP login username")
    smtp_password: str | None = Field(default=None, description="SMTP login password")
    smtp_use_tls: bool = Field(default=True, description="Issue STARTTLS after connecting")
    smtp_timeout: float = Field(
        default=10.0,
        description="SMTP connection timeout in seconds",
        gt=0,
    )
    smtp_from_email: str = Field(
        default="noreply@example.com",
        description="Sender address for notifications",
    )
    smtp_from_name: str = Field(
        default="Order Exporter",
        description="Sender display name for notifications",
    )
    fallback_notification_email: str | None = Field(
        default=None,
        description="Recipient used when a job has no override list and the requester has no address",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
