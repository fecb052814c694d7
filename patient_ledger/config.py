"""Application configuration from environment variables."""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./patient_ledger.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")
    ledger_isolation_level: str | None = Field(
        default=None,
        description="Transaction isolation level for ledger writes (e.g. SERIALIZABLE)",
    )

    # Month close
    close_month_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Deadline for a single close-month batch",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING, ...)")
    log_file: str = Field(default="logs/server.log", description="Server log file path")

    # API
    api_title: str = Field(default="Patient Ledger API", description="API title")
    api_version: str = Field(default="0.1.0", description="API version")


# Global settings instance
settings = Settings()
