"""
CRISISLINE Application Settings

Environment-driven configuration for the gateway, the carrier, the
escalation protocol and storage. Each group reads its own CRISISLINE_*
prefix; secrets (carrier access key, database password, Sentry DSN)
are SecretStr and must be unwrapped explicitly.

SECURITY: Never log a settings object or an unwrapped secret.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_AUTO_REPLY = (
    "Thank you for reaching out. A crisis counselor will respond shortly. "
    "If this is an emergency, call 911 or your local emergency number. "
    "You can also text HOME to 741741 to reach the Crisis Text Line."
)


class DatabaseSettings(BaseSettings):
    """PostgreSQL database configuration."""

    model_config = SettingsConfigDict(env_prefix="CRISISLINE_DB_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    name: str = Field(default="crisisline_db", description="Database name")
    user: str = Field(default="crisisline_user", description="Database user")
    password: SecretStr = Field(default=SecretStr("dev_password"), description="Database password")
    pool_size: int = Field(default=10, ge=1, le=100, description="Connection pool size")
    max_overflow: int = Field(default=20, ge=0, le=100, description="Max overflow connections")
    create_schema: bool = Field(
        default=False,
        description="Create tables from ORM metadata at startup instead of running Alembic",
    )

    @property
    def async_url(self) -> str:
        """Generate async database URL for SQLAlchemy."""
        password = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{password}@{self.host}:{self.port}/{self.name}"

    @property
    def sync_url(self) -> str:
        """Generate sync database URL for Alembic migrations."""
        password = self.password.get_secret_value()
        return f"postgresql://{self.user}:{password}@{self.host}:{self.port}/{self.name}"


class CarrierSettings(BaseSettings):
    """SMS carrier configuration."""

    model_config = SettingsConfigDict(env_prefix="CRISISLINE_CARRIER_")

    provider: Literal["sandbox", "http"] = Field(
        default="sandbox",
        description="Carrier client (sandbox accepts every message, http calls the REST API)",
    )
    base_url: str = Field(default="https://rest.messagebird.com", description="Carrier REST API base URL")
    access_key: SecretStr = Field(default=SecretStr(""), description="Carrier API access key")
    originator: str = Field(default="+10000000000", description="Sender address for outbound SMS")
    send_timeout_seconds: float = Field(default=10.0, gt=0, le=120, description="Gateway call timeout per send")
    status_fetch_attempts: int = Field(default=3, ge=1, le=10, description="Retries for status polling")


class EscalationSettings(BaseSettings):
    """Escalation protocol configuration."""

    model_config = SettingsConfigDict(env_prefix="CRISISLINE_ESCALATION_")

    auto_reply_text: str = Field(default=DEFAULT_AUTO_REPLY, description="Immediate response to a subject in crisis")
    responder_address: Optional[str] = Field(
        default=None,
        description="On-call responder SMS address; responder alerts go to the notification sink when unset",
    )
    crisis_window_minutes: int = Field(default=10, ge=1, description="Acknowledgment window for CRISIS/SEVERE")
    high_window_minutes: int = Field(default=30, ge=1, description="Acknowledgment window for HIGH")
    sweep_interval_seconds: float = Field(default=30.0, gt=0, description="Timeout sweep interval")
    indicator_risk_level: Literal["moderate", "high", "severe", "crisis"] = Field(
        default="crisis",
        description="Risk level assigned when crisis indicators match",
    )
    extra_indicator_phrases: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Additional phrases per indicator (JSON in env)",
    )
    unknown_status_policy: Literal["ignore", "reject"] = Field(
        default="ignore",
        description="Response to status webhooks for unknown message ids",
    )


class MonitoringSettings(BaseSettings):
    """Error tracking configuration."""

    model_config = SettingsConfigDict(env_prefix="CRISISLINE_SENTRY_")

    dsn: SecretStr = Field(default=SecretStr(""), description="Sentry DSN")
    sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    traces_sample_rate: float = Field(default=0.1, ge=0.0, le=1.0)


class Settings(BaseSettings):
    """
    Main application settings.

    All configuration is loaded from environment variables with CRISISLINE_ prefix.
    Sensitive values use SecretStr to prevent accidental logging.

    Usage:
        settings = get_settings()
        timeout = settings.carrier.send_timeout_seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="CRISISLINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    env: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode - NEVER enable in production")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )
    api_version: str = Field(default="v1", description="API version prefix")
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    storage_backend: Literal["memory", "database"] = Field(
        default="memory",
        description="Message and risk event storage"
    )
    resources_config_path: Optional[str] = Field(
        default=None,
        description="Optional JSON file overriding built-in crisis resources"
    )

    # Nested settings
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    carrier: CarrierSettings = Field(default_factory=CarrierSettings)
    escalation: EscalationSettings = Field(default_factory=EscalationSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, v: object) -> object:
        """Accept a comma-separated string as well as a JSON list."""
        if isinstance(v, str) and not v.startswith("["):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.
    For testing, pass explicit Settings to create_application instead.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
