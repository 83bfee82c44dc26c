# backend/barberbook/core/config.py
import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("environment", "ENVIRONMENT"),
        description="Deployment environment name",
    )
    database_url: str = Field(
        default="sqlite+pysqlite:///./barberbook.db",
        validation_alias=AliasChoices("database_url", "DATABASE_URL"),
        description="SQLAlchemy URL of the booking ledger",
    )
    default_shop_timezone: str = Field(
        default="UTC",
        validation_alias=AliasChoices("default_shop_timezone", "DEFAULT_SHOP_TIMEZONE"),
        description="Timezone used for shops that do not declare one",
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    slow_operation_threshold_seconds: float = Field(
        default=1.0,
        validation_alias=AliasChoices(
            "slow_operation_threshold_seconds", "SLOW_OPERATION_THRESHOLD_SECONDS"
        ),
        description="Service operations slower than this are logged as warnings",
    )
    metrics_enabled: bool = Field(
        default=True, validation_alias=AliasChoices("metrics_enabled", "METRICS_ENABLED")
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = (value or "INFO").upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported log level: {value}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
