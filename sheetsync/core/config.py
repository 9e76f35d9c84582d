from enum import Enum
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from sheetsync.core.timezone import get_timezone

MAX_BATCH_SIZE = 500


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )

    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"

    # Dates are rendered in this zone for BigQuery DATETIME columns
    TIMEZONE: str = "UTC"

    SERVICE_ACCOUNT_FILE: str | None = None

    BIGQUERY_PROJECT_ID: str | None = None
    BIGQUERY_DATASET_ID: str | None = None
    BIGQUERY_LOCATION: str = "US"

    FIRESTORE_PROJECT_ID: str | None = None
    FIRESTORE_DATABASE_ID: str = "(default)"


settings = Settings()


class InferenceMode(str, Enum):
    BASIC = "basic"
    ALL_STRING = "all_string"


class WriteDisposition(str, Enum):
    WRITE_TRUNCATE = "WRITE_TRUNCATE"
    WRITE_APPEND = "WRITE_APPEND"
    WRITE_EMPTY = "WRITE_EMPTY"


class SyncConfig(BaseModel):
    """
    Options recognized by both sync paths.

    BigQuery coordinates are optional here so that a missing value surfaces
    as a ConfigError at load time rather than a validation error at startup.
    """

    project_id: str | None = Field(default=None, description="BigQuery project")
    dataset_id: str | None = Field(default=None, description="BigQuery dataset")
    location: str = Field(default="US", description="BigQuery job location")
    table_overrides: dict[str, str] = Field(
        default_factory=dict,
        description="Source name to destination table name",
    )
    include_hidden: bool = False
    inference_mode: InferenceMode = InferenceMode.BASIC
    write_disposition: WriteDisposition = WriteDisposition.WRITE_TRUNCATE
    field_delimiter: str = ","
    allow_quoted_newlines: bool = True
    poll_interval_seconds: float = Field(default=2.0, ge=0)
    max_poll_attempts: int = Field(default=60, ge=1)
    excluded_sources: list[str] = Field(default_factory=list)
    batch_size: int = Field(default=MAX_BATCH_SIZE, ge=1, le=MAX_BATCH_SIZE)
    timezone: str = "UTC"
    create_dataset: bool = True

    firestore_project_id: str | None = None
    firestore_database_id: str = "(default)"

    @field_validator("field_delimiter")
    @classmethod
    def _single_character(cls, value: str) -> str:
        if len(value) != 1 or value in ('"', "\r", "\n"):
            raise ValueError(
                "field_delimiter must be a single character other than a quote or newline"
            )
        return value

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @property
    def tzinfo(self) -> ZoneInfo:
        return get_timezone(self.timezone)

    def is_excluded(self, source_name: str) -> bool:
        return source_name in self.excluded_sources

    @classmethod
    def from_settings(cls, app_settings: Settings, **overrides: Any) -> "SyncConfig":
        values: dict[str, Any] = {
            "project_id": app_settings.BIGQUERY_PROJECT_ID,
            "dataset_id": app_settings.BIGQUERY_DATASET_ID,
            "location": app_settings.BIGQUERY_LOCATION,
            "timezone": app_settings.TIMEZONE,
            "firestore_project_id": app_settings.FIRESTORE_PROJECT_ID,
            "firestore_database_id": app_settings.FIRESTORE_DATABASE_ID,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
