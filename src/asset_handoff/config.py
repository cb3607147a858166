"""Application configuration."""

import os
from dataclasses import dataclass
from datetime import timedelta

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

SESSION_TTL_HOURS = 1
CODE_LENGTH = 3
MAX_CODE_VALUE = 999
POLL_INTERVAL_SECONDS = 3.0
MAX_POLL_DURATION_SECONDS = 3600.0
MAX_CONSECUTIVE_ERRORS = 10


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    firebase_project_id: str = "markasset-project"
    firebase_api_key: str | None = None
    firebase_storage_bucket: str | None = None
    firestore_api_root: str = "https://firestore.googleapis.com/v1"
    storage_api_root: str = "https://firebasestorage.googleapis.com/v0"
    upload_user_id: str = "anonymous"
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def firestore_database(self) -> str:
        """Resource name of the default Firestore database."""
        return f"projects/{self.firebase_project_id}/databases/(default)"

    @property
    def storage_bucket(self) -> str:
        """Bucket holding uploaded files."""
        return self.firebase_storage_bucket or (
            f"{self.firebase_project_id}.appspot.com"
        )


@dataclass(frozen=True)
class SessionLimits:
    """Build-time limits for session codes and polling."""

    ttl: timedelta = timedelta(hours=SESSION_TTL_HOURS)
    code_length: int = CODE_LENGTH
    max_code_value: int = MAX_CODE_VALUE
    poll_interval_seconds: float = POLL_INTERVAL_SECONDS
    max_poll_duration_seconds: float = MAX_POLL_DURATION_SECONDS
    max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS
