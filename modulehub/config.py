"""
Application settings, read from the environment and an optional .env file.
"""
import os
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..")
)

# "overwrite": a retake replaces the previous submission, teacher grade included.
# "locked-after-grading": once a teacher graded a submission it cannot be retaken.
RETAKE_POLICY_OVERWRITE = "overwrite"
RETAKE_POLICY_LOCKED = "locked-after-grading"


class Settings(BaseSettings):
    """Typed settings; every field maps to the environment variable of the same name."""

    # Database
    DATABASE_URL: str
    SQL_ECHO: bool = False

    # Tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Uploads
    UPLOADS_DIR: str = os.path.join(BASE_DIR, "uploads")
    MAX_FILE_SIZE: int = 50 * 1024 * 1024

    # Temporary file cleanup
    TEMP_FILE_RETENTION_HOURS: float = 24
    CLEANUP_INTERVAL_SECONDS: float = 60 * 60
    CLEANUP_MAX_RETRIES: int = 3
    CLEANUP_RETRY_BASE_SECONDS: float = 1
    CLEANUP_STORE_TIMEOUT_SECONDS: float = 30
    CLEANUP_ENABLED: bool = True

    # Quizzes
    RETAKE_POLICY: Literal["overwrite", "locked-after-grading"] = RETAKE_POLICY_OVERWRITE

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


settings = Settings()

# ---------------------------
# Module-level aliases
# ---------------------------
DATABASE_URL = settings.DATABASE_URL
SQL_ECHO = settings.SQL_ECHO

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = settings.REFRESH_TOKEN_EXPIRE_DAYS

UPLOADS_DIR = settings.UPLOADS_DIR
MAX_FILE_SIZE = settings.MAX_FILE_SIZE

TEMP_FILE_RETENTION_HOURS = settings.TEMP_FILE_RETENTION_HOURS
CLEANUP_INTERVAL_SECONDS = settings.CLEANUP_INTERVAL_SECONDS
CLEANUP_MAX_RETRIES = settings.CLEANUP_MAX_RETRIES
CLEANUP_RETRY_BASE_SECONDS = settings.CLEANUP_RETRY_BASE_SECONDS
CLEANUP_STORE_TIMEOUT_SECONDS = settings.CLEANUP_STORE_TIMEOUT_SECONDS
CLEANUP_ENABLED = settings.CLEANUP_ENABLED

RETAKE_POLICY = settings.RETAKE_POLICY

LOG_LEVEL = settings.LOG_LEVEL
