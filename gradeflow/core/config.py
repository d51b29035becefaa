from datetime import timedelta
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Service settings, read from ``GRADEFLOW_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="GRADEFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = f"sqlite:///{BASE_DIR}/gradeflow.db"

    # DEV ONLY default; set GRADEFLOW_SECRET_KEY in any shared environment.
    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(default=60, gt=0)

    default_page_size: int = Field(default=10, gt=0)
    max_page_size: int = Field(default=100, gt=0)

    default_max_attempts: int = Field(default=2, gt=0)

    login_max_failures: int = Field(default=5, gt=0)
    login_lockout_minutes: int = Field(default=15, gt=0)

    log_level: str = "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

SECRET_KEY = settings.secret_key
ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE = timedelta(minutes=settings.access_token_expire_minutes)

# Paging
DEFAULT_PAGE_SIZE = settings.default_page_size
MAX_PAGE_SIZE = settings.max_page_size

# Attempts allowed when an assessment does not say otherwise
DEFAULT_MAX_ATTEMPTS = settings.default_max_attempts

# Login lockout policy
LOGIN_MAX_FAILURES = settings.login_max_failures
LOGIN_LOCKOUT = timedelta(minutes=settings.login_lockout_minutes)
