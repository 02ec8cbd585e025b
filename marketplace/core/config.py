# marketplace/core/config.py
# Runtime settings read from the process environment (and a local .env file).

import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Settings(BaseModel):
    """Typed application settings."""

    model_config = ConfigDict(extra="ignore")

    project_name: str = "Service Marketplace API"
    app_version: str = "0.1.0"
    environment: str = "local"
    api_prefix: str = "/api"

    database_url: str = "sqlite:///./marketplace.db"
    sql_echo: bool = False

    log_level: str = "INFO"
    log_file: str | None = None

    secret_key: str = "change_me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    default_page_size: int = 10
    max_page_size: int = 100
    allowed_origins: List[str] = Field(default_factory=list)

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("api_prefix must start with '/'")
        return value.rstrip("/")

    @field_validator("default_page_size", "max_page_size", "access_token_expire_minutes")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Value must be greater than 0")
        return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "y", "on"}:
        return True
    if value in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"{name} must be boolean-like, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_list(name: str) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def load_settings(*, load_env: bool = True) -> Settings:
    """Build settings from `.env` and the process environment."""

    if load_env:
        load_dotenv()

    return Settings(
        project_name=os.getenv("PROJECT_NAME", "Service Marketplace API"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        environment=os.getenv("ENV", "local"),
        api_prefix=os.getenv("API_PREFIX", "/api"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./marketplace.db"),
        sql_echo=_env_bool("SQL_ECHO", False),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
        secret_key=os.getenv("SECRET_KEY", "change_me"),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_expire_minutes=_env_int("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24),
        default_page_size=_env_int("DEFAULT_PAGE_SIZE", 10),
        max_page_size=_env_int("MAX_PAGE_SIZE", 100),
        allowed_origins=_env_list("ALLOWED_ORIGINS"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
