# config.py

"""Settings shared by the storefront client and the order API.

``config.json`` next to this file supplies deployment defaults; environment
variables (and a local ``.env``) win over it. :func:`get_settings` builds the
merged object once per process.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_PATH = Path(__file__).with_name("config.json")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "development"

    # backend
    database_url: str = "sqlite+aiosqlite:///./buzzer.db"
    redis_url: str = "redis://localhost:6379/0"
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    idempotency_ttl: int = Field(86400, gt=0, description="Seconds a replay is kept")
    error_dsn: str | None = None
    log_level: str = "INFO"

    # client
    api_base_url: str = "http://localhost:8000"
    request_timeout: float = Field(30.0, gt=0)
    cart_storage_dir: str = ".buzzer"

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, v: str) -> str:
        return v.upper()


def _file_values(path: Path = CONFIG_PATH) -> dict[str, Any]:
    if not path.exists():
        return {}
    return json.loads(path.read_text())


@lru_cache
def get_settings() -> Settings:
    """Return settings from ``config.json`` overridden by the environment."""

    from_env = {
        key.lower(): value
        for key, value in os.environ.items()
        if key.lower() in Settings.model_fields
    }
    return Settings(**{**_file_values(), **from_env})
