from __future__ import annotations

import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")
    backend_session_secret: str = Field(..., alias="BACKEND_SESSION_SECRET")

    token_ttl_seconds: int = Field(7 * 24 * 3600, alias="TOKEN_TTL_SECONDS")
    calendar_timezone: str = Field("UTC", alias="CALENDAR_TIMEZONE")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def token_ttl(self) -> int | None:
        ttl = int(self.token_ttl_seconds or 0)
        return ttl if ttl > 0 else None


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


# For local dev convenience only.
if os.getenv("BACKEND_DEBUG_SETTINGS"):
    print(get_settings())
