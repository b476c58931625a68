from __future__ import annotations

import json
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "Repair Dispatch"
    env: str = "dev"
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    mongo_uri: str = Field("mongodb://localhost:27017", validation_alias="MONGO_URI")
    mongo_db: str = Field("repair_dispatch", validation_alias="MONGO_DB")

    bot_token: str = Field("", validation_alias="BOT_TOKEN")
    telegram_api_base: str = Field(
        "https://api.telegram.org", validation_alias="TELEGRAM_API_BASE"
    )
    telegram_webhook_url: Optional[str] = Field(
        None, validation_alias="TELEGRAM_WEBHOOK_URL"
    )
    telegram_webhook_secret: Optional[str] = Field(
        None, validation_alias="TELEGRAM_WEBHOOK_SECRET"
    )
    gateway_timeout_seconds: float = Field(10.0, validation_alias="GATEWAY_TIMEOUT_SECONDS")

    upload_dir: str = Field("uploads", validation_alias="UPLOAD_DIR")
    # comma separated or a JSON list
    cors_origins: str = Field("http://localhost:3001", validation_alias="CORS_ORIGINS")

    registration_session_ttl_seconds: int = Field(
        86400, validation_alias="REGISTRATION_SESSION_TTL_SECONDS"
    )

    @classmethod
    def parse_list_env(cls, value: str) -> List[str]:
        if not value:
            return []
        if value.lstrip().startswith("["):
            return json.loads(value)
        return [x.strip() for x in value.split(",") if x.strip()]

    @property
    def cors_origin_list(self) -> List[str]:
        return Settings.parse_list_env(self.cors_origins)


@lru_cache
def get_settings() -> Settings:
    return Settings()
