from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )

    database_url: str | None = Field(default=None, alias="DATABASE_URL")

    http_timeout: int = Field(default=30, alias="HTTP_TIMEOUT")

    dataforseo_login: str | None = Field(default=None, alias="DATAFORSEO_LOGIN")
    dataforseo_password: str | None = Field(default=None, alias="DATAFORSEO_PASSWORD")
    dataforseo_base_url: str = Field(
        default="https://api.dataforseo.com/v3", alias="DATAFORSEO_BASE_URL"
    )
    serp_depth: int = Field(default=100, alias="SERP_DEPTH")

    history_months: int = Field(default=6, alias="HISTORY_MONTHS")
    history_fill_gaps: bool = Field(default=True, alias="HISTORY_FILL_GAPS")

    pending_timeout_minutes: int = Field(default=5, alias="PENDING_TIMEOUT_MINUTES")
    processing_timeout_minutes: int = Field(default=15, alias="PROCESSING_TIMEOUT_MINUTES")
    reaper_interval_minutes: int = Field(default=5, alias="REAPER_INTERVAL_MINUTES")

    scheduler_tz: str = Field(default="UTC", alias="SCHEDULER_TZ")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @property
    def has_provider_credentials(self) -> bool:
        return bool(self.dataforseo_login and self.dataforseo_password)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
