"""Конфигурация приложения."""
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    activity_logging_enabled: bool = True
    activity_data_dir: str = "data"
    activity_db_filename: str = "activities.db"

    session_cookie_name: str = "shop_session-id"
    session_cookie_max_age: int = 60 * 60 * 48

    @property
    def activity_db_path(self) -> Path:
        return Path(self.activity_data_dir) / self.activity_db_filename


@lru_cache
def get_settings() -> Settings:
    return Settings()
