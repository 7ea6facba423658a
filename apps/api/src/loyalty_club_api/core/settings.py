from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    service_name: str = "loyalty-club-api"
    database_url: str = "sqlite+aiosqlite:///./loyalty_club.db"
    database_echo: bool = False

    # Maintenance scheduler
    maintenance_scheduler_enabled: bool = False
    maintenance_schedule_path: str = "config/schedules.toml"

    # OTP defaults (business thresholds live in business_config)
    otp_default_max_attempts: int = 3


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
