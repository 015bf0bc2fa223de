"""Application settings loaded from the environment / .env"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration (env prefix ``HOTEL_``)"""

    model_config = SettingsConfigDict(
        env_prefix="HOTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_name: str = "Hotel Booking API"
    app_version: str = "1.0.0"

    # JWT
    secret_key: str = Field(default="change-me-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(default=30, ge=1)

    log_level: str = "INFO"
    # "text" or "json"
    log_format: str = Field(default="json", pattern="^(text|json)$")

    # 0 disables the background sweep; lazy expiry still applies on every touch
    reservation_sweep_interval_seconds: int = Field(default=0, ge=0)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
