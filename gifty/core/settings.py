from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite:///./gifty.db"
    log_level: str = "INFO"
    seed_demo_data: bool = False

    # Stripe configuration
    stripe_secret_key: str = ""
    stripe_api_version: str | None = None

    # Resend email delivery
    resend_api_key: str = ""
    resend_mode: Literal["test", "prod"] = "test"
    resend_from: str | None = None
    resend_timeout_seconds: float = 10.0

    # Used for redemption links and QR images in emails
    public_base_url: str = "http://localhost:3000"

    # Success-page poller
    poller_max_attempts: int = 10
    poller_base_delay: float = 0.5
    poller_delay_step: float = 0.5
    poller_max_delay: float = 5.0

    @field_validator("resend_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("public_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
