from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./hocpay.db"
    database_echo: bool = False

    # Internal API security (operator endpoints)
    internal_api_key: str = ""

    # Merchant portal URLs
    frontend_url: str = "http://localhost:3000"
    invite_base_url: str = ""

    # Rewards engine
    rewards_timezone: str = "Africa/Lagos"
    rewards_plan_lock_days: int = 30
    rewards_recent_limit: int = 5
    rewards_recent_fallback_cap: int = 20
    rewards_ledger_page_size: int = 10

    @field_validator("invite_base_url", mode="before")
    @classmethod
    def _strip_invite_base(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip().rstrip("/")

    # Tracing
    otel_enabled: bool = Field(default=False, description="Install OpenTelemetry tracing on startup")


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
