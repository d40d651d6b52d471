from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    model_config = SettingsConfigDict(extra="forbid")

    database_url: str
    log_level: str = "info"
    admin_token: str = "dev-admin"

    default_page_size: int = 20
    max_page_size: int = 100

    # Local dev UI runs on :3000
    cors_origins: list[str] = ["http://localhost:3000"]


SETTINGS = ApiSettings()
