import json
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    env: Literal["dev", "prod"] = "dev"
    project_name: str = "Wedding Planner"
    api_prefix: str = "/api"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./data/wedding-planner.db"
    db_auto_create: bool = True

    frontend_origins: list[str] = Field(default_factory=list)

    resend_api_key: str = ""
    resend_from_email: str = "wedding-planner@example.com"
    resend_api_url: str = "https://api.resend.com"
    email_timeout_sec: float = 10.0
    notify_timeout_sec: float = 15.0

    worker_poll_interval_sec: int = 60
    worker_batch_size: int = 100
    worker_notify_email: str = ""

    @field_validator("frontend_origins", mode="before")
    @classmethod
    def parse_origins(cls, value: object) -> list[str]:
        def _normalize_origin(origin_value: object) -> str:
            origin = str(origin_value).strip()
            if not origin:
                return ""
            # Browser `Origin` header never includes a trailing slash.
            return origin.rstrip("/")

        if isinstance(value, str):
            if not value.strip():
                return []
            if value.strip().startswith("["):
                try:
                    parsed = json.loads(value)
                    if isinstance(parsed, list):
                        return [_normalize_origin(origin) for origin in parsed if _normalize_origin(origin)]
                except json.JSONDecodeError:
                    pass
            return [_normalize_origin(origin) for origin in value.split(",") if _normalize_origin(origin)]
        if isinstance(value, list):
            return [_normalize_origin(item) for item in value if _normalize_origin(item)]
        return []

    @model_validator(mode="after")
    def apply_frontend_origin_defaults(self) -> "Settings":
        if self.frontend_origins:
            # Preserve order but drop duplicates.
            self.frontend_origins = list(dict.fromkeys(self.frontend_origins))
            return self

        if self.env == "dev":
            self.frontend_origins = [
                "http://localhost:5173",
                "http://127.0.0.1:5173",
            ]
        else:
            self.frontend_origins = []
        return self

    @field_validator("notify_timeout_sec", "email_timeout_sec")
    @classmethod
    def validate_timeouts(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
