import json
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = Field(default="local", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # ─────────────────────────────────────────────
    # Upstream (bestsimilar.com)
    # ─────────────────────────────────────────────
    upstream_origin: str = Field(default="https://bestsimilar.com", alias="UPSTREAM_ORIGIN")
    upstream_timeout_seconds: float = Field(default=10.0, alias="UPSTREAM_TIMEOUT_SECONDS")

    # ─────────────────────────────────────────────
    # Pagination
    # ─────────────────────────────────────────────
    max_pages: int = Field(default=20, alias="MAX_PAGES")
    page_delay_seconds: float = Field(default=0.1, alias="PAGE_DELAY_SECONDS")
    min_page_bytes: int = Field(default=100, alias="MIN_PAGE_BYTES")
    disconnect_poll_seconds: float = Field(default=0.5, alias="DISCONNECT_POLL_SECONDS")

    @field_validator("upstream_origin", mode="before")
    @classmethod
    def normalize_upstream_origin(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        return value.strip().rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        return value.strip().upper()

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        if self.max_pages < 1:
            raise ValueError("MAX_PAGES must be at least 1")
        if self.page_delay_seconds < 0:
            raise ValueError("PAGE_DELAY_SECONDS must not be negative")
        if self.min_page_bytes < 0:
            raise ValueError("MIN_PAGE_BYTES must not be negative")
        if self.upstream_timeout_seconds <= 0:
            raise ValueError("UPSTREAM_TIMEOUT_SECONDS must be positive")
        if self.disconnect_poll_seconds <= 0:
            raise ValueError("DISCONNECT_POLL_SECONDS must be positive")
        return self

    def cors_origin_list(self) -> list[str]:
        # Accepts "a,b" or a JSON array; origins never carry a trailing slash.
        origins: dict[str, None] = {}
        for entry in _split_origins(self.cors_origins):
            origin = entry.strip().strip("\"'")
            if origin != "*":
                origin = origin.rstrip("/")
            if origin:
                origins.setdefault(origin)
        return list(origins)


def _split_origins(raw: str | None) -> list[str]:
    text = (raw or "").strip()
    if not text.startswith("["):
        return text.split(",") if text else []
    try:
        decoded = json.loads(text)
    except json.JSONDecodeError:
        return [text]
    if not isinstance(decoded, list):
        return [text]
    return [entry for entry in decoded if isinstance(entry, str)]


settings = Settings()
