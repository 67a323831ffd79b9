from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


KEY_GENERATORS = {"phonetic", "random"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    HASTE_ENV: str = "development"
    HASTE_REDIS_URL: str = "redis://localhost:6379/0"
    REDISTOGO_URL: Optional[str] = None
    HASTE_REDIS_TIMEOUT_SECONDS: float = 5.0
    HASTE_EXPIRE_SECONDS: Optional[int] = 60 * 60 * 24 * 30
    HASTE_MAX_LENGTH: Optional[int] = 400_000
    HASTE_KEY_LENGTH: int = 10
    HASTE_KEY_GENERATOR: str = "phonetic"
    HASTE_KEY_ALPHABET: Optional[str] = None
    HASTE_KEY_MAX_ATTEMPTS: int = 32
    HASTE_DOCUMENTS: dict[str, str] = {}
    HASTE_BUILD_VERSION: Optional[str] = None
    HOST: str = "localhost"
    PORT: int = 7777
    WEB_ORIGIN: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def _validate_keys(self) -> "Settings":
        if self.HASTE_KEY_GENERATOR.lower() not in KEY_GENERATORS:
            raise ValueError(
                f"Unknown HASTE_KEY_GENERATOR {self.HASTE_KEY_GENERATOR!r}, "
                f"expected one of: {', '.join(sorted(KEY_GENERATORS))}"
            )
        if self.HASTE_KEY_ALPHABET is not None and "." in self.HASTE_KEY_ALPHABET:
            raise ValueError("HASTE_KEY_ALPHABET must not contain '.'")
        if self.HASTE_KEY_LENGTH < 1:
            raise ValueError("HASTE_KEY_LENGTH must be at least 1")
        if self.HASTE_KEY_MAX_ATTEMPTS < 1:
            raise ValueError("HASTE_KEY_MAX_ATTEMPTS must be at least 1")
        return self

    @property
    def redis_url(self) -> str:
        return self.REDISTOGO_URL or self.HASTE_REDIS_URL

    @property
    def expire_seconds(self) -> int | None:
        return self.HASTE_EXPIRE_SECONDS or None

    @property
    def max_length(self) -> int | None:
        return self.HASTE_MAX_LENGTH or None


@lru_cache
def get_settings() -> Settings:
    return Settings()
