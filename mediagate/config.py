"""Configuration helpers for the gateway."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SEGMENT_SUFFIXES = ".ts,.m4s,.mp4,.m4a,.aac"
MAX_PRESIGN_EXPIRY_S = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    accounts_json: str | None = Field(default=None, alias="ACCOUNTS_JSON")
    storage_host: str = Field(default="r2.cloudflarestorage.com", alias="STORAGE_HOST")
    storage_region: str = Field(default="auto", alias="STORAGE_REGION")

    manifest_ttl_s: int = Field(default=3600, alias="MANIFEST_TTL_S")
    segment_ttl_s: int = Field(default=4 * 3600, alias="SEGMENT_TTL_S")
    asset_ttl_s: int = Field(default=3600, alias="ASSET_TTL_S")
    upstream_timeout_s: float = Field(default=10.0, alias="UPSTREAM_TIMEOUT_S")

    segment_suffixes_csv: str = Field(
        default=DEFAULT_SEGMENT_SUFFIXES, alias="SEGMENT_SUFFIXES"
    )
    cors_allow_origin: str = Field(default="*", alias="CORS_ALLOW_ORIGIN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", populate_by_name=True
    )

    @property
    def segment_suffixes(self) -> Tuple[str, ...]:
        return parse_suffixes(self.segment_suffixes_csv)


def parse_suffixes(raw: str) -> Tuple[str, ...]:
    suffixes = []
    for token in raw.split(","):
        token = token.strip().lower()
        if not token:
            continue
        if not token.startswith("."):
            token = f".{token}"
        suffixes.append(token)
    return tuple(suffixes)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[call-arg]


def reset_settings_cache() -> None:
    """Clear cached settings (primarily for tests)."""

    get_settings.cache_clear()


def log_level_value(name: str) -> int | None:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else None


def validate_settings(settings: Settings) -> list[str]:
    """Return human readable problems with ``settings``; empty when sane."""

    problems: list[str] = []
    for name in ("manifest_ttl_s", "segment_ttl_s", "asset_ttl_s"):
        value = getattr(settings, name)
        if not 1 <= value <= MAX_PRESIGN_EXPIRY_S:
            problems.append(f"{name}={value} outside 1..{MAX_PRESIGN_EXPIRY_S}")
    if settings.segment_ttl_s < settings.manifest_ttl_s:
        problems.append("segment_ttl_s is shorter than manifest_ttl_s")
    if settings.upstream_timeout_s <= 0:
        problems.append("upstream_timeout_s must be positive")
    if not settings.segment_suffixes:
        problems.append("no segment suffixes configured")
    if log_level_value(settings.log_level) is None:
        problems.append(f"unknown log_level {settings.log_level!r}")
    return problems


__all__ = [
    "DEFAULT_SEGMENT_SUFFIXES",
    "MAX_PRESIGN_EXPIRY_S",
    "Settings",
    "get_settings",
    "log_level_value",
    "parse_suffixes",
    "reset_settings_cache",
    "validate_settings",
]
