"""
Settings for bulk-spine.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Engines and repositories receive a settings object at construction
    instead of reading process-wide mutable state, so two repositories in
    one process can run with different chunk sizes or time zones.

    - **Pydantic validation:** Type-checked at startup, not at first use
    - **Environment-driven:** ``BULKSPINE_*`` env vars and ``.env`` files
    - **Sensible defaults:** Works out of the box against a local SQLite file

Examples:
    >>> from bulkspine.core.settings import BulkSpineSettings
    >>> settings = BulkSpineSettings(chunk_size=500, timezone="America/Sao_Paulo")
    >>> settings.tzinfo.key
    'America/Sao_Paulo'

Tags:
    settings, configuration, pydantic, environment, bulk-spine
"""

from __future__ import annotations

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BulkSpineSettings(BaseSettings):
    """bulk-spine configuration.

    All fields can be set via ``BULKSPINE_*`` environment variables (e.g.
    ``BULKSPINE_CHUNK_SIZE=5000``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="BULKSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///data/bulkspine.db")
    database_echo: bool = Field(default=False)
    database_pool_size: int | None = Field(default=None, gt=0)
    sqlite_busy_timeout: float = Field(
        default=30.0,
        ge=0,
        description="Seconds a SQLite writer waits for the database lock",
    )

    # ── Bulk paths ───────────────────────────────────────────────
    chunk_size: int = Field(default=1000, gt=0, description="Rows per insert chunk")
    max_parallelism: int = Field(default=4, gt=0, description="Concurrent insert chunks")

    # ── Time ─────────────────────────────────────────────────────
    timezone: str = Field(default="UTC", description="IANA zone used for change stamps")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", pattern="^(console|json)$")

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {value!r}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value!r}")
        return upper

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


_settings_cache: dict[str, BulkSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> BulkSpineSettings:
    """Load, validate, and cache the process settings.

    Parameters
    ----------
    _force_reload:
        Bypass the cache and re-read the environment.
    """
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]

    settings = BulkSpineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Drop the cached settings (used by tests)."""
    _settings_cache.clear()


__all__ = [
    "BulkSpineSettings",
    "get_settings",
    "clear_settings_cache",
]
