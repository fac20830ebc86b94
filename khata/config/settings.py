"""
Configuration Management for Khoroch Khata

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Behavioural thresholds such as the minimum password length and the
advisory unlock threshold live here so they can be tuned without touching
the logic that uses them.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local state document location."""

    model_config = SettingsConfigDict(
        env_prefix="KHATA_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: str = Field(
        default="./data",
        description="Directory holding the state document"
    )
    state_file_name: str = Field(
        default="khoroch_khata_data.json",
        description="File name of the persisted state document"
    )
    backup_prefix: str = Field(
        default="khoroch-khata",
        description="Prefix used for backup file names"
    )

    @property
    def state_path(self) -> Path:
        return Path(self.data_dir) / self.state_file_name


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the spending advisory."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )
    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Give up on the advisory call after this many seconds"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Auth gate
    min_password_length: int = Field(
        default=6,
        ge=1,
        description="Minimum password length at every password entry point"
    )

    # Advisory
    advisory_min_transactions: int = Field(
        default=5,
        ge=0,
        description="Transactions required before the advisory can be requested"
    )
    weekend_days: str = Field(
        default="4,5",
        description="Comma-separated weekday indices (Monday=0) of the rest days"
    )

    # Smart lookup
    lookup_hint_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="How long the 'suggested' hint stays visible"
    )

    # Reminders
    reminder_poll_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Interval of the reminder sweep"
    )

    # Notification sounds
    max_sound_size_mb: float = Field(
        default=2.0,
        gt=0,
        description="Largest accepted custom notification sound"
    )

    @field_validator("weekend_days")
    @classmethod
    def validate_weekend_days(cls, v: str) -> str:
        """Weekend must be a pair of distinct weekday indices."""
        days = [d.strip() for d in v.split(",") if d.strip()]
        if len(days) != 2 or len(set(days)) != 2:
            raise ValueError("weekend_days must name exactly two distinct days")
        for d in days:
            if not d.isdigit() or not 0 <= int(d) <= 6:
                raise ValueError(f"Invalid weekday index: {d}")
        return v

    @property
    def weekend_day_set(self) -> frozenset[int]:
        """Weekend days as Python weekday indices."""
        return frozenset(int(d) for d in self.weekend_days.split(",") if d.strip())

    @property
    def max_sound_size_bytes(self) -> int:
        return int(self.max_sound_size_mb * 1024 * 1024)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are built lazily so a missing Gemini key only matters
    # when the advisory is actually used.

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, Optional[bool | str]]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus an
    ``<name>_error`` entry for every failure. Useful for startup checks.
    """
    results: dict[str, Optional[bool | str]] = {}

    settings = get_settings()

    for name in ("storage", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
