"""
Configuration Management for Budgeter

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import cached_property, lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SyncSettings(BaseSettings):
    """Offline sync manager configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETER_SYNC_",
        extra="ignore"
    )

    remote_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        le=300,
        description="Upper bound for a single remote call before it counts as failed"
    )
    temp_id_prefix: str = Field(
        default="temp_",
        min_length=1,
        description="Prefix of locally generated record identifiers"
    )
    clear_synced_after_sweep: bool = Field(
        default=False,
        description="Remove synced records from the local store when a sweep ends"
    )

    # Connectivity probe target
    probe_host: str = Field(
        default="1.1.1.1",
        description="Host used by the connectivity probe"
    )
    probe_port: int = Field(
        default=53,
        ge=1,
        le=65535,
        description="TCP port used by the connectivity probe"
    )
    probe_timeout_seconds: float = Field(
        default=3.0,
        gt=0,
        description="How long the probe waits for a TCP handshake"
    )


class LocalStoreSettings(BaseSettings):
    """Embedded local record store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETER_LOCAL_",
        extra="ignore"
    )

    database_path: str = Field(
        default="budgeter_offline.db",
        description="Path to the SQLite file holding offline records (':memory:' allowed)"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    default_currency: str = Field(
        default="RWF",
        min_length=3,
        max_length=3,
        description="Currency assumed for rows that carry none"
    )

    @field_validator('default_currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


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

    # Note: These are loaded lazily to allow partial configuration.
    # sync and app are cached per instance; the others are rebuilt on access.

    @cached_property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @cached_property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("sync", "local_store", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results


def get_default_currency() -> str:
    """Currency assumed for rows that carry none (DEFAULT_CURRENCY env var)."""
    return get_settings().app.default_currency


def get_temp_id_prefix() -> str:
    """Prefix of locally generated record ids (BUDGETER_SYNC_TEMP_ID_PREFIX)."""
    return get_settings().sync.temp_id_prefix
