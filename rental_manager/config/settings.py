"""
Configuration Management for Rental Manager

Uses pydantic-settings for type-safe configuration from environment variables.

All configuration is centralized here: where the local snapshot lives,
how to reach Firestore, ledger thresholds and reminder lead times.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LocalStoreSettings(BaseSettings):
    """Local snapshot store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORE_",
        extra="ignore"
    )

    snapshot_path: Path = Field(
        default=Path("data/rental_data.json"),
        description="Path of the JSON snapshot document"
    )


class FirebaseSettings(BaseSettings):
    """Firebase / Cloud Firestore configuration for the remote store."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        extra="ignore"
    )

    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a service account JSON. Application default credentials are used when unset."
    )
    project_id: Optional[str] = Field(
        default=None,
        description="Firebase project id"
    )
    users_collection: str = Field(
        default="users",
        min_length=1,
        description="Collection holding one document per user"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firebase credentials file not found at {v}. "
                "Make sure it exists before signing in."
            )
        return v


class LedgerSettings(BaseSettings):
    """Ledger engine thresholds."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    due_soon_window_days: int = Field(
        default=7,
        ge=0,
        le=60,
        description="A tenant is 'due' when the next due date is this close"
    )
    max_accrual_periods: int = Field(
        default=100_000,
        ge=1,
        description="Upper bound on billing periods accrued for one tenant"
    )


class ReminderSettings(BaseSettings):
    """Reminder lead times and toggles."""

    model_config = SettingsConfigDict(
        env_prefix="REMINDER_",
        extra="ignore"
    )

    enable_rent_reminders: bool = True
    enable_appointment_reminders: bool = True
    enable_lease_expiry_reminders: bool = True
    enable_maintenance_reminders: bool = True
    enable_deadline_reminders: bool = True

    rent_lead_days: int = Field(default=1, ge=0)
    rent_reminder_hour: int = Field(
        default=12,
        ge=0,
        le=23,
        description="Hour of day the rent reminder fires"
    )
    appointment_lead_minutes: int = Field(default=60, ge=0)
    lease_expiry_lead_days: int = Field(default=60, ge=0)
    maintenance_followup_days: int = Field(default=3, ge=0)
    deadline_lead_days: int = Field(default=30, ge=0)


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
    log_level: str = Field(
        default="INFO",
        description="Standard library log level name"
    )
    audit_history_size: int = Field(
        default=500,
        ge=0,
        description="How many audit events are kept in memory"
    )

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def local_store(self) -> LocalStoreSettings:
        return LocalStoreSettings()

    @property
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def reminders(self) -> ReminderSettings:
        return ReminderSettings()

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


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("local_store", "firebase", "ledger", "reminders", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
