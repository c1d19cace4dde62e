"""
Configuration Management for iBudget

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Thresholds for the security posture, ledger display defaults and export
cipher parameters are validated once, at startup, instead of being
scattered as literals through the code.
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Expense ledger display defaults."""

    model_config = SettingsConfigDict(
        env_prefix="IBUDGET_LEDGER_",
        extra="ignore"
    )

    default_title: str = Field(
        default="Untitled",
        min_length=1,
        description="Title used when the user leaves the title blank"
    )
    default_category: str = Field(
        default="General",
        min_length=1,
        description="Category used when the user leaves the category blank"
    )
    all_categories_label: str = Field(
        default="All",
        min_length=1,
        description="Pseudo-category that selects every record"
    )
    max_integer_digits: int = Field(
        default=15,
        ge=1,
        le=100,
        description="Most digits an amount may have before the decimal point"
    )
    max_fraction_digits: int = Field(
        default=8,
        ge=0,
        le=100,
        description="Most significant digits an amount may have after the decimal point"
    )


class SecuritySettings(BaseSettings):
    """Failed-authentication escalation policy."""

    model_config = SettingsConfigDict(
        env_prefix="IBUDGET_SECURITY_",
        extra="ignore"
    )

    watch_threshold: int = Field(
        default=3,
        ge=1,
        description="Failure count at which the status becomes Watch"
    )
    lock_threshold: int = Field(
        default=5,
        ge=2,
        description="Failure count at which the status becomes Locked"
    )
    recent_failures_window: int = Field(
        default=5,
        ge=1,
        le=100,
        description="How many recent failures the security overview shows"
    )

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'SecuritySettings':
        """Locked must sit strictly above Watch."""
        if self.lock_threshold <= self.watch_threshold:
            raise ValueError("lock_threshold must be greater than watch_threshold")
        return self


class ExportSettings(BaseSettings):
    """Encrypted export configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IBUDGET_EXPORT_",
        extra="ignore"
    )

    key_bits: int = Field(
        default=256,
        description="AES-GCM key size in bits"
    )
    associated_data: str = Field(
        default="ibudget/ledger-export/v1",
        description="AEAD associated data binding artifacts to the export purpose"
    )

    @field_validator('key_bits')
    @classmethod
    def validate_key_bits(cls, v: int) -> int:
        """AES only accepts 128, 192 or 256 bit keys."""
        if v not in (128, 192, 256):
            raise ValueError(f"Unsupported key size: {v}. Allowed: 128, 192, 256")
        return v

    @property
    def associated_data_bytes(self) -> bytes:
        return self.associated_data.encode("utf-8")


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
        description="Minimum level for structured logs"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
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

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings()

    @property
    def export(self) -> ExportSettings:
        return ExportSettings()

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
    {setting_name}_error entries for the sections that failed.
    """
    results = {}

    settings = get_settings()

    for name in ("ledger", "security", "export", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
