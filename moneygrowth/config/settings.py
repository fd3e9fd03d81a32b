"""
Configuration Management for MoneyGrowth

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The Gemini key is optional: without it the AI features answer with
their fallback messages instead of failing at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key (AI features are disabled without it)"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Temperature for structured analyses"
    )
    chat_temperature: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Temperature for open questions and the chat assistant"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class StorageSettings(BaseSettings):
    """Local state persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MONEYGROWTH_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    state_file: Path = Field(
        default=Path("data/moneygrowth_state.json"),
        description="JSON document holding the persisted application state"
    )
    state_key: str = Field(
        default="finanzen-app-state-v3",
        min_length=1,
        description="Key under which the state blob is stored"
    )
    audit_file: Optional[Path] = Field(
        default=Path("data/audit_log.jsonl"),
        description="JSON-lines audit trail (unset to keep audit local only)"
    )

    @field_validator("state_key")
    @classmethod
    def validate_state_key(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError("State key cannot contain whitespace")
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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the structured log"
    )

    # Presentation
    currency_symbol: str = Field(
        default="€",
        max_length=3,
        description="Currency symbol shown next to amounts"
    )

    # Import limits
    max_import_size_mb: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum size of an imported backup in MB"
    )
    max_scan_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum size of a scanned receipt image in MB"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def max_import_size_bytes(self) -> int:
        """Get max import size in bytes."""
        return self.max_import_size_mb * 1024 * 1024

    @property
    def max_scan_size_bytes(self) -> int:
        return self.max_scan_size_mb * 1024 * 1024


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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Returns a dict of {setting_name: is_valid}, plus a
    "<setting_name>_error" entry for each failure.
    """
    results = {}
    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            section = getattr(settings, name)
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
            continue
        results[name] = True
        if name == "gemini" and not section.is_configured:
            results[name] = False
            results[f"{name}_error"] = "GEMINI_API_KEY is not set"

    return results
