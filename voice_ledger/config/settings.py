"""
Configuration Management for Voice Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

Unlike most services, a missing Gemini API key is NOT a startup error.
The ledger keeps working offline; only the voice features are unavailable.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Values the browser build used to leak when the key was never injected
_PLACEHOLDER_KEYS = {"", "undefined", "none", "null"}


class GeminiSettings(BaseSettings):
    """Gemini transcription service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        default="",
        description="Gemini API key (empty means AI features are unavailable)"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=64,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )

    @property
    def has_credential(self) -> bool:
        """True when a usable API key is configured."""
        return self.api_key.strip().lower() not in _PLACEHOLDER_KEYS


class StorageSettings(BaseSettings):
    """Local ledger persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    path: Path = Field(
        default=Path.home() / ".voice_ledger" / "ledger.json",
        description="Location of the persisted ledger document"
    )
    enabled: bool = Field(
        default=True,
        description="Disable to keep the ledger in memory only"
    )

    @field_validator("path")
    @classmethod
    def expand_path(cls, v: Path) -> Path:
        return v.expanduser()


class ExportSettings(BaseSettings):
    """Spreadsheet export and share configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    downloads_dir: Path = Field(
        default=Path.home() / "Downloads",
        description="Where downloaded artifacts are written"
    )
    file_suffix: str = Field(
        default="_S1a.xlsx",
        description="Suffix appended to the taxpayer slug"
    )
    email_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=10.0,
        description="Pause between starting the download and opening the mail client"
    )
    drive_url: str = Field(
        default="https://drive.google.com/drive/my-drive",
        description="Cloud storage page opened by the manual upload assist"
    )

    @field_validator("downloads_dir")
    @classmethod
    def expand_dir(cls, v: Path) -> Path:
        return v.expanduser()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debug_mode: bool = Field(
        default=False,
        description="Enable debug logging"
    )
    autosave_debounce_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=30.0,
        description="Trailing debounce window that coalesces saves"
    )
    notification_seconds: float = Field(
        default=3.0,
        gt=0.0,
        le=60.0,
        description="How long a capture notification stays visible"
    )
    max_audio_size_mb: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Largest audio clip accepted for transcription"
    )

    @property
    def max_audio_size_bytes(self) -> int:
        """Get max audio size in bytes."""
        return self.max_audio_size_mb * 1024 * 1024


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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for the status panel.
    """
    results = {}

    settings = get_settings()

    try:
        results["gemini"] = settings.gemini.has_credential
        if not results["gemini"]:
            results["gemini_error"] = "GEMINI_API_KEY is not set"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    for name in ("storage", "export", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
