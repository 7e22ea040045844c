"""Configuration management for the assessment content gateway."""

from dataclasses import dataclass
from typing import Optional, Tuple

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PRIMARY_PROVIDER_ID = "groq"
BACKUP_PROVIDER_ID = "gemini"


def clean_api_key(value: Optional[str]) -> str:
    """Normalize an API key read from the environment.

    Keys pasted into ``.env`` files often carry stray whitespace or are
    wrapped in quotes. Both are stripped so that a quoted-but-empty value is
    treated as "not configured".

    Args:
        value: Raw value from the environment (may be None)

    Returns:
        The cleaned key, or an empty string
    """
    if not value:
        return ""
    cleaned = value.strip()
    if cleaned[:1] in ("'", '"'):
        cleaned = cleaned[1:]
    if cleaned[-1:] in ("'", '"'):
        cleaned = cleaned[:-1]
    return cleaned.strip()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application Settings
    env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # LLM API Keys
    groq_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GROQ_API_KEY", "VITE_GROQ_API_KEY"),
    )
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "VITE_GEMINI_API_KEY"),
    )

    # Primary provider (OpenAI-compatible chat + audio)
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_audio_base_url: Optional[str] = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.3-70b-versatile"
    groq_audio_model: Optional[str] = "whisper-large-v3"

    # Backup provider (Gemini)
    gemini_base_url: Optional[str] = None  # SDK default endpoint
    gemini_model: str = "gemini-2.5-flash"

    # Generation Settings
    temperature: float = 0.7

    @field_validator("groq_api_key", "gemini_api_key", mode="before")
    @classmethod
    def _strip_key(cls, value: Optional[str]) -> str:
        return clean_api_key(value)


@dataclass(frozen=True)
class ProviderConfig:
    """Immutable connection settings for one LLM provider.

    Attributes:
        id: Short provider identifier used in logs and errors
        chat_endpoint: Base URL of the chat/generation API (None = SDK default)
        api_key: API key; empty disables the provider
        model_name: Model used for text generation
        key_env_var: Environment variable the operator sets the key in
        audio_endpoint: Base URL of the transcription API (None = same as chat)
        audio_model_name: Model used for transcription (None = model_name)
        supports_audio: Whether the provider takes part in transcription
        temperature: Sampling temperature for text generation
    """

    id: str
    chat_endpoint: Optional[str]
    api_key: str
    model_name: str
    key_env_var: str
    audio_endpoint: Optional[str] = None
    audio_model_name: Optional[str] = None
    supports_audio: bool = True
    temperature: float = 0.7

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def __repr__(self) -> str:
        # Never leak the key into logs
        return (
            f"ProviderConfig(id={self.id!r}, model_name={self.model_name!r}, "
            f"configured={self.is_configured})"
        )


def build_provider_configs(
    settings: Settings,
) -> Tuple[ProviderConfig, ProviderConfig]:
    """Build the (primary, backup) provider configurations.

    Args:
        settings: Loaded application settings

    Returns:
        Tuple of primary and backup ProviderConfig
    """
    primary = ProviderConfig(
        id=PRIMARY_PROVIDER_ID,
        chat_endpoint=settings.groq_base_url,
        api_key=settings.groq_api_key,
        model_name=settings.groq_model,
        key_env_var="GROQ_API_KEY",
        audio_endpoint=settings.groq_audio_base_url,
        audio_model_name=settings.groq_audio_model,
        supports_audio=bool(settings.groq_audio_base_url and settings.groq_audio_model),
        temperature=settings.temperature,
    )
    backup = ProviderConfig(
        id=BACKUP_PROVIDER_ID,
        chat_endpoint=settings.gemini_base_url,
        api_key=settings.gemini_api_key,
        model_name=settings.gemini_model,
        key_env_var="GEMINI_API_KEY",
        audio_endpoint=settings.gemini_base_url,
        audio_model_name=settings.gemini_model,
        temperature=settings.temperature,
    )
    return primary, backup


def get_settings() -> Settings:
    """Load settings from the process environment."""
    return Settings()
