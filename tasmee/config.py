"""
Configuration management for Tasmee library.

Settings are read from environment variables prefixed with ``TASMEE_``
(and an optional ``.env`` file), and can be overridden programmatically:

    from tasmee.config import configure

    configure(match_threshold=0.65, max_concurrent_transcriptions=4)
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tasmee.exceptions import ConfigurationError


class TasmeeSettings(BaseSettings):
    """Runtime settings for recitation tracking."""

    model_config = SettingsConfigDict(
        env_prefix="TASMEE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Transcription
    language: str = Field(default="ar", description="Language passed to the transcriber")
    max_concurrent_transcriptions: int = Field(
        default=3,
        ge=1,
        description="Transcriber calls allowed in flight at once",
    )
    default_chunk_duration: float = Field(default=3.0, gt=0.0)

    # Matching thresholds
    match_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    fuzzy_word_threshold: float = Field(default=0.75, ge=0.0, le=1.0)
    sequence_word_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    substitution_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    alignment_accept_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    alignment_correct_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    reference_accuracy_threshold: float = Field(default=0.8, ge=0.0, le=1.0)

    # Combined score weights
    exact_weight: float = Field(default=0.4, ge=0.0)
    fuzzy_weight: float = Field(default=0.3, ge=0.0)
    sequential_weight: float = Field(default=0.2, ge=0.0)
    length_weight: float = Field(default=0.1, ge=0.0)

    # Candidate search
    search_window: int = Field(default=2, ge=0, description="Verses either side of the cursor")

    # Sessions
    persist_every_chunks: int = Field(default=5, ge=1)
    session_store_dir: Path = Field(default=Path("data/sessions"))

    # Corpus
    corpus_paths: list[Path] = Field(default_factory=list)
    chapter_metadata_path: Optional[Path] = None
    reference_dataset_path: Optional[Path] = None

    # HuggingFace Inference Endpoint
    hf_inference_endpoint: Optional[str] = None
    hf_api_token: Optional[str] = None
    hf_timeout_seconds: float = Field(default=60.0, gt=0.0)
    hf_max_retries: int = Field(default=10, ge=1)

    # Local faster-whisper
    whisper_model_id: str = "tarteel-ai/whisper-tiny-ar-quran"
    whisper_device: str = "auto"

    @model_validator(mode="after")
    def _check_weights(self) -> "TasmeeSettings":
        total = self.exact_weight + self.fuzzy_weight + self.sequential_weight + self.length_weight
        if total <= 0:
            raise ValueError("score weights must not all be zero")
        return self


_settings: TasmeeSettings | None = None


def get_settings() -> TasmeeSettings:
    """
    Get the active settings, creating them from the environment on first use.

    Returns:
        The shared TasmeeSettings instance
    """
    global _settings
    if _settings is None:
        _settings = TasmeeSettings()
    return _settings


def configure(**overrides) -> TasmeeSettings:
    """
    Replace the active settings with the given overrides applied.

    Args:
        **overrides: Setting names and values

    Returns:
        The new TasmeeSettings instance

    Raises:
        ConfigurationError: If an unknown setting is passed or a value is invalid
    """
    global _settings
    unknown = [name for name in overrides if name not in TasmeeSettings.model_fields]
    if unknown:
        raise ConfigurationError("Unknown setting", setting_name=", ".join(unknown))

    current = get_settings().model_dump()
    current.update(overrides)
    try:
        _settings = TasmeeSettings(**current)
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
