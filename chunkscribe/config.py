"""
chunkscribe.config - YAML config loading, defaults merging, validation.

Handles loading chunkscribe.yaml, applying built-in defaults, and
validating all parameters. Also derives the per-file chunk configuration
(chunk size and batch concurrency) from the audio size.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "chunkscribe.yaml"

DEFAULT_CHUNK_SIZE = 5 * 1024 * 1024
MAX_CONCURRENT_REQUESTS = 5


class ChunkscribeConfig(BaseModel):
    """Resolved configuration for a transcription job."""

    language: str = "es"

    transcription_model: str = "whisper-1"
    transcription_secret: str = "openai/api-key"

    llm_backend: str = "gemini"
    llm_model: str = "gemini-2.0-flash"
    llm_secret: str | None = "gemini/api-key"
    llm_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    llm_timeout: int = Field(default=300, gt=0)
    segmentation_attempts: int = Field(default=1, ge=1)

    chunk_size_bytes: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0)
    max_concurrency: int = Field(default=MAX_CONCURRENT_REQUESTS, ge=1)
    min_chunk_bytes: int = Field(default=4096, ge=0)

    max_retries: int = Field(default=3, ge=0)
    rate_limit_backoff_ms: int = Field(default=2000, ge=0)
    base_backoff_ms: int = Field(default=1000, ge=0)

    enable_fallback: bool = True

    prompt_context: str = (
        "This is the transcript of a news segment from a radio show in Uruguay."
    )
    prompts_dir: Path | None = None

    @field_validator("llm_backend")
    @classmethod
    def validate_llm_backend(cls, v: str) -> str:
        valid = {"gemini", "openai", "ollama", "lmstudio"}
        if v not in valid:
            raise ValueError(f"llm_backend must be one of: {valid}")
        return v

    @field_validator("language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        v = v.strip().lower()
        if not v or len(v) > 3 or not v.isalpha():
            raise ValueError("language must be an ISO-639-1 code such as 'es' or 'en'")
        return v


DEFAULTS: dict[str, Any] = ChunkscribeConfig().model_dump(exclude={"prompts_dir"})


def merge_config(file_config: dict[str, Any], defaults: dict[str, Any]) -> dict[str, Any]:
    """Merge file config with defaults. File values take precedence, None is ignored."""
    merged = defaults.copy()
    for key, value in file_config.items():
        if value is not None:
            merged[key] = value
    return merged


def load_config(path: Path | None = None, overrides: dict[str, Any] | None = None) -> ChunkscribeConfig:
    """Load and validate configuration.

    Args:
        path: A chunkscribe.yaml file or a directory containing one. When
            None, or when the directory has no config file, defaults are used.
        overrides: Values that win over both file and defaults (CLI flags)

    Returns:
        Validated ChunkscribeConfig

    Raises:
        FileNotFoundError: If an explicit file path does not exist
        ConfigError: If the file is not a mapping or values fail validation
    """
    from pydantic import ValidationError as PydanticValidationError

    from chunkscribe.exceptions import ConfigError

    raw_config: dict[str, Any] = {}
    if path is not None:
        config_file = path / CONFIG_FILENAME if path.is_dir() else path
        if config_file.exists():
            with open(config_file) as f:
                raw_config = yaml.safe_load(f) or {}
        elif not path.is_dir():
            raise FileNotFoundError(f"No config file found at {config_file}")

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must contain a mapping at the top level")

    merged = merge_config(raw_config, DEFAULTS)
    if overrides:
        merged = merge_config(overrides, merged)

    try:
        return ChunkscribeConfig(**merged)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def create_default_config() -> dict[str, Any]:
    """Create a default config dict suitable for writing to chunkscribe.yaml."""
    return DEFAULTS.copy()


def write_config(config: dict[str, Any], path: Path) -> None:
    """Write configuration to a YAML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def chunk_config_for_size(audio_bytes: int, config: ChunkscribeConfig) -> tuple[int, int]:
    """Derive chunk size and batch concurrency for an audio file.

    Concurrency never exceeds the estimated chunk count, so a small file
    does not reserve workers it cannot use.

    Args:
        audio_bytes: Size of the audio file in bytes
        config: Resolved configuration

    Returns:
        Tuple of (chunk_size_bytes, concurrency)
    """
    chunk_size = config.chunk_size_bytes
    estimated_chunks = math.ceil(audio_bytes / chunk_size) if audio_bytes > 0 else 0
    concurrency = max(1, min(config.max_concurrency, estimated_chunks))
    return chunk_size, concurrency
