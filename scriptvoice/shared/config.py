"""
Configuration management for the narration pipeline.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .enums import DenoiseLevel, NoiseType, TTSProvider
from .exceptions import ConfigurationError
from .models import DenoiseConfig

PROJECT_ROOT = Path(__file__).resolve().parents[2]

PAID_TIER_RATE_LIMIT_SECONDS = 1.0
FREE_TIER_RATE_LIMIT_SECONDS = 35.0


class ServiceConfig:
    """Configuration management using environment variables and a YAML pipeline file."""

    def __init__(self) -> None:
        """Initialize configuration by loading environment variables."""
        load_dotenv(dotenv_path=PROJECT_ROOT / ".env")
        self.config: dict[str, Any] = {}
        self.pipeline_config: dict[str, Any] = {}
        self.pipeline_config_path = os.getenv(
            "PIPELINE_CONFIG_PATH",
            str(PROJECT_ROOT / "config" / "pipeline.yaml"),
        )
        self.load_from_env()
        self.load_pipeline_config()

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        self.config = {
            "gemini_api_key": os.getenv("GEMINI_API_KEY"),
            "openai_api_key": os.getenv("OPENAI_API_KEY"),
            "tts_provider": os.getenv("TTS_PROVIDER"),
            "paid_tier": os.getenv("GEMINI_PAID_TIER", "false").lower() == "true",
            "output_dir": os.getenv("NARRATION_OUTPUT_DIR", "./output/narration"),
            "dictionary_path": os.getenv(
                "NARRATION_DICTIONARY_PATH", str(PROJECT_ROOT / "config" / "dictionary.json")
            ),
            "ffmpeg_path": os.getenv("FFMPEG_PATH", "ffmpeg"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration key
            default: Default value if key not found or unset

        Returns:
            Configuration value
        """
        value = self.config.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self.config[key] = value

    def load_pipeline_config(self) -> None:
        """Load pipeline configuration from YAML file."""
        path = os.path.abspath(self.pipeline_config_path)
        try:
            with open(path, "r", encoding="utf-8") as stream:
                data = yaml.safe_load(stream) or {}
        except FileNotFoundError:
            data = {}
        self.pipeline_config = data

    def get_pipeline_value(self, path: str, default: Any = None) -> Any:
        """Retrieve a pipeline configuration value via dotted path."""
        env_override_key = f"PIPELINE_FLAG_{path.replace('.', '_').upper()}"
        env_value = os.getenv(env_override_key)
        if env_value is not None:
            return self._coerce_env_value(env_value, default)

        node: Any = self.pipeline_config
        for part in path.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node if node is not None else default

    def set_pipeline_config(self, pipeline_config: dict[str, Any]) -> None:
        """Override pipeline configuration (useful for tests)."""
        self.pipeline_config = pipeline_config

    @staticmethod
    def _coerce_env_value(raw: str, default: Any) -> Any:
        lowered = raw.lower()
        if lowered in {"true", "false"}:
            return lowered == "true"
        if lowered.lstrip("-").replace(".", "", 1).isdigit():
            try:
                return float(lowered) if "." in lowered else int(lowered)
            except ValueError:
                return raw
        return raw or default


class NarrationSettings(BaseModel):
    """Immutable settings for one narration pipeline instance.

    Per-run overrides are applied with ``model_copy(update=...)`` so the
    pipeline's own settings are never mutated.
    """

    model_config = ConfigDict(frozen=True)

    provider: TTSProvider = TTSProvider.GEMINI
    gemini_api_key: str | None = Field(default=None, repr=False)
    openai_api_key: str | None = Field(default=None, repr=False)
    voice: str = "Puck"
    model: str = "gemini-2.5-flash-preview-tts"
    output_dir: Path = Path("./output/narration")
    dictionary_path: Path | None = None
    rate_limit_seconds: float = Field(default=PAID_TIER_RATE_LIMIT_SECONDS, ge=0)
    max_chunk_chars: int = Field(default=1000, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)
    sample_rate: int = Field(default=24000, gt=0)
    channels: int = Field(default=1, ge=1)
    bitrate: str = "128k"
    denoise_enabled: bool = False
    denoise: DenoiseConfig = Field(
        default_factory=lambda: DenoiseConfig(
            level=DenoiseLevel.AUTO, preserve_quality=True, target_type=NoiseType.BREATH
        )
    )
    ffmpeg_path: str = "ffmpeg"

    @classmethod
    def from_config(cls, service_config: ServiceConfig | None = None) -> "NarrationSettings":
        """Build settings from environment and pipeline YAML values."""
        cfg = service_config or config
        paid_tier = bool(cfg.get("paid_tier", False))
        default_rate_limit = PAID_TIER_RATE_LIMIT_SECONDS if paid_tier else FREE_TIER_RATE_LIMIT_SECONDS

        values: dict[str, Any] = {
            "provider": cfg.get("tts_provider") or cfg.get_pipeline_value("narration.provider", "gemini"),
            "gemini_api_key": cfg.get("gemini_api_key"),
            "openai_api_key": cfg.get("openai_api_key"),
            "voice": cfg.get_pipeline_value("narration.voice", "Puck"),
            "model": cfg.get_pipeline_value("narration.model", "gemini-2.5-flash-preview-tts"),
            "output_dir": Path(cfg.get("output_dir", "./output/narration")),
            "dictionary_path": cfg.get("dictionary_path"),
            "rate_limit_seconds": cfg.get_pipeline_value("narration.rate_limit_seconds", default_rate_limit),
            "max_chunk_chars": cfg.get_pipeline_value("narration.max_chunk_chars", 1000),
            "max_attempts": cfg.get_pipeline_value("narration.retry.max_attempts", 3),
            "retry_base_delay": cfg.get_pipeline_value("narration.retry.base_delay_seconds", 1.0),
            "sample_rate": cfg.get_pipeline_value("narration.audio.sample_rate", 24000),
            "bitrate": cfg.get_pipeline_value("narration.audio.bitrate", "128k"),
            "denoise_enabled": cfg.get_pipeline_value("narration.denoise.enabled", False),
            "denoise": DenoiseConfig(
                level=cfg.get_pipeline_value("narration.denoise.level", DenoiseLevel.AUTO.value),
                preserve_quality=cfg.get_pipeline_value("narration.denoise.preserve_quality", True),
                target_type=cfg.get_pipeline_value("narration.denoise.target_type", NoiseType.BREATH.value),
            ),
            "ffmpeg_path": cfg.get("ffmpeg_path", "ffmpeg"),
        }
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid narration settings: {exc}", operation="configure") from exc

    def api_key_for_provider(self) -> str | None:
        if self.provider == TTSProvider.OPENAI:
            return self.openai_api_key
        return self.gemini_api_key


# Global configuration instance
config = ServiceConfig()
