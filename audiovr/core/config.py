"""
Audio service configuration.

Expected JSON format:
{
    "cdn_base_url": "https://audio-cdn.audiovr.app",
    "cache_dir": "audio-cache",
    "max_cache_size_mb": 500,
    "offline_mode": false,
    "accessibility_mode": false,
    "mixer": {"frequency": 44100, "buffer": 512, "num_channels": 32},
    "spatial_audio": {
        "enabled": true,
        "environment_type": "mansion",
        "listener_position": {"x": 0, "y": 0, "z": 0}
    }
}
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from audiovr.audio.types import EnvironmentType, Vector3
from audiovr.core.errors import InitializationError

logger = logging.getLogger(__name__)


class MixerSettings(BaseModel):
    """Arguments for pygame.mixer.init()."""
    frequency: int = 44100
    size: int = -16
    channels: int = Field(default=2, ge=1, le=2)
    buffer: int = 512
    num_channels: int = Field(default=32, ge=1)


class SpatialAudioConfig(BaseModel):
    enabled: bool = True
    listener_position: Vector3 = Field(default_factory=Vector3)
    listener_orientation: Vector3 = Field(default_factory=lambda: Vector3(x=0.0, y=0.0, z=-1.0))
    environment_type: EnvironmentType = EnvironmentType.TRAIN
    reverb_enabled: bool = True
    occlusion_enabled: bool = False


class AudioServiceConfig(BaseModel):
    """Complete audio service configuration."""

    model_config = ConfigDict(extra="ignore")

    cdn_base_url: str = "https://audio-cdn.audiovr.app"
    cache_enabled: bool = True
    cache_dir: Path = Path("audio-cache")
    max_cache_size_mb: int = Field(default=500, ge=1)
    download_timeout: float = Field(default=10.0, gt=0)
    offline_mode: bool = False
    accessibility_mode: bool = False
    preload_essentials: bool = True
    mixer: MixerSettings = Field(default_factory=MixerSettings)
    spatial_audio: SpatialAudioConfig = Field(default_factory=SpatialAudioConfig)

    @property
    def max_cache_bytes(self) -> int:
        return self.max_cache_size_mb * 1024 * 1024


def load_config(path: Path | str) -> AudioServiceConfig:
    """
    Load configuration from a JSON file.

    A missing file yields the defaults.

    Raises:
        InitializationError: unreadable JSON or invalid values
    """
    config_file = Path(path)
    if not config_file.exists():
        logger.warning(f"Audio config not found: {config_file}, using defaults")
        return AudioServiceConfig()

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
        return AudioServiceConfig.model_validate(data)
    except (OSError, json.JSONDecodeError) as e:
        raise InitializationError(f"Error loading audio config {config_file}: {e}") from e
    except ValidationError as e:
        raise InitializationError(
            f"Invalid audio config {config_file}: {e.errors()[0]['msg']}",
            {"errors": e.errors()},
        ) from e


def save_config(config: AudioServiceConfig, path: Path | str) -> bool:
    """Write configuration as JSON. Returns False on IO failure."""
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config.model_dump(mode="json"), f, indent=2)
        return True
    except OSError as e:
        logger.error(f"Error saving audio config: {e}")
        return False
