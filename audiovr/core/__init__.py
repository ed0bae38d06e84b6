"""
Core module.

Exports:
- EventBus, Event, AudioEvent: Event system
- AudioError and subclasses: Error hierarchy
- AudioServiceConfig, load_config, save_config: Configuration
"""

from audiovr.core.events import EventBus, Event, AudioEvent
from audiovr.core.errors import (
    AudioError,
    InvalidAssetError,
    AssetNotFoundError,
    UnknownLayerError,
    UnknownEnvironmentError,
    PlaybackError,
    InitializationError,
)
from audiovr.core.config import AudioServiceConfig, MixerSettings, SpatialAudioConfig, load_config, save_config

__all__ = [
    "EventBus",
    "Event",
    "AudioEvent",
    "AudioError",
    "InvalidAssetError",
    "AssetNotFoundError",
    "UnknownLayerError",
    "UnknownEnvironmentError",
    "PlaybackError",
    "InitializationError",
    "AudioServiceConfig",
    "MixerSettings",
    "SpatialAudioConfig",
    "load_config",
    "save_config",
]
