"""
AudioVR

Layered, spatial audio for an interactive mystery: five mixing layers,
a positioned listener, and a playback lifecycle on top of pygame.

Quick Start:
    from audiovr import AudioService, load_config

    audio = AudioService(load_config("audio.json"))
    audio.initialize()
    audio.play("ambient-loop", layer="ambient", spatial=(1, 0, -2))
"""

__version__ = "0.1.0"

from audiovr.core import (
    AudioError,
    AudioEvent,
    AudioServiceConfig,
    Event,
    EventBus,
    load_config,
)
from audiovr.audio import AudioAsset, PlayOptions
from audiovr.service import AudioService, essential_assets

__all__ = [
    # Service
    "AudioService",
    "essential_assets",
    # Config
    "AudioServiceConfig",
    "load_config",
    # Assets
    "AudioAsset",
    "PlayOptions",
    # Events
    "EventBus",
    "Event",
    "AudioEvent",
    # Errors
    "AudioError",
]
