"""
Audio subsystem errors.

Error hierarchy:
    AudioError (base)
    ├── InvalidAssetError        (malformed registration, also ValueError)
    ├── AssetNotFoundError       (unknown asset id, also KeyError)
    ├── UnknownLayerError        (unknown layer name, also KeyError)
    ├── UnknownEnvironmentError  (unknown environment type, also ValueError)
    ├── PlaybackError            (loader/player failure)
    └── InitializationError      (mixer or context failed to start)

Validation errors are raised to the immediate caller. Playback and load
errors are published on the event bus instead (see AudioEvent.AUDIO_ERROR).
"""

from __future__ import annotations

from typing import Any


class AudioError(Exception):
    """Base error for the audio subsystem."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        # KeyError subclasses would otherwise repr() the message
        return self.message


class InvalidAssetError(AudioError, ValueError):
    """Raised when an asset registration is malformed."""


class AssetNotFoundError(AudioError, KeyError):
    """Raised when an asset id is not in the registry."""

    def __init__(self, asset_id: str):
        super().__init__(f"Audio asset not found: {asset_id}", {"asset_id": asset_id})
        self.asset_id = asset_id


class UnknownLayerError(AudioError, KeyError):
    """Raised for a layer name outside the fixed layer set."""

    def __init__(self, layer_name: str):
        super().__init__(f"Unknown audio layer: {layer_name}", {"layer": layer_name})
        self.layer_name = layer_name


class UnknownEnvironmentError(AudioError, ValueError):
    """Raised for an environment type without a reverb profile."""

    def __init__(self, environment: str):
        super().__init__(
            f"Unknown environment type: {environment}",
            {"environment": environment},
        )
        self.environment = environment


class PlaybackError(AudioError):
    """
    Raised by players and loaders when an asset cannot be loaded or played.

    The controller catches these and publishes them; they never escape play().
    """

    def __init__(
        self,
        asset_id: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.asset_id = asset_id


class InitializationError(AudioError):
    """Raised when the mixer, a player or the spatial context fails to start."""
