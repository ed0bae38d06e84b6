"""
Low-latency sample player for short effects and UI sounds.

Sounds are decoded fully into memory with pygame.mixer.Sound and played
on free mixer channels, so many can overlap.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import pygame

from audiovr.audio.types import clamp_volume
from audiovr.core.errors import PlaybackError

logger = logging.getLogger(__name__)


class SamplePlayer:
    """
    Plays in-memory samples on pygame mixer channels.

    One channel is tracked per asset id; playing an asset again restarts
    it on a (possibly different) free channel.
    """

    def __init__(self):
        self._sounds: dict[str, pygame.mixer.Sound] = {}
        self._channels: dict[str, pygame.mixer.Channel] = {}

    def is_loaded(self, asset_id: str) -> bool:
        return asset_id in self._sounds

    def load(self, asset_id: str, path: str) -> None:
        """
        Decode a sound file into memory.

        Raises:
            PlaybackError: mixer not running, file missing or undecodable
        """
        if asset_id in self._sounds:
            return

        if not pygame.mixer.get_init():
            raise PlaybackError(asset_id, "Audio system not initialized, cannot load sample")

        if not Path(path).exists():
            raise PlaybackError(asset_id, f"Audio file not found: {path}", {"path": path})

        try:
            self._sounds[asset_id] = pygame.mixer.Sound(path)
        except pygame.error as e:
            raise PlaybackError(asset_id, f"Failed to load sound {path}: {e}", {"path": path}) from e

        logger.debug(f"Loaded sample {asset_id} from {path}")

    def play(self, asset_id: str, volume: float = 1.0, loop: bool = False, fade_ms: int = 0) -> None:
        """
        Play a loaded sample.

        Raises:
            PlaybackError: not loaded, or no mixer channel available
        """
        sound = self._sounds.get(asset_id)
        if sound is None:
            raise PlaybackError(asset_id, f"Sample not loaded: {asset_id}")

        # One channel per asset: restarting replaces the previous instance
        self.stop(asset_id)

        channel = pygame.mixer.find_channel()
        if not channel:
            # Steal the oldest channel if all are busy
            channel = pygame.mixer.find_channel(True)
        if not channel:
            raise PlaybackError(asset_id, "No free mixer channel")

        try:
            channel.set_volume(clamp_volume(volume))
            channel.play(sound, loops=-1 if loop else 0, fade_ms=fade_ms)
        except pygame.error as e:
            raise PlaybackError(asset_id, f"Failed to play sample {asset_id}: {e}") from e

        self._channels[asset_id] = channel

    def stop(self, asset_id: str, fade_ms: int = 0) -> None:
        channel = self._channel(asset_id)
        self._channels.pop(asset_id, None)
        if channel is None:
            return
        if fade_ms > 0:
            channel.fadeout(fade_ms)
        else:
            channel.stop()

    def pause(self, asset_id: str) -> None:
        channel = self._channel(asset_id)
        if channel is not None:
            channel.pause()

    def resume(self, asset_id: str) -> None:
        channel = self._channel(asset_id)
        if channel is not None:
            channel.unpause()

    def set_volume(self, asset_id: str, volume: float) -> None:
        channel = self._channel(asset_id)
        if channel is not None:
            channel.set_volume(clamp_volume(volume))

    def set_stereo(self, asset_id: str, left: float, right: float) -> None:
        """Set per-ear channel volume (used for spatial panning)."""
        channel = self._channel(asset_id)
        if channel is not None:
            channel.set_volume(clamp_volume(left), clamp_volume(right))

    def is_playing(self, asset_id: str) -> bool:
        channel = self._channel(asset_id)
        return bool(channel is not None and channel.get_busy())

    def release(self, asset_id: str) -> None:
        """Stop and free a decoded sample."""
        self.stop(asset_id)
        sound = self._sounds.pop(asset_id, None)
        if sound is not None:
            sound.stop()

    def release_all(self) -> None:
        for asset_id in list(self._sounds):
            self.release(asset_id)

    def _channel(self, asset_id: str) -> Optional[pygame.mixer.Channel]:
        """
        The channel still playing asset_id, if any.

        pygame hands finished channels to other sounds, so a stored channel
        only belongs to the asset while it holds the asset's sound.
        """
        channel = self._channels.get(asset_id)
        if channel is None:
            return None
        sound = self._sounds.get(asset_id)
        if sound is None or channel.get_sound() is not sound:
            del self._channels[asset_id]
            return None
        return channel
