"""
Streaming player for dialogue, ambience and music.

Wraps pygame.mixer.music, which streams one file at a time from disk.
The player keeps its own track queue so assets can be "loaded" ahead of
time and skipped to by id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pygame

from audiovr.audio.types import clamp_volume
from audiovr.core.errors import PlaybackError

logger = logging.getLogger(__name__)


@dataclass
class Track:
    """A queued stream."""
    id: str
    path: str
    title: str = ""
    duration: Optional[float] = None


class StreamPlayer:
    """
    Single-stream background player.

    Features:
    - Track queue with skip by id / next / previous
    - Volume control for the current track
    - Pause / resume
    - Fade in and fade out

    Starting a track replaces whatever was streaming before.
    """

    def __init__(self):
        self._queue: list[Track] = []
        self._current: Optional[Track] = None
        self._volume: float = 1.0
        self._is_paused: bool = False

    @property
    def volume(self) -> float:
        return self._volume

    @property
    def current_id(self) -> Optional[str]:
        return self._current.id if self._current else None

    def get_current_track(self) -> Optional[Track]:
        return self._current

    def get_queue(self) -> list[Track]:
        return list(self._queue)

    def is_loaded(self, asset_id: str) -> bool:
        return self._index_of(asset_id) is not None

    def load(self, asset_id: str, path: str, title: str = "", duration: Optional[float] = None) -> None:
        """
        Add a track to the queue.

        Raises:
            PlaybackError: mixer not running or file missing
        """
        if self.is_loaded(asset_id):
            return

        if not pygame.mixer.get_init():
            raise PlaybackError(asset_id, "Audio system not initialized, cannot queue stream")

        if not Path(path).exists():
            raise PlaybackError(asset_id, f"Audio file not found: {path}", {"path": path})

        self._queue.append(Track(id=asset_id, path=path, title=title or asset_id, duration=duration))
        logger.debug(f"Queued stream {asset_id}")

    def play(self, asset_id: str, volume: float = 1.0, loop: bool = False, fade_ms: int = 0) -> Optional[str]:
        """
        Skip to a queued track and start streaming it.

        Returns:
            Id of the track this one replaced, if any

        Raises:
            PlaybackError: track not queued or pygame failed to open it
        """
        index = self._index_of(asset_id)
        if index is None:
            raise PlaybackError(asset_id, f"Stream not queued: {asset_id}")

        track = self._queue[index]
        previous = self.current_id

        try:
            pygame.mixer.music.load(track.path)
            pygame.mixer.music.play(loops=-1 if loop else 0, fade_ms=fade_ms)
        except pygame.error as e:
            raise PlaybackError(asset_id, f"Failed to stream '{track.path}': {e}") from e

        self._current = track
        self._is_paused = False
        self.set_volume(asset_id, volume)
        logger.info(f"Streaming {asset_id}")

        return previous if previous != asset_id else None

    def stop(self, asset_id: str, fade_ms: int = 0) -> None:
        """Stop the stream if asset_id is the current track."""
        if self.current_id != asset_id:
            return
        if fade_ms > 0:
            pygame.mixer.music.fadeout(fade_ms)
        else:
            pygame.mixer.music.stop()
        self._current = None
        self._is_paused = False

    def pause(self, asset_id: str) -> None:
        if self.current_id == asset_id and not self._is_paused:
            pygame.mixer.music.pause()
            self._is_paused = True

    def resume(self, asset_id: str) -> None:
        if self.current_id == asset_id and self._is_paused:
            pygame.mixer.music.unpause()
            self._is_paused = False

    def skip_to_next(self, volume: Optional[float] = None) -> Optional[str]:
        """Play the track after the current one. Returns its id."""
        return self._skip(+1, volume)

    def skip_to_previous(self, volume: Optional[float] = None) -> Optional[str]:
        return self._skip(-1, volume)

    def set_volume(self, asset_id: str, volume: float) -> None:
        """Volume only applies while asset_id is the current track."""
        if self.current_id != asset_id:
            return
        self._volume = clamp_volume(volume)
        pygame.mixer.music.set_volume(self._volume)

    def set_stereo(self, asset_id: str, left: float, right: float) -> None:
        # pygame.mixer.music cannot pan; keep the overall loudness
        self.set_volume(asset_id, (left + right) / 2.0)

    def is_playing(self, asset_id: str) -> bool:
        if self.current_id != asset_id or self._is_paused:
            return False
        return bool(pygame.mixer.music.get_busy())

    def release(self, asset_id: str) -> None:
        """Remove a track from the queue, stopping it first if current."""
        self.stop(asset_id)
        index = self._index_of(asset_id)
        if index is not None:
            self._queue.pop(index)

    def release_all(self) -> None:
        self.reset()

    def reset(self) -> None:
        """Stop playback and empty the queue."""
        if self._current is not None and pygame.mixer.get_init():
            pygame.mixer.music.stop()
        self._current = None
        self._is_paused = False
        self._queue.clear()

    def _index_of(self, asset_id: str) -> Optional[int]:
        for i, track in enumerate(self._queue):
            if track.id == asset_id:
                return i
        return None

    def _skip(self, step: int, volume: Optional[float]) -> Optional[str]:
        if not self._queue:
            return None
        if self._current is None:
            index = 0
        else:
            current = self._index_of(self._current.id)
            index = 0 if current is None else current + step
        if not 0 <= index < len(self._queue):
            return None
        track = self._queue[index]
        self.play(track.id, volume=self._volume if volume is None else volume)
        return track.id
