"""
Shared audio enumerations and value types.
"""

from __future__ import annotations

import math
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict


class AssetCategory(str, Enum):
    """What an asset is used for; decides which player handles it."""
    DIALOGUE = "dialogue"
    AMBIENT = "ambient"
    EFFECTS = "effects"
    MUSIC = "music"
    UI = "ui"


class PlaybackType(str, Enum):
    STREAM = "stream"
    SAMPLE = "sample"
    LOOP = "loop"


class AudioFormat(str, Enum):
    MP3 = "mp3"
    OGG = "ogg"
    WAV = "wav"
    AAC = "aac"


class BitrateTier(IntEnum):
    """Encoding bitrate in kbps."""
    KBPS_64 = 64
    KBPS_128 = 128
    KBPS_192 = 192
    KBPS_256 = 256
    KBPS_320 = 320


class PlayerKind(str, Enum):
    """Low-latency sample player vs. streaming player."""
    SAMPLE = "sample"
    STREAM = "stream"


# Short sounds go through the sample player, long-form audio is streamed.
PLAYER_FOR_CATEGORY: dict[AssetCategory, PlayerKind] = {
    AssetCategory.UI: PlayerKind.SAMPLE,
    AssetCategory.EFFECTS: PlayerKind.SAMPLE,
    AssetCategory.AMBIENT: PlayerKind.STREAM,
    AssetCategory.DIALOGUE: PlayerKind.STREAM,
    AssetCategory.MUSIC: PlayerKind.STREAM,
}


class LayerName(str, Enum):
    AMBIENT = "ambient"
    EFFECTS = "effects"
    DIALOGUE = "dialogue"
    MUSIC = "music"
    UI = "ui"


class MixingMode(str, Enum):
    """
    How a layer's asset starts and yields.

    always:    plays continuously once triggered until stopped
    triggered: one-shot, ends with the asset
    ducking:   callers lower sibling layers while it is active
    adaptive:  volume driven by external game-state logic
    """
    ALWAYS = "always"
    TRIGGERED = "triggered"
    DUCKING = "ducking"
    ADAPTIVE = "adaptive"


class LoadState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class PlaybackState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"


class EnvironmentType(str, Enum):
    TRAIN = "train"
    MANSION = "mansion"
    OUTDOOR = "outdoor"
    SMALL_ROOM = "small-room"
    SPACE_STATION = "space-station"


class Vector3(BaseModel):
    """
    Immutable 3D vector in meters.

    x: left (-) / right (+)
    y: down (-) / up (+)
    z: forward (-) / behind (+)
    """

    model_config = ConfigDict(frozen=True)

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def of(cls, value: Vector3 | tuple | list | dict) -> Vector3:
        """Coerce a tuple, list or mapping into a Vector3."""
        if isinstance(value, Vector3):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        x, y, z = value
        return cls(x=x, y=y, z=z)

    @property
    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def distance_to(self, other: Vector3) -> float:
        return (other - self).length

    def normalized(self) -> Vector3:
        length = self.length
        if length == 0:
            return Vector3()
        return Vector3(x=self.x / length, y=self.y / length, z=self.z / length)

    def dot(self, other: Vector3) -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: Vector3) -> Vector3:
        return Vector3(
            x=self.y * other.z - self.z * other.y,
            y=self.z * other.x - self.x * other.z,
            z=self.x * other.y - self.y * other.x,
        )

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def __sub__(self, other: Vector3) -> Vector3:
        return Vector3(x=self.x - other.x, y=self.y - other.y, z=self.z - other.z)

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(x=self.x + other.x, y=self.y + other.y, z=self.z + other.z)


def clamp_volume(volume: float) -> float:
    """Clamp a volume to [0.0, 1.0]."""
    return max(0.0, min(1.0, float(volume)))
