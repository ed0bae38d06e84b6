"""
Audio asset metadata.

Assets are pure data: the registry stores them, the cache loads them and
the playback controller plays them. Validation happens here so that a
malformed catalog entry never reaches a player.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from audiovr.audio.types import (
    AssetCategory,
    AudioFormat,
    BitrateTier,
    PlaybackType,
    PlayerKind,
    PLAYER_FOR_CATEGORY,
    Vector3,
)


class SpatialDescriptor(BaseModel):
    """
    Where an asset sits in the scene.

    Attributes:
        position: Default emitter position
        max_distance: Informational; sources use the engine-wide constant
        directional: Whether the emitter uses the directional cone
    """
    model_config = ConfigDict(frozen=True)

    position: Vector3 = Field(default_factory=Vector3)
    max_distance: Optional[float] = Field(default=None, gt=0)
    directional: bool = False


class AssetMetadata(BaseModel):
    """Free-form descriptive data used by scenes and accessibility tools."""
    model_config = ConfigDict(frozen=True)

    character: Optional[str] = None
    location: Optional[str] = None
    mood: Optional[str] = None
    language: Optional[str] = None
    accessibility: Optional[str] = None


class AudioAsset(BaseModel):
    """
    A playable audio asset.

    Frozen: category (and so the player that handles it) cannot change
    for the lifetime of an instance. Use model_copy(update=...) to derive
    a modified asset and re-register it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    id: str = Field(min_length=1)
    name: str = ""
    category: AssetCategory
    playback_type: PlaybackType = Field(default=PlaybackType.SAMPLE, alias="type")
    url: str = ""
    local_path: Optional[str] = None
    format: AudioFormat = AudioFormat.MP3
    quality: BitrateTier = BitrateTier.KBPS_128
    duration: Optional[float] = Field(default=None, ge=0)
    size: Optional[int] = Field(default=None, ge=0)
    spatial: Optional[SpatialDescriptor] = None
    metadata: Optional[AssetMetadata] = None

    @model_validator(mode="after")
    def _require_source(self) -> AudioAsset:
        if not self.url and not self.local_path:
            raise ValueError(f"asset '{self.id}' needs a url or local_path")
        return self

    @property
    def player_kind(self) -> PlayerKind:
        return PLAYER_FOR_CATEGORY[self.category]

    @property
    def is_looping(self) -> bool:
        return self.playback_type is PlaybackType.LOOP

    @property
    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class ResourceDescriptor:
    """What a loader needs to fetch and hand an asset to a player."""
    asset_id: str
    location: str
    player: PlayerKind
    loop: bool = False
    remote: bool = False
