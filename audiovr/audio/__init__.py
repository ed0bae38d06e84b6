"""
Audio module.

Exports:
- AudioAsset, AssetRegistry: Asset metadata and lookup
- AssetCache, AssetDownloader: Loading and the download cache
- SamplePlayer, StreamPlayer: pygame-backed players
- LayerMixer, AudioLayer: Layer mixing
- SpatialEngine, SpatialContext, MixerSpatialContext: 3D positioning
- PlaybackController, PlayOptions: Playback lifecycle
"""

from audiovr.audio.types import (
    AssetCategory,
    PlaybackType,
    AudioFormat,
    BitrateTier,
    LayerName,
    MixingMode,
    EnvironmentType,
    PlaybackState,
    LoadState,
    Vector3,
)
from audiovr.audio.assets import AudioAsset, SpatialDescriptor, AssetMetadata
from audiovr.audio.registry import AssetRegistry
from audiovr.audio.download import AssetDownloader
from audiovr.audio.cache import AssetCache
from audiovr.audio.sample import SamplePlayer
from audiovr.audio.stream import StreamPlayer
from audiovr.audio.mixer import AudioLayer, LayerMixer
from audiovr.audio.spatial import SpatialEngine, SpatialContext, MixerSpatialContext
from audiovr.audio.playback import PlaybackController, PlayOptions

__all__ = [
    "AssetCategory",
    "PlaybackType",
    "AudioFormat",
    "BitrateTier",
    "LayerName",
    "MixingMode",
    "EnvironmentType",
    "PlaybackState",
    "LoadState",
    "Vector3",
    "AudioAsset",
    "SpatialDescriptor",
    "AssetMetadata",
    "AssetRegistry",
    "AssetDownloader",
    "AssetCache",
    "SamplePlayer",
    "StreamPlayer",
    "AudioLayer",
    "LayerMixer",
    "SpatialEngine",
    "SpatialContext",
    "MixerSpatialContext",
    "PlaybackController",
    "PlayOptions",
]
