"""
Cache / preload manager.

Tracks a load state per asset id so the same asset is never loaded
twice at once, and preloads batches of assets without letting one
failure stop the rest.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable, Optional, Protocol

from pydantic import BaseModel

from audiovr.audio.assets import AudioAsset
from audiovr.audio.types import LoadState, PlayerKind
from audiovr.core.errors import AudioError, PlaybackError
from audiovr.core.events import AudioEvent, EventBus

if TYPE_CHECKING:
    from audiovr.audio.download import AssetDownloader
    from audiovr.audio.registry import AssetRegistry

logger = logging.getLogger(__name__)


class Player(Protocol):
    """What the cache and controller need from a sample or stream player."""

    def is_loaded(self, asset_id: str) -> bool: ...
    def load(self, asset_id: str, path: str) -> None: ...
    def play(self, asset_id: str, volume: float = 1.0, loop: bool = False, fade_ms: int = 0): ...
    def stop(self, asset_id: str, fade_ms: int = 0) -> None: ...
    def pause(self, asset_id: str) -> None: ...
    def resume(self, asset_id: str) -> None: ...
    def set_volume(self, asset_id: str, volume: float) -> None: ...
    def set_stereo(self, asset_id: str, left: float, right: float) -> None: ...
    def is_playing(self, asset_id: str) -> bool: ...
    def release(self, asset_id: str) -> None: ...
    def release_all(self) -> None: ...


class CacheEntry(BaseModel):
    """
    Load state of one asset.

    player is pinned when loading starts so an asset is always handled
    by the same player while it is cached.
    """
    asset_id: str
    state: LoadState = LoadState.UNLOADED
    player: Optional[PlayerKind] = None
    location: Optional[str] = None
    error: Optional[str] = None


class AssetCache:
    """
    Loads assets into their players and remembers what is loaded.

    Publishes:
        AUDIO_LOADED  (asset_id)
        AUDIO_ERROR   (asset_id, error)
        CACHE_UPDATED (progress, asset_id, source="preload" | "download")
    """

    def __init__(
        self,
        registry: AssetRegistry,
        players: dict[PlayerKind, Player],
        event_bus: Optional[EventBus] = None,
        downloader: Optional[AssetDownloader] = None,
    ):
        self.registry = registry
        self.players = players
        self.event_bus = event_bus
        self.downloader = downloader
        self._entries: dict[str, CacheEntry] = {}

    def entry(self, asset_id: str) -> Optional[CacheEntry]:
        return self._entries.get(asset_id)

    def state(self, asset_id: str) -> LoadState:
        entry = self._entries.get(asset_id)
        return entry.state if entry else LoadState.UNLOADED

    def is_loaded(self, asset_id: str) -> bool:
        return self.state(asset_id) is LoadState.LOADED

    def player_for(self, asset_id: str) -> Optional[Player]:
        """The player that holds a loaded asset."""
        entry = self._entries.get(asset_id)
        if entry is None or entry.player is None:
            return None
        return self.players[entry.player]

    def entries(self) -> dict[str, CacheEntry]:
        return {asset_id: entry.model_copy() for asset_id, entry in self._entries.items()}

    def load(self, asset_id: str) -> bool:
        """
        Load one registered asset.

        A load that is already running or finished is a no-op. Failures
        are published as AUDIO_ERROR and reported by the return value.

        Returns:
            True if the asset is loaded when the call returns
        """
        state = self.state(asset_id)
        if state is LoadState.LOADED:
            return True
        if state is LoadState.LOADING:
            logger.debug(f"Load already in progress for {asset_id}")
            return False

        entry = CacheEntry(asset_id=asset_id, state=LoadState.LOADING)
        self._entries[asset_id] = entry

        try:
            asset = self.registry.resolve(asset_id)
            descriptor = self.registry.descriptor(asset_id)
            entry.player = descriptor.player

            location = descriptor.location
            if descriptor.remote:
                location = str(self._download(asset_id, location))

            player = self.players[descriptor.player]
            if descriptor.player is PlayerKind.STREAM:
                player.load(asset_id, location, title=asset.display_name, duration=asset.duration)
            else:
                player.load(asset_id, location)

        except AudioError as e:
            entry.state = LoadState.FAILED
            entry.error = str(e)
            logger.error(f"Failed to load audio asset {asset_id}: {e}")
            self._publish(AudioEvent.AUDIO_ERROR, asset_id=asset_id, error=e)
            return False

        entry.location = location
        entry.state = LoadState.LOADED
        logger.info(f"Loaded audio asset: {asset.display_name}")
        self._publish(AudioEvent.AUDIO_LOADED, asset_id=asset_id)
        return True

    def preload(self, assets: Iterable[AudioAsset]) -> int:
        """
        Register and load a batch of assets.

        Entries already loading or loaded are skipped, failed ones are
        retried. Never raises: each failure is published on its own.

        Returns:
            Number of assets newly loaded by this call
        """
        batch = list(assets)
        loaded = 0

        for index, asset in enumerate(batch, start=1):
            asset_id = (asset.get("id") if isinstance(asset, dict) else getattr(asset, "id", None)) or "?"
            try:
                asset_id = self.registry.register_asset(asset).id
            except AudioError as e:
                logger.error(f"Skipping invalid preload asset {asset_id}: {e}")
                self._publish(AudioEvent.AUDIO_ERROR, asset_id=asset_id, error=e)
            else:
                if self.state(asset_id) in (LoadState.UNLOADED, LoadState.FAILED):
                    if self.load(asset_id):
                        loaded += 1

            self._publish(
                AudioEvent.CACHE_UPDATED,
                progress=index / len(batch),
                asset_id=asset_id,
                source="preload",
            )

        return loaded

    def evict(self, asset_id: str) -> None:
        """Free the player resource and forget the entry."""
        entry = self._entries.pop(asset_id, None)
        if entry is None or entry.player is None:
            return
        if entry.state is LoadState.LOADED:
            self.players[entry.player].release(asset_id)

    def clear(self) -> None:
        for asset_id in list(self._entries):
            self.evict(asset_id)

    def _download(self, asset_id: str, url: str):
        if self.downloader is None:
            raise PlaybackError(asset_id, f"Remote asset and no download cache configured: {url}")
        return self.downloader.fetch(asset_id, url, on_progress=self._on_download_progress)

    def _on_download_progress(self, asset_id: str, progress: float) -> None:
        self._publish(AudioEvent.CACHE_UPDATED, progress=progress, asset_id=asset_id, source="download")

    def _publish(self, event_type: AudioEvent, **data) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)
