"""
Playback Lifecycle Controller.

The single owner of the audio subsystem's mutable state. It builds and
holds the LayerMixer, the SpatialEngine and the AssetCache, and routes
every play/stop/volume request to the player that owns the asset.

Per-asset states:

    unloaded -> loading -> loaded -> playing <-> paused
                                       |  ^        |
                                       v  |        v
                                      stopped <----+

Registry and validation errors (unknown asset, unknown layer) are raised
to the caller. Load and player failures are published as AUDIO_ERROR and
play() simply returns False.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audiovr.audio.cache import AssetCache, Player
from audiovr.audio.mixer import LayerMixer
from audiovr.audio.spatial import SpatialContext, SpatialEngine
from audiovr.audio.types import (
    LoadState,
    PlaybackState,
    PlayerKind,
    Vector3,
    clamp_volume,
)
from audiovr.core.errors import AudioError, PlaybackError
from audiovr.core.events import AudioEvent, EventBus

if TYPE_CHECKING:
    from audiovr.audio.download import AssetDownloader
    from audiovr.audio.registry import AssetRegistry

logger = logging.getLogger(__name__)


# target state -> states it may be entered from
ALLOWED_TRANSITIONS: dict[PlaybackState, set[PlaybackState]] = {
    PlaybackState.PLAYING: {
        PlaybackState.LOADED,
        PlaybackState.STOPPED,
        PlaybackState.PLAYING,
        PlaybackState.PAUSED,
    },
    PlaybackState.PAUSED: {PlaybackState.PLAYING},
    PlaybackState.STOPPED: {PlaybackState.PLAYING, PlaybackState.PAUSED},
}

_LOAD_STATES: dict[LoadState, PlaybackState] = {
    LoadState.UNLOADED: PlaybackState.UNLOADED,
    LoadState.FAILED: PlaybackState.UNLOADED,
    LoadState.LOADING: PlaybackState.LOADING,
    LoadState.LOADED: PlaybackState.LOADED,
}


class PlayOptions(BaseModel):
    """
    Options for a play request.

    Attributes:
        loop: Loop until stopped (loop-type assets always loop)
        volume: Requested asset volume before layer/master/spatial gains
        spatial_position: Emitter position; enables spatial processing
        fade_in_ms: Fade-in duration
        layer: Layer the asset plays on (displaces its previous asset)
    """
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    loop: bool = False
    volume: float = 1.0
    spatial_position: Optional[Vector3] = Field(default=None, alias="spatial")
    fade_in_ms: int = 0
    layer: Optional[str] = None

    @field_validator("volume", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_volume(value)

    @field_validator("spatial_position", mode="before")
    @classmethod
    def _coerce_position(cls, value):
        if value is None or isinstance(value, (Vector3, dict)):
            return value
        return Vector3.of(value)


@dataclass
class LoadToken:
    """Marks one in-flight load; stop() cancels it so the play never starts."""
    asset_id: str
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class PlaybackController:
    """
    Coordinates loading, the two players, layers and spatial sources.

    Usage:
        controller = PlaybackController(registry, SamplePlayer(), StreamPlayer(), event_bus)
        controller.play("ui-click", volume=0.5)
        controller.play("ambient-loop", layer="ambient", spatial_position=(1, 0, -2))
        controller.stop("ambient-loop")
    """

    def __init__(
        self,
        registry: AssetRegistry,
        sample_player: Player,
        stream_player: Player,
        event_bus: Optional[EventBus] = None,
        spatial_context: Optional[SpatialContext] = None,
        spatial_enabled: bool = True,
        downloader: Optional[AssetDownloader] = None,
    ):
        self.registry = registry
        self.event_bus = event_bus
        self.players: dict[PlayerKind, Player] = {
            PlayerKind.SAMPLE: sample_player,
            PlayerKind.STREAM: stream_player,
        }

        self.cache = AssetCache(registry, self.players, event_bus, downloader)
        self.mixer = LayerMixer(event_bus, on_volume_change=self._on_layer_volume)
        self.spatial = SpatialEngine(spatial_context, enabled=spatial_enabled)

        self._states: dict[str, PlaybackState] = {}
        self._volumes: dict[str, float] = {}
        self._tokens: dict[str, LoadToken] = {}

    # --- State queries ---

    def state(self, asset_id: str) -> PlaybackState:
        if asset_id in self._tokens:
            return PlaybackState.LOADING
        state = self._states.get(asset_id)
        if state is not None:
            return state
        return _LOAD_STATES[self.cache.state(asset_id)]

    def is_playing(self, asset_id: str) -> bool:
        return self._states.get(asset_id) is PlaybackState.PLAYING

    def active_assets(self) -> list[str]:
        """Assets currently playing or paused."""
        return [
            asset_id for asset_id, state in self._states.items()
            if state in (PlaybackState.PLAYING, PlaybackState.PAUSED)
        ]

    def requested_volume(self, asset_id: str) -> Optional[float]:
        return self._volumes.get(asset_id)

    # --- Playback ---

    def play(self, asset_id: str, options: Optional[PlayOptions] = None, **kwargs) -> bool:
        """
        Start playing an asset, loading it first if needed.

        Options can be passed as a PlayOptions or as keyword arguments.

        Returns:
            True if playback started

        Raises:
            AssetNotFoundError: asset_id is not registered
            UnknownLayerError: options.layer is not a known layer
        """
        if options is None:
            options = PlayOptions(**kwargs)
        elif kwargs:
            options = PlayOptions(**{**options.model_dump(), **kwargs})

        asset = self.registry.resolve(asset_id)
        layer = self.mixer.layer(options.layer) if options.layer is not None else None

        if not self._ensure_loaded(asset_id):
            return False

        current = self.state(asset_id)
        if current not in ALLOWED_TRANSITIONS[PlaybackState.PLAYING]:
            logger.error(f"Cannot play {asset_id} from state {current.value}")
            return False

        # One active asset per layer: displace the previous one first
        if layer is not None:
            if self.mixer.layer_of(asset_id) not in (None, layer.name):
                self.mixer.release(asset_id)
            previous = self.mixer.active_asset(layer.name)
            if previous and previous != asset_id:
                self.stop(previous)
            self.mixer.assign(layer.name, asset_id)

        player = self.cache.player_for(asset_id)
        kind = self.cache.entry(asset_id).player
        volume = self.mixer.effective_volume(layer.name if layer else None, options.volume)

        try:
            replaced = player.play(
                asset_id,
                volume=volume,
                loop=options.loop or asset.is_looping,
                fade_ms=options.fade_in_ms,
            )
        except PlaybackError as e:
            if layer is not None:
                self.mixer.release(asset_id)
            self._report(asset_id, e)
            return False

        # The stream player only streams one track at a time
        if kind is PlayerKind.STREAM and replaced:
            self._finish(replaced, AudioEvent.PLAYBACK_STOPPED)

        self._transition(asset_id, PlaybackState.PLAYING)
        self._volumes[asset_id] = options.volume

        spatial_allowed = layer is None or layer.spatial_processing
        if options.spatial_position is not None and spatial_allowed:
            directional = bool(asset.spatial and asset.spatial.directional)
            if self.spatial.update_source_position(asset_id, options.spatial_position, directional):
                self._apply_volume(asset_id)

        logger.info(f"Playing audio: {asset_id}")
        self._publish(
            AudioEvent.PLAYBACK_STARTED,
            asset_id=asset_id,
            layer=layer.name.value if layer else None,
            player=kind.value,
        )
        return True

    def stop(self, asset_id: str, fade_out_ms: int = 0) -> bool:
        """
        Stop an asset. Stopping something that is not playing is a no-op.

        Stopping an asset whose load is still running cancels the pending
        play.

        Returns:
            True if anything was stopped or cancelled
        """
        token = self._tokens.get(asset_id)
        if token is not None:
            token.cancel()
            logger.info(f"Cancelled pending playback of {asset_id}")
            return True

        if self._states.get(asset_id) not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            return False

        player = self.cache.player_for(asset_id)
        try:
            if player is not None:
                player.stop(asset_id, fade_ms=fade_out_ms)
        except PlaybackError as e:
            self._report(asset_id, e)

        self._finish(asset_id, AudioEvent.PLAYBACK_STOPPED)
        logger.info(f"Stopped audio: {asset_id}")
        return True

    def pause(self, asset_id: str) -> bool:
        if self._states.get(asset_id) is not PlaybackState.PLAYING:
            return False
        self.cache.player_for(asset_id).pause(asset_id)
        self._transition(asset_id, PlaybackState.PAUSED)
        return True

    def resume(self, asset_id: str) -> bool:
        if self._states.get(asset_id) is not PlaybackState.PAUSED:
            return False
        self.cache.player_for(asset_id).resume(asset_id)
        self._transition(asset_id, PlaybackState.PLAYING)
        return True

    def set_volume(self, asset_id: str, volume: float) -> None:
        """
        Change the requested volume of an asset.

        Applied immediately when the asset is playing or paused, and
        remembered for the next play otherwise.
        """
        self._volumes[asset_id] = clamp_volume(volume)
        if asset_id in self.active_assets():
            self._apply_volume(asset_id)

    def update_source_position(self, asset_id: str, position: Vector3 | tuple | dict) -> bool:
        """Move a playing asset's spatial source and re-apply its gains."""
        if asset_id not in self.active_assets():
            return False
        if self.spatial.update_source_position(asset_id, position) is None:
            return False
        self._apply_volume(asset_id)
        return True

    def refresh_spatial(self) -> None:
        """Re-apply gains of every spatialized asset (after a listener move)."""
        for source in self.spatial.sources():
            if source.asset_id in self.active_assets():
                self._apply_volume(source.asset_id)

    def update(self) -> list[str]:
        """
        Poll the players and retire assets that ended on their own.

        Returns:
            Ids of assets that finished since the last update
        """
        finished = []
        for asset_id in list(self._states):
            if self._states[asset_id] is not PlaybackState.PLAYING:
                continue
            player = self.cache.player_for(asset_id)
            if player is None or not player.is_playing(asset_id):
                finished.append(asset_id)
                self._finish(asset_id, AudioEvent.PLAYBACK_FINISHED)
        return finished

    def release(self, asset_id: str) -> None:
        """Stop an asset and free its loaded resource."""
        self.stop(asset_id)
        self.cache.evict(asset_id)
        self._states.pop(asset_id, None)
        self._volumes.pop(asset_id, None)

    def cleanup(self) -> None:
        """Stop everything and release every player resource."""
        for asset_id in self.active_assets():
            self.stop(asset_id)
        for token in self._tokens.values():
            token.cancel()
        self.cache.clear()
        for player in self.players.values():
            player.release_all()
        self.spatial.clear()
        self._states.clear()
        self._volumes.clear()

    # --- Internals ---

    def _ensure_loaded(self, asset_id: str) -> bool:
        if self.cache.is_loaded(asset_id):
            return True

        if self.cache.state(asset_id) is LoadState.LOADING or asset_id in self._tokens:
            logger.debug(f"{asset_id} is already loading")
            return False

        token = LoadToken(asset_id)
        self._tokens[asset_id] = token
        try:
            loaded = self.cache.load(asset_id)
        finally:
            self._tokens.pop(asset_id, None)

        if not loaded:
            return False
        if token.cancelled:
            logger.info(f"Playback of {asset_id} cancelled while loading")
            return False
        return True

    def _transition(self, asset_id: str, target: PlaybackState) -> None:
        current = self.state(asset_id)
        if current not in ALLOWED_TRANSITIONS[target]:
            raise RuntimeError(f"Invalid playback transition for {asset_id}: {current.value} -> {target.value}")
        self._states[asset_id] = target

    def _finish(self, asset_id: str, event_type: AudioEvent) -> None:
        if self._states.get(asset_id) not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            return
        self._transition(asset_id, PlaybackState.STOPPED)
        self.spatial.remove_source(asset_id)
        layer = self.mixer.release(asset_id)
        self._publish(event_type, asset_id=asset_id, layer=layer.value if layer else None)

    def _on_layer_volume(self, layer_name: str, asset_id: str) -> None:
        if asset_id in self.active_assets():
            self._apply_volume(asset_id)

    def _apply_volume(self, asset_id: str) -> None:
        player = self.cache.player_for(asset_id)
        if player is None:
            return

        volume = self.mixer.effective_volume(self.mixer.layer_of(asset_id), self._volumes.get(asset_id, 1.0))
        gains = self.spatial.gains_for(asset_id)
        try:
            if gains is not None:
                player.set_stereo(asset_id, volume * gains.left, volume * gains.right)
            else:
                player.set_volume(asset_id, volume)
        except PlaybackError as e:
            self._report(asset_id, e)

    def _report(self, asset_id: str, error: AudioError) -> None:
        logger.error(f"Failed to play audio {asset_id}: {error}")
        self._publish(AudioEvent.AUDIO_ERROR, asset_id=asset_id, error=error)

    def _publish(self, event_type: AudioEvent, **data) -> None:
        if self.event_bus:
            self.event_bus.publish(event_type, **data)
