"""
Audio Service - the inbound boundary of the audio subsystem.

Starts the pygame mixer, builds the players and the playback controller
from an AudioServiceConfig, and exposes the operations scenes call:
play/stop, layer volumes, preloading, listener and environment updates,
accessibility and the load/error/cache callbacks.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import pygame

from audiovr.audio.assets import AudioAsset
from audiovr.audio.download import AssetDownloader
from audiovr.audio.playback import PlaybackController, PlayOptions
from audiovr.audio.registry import AssetRegistry
from audiovr.audio.sample import SamplePlayer
from audiovr.audio.spatial import MixerSpatialContext, ReverbProfile, SpatialContext
from audiovr.audio.stream import StreamPlayer
from audiovr.audio.types import (
    AssetCategory,
    BitrateTier,
    EnvironmentType,
    PlaybackType,
    Vector3,
)
from audiovr.core.config import AudioServiceConfig
from audiovr.core.errors import InitializationError, UnknownEnvironmentError
from audiovr.core.events import AudioEvent, Event, EventBus

logger = logging.getLogger(__name__)

LoadCallback = Callable[[str], None]
ErrorCallback = Callable[[str, Exception], None]
CacheCallback = Callable[[float], None]


def essential_assets(cdn_base_url: str) -> list[AudioAsset]:
    """Assets every session needs before the first scene starts."""
    base = cdn_base_url.rstrip("/")

    def ui_sample(asset_id: str, name: str, path: str) -> AudioAsset:
        return AudioAsset(
            id=asset_id,
            name=name,
            category=AssetCategory.UI,
            playback_type=PlaybackType.SAMPLE,
            url=f"{base}/{path}",
            quality=BitrateTier.KBPS_128,
        )

    return [
        ui_sample("ui-click", "UI Click", "ui/click.mp3"),
        ui_sample("ui-success", "Success Sound", "ui/success.mp3"),
        ui_sample("ui-error", "Error Sound", "ui/error.mp3"),
        ui_sample("voice-listening", "Voice Listening", "voice/listening.mp3"),
        AudioAsset(
            id="ambient-silence",
            name="Room Tone",
            category=AssetCategory.AMBIENT,
            playback_type=PlaybackType.LOOP,
            url=f"{base}/ambient/room-tone.mp3",
            quality=BitrateTier.KBPS_64,
        ),
    ]


class AudioService:
    """
    Facade over the audio subsystem.

    Usage:
        audio = AudioService(load_config("audio.json"))
        audio.initialize()
        audio.set_event_callbacks(on_audio_error=show_toast)
        audio.play("ui-click", volume=0.5)
        audio.play("ambient-loop", layer="ambient", spatial=(1, 0, -2))

        # Once per frame
        audio.update()
    """

    def __init__(
        self,
        config: Optional[AudioServiceConfig] = None,
        event_bus: Optional[EventBus] = None,
        sample_player: Optional[SamplePlayer] = None,
        stream_player: Optional[StreamPlayer] = None,
        spatial_context: Optional[SpatialContext] = None,
        downloader: Optional[AssetDownloader] = None,
    ):
        self.config = config or AudioServiceConfig()
        self.event_bus = event_bus or EventBus()
        self.registry = AssetRegistry(self.config.cdn_base_url)

        if downloader is None and self.config.cache_enabled:
            downloader = AssetDownloader(
                self.config.cache_dir,
                max_cache_bytes=self.config.max_cache_bytes,
                timeout=self.config.download_timeout,
                offline=self.config.offline_mode,
            )
        self.downloader = downloader

        spatial_cfg = self.config.spatial_audio
        self.controller = PlaybackController(
            self.registry,
            sample_player or SamplePlayer(),
            stream_player or StreamPlayer(),
            event_bus=self.event_bus,
            spatial_context=spatial_context or MixerSpatialContext(),
            spatial_enabled=spatial_cfg.enabled,
            downloader=downloader,
        )
        self.controller.spatial.set_reverb_enabled(spatial_cfg.reverb_enabled)
        self.controller.spatial.set_occlusion_enabled(spatial_cfg.occlusion_enabled)

        self._callbacks: dict[AudioEvent, Callable[[Event], None]] = {}
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def mixer(self):
        return self.controller.mixer

    @property
    def spatial(self):
        return self.controller.spatial

    @property
    def cache(self):
        return self.controller.cache

    # --- Lifecycle ---

    def initialize(self) -> None:
        """
        Start the mixer and apply the configured session state.

        Raises:
            InitializationError: the pygame mixer could not be started
        """
        if self._initialized:
            return

        mixer_cfg = self.config.mixer
        if not pygame.mixer.get_init():
            try:
                pygame.mixer.init(
                    frequency=mixer_cfg.frequency,
                    size=mixer_cfg.size,
                    channels=mixer_cfg.channels,
                    buffer=mixer_cfg.buffer,
                )
            except pygame.error as e:
                error = InitializationError(f"Failed to initialize audio system: {e}")
                logger.error(str(error))
                self.event_bus.publish(AudioEvent.AUDIO_ERROR, asset_id=None, error=error)
                raise error from e
        pygame.mixer.set_num_channels(mixer_cfg.num_channels)
        self._initialized = True
        logger.info("Audio system initialized.")

        spatial_cfg = self.config.spatial_audio
        self.spatial.set_environment(spatial_cfg.environment_type)
        if self.spatial.active:
            self.spatial.update_listener(spatial_cfg.listener_position, spatial_cfg.listener_orientation)
        else:
            logger.warning("Spatial audio not available, using stereo mix")

        if self.config.accessibility_mode:
            self.mixer.apply_accessibility_profile(True)

        if self.config.preload_essentials:
            count = self.preload(essential_assets(self.config.cdn_base_url))
            logger.info(f"Preloaded {count} essential audio assets")

    def update(self) -> list[str]:
        """Retire finished assets. Call once per frame."""
        return self.controller.update()

    def cleanup(self) -> None:
        """Stop all playback and free every loaded asset."""
        self.controller.cleanup()
        if self.spatial.context is not None:
            self.spatial.context.close()
        logger.info("Audio service cleaned up")

    def quit(self) -> None:
        """Clean up and shut the mixer down."""
        self.cleanup()
        pygame.mixer.quit()
        self._initialized = False

    # --- Assets ---

    def register_asset(self, asset: AudioAsset | dict[str, Any]) -> AudioAsset:
        return self.registry.register_asset(asset)

    def load_catalog(self, path: Path | str) -> int:
        return self.registry.load_catalog(path)

    def preload(self, assets: list[AudioAsset | dict[str, Any]]) -> int:
        """Register and load assets. Failures are only reported through callbacks."""
        return self.controller.cache.preload(assets)

    def is_loaded(self, asset_id: str) -> bool:
        return self.controller.cache.is_loaded(asset_id)

    # --- Playback ---

    def play(self, asset_id: str, options: Optional[PlayOptions] = None, **kwargs) -> bool:
        return self.controller.play(asset_id, options, **kwargs)

    def stop(self, asset_id: str, fade_out_ms: int = 0) -> bool:
        return self.controller.stop(asset_id, fade_out_ms)

    def pause(self, asset_id: str) -> bool:
        return self.controller.pause(asset_id)

    def resume(self, asset_id: str) -> bool:
        return self.controller.resume(asset_id)

    def set_volume(self, asset_id: str, volume: float) -> None:
        self.controller.set_volume(asset_id, volume)

    def update_source_position(self, asset_id: str, position: Vector3 | tuple | dict) -> bool:
        return self.controller.update_source_position(asset_id, position)

    # --- Mixing ---

    def set_layer_volume(self, layer: str, volume: float) -> float:
        return self.mixer.set_layer_volume(layer, volume)

    def get_layer_volumes(self) -> dict[str, float]:
        return self.mixer.get_layer_volumes()

    def set_master_volume(self, volume: float) -> None:
        self.mixer.set_master_volume(volume)

    def set_accessibility_mode(self, enabled: bool) -> None:
        """Enable the dialogue-forward mix. Disabling keeps the current volumes."""
        self.config.accessibility_mode = enabled
        self.mixer.apply_accessibility_profile(enabled)

    # --- Spatial ---

    def update_listener(self, position: Vector3 | tuple | dict, orientation: Vector3 | tuple | dict) -> bool:
        """Move the listener and re-apply the gains of every positioned asset."""
        if not self.spatial.update_listener(position, orientation):
            return False
        self.controller.refresh_spatial()
        return True

    def set_environment(self, environment: str | EnvironmentType) -> ReverbProfile:
        """
        Switch the acoustic environment.

        Raises:
            UnknownEnvironmentError: no reverb profile for environment
        """
        try:
            profile = self.spatial.set_environment(environment)
        except UnknownEnvironmentError:
            logger.error(f"Unknown audio environment: {environment}")
            raise

        logger.info(f"Audio environment set to {self.spatial.environment.value}")
        self.event_bus.publish(
            AudioEvent.ENVIRONMENT_CHANGED,
            environment=self.spatial.environment.value,
            reverb=profile,
        )
        return profile

    # --- Callbacks ---

    def set_event_callbacks(
        self,
        on_audio_load: Optional[LoadCallback] = None,
        on_audio_error: Optional[ErrorCallback] = None,
        on_cache_update: Optional[CacheCallback] = None,
    ) -> None:
        """
        Replace the load, error and cache-progress callbacks.

        on_audio_load(asset_id), on_audio_error(asset_id, error) and
        on_cache_update(progress). Passing None removes a callback.
        """
        for event_type, handler in self._callbacks.items():
            self.event_bus.unsubscribe(event_type, handler)
        self._callbacks.clear()

        if on_audio_load:
            self._callbacks[AudioEvent.AUDIO_LOADED] = lambda e: on_audio_load(e["asset_id"])
        if on_audio_error:
            self._callbacks[AudioEvent.AUDIO_ERROR] = lambda e: on_audio_error(e.get("asset_id"), e["error"])
        if on_cache_update:
            self._callbacks[AudioEvent.CACHE_UPDATED] = lambda e: on_cache_update(e["progress"])

        for event_type, handler in self._callbacks.items():
            self.event_bus.subscribe(event_type, handler, weak=False)

    # --- Settings persistence ---

    def get_settings(self) -> dict[str, Any]:
        settings = self.mixer.get_settings()
        settings["environment"] = self.spatial.environment.value
        return settings

    def apply_settings(self, settings: dict[str, Any]) -> None:
        self.mixer.apply_settings(settings)
        environment = settings.get("environment")
        if environment:
            try:
                self.set_environment(environment)
            except UnknownEnvironmentError:
                logger.warning(f"Ignoring unknown environment in settings: {environment}")

    def save_settings(self, path: Path | str) -> bool:
        """Save volume settings to JSON."""
        try:
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.get_settings(), f, indent=2)
            return True
        except OSError as e:
            logger.error(f"Error saving audio settings: {e}")
            return False

    def load_settings(self, path: Path | str) -> bool:
        """Load volume settings from JSON."""
        settings_file = Path(path)
        if not settings_file.exists():
            return False

        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                settings = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading audio settings: {e}")
            return False

        self.apply_settings(settings)
        return True
