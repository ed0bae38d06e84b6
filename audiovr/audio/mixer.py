"""
Layer Mixer.

Owns the five fixed audio layers. Each layer has a priority, a volume,
a mixing mode and at most one active asset. Volume changes on a layer
are pushed to its active asset through the volume hook the playback
controller installs.

Ducking is manual: when a ducking layer becomes active, callers lower
the sibling layers themselves with set_layer_volume().
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from audiovr.audio.types import LayerName, MixingMode, clamp_volume
from audiovr.core.errors import UnknownLayerError
from audiovr.core.events import AudioEvent, EventBus

logger = logging.getLogger(__name__)

# Called with (layer_name, asset_id) when a layer's output level changes
VolumeHook = Callable[[str, str], None]


class AudioLayer(BaseModel):
    """
    One mixing channel.

    Attributes:
        name: Layer id
        priority: Lower is mixed first and ducked last
        volume: 0.0 to 1.0, clamped on every write
        enabled: Disabled layers output silence
        mixing_mode: How assets on this layer start and yield
        spatial_processing: Whether positioned playback is spatialized
        active_asset: Asset currently playing on the layer
    """

    model_config = ConfigDict(validate_assignment=True)

    name: LayerName
    priority: int
    volume: float = 1.0
    enabled: bool = True
    mixing_mode: MixingMode = MixingMode.TRIGGERED
    spatial_processing: bool = False
    active_asset: Optional[str] = Field(default=None)

    @field_validator("volume", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_volume(value)


def default_layers() -> list[AudioLayer]:
    """The fixed layer set, in priority order."""
    return [
        AudioLayer(name=LayerName.AMBIENT, priority=1, volume=0.4,
                   mixing_mode=MixingMode.ALWAYS, spatial_processing=True),
        AudioLayer(name=LayerName.EFFECTS, priority=2, volume=0.7,
                   mixing_mode=MixingMode.TRIGGERED, spatial_processing=True),
        AudioLayer(name=LayerName.DIALOGUE, priority=3, volume=0.9,
                   mixing_mode=MixingMode.DUCKING, spatial_processing=False),
        AudioLayer(name=LayerName.MUSIC, priority=4, volume=0.5,
                   mixing_mode=MixingMode.ADAPTIVE, spatial_processing=False),
        AudioLayer(name=LayerName.UI, priority=5, volume=0.8,
                   mixing_mode=MixingMode.TRIGGERED, spatial_processing=False),
    ]


# Dialogue forward, ambience and music pushed back
ACCESSIBILITY_MIX: dict[LayerName, float] = {
    LayerName.DIALOGUE: 1.0,
    LayerName.AMBIENT: 0.2,
    LayerName.MUSIC: 0.3,
    LayerName.UI: 1.0,
}


class LayerMixer:
    """
    Arbitrates volume across the fixed layers.

    Usage:
        mixer = LayerMixer()
        mixer.set_layer_volume("music", 0.3)
        mixer.get_layer_volumes()  # {"ambient": 0.4, ..., "music": 0.3, ...}
    """

    def __init__(self, event_bus: Optional[EventBus] = None, on_volume_change: Optional[VolumeHook] = None):
        self.event_bus = event_bus
        self.on_volume_change = on_volume_change
        self._layers: dict[LayerName, AudioLayer] = {layer.name: layer for layer in default_layers()}
        self._master_volume: float = 1.0
        self._accessibility: bool = False

    # --- Lookup ---

    def layer(self, name: str | LayerName) -> AudioLayer:
        """
        Get a layer by name.

        Raises:
            UnknownLayerError: name is not one of the fixed layers
        """
        try:
            return self._layers[LayerName(name)]
        except ValueError:
            raise UnknownLayerError(str(name)) from None

    def layers(self) -> list[AudioLayer]:
        """All layers, lowest priority number first."""
        return sorted(self._layers.values(), key=lambda layer: layer.priority)

    def layers_with_mode(self, mode: MixingMode) -> list[AudioLayer]:
        return [layer for layer in self.layers() if layer.mixing_mode is mode]

    # --- Volume ---

    @property
    def master_volume(self) -> float:
        return self._master_volume

    def set_master_volume(self, volume: float) -> None:
        """Set master volume and re-apply every active asset."""
        self._master_volume = clamp_volume(volume)
        for layer in self._layers.values():
            self._notify(layer)

    def set_layer_volume(self, name: str | LayerName, volume: float) -> float:
        """
        Set a layer's volume, clamped to [0, 1].

        Returns:
            The stored (clamped) volume

        Raises:
            UnknownLayerError: nothing is changed
        """
        layer = self.layer(name)
        layer.volume = volume
        logger.debug(f"Layer {layer.name.value} volume -> {layer.volume:.2f}")

        if self.event_bus:
            self.event_bus.publish(AudioEvent.LAYER_VOLUME_CHANGED, layer=layer.name.value, volume=layer.volume)
        self._notify(layer)
        return layer.volume

    def set_layer_enabled(self, name: str | LayerName, enabled: bool) -> None:
        """Mute or unmute a layer without losing its volume."""
        layer = self.layer(name)
        layer.enabled = enabled
        self._notify(layer)

    def get_layer_volumes(self) -> dict[str, float]:
        """Snapshot of layer name -> volume."""
        return {layer.name.value: layer.volume for layer in self._layers.values()}

    def effective_volume(self, name: str | LayerName | None, base: float = 1.0) -> float:
        """
        Output level for an asset at base volume on a layer.

        Without a layer only the master volume applies.
        """
        level = clamp_volume(base) * self._master_volume
        if name is None:
            return level
        layer = self.layer(name)
        if not layer.enabled:
            return 0.0
        return level * layer.volume

    # --- Accessibility ---

    @property
    def accessibility_enabled(self) -> bool:
        return self._accessibility

    def apply_accessibility_profile(self, enabled: bool) -> None:
        """
        Switch the accessibility mix on.

        Enabling always yields the same fixed volumes. Disabling only
        clears the flag; previous volumes are not restored.
        """
        self._accessibility = enabled
        if not enabled:
            return
        for name, volume in ACCESSIBILITY_MIX.items():
            self.set_layer_volume(name, volume)

    # --- Active asset slots ---

    def active_asset(self, name: str | LayerName) -> Optional[str]:
        return self.layer(name).active_asset

    def assign(self, name: str | LayerName, asset_id: str) -> Optional[str]:
        """
        Record asset_id as the layer's active asset.

        Returns:
            The asset it displaced, if any. The caller stops it.
        """
        layer = self.layer(name)
        previous = layer.active_asset
        layer.active_asset = asset_id
        return previous if previous != asset_id else None

    def release(self, asset_id: str) -> Optional[LayerName]:
        """Clear the slot holding asset_id. Returns the layer it was on."""
        for layer in self._layers.values():
            if layer.active_asset == asset_id:
                layer.active_asset = None
                return layer.name
        return None

    def layer_of(self, asset_id: str) -> Optional[LayerName]:
        for layer in self._layers.values():
            if layer.active_asset == asset_id:
                return layer.name
        return None

    # --- Settings persistence ---

    def get_settings(self) -> dict:
        return {
            "master": self._master_volume,
            "layers": self.get_layer_volumes(),
            "accessibility": self._accessibility,
        }

    def apply_settings(self, settings: dict) -> None:
        """Apply settings from get_settings(); unknown layers are ignored."""
        self.set_master_volume(settings.get("master", 1.0))
        for name, volume in settings.get("layers", {}).items():
            try:
                self.set_layer_volume(name, volume)
            except UnknownLayerError:
                logger.warning(f"Ignoring volume for unknown layer '{name}'")
        self._accessibility = bool(settings.get("accessibility", self._accessibility))

    def _notify(self, layer: AudioLayer) -> None:
        if layer.active_asset and self.on_volume_change:
            self.on_volume_change(layer.name.value, layer.active_asset)
