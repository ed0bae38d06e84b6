"""
Spatial Positioning Engine.

Keeps a 3D position for every positioned sound source and a single
listener, and turns them into per-ear gains:

    gain  = distance attenuation * cone attenuation
    left  = gain * left balance
    right = gain * right balance

Spatial audio is an enhancement: when it is disabled or no spatial
context is available, updates are logged and ignored.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

import pygame
from pydantic import BaseModel, ConfigDict, Field

from audiovr.audio.types import EnvironmentType, Vector3
from audiovr.core.errors import UnknownEnvironmentError

logger = logging.getLogger(__name__)

# Fixed for every source; not configurable per asset.
DISTANCE_MODEL = "exponential"
REF_DISTANCE = 1.0
MAX_DISTANCE = 50.0
ROLLOFF_FACTOR = 1.5
CONE_INNER_ANGLE = 30.0
CONE_OUTER_ANGLE = 90.0
CONE_OUTER_GAIN = 0.3

UP = Vector3(x=0.0, y=1.0, z=0.0)
FORWARD = Vector3(x=0.0, y=0.0, z=-1.0)


class ReverbProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    room_size: float
    decay: float
    wet: float


REVERB_PROFILES: dict[EnvironmentType, ReverbProfile] = {
    EnvironmentType.TRAIN: ReverbProfile(room_size=0.3, decay=1.2, wet=0.2),
    EnvironmentType.MANSION: ReverbProfile(room_size=0.8, decay=2.5, wet=0.4),
    EnvironmentType.OUTDOOR: ReverbProfile(room_size=1.0, decay=0.8, wet=0.1),
    EnvironmentType.SMALL_ROOM: ReverbProfile(room_size=0.2, decay=0.9, wet=0.3),
    EnvironmentType.SPACE_STATION: ReverbProfile(room_size=0.6, decay=1.8, wet=0.5),
}


class SpatialGains(BaseModel):
    """Result of positioning one source relative to the listener."""
    model_config = ConfigDict(frozen=True)

    gain: float = 1.0
    pan: float = 0.0
    left: float = 1.0
    right: float = 1.0


class SpatialSource(BaseModel):
    """
    A positioned emitter, owned by the SpatialEngine.

    Cone and distance parameters take the engine constants.
    """
    model_config = ConfigDict(validate_assignment=True)

    asset_id: str
    position: Vector3 = Field(default_factory=Vector3)
    orientation: Vector3 = FORWARD
    directional: bool = False
    cone_inner_angle: float = CONE_INNER_ANGLE
    cone_outer_angle: float = CONE_OUTER_ANGLE
    cone_outer_gain: float = CONE_OUTER_GAIN
    distance_model: str = DISTANCE_MODEL
    ref_distance: float = REF_DISTANCE
    max_distance: float = MAX_DISTANCE
    rolloff_factor: float = ROLLOFF_FACTOR
    gains: SpatialGains = Field(default_factory=SpatialGains)


class ListenerState(BaseModel):
    """The single listener. Replaced as a whole, never edited in place."""
    model_config = ConfigDict(frozen=True)

    position: Vector3 = Field(default_factory=Vector3)
    orientation: Vector3 = FORWARD
    environment: EnvironmentType = EnvironmentType.TRAIN
    reverb_enabled: bool = True
    occlusion_enabled: bool = False


class SpatialContext:
    """
    Platform hook for positional audio.

    The engine does its own math; a context only has to say whether
    spatial output is possible and may mirror the results into a real
    3D audio API. This base class is an unavailable context.
    """

    @property
    def available(self) -> bool:
        return False

    def update_source(self, source: SpatialSource) -> None:
        pass

    def remove_source(self, asset_id: str) -> None:
        pass

    def update_listener(self, listener: ListenerState) -> None:
        pass

    def apply_reverb(self, profile: ReverbProfile) -> None:
        pass

    def close(self) -> None:
        pass


class MixerSpatialContext(SpatialContext):
    """
    Stereo panning on the pygame mixer.

    Available whenever the mixer is initialized. pygame has no reverb
    stage, so the profile is only recorded.
    """

    def __init__(self):
        self.reverb: Optional[ReverbProfile] = None

    @property
    def available(self) -> bool:
        return bool(pygame.mixer.get_init())

    def apply_reverb(self, profile: ReverbProfile) -> None:
        self.reverb = profile
        logger.info(
            f"Reverb settings: room_size={profile.room_size} decay={profile.decay} wet={profile.wet}"
        )

    def close(self) -> None:
        self.reverb = None


class SpatialEngine:
    """
    Owns every SpatialSource (indexed by asset id) and the ListenerState.

    Usage:
        spatial = SpatialEngine(MixerSpatialContext())
        spatial.update_listener(Vector3(x=0, y=0, z=0), Vector3(x=0, y=0, z=-1))
        source = spatial.update_source_position("ambient-loop", Vector3(x=1, y=0, z=-2))
        source.gains.left, source.gains.right
    """

    def __init__(
        self,
        context: Optional[SpatialContext] = None,
        enabled: bool = True,
        listener: Optional[ListenerState] = None,
    ):
        self.context = context
        self.enabled = enabled
        self._listener = listener or ListenerState()
        self._reverb = REVERB_PROFILES[self._listener.environment]
        self._sources: dict[str, SpatialSource] = {}

    @property
    def active(self) -> bool:
        """Whether positional updates currently take effect."""
        return self.enabled and self.context is not None and self.context.available

    @property
    def listener(self) -> ListenerState:
        return self._listener

    @property
    def reverb(self) -> ReverbProfile:
        return self._reverb

    @property
    def environment(self) -> EnvironmentType:
        return self._listener.environment

    def source(self, asset_id: str) -> Optional[SpatialSource]:
        return self._sources.get(asset_id)

    def sources(self) -> list[SpatialSource]:
        return list(self._sources.values())

    def gains_for(self, asset_id: str) -> Optional[SpatialGains]:
        source = self._sources.get(asset_id)
        return source.gains if source else None

    # --- Sources ---

    def update_source_position(
        self,
        asset_id: str,
        position: Vector3 | tuple | dict,
        directional: bool = False,
    ) -> Optional[SpatialSource]:
        """
        Create or move the source for asset_id.

        Returns:
            The source, or None when spatial processing is inactive
        """
        if not self.active:
            logger.debug(f"Spatial audio inactive, ignoring position for {asset_id}")
            return None

        position = Vector3.of(position)
        source = self._sources.get(asset_id)
        if source is None:
            source = SpatialSource(asset_id=asset_id, position=position, directional=directional)
            self._sources[asset_id] = source
        else:
            source.position = position

        source.gains = self.compute_gains(source, self._listener)
        self.context.update_source(source)
        logger.debug(
            f"Updated spatial position for {asset_id}: {position.as_tuple()} "
            f"gain={source.gains.gain:.2f} pan={source.gains.pan:.2f}"
        )
        return source

    def remove_source(self, asset_id: str) -> bool:
        source = self._sources.pop(asset_id, None)
        if source is None:
            return False
        if self.context is not None:
            self.context.remove_source(asset_id)
        return True

    def clear(self) -> None:
        for asset_id in list(self._sources):
            self.remove_source(asset_id)

    # --- Listener ---

    def update_listener(self, position: Vector3 | tuple | dict, orientation: Vector3 | tuple | dict) -> bool:
        """
        Move and turn the listener in one step.

        The new state is built completely before it replaces the old one,
        so a rejected update leaves the listener untouched.

        Returns:
            True if the listener changed
        """
        if not self.active:
            logger.debug("Spatial audio inactive, ignoring listener update")
            return False

        position = Vector3.of(position)
        orientation = Vector3.of(orientation)
        if orientation.length == 0:
            logger.warning("Ignoring listener update with zero-length orientation")
            return False

        self._listener = self._listener.model_copy(
            update={"position": position, "orientation": orientation.normalized()}
        )
        for source in self._sources.values():
            source.gains = self.compute_gains(source, self._listener)
            self.context.update_source(source)
        self.context.update_listener(self._listener)
        return True

    # --- Environment ---

    def set_environment(self, environment: str | EnvironmentType) -> ReverbProfile:
        """
        Switch the reverb profile to the one for environment.

        Raises:
            UnknownEnvironmentError: environment has no profile
        """
        try:
            env = EnvironmentType(environment)
        except ValueError:
            raise UnknownEnvironmentError(str(environment)) from None

        profile = REVERB_PROFILES[env]
        self._listener = self._listener.model_copy(update={"environment": env})
        self._reverb = profile

        if self._listener.reverb_enabled and self.active:
            self.context.apply_reverb(profile)
        return profile

    def set_reverb_enabled(self, enabled: bool) -> None:
        self._listener = self._listener.model_copy(update={"reverb_enabled": enabled})

    def set_occlusion_enabled(self, enabled: bool) -> None:
        self._listener = self._listener.model_copy(update={"occlusion_enabled": enabled})

    # --- Math ---

    @staticmethod
    def distance_gain(distance: float, ref_distance: float, max_distance: float, rolloff: float) -> float:
        """Exponential distance model, distance clamped to [ref, max]."""
        d = max(ref_distance, min(distance, max_distance))
        return math.pow(d / ref_distance, -rolloff)

    @staticmethod
    def cone_gain(source: SpatialSource, to_listener: Vector3) -> float:
        """Attenuation for a directional source facing away from the listener."""
        if not source.directional or to_listener.length == 0:
            return 1.0

        facing = source.orientation.normalized()
        cos_angle = max(-1.0, min(1.0, facing.dot(to_listener.normalized())))
        angle = math.degrees(math.acos(cos_angle))

        inner = source.cone_inner_angle / 2.0
        outer = source.cone_outer_angle / 2.0
        if angle <= inner:
            return 1.0
        if angle >= outer:
            return source.cone_outer_gain
        t = (angle - inner) / (outer - inner)
        return 1.0 + t * (source.cone_outer_gain - 1.0)

    @classmethod
    def compute_gains(cls, source: SpatialSource, listener: ListenerState) -> SpatialGains:
        offset = source.position - listener.position
        distance = offset.length

        gain = cls.distance_gain(distance, source.ref_distance, source.max_distance, source.rolloff_factor)
        gain *= cls.cone_gain(source, listener.position - source.position)

        # Pan on the listener's right axis: -1 full left, +1 full right
        right_axis = listener.orientation.normalized().cross(UP).normalized()
        pan = 0.0
        if distance > 0 and right_axis.length > 0:
            pan = max(-1.0, min(1.0, offset.normalized().dot(right_axis)))

        left_balance = 1.0 if pan <= 0 else 1.0 - pan
        right_balance = 1.0 if pan >= 0 else 1.0 + pan

        return SpatialGains(
            gain=gain,
            pan=pan,
            left=gain * left_balance,
            right=gain * right_balance,
        )
