import math
import pytest
from audiovr.audio.spatial import (
    CONE_OUTER_GAIN,
    MAX_DISTANCE,
    REVERB_PROFILES,
    ListenerState,
    MixerSpatialContext,
    SpatialContext,
    SpatialEngine,
    SpatialSource,
)
from audiovr.audio.types import EnvironmentType, Vector3
from audiovr.core.errors import UnknownEnvironmentError

@pytest.fixture
def engine(spatial_context):
    return SpatialEngine(spatial_context)

def test_source_gains_in_front_right(engine):
    source = engine.update_source_position("ambient-loop", (1, 0, -2))

    assert source.position == Vector3(x=1, y=0, z=-2)
    assert source.gains.gain == pytest.approx(math.sqrt(5) ** -1.5)
    assert source.gains.pan == pytest.approx(1 / math.sqrt(5))
    assert source.gains.right == pytest.approx(source.gains.gain)
    assert source.gains.left < source.gains.right
    engine.context.update_source.assert_called_once_with(source)

def test_distance_clamped_to_reference_and_max():
    assert SpatialEngine.distance_gain(0.2, 1.0, 50.0, 1.5) == 1.0
    assert SpatialEngine.distance_gain(500.0, 1.0, 50.0, 1.5) == pytest.approx(MAX_DISTANCE ** -1.5)

def test_source_on_the_left(engine):
    source = engine.update_source_position("door", (-3, 0, 0))
    assert source.gains.pan == pytest.approx(-1.0)
    assert source.gains.right == pytest.approx(0.0)
    assert source.gains.left == pytest.approx(source.gains.gain)

def test_directional_cone(engine):
    facing_away = engine.update_source_position("radio", (0, 0, -2), directional=True)
    facing_listener = engine.update_source_position("clock", (0, 0, 2), directional=True)

    assert facing_away.gains.gain == pytest.approx(2 ** -1.5 * CONE_OUTER_GAIN)
    assert facing_listener.gains.gain == pytest.approx(2 ** -1.5)

def test_move_existing_source(engine):
    engine.update_source_position("ambient-loop", (1, 0, -2))
    moved = engine.update_source_position("ambient-loop", (0, 0, -1))

    assert len(engine.sources()) == 1
    assert moved.gains.gain == pytest.approx(1.0)
    assert engine.gains_for("ambient-loop") == moved.gains

def test_inactive_engine_ignores_updates(spatial_context):
    engine = SpatialEngine(spatial_context, enabled=False)

    assert engine.update_source_position("ambient-loop", (1, 0, -2)) is None
    assert not engine.update_listener((0, 0, 0), (1, 0, 0))
    assert engine.sources() == []

def test_unavailable_context_degrades_silently():
    engine = SpatialEngine(SpatialContext())

    assert not engine.active
    assert engine.update_source_position("ambient-loop", (1, 0, -2)) is None

def test_listener_update_recomputes_sources(engine):
    engine.update_source_position("ambient-loop", (1, 0, -2))

    # Turn to face +x: the source is now mostly on the left
    assert engine.update_listener((0, 0, 0), (2, 0, 0))

    assert engine.listener.orientation == Vector3(x=1, y=0, z=0)
    assert engine.gains_for("ambient-loop").pan == pytest.approx(-2 / math.sqrt(5))
    engine.context.update_listener.assert_called_once_with(engine.listener)

def test_listener_zero_orientation_rejected(engine):
    before = engine.listener

    assert not engine.update_listener((5, 0, 0), (0, 0, 0))
    assert engine.listener is before

def test_listener_is_replaced_atomically(engine):
    before = engine.listener
    engine.update_listener((1, 2, 3), (0, 0, -1))

    assert engine.listener is not before
    assert before.position == Vector3()
    assert engine.listener.position == Vector3(x=1, y=2, z=3)

def test_set_environment(engine):
    profile = engine.set_environment("mansion")

    assert profile == REVERB_PROFILES[EnvironmentType.MANSION]
    assert profile.room_size == 0.8
    assert engine.environment is EnvironmentType.MANSION
    engine.context.apply_reverb.assert_called_once_with(profile)

def test_set_environment_without_reverb(engine):
    engine.set_reverb_enabled(False)
    engine.set_environment(EnvironmentType.OUTDOOR)

    assert engine.reverb == REVERB_PROFILES[EnvironmentType.OUTDOOR]
    engine.context.apply_reverb.assert_not_called()

def test_unknown_environment(engine):
    with pytest.raises(UnknownEnvironmentError):
        engine.set_environment("submarine")
    assert engine.environment is EnvironmentType.TRAIN

def test_all_environments_have_profiles():
    assert set(REVERB_PROFILES) == set(EnvironmentType)

def test_remove_source(engine):
    engine.update_source_position("ambient-loop", (1, 0, -2))

    assert engine.remove_source("ambient-loop")
    assert not engine.remove_source("ambient-loop")
    engine.context.remove_source.assert_called_once_with("ambient-loop")

def test_source_uses_engine_constants():
    source = SpatialSource(asset_id="x")
    assert source.distance_model == "exponential"
    assert source.ref_distance == 1.0
    assert source.max_distance == 50.0
    assert source.rolloff_factor == 1.5
    assert (source.cone_inner_angle, source.cone_outer_angle, source.cone_outer_gain) == (30.0, 90.0, 0.3)

def test_mixer_context_follows_mixer_state():
    import pygame

    context = MixerSpatialContext()
    pygame.mixer.get_init.return_value = (44100, -16, 2)
    assert context.available
    pygame.mixer.get_init.return_value = None
    assert not context.available

    context.apply_reverb(REVERB_PROFILES[EnvironmentType.TRAIN])
    assert context.reverb.decay == 1.2

def test_default_listener():
    listener = ListenerState()
    assert listener.orientation == Vector3(x=0, y=0, z=-1)
    assert listener.environment is EnvironmentType.TRAIN
