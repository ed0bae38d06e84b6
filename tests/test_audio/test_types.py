import pytest
from pydantic import ValidationError
from audiovr.audio.assets import AudioAsset
from audiovr.audio.playback import PlayOptions
from audiovr.audio.types import Vector3, clamp_volume

def test_vector_coercion():
    assert Vector3.of((1, 2, 3)) == Vector3(x=1, y=2, z=3)
    assert Vector3.of([1, 2, 3]) == Vector3(x=1, y=2, z=3)
    assert Vector3.of({"x": 1}) == Vector3(x=1, y=0, z=0)

    vector = Vector3(x=3, y=0, z=4)
    assert Vector3.of(vector) is vector

def test_vector_math():
    a = Vector3(x=3, y=0, z=4)
    assert a.length == 5
    assert a.normalized() == Vector3(x=0.6, y=0, z=0.8)
    assert Vector3().normalized() == Vector3()
    assert a.distance_to(Vector3()) == 5
    assert (a - a) == Vector3()
    assert Vector3(x=0, y=0, z=-1).cross(Vector3(x=0, y=1, z=0)) == Vector3(x=1, y=0, z=0)

def test_clamp_volume():
    assert clamp_volume(2) == 1.0
    assert clamp_volume(-1) == 0.0
    assert clamp_volume(0.3) == 0.3

def test_asset_is_frozen():
    asset = AudioAsset(id="ui-click", category="ui", url="ui/click.mp3")
    with pytest.raises(ValidationError):
        asset.category = "music"

def test_asset_display_name():
    assert AudioAsset(id="ui-click", category="ui", url="u").display_name == "ui-click"
    assert AudioAsset(id="ui-click", name="Click", category="ui", url="u").display_name == "Click"

def test_play_options_defaults_and_clamping():
    options = PlayOptions()
    assert not options.loop
    assert options.volume == 1.0
    assert options.spatial_position is None
    assert options.layer is None

    assert PlayOptions(volume=3).volume == 1.0
    assert PlayOptions(spatial=(1, 0, -2)).spatial_position == Vector3(x=1, y=0, z=-2)
    assert PlayOptions(spatial_position={"x": 1}).spatial_position == Vector3(x=1)
