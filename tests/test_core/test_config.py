import json
import pytest
from audiovr.audio.types import EnvironmentType, Vector3
from audiovr.core.config import AudioServiceConfig, load_config, save_config
from audiovr.core.errors import (
    AudioError,
    AssetNotFoundError,
    InitializationError,
    InvalidAssetError,
    PlaybackError,
    UnknownLayerError,
)

def test_config_defaults():
    config = AudioServiceConfig()
    assert config.cdn_base_url == "https://audio-cdn.audiovr.app"
    assert config.max_cache_size_mb == 500
    assert config.max_cache_bytes == 500 * 1024 * 1024
    assert config.mixer.frequency == 44100
    assert config.mixer.num_channels == 32
    assert config.spatial_audio.environment_type is EnvironmentType.TRAIN
    assert config.spatial_audio.listener_orientation == Vector3(x=0, y=0, z=-1)
    assert config.spatial_audio.reverb_enabled
    assert not config.spatial_audio.occlusion_enabled

def test_load_missing_config_uses_defaults(tmp_path):
    config = load_config(tmp_path / "missing.json")
    assert config == AudioServiceConfig()

def test_load_config_values(tmp_path):
    path = tmp_path / "audio.json"
    path.write_text(json.dumps({
        "cdn_base_url": "https://cdn.example",
        "offline_mode": True,
        "mixer": {"buffer": 1024},
        "spatial_audio": {"environment_type": "mansion", "listener_position": {"x": 1, "y": 2, "z": 3}},
    }))

    config = load_config(path)

    assert config.cdn_base_url == "https://cdn.example"
    assert config.offline_mode
    assert config.mixer.buffer == 1024
    assert config.mixer.frequency == 44100
    assert config.spatial_audio.environment_type is EnvironmentType.MANSION
    assert config.spatial_audio.listener_position.as_tuple() == (1, 2, 3)

def test_load_config_invalid_value(tmp_path):
    path = tmp_path / "audio.json"
    path.write_text(json.dumps({"spatial_audio": {"environment_type": "submarine"}}))

    with pytest.raises(InitializationError):
        load_config(path)

def test_load_config_bad_json(tmp_path):
    path = tmp_path / "audio.json"
    path.write_text("{not json")

    with pytest.raises(InitializationError):
        load_config(path)

def test_save_and_reload_config(tmp_path):
    path = tmp_path / "audio.json"
    config = AudioServiceConfig(accessibility_mode=True, max_cache_size_mb=64)

    assert save_config(config, path)
    assert load_config(path) == config

def test_error_hierarchy():
    assert issubclass(InvalidAssetError, ValueError)
    assert issubclass(AssetNotFoundError, KeyError)
    assert issubclass(UnknownLayerError, KeyError)

    error = AssetNotFoundError("ghost")
    assert isinstance(error, AudioError)
    assert str(error) == "Audio asset not found: ghost"
    assert error.details == {"asset_id": "ghost"}

    error = PlaybackError("ui-click", "decode failed", {"path": "x.mp3"})
    assert error.asset_id == "ui-click"
    assert error.message == "decode failed"
