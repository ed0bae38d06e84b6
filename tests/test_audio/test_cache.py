import pytest
from unittest.mock import MagicMock
from audiovr.audio.cache import AssetCache
from audiovr.audio.types import LoadState, PlayerKind
from audiovr.core.errors import PlaybackError
from audiovr.core.events import AudioEvent

@pytest.fixture
def cache(registry, sample_player, stream_player, event_bus):
    players = {PlayerKind.SAMPLE: sample_player, PlayerKind.STREAM: stream_player}
    return AssetCache(registry, players, event_bus)

def local_asset(asset_id, category="ui", **extra):
    return {"id": asset_id, "category": category, "local_path": f"/sounds/{asset_id}.wav", **extra}

def events_of(recorder, event_type):
    return [e for e in recorder if e.type is event_type]

def test_load_sample(cache, registry, sample_player, recorder):
    registry.register_asset(local_asset("ui-click"))

    assert cache.load("ui-click")

    sample_player.load.assert_called_once_with("ui-click", "/sounds/ui-click.wav")
    assert cache.is_loaded("ui-click")
    assert cache.entry("ui-click").player is PlayerKind.SAMPLE
    assert [e["asset_id"] for e in events_of(recorder, AudioEvent.AUDIO_LOADED)] == ["ui-click"]

def test_load_stream_passes_track_info(cache, registry, stream_player):
    registry.register_asset(local_asset("line-1", category="dialogue", name="Butler", duration=3.5))

    assert cache.load("line-1")

    stream_player.load.assert_called_once_with(
        "line-1", "/sounds/line-1.wav", title="Butler", duration=3.5
    )

def test_load_is_idempotent(cache, registry, sample_player):
    registry.register_asset(local_asset("ui-click"))

    cache.load("ui-click")
    cache.load("ui-click")

    assert sample_player.load.call_count == 1

def test_load_failure_is_reported(cache, registry, sample_player, recorder):
    registry.register_asset(local_asset("ui-click"))
    sample_player.load.side_effect = PlaybackError("ui-click", "decode failed")

    assert not cache.load("ui-click")

    assert cache.state("ui-click") is LoadState.FAILED
    errors = events_of(recorder, AudioEvent.AUDIO_ERROR)
    assert len(errors) == 1
    assert errors[0]["asset_id"] == "ui-click"
    assert isinstance(errors[0]["error"], PlaybackError)

def test_load_unknown_asset_is_reported(cache, recorder):
    assert not cache.load("ghost")
    assert cache.state("ghost") is LoadState.FAILED
    assert len(events_of(recorder, AudioEvent.AUDIO_ERROR)) == 1

def test_remote_asset_without_downloader_fails(cache, registry):
    registry.register_asset({"id": "ui-click", "category": "ui", "url": "ui/click.mp3"})
    assert not cache.load("ui-click")
    assert "no download cache" in cache.entry("ui-click").error

def test_remote_asset_is_downloaded(registry, sample_player, stream_player, event_bus, recorder, tmp_path):
    downloader = MagicMock()
    downloader.fetch.return_value = tmp_path / "ui-click.mp3"
    cache = AssetCache(
        registry,
        {PlayerKind.SAMPLE: sample_player, PlayerKind.STREAM: stream_player},
        event_bus,
        downloader,
    )
    registry.register_asset({"id": "ui-click", "category": "ui", "url": "ui/click.mp3"})

    assert cache.load("ui-click")

    assert downloader.fetch.call_args.args == ("ui-click", "https://cdn.test/ui/click.mp3")
    sample_player.load.assert_called_once_with("ui-click", str(tmp_path / "ui-click.mp3"))

    # Progress callback is forwarded as a cache update
    on_progress = downloader.fetch.call_args.kwargs["on_progress"]
    on_progress("ui-click", 0.5)
    updates = events_of(recorder, AudioEvent.CACHE_UPDATED)
    assert updates[-1].data == {"progress": 0.5, "asset_id": "ui-click", "source": "download"}

def test_preload_continues_after_failure(cache, sample_player, recorder):
    def load(asset_id, path):
        if asset_id == "ui-error":
            raise PlaybackError(asset_id, "corrupt file")
    sample_player.load.side_effect = load

    loaded = cache.preload([
        local_asset("ui-click"),
        local_asset("ui-error"),
        local_asset("ui-success"),
    ])

    assert loaded == 2
    assert cache.is_loaded("ui-click")
    assert not cache.is_loaded("ui-error")
    assert cache.is_loaded("ui-success")

    errors = events_of(recorder, AudioEvent.AUDIO_ERROR)
    assert [e["asset_id"] for e in errors] == ["ui-error"]

    progress = [e["progress"] for e in events_of(recorder, AudioEvent.CACHE_UPDATED)]
    assert progress == pytest.approx([1 / 3, 2 / 3, 1.0])

def test_preload_invalid_asset_does_not_raise(cache, recorder):
    loaded = cache.preload([{"id": "broken", "category": "ui"}, local_asset("ui-click")])

    assert loaded == 1
    errors = events_of(recorder, AudioEvent.AUDIO_ERROR)
    assert [e["asset_id"] for e in errors] == ["broken"]

def test_preload_skips_loaded_assets(cache, sample_player):
    cache.preload([local_asset("ui-click")])
    loaded = cache.preload([local_asset("ui-click")])

    assert loaded == 0
    assert sample_player.load.call_count == 1

def test_preload_retries_failed_assets(cache, sample_player):
    sample_player.load.side_effect = PlaybackError("ui-click", "network down")
    cache.preload([local_asset("ui-click")])

    sample_player.load.side_effect = None
    assert cache.preload([local_asset("ui-click")]) == 1

def test_evict_releases_player(cache, registry, sample_player):
    registry.register_asset(local_asset("ui-click"))
    cache.load("ui-click")

    cache.evict("ui-click")

    sample_player.release.assert_called_once_with("ui-click")
    assert cache.state("ui-click") is LoadState.UNLOADED
    assert cache.player_for("ui-click") is None

def test_preload_duplicate_in_batch_loads_once(cache, sample_player):
    loaded = cache.preload([local_asset("ui-click"), local_asset("ui-click")])

    assert loaded == 1
    assert sample_player.load.call_count == 1
