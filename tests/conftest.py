import os
import sys
import wave
import pytest
from unittest.mock import MagicMock, patch

# Ensure audiovr can be imported
sys.path.append(os.getcwd())

@pytest.fixture(autouse=True)
def mock_pygame():
    """
    Global mock for pygame to allow headless testing.
    Autoused for all tests so no test opens a real audio device.
    """
    with patch('pygame.init'), \
         patch('pygame.display'), \
         patch('pygame.event'), \
         patch('pygame.time'), \
         patch('pygame.mixer'):

        import pygame
        pygame.time.get_ticks = MagicMock(return_value=0)

        yield

@pytest.fixture
def event_bus():
    """Fresh EventBus for each test."""
    from audiovr.core.events import EventBus
    return EventBus()

@pytest.fixture
def registry():
    """Empty registry with a CDN base url."""
    from audiovr.audio.registry import AssetRegistry
    return AssetRegistry("https://cdn.test")

@pytest.fixture
def recorder(event_bus):
    """Collects every audio event published on the bus, in order."""
    from audiovr.core.events import AudioEvent

    received = []
    def handler(event):
        received.append(event)

    for event_type in AudioEvent:
        event_bus.subscribe(event_type, handler, weak=False)
    return received

def make_player():
    """MagicMock player; play() returns None like the sample player."""
    player = MagicMock()
    player.play.return_value = None
    player.is_playing.return_value = True
    return player

@pytest.fixture
def sample_player():
    return make_player()

@pytest.fixture
def stream_player():
    return make_player()

@pytest.fixture
def spatial_context():
    """Spatial context that reports itself available."""
    from audiovr.audio.spatial import SpatialContext

    class AvailableContext(SpatialContext):
        available = True

    context = AvailableContext()
    context.update_source = MagicMock()
    context.remove_source = MagicMock()
    context.update_listener = MagicMock()
    context.apply_reverb = MagicMock()
    return context

@pytest.fixture
def controller(registry, sample_player, stream_player, event_bus, spatial_context):
    from audiovr.audio.playback import PlaybackController
    return PlaybackController(
        registry,
        sample_player,
        stream_player,
        event_bus=event_bus,
        spatial_context=spatial_context,
    )

@pytest.fixture
def wav_file(tmp_path):
    """A short silent WAV file on disk."""
    path = tmp_path / "tone.wav"
    with wave.open(str(path), "wb") as f:
        f.setnchannels(1)
        f.setsampwidth(2)
        f.setframerate(22050)
        f.writeframes(b"\x00\x00" * 2205)
    return path
