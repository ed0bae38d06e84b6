import sys
import os
import tempfile
import wave
from pathlib import Path

# Ensure we can import from root
sys.path.append(os.getcwd())

# Force dummy driver for headless environment
os.environ["SDL_AUDIODRIVER"] = "dummy"
os.environ["SDL_VIDEODRIVER"] = "dummy"

import pygame

from audiovr import AudioService, AudioServiceConfig
from audiovr.audio import PlaybackState


def write_silence(path: Path, seconds: float = 0.25) -> None:
    with wave.open(str(path), "wb") as f:
        f.setnchannels(2)
        f.setsampwidth(2)
        f.setframerate(44100)
        f.writeframes(b"\x00\x00" * 2 * int(44100 * seconds))


def run_tests(workdir: Path):
    print("=== Verifying Audio System ===")

    click = workdir / "click.wav"
    room = workdir / "room.wav"
    write_silence(click)
    write_silence(room, seconds=1.0)

    # 1. Service Initialization
    print("[1] Testing AudioService...")
    config = AudioServiceConfig(preload_essentials=False, cache_enabled=False)
    audio = AudioService(config)
    audio.initialize()
    assert audio.is_initialized
    print("    Init OK")

    # 2. Registry and preload
    print("[2] Testing preload...")
    loaded = audio.preload([
        {"id": "ui-click", "category": "ui", "type": "sample", "local_path": str(click)},
        {"id": "ambient-loop", "category": "ambient", "type": "loop", "local_path": str(room)},
    ])
    assert loaded == 2, loaded
    assert audio.is_loaded("ui-click")
    print("    Preload OK")

    # 3. Playback
    print("[3] Testing playback...")
    assert audio.play("ui-click", volume=0.5)
    assert audio.play("ambient-loop", layer="ambient", spatial=(1, 0, -2))
    assert audio.controller.state("ambient-loop") is PlaybackState.PLAYING
    assert audio.spatial.source("ambient-loop") is not None
    assert audio.stop("ambient-loop")
    assert audio.mixer.active_asset("ambient") is None
    print("    Playback OK")

    # 4. Mixing
    print("[4] Testing mixer...")
    audio.set_layer_volume("music", 1.7)
    assert audio.get_layer_volumes()["music"] == 1.0
    audio.set_accessibility_mode(True)
    assert audio.get_layer_volumes()["dialogue"] == 1.0
    print("    Mixer OK")

    # 5. Settings
    print("[5] Testing settings...")
    settings_path = workdir / "settings.json"
    assert audio.save_settings(settings_path)
    assert audio.load_settings(settings_path)
    print("    Settings OK")

    audio.quit()
    pygame.quit()

    print("\nALL TESTS PASSED")


if __name__ == "__main__":
    try:
        with tempfile.TemporaryDirectory() as tmp:
            run_tests(Path(tmp))
    except Exception as e:
        print(f"\nFAILED: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
