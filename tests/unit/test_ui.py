"""Unit tests for the terminal UI pieces that do not need a real terminal."""

import io
import sys
import threading
import pytest
from pathlib import Path
from unittest.mock import Mock

from rich.console import Console

from voicetui.audio.devices import AudioDevice
from voicetui.audio.recorder import RecordingSession
from voicetui.models.session import Idle, Result, Error
from voicetui.services.session_controller import SessionController
from voicetui.ui.keyboard_input import KeyboardInputHandler, normalize_key
from voicetui.ui.recorder_screen import RecorderScreen, bar_char, format_elapsed, BAR_CHARS


@pytest.fixture
def controller(manual_capture, fake_clock, stub_engine):
    return SessionController(RecordingSession(manual_capture, clock=fake_clock), stub_engine, run_async=False)


@pytest.fixture
def screen(controller):
    return RecorderScreen(controller, console=Console(file=io.StringIO(), width=100))


def render(screen):
    layout = screen.create_layout()
    screen.update_display(layout)
    screen.console.print(layout)
    return screen.console.file.getvalue()


@pytest.mark.unit
class TestHelpers:
    """Test cases for key and rendering helpers."""

    @pytest.mark.parametrize("raw,name", [
        (" ", "space"), ("\r", "enter"), ("\n", "enter"), ("\x1b", "escape"), ("Q", "q"), ("c", "c"),
    ])
    def test_normalize_key(self, raw, name):
        assert normalize_key(raw) == name

    def test_bar_char_bounds(self):
        assert bar_char(0.0) == BAR_CHARS[0]
        assert bar_char(1.0) == BAR_CHARS[-1]
        assert bar_char(5.0) == BAR_CHARS[-1]
        assert bar_char(-1.0) == BAR_CHARS[0]

    def test_format_elapsed(self):
        assert format_elapsed(0) == "00:00"
        assert format_elapsed(61.9) == "01:01"


@pytest.mark.unit
class TestRecorderScreen:
    """Test cases for RecorderScreen key handling and rendering."""

    def test_space_toggles_recording(self, screen, controller):
        assert screen.handle_key_input("space") is True
        assert controller.state.name == "recording"

        screen.handle_key_input("space")
        assert isinstance(controller.state, Result)

        screen.handle_key_input("space")
        assert isinstance(controller.state, Idle)

    def test_quit(self, screen):
        assert screen.handle_key_input("q") is False

    def test_copy_and_save(self, screen, controller, temp_data_dir):
        controller.clipboard = Mock(return_value=True)
        controller.exporter.export_dir = Path(temp_data_dir)
        screen.handle_key_input("space")
        screen.handle_key_input("space")

        screen.handle_key_input("c")
        assert screen.status_message == "Copied to clipboard"

        screen.handle_key_input("s")
        assert screen.status_message.startswith("Saved to ")

    def test_cycle_model_only_when_idle(self, screen, controller):
        names = list(controller.engine.store.registry)
        current = controller.transcription_config.model_name

        screen.handle_key_input("m")

        assert controller.transcription_config.model_name == names[(names.index(current) + 1) % len(names)]
        assert "will download on first use" in screen.status_message

    def test_amplitude_feeds_waveform(self, screen, controller, manual_capture, audio_test_data):
        controller.toggle_recording()
        manual_capture.emit(audio_test_data("full", 0.05))
        screen.update_waveform(screen.create_layout())

        assert screen.levels[-1] > 0

    def test_waveform_renders_while_capture_thread_updates(self, screen, controller):
        controller.toggle_recording()
        layout = screen.create_layout()
        done = threading.Event()

        def capture_loop():
            while not done.is_set():
                controller.recorder.on_amplitude(0.5)

        interval = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        capture_thread = threading.Thread(target=capture_loop, daemon=True)
        capture_thread.start()
        try:
            for _ in range(5000):
                screen.update_waveform(layout)
        finally:
            done.set()
            capture_thread.join(timeout=2.0)
            sys.setswitchinterval(interval)

        assert screen.levels[-1] == 0.5

    def test_cycle_device_only_when_idle(self, controller):
        devices = [AudioDevice("default", "Default Microphone", is_default=True), AudioDevice("2", "USB Headset")]
        screen = RecorderScreen(controller, console=Console(file=io.StringIO(), width=120),
                                list_devices=lambda: devices)

        screen.handle_key_input("d")
        assert controller.device_id == "2"
        assert screen.status_message == "Device: USB Headset"
        assert "Device: USB Headset" in render(screen)

        screen.handle_key_input("d")
        assert controller.device_id == "default"

        controller.toggle_recording()
        screen.handle_key_input("d")
        assert controller.device_id == "default"

    def test_render_each_state(self, screen, controller):
        assert "Press SPACE to start recording" in render(screen)

        controller.toggle_recording()
        assert "RECORDING" in render(screen)

        controller.toggle_recording()
        assert "hello" in render(screen)

    def test_render_error(self, screen, controller, stub_engine):
        stub_engine.transcribe.side_effect = RuntimeError("no model")
        controller.toggle_recording()
        controller.toggle_recording()

        assert isinstance(controller.state, Error)
        assert "no model" in render(screen)


@pytest.mark.unit
class TestKeyboardInputHandler:
    """Test cases for KeyboardInputHandler with a scripted reader."""

    def test_keys_reach_callback_until_quit(self):
        raw_keys = iter([" ", None, "C", "q", "x"])
        received = []

        def callback(key):
            received.append(key)
            return key != "q"

        handler = KeyboardInputHandler(callback, reader=lambda: next(raw_keys, None))
        handler.start()
        handler.thread.join(timeout=2.0)

        assert received == ["space", "c", "q"]
        assert handler.running is False

    def test_callback_error_ends_loop(self):
        handler = KeyboardInputHandler(Mock(side_effect=RuntimeError("boom")), reader=lambda: "a")
        handler.start()
        handler.thread.join(timeout=2.0)

        assert handler.running is False

    def test_stop(self):
        handler = KeyboardInputHandler(Mock(return_value=True), reader=lambda: None)
        handler.start()
        handler.stop()

        assert not handler.thread.is_alive()
