"""Unit tests for SessionController."""

import threading
import pytest
from pathlib import Path
from unittest.mock import Mock

from voicetui.audio.recorder import RecordingSession
from voicetui.exceptions import ConfigError, InferenceError, ModelUnavailableError
from voicetui.models.audio import RecordingOptions
from voicetui.models.events import TranscriptionProgress
from voicetui.models.session import Idle, Recording, Transcribing, Result, Error
from voicetui.services.session_controller import SessionController
from voicetui.services.state_publisher import StatePublisher
from voicetui.storage.export import TranscriptExporter

HALF_SECOND_BYTES = 16000


@pytest.fixture
def states():
    return []


@pytest.fixture
def make_controller(manual_capture, fake_clock, stub_engine, states, temp_data_dir):
    def factory(capture=None, engine=None, max_duration=60.0, run_async=False, **kwargs):
        recorder = RecordingSession(capture or manual_capture, clock=fake_clock)
        return SessionController(
            recorder,
            engine or stub_engine,
            recording_options=RecordingOptions(max_duration_seconds=max_duration),
            on_state_change=states.append,
            exporter=TranscriptExporter(temp_data_dir),
            run_async=run_async,
            **kwargs
        )
    return factory


def names(states):
    return [s.name for s in states]


@pytest.mark.unit
class TestSessionController:
    """Test cases for the session state machine."""

    def test_starts_idle(self, make_controller):
        assert isinstance(make_controller().state, Idle)

    def test_full_cycle(self, make_controller, manual_capture, stub_engine, states, transcription_result):
        controller = make_controller()

        controller.toggle_recording()
        assert isinstance(controller.state, Recording)

        manual_capture.emit(b"\x00" * HALF_SECOND_BYTES, advance=0.5)
        manual_capture.emit(b"\x00" * HALF_SECOND_BYTES, advance=0.5)
        controller.toggle_recording()

        assert names(states) == ["recording", "transcribing", "result"]
        assert controller.state == Result(result=transcription_result)
        assert controller.state.result.text == "hello"
        assert controller.state.result.confidence == 0.9

        recording = stub_engine.transcribe.call_args[0][0]
        assert len(recording.samples) == 2 * HALF_SECOND_BYTES
        assert recording.duration_seconds == pytest.approx(1.0)

    def test_new_recording_returns_to_idle(self, make_controller):
        controller = make_controller()
        controller.toggle_recording()
        controller.toggle_recording()

        controller.new_recording()

        assert isinstance(controller.state, Idle)
        assert controller.last_recording is None

    def test_capture_error_becomes_recoverable_error(self, make_controller, failing_capture, stub_engine):
        controller = make_controller(capture=failing_capture)

        controller.toggle_recording()

        state = controller.state
        assert isinstance(state, Error)
        assert state.recoverable is True
        assert "No input device available" in state.message
        assert controller.recorder.is_recording is False
        stub_engine.transcribe.assert_not_called()

        controller.new_recording()
        assert isinstance(controller.state, Idle)

    @pytest.mark.parametrize("error,recoverable", [
        (InferenceError("decoder crashed", 1.0), True),
        (ModelUnavailableError("small"), True),
        (ConfigError("Unknown model 'huge'"), False),
        (RuntimeError("unexpected"), True),
    ])
    def test_engine_errors_become_error_state(self, make_controller, stub_engine, error, recoverable):
        stub_engine.transcribe.side_effect = error
        controller = make_controller()

        controller.toggle_recording()
        controller.toggle_recording()

        assert isinstance(controller.state, Error)
        assert controller.state.recoverable is recoverable

    def test_triggers_ignored_in_idle(self, make_controller, states):
        controller = make_controller()

        controller.new_recording()
        controller.tick()

        assert states == []
        assert controller.copy_result() is False
        assert controller.save_result() is None

    def test_triggers_ignored_while_transcribing(self, make_controller, stub_engine, transcription_result):
        release = threading.Event()

        def slow_transcribe(recording, config, on_progress=None):
            release.wait(5)
            return transcription_result

        stub_engine.transcribe.side_effect = slow_transcribe
        controller = make_controller(run_async=True)
        controller.toggle_recording()
        controller.toggle_recording()

        assert isinstance(controller.state, Transcribing)
        controller.toggle_recording()
        controller.new_recording()
        assert controller.select_model("tiny") is False
        assert isinstance(controller.state, Transcribing)

        release.set()
        assert isinstance(controller.wait_until_settled(timeout=5), Result)

    def test_progress_updates_transcribing_state(self, make_controller, stub_engine, states, transcription_result):
        def transcribe(recording, config, on_progress=None):
            on_progress(TranscriptionProgress("processing", 25.0, "Processing audio..."))
            on_progress(TranscriptionProgress("complete", 100.0, "Done"))
            return transcription_result

        stub_engine.transcribe.side_effect = transcribe
        controller = make_controller()
        controller.toggle_recording()
        controller.toggle_recording()

        transcribing = [s for s in states if isinstance(s, Transcribing)]
        assert [(s.progress_percent, s.message) for s in transcribing[1:]] == [
            (25.0, "Processing audio..."),
            (100.0, "Done"),
        ]
        assert isinstance(controller.state, Result)

    def test_download_progress_shares_bar_with_processing(self, make_controller, stub_engine, states,
                                                          transcription_result):
        def transcribe(recording, config, on_progress=None):
            on_progress(TranscriptionProgress("loading", 40.0, "Downloading model: 40%"))
            on_progress(TranscriptionProgress("loading", 100.0, "Downloading model: 100%"))
            on_progress(TranscriptionProgress("processing", 0.0, "Processing audio..."))
            on_progress(TranscriptionProgress("processing", 50.0, "Processing audio..."))
            on_progress(TranscriptionProgress("complete", 100.0, "Done"))
            return transcription_result

        stub_engine.transcribe.side_effect = transcribe
        controller = make_controller()
        controller.toggle_recording()
        controller.toggle_recording()

        percents = [s.progress_percent for s in states if isinstance(s, Transcribing)][1:]
        assert percents == [20.0, 50.0, 50.0, 75.0, 100.0]
        assert percents == sorted(percents)

    def test_next_transcription_without_download_uses_full_bar(self, make_controller, stub_engine, states,
                                                               transcription_result):
        calls = []

        def transcribe(recording, config, on_progress=None):
            calls.append(1)
            if len(calls) == 1:
                on_progress(TranscriptionProgress("loading", 100.0, "Downloading model: 100%"))
            on_progress(TranscriptionProgress("processing", 30.0, "Processing audio..."))
            return transcription_result

        stub_engine.transcribe.side_effect = transcribe
        controller = make_controller()
        for _ in range(2):
            controller.toggle_recording()
            controller.toggle_recording()
            controller.new_recording()

        percents = [s.progress_percent for s in states if isinstance(s, Transcribing) and s.progress_percent]
        assert percents == [50.0, 65.0, 30.0]

    def test_auto_stop_from_chunks(self, make_controller, manual_capture, stub_engine, states):
        controller = make_controller(max_duration=1.0)
        controller.toggle_recording()

        manual_capture.emit(b"\x00" * HALF_SECOND_BYTES, advance=0.5)
        assert isinstance(controller.state, Recording)
        manual_capture.emit(b"\x00" * HALF_SECOND_BYTES, advance=0.5)

        assert names(states) == ["recording", "transcribing", "result"]
        assert stub_engine.transcribe.call_count == 1

    def test_toggle_after_auto_stop_is_ignored(self, make_controller, manual_capture, stub_engine):
        controller = make_controller(max_duration=0.5)
        controller.toggle_recording()
        manual_capture.emit(b"\x00" * HALF_SECOND_BYTES, advance=0.5)

        controller.toggle_recording()

        assert isinstance(controller.state, Result)
        assert stub_engine.transcribe.call_count == 1

    def test_tick_updates_elapsed(self, make_controller, fake_clock):
        controller = make_controller()
        controller.toggle_recording()

        fake_clock.advance(2.5)
        controller.tick()

        assert controller.state == Recording(elapsed=2.5)

    def test_tick_enforces_max_duration_without_chunks(self, make_controller, fake_clock, stub_engine):
        controller = make_controller(max_duration=60.0)
        controller.toggle_recording()

        fake_clock.advance(60.0)
        controller.tick()

        assert isinstance(controller.state, Result)
        stub_engine.transcribe.assert_called_once()

    def test_async_transcription_runs_on_worker(self, make_controller, stub_engine):
        caller = threading.current_thread()
        worker = []

        def transcribe(recording, config, on_progress=None):
            worker.append(threading.current_thread())
            return stub_engine.transcribe.return_value

        stub_engine.transcribe.side_effect = transcribe
        controller = make_controller(run_async=True)
        controller.toggle_recording()
        controller.toggle_recording()

        assert isinstance(controller.wait_until_settled(timeout=5), Result)
        assert worker and worker[0] is not caller
        assert worker[0].name == "TranscriptionWorker"

    def test_state_callback_errors_are_contained(self, manual_capture, fake_clock, stub_engine):
        controller = SessionController(
            RecordingSession(manual_capture, clock=fake_clock),
            stub_engine,
            on_state_change=Mock(side_effect=RuntimeError("render failed")),
            run_async=False,
        )

        controller.toggle_recording()

        assert isinstance(controller.state, Recording)

    def test_amplitude_forwarded(self, make_controller, manual_capture, audio_test_data):
        levels = []
        controller = make_controller(on_amplitude=levels.append)
        controller.toggle_recording()

        manual_capture.emit(audio_test_data("full", 0.05))

        assert len(levels) == 1
        assert controller.amplitude == levels[0] > 0

    def test_select_device_applies_to_next_recording(self, make_controller, manual_capture):
        controller = make_controller()

        assert controller.select_device("2") is True
        controller.toggle_recording()

        assert manual_capture.options.device_id == "2"
        assert controller.select_device("3") is False

    def test_select_model(self, make_controller, stub_engine):
        controller = make_controller()

        assert controller.select_model("tiny") is True
        controller.toggle_recording()
        controller.toggle_recording()

        config = stub_engine.transcribe.call_args[0][1]
        assert config.model_name == "tiny"

    def test_select_unknown_model_raises(self, make_controller):
        with pytest.raises(ConfigError):
            make_controller().select_model("huge")

    def test_list_models(self, make_controller):
        models = make_controller().list_models()

        assert "small" in [d.name for d, present in models]
        assert not any(present for d, present in models)

    def test_copy_and_save_result(self, temp_data_dir, make_controller):
        clipboard = Mock(return_value=True)
        controller = make_controller(clipboard=clipboard)
        controller.toggle_recording()
        controller.toggle_recording()

        assert controller.copy_result() is True
        clipboard.assert_called_once_with("hello")

        path = controller.save_result(Path(temp_data_dir) / "out.md")
        assert path.read_text(encoding="utf-8").endswith("hello\n")
        assert isinstance(controller.state, Result)

    def test_shutdown_while_recording(self, make_controller, manual_capture, stub_engine):
        controller = make_controller()
        controller.toggle_recording()

        controller.shutdown()

        assert isinstance(controller.state, Idle)
        assert manual_capture.closed == 1
        stub_engine.transcribe.assert_not_called()

    def test_wait_until_settled_times_out(self, make_controller):
        controller = make_controller()
        controller.toggle_recording()

        assert isinstance(controller.wait_until_settled(timeout=0.05), Recording)


@pytest.mark.unit
class TestStatePublisher:
    """Test cases for pub/sub state publication."""

    def test_controller_publishes_states(self, make_controller):
        received = []

        def listener(state):
            received.append(state)

        publisher = StatePublisher(topic="test.controller.state")
        publisher.subscribe(listener)
        try:
            controller = make_controller(publisher=publisher)
            controller.toggle_recording()
            controller.toggle_recording()
        finally:
            publisher.unsubscribe(listener)

        assert [s.name for s in received] == ["recording", "transcribing", "result"]

    def test_publisher_errors_are_contained(self, make_controller):
        publisher = Mock()
        publisher.publish_state.side_effect = RuntimeError("listener failed")
        controller = make_controller(publisher=publisher)

        controller.toggle_recording()

        assert isinstance(controller.state, Recording)
