"""Top-level state machine tying recording to transcription."""

import logging
import threading
from dataclasses import replace
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from ..audio.recorder import RecordingSession
from ..exceptions import CaptureError, ConfigError, InvalidStateError, StorageError, VoiceTuiError
from ..models.audio import RecordingOptions, RecordingResult
from ..models.events import TranscriptionProgress
from ..models.session import SessionState, Idle, Recording, Transcribing, Result, Error
from ..models.transcription import TranscriptionConfig
from ..storage.export import TranscriptExporter
from ..transcription.engine import TranscriptionEngine
from ..transcription.models import ModelDescriptor
from ..utils.clipboard import copy_to_clipboard
from .state_publisher import StatePublisher

logger = logging.getLogger(__name__)

# Share of the progress bar given to a model download that precedes inference
DOWNLOAD_SHARE = 0.5


class SessionController:
    """Owns the single current SessionState and drives every transition.

    Idle -> Recording -> Transcribing -> Result | Error -> Idle. Triggers that
    do not apply to the current state are ignored. Every exception raised by
    the recorder or the engine ends up as an Error state; nothing propagates
    to the caller.
    """

    def __init__(
        self,
        recorder: RecordingSession,
        engine: TranscriptionEngine,
        recording_options: Optional[RecordingOptions] = None,
        transcription_config: Optional[TranscriptionConfig] = None,
        publisher: Optional[StatePublisher] = None,
        on_state_change: Optional[Callable[[SessionState], None]] = None,
        on_amplitude: Optional[Callable[[float], None]] = None,
        exporter: Optional[TranscriptExporter] = None,
        clipboard: Callable[[str], bool] = copy_to_clipboard,
        run_async: bool = True,
    ):
        """Initialize session controller.

        Args:
            recorder: Recording session used for every capture
            engine: Transcription engine run after each recording
            recording_options: Capture parameters (defaults if None)
            transcription_config: Model, language and task (defaults if None)
            publisher: Optional pub/sub publisher for state changes
            on_state_change: Optional callback for state changes
            on_amplitude: Optional callback for live amplitude values
            exporter: Markdown exporter used by save_result()
            clipboard: Function used by copy_result()
            run_async: Run transcription on a worker thread (inline if False)
        """
        self.recorder = recorder
        self.engine = engine
        self.recording_options = recording_options or RecordingOptions()
        self.transcription_config = transcription_config or TranscriptionConfig()
        self.publisher = publisher
        self.on_state_change = on_state_change
        self.on_amplitude = on_amplitude
        self.exporter = exporter or TranscriptExporter()
        self.clipboard = clipboard
        self.run_async = run_async

        self.device_id = self.recording_options.device_id
        self.amplitude = 0.0
        self.last_recording: Optional[RecordingResult] = None
        self.model_downloaded = False
        self.worker_thread: Optional[threading.Thread] = None

        # Reentrant: state callbacks may read controller.state
        self.lock = threading.RLock()
        self.state_changed = threading.Condition(self.lock)
        self._state: SessionState = Idle()

        self.recorder.on_amplitude = self._on_amplitude
        self.recorder.on_auto_stop = self._on_auto_stop

        logger.info(f"SessionController initialized: model={self.transcription_config.model_name}, "
                    f"max duration={self.recording_options.max_duration_seconds}s")

    @property
    def state(self) -> SessionState:
        with self.lock:
            return self._state

    def _set_state(self, state: SessionState) -> None:
        with self.lock:
            self._state = state
            logger.debug(f"Session state -> {state}")
            if self.on_state_change:
                try:
                    self.on_state_change(state)
                except Exception as e:
                    logger.error(f"Error in state change callback: {e}")
            if self.publisher:
                try:
                    self.publisher.publish_state(state)
                except Exception as e:
                    logger.error(f"Error publishing state: {e}")
            self.state_changed.notify_all()

    # Commands

    def toggle_recording(self) -> None:
        """Start recording from Idle, or stop and transcribe from Recording."""
        with self.lock:
            state = self._state
            if isinstance(state, Idle):
                self._start_recording()
            elif isinstance(state, Recording):
                self._stop_and_transcribe()
            else:
                logger.debug(f"toggle_recording ignored in state {state.name}")

    def new_recording(self) -> None:
        """Discard a Result or Error and return to Idle."""
        with self.lock:
            if not isinstance(self._state, (Result, Error)):
                logger.debug(f"new_recording ignored in state {self._state.name}")
                return
            self.last_recording = None
            self.amplitude = 0.0
            self._set_state(Idle())

    def tick(self) -> None:
        """Refresh elapsed time and enforce the duration cap by wall clock.

        The chunk handler also stops at the cap, but only when chunks arrive.
        """
        with self.lock:
            if not isinstance(self._state, Recording):
                return
            elapsed = self.recorder.elapsed_time
            if elapsed >= self.recording_options.max_duration_seconds:
                logger.info(f"Maximum duration reached ({elapsed:.2f}s), stopping")
                self._stop_and_transcribe()
            else:
                self._set_state(Recording(elapsed=elapsed))

    def select_device(self, device_id: str) -> bool:
        with self.lock:
            if not isinstance(self._state, Idle):
                return False
            self.device_id = device_id
            logger.info(f"Selected audio device: {device_id}")
            return True

    def select_model(self, model_name: str) -> bool:
        """Switch the transcription model while Idle.

        Raises:
            ConfigError: If the model is not registered
        """
        self.engine.store.descriptor(model_name)
        with self.lock:
            if not isinstance(self._state, Idle):
                return False
            self.transcription_config = replace(self.transcription_config, model_name=model_name)
            logger.info(f"Selected model: {model_name}")
            return True

    def list_models(self) -> List[Tuple[ModelDescriptor, bool]]:
        return self.engine.store.list_models()

    def copy_result(self) -> bool:
        """Copy the result text to the clipboard. False outside Result or on failure."""
        state = self.state
        if not isinstance(state, Result):
            return False
        return self.clipboard(state.result.text)

    def save_result(self, filepath: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Save the result as Markdown. None outside Result.

        Raises:
            StorageError: If the file cannot be written
        """
        state = self.state
        if not isinstance(state, Result):
            return None
        return self.exporter.save(state.result, filepath)

    def wait_until_settled(self, timeout: Optional[float] = None) -> SessionState:
        """Block until the state is Result or Error (or timeout) and return it."""
        with self.state_changed:
            self.state_changed.wait_for(lambda: isinstance(self._state, (Result, Error)), timeout)
            return self._state

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop an active recording without transcribing and wait for the worker."""
        with self.lock:
            if isinstance(self._state, Recording):
                try:
                    self.recorder.stop()
                except InvalidStateError:
                    pass
                self._set_state(Idle())
        if self.worker_thread and self.worker_thread.is_alive():
            self.worker_thread.join(timeout=timeout)
        logger.info("SessionController shutdown completed")

    # Transitions

    def _start_recording(self) -> None:
        options = replace(self.recording_options, device_id=self.device_id)
        try:
            self.recorder.start(options)
        except CaptureError as e:
            logger.error(f"Error starting recording: {e}")
            self._set_state(Error(message=f"Failed to start recording: {e.detail}", recoverable=True))
            return
        except InvalidStateError as e:
            logger.warning(f"Recorder refused to start: {e}")
            return
        except Exception as e:
            logger.error(f"Unexpected error starting recording: {e}")
            self._set_state(Error(message=f"Failed to start recording: {e}", recoverable=True))
            return
        self.last_recording = None
        self._set_state(Recording(elapsed=0.0))

    def _stop_and_transcribe(self) -> None:
        try:
            result = self.recorder.stop()
        except InvalidStateError:
            # Auto-stop won the race and will hand over its result
            logger.debug("Recorder already stopped")
            return
        except Exception as e:
            logger.error(f"Error stopping recording: {e}")
            self._set_state(Error(message=f"Failed to stop recording: {e}", recoverable=True))
            return
        self._begin_transcription(result)

    def _on_auto_stop(self, result: RecordingResult) -> None:
        with self.lock:
            if not isinstance(self._state, Recording):
                logger.debug(f"Auto-stop result ignored in state {self._state.name}")
                return
            self._begin_transcription(result)

    def _on_amplitude(self, amplitude: float) -> None:
        self.amplitude = amplitude
        if self.on_amplitude:
            self.on_amplitude(amplitude)

    def _begin_transcription(self, result: RecordingResult) -> None:
        self.last_recording = result
        self.amplitude = 0.0
        self.model_downloaded = False
        self._set_state(Transcribing(progress_percent=0.0, message="Starting transcription..."))
        config = self.transcription_config

        if not self.run_async:
            # Inline on the calling thread; progress callbacks re-enter the RLock
            self._run_transcription(result, config)
            return

        self.worker_thread = threading.Thread(
            target=self._run_transcription, args=(result, config), daemon=True
        )
        self.worker_thread.name = "TranscriptionWorker"
        self.worker_thread.start()

    def _run_transcription(self, recording: RecordingResult, config: TranscriptionConfig) -> None:
        try:
            transcription = self.engine.transcribe(recording, config, on_progress=self._on_progress)
        except ConfigError as e:
            logger.error(f"Invalid transcription config: {e}")
            self._finish(Error(message=f"Configuration error: {e}", recoverable=False))
            return
        except VoiceTuiError as e:
            logger.error(f"Transcription failed: {e}")
            self._finish(Error(message=f"Transcription failed: {e}", recoverable=True))
            return
        except Exception as e:
            logger.exception(f"Unexpected transcription error: {e}")
            self._finish(Error(message=f"Transcription failed: {e}", recoverable=True))
            return
        self._finish(Result(result=transcription))

    def _finish(self, state: SessionState) -> None:
        with self.lock:
            if isinstance(self._state, Transcribing):
                self._set_state(state)

    def _on_progress(self, progress: TranscriptionProgress) -> None:
        with self.lock:
            state = self._state
            if not isinstance(state, Transcribing):
                return
            if progress.status == "loading":
                self.model_downloaded = True
                percent = progress.percent * DOWNLOAD_SHARE
            elif self.model_downloaded:
                percent = 100.0 * DOWNLOAD_SHARE + progress.percent * (1 - DOWNLOAD_SHARE)
            else:
                percent = progress.percent
            # Bar only moves forward across phases
            percent = max(state.progress_percent, percent)
            self._set_state(Transcribing(progress_percent=percent, message=progress.message))
