"""Recording session: owns the capture lifecycle for one recording at a time."""

import time
import logging
import threading
from typing import Optional, Callable, List

from .capture import AbstractCaptureSource
from .waveform import scalar_amplitude, smooth, DEFAULT_SMOOTHING
from ..exceptions import CaptureError, InvalidStateError
from ..models.audio import RecordingOptions, RecordingResult, AudioStats
from ..models.events import AudioChunk

logger = logging.getLogger(__name__)


class RecordingSession:
    """Collects chunks from a capture source between start() and stop().

    States are Idle and Recording. stop() returns the RecordingResult; when the
    configured maximum duration is reached, the chunk handler calls stop()
    itself and hands the result to on_auto_stop.
    """

    def __init__(
        self,
        capture: AbstractCaptureSource,
        on_amplitude: Optional[Callable[[float], None]] = None,
        on_auto_stop: Optional[Callable[[RecordingResult], None]] = None,
        smoothing: float = DEFAULT_SMOOTHING,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize recording session.

        Args:
            capture: Source of audio chunks
            on_amplitude: Called with the smoothed [0, 1] level of every chunk
            on_auto_stop: Called with the result when max duration stops the recording
            smoothing: Exponential smoothing factor for the amplitude meter
            clock: Monotonic time source in seconds
        """
        self.capture = capture
        self.on_amplitude = on_amplitude
        self.on_auto_stop = on_auto_stop
        self.smoothing = smoothing
        self.clock = clock

        self.lock = threading.Lock()
        self.is_recording = False
        self.options: Optional[RecordingOptions] = None
        self.chunks: List[bytes] = []
        self.start_time: Optional[float] = None
        self.latest_amplitude = 0.0

    def start(self, options: RecordingOptions) -> None:
        """Open the capture source and begin collecting chunks.

        Raises:
            InvalidStateError: If a recording is already active
            CaptureError: If the capture source cannot be opened
        """
        with self.lock:
            if self.is_recording:
                raise InvalidStateError("Recording already in progress")

            self.options = options
            self.chunks = []
            self.latest_amplitude = 0.0
            self.start_time = self.clock()
            self.is_recording = True

        logger.info(f"Starting recording: {options.sample_rate}Hz, {options.channels}ch, "
                    f"max {options.max_duration_seconds}s, device={options.device_id}")
        try:
            self.capture.open(options, self._on_chunk)
        except Exception as e:
            with self.lock:
                self.is_recording = False
                self.start_time = None
            if isinstance(e, CaptureError):
                raise
            raise CaptureError(f"Failed to start recording: {e}") from e

    def _on_chunk(self, chunk: AudioChunk) -> None:
        """Handle one chunk from the capture thread."""
        with self.lock:
            if not self.is_recording:
                return
            self.chunks.append(chunk.data)
            level = smooth(scalar_amplitude(chunk.data), self.latest_amplitude, self.smoothing)
            self.latest_amplitude = level
            reached_limit = self.clock() - self.start_time >= self.options.max_duration_seconds

        if self.on_amplitude:
            try:
                self.on_amplitude(level)
            except Exception as e:
                logger.error(f"Error in amplitude callback: {e}")

        if reached_limit:
            self._auto_stop()

    def _auto_stop(self) -> None:
        try:
            result = self.stop()
        except InvalidStateError:
            logger.debug("Auto-stop skipped, recording was already stopped")
            return

        logger.info(f"Auto-stopped recording after {result.duration_seconds:.2f}s")
        if self.on_auto_stop:
            self.on_auto_stop(result)

    def stop(self) -> RecordingResult:
        """Stop recording, release the device and return the captured audio.

        Raises:
            InvalidStateError: If no recording is active
        """
        with self.lock:
            if not self.is_recording:
                raise InvalidStateError("No recording in progress")

            self.is_recording = False
            duration = self.clock() - self.start_time
            samples = b"".join(self.chunks)
            total_chunks = len(self.chunks)
            self.chunks = []
            self.start_time = None
            options = self.options

        # Outside the lock: close() joins the capture thread, which may be waiting on it
        try:
            self.capture.close()
        except Exception as e:
            logger.warning(f"Error closing capture source: {e}")

        logger.info(f"Recording stopped: {duration:.2f}s, {total_chunks} chunks, {len(samples)} bytes")
        return RecordingResult(
            samples=samples,
            duration_seconds=duration,
            sample_rate=options.sample_rate,
            channels=options.channels,
            bit_depth=options.bit_depth,
            total_chunks=total_chunks,
        )

    @property
    def elapsed_time(self) -> float:
        """Wall-clock seconds since start while recording, otherwise 0."""
        with self.lock:
            if not self.is_recording or self.start_time is None:
                return 0.0
            return self.clock() - self.start_time

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        with self.lock:
            return AudioStats(
                is_recording=self.is_recording,
                duration_seconds=(self.clock() - self.start_time) if self.is_recording else 0.0,
                buffer_size=sum(len(c) for c in self.chunks),
                sample_rate=self.options.sample_rate if self.options else 0,
                total_chunks=len(self.chunks),
                amplitude=self.latest_amplitude,
            )
