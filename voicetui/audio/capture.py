"""Audio capture sources that deliver PCM chunks on a background thread."""

import time
import logging
import threading
from abc import ABC, abstractmethod
from threading import Thread, Event
from typing import Optional, Callable

import numpy as np
import pyaudio

from ..exceptions import CaptureError
from ..models.audio import RecordingOptions
from ..models.events import AudioChunk


logger = logging.getLogger(__name__)

ChunkCallback = Callable[[AudioChunk], None]


class AbstractCaptureSource(ABC):
    """A producer of audio chunks for one recording at a time."""

    @abstractmethod
    def open(self, options: RecordingOptions, on_chunk: ChunkCallback) -> None:
        """Open the device and start delivering chunks to on_chunk.

        Raises:
            CaptureError: If the device cannot be opened
        """

    @abstractmethod
    def close(self) -> None:
        """Stop delivering chunks and release the device. Safe to call from on_chunk."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass


class _ThreadedCapture(AbstractCaptureSource):
    """Shared thread management for capture sources."""

    def __init__(self):
        self.capture_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.options: Optional[RecordingOptions] = None
        self.on_chunk: Optional[ChunkCallback] = None
        self.total_chunks = 0

    @property
    def is_open(self) -> bool:
        return self.capture_thread is not None and self.capture_thread.is_alive() and not self.stop_event.is_set()

    def _start_thread(self, name: str) -> None:
        # Fresh event per run so a thread still winding down from the last run stays stopped
        self.stop_event = Event()
        self.total_chunks = 0
        self.capture_thread = Thread(target=self._capture_loop, args=(self.stop_event,), daemon=True)
        self.capture_thread.name = name
        self.capture_thread.start()

    def close(self) -> None:
        self.stop_event.set()
        thread = self.capture_thread
        # close() may be called from inside on_chunk (auto-stop); the loop exits on its own then
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
            if thread.is_alive():
                logger.warning("Capture thread did not stop cleanly")
        logger.info(f"Capture closed. Total chunks: {self.total_chunks}")

    def _publish_chunk(self, data: bytes) -> None:
        self.total_chunks += 1
        chunk = AudioChunk(
            data=data,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.options.sample_rate,
            channels=self.options.channels,
            sample_width=self.options.sample_width,
        )
        self.on_chunk(chunk)

    @abstractmethod
    def _capture_loop(self, stop_event: Event) -> None:
        pass


class AudioCapture(_ThreadedCapture):
    """Microphone capture through PyAudio."""

    def __init__(self, chunk_size: int = 1600):
        """Initialize audio capture.

        Args:
            chunk_size: Frames per read (1600 frames is 100 ms at 16 kHz)
        """
        super().__init__()
        self.chunk_size = chunk_size
        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None
        self.stream = None

    def open(self, options: RecordingOptions, on_chunk: ChunkCallback) -> None:
        if self.is_open:
            raise CaptureError("Capture device is already open")

        self.options = options
        self.on_chunk = on_chunk
        try:
            self.stream = self.__open_audio_stream(options)
        except Exception as e:
            self.__release()
            raise CaptureError(f"Could not open audio input '{options.device_id}': {e}") from e

        self._start_thread("AudioCaptureThread")

    def __open_audio_stream(self, options: RecordingOptions):
        self.pyaudio_instance = pyaudio.PyAudio()
        device_index = None
        if options.device_id not in ("", "default"):
            device_index = int(options.device_id)

        stream = self.pyaudio_instance.open(
            format=self.pyaudio_instance.get_format_from_width(options.sample_width),
            channels=options.channels,
            rate=options.sample_rate,
            input=True,
            input_device_index=device_index,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"Audio stream opened: {options.sample_rate}Hz, "
                    f"{self.chunk_size} frames/chunk, device={options.device_id}")
        return stream

    def _capture_loop(self, stop_event: Event) -> None:
        """Internal method: read loop running in the capture thread."""
        stream, pa = self.stream, self.pyaudio_instance
        try:
            while not stop_event.is_set():
                data = stream.read(self.chunk_size, exception_on_overflow=False)
                if stop_event.is_set():
                    break
                self._publish_chunk(data)
        except Exception as e:
            # Chunks stop arriving; the session stays in Recording until stopped
            logger.error(f"Audio capture error: {e}")
        finally:
            self.__release(stream, pa)

    def __release(self, stream=None, pa: Optional[pyaudio.PyAudio] = None) -> None:
        stream = stream or self.stream
        pa = pa or self.pyaudio_instance
        if stream:
            try:
                stream.stop_stream()
                stream.close()
            except Exception as e:
                logger.warning(f"Error closing audio stream: {e}")
        if pa:
            pa.terminate()
        if self.stream is stream:
            self.stream = None
        if self.pyaudio_instance is pa:
            self.pyaudio_instance = None


class SyntheticCapture(_ThreadedCapture):
    """Generates a test tone (or silence) at a fixed chunk interval."""

    def __init__(self, chunk_interval: float = 0.1, frequency: float = 440.0, amplitude: float = 0.3):
        super().__init__()
        self.chunk_interval = chunk_interval
        self.frequency = frequency
        self.amplitude = amplitude

    def open(self, options: RecordingOptions, on_chunk: ChunkCallback) -> None:
        if self.is_open:
            raise CaptureError("Synthetic capture is already open")
        self.options = options
        self.on_chunk = on_chunk
        logger.info(f"Synthetic capture started: {self.frequency}Hz tone every {self.chunk_interval}s")
        self._start_thread("SyntheticCaptureThread")

    def generate_chunk(self) -> bytes:
        frames = int(self.options.sample_rate * self.chunk_interval)
        t = np.arange(frames) / self.options.sample_rate
        wave_data = np.sin(2 * np.pi * self.frequency * t) * self.amplitude
        samples = (wave_data * 32767).astype("<i2")
        if self.options.channels > 1:
            samples = np.repeat(samples, self.options.channels)
        return samples.tobytes()

    def _capture_loop(self, stop_event: Event) -> None:
        # wait() returns True as soon as close() sets the event
        while not stop_event.wait(self.chunk_interval):
            self._publish_chunk(self.generate_chunk())
