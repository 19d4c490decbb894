"""Pytest configuration and fixtures for voicetui tests."""

import pytest
import tempfile
import time
import logging
from pathlib import Path
from unittest.mock import Mock, patch
import numpy as np

from voicetui.audio.capture import AbstractCaptureSource
from voicetui.exceptions import CaptureError
from voicetui.models.audio import RecordingOptions
from voicetui.models.events import AudioChunk
from voicetui.models.transcription import TranscriptionResult


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without I/O beyond temp files")
    config.addinivalue_line("markers", "integration: tests spanning several components")
    config.addinivalue_line("markers", "slow: tests that take more than a second")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualCapture(AbstractCaptureSource):
    """Capture source whose chunks are pushed by the test on the calling thread."""

    def __init__(self, fail_on_open: bool = False, clock: FakeClock = None):
        self.fail_on_open = fail_on_open
        self.clock = clock
        self.options = None
        self.on_chunk = None
        self.opened = 0
        self.closed = 0
        self.sequence = 0
        self._open = False

    def open(self, options: RecordingOptions, on_chunk) -> None:
        if self.fail_on_open:
            raise CaptureError("No input device available")
        self.options = options
        self.on_chunk = on_chunk
        self.opened += 1
        self._open = True

    def close(self) -> None:
        self.closed += 1
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def emit(self, data: bytes, advance: float = 0.0) -> None:
        """Deliver one chunk, optionally moving the clock forward first."""
        if self.clock and advance:
            self.clock.advance(advance)
        self.sequence += 1
        self.on_chunk(AudioChunk(
            data=data,
            timestamp=time.time(),
            sequence_number=self.sequence,
            sample_rate=self.options.sample_rate,
            channels=self.options.channels,
            sample_width=self.options.sample_width,
        ))


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def manual_capture(fake_clock):
    return ManualCapture(clock=fake_clock)


@pytest.fixture
def sample_audio_chunk():
    """Generate a sample audio chunk for testing."""
    # 1600 samples of 16-bit audio (100 ms sine wave at 16 kHz)
    sample_rate = 16000
    duration = 1600 / sample_rate
    freq = 440  # A4 note

    t = np.linspace(0, duration, 1600, False)
    wave_data = np.sin(2 * np.pi * freq * t) * 0.5

    # Convert to 16-bit integers
    audio_data = (wave_data * 32767).astype(np.int16)
    return audio_data.tobytes()


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 3200  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None
        mock_pyaudio_instance.get_format_from_width.return_value = 8

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


@pytest.fixture
def audio_test_data():
    """Generate various audio test data patterns."""
    def generate_audio(pattern="sine", duration_seconds=1.0, sample_rate=16000, level=0.5):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence', 'full')
            duration_seconds: Duration of audio
            sample_rate: Sample rate in Hz
            level: Peak level in [0, 1]

        Returns:
            bytes: Audio data as bytes
        """
        samples = int(duration_seconds * sample_rate)

        if pattern == "sine":
            t = np.linspace(0, duration_seconds, samples, False)
            wave_data = np.sin(2 * np.pi * 440 * t) * level
        elif pattern == "noise":
            wave_data = np.random.default_rng(0).uniform(-level, level, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        elif pattern == "full":
            # Alternating full-scale samples
            wave_data = np.where(np.arange(samples) % 2 == 0, 1.0, -1.0)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        if pattern == "full":
            audio_data = np.where(wave_data > 0, 32767, -32768).astype("<i2")
        else:
            audio_data = (wave_data * 32767).astype("<i2")
        return audio_data.tobytes()

    return generate_audio


@pytest.fixture
def transcription_result():
    return TranscriptionResult(text="hello", language="en", duration_seconds=1.0, confidence=0.9)


@pytest.fixture
def stub_engine(temp_data_dir, transcription_result):
    """Engine double whose transcribe() returns a fixed result."""
    from voicetui.transcription.models import ModelAssetStore

    engine = Mock()
    engine.store = ModelAssetStore(models_dir=Path(temp_data_dir) / "models")
    engine.transcribe.return_value = transcription_result
    return engine


@pytest.fixture
def failing_capture():
    return ManualCapture(fail_on_open=True)
