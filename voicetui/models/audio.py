"""Audio-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class RecordingOptions:
    """Parameters for one recording session."""
    sample_rate: int = 16000
    channels: int = 1
    bit_depth: int = 16
    max_duration_seconds: float = 60.0
    device_id: str = "default"

    def __post_init__(self):
        if self.sample_rate <= 0 or self.channels <= 0 or self.bit_depth <= 0:
            raise ValueError(
                f"sample_rate, channels and bit_depth must be positive "
                f"(got {self.sample_rate}, {self.channels}, {self.bit_depth})"
            )
        if self.max_duration_seconds <= 0:
            raise ValueError(f"max_duration_seconds must be positive (got {self.max_duration_seconds})")

    @property
    def sample_width(self) -> int:
        """Bytes per sample."""
        return self.bit_depth // 8

    @property
    def bytes_per_second(self) -> int:
        return self.sample_rate * self.channels * self.sample_width


@dataclass(frozen=True)
class RecordingResult:
    """Audio captured by one completed recording session."""
    samples: bytes
    duration_seconds: float
    sample_rate: int
    channels: int = 1
    bit_depth: int = 16
    total_chunks: int = 0


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_recording: bool
    duration_seconds: float
    buffer_size: int
    sample_rate: int
    total_chunks: int
    amplitude: float = 0.0
