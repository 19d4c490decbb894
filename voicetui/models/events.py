"""Event models passed between the capture source and the recording session."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AudioChunk:
    """One block of raw interleaved PCM bytes delivered by a capture source."""
    data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    sample_width: int = 2

    @property
    def duration_seconds(self) -> float:
        bytes_per_second = self.sample_rate * self.channels * self.sample_width
        if not bytes_per_second:
            return 0.0
        return len(self.data) / bytes_per_second


@dataclass(frozen=True)
class DownloadProgress:
    """Progress of a single model download.

    percent is None when the server did not send a content-length.
    """
    downloaded_bytes: int
    total_bytes: int = 0
    percent: Optional[float] = None


@dataclass(frozen=True)
class TranscriptionProgress:
    """Progress of a single transcription call."""
    status: str  # "loading" | "processing" | "complete" | "error"
    percent: float
    message: str = ""
