"""Data models for the voicetui application."""

from .audio import RecordingOptions, RecordingResult, AudioStats
from .events import AudioChunk, DownloadProgress, TranscriptionProgress
from .transcription import TranscriptionConfig, TranscriptionResult, TASK_TRANSCRIBE, TASK_TRANSLATE
from .session import SessionState, Idle, Recording, Transcribing, Result, Error

__all__ = [
    "RecordingOptions",
    "RecordingResult",
    "AudioStats",
    "AudioChunk",
    "DownloadProgress",
    "TranscriptionProgress",
    "TranscriptionConfig",
    "TranscriptionResult",
    "TASK_TRANSCRIBE",
    "TASK_TRANSLATE",
    # Session states
    "SessionState",
    "Idle",
    "Recording",
    "Transcribing",
    "Result",
    "Error",
]
