"""Exception hierarchy for voicetui.

Every error raised by the recording and transcription pipeline derives from
VoiceTuiError so the session controller can convert any of them into a
user-visible Error state in one place.
"""

from typing import Optional


class VoiceTuiError(Exception):
    """Base exception for all voicetui errors."""

    def __init__(self, detail: str = "An unexpected error occurred", recoverable: bool = True):
        self.detail = detail
        self.recoverable = recoverable
        super().__init__(detail)


class InvalidStateError(VoiceTuiError):
    """Raised when an operation is requested in a state that forbids it."""


class CaptureError(VoiceTuiError):
    """Raised when the audio input device cannot be opened or read."""


class FormatError(VoiceTuiError, ValueError):
    """Raised when an audio container is malformed."""

    def __init__(self, detail: str = "Malformed WAV data"):
        super().__init__(detail, recoverable=False)


class DownloadError(VoiceTuiError):
    """Base class for model download failures."""


class NetworkError(DownloadError):
    """Raised when a model cannot be fetched from its download URL."""


class StorageError(DownloadError):
    """Raised when a file cannot be written to local storage."""


class ModelUnavailableError(VoiceTuiError):
    """Raised when a transcription model is missing and cannot be downloaded."""

    def __init__(self, model_name: str, detail: Optional[str] = None):
        self.model_name = model_name
        super().__init__(detail or f"Model '{model_name}' is not available")


class InferenceError(VoiceTuiError):
    """Raised when the transcription backend fails to produce text."""

    def __init__(self, detail: str, audio_duration: float = 0.0):
        self.audio_duration = audio_duration
        super().__init__(f"{detail} (audio duration: {audio_duration:.2f}s)")


class ConfigError(VoiceTuiError, KeyError):
    """Raised for unknown model names and invalid configuration values."""

    def __init__(self, detail: str):
        super().__init__(detail, recoverable=False)

    def __str__(self) -> str:
        return self.detail
