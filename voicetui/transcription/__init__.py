"""Transcription module for voicetui."""

from .base import AbstractTranscriptionBackend
from .engine import TranscriptionEngine, calculate_confidence
from .models import ModelAssetStore, ModelDescriptor, WHISPER_MODELS, DEFAULT_MODEL
from .synthetic_backend import SyntheticBackend
from .whisper_backend import WhisperCppBackend
from ..models.transcription import TranscriptionConfig, TranscriptionResult

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionEngine",
    "calculate_confidence",
    "ModelAssetStore",
    "ModelDescriptor",
    "WHISPER_MODELS",
    "DEFAULT_MODEL",
    "SyntheticBackend",
    "WhisperCppBackend",
    "TranscriptionConfig",
    "TranscriptionResult",
]
