"""Deterministic transcription backend for tests and demo mode."""

import time
import logging
from pathlib import Path
from typing import Optional

from .base import AbstractTranscriptionBackend
from ..exceptions import InferenceError
from ..models.transcription import TranscriptionConfig

logger = logging.getLogger(__name__)


class SyntheticBackend(AbstractTranscriptionBackend):
    """Returns a fixed text without any model."""

    requires_model = False

    def __init__(self, text: str = "hello", delay: float = 0.0, error: Optional[str] = None):
        """Initialize synthetic backend.

        Args:
            text: Text returned for every file
            delay: Seconds to sleep, simulating inference time
            error: If set, every call fails with this message
        """
        self.text = text
        self.delay = delay
        self.error = error
        self.calls = 0

    def initialize(self) -> bool:
        return True

    def transcribe_file(self, wav_path: Path, model_path: Path, config: TranscriptionConfig,
                        audio_duration: float = 0.0) -> str:
        self.calls += 1
        if not wav_path.exists():
            raise InferenceError(f"Audio file missing: {wav_path}", audio_duration)
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise InferenceError(self.error, audio_duration)
        logger.debug(f"Synthetic transcription of {wav_path}: '{self.text}'")
        return self.text
