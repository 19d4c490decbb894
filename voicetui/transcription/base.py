"""Abstract base class for transcription backends."""

from abc import ABC, abstractmethod
from pathlib import Path
import logging

from ..models.transcription import TranscriptionConfig

logger = logging.getLogger(__name__)


class AbstractTranscriptionBackend(ABC):
    """Turns one WAV file into text, non-streaming."""

    #: Whether the engine must make sure the model file exists before calling
    requires_model = True

    @abstractmethod
    def transcribe_file(self, wav_path: Path, model_path: Path, config: TranscriptionConfig,
                        audio_duration: float = 0.0) -> str:
        """Transcribe a WAV file and return the raw text.

        Args:
            wav_path: Canonical 16-bit PCM WAV file
            model_path: Local path of the model weights
            config: Language hint and task
            audio_duration: Length of the audio, for error reports

        Raises:
            InferenceError: If the backend cannot produce text
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Verify the backend can run.

        Returns:
            True if the backend is usable, False otherwise
        """
        pass
