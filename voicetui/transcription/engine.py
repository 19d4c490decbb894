"""Transcription engine: model acquisition followed by one non-streaming inference."""

import re
import time
import uuid
import logging
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .base import AbstractTranscriptionBackend
from .models import ModelAssetStore
from ..audio.wav import save_wav
from ..exceptions import DownloadError, InferenceError, ModelUnavailableError, VoiceTuiError
from ..models.audio import RecordingResult
from ..models.events import DownloadProgress, TranscriptionProgress
from ..models.transcription import TranscriptionConfig, TranscriptionResult

logger = logging.getLogger(__name__)

TranscriptionProgressCallback = Callable[[TranscriptionProgress], None]

SHORT_TEXT_LENGTH = 10
SHORT_TEXT_CONFIDENCE = 0.6
BASE_CONFIDENCE = 0.85
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.98
# ASCII word characters only; accented letters count as unusual
_UNUSUAL_CHARS = re.compile(r"[^\w\s.,!?\-]", re.ASCII)


def calculate_confidence(text: str) -> float:
    """Approximate confidence from the shape of the text alone.

    This is a heuristic, not a model probability: short texts get a flat 0.6,
    longer ones start at 0.85 and lose confidence for repeated words and for
    characters outside ordinary words and punctuation. Non-empty input always
    lands in [0.5, 0.98]; empty input gives 0.
    """
    if not text:
        return 0.0
    if len(text) < SHORT_TEXT_LENGTH:
        return SHORT_TEXT_CONFIDENCE

    words = text.lower().split()
    repetition_ratio = len(set(words)) / len(words) if words else 1.0

    confidence = BASE_CONFIDENCE
    confidence *= 0.5 + 0.5 * repetition_ratio

    gibberish_ratio = len(_UNUSUAL_CHARS.findall(text)) / len(text)
    confidence *= 1 - gibberish_ratio

    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


class _ProgressReporter:
    """Forwards progress events, never letting percent go backwards within a status."""

    def __init__(self, callback: Optional[TranscriptionProgressCallback]):
        self.callback = callback
        self.status: Optional[str] = None
        self.percent = 0.0

    def emit(self, status: str, percent: float, message: str = "") -> None:
        if status != self.status:
            self.status = status
            self.percent = percent
        else:
            self.percent = max(self.percent, percent)
        if self.callback:
            self.callback(TranscriptionProgress(status=status, percent=self.percent, message=message))


class TranscriptionEngine:
    """Uniform transcription contract over a backend and the model store."""

    def __init__(
        self,
        store: ModelAssetStore,
        backend: AbstractTranscriptionBackend,
        scratch_dir: Optional[Union[str, Path]] = None,
    ):
        """Initialize transcription engine.

        Args:
            store: Where models are found and downloaded
            backend: Inference capability
            scratch_dir: Directory for temporary WAV files (system temp dir if None)
        """
        self.store = store
        self.backend = backend
        self.scratch_dir = Path(scratch_dir) if scratch_dir else Path(tempfile.gettempdir())

    def is_available(self) -> bool:
        """True if at least one registered model is present locally."""
        return any(self.store.is_present(name) for name in self.store.registry)

    def transcribe(
        self,
        audio: RecordingResult,
        config: TranscriptionConfig,
        on_progress: Optional[TranscriptionProgressCallback] = None,
    ) -> TranscriptionResult:
        """Transcribe one recording, downloading the model first if needed.

        Raises:
            ConfigError: config.model_name is not registered
            ModelUnavailableError: The model is missing and could not be downloaded
            InferenceError: The backend failed
        """
        model = self.store.descriptor(config.model_name)
        progress = _ProgressReporter(on_progress)
        bytes_per_second = audio.sample_rate * audio.channels * (audio.bit_depth // 8)
        duration = len(audio.samples) / bytes_per_second if bytes_per_second else 0.0

        if self.backend.requires_model and not self.store.is_present(model.name):
            self._acquire_model(model.name, progress)

        progress.emit("processing", 0, "Transcribing audio...")
        start_time = time.time()
        text = self._run_inference(audio, model.local_path, config, duration, progress)
        progress.emit("processing", 75, "Finalizing...")

        text = text.strip()
        result = TranscriptionResult(
            text=text,
            language=config.language_hint or "en",
            duration_seconds=duration,
            confidence=calculate_confidence(text),
        )
        logger.info(f"Transcription complete in {time.time() - start_time:.2f}s: "
                    f"{len(text)} chars, confidence {result.confidence:.2f}")

        progress.emit("complete", 100, "Transcription complete")
        return result

    def _acquire_model(self, model_name: str, progress: _ProgressReporter) -> None:
        progress.emit("loading", 0, f"Downloading Whisper {model_name} model...")

        def on_download_progress(p: DownloadProgress) -> None:
            if p.percent is not None:
                progress.emit("loading", p.percent, f"Downloading model: {round(p.percent)}%")

        try:
            self.store.download(model_name, on_download_progress)
        except DownloadError as e:
            logger.error(f"Model download failed: {e}")
            raise ModelUnavailableError(model_name, f"Could not download model '{model_name}': {e}") from e

        if not self.store.is_present(model_name):
            raise ModelUnavailableError(model_name)

    def _run_inference(self, audio: RecordingResult, model_path: Path, config: TranscriptionConfig,
                       duration: float, progress: _ProgressReporter) -> str:
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        wav_path = self.scratch_dir / f"voicetui-{timestamp}-{uuid.uuid4().hex[:8]}.wav"

        try:
            save_wav(audio, wav_path)
        except OSError as e:
            raise InferenceError(f"Could not write scratch audio {wav_path}: {e}", duration) from e

        try:
            progress.emit("processing", 25, "Processing audio...")
            return self.backend.transcribe_file(wav_path, model_path, config, duration)
        except VoiceTuiError:
            raise
        except Exception as e:
            logger.error(f"Transcription backend error: {e}")
            raise InferenceError(f"Transcription failed: {e}", duration) from e
        finally:
            wav_path.unlink(missing_ok=True)
