"""Transcription-related data models."""

from dataclasses import dataclass
from typing import Optional

TASK_TRANSCRIBE = "transcribe"
TASK_TRANSLATE = "translate"


@dataclass(frozen=True)
class TranscriptionConfig:
    """What to transcribe with. model_name must be a registered model."""
    model_name: str = "small"
    language_hint: Optional[str] = None
    task: str = TASK_TRANSCRIBE

    def __post_init__(self):
        if self.task not in (TASK_TRANSCRIBE, TASK_TRANSLATE):
            raise ValueError(f"task must be '{TASK_TRANSCRIBE}' or '{TASK_TRANSLATE}', got '{self.task}'")


@dataclass(frozen=True)
class TranscriptionResult:
    """Result of a transcription operation."""
    text: str
    language: str
    duration_seconds: float
    confidence: float
