"""Session state models.

SessionState is a tagged union: exactly one of the classes below is the
controller's current state at any time. All variants are immutable.
"""

from dataclasses import dataclass
from typing import Union

from .transcription import TranscriptionResult


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Recording:
    elapsed: float = 0.0
    name = "recording"


@dataclass(frozen=True)
class Transcribing:
    progress_percent: float = 0.0
    message: str = ""
    name = "transcribing"


@dataclass(frozen=True)
class Result:
    result: TranscriptionResult
    name = "result"


@dataclass(frozen=True)
class Error:
    message: str
    recoverable: bool = True
    name = "error"


SessionState = Union[Idle, Recording, Transcribing, Result, Error]
