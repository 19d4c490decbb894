"""Audio capture, analysis and WAV encoding."""

from .capture import AbstractCaptureSource, AudioCapture, SyntheticCapture
from .recorder import RecordingSession
from .wav import encode_header, decode_header, WavHeader, save_wav, load_wav
from .waveform import scalar_amplitude, banded_amplitude, analyze_waveform, smooth

__all__ = [
    'AbstractCaptureSource',
    'AudioCapture',
    'SyntheticCapture',
    'RecordingSession',
    'encode_header',
    'decode_header',
    'WavHeader',
    'save_wav',
    'load_wav',
    'scalar_amplitude',
    'banded_amplitude',
    'analyze_waveform',
    'smooth',
]
