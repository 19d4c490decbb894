"""Amplitude analysis of PCM chunks for the live waveform display.

The banded values are a visual approximation, not a spectrum: each band is the
mean magnitude of the signal after weighting it with a sinusoid at the band's
centre frequency. The result is bounded and deterministic for a given input.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np

logger = logging.getLogger(__name__)

FULL_SCALE = 32768.0
DEFAULT_SMOOTHING = 0.3
_MAX_BAND_POINTS = 100


@dataclass(frozen=True)
class WaveformData:
    """Banded amplitude values with summary statistics, all in [0, 1]."""
    bands: List[float]
    peak: float
    average: float


def _to_samples(chunk: bytes) -> np.ndarray:
    """Interpret a chunk as little-endian signed 16-bit samples, dropping a trailing odd byte."""
    usable = len(chunk) - (len(chunk) % 2)
    return np.frombuffer(chunk[:usable], dtype="<i2")


def scalar_amplitude(chunk: bytes) -> float:
    """Mean absolute sample value normalized to [0, 1].

    Chunks holding fewer than one sample yield 0.
    """
    samples = _to_samples(chunk)
    if samples.size == 0:
        logger.debug(f"Chunk too short for amplitude: {len(chunk)} bytes")
        return 0.0
    mean = float(np.abs(samples.astype(np.int32)).mean())
    return min(1.0, mean / FULL_SCALE)


def banded_amplitude(chunk: bytes, sample_rate: int, num_bands: int = 16) -> List[float]:
    """Approximate per-band energy, normalized so the loudest band is 1.0."""
    if num_bands <= 0:
        return []

    samples = _to_samples(chunk).astype(np.float64) / FULL_SCALE
    if samples.size == 0 or sample_rate <= 0:
        return [0.0] * num_bands

    step = max(1, samples.size // _MAX_BAND_POINTS)
    indices = np.arange(0, samples.size, step)
    t = indices / float(sample_rate)
    picked = samples[indices]

    band_width = sample_rate / 2.0 / num_bands
    centres = (np.arange(num_bands) + 0.5) * band_width
    energy = np.abs(np.sin(2 * np.pi * np.outer(centres, t)) * picked).mean(axis=1)

    max_band = max(float(energy.max()), 0.001)
    return [float(min(1.0, e / max_band)) for e in energy]


def analyze_waveform(chunk: bytes, sample_rate: int, num_bands: int = 16) -> WaveformData:
    """Banded amplitude plus peak and average of the bands."""
    bands = banded_amplitude(chunk, sample_rate, num_bands)
    if not bands:
        return WaveformData(bands=[], peak=0.0, average=0.0)
    return WaveformData(bands=bands, peak=max(bands), average=sum(bands) / len(bands))


def smooth(current: float, previous: float, factor: float = DEFAULT_SMOOTHING) -> float:
    """Exponential moving average used to keep the meter from jittering."""
    if not 0.0 < factor < 1.0:
        raise ValueError(f"Smoothing factor must be in (0, 1), got {factor}")
    return previous * (1 - factor) + current * factor
