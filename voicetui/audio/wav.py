"""Canonical 44-byte PCM WAV header encoding and decoding."""

import struct
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..exceptions import FormatError
from ..models.audio import RecordingResult

logger = logging.getLogger(__name__)

HEADER_SIZE = 44
PCM_FORMAT_TAG = 1
FMT_CHUNK_SIZE = 16

# RIFF/WAVE/fmt /data layout, all little-endian
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavHeader:
    """Fields recovered from a WAV header."""
    sample_rate: int
    data_length: int
    channels: int = 1
    bits_per_sample: int = 16


def encode_header(sample_rate: int, channels: int, bits_per_sample: int, data_length: int) -> bytes:
    """Build the 44-byte header for a PCM WAV file.

    Args:
        sample_rate: Samples per second
        channels: Number of interleaved channels
        bits_per_sample: Sample width in bits
        data_length: Size of the PCM payload in bytes

    Returns:
        Exactly 44 bytes
    """
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    return _HEADER_STRUCT.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        FMT_CHUNK_SIZE,
        PCM_FORMAT_TAG,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_length,
    )


def decode_header(data: bytes) -> WavHeader:
    """Read sample rate and payload length from a canonical WAV header.

    Raises:
        FormatError: If the buffer is shorter than 44 bytes or a marker is missing
    """
    if len(data) < HEADER_SIZE:
        raise FormatError(f"WAV data too short: {len(data)} bytes, need at least {HEADER_SIZE}")

    (riff, _riff_size, wave_id, fmt_id, _fmt_size, _format_tag, channels,
     sample_rate, _byte_rate, _block_align, bits_per_sample, data_id,
     data_length) = _HEADER_STRUCT.unpack_from(data, 0)

    for found, expected in ((riff, b"RIFF"), (wave_id, b"WAVE"), (fmt_id, b"fmt "), (data_id, b"data")):
        if found != expected:
            raise FormatError(f"Missing {expected.decode()!r} marker in WAV header (found {found!r})")

    return WavHeader(
        sample_rate=sample_rate,
        data_length=data_length,
        channels=channels,
        bits_per_sample=bits_per_sample,
    )


def wrap_pcm(samples: bytes, sample_rate: int, channels: int = 1, bits_per_sample: int = 16) -> bytes:
    """Prefix raw PCM bytes with a canonical header."""
    return encode_header(sample_rate, channels, bits_per_sample, len(samples)) + samples


def save_wav(result: RecordingResult, filepath: Union[str, Path]) -> Path:
    """Write a recording to disk as a WAV file."""
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(wrap_pcm(result.samples, result.sample_rate, result.channels, result.bit_depth))
    logger.debug(f"Saved WAV: {path} ({len(result.samples)} data bytes)")
    return path


def load_wav(filepath: Union[str, Path]) -> RecordingResult:
    """Read a canonical WAV file back into a RecordingResult.

    Duration is derived from the payload size since no wall clock exists for a file.
    """
    with open(filepath, "rb") as f:
        data = f.read()

    header = decode_header(data)
    samples = data[HEADER_SIZE:HEADER_SIZE + header.data_length]
    bytes_per_second = header.sample_rate * header.channels * (header.bits_per_sample // 8)
    duration = len(samples) / bytes_per_second if bytes_per_second else 0.0

    return RecordingResult(
        samples=samples,
        duration_seconds=duration,
        sample_rate=header.sample_rate,
        channels=header.channels,
        bit_depth=header.bits_per_sample,
    )
