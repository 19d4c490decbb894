"""Markdown export of transcription results."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..exceptions import StorageError
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


def generate_filename(extension: str = "md") -> str:
    """Timestamped filename such as transcription-2024-01-31T10-22-05.md."""
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    return f"transcription-{timestamp}.{extension}"


def format_markdown(result: TranscriptionResult, timestamp: Optional[datetime] = None) -> str:
    """Render a result as Markdown with a metadata block followed by the text."""
    timestamp = timestamp or datetime.now()
    return (
        "# Voice-TUI Transcription\n"
        "\n"
        f"**Date:** {timestamp.isoformat(timespec='seconds')}\n"
        f"**Duration:** {result.duration_seconds:.2f}s\n"
        f"**Language:** {result.language}\n"
        f"**Confidence:** {result.confidence * 100:.1f}%\n"
        "\n"
        "---\n"
        "\n"
        f"{result.text}\n"
    )


class TranscriptExporter:
    """Saves transcription results as Markdown files."""

    def __init__(self, export_dir: Union[str, Path] = "."):
        """Initialize exporter.

        Args:
            export_dir: Directory for files saved without an explicit path
        """
        self.export_dir = Path(export_dir).expanduser()
        logger.info(f"TranscriptExporter initialized with export_dir: {self.export_dir}")

    def save(self, result: TranscriptionResult, filepath: Optional[Union[str, Path]] = None) -> Path:
        """Write result to filepath, or a timestamped file in the export directory.

        Returns:
            Path of the written file

        Raises:
            StorageError: If the file cannot be written
        """
        path = Path(filepath) if filepath else self.export_dir / generate_filename("md")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(format_markdown(result), encoding="utf-8")
        except OSError as e:
            logger.error(f"Error saving transcription: {e}")
            raise StorageError(f"Failed to save transcription to {path}: {e}") from e

        logger.info(f"Transcription saved: {path} ({len(result.text)} chars)")
        return path
