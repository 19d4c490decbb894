"""Persistence of transcription output."""

from .export import TranscriptExporter, format_markdown, generate_filename

__all__ = ["TranscriptExporter", "format_markdown", "generate_filename"]
