"""voicetui - record from the microphone and transcribe locally with Whisper."""

__version__ = "0.1.0"
