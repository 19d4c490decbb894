"""Terminal user interface."""

from .keyboard_input import KeyboardInputHandler, normalize_key
from .recorder_screen import RecorderScreen

__all__ = ["KeyboardInputHandler", "normalize_key", "RecorderScreen"]
