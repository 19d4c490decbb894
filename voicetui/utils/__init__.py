"""Small platform helpers."""

from .clipboard import copy_to_clipboard

__all__ = ["copy_to_clipboard"]
