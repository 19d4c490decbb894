"""Services layer for voicetui application logic."""

from .session_controller import SessionController
from .state_publisher import StatePublisher, STATE_TOPIC

__all__ = [
    "SessionController",
    "StatePublisher",
    "STATE_TOPIC",
]
