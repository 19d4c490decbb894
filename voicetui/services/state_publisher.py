"""Session state publisher for pub/sub observers."""

import logging
from typing import Callable
from pubsub import pub

from ..models.session import SessionState

logger = logging.getLogger(__name__)

STATE_TOPIC = "session.state"


class StatePublisher:
    """Publishes session state changes using pubsub.pub."""

    def __init__(self, topic: str = STATE_TOPIC):
        """Initialize state publisher.

        Args:
            topic: Pub/sub topic name for state changes
        """
        self.topic = topic
        logger.info(f"StatePublisher initialized with topic: {topic}")

    def publish_state(self, state: SessionState) -> None:
        """Publish a state change to the pub/sub topic.

        Args:
            state: The controller's new current state
        """
        pub.sendMessage(self.topic, state=state)
        logger.debug(f"Published session state: {state.name}")

    def subscribe(self, listener: Callable[[SessionState], None]) -> None:
        """Register a listener taking a single `state` argument."""
        pub.subscribe(listener, self.topic)

    def unsubscribe(self, listener: Callable[[SessionState], None]) -> None:
        pub.unsubscribe(listener, self.topic)
