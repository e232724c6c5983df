"""
Topic-based data channel interface.

Consumers only need `add_topic_handler`; the transport guarantees at most one
in-flight delivery per channel, so handlers run without locking.
"""

import logging
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)

TopicHandler = Callable[[Any], None]


class DataChannel(Protocol):
    def add_topic_handler(self, topic: str, handler: TopicHandler) -> Callable[[], None]: ...


class TopicRegistry:
    """Handler bookkeeping shared by channel implementations."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[TopicHandler]] = {}

    def add_topic_handler(self, topic: str, handler: TopicHandler) -> Callable[[], None]:
        """Add a handler for `topic`. Returns a cleanup function."""
        self._handlers.setdefault(topic, []).append(handler)

        def remove() -> None:
            try:
                self._handlers.get(topic, []).remove(handler)
            except ValueError:
                pass
        return remove

    def has_handlers(self, topic: str) -> bool:
        return bool(self._handlers.get(topic))

    def dispatch(self, topic: str, payload: Any) -> None:
        for handler in list(self._handlers.get(topic, [])):
            try:
                handler(payload)
            except Exception:
                # One failing subscriber must not stop delivery to the others
                logger.exception(f"Handler for topic {topic!r} failed")


class LocalChannel(TopicRegistry):
    """In-process channel: publish() delivers synchronously to subscribers."""

    def publish(self, topic: str, payload: Any) -> None:
        self.dispatch(topic, payload)
