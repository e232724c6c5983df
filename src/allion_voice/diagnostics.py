"""
Diagnostic side-channel consumer.

Subscribes to the `diagnostic_report` topic and keeps the latest report that
decoded cleanly. A bad message records `last_error` and leaves the previous
report in place; nothing is raised back into the transport.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from pydantic import ValidationError

from allion_voice.errors import ChannelDecodeError
from allion_voice.models.events import Topic
from allion_voice.models.message import TextPayload
from allion_voice.transport.channel import DataChannel

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticState:
    last_report: Optional[TextPayload] = None
    last_error: Optional[str] = None


def decode_report(payload: Any) -> TextPayload:
    """Decode one side-channel payload. Raises ChannelDecodeError."""
    if isinstance(payload, (bytes, bytearray, memoryview)):
        try:
            payload = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ChannelDecodeError(f"Payload is not valid UTF-8: {e}") from e
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except (ValueError, RecursionError) as e:
            raise ChannelDecodeError(f"Payload is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise ChannelDecodeError(f"Expected a JSON object, got {type(payload).__name__}")
    try:
        return TextPayload.model_validate(payload)
    except ValidationError as e:
        raise ChannelDecodeError(
            f"Payload does not match the report schema: {e.error_count()} error(s)",
            details={"errors": e.errors(include_url=False)},
        ) from e


class DiagnosticChannelConsumer:
    def __init__(
        self,
        channel: DataChannel,
        topic: str = Topic.DIAGNOSTIC_REPORT,
        on_report: Optional[Callable[[TextPayload], None]] = None,
    ):
        self._channel = channel
        self._topic = topic
        self._on_report = on_report
        self._remove: Optional[Callable[[], None]] = None
        self.state = DiagnosticState()

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def subscribed(self) -> bool:
        return self._remove is not None

    def start(self) -> None:
        """Subscribe. State starts empty for every subscription."""
        if self._remove is not None:
            return
        self.state = DiagnosticState()
        self._remove = self._channel.add_topic_handler(self._topic, self.handle)

    def stop(self) -> None:
        if self._remove is not None:
            self._remove()
            self._remove = None

    def handle(self, payload: Any) -> None:
        try:
            report = decode_report(payload)
        except ChannelDecodeError as e:
            logger.warning(f"Failed to parse diagnostic data from data channel: {e}")
            self.state.last_error = str(e)
            return

        logger.info(
            "Diagnostic report received: content_length=%d web_sources=%d youtube_videos=%d",
            len(report.content), len(report.web_sources), len(report.youtube_videos),
        )
        self.state.last_report = report
        self.state.last_error = None
        if self._on_report is not None:
            try:
                self._on_report(report)
            except Exception:
                logger.exception("on_report callback failed")
