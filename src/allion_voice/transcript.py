"""
Transcript engine: turns chat-channel traffic into rendered chat entries.

Payload shapes on the transcript topics:
- str / bytes: one complete message
- dict: a stream chunk {"id", "text", "final", "identity", "timestamp"},
  buffered per stream id until final: true

Each complete message is decoded; structured messages render their text report,
plain messages get the lighter chat formatting. The voice part is left to TTS.
"""

import asyncio
import logging
import time
from typing import Any, AsyncGenerator, Callable, Optional, Sequence

from allion_voice.decoder import decode
from allion_voice.models.events import TRANSCRIPT_TOPICS
from allion_voice.models.message import StructuredMessage
from allion_voice.renderer import RenderContext, format_chat, render
from allion_voice.transport.channel import DataChannel

logger = logging.getLogger(__name__)


class ChatEntry:
    __slots__ = ("id", "timestamp", "sender", "role", "message", "html")

    def __init__(self, id: str, timestamp: int, sender: Optional[str], role: str,
                 message: StructuredMessage, html: str):
        self.id = id
        self.timestamp = timestamp
        self.sender = sender
        self.role = role
        self.message = message
        self.html = html

    def __repr__(self) -> str:
        return f"ChatEntry(id={self.id!r}, role={self.role!r}, structured={self.message.is_structured})"


class TextPartBuffer:
    """Buffer text chunks per stream id, flush on final: true."""

    def __init__(self) -> None:
        self._parts: dict[str, list[str]] = {}

    def collect(self, stream_id: str, content: str, final: bool) -> Optional[str]:
        if stream_id not in self._parts:
            self._parts[stream_id] = []
        if content:
            self._parts[stream_id].append(content)
        if final:
            return "".join(self._parts.pop(stream_id, []))
        return None

    def pending(self) -> int:
        return len(self._parts)


def render_message(raw: str, context: Optional[RenderContext] = None) -> tuple[StructuredMessage, str]:
    message = decode(raw)
    if message.is_structured:
        return message, render(message.text, context)
    return message, format_chat(raw, context)


class TranscriptEngine:
    def __init__(
        self,
        channel: DataChannel,
        topics: Sequence[str] = TRANSCRIPT_TOPICS,
        context: Optional[RenderContext] = None,
        local_identity: Optional[str] = None,
    ):
        self._channel = channel
        self._topics = tuple(topics)
        self._context = context or RenderContext()
        self._local_identity = local_identity
        self._buffer = TextPartBuffer()
        self._queue: Optional[asyncio.Queue[Optional[ChatEntry]]] = None
        self._counter = 0

    def entry_for(self, text: str, stream_id: Optional[str] = None, sender: Optional[str] = None,
                  timestamp: Optional[int] = None) -> ChatEntry:
        self._counter += 1
        message, html = render_message(text, self._context)
        role = "user" if sender is not None and sender == self._local_identity else "assistant"
        return ChatEntry(
            id=stream_id or f"msg-{self._counter}",
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
            sender=sender,
            role=role,
            message=message,
            html=html,
        )

    def _on_payload(self, payload: Any, emit: Callable[[ChatEntry], None]) -> None:
        if isinstance(payload, (bytes, bytearray)):
            payload = bytes(payload).decode("utf-8", errors="replace")
        if isinstance(payload, str):
            emit(self.entry_for(payload))
            return
        if not isinstance(payload, dict):
            logger.debug(f"Ignoring transcript payload of type {type(payload).__name__}")
            return
        stream_id = str(payload.get("id") or "unknown")
        merged = self._buffer.collect(stream_id, payload.get("text") or "", bool(payload.get("final", True)))
        if merged is None:
            return
        emit(self.entry_for(
            merged,
            stream_id=stream_id,
            sender=payload.get("identity"),
            timestamp=payload.get("timestamp"),
        ))

    async def listen(self) -> AsyncGenerator[ChatEntry, None]:
        """Yield entries as messages complete, until close() is called."""
        queue: asyncio.Queue[Optional[ChatEntry]] = asyncio.Queue()
        self._queue = queue

        def handler(payload: Any) -> None:
            self._on_payload(payload, queue.put_nowait)

        removers = [self._channel.add_topic_handler(topic, handler) for topic in self._topics]
        try:
            while True:
                entry = await queue.get()
                if entry is None:
                    break
                yield entry
        finally:
            for remove in removers:
                remove()
            self._queue = None

    def close(self) -> None:
        if self._queue is not None:
            self._queue.put_nowait(None)
