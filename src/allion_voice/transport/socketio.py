"""
Socket.IO data channel.

Each Socket.IO event name is a topic; payloads are passed through untouched
(bytes, str or dict). Waits for the backend's `ready` event before connect()
resolves.
"""

import asyncio
import logging
from typing import Any, Optional

import socketio

from allion_voice.errors import ConnectionError
from allion_voice.models.events import LIFECYCLE_EVENTS
from allion_voice.transport.channel import TopicRegistry

logger = logging.getLogger(__name__)

DEFAULT_SOCKETIO_PATH = "/socket.io/"


class SocketIOChannel(TopicRegistry):
    def __init__(
        self,
        url: str,
        token: str = "",
        socketio_path: str = DEFAULT_SOCKETIO_PATH,
        transports: Optional[list[str]] = None,
        ready_timeout: float = 15.0,
    ):
        super().__init__()
        self._url = url
        self._token = token
        self._socketio_path = socketio_path
        self._transports = transports or ["websocket"]
        self._ready_timeout = ready_timeout
        self._sio: Optional[socketio.AsyncClient] = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected and self._sio is not None and self._sio.connected

    async def connect(self) -> None:
        if self._sio and self._sio.connected:
            return

        self._sio = socketio.AsyncClient()
        ready_event = asyncio.Event()

        @self._sio.on("ready")
        async def on_ready(*_args: Any) -> None:
            self._connected = True
            ready_event.set()

        @self._sio.on("*")
        async def on_any(event: str, data: Any = None) -> None:
            if event in LIFECYCLE_EVENTS:
                return
            if not self.has_handlers(event):
                logger.debug(f"No handler for topic {event!r}")
                return
            self.dispatch(event, data)

        @self._sio.event
        async def disconnect(_reason: str = "") -> None:
            self._connected = False

        auth = {"token": self._token} if self._token else None
        await self._sio.connect(
            self._url,
            auth=auth,
            transports=self._transports,
            socketio_path=self._socketio_path,
        )

        try:
            await asyncio.wait_for(ready_event.wait(), timeout=self._ready_timeout)
        except asyncio.TimeoutError:
            await self._sio.disconnect()
            raise ConnectionError(f"Timed out waiting for 'ready' event after {self._ready_timeout}s")

    def publish(self, topic: str, payload: Any) -> None:
        """Emit `payload` on `topic`. Schedules the emit on the running loop."""
        if not self._sio or not self._sio.connected:
            raise ConnectionError("Socket.IO not connected")

        async def _do_emit() -> None:
            try:
                await self._sio.emit(topic, payload)  # type: ignore[union-attr]
            except Exception as e:
                logger.error(f"Emit failed for {topic}: {e}")

        asyncio.get_running_loop().create_task(_do_emit())

    async def disconnect(self) -> None:
        self._connected = False
        if self._sio:
            await self._sio.disconnect()
            self._sio = None
