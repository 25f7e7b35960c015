"""
WebSocket transport - a Connection backed by the `websockets` client.

Connects once, pumps frames to handlers in arrival order and reports the
close exactly once. There is no reconnection.
"""

from __future__ import annotations
from typing import Callable
import asyncio
import logging

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from .client import Connection

logger = logging.getLogger(__name__)


class WebSocketConnection(Connection):
    """
    Usage:
        connection = WebSocketConnection("ws://localhost:8001/join")
        client = SessionClient(connection, renderer)
        await connection.run()
    """

    def __init__(self, url: str, open_timeout: float = 10.0):
        self.url = url
        self.open_timeout = open_timeout
        self._message_handlers: list[Callable[[str], None]] = []
        self._close_handlers: list[Callable[[], None]] = []
        self._websocket = None
        self._pending: set[asyncio.Task] = set()
        self._closed = False

    def on_message(self, handler: Callable[[str], None]):
        self._message_handlers.append(handler)

    def on_close(self, handler: Callable[[], None]):
        self._close_handlers.append(handler)

    @property
    def connected(self) -> bool:
        return self._websocket is not None and not self._closed

    def send(self, text: str):
        """Schedule a frame on the running loop."""
        if not self.connected:
            logger.warning("Dropping outbound frame, not connected")
            return
        task = asyncio.get_running_loop().create_task(self._send(text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send(self, text: str):
        try:
            await self._websocket.send(text)
        except ConnectionClosed:
            logger.warning("Connection closed before frame was sent")

    async def run(self):
        """Connect and dispatch frames until the socket closes."""
        try:
            async with websockets.connect(self.url, open_timeout=self.open_timeout) as ws:
                self._websocket = ws
                logger.info("Connected to %s", self.url)
                try:
                    async for frame in ws:
                        if isinstance(frame, bytes):
                            frame = frame.decode("utf-8", errors="replace")
                        for handler in list(self._message_handlers):
                            handler(frame)
                except ConnectionClosed as e:
                    logger.info("Connection closed: %s", e)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.error("Failed to connect to %s: %s", self.url, e)
        finally:
            self._fire_close()

    async def close(self):
        if self._websocket is not None:
            await self._websocket.close()

    def _fire_close(self):
        if self._closed:
            return
        self._closed = True
        for handler in list(self._close_handlers):
            handler()
