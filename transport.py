import asyncio
import json
from typing import Optional

from fastapi import WebSocket

from constants import OUTBOUND_QUEUE_SIZE
from logging_config import get_logger

logger = get_logger(__name__)


class WebSocketTransport:
    """Buffered outbound channel for one WebSocket.

    deliver() only enqueues; a writer task drains the queue to the socket in
    order, so a slow client never stalls the coordinator or other sessions.
    Once closed, further messages are dropped.
    """

    def __init__(self, websocket: WebSocket, max_queue: int = OUTBOUND_QUEUE_SIZE):
        self.websocket = websocket
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.closed = False
        self._writer: Optional[asyncio.Task] = None

    def start(self):
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_loop())

    def deliver(self, message: dict) -> bool:
        if self.closed:
            return False
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full, dropped {message.get('type')} message")
            return False
        return True

    async def _write_loop(self):
        while True:
            message = await self.queue.get()
            try:
                await self.websocket.send_text(json.dumps(message))
            except Exception as e:
                logger.debug(f"Error sending to WebSocket, closing transport: {e}")
                self.closed = True
                return

    async def close(self):
        self.closed = True
        if self._writer is not None:
            self._writer.cancel()
            await asyncio.gather(self._writer, return_exceptions=True)
            self._writer = None
        try:
            await self.websocket.close()
        except Exception as e:
            logger.debug(f"Error closing WebSocket: {e}")
