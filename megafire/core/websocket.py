"""
WebSocket manager for real-time updates.
Pushes the table state to every connected client after each change.
"""

import asyncio
import time
from collections import deque
from typing import Deque, Dict, Set

import orjson
from fastapi import WebSocket

from megafire.core.logger import get_logger

logger = get_logger("websocket")

# Close codes worth naming in logs
WS_CLOSE_CODES = {
    1000: "normal",
    1001: "going_away",
    1006: "abnormal",
    1008: "policy_violation",
    1011: "server_error",
}


def normalize_ws_close_code(code: int) -> str:
    return WS_CLOSE_CODES.get(code, f"code_{code}")


class MessageRateLimiter:
    """Sliding window of message timestamps per connection."""

    def __init__(self, max_messages: int = 10, window_seconds: float = 2.0):
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._windows: Dict[int, Deque[float]] = {}

    def allow(self, key: int, now: float = None) -> bool:
        now = time.time() if now is None else now
        window = self._windows.setdefault(key, deque())
        while window and window[0] < now - self.window_seconds:
            window.popleft()
        if len(window) >= self.max_messages:
            return False
        window.append(now)
        return True

    def forget(self, key: int):
        self._windows.pop(key, None)


class ConnectionManager:
    """Tracks table viewers and broadcasts `table_state` messages."""

    def __init__(self):
        self.connections: Set[WebSocket] = set()

    async def _send_json(self, websocket: WebSocket, data: dict):
        # orjson.dumps returns bytes
        await websocket.send_bytes(orjson.dumps(data))

    async def connect(self, websocket: WebSocket, state: dict = None):
        await websocket.accept()
        self.connections.add(websocket)
        logger.info(f"WebSocket connected: total={len(self.connections)}")
        if state is not None:
            await self._send_json(websocket, {"type": "table_state", "event": "connect", "state": state})

    def disconnect(self, websocket: WebSocket):
        self.connections.discard(websocket)
        logger.info(f"WebSocket disconnected: total={len(self.connections)}")

    async def send(self, websocket: WebSocket, message: dict):
        await self._send_json(websocket, message)

    async def broadcast(self, message: dict, batch_size: int = 100, delay: float = 0.01):
        """
        Send to every client in batches to avoid blocking the event loop;
        clients that fail are dropped.
        """
        disconnected = []
        targets = list(self.connections)

        for i in range(0, len(targets), batch_size):
            batch = targets[i : i + batch_size]
            results = await asyncio.gather(
                *(self._send_json(ws, message) for ws in batch), return_exceptions=True
            )
            for ws, result in zip(batch, results):
                if isinstance(result, Exception):
                    disconnected.append(ws)

            is_last_batch = (i + batch_size) >= len(targets)
            if delay > 0 and not is_last_batch:
                await asyncio.sleep(delay)

        if disconnected:
            logger.info(f"Found {len(disconnected)} disconnected clients during broadcast.")
            for ws in disconnected:
                self.connections.discard(ws)

    async def broadcast_state(self, event: str, state: dict):
        await self.broadcast({"type": "table_state", "event": event, "state": state})

    def get_connection_count(self) -> int:
        return len(self.connections)
