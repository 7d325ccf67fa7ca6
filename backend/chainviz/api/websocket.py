"""WebSocket connection manager for real-time playback snapshots."""
import asyncio
import json
import logging
from typing import Any, Callable

from fastapi import WebSocket

from ..engine.playback import PlaybackSnapshot

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages active WebSocket connections per playback session."""

    def __init__(self):
        self._connections: dict[str, list[WebSocket]] = {}
        self._pending: set[asyncio.Task] = set()

    async def connect(self, session_id: str, websocket: WebSocket):
        await websocket.accept()
        if session_id not in self._connections:
            self._connections[session_id] = []
        self._connections[session_id].append(websocket)

    def disconnect(self, session_id: str, websocket: WebSocket):
        if session_id in self._connections:
            self._connections[session_id] = [
                ws for ws in self._connections[session_id] if ws is not websocket
            ]
            if not self._connections[session_id]:
                del self._connections[session_id]

    def connection_count(self, session_id: str) -> int:
        return len(self._connections.get(session_id, []))

    async def send_to_session(self, session_id: str, data: dict[str, Any]):
        if session_id not in self._connections:
            return
        message = json.dumps(data)
        dead: list[WebSocket] = []
        for ws in self._connections[session_id]:
            try:
                await ws.send_text(message)
            except Exception:
                logger.debug("Dropping dead websocket for session %s", session_id)
                dead.append(ws)
        for ws in dead:
            self.disconnect(session_id, ws)

    async def _close_sockets(self, session_id: str, sockets: list[WebSocket], code: int = 1000):
        for ws in sockets:
            try:
                await ws.close(code=code)
            except Exception:
                logger.debug("Websocket for session %s already closed", session_id)

    def _schedule(self, coro) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def close_listener(self, session_id: str) -> None:
        """Session close callback: stops tracking the session's sockets and closes them."""
        sockets = self._connections.pop(session_id, [])
        if sockets:
            self._schedule(self._close_sockets(session_id, sockets))

    def make_snapshot_listener(self, session_id: str) -> Callable[[PlaybackSnapshot], None]:
        """Create an engine listener that pushes snapshots from the event loop.

        Engine notifications arrive on the loop thread (timer callbacks or
        request handlers), so sends are scheduled as tasks in call order.
        """
        def listener(snapshot: PlaybackSnapshot):
            payload = {"type": "playback_state", "session_id": session_id, **snapshot.to_dict()}
            self._schedule(self.send_to_session(session_id, payload))
        return listener


manager = ConnectionManager()
