"""
WebSocket Manager - pushes change notifications to the rendering surface.

The renderer keeps one socket open. It re-fetches the world projection on
`world_updated` and refreshes its "saved" indicator on `project_saved`.
"""
import asyncio
import json
import logging
from typing import Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class WebSocketManager:
    """Tracks open sockets and fans messages out to all of them."""

    def __init__(self):
        self._connections: Set[WebSocket] = set()
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket):
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info("Renderer connected (%d open)", len(self._connections))

    async def disconnect(self, websocket: WebSocket):
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("Renderer disconnected (%d open)", len(self._connections))

    async def broadcast(self, message: dict):
        """
        Send one JSON message to every socket.

        A socket whose send fails is assumed gone and is dropped.
        """
        if not self._connections:
            return

        text = json.dumps(message)
        dead: Set[WebSocket] = set()
        async with self._lock:
            for websocket in self._connections:
                try:
                    await websocket.send_text(text)
                except Exception:
                    dead.add(websocket)
            self._connections -= dead
        if dead:
            logger.debug("Dropped %d stale socket(s)", len(dead))

    async def notify_world_updated(self, project_id: Optional[str] = None):
        """The world changed; clients should GET /api/world."""
        await self.broadcast({"type": "world_updated", "project_id": project_id})

    async def notify_project_saved(self, name: str, updated_at: str, node_count: int, edge_count: int):
        """A snapshot reached the store."""
        await self.broadcast({
            "type": "project_saved",
            "name": name,
            "updated_at": updated_at,
            "node_count": node_count,
            "edge_count": edge_count,
        })
