from fastapi import WebSocket
from typing import Dict, Set
import logging
import asyncio

from edusocial.schemas.websocket import WebSocketMessageType
from edusocial.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    In-process registry of realtime notification sockets.

    A user may be connected from several devices at once; every live socket
    receives each notification. One heartbeat task runs per socket.
    """

    HEARTBEAT_INTERVAL = 30  # seconds

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {}
        self._heartbeats: Dict[WebSocket, asyncio.Task] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        await websocket.accept()
        self.active_connections.setdefault(user_id, set()).add(websocket)
        self._heartbeats[websocket] = asyncio.create_task(self._heartbeat(websocket, user_id))
        logger.info(f"User {user_id} now has {len(self.active_connections[user_id])} live socket(s)")

    def _forget(self, websocket: WebSocket, user_id: str) -> None:
        task = self._heartbeats.pop(websocket, None)
        if task:
            task.cancel()
        sockets = self.active_connections.get(user_id)
        if sockets is not None:
            sockets.discard(websocket)
            if not sockets:
                del self.active_connections[user_id]

    async def disconnect(self, websocket: WebSocket, user_id: str, reason: str = "Unknown"):
        logger.info(f"Dropping socket for user {user_id}: {reason}")
        self._forget(websocket, user_id)
        try:
            if websocket.client_state.name == "CONNECTED":
                await websocket.close()
        except Exception as e:
            logger.warning(f"Failed to close WebSocket for user {user_id}: {e}")

    async def _heartbeat(self, websocket: WebSocket, user_id: str):
        try:
            while True:
                await asyncio.sleep(self.HEARTBEAT_INTERVAL)
                await self._send(websocket, user_id, {
                    "type": WebSocketMessageType.HEARTBEAT.value,
                    "timestamp": utcnow().isoformat(),
                })
        except asyncio.CancelledError:
            pass

    async def _send(self, websocket: WebSocket, user_id: str, message: dict) -> bool:
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"WebSocket send failed for user {user_id}: {e}")
            self._forget(websocket, user_id)
            return False

    def is_user_online(self, user_id: str) -> bool:
        return bool(self.active_connections.get(user_id))

    async def send_notification(self, user_id: str, message: dict) -> int:
        """Send ``message`` to every socket of the user; returns how many got it."""
        sockets = list(self.active_connections.get(user_id, ()))
        if not sockets:
            logger.debug(f"No live socket for user {user_id}")
            return 0
        results = await asyncio.gather(*(self._send(ws, user_id, message) for ws in sockets))
        return sum(results)


manager = ConnectionManager()
