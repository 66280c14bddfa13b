import logging
from typing import Dict, List

from fastapi import WebSocket


logger = logging.getLogger(__name__)


class ConnectionManager:
    """Sockets open on this process, keyed by user id."""

    def __init__(self) -> None:
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, user_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.setdefault(user_id, []).append(websocket)
        logger.debug("Socket opened for user %s", user_id)

    def disconnect(self, user_id: str, websocket: WebSocket) -> None:
        sockets = self.active_connections.get(user_id)
        if not sockets:
            return
        if websocket in sockets:
            sockets.remove(websocket)
        if not sockets:
            del self.active_connections[user_id]

    async def send_personal_message(self, user_id: str, message: str) -> int:
        sent = 0
        for conn in list(self.active_connections.get(user_id, [])):
            await conn.send_text(message)
            sent += 1
        return sent


manager = ConnectionManager()
