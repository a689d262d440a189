import logging
from typing import Dict, Iterable

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages active WebSocket connections."""
    def __init__(self):
        # Maps user_id to their active WebSocket connection
        self.active_connections: Dict[str, WebSocket] = {}

    async def add_connection(self, user_id: str, websocket: WebSocket):
        """Adds an already accepted WebSocket connection to the manager."""
        self.active_connections[user_id] = websocket
        logger.info("User connected: %s. Total connections: %s", user_id, len(self.active_connections))

    def disconnect(self, user_id: str):
        if user_id in self.active_connections:
            del self.active_connections[user_id]
            logger.info("User disconnected: %s. Total connections: %s", user_id, len(self.active_connections))

    def is_connected(self, user_id: str) -> bool:
        return user_id in self.active_connections

    async def send_to_user(self, user_id: str, message: dict):
        """Sends a JSON message to a specific user."""
        if user_id in self.active_connections:
            await self.active_connections[user_id].send_json(message)

    async def broadcast_to_users(self, user_ids: Iterable[str], message: dict):
        for user_id in list(user_ids):
            await self.send_to_user(user_id, message)
