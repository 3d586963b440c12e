from fastapi import WebSocket
from typing import Dict, Iterable, Set
import json
import logging
from datetime import datetime

logger = logging.getLogger(__name__)

class WebSocketManager:
    def __init__(self):
        # Active connections by user_id; a user may have several tabs open
        self.active_connections: Dict[str, Set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        """Register an accepted WebSocket for a user"""
        if user_id not in self.active_connections:
            self.active_connections[user_id] = set()

        self.active_connections[user_id].add(websocket)
        logger.info(f"User {user_id} connected. Total connections: {len(self.active_connections[user_id])}")

        await self.send_personal_message(
            {
                "type": "connection",
                "message": "Connected to note updates",
                "timestamp": datetime.now().isoformat()
            },
            websocket
        )

    def disconnect(self, websocket: WebSocket, user_id: str):
        """Forget a WebSocket for a user"""
        if user_id in self.active_connections:
            self.active_connections[user_id].discard(websocket)

            if not self.active_connections[user_id]:
                del self.active_connections[user_id]

            logger.info(f"User {user_id} disconnected. Remaining connections: {len(self.active_connections.get(user_id, set()))}")

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send a message to one connection"""
        await websocket.send_text(json.dumps(message, default=str))

    async def send_event_to_user(self, user_id: str, event: dict):
        """Send an event to every connection of a user"""
        if user_id not in self.active_connections:
            logger.debug(f"User {user_id} not connected, skipping push")
            return

        message = {
            "type": event.get("type", "event"),
            "data": event,
            "timestamp": datetime.now().isoformat()
        }

        disconnected_websockets = set()
        for websocket in list(self.active_connections[user_id]):
            try:
                await self.send_personal_message(message, websocket)
            except Exception as e:
                logger.error(f"Error sending event to user {user_id}: {e}")
                disconnected_websockets.add(websocket)

        for websocket in disconnected_websockets:
            self.disconnect(websocket, user_id)

    async def send_event_to_users(self, user_ids: Iterable[str], event: dict):
        for user_id in set(user_ids):
            await self.send_event_to_user(user_id, event)

    def get_total_connections(self) -> int:
        return sum(len(connections) for connections in self.active_connections.values())

# Global instance
websocket_manager = WebSocketManager()


async def publish_note_change(note, event: str):
    """Tell both participants of a note that the task's notes changed"""
    await websocket_manager.send_event_to_users(
        [note.sender_id, note.recipient_id],
        {
            "type": "note_changed",
            "event": event,
            "weekly_task_id": note.weekly_task_id,
            "note_id": note.id,
            "status": note.status,
            "updated_at": note.updated_at.isoformat() if note.updated_at else None,
        }
    )
