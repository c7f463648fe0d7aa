# broadcaster.py — Topic-based publish/subscribe over live WebSocket connections
# Topics are user ids, board ids and workspace ids. Delivery is at-most-once:
# no persistence, no replay, and a socket that fails a send is dropped.

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

logger = logging.getLogger("taskboard.ws")


class EventBroadcaster:
    """Registry of sockets per topic"""

    def __init__(self):
        self._rooms: Dict[str, Set[Any]] = {}  # topic -> {websocket}
        self._users: Dict[Any, str] = {}  # websocket -> user_id

    def register(self, websocket, user_id: str):
        """Track a connection and join its personal user topic."""
        self._users[websocket] = user_id
        self.subscribe(websocket, user_id)
        logger.info(f"WS connected: user={user_id[:8]}")

    def unregister(self, websocket):
        user_id = self._users.pop(websocket, None)
        for topic in list(self._rooms.keys()):
            self._rooms[topic].discard(websocket)
            if not self._rooms[topic]:
                del self._rooms[topic]
        if user_id:
            logger.info(f"WS disconnected: user={user_id[:8]}")

    def subscribe(self, websocket, topic: str):
        self._rooms.setdefault(topic, set()).add(websocket)

    def unsubscribe(self, websocket, topic: str):
        if topic in self._rooms:
            self._rooms[topic].discard(websocket)
            if not self._rooms[topic]:
                del self._rooms[topic]

    def unsubscribe_user(self, user_id: str, topic: str) -> int:
        """Drop every socket of one user from a topic. Returns sockets removed."""
        removed = 0
        for ws, owner in list(self._users.items()):
            if owner == user_id and ws in self._rooms.get(topic, ()):
                self.unsubscribe(ws, topic)
                removed += 1
        if removed:
            logger.info(f"WS revoked: user={user_id[:8]} topic={topic[:8]} sockets={removed}")
        return removed

    def subscribers(self, topic: str) -> int:
        return len(self._rooms.get(topic, ()))

    async def publish(
        self,
        topic: str,
        event: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Send an event to every socket in a topic. Returns delivered count."""
        sockets = self._rooms.get(topic)
        if not sockets:
            return 0
        message = {
            "type": event,
            **(payload or {}),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        delivered = 0
        dead = []
        for ws in list(sockets):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"WS send failed on topic={topic[:8]}: {e}")
                dead.append(ws)
        for ws in dead:
            self.unregister(ws)
        return delivered

    def get_stats(self) -> dict:
        return {
            "total_connections": len(self._users),
            "users": len(set(self._users.values())),
            "topics": len(self._rooms),
        }


def event_payload(entity_id: str, board_id: Optional[str], data: Any, message: str) -> Dict[str, Any]:
    return {
        "entity_id": entity_id,
        "board_id": board_id,
        "data": data,
        "message": message,
    }


# Global broadcaster
broadcaster = EventBroadcaster()
