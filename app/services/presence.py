"""Process-local presence for the realtime channel.

Tracks which users have at least one open socket in this process. The map lives only
as long as the process and is never consulted for authorization; clients rebuild it
by reconnecting with a valid session after a restart.
"""

import logging
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """user id -> open sockets. Used from the event loop only, so no locking."""

    def __init__(self) -> None:
        self._sockets: dict[int, set[WebSocket]] = {}

    def add(self, user_id: int, ws: WebSocket) -> bool:
        """Register a socket. Returns True when this is the user's first one."""
        sockets = self._sockets.setdefault(user_id, set())
        first = not sockets
        sockets.add(ws)
        return first

    def remove(self, user_id: int, ws: WebSocket) -> bool:
        """Unregister a socket. Returns True when the user has no sockets left."""
        sockets = self._sockets.get(user_id)
        if sockets is None:
            return False
        sockets.discard(ws)
        if sockets:
            return False
        del self._sockets[user_id]
        return True

    def is_online(self, user_id: int) -> bool:
        return user_id in self._sockets

    def online_user_ids(self) -> list[int]:
        return sorted(self._sockets)

    def connection_count(self) -> int:
        return sum(len(s) for s in self._sockets.values())

    async def broadcast(self, message: dict[str, Any], exclude: WebSocket | None = None) -> None:
        """Send to every open socket; sockets that fail are skipped."""
        for sockets in list(self._sockets.values()):
            for ws in list(sockets):
                if ws is exclude:
                    continue
                try:
                    await ws.send_json(message)
                except (WebSocketDisconnect, RuntimeError):
                    logger.debug("Presence broadcast to a closed socket skipped", exc_info=True)

    def clear(self) -> None:
        self._sockets.clear()


presence = PresenceRegistry()
