"""
WebSocket fan-out for editor events.

ConnectionManager is the kernel's Broadcaster: every accepted editor
operation is sent to each connection on the same theme, except those of the
user who made it. Delivery is at-most-once; a socket that fails a send is
logged and dropped, and its client reloads persisted state on reconnect.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import WebSocket

from themeforge.kernel.broadcast import Broadcaster

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    websocket: WebSocket
    theme_id: str
    user_id: str
    user_name: str | None = None


class ConnectionManager(Broadcaster):
    """Live editor connections grouped by theme."""

    def __init__(self) -> None:
        self._by_theme: dict[str, list[Connection]] = {}

    def connect(self, theme_id: str, user_id: str, websocket: WebSocket, user_name: str | None = None) -> Connection:
        conn = Connection(websocket=websocket, theme_id=theme_id, user_id=user_id, user_name=user_name)
        self._by_theme.setdefault(theme_id, []).append(conn)
        logger.info("ws: connected theme=%s user=%s total=%d", theme_id, user_id, len(self._by_theme[theme_id]))
        return conn

    def disconnect(self, conn: Connection) -> None:
        conns = self._by_theme.get(conn.theme_id, [])
        if conn in conns:
            conns.remove(conn)
            logger.info("ws: disconnected theme=%s user=%s", conn.theme_id, conn.user_id)
        if not conns:
            self._by_theme.pop(conn.theme_id, None)

    def connections(self, theme_id: str) -> list[Connection]:
        return list(self._by_theme.get(theme_id, []))

    def users(self, theme_id: str) -> list[dict[str, Any]]:
        """Distinct collaborators currently connected to a theme."""
        seen: dict[str, dict[str, Any]] = {}
        for conn in self._by_theme.get(theme_id, []):
            seen.setdefault(conn.user_id, {"userId": conn.user_id, "name": conn.user_name})
        return list(seen.values())

    def has_user(self, theme_id: str, user_id: str) -> bool:
        return any(c.user_id == user_id for c in self._by_theme.get(theme_id, []))

    async def broadcast_to_theme(
        self,
        theme_id: str,
        event: str,
        payload: dict[str, Any],
        *,
        exclude_user_id: str | None = None,
    ) -> None:
        message = json.dumps({"type": event, **payload}, default=str)
        for conn in self.connections(theme_id):
            if exclude_user_id is not None and conn.user_id == exclude_user_id:
                continue
            try:
                await conn.websocket.send_text(message)
            except Exception as e:
                logger.warning("ws: dropping connection theme=%s user=%s: %s", theme_id, conn.user_id, e)
                self.disconnect(conn)
