"""
ThemeForge Kernel - Broadcast Channel

The editor publishes every accepted operation to the other collaborators on
the same theme. Delivery is fire-and-forget and at-most-once; the transport
(WebSocket fan-out in backend/services/broadcaster.py) lives outside the kernel.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class Broadcaster:
    """Abstract broadcast channel."""

    async def broadcast_to_theme(
        self,
        theme_id: str,
        event: str,
        payload: dict[str, Any],
        *,
        exclude_user_id: str | None = None,
    ) -> None:
        raise NotImplementedError


class NullBroadcaster(Broadcaster):
    """Drops everything. For single-user and offline use."""

    async def broadcast_to_theme(
        self,
        theme_id: str,
        event: str,
        payload: dict[str, Any],
        *,
        exclude_user_id: str | None = None,
    ) -> None:
        return None


@dataclass
class BroadcastRecord:
    theme_id: str
    event: str
    payload: dict[str, Any]
    exclude_user_id: str | None


class RecordingBroadcaster(Broadcaster):
    """Keeps every broadcast in order, for tests."""

    def __init__(self) -> None:
        self.records: list[BroadcastRecord] = []

    async def broadcast_to_theme(
        self,
        theme_id: str,
        event: str,
        payload: dict[str, Any],
        *,
        exclude_user_id: str | None = None,
    ) -> None:
        self.records.append(BroadcastRecord(theme_id, event, payload, exclude_user_id))

    def events(self, theme_id: str | None = None) -> list[str]:
        return [r.event for r in self.records if theme_id is None or r.theme_id == theme_id]
