"""
ThemeForge Kernel - Editor Events

Names and payload construction for everything the editor broadcasts to
collaborators on the same theme.
"""

from __future__ import annotations

from typing import Any

from themeforge.kernel.types import now_iso

BLOCK_ADDED = "blockAdded"
BLOCK_REMOVED = "blockRemoved"
BLOCK_MOVED = "blockMoved"
BLOCK_UPDATED = "blockUpdated"
BLOCK_DUPLICATED = "blockDuplicated"
BLOCKS_REORDERED = "blocksReordered"
INLINE_EDIT = "inlineEdit"
UNDONE = "undone"
REDONE = "redone"
SETTINGS_UPDATED = "settingsUpdated"

EDITOR_EVENTS: tuple[str, ...] = (
    BLOCK_ADDED,
    BLOCK_REMOVED,
    BLOCK_MOVED,
    BLOCK_UPDATED,
    BLOCK_DUPLICATED,
    BLOCKS_REORDERED,
    INLINE_EDIT,
    UNDONE,
    REDONE,
    SETTINGS_UPDATED,
)


def make_event(
    event: str,
    theme_id: str,
    user_id: str,
    data: dict[str, Any],
    *,
    transient: bool = False,
    timestamp: str | None = None,
) -> dict[str, Any]:
    """
    Build a broadcast payload.

    transient marks live-preview edits that were not persisted or recorded.
    """
    payload: dict[str, Any] = {
        "event": event,
        "themeId": theme_id,
        "userId": user_id,
        "timestamp": timestamp or now_iso(),
        **data,
    }
    if transient:
        payload["transient"] = True
    return payload
