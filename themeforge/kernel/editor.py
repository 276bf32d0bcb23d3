"""
ThemeForge Kernel - Editor Session Manager

Live, multi-block editing with bounded undo/redo.

Sessions are keyed by (theme_id, user_id) and held by an explicit
SessionRegistry: created on first use, evicted explicitly. A session holds
only undo/redo memory and not-yet-saved live edits. Losing one never loses
block data.

Every recorded operation stores full before/after images of every block it
touched, re-densified siblings included:

    {"blocks": {block_id: block_dict | None}}     None = absent

so applying, undoing and redoing are all the same step: make the store
match an image. Delete where the image says None, create where the store
has nothing, update otherwise.

Operations: add, remove, move, update, duplicate, reorder, inline_edit,
save_pending, undo, redo, create_block_from_template, update_theme_settings

Concurrency: one asyncio lock per theme serialises operations inside this
process. Across processes and collaborators the store's last write wins.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from themeforge.kernel import events as ev
from themeforge.kernel.blocks import CONTAINER_TYPES, get_block_template, is_known_type
from themeforge.kernel.broadcast import Broadcaster, NullBroadcaster
from themeforge.kernel.errors import NotFoundError, ValidationError
from themeforge.kernel.store import BlockPosition, BlockStore
from themeforge.kernel.tokens import apply_settings_update, deep_merge
from themeforge.kernel.types import (
    DEFAULT_VISIBILITY,
    Block,
    BlockOperation,
    HistoryEntry,
    Page,
    Theme,
    now_iso,
)

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

_UNSET: Any = object()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@dataclass
class EditorSession:
    theme_id: str
    user_id: str
    history: list[HistoryEntry] = field(default_factory=list)
    history_index: int = -1
    # block_id -> {prop path: value}, live-preview edits not yet persisted
    pending_edits: dict[str, dict[str, Any]] = field(default_factory=dict)
    # (page_id, parent_id) -> block ids in the previewed order
    pending_reorders: dict[tuple[str, str | None], list[str]] = field(default_factory=dict)
    created_at: str = field(default_factory=now_iso)

    @property
    def can_undo(self) -> bool:
        return self.history_index >= 0

    @property
    def can_redo(self) -> bool:
        return self.history_index < len(self.history) - 1

    @property
    def has_pending_changes(self) -> bool:
        return bool(self.pending_edits or self.pending_reorders)

    def record(self, entry: HistoryEntry, limit: int = HISTORY_LIMIT) -> None:
        """Drop the redo future, append, evict from the front past `limit`."""
        del self.history[self.history_index + 1 :]
        self.history.append(entry)
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]
        self.history_index = len(self.history) - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "themeId": self.theme_id,
            "userId": self.user_id,
            "history": [e.to_dict() for e in self.history],
            "historyIndex": self.history_index,
            "canUndo": self.can_undo,
            "canRedo": self.can_redo,
            "hasPendingChanges": self.has_pending_changes,
        }


class SessionRegistry:
    """All live editor sessions of this process."""

    def __init__(self) -> None:
        self._sessions: dict[tuple[str, str], EditorSession] = {}

    def get_or_create(self, theme_id: str, user_id: str) -> EditorSession:
        key = (theme_id, user_id)
        session = self._sessions.get(key)
        if session is None:
            session = EditorSession(theme_id=theme_id, user_id=user_id)
            self._sessions[key] = session
            logger.info("editor: session opened theme=%s user=%s", theme_id, user_id)
        return session

    def get(self, theme_id: str, user_id: str) -> EditorSession | None:
        return self._sessions.get((theme_id, user_id))

    def evict(self, theme_id: str, user_id: str) -> EditorSession | None:
        session = self._sessions.pop((theme_id, user_id), None)
        if session is not None:
            logger.info("editor: session closed theme=%s user=%s", theme_id, user_id)
        return session

    def sessions_for_theme(self, theme_id: str) -> list[EditorSession]:
        return [s for (tid, _), s in self._sessions.items() if tid == theme_id]

    def __len__(self) -> int:
        return len(self._sessions)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def block_image(blocks: dict[str, Block | None]) -> dict[str, Any]:
    return {"blocks": {bid: (b.to_dict() if b is not None else None) for bid, b in blocks.items()}}


def descendants(page: Page, block_id: str) -> list[Block]:
    """All blocks nested under `block_id`, parents before children."""
    out: list[Block] = []
    frontier = [block_id]
    seen = {block_id}
    while frontier:
        parent = frontier.pop(0)
        for child in page.children_of(parent):
            if child.id in seen:
                continue
            seen.add(child.id)
            out.append(child)
            frontier.append(child.id)
    return out


def renumber(
    ordered: list[Block],
    parent_id: str | None,
    before: dict[str, Block | None],
    after: dict[str, Block | None],
) -> None:
    """
    Give `ordered` the dense orders 0..n-1 under `parent_id`.

    Blocks already present in `after` (new or copied blocks) are updated in
    place. Existing blocks whose order or parent changes get a before/after
    pair.
    """
    for i, block in enumerate(ordered):
        placed = after.get(block.id)
        if placed is not None:
            placed.order = i
            placed.parent_id = parent_id
            continue
        if block.order != i or block.parent_id != parent_id:
            before.setdefault(block.id, copy.deepcopy(block))
            moved = copy.deepcopy(block)
            moved.order = i
            moved.parent_id = parent_id
            after[block.id] = moved


def insert_at(blocks: list[Block], block: Block, position: int | None) -> list[Block]:
    index = len(blocks) if position is None else max(0, min(position, len(blocks)))
    return [*blocks[:index], block, *blocks[index:]]


def set_prop_path(props: dict[str, Any], path: str, value: Any) -> dict[str, Any]:
    """
    Set `value` at a dotted path ("title", "features.0.title").
    Returns a new props dict. Raises ValidationError for unusable paths.
    """
    keys = [k for k in path.split(".") if k]
    if not keys:
        raise ValidationError("Field path is required")
    result = copy.deepcopy(props)
    node: Any = result
    for i, key in enumerate(keys):
        last = i == len(keys) - 1
        if isinstance(node, list):
            if not key.isdigit() or int(key) >= len(node):
                raise ValidationError(f"Invalid list index {key!r} in {path!r}")
            if last:
                node[int(key)] = value
            else:
                node = node[int(key)]
        elif isinstance(node, dict):
            if last:
                node[key] = value
            else:
                if not isinstance(node.get(key), dict | list):
                    node[key] = {}
                node = node[key]
        else:
            raise ValidationError(f"Cannot set {path!r}: {'.'.join(keys[:i])!r} is not an object")
    return result


def _content_key(block: Block) -> dict[str, Any]:
    d = block.to_dict()
    d.pop("order")
    d.pop("parentId")
    return d


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class EditorService:
    """
    Applies editing operations to the store, records them per session, and
    broadcasts them to every other collaborator on the theme.
    """

    def __init__(
        self,
        store: BlockStore,
        broadcaster: Broadcaster | None = None,
        registry: SessionRegistry | None = None,
        *,
        history_limit: int = HISTORY_LIMIT,
        id_factory: Callable[[], str] | None = None,
    ):
        self.store = store
        self.broadcaster = broadcaster or NullBroadcaster()
        self.registry = registry or SessionRegistry()
        self.history_limit = history_limit
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._locks: dict[str, asyncio.Lock] = {}
        # theme_id -> callers holding or waiting on that theme's lock
        self._lock_users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def _theme_lock(self, theme_id: str):
        """
        Per-theme asyncio lock for single-instance serialization.

        The lock is dropped once nobody waits on it and the theme has no
        sessions left, so unknown theme ids never accumulate.
        """
        lock = self._locks.setdefault(theme_id, asyncio.Lock())
        self._lock_users[theme_id] = self._lock_users.get(theme_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[theme_id] -= 1
            self._release_lock(theme_id)

    def _release_lock(self, theme_id: str) -> None:
        if self._lock_users.get(theme_id) or self.registry.sessions_for_theme(theme_id):
            return
        self._lock_users.pop(theme_id, None)
        self._locks.pop(theme_id, None)

    def session(self, theme_id: str, user_id: str) -> EditorSession:
        return self.registry.get_or_create(theme_id, user_id)

    def close_session(self, theme_id: str, user_id: str) -> bool:
        closed = self.registry.evict(theme_id, user_id) is not None
        self._release_lock(theme_id)
        return closed

    # -- lookup --

    async def _load(self, theme_id: str, block_id: str) -> tuple[Theme, Page, Block]:
        theme = await self.store.get_theme(theme_id)
        page, block = theme.find_block(block_id)
        if page is None or block is None:
            raise NotFoundError(f"Block {block_id!r} not found in theme {theme_id!r}")
        return theme, page, block

    @staticmethod
    def _check_parent(page: Page, parent_id: str | None, moving: str | None = None) -> None:
        if parent_id is None:
            return
        parent = page.get_block(parent_id)
        if parent is None:
            raise ValidationError(f"Unknown parent block {parent_id!r}")
        if parent.type not in CONTAINER_TYPES:
            raise ValidationError(f"Block type {parent.type!r} cannot contain other blocks")
        if moving is not None and (parent_id == moving or parent_id in {b.id for b in descendants(page, moving)}):
            raise ValidationError("A block cannot be moved into itself")

    # -- applying images --

    async def _apply_image(self, theme_id: str, image: dict[str, dict[str, Any] | None]) -> None:
        """Make the store match `image` for every block it names."""
        theme = await self.store.get_theme(theme_id)
        current = {b.id: b for page in theme.pages for b in page.blocks}

        deletes: list[str] = []
        creates: list[Block] = []
        updates: list[Block] = []
        positions: list[BlockPosition] = []
        for block_id, raw in image.items():
            existing = current.get(block_id)
            if raw is None:
                if existing is not None:
                    deletes.append(block_id)
                continue
            target = Block.from_dict(raw)
            if existing is None:
                creates.append(target)
            elif _content_key(existing) != _content_key(target):
                updates.append(target)
            elif existing.order != target.order or existing.parent_id != target.parent_id:
                positions.append(BlockPosition(target.id, target.order, target.parent_id))

        for block_id in deletes:
            await self.store.delete_block(block_id)
        for block in _parents_first(creates):
            await self.store.create_block(block)
        for block in updates:
            await self.store.update_block(block)
        if positions:
            await self.store.update_positions(positions)

    async def _commit(
        self,
        session: EditorSession,
        operation: BlockOperation,
        block_id: str,
        before: dict[str, Block | None],
        after: dict[str, Block | None],
        event: str,
        data: dict[str, Any],
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=self._new_id(),
            operation=operation,
            block_id=block_id,
            previous_state=block_image(before),
            new_state=block_image(after),
            timestamp=now_iso(),
        )
        await self._apply_image(session.theme_id, entry.new_state["blocks"])
        session.record(entry, self.history_limit)
        logger.info(
            "editor: %s theme=%s block=%s user=%s touched=%d",
            operation.value,
            session.theme_id,
            block_id,
            session.user_id,
            len(after),
        )
        await self._broadcast(session, event, {**data, "historyEntryId": entry.id})
        return entry

    async def _broadcast(self, session: EditorSession, event: str, data: dict[str, Any], *, transient: bool = False) -> None:
        payload = ev.make_event(event, session.theme_id, session.user_id, data, transient=transient)
        try:
            await self.broadcaster.broadcast_to_theme(
                session.theme_id, event, payload, exclude_user_id=session.user_id
            )
        except Exception as e:
            # Fire-and-forget: the operation is already persisted.
            logger.warning("editor: broadcast %s failed theme=%s: %s", event, session.theme_id, e)

    # -- add --

    async def add_block(
        self,
        theme_id: str,
        user_id: str,
        page_id: str,
        block_type: str,
        props: dict[str, Any] | None = None,
        *,
        position: int | None = None,
        parent_id: str | None = None,
        link: dict[str, Any] | None = None,
        visibility: dict[str, bool] | None = None,
        animation: dict[str, Any] | None = None,
    ) -> Block:
        async with self._theme_lock(theme_id):
            theme = await self.store.get_theme(theme_id)
            page = theme.get_page(page_id)
            if page is None:
                raise NotFoundError(f"Page {page_id!r} not found in theme {theme_id!r}")
            if not is_known_type(block_type):
                raise ValidationError(f"Unknown block type {block_type!r}")
            self._check_parent(page, parent_id)

            block = Block(
                id=self._new_id(),
                type=block_type,
                page_id=page_id,
                props=copy.deepcopy(props or {}),
                parent_id=parent_id,
                link=copy.deepcopy(link),
                visibility={**DEFAULT_VISIBILITY, **(visibility or {})},
                animation=copy.deepcopy(animation),
            )
            before: dict[str, Block | None] = {block.id: None}
            after: dict[str, Block | None] = {block.id: block}
            renumber(insert_at(page.children_of(parent_id), block, position), parent_id, before, after)

            session = self.session(theme_id, user_id)
            await self._commit(
                session,
                BlockOperation.ADD,
                block.id,
                before,
                after,
                ev.BLOCK_ADDED,
                {"blockId": block.id, "pageId": page_id, "block": block.to_dict()},
            )
            return copy.deepcopy(block)

    async def create_block_from_template(
        self,
        theme_id: str,
        user_id: str,
        template_id: str,
        page_id: str,
        *,
        position: int | None = None,
        parent_id: str | None = None,
        props: dict[str, Any] | None = None,
    ) -> Block:
        template = get_block_template(template_id)
        if template is None:
            raise NotFoundError(f"Block template {template_id!r} not found")
        return await self.add_block(
            theme_id,
            user_id,
            page_id,
            template["type"],
            deep_merge(template["defaultProps"], props or {}),
            position=position,
            parent_id=parent_id,
        )

    # -- remove --

    async def remove_block(self, theme_id: str, user_id: str, block_id: str) -> Block:
        """Remove a block and everything nested under it. Returns the removed block."""
        async with self._theme_lock(theme_id):
            theme, page, block = await self._load(theme_id, block_id)

            removed = [block, *descendants(page, block_id)]
            before: dict[str, Block | None] = {b.id: copy.deepcopy(b) for b in removed}
            after: dict[str, Block | None] = {b.id: None for b in removed}
            siblings = [b for b in page.children_of(block.parent_id) if b.id != block_id]
            renumber(siblings, block.parent_id, before, after)

            session = self.session(theme_id, user_id)
            await self._commit(
                session,
                BlockOperation.REMOVE,
                block_id,
                before,
                after,
                ev.BLOCK_REMOVED,
                {"blockId": block_id, "pageId": page.id, "removedIds": [b.id for b in removed]},
            )
            session.pending_edits.pop(block_id, None)
            return block

    # -- move --

    async def move_block(
        self,
        theme_id: str,
        user_id: str,
        block_id: str,
        position: int,
        *,
        parent_id: str | None = _UNSET,
    ) -> Block:
        """Move within the block's scope, or into another container of the same page."""
        async with self._theme_lock(theme_id):
            theme, page, block = await self._load(theme_id, block_id)

            new_parent = block.parent_id if parent_id is _UNSET else parent_id
            before: dict[str, Block | None] = {}
            after: dict[str, Block | None] = {}
            old_scope = [b for b in page.children_of(block.parent_id) if b.id != block_id]
            if new_parent == block.parent_id:
                renumber(insert_at(old_scope, block, position), new_parent, before, after)
            else:
                self._check_parent(page, new_parent, moving=block_id)
                renumber(old_scope, block.parent_id, before, after)
                renumber(insert_at(page.children_of(new_parent), block, position), new_parent, before, after)

            moved = after.get(block_id)
            if moved is None:
                return block

            session = self.session(theme_id, user_id)
            await self._commit(
                session,
                BlockOperation.MOVE,
                block_id,
                before,
                after,
                ev.BLOCK_MOVED,
                {
                    "blockId": block_id,
                    "pageId": page.id,
                    "order": moved.order,
                    "parentId": moved.parent_id,
                    "positions": {bid: b.order for bid, b in after.items() if b is not None},
                },
            )
            return copy.deepcopy(moved)

    # -- update --

    async def update_block(
        self,
        theme_id: str,
        user_id: str,
        block_id: str,
        *,
        props: dict[str, Any] | None = None,
        link: dict[str, Any] | None = _UNSET,
        visibility: dict[str, bool] | None = None,
        animation: dict[str, Any] | None = _UNSET,
        replace_props: bool = False,
    ) -> Block:
        """Props are shallow-merged into the existing ones unless replace_props."""
        async with self._theme_lock(theme_id):
            theme, page, block = await self._load(theme_id, block_id)

            updated = copy.deepcopy(block)
            if props is not None:
                updated.props = copy.deepcopy(props) if replace_props else {**block.props, **copy.deepcopy(props)}
            if link is not _UNSET:
                updated.link = copy.deepcopy(link)
            if visibility is not None:
                updated.visibility = {**block.visibility, **visibility}
            if animation is not _UNSET:
                updated.animation = copy.deepcopy(animation)

            session = self.session(theme_id, user_id)
            return await self._record_update(session, block, updated, ev.BLOCK_UPDATED)

    async def _record_update(self, session: EditorSession, block: Block, updated: Block, event: str) -> Block:
        await self._commit(
            session,
            BlockOperation.UPDATE,
            block.id,
            {block.id: copy.deepcopy(block)},
            {block.id: updated},
            event,
            {"blockId": block.id, "pageId": block.page_id, "block": updated.to_dict()},
        )
        return copy.deepcopy(updated)

    # -- duplicate --

    async def duplicate_block(self, theme_id: str, user_id: str, block_id: str) -> Block:
        """Copy a block and its subtree, placed right after the original."""
        async with self._theme_lock(theme_id):
            theme, page, block = await self._load(theme_id, block_id)

            subtree = [block, *descendants(page, block_id)]
            id_map = {b.id: self._new_id() for b in subtree}
            copies: list[Block] = []
            for original in subtree:
                clone = copy.deepcopy(original)
                clone.id = id_map[original.id]
                clone.parent_id = id_map.get(original.parent_id, original.parent_id) if original.parent_id else None
                copies.append(clone)
            root = copies[0]

            before: dict[str, Block | None] = {c.id: None for c in copies}
            after: dict[str, Block | None] = {c.id: c for c in copies}
            scope = page.children_of(block.parent_id)
            index = next(i for i, b in enumerate(scope) if b.id == block_id)
            renumber(insert_at(scope, root, index + 1), block.parent_id, before, after)

            session = self.session(theme_id, user_id)
            await self._commit(
                session,
                BlockOperation.DUPLICATE,
                root.id,
                before,
                after,
                ev.BLOCK_DUPLICATED,
                {"blockId": block_id, "newBlockId": root.id, "pageId": page.id, "block": root.to_dict()},
            )
            return copy.deepcopy(root)

    # -- reorder --

    async def reorder_blocks(
        self,
        theme_id: str,
        user_id: str,
        page_id: str,
        block_ids: list[str],
        *,
        parent_id: str | None = None,
        save_immediately: bool = True,
    ) -> list[Block]:
        """
        Reorder one sibling scope. Result is always dense (0..n-1) over exactly
        the scope's blocks: duplicate ids keep their first position, omitted
        blocks follow in their current order.

        With save_immediately=False the new order is only broadcast (live
        preview) and kept on the session until save_pending().
        """
        async with self._theme_lock(theme_id):
            blocks, _ = await self._reorder(
                theme_id, user_id, page_id, block_ids, parent_id, save_immediately
            )
            return blocks

    async def _reorder(
        self,
        theme_id: str,
        user_id: str,
        page_id: str,
        block_ids: list[str],
        parent_id: str | None,
        save_immediately: bool,
    ) -> tuple[list[Block], HistoryEntry | None]:
        theme = await self.store.get_theme(theme_id)
        page = theme.get_page(page_id)
        if page is None:
            raise NotFoundError(f"Page {page_id!r} not found in theme {theme_id!r}")
        scope = page.children_of(parent_id)
        by_id = {b.id: b for b in scope}
        unknown = [bid for bid in block_ids if bid not in by_id]
        if unknown:
            raise ValidationError(f"Blocks not in this scope: {', '.join(unknown)}")

        final = list(dict.fromkeys(block_ids))
        final += [b.id for b in scope if b.id not in final]
        ordered = [by_id[bid] for bid in final]
        session = self.session(theme_id, user_id)

        if not save_immediately:
            session.pending_reorders[(page_id, parent_id)] = final
            preview = []
            for i, block in enumerate(ordered):
                shown = copy.deepcopy(block)
                shown.order = i
                preview.append(shown)
            await self._broadcast(
                session,
                ev.BLOCKS_REORDERED,
                {"pageId": page_id, "parentId": parent_id, "blockIds": final},
                transient=True,
            )
            return preview, None

        session.pending_reorders.pop((page_id, parent_id), None)
        before: dict[str, Block | None] = {}
        after: dict[str, Block | None] = {}
        renumber(ordered, parent_id, before, after)
        entry = None
        if after:
            entry = await self._commit(
                session,
                BlockOperation.REORDER,
                parent_id or page_id,
                before,
                after,
                ev.BLOCKS_REORDERED,
                {"pageId": page_id, "parentId": parent_id, "blockIds": final},
            )
        result = []
        for block in ordered:
            result.append(copy.deepcopy(after.get(block.id) or block))
        return result, entry

    # -- inline edit --

    async def inline_edit(
        self,
        theme_id: str,
        user_id: str,
        block_id: str,
        field: str,
        value: Any,
        *,
        save_immediately: bool = False,
    ) -> Block:
        """
        Edit one prop in place. Live preview by default: broadcast only, kept
        on the session until save_pending(). Returns the block as previewed.
        """
        async with self._theme_lock(theme_id):
            theme, page, block = await self._load(theme_id, block_id)

            existing = self.registry.get(theme_id, user_id)
            pending = dict(existing.pending_edits.get(block_id, {})) if existing else {}

            if save_immediately:
                props = block.props
                for path, pending_value in pending.items():
                    props = set_prop_path(props, path, pending_value)
                updated = copy.deepcopy(block)
                updated.props = set_prop_path(props, field, value)
                session = self.session(theme_id, user_id)
                session.pending_edits.pop(block_id, None)
                return await self._record_update(session, block, updated, ev.INLINE_EDIT)

            preview_props = block.props
            edits = {**pending, field: value}
            for path, pending_value in edits.items():
                preview_props = set_prop_path(preview_props, path, pending_value)
            session = self.session(theme_id, user_id)
            session.pending_edits[block_id] = edits

            await self._broadcast(
                session,
                ev.INLINE_EDIT,
                {"blockId": block_id, "pageId": page.id, "field": field, "value": value},
                transient=True,
            )
            preview = copy.deepcopy(block)
            preview.props = preview_props
            return preview

    async def save_pending(self, theme_id: str, user_id: str) -> list[HistoryEntry]:
        """Persist live edits and reorders as ordinary recorded operations."""
        async with self._theme_lock(theme_id):
            session = self.registry.get(theme_id, user_id)
            if session is None or not session.has_pending_changes:
                return []

            entries: list[HistoryEntry] = []
            pending_edits, session.pending_edits = session.pending_edits, {}
            for block_id, edits in pending_edits.items():
                theme = await self.store.get_theme(theme_id)
                _, block = theme.find_block(block_id)
                if block is None:
                    logger.info("editor: dropping pending edit for removed block=%s", block_id)
                    continue
                props = block.props
                for path, value in edits.items():
                    props = set_prop_path(props, path, value)
                updated = copy.deepcopy(block)
                updated.props = props
                await self._record_update(session, block, updated, ev.BLOCK_UPDATED)
                entries.append(session.history[session.history_index])

            pending_reorders, session.pending_reorders = session.pending_reorders, {}
            for (page_id, parent_id), block_ids in pending_reorders.items():
                theme = await self.store.get_theme(theme_id)
                page = theme.get_page(page_id)
                if page is None:
                    continue
                present = {b.id for b in page.children_of(parent_id)}
                _, entry = await self._reorder(
                    theme_id, user_id, page_id, [b for b in block_ids if b in present], parent_id, True
                )
                if entry is not None:
                    entries.append(entry)

            return entries

    # -- undo / redo --

    async def undo(self, theme_id: str, user_id: str) -> HistoryEntry | None:
        """Restore the state before the entry at history_index. None when nothing to undo."""
        async with self._theme_lock(theme_id):
            session = self.registry.get(theme_id, user_id)
            if session is None or not session.can_undo:
                return None
            entry = session.history[session.history_index]
            await self._apply_image(theme_id, entry.previous_state["blocks"])
            session.history_index -= 1
            logger.info("editor: undo %s theme=%s block=%s", entry.operation.value, theme_id, entry.block_id)
            await self._broadcast(
                session, ev.UNDONE, {"entry": entry.to_dict(), "historyIndex": session.history_index}
            )
            return entry

    async def redo(self, theme_id: str, user_id: str) -> HistoryEntry | None:
        """Re-apply the entry after history_index. None when nothing to redo."""
        async with self._theme_lock(theme_id):
            session = self.registry.get(theme_id, user_id)
            if session is None or not session.can_redo:
                return None
            entry = session.history[session.history_index + 1]
            await self._apply_image(theme_id, entry.new_state["blocks"])
            session.history_index += 1
            logger.info("editor: redo %s theme=%s block=%s", entry.operation.value, theme_id, entry.block_id)
            await self._broadcast(
                session, ev.REDONE, {"entry": entry.to_dict(), "historyIndex": session.history_index}
            )
            return entry

    def history(self, theme_id: str, user_id: str) -> dict[str, Any]:
        session = self.registry.get(theme_id, user_id)
        if session is None:
            return EditorSession(theme_id=theme_id, user_id=user_id).to_dict()
        return session.to_dict()

    # -- settings --

    async def update_theme_settings(
        self,
        theme_id: str,
        user_id: str,
        settings: dict[str, Any],
        *,
        merge: bool = True,
        custom_css: str | None = None,
    ) -> dict[str, Any]:
        """Deep-merge into, or replace, the theme's design settings. Not part of undo history."""
        if not isinstance(settings, dict):
            raise ValidationError("Settings must be an object")
        async with self._theme_lock(theme_id):
            theme = await self.store.get_theme(theme_id)
            updated = apply_settings_update(theme.settings, settings, merge=merge)
            await self.store.update_settings(theme_id, updated, custom_css)
            session = self.session(theme_id, user_id)
            logger.info("editor: settings updated theme=%s merge=%s", theme_id, merge)
            await self._broadcast(
                session,
                ev.SETTINGS_UPDATED,
                {"settings": updated, "customCssChanged": custom_css is not None},
            )
            return updated


def _parents_first(blocks: list[Block]) -> list[Block]:
    pending = {b.id: b for b in blocks}
    ordered: list[Block] = []
    while pending:
        ready = [b for b in pending.values() if b.parent_id not in pending]
        if not ready:
            ready = list(pending.values())
        for block in ready:
            ordered.append(block)
            del pending[block.id]
    return ordered
