"""
ThemeForge Editor -- Undo / Redo History

Per-session linear history capped at 50 entries. Undo restores the exact
before-image of every block an operation touched; redo re-applies the
after-image. A new operation after undo discards the redo future.
"""

import pytest

from themeforge.kernel.editor import HISTORY_LIMIT, EditorService
from themeforge.kernel.errors import NotFoundError, ValidationError
from themeforge.kernel.types import BlockOperation

from themeforge.kernel.tests.factories import HOME_PAGE_ID, THEME_ID, page_state

USER = "user-1"
OTHER = "user-2"


async def state(store):
    return page_state(await store.get_theme(THEME_ID))


class TestUndoRedo:
    @pytest.mark.asyncio
    async def test_add_update_undo_undo_redo_redo(self, editor, store):
        block = await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "heading", {"text": "Draft"})
        await editor.update_block(THEME_ID, USER, block.id, props={"text": "Final"})

        entry = await editor.undo(THEME_ID, USER)
        assert entry.operation == BlockOperation.UPDATE
        assert (await store.get_block(block.id)).props["text"] == "Draft"

        entry = await editor.undo(THEME_ID, USER)
        assert entry.operation == BlockOperation.ADD
        assert await store.get_block(block.id) is None

        entry = await editor.redo(THEME_ID, USER)
        assert entry.operation == BlockOperation.ADD
        assert (await store.get_block(block.id)).props["text"] == "Draft"

        entry = await editor.redo(THEME_ID, USER)
        assert entry.operation == BlockOperation.UPDATE
        assert (await store.get_block(block.id)).props["text"] == "Final"

        history = editor.history(THEME_ID, USER)
        assert history["historyIndex"] == 1
        assert history["canUndo"] is True
        assert history["canRedo"] is False

    @pytest.mark.asyncio
    async def test_nothing_to_undo_or_redo(self, editor):
        assert await editor.undo(THEME_ID, USER) is None
        assert await editor.redo(THEME_ID, USER) is None

    @pytest.mark.asyncio
    async def test_undo_everything_restores_initial_state(self, editor, store):
        initial = await state(store)

        row = await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "row", {"columns": 2}, position=1)
        await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text", {"content": "Left"}, parent_id=row.id)
        await editor.move_block(THEME_ID, USER, "hero-1", 0, parent_id=row.id)
        await editor.update_block(THEME_ID, USER, "features-1", props={"title": "Changed"}, visibility={"mobile": False})
        copy = await editor.duplicate_block(THEME_ID, USER, row.id)
        await editor.reorder_blocks(THEME_ID, USER, HOME_PAGE_ID, [copy.id, "features-1", row.id])
        await editor.inline_edit(THEME_ID, USER, "features-1", "features.1.title", "Quick", save_immediately=True)
        await editor.remove_block(THEME_ID, USER, row.id)
        final = await state(store)
        operations = len(editor.history(THEME_ID, USER)["history"])
        assert operations == 8

        for _ in range(operations):
            assert await editor.undo(THEME_ID, USER) is not None
        assert await state(store) == initial

        for _ in range(operations):
            assert await editor.redo(THEME_ID, USER) is not None
        assert await state(store) == final

    @pytest.mark.asyncio
    async def test_undo_remove_restores_children(self, editor, store):
        row = await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "row")
        child = await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text", {"content": "Kept"}, parent_id=row.id)
        before = await state(store)

        await editor.remove_block(THEME_ID, USER, row.id)
        await editor.undo(THEME_ID, USER)

        assert await state(store) == before
        assert (await store.get_block(child.id)).parent_id == row.id

    @pytest.mark.asyncio
    async def test_new_operation_truncates_redo(self, editor):
        await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")
        await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")
        await editor.undo(THEME_ID, USER)
        assert editor.history(THEME_ID, USER)["canRedo"] is True

        await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "cta")

        history = editor.history(THEME_ID, USER)
        assert len(history["history"]) == 2
        assert history["historyIndex"] == 1
        assert history["canRedo"] is False
        assert await editor.redo(THEME_ID, USER) is None


class TestHistoryBounds:
    @pytest.mark.asyncio
    async def test_history_is_capped(self, editor):
        added = []
        for i in range(60):
            added.append(await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text", {"content": str(i)}))

        session = editor.registry.get(THEME_ID, USER)
        assert len(session.history) == HISTORY_LIMIT == 50
        assert session.history_index == 49
        assert session.history[0].block_id == added[10].id
        assert session.history[-1].block_id == added[59].id

    @pytest.mark.asyncio
    async def test_undo_stops_at_cap(self, editor, store):
        for i in range(55):
            await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text", {"content": str(i)})

        undone = 0
        while await editor.undo(THEME_ID, USER) is not None:
            undone += 1

        assert undone == 50
        remaining = (await store.get_theme(THEME_ID)).get_page(HOME_PAGE_ID).blocks
        assert len(remaining) == 2 + 5

    @pytest.mark.asyncio
    async def test_custom_limit(self, store):
        editor = EditorService(store, history_limit=3)
        for _ in range(5):
            await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")
        assert len(editor.history(THEME_ID, USER)["history"]) == 3


class TestSessions:
    @pytest.mark.asyncio
    async def test_sessions_are_per_user(self, editor, store):
        mine = await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")
        await editor.add_block(THEME_ID, OTHER, HOME_PAGE_ID, "cta")

        entry = await editor.undo(THEME_ID, USER)

        assert entry.block_id == mine.id
        assert await store.get_block(mine.id) is None
        assert editor.history(THEME_ID, OTHER)["historyIndex"] == 0

    @pytest.mark.asyncio
    async def test_close_session_drops_history_only(self, editor, store):
        block = await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")

        assert editor.close_session(THEME_ID, USER) is True
        assert editor.close_session(THEME_ID, USER) is False
        assert await editor.undo(THEME_ID, USER) is None
        assert await store.get_block(block.id) is not None

    @pytest.mark.asyncio
    async def test_history_without_session(self, editor):
        history = editor.history(THEME_ID, "stranger")
        assert history["history"] == []
        assert history["historyIndex"] == -1
        assert history["canUndo"] is False

    @pytest.mark.asyncio
    async def test_registry_tracks_sessions_per_theme(self, editor):
        await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")
        await editor.add_block(THEME_ID, OTHER, HOME_PAGE_ID, "text")
        assert len(editor.registry) == 2
        assert {s.user_id for s in editor.registry.sessions_for_theme(THEME_ID)} == {USER, OTHER}

    @pytest.mark.asyncio
    async def test_failed_operations_leave_no_session(self, editor):
        with pytest.raises(NotFoundError):
            await editor.add_block("no-such-theme", USER, HOME_PAGE_ID, "text")
        with pytest.raises(NotFoundError):
            await editor.remove_block(THEME_ID, USER, "nope")
        with pytest.raises(ValidationError):
            await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "hologram")
        with pytest.raises(ValidationError):
            await editor.inline_edit(THEME_ID, USER, "hero-1", "", "x")

        assert len(editor.registry) == 0
        assert editor._locks == {}

    @pytest.mark.asyncio
    async def test_lock_dropped_when_last_session_closes(self, editor):
        await editor.add_block(THEME_ID, USER, HOME_PAGE_ID, "text")
        assert THEME_ID in editor._locks

        editor.close_session(THEME_ID, USER)

        assert editor._locks == {}
