"""
ThemeForge Kernel - Block Store

The persisted Block Model as the editor and packager see it: themes read
whole (pages and blocks in position order), blocks written one at a time,
positions written as one batch.

Implement with Postgres for production (postgres_store.py), or in-memory
for tests.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from themeforge.kernel.errors import ConflictError, NotFoundError
from themeforge.kernel.types import Block, Theme, copy_pages, slugify, sorted_blocks


@dataclass
class BlockPosition:
    block_id: str
    order: int
    parent_id: str | None = None


class BlockStore:
    """
    Abstract store interface.
    Every method is atomic on its own. Nothing spans calls.
    """

    async def get_theme(self, theme_id: str) -> Theme:
        """Full theme with pages and blocks. Raises NotFoundError."""
        raise NotImplementedError

    async def list_themes(self) -> list[Theme]:
        raise NotImplementedError

    async def save_theme(self, theme: Theme) -> None:
        """Create or replace a theme together with its pages and blocks."""
        raise NotImplementedError

    async def delete_theme(self, theme_id: str) -> None:
        """Raises ConflictError for the active theme, NotFoundError if missing."""
        raise NotImplementedError

    async def activate_theme(self, theme_id: str) -> None:
        """Make `theme_id` the only active theme."""
        raise NotImplementedError

    async def update_theme(
        self,
        theme_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        is_default: bool | None = None,
    ) -> None:
        """
        Rename, re-describe or (un)mark as default. A rename also moves the
        slug. Marking a theme default clears every other default.

        Raises NotFoundError, ConflictError when another theme has the name
        or slug.
        """
        raise NotImplementedError

    async def duplicate_theme(self, theme_id: str, *, name: str | None = None, owner_id: str | None = None) -> Theme:
        """Copy a theme with fresh ids under a unique name. The copy is never active or default."""
        source = await self.get_theme(theme_id)
        existing = await self.list_themes()
        copy_name = unique_copy_name(
            source.name,
            [t.name for t in existing],
            [t.slug for t in existing],
            requested=name,
        )
        duplicate = Theme(
            id=uuid.uuid4().hex,
            name=copy_name,
            slug=slugify(copy_name),
            description=source.description,
            version=source.version,
            author=source.author,
            owner_id=owner_id,
            settings=copy.deepcopy(source.settings),
            custom_css=source.custom_css,
            pages=copy_pages(source.pages, lambda: uuid.uuid4().hex),
        )
        await self.save_theme(duplicate)
        return duplicate

    async def get_block(self, block_id: str) -> Block | None:
        raise NotImplementedError

    async def create_block(self, block: Block) -> None:
        raise NotImplementedError

    async def update_block(self, block: Block) -> None:
        raise NotImplementedError

    async def delete_block(self, block_id: str) -> None:
        raise NotImplementedError

    async def update_positions(self, positions: list[BlockPosition]) -> None:
        """Apply a batch of (order, parent) changes as one unit."""
        raise NotImplementedError

    async def update_settings(
        self,
        theme_id: str,
        settings: dict[str, Any],
        custom_css: str | None = None,
    ) -> None:
        raise NotImplementedError


class MemoryBlockStore(BlockStore):
    """In-memory store for testing and local development."""

    def __init__(self, themes: list[Theme] | None = None) -> None:
        self.themes: dict[str, Theme] = {}
        for theme in themes or []:
            self.themes[theme.id] = copy.deepcopy(theme)

    def _locate(self, block_id: str) -> tuple[Theme, int, Block] | None:
        for theme in self.themes.values():
            for page in theme.pages:
                for i, block in enumerate(page.blocks):
                    if block.id == block_id:
                        return theme, i, block
        return None

    def _theme(self, theme_id: str) -> Theme:
        theme = self.themes.get(theme_id)
        if theme is None:
            raise NotFoundError(f"Theme {theme_id!r} not found")
        return theme

    async def get_theme(self, theme_id: str) -> Theme:
        theme = copy.deepcopy(self._theme(theme_id))
        for page in theme.pages:
            page.blocks = sorted_blocks(page.blocks)
        return theme

    async def list_themes(self) -> list[Theme]:
        return [copy.deepcopy(t) for t in sorted(self.themes.values(), key=lambda t: t.name)]

    async def save_theme(self, theme: Theme) -> None:
        self.themes[theme.id] = copy.deepcopy(theme)

    async def delete_theme(self, theme_id: str) -> None:
        theme = self._theme(theme_id)
        if theme.is_active:
            raise ConflictError("Cannot delete the active theme")
        del self.themes[theme_id]

    async def activate_theme(self, theme_id: str) -> None:
        self._theme(theme_id)
        for theme in self.themes.values():
            theme.is_active = theme.id == theme_id

    async def update_theme(
        self,
        theme_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        is_default: bool | None = None,
    ) -> None:
        target = self._theme(theme_id)
        if name is not None and name != target.name:
            slug = slugify(name)
            for other in self.themes.values():
                if other.id != theme_id and (other.name == name or other.slug == slug):
                    raise ConflictError(f"A theme named {name!r} already exists")
            target.name = name
            target.slug = slug
        if description is not None:
            target.description = description
        if is_default:
            for other in self.themes.values():
                other.is_default = other.id == theme_id
        elif is_default is not None:
            target.is_default = False

    async def get_block(self, block_id: str) -> Block | None:
        found = self._locate(block_id)
        return copy.deepcopy(found[2]) if found else None

    async def create_block(self, block: Block) -> None:
        if self._locate(block.id) is not None:
            raise ConflictError(f"Block {block.id!r} already exists")
        for theme in self.themes.values():
            page = theme.get_page(block.page_id)
            if page is not None:
                page.blocks.append(copy.deepcopy(block))
                return
        raise NotFoundError(f"Page {block.page_id!r} not found")

    async def update_block(self, block: Block) -> None:
        found = self._locate(block.id)
        if found is None:
            raise NotFoundError(f"Block {block.id!r} not found")
        theme, index, current = found
        page = theme.get_page(current.page_id)
        page.blocks[index] = copy.deepcopy(block)

    async def delete_block(self, block_id: str) -> None:
        found = self._locate(block_id)
        if found is None:
            return
        theme, index, current = found
        theme.get_page(current.page_id).blocks.pop(index)

    async def update_positions(self, positions: list[BlockPosition]) -> None:
        located = []
        for position in positions:
            found = self._locate(position.block_id)
            if found is None:
                raise NotFoundError(f"Block {position.block_id!r} not found")
            located.append((found[2], position))
        # All blocks resolved; now apply together.
        for block, position in located:
            block.order = position.order
            block.parent_id = position.parent_id

    async def update_settings(
        self,
        theme_id: str,
        settings: dict[str, Any],
        custom_css: str | None = None,
    ) -> None:
        theme = self._theme(theme_id)
        theme.settings = copy.deepcopy(settings)
        if custom_css is not None:
            theme.custom_css = custom_css


def unique_copy_name(
    name: str,
    existing_names: Iterable[str],
    existing_slugs: Iterable[str] = (),
    *,
    requested: str | None = None,
) -> str:
    """
    "Aurora" -> "Aurora (Copy)", then "Aurora (Copy 1)", "Aurora (Copy 2)".
    A requested name is kept when free, otherwise "Name (1)", "Name (2)".
    """
    taken = set(existing_names)
    taken_slugs = set(existing_slugs)
    candidate = requested or f"{name} (Copy)"
    counter = 1
    while candidate in taken or slugify(candidate) in taken_slugs:
        candidate = f"{requested} ({counter})" if requested else f"{name} (Copy {counter})"
        counter += 1
    return candidate
