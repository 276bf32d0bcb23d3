"""
Postgres adapters for the ThemeForge kernel.

PostgresBlockStore implements BlockStore, PostgresCatalog implements
ThemeCatalog. Tables come from the alembic migration:

- themes:         one row per theme (settings as jsonb)
- theme_pages:    pages, unique slug per theme
- theme_blocks:   blocks, `position` is the dense page-local order
- theme_catalog:  installed themes by slug

Pools must be created with init=init_connection so jsonb maps to dicts.
"""

from __future__ import annotations

import json
from typing import Any

import asyncpg

from themeforge.kernel.catalog import ThemeCatalog
from themeforge.kernel.errors import ConflictError, NotFoundError
from themeforge.kernel.store import BlockPosition, BlockStore
from themeforge.kernel.types import Block, CatalogEntry, Page, Theme, slugify


async def init_connection(conn: asyncpg.Connection) -> None:
    """JSON / JSONB codecs: decode to Python dict/list."""
    for type_name in ("jsonb", "json"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


def _row_to_block(row: asyncpg.Record) -> Block:
    return Block(
        id=row["id"],
        type=row["type"],
        page_id=row["page_id"],
        props=row["props"] or {},
        order=row["position"],
        parent_id=row["parent_id"],
        link=row["link"],
        visibility=row["visibility"] or {},
        animation=row["animation"],
    )


_BLOCK_COLUMNS = "id, page_id, parent_id, type, props, position, link, visibility, animation"


class PostgresBlockStore(BlockStore):
    """Postgres-backed block store. Each method runs in its own transaction."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _load_theme(self, conn: asyncpg.Connection, row: asyncpg.Record) -> Theme:
        page_rows = await conn.fetch(
            "SELECT id, name, slug, is_home_page FROM theme_pages WHERE theme_id = $1 ORDER BY position, id",
            row["id"],
        )
        block_rows = await conn.fetch(
            f"""
            SELECT {', '.join('b.' + c.strip() for c in _BLOCK_COLUMNS.split(','))}
            FROM theme_blocks b JOIN theme_pages p ON p.id = b.page_id
            WHERE p.theme_id = $1
            ORDER BY b.position, b.id
            """,
            row["id"],
        )
        blocks_by_page: dict[str, list[Block]] = {}
        for block_row in block_rows:
            blocks_by_page.setdefault(block_row["page_id"], []).append(_row_to_block(block_row))

        pages = [
            Page(
                id=p["id"],
                name=p["name"],
                slug=p["slug"],
                is_home_page=p["is_home_page"],
                blocks=blocks_by_page.get(p["id"], []),
            )
            for p in page_rows
        ]
        return Theme(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            description=row["description"],
            version=row["version"],
            author=row["author"],
            owner_id=row["owner_id"],
            settings=row["settings"] or {},
            custom_css=row["custom_css"],
            pages=pages,
            is_active=row["is_active"],
            is_default=row["is_default"],
        )

    async def get_theme(self, theme_id: str) -> Theme:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM themes WHERE id = $1", theme_id)
            if row is None:
                raise NotFoundError(f"Theme {theme_id!r} not found")
            return await self._load_theme(conn, row)

    async def list_themes(self) -> list[Theme]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM themes ORDER BY name")
            return [await self._load_theme(conn, row) for row in rows]

    async def save_theme(self, theme: Theme) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                try:
                    await conn.execute(
                        """
                        INSERT INTO themes (id, name, slug, description, version, author, owner_id,
                                            settings, custom_css, is_active, is_default, updated_at)
                        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, now())
                        ON CONFLICT (id) DO UPDATE SET
                            name = EXCLUDED.name, slug = EXCLUDED.slug, description = EXCLUDED.description,
                            version = EXCLUDED.version, author = EXCLUDED.author, owner_id = EXCLUDED.owner_id,
                            settings = EXCLUDED.settings, custom_css = EXCLUDED.custom_css,
                            is_active = EXCLUDED.is_active, is_default = EXCLUDED.is_default, updated_at = now()
                        """,
                        theme.id,
                        theme.name,
                        theme.slug,
                        theme.description,
                        theme.version,
                        theme.author,
                        theme.owner_id,
                        theme.settings,
                        theme.custom_css,
                        theme.is_active,
                        theme.is_default,
                    )
                except asyncpg.UniqueViolationError as e:
                    raise ConflictError(f"A theme named {theme.name!r} already exists") from e

                await conn.execute("DELETE FROM theme_pages WHERE theme_id = $1", theme.id)
                for position, page in enumerate(theme.pages):
                    await conn.execute(
                        """
                        INSERT INTO theme_pages (id, theme_id, name, slug, is_home_page, position)
                        VALUES ($1, $2, $3, $4, $5, $6)
                        """,
                        page.id,
                        theme.id,
                        page.name,
                        page.slug,
                        page.is_home_page,
                        position,
                    )
                    for block in page.blocks:
                        await self._insert_block(conn, block)

    async def delete_theme(self, theme_id: str) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                row = await conn.fetchrow("SELECT is_active FROM themes WHERE id = $1 FOR UPDATE", theme_id)
                if row is None:
                    raise NotFoundError(f"Theme {theme_id!r} not found")
                if row["is_active"]:
                    raise ConflictError("Cannot delete the active theme")
                await conn.execute("DELETE FROM themes WHERE id = $1", theme_id)

    async def activate_theme(self, theme_id: str) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                exists = await conn.fetchval("SELECT 1 FROM themes WHERE id = $1", theme_id)
                if not exists:
                    raise NotFoundError(f"Theme {theme_id!r} not found")
                await conn.execute("UPDATE themes SET is_active = false WHERE is_active AND id <> $1", theme_id)
                await conn.execute("UPDATE themes SET is_active = true, updated_at = now() WHERE id = $1", theme_id)

    async def update_theme(
        self,
        theme_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        is_default: bool | None = None,
    ) -> None:
        slug = slugify(name) if name is not None else None
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                exists = await conn.fetchval("SELECT 1 FROM themes WHERE id = $1 FOR UPDATE", theme_id)
                if not exists:
                    raise NotFoundError(f"Theme {theme_id!r} not found")
                if name is not None:
                    taken = await conn.fetchval(
                        "SELECT 1 FROM themes WHERE id <> $1 AND (name = $2 OR slug = $3)", theme_id, name, slug
                    )
                    if taken:
                        raise ConflictError(f"A theme named {name!r} already exists")
                if is_default:
                    await conn.execute("UPDATE themes SET is_default = false WHERE is_default AND id <> $1", theme_id)
                try:
                    await conn.execute(
                        """
                        UPDATE themes
                        SET name = COALESCE($2, name), slug = COALESCE($3, slug),
                            description = COALESCE($4, description),
                            is_default = COALESCE($5, is_default), updated_at = now()
                        WHERE id = $1
                        """,
                        theme_id,
                        name,
                        slug,
                        description,
                        is_default,
                    )
                except asyncpg.UniqueViolationError as e:
                    raise ConflictError(f"A theme named {name!r} already exists") from e

    async def get_block(self, block_id: str) -> Block | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(f"SELECT {_BLOCK_COLUMNS} FROM theme_blocks WHERE id = $1", block_id)
            return _row_to_block(row) if row else None

    async def _insert_block(self, conn: asyncpg.Connection, block: Block) -> None:
        await conn.execute(
            f"""
            INSERT INTO theme_blocks ({_BLOCK_COLUMNS})
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            """,
            block.id,
            block.page_id,
            block.parent_id,
            block.type,
            block.props,
            block.order,
            block.link,
            block.visibility,
            block.animation,
        )

    async def create_block(self, block: Block) -> None:
        async with self.pool.acquire() as conn:
            try:
                await self._insert_block(conn, block)
            except asyncpg.ForeignKeyViolationError as e:
                raise NotFoundError(f"Page {block.page_id!r} not found") from e
            except asyncpg.UniqueViolationError as e:
                raise ConflictError(f"Block {block.id!r} already exists") from e

    async def update_block(self, block: Block) -> None:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE theme_blocks
                SET parent_id = $2, type = $3, props = $4, position = $5,
                    link = $6, visibility = $7, animation = $8, updated_at = now()
                WHERE id = $1
                """,
                block.id,
                block.parent_id,
                block.type,
                block.props,
                block.order,
                block.link,
                block.visibility,
                block.animation,
            )
            if result == "UPDATE 0":
                raise NotFoundError(f"Block {block.id!r} not found")

    async def delete_block(self, block_id: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM theme_blocks WHERE id = $1", block_id)

    async def update_positions(self, positions: list[BlockPosition]) -> None:
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                for position in positions:
                    result = await conn.execute(
                        "UPDATE theme_blocks SET position = $2, parent_id = $3, updated_at = now() WHERE id = $1",
                        position.block_id,
                        position.order,
                        position.parent_id,
                    )
                    if result == "UPDATE 0":
                        raise NotFoundError(f"Block {position.block_id!r} not found")

    async def update_settings(
        self,
        theme_id: str,
        settings: dict[str, Any],
        custom_css: str | None = None,
    ) -> None:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                """
                UPDATE themes
                SET settings = $2, custom_css = COALESCE($3, custom_css), updated_at = now()
                WHERE id = $1
                """,
                theme_id,
                settings,
                custom_css,
            )
            if result == "UPDATE 0":
                raise NotFoundError(f"Theme {theme_id!r} not found")


class PostgresCatalog(ThemeCatalog):
    """Installed-theme catalog in the theme_catalog table."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    @staticmethod
    def _row_to_entry(row: asyncpg.Record) -> CatalogEntry:
        return CatalogEntry(
            slug=row["slug"],
            name=row["name"],
            version=row["version"],
            author=row["author"],
            path=row["path"],
            theme_id=row["theme_id"],
            description=row["description"],
            registered_at=row["registered_at"].strftime("%Y-%m-%dT%H:%M:%SZ"),
        )

    async def get(self, slug: str) -> CatalogEntry | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM theme_catalog WHERE slug = $1", slug)
            return self._row_to_entry(row) if row else None

    async def register(self, entry: CatalogEntry) -> None:
        async with self.pool.acquire() as conn:
            try:
                await conn.execute(
                    """
                    INSERT INTO theme_catalog (slug, name, version, author, path, theme_id, description)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    """,
                    entry.slug,
                    entry.name,
                    entry.version,
                    entry.author,
                    entry.path,
                    entry.theme_id,
                    entry.description,
                )
            except asyncpg.UniqueViolationError as e:
                raise ConflictError(f"Theme {entry.slug!r} is already installed") from e

    async def unregister(self, slug: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute("DELETE FROM theme_catalog WHERE slug = $1", slug)

    async def list(self) -> list[CatalogEntry]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM theme_catalog ORDER BY slug")
            return [self._row_to_entry(row) for row in rows]
