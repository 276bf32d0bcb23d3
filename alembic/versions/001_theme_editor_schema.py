"""theme editor schema: themes, pages, blocks, catalog

Revision ID: 001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from typing import Sequence, Union

from alembic import op


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE themes (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            slug TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL DEFAULT '',
            version TEXT NOT NULL DEFAULT '1.0.0',
            author TEXT NOT NULL DEFAULT '',
            owner_id TEXT,
            settings JSONB NOT NULL DEFAULT '{}'::jsonb,
            custom_css TEXT NOT NULL DEFAULT '',
            is_active BOOLEAN NOT NULL DEFAULT false,
            is_default BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    # At most one active and one default theme
    op.execute("CREATE UNIQUE INDEX idx_themes_one_active ON themes ((true)) WHERE is_active;")
    op.execute("CREATE UNIQUE INDEX idx_themes_one_default ON themes ((true)) WHERE is_default;")

    op.execute("""
        CREATE TABLE theme_pages (
            id TEXT PRIMARY KEY,
            theme_id TEXT NOT NULL REFERENCES themes(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            slug TEXT NOT NULL,
            is_home_page BOOLEAN NOT NULL DEFAULT false,
            position INTEGER NOT NULL DEFAULT 0,
            UNIQUE (theme_id, slug)
        );
    """)
    op.execute("CREATE UNIQUE INDEX idx_theme_pages_one_home ON theme_pages(theme_id) WHERE is_home_page;")

    # parent_id has no foreign key: undo/redo restores parents and children
    # one block at a time.
    op.execute("""
        CREATE TABLE theme_blocks (
            id TEXT PRIMARY KEY,
            page_id TEXT NOT NULL REFERENCES theme_pages(id) ON DELETE CASCADE,
            parent_id TEXT,
            type TEXT NOT NULL,
            props JSONB NOT NULL DEFAULT '{}'::jsonb,
            position INTEGER NOT NULL DEFAULT 0,
            link JSONB,
            visibility JSONB NOT NULL DEFAULT '{"desktop": true, "tablet": true, "mobile": true}'::jsonb,
            animation JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX idx_theme_blocks_page_position ON theme_blocks(page_id, parent_id, position);")

    op.execute("""
        CREATE TABLE theme_catalog (
            slug TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            version TEXT NOT NULL,
            author TEXT NOT NULL DEFAULT '',
            path TEXT NOT NULL,
            theme_id TEXT,
            description TEXT NOT NULL DEFAULT '',
            registered_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS theme_catalog;")
    op.execute("DROP TABLE IF EXISTS theme_blocks;")
    op.execute("DROP TABLE IF EXISTS theme_pages;")
    op.execute("DROP TABLE IF EXISTS themes;")
