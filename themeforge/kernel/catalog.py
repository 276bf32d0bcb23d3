"""
ThemeForge Kernel - Theme Catalog

Registry of installed themes, keyed by slug. The packager consults it for
naming conflicts and registers an entry as the last install step.
"""

from __future__ import annotations

from themeforge.kernel.errors import ConflictError
from themeforge.kernel.types import CatalogEntry, slugify

__all__ = ["MemoryCatalog", "ThemeCatalog", "slugify"]


class ThemeCatalog:
    """
    Abstract catalog interface.
    Implement with Postgres for production, or in-memory for tests.
    """

    async def get(self, slug: str) -> CatalogEntry | None:
        """Look up an installed theme. Returns None if not registered."""
        raise NotImplementedError

    async def register(self, entry: CatalogEntry) -> None:
        """Register a theme. Raises ConflictError if the slug is taken."""
        raise NotImplementedError

    async def unregister(self, slug: str) -> None:
        raise NotImplementedError

    async def list(self) -> list[CatalogEntry]:
        raise NotImplementedError


class MemoryCatalog(ThemeCatalog):
    """In-memory catalog for testing."""

    def __init__(self) -> None:
        self.entries: dict[str, CatalogEntry] = {}

    async def get(self, slug: str) -> CatalogEntry | None:
        return self.entries.get(slug)

    async def register(self, entry: CatalogEntry) -> None:
        if entry.slug in self.entries:
            raise ConflictError(f"Theme {entry.slug!r} is already installed")
        self.entries[entry.slug] = entry

    async def unregister(self, slug: str) -> None:
        self.entries.pop(slug, None)

    async def list(self) -> list[CatalogEntry]:
        return [self.entries[slug] for slug in sorted(self.entries)]
