"""
ThemeForge Kernel - Shared Types

Data classes used across the renderer, compiler, packager and editor.
These are the contracts that bind the kernel together.

Shape:
- Theme: identity, design settings, custom CSS, ordered pages, active/default flags
- Page: route slug, home flag, blocks
- Block: typed unit with opaque props, dense page-local `order`, optional `parent_id`
- HistoryEntry: invertible record of one editor operation (before/after images)

Wire dicts (manifests, API payloads, the Postgres JSON columns) use camelCase.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from themeforge.kernel.errors import ValidationError
from themeforge.kernel.tokens import ThemeSettings


def now_iso() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """
    Lowercase, runs of non-alphanumerics -> "-", no leading/trailing "-".
    "Aurora Dark!" -> "aurora-dark"
    """
    return _NON_SLUG_RE.sub("-", name.lower()).strip("-")


DEFAULT_VISIBILITY: dict[str, bool] = {"desktop": True, "tablet": True, "mobile": True}


# ---------------------------------------------------------------------------
# Block model
# ---------------------------------------------------------------------------


@dataclass
class Block:
    id: str
    type: str
    page_id: str
    props: dict[str, Any] = field(default_factory=dict)
    order: int = 0
    parent_id: str | None = None
    link: dict[str, Any] | None = None
    visibility: dict[str, bool] = field(default_factory=lambda: dict(DEFAULT_VISIBILITY))
    animation: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "pageId": self.page_id,
            "props": copy.deepcopy(self.props),
            "order": self.order,
            "parentId": self.parent_id,
            "link": copy.deepcopy(self.link),
            "visibility": dict(self.visibility),
            "animation": copy.deepcopy(self.animation),
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Block:
        visibility = d.get("visibility")
        return cls(
            id=d["id"],
            type=d.get("type", ""),
            page_id=d.get("pageId", d.get("page_id", "")),
            props=copy.deepcopy(d.get("props") or {}),
            order=int(d.get("order", 0)),
            parent_id=d.get("parentId", d.get("parent_id")),
            link=copy.deepcopy(d.get("link")),
            visibility={**DEFAULT_VISIBILITY, **visibility} if isinstance(visibility, dict) else dict(DEFAULT_VISIBILITY),
            animation=copy.deepcopy(d.get("animation")),
        )


@dataclass
class Page:
    id: str
    name: str
    slug: str
    blocks: list[Block] = field(default_factory=list)
    is_home_page: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "isHomePage": self.is_home_page,
            "blocks": [b.to_dict() for b in sorted_blocks(self.blocks)],
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Page:
        page_id = d["id"]
        blocks = []
        for raw in d.get("blocks", []):
            block = Block.from_dict(raw)
            block.page_id = block.page_id or page_id
            blocks.append(block)
        return cls(
            id=page_id,
            name=d.get("name", ""),
            slug=d.get("slug", ""),
            blocks=blocks,
            is_home_page=bool(d.get("isHomePage", d.get("is_home_page", False))),
        )

    def get_block(self, block_id: str) -> Block | None:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def children_of(self, parent_id: str | None) -> list[Block]:
        """Blocks of one sibling scope, in render order."""
        return sorted_blocks([b for b in self.blocks if b.parent_id == parent_id])


@dataclass
class Theme:
    id: str
    name: str
    slug: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    owner_id: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    custom_css: str = ""
    pages: list[Page] = field(default_factory=list)
    is_active: bool = False
    is_default: bool = False

    def design_tokens(self) -> ThemeSettings:
        return ThemeSettings.from_dict(self.settings)

    def home_page(self) -> Page | None:
        for page in self.pages:
            if page.is_home_page:
                return page
        return None

    def get_page(self, page_id: str) -> Page | None:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def find_block(self, block_id: str) -> tuple[Page | None, Block | None]:
        for page in self.pages:
            block = page.get_block(block_id)
            if block is not None:
                return page, block
        return None, None

    def validate(self) -> None:
        """
        Raise ValidationError for structurally broken input.

        Checks: name present, page slugs already in slug form and unique,
        at most one home page, every parent_id points at a block of the
        same page.
        """
        if not self.name or not self.name.strip():
            raise ValidationError("Theme name is required")

        seen_slugs: set[str] = set()
        home_pages = 0
        for page in self.pages:
            if not page.slug:
                raise ValidationError(f"Page {page.id!r} has no slug")
            if slugify(page.slug) != page.slug:
                raise ValidationError(f"Page slug {page.slug!r} must be lowercase letters, digits and dashes")
            if page.slug in seen_slugs:
                raise ValidationError(f"Duplicate page slug {page.slug!r}")
            seen_slugs.add(page.slug)
            if page.is_home_page:
                home_pages += 1

            block_ids = {b.id for b in page.blocks}
            for block in page.blocks:
                if block.parent_id is not None and block.parent_id not in block_ids:
                    raise ValidationError(f"Block {block.id!r} references unknown parent {block.parent_id!r}")
                if block.parent_id == block.id:
                    raise ValidationError(f"Block {block.id!r} cannot be its own parent")

        if home_pages > 1:
            raise ValidationError("At most one page may be the home page")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "version": self.version,
            "author": self.author,
            "ownerId": self.owner_id,
            "settings": copy.deepcopy(self.settings),
            "customCss": self.custom_css,
            "pages": [p.to_dict() for p in self.pages],
            "isActive": self.is_active,
            "isDefault": self.is_default,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Theme:
        return cls(
            id=d["id"],
            name=d.get("name", ""),
            slug=d.get("slug", ""),
            description=d.get("description", ""),
            version=d.get("version", "1.0.0"),
            author=d.get("author", ""),
            owner_id=d.get("ownerId"),
            settings=copy.deepcopy(d.get("settings") or {}),
            custom_css=d.get("customCss", d.get("customCSS", "")) or "",
            pages=[Page.from_dict(p) for p in d.get("pages", [])],
            is_active=bool(d.get("isActive", False)),
            is_default=bool(d.get("isDefault", False)),
        )


def sorted_blocks(blocks: list[Block]) -> list[Block]:
    """Render order: `order`, then id as a stable tie-break."""
    return sorted(blocks, key=lambda b: (b.order, b.id))


def dense_order(blocks: list[Block]) -> dict[str, int]:
    """
    Renumber one sibling scope 0..n-1 keeping relative order.
    Returns {block_id: new_order}.
    """
    return {b.id: i for i, b in enumerate(sorted_blocks(blocks))}


def copy_pages(pages: list[Page], new_id: Callable[[], str]) -> list[Page]:
    """Deep copies of `pages` with fresh page and block ids. Parent links follow the new ids."""
    id_map: dict[str, str] = {}

    def remap(old: str) -> str:
        if old not in id_map:
            id_map[old] = new_id()
        return id_map[old]

    copies = []
    for page in pages:
        clone = copy.deepcopy(page)
        clone.id = remap(page.id)
        for block in clone.blocks:
            block.id = remap(block.id)
            block.page_id = clone.id
            block.parent_id = remap(block.parent_id) if block.parent_id else None
        copies.append(clone)
    return copies


# ---------------------------------------------------------------------------
# Editor history
# ---------------------------------------------------------------------------


class BlockOperation(StrEnum):
    ADD = "add"
    REMOVE = "remove"
    MOVE = "move"
    UPDATE = "update"
    DUPLICATE = "duplicate"
    REORDER = "reorder"


@dataclass
class HistoryEntry:
    """
    One applied operation.

    previous_state / new_state are block images: {"blocks": {block_id: block_dict | None}}
    covering every block the operation touched. None means "absent".
    """

    id: str
    operation: BlockOperation
    block_id: str
    previous_state: dict[str, Any]
    new_state: dict[str, Any]
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "operation": self.operation.value,
            "blockId": self.block_id,
            "previousState": copy.deepcopy(self.previous_state),
            "newState": copy.deepcopy(self.new_state),
            "timestamp": self.timestamp,
        }


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------


@dataclass
class CatalogEntry:
    slug: str
    name: str
    version: str
    author: str
    path: str
    theme_id: str | None = None
    description: str = ""
    registered_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "name": self.name,
            "version": self.version,
            "author": self.author,
            "path": self.path,
            "themeId": self.theme_id,
            "description": self.description,
            "registeredAt": self.registered_at,
        }


@dataclass
class ArtifactSet:
    """
    Everything one packaging request produces, in memory.
    `files` maps relative POSIX paths to bytes, sorted by path.
    """

    slug: str
    manifest: dict[str, Any]
    files: dict[str, bytes]

    def text(self, path: str) -> str:
        return self.files[path].decode("utf-8")

    def paths(self) -> list[str]:
        return list(self.files)


@dataclass
class PackageResult:
    slug: str
    location: str
    entry: CatalogEntry
    files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "location": self.location,
            "entry": self.entry.to_dict(),
            "files": list(self.files),
        }
