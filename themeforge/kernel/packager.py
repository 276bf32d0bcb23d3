"""
ThemeForge Kernel - Packager

Operations: install, export, import_archive, uninstall

install:  conflict check -> compile -> write to staging -> rename -> register
export:   compile (export manifest) -> in-memory zip -> bytes
import:   zip bytes -> validated manifest -> fresh Theme (new ids, unique name)

The catalog registration is always the last install step. Any failure before
it, including a timeout or cancellation at the write step, removes every
file written so far before the error propagates.
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
import uuid
import zipfile
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from themeforge.kernel.catalog import ThemeCatalog, slugify
from themeforge.kernel.compiler import EXPORT_FORMAT, MANIFEST_PATH, compile_theme
from themeforge.kernel.errors import ConflictError, PackagingError, ValidationError
from themeforge.kernel.sinks import ArchiveSink, ArtifactSink, DirectorySink
from themeforge.kernel.types import ArtifactSet, CatalogEntry, PackageResult, Page, Theme, copy_pages

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


class Packager:
    """
    Writes compiled themes to the catalog directory or to an archive.
    """

    def __init__(
        self,
        catalog: ThemeCatalog,
        themes_dir: Path | str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        sink_factory: Callable[[Path, str], DirectorySink] | None = None,
    ):
        self._catalog = catalog
        self._themes_dir = Path(themes_dir)
        self._timeout = timeout_seconds
        self._sink_factory = sink_factory or DirectorySink
        self._install_lock = asyncio.Lock()

    # -- install --

    async def install(
        self,
        theme: Theme,
        *,
        version: str | None = None,
        author: str | None = None,
    ) -> PackageResult:
        """
        Install a theme under `<themes_dir>/<slug>` and register it.

        Raises ConflictError before anything is written if the slug is taken,
        ValidationError for broken themes, PackagingError for write failures
        and timeouts (after cleanup).
        """
        slug = slugify(theme.name)
        if not slug:
            raise ValidationError(f"Theme name {theme.name!r} does not produce a usable slug")

        async with self._install_lock:
            if await self._catalog.get(slug) is not None:
                raise ConflictError(f"A theme named {slug!r} already exists")

            # Install target identity is always the slug of the name.
            compiled = compile_theme(_with_slug(theme, slug), version=version, author=author)

            self._themes_dir.mkdir(parents=True, exist_ok=True)
            sink = self._sink_factory(self._themes_dir, slug)
            try:
                async with asyncio.timeout(self._timeout):
                    await write_artifacts(compiled, sink)
                    location = await sink.commit()
            except asyncio.CancelledError:
                logger.warning("packager: install cancelled slug=%s, cleaning up", slug)
                await sink.discard()
                raise
            except TimeoutError as e:
                await sink.discard()
                raise PackagingError(f"Installing {slug!r} timed out after {self._timeout}s") from e
            except Exception as e:
                await sink.discard()
                raise PackagingError(f"Failed to write theme {slug!r}: {e}") from e

            manifest = compiled.manifest
            entry = CatalogEntry(
                slug=slug,
                name=theme.name,
                version=manifest["version"],
                author=manifest["author"],
                path=location,
                theme_id=theme.id,
                description=theme.description,
            )
            try:
                await self._catalog.register(entry)
            except ConflictError:
                await sink.discard()
                raise
            except Exception as e:
                await sink.discard()
                raise PackagingError(f"Failed to register theme {slug!r}: {e}") from e

        logger.info("packager: installed slug=%s files=%d path=%s", slug, len(compiled.files), location)
        return PackageResult(slug=slug, location=location, entry=entry, files=compiled.paths())

    async def uninstall(self, slug: str) -> None:
        """Remove an installed theme's files and catalog entry."""
        entry = await self._catalog.get(slug)
        if entry is None:
            return
        await self._catalog.unregister(slug)
        sink = self._sink_factory(self._themes_dir, slug)
        sink.committed = True
        await sink.discard()
        logger.info("packager: uninstalled slug=%s", slug)

    # -- export --

    async def export(
        self,
        theme: Theme,
        *,
        version: str | None = None,
        author: str | None = None,
    ) -> bytes:
        """Portable zip of the full artifact set. No catalog, no collisions."""
        compiled = compile_theme(theme, version=version, author=author, for_export=True)
        sink = ArchiveSink(prefix=compiled.slug)
        await write_artifacts(compiled, sink)
        data = sink.getvalue()
        logger.info("packager: exported slug=%s files=%d bytes=%d", compiled.slug, len(compiled.files), len(data))
        return data

    # -- import --

    async def import_archive(
        self,
        data: bytes,
        existing_names: Iterable[str] = (),
        *,
        existing_slugs: Iterable[str] = (),
        owner_id: str | None = None,
    ) -> Theme:
        """
        Rebuild a Theme from an exported archive.

        Every theme, page and block gets a fresh id (parent links remapped).
        The imported theme is never active or default. Collisions with an
        existing name or slug get " (Imported N)" suffixes.
        """
        manifest = read_manifest(data)
        name = unique_import_name(manifest["name"], existing_names, existing_slugs)

        pages: list[Page] = []
        for raw_page in manifest.get("pages") or []:
            try:
                pages.append(Page.from_dict(raw_page))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ValidationError(f"Malformed page in theme.json: {e}") from e

        theme = Theme(
            id=uuid.uuid4().hex,
            name=name,
            slug=slugify(name),
            description=manifest.get("description") or "",
            version=manifest.get("version") or "1.0.0",
            author=manifest.get("author") or "",
            owner_id=owner_id,
            settings=manifest["settings"],
            custom_css=manifest.get("customCss") or manifest.get("customCSS") or "",
            pages=copy_pages(pages, lambda: uuid.uuid4().hex),
        )
        theme.validate()
        logger.info("packager: imported theme name=%s pages=%d", name, len(pages))
        return theme


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def write_artifacts(artifacts: ArtifactSet, sink: ArtifactSink) -> None:
    for path, payload in artifacts.files.items():
        await sink.write(path, payload)


def _with_slug(theme: Theme, slug: str) -> Theme:
    if theme.slug == slug:
        return theme
    clone = Theme.from_dict(theme.to_dict())
    clone.slug = slug
    return clone


def unique_import_name(name: str, existing_names: Iterable[str], existing_slugs: Iterable[str] = ()) -> str:
    taken = set(existing_names)
    taken_slugs = set(existing_slugs)
    candidate = name
    counter = 1
    while candidate in taken or slugify(candidate) in taken_slugs:
        candidate = f"{name} (Imported {counter})"
        counter += 1
    return candidate


def read_manifest(data: bytes) -> dict[str, Any]:
    """Find and validate theme.json inside an exported archive."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise ValidationError("Not a theme archive") from e

    with archive:
        candidates = sorted(
            (n for n in archive.namelist() if n == MANIFEST_PATH or n.endswith(f"/{MANIFEST_PATH}")),
            key=lambda n: n.count("/"),
        )
        if not candidates:
            raise ValidationError("Archive has no theme.json")
        try:
            manifest = json.loads(archive.read(candidates[0]).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ValidationError(f"theme.json is not valid JSON: {e}") from e

    if not isinstance(manifest, dict):
        raise ValidationError("theme.json must be an object")
    if not manifest.get("name") or not isinstance(manifest.get("settings"), dict):
        raise ValidationError("Invalid theme data: missing name or settings")
    fmt = manifest.get("format")
    if fmt is not None and fmt != EXPORT_FORMAT:
        raise ValidationError(f"Unsupported theme archive format {fmt!r}")
    if not isinstance(manifest.get("pages", []), list):
        raise ValidationError("theme.json pages must be a list")
    return manifest
