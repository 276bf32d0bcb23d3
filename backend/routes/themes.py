"""
Theme routes — CRUD, activation, packaging (install / export / import), preview.

Compilation is pure and synchronous; only install touches the filesystem.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse, Response

from backend.auth import get_current_user
from backend.models.theme import (
    CreateThemeRequest,
    DuplicateThemeRequest,
    PackageRequest,
    PreviewRequest,
    UpdateThemeRequest,
)
from backend.models.user import User
from backend.services.themes import ThemeServices, get_services
from themeforge.kernel.catalog import slugify
from themeforge.kernel.compiler import compile_theme
from themeforge.kernel.errors import ConflictError, ValidationError
from themeforge.kernel.templating import build_page_context, render_page
from themeforge.kernel.types import Page, Theme

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/themes", tags=["themes"])

MAX_IMPORT_BYTES = 20 * 1024 * 1024


def _summary(theme: Theme) -> dict[str, Any]:
    return {
        "id": theme.id,
        "name": theme.name,
        "slug": theme.slug,
        "description": theme.description,
        "version": theme.version,
        "isActive": theme.is_active,
        "isDefault": theme.is_default,
        "pageCount": len(theme.pages),
    }


@router.get("", status_code=200)
async def list_themes(
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> list[dict[str, Any]]:
    return [_summary(t) for t in await svc.store.list_themes()]


@router.post("", status_code=201)
async def create_theme(
    req: CreateThemeRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """Create a theme. Without pages it gets one empty home page (rendered with the default layout)."""
    slug = slugify(req.name)
    for other in await svc.store.list_themes():
        if other.name == req.name or other.slug == slug:
            raise ConflictError(f"A theme named {req.name!r} already exists")

    pages = [
        Page(id=uuid.uuid4().hex, name=p.name, slug=p.slug, is_home_page=p.is_home_page) for p in req.pages
    ] or [Page(id=uuid.uuid4().hex, name="Home", slug="home", is_home_page=True)]
    theme = Theme(
        id=uuid.uuid4().hex,
        name=req.name,
        slug=slug,
        description=req.description,
        author=req.author,
        owner_id=user.id,
        settings=req.settings,
        custom_css=req.custom_css,
        pages=pages,
    )
    theme.validate()
    await svc.store.save_theme(theme)
    logger.info("themes: created theme=%s name=%s user=%s", theme.id, theme.name, user.id)
    return theme.to_dict()


# -- catalog and import: must stay above /{theme_id} --


@router.get("/catalog", status_code=200)
async def list_installed(
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> list[dict[str, Any]]:
    return [e.to_dict() for e in await svc.catalog.list()]


@router.delete("/catalog/{slug}", status_code=200)
async def uninstall(
    slug: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    if await svc.catalog.get(slug) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Theme {slug!r} is not installed.")
    await svc.packager.uninstall(slug)
    return {"uninstalled": slug}


@router.post("/import", status_code=201)
async def import_theme(
    request: Request,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """Import an exported archive (request body is the zip)."""
    data = await request.body()
    if not data:
        raise ValidationError("Request body must be a theme archive")
    if len(data) > MAX_IMPORT_BYTES:
        raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail="Archive too large.")

    existing = await svc.store.list_themes()
    theme = await svc.packager.import_archive(
        data,
        [t.name for t in existing],
        existing_slugs=[t.slug for t in existing],
        owner_id=user.id,
    )
    await svc.store.save_theme(theme)
    return theme.to_dict()


# -- single theme --


@router.get("/{theme_id}", status_code=200)
async def get_theme(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    return (await svc.store.get_theme(theme_id)).to_dict()


@router.patch("/{theme_id}", status_code=200)
async def update_theme(
    theme_id: str,
    req: UpdateThemeRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """Rename, re-describe or (un)mark as default. Making a theme default clears the others."""
    await svc.store.update_theme(theme_id, name=req.name, description=req.description, is_default=req.is_default)
    logger.info("themes: updated theme=%s fields=%s user=%s", theme_id, sorted(req.model_fields_set), user.id)
    return _summary(await svc.store.get_theme(theme_id))


@router.post("/{theme_id}/duplicate", status_code=201)
async def duplicate_theme(
    theme_id: str,
    req: DuplicateThemeRequest | None = None,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """Copy a theme with its pages and blocks. Names get " (Copy N)" suffixes until unique."""
    req = req or DuplicateThemeRequest()
    theme = await svc.store.duplicate_theme(theme_id, name=req.name, owner_id=user.id)
    logger.info("themes: duplicated theme=%s into=%s user=%s", theme_id, theme.id, user.id)
    return theme.to_dict()


@router.delete("/{theme_id}", status_code=200)
async def delete_theme(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    await svc.store.delete_theme(theme_id)
    logger.info("themes: deleted theme=%s user=%s", theme_id, user.id)
    return {"deleted": theme_id}


@router.post("/{theme_id}/activate", status_code=200)
async def activate_theme(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    await svc.store.activate_theme(theme_id)
    logger.info("themes: activated theme=%s user=%s", theme_id, user.id)
    return _summary(await svc.store.get_theme(theme_id))


@router.post("/{theme_id}/install", status_code=201)
async def install_theme(
    theme_id: str,
    req: PackageRequest | None = None,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    req = req or PackageRequest()
    theme = await svc.store.get_theme(theme_id)
    result = await svc.packager.install(theme, version=req.version, author=req.author)
    return result.to_dict()


@router.get("/{theme_id}/export", status_code=200)
async def export_theme(
    theme_id: str,
    version: str | None = None,
    author: str | None = None,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> Response:
    theme = await svc.store.get_theme(theme_id)
    data = await svc.packager.export(theme, version=version, author=author)
    filename = f"{slugify(theme.name) or 'theme'}.zip"
    return Response(
        content=data,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{theme_id}/manifest", status_code=200)
async def get_manifest(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    return compile_theme(await svc.store.get_theme(theme_id)).manifest


@router.get("/{theme_id}/files/{path:path}", status_code=200)
async def get_compiled_file(
    theme_id: str,
    path: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> Response:
    """One compiled artifact (stylesheet, script, template, preview image)."""
    compiled = compile_theme(await svc.store.get_theme(theme_id))
    if path not in compiled.files:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No file {path!r} in theme.")
    media_type, _ = mimetypes.guess_type(path)
    if path.endswith(".mustache"):
        media_type = "text/plain"
    return Response(content=compiled.files[path], media_type=media_type or "application/octet-stream")


async def _preview(
    theme_id: str,
    template: str,
    req: PreviewRequest,
    user: User,
    svc: ThemeServices,
) -> HTMLResponse:
    theme = await svc.store.get_theme(theme_id)
    compiled = compile_theme(theme)
    context = build_page_context(
        site={"name": theme.name, "description": theme.description, **req.site},
        menus=req.menus,
        user={"id": user.id, "name": user.name or user.id} if req.signed_in else None,
        listings=req.listings,
        year=datetime.now(UTC).year,
        cart=req.cart,
        page={"template": template},
        assets_url=f"/api/themes/{theme_id}/files/assets",
    )
    return HTMLResponse(render_page(compiled, template, context))


@router.get("/{theme_id}/preview/{template}", status_code=200)
async def preview(
    theme_id: str,
    template: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> HTMLResponse:
    """Render a compiled template with empty listings."""
    return await _preview(theme_id, template, PreviewRequest(), user, svc)


@router.post("/{theme_id}/preview/{template}", status_code=200)
async def preview_with_data(
    theme_id: str,
    template: str,
    req: PreviewRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> HTMLResponse:
    """Render a compiled template against caller-supplied listings, menus and cart."""
    return await _preview(theme_id, template, req, user, svc)
