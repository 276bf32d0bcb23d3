"""
Editor routes — block operations, live edits, undo/redo, settings.

Every route acts for the authenticated user's session on one theme. Kernel
errors propagate to the exception handlers in backend.main.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from backend.auth import get_current_user
from backend.models.editor import (
    AddBlockRequest,
    InlineEditRequest,
    MoveBlockRequest,
    ReorderRequest,
    SettingsUpdateRequest,
    TemplateBlockRequest,
    UpdateBlockRequest,
)
from backend.models.user import User
from backend.services.themes import ThemeServices, get_services
from themeforge.kernel.blocks import get_block_templates

router = APIRouter(prefix="/api/themes/{theme_id}/editor", tags=["editor"])
templates_router = APIRouter(prefix="/api/block-templates", tags=["editor"])


@templates_router.get("", status_code=200)
async def list_block_templates(category: str | None = None) -> list[dict[str, Any]]:
    """Preset blocks the editor offers, optionally filtered by category."""
    return get_block_templates(category)


@router.post("/blocks", status_code=201)
async def add_block(
    theme_id: str,
    req: AddBlockRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    block = await svc.editor.add_block(
        theme_id,
        user.id,
        req.page_id,
        req.type,
        req.props,
        position=req.position,
        parent_id=req.parent_id,
        link=req.link,
        visibility=req.visibility,
        animation=req.animation,
    )
    return block.to_dict()


@router.post("/blocks/from-template", status_code=201)
async def add_block_from_template(
    theme_id: str,
    req: TemplateBlockRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    block = await svc.editor.create_block_from_template(
        theme_id,
        user.id,
        req.template_id,
        req.page_id,
        position=req.position,
        parent_id=req.parent_id,
        props=req.props,
    )
    return block.to_dict()


@router.patch("/blocks/{block_id}", status_code=200)
async def update_block(
    theme_id: str,
    block_id: str,
    req: UpdateBlockRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    for name in ("link", "animation"):
        if name in req.model_fields_set:
            changes[name] = getattr(req, name)
    block = await svc.editor.update_block(
        theme_id,
        user.id,
        block_id,
        props=req.props,
        visibility=req.visibility,
        replace_props=req.replace_props,
        **changes,
    )
    return block.to_dict()


@router.delete("/blocks/{block_id}", status_code=200)
async def remove_block(
    theme_id: str,
    block_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    block = await svc.editor.remove_block(theme_id, user.id, block_id)
    return {"removed": block.id}


@router.post("/blocks/{block_id}/move", status_code=200)
async def move_block(
    theme_id: str,
    block_id: str,
    req: MoveBlockRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    kwargs = {"parent_id": req.parent_id} if "parent_id" in req.model_fields_set else {}
    block = await svc.editor.move_block(theme_id, user.id, block_id, req.position, **kwargs)
    return block.to_dict()


@router.post("/blocks/{block_id}/duplicate", status_code=201)
async def duplicate_block(
    theme_id: str,
    block_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    block = await svc.editor.duplicate_block(theme_id, user.id, block_id)
    return block.to_dict()


@router.post("/reorder", status_code=200)
async def reorder_blocks(
    theme_id: str,
    req: ReorderRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> list[dict[str, Any]]:
    blocks = await svc.editor.reorder_blocks(
        theme_id,
        user.id,
        req.page_id,
        req.block_ids,
        parent_id=req.parent_id,
        save_immediately=req.save_immediately,
    )
    return [b.to_dict() for b in blocks]


@router.post("/inline-edit", status_code=200)
async def inline_edit(
    theme_id: str,
    req: InlineEditRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    block = await svc.editor.inline_edit(
        theme_id,
        user.id,
        req.block_id,
        req.field,
        req.value,
        save_immediately=req.save_immediately,
    )
    return block.to_dict()


@router.post("/save", status_code=200)
async def save_pending(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """Persist live edits and previewed reorders."""
    entries = await svc.editor.save_pending(theme_id, user.id)
    return {"saved": [e.to_dict() for e in entries], "history": svc.editor.history(theme_id, user.id)}


@router.post("/undo", status_code=200)
async def undo(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """`entry` is null when there was nothing to undo."""
    entry = await svc.editor.undo(theme_id, user.id)
    return {"entry": entry.to_dict() if entry else None, "history": svc.editor.history(theme_id, user.id)}


@router.post("/redo", status_code=200)
async def redo(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    entry = await svc.editor.redo(theme_id, user.id)
    return {"entry": entry.to_dict() if entry else None, "history": svc.editor.history(theme_id, user.id)}


@router.get("/history", status_code=200)
async def history(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    return svc.editor.history(theme_id, user.id)


@router.delete("/session", status_code=200)
async def close_session(
    theme_id: str,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    """Drop undo/redo memory and unsaved live edits. Block data is untouched."""
    return {"closed": svc.editor.close_session(theme_id, user.id)}


@router.patch("/settings", status_code=200)
async def update_settings(
    theme_id: str,
    req: SettingsUpdateRequest,
    user: User = Depends(get_current_user),
    svc: ThemeServices = Depends(get_services),
) -> dict[str, Any]:
    settings = await svc.editor.update_theme_settings(
        theme_id,
        user.id,
        req.settings,
        merge=req.merge,
        custom_css=req.custom_css,
    )
    return {"settings": settings}
