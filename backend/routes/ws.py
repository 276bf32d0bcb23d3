"""
WebSocket endpoint for collaborative theme editing.

Accepts connections at /ws/editor/{theme_id}. Every connection joins the
theme's broadcast group; operations sent over the socket run through the
same EditorService as the REST routes. Collaborators receive the resulting
events; the sender gets a direct reply instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import pydantic
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status

from backend.auth import user_from_token
from backend.models.editor import (
    AddBlockRequest,
    InlineEditRequest,
    MoveBlockRequest,
    ReorderRequest,
    UpdateBlockRequest,
)
from backend.models.user import User
from backend.services.themes import ThemeServices, get_services
from themeforge.kernel.errors import ConflictError, NotFoundError, ThemeForgeError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

# Application close code for an unknown theme.
CLOSE_THEME_NOT_FOUND = 4404

# Envelope keys that are not part of an operation's arguments.
_ENVELOPE = ("type", "requestId", "blockId")


def _user_from_websocket(websocket: WebSocket) -> User | None:
    """Session cookie first, then a `token` query parameter for non-browser clients."""
    token = websocket.cookies.get("session") or websocket.query_params.get("token")
    if not token:
        return None
    try:
        return user_from_token(token)
    except HTTPException:
        return None


def _args(msg: dict[str, Any]) -> dict[str, Any]:
    args = {k: v for k, v in msg.items() if k not in _ENVELOPE}
    # `type` names the message, so addBlock carries the block type as `blockType`.
    if "blockType" in args:
        args["type"] = args.pop("blockType")
    return args


def _block_id(msg: dict[str, Any]) -> str:
    block_id = msg.get("blockId")
    if not isinstance(block_id, str) or not block_id:
        raise ValidationError("blockId is required")
    return block_id


def _error_status(e: ThemeForgeError) -> int:
    if isinstance(e, NotFoundError):
        return 404
    if isinstance(e, ConflictError):
        return 409
    if isinstance(e, ValidationError):
        return 422
    return 500


async def _dispatch(svc: ThemeServices, theme_id: str, user: User, msg: dict[str, Any]) -> Any:
    """Run one client operation and return its JSON-ready result."""
    editor = svc.editor
    msg_type = msg.get("type")

    if msg_type == "addBlock":
        req = AddBlockRequest.model_validate(_args(msg))
        block = await editor.add_block(
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

    if msg_type == "updateBlock":
        req = UpdateBlockRequest.model_validate(_args(msg))
        changes = {name: getattr(req, name) for name in ("link", "animation") if name in req.model_fields_set}
        block = await editor.update_block(
            theme_id,
            user.id,
            _block_id(msg),
            props=req.props,
            visibility=req.visibility,
            replace_props=req.replace_props,
            **changes,
        )
        return block.to_dict()

    if msg_type == "moveBlock":
        req = MoveBlockRequest.model_validate(_args(msg))
        kwargs = {"parent_id": req.parent_id} if "parent_id" in req.model_fields_set else {}
        block = await editor.move_block(theme_id, user.id, _block_id(msg), req.position, **kwargs)
        return block.to_dict()

    if msg_type == "removeBlock":
        block = await editor.remove_block(theme_id, user.id, _block_id(msg))
        return {"removed": block.id}

    if msg_type == "duplicateBlock":
        block = await editor.duplicate_block(theme_id, user.id, _block_id(msg))
        return block.to_dict()

    if msg_type == "reorderBlocks":
        req = ReorderRequest.model_validate(_args(msg))
        blocks = await editor.reorder_blocks(
            theme_id,
            user.id,
            req.page_id,
            req.block_ids,
            parent_id=req.parent_id,
            save_immediately=req.save_immediately,
        )
        return [b.to_dict() for b in blocks]

    if msg_type == "inlineEdit":
        req = InlineEditRequest.model_validate({**_args(msg), "blockId": _block_id(msg)})
        block = await editor.inline_edit(
            theme_id, user.id, req.block_id, req.field, req.value, save_immediately=req.save_immediately
        )
        return block.to_dict()

    if msg_type == "save":
        entries = await editor.save_pending(theme_id, user.id)
        return {"saved": [e.to_dict() for e in entries], "history": editor.history(theme_id, user.id)}

    if msg_type in ("undo", "redo"):
        op = editor.undo if msg_type == "undo" else editor.redo
        entry = await op(theme_id, user.id)
        return {"entry": entry.to_dict() if entry else None, "history": editor.history(theme_id, user.id)}

    if msg_type == "history":
        return editor.history(theme_id, user.id)

    raise ValidationError(f"Unknown message type {msg_type!r}")


async def _send_error(websocket: WebSocket, request_id: Any, op: Any, error: str, status_code: int) -> None:
    await websocket.send_text(
        json.dumps({"type": "error", "requestId": request_id, "op": op, "error": error, "status": status_code})
    )


async def _flush_pending(svc: ThemeServices, theme_id: str, user_id: str) -> None:
    """Persist live edits left behind by the user's last connection."""
    session = svc.editor.registry.get(theme_id, user_id)
    if session is None or not session.has_pending_changes:
        return
    try:
        entries = await svc.editor.save_pending(theme_id, user_id)
        logger.info("ws: flushed %d pending edits theme=%s user=%s", len(entries), theme_id, user_id)
    except ThemeForgeError as e:
        logger.warning("ws: could not flush pending edits theme=%s user=%s: %s", theme_id, user_id, e)


@router.websocket("/ws/editor/{theme_id}")
async def editor_websocket(websocket: WebSocket, theme_id: str) -> None:
    """
    Live editing channel for one theme.

    Protocol:
      Client → Server:  {"type": "addBlock", "requestId": "...", "pageId": "...", "blockType": "..."}
                        {"type": "updateBlock" | "moveBlock" | "removeBlock" | "duplicateBlock",
                         "requestId": "...", "blockId": "...", ...}
                        {"type": "reorderBlocks" | "inlineEdit" | "save" | "undo" | "redo" | "history", ...}
      Server → Client:  {"type": "hello", "themeId", "userId", "users"}
                        {"type": "result", "requestId", "op", "result"}
                        {"type": "error", "requestId", "op", "error", "status"}
                        collaborator events ({"type": "blockAdded", "event": "blockAdded", ...})
                        {"type": "userJoined" | "userLeft", "userId", "name"}

    Unsaved live edits are flushed, and the editor session closed, when the
    user's last socket closes.
    """
    await websocket.accept()

    user = _user_from_websocket(websocket)
    if user is None:
        logger.warning("ws: rejected unauthenticated connection theme=%s", theme_id)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    svc = get_services()
    try:
        await svc.store.get_theme(theme_id)
    except NotFoundError:
        logger.warning("ws: unknown theme=%s user=%s", theme_id, user.id)
        await websocket.close(code=CLOSE_THEME_NOT_FOUND)
        return

    conn = svc.connections.connect(theme_id, user.id, websocket, user_name=user.name)
    await websocket.send_text(
        json.dumps({"type": "hello", "themeId": theme_id, "userId": user.id, "users": svc.connections.users(theme_id)})
    )
    await svc.connections.broadcast_to_theme(
        theme_id, "userJoined", {"userId": user.id, "name": user.name}, exclude_user_id=user.id
    )

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("ws: malformed message from client: %r", raw[:200])
                continue
            if not isinstance(msg, dict):
                logger.warning("ws: ignoring non-object message from client")
                continue

            request_id = msg.get("requestId")
            op = msg.get("type")
            try:
                result = await _dispatch(svc, theme_id, user, msg)
            except pydantic.ValidationError as e:
                await _send_error(websocket, request_id, op, str(e), 422)
                continue
            except ThemeForgeError as e:
                await _send_error(websocket, request_id, op, str(e), _error_status(e))
                continue

            await websocket.send_text(
                json.dumps({"type": "result", "requestId": request_id, "op": op, "result": result}, default=str)
            )
    except WebSocketDisconnect:
        logger.info("ws: client disconnected theme=%s user=%s", theme_id, user.id)
    finally:
        svc.connections.disconnect(conn)
        if not svc.connections.has_user(theme_id, user.id):
            await _flush_pending(svc, theme_id, user.id)
            svc.editor.close_session(theme_id, user.id)
            await svc.connections.broadcast_to_theme(
                theme_id, "userLeft", {"userId": user.id, "name": user.name}, exclude_user_id=user.id
            )
