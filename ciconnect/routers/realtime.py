"""WebSocket endpoints that push live unread-message counts."""
from __future__ import annotations

import json
import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from ..database import create_session
from ..models import User
from ..services import build_unread_notifier, decode_access_token

router = APIRouter()
logger = logging.getLogger(__name__)


def _resolve_actor(token: str | None) -> UUID | None:
    if not token:
        return None
    try:
        user_id = decode_access_token(token)
    except HTTPException:
        return None
    with create_session() as db:
        if db.get(User, user_id) is None:
            return None
    return user_id


@router.websocket("/ws/messages/unread")
async def unread_messages_socket(websocket: WebSocket, token: str | None = Query(default=None)) -> None:
    """Push ``{"type": "unread.count", "count": n}`` whenever the caller's unread count changes."""

    actor_id = _resolve_actor(token)
    if actor_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    async def _push(count: int) -> None:
        await websocket.send_text(json.dumps({"type": "unread.count", "count": count}))

    notifier = build_unread_notifier(actor_id, on_update=_push)
    logger.info("Unread socket connected for %s", actor_id)
    try:
        await notifier.start()
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                break

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError:
                payload = {"type": raw}
            if not isinstance(payload, dict):
                continue

            message_type = str(payload.get("type") or "").lower()
            if message_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))
            elif message_type == "refresh":
                await notifier.refresh()
            # Anything else only keeps the connection alive.
    finally:
        notifier.close()
        logger.info("Unread socket disconnected for %s", actor_id)


__all__ = ["router"]
