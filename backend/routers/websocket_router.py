# routers/websocket_router.py — Live board/user/workspace rooms
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from sqlalchemy import select

from auth import AuthService
from broadcaster import broadcaster
from database import get_db_context
from exceptions import UnauthenticatedError
from models import Board, Workspace, is_valid_id
from permissions import is_active_member, is_workspace_member

router = APIRouter(tags=["WebSocket"])
logger = logging.getLogger("taskboard.ws")


def _verify_ws_token(token: str) -> Optional[dict]:
    """Verify JWT token for WebSocket authentication"""
    try:
        payload = AuthService.verify_token(token)
    except UnauthenticatedError:
        return None
    if payload.get("type") != "access":
        return None
    return payload


async def can_join(user_id: str, topic: str) -> bool:
    """A user may join their own topic, boards they actively belong to, and their workspaces."""
    if topic == user_id:
        return True
    if not is_valid_id(topic):
        return False
    async with get_db_context() as db:
        board = (await db.execute(
            select(Board).where(Board.id == topic, Board.is_deleted.is_(False))
        )).scalar_one_or_none()
        if board is not None:
            return is_active_member(board, user_id)
        workspace = (await db.execute(
            select(Workspace).where(Workspace.id == topic, Workspace.is_deleted.is_(False))
        )).scalar_one_or_none()
        return workspace is not None and is_workspace_member(workspace, user_id)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
):
    """Real-time channel; clients subscribe to board and workspace rooms"""
    payload = _verify_ws_token(token)
    user_id = payload.get("sub") if payload else None
    if not user_id:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    await websocket.accept()
    broadcaster.register(websocket, user_id)
    await websocket.send_json({"type": "connected", "user_id": user_id, "timestamp": _now()})

    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                await websocket.send_json({"type": "error", "detail": "Expected a JSON object"})
                continue
            msg_type = data.get("type", "")

            if msg_type == "ping":
                await websocket.send_json({"type": "pong", "timestamp": _now()})

            elif msg_type == "subscribe":
                topic = data.get("topic", "")
                if topic and await can_join(user_id, topic):
                    broadcaster.subscribe(websocket, topic)
                    await websocket.send_json({"type": "subscribed", "topic": topic})
                else:
                    await websocket.send_json({"type": "error", "topic": topic, "detail": "Not allowed"})

            elif msg_type == "unsubscribe":
                topic = data.get("topic", "")
                if topic:
                    broadcaster.unsubscribe(websocket, topic)
                    await websocket.send_json({"type": "unsubscribed", "topic": topic})

    except WebSocketDisconnect:
        broadcaster.unregister(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        broadcaster.unregister(websocket)


@router.get("/ws/stats")
async def websocket_stats():
    """Get WebSocket connection statistics"""
    return broadcaster.get_stats()
