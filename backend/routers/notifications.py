# routers/notifications.py — Per-recipient notification inbox
import os
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from activity_recorder import ActivityRecorder, display_title
from auth import get_current_user, CurrentUser
from database import get_db_session
from exceptions import NotFoundError, require_id
from models import Notification

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])

PAGE_SIZE = int(os.getenv("NOTIFICATION_PAGE_SIZE", "50"))


# --- Schemas ---

class NotificationOut(BaseModel):
    id: str
    message: str
    type: str
    target_id: Optional[str] = None
    target_model: Optional[str] = None
    target_title: Optional[str] = None
    activity_id: Optional[str] = None
    is_read: bool
    created_at: str


def _notif_out(n, target_title: Optional[str] = None) -> dict:
    return NotificationOut(
        id=n.id, message=n.message,
        type=n.type.value if hasattr(n.type, "value") else str(n.type),
        target_id=n.target_id,
        target_model=n.target_model.value if hasattr(n.target_model, "value") else n.target_model,
        target_title=target_title,
        activity_id=n.activity_id,
        is_read=bool(n.is_read),
        created_at=n.created_at.isoformat(),
    ).model_dump()


async def _own_notification(notification_id: str, user: CurrentUser, db: AsyncSession) -> Notification:
    require_id(notification_id, "notification_id")
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.recipient_id == user.id,
            Notification.is_hidden.is_(False),
        )
    )
    notif = result.scalar_one_or_none()
    if not notif:
        raise NotFoundError("Notification not found")
    return notif


# ============================================================
# LIST
# ============================================================

@router.get("")
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=PAGE_SIZE, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    query = select(Notification).where(
        Notification.recipient_id == user.id,
        Notification.is_hidden.is_(False),
    )
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    query = query.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
    result = await db.execute(query)

    recorder = ActivityRecorder(db)
    out = []
    for n in result.scalars().all():
        target = await recorder.resolve_target(n.target_model, n.target_id)
        out.append(_notif_out(n, display_title(target)))
    return out


# ============================================================
# COUNT
# ============================================================

@router.get("/count")
async def notification_count(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    unread = (await db.execute(
        select(func.count(Notification.id)).where(
            Notification.recipient_id == user.id,
            Notification.is_read.is_(False),
            Notification.is_hidden.is_(False),
        )
    )).scalar() or 0
    return {"unread": unread}


# ============================================================
# MARK READ
# ============================================================

@router.put("/read-all")
async def mark_all_read(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Notification)
        .where(
            Notification.recipient_id == user.id,
            Notification.is_read.is_(False),
            Notification.is_hidden.is_(False),
        )
        .values(is_read=True)
    )
    await db.commit()
    return {"marked": result.rowcount}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _own_notification(notification_id, user, db)
    notif.is_read = True
    await db.commit()
    return {"status": "read"}


# ============================================================
# HIDE
# ============================================================

@router.delete("/{notification_id}")
async def hide_notification(
    notification_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    notif = await _own_notification(notification_id, user, db)
    notif.is_hidden = True
    await db.commit()
    return {"status": "hidden"}


@router.delete("")
async def hide_all_notifications(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Notification)
        .where(Notification.recipient_id == user.id, Notification.is_hidden.is_(False))
        .values(is_hidden=True)
    )
    await db.commit()
    return {"hidden": result.rowcount}
