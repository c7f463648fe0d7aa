# routers/activities.py — The current user's own activity log
import os

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from exceptions import ConflictError, NotFoundError, require_id
from models import Activity
from routers.boards import activity_out

router = APIRouter(prefix="/api/v1/activities", tags=["Activities"])

PAGE_SIZE = int(os.getenv("NOTIFICATION_PAGE_SIZE", "50"))


@router.get("")
async def list_my_activities(
    limit: int = Query(default=PAGE_SIZE, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Activities performed by the current user, newest first"""
    result = await db.execute(
        select(Activity)
        .where(Activity.actor_id == user.id, Activity.is_hidden.is_(False))
        .order_by(Activity.timestamp.desc())
        .offset(offset)
        .limit(limit)
    )
    return [activity_out(a).model_dump() for a in result.scalars().all()]


@router.put("/hide-all")
async def hide_all_activities(
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    result = await db.execute(
        update(Activity)
        .where(Activity.actor_id == user.id, Activity.is_hidden.is_(False))
        .values(is_hidden=True)
    )
    await db.commit()
    return {"hidden": result.rowcount}


@router.put("/{activity_id}/hide")
async def hide_activity(
    activity_id: str,
    db: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    """Hide one of your own activities from your feed (the record itself is kept)"""
    require_id(activity_id, "activity_id")
    result = await db.execute(
        select(Activity).where(Activity.id == activity_id, Activity.actor_id == user.id)
    )
    activity = result.scalar_one_or_none()
    if not activity:
        raise NotFoundError("Activity not found")
    if activity.is_hidden:
        raise ConflictError("Activity is already hidden")
    activity.is_hidden = True
    await db.commit()
    return {"status": "hidden", "activity_id": activity_id}
