# activity_recorder.py — Immutable activity log + per-recipient notification fan-out
# Ordering per mutation: activity row committed -> notifications committed ->
# user-topic publishes. Callers publish the board/workspace event afterwards.

import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from broadcaster import EventBroadcaster, broadcaster
from telemetry import span
from models import (
    Activity, ActivityAction, Board, BoardList, Card, Notification,
    NotificationType, TargetModel, User, Workspace,
)

logger = logging.getLogger("taskboard.activity")

# Closed mapping from target-kind tag to ORM class
TARGET_MODELS = {
    TargetModel.WORKSPACE: Workspace,
    TargetModel.BOARD: Board,
    TargetModel.LIST: BoardList,
    TargetModel.CARD: Card,
    TargetModel.USER: User,
}


def display_title(entity) -> Optional[str]:
    if entity is None:
        return None
    if isinstance(entity, Workspace):
        return entity.name
    if isinstance(entity, User):
        return entity.display_name or entity.email
    return entity.title


class ActivityRecorder:
    def __init__(self, db: AsyncSession, events: EventBroadcaster = broadcaster):
        self.db = db
        self.events = events

    async def record(
        self,
        actor_id: str,
        action: ActivityAction,
        target_id: str,
        target_model: TargetModel,
        details: str,
        attach_to: Sequence = (),
        board_id: Optional[str] = None,
        workspace_id: Optional[str] = None,
    ) -> Activity:
        """Persist one activity, then push its id onto each entity's activity_ids."""
        with span("activity.record", action=action.value, target_id=target_id, board_id=board_id):
            activity = Activity(
                actor_id=actor_id,
                action=action,
                target_id=target_id,
                target_model=target_model,
                board_id=board_id,
                workspace_id=workspace_id,
                details=details,
            )
            self.db.add(activity)
            await self.db.commit()

            for entity in attach_to:
                entity.activity_ids = [*(entity.activity_ids or []), activity.id]
            if attach_to:
                await self.db.commit()

        logger.info(
            f"{action.value} actor={actor_id[:8]} target={target_model.value}:{target_id} "
            f"board={board_id or '-'}"
        )
        return activity

    async def notify(
        self,
        recipients: Iterable[str],
        actor_id: str,
        message: str,
        target_id: Optional[str] = None,
        target_model: Optional[TargetModel] = None,
        notification_type: NotificationType = NotificationType.ACTIVITY,
        activity: Optional[Activity] = None,
    ) -> List[Notification]:
        """One notification per recipient (actor excluded), each paired with a user-topic publish."""
        seen = set()
        created = []
        for user_id in recipients:
            if not user_id or user_id == actor_id or user_id in seen:
                continue
            seen.add(user_id)
            notification = Notification(
                recipient_id=user_id,
                message=message,
                type=notification_type,
                target_id=target_id,
                target_model=target_model,
                activity_id=activity.id if activity else None,
            )
            self.db.add(notification)
            created.append(notification)

        if not created:
            return created
        await self.db.commit()

        for notification in created:
            await self.events.publish(notification.recipient_id, "new-notification", {
                "notification_id": notification.id,
                "message": message,
                "notification_type": notification_type.value,
                "target_id": target_id,
                "target_model": target_model.value if target_model else None,
            })
        return created

    async def resolve_target(self, target_model, target_id: Optional[str]):
        """Load the entity an activity or notification points at, deleted or not."""
        if not target_model or not target_id:
            return None
        model = TARGET_MODELS[TargetModel(target_model)]
        return await self.db.get(model, target_id)
