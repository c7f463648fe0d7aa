# hierarchy.py — Workspace/Board/List/Card graph and its ordering arrays
#
# Ordering model:
# - board.list_order_ids and list.card_order_ids are the only display order
# - every id in them must resolve to a live child whose parent fk matches
# - a live child missing from its array is appended on read and logged
#
# Writes within one operation are sequential commits (child + ordering array
# first, then the activity, then notifications, then the room broadcast).

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, update, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from activity_recorder import ActivityRecorder
from auth import CurrentUser
from broadcaster import EventBroadcaster, broadcaster, event_payload
from exceptions import (
    ConflictError, ForbiddenError, InvalidError, NotFoundError, require_id,
)
from models import (
    Activity, ActivityAction, Board, BoardInvitation, BoardList, BoardMember,
    BoardVisibility, Card, NotificationType, TargetModel, User, Workspace,
    WorkspaceMember, is_valid_id, new_object_id,
)
from permissions import (
    active_member_ids, find_member, is_active_member, is_owner,
    is_workspace_member, require_active_member, require_owner,
    require_workspace_member,
)

logger = logging.getLogger("taskboard.hierarchy")


def apply_order(items: Sequence, order_ids: Sequence[str], label: str, parent_id: str) -> list:
    """Order children by an ordering array; strays go last."""
    by_id = {item.id: item for item in items}
    ordered = [by_id.pop(i) for i in (order_ids or []) if i in by_id]
    if by_id:
        logger.warning(
            f"{label} {parent_id} ordering is missing {len(by_id)} live children: "
            f"{', '.join(sorted(by_id))}"
        )
        ordered.extend(sorted(by_id.values(), key=lambda x: (x.position or 0, x.created_at)))
    return ordered


def required_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise InvalidError(f"{field} is required", "TB-REQ-002", {"field": field})
    return str(value).strip()


def _validate_order(new_order, live_ids: set, kind: str) -> List[str]:
    """All-or-nothing check that new_order is exactly the live child set."""
    if not isinstance(new_order, (list, tuple)):
        raise InvalidError(f"{kind} order must be an array of ids", "TB-REQ-004")
    seen = set()
    for child_id in new_order:
        if not is_valid_id(child_id):
            raise InvalidError(f"Invalid {kind} id", "TB-REQ-001", {f"{kind}_id": child_id})
        if child_id in seen:
            raise InvalidError(f"Duplicate {kind} id in order", "TB-REQ-003", {f"{kind}_id": child_id})
        if child_id not in live_ids:
            raise InvalidError(
                f"{kind.capitalize()} does not belong here or has been deleted",
                "TB-REQ-003",
                {f"{kind}_id": child_id},
            )
        seen.add(child_id)
    missing = sorted(live_ids - seen)
    if missing:
        raise InvalidError(
            f"Order must contain every {kind}", "TB-REQ-003", {"missing_ids": missing}
        )
    return list(new_order)


class BoardAccess:
    """Loaders and collaborators shared by the hierarchy and card content layers."""

    def __init__(
        self,
        db: AsyncSession,
        actor: CurrentUser,
        events: EventBroadcaster = broadcaster,
    ):
        self.db = db
        self.actor = actor
        self.events = events
        self.recorder = ActivityRecorder(db, events)

    @property
    def actor_name(self) -> str:
        return self.actor.display_name or self.actor.email

    async def _fetch(self, model, entity_id: str, live_only: bool = True):
        stmt = select(model).where(model.id == entity_id)
        if live_only:
            stmt = stmt.where(model.is_deleted.is_(False))
        stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def load_workspace(self, workspace_id: str) -> Workspace:
        require_id(workspace_id, "workspace_id")
        workspace = await self._fetch(Workspace, workspace_id)
        if not workspace:
            raise NotFoundError("Workspace not found", details={"workspace_id": workspace_id})
        return workspace

    async def load_board(self, board_id: str) -> Board:
        require_id(board_id, "board_id")
        board = await self._fetch(Board, board_id)
        if not board:
            raise NotFoundError("Board not found", details={"board_id": board_id})
        return board

    async def load_list(self, list_id: str) -> Tuple[BoardList, Board]:
        require_id(list_id, "list_id")
        lst = await self._fetch(BoardList, list_id)
        if not lst:
            raise NotFoundError("List not found", details={"list_id": list_id})
        board = await self.load_board(lst.board_id)
        return lst, board

    async def load_card(self, card_id: str) -> Tuple[Card, Board]:
        require_id(card_id, "card_id")
        card = await self._fetch(Card, card_id)
        if not card:
            raise NotFoundError("Card not found", details={"card_id": card_id})
        board = await self.load_board(card.board_id)
        return card, board

    async def reload_card(self, card_id: str) -> Card:
        return await self._fetch(Card, card_id, live_only=False)

    async def publish(self, topic: str, event: str, entity_id: str, board_id: Optional[str],
                      data: Any, message: str) -> None:
        await self.events.publish(topic, event, event_payload(entity_id, board_id, data, message))


class HierarchyManager(BoardAccess):
    """Owns the entity graph, membership checks and ordering invariants."""

    # ============================================================
    # WORKSPACES
    # ============================================================

    async def create_workspace(self, name: str, description: Optional[str] = None,
                               background: Optional[str] = None, is_public: bool = False) -> Workspace:
        name = required_text(name, "name")
        workspace = Workspace(
            id=new_object_id(),
            name=name,
            description=description,
            background=background,
            owner_id=self.actor.id,
            is_public=is_public,
            activity_ids=[],
        )
        workspace.members.append(WorkspaceMember(user_id=self.actor.id))
        self.db.add(workspace)
        await self.db.commit()

        message = f'{self.actor_name} created workspace "{name}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.WORKSPACE_CREATED, workspace.id,
            TargetModel.WORKSPACE, message, attach_to=[workspace], workspace_id=workspace.id,
        )
        await self.publish(self.actor.id, "workspace-created", workspace.id, None,
                           {"name": name}, message)
        return await self.load_workspace(workspace.id)

    async def list_workspaces(self) -> List[Workspace]:
        member_of = select(WorkspaceMember.workspace_id).where(WorkspaceMember.user_id == self.actor.id)
        stmt = (
            select(Workspace)
            .where(
                Workspace.is_deleted.is_(False),
                or_(Workspace.owner_id == self.actor.id, Workspace.id.in_(member_of)),
            )
            .order_by(Workspace.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_workspace(self, workspace_id: str) -> Workspace:
        workspace = await self.load_workspace(workspace_id)
        require_workspace_member(workspace, self.actor.id)
        return workspace

    async def update_workspace(self, workspace_id: str, changes: Dict[str, Any]) -> Workspace:
        workspace = await self.load_workspace(workspace_id)
        require_owner(workspace, self.actor.id, "Only the workspace owner can update it")
        if "name" in changes:
            workspace.name = required_text(changes["name"], "name")
        for field in ("description", "background", "is_public"):
            if field in changes and changes[field] is not None:
                setattr(workspace, field, changes[field])
        await self.db.commit()

        message = f'{self.actor_name} updated workspace "{workspace.name}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.WORKSPACE_UPDATED, workspace.id,
            TargetModel.WORKSPACE, message, attach_to=[workspace], workspace_id=workspace.id,
        )
        await self.publish(workspace.id, "workspace-updated", workspace.id, None, changes, message)
        return await self.load_workspace(workspace.id)

    async def delete_workspace(self, workspace_id: str) -> List[str]:
        """Soft-delete a workspace and every board in it. Returns the board ids."""
        workspace = await self.load_workspace(workspace_id)
        require_owner(workspace, self.actor.id, "Only the workspace owner can delete it")

        result = await self.db.execute(
            select(Board.id).where(Board.workspace_id == workspace.id, Board.is_deleted.is_(False))
        )
        board_ids = list(result.scalars().all())
        await self.db.execute(
            update(Board)
            .where(Board.workspace_id == workspace.id, Board.is_deleted.is_(False))
            .values(is_deleted=True)
        )
        workspace.is_deleted = True
        await self.db.commit()

        message = f'{self.actor_name} deleted workspace "{workspace.name}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.WORKSPACE_DELETED, workspace.id,
            TargetModel.WORKSPACE, message, attach_to=[workspace], workspace_id=workspace.id,
        )
        await self.recorder.notify(
            workspace.member_ids, self.actor.id, message, workspace.id,
            TargetModel.WORKSPACE, activity=activity,
        )
        await self.publish(workspace.id, "workspace-deleted", workspace.id, None,
                           {"board_ids": board_ids}, message)
        return board_ids

    # ============================================================
    # BOARDS
    # ============================================================

    async def create_board(self, title: str, workspace_id: str, description: Optional[str] = None,
                           background: Optional[str] = None,
                           visibility: BoardVisibility = BoardVisibility.PRIVATE) -> Board:
        title = required_text(title, "title")
        workspace = await self.load_workspace(workspace_id)
        require_workspace_member(workspace, self.actor.id)

        board = Board(
            id=new_object_id(),
            title=title,
            description=description,
            background=background,
            visibility=BoardVisibility(visibility),
            owner_id=self.actor.id,
            workspace_id=workspace.id,
            list_order_ids=[],
            activity_ids=[],
        )
        board.members.append(BoardMember(user_id=self.actor.id, is_active=True, position=0))
        self.db.add(board)
        await self.db.commit()

        message = f'{self.actor_name} created board "{title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.BOARD_CREATED, board.id, TargetModel.BOARD, message,
            attach_to=[board, workspace], board_id=board.id, workspace_id=workspace.id,
        )
        await self.publish(workspace.id, "board-created", board.id, board.id,
                           {"title": title, "workspace_id": workspace.id}, message)
        return await self.load_board(board.id)

    async def list_boards(self, workspace_id: Optional[str] = None) -> List[Board]:
        active_in = select(BoardMember.board_id).where(
            BoardMember.user_id == self.actor.id, BoardMember.is_active.is_(True)
        )
        stmt = select(Board).where(
            Board.is_deleted.is_(False),
            or_(Board.owner_id == self.actor.id, Board.id.in_(active_in)),
        )
        if workspace_id:
            require_id(workspace_id, "workspace_id")
            stmt = stmt.where(Board.workspace_id == workspace_id)
        result = await self.db.execute(stmt.order_by(Board.created_at.desc()))
        return list(result.scalars().all())

    async def get_board(self, board_id: str) -> Board:
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)
        return board

    async def update_board(self, board_id: str, changes: Dict[str, Any]) -> Board:
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)
        if "title" in changes:
            board.title = required_text(changes["title"], "title")
        if changes.get("visibility") is not None:
            board.visibility = BoardVisibility(changes["visibility"])
        for field in ("description", "background"):
            if field in changes and changes[field] is not None:
                setattr(board, field, changes[field])
        await self.db.commit()

        message = f'{self.actor_name} updated board "{board.title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.BOARD_UPDATED, board.id, TargetModel.BOARD, message,
            attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.publish(board.id, "board-updated", board.id, board.id,
                           {k: (v.value if isinstance(v, BoardVisibility) else v) for k, v in changes.items()},
                           message)
        return await self.load_board(board.id)

    async def delete_board(self, board_id: str) -> Board:
        """Shallow soft delete; lists and cards become unreachable through the board."""
        board = await self.load_board(board_id)
        require_owner(board, self.actor.id, "Only the board owner can delete the board")
        board.is_deleted = True
        await self.db.commit()

        workspace = await self._fetch(Workspace, board.workspace_id, live_only=False)
        message = f'{self.actor_name} deleted board "{board.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.BOARD_DELETED, board.id, TargetModel.BOARD, message,
            attach_to=[board, workspace] if workspace else [board],
            board_id=board.id, workspace_id=board.workspace_id,
        )
        if workspace:
            await self.recorder.notify(
                workspace.member_ids, self.actor.id, message, board.id, TargetModel.BOARD,
                activity=activity,
            )
        await self.publish(board.workspace_id, "board-deleted", board.id, board.id, {}, message)
        await self.publish(board.id, "board-deleted", board.id, board.id, {}, message)
        return board

    async def _live_list_ids(self, board_id: str) -> set:
        result = await self.db.execute(
            select(BoardList.id).where(BoardList.board_id == board_id, BoardList.is_deleted.is_(False))
        )
        return set(result.scalars().all())

    async def update_list_order(self, board_id: str, new_order: List[str]) -> Board:
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)
        order = _validate_order(new_order, await self._live_list_ids(board.id), "list")

        board.list_order_ids = order
        await self.db.commit()

        message = f'{self.actor_name} reordered lists on "{board.title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.LIST_ORDER_UPDATED, board.id, TargetModel.BOARD, message,
            attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.publish(board.id, "list-order-updated", board.id, board.id,
                           {"list_order_ids": order}, message)
        return await self.load_board(board.id)

    # ============================================================
    # BOARD MEMBERSHIP
    # ============================================================

    async def _resolve_invitee(self, user_id: Optional[str], email: Optional[str]) -> Optional[User]:
        if user_id:
            require_id(user_id, "user_id")
            user = await self.db.get(User, user_id)
            if not user or not user.is_active:
                raise NotFoundError("User not found", details={"user_id": user_id})
            return user
        if email:
            result = await self.db.execute(select(User).where(User.email == email.lower()))
            return result.scalar_one_or_none()
        raise InvalidError("user_id or email is required", "TB-REQ-002", {"field": "user_id"})

    async def invite_member(self, board_id: str, user_id: Optional[str] = None,
                            email: Optional[str] = None) -> Tuple[Board, Optional[User]]:
        board = await self.load_board(board_id)
        require_owner(board, self.actor.id, "Only the board owner can invite members")
        user = await self._resolve_invitee(user_id, email)

        if user is None:
            return await self._invite_pending(board, email.lower()), None

        member = find_member(board, user.id)
        if member and member.is_active:
            raise ConflictError(
                "User is already an active member of this board",
                details={"user_id": user.id, "board_id": board.id},
            )
        if member:
            member.is_active = True
        else:
            board.members.append(BoardMember(
                user_id=user.id, is_active=True, position=len(board.members),
            ))
        board.invitations.append(BoardInvitation(
            user_id=user.id, email=user.email, invited_by=self.actor.id,
        ))

        # Board access implies workspace membership
        workspace = await self._fetch(Workspace, board.workspace_id)
        if workspace and not is_workspace_member(workspace, user.id):
            workspace.members.append(WorkspaceMember(user_id=user.id))
        await self.db.commit()

        invitee = user.display_name or user.email
        message = f'{self.actor_name} invited {invitee} to board "{board.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.MEMBER_INVITED, user.id, TargetModel.USER, message,
            attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            [user.id], self.actor.id,
            f'{self.actor_name} invited you to board "{board.title}"',
            board.id, TargetModel.BOARD, NotificationType.GENERAL, activity,
        )
        await self.publish(board.id, "member-invited", user.id, board.id,
                           {"user_id": user.id, "display_name": invitee, "reactivated": member is not None},
                           message)
        return await self.load_board(board.id), user

    async def _invite_pending(self, board: Board, email: str) -> Board:
        """Record an invitation for an address with no account yet."""
        for invitation in board.invitations:
            if invitation.user_id is None and invitation.email == email and invitation.is_active:
                raise ConflictError("This address has already been invited", details={"email": email})
        board.invitations.append(BoardInvitation(email=email, invited_by=self.actor.id))
        await self.db.commit()

        message = f'{self.actor_name} invited {email} to board "{board.title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.MEMBER_INVITED, board.id, TargetModel.BOARD, message,
            attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.publish(board.id, "member-invited", board.id, board.id,
                           {"email": email, "pending": True}, message)
        return await self.load_board(board.id)

    async def _deactivate_member(self, board: Board, member: BoardMember) -> Tuple[List[str], bool]:
        """Retire a membership, strip the user from cards, and drop workspace access if unused."""
        user_id = member.user_id
        member.is_active = False

        result = await self.db.execute(
            select(Card).where(Card.board_id == board.id, Card.is_deleted.is_(False))
        )
        card_ids = []
        for card in result.scalars().all():
            if user_id in (card.member_ids or []):
                card.member_ids = [m for m in card.member_ids if m != user_id]
                card_ids.append(card.id)

        workspace_removed = False
        workspace = await self._fetch(Workspace, board.workspace_id, live_only=False)
        if workspace and not is_owner(workspace, user_id):
            elsewhere = await self.db.execute(
                select(func.count(BoardMember.id))
                .join(Board, Board.id == BoardMember.board_id)
                .where(
                    BoardMember.user_id == user_id,
                    BoardMember.is_active.is_(True),
                    Board.workspace_id == workspace.id,
                    Board.id != board.id,
                    Board.is_deleted.is_(False),
                )
            )
            if not elsewhere.scalar():
                kept = [m for m in workspace.members if m.user_id != user_id]
                workspace_removed = len(kept) != len(workspace.members)
                workspace.members = kept

        await self.db.commit()
        return card_ids, workspace_removed

    async def _announce_deactivation(self, board: Board, user_id: str, card_ids: List[str],
                                     workspace_removed: bool, message: str) -> None:
        data = {"user_id": user_id, "card_ids": card_ids, "workspace_removed": workspace_removed}
        await self.publish(board.id, "member-deactivated", user_id, board.id, data, message)
        await self.publish(user_id, "member-deactivated", user_id, board.id, data, message)
        # Room access was checked at subscribe time only
        self.events.unsubscribe_user(user_id, board.id)
        if workspace_removed:
            self.events.unsubscribe_user(user_id, board.workspace_id)

    async def remove_member(self, board_id: str, user_id: str) -> Board:
        board = await self.load_board(board_id)
        require_owner(board, self.actor.id, "Only the board owner can remove members")
        require_id(user_id, "user_id")
        if user_id == board.owner_id:
            raise ForbiddenError("The board owner cannot be removed", "TB-ACL-002")
        member = find_member(board, user_id)
        if not member or not member.is_active:
            raise NotFoundError("User is not an active member of this board", details={"user_id": user_id})

        card_ids, workspace_removed = await self._deactivate_member(board, member)

        user = await self.db.get(User, user_id)
        name = (user.display_name or user.email) if user else user_id
        message = f'{self.actor_name} removed {name} from board "{board.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.MEMBER_REMOVED, user_id, TargetModel.USER, message,
            attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            [user_id], self.actor.id,
            f'{self.actor_name} removed you from board "{board.title}"',
            board.id, TargetModel.BOARD, NotificationType.GENERAL, activity,
        )
        await self._announce_deactivation(board, user_id, card_ids, workspace_removed, message)
        return await self.load_board(board.id)

    async def leave_board(self, board_id: str) -> Board:
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)
        if is_owner(board, self.actor.id):
            raise ForbiddenError(
                "The owner cannot leave the board; transfer ownership first", "TB-ACL-002"
            )
        member = find_member(board, self.actor.id)
        card_ids, workspace_removed = await self._deactivate_member(board, member)

        message = f'{self.actor_name} left board "{board.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.MEMBER_LEFT, self.actor.id, TargetModel.USER, message,
            attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            [board.owner_id], self.actor.id, message, board.id, TargetModel.BOARD,
            NotificationType.GENERAL, activity,
        )
        await self._announce_deactivation(board, self.actor.id, card_ids, workspace_removed, message)
        return await self.load_board(board.id)

    async def transfer_ownership(self, board_id: str, new_owner_id: str) -> Board:
        board = await self.load_board(board_id)
        require_owner(board, self.actor.id, "Only the board owner can transfer ownership")
        require_id(new_owner_id, "new_owner_id")
        if new_owner_id == board.owner_id:
            raise ConflictError("User already owns this board")
        if not is_active_member(board, new_owner_id):
            raise InvalidError(
                "New owner must be an active member of the board",
                details={"user_id": new_owner_id},
            )
        board.owner_id = new_owner_id
        await self.db.commit()

        new_owner = await self.db.get(User, new_owner_id)
        name = (new_owner.display_name or new_owner.email) if new_owner else new_owner_id
        message = f'{self.actor_name} transferred ownership of "{board.title}" to {name}'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.BOARD_OWNERSHIP_TRANSFERRED, board.id, TargetModel.BOARD,
            message, attach_to=[board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            [new_owner_id], self.actor.id, f'You are now the owner of board "{board.title}"',
            board.id, TargetModel.BOARD, NotificationType.GENERAL, activity,
        )
        await self.publish(board.id, "ownership-transferred", board.id, board.id,
                           {"previous_owner_id": self.actor.id, "owner_id": new_owner_id}, message)
        return await self.load_board(board.id)

    async def board_activities(self, board_id: str, limit: int = 50) -> List[Activity]:
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)
        result = await self.db.execute(
            select(Activity)
            .where(Activity.board_id == board.id)
            .order_by(Activity.timestamp.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    # ============================================================
    # LISTS
    # ============================================================

    async def create_list(self, board_id: str, title: str, position: Optional[float] = None) -> BoardList:
        title = required_text(title, "title")
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)

        order = list(board.list_order_ids or [])
        lst = BoardList(
            id=new_object_id(),
            title=title,
            board_id=board.id,
            position=len(order) if position is None else position,
            card_order_ids=[],
            activity_ids=[],
        )
        self.db.add(lst)
        board.list_order_ids = [*order, lst.id]
        await self.db.commit()

        message = f'{self.actor_name} added list "{title}" to "{board.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.LIST_CREATED, lst.id, TargetModel.LIST, message,
            attach_to=[lst, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            active_member_ids(board), self.actor.id, message, lst.id, TargetModel.LIST,
            activity=activity,
        )
        await self.publish(board.id, "list-created", lst.id, board.id,
                           {"title": title, "list_order_ids": board.list_order_ids}, message)
        lst, _ = await self.load_list(lst.id)
        return lst

    async def get_lists(self, board_id: str) -> List[BoardList]:
        board = await self.load_board(board_id)
        require_active_member(board, self.actor.id)
        result = await self.db.execute(
            select(BoardList).where(BoardList.board_id == board.id, BoardList.is_deleted.is_(False))
        )
        return apply_order(result.scalars().all(), board.list_order_ids, "Board", board.id)

    async def update_list(self, list_id: str, changes: Dict[str, Any]) -> BoardList:
        lst, board = await self.load_list(list_id)
        require_active_member(board, self.actor.id)
        if "title" in changes:
            lst.title = required_text(changes["title"], "title")
        if changes.get("position") is not None:
            lst.position = changes["position"]
        await self.db.commit()

        message = f'{self.actor_name} updated list "{lst.title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.LIST_UPDATED, lst.id, TargetModel.LIST, message,
            attach_to=[lst, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.publish(board.id, "list-updated", lst.id, board.id, changes, message)
        lst, _ = await self.load_list(lst.id)
        return lst

    async def delete_list(self, list_id: str) -> BoardList:
        """Cascade one level: cards under the list, then prune the board's order."""
        lst, board = await self.load_list(list_id)
        require_owner(board, self.actor.id, "Only the board owner can delete lists")

        result = await self.db.execute(
            select(Card.id).where(Card.list_id == lst.id, Card.is_deleted.is_(False))
        )
        card_ids = list(result.scalars().all())
        await self.db.execute(
            update(Card)
            .where(Card.list_id == lst.id, Card.is_deleted.is_(False))
            .values(is_deleted=True)
        )
        lst.card_order_ids = []

        live = await self._live_list_ids(board.id)
        live.discard(lst.id)
        board.list_order_ids = [i for i in (board.list_order_ids or []) if i in live]
        lst.is_deleted = True
        await self.db.commit()

        message = f'{self.actor_name} deleted list "{lst.title}" from "{board.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.LIST_DELETED, lst.id, TargetModel.LIST, message,
            attach_to=[lst, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            active_member_ids(board), self.actor.id, message, lst.id, TargetModel.LIST,
            activity=activity,
        )
        await self.publish(board.id, "list-deleted", lst.id, board.id,
                           {"card_ids": card_ids, "list_order_ids": board.list_order_ids}, message)
        return lst

    async def _live_card_ids(self, list_id: str) -> set:
        result = await self.db.execute(
            select(Card.id).where(Card.list_id == list_id, Card.is_deleted.is_(False))
        )
        return set(result.scalars().all())

    async def update_card_order(self, list_id: str, new_order: List[str]) -> BoardList:
        lst, board = await self.load_list(list_id)
        require_active_member(board, self.actor.id)
        order = _validate_order(new_order, await self._live_card_ids(lst.id), "card")

        lst.card_order_ids = order
        await self.db.commit()

        message = f'{self.actor_name} reordered cards in "{lst.title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.CARD_ORDER_UPDATED, lst.id, TargetModel.LIST, message,
            attach_to=[lst, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.publish(board.id, "card-order-updated", lst.id, board.id,
                           {"card_order_ids": order}, message)
        lst, _ = await self.load_list(lst.id)
        return lst

    # ============================================================
    # CARDS
    # ============================================================

    async def create_card(self, title: str, list_id: str, board_id: str,
                          description: Optional[str] = None, due_date=None) -> Card:
        title = required_text(title, "title")
        require_id(list_id, "list_id")
        board = await self.load_board(board_id)
        lst, _ = await self.load_list(list_id)
        if lst.board_id != board.id:
            raise InvalidError("List does not belong to this board", details={"list_id": list_id})
        require_active_member(board, self.actor.id)

        result = await self.db.execute(
            select(func.max(Card.position)).where(Card.list_id == lst.id, Card.is_deleted.is_(False))
        )
        max_position = result.scalar()
        card = Card(
            id=new_object_id(),
            title=title,
            description=description,
            list_id=lst.id,
            board_id=board.id,
            member_ids=[self.actor.id],
            position=0 if max_position is None else max_position + 1,
            due_date=due_date,
            version=0,
            activity_ids=[],
        )
        self.db.add(card)
        lst.card_order_ids = [*(lst.card_order_ids or []), card.id]
        await self.db.commit()

        message = f'{self.actor_name} added card "{title}" to "{lst.title}"'
        await self.recorder.record(
            self.actor.id, ActivityAction.CARD_CREATED, card.id, TargetModel.CARD, message,
            attach_to=[card, lst, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.publish(board.id, "card-created", card.id, board.id,
                           {"list_id": lst.id, "title": title, "card_order_ids": lst.card_order_ids},
                           message)
        return await self.reload_card(card.id)

    async def get_cards(self, list_id: str) -> List[Card]:
        lst, board = await self.load_list(list_id)
        require_active_member(board, self.actor.id)
        result = await self.db.execute(
            select(Card).where(Card.list_id == lst.id, Card.is_deleted.is_(False))
        )
        return apply_order(result.scalars().all(), lst.card_order_ids, "List", lst.id)

    async def get_card(self, card_id: str) -> Card:
        """Fetch by id. Deleted cards stay readable for the board owner (audit trail)."""
        require_id(card_id, "card_id")
        card = await self._fetch(Card, card_id, live_only=False)
        if not card:
            raise NotFoundError("Card not found", details={"card_id": card_id})
        board = await self._fetch(Board, card.board_id, live_only=False)
        if card.is_deleted or board is None or board.is_deleted:
            if board is None or not is_owner(board, self.actor.id):
                raise NotFoundError("Card not found", details={"card_id": card_id})
            return card
        require_active_member(board, self.actor.id)
        return card

    async def update_card(self, card_id: str, changes: Dict[str, Any]) -> Card:
        card, board = await self.load_card(card_id)
        require_active_member(board, self.actor.id)
        if "title" in changes:
            card.title = required_text(changes["title"], "title")
        for field in ("description", "due_date", "cover"):
            if field in changes:
                setattr(card, field, changes[field])
        await self.db.commit()

        message = f'{self.actor_name} updated card "{card.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.CARD_UPDATED, card.id, TargetModel.CARD, message,
            attach_to=[card, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(card.member_ids, self.actor.id, message, card.id,
                                   TargetModel.CARD, activity=activity)
        await self.publish(board.id, "card-updated", card.id, board.id,
                           {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in changes.items()},
                           message)
        return await self.reload_card(card.id)

    async def delete_card(self, card_id: str) -> Card:
        card, board = await self.load_card(card_id)
        require_active_member(board, self.actor.id)
        card.is_deleted = True
        lst = await self._fetch(BoardList, card.list_id, live_only=False)
        if lst:
            lst.card_order_ids = [i for i in (lst.card_order_ids or []) if i != card.id]
        await self.db.commit()

        message = f'{self.actor_name} deleted card "{card.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.CARD_DELETED, card.id, TargetModel.CARD, message,
            attach_to=[card, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(card.member_ids, self.actor.id, message, card.id,
                                   TargetModel.CARD, activity=activity)
        await self.publish(board.id, "card-deleted", card.id, board.id,
                           {"list_id": card.list_id}, message)
        return card

    async def move_card(self, card_id: str, new_list_id: str, new_board_id: str,
                        new_position: Optional[int] = None) -> Card:
        """Relocate a card and patch both ordering arrays in one commit."""
        card, source_board = await self.load_card(card_id)
        require_active_member(source_board, self.actor.id)
        require_id(new_list_id, "new_list_id")
        require_id(new_board_id, "new_board_id")
        if new_position is not None and (not isinstance(new_position, int) or new_position < 0):
            raise InvalidError("new_position must be a non-negative integer", details={"field": "new_position"})

        if new_board_id == source_board.id:
            dest_board = source_board
        else:
            dest_board = await self.load_board(new_board_id)
        dest_list, _ = await self.load_list(new_list_id)
        if dest_list.board_id != dest_board.id:
            raise InvalidError(
                "Destination list does not belong to the destination board",
                details={"list_id": new_list_id, "board_id": new_board_id},
            )
        require_active_member(dest_board, self.actor.id)

        source_list = await self._fetch(BoardList, card.list_id, live_only=False)
        if source_list is not None and source_list.id != dest_list.id:
            source_list.card_order_ids = [i for i in (source_list.card_order_ids or []) if i != card.id]
        order = [i for i in (dest_list.card_order_ids or []) if i != card.id]
        index = len(order) if new_position is None else min(new_position, len(order))
        order.insert(index, card.id)
        dest_list.card_order_ids = order

        from_list_id, from_board_id = card.list_id, card.board_id
        card.list_id = dest_list.id
        card.board_id = dest_board.id
        card.position = index
        if dest_board is not source_board:
            allowed = set(active_member_ids(dest_board))
            card.member_ids = [m for m in (card.member_ids or []) if m in allowed]
        await self.db.commit()

        message = f'{self.actor_name} moved card "{card.title}" to "{dest_list.title}"'
        attach = [card, dest_board] if dest_board is source_board else [card, dest_board, source_board]
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.CARD_MOVED, card.id, TargetModel.CARD, message,
            attach_to=attach, board_id=dest_board.id, workspace_id=dest_board.workspace_id,
        )
        await self.recorder.notify(card.member_ids, self.actor.id, message, card.id,
                                   TargetModel.CARD, activity=activity)
        data = {
            "from_list_id": from_list_id,
            "to_list_id": dest_list.id,
            "from_board_id": from_board_id,
            "to_board_id": dest_board.id,
            "position": index,
        }
        await self.publish(dest_board.id, "card-moved", card.id, dest_board.id, data, message)
        if dest_board is not source_board:
            await self.publish(source_board.id, "card-moved", card.id, dest_board.id, data, message)
        return await self.reload_card(card.id)

    async def toggle_completion(self, card_id: str) -> Card:
        card, board = await self.load_card(card_id)
        require_active_member(board, self.actor.id)
        card.completed = not card.completed
        await self.db.commit()

        if card.completed:
            action, verb = ActivityAction.CARD_COMPLETED, "completed"
        else:
            action, verb = ActivityAction.CARD_UNCOMPLETED, "reopened"
        message = f'{self.actor_name} {verb} card "{card.title}"'
        activity = await self.recorder.record(
            self.actor.id, action, card.id, TargetModel.CARD, message,
            attach_to=[card, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(card.member_ids, self.actor.id, message, card.id,
                                   TargetModel.CARD, activity=activity)
        await self.publish(board.id, "card-completion-toggled", card.id, board.id,
                           {"completed": card.completed}, message)
        return await self.reload_card(card.id)

    async def add_card_member(self, card_id: str, user_id: str) -> Card:
        card, board = await self.load_card(card_id)
        require_active_member(board, self.actor.id)
        require_id(user_id, "user_id")
        if not is_active_member(board, user_id):
            raise InvalidError("User is not an active member of this board", details={"user_id": user_id})
        if user_id in (card.member_ids or []):
            raise ConflictError("User is already a member of this card", details={"user_id": user_id})
        card.member_ids = [*(card.member_ids or []), user_id]
        await self.db.commit()

        message = f'{self.actor_name} added a member to card "{card.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.CARD_MEMBER_ADDED, card.id, TargetModel.CARD, message,
            attach_to=[card, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            [user_id], self.actor.id, f'{self.actor_name} added you to card "{card.title}"',
            card.id, TargetModel.CARD, NotificationType.ASSIGNMENT, activity,
        )
        await self.publish(board.id, "card-member-added", card.id, board.id,
                           {"user_id": user_id, "member_ids": card.member_ids}, message)
        return await self.reload_card(card.id)

    async def remove_card_member(self, card_id: str, user_id: str) -> Card:
        card, board = await self.load_card(card_id)
        require_active_member(board, self.actor.id)
        require_id(user_id, "user_id")
        if user_id not in (card.member_ids or []):
            raise NotFoundError("User is not a member of this card", details={"user_id": user_id})
        card.member_ids = [m for m in card.member_ids if m != user_id]
        await self.db.commit()

        message = f'{self.actor_name} removed a member from card "{card.title}"'
        activity = await self.recorder.record(
            self.actor.id, ActivityAction.CARD_MEMBER_REMOVED, card.id, TargetModel.CARD, message,
            attach_to=[card, board], board_id=board.id, workspace_id=board.workspace_id,
        )
        await self.recorder.notify(
            [user_id], self.actor.id, f'{self.actor_name} removed you from card "{card.title}"',
            card.id, TargetModel.CARD, NotificationType.ASSIGNMENT, activity,
        )
        await self.publish(board.id, "card-member-removed", card.id, board.id,
                           {"user_id": user_id, "member_ids": card.member_ids}, message)
        return await self.reload_card(card.id)
