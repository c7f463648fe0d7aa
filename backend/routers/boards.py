# routers/boards.py — Boards, membership and board activity
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, EmailStr
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from hierarchy import HierarchyManager
from models import Activity, Board, BoardVisibility

router = APIRouter(prefix="/api/v1/boards", tags=["Boards"])


# ============================================================
# SCHEMAS
# ============================================================

class BoardCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    workspace_id: Optional[str] = None
    description: Optional[str] = None
    background: Optional[str] = None
    visibility: BoardVisibility = BoardVisibility.PRIVATE


class BoardUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    background: Optional[str] = None
    visibility: Optional[BoardVisibility] = None


class ListOrderUpdate(BaseModel):
    list_order_ids: List[str]


class InviteRequest(BaseModel):
    user_id: Optional[str] = None
    email: Optional[EmailStr] = None


class TransferRequest(BaseModel):
    new_owner_id: str


class MemberOut(BaseModel):
    user_id: str
    is_active: bool


class InvitationOut(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    invited_by: str
    is_active: bool
    invited_at: Optional[str] = None


class BoardOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    background: Optional[str] = None
    visibility: str
    owner_id: str
    workspace_id: str
    members: List[MemberOut] = []
    invited_users: List[InvitationOut] = []
    list_order_ids: List[str] = []
    is_deleted: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ActivityOut(BaseModel):
    id: str
    actor_id: str
    action: str
    target_id: str
    target_model: str
    board_id: Optional[str] = None
    details: str
    timestamp: Optional[str] = None


def _ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


def board_out(board: Board) -> BoardOut:
    return BoardOut(
        id=board.id,
        title=board.title,
        description=board.description,
        background=board.background,
        visibility=board.visibility.value if isinstance(board.visibility, BoardVisibility) else board.visibility,
        owner_id=board.owner_id,
        workspace_id=board.workspace_id,
        members=[MemberOut(user_id=m.user_id, is_active=m.is_active) for m in board.members],
        invited_users=[InvitationOut(
            user_id=i.user_id, email=i.email, invited_by=i.invited_by,
            is_active=i.is_active, invited_at=_ts(i.invited_at),
        ) for i in board.invitations],
        list_order_ids=list(board.list_order_ids or []),
        is_deleted=bool(board.is_deleted),
        created_at=_ts(board.created_at),
        updated_at=_ts(board.updated_at),
    )


def activity_out(a: Activity) -> ActivityOut:
    return ActivityOut(
        id=a.id,
        actor_id=a.actor_id,
        action=a.action.value if hasattr(a.action, "value") else a.action,
        target_id=a.target_id,
        target_model=a.target_model.value if hasattr(a.target_model, "value") else a.target_model,
        board_id=a.board_id,
        details=a.details or "",
        timestamp=_ts(a.timestamp),
    )


# ============================================================
# BOARD ENDPOINTS
# ============================================================

@router.post("", response_model=BoardOut, status_code=201)
async def create_board(
    data: BoardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a board in a workspace the user belongs to"""
    board = await HierarchyManager(db, user).create_board(
        data.title, data.workspace_id, data.description, data.background, data.visibility,
    )
    return board_out(board)


@router.get("", response_model=List[BoardOut])
async def list_boards(
    workspace_id: Optional[str] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Boards the user owns or is an active member of"""
    boards = await HierarchyManager(db, user).list_boards(workspace_id)
    return [board_out(b) for b in boards]


@router.get("/{board_id}", response_model=BoardOut)
async def get_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return board_out(await HierarchyManager(db, user).get_board(board_id))


@router.put("/{board_id}", response_model=BoardOut)
async def update_board(
    board_id: str,
    data: BoardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await HierarchyManager(db, user).update_board(
        board_id, data.model_dump(exclude_unset=True),
    )
    return board_out(board)


@router.delete("/{board_id}")
async def delete_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Owner-only soft delete"""
    await HierarchyManager(db, user).delete_board(board_id)
    return {"status": "deleted", "board_id": board_id}


@router.put("/{board_id}/list-order", response_model=BoardOut)
async def update_list_order(
    board_id: str,
    data: ListOrderUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Replace the board's list order (must name every live list exactly once)"""
    board = await HierarchyManager(db, user).update_list_order(board_id, data.list_order_ids)
    return board_out(board)


# ============================================================
# MEMBERSHIP ENDPOINTS
# ============================================================

@router.post("/{board_id}/invite", response_model=BoardOut)
async def invite_member(
    board_id: str,
    data: InviteRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Invite by user id or e-mail (owner only)"""
    board, _ = await HierarchyManager(db, user).invite_member(
        board_id, user_id=data.user_id, email=data.email,
    )
    return board_out(board)


@router.delete("/{board_id}/members/{member_id}", response_model=BoardOut)
async def remove_member(
    board_id: str,
    member_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Deactivate a member (owner only; the owner cannot be removed)"""
    return board_out(await HierarchyManager(db, user).remove_member(board_id, member_id))


@router.post("/{board_id}/leave", response_model=BoardOut)
async def leave_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return board_out(await HierarchyManager(db, user).leave_board(board_id))


@router.put("/{board_id}/transfer", response_model=BoardOut)
async def transfer_ownership(
    board_id: str,
    data: TransferRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await HierarchyManager(db, user).transfer_ownership(board_id, data.new_owner_id)
    return board_out(board)


@router.get("/{board_id}/activities", response_model=List[ActivityOut])
async def board_activities(
    board_id: str,
    limit: int = Query(50, ge=1, le=200),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Board activity trail, newest first"""
    activities = await HierarchyManager(db, user).board_activities(board_id, limit)
    return [activity_out(a) for a in activities]
