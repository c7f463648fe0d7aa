# routers/lists.py — Lists and their card ordering
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from hierarchy import HierarchyManager
from models import BoardList
from routers.boards import BoardOut, ListOrderUpdate, board_out

router = APIRouter(prefix="/api/v1/lists", tags=["Lists"])


# ============================================================
# SCHEMAS
# ============================================================

class ListCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    board_id: Optional[str] = None
    position: Optional[float] = None


class ListUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    position: Optional[float] = None


class CardOrderUpdate(BaseModel):
    card_order_ids: List[str]


class ListOut(BaseModel):
    id: str
    title: str
    board_id: str
    position: float
    card_order_ids: List[str] = []
    is_deleted: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


def list_out(lst: BoardList) -> ListOut:
    return ListOut(
        id=lst.id,
        title=lst.title,
        board_id=lst.board_id,
        position=lst.position or 0,
        card_order_ids=list(lst.card_order_ids or []),
        is_deleted=bool(lst.is_deleted),
        created_at=_ts(lst.created_at),
        updated_at=_ts(lst.updated_at),
    )


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("", response_model=ListOut, status_code=201)
async def create_list(
    data: ListCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a list and append it to the board's list order"""
    lst = await HierarchyManager(db, user).create_list(data.board_id, data.title, data.position)
    return list_out(lst)


@router.get("/board/{board_id}", response_model=List[ListOut])
async def get_lists_by_board(
    board_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Live lists in display order"""
    return [list_out(lst) for lst in await HierarchyManager(db, user).get_lists(board_id)]


@router.put("/board/{board_id}/list-order", response_model=BoardOut)
async def update_list_order(
    board_id: str,
    data: ListOrderUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    board = await HierarchyManager(db, user).update_list_order(board_id, data.list_order_ids)
    return board_out(board)


@router.put("/card-order/{list_id}", response_model=ListOut)
async def update_card_order(
    list_id: str,
    data: CardOrderUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Replace the list's card order (must name every live card exactly once)"""
    lst = await HierarchyManager(db, user).update_card_order(list_id, data.card_order_ids)
    return list_out(lst)


@router.put("/{list_id}", response_model=ListOut)
async def update_list(
    list_id: str,
    data: ListUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    lst = await HierarchyManager(db, user).update_list(list_id, data.model_dump(exclude_unset=True))
    return list_out(lst)


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Owner-only; soft-deletes the list's cards too"""
    await HierarchyManager(db, user).delete_list(list_id)
    return {"status": "deleted", "list_id": list_id}
