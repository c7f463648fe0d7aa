# routers/cards.py — Cards: create, order-aware listing, move, completion, members
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from hierarchy import HierarchyManager
from models import Card

router = APIRouter(prefix="/api/v1/cards", tags=["Cards"])


# ============================================================
# SCHEMAS
# ============================================================

class CardCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=500)
    list_id: Optional[str] = None
    board_id: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None


class CardUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    cover: Optional[str] = None


class CardMove(BaseModel):
    new_list_id: Optional[str] = None
    new_board_id: Optional[str] = None
    new_position: Optional[int] = None


class CardMemberAdd(BaseModel):
    user_id: str


class ChecklistItemOut(BaseModel):
    id: str
    text: str
    completed: bool


class ChecklistOut(BaseModel):
    id: str
    title: str
    items: List[ChecklistItemOut] = []


class CommentOut(BaseModel):
    id: str
    author_id: str
    text: str
    created_at: Optional[str] = None


class NoteOut(BaseModel):
    id: str
    author_id: str
    content: str
    created_at: Optional[str] = None


class CardOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    list_id: str
    board_id: str
    member_ids: List[str] = []
    cover: Optional[str] = None
    position: int
    completed: bool
    due_date: Optional[str] = None
    version: int
    checklists: List[ChecklistOut] = []
    comments: List[CommentOut] = []
    notes: List[NoteOut] = []
    activity_ids: List[str] = []
    is_deleted: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


def checklists_out(card: Card) -> List[ChecklistOut]:
    """Live checklists with their live items"""
    return [
        ChecklistOut(
            id=cl.id,
            title=cl.title,
            items=[
                ChecklistItemOut(id=i.id, text=i.text, completed=bool(i.completed))
                for i in cl.items if not i.is_deleted
            ],
        )
        for cl in card.checklists if not cl.is_deleted
    ]


def comments_out(card: Card) -> List[CommentOut]:
    return [
        CommentOut(id=c.id, author_id=c.author_id, text=c.text, created_at=_ts(c.created_at))
        for c in card.comments if not c.is_deleted
    ]


def notes_out(card: Card) -> List[NoteOut]:
    return [
        NoteOut(id=n.id, author_id=n.author_id, content=n.content, created_at=_ts(n.created_at))
        for n in card.notes if not n.is_deleted
    ]


def card_out(card: Card) -> CardOut:
    return CardOut(
        id=card.id,
        title=card.title,
        description=card.description,
        list_id=card.list_id,
        board_id=card.board_id,
        member_ids=list(card.member_ids or []),
        cover=card.cover,
        position=card.position or 0,
        completed=bool(card.completed),
        due_date=_ts(card.due_date),
        version=card.version or 0,
        checklists=checklists_out(card),
        comments=comments_out(card),
        notes=notes_out(card),
        activity_ids=list(card.activity_ids or []),
        is_deleted=bool(card.is_deleted),
        created_at=_ts(card.created_at),
        updated_at=_ts(card.updated_at),
    )


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("", response_model=CardOut, status_code=201)
async def create_card(
    data: CardCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a card at the end of a list"""
    card = await HierarchyManager(db, user).create_card(
        data.title, data.list_id, data.board_id, data.description, data.due_date,
    )
    return card_out(card)


@router.get("/list/{list_id}", response_model=List[CardOut])
async def get_cards_by_list(
    list_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Live cards in display order"""
    return [card_out(c) for c in await HierarchyManager(db, user).get_cards(list_id)]


@router.get("/{card_id}", response_model=CardOut)
async def get_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Fetch a card by id; deleted cards are visible to the board owner only"""
    return card_out(await HierarchyManager(db, user).get_card(card_id))


@router.put("/{card_id}", response_model=CardOut)
async def update_card(
    card_id: str,
    data: CardUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await HierarchyManager(db, user).update_card(card_id, data.model_dump(exclude_unset=True))
    return card_out(card)


@router.delete("/{card_id}")
async def delete_card(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Soft-delete a card and drop it from its list's order"""
    await HierarchyManager(db, user).delete_card(card_id)
    return {"status": "deleted", "card_id": card_id}


@router.put("/{card_id}/move", response_model=CardOut)
async def move_card(
    card_id: str,
    data: CardMove,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Move a card to another list (possibly on another board)"""
    card = await HierarchyManager(db, user).move_card(
        card_id, data.new_list_id, data.new_board_id, data.new_position,
    )
    return card_out(card)


@router.put("/{card_id}/complete", response_model=CardOut)
async def toggle_completion(
    card_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return card_out(await HierarchyManager(db, user).toggle_completion(card_id))


@router.post("/{card_id}/members", response_model=CardOut)
async def add_card_member(
    card_id: str,
    data: CardMemberAdd,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return card_out(await HierarchyManager(db, user).add_card_member(card_id, data.user_id))


@router.delete("/{card_id}/members/{member_id}", response_model=CardOut)
async def remove_card_member(
    card_id: str,
    member_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return card_out(await HierarchyManager(db, user).remove_card_member(card_id, member_id))
