# routers/card_content.py — Comments, notes, checklists and checklist items
from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from card_content import CardContentEngine
from database import get_db_session
from routers.cards import (
    ChecklistOut, CommentOut, NoteOut, checklists_out, comments_out, notes_out,
)

router = APIRouter(prefix="/api/v1/cards/{card_id}", tags=["Card Content"])


# ============================================================
# SCHEMAS
# ============================================================

class CommentCreate(BaseModel):
    text: Optional[str] = Field(None, max_length=10000)


class NoteCreate(BaseModel):
    content: Optional[str] = Field(None, max_length=10000)


class ChecklistCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)


class ItemCreate(BaseModel):
    text: Optional[str] = Field(None, max_length=1000)
    version: Optional[int] = None


class ItemUpdate(BaseModel):
    text: Optional[str] = Field(None, max_length=1000)
    version: Optional[int] = None


class ItemToggle(BaseModel):
    version: Optional[int] = None


class ChecklistState(BaseModel):
    checklists: List[ChecklistOut]
    version: int


# ============================================================
# COMMENTS
# ============================================================

@router.post("/comments", response_model=List[CommentOut], status_code=201)
async def add_comment(
    card_id: str,
    data: CommentCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Add a comment; returns the card's visible comments"""
    card = await CardContentEngine(db, user).add_comment(card_id, data.text)
    return comments_out(card)


@router.delete("/comments/{comment_id}", response_model=List[CommentOut])
async def hide_comment(
    card_id: str,
    comment_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Hide your own comment"""
    card = await CardContentEngine(db, user).hide_comment(card_id, comment_id)
    return comments_out(card)


# ============================================================
# NOTES
# ============================================================

@router.post("/notes", response_model=List[NoteOut], status_code=201)
async def add_note(
    card_id: str,
    data: NoteCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await CardContentEngine(db, user).add_note(card_id, data.content)
    return notes_out(card)


@router.delete("/notes/{note_id}", response_model=List[NoteOut])
async def hide_note(
    card_id: str,
    note_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await CardContentEngine(db, user).hide_note(card_id, note_id)
    return notes_out(card)


# ============================================================
# CHECKLISTS
# ============================================================

@router.post("/checklists", response_model=ChecklistState, status_code=201)
async def add_checklist(
    card_id: str,
    data: ChecklistCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await CardContentEngine(db, user).add_checklist(card_id, data.title)
    return ChecklistState(checklists=checklists_out(card), version=card.version)


@router.put("/checklists/{checklist_id}", response_model=ChecklistState)
async def edit_checklist(
    card_id: str,
    checklist_id: str,
    data: ChecklistCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await CardContentEngine(db, user).edit_checklist(card_id, checklist_id, data.title)
    return ChecklistState(checklists=checklists_out(card), version=card.version)


@router.delete("/checklists/{checklist_id}", response_model=ChecklistState)
async def delete_checklist(
    card_id: str,
    checklist_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card = await CardContentEngine(db, user).delete_checklist(card_id, checklist_id)
    return ChecklistState(checklists=checklists_out(card), version=card.version)


# ============================================================
# CHECKLIST ITEMS (pass the last seen card version)
# ============================================================

@router.post("/checklists/{checklist_id}/items", response_model=ChecklistState, status_code=201)
async def add_checklist_item(
    card_id: str,
    checklist_id: str,
    data: ItemCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card, version = await CardContentEngine(db, user).add_checklist_item(
        card_id, checklist_id, data.text, data.version,
    )
    return ChecklistState(checklists=checklists_out(card), version=version)


@router.put("/checklists/{checklist_id}/items/{item_id}/toggle", response_model=ChecklistState)
async def toggle_checklist_item(
    card_id: str,
    checklist_id: str,
    item_id: str,
    data: Optional[ItemToggle] = None,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card, version = await CardContentEngine(db, user).toggle_checklist_item(
        card_id, checklist_id, item_id, data.version if data else None,
    )
    return ChecklistState(checklists=checklists_out(card), version=version)


@router.put("/checklists/{checklist_id}/items/{item_id}", response_model=ChecklistState)
async def edit_checklist_item(
    card_id: str,
    checklist_id: str,
    item_id: str,
    data: ItemUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card, version = await CardContentEngine(db, user).edit_checklist_item(
        card_id, checklist_id, item_id, data.text, data.version,
    )
    return ChecklistState(checklists=checklists_out(card), version=version)


@router.delete("/checklists/{checklist_id}/items/{item_id}", response_model=ChecklistState)
async def delete_checklist_item(
    card_id: str,
    checklist_id: str,
    item_id: str,
    version: Optional[int] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    card, version = await CardContentEngine(db, user).delete_checklist_item(
        card_id, checklist_id, item_id, version,
    )
    return ChecklistState(checklists=checklists_out(card), version=version)
