# routers/workspaces.py — Workspace CRUD
from datetime import datetime
from typing import Optional, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user, CurrentUser
from database import get_db_session
from hierarchy import HierarchyManager
from models import Workspace

router = APIRouter(prefix="/api/v1/workspaces", tags=["Workspaces"])


# ============================================================
# SCHEMAS
# ============================================================

class WorkspaceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    background: Optional[str] = None
    is_public: bool = False


class WorkspaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    background: Optional[str] = None
    is_public: Optional[bool] = None


class WorkspaceOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    background: Optional[str] = None
    owner_id: str
    member_ids: List[str] = []
    is_public: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def _ts(dt) -> Optional[str]:
    if dt is None:
        return None
    return dt.isoformat() if isinstance(dt, datetime) else str(dt)


def _workspace_out(ws: Workspace) -> WorkspaceOut:
    return WorkspaceOut(
        id=ws.id,
        name=ws.name,
        description=ws.description,
        background=ws.background,
        owner_id=ws.owner_id,
        member_ids=ws.member_ids,
        is_public=bool(ws.is_public),
        created_at=_ts(ws.created_at),
        updated_at=_ts(ws.updated_at),
    )


# ============================================================
# ENDPOINTS
# ============================================================

@router.post("", response_model=WorkspaceOut, status_code=201)
async def create_workspace(
    data: WorkspaceCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Create a workspace; the creator becomes owner and first member"""
    ws = await HierarchyManager(db, user).create_workspace(
        data.name, data.description, data.background, data.is_public,
    )
    return _workspace_out(ws)


@router.get("", response_model=List[WorkspaceOut])
async def list_workspaces(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Workspaces the current user belongs to"""
    return [_workspace_out(ws) for ws in await HierarchyManager(db, user).list_workspaces()]


@router.get("/{workspace_id}", response_model=WorkspaceOut)
async def get_workspace(
    workspace_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    return _workspace_out(await HierarchyManager(db, user).get_workspace(workspace_id))


@router.put("/{workspace_id}", response_model=WorkspaceOut)
async def update_workspace(
    workspace_id: str,
    data: WorkspaceUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Owner-only update"""
    ws = await HierarchyManager(db, user).update_workspace(
        workspace_id, data.model_dump(exclude_unset=True),
    )
    return _workspace_out(ws)


@router.delete("/{workspace_id}")
async def delete_workspace(
    workspace_id: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
):
    """Soft-delete a workspace and all of its boards"""
    board_ids = await HierarchyManager(db, user).delete_workspace(workspace_id)
    return {"status": "deleted", "workspace_id": workspace_id, "board_ids": board_ids}
