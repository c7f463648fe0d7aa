# permissions.py — Membership/ownership predicates shared by every mutation
from typing import Optional

from exceptions import ForbiddenError
from models import Board, Workspace


def find_member(board: Board, user_id: str):
    for member in board.members:
        if member.user_id == user_id:
            return member
    return None


def is_active_member(board: Board, user_id: str) -> bool:
    member = find_member(board, user_id)
    return member is not None and member.is_active


def is_owner(entity, user_id: str) -> bool:
    return entity.owner_id == user_id


def is_workspace_member(workspace: Workspace, user_id: str) -> bool:
    return is_owner(workspace, user_id) or user_id in workspace.member_ids


def active_member_ids(board: Board) -> list:
    return [m.user_id for m in board.members if m.is_active]


def require_active_member(board: Board, user_id: str, message: Optional[str] = None) -> None:
    if not is_active_member(board, user_id):
        raise ForbiddenError(
            message or "You are not an active member of this board",
            "TB-ACL-001",
            {"board_id": board.id},
        )


def require_owner(entity, user_id: str, message: Optional[str] = None) -> None:
    if not is_owner(entity, user_id):
        raise ForbiddenError(
            message or "Only the owner can perform this action",
            "TB-ACL-002",
            {"entity_id": entity.id},
        )


def require_workspace_member(workspace: Workspace, user_id: str) -> None:
    if not is_workspace_member(workspace, user_id):
        raise ForbiddenError(
            "You are not a member of this workspace",
            "TB-ACL-001",
            {"workspace_id": workspace.id},
        )


def require_author(author_id: str, user_id: str, kind: str) -> None:
    if author_id != user_id:
        raise ForbiddenError(f"Only the author can hide this {kind}", "TB-ACL-003")
